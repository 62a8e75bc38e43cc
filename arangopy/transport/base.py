# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Mapping

from arangopy.exceptions import _TimeoutContext


@dataclass
class RawResponse:
    """
    The outcome of an HTTP exchange, as returned by any transport.

    Attributes:
        status_code: the HTTP status code.
        headers: the response headers, with lower-cased names.
        body: the raw body bytes.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @staticmethod
    def from_parts(
        status_code: int, headers: Mapping[str, str], body: bytes
    ) -> RawResponse:
        return RawResponse(
            status_code=status_code,
            headers={k.lower(): v for k, v in headers.items()},
            body=body,
        )


class Transport(ABC):
    """
    A blocking HTTP backend: `execute` occupies the calling thread until the
    whole response is received or a transport-level error occurs.

    Implementations must raise `ArangoTransportException` (or its subclass
    `ArangoTimeoutException`) for any failure to complete the exchange, and
    must return a RawResponse for any completed one, whatever its status code.
    """

    @abstractmethod
    def execute(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        params: Mapping[str, Any] | None,
        timeout_context: _TimeoutContext,
    ) -> RawResponse: ...

    def close(self) -> None:
        """Release the resources held by the backend, if any."""
        pass

    def __enter__(self) -> Transport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()


class AsyncTransport(ABC):
    """
    An asyncio HTTP backend: `execute` is a coroutine suspending while the
    response is awaited, blocking no thread.

    The error and response semantics are identical to those of Transport.
    """

    @abstractmethod
    async def execute(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        params: Mapping[str, Any] | None,
        timeout_context: _TimeoutContext,
    ) -> RawResponse: ...

    async def aclose(self) -> None:
        """Release the resources held by the backend, if any."""
        pass

    async def __aenter__(self) -> AsyncTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.aclose()
