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

import logging
from typing import Any, Mapping

import httpx
from typing_extensions import override

from arangopy.exceptions import (
    ArangoTimeoutException,
    ArangoTransportException,
    _TimeoutContext,
    to_timeout_exception,
)
from arangopy.transport.base import AsyncTransport, RawResponse, Transport
from arangopy.utils.request_tools import timeout_seconds

logger = logging.getLogger(__name__)


def to_httpx_timeout(timeout_context: _TimeoutContext) -> httpx.Timeout | None:
    _seconds = timeout_seconds(timeout_context)
    if _seconds is None:
        return None
    else:
        return httpx.Timeout(_seconds)


def _describe_request(
    httpx_error: httpx.RequestError,
) -> tuple[str | None, str | None]:
    try:
        request = httpx_error.request
    except RuntimeError:
        # the error was raised without an associated request
        return (None, None)
    endpoint = str(request.url)
    if isinstance(request.content, bytes):
        raw_payload = request.content.decode()
    else:
        raw_payload = None
    return (endpoint, raw_payload)


def _to_timeout_exception(
    httpx_timeout: httpx.TimeoutException,
    timeout_context: _TimeoutContext,
) -> ArangoTimeoutException:
    if isinstance(httpx_timeout, httpx.ConnectTimeout):
        timeout_type = "connect"
    elif isinstance(httpx_timeout, httpx.ReadTimeout):
        timeout_type = "read"
    elif isinstance(httpx_timeout, httpx.WriteTimeout):
        timeout_type = "write"
    elif isinstance(httpx_timeout, httpx.PoolTimeout):
        timeout_type = "pool"
    else:
        timeout_type = "generic"
    endpoint, raw_payload = _describe_request(httpx_timeout)
    return to_timeout_exception(
        str(httpx_timeout),
        timeout_type=timeout_type,
        endpoint=endpoint,
        raw_payload=raw_payload,
        timeout_context=timeout_context,
    )


def _to_transport_exception(
    httpx_error: httpx.TransportError,
    url: str,
) -> ArangoTransportException:
    endpoint, raw_payload = _describe_request(httpx_error)
    error_desc = str(httpx_error) or httpx_error.__class__.__name__
    return ArangoTransportException(
        text=f"Could not complete request to {url}: {error_desc}",
        endpoint=endpoint or url,
        raw_payload=raw_payload,
    )


class HttpxTransport(Transport):
    """
    A blocking transport backed by an `httpx.Client`.

    Args:
        client: an httpx.Client to use. If not provided, one is created and
            owned by the transport (i.e. closed when the transport is closed).
    """

    def __init__(self, client: httpx.Client | None = None) -> None:
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    @override
    def execute(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        params: Mapping[str, Any] | None,
        timeout_context: _TimeoutContext,
    ) -> RawResponse:
        try:
            response = self.client.request(
                method=method,
                url=url,
                content=body,
                params=dict(params) if params else None,
                headers=dict(headers),
                timeout=to_httpx_timeout(timeout_context),
            )
        except httpx.TimeoutException as timeout_exc:
            raise _to_timeout_exception(timeout_exc, timeout_context) from timeout_exc
        except httpx.TransportError as transport_exc:
            raise _to_transport_exception(transport_exc, url) from transport_exc
        return RawResponse.from_parts(
            response.status_code, response.headers, response.content
        )

    @override
    def close(self) -> None:
        if self._owns_client:
            self.client.close()


class AsyncHttpxTransport(AsyncTransport):
    """
    An asyncio transport backed by an `httpx.AsyncClient`.

    Args:
        client: an httpx.AsyncClient to use. If not provided, one is created
            and owned by the transport (i.e. closed when it is closed).
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    @override
    async def execute(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        params: Mapping[str, Any] | None,
        timeout_context: _TimeoutContext,
    ) -> RawResponse:
        try:
            response = await self.client.request(
                method=method,
                url=url,
                content=body,
                params=dict(params) if params else None,
                headers=dict(headers),
                timeout=to_httpx_timeout(timeout_context),
            )
        except httpx.TimeoutException as timeout_exc:
            raise _to_timeout_exception(timeout_exc, timeout_context) from timeout_exc
        except httpx.TransportError as transport_exc:
            raise _to_transport_exception(transport_exc, url) from transport_exc
        return RawResponse.from_parts(
            response.status_code, response.headers, response.content
        )

    @override
    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
