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

"""
Main conftest for shared fixtures: scripted transports, standing in for a
server, and session factories built on them.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Mapping

import pytest
from blockbuster import BlockBuster, blockbuster_ctx

from arangopy import AsyncSession, Session
from arangopy.authentication import BasicAuth
from arangopy.exceptions import _TimeoutContext
from arangopy.transport import AsyncTransport, RawResponse, Transport
from arangopy.utils.api_options import defaultAPIOptions

TEST_API_ENDPOINT = "http://arango.test:8529"
TEST_DATABASE = "test_db"


@pytest.fixture(autouse=True)
def blockbuster() -> Iterator[BlockBuster]:
    with blockbuster_ctx("arangopy") as bb:
        # TODO: follow discussion in https://github.com/encode/httpx/discussions/3456
        bb.functions["os.stat"].can_block_in("httpx/_client.py", "_init_transport")
        yield bb


def json_response(
    body: Any,
    status_code: int = 200,
) -> RawResponse:
    return RawResponse(
        status_code=status_code,
        headers={"content-type": "application/json"},
        body=json.dumps(body).encode(),
    )


def cursor_response(
    results: list[Any],
    *,
    has_more: bool,
    cursor_id: str | int | None = None,
    count: int | None = None,
    extra: dict[str, Any] | None = None,
    status_code: int = 201,
) -> RawResponse:
    body: dict[str, Any] = {
        "result": results,
        "hasMore": has_more,
        "error": False,
        "code": status_code,
    }
    if cursor_id is not None:
        body["id"] = cursor_id
    if count is not None:
        body["count"] = count
    if extra is not None:
        body["extra"] = extra
    return json_response(body, status_code=status_code)


def error_response(status_code: int, error_num: int, error_message: str) -> RawResponse:
    return json_response(
        {
            "error": True,
            "code": status_code,
            "errorNum": error_num,
            "errorMessage": error_message,
        },
        status_code=status_code,
    )


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    payload: Any
    params: dict[str, Any]
    timeout_context: _TimeoutContext


def _record(
    *,
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes | None,
    params: Mapping[str, Any] | None,
    timeout_context: _TimeoutContext,
) -> RecordedCall:
    return RecordedCall(
        method=method,
        url=url,
        headers=dict(headers),
        payload=json.loads(body) if body is not None else None,
        params=dict(params or {}),
        timeout_context=timeout_context,
    )


class ScriptedTransport(Transport):
    """
    A transport replaying a fixed sequence of outcomes (responses, or
    exceptions to raise), recording every request it receives.
    """

    def __init__(self, outcomes: list[RawResponse | Exception] | None = None) -> None:
        self.outcomes = list(outcomes or [])
        self.calls: list[RecordedCall] = []
        self.closed = False

    def enqueue(self, *outcomes: RawResponse | Exception) -> None:
        self.outcomes.extend(outcomes)

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
        self.calls.append(
            _record(
                method=method,
                url=url,
                headers=headers,
                body=body,
                params=params,
                timeout_context=timeout_context,
            )
        )
        if not self.outcomes:
            raise AssertionError(f"Unexpected request: {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_by_method(self, method: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.method == method]

    def close(self) -> None:
        self.closed = True


class AsyncScriptedTransport(AsyncTransport):
    """
    The asyncio counterpart of ScriptedTransport. If `gate` is set, each
    request waits for it before returning, making it possible to keep
    a request in flight.
    """

    def __init__(self, outcomes: list[RawResponse | Exception] | None = None) -> None:
        self.outcomes = list(outcomes or [])
        self.calls: list[RecordedCall] = []
        self.closed = False
        self.gate: asyncio.Event | None = None

    def enqueue(self, *outcomes: RawResponse | Exception) -> None:
        self.outcomes.extend(outcomes)

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
        self.calls.append(
            _record(
                method=method,
                url=url,
                headers=headers,
                body=body,
                params=params,
                timeout_context=timeout_context,
            )
        )
        if self.gate is not None:
            await self.gate.wait()
        if not self.outcomes:
            raise AssertionError(f"Unexpected request: {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_by_method(self, method: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.method == method]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def async_transport() -> AsyncScriptedTransport:
    return AsyncScriptedTransport()


@pytest.fixture
def session(transport: ScriptedTransport) -> Iterator[Session]:
    with Session(
        api_endpoint=TEST_API_ENDPOINT,
        auth=BasicAuth("root", "openSesame"),
        api_options=defaultAPIOptions(),
        transport=transport,
        owns_transport=False,
    ) as _session:
        yield _session


@pytest.fixture
def async_session(async_transport: AsyncScriptedTransport) -> AsyncSession:
    return AsyncSession(
        api_endpoint=TEST_API_ENDPOINT,
        auth=BasicAuth("root", "openSesame"),
        api_options=defaultAPIOptions(),
        async_transport=async_transport,
        owns_transport=False,
    )
