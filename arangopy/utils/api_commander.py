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

import json
import logging
from typing import Any, Iterable, Sequence

from arangopy.constants import CallerType
from arangopy.exceptions import ArangoSerializationException, _TimeoutContext
from arangopy.settings.defaults import (
    DEFAULT_REDACTED_HEADER_NAMES,
    FIXED_SECRET_PLACEHOLDER,
)
from arangopy.transport import AsyncTransport, RawResponse, Transport
from arangopy.utils.envelope import decode_envelope
from arangopy.utils.request_tools import HttpMethod, log_request, log_response

logger = logging.getLogger(__name__)


def detect_arangopy_user_agent() -> CallerType:
    from arangopy import __version__

    return ("arangopy", __version__)


def compose_user_agent(callers: Sequence[CallerType]) -> str | None:
    """
    Make a User-Agent string out of a list of (name, version) callers,
    the leftmost being the outermost. Callers without a name are skipped.
    """
    pieces = [
        f"{name}/{version}" if version else name
        for name, version in callers
        if name
    ]
    if pieces:
        return " ".join(pieces)
    else:
        return None


user_agent_arangopy = detect_arangopy_user_agent()


class APICommander:
    """
    The component that talks to the server: it composes URLs and headers,
    encodes payloads, hands requests to a transport and decodes the
    envelope of the responses.

    A commander can be equipped with a blocking transport, an asyncio one or
    both: `request` needs the former, `async_request` the latter. The
    transports are not owned (i.e. never closed) by the commander.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        path: str,
        headers: dict[str, str | None] = {},
        callers: Sequence[CallerType] = [],
        redacted_header_names: Iterable[str] | None = None,
        transport: Transport | None = None,
        async_transport: AsyncTransport | None = None,
    ) -> None:
        self.api_endpoint = api_endpoint.rstrip("/")
        self.path = path.strip("/")
        self.headers = headers
        self.callers = callers
        self.redacted_header_names = set(redacted_header_names or [])
        self.transport = transport
        self.async_transport = async_transport
        self.upper_full_redacted_header_names = {
            header_name.upper()
            for header_name in (
                self.redacted_header_names | DEFAULT_REDACTED_HEADER_NAMES
            )
        }

        full_user_agent_string = compose_user_agent(
            list(self.callers) + [user_agent_arangopy]
        )
        self.caller_header: dict[str, str] = (
            {"User-Agent": full_user_agent_string} if full_user_agent_string else {}
        )
        self.full_headers: dict[str, str] = {
            k: v
            for k, v in {
                **{
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                **self.caller_header,
                **self.headers,
            }.items()
            if v is not None
        }
        self._loggable_headers = {
            k: v
            if k.upper() not in self.upper_full_redacted_header_names
            else FIXED_SECRET_PLACEHOLDER
            for k, v in self.full_headers.items()
        }
        self.full_path = "/".join(
            pc for pc in (self.api_endpoint, self.path) if pc
        ).rstrip("/")

    def __repr__(self) -> str:
        pieces = [
            f"api_endpoint={self.api_endpoint}",
            f"path={self.path}",
            f"callers={self.callers}",
        ]
        inner_desc = ", ".join(pieces)
        return f"{self.__class__.__name__}({inner_desc})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, APICommander):
            return all(
                [
                    self.api_endpoint == other.api_endpoint,
                    self.path == other.path,
                    self.headers == other.headers,
                    self.callers == other.callers,
                    self.redacted_header_names == other.redacted_header_names,
                    self.transport is other.transport,
                    self.async_transport is other.async_transport,
                ]
            )
        else:
            return False

    def _copy(
        self,
        api_endpoint: str | None = None,
        path: str | None = None,
        headers: dict[str, str | None] | None = None,
        callers: Sequence[CallerType] | None = None,
        redacted_header_names: Iterable[str] | None = None,
    ) -> APICommander:
        # some care in allowing e.g. {} to override (but not None):
        return APICommander(
            api_endpoint=(
                api_endpoint if api_endpoint is not None else self.api_endpoint
            ),
            path=path if path is not None else self.path,
            headers=headers if headers is not None else self.headers,
            callers=callers if callers is not None else self.callers,
            redacted_header_names=(
                redacted_header_names
                if redacted_header_names is not None
                else self.redacted_header_names
            ),
            transport=self.transport,
            async_transport=self.async_transport,
        )

    def _compose_request_url(self, additional_path: str | None) -> str:
        if additional_path:
            return "/".join([self.full_path.rstrip("/"), additional_path.lstrip("/")])
        else:
            return self.full_path

    @staticmethod
    def _encode_payload(payload: dict[str, Any] | None) -> str | None:
        if payload is not None:
            try:
                return json.dumps(
                    payload,
                    allow_nan=False,
                    separators=(",", ":"),
                    ensure_ascii=False,
                )
            except (TypeError, ValueError) as enc_exc:
                raise ArangoSerializationException(
                    text=f"Could not encode request payload: {enc_exc}",
                    raw_response=None,
                    field="payload",
                ) from enc_exc
        else:
            return None

    def _prepare_request(
        self,
        *,
        http_method: str,
        payload: dict[str, Any] | None,
        additional_path: str | None,
        request_params: dict[str, Any],
        timeout_context: _TimeoutContext | None,
    ) -> tuple[str, bytes | None, _TimeoutContext]:
        request_url = self._compose_request_url(additional_path)
        _timeout_context = timeout_context or _TimeoutContext(request_ms=None)
        encoded_payload = self._encode_payload(payload)
        log_request(
            http_method=http_method,
            full_url=request_url,
            request_params=request_params,
            redacted_request_headers=self._loggable_headers,
            encoded_payload=encoded_payload,
            timeout_context=_timeout_context,
        )
        body = encoded_payload.encode() if encoded_payload is not None else None
        return request_url, body, _timeout_context

    def raw_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> RawResponse:
        if self.transport is None:
            raise ValueError(f"{self} has no blocking transport to use.")
        request_url, body, _timeout_context = self._prepare_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            timeout_context=timeout_context,
        )
        raw_response = self.transport.execute(
            method=http_method,
            url=request_url,
            headers=self.full_headers,
            body=body,
            params=request_params,
            timeout_context=_timeout_context,
        )
        log_response(response=raw_response)
        return raw_response

    async def async_raw_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> RawResponse:
        if self.async_transport is None:
            raise ValueError(f"{self} has no async transport to use.")
        request_url, body, _timeout_context = self._prepare_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            timeout_context=timeout_context,
        )
        raw_response = await self.async_transport.execute(
            method=http_method,
            url=request_url,
            headers=self.full_headers,
            body=body,
            params=request_params,
            timeout_context=_timeout_context,
        )
        log_response(response=raw_response)
        return raw_response

    def request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> dict[str, Any]:
        raw_response = self.raw_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            timeout_context=timeout_context,
        )
        return decode_envelope(
            raw_response,
            request_description=(
                f"{http_method} {self._compose_request_url(additional_path)}"
            ),
        )

    async def async_request(
        self,
        *,
        http_method: str = HttpMethod.POST,
        payload: dict[str, Any] | None = None,
        additional_path: str | None = None,
        request_params: dict[str, Any] = {},
        timeout_context: _TimeoutContext | None = None,
    ) -> dict[str, Any]:
        raw_response = await self.async_raw_request(
            http_method=http_method,
            payload=payload,
            additional_path=additional_path,
            request_params=request_params,
            timeout_context=timeout_context,
        )
        return decode_envelope(
            raw_response,
            request_description=(
                f"{http_method} {self._compose_request_url(additional_path)}"
            ),
        )
