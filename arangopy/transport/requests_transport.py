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

import requests
from typing_extensions import override

from arangopy.exceptions import (
    ArangoTransportException,
    _TimeoutContext,
    to_timeout_exception,
)
from arangopy.transport.base import RawResponse, Transport
from arangopy.utils.request_tools import timeout_seconds

logger = logging.getLogger(__name__)


class RequestsTransport(Transport):
    """
    A blocking transport backed by a `requests.Session`.

    Args:
        session: a requests.Session to use. If not provided, one is created
            and owned by the transport (i.e. closed when it is closed).
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

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
        raw_payload = body.decode() if body is not None else None
        try:
            response = self.session.request(
                method=method,
                url=url,
                data=body,
                params=dict(params) if params else None,
                headers=dict(headers),
                timeout=timeout_seconds(timeout_context),
            )
        except requests.exceptions.Timeout as timeout_exc:
            if isinstance(timeout_exc, requests.exceptions.ConnectTimeout):
                timeout_type = "connect"
            elif isinstance(timeout_exc, requests.exceptions.ReadTimeout):
                timeout_type = "read"
            else:
                timeout_type = "generic"
            raise to_timeout_exception(
                str(timeout_exc),
                timeout_type=timeout_type,
                endpoint=url,
                raw_payload=raw_payload,
                timeout_context=timeout_context,
            ) from timeout_exc
        except requests.exceptions.RequestException as request_exc:
            error_desc = str(request_exc) or request_exc.__class__.__name__
            raise ArangoTransportException(
                text=f"Could not complete request to {url}: {error_desc}",
                endpoint=url,
                raw_payload=raw_payload,
            ) from request_exc
        return RawResponse.from_parts(
            response.status_code, response.headers, response.content
        )

    @override
    def close(self) -> None:
        if self._owns_session:
            self.session.close()
