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
from typing import Sequence

from arangopy.authentication import AuthProvider, AuthType, JWTAuth
from arangopy.constants import CallerType
from arangopy.data.cursors.cursor import (
    GENERAL_METHOD_TIMEOUT_LABEL,
    REQUEST_TIMEOUT_LABEL,
)
from arangopy.exceptions import MultiCallTimeoutManager
from arangopy.info import ServerVersion
from arangopy.session import AsyncSession, Session, _async_jwt_login, _jwt_login
from arangopy.settings.defaults import API_VERSION_PATH
from arangopy.transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    Transport,
)
from arangopy.utils.api_options import APIOptions, FullAPIOptions, defaultAPIOptions
from arangopy.utils.request_tools import HttpMethod
from arangopy.utils.unset import _UNSET, UnsetType

logger = logging.getLogger(__name__)


class ArangoClient:
    """
    A client for an ArangoDB server. This is the entry point, sitting at the
    top of the conceptual "client -> session -> database -> collection"
    hierarchy. The client itself makes no requests and holds no connection:
    these belong to the sessions it creates with `connect` (blocking I/O) or
    `async_connect` (asyncio).

    Args:
        auth: the credentials to use. This can be an AuthProvider (such as
            BasicAuth, BearerTokenAuth or JWTAuth), a (username, password)
            pair for basic authentication, a bearer token string, or None
            for no authentication. It can also be passed (or overridden)
            later, when connecting.
        callers: a list of caller identities, i.e. applications, or frameworks,
            on behalf of which requests are performed. These end up in the
            request user-agent.
            Each caller identity is a ("caller_name", "caller_version") pair.
        api_options: a complete or partial set of API Options
            to override the system defaults. If this is passed alongside the
            named parameters (auth, callers), those will take precedence.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import JWTAuth
        >>> client = ArangoClient(auth=JWTAuth("root", "openSesame"))
        >>> with client.connect("http://localhost:8529") as session:
        ...     print(session.list_databases())
        ...
        ['_system', 'my_db']
    """

    def __init__(
        self,
        auth: AuthType | UnsetType = _UNSET,
        *,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
    ) -> None:
        arg_api_options = APIOptions(
            callers=callers,
            auth=auth,
        )
        self.api_options = (
            defaultAPIOptions()
            .with_override(api_options)
            .with_override(arg_api_options)
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(api_options={self.api_options})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ArangoClient):
            return self.api_options == other.api_options
        else:
            return False

    def _session_api_options(
        self,
        auth: AuthType | UnsetType,
        api_options: APIOptions | UnsetType,
    ) -> FullAPIOptions:
        return self.api_options.with_override(api_options).with_override(
            APIOptions(auth=auth)
        )

    @staticmethod
    def _connect_timeout_manager(
        api_options: FullAPIOptions,
    ) -> MultiCallTimeoutManager:
        return MultiCallTimeoutManager(
            overall_timeout_ms=api_options.timeout_options.general_method_timeout_ms,
            timeout_label=GENERAL_METHOD_TIMEOUT_LABEL,
        )

    def connect(
        self,
        api_endpoint: str,
        *,
        auth: AuthType | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
        transport: Transport | None = None,
    ) -> Session:
        """
        Establish a Session with blocking I/O to the server.

        If the credentials are a JWTAuth, a token is obtained first. Then, the
        server is probed with a version request: this verifies that it is
        reachable and that the credentials are accepted.

        Args:
            api_endpoint: the server URL, e.g. "http://localhost:8529".
            auth: credentials overriding those of the client, if any.
            api_options: API Options overriding those of the client, if any.
            transport: a Transport to use. If not provided, an HttpxTransport
                is created, and owned (i.e. closed on closing) by the session.
                A transport passed here is never closed by the session.

        Returns:
            a Session, to be closed after use (or used as a context manager).

        Raises:
            ArangoResponseException: the server rejected the request,
                typically for bad credentials (code 401).
            ArangoTransportException: the server could not be reached.
        """

        session_api_options = self._session_api_options(auth, api_options)
        request_timeout_ms = session_api_options.timeout_options.request_timeout_ms
        timeout_manager = self._connect_timeout_manager(session_api_options)
        owns_transport = transport is None
        _transport = transport if transport is not None else HttpxTransport()
        try:
            session_auth: AuthProvider = session_api_options.auth
            if isinstance(session_auth, JWTAuth):
                session_auth = _jwt_login(
                    api_endpoint=api_endpoint.rstrip("/"),
                    api_options=session_api_options,
                    jwt_auth=session_auth,
                    transport=_transport,
                    timeout_context=timeout_manager.remaining_timeout(
                        cap_time_ms=request_timeout_ms,
                        cap_timeout_label=REQUEST_TIMEOUT_LABEL,
                    ),
                )
            session = Session(
                api_endpoint=api_endpoint,
                auth=session_auth,
                api_options=session_api_options,
                transport=_transport,
                owns_transport=owns_transport,
            )
            logger.info(f"probing server at {session.api_endpoint}")
            version_response = session._api_commander.request(
                http_method=HttpMethod.GET,
                additional_path=API_VERSION_PATH,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=request_timeout_ms,
                    cap_timeout_label=REQUEST_TIMEOUT_LABEL,
                ),
            )
            server_version = ServerVersion._from_dict(version_response)
        except BaseException:
            if owns_transport:
                _transport.close()
            raise
        logger.info(
            f"connected to {session.api_endpoint}: "
            f"{server_version.server} {server_version.version}"
        )
        return session

    async def async_connect(
        self,
        api_endpoint: str,
        *,
        auth: AuthType | UnsetType = _UNSET,
        api_options: APIOptions | UnsetType = _UNSET,
        async_transport: AsyncTransport | None = None,
    ) -> AsyncSession:
        """
        Establish an AsyncSession, with asyncio I/O, to the server.
        This is the async counterpart of `connect` (see).

        Args:
            api_endpoint: the server URL, e.g. "http://localhost:8529".
            auth: credentials overriding those of the client, if any.
            api_options: API Options overriding those of the client, if any.
            async_transport: an AsyncTransport to use. If not provided, an
                AsyncHttpxTransport is created, and owned by the session.

        Returns:
            an AsyncSession, to be closed after use (or used as an
                async context manager).
        """

        session_api_options = self._session_api_options(auth, api_options)
        request_timeout_ms = session_api_options.timeout_options.request_timeout_ms
        timeout_manager = self._connect_timeout_manager(session_api_options)
        owns_transport = async_transport is None
        _async_transport = (
            async_transport if async_transport is not None else AsyncHttpxTransport()
        )
        try:
            session_auth: AuthProvider = session_api_options.auth
            if isinstance(session_auth, JWTAuth):
                session_auth = await _async_jwt_login(
                    api_endpoint=api_endpoint.rstrip("/"),
                    api_options=session_api_options,
                    jwt_auth=session_auth,
                    async_transport=_async_transport,
                    timeout_context=timeout_manager.remaining_timeout(
                        cap_time_ms=request_timeout_ms,
                        cap_timeout_label=REQUEST_TIMEOUT_LABEL,
                    ),
                )
            session = AsyncSession(
                api_endpoint=api_endpoint,
                auth=session_auth,
                api_options=session_api_options,
                async_transport=_async_transport,
                owns_transport=owns_transport,
            )
            logger.info(f"probing server at {session.api_endpoint}, async")
            version_response = await session._api_commander.async_request(
                http_method=HttpMethod.GET,
                additional_path=API_VERSION_PATH,
                timeout_context=timeout_manager.remaining_timeout(
                    cap_time_ms=request_timeout_ms,
                    cap_timeout_label=REQUEST_TIMEOUT_LABEL,
                ),
            )
            server_version = ServerVersion._from_dict(version_response)
        except BaseException:
            if owns_transport:
                await _async_transport.aclose()
            raise
        logger.info(
            f"connected to {session.api_endpoint}: "
            f"{server_version.server} {server_version.version}, async"
        )
        return session
