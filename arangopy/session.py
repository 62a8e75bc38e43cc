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
from types import TracebackType
from typing import Any
from urllib.parse import quote

from arangopy.authentication import AuthProvider, JWTAuth
from arangopy.database import AsyncDatabase, Database
from arangopy.exceptions import (
    ArangoSerializationException,
    _select_singlereq_timeout,
    _TimeoutContext,
)
from arangopy.info import ServerVersion
from arangopy.settings.defaults import (
    API_DATABASE_PATH,
    API_DATABASE_USER_PATH,
    API_VERSION_PATH,
    DATABASE_PATH_TEMPLATE,
    DEFAULT_AUTH_HEADER,
    JWT_LOGIN_PATH,
)
from arangopy.transport import AsyncTransport, Transport
from arangopy.utils.api_commander import APICommander
from arangopy.utils.api_options import FullAPIOptions
from arangopy.utils.envelope import extract_field
from arangopy.utils.request_tools import HttpMethod

logger = logging.getLogger(__name__)


def _build_commander(
    *,
    api_endpoint: str,
    api_options: FullAPIOptions,
    auth: AuthProvider,
    transport: Transport | None = None,
    async_transport: AsyncTransport | None = None,
) -> APICommander:
    # the auth header is computed here once and for all
    commander_headers: dict[str, str | None] = {
        DEFAULT_AUTH_HEADER: auth.get_auth_header(),
        **api_options.database_additional_headers,
    }
    return APICommander(
        api_endpoint=api_endpoint,
        path="",
        headers=commander_headers,
        callers=api_options.callers,
        redacted_header_names=api_options.redacted_header_names,
        transport=transport,
        async_transport=async_transport,
    )


def _database_path(name: str) -> str:
    return DATABASE_PATH_TEMPLATE.format(database=quote(name, safe=""))


def _parse_jwt_response(response: dict[str, Any]) -> str:
    jwt = extract_field(response, "jwt", str)
    if not jwt:
        raise ArangoSerializationException(
            text="Empty token from the authentication endpoint.",
            raw_response={k: v for k, v in response.items() if k != "jwt"},
            field="jwt",
        )
    return jwt


def _parse_name_list(response: dict[str, Any]) -> list[str]:
    names = extract_field(response, "result", list)
    if not all(isinstance(name, str) for name in names):
        raise ArangoSerializationException(
            text="Unexpected non-string database name in response.",
            raw_response=response,
            field="result",
        )
    return names


def _jwt_login(
    *,
    api_endpoint: str,
    api_options: FullAPIOptions,
    jwt_auth: JWTAuth,
    transport: Transport,
    timeout_context: _TimeoutContext,
) -> AuthProvider:
    login_commander = _build_commander(
        api_endpoint=api_endpoint,
        api_options=api_options,
        auth=jwt_auth,
        transport=transport,
    )
    logger.info(f"obtaining JWT for '{jwt_auth.username}'")
    login_response = login_commander.request(
        http_method=HttpMethod.POST,
        additional_path=JWT_LOGIN_PATH,
        payload=jwt_auth.login_payload(),
        timeout_context=timeout_context,
    )
    logger.info(f"finished obtaining JWT for '{jwt_auth.username}'")
    return jwt_auth.exchange(_parse_jwt_response(login_response))


async def _async_jwt_login(
    *,
    api_endpoint: str,
    api_options: FullAPIOptions,
    jwt_auth: JWTAuth,
    async_transport: AsyncTransport,
    timeout_context: _TimeoutContext,
) -> AuthProvider:
    login_commander = _build_commander(
        api_endpoint=api_endpoint,
        api_options=api_options,
        auth=jwt_auth,
        async_transport=async_transport,
    )
    logger.info(f"obtaining JWT for '{jwt_auth.username}', async")
    login_response = await login_commander.async_request(
        http_method=HttpMethod.POST,
        additional_path=JWT_LOGIN_PATH,
        payload=jwt_auth.login_payload(),
        timeout_context=timeout_context,
    )
    logger.info(f"finished obtaining JWT for '{jwt_auth.username}', async")
    return jwt_auth.exchange(_parse_jwt_response(login_response))


class Session:
    """
    An established, authenticated connection to a server, with a synchronous
    interface. A Session owns its transport: closing the session (or leaving
    its `with` block) closes the transport, if it was created by arangopy.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking the `connect` method of an ArangoClient.
    Sessions are independent from each other: any number of them can coexist.

    The `Authorization` header is computed when the session is established
    and never changes afterwards. In particular, expired tokens are not
    renewed: such failures surface as ArangoResponseException with code 401,
    and a new session should be created.

    Args:
        api_endpoint: the full URL to the server, e.g. "http://localhost:8529".
        auth: the provider of the authentication header for all requests.
        api_options: the complete set of API Options in effect.
        transport: the blocking transport to use.
        owns_transport: whether closing the session closes the transport.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        auth: AuthProvider,
        api_options: FullAPIOptions,
        transport: Transport,
        owns_transport: bool = True,
    ) -> None:
        self.api_endpoint = api_endpoint.rstrip("/")
        self.api_options = api_options
        self.auth = auth
        self._transport = transport
        self._owns_transport = owns_transport
        self._api_commander = _build_commander(
            api_endpoint=self.api_endpoint,
            api_options=self.api_options,
            auth=self.auth,
            transport=self._transport,
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(api_endpoint="{self.api_endpoint}", '
            f"auth={self.auth}, transport={self._transport})"
        )

    def __enter__(self) -> Session:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()

    def _get_database_commander(self, name: str) -> APICommander:
        return self._api_commander._copy(path=_database_path(name))

    def _single_request_timeout(
        self, request_timeout_ms: int | None, timeout_ms: int | None
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    def close(self) -> None:
        """Close the session, and its transport if owned by it."""
        if self._owns_transport:
            self._transport.close()

    def database(self, name: str | None = None) -> Database:
        """
        Get a Database object for the given database name. This makes no
        request: whether the database exists is only verified when it is
        first used.

        Args:
            name: the database name. If omitted, the `default_database` of the
                API options (normally "_system") is used.

        Returns:
            a Database instance sharing this session's transport and auth.
        """

        _name = name if name is not None else self.api_options.default_database
        return Database(session=self, name=_name)

    def request(
        self,
        http_method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        request_params: dict[str, Any] = {},
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Issue an arbitrary request to the server, with this session's
        headers, and decode the response envelope.

        Args:
            http_method: the HTTP verb, e.g. "GET".
            path: the path relative to the server URL, for instance
                "_db/mydb/_api/collection" or "_api/version".
            payload: a JSON-serializable dictionary for the request body.
            request_params: query-string parameters.
            request_timeout_ms: a timeout, in milliseconds, for the request.
                If not provided, this session's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            the decoded response body.

        Raises:
            ArangoResponseException: the server returned an error envelope.
            ArangoTransportException: the request could not be completed.
            ArangoSerializationException: the response is not a JSON object.

        Example:
            >>> session.request("GET", "_db/_system/_api/collection/users/count")
            {'error': False, 'code': 200, 'name': 'users', 'count': 5, ...}
        """

        _path_desc = path.lstrip("/")
        logger.info(f"request {http_method} {_path_desc}")
        response = self._api_commander.request(
            http_method=http_method,
            payload=payload,
            additional_path=_path_desc,
            request_params=request_params,
            timeout_context=self._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished request {http_method} {_path_desc}")
        return response

    def version(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> ServerVersion:
        """
        Get the server product name, version and license.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the request.
            timeout_ms: an alias for `request_timeout_ms`.
        """

        return ServerVersion._from_dict(
            self.request(
                HttpMethod.GET,
                API_VERSION_PATH,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            )
        )

    def list_databases(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """
        List the names of the databases the current user can access.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the request.
            timeout_ms: an alias for `request_timeout_ms`.
        """

        return _parse_name_list(
            self.request(
                HttpMethod.GET,
                API_DATABASE_USER_PATH,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            )
        )

    def list_all_databases(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """
        List the names of all databases on the server. This requires
        access to the `_system` database.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the request.
            timeout_ms: an alias for `request_timeout_ms`.
        """

        return _parse_name_list(
            self.request(
                HttpMethod.GET,
                f"{_database_path('_system')}/{API_DATABASE_PATH}",
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            )
        )


class AsyncSession:
    """
    An established, authenticated connection to a server, with an
    asynchronous interface. This is the async counterpart of Session:
    it is obtained with the `async_connect` method of an ArangoClient,
    and is closed with `await session.close()` or an `async with` block.

    Args:
        api_endpoint: the full URL to the server, e.g. "http://localhost:8529".
        auth: the provider of the authentication header for all requests.
        api_options: the complete set of API Options in effect.
        async_transport: the async transport to use.
        owns_transport: whether closing the session closes the transport.
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        auth: AuthProvider,
        api_options: FullAPIOptions,
        async_transport: AsyncTransport,
        owns_transport: bool = True,
    ) -> None:
        self.api_endpoint = api_endpoint.rstrip("/")
        self.api_options = api_options
        self.auth = auth
        self._async_transport = async_transport
        self._owns_transport = owns_transport
        self._api_commander = _build_commander(
            api_endpoint=self.api_endpoint,
            api_options=self.api_options,
            auth=self.auth,
            async_transport=self._async_transport,
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(api_endpoint="{self.api_endpoint}", '
            f"auth={self.auth}, transport={self._async_transport})"
        )

    async def __aenter__(self) -> AsyncSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.close()

    def _get_database_commander(self, name: str) -> APICommander:
        return self._api_commander._copy(path=_database_path(name))

    def _single_request_timeout(
        self, request_timeout_ms: int | None, timeout_ms: int | None
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_singlereq_timeout(
            timeout_options=self.api_options.timeout_options,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    async def close(self) -> None:
        """Close the session, and its transport if owned by it."""
        if self._owns_transport:
            await self._async_transport.aclose()

    def database(self, name: str | None = None) -> AsyncDatabase:
        """
        Get an AsyncDatabase object for the given database name, with no
        request made. See the same method of Session.
        """

        _name = name if name is not None else self.api_options.default_database
        return AsyncDatabase(session=self, name=_name)

    async def request(
        self,
        http_method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        request_params: dict[str, Any] = {},
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> dict[str, Any]:
        """
        Issue an arbitrary request to the server and decode the response
        envelope. See the same method of Session.
        """

        _path_desc = path.lstrip("/")
        logger.info(f"request {http_method} {_path_desc}, async")
        response = await self._api_commander.async_request(
            http_method=http_method,
            payload=payload,
            additional_path=_path_desc,
            request_params=request_params,
            timeout_context=self._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished request {http_method} {_path_desc}, async")
        return response

    async def version(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> ServerVersion:
        """Get the server product name, version and license."""

        return ServerVersion._from_dict(
            await self.request(
                HttpMethod.GET,
                API_VERSION_PATH,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            )
        )

    async def list_databases(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """List the names of the databases the current user can access."""

        return _parse_name_list(
            await self.request(
                HttpMethod.GET,
                API_DATABASE_USER_PATH,
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            )
        )

    async def list_all_databases(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[str]:
        """List the names of all databases on the server."""

        return _parse_name_list(
            await self.request(
                HttpMethod.GET,
                f"{_database_path('_system')}/{API_DATABASE_PATH}",
                request_timeout_ms=request_timeout_ms,
                timeout_ms=timeout_ms,
            )
        )
