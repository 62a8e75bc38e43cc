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
from typing import TYPE_CHECKING, Any, Mapping, TypeVar

from arangopy.aql import AqlQuery
from arangopy.collection import AsyncCollection, Collection
from arangopy.cursors import AqlCursor, AsyncAqlCursor
from arangopy.data.cursors.cursor import (
    GENERAL_METHOD_TIMEOUT_LABEL,
    REQUEST_TIMEOUT_LABEL,
)
from arangopy.data.cursors.query_engine import _AqlQueryEngine
from arangopy.exceptions import MultiCallTimeoutManager, _TimeoutContext
from arangopy.info import CollectionInfo, DatabaseInfo
from arangopy.settings.defaults import API_COLLECTION_PATH, API_DATABASE_CURRENT_PATH
from arangopy.utils.api_options import FullAPIOptions, FullTimeoutOptions
from arangopy.utils.envelope import ItemMapper, extract_field
from arangopy.utils.request_tools import HttpMethod

if TYPE_CHECKING:
    from arangopy.session import AsyncSession, Session


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _select_general_method_timeout(
    timeout_options: FullTimeoutOptions,
    general_method_timeout_ms: int | None,
    timeout_ms: int | None,
) -> int:
    if timeout_ms is not None:
        return timeout_ms
    elif general_method_timeout_ms is not None:
        return general_method_timeout_ms
    else:
        return timeout_options.general_method_timeout_ms


def _parse_collection_list(
    response: dict[str, Any], exclude_system: bool
) -> list[CollectionInfo]:
    collection_infos = [
        CollectionInfo._from_dict(coll_dict)
        for coll_dict in extract_field(response, "result", list)
    ]
    if exclude_system:
        return [c_info for c_info in collection_infos if not c_info.is_system]
    else:
        return collection_infos


class Database:
    """
    A handle to a database on the server, with a synchronous interface.
    This is the entry point to run AQL queries.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking methods such as `database` of a Session.
    Creating it makes no request: whether the database exists is only
    verified when it is first used.

    Args:
        session: the Session this database belongs to. The database handle
            is a lightweight view on it, sharing its transport and headers.
        name: the database name.

    Example:
        >>> from arangopy import ArangoClient
        >>> session = ArangoClient(auth=("root", "openSesame")).connect(
        ...     "http://localhost:8529"
        ... )
        >>> database = session.database("my_db")
        >>> database.aql_str("RETURN 1 + 1")
        [2]
    """

    def __init__(
        self,
        *,
        session: Session,
        name: str,
    ) -> None:
        self._session = session
        self._name = name
        self._api_commander = session._get_database_commander(name)
        self._query_engine = _AqlQueryEngine(
            api_commander=self._api_commander,
            database_name=name,
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'api_endpoint="{self._session.api_endpoint}")'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Database):
            return all(
                [
                    self._session is other._session,
                    self.name == other.name,
                ]
            )
        else:
            return False

    def __getitem__(self, collection_name: str) -> Collection:
        return self.collection(collection_name)

    @property
    def name(self) -> str:
        """The name of this database."""

        return self._name

    @property
    def session(self) -> Session:
        """The Session this database handle belongs to."""

        return self._session

    @property
    def api_options(self) -> FullAPIOptions:
        return self._session.api_options

    def info(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DatabaseInfo:
        """
        Get information on this database as a DatabaseInfo object.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the request.
                If not provided, this object's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Raises:
            ArangoResponseException: e.g. if the database does not exist
                (errorNum 1228).
        """

        logger.info(f"getting info for database '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.GET,
            additional_path=API_DATABASE_CURRENT_PATH,
            timeout_context=self._session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished getting info for database '{self.name}'")
        return DatabaseInfo._from_dict(extract_field(response, "result", dict))

    def list_collections(
        self,
        *,
        exclude_system: bool = True,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[CollectionInfo]:
        """
        List the collections in this database.

        Args:
            exclude_system: whether to leave out the system collections,
                i.e. those whose name starts with an underscore.
            request_timeout_ms: a timeout, in milliseconds, for the request.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            a list of CollectionInfo objects.
        """

        logger.info(f"listing collections in '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.GET,
            additional_path=API_COLLECTION_PATH,
            request_params={"excludeSystem": "true" if exclude_system else "false"},
            timeout_context=self._session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished listing collections in '{self.name}'")
        return _parse_collection_list(response, exclude_system)

    def collection(self, name: str) -> Collection:
        """
        Get a Collection handle for a collection in this database.
        No request is made.
        """

        return Collection(database=self, name=name)

    def aql_cursor(
        self,
        query: AqlQuery,
        *,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AqlCursor[T]:
        """
        Submit an AQL query and return a cursor over its results.

        The submission request is made right away: errors in the query
        (syntax, missing bind variables, unknown collections, ...) are raised
        by this method. The returned cursor holds the first batch.

        Args:
            query: the AqlQuery to run.
            mapper: how to convert the raw result items: a dataclass type,
                a callable, or None (the default) to get the raw JSON values.
            request_timeout_ms: a timeout, in milliseconds, for each request
                (the submission and every batch fetch by the cursor).
                If not provided, this object's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            an AqlCursor, to be consumed and closed (or used as a
                context manager).
        """

        timeout_context = self._session._single_request_timeout(
            request_timeout_ms, timeout_ms
        )
        initial_batch = self._query_engine._submit(
            query, timeout_context=timeout_context
        )
        return AqlCursor(
            query_engine=self._query_engine,
            initial_batch=initial_batch,
            mapper=mapper,
            request_timeout_ms=timeout_context.request_ms,
            general_method_timeout_ms=(
                self.api_options.timeout_options.general_method_timeout_ms
            ),
        )

    def aql_query(
        self,
        query: AqlQuery,
        *,
        mapper: ItemMapper[T] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Run an AQL query and return all of its results as a list, fetching
        all batches and releasing the cursor.

        Args:
            query: the AqlQuery to run.
            mapper: how to convert the raw result items. See `aql_cursor`.
            general_method_timeout_ms: a timeout, in milliseconds, for the
                whole method (submission and all batch fetches).
                If not provided, this object's defaults apply.
            request_timeout_ms: a timeout, in milliseconds, for each request.
                If not provided, this object's defaults apply.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            the list of results, in the order returned by the server.

        Example:
            >>> database.aql_query(
            ...     AqlQuery("FOR i IN 1..@n RETURN i * i").bind_var("n", 4)
            ... )
            [1, 4, 9, 16]
        """

        _request_ms = (
            request_timeout_ms
            if request_timeout_ms is not None
            else self.api_options.timeout_options.request_timeout_ms
        )
        timeout_manager = MultiCallTimeoutManager(
            overall_timeout_ms=_select_general_method_timeout(
                self.api_options.timeout_options,
                general_method_timeout_ms,
                timeout_ms,
            ),
            timeout_label=GENERAL_METHOD_TIMEOUT_LABEL,
        )
        initial_batch = self._query_engine._submit(
            query,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=_request_ms,
                cap_timeout_label=REQUEST_TIMEOUT_LABEL,
            ),
        )
        cursor: AqlCursor[T] = AqlCursor(
            query_engine=self._query_engine,
            initial_batch=initial_batch,
            mapper=mapper,
            request_timeout_ms=_request_ms,
        )
        with cursor:
            remaining: _TimeoutContext = timeout_manager.remaining_timeout()
            return cursor.to_list(general_method_timeout_ms=remaining.request_ms or 0)

    def aql_str(
        self,
        query: str,
        *,
        mapper: ItemMapper[T] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Run an AQL query given as plain text, with no bind variables, and
        return all of its results as a list. See `aql_query`.
        """

        return self.aql_query(
            AqlQuery(query),
            mapper=mapper,
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )

    def aql_bind_vars(
        self,
        query: str,
        bind_vars: Mapping[str, Any],
        *,
        mapper: ItemMapper[T] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Run an AQL query given as text, with bind variables, and return all
        of its results as a list. See `aql_query`.

        Example:
            >>> database.aql_bind_vars(
            ...     "FOR u IN @@coll FILTER u.age > @age RETURN u.name",
            ...     {"@coll": "users", "age": 30},
            ... )
            ['Ann', 'Cy']
        """

        return self.aql_query(
            AqlQuery(query, bind_vars=bind_vars),
            mapper=mapper,
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )


class AsyncDatabase:
    """
    A handle to a database on the server, with an asynchronous interface.
    This is the async counterpart of Database, obtained from an AsyncSession:
    see Database for more details and usage patterns.

    Args:
        session: the AsyncSession this database belongs to.
        name: the database name.
    """

    def __init__(
        self,
        *,
        session: AsyncSession,
        name: str,
    ) -> None:
        self._session = session
        self._name = name
        self._api_commander = session._get_database_commander(name)
        self._query_engine = _AqlQueryEngine(
            api_commander=self._api_commander,
            database_name=name,
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'api_endpoint="{self._session.api_endpoint}")'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncDatabase):
            return all(
                [
                    self._session is other._session,
                    self.name == other.name,
                ]
            )
        else:
            return False

    def __getitem__(self, collection_name: str) -> AsyncCollection:
        return self.collection(collection_name)

    @property
    def name(self) -> str:
        """The name of this database."""

        return self._name

    @property
    def session(self) -> AsyncSession:
        """The AsyncSession this database handle belongs to."""

        return self._session

    @property
    def api_options(self) -> FullAPIOptions:
        return self._session.api_options

    async def info(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DatabaseInfo:
        """Get information on this database. See Database.info."""

        logger.info(f"getting info for database '{self.name}', async")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=API_DATABASE_CURRENT_PATH,
            timeout_context=self._session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished getting info for database '{self.name}', async")
        return DatabaseInfo._from_dict(extract_field(response, "result", dict))

    async def list_collections(
        self,
        *,
        exclude_system: bool = True,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[CollectionInfo]:
        """List the collections in this database. See Database.list_collections."""

        logger.info(f"listing collections in '{self.name}', async")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=API_COLLECTION_PATH,
            request_params={"excludeSystem": "true" if exclude_system else "false"},
            timeout_context=self._session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished listing collections in '{self.name}', async")
        return _parse_collection_list(response, exclude_system)

    def collection(self, name: str) -> AsyncCollection:
        """
        Get an AsyncCollection handle for a collection in this database.
        No request is made.
        """

        return AsyncCollection(database=self, name=name)

    async def aql_cursor(
        self,
        query: AqlQuery,
        *,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncAqlCursor[T]:
        """
        Submit an AQL query and return an async cursor over its results.
        See Database.aql_cursor.
        """

        timeout_context = self._session._single_request_timeout(
            request_timeout_ms, timeout_ms
        )
        initial_batch = await self._query_engine._async_submit(
            query, timeout_context=timeout_context
        )
        return AsyncAqlCursor(
            query_engine=self._query_engine,
            initial_batch=initial_batch,
            mapper=mapper,
            request_timeout_ms=timeout_context.request_ms,
            general_method_timeout_ms=(
                self.api_options.timeout_options.general_method_timeout_ms
            ),
        )

    async def aql_query(
        self,
        query: AqlQuery,
        *,
        mapper: ItemMapper[T] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Run an AQL query and return all of its results as a list.
        See Database.aql_query.
        """

        _request_ms = (
            request_timeout_ms
            if request_timeout_ms is not None
            else self.api_options.timeout_options.request_timeout_ms
        )
        timeout_manager = MultiCallTimeoutManager(
            overall_timeout_ms=_select_general_method_timeout(
                self.api_options.timeout_options,
                general_method_timeout_ms,
                timeout_ms,
            ),
            timeout_label=GENERAL_METHOD_TIMEOUT_LABEL,
        )
        initial_batch = await self._query_engine._async_submit(
            query,
            timeout_context=timeout_manager.remaining_timeout(
                cap_time_ms=_request_ms,
                cap_timeout_label=REQUEST_TIMEOUT_LABEL,
            ),
        )
        cursor: AsyncAqlCursor[T] = AsyncAqlCursor(
            query_engine=self._query_engine,
            initial_batch=initial_batch,
            mapper=mapper,
            request_timeout_ms=_request_ms,
        )
        async with cursor:
            remaining: _TimeoutContext = timeout_manager.remaining_timeout()
            return await cursor.to_list(
                general_method_timeout_ms=remaining.request_ms or 0
            )

    async def aql_str(
        self,
        query: str,
        *,
        mapper: ItemMapper[T] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """Run an AQL query given as plain text. See Database.aql_str."""

        return await self.aql_query(
            AqlQuery(query),
            mapper=mapper,
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )

    async def aql_bind_vars(
        self,
        query: str,
        bind_vars: Mapping[str, Any],
        *,
        mapper: ItemMapper[T] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """Run an AQL query with bind variables. See Database.aql_bind_vars."""

        return await self.aql_query(
            AqlQuery(query, bind_vars=bind_vars),
            mapper=mapper,
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
