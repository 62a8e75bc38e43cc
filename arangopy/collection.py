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
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

from arangopy.aql import AqlQuery
from arangopy.info import CollectionInfo
from arangopy.settings.defaults import API_COLLECTION_PATH
from arangopy.utils.envelope import ItemMapper, extract_field
from arangopy.utils.request_tools import HttpMethod

if TYPE_CHECKING:
    from arangopy.cursors import AqlCursor, AsyncAqlCursor
    from arangopy.database import AsyncDatabase, Database


logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_DOCUMENTS_QUERY = "FOR d IN @@collection RETURN d"


def _collection_path(name: str) -> str:
    return f"{API_COLLECTION_PATH}/{quote(name, safe='')}"


def _all_documents_query(name: str, batch_size: int | None) -> AqlQuery:
    query = AqlQuery(ALL_DOCUMENTS_QUERY).bind_var("@collection", name)
    if batch_size is not None:
        return query.with_batch_size(batch_size)
    else:
        return query


class Collection:
    """
    A handle to a collection in a database, with a synchronous interface.

    This class is not meant for direct instantiation by the user, rather
    it is obtained by invoking the `collection` method of a Database. No
    request is made on creation: the existence of the collection is only
    verified when it is first used.

    Args:
        database: the Database this collection belongs to.
        name: the collection name.

    Example:
        >>> users = database.collection("users")
        >>> users.count()
        5
    """

    def __init__(self, *, database: Database, name: str) -> None:
        self._database = database
        self._name = name

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'database="{self._database.name}")'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Collection):
            return all(
                [
                    self._database == other._database,
                    self.name == other.name,
                ]
            )
        else:
            return False

    @property
    def name(self) -> str:
        """The name of this collection."""

        return self._name

    @property
    def database(self) -> Database:
        """The Database this collection belongs to."""

        return self._database

    def info(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInfo:
        """
        Get information on this collection as a CollectionInfo object.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the request.
                If not provided, this object's defaults apply.
            timeout_ms: an alias for `request_timeout_ms`.

        Raises:
            ArangoResponseException: e.g. if the collection does not exist
                (code 404, errorNum 1203).
        """

        logger.info(f"getting info for collection '{self.name}'")
        response = self._database._api_commander.request(
            http_method=HttpMethod.GET,
            additional_path=_collection_path(self.name),
            timeout_context=self._database.session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished getting info for collection '{self.name}'")
        return CollectionInfo._from_dict(response)

    def count(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> int:
        """
        Count the documents in this collection.

        Args:
            request_timeout_ms: a timeout, in milliseconds, for the request.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            the number of documents.
        """

        logger.info(f"counting documents in '{self.name}'")
        response = self._database._api_commander.request(
            http_method=HttpMethod.GET,
            additional_path=f"{_collection_path(self.name)}/count",
            timeout_context=self._database.session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished counting documents in '{self.name}'")
        count: int = extract_field(response, "count", int)
        return count

    def all(
        self,
        *,
        batch_size: int | None = None,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AqlCursor[T]:
        """
        Get a cursor over all documents of the collection.

        Args:
            batch_size: the number of documents per batch. If not provided,
                the server default applies.
            mapper: how to convert the documents. See `Database.aql_cursor`.
            request_timeout_ms: a timeout, in milliseconds, for each request.
            timeout_ms: an alias for `request_timeout_ms`.

        Returns:
            an AqlCursor over the documents.
        """

        return self._database.aql_cursor(
            _all_documents_query(self.name, batch_size),
            mapper=mapper,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )


class AsyncCollection:
    """
    A handle to a collection in a database, with an asynchronous interface.
    This is the async counterpart of Collection, obtained from an
    AsyncDatabase: see Collection for more details.

    Args:
        database: the AsyncDatabase this collection belongs to.
        name: the collection name.
    """

    def __init__(self, *, database: AsyncDatabase, name: str) -> None:
        self._database = database
        self._name = name

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'database="{self._database.name}")'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncCollection):
            return all(
                [
                    self._database == other._database,
                    self.name == other.name,
                ]
            )
        else:
            return False

    @property
    def name(self) -> str:
        """The name of this collection."""

        return self._name

    @property
    def database(self) -> AsyncDatabase:
        """The AsyncDatabase this collection belongs to."""

        return self._database

    async def info(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInfo:
        """Get information on this collection. See Collection.info."""

        logger.info(f"getting info for collection '{self.name}', async")
        response = await self._database._api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=_collection_path(self.name),
            timeout_context=self._database.session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished getting info for collection '{self.name}', async")
        return CollectionInfo._from_dict(response)

    async def count(
        self,
        *,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> int:
        """Count the documents in this collection. See Collection.count."""

        logger.info(f"counting documents in '{self.name}', async")
        response = await self._database._api_commander.async_request(
            http_method=HttpMethod.GET,
            additional_path=f"{_collection_path(self.name)}/count",
            timeout_context=self._database.session._single_request_timeout(
                request_timeout_ms, timeout_ms
            ),
        )
        logger.info(f"finished counting documents in '{self.name}', async")
        count: int = extract_field(response, "count", int)
        return count

    async def all(
        self,
        *,
        batch_size: int | None = None,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncAqlCursor[T]:
        """Get an async cursor over all documents. See Collection.all."""

        return await self._database.aql_cursor(
            _all_documents_query(self.name, batch_size),
            mapper=mapper,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
