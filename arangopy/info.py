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

from dataclasses import dataclass, field
from typing import Any

from arangopy.exceptions import ArangoSerializationException


def _require(raw_dict: dict[str, Any], key: str, what: str) -> Any:
    if key not in raw_dict:
        raise ArangoSerializationException(
            text=f"Cannot parse {what}: missing '{key}'.",
            raw_response=raw_dict,
            field=key,
        )
    return raw_dict[key]


@dataclass
class QueryStats:
    """
    The execution statistics of a query, as found in the `extra` of a
    cursor response. Values are cumulative over the batches fetched so far
    for streaming queries, and final otherwise.

    Attributes:
        writes_executed: number of successful data-modification operations.
        writes_ignored: number of failed data-modification operations that
            were ignored because of the `ignoreErrors` query option.
        scanned_full: documents iterated over in collection scans.
        scanned_index: documents iterated over through indexes.
        filtered: documents removed by FILTER conditions.
        full_count: matches that the query would have returned without its
            top-level LIMIT (only if the `full_count` option was requested).
        http_requests: cluster-internal requests made for the query.
        execution_time: query execution time in seconds.
        peak_memory_usage: peak memory usage of the query in bytes.
        raw_stats: the statistics object as returned by the server.
    """

    writes_executed: int = 0
    writes_ignored: int = 0
    scanned_full: int = 0
    scanned_index: int = 0
    filtered: int = 0
    full_count: int | None = None
    http_requests: int = 0
    execution_time: float | None = None
    peak_memory_usage: int | None = None
    raw_stats: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def _from_dict(raw_dict: dict[str, Any] | None) -> QueryStats | None:
        """
        Create an instance of QueryStats from the `stats` dictionary
        found in a cursor response.
        """

        if raw_dict is not None:
            return QueryStats(
                writes_executed=raw_dict.get("writesExecuted", 0),
                writes_ignored=raw_dict.get("writesIgnored", 0),
                scanned_full=raw_dict.get("scannedFull", 0),
                scanned_index=raw_dict.get("scannedIndex", 0),
                filtered=raw_dict.get("filtered", 0),
                full_count=raw_dict.get("fullCount"),
                http_requests=raw_dict.get("httpRequests", 0),
                execution_time=raw_dict.get("executionTime"),
                peak_memory_usage=raw_dict.get("peakMemoryUsage"),
                raw_stats=raw_dict,
            )
        else:
            return None


@dataclass
class QueryExtra:
    """
    The `extra` metadata attached to a cursor response.

    Attributes:
        stats: the query statistics, if provided.
        warnings: a list of the warnings raised by the query, each a
            dictionary with `code` and `message`.
        profile: profiling information, if requested with the `profile`
            query option.
    """

    stats: QueryStats | None = None
    warnings: list[dict[str, Any]] = field(default_factory=list)
    profile: dict[str, Any] | None = None

    @staticmethod
    def _from_dict(raw_dict: dict[str, Any] | None) -> QueryExtra | None:
        if raw_dict is not None:
            return QueryExtra(
                stats=QueryStats._from_dict(raw_dict.get("stats")),
                warnings=list(raw_dict.get("warnings") or []),
                profile=raw_dict.get("profile"),
            )
        else:
            return None


@dataclass
class ServerVersion:
    """
    Information on the server, as returned by the version endpoint.

    Attributes:
        server: the server product name, e.g. "arango".
        version: the server version string, e.g. "3.11.4".
        license: the license type, e.g. "community" or "enterprise".
    """

    server: str
    version: str
    license: str | None = None

    @staticmethod
    def _from_dict(raw_dict: dict[str, Any]) -> ServerVersion:
        return ServerVersion(
            server=_require(raw_dict, "server", "server version"),
            version=_require(raw_dict, "version", "server version"),
            license=raw_dict.get("license"),
        )


@dataclass
class DatabaseInfo:
    """
    A class representing the information on a database, as returned by
    the server for the current database.

    Attributes:
        name: the database name.
        id: the server-internal database id.
        path: the database storage path (may be "none" on some deployments).
        is_system: whether this is the `_system` database.
        raw_info: the full response from the server.
    """

    name: str
    id: str
    path: str | None
    is_system: bool
    raw_info: dict[str, Any] | None = field(default=None, repr=False)

    @staticmethod
    def _from_dict(raw_dict: dict[str, Any]) -> DatabaseInfo:
        return DatabaseInfo(
            name=_require(raw_dict, "name", "database info"),
            id=_require(raw_dict, "id", "database info"),
            path=raw_dict.get("path"),
            is_system=bool(raw_dict.get("isSystem", False)),
            raw_info=raw_dict,
        )


class CollectionType:
    """The `type` codes of collections."""

    DOCUMENT = 2
    EDGE = 3


@dataclass
class CollectionInfo:
    """
    A class representing the information on a collection.

    Attributes:
        name: the collection name.
        id: the server-internal collection id.
        type: 2 for document collections, 3 for edge collections
            (see `CollectionType`).
        status: the collection status code, if provided.
        is_system: whether this is a system collection (name starting with "_").
        globally_unique_id: the cluster-wide unique id, if provided.
        raw_info: the entry as returned by the server.
    """

    name: str
    id: str
    type: int
    status: int | None = None
    is_system: bool = False
    globally_unique_id: str | None = None
    raw_info: dict[str, Any] | None = field(default=None, repr=False)

    @staticmethod
    def _from_dict(raw_dict: dict[str, Any]) -> CollectionInfo:
        return CollectionInfo(
            name=_require(raw_dict, "name", "collection info"),
            id=_require(raw_dict, "id", "collection info"),
            type=_require(raw_dict, "type", "collection info"),
            status=raw_dict.get("status"),
            is_system=bool(raw_dict.get("isSystem", False)),
            globally_unique_id=raw_dict.get("globallyUniqueId"),
            raw_info=raw_dict,
        )


__all__ = [
    "CollectionInfo",
    "CollectionType",
    "DatabaseInfo",
    "QueryExtra",
    "QueryStats",
    "ServerVersion",
]
