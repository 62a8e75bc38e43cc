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
import warnings
from abc import ABC
from enum import Enum
from typing import Any, Generic, TypeVar

from arangopy.data.cursors.pagination import CursorBatch
from arangopy.data.cursors.query_engine import _AqlQueryEngine
from arangopy.exceptions import (
    CursorException,
    MultiCallTimeoutManager,
    _TimeoutContext,
)
from arangopy.info import QueryExtra
from arangopy.utils.envelope import ItemMapper, convert_items

# A cursor reads raw JSON items from the server and converts them to T.
T = TypeVar("T")


logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_LABEL = "request_timeout_ms"
GENERAL_METHOD_TIMEOUT_LABEL = "general_method_timeout_ms"


class CursorState(Enum):
    """
    This enum expresses the possible states for a cursor.

    Values:
        OPEN: the server holds further batches for this cursor (and resources
            for it, to be released if the cursor is abandoned).
        EXHAUSTED: the server has no more batches; items still buffered on the
            client, if any, can be read. No server resources are held.
        CLOSED: finished, or forcibly stopped. No more items are returned.
    """

    # Further batches exist server-side, under a valid cursor id
    OPEN = "open"
    # All batches have been received, nothing to release
    EXHAUSTED = "exhausted"
    # Finished/released. Won't return more items
    CLOSED = "closed"


class AbstractAqlCursor(ABC, Generic[T]):
    """
    The machinery shared by the blocking and the async AQL cursors: the state
    machine, the client-side buffer and the ingestion of server batches.
    Subclasses only add the (blocking or awaitable) calls performing I/O.

    A cursor is created from the response to the query submission, hence it
    starts either OPEN (the server allocated a cursor and holds more batches)
    or EXHAUSTED (the whole result fit in the first batch). The items of that
    first batch are already in the buffer.

    This class is not meant to be directly instantiated by the user.
    """

    _query_engine: _AqlQueryEngine
    _state: CursorState
    _buffer: list[Any]
    _cursor_id: str | None
    _has_more: bool
    _count: int | None
    _extra: dict[str, Any] | None
    _cached: bool | None
    _batches_retrieved: int
    _consumed: int
    _mapper: ItemMapper[T] | None
    _request_timeout_ms: int | None
    _general_method_timeout_ms: int | None

    def __init__(
        self,
        *,
        query_engine: _AqlQueryEngine,
        initial_batch: CursorBatch,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        general_method_timeout_ms: int | None = None,
    ) -> None:
        self._query_engine = query_engine
        self._mapper = mapper
        self._request_timeout_ms = request_timeout_ms
        self._general_method_timeout_ms = general_method_timeout_ms
        self._state = CursorState.EXHAUSTED
        self._buffer = []
        self._cursor_id = None
        self._has_more = False
        self._count = None
        self._extra = None
        self._cached = None
        self._batches_retrieved = 0
        self._consumed = 0
        self._ingest_batch(initial_batch)

    def __repr__(self) -> str:
        _id_desc = f'"{self._cursor_id}"' if self._cursor_id else "no id"
        return (
            f"{self.__class__.__name__}({_id_desc}, "
            f"{self._state.value}, "
            f"consumed so far: {self.consumed})"
        )

    def __del__(self) -> None:
        # the attribute may be missing if __init__ failed
        if getattr(self, "_state", None) == CursorState.OPEN:
            msg = (
                f"Cursor {self._cursor_id} was garbage-collected while still "
                "open: its server-side resources are retained until the cursor "
                "ttl expires. Use the cursor as a context manager, or close it."
            )
            logger.warning(msg)
            warnings.warn(msg, ResourceWarning, stacklevel=2)

    def _ingest_batch(self, batch: CursorBatch) -> None:
        """Store a batch from the server and advance the state accordingly."""
        self._buffer = self._buffer + batch.results
        self._batches_retrieved += 1
        if batch.cursor_id is not None:
            self._cursor_id = batch.cursor_id
        if batch.count is not None:
            self._count = batch.count
        if batch.extra is not None:
            self._extra = batch.extra
            for warning in batch.extra.get("warnings") or []:
                logger.warning(
                    f"Query on '{self._query_engine.database_name}' "
                    f"returned a warning: {warning}"
                )
        if batch.cached is not None:
            self._cached = batch.cached
        self._has_more = batch.has_more
        # a cursor closed while a fetch was in flight stays closed
        if self._state != CursorState.CLOSED:
            self._state = CursorState.OPEN if batch.has_more else CursorState.EXHAUSTED

    def _ensure_alive(self) -> None:
        if self._state == CursorState.CLOSED:
            raise CursorException(
                text="Cursor is closed.",
                cursor_state=self._state.value,
            )

    def _request_timeout_context(
        self, timeout_manager: MultiCallTimeoutManager | None
    ) -> _TimeoutContext:
        if timeout_manager is None:
            return _TimeoutContext(
                request_ms=self._request_timeout_ms,
                label=REQUEST_TIMEOUT_LABEL,
            )
        else:
            return timeout_manager.remaining_timeout(
                cap_time_ms=self._request_timeout_ms,
                cap_timeout_label=REQUEST_TIMEOUT_LABEL,
            )

    def _method_timeout_manager(
        self,
        general_method_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> MultiCallTimeoutManager:
        _overall_ms: int | None
        if timeout_ms is not None:
            _overall_ms = timeout_ms
        elif general_method_timeout_ms is not None:
            _overall_ms = general_method_timeout_ms
        else:
            _overall_ms = self._general_method_timeout_ms
        return MultiCallTimeoutManager(
            overall_timeout_ms=_overall_ms,
            timeout_label=GENERAL_METHOD_TIMEOUT_LABEL,
        )

    def _begin_consuming(
        self,
        general_method_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> MultiCallTimeoutManager:
        """Entry point of the methods consuming all that is left in the cursor."""
        self._ensure_alive()
        return self._method_timeout_manager(general_method_timeout_ms, timeout_ms)

    def _drain_buffer(self) -> list[T]:
        """
        Convert and hand out the whole buffer, marking it consumed.
        If conversion fails, the buffer and the consumed count are unchanged.
        """
        items = convert_items(self._buffer, self._mapper, offset=self._consumed)
        self._consumed += len(self._buffer)
        self._buffer = []
        return items

    def _pop_item(self) -> T:
        """
        Convert and hand out the first buffered item. Buffer must be nonempty.
        If conversion fails, the item stays at the head of the buffer.
        """
        item = convert_items(self._buffer[:1], self._mapper, offset=self._consumed)[0]
        self._buffer = self._buffer[1:]
        self._consumed += 1
        return item

    def _needs_fetch(self) -> bool:
        return not self._buffer and self._state == CursorState.OPEN

    def _live_cursor_id(self) -> str:
        if self._cursor_id is None:
            raise RuntimeError("Open cursor has no cursor id.")
        return self._cursor_id

    def _mark_closed(self) -> str | None:
        """
        Move to CLOSED, discarding the buffer. Return the id of the server
        cursor to release, if the cursor was OPEN, else None.
        """
        to_release = self._cursor_id if self._state == CursorState.OPEN else None
        self._state = CursorState.CLOSED
        self._buffer = []
        return to_release

    @property
    def state(self) -> CursorState:
        """
        The current state of this cursor.

        Returns:
            a value in `arangopy.cursors.CursorState`.
        """

        return self._state

    @property
    def cursor_id(self) -> str | None:
        """
        The server-assigned identifier of the cursor, or None if the server
        did not allocate a cursor (the whole result fit in the first batch).
        """

        return self._cursor_id

    @property
    def has_more(self) -> bool:
        """Whether the server holds further batches for this cursor."""

        return self._has_more

    @property
    def count(self) -> int | None:
        """
        The total number of results, if the query was submitted with
        the `count` flag; None otherwise.
        """

        return self._count

    @property
    def cached(self) -> bool | None:
        """Whether the results come from the server query results cache."""

        return self._cached

    @property
    def extra(self) -> QueryExtra | None:
        """
        The statistics and warnings of the query, as of the latest batch
        received, if returned by the server.
        """

        return QueryExtra._from_dict(self._extra)

    @property
    def consumed(self) -> int:
        """
        The number of items the cursors has yielded, i.e. how many items
        have been already read by the code consuming the cursor.
        """

        return self._consumed

    @property
    def batches_retrieved(self) -> int:
        """
        The number of batches received from the server so far,
        the first one (coming with the query submission) included.
        """

        return self._batches_retrieved

    @property
    def buffered_count(self) -> int:
        """
        The number of items currently stored in the client-side buffer of
        this cursor. Reading this property never triggers any request.
        """

        return len(self._buffer)
