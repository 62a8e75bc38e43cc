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

from inspect import iscoroutinefunction
from types import TracebackType
from typing import Any, Awaitable, Callable, Generic

from arangopy.data.cursors.cursor import (
    AbstractAqlCursor,
    CursorState,
    T,
    logger,
)
from arangopy.data.cursors.pagination import CursorBatch
from arangopy.data.cursors.query_engine import _AqlQueryEngine
from arangopy.exceptions import (
    ArangoException,
    CursorException,
    MultiCallTimeoutManager,
)
from arangopy.utils.envelope import ItemMapper


class AqlCursor(Generic[T], AbstractAqlCursor[T]):
    """
    A synchronous cursor over the results of an AQL query, as returned by
    `Database.aql_cursor` and similar methods. Results can be consumed
    one batch at a time (`next_batch`), item by item (iterating over the
    cursor), or all at once (`to_list`, `for_each`).

    A cursor that is abandoned before exhaustion holds resources on the
    server until its ttl expires, unless it is closed: closing an OPEN cursor
    releases them. The simplest way to guarantee this is using the cursor
    as a context manager, whose exit closes the cursor on any exit path.
    `to_list` and `for_each` also close the cursor when done.

    Items are the raw JSON values returned by the query, unless a mapper was
    provided: either a dataclass type (built with the keys of each item as
    keyword arguments) or any callable accepting a raw item.

    A cursor must be consumed by one thread at a time.

    Example:
        >>> query = AqlQuery("FOR u IN @@coll LIMIT 3 RETURN u.name")
        >>> with database.aql_cursor(
        ...     query.bind_var("@coll", "users").with_batch_size(2)
        ... ) as cursor:
        ...     print(cursor.next_batch())
        ...     print(cursor.next_batch())
        ...     print(cursor.next_batch())
        ...
        ['Ann', 'Bob']
        ['Cy']
        []
    """

    def __init__(
        self,
        *,
        query_engine: _AqlQueryEngine,
        initial_batch: CursorBatch,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        general_method_timeout_ms: int | None = None,
    ) -> None:
        AbstractAqlCursor.__init__(
            self,
            query_engine=query_engine,
            initial_batch=initial_batch,
            mapper=mapper,
            request_timeout_ms=request_timeout_ms,
            general_method_timeout_ms=general_method_timeout_ms,
        )

    def __enter__(self) -> AqlCursor[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self._close_after_failure()

    def __iter__(self) -> AqlCursor[T]:
        self._ensure_alive()
        return self

    def __next__(self) -> T:
        if self._state == CursorState.CLOSED:
            raise StopIteration
        self._fill_buffer()
        if not self._buffer:
            self.close()
            raise StopIteration
        return self._pop_item()

    def _fetch_next(self, timeout_manager: MultiCallTimeoutManager | None) -> None:
        batch = self._query_engine._fetch_batch(
            self._live_cursor_id(),
            timeout_context=self._request_timeout_context(timeout_manager),
        )
        self._ingest_batch(batch)

    def _fill_buffer(
        self, timeout_manager: MultiCallTimeoutManager | None = None
    ) -> None:
        # the server may return empty intermediate batches
        while self._needs_fetch():
            self._fetch_next(timeout_manager)

    def _close_after_failure(self) -> None:
        try:
            self.close()
        except ArangoException as exc:
            logger.warning(f"Could not release cursor {self._cursor_id}: {exc}")

    def next_batch(self) -> list[T]:
        """
        Return the next batch of results.

        The first call returns the batch received with the query submission,
        with no further request (or what is left of it, if some items were
        already consumed by iterating). Each subsequent call, as long as the
        cursor is OPEN, makes exactly one request for the next batch. Once the
        cursor is EXHAUSTED (and its buffer empty) or CLOSED, an empty list is
        returned without any request being made.

        Batches are forward-only: a returned batch cannot be obtained again.

        Returns:
            a list of items, in the order given by the server. An empty list
            is also possible, while the cursor is still OPEN, for streaming
            queries. Check `has_more` to know whether to call again.

        Raises:
            ArangoTransportException: the request could not be completed.
                The cursor is left OPEN and the request may be retried.
            ArangoResponseException: the server rejected the request
                (e.g. the cursor expired).
        """

        if self._needs_fetch():
            self._fetch_next(None)
        return self._drain_buffer()

    def has_next(self) -> bool:
        """
        Whether the cursor actually has more items to return.

        This method can trigger the fetch of new batches, if the buffer is
        empty. On a CLOSED cursor it always returns False.
        """

        if self._state == CursorState.CLOSED:
            return False
        self._fill_buffer()
        return len(self._buffer) > 0

    def close(self) -> None:
        """
        Close the cursor. If it is OPEN, the server cursor is deleted, freeing
        its resources (a cursor already gone on the server is not an error).
        Items not yet consumed are discarded.

        Closing a cursor that is EXHAUSTED or already CLOSED makes no requests,
        so this method can be called any number of times.
        """

        to_release = self._mark_closed()
        if to_release is not None:
            self._query_engine._release(
                to_release,
                timeout_context=self._request_timeout_context(None),
            )

    def for_each(
        self,
        function: Callable[[T], bool | None],
        *,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Consume the remaining items in the cursor, invoking a provided callback
        function on each of them.

        Calling this method on a CLOSED cursor results in an error.

        The return value of the callback is generally discarded, except that
        a return value of `False` makes the method quit early. Either way, the
        cursor is CLOSED when this method returns (releasing the server cursor
        if needed), and so it is if an exception occurs.

        Args:
            function: a callback function whose only parameter is of the type
                returned by the cursor.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                duration of this method. If not provided, the value from the
                API options of the originating database applies.
                The per-request timeout still applies to each batch fetch.
            timeout_ms: an alias for `general_method_timeout_ms`.
        """

        timeout_manager = self._begin_consuming(general_method_timeout_ms, timeout_ms)
        try:
            while True:
                self._fill_buffer(timeout_manager)
                if not self._buffer:
                    break
                if function(self._pop_item()) is False:
                    break
        except BaseException:
            self._close_after_failure()
            raise
        self.close()

    def to_list(
        self,
        *,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Materialize all items that remain to be consumed from a cursor into
        a list, by fetching all remaining batches. The list preserves the
        server order: batch order, then item order within each batch.

        Calling this method on a CLOSED cursor results in an error.
        The cursor is CLOSED when this method returns, or raises.

        Args:
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                duration of this method. If not provided, the value from the
                API options of the originating database applies.
                The per-request timeout still applies to each batch fetch.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a list of items. These are all items that were left to be consumed
                on the cursor when `to_list` is called.
        """

        timeout_manager = self._begin_consuming(general_method_timeout_ms, timeout_ms)
        items: list[T] = []
        try:
            items.extend(self._drain_buffer())
            while self._state == CursorState.OPEN:
                self._fetch_next(timeout_manager)
                items.extend(self._drain_buffer())
        except BaseException:
            self._close_after_failure()
            raise
        self.close()
        return items


class AsyncAqlCursor(Generic[T], AbstractAqlCursor[T]):
    """
    An asynchronous cursor over the results of an AQL query, as returned by
    `AsyncDatabase.aql_cursor` and similar methods. This is the async
    counterpart of AqlCursor: all methods doing I/O are coroutines,
    iteration is done with `async for` and scoped use with `async with`.

    Batch fetches on one cursor must be strictly sequential: starting
    `next_batch` (or any other fetching method) while another fetch is in
    flight on the same cursor raises a CursorException. Different cursors
    can be used concurrently freely.

    For usage examples, please refer to the equivalent synchronous AqlCursor
    class, and apply the necessary adaptations to the async interface.
    """

    _fetch_in_flight: bool

    def __init__(
        self,
        *,
        query_engine: _AqlQueryEngine,
        initial_batch: CursorBatch,
        mapper: ItemMapper[T] | None = None,
        request_timeout_ms: int | None = None,
        general_method_timeout_ms: int | None = None,
    ) -> None:
        self._fetch_in_flight = False
        AbstractAqlCursor.__init__(
            self,
            query_engine=query_engine,
            initial_batch=initial_batch,
            mapper=mapper,
            request_timeout_ms=request_timeout_ms,
            general_method_timeout_ms=general_method_timeout_ms,
        )

    async def __aenter__(self) -> AsyncAqlCursor[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        if exc_type is None:
            await self.close()
        else:
            await self._close_after_failure()

    def __aiter__(self) -> AsyncAqlCursor[T]:
        self._ensure_alive()
        return self

    async def __anext__(self) -> T:
        if self._state == CursorState.CLOSED:
            raise StopAsyncIteration
        await self._fill_buffer()
        if not self._buffer:
            await self.close()
            raise StopAsyncIteration
        return self._pop_item()

    async def _fetch_next(
        self, timeout_manager: MultiCallTimeoutManager | None
    ) -> None:
        if self._fetch_in_flight:
            raise CursorException(
                text="A batch fetch is already in progress on this cursor.",
                cursor_state=self._state.value,
            )
        self._fetch_in_flight = True
        try:
            batch = await self._query_engine._async_fetch_batch(
                self._live_cursor_id(),
                timeout_context=self._request_timeout_context(timeout_manager),
            )
        finally:
            self._fetch_in_flight = False
        self._ingest_batch(batch)

    async def _fill_buffer(
        self, timeout_manager: MultiCallTimeoutManager | None = None
    ) -> None:
        while self._needs_fetch():
            await self._fetch_next(timeout_manager)

    async def _close_after_failure(self) -> None:
        try:
            await self.close()
        except ArangoException as exc:
            logger.warning(f"Could not release cursor {self._cursor_id}: {exc}")

    async def next_batch(self) -> list[T]:
        """
        Return the next batch of results.

        The semantics are those of the same method of AqlCursor: the first
        batch comes from the query submission with no request, subsequent
        calls make one request each while the cursor is OPEN, and an empty
        list is returned with no request once EXHAUSTED or CLOSED.

        Raises:
            CursorException: another fetch is in flight on this cursor.
            ArangoTransportException: the request could not be completed.
                The cursor is left OPEN and the request may be retried.
            ArangoResponseException: the server rejected the request.
        """

        if self._needs_fetch():
            await self._fetch_next(None)
        return self._drain_buffer()

    async def has_next(self) -> bool:
        """
        Whether the cursor actually has more items to return.

        This method can trigger the fetch of new batches, if the buffer is
        empty. On a CLOSED cursor it always returns False.
        """

        if self._state == CursorState.CLOSED:
            return False
        await self._fill_buffer()
        return len(self._buffer) > 0

    async def close(self) -> None:
        """
        Close the cursor, deleting the server cursor if it is OPEN.
        Repeated calls, and calls on an EXHAUSTED cursor, make no requests.

        Closing does not cancel a batch fetch in flight: it only prevents
        further fetches. The results of such a fetch are still returned to
        its caller, but the cursor stays CLOSED.
        """

        to_release = self._mark_closed()
        if to_release is not None:
            await self._query_engine._async_release(
                to_release,
                timeout_context=self._request_timeout_context(None),
            )

    async def for_each(
        self,
        function: Callable[[T], bool | None] | Callable[[T], Awaitable[bool | None]],
        *,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Consume the remaining items in the cursor, invoking a provided callback
        function -- or coroutine -- on each of them.

        Calling this method on a CLOSED cursor results in an error.
        A return value of `False` from the callback makes the method quit
        early. The cursor is CLOSED when this method returns, or raises.

        Args:
            function: a callback function, or a coroutine, whose only
                parameter is of the type returned by the cursor.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                duration of this method. If not provided, the value from the
                API options of the originating database applies.
            timeout_ms: an alias for `general_method_timeout_ms`.
        """

        timeout_manager = self._begin_consuming(general_method_timeout_ms, timeout_ms)
        is_coro = iscoroutinefunction(function)
        res: Any
        try:
            while True:
                await self._fill_buffer(timeout_manager)
                if not self._buffer:
                    break
                item = self._pop_item()
                if is_coro:
                    res = await function(item)  # type: ignore[misc]
                else:
                    res = function(item)
                if res is False:
                    break
        except BaseException:
            await self._close_after_failure()
            raise
        await self.close()

    async def to_list(
        self,
        *,
        general_method_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[T]:
        """
        Materialize all items that remain to be consumed from a cursor into
        a list, preserving the server order. The cursor is CLOSED when this
        method returns, or raises.

        Args:
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                duration of this method. If not provided, the value from the
                API options of the originating database applies.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a list of items. These are all items that were left to be consumed
                on the cursor when `to_list` is called.
        """

        timeout_manager = self._begin_consuming(general_method_timeout_ms, timeout_ms)
        items: list[T] = []
        try:
            items.extend(self._drain_buffer())
            while self._state == CursorState.OPEN:
                await self._fetch_next(timeout_manager)
                items.extend(self._drain_buffer())
        except BaseException:
            await self._close_after_failure()
            raise
        await self.close()
        return items
