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

from dataclasses import dataclass

import pytest

from arangopy import AqlQuery, Session
from arangopy.cursors import AqlCursor, CursorState
from arangopy.exceptions import (
    ArangoResponseException,
    ArangoSerializationException,
    ArangoTransportException,
    CursorException,
)

from ..conftest import (
    TEST_API_ENDPOINT,
    TEST_DATABASE,
    ScriptedTransport,
    cursor_response,
    error_response,
    json_response,
)

CURSOR_URL = f"{TEST_API_ENDPOINT}/_db/{TEST_DATABASE}/_api/cursor"
LIMIT_QUERY = (
    AqlQuery("FOR d IN @@coll LIMIT @n RETURN d")
    .bind_var("@coll", "users")
    .bind_var("n", 5)
    .with_batch_size(2)
)


@dataclass
class Doc:
    name: str


def _strict_int(item: object) -> int:
    if not isinstance(item, int):
        raise ValueError(f"not an integer: {item!r}")
    return item


def _enqueue_three_batches(transport: ScriptedTransport) -> None:
    transport.enqueue(
        cursor_response([1, 2], has_more=True, cursor_id="c1", count=5),
        cursor_response([3, 4], has_more=True, cursor_id="c1", status_code=200),
        cursor_response([5], has_more=False, cursor_id="c1", status_code=200),
    )


def _open_cursor(session: Session, transport: ScriptedTransport) -> AqlCursor[int]:
    _enqueue_three_batches(transport)
    return session.database(TEST_DATABASE).aql_cursor(LIMIT_QUERY)


class TestAqlCursorBatches:
    @pytest.mark.describe("test of query submission request")
    def test_cursor_submission(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        assert len(transport.calls) == 1
        call = transport.calls[0]
        assert call.method == "POST"
        assert call.url == CURSOR_URL
        assert call.payload == {
            "query": "FOR d IN @@coll LIMIT @n RETURN d",
            "bindVars": {"@coll": "users", "n": 5},
            "batchSize": 2,
        }
        assert call.headers["Authorization"].startswith("Basic ")
        assert call.headers["Content-Type"] == "application/json"
        assert "arangopy/" in call.headers["User-Agent"]
        assert cursor.state == CursorState.OPEN
        assert cursor.cursor_id == "c1"
        assert cursor.count == 5
        assert cursor.buffered_count == 2
        cursor.close()

    @pytest.mark.describe("test of batch-wise consumption and request counts")
    def test_cursor_next_batch(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        assert cursor.next_batch() == [1, 2]
        # first batch came with the submission
        assert len(transport.calls) == 1
        assert cursor.next_batch() == [3, 4]
        assert len(transport.calls) == 2
        assert transport.calls[1].method == "PUT"
        assert transport.calls[1].url == f"{CURSOR_URL}/c1"
        assert transport.calls[1].payload is None
        assert cursor.state == CursorState.OPEN
        assert cursor.next_batch() == [5]
        assert len(transport.calls) == 3
        assert cursor.state == CursorState.EXHAUSTED
        assert cursor.has_more is False
        # exhausted: no further requests
        assert cursor.next_batch() == []
        assert cursor.next_batch() == []
        assert len(transport.calls) == 3
        assert cursor.batches_retrieved == 3
        assert cursor.consumed == 5
        # closing an exhausted cursor needs no request
        cursor.close()
        assert cursor.state == CursorState.CLOSED
        assert transport.calls_by_method("DELETE") == []

    @pytest.mark.describe("test of single-batch results")
    def test_cursor_single_batch(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(cursor_response([1, 2, 3], has_more=False))
        cursor = session.database(TEST_DATABASE).aql_cursor(AqlQuery("RETURN 1"))
        assert cursor.state == CursorState.EXHAUSTED
        assert cursor.cursor_id is None
        assert cursor.next_batch() == [1, 2, 3]
        assert cursor.next_batch() == []
        cursor.close()
        assert len(transport.calls) == 1

    @pytest.mark.describe("test of empty intermediate batches")
    def test_cursor_empty_intermediate_batches(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([], has_more=True, cursor_id="s1"),
            cursor_response([], has_more=True, cursor_id="s1", status_code=200),
            cursor_response(["a"], has_more=True, cursor_id="s1", status_code=200),
            cursor_response([], has_more=False, cursor_id="s1", status_code=200),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(AqlQuery("RETURN 1"))
        assert list(cursor) == ["a"]
        assert cursor.state == CursorState.CLOSED
        assert len(transport.calls_by_method("PUT")) == 3
        assert transport.calls_by_method("DELETE") == []


class TestAqlCursorIteration:
    @pytest.mark.describe("test of iteration equivalence with batches")
    def test_cursor_iteration(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        assert cursor.has_next()
        items = [item for item in cursor]
        assert items == [1, 2, 3, 4, 5]
        assert len(transport.calls) == 3
        # running off the end closes the cursor, with nothing to release
        assert cursor.state == CursorState.CLOSED
        assert not cursor.has_next()
        assert transport.calls_by_method("DELETE") == []
        with pytest.raises(CursorException):
            iter(cursor)

    @pytest.mark.describe("test of mixed iteration and batch consumption")
    def test_cursor_mixed_consumption(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        assert next(cursor) == 1
        assert cursor.next_batch() == [2]
        assert next(cursor) == 3
        assert cursor.to_list() == [4, 5]
        assert cursor.state == CursorState.CLOSED
        assert len(transport.calls) == 3

    @pytest.mark.describe("test of to_list")
    def test_cursor_to_list(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        assert cursor.to_list() == [1, 2, 3, 4, 5]
        assert cursor.state == CursorState.CLOSED
        assert len(transport.calls) == 3
        with pytest.raises(CursorException):
            cursor.to_list()
        with pytest.raises(CursorException):
            cursor.for_each(lambda item: None)

    @pytest.mark.describe("test of for_each, with early stop")
    def test_cursor_for_each(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        seen: list[int] = []
        transport.enqueue(
            cursor_response([1, 2], has_more=True, cursor_id="c1"),
            cursor_response([3, 4], has_more=True, cursor_id="c1", status_code=200),
            json_response({"error": False, "code": 202}, 202),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(LIMIT_QUERY)

        def _collect(item: int) -> bool:
            seen.append(item)
            return item < 3

        cursor.for_each(_collect)
        assert seen == [1, 2, 3]
        assert cursor.state == CursorState.CLOSED
        # quitting early releases the server cursor
        deletes = transport.calls_by_method("DELETE")
        assert len(deletes) == 1
        assert deletes[0].url == f"{CURSOR_URL}/c1"

    @pytest.mark.describe("test of item mappers on a cursor")
    def test_cursor_mapper(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([{"name": "Ann"}], has_more=True, cursor_id="m1"),
            cursor_response([{"nome": "Bob"}], has_more=False, status_code=200),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(
            AqlQuery("FOR d IN c RETURN d"), mapper=Doc
        )
        assert next(cursor) == Doc(name="Ann")
        with pytest.raises(ArangoSerializationException) as exc_info:
            next(cursor)
        assert exc_info.value.field == "result[1]"
        cursor.close()

    @pytest.mark.describe("test of failed item conversions keeping the cursor position")
    def test_cursor_mapper_failure_keeps_items(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([1, "bad", 3], has_more=True, cursor_id="c1"),
            json_response({"error": False, "code": 202}, 202),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(
            AqlQuery("FOR d IN c RETURN d"), mapper=_strict_int
        )
        with pytest.raises(ArangoSerializationException) as exc_info:
            cursor.next_batch()
        assert exc_info.value.field == "result[1]"
        assert cursor.state == CursorState.OPEN
        assert cursor.buffered_count == 3
        assert cursor.consumed == 0
        assert next(cursor) == 1
        with pytest.raises(ArangoSerializationException) as exc_info:
            next(cursor)
        assert exc_info.value.field == "result[1]"
        assert cursor.buffered_count == 2
        assert cursor.consumed == 1
        assert len(transport.calls) == 1
        cursor.close()
        assert len(transport.calls_by_method("DELETE")) == 1
        assert len(transport.calls_by_method("PUT")) == 0


class TestAqlCursorRelease:
    @pytest.mark.describe("test of closing an open cursor, and close idempotence")
    def test_cursor_close(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        transport.outcomes.clear()
        transport.enqueue(json_response({"error": False, "code": 202}, 202))
        cursor.close()
        assert cursor.state == CursorState.CLOSED
        cursor.close()
        cursor.close()
        deletes = transport.calls_by_method("DELETE")
        assert len(deletes) == 1
        assert deletes[0].url == f"{CURSOR_URL}/c1"
        assert cursor.next_batch() == []
        assert list(transport.outcomes) == []

    @pytest.mark.describe("test of closing a cursor already gone on the server")
    def test_cursor_close_gone(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        transport.outcomes.clear()
        transport.enqueue(error_response(404, 1600, "cursor not found"))
        cursor.close()
        assert cursor.state == CursorState.CLOSED

    @pytest.mark.describe("test of context manager releasing the cursor")
    def test_cursor_context_manager(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        with _open_cursor(session, transport) as cursor:
            assert cursor.next_batch() == [1, 2]
            transport.outcomes.clear()
            transport.enqueue(json_response({"error": False, "code": 202}, 202))
        assert cursor.state == CursorState.CLOSED
        assert len(transport.calls_by_method("DELETE")) == 1

    @pytest.mark.describe("test of context manager releasing the cursor on errors")
    def test_cursor_context_manager_on_error(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        with pytest.raises(RuntimeError):
            with _open_cursor(session, transport) as cursor:
                transport.outcomes.clear()
                transport.enqueue(json_response({"error": False, "code": 202}, 202))
                raise RuntimeError("user code failure")
        assert cursor.state == CursorState.CLOSED
        assert len(transport.calls_by_method("DELETE")) == 1

    @pytest.mark.describe("test of garbage-collected open cursors warning")
    def test_cursor_abandoned_warning(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        with pytest.warns(ResourceWarning):
            cursor.__del__()
        # no release request is attempted
        assert transport.calls_by_method("DELETE") == []
        cursor._state = CursorState.EXHAUSTED


class TestAqlCursorFailures:
    @pytest.mark.describe("test of transport errors leaving the cursor open")
    def test_cursor_transport_error(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([1], has_more=True, cursor_id="t1"),
            ArangoTransportException(
                "connection reset", endpoint=f"{CURSOR_URL}/t1", raw_payload=None
            ),
            cursor_response([2], has_more=False, cursor_id="t1", status_code=200),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(AqlQuery("RETURN 1"))
        assert cursor.next_batch() == [1]
        with pytest.raises(ArangoTransportException):
            cursor.next_batch()
        assert cursor.state == CursorState.OPEN
        # retrying is possible
        assert cursor.next_batch() == [2]
        assert cursor.state == CursorState.EXHAUSTED
        cursor.close()

    @pytest.mark.describe("test of expired cursors while fetching")
    def test_cursor_expired(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([1], has_more=True, cursor_id="x1"),
            error_response(404, 1600, "cursor not found"),
            error_response(404, 1600, "cursor not found"),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(AqlQuery("RETURN 1"))
        with pytest.raises(ArangoResponseException) as exc_info:
            cursor.to_list()
        assert exc_info.value.error_num == 1600
        # to_list closes the cursor even on failure
        assert cursor.state == CursorState.CLOSED

    @pytest.mark.describe("test of query errors at submission")
    def test_cursor_submission_error(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            error_response(400, 1551, "no value specified for declared bind parameter")
        )
        with pytest.raises(ArangoResponseException) as exc_info:
            session.database(TEST_DATABASE).aql_cursor(AqlQuery("RETURN @x"))
        assert exc_info.value.code == 400
        assert exc_info.value.error_num == 1551


class TestAqlCursorMetadata:
    @pytest.mark.describe("test of query statistics and warnings on a cursor")
    def test_cursor_extra(
        self,
        session: Session,
        transport: ScriptedTransport,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        transport.enqueue(
            cursor_response(
                [1],
                has_more=False,
                extra={
                    "stats": {
                        "writesExecuted": 0,
                        "scannedFull": 10,
                        "filtered": 9,
                        "fullCount": 10,
                        "executionTime": 0.002,
                    },
                    "warnings": [{"code": 1562, "message": "division by zero"}],
                },
            ),
        )
        with caplog.at_level("WARNING", logger="arangopy"):
            cursor = session.database(TEST_DATABASE).aql_cursor(
                AqlQuery("FOR d IN c LIMIT 1 RETURN 1 / 0").with_full_count()
            )
        assert "division by zero" in caplog.text
        assert transport.calls[0].payload["options"] == {"fullCount": True}
        extra = cursor.extra
        assert extra is not None
        assert extra.stats is not None
        assert extra.stats.full_count == 10
        assert extra.stats.scanned_full == 10
        assert extra.stats.scanned_index == 0
        assert extra.warnings == [{"code": 1562, "message": "division by zero"}]
        assert cursor.cached is None
        cursor.close()

    @pytest.mark.describe("test of cursor representation")
    def test_cursor_repr(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        cursor = _open_cursor(session, transport)
        assert repr(cursor) == 'AqlCursor("c1", open, consumed so far: 0)'
        cursor._state = CursorState.EXHAUSTED
