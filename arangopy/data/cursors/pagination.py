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
from typing import Any

from arangopy.exceptions import ArangoSerializationException
from arangopy.utils.envelope import extract_field


@dataclass
class CursorBatch:
    """
    One batch of raw results, as carried by a single response of the
    query-submission or batch-fetch endpoints, together with the cursor
    metadata found alongside it.

    Attributes:
        results: the raw JSON items of the batch, in server order.
        has_more: whether the server holds further batches.
        cursor_id: the server cursor id. This is None when the server did not
            allocate a cursor (i.e. the whole result fit in this batch), and
            may be omitted by the server on the last batch.
        count: the total number of results, if the query requested it.
        extra: the `extra` object (statistics, warnings), if returned.
        cached: whether the result was served from the query results cache.
    """

    results: list[Any]
    has_more: bool
    cursor_id: str | None
    count: int | None
    extra: dict[str, Any] | None
    cached: bool | None

    def __repr__(self) -> str:
        pieces = [
            pc
            for pc in (
                f"results=<{len(self.results)} entries>",
                f"has_more={self.has_more}",
                f'cursor_id="{self.cursor_id}"' if self.cursor_id else None,
                f"count={self.count}" if self.count is not None else None,
                "extra=..." if self.extra else None,
            )
            if pc is not None
        ]
        return f"{self.__class__.__name__}({', '.join(pieces)})"

    @staticmethod
    def _from_envelope(envelope: dict[str, Any]) -> CursorBatch:
        """
        Parse a successful cursor-endpoint envelope, checking field types
        and the requirement that a cursor id be present if more batches follow.
        """

        results = extract_field(envelope, "result", list)
        has_more = extract_field(envelope, "hasMore", bool)
        raw_cursor_id = extract_field(envelope, "id", (str, int), required=False)
        # ids are strings on the wire, though some versions send numbers
        cursor_id = str(raw_cursor_id) if raw_cursor_id is not None else None
        if has_more and cursor_id is None:
            raise ArangoSerializationException(
                text="Response has 'hasMore' set but carries no cursor 'id'.",
                raw_response=envelope,
                field="id",
            )
        return CursorBatch(
            results=results,
            has_more=has_more,
            cursor_id=cursor_id,
            count=extract_field(envelope, "count", int, required=False),
            extra=extract_field(envelope, "extra", dict, required=False),
            cached=extract_field(envelope, "cached", bool, required=False),
        )
