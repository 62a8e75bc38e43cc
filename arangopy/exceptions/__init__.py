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

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from arangopy.exceptions.arango_exceptions import (
    ArangoException,
    ArangoResponseException,
    ArangoSerializationException,
    ArangoTimeoutException,
    ArangoTransportException,
    CursorException,
)

if TYPE_CHECKING:
    from arangopy.utils.api_options import FullTimeoutOptions


@dataclass
class _TimeoutContext:
    """
    This class encodes standardized "enriched information" attached to a timeout
    value to obey. This makes it possible, in case the timeout is raised, to present
    the user with a better error message detailing the name of the setting responsible
    for the timeout and the "nominal" value (which may not always coincide with the
    actual elapsed number of milliseconds because of cumulative timeouts spanning
    several HTTP requests).

    Args:
        nominal_ms: the original timeout in milliseconds that was ultimately set by
            the user.
        request_ms: the actual number of millisecond a given HTTP request was allowed
            to last. This may be smaller than `nominal_ms` because of timeouts imposed
            on a succession of requests.
        label: a string, providing the name of the timeout setting as known by the user.
    """

    nominal_ms: int | None
    request_ms: int | None
    label: str | None

    def __init__(
        self,
        *,
        request_ms: int | None,
        nominal_ms: int | None = None,
        label: str | None = None,
    ) -> None:
        self.nominal_ms = nominal_ms
        self.request_ms = request_ms
        self.label = label

    def __bool__(self) -> bool:
        return self.nominal_ms is not None or self.request_ms is not None


def _select_singlereq_timeout(
    *,
    timeout_options: FullTimeoutOptions,
    request_timeout_ms: int | None = None,
    timeout_ms: int | None = None,
) -> tuple[int, str]:
    """
    Determine and label the timeout for single-request methods: the least of
    the explicitly passed values, if any, else the request timeout from the
    API options.
    """
    explicit: list[tuple[int, str]] = []
    for value, label in (
        (request_timeout_ms, "request_timeout_ms"),
        (timeout_ms, "timeout_ms"),
    ):
        if value is not None:
            explicit.append((value, label))
    if explicit:
        return min(explicit)
    else:
        return (timeout_options.request_timeout_ms, "request_timeout_ms")


def to_timeout_exception(
    text: str,
    *,
    timeout_type: str,
    endpoint: str | None,
    raw_payload: str | None,
    timeout_context: _TimeoutContext,
) -> ArangoTimeoutException:
    """
    Build the timeout exception for a request that timed out, enriching the
    message with the timeout setting that was honoured, if any.
    """
    text_0 = text or "timed out"
    timeout_ms = timeout_context.nominal_ms or timeout_context.request_ms
    timeout_label = timeout_context.label
    if timeout_ms:
        if timeout_label:
            full_text = (
                f"{text_0} (timeout honoured: {timeout_label} = {timeout_ms} ms)"
            )
        else:
            full_text = f"{text_0} (timeout honoured: {timeout_ms} ms)"
    else:
        full_text = text_0
    return ArangoTimeoutException(
        text=full_text,
        timeout_type=timeout_type,
        endpoint=endpoint,
        raw_payload=raw_payload,
    )


class MultiCallTimeoutManager:
    """
    A helper class to keep track of timing and timeouts
    in a multi-call method context, such as draining a cursor.

    Args:
        overall_timeout_ms: an optional max duration to track (milliseconds)
        timeout_label: a string label identifying the `overall_timeout_ms` in a way
            that is understood by the user who can set timeouts.

    Attributes:
        overall_timeout_ms: an optional max duration to track (milliseconds)
        started_ms: timestamp of the instance construction (milliseconds)
        deadline_ms: optional deadline in milliseconds (computed by the class).
        timeout_label: the label for `overall_timeout_ms`.
    """

    overall_timeout_ms: int | None
    started_ms: int = -1
    deadline_ms: int | None
    timeout_label: str | None

    def __init__(
        self,
        overall_timeout_ms: int | None,
        timeout_label: str | None = None,
    ) -> None:
        self.started_ms = int(time.time() * 1000)
        self.timeout_label = timeout_label
        # zero timeouts provided internally are mapped to None for deadline mgmt:
        self.overall_timeout_ms = overall_timeout_ms or None
        if self.overall_timeout_ms is not None:
            self.deadline_ms = self.started_ms + self.overall_timeout_ms
        else:
            self.deadline_ms = None

    def remaining_timeout(
        self, cap_time_ms: int | None = None, cap_timeout_label: str | None = None
    ) -> _TimeoutContext:
        """
        Ensure the deadline, if any, is not yet in the past.
        If it is, raise an ArangoTimeoutException.
        If not, return the timeout context for the next request.

        Args:
            cap_time_ms: an additional timeout constraint to cap the result of
                this method (typically, the per-request timeout).
            cap_timeout_label: the label identifying the "cap timeout" if one is
                set, for the error message in case the cap is what triggers.

        Returns:
            A _TimeoutContext detailing the residual time the next request
            is allowed to last.
        """

        # a zero 'cap' must be treated as None:
        _cap_time_ms = cap_time_ms or None
        now_ms = int(time.time() * 1000)
        if self.deadline_ms is not None:
            if now_ms < self.deadline_ms:
                remaining = self.deadline_ms - now_ms
                if _cap_time_ms is None or remaining <= _cap_time_ms:
                    return _TimeoutContext(
                        nominal_ms=self.overall_timeout_ms,
                        request_ms=remaining,
                        label=self.timeout_label,
                    )
                else:
                    return _TimeoutContext(
                        nominal_ms=_cap_time_ms,
                        request_ms=_cap_time_ms,
                        label=cap_timeout_label,
                    )
            else:
                err_msg: str
                if self.timeout_label:
                    err_msg = (
                        f"Operation timed out (timeout honoured: {self.timeout_label} "
                        f"= {self.overall_timeout_ms} ms)."
                    )
                else:
                    err_msg = f"Operation timed out (timeout honoured: {self.overall_timeout_ms} ms)."
                raise ArangoTimeoutException(
                    text=err_msg,
                    timeout_type="generic",
                    endpoint=None,
                    raw_payload=None,
                )
        else:
            if _cap_time_ms is None:
                return _TimeoutContext(
                    nominal_ms=self.overall_timeout_ms,
                    request_ms=None,
                    label=self.timeout_label,
                )
            else:
                return _TimeoutContext(
                    nominal_ms=_cap_time_ms,
                    request_ms=_cap_time_ms,
                    label=cap_timeout_label,
                )


__all__ = [
    "ArangoException",
    "ArangoResponseException",
    "ArangoSerializationException",
    "ArangoTimeoutException",
    "ArangoTransportException",
    "CursorException",
    "MultiCallTimeoutManager",
]

__pdoc__ = {
    "to_timeout_exception": False,
    "MultiCallTimeoutManager": False,
}
