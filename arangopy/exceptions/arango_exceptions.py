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


class ArangoException(Exception):
    """
    Any exception occurred while talking to the server through arangopy.

    Exactly one of three kinds is raised by every failing operation:
      - ArangoResponseException: the server rejected the request (bad AQL,
        authentication failure, unknown collection, expired cursor, ...);
      - ArangoTransportException: the request could not be completed at the
        network level (DNS, TLS, connection reset, timeout);
      - ArangoSerializationException: the server response, or an item in it,
        does not have the expected shape.
    Cursor misuse by the caller raises CursorException.
    """

    pass


@dataclass
class ArangoResponseException(ArangoException):
    """
    The server returned an error envelope (`"error": true`), be it with
    a 2xx or a non-2xx HTTP status code.

    The server-provided values are carried verbatim, so that callers can
    match `error_num` against the server's documented error catalog.
    These errors are generally not retryable without changing the request.

    Attributes:
        text: a text message about the exception.
        code: the `code` field of the envelope (the HTTP status code, if the
            envelope lacks it).
        error_num: the server's `errorNum`.
        error_message: the server's `errorMessage`.
        raw_response: the full decoded response.
        request_description: the "METHOD url" of the failed request, if known.
    """

    text: str
    code: int
    error_num: int
    error_message: str
    raw_response: dict[str, Any] | None
    request_description: str | None

    def __init__(
        self,
        text: str,
        *,
        code: int,
        error_num: int,
        error_message: str,
        raw_response: dict[str, Any] | None = None,
        request_description: str | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.code = code
        self.error_num = error_num
        self.error_message = error_message
        self.raw_response = raw_response
        self.request_description = request_description

    def __str__(self) -> str:
        return self.text

    @staticmethod
    def from_response(
        *,
        raw_response: dict[str, Any],
        status_code: int,
        request_description: str | None = None,
    ) -> ArangoResponseException:
        """
        Parse an error envelope into this exception.

        The caller is expected to have verified the presence and types of
        `errorNum` and `errorMessage` already.
        """

        code = raw_response.get("code")
        _code = code if isinstance(code, int) else status_code
        error_num: int = raw_response["errorNum"]
        error_message: str = raw_response["errorMessage"]
        text = f"{error_message} (errorNum={error_num}, code={_code})"
        return ArangoResponseException(
            text,
            code=_code,
            error_num=error_num,
            error_message=error_message,
            raw_response=raw_response,
            request_description=request_description,
        )


@dataclass
class ArangoTransportException(ArangoException):
    """
    A request could not be carried out at the network level: host not
    resolvable or unreachable, TLS failure, connection reset, timeout.

    These are potentially transient: whether to retry is up to the caller,
    as no automatic retries are ever attempted. A cursor whose batch fetch
    fails this way is left open, and its server-side state is unknown.

    Attributes:
        text: a textual description of the error.
        endpoint: the URL that the request was targeting, if known.
        raw_payload: the associated payload (as a string), if any.
    """

    text: str
    endpoint: str | None
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.endpoint = endpoint
        self.raw_payload = raw_payload


@dataclass
class ArangoTimeoutException(ArangoTransportException):
    """
    An operation timed out on the client side. This can be a request timeout
    occurring during a specific HTTP request, or can happen over the course
    of a method involving several requests in a row, such as draining a cursor.

    Attributes:
        text: a textual description of the error
        timeout_type: this denotes the phase of the HTTP request when the event
            occurred ("connect", "read", "write", "pool") or "generic" if there is
            not a specific request associated to the exception.
        endpoint: if the timeout is tied to a specific request, this is the
            URL that the request was targeting.
        raw_payload:  if the timeout is tied to a specific request, this is the
            associated payload (as a string).
    """

    text: str
    timeout_type: str
    endpoint: str | None
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text, endpoint=endpoint, raw_payload=raw_payload)
        self.timeout_type = timeout_type


@dataclass
class ArangoSerializationException(ArangoException):
    """
    The server response is malformed: the body is not JSON, or it lacks
    expected field(s), or they are of the wrong type; or a result item
    could not be converted to the requested target shape.
    This signals a schema mismatch and is never retryable.

    Attributes:
        text: a text message about the exception.
        raw_response: the response, as far as it could be decoded.
        field: the name of the offending field or item (e.g. "hasMore",
            "result[3]"), if applicable.
    """

    text: str
    raw_response: Any
    field: str | None

    def __init__(
        self,
        text: str,
        *,
        raw_response: Any = None,
        field: str | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response
        self.field = field


@dataclass
class CursorException(ArangoException):
    """
    The cursor operation cannot be invoked in the current state of the
    cursor, e.g. iterating over a closed cursor, or starting a batch fetch
    on an async cursor while another fetch on it is still in flight.

    Attributes:
        text: a text message about the exception.
        cursor_state: a string description of the current state
            of the cursor. See the documentation for CursorState.
    """

    text: str
    cursor_state: str

    def __init__(
        self,
        text: str,
        *,
        cursor_state: str,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.cursor_state = cursor_state
