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
from typing import Iterable, Sequence

from arangopy.authentication import (
    AuthProvider,
    AuthType,
    NoAuth,
    coerce_possible_auth_provider,
)
from arangopy.constants import CallerType
from arangopy.settings.defaults import (
    DEFAULT_DATABASE_NAME,
    DEFAULT_GENERAL_METHOD_TIMEOUT_MS,
    DEFAULT_REQUEST_TIMEOUT_MS,
    FIXED_SECRET_PLACEHOLDER,
)
from arangopy.utils.unset import _UNSET, UnsetType


@dataclass
class TimeoutOptions:
    """
    The group of settings for the API Options concerning client-side timeouts.

    All timeout values are integers expressed in milliseconds. A timeout of
    zero signifies that no timeout is imposed at all on that kind of operation.
    These are unrelated to the `ttl` of a query cursor, which is an expiry
    enforced by the server on idle cursors.

    Values that are left unspecified keep the values inherited from the
    parent "spawner" object (client, session, database).

    Attributes:
        request_timeout_ms: the timeout imposed on a single HTTP request,
            including each batch fetch of a cursor. Defaults to 10 s.
        general_method_timeout_ms: a timeout on the overall duration of
            methods that may issue several requests in a row, such as
            draining a cursor with `to_list`. Each individual request is
            still subject to `request_timeout_ms`. Defaults to 30 s.
    """

    request_timeout_ms: int | UnsetType = _UNSET
    general_method_timeout_ms: int | UnsetType = _UNSET


@dataclass
class FullTimeoutOptions(TimeoutOptions):
    """
    The "full" version of TimeoutOptions, with the guarantee that all of its
    members have defined values. This is what sessions, databases and cursors
    carry in their `.api_options` attribute.

    Attributes:
        request_timeout_ms: the timeout imposed on a single HTTP request.
        general_method_timeout_ms: a timeout on the overall duration of
            multi-request methods.
    """

    request_timeout_ms: int
    general_method_timeout_ms: int

    def __init__(
        self,
        *,
        request_timeout_ms: int,
        general_method_timeout_ms: int,
    ) -> None:
        TimeoutOptions.__init__(
            self,
            request_timeout_ms=request_timeout_ms,
            general_method_timeout_ms=general_method_timeout_ms,
        )

    def with_override(self, other: TimeoutOptions) -> FullTimeoutOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence.
        """

        return FullTimeoutOptions(
            request_timeout_ms=(
                other.request_timeout_ms
                if not isinstance(other.request_timeout_ms, UnsetType)
                else self.request_timeout_ms
            ),
            general_method_timeout_ms=(
                other.general_method_timeout_ms
                if not isinstance(other.general_method_timeout_ms, UnsetType)
                else self.general_method_timeout_ms
            ),
        )


@dataclass
class APIOptions:
    """
    All settings that can be configured for how arangopy talks to the server.
    Each object in the hierarchy (ArangoClient, Session, Database, Collection)
    has a full set of these options; an `APIOptions` object can define zero,
    some or all of its members, overriding the corresponding settings and
    keeping the inherited ones for everything left unspecified.

    With the exception of `database_additional_headers` and
    `redacted_header_names`, which are merged with the inherited ones, a
    provided override completely replaces the inherited value.

    Attributes:
        callers: a list of caller identities, i.e. applications or frameworks
            on behalf of which requests are performed. These end up in the
            User-Agent header. Each is a ("caller_name", "caller_version") pair.
        database_additional_headers: free-form headers attached to every
            request. A value of None for a header removes it.
        redacted_header_names: header names whose values must never be logged
            (`Authorization` is always redacted).
        auth: the credentials: an AuthProvider, a (username, password) pair
            for basic authentication, a bearer token string, or None.
        default_database: the database name used by a session when no name
            is given (`_system` if not specified).
        timeout_options: a TimeoutOptions object for client-side timeouts.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.api_options import APIOptions, TimeoutOptions
        >>>
        >>> client = ArangoClient(
        ...     api_options=APIOptions(
        ...         callers=[("my_app", "1.0")],
        ...         timeout_options=TimeoutOptions(request_timeout_ms=2000),
        ...     ),
        ... )
    """

    callers: Sequence[CallerType] | UnsetType = _UNSET
    database_additional_headers: dict[str, str | None] | UnsetType = _UNSET
    redacted_header_names: set[str] | UnsetType = _UNSET
    auth: AuthProvider | UnsetType = _UNSET
    default_database: str | UnsetType = _UNSET

    timeout_options: TimeoutOptions | UnsetType = _UNSET

    def __init__(
        self,
        *,
        callers: Sequence[CallerType] | UnsetType = _UNSET,
        database_additional_headers: dict[str, str | None] | UnsetType = _UNSET,
        redacted_header_names: Iterable[str] | UnsetType = _UNSET,
        auth: AuthType | UnsetType = _UNSET,
        default_database: str | UnsetType = _UNSET,
        timeout_options: TimeoutOptions | UnsetType = _UNSET,
    ) -> None:
        self.callers = callers
        self.database_additional_headers = database_additional_headers
        self.redacted_header_names = (
            _UNSET
            if isinstance(redacted_header_names, UnsetType)
            else set(redacted_header_names)
        )
        self.auth = coerce_possible_auth_provider(auth)
        self.default_database = default_database
        self.timeout_options = timeout_options

    def __repr__(self) -> str:
        _redacted_header_names = (
            set()
            if isinstance(self.redacted_header_names, UnsetType)
            else self.redacted_header_names
        )
        _database_additional_headers: dict[str, str | None] | UnsetType
        if not isinstance(self.database_additional_headers, UnsetType):
            _database_additional_headers = {
                k: v if k not in _redacted_header_names else FIXED_SECRET_PLACEHOLDER
                for k, v in self.database_additional_headers.items()
            }
        else:
            _database_additional_headers = _UNSET

        non_unset_pieces = [
            pc
            for pc in (
                None
                if isinstance(self.callers, UnsetType)
                else f"callers={self.callers}",
                None
                if isinstance(_database_additional_headers, UnsetType)
                else f"database_additional_headers={_database_additional_headers}",
                None
                if isinstance(self.redacted_header_names, UnsetType)
                else f"redacted_header_names={self.redacted_header_names}",
                None if isinstance(self.auth, UnsetType) else f"auth={self.auth}",
                None
                if isinstance(self.default_database, UnsetType)
                else f"default_database={self.default_database}",
                None
                if isinstance(self.timeout_options, UnsetType)
                else f"timeout_options={self.timeout_options}",
            )
            if pc is not None
        ]
        inner_desc = ", ".join(non_unset_pieces)
        return f"{self.__class__.__name__}({inner_desc})"


@dataclass
class FullAPIOptions(APIOptions):
    """
    The "full" version of APIOptions, with all members defined. This is what
    clients, sessions, databases and collections carry as `.api_options`.

    See `APIOptions` for the meaning of the attributes.
    """

    callers: Sequence[CallerType]
    database_additional_headers: dict[str, str | None]
    redacted_header_names: set[str]
    auth: AuthProvider
    default_database: str

    timeout_options: FullTimeoutOptions

    def __init__(
        self,
        *,
        callers: Sequence[CallerType],
        database_additional_headers: dict[str, str | None],
        redacted_header_names: Iterable[str],
        auth: AuthType,
        default_database: str,
        timeout_options: FullTimeoutOptions,
    ) -> None:
        APIOptions.__init__(
            self,
            callers=callers,
            database_additional_headers=database_additional_headers,
            redacted_header_names=redacted_header_names,
            auth=auth,
            default_database=default_database,
            timeout_options=timeout_options,
        )

    def __repr__(self) -> str:
        return APIOptions.__repr__(self)

    def with_override(self, other: APIOptions | None | UnsetType) -> FullAPIOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Defined attributes replace the pre-existing ones, except for
        `database_additional_headers` and `redacted_header_names`, which
        are merged.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence.
        """

        if isinstance(other, UnsetType) or other is None:
            return self

        database_additional_headers: dict[str, str | None]
        redacted_header_names: set[str]
        timeout_options: FullTimeoutOptions

        if isinstance(other.database_additional_headers, UnsetType):
            database_additional_headers = self.database_additional_headers
        else:
            database_additional_headers = {
                **self.database_additional_headers,
                **other.database_additional_headers,
            }
        if isinstance(other.redacted_header_names, UnsetType):
            redacted_header_names = self.redacted_header_names
        else:
            redacted_header_names = (
                self.redacted_header_names | other.redacted_header_names
            )
        if isinstance(other.timeout_options, TimeoutOptions):
            timeout_options = self.timeout_options.with_override(other.timeout_options)
        else:
            timeout_options = self.timeout_options

        return FullAPIOptions(
            callers=(
                other.callers
                if not isinstance(other.callers, UnsetType)
                else self.callers
            ),
            database_additional_headers=database_additional_headers,
            redacted_header_names=redacted_header_names,
            auth=other.auth if not isinstance(other.auth, UnsetType) else self.auth,
            default_database=(
                other.default_database
                if not isinstance(other.default_database, UnsetType)
                else self.default_database
            ),
            timeout_options=timeout_options,
        )


defaultTimeoutOptions = FullTimeoutOptions(
    request_timeout_ms=DEFAULT_REQUEST_TIMEOUT_MS,
    general_method_timeout_ms=DEFAULT_GENERAL_METHOD_TIMEOUT_MS,
)


def defaultAPIOptions() -> FullAPIOptions:
    """
    Return the default APIOptions object, based on the
    'grand defaults' hardcoded in arangopy.
    """

    return FullAPIOptions(
        callers=[],
        database_additional_headers={},
        redacted_header_names=set(),
        auth=NoAuth(),
        default_database=DEFAULT_DATABASE_NAME,
        timeout_options=defaultTimeoutOptions,
    )
