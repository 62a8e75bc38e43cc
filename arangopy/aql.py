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

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Sequence

from arangopy.utils.unset import _UNSET, UnsetType


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class AqlOptions:
    """
    Query options for the server, sent in the `options` sub-object of the
    query request. Only the options explicitly set are sent.

    Attributes:
        fail_on_warning: if True, the query aborts instead of producing
            a warning.
        profile: if True (or 1), query profiling information is returned in
            the `extra` of the result; 2 adds per-node statistics.
        max_warning_count: the maximum number of warnings to return.
        full_count: for queries with a top-level LIMIT, have the server
            count the matches as if the limit were absent (the value ends
            up in the stats of the query).
        max_plans: limit on the number of plans considered by the optimizer.
        optimizer_rules: to-be-included ("+rule") or to-be-excluded
            ("-rule") optimizer rules. "all" matches every rule.
        max_runtime: a server-side time limit for the query, in seconds.
        stream: if True, results are produced lazily by the server as
            batches are fetched, instead of being computed upfront.
    """

    fail_on_warning: bool | UnsetType = _UNSET
    profile: bool | int | UnsetType = _UNSET
    max_warning_count: int | UnsetType = _UNSET
    full_count: bool | UnsetType = _UNSET
    max_plans: int | UnsetType = _UNSET
    optimizer_rules: Sequence[str] | UnsetType = _UNSET
    max_runtime: float | UnsetType = _UNSET
    stream: bool | UnsetType = _UNSET

    def __post_init__(self) -> None:
        for int_name in ("max_warning_count", "max_plans"):
            int_value = getattr(self, int_name)
            if not isinstance(int_value, UnsetType):
                if not _is_int(int_value) or int_value < 0:
                    raise ValueError(
                        f"Option '{int_name}' must be a non-negative integer."
                    )
        if not isinstance(self.max_runtime, UnsetType):
            if not _is_number(self.max_runtime) or self.max_runtime < 0:
                raise ValueError("Option 'max_runtime' must be a non-negative number.")
        if not isinstance(self.optimizer_rules, UnsetType):
            if isinstance(self.optimizer_rules, str):
                raise ValueError("Option 'optimizer_rules' must be a list of strings.")
            object.__setattr__(self, "optimizer_rules", tuple(self.optimizer_rules))

    def as_dict(self) -> dict[str, Any]:
        options_dict: dict[str, Any] = {
            k: v
            for k, v in {
                "failOnWarning": self.fail_on_warning,
                "profile": self.profile,
                "maxWarningCount": self.max_warning_count,
                "fullCount": self.full_count,
                "maxPlans": self.max_plans,
                "maxRuntime": self.max_runtime,
                "stream": self.stream,
            }.items()
            if not isinstance(v, UnsetType)
        }
        if not isinstance(self.optimizer_rules, UnsetType):
            options_dict["optimizer"] = {"rules": list(self.optimizer_rules)}
        return options_dict


@dataclass(frozen=True)
class AqlQuery:
    """
    An AQL statement, with its bind variables and execution settings, ready
    to be submitted to the server. Instances are immutable: all methods
    returning a modified query leave the original untouched.

    The query text is opaque to the client and sent verbatim. Bind variable
    names are also passed verbatim: use the "@" prefix for collection-name
    variables (e.g. key "@coll" for `@@coll` in the query text) and plain
    names for values.

    Fields that are not set are omitted from the request payload altogether
    (as opposed to being sent as null), letting the server apply its defaults.

    Attributes:
        query: the AQL text.
        bind_vars: a mapping from variable names to JSON-serializable values.
            A value of None is sent as JSON null.
        batch_size: the maximum number of results per batch (server-side
            cursor page). A positive integer.
        count: if True, the total number of results is computed by the
            server and made available on the cursor.
        cache: whether the server query results cache may be used.
        memory_limit: the maximum memory, in bytes, the query may use.
        ttl: the time, in seconds, the server keeps an idle cursor alive.
            This is a server-side expiry, unrelated to client timeouts.
        full_count: shorthand for the same-named entry in `options`.
            If both are set, this takes precedence.
        options: further query options, see AqlOptions.

    Example:
        >>> from arangopy.aql import AqlQuery
        >>> query = (
        ...     AqlQuery("FOR u IN @@coll LIMIT @n RETURN u")
        ...     .bind_var("@coll", "users")
        ...     .bind_var("n", 3)
        ...     .with_batch_size(2)
        ... )
        >>> query.to_payload()
        {'query': 'FOR u IN @@coll LIMIT @n RETURN u', 'bindVars': {'@coll': 'users', 'n': 3}, 'batchSize': 2}
    """

    query: str
    bind_vars: Mapping[str, Any] = field(default_factory=dict)
    batch_size: int | UnsetType = _UNSET
    count: bool | UnsetType = _UNSET
    cache: bool | UnsetType = _UNSET
    memory_limit: int | UnsetType = _UNSET
    ttl: int | float | UnsetType = _UNSET
    full_count: bool | UnsetType = _UNSET
    options: AqlOptions | UnsetType = _UNSET

    # bind variable values are arbitrary JSON, hence not hashable
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if not isinstance(self.query, str):
            raise ValueError("The query text must be a string.")
        bad_keys = [k for k in self.bind_vars if not isinstance(k, str)]
        if bad_keys:
            raise ValueError(f"Bind variable names must be strings: {bad_keys}.")
        # private copy, so that later changes to the caller's dict do not leak in
        object.__setattr__(self, "bind_vars", dict(self.bind_vars))
        if not isinstance(self.batch_size, UnsetType):
            if not _is_int(self.batch_size) or self.batch_size <= 0:
                raise ValueError("Parameter 'batch_size' must be a positive integer.")
        if not isinstance(self.memory_limit, UnsetType):
            if not _is_int(self.memory_limit) or self.memory_limit < 0:
                raise ValueError(
                    "Parameter 'memory_limit' must be a non-negative integer."
                )
        if not isinstance(self.ttl, UnsetType):
            if not _is_number(self.ttl) or self.ttl <= 0:
                raise ValueError("Parameter 'ttl' must be a positive number.")
        if not isinstance(self.options, (AqlOptions, UnsetType)):
            raise ValueError("Parameter 'options' must be an AqlOptions object.")

    def _copy(self, **kwargs: Any) -> AqlQuery:
        return dataclasses.replace(self, **kwargs)

    def bind_var(self, name: str, value: Any) -> AqlQuery:
        """
        Return a copy of this query with a bind variable set. If the variable
        was already bound, its value is replaced.

        Args:
            name: the bind variable name, e.g. "limit" for `@limit` or
                "@coll" for a collection bound as `@@coll`.
            value: any JSON-serializable value, including None.
        """
        return self._copy(bind_vars={**self.bind_vars, name: value})

    def bind_vars_from(self, bind_vars: Mapping[str, Any]) -> AqlQuery:
        """
        Return a copy of this query with several bind variables set at once,
        replacing the values of variables already bound.
        """
        return self._copy(bind_vars={**self.bind_vars, **bind_vars})

    def with_batch_size(self, batch_size: int) -> AqlQuery:
        return self._copy(batch_size=batch_size)

    def with_count(self, count: bool = True) -> AqlQuery:
        return self._copy(count=count)

    def with_cache(self, cache: bool = True) -> AqlQuery:
        return self._copy(cache=cache)

    def with_memory_limit(self, memory_limit: int) -> AqlQuery:
        return self._copy(memory_limit=memory_limit)

    def with_ttl(self, ttl: int | float) -> AqlQuery:
        return self._copy(ttl=ttl)

    def with_full_count(self, full_count: bool = True) -> AqlQuery:
        return self._copy(full_count=full_count)

    def with_options(self, options: AqlOptions) -> AqlQuery:
        return self._copy(options=options)

    def to_payload(self) -> dict[str, Any]:
        """
        Build the JSON body for the query-submission request.
        Unset parameters are omitted, never sent as null.
        """
        payload: Dict[str, Any] = {"query": self.query}
        if self.bind_vars:
            payload["bindVars"] = dict(self.bind_vars)
        for wire_name, value in (
            ("count", self.count),
            ("batchSize", self.batch_size),
            ("cache", self.cache),
            ("memoryLimit", self.memory_limit),
            ("ttl", self.ttl),
        ):
            if not isinstance(value, UnsetType):
                payload[wire_name] = value
        options_dict = (
            self.options.as_dict() if isinstance(self.options, AqlOptions) else {}
        )
        if not isinstance(self.full_count, UnsetType):
            options_dict["fullCount"] = self.full_count
        if options_dict:
            payload["options"] = options_dict
        return payload


__all__ = [
    "AqlOptions",
    "AqlQuery",
]
