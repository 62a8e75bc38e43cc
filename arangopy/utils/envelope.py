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
import json
import logging
from typing import Any, Callable, Dict, Sequence, TypeVar, Union, cast

from arangopy.exceptions import (
    ArangoResponseException,
    ArangoSerializationException,
)
from arangopy.transport import RawResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

# a mapper is either a callable taking one raw result item, or a dataclass
# type (whose constructor is then fed the item keys as keyword arguments).
ItemMapper = Union[Callable[[Any], T], type]


def _describe_field_type(value: Any) -> str:
    return type(value).__name__


def decode_envelope(
    raw_response: RawResponse,
    *,
    request_description: str | None = None,
) -> dict[str, Any]:
    """
    Decode a raw server response into its JSON envelope, raising the
    appropriate exception if the envelope signals an error.

    The body, not the HTTP status code, is authoritative: an envelope with
    `"error": true` raises ArangoResponseException regardless of the status,
    and a missing `error` key is taken to mean success.

    Args:
        raw_response: the response obtained from a transport.
        request_description: a "METHOD url" string for error messages.

    Returns:
        the envelope as a dictionary.

    Raises:
        ArangoSerializationException: the body is not a JSON object, or it
            is an error envelope lacking the error details.
        ArangoResponseException: the server signalled an error.
    """
    _desc = f" ({request_description})" if request_description else ""
    if not raw_response.body.strip() and raw_response.status_code >= 400:
        # e.g. bare 401s from servers/proxies not providing an envelope
        raise ArangoResponseException(
            f"HTTP {raw_response.status_code} with empty body{_desc}",
            code=raw_response.status_code,
            error_num=raw_response.status_code,
            error_message=f"HTTP {raw_response.status_code}",
            raw_response=None,
            request_description=request_description,
        )
    try:
        decoded = json.loads(raw_response.body)
    except ValueError:
        raise ArangoSerializationException(
            text=(
                f"Unparseable response (HTTP {raw_response.status_code})"
                f"{_desc}: '{raw_response.text[:200]}'"
            ),
            raw_response={"raw_response": raw_response.text},
        )
    if not isinstance(decoded, dict):
        raise ArangoSerializationException(
            text=(
                f"Response (HTTP {raw_response.status_code}){_desc} is a JSON "
                f"{_describe_field_type(decoded)}, not an object."
            ),
            raw_response=decoded,
        )
    envelope = cast(Dict[str, Any], decoded)
    error_flag = envelope.get("error")
    if error_flag is True:
        for field_name, field_type in (("errorNum", int), ("errorMessage", str)):
            if not isinstance(envelope.get(field_name), field_type):
                raise ArangoSerializationException(
                    text=(
                        f"Error envelope (HTTP {raw_response.status_code}){_desc} "
                        f"lacks a valid '{field_name}'."
                    ),
                    raw_response=envelope,
                    field=field_name,
                )
        logger.warning(
            f"Server returned error{_desc}: {envelope['errorNum']}, "
            f"'{envelope['errorMessage']}'"
        )
        raise ArangoResponseException.from_response(
            raw_response=envelope,
            status_code=raw_response.status_code,
            request_description=request_description,
        )
    elif error_flag is not None and error_flag is not False:
        raise ArangoSerializationException(
            text=f"Field 'error' is not a boolean{_desc}.",
            raw_response=envelope,
            field="error",
        )
    return envelope


def extract_field(
    envelope: dict[str, Any],
    field_name: str,
    expected_type: type | tuple[type, ...],
    *,
    required: bool = True,
) -> Any:
    """
    Get a field from a decoded envelope, checking its type.

    Absent fields (and JSON nulls) are returned as None if not required,
    while a wrong type is always an ArangoSerializationException.
    `bool` values are never accepted where an `int` is expected.
    """
    value = envelope.get(field_name)
    if value is None:
        if required:
            raise ArangoSerializationException(
                text=f"Response lacks required field '{field_name}'.",
                raw_response=envelope,
                field=field_name,
            )
        return None
    _types = expected_type if isinstance(expected_type, tuple) else (expected_type,)
    bool_mismatch = isinstance(value, bool) and bool not in _types
    if bool_mismatch or not isinstance(value, _types):
        expected_desc = "/".join(_t.__name__ for _t in _types)
        raise ArangoSerializationException(
            text=(
                f"Field '{field_name}' has type {_describe_field_type(value)}, "
                f"expected {expected_desc}."
            ),
            raw_response=envelope,
            field=field_name,
        )
    return value


def convert_item(item: Any, mapper: ItemMapper[T] | None) -> T:
    if mapper is None:
        return cast(T, item)
    if isinstance(mapper, type) and dataclasses.is_dataclass(mapper):
        if not isinstance(item, dict):
            raise TypeError(
                f"cannot build {mapper.__name__} from a "
                f"{_describe_field_type(item)}"
            )
        return cast(T, mapper(**item))
    return cast(T, mapper(item))


def convert_items(
    items: Sequence[Any],
    mapper: ItemMapper[T] | None,
    *,
    offset: int = 0,
) -> list[T]:
    """
    Convert a batch of raw result items to the caller-requested shape.

    Args:
        items: the raw JSON items of a batch.
        mapper: None to keep the raw JSON values, a dataclass type, or
            a callable applied to each item.
        offset: the position of the batch's first item in the overall
            result, used to name the failing item in errors.

    Raises:
        ArangoSerializationException: an item could not be converted. The
            `field` attribute reads e.g. "result[12]".
    """
    if mapper is None:
        return list(items)
    converted: list[T] = []
    for item_i, item in enumerate(items):
        try:
            converted.append(convert_item(item, mapper))
        except Exception as conv_exc:
            field_name = f"result[{offset + item_i}]"
            raise ArangoSerializationException(
                text=f"Could not convert {field_name}: {conv_exc}",
                raw_response=item,
                field=field_name,
            ) from conv_exc
    return converted
