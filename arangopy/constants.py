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

from typing import Optional, Tuple

# A caller identity, i.e. an application or framework issuing the requests,
# expressed as a (name, version) pair. Either may be None.
CallerType = Tuple[Optional[str], Optional[str]]


class ServerErrorNum:
    """
    A few well-known values of the `errorNum` field in the server error
    envelope. The catalog is the server's: values here are a convenience
    for matching and are never used to reinterpret a response.
    """

    HTTP_UNAUTHORIZED = 401
    FORBIDDEN = 11
    HTTP_NOT_FOUND = 404
    ARANGO_DATABASE_NOT_FOUND = 1228
    ARANGO_DATA_SOURCE_NOT_FOUND = 1203
    QUERY_PARSE = 1501
    QUERY_BIND_PARAMETER_MISSING = 1551
    QUERY_RESOURCE_LIMIT = 32
    CURSOR_NOT_FOUND = 1600
    CURSOR_BUSY = 1601
