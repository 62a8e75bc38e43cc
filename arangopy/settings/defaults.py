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

# Default database for sessions, and the path prefix to scope requests to one
DEFAULT_DATABASE_NAME = "_system"
DATABASE_PATH_TEMPLATE = "_db/{database}"

# Server API paths
API_VERSION_PATH = "_api/version"
API_CURSOR_PATH = "_api/cursor"
API_DATABASE_PATH = "_api/database"
API_DATABASE_CURRENT_PATH = "_api/database/current"
API_DATABASE_USER_PATH = "_api/database/user"
API_COLLECTION_PATH = "_api/collection"
JWT_LOGIN_PATH = "_open/auth"

# Defaults/settings for requests
DEFAULT_REQUEST_TIMEOUT_MS = 10000
DEFAULT_GENERAL_METHOD_TIMEOUT_MS = 30000
DEFAULT_AUTH_HEADER = "Authorization"
BASIC_AUTH_PREFIX = "Basic "
BEARER_AUTH_PREFIX = "Bearer "

# Settings for redacting secrets in string representations and logging
SECRETS_REDACT_ENDING = "..."
SECRETS_REDACT_CHAR = "*"
SECRETS_REDACT_ENDING_LENGTH = 3
FIXED_SECRET_PLACEHOLDER = "***"
DEFAULT_REDACTED_HEADER_NAMES = {
    DEFAULT_AUTH_HEADER,
}
