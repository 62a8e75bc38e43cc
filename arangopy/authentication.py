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

import base64
from abc import ABC, abstractmethod
from typing import Any, Tuple, Union

from typing_extensions import override

from arangopy.settings.defaults import (
    BASIC_AUTH_PREFIX,
    BEARER_AUTH_PREFIX,
    SECRETS_REDACT_CHAR,
    SECRETS_REDACT_ENDING,
    SECRETS_REDACT_ENDING_LENGTH,
)
from arangopy.utils.unset import _UNSET, UnsetType

AuthType = Union["AuthProvider", Tuple[str, str], str, None]


def coerce_auth_provider(auth: AuthType) -> AuthProvider:
    """
    Normalize the accepted shorthands for credentials into an AuthProvider:
    None means no authentication, a string is a ready-made bearer token and
    a (username, password) pair stands for HTTP basic authentication.
    """
    if isinstance(auth, AuthProvider):
        return auth
    elif auth is None:
        return NoAuth()
    elif isinstance(auth, str):
        return BearerTokenAuth(auth)
    elif isinstance(auth, tuple) and len(auth) == 2:
        return BasicAuth(auth[0], auth[1])
    else:
        raise ValueError(
            "Unsupported credentials. Pass an AuthProvider, a "
            "(username, password) pair, a bearer token string or None."
        )


def coerce_possible_auth_provider(
    auth: AuthType | UnsetType,
) -> AuthProvider | UnsetType:
    if isinstance(auth, UnsetType):
        return _UNSET
    else:
        return coerce_auth_provider(auth)


def _redact_secret(secret: str, max_length: int, hide_if_short: bool = True) -> str:
    """
    Return a shortened-if-necessary version of a 'secret' string (with ellipsis).

    Args:
        secret: a secret string to redact
        max_length: if the secret and the fixed ending exceed this size,
            shortening takes place.
        hide_if_short: if True, a secret too short to be shortened is
            masked entirely; if False, it is returned as-is.
    """
    secret_len = len(secret)
    if secret_len + SECRETS_REDACT_ENDING_LENGTH > max_length:
        return (
            secret[: max_length - SECRETS_REDACT_ENDING_LENGTH] + SECRETS_REDACT_ENDING
        )
    else:
        if hide_if_short:
            return SECRETS_REDACT_CHAR * len(secret)
        else:
            return secret


class AuthProvider(ABC):
    """
    Abstract base class for a source of the `Authorization` header value.

    The header is computed once, when a Session is established, and then
    attached unchanged to every request issued through that Session.

    The __str__ / __repr__ methods never expose the actual secrets:
    use get_auth_header to obtain the header value.
    """

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AuthProvider):
            return (type(self), self.get_auth_header()) == (
                type(other),
                other.get_auth_header(),
            )
        else:
            return False

    def __hash__(self) -> int:
        return hash(self.get_auth_header())

    @abstractmethod
    def __repr__(self) -> str: ...

    @abstractmethod
    def get_auth_header(self) -> str | None:
        """
        Produce the value for the `Authorization` header, or None if
        the header is to be omitted altogether.
        """
        ...


class NoAuth(AuthProvider):
    """No authentication: requests carry no `Authorization` header."""

    @override
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    @override
    def get_auth_header(self) -> str | None:
        return None


class BasicAuth(AuthProvider):
    """
    HTTP basic authentication with a username and a password.

    Args:
        username: the database user.
        password: the password for the user.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import BasicAuth
        >>> client = ArangoClient(auth=BasicAuth("root", "openSesame"))
    """

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    @override
    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(username="{self.username}", '
            f"password={_redact_secret(self.password, 6)})"
        )

    @override
    def get_auth_header(self) -> str | None:
        token = base64.b64encode(
            f"{self.username}:{self.password}".encode("utf-8")
        ).decode("ascii")
        return f"{BASIC_AUTH_PREFIX}{token}"


class BearerTokenAuth(AuthProvider):
    """
    A "pass-through" provider for an already-issued token (typically a JWT),
    sent as `Authorization: Bearer <token>`.

    Args:
        token: the token string.
    """

    def __init__(self, token: str) -> None:
        self.token = token

    @override
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({_redact_secret(self.token, 15)})"

    @override
    def get_auth_header(self) -> str | None:
        return f"{BEARER_AUTH_PREFIX}{self.token}"


class JWTAuth(AuthProvider):
    """
    Username/password credentials to be exchanged for a JSON Web Token when
    the session is established (through the server's `/_open/auth` endpoint).
    After the exchange, the session authenticates with the obtained token as
    a bearer token. Expired tokens are not renewed: a new session is needed.

    Args:
        username: the database user.
        password: the password for the user.
    """

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    @override
    def __eq__(self, other: Any) -> bool:
        if isinstance(other, JWTAuth):
            return (self.username, self.password) == (other.username, other.password)
        else:
            return False

    @override
    def __hash__(self) -> int:
        return hash((self.username, self.password))

    @override
    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(username="{self.username}", '
            f"password={_redact_secret(self.password, 6)})"
        )

    @override
    def get_auth_header(self) -> str | None:
        # the login request itself is unauthenticated
        return None

    def login_payload(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}

    def exchange(self, jwt: str) -> BearerTokenAuth:
        """Turn the token returned by the login endpoint into a provider."""
        return BearerTokenAuth(jwt)
