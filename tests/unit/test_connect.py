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

import pytest
from pytest_httpserver import HTTPServer
from werkzeug.wrappers import Request, Response

from arangopy import ArangoClient
from arangopy.api_options import APIOptions, TimeoutOptions
from arangopy.authentication import BasicAuth, BearerTokenAuth, JWTAuth
from arangopy.exceptions import (
    ArangoResponseException,
    ArangoTimeoutException,
    ArangoTransportException,
)
from arangopy.transport import RequestsTransport

VERSION_RESPONSE = {"server": "arango", "version": "3.11.4", "license": "community"}
UNAUTHORIZED_RESPONSE = {
    "error": True,
    "code": 401,
    "errorNum": 401,
    "errorMessage": "not authorized to execute this request",
}
# nothing listens on this port
UNREACHABLE_ENDPOINT = "http://127.0.0.1:1"
BASIC_AUTH_HEADER = BasicAuth("root", "openSesame").get_auth_header()


class TestConnect:
    @pytest.mark.describe("test of connecting with basic auth, sync")
    def test_connect_basic_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
            headers={"Authorization": BASIC_AUTH_HEADER},
        ).respond_with_json(VERSION_RESPONSE)
        httpserver.expect_oneshot_request(
            "/_api/database/user",
            method="GET",
        ).respond_with_json({"error": False, "code": 200, "result": ["_system"]})
        client = ArangoClient(auth=("root", "openSesame"), callers=[("my_app", "1.0")])
        with client.connect(root_endpoint) as session:
            assert session.list_databases() == ["_system"]
            assert isinstance(session.auth, BasicAuth)
        user_agent = httpserver.log[0][0].headers["User-Agent"]
        assert user_agent.startswith("my_app/1.0 arangopy")

    @pytest.mark.describe("test of connecting with bad credentials, sync")
    def test_connect_bad_credentials_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
        ).respond_with_json(UNAUTHORIZED_RESPONSE, status=401)
        client = ArangoClient(auth=BasicAuth("root", "wrong"))
        with pytest.raises(ArangoResponseException) as exc_info:
            client.connect(root_endpoint)
        assert exc_info.value.code == 401
        assert exc_info.value.error_num == 401

    @pytest.mark.describe("test of connecting to a bare-401 server, sync")
    def test_connect_bare_unauthorized_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
        ).respond_with_data("", status=401)
        with pytest.raises(ArangoResponseException) as exc_info:
            ArangoClient().connect(root_endpoint)
        assert exc_info.value.code == 401

    @pytest.mark.describe("test of connecting to an unreachable host, sync")
    def test_connect_unreachable_sync(self) -> None:
        client = ArangoClient(auth=("root", "openSesame"))
        with pytest.raises(ArangoTransportException):
            client.connect(UNREACHABLE_ENDPOINT)

    @pytest.mark.describe("test of connecting with JWT exchange, sync")
    def test_connect_jwt_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_open/auth",
            method="POST",
            json={"username": "root", "password": "openSesame"},
        ).respond_with_json({"jwt": "the.jwt.token"})
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
            headers={"Authorization": "Bearer the.jwt.token"},
        ).respond_with_json(VERSION_RESPONSE)
        client = ArangoClient(auth=JWTAuth("root", "openSesame"))
        with client.connect(root_endpoint) as session:
            assert session.auth == BearerTokenAuth("the.jwt.token")
        assert "Authorization" not in httpserver.log[0][0].headers

    @pytest.mark.describe("test of JWT exchange with bad credentials, sync")
    def test_connect_jwt_rejected_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_open/auth",
            method="POST",
        ).respond_with_json(UNAUTHORIZED_RESPONSE, status=401)
        client = ArangoClient(auth=JWTAuth("root", "wrong"))
        with pytest.raises(ArangoResponseException) as exc_info:
            client.connect(root_endpoint)
        assert exc_info.value.code == 401

    @pytest.mark.describe("test of connecting with a user-provided transport, sync")
    def test_connect_custom_transport_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
        ).respond_with_json(VERSION_RESPONSE)
        httpserver.expect_oneshot_request(
            "/_db/_system/_api/cursor",
            method="POST",
            json={"query": "RETURN 1"},
        ).respond_with_json(
            {"error": False, "code": 201, "result": [1], "hasMore": False},
            status=201,
        )
        with RequestsTransport() as transport:
            session = ArangoClient().connect(root_endpoint, transport=transport)
            assert session.database().aql_str("RETURN 1") == [1]
            session.close()
            # a borrowed transport is still usable
            assert transport.session is not None

    @pytest.mark.describe("test of request timeouts, sync")
    def test_request_timeout_sync(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")

        def _slow_handler(request: Request) -> Response:
            time.sleep(1)
            return Response("{}", status=200, content_type="application/json")

        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
        ).respond_with_json(VERSION_RESPONSE)
        httpserver.expect_oneshot_request(
            "/_api/database/user",
            method="GET",
        ).respond_with_handler(_slow_handler)
        client = ArangoClient(
            api_options=APIOptions(
                timeout_options=TimeoutOptions(request_timeout_ms=200),
            ),
        )
        with client.connect(root_endpoint) as session:
            with pytest.raises(ArangoTimeoutException) as exc_info:
                session.list_databases()
        assert exc_info.value.timeout_type == "read"
        assert "request_timeout_ms = 200 ms" in exc_info.value.text


class TestConnectAsync:
    @pytest.mark.describe("test of connecting with basic auth, async")
    async def test_connect_basic_async(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
            headers={"Authorization": BASIC_AUTH_HEADER},
        ).respond_with_json(VERSION_RESPONSE)
        httpserver.expect_oneshot_request(
            "/_db/_system/_api/cursor",
            method="POST",
            json={"query": "RETURN 1"},
        ).respond_with_json(
            {"error": False, "code": 201, "result": [1], "hasMore": False},
            status=201,
        )
        client = ArangoClient(auth=("root", "openSesame"))
        async with await client.async_connect(root_endpoint) as session:
            assert await session.database().aql_str("RETURN 1") == [1]

    @pytest.mark.describe("test of connecting with bad credentials, async")
    async def test_connect_bad_credentials_async(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
        ).respond_with_json(UNAUTHORIZED_RESPONSE, status=401)
        client = ArangoClient(auth=BasicAuth("root", "wrong"))
        with pytest.raises(ArangoResponseException) as exc_info:
            await client.async_connect(root_endpoint)
        assert exc_info.value.code == 401

    @pytest.mark.describe("test of connecting with JWT exchange, async")
    async def test_connect_jwt_async(self, httpserver: HTTPServer) -> None:
        root_endpoint = httpserver.url_for("/")
        httpserver.expect_oneshot_request(
            "/_open/auth",
            method="POST",
            json={"username": "root", "password": "openSesame"},
        ).respond_with_json({"jwt": "the.jwt.token"})
        httpserver.expect_oneshot_request(
            "/_api/version",
            method="GET",
            headers={"Authorization": "Bearer the.jwt.token"},
        ).respond_with_json(VERSION_RESPONSE)
        client = ArangoClient()
        session = await client.async_connect(
            root_endpoint, auth=JWTAuth("root", "openSesame")
        )
        assert session.auth == BearerTokenAuth("the.jwt.token")
        await session.close()

    @pytest.mark.describe("test of connecting to an unreachable host, async")
    async def test_connect_unreachable_async(self) -> None:
        client = ArangoClient(auth=("root", "openSesame"))
        with pytest.raises(ArangoTransportException):
            await client.async_connect(UNREACHABLE_ENDPOINT)
