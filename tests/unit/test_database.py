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

import pytest

from arangopy import AqlQuery, AsyncSession, Session
from arangopy.authentication import NoAuth
from arangopy.constants import ServerErrorNum
from arangopy.cursors import CursorState
from arangopy.exceptions import ArangoResponseException, ArangoSerializationException
from arangopy.info import CollectionType
from arangopy.utils.api_options import defaultAPIOptions

from ..conftest import (
    TEST_API_ENDPOINT,
    TEST_DATABASE,
    AsyncScriptedTransport,
    ScriptedTransport,
    cursor_response,
    error_response,
    json_response,
)

DB_URL = f"{TEST_API_ENDPOINT}/_db/{TEST_DATABASE}"
COLLECTION_LIST = [
    {"name": "_graphs", "id": "6", "type": 2, "status": 3, "isSystem": True},
    {"name": "users", "id": "101", "type": 2, "status": 3, "isSystem": False},
    {"name": "knows", "id": "102", "type": 3, "status": 3, "isSystem": False},
]


@dataclass
class User:
    name: str
    age: int


class TestSession:
    @pytest.mark.describe("test of session server-level requests")
    def test_session_requests(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            json_response(
                {"server": "arango", "version": "3.11.4", "license": "community"}
            ),
            json_response({"error": False, "code": 200, "result": ["_system", "db1"]}),
            json_response({"error": False, "code": 200, "result": ["_system"]}),
        )
        version = session.version()
        assert version.server == "arango"
        assert version.version == "3.11.4"
        assert version.license == "community"
        assert session.list_databases() == ["_system", "db1"]
        assert session.list_all_databases() == ["_system"]
        assert [call.url for call in transport.calls] == [
            f"{TEST_API_ENDPOINT}/_api/version",
            f"{TEST_API_ENDPOINT}/_api/database/user",
            f"{TEST_API_ENDPOINT}/_db/_system/_api/database",
        ]
        assert all(call.method == "GET" for call in transport.calls)
        assert all(call.payload is None for call in transport.calls)

    @pytest.mark.describe("test of session database handles")
    def test_session_database(self, session: Session) -> None:
        db1 = session.database(TEST_DATABASE)
        assert db1.name == TEST_DATABASE
        assert db1 == session.database(TEST_DATABASE)
        assert db1 != session.database("other")
        assert session.database().name == "_system"
        assert db1.session is session

    @pytest.mark.describe("test of database names quoted in paths")
    def test_session_database_name_quoting(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(cursor_response([1], has_more=False))
        session.database("my db/x").aql_str("RETURN 1")
        assert transport.calls[0].url == (
            f"{TEST_API_ENDPOINT}/_db/my%20db%2Fx/_api/cursor"
        )

    @pytest.mark.describe("test of session generic request")
    def test_session_generic_request(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(json_response({"error": False, "code": 200, "x": 1}))
        response = session.request(
            "GET",
            "/_admin/status",
            request_params={"details": "true"},
            timeout_ms=500,
        )
        assert response["x"] == 1
        call = transport.calls[0]
        assert call.url == f"{TEST_API_ENDPOINT}/_admin/status"
        assert call.params == {"details": "true"}
        assert call.timeout_context.request_ms == 500
        assert call.timeout_context.label == "timeout_ms"

    @pytest.mark.describe("test of session closing its own transport only")
    def test_session_close(self, transport: ScriptedTransport) -> None:
        borrowing_session = Session(
            api_endpoint=TEST_API_ENDPOINT,
            auth=NoAuth(),
            api_options=defaultAPIOptions(),
            transport=transport,
            owns_transport=False,
        )
        borrowing_session.close()
        assert not transport.closed
        with Session(
            api_endpoint=TEST_API_ENDPOINT,
            auth=NoAuth(),
            api_options=defaultAPIOptions(),
            transport=transport,
        ):
            pass
        assert transport.closed


class TestDatabase:
    @pytest.mark.describe("test of database info")
    def test_database_info(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            json_response(
                {
                    "error": False,
                    "code": 200,
                    "result": {
                        "name": TEST_DATABASE,
                        "id": "123",
                        "path": "none",
                        "isSystem": False,
                    },
                }
            ),
            error_response(404, 1228, "database not found"),
        )
        db_info = session.database(TEST_DATABASE).info()
        assert db_info.name == TEST_DATABASE
        assert db_info.id == "123"
        assert db_info.is_system is False
        assert transport.calls[0].url == f"{DB_URL}/_api/database/current"
        with pytest.raises(ArangoResponseException) as exc_info:
            session.database("nope").info()
        assert exc_info.value.error_num == ServerErrorNum.ARANGO_DATABASE_NOT_FOUND

    @pytest.mark.describe("test of listing collections")
    def test_database_list_collections(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            json_response({"error": False, "code": 200, "result": COLLECTION_LIST[1:]}),
            json_response({"error": False, "code": 200, "result": COLLECTION_LIST}),
        )
        database = session.database(TEST_DATABASE)
        user_colls = database.list_collections()
        assert [c_info.name for c_info in user_colls] == ["users", "knows"]
        assert user_colls[1].type == CollectionType.EDGE
        assert transport.calls[0].url == f"{DB_URL}/_api/collection"
        assert transport.calls[0].params == {"excludeSystem": "true"}
        all_colls = database.list_collections(exclude_system=False)
        assert len(all_colls) == 3
        assert all_colls[0].is_system
        assert transport.calls[1].params == {"excludeSystem": "false"}

    @pytest.mark.describe("test of one-shot queries")
    def test_database_aql_query(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([1, 4], has_more=True, cursor_id="q1"),
            cursor_response([9, 16], has_more=False, cursor_id="q1", status_code=200),
        )
        database = session.database(TEST_DATABASE)
        results = database.aql_query(
            AqlQuery("FOR i IN 1..@n RETURN i * i").bind_var("n", 4)
        )
        assert results == [1, 4, 9, 16]
        assert transport.calls[0].payload == {
            "query": "FOR i IN 1..@n RETURN i * i",
            "bindVars": {"n": 4},
        }
        assert [call.method for call in transport.calls] == ["POST", "PUT"]

    @pytest.mark.describe("test of text queries, with and without bind vars")
    def test_database_aql_str_bind_vars(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([2], has_more=False),
            cursor_response(
                [{"name": "Ann", "age": 31}, {"name": "Cy", "age": 40}],
                has_more=False,
            ),
        )
        database = session.database(TEST_DATABASE)
        assert database.aql_str("RETURN 1 + 1") == [2]
        assert transport.calls[0].payload == {"query": "RETURN 1 + 1"}
        users = database.aql_bind_vars(
            "FOR u IN @@coll FILTER u.age > @age RETURN u",
            {"@coll": "users", "age": 30},
            mapper=User,
        )
        assert users == [User("Ann", 31), User("Cy", 40)]
        assert transport.calls[1].payload["bindVars"] == {"@coll": "users", "age": 30}

    @pytest.mark.describe("test of one-shot queries releasing cursors on errors")
    def test_database_aql_query_error(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([{"name": "Ann"}], has_more=True, cursor_id="e1"),
            json_response({"error": False, "code": 202}, 202),
        )
        with pytest.raises(ArangoSerializationException):
            session.database(TEST_DATABASE).aql_str(
                "FOR u IN users RETURN u", mapper=User
            )
        deletes = transport.calls_by_method("DELETE")
        assert len(deletes) == 1
        assert deletes[0].url == f"{DB_URL}/_api/cursor/e1"

    @pytest.mark.describe("test of cursor timeouts")
    def test_database_cursor_timeouts(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([1], has_more=True, cursor_id="w1"),
            cursor_response([2], has_more=False, status_code=200),
        )
        cursor = session.database(TEST_DATABASE).aql_cursor(
            AqlQuery("RETURN 1"), request_timeout_ms=1234
        )
        assert cursor.to_list() == [1, 2]
        assert all(call.timeout_context.request_ms for call in transport.calls)
        assert transport.calls[0].timeout_context.request_ms == 1234
        assert transport.calls[1].timeout_context.request_ms <= 1234


class TestCollection:
    @pytest.mark.describe("test of collection handles and info")
    def test_collection_info(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            json_response(
                {
                    "error": False,
                    "code": 200,
                    "name": "users",
                    "id": "101",
                    "type": 2,
                    "status": 3,
                    "isSystem": False,
                    "globallyUniqueId": "h1/101",
                }
            ),
            error_response(404, 1203, "collection or view not found: nope"),
        )
        database = session.database(TEST_DATABASE)
        users = database.collection("users")
        assert users == database["users"]
        assert users.database is database
        c_info = users.info()
        assert c_info.name == "users"
        assert c_info.type == CollectionType.DOCUMENT
        assert c_info.globally_unique_id == "h1/101"
        assert transport.calls[0].url == f"{DB_URL}/_api/collection/users"
        with pytest.raises(ArangoResponseException) as exc_info:
            database.collection("nope").info()
        assert exc_info.value.code == 404
        assert exc_info.value.error_num == 1203

    @pytest.mark.describe("test of collection count")
    def test_collection_count(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            json_response({"error": False, "code": 200, "name": "users", "count": 5}),
            json_response({"error": False, "code": 200, "name": "users"}),
        )
        users = session.database(TEST_DATABASE).collection("users")
        assert users.count() == 5
        assert transport.calls[0].url == f"{DB_URL}/_api/collection/users/count"
        with pytest.raises(ArangoSerializationException) as exc_info:
            users.count()
        assert exc_info.value.field == "count"

    @pytest.mark.describe("test of the all-documents cursor")
    def test_collection_all(
        self, session: Session, transport: ScriptedTransport
    ) -> None:
        transport.enqueue(
            cursor_response([{"name": "Ann", "age": 30}], has_more=False),
        )
        users = session.database(TEST_DATABASE).collection("users")
        with users.all(batch_size=100, mapper=User) as cursor:
            assert cursor.to_list() == [User("Ann", 30)]
        assert cursor.state == CursorState.CLOSED
        assert transport.calls[0].payload == {
            "query": "FOR d IN @@collection RETURN d",
            "bindVars": {"@collection": "users"},
            "batchSize": 100,
        }


class TestAsyncDatabase:
    @pytest.mark.describe("test of session server-level requests, async")
    async def test_session_requests_async(
        self,
        async_session: AsyncSession,
        async_transport: AsyncScriptedTransport,
    ) -> None:
        async_transport.enqueue(
            json_response({"server": "arango", "version": "3.12.0"}),
            json_response({"error": False, "code": 200, "result": ["_system"]}),
        )
        version = await async_session.version()
        assert version.version == "3.12.0"
        assert version.license is None
        assert await async_session.list_databases() == ["_system"]

    @pytest.mark.describe("test of database and collection methods, async")
    async def test_database_collection_async(
        self,
        async_session: AsyncSession,
        async_transport: AsyncScriptedTransport,
    ) -> None:
        async_transport.enqueue(
            json_response({"error": False, "code": 200, "result": COLLECTION_LIST}),
            json_response({"error": False, "code": 200, "name": "users", "count": 2}),
            cursor_response([{"name": "Ann"}], has_more=True, cursor_id="z1"),
            cursor_response([{"name": "Bob"}], has_more=False, status_code=200),
            cursor_response(["Ann", "Bob"], has_more=False),
        )
        database = async_session.database(TEST_DATABASE)
        colls = await database.list_collections()
        assert [c_info.name for c_info in colls] == ["users", "knows"]
        users = database["users"]
        assert await users.count() == 2
        cursor = await users.all()
        assert [doc["name"] async for doc in cursor] == ["Ann", "Bob"]
        assert await database.aql_bind_vars(
            "FOR u IN @@coll RETURN u.name", {"@coll": "users"}
        ) == ["Ann", "Bob"]
        assert async_transport.calls_by_method("DELETE") == []
