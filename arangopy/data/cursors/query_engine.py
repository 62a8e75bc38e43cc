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

import logging
from typing import Any

from arangopy.aql import AqlQuery
from arangopy.constants import ServerErrorNum
from arangopy.data.cursors.pagination import CursorBatch
from arangopy.exceptions import ArangoResponseException, _TimeoutContext
from arangopy.settings.defaults import API_CURSOR_PATH
from arangopy.utils.api_commander import APICommander
from arangopy.utils.request_tools import HttpMethod

logger = logging.getLogger(__name__)


def _is_cursor_gone(exc: ArangoResponseException) -> bool:
    return (
        exc.code == ServerErrorNum.HTTP_NOT_FOUND
        or exc.error_num == ServerErrorNum.CURSOR_NOT_FOUND
    )


class _AqlQueryEngine:
    """
    The cursor protocol, written once for both execution models: each
    exchange is described as a (method, path, payload) request and its
    response is parsed by the same code, while only the actual sending is
    done through the blocking or the async side of the API commander.

    An engine is bound to a database (through the commander's base path).
    """

    api_commander: APICommander
    database_name: str

    def __init__(
        self,
        *,
        api_commander: APICommander,
        database_name: str,
    ) -> None:
        self.api_commander = api_commander
        self.database_name = database_name

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(database="{self.database_name}")'

    @staticmethod
    def _submit_request(query: AqlQuery) -> dict[str, Any]:
        return {
            "http_method": HttpMethod.POST,
            "additional_path": API_CURSOR_PATH,
            "payload": query.to_payload(),
        }

    @staticmethod
    def _fetch_request(cursor_id: str) -> dict[str, Any]:
        return {
            "http_method": HttpMethod.PUT,
            "additional_path": f"{API_CURSOR_PATH}/{cursor_id}",
            "payload": None,
        }

    @staticmethod
    def _release_request(cursor_id: str) -> dict[str, Any]:
        return {
            "http_method": HttpMethod.DELETE,
            "additional_path": f"{API_CURSOR_PATH}/{cursor_id}",
            "payload": None,
        }

    def _submit(
        self,
        query: AqlQuery,
        *,
        timeout_context: _TimeoutContext,
    ) -> CursorBatch:
        logger.info(f"submitting query to '{self.database_name}'")
        envelope = self.api_commander.request(
            **self._submit_request(query),
            timeout_context=timeout_context,
        )
        logger.info(f"finished submitting query to '{self.database_name}'")
        return CursorBatch._from_envelope(envelope)

    async def _async_submit(
        self,
        query: AqlQuery,
        *,
        timeout_context: _TimeoutContext,
    ) -> CursorBatch:
        logger.info(f"submitting query to '{self.database_name}', async")
        envelope = await self.api_commander.async_request(
            **self._submit_request(query),
            timeout_context=timeout_context,
        )
        logger.info(f"finished submitting query to '{self.database_name}', async")
        return CursorBatch._from_envelope(envelope)

    def _fetch_batch(
        self,
        cursor_id: str,
        *,
        timeout_context: _TimeoutContext,
    ) -> CursorBatch:
        logger.info(f"cursor fetching a batch: {cursor_id} on '{self.database_name}'")
        envelope = self.api_commander.request(
            **self._fetch_request(cursor_id),
            timeout_context=timeout_context,
        )
        logger.info(
            f"cursor finished fetching a batch: {cursor_id} on '{self.database_name}'"
        )
        return CursorBatch._from_envelope(envelope)

    async def _async_fetch_batch(
        self,
        cursor_id: str,
        *,
        timeout_context: _TimeoutContext,
    ) -> CursorBatch:
        logger.info(
            f"cursor fetching a batch: {cursor_id} on '{self.database_name}', async"
        )
        envelope = await self.api_commander.async_request(
            **self._fetch_request(cursor_id),
            timeout_context=timeout_context,
        )
        logger.info(
            f"cursor finished fetching a batch: {cursor_id} "
            f"on '{self.database_name}', async"
        )
        return CursorBatch._from_envelope(envelope)

    def _release(
        self,
        cursor_id: str,
        *,
        timeout_context: _TimeoutContext,
    ) -> bool:
        """
        Delete the server cursor. Return False if it was already gone
        (expired or deleted), which is not an error.
        """
        logger.info(f"releasing cursor {cursor_id} on '{self.database_name}'")
        try:
            self.api_commander.request(
                **self._release_request(cursor_id),
                timeout_context=timeout_context,
            )
        except ArangoResponseException as exc:
            if _is_cursor_gone(exc):
                logger.info(f"cursor {cursor_id} was already gone on the server")
                return False
            raise
        logger.info(f"finished releasing cursor {cursor_id} on '{self.database_name}'")
        return True

    async def _async_release(
        self,
        cursor_id: str,
        *,
        timeout_context: _TimeoutContext,
    ) -> bool:
        logger.info(f"releasing cursor {cursor_id} on '{self.database_name}', async")
        try:
            await self.api_commander.async_request(
                **self._release_request(cursor_id),
                timeout_context=timeout_context,
            )
        except ArangoResponseException as exc:
            if _is_cursor_gone(exc):
                logger.info(f"cursor {cursor_id} was already gone on the server")
                return False
            raise
        logger.info(
            f"finished releasing cursor {cursor_id} on '{self.database_name}', async"
        )
        return True
