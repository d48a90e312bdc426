from __future__ import annotations

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from brd_client import HttpBrdClient  # noqa: E402
from errors import ExternalCollaboratorError  # noqa: E402


def _response(status: int, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.content = b"{}" if body is not None else b""
    response.text = ""
    response.json.return_value = body
    return response


class HttpBrdClientTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.session = MagicMock()
        self.client = HttpBrdClient("http://brd.local/api/", timeout=5, session=self.session)

    async def test_get_parses_envelope(self) -> None:
        self.session.request.return_value = _response(
            200, {"status": "SUCCESS", "message": "ok", "data": {"brdId": "B-1"}}
        )
        response = await self.client.get_brd_by_id("B-1")
        self.assertEqual(response.data, {"brdId": "B-1"})
        method, url = self.session.request.call_args.args
        self.assertEqual((method, url), ("GET", "http://brd.local/api/brds/B-1"))

    async def test_partial_update_sends_fields(self) -> None:
        self.session.request.return_value = _response(200, {"status": "SUCCESS", "message": "ok"})
        await self.client.update_brd_partially_with_ordered_operations("B-1", {"ivr": {"enabled": True}})
        call = self.session.request.call_args
        self.assertEqual(call.args, ("PATCH", "http://brd.local/api/brds/B-1/ordered"))
        self.assertEqual(call.kwargs["json"], {"ivr": {"enabled": True}})

    async def test_not_found_and_empty_body_are_none(self) -> None:
        self.session.request.return_value = _response(404)
        self.assertIsNone(await self.client.get_brd_by_id("B-1"))
        self.session.request.return_value = _response(204)
        self.assertIsNone(await self.client.get_brd_by_id("B-1"))

    async def test_errors_become_collaborator_errors(self) -> None:
        self.session.request.return_value = _response(500, {"message": "boom"})
        with self.assertRaises(ExternalCollaboratorError) as ctx:
            await self.client.get_brd_by_id("B-1")
        self.assertIn("boom", str(ctx.exception))

        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ExternalCollaboratorError):
            await self.client.get_brd_by_id("B-1")

    async def test_non_object_error_body_is_still_a_collaborator_error(self) -> None:
        for body in (["boom"], "boom"):
            self.session.request.return_value = _response(500, body)
            with self.assertRaises(ExternalCollaboratorError) as ctx:
                await self.client.update_brd_partially_with_ordered_operations("B-1", {"ivr": {}})
            self.assertIn("boom", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
