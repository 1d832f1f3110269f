"""Tests for the archive REST API client and the remote store."""

from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path
from unittest import mock

import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ArchiveCore.core.conditions import Condition
from ArchiveCore.core.models import ElementFilter, NewElement
from ArchiveCore.core.query import SearchRequest
from ArchiveCore.remote import client as client_module
from ArchiveCore.remote.client import MAX_ATTEMPTS, ArchiveApiClient
from ArchiveCore.remote.store import HttpSearchExecutor, HttpSignatureStore


def _response(status: int, payload=None, url: str = "http://archive.test/api/x") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
    response.url = url
    return response


def _element_payload(element_id: int, name: str, parents=()) -> dict:
    return {
        "signatureElementId": element_id,
        "signatureComponentId": 1,
        "name": name,
        "index": None,
        "description": None,
        "parentIds": list(parents),
    }


class TestArchiveApiClient(unittest.TestCase):
    def setUp(self) -> None:
        self.client = ArchiveApiClient("http://archive.test/api/", token="secret", timeout=5)
        sleep_patch = mock.patch.object(client_module.time, "sleep")
        self.sleep = sleep_patch.start()
        self.addCleanup(sleep_patch.stop)
        self.addCleanup(self.client.close)

    def test_bearer_token_and_url(self) -> None:
        with mock.patch.object(self.client._session, "request", return_value=_response(200, [])) as request:
            self.assertEqual(self.client.list_components(), [])
        request.assert_called_once_with("GET", "http://archive.test/api/signature/components", json=None, timeout=5)
        self.assertEqual(self.client._session.headers["Authorization"], "Bearer secret")

    def test_retries_transient_status_then_succeeds(self) -> None:
        responses = [_response(503), _response(429), _response(200, _element_payload(5, "Poland"))]
        with mock.patch.object(self.client._session, "request", side_effect=responses) as request:
            payload = self.client.get_element(5)
        self.assertEqual(payload["name"], "Poland")
        self.assertEqual(request.call_count, 3)
        self.assertEqual(self.sleep.call_count, 2)

    def test_retries_connection_errors_until_exhausted(self) -> None:
        with mock.patch.object(
            self.client._session, "request", side_effect=requests.ConnectionError("refused")
        ) as request:
            with self.assertRaises(requests.ConnectionError):
                self.client.list_components()
        self.assertEqual(request.call_count, MAX_ATTEMPTS)
        self.assertEqual(self.sleep.call_count, MAX_ATTEMPTS - 1)

    def test_not_found_element_is_none(self) -> None:
        with mock.patch.object(self.client._session, "request", return_value=_response(404, {"error": "x"})):
            self.assertIsNone(self.client.get_element(999))

    def test_client_error_is_not_retried(self) -> None:
        with mock.patch.object(self.client._session, "request", return_value=_response(400, {"error": "bad"})) as request:
            with self.assertRaises(requests.HTTPError):
                self.client.search("documents", {"query": [], "page": 1, "pageSize": 10})
        self.assertEqual(request.call_count, 1)
        self.sleep.assert_not_called()

    def test_unknown_entity(self) -> None:
        with self.assertRaises(ValueError):
            self.client.search("boxes", {})

    def test_invalid_json(self) -> None:
        broken = _response(200)
        broken._content = b"<html>"
        with mock.patch.object(self.client._session, "request", return_value=broken):
            with self.assertRaises(ValueError):
                self.client.list_components()


class TestHttpStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = mock.Mock(spec=ArchiveApiClient)

    async def test_search_posts_wire_request(self) -> None:
        self.client.search.return_value = {
            "data": [{"tagId": 3, "name": "letter", "description": None}],
            "page": 1,
            "pageSize": 10,
            "totalSize": 1,
            "totalPages": 1,
        }
        executor = HttpSearchExecutor(self.client, "tags")
        response = await executor.execute(SearchRequest())
        self.client.search.assert_called_once_with("tags", {"query": [], "page": 1, "pageSize": 10})
        self.assertEqual(response.data[0].name, "letter")

    async def test_list_elements_filters_and_sorts(self) -> None:
        self.client.search.return_value = {
            "data": [_element_payload(11, "Warsaw", [5]), _element_payload(12, "Krakow", [5])],
            "page": 1,
            "pageSize": 50,
            "totalSize": 2,
            "totalPages": 0,
        }
        store = HttpSignatureStore(self.client)
        elements = await store.list_elements(ElementFilter(parent_id=5, name_fragment="w", max_results=50))

        self.assertEqual([element.name for element in elements], ["Krakow", "Warsaw"])
        entity, request = self.client.search.call_args.args
        self.assertEqual(entity, "signatureElements")
        self.assertEqual(
            request["query"],
            [
                {"field": "name", "condition": Condition.FRAGMENT.value, "value": "w", "not": False},
                {"field": "parentIds", "condition": Condition.ANY_OF.value, "value": [5], "not": False},
            ],
        )
        self.assertEqual(request["pageSize"], 50)

    async def test_get_and_create_element(self) -> None:
        self.client.get_element.return_value = None
        self.client.create_element.return_value = _element_payload(20, "Gdansk", [5])
        store = HttpSignatureStore(self.client)

        self.assertIsNone(await store.get_element_by_id(20))
        created = await store.create_element(NewElement(component_id=1, name="Gdansk", parent_ids=(5,)))

        self.assertEqual(created.parent_ids, frozenset({5}))
        self.client.create_element.assert_called_once_with(
            {"signatureComponentId": 1, "name": "Gdansk", "parentIds": [5]}
        )

    def test_unknown_entity(self) -> None:
        with self.assertRaises(ValueError):
            HttpSearchExecutor(self.client, "boxes")


if __name__ == "__main__":
    unittest.main()
