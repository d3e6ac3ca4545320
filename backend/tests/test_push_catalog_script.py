"""
Tests for the push_catalog feed client script.
"""

import json
from pathlib import Path

import httpx

from scripts.push_catalog import PUSH_PATH, main


def _write_feed(path: Path, payload: dict) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_validate_only_reports_feed_summary(tmp_path, make_payload, capsys):
    feed = _write_feed(
        tmp_path / "feed.json",
        make_payload(variations=[{"product_id": "P1", "name": "single", "price": 40}]),
    )

    assert main([feed, "--validate-only"]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary == {"store_id": "STORE-1", "products": 1, "variations": 1, "valid": True}


def test_invalid_feed_exits_2(tmp_path, make_payload):
    feed = _write_feed(tmp_path / "feed.json", make_payload(products=[]))
    assert main([feed, "--validate-only"]) == 2


def test_missing_file_exits_2(tmp_path):
    assert main([str(tmp_path / "missing.json"), "--validate-only"]) == 2


def test_push_sends_feed_with_token(tmp_path, make_payload, capsys):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "success", "data": {"products_created": 1}, "message": "ok"})

    feed = _write_feed(tmp_path / "feed.json", make_payload())

    code = main([feed, "--base-url", "http://catalog.test", "--token", "secret-token"], transport=httpx.MockTransport(handler))

    assert code == 0
    assert seen["path"] == PUSH_PATH
    assert seen["auth"] == "Bearer secret-token"
    assert seen["body"]["store_details"]["store_id"] == "STORE-1"
    assert json.loads(capsys.readouterr().out) == {"products_created": 1}


def test_server_error_exits_1(tmp_path, make_payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": {"code": "PRODUCT_UPSERT_FAILED", "message": "boom"}})

    feed = _write_feed(tmp_path / "feed.json", make_payload())

    assert main([feed, "--base-url", "http://catalog.test"], transport=httpx.MockTransport(handler)) == 1
