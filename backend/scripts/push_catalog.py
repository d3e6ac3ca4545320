#!/usr/bin/env python3
"""Push a store catalog feed (JSON file) to a running CatalogSync API.

Examples:
  python backend/scripts/push_catalog.py feed.json --base-url http://localhost:8000 --token $TOKEN
  python backend/scripts/push_catalog.py feed.json --validate-only
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

# Add backend/ to path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog.schemas import CatalogPushRequest

PUSH_PATH = "/api/v1/products/push"


def load_payload(path: str) -> CatalogPushRequest:
    with open(path, encoding="utf-8") as handle:
        return CatalogPushRequest.model_validate(json.load(handle))


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(min=1, max=10),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
def push_payload(client: httpx.Client, payload: CatalogPushRequest, token: str | None = None) -> dict[str, Any]:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    response = client.post(PUSH_PATH, json=payload.model_dump(mode="json", exclude_none=True), headers=headers)
    response.raise_for_status()
    return response.json()


def main(argv: list[str] | None = None, transport: httpx.BaseTransport | None = None) -> int:
    parser = argparse.ArgumentParser(description="Push a catalog feed to CatalogSync")
    parser.add_argument("feed", help="Path to the JSON feed file")
    parser.add_argument("--base-url", default=os.getenv("CATALOGSYNC_URL", "http://localhost:8000"))
    parser.add_argument("--token", default=os.getenv("CATALOGSYNC_TOKEN"))
    parser.add_argument("--timeout", type=float, default=120.0)
    parser.add_argument("--validate-only", action="store_true", help="Validate the feed without pushing it")
    args = parser.parse_args(argv)

    try:
        payload = load_payload(args.feed)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        print(f"Invalid feed {args.feed}: {exc}", file=sys.stderr)
        return 2

    if args.validate_only:
        print(
            json.dumps(
                {
                    "store_id": payload.store_details.store_id,
                    "products": len(payload.products),
                    "variations": len(payload.variations),
                    "valid": True,
                }
            )
        )
        return 0

    with httpx.Client(base_url=args.base_url, timeout=args.timeout, transport=transport) as client:
        try:
            body = push_payload(client, payload, token=args.token)
        except httpx.HTTPStatusError as exc:
            print(f"Push failed ({exc.response.status_code}): {exc.response.text}", file=sys.stderr)
            return 1
        except httpx.TransportError as exc:
            print(f"Push failed: {exc}", file=sys.stderr)
            return 1

    print(json.dumps(body.get("data", body), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
