"""Smoke test a running KotobaID backend against Vertex AI."""

import os
import sys

import requests

BASE_URL = os.environ.get("KOTOBA_BASE_URL", "http://localhost:3001")
TIMEOUT = 90

CHECKS = [
    ("Health", "GET", "/health", None),
    ("Vertex AI status", "GET", "/api/vertexai/status", None),
    ("Basic generation", "GET", "/api/vertexai/test", None),
    ("Translation", "POST", "/api/vertexai/translate", {"text": "Hello world", "targetLanguage": "Indonesian"}),
    ("Kanji explanation", "POST", "/api/vertexai/explain-kanji", {"kanji": "学"}),
]


def run_check(name: str, method: str, path: str, body: dict | None) -> bool:
    response = requests.request(method, f"{BASE_URL}{path}", json=body, timeout=TIMEOUT)
    data = response.json()

    if response.status_code != 200 or data.get("success") is False:
        print(f"[FAIL] {name}: {response.status_code} {data.get('error')}")
        for suggestion in data.get("suggestions", []):
            print(f"       - {suggestion}")
        return False

    if path == "/api/vertexai/status":
        permissions = data.get("permissions", {})
        print(f"[ OK ] {name}: initialized={data.get('initialized')} permissions={permissions.get('hasPermissions')}")
        return True

    preview = next(
        (data[key] for key in ("response", "translation", "explanation") if key in data),
        data.get("status", ""),
    )
    print(f"[ OK ] {name}: {str(preview)[:100]}")
    return True


if __name__ == "__main__":
    print(f"Checking {BASE_URL}")
    for check in CHECKS:
        if not run_check(*check):
            sys.exit(1)
    print("All checks passed")
