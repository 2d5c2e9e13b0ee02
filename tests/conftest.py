"""Shared fixtures: an in-memory stand-in for the Upstash Redis REST API."""

import threading
from unittest.mock import patch

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class FakeUpstash:
    """Answers the handful of Redis commands the KV backend sends."""

    def __init__(self):
        self.strings = {}
        self.hashes = {}
        self.calls = []
        self.down = False
        self._lock = threading.Lock()

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.down:
            raise requests.ConnectionError("connection refused")

        cmd, *args = json
        with self._lock:
            if cmd == "GET":
                return FakeResponse(200, {"result": self.strings.get(args[0])})
            if cmd == "SETNX":
                if args[0] in self.strings:
                    return FakeResponse(200, {"result": 0})
                self.strings[args[0]] = args[1]
                return FakeResponse(200, {"result": 1})
            if cmd == "HINCRBY":
                key, field, amount = args
                h = self.hashes.setdefault(key, {})
                h[field] = int(h.get(field, 0)) + int(amount)
                return FakeResponse(200, {"result": h[field]})
            if cmd == "HGETALL":
                flat = []
                for field, value in self.hashes.get(args[0], {}).items():
                    flat.extend([field, str(value)])
                return FakeResponse(200, {"result": flat})
        return FakeResponse(400, {"error": f"ERR unknown command '{cmd}'"})


@pytest.fixture
def upstash():
    fake = FakeUpstash()
    with patch("backends.requests.post", side_effect=fake.post):
        yield fake
