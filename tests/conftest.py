"""
Pytest configuration and fixtures for jmap-do tests.

This module provides fixtures for:
- An in-process fake JMAP server and an httpx client wired to it
- JamClient instances talking to the fake server
- Loading conformance test specifications from tests/conformance/*.yaml
- Isolating the global configuration between tests
"""

import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest
import yaml

from .mock_server import SESSION_URL, TOKEN, MockJmapServer


CONFORMANCE_DIR = Path(__file__).parent / "conformance"


# ============================================================================
# Unit Test Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_config():
    """Reset global configuration and JMAP_* env vars for every test."""
    from jmap_do import config

    clean_env = {k: v for k, v in os.environ.items() if not k.startswith("JMAP_")}
    fresh = {
        "session_url": None,
        "bearer_token": None,
        "timeout": config.DEFAULT_TIMEOUT,
        "custom_capabilities": {},
    }
    with patch.dict(os.environ, clean_env, clear=True), \
            patch.dict(config._global_config, fresh):
        yield


@pytest.fixture
def server() -> MockJmapServer:
    """Create a fake JMAP server."""
    return MockJmapServer()


@pytest.fixture
def http_client(server: MockJmapServer) -> httpx.AsyncClient:
    """Create an httpx client routed to the fake server."""
    return httpx.AsyncClient(transport=httpx.MockTransport(server.handle))


@pytest.fixture
def jam(http_client: httpx.AsyncClient):
    """Create a JamClient talking to the fake server."""
    from jmap_do import JamClient

    return JamClient(TOKEN, SESSION_URL, http_client=http_client)


@pytest.fixture
def strict_jam(http_client: httpx.AsyncClient):
    """Create a JamClient that verifies method response ids."""
    from jmap_do import JamClient

    return JamClient(TOKEN, SESSION_URL, http_client=http_client, strict=True)


@pytest.fixture
def mail_server(server: MockJmapServer) -> MockJmapServer:
    """Fake server with a small mailbox/email store."""
    mailboxes = [
        {"id": "m1", "name": "Inbox", "role": "inbox"},
        {"id": "m2", "name": "Archive", "role": "archive"},
    ]
    emails = {
        "e1": {"id": "e1", "subject": "Hello", "mailboxIds": {"m1": True}},
        "e2": {"id": "e2", "subject": "Re: Hello", "mailboxIds": {"m1": True}},
        "e3": {"id": "e3", "subject": "Old", "mailboxIds": {"m2": True}},
    }

    def mailbox_get(args: dict[str, Any]) -> dict[str, Any]:
        return {"accountId": args["accountId"], "state": "1", "list": mailboxes, "notFound": []}

    def mailbox_query(args: dict[str, Any]) -> dict[str, Any]:
        role = args.get("filter", {}).get("role")
        ids = [m["id"] for m in mailboxes if role is None or m["role"] == role]
        return {"accountId": args["accountId"], "queryState": "1", "ids": ids, "position": 0}

    def email_query(args: dict[str, Any]) -> dict[str, Any]:
        in_mailbox = args.get("filter", {}).get("inMailbox")
        ids = [
            e["id"] for e in emails.values()
            if in_mailbox is None or in_mailbox in e["mailboxIds"]
        ]
        return {"accountId": args["accountId"], "queryState": "1", "ids": ids, "position": 0}

    def email_get(args: dict[str, Any]) -> dict[str, Any]:
        found = [emails[i] for i in args.get("ids", []) if i in emails]
        missing = [i for i in args.get("ids", []) if i not in emails]
        return {"accountId": args["accountId"], "state": "1", "list": found, "notFound": missing}

    server.on("Mailbox/get", mailbox_get)
    server.on("Mailbox/query", mailbox_query)
    server.on("Email/query", email_query)
    server.on("Email/get", email_get)
    server.on("Core/echo", lambda args: args)
    return server


# ============================================================================
# Conformance Fixtures
# ============================================================================

def load_test_specs(spec_dir: Path) -> list[dict[str, Any]]:
    """Load all conformance test specifications from YAML files."""
    specs = []
    if not spec_dir.exists():
        return specs

    for spec_file in sorted(spec_dir.glob("*.yaml")):
        with open(spec_file) as f:
            spec = yaml.safe_load(f)
            if spec and "tests" in spec:
                for test in spec["tests"]:
                    test["_file"] = spec_file.name
                    test["_category"] = spec.get("name", spec_file.stem)
                    specs.append(test)
    return specs


def pytest_generate_tests(metafunc):
    """Generate test cases from conformance specs."""
    if "conformance_test" in metafunc.fixturenames:
        tests = load_test_specs(CONFORMANCE_DIR)
        metafunc.parametrize(
            "conformance_test",
            tests,
            ids=[f"{t.get('_category', 'test')}::{t['name']}" for t in tests],
        )
