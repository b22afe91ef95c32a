"""
Tests for jmap-do.

Unit tests run against an in-process fake JMAP server (tests/mock_server.py)
wired into httpx through MockTransport; no network is needed.
"""
