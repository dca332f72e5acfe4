"""
Test suite for edukb

Unit tests for the value codec, column resolver, entity cache, upsert engine
and row orchestrator, plus the HTTP client, bootstrap and CLI. Every test runs
against the in-memory store or a mocked httpx transport.
"""
