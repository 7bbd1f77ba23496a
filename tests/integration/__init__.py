"""Integration tests for the vote API.

This package contains integration tests for the vote service, including:

- HTTP API contract tests (vote submission, winner queries, error bodies)
- Duplicate detection through the API
- Redis-backed ledger tests (need a reachable Redis server)
"""
