"""Unit tests for the vote ledger, shared models and chain helpers."""
