"""Vote API service: vote ledger, HTTP handlers and chain inspection."""
