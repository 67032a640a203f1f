"""Sync engine: identity mapping, resume planning, batch execution and processors."""
