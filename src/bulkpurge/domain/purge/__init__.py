"""Bulk user purge: command, orchestration and cleanup pipeline."""
