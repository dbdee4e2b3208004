"""Prompt rendering, oracle clients, response parsing and the orchestrator."""
