"""Input contracts, response schema validation, guardrails and domain checks."""
