"""Store and API models."""
