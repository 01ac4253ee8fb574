"""MCP tool modules, one per domain. Each exposes ``register()``."""
