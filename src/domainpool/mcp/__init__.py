"""MCP adapter — exposes the allocation API as tools (optional extra)."""
