"""Domain layer — pure types and policy with no I/O.

Modules here may be imported by every other layer. They must never
import from services, infrastructure, commands, output, or mcp.
"""
