"""Library Lending MCP Server.

Books, members, loans and reservation queues exposed as MCP tools.
"""

__version__ = "0.1.0"
