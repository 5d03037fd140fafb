"""Business services for the Library Lending MCP Server."""

from .lending_service import LendingService, lending_service_for

__all__ = [
    "LendingService",
    "lending_service_for",
]
