"""Library Lending MCP Server - FastMCP Implementation

Exposes the lending and reservation state machine as MCP tools. Clients
connect over stdio (or streamable HTTP) and call tools to borrow, return,
reserve and administer books and members.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .database.session import get_db_manager
from .tools import all_tools

# Load configuration
config = get_config()

# stderr for logs, stdout for MCP protocol
logging.basicConfig(
    level=getattr(logging, config.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    name=config.server_name,
    version=config.server_version,
    instructions=(
        "Library Lending MCP Server - lends books to members and manages "
        "first-come reservation queues. Members may hold at most "
        f"{config.max_loans} books; loans last {config.loan_period_days} days "
        "unless extended. Returned books pass automatically to the first "
        "eligible member in the queue. Failed operations report a reason code "
        "such as BOOK_BORROWED or BORROW_LIMIT."
    ),
)

# Register all tools with the MCP server
for tool in all_tools:
    logger.debug("Registering tool: %s", tool["name"])
    try:
        mcp.tool(
            name=tool["name"],
            description=tool["description"],
        )(tool["handler"])
    except Exception:
        logger.exception("Failed to register tool %s", tool["name"])
        raise

logger.info("Registered %d tools", len(all_tools))


def handle_shutdown() -> None:
    """Release the database engine when the server stops."""
    logger.info("MCP Server shutting down gracefully...")
    get_db_manager().close()
    logger.info("Shutdown complete")


def run_server() -> None:
    """Run the MCP server on the configured transport.

    With stdio, stdin receives JSON-RPC requests and stdout sends responses.
    """
    info = config.server_info
    logger.info("Starting %s v%s on %s transport", info["name"], info["version"], info["transport"])

    if config.is_development:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled - verbose protocol logging active")
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("MCP Server ready and waiting for connections...")
        if config.transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(transport="streamable-http")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)
    finally:
        handle_shutdown()


def main() -> None:
    """Main entry point for the MCP server.

    Creates the schema if needed, then serves until interrupted.
    """
    try:
        logger.info("=" * 60)
        logger.info("Library Lending MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Borrow limit: %d, loan period: %d days", config.max_loans, config.loan_period_days)
        logger.info("Development mode: %s", config.is_development)
        logger.info("=" * 60)

        db_manager = get_db_manager()
        db_manager.init_database()
        if not db_manager.verify_connection():
            logger.error("Database unavailable at %s", db_manager.database_url)
            sys.exit(1)

        run_server()

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
