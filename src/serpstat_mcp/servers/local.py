import sys
import asyncio
import logging
import argparse
import importlib
from pathlib import Path

import mcp.server.stdio
from dotenv import load_dotenv

from serpstat_mcp.utils.serpstat.errors import MissingCredentialError
from serpstat_mcp.utils.serpstat.util import get_serpstat_credentials

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
# httpx logs request URLs at INFO, and the URL carries the API token
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger("serpstat-local-stdio")

SERVERS_DIR = Path(__file__).parent.absolute()


def available_servers():
    """Names of the server packages that ship a main.py"""
    return sorted(
        item.name
        for item in SERVERS_DIR.iterdir()
        if item.is_dir() and (item / "main.py").exists()
    )


async def run_stdio_server(server, get_initialization_options):
    """Run the server using stdin/stdout streams"""
    logger.info("Starting stdio server")
    try:
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                get_initialization_options(),
            )
    finally:
        if server.serpstat_client is not None:
            await server.serpstat_client.aclose()


def load_server(server_name):
    """Load a server module by name"""
    if server_name not in available_servers():
        logger.error(f"Server '{server_name}' not found in {SERVERS_DIR}")
        print("Available servers:", file=sys.stderr)
        for name in available_servers():
            print(f"  - {name}", file=sys.stderr)
        sys.exit(1)

    server_module = importlib.import_module(f"serpstat_mcp.servers.{server_name}.main")

    # Verify required attributes
    if not hasattr(server_module, "server") or not hasattr(
        server_module, "get_initialization_options"
    ):
        logger.error(
            f"Server '{server_name}' does not have required server or get_initialization_options"
        )
        sys.exit(1)

    return server_module.server, server_module.get_initialization_options


async def main(argv=None):
    """Main entry point for the stdio server"""
    parser = argparse.ArgumentParser(description="Serpstat MCP Local Stdio Server")
    parser.add_argument(
        "--server",
        required=True,
        help="Name of the server to run (e.g., domain_analysis, backlinks)",
    )
    parser.add_argument(
        "--user-id", default="local", help="User ID for credential lookup (optional)"
    )

    args = parser.parse_args(argv)

    logger.info(f"Loading server: {args.server}")
    server_creator, get_initialization_options = load_server(args.server)

    # A missing key is fatal at startup rather than on the first call
    try:
        api_key = get_serpstat_credentials(args.user_id)
    except MissingCredentialError as e:
        logger.error(str(e))
        sys.exit(1)

    server_instance = server_creator(user_id=args.user_id, api_key=api_key)

    logger.info(
        f"Starting local stdio server for server: {args.server} with user: {args.user_id}"
    )
    await run_stdio_server(
        server_instance, lambda: get_initialization_options(server_instance)
    )


def run():
    """Console script entry point"""
    load_dotenv()
    asyncio.run(main())


if __name__ == "__main__":
    logger.info("Starting Serpstat MCP local stdio server")
    run()
