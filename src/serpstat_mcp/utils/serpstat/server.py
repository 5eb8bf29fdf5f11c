import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from mcp.types import TextContent, Tool
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .client import ClientConfig, RpcResult, SerpstatApiClient
from .dispatcher import (
    Dispatcher,
    InvocationRequest,
    ToolRegistry,
    ToolSpec,
    error_envelope,
)
from .errors import INTERNAL_ERROR, ToolEnvelopeError
from .util import get_serpstat_credentials

SERVER_VERSION = "1.0.0"

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


class _LazyClient:
    """Builds the server's API client on the first upstream call.

    Credentials are only looked up once a tool call has passed validation,
    so a missing key is reported per call instead of failing server creation.
    """

    def __init__(self, server: Server, base_url: Optional[str]):
        self.server = server
        self.base_url = base_url
        self._lock = asyncio.Lock()

    async def get(self) -> SerpstatApiClient:
        if self.server.serpstat_client is None:
            async with self._lock:
                if self.server.serpstat_client is None:
                    api_key = get_serpstat_credentials(
                        self.server.user_id, self.server.api_key
                    )
                    config = ClientConfig.from_env(api_key, base_url=self.base_url)
                    self.server.serpstat_client = SerpstatApiClient(config)
        return self.server.serpstat_client

    async def invoke(self, method: str, params: Dict[str, Any]) -> RpcResult:
        client = await self.get()
        return await client.invoke(method, params)


def create_serpstat_server(
    service_name: str,
    tools: Iterable[ToolSpec],
    user_id,
    api_key=None,
    client=None,
    base_url: Optional[str] = None,
) -> Server:
    """Create an MCP server exposing a table of Serpstat tools

    Args:
        service_name: Server name, e.g. "domain_analysis"
        tools: Tool table for this server
        user_id: User the server acts for, used for credential lookup
        api_key: Optional Serpstat API key, skips credential lookup
        client: Optional ready-made client with an async invoke(method, params)
        base_url: Upstream endpoint when it differs from the default API

    Returns:
        The configured low-level MCP server
    """
    logger = logging.getLogger(service_name)
    server = Server(f"serpstat-{service_name}-server")

    server.user_id = user_id
    server.api_key = api_key
    server.serpstat_client = client

    registry = ToolRegistry(tools)
    dispatcher = Dispatcher(registry, _LazyClient(server, base_url))

    @server.list_tools()
    async def handle_list_tools() -> list[Tool]:
        """List available Serpstat tools"""
        logger.info(f"Listing tools for user: {server.user_id}")
        return [
            Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema(),
            )
            for tool in registry.tools()
        ]

    # Arguments are checked by the dispatcher so every failure gets an envelope
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict | None) -> list[TextContent]:
        """Handle tool execution requests"""
        logger.info(f"Tool: {name}, User: {server.user_id}")

        try:
            envelope = await dispatcher.handle(InvocationRequest(name, arguments))
        except Exception as e:
            logger.exception(f"Error processing {name}")
            envelope = error_envelope(INTERNAL_ERROR, f"Internal error: {str(e)}")

        if envelope.is_error:
            raise ToolEnvelopeError(envelope.text, envelope.code)

        return [TextContent(type="text", text=envelope.text)]

    return server


def get_serpstat_initialization_options(
    server_instance: Server,
) -> InitializationOptions:
    """Get the initialization options for a Serpstat server"""
    return InitializationOptions(
        server_name=server_instance.name,
        server_version=SERVER_VERSION,
        capabilities=server_instance.get_capabilities(
            notification_options=NotificationOptions(),
            experimental_capabilities={},
        ),
    )
