import json
import logging

from serpstat_mcp.utils.serpstat.errors import INVALID_ARGUMENTS, UNKNOWN_TOOL

from tests.clients.FakeSerpstatClient import FakeSerpstatClient
from tests.clients.LocalMCPTestClient import LocalMCPTestClient

logger = logging.getLogger(__name__)

# Errors raised before any upstream call is made
PRE_INVOKE_ERRORS = (UNKNOWN_TOOL, INVALID_ARGUMENTS)


def get_test_id(test_config):
    """Generate a readable test ID from the tool name and description"""
    return f"{test_config['name']}-{test_config['description'].replace(' ', '_')}"


async def run_list_tools_test(server_name: str, expected_tools) -> list:
    """
    Check that a server lists exactly the expected tools, each with an
    object input schema.
    """
    async with LocalMCPTestClient.connect(server_name) as client:
        tools = await client.list_tools()

    names = [tool.name for tool in tools]
    assert sorted(names) == sorted(
        expected_tools
    ), f"{server_name}: unexpected tool list {names}"

    for tool in tools:
        assert tool.description, f"{tool.name} has no description"
        assert tool.inputSchema["type"] == "object"
        for required in tool.inputSchema.get("required", []):
            assert (
                required in tool.inputSchema["properties"]
            ), f"{tool.name}: required field {required} is not declared"

    return tools


async def run_tool_test(server_name: str, test_config: dict):
    """
    Common test function for running tool tests across different servers.

    Args:
        server_name: Server package under test
        test_config: Configuration for the specific test to run. Keys:
            name, description, args, and either expected_method (plus
            optional expected_params and expected_text) or expected_error
            (plus optional error_contains). responses queues fake
            upstream results.

    Returns:
        The CallToolResult and the fake client that served it
    """
    rpc = FakeSerpstatClient(test_config.get("responses"))

    async with LocalMCPTestClient.connect(server_name, rpc) as client:
        result = await client.call_tool(
            test_config["name"], test_config.get("args", {})
        )

    tool_name = test_config["name"]
    text = LocalMCPTestClient.text(result)
    logger.info(f"{tool_name} response: {text}")

    expected_error = test_config.get("expected_error")
    if expected_error:
        error = LocalMCPTestClient.error(result)
        assert (
            error["code"] == expected_error
        ), f"{tool_name}: expected {expected_error}, got {error}"
        if "error_contains" in test_config:
            assert (
                test_config["error_contains"] in error["message"]
            ), f"{tool_name}: unexpected error message {error['message']}"
        if expected_error in PRE_INVOKE_ERRORS:
            assert rpc.calls == [], f"{tool_name}: upstream was called on {error}"
        return result, rpc

    assert not result.isError, f"{tool_name}: unexpected error {text}"
    assert len(rpc.calls) == 1, f"{tool_name}: expected one upstream call"

    method, params = rpc.last_call
    assert (
        method == test_config["expected_method"]
    ), f"{tool_name}: called {method}, expected {test_config['expected_method']}"

    if "expected_params" in test_config:
        assert (
            params == test_config["expected_params"]
        ), f"{tool_name}: sent {params}, expected {test_config['expected_params']}"

    if "expected_text" in test_config:
        assert text == test_config["expected_text"]
    else:
        assert json.loads(text) == {"id": "fake", "result": {"method": method}}

    return result, rpc
