import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import page, positive_id
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import enum, string

SERVICE_NAME = Path(__file__).parent.name

DOMAIN_PATTERN = (
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
PAGE_SIZE_OPTIONS = [20, 50, 100, 200, 500]

TOOLS = [
    ToolSpec(
        name="createProject",
        upstream_method="ProjectProcedure.createProject",
        description="Create a new Serpstat project for a domain",
        parameters=(
            string(
                "domain",
                required=True,
                min_length=1,
                max_length=255,
                pattern=DOMAIN_PATTERN,
                pattern_message="must be a domain name without protocol",
                description="Project domain without protocol",
            ),
            string(
                "name",
                required=True,
                min_length=1,
                max_length=255,
                description="Project name",
            ),
            string(
                "group",
                max_length=255,
                default="Default group",
                description="Project group name",
            ),
            enum(
                "type",
                ["owner", "reader"],
                default="owner",
                description="Access type of the project",
            ),
        ),
    ),
    ToolSpec(
        name="deleteProject",
        upstream_method="ProjectProcedure.deleteProject",
        description="Delete a Serpstat project",
        parameters=(
            positive_id("project_id", required=True, description="Project ID"),
        ),
    ),
    ToolSpec(
        name="getProjects",
        upstream_method="ProjectProcedure.getProjects",
        description="List the projects of the account",
        parameters=(
            page(),
            enum(
                "size",
                PAGE_SIZE_OPTIONS,
                default=100,
                description="Projects per page",
            ),
        ),
    ),
]


def create_server(user_id, api_key=None, client=None):
    """Create a new server instance with optional user context"""
    return create_serpstat_server(
        SERVICE_NAME, TOOLS, user_id, api_key=api_key, client=client
    )


server = create_server


def get_initialization_options(server_instance: Server) -> InitializationOptions:
    """Get the initialization options for the server"""
    return get_serpstat_initialization_options(server_instance)


# Main handler allows users to auth
if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1].lower() == "auth":
        user_id = "local"
        # Run authentication flow
        authenticate_and_save_serpstat_key(user_id)
    else:
        print("Usage:")
        print("  python main.py auth - Run authentication flow for a user")
        print("Note: To run the server normally, use serpstat-mcp --server <name>.")
