import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import EMAIL_PATTERN
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import boolean, integer, string

SERVICE_NAME = Path(__file__).parent.name


def _user_id():
    return integer(
        "user_id",
        required=True,
        minimum=1,
        description="ID of the team member",
    )


# get_list and remove_user send every field, defaults included
TOOLS = [
    ToolSpec(
        name="add_user",
        upstream_method="TeamManagement.addUser",
        description="Invite a user to the team by email",
        parameters=(
            string(
                "email",
                required=True,
                pattern=EMAIL_PATTERN,
                pattern_message="invalid email format",
                description="Email address of the user to add",
            ),
        ),
    ),
    ToolSpec(
        name="get_list",
        upstream_method="TeamManagement.getList",
        description="List team members with optional search",
        parameters=(
            string(
                "search",
                default="",
                always_send=True,
                description="Filter members by email or name",
            ),
            integer(
                "page",
                minimum=1,
                default=1,
                always_send=True,
                description="Page number",
            ),
            integer(
                "size",
                minimum=1,
                maximum=1000,
                default=100,
                always_send=True,
                description="Members per page (1-1000)",
            ),
        ),
    ),
    ToolSpec(
        name="activate_user",
        upstream_method="TeamManagement.activateUser",
        description="Activate a deactivated team member",
        parameters=(_user_id(),),
    ),
    ToolSpec(
        name="deactivate_user",
        upstream_method="TeamManagement.deactivateUser",
        description="Deactivate a team member without removing them",
        parameters=(_user_id(),),
    ),
    ToolSpec(
        name="remove_user",
        upstream_method="TeamManagement.removeUser",
        description="Remove a user from the team",
        parameters=(
            _user_id(),
            boolean(
                "merge_projects",
                default=True,
                always_send=True,
                description="Transfer the user's projects to the team owner",
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
