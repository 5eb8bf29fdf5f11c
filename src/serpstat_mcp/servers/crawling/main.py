import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.constants import SERPSTAT_RT_API_URL
from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import positive_id
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import array, enum, integer, string

SERVICE_NAME = Path(__file__).parent.name

RESULT_TYPES = ["regular", "local", "regular_aio"]


def task_parameters(keywords):
    """Fields shared by addTask and addKeywordList"""
    return (
        keywords,
        positive_id("seId", required=True, description="Search engine ID, 1 = Google"),
        integer(
            "countryId",
            required=True,
            minimum=1,
            maximum=247,
            description="Country ID (1-247)",
        ),
        positive_id("regionId", description="Region ID within the country"),
        integer(
            "langId",
            minimum=1,
            maximum=48,
            default=1,
            description="Language ID (1-48), 1 = English",
        ),
        integer(
            "typeId",
            minimum=1,
            maximum=2,
            default=1,
            description="Device type: 1 = desktop, 2 = mobile",
        ),
        enum("type", RESULT_TYPES, default="regular", description="SERP type"),
    )


TOOLS = [
    ToolSpec(
        name="addTask",
        upstream_method="tasks.addTask",
        description="Queue a SERP crawling task for comma separated keywords",
        parameters=task_parameters(
            string(
                "keywords",
                required=True,
                min_length=1,
                description="Keywords separated by commas",
            )
        ),
    ),
    ToolSpec(
        name="addKeywordList",
        upstream_method="tasks.addKeywordList",
        description="Queue a SERP crawling task for a list of keywords",
        parameters=task_parameters(
            array(
                "keywords",
                required=True,
                min_items=1,
                items=string("keyword", min_length=1),
                description="Keywords to crawl",
            )
        ),
    ),
    ToolSpec(
        name="getList",
        upstream_method="tasks.getList",
        description="List crawling tasks",
        parameters=(
            integer("page", minimum=1, default=1, description="Page number"),
            integer(
                "pageSize",
                minimum=100,
                maximum=1000,
                description="Tasks per page (100-1000)",
            ),
        ),
    ),
    ToolSpec(
        name="getParsingBalance",
        upstream_method="tasks.getParsingBalance",
        description="Remaining crawling balance of the account",
    ),
    ToolSpec(
        name="getTaskResult",
        upstream_method="tasks.getTaskResult",
        description="Crawling results of a task",
        parameters=(
            positive_id("taskId", required=True, description="Task ID"),
            integer("page", minimum=1, default=1, description="Page number"),
        ),
    ),
    ToolSpec(
        name="getKeywordSerp",
        upstream_method="tasks.getKeywordSerp",
        description="Full SERP of one keyword of a task",
        parameters=(
            positive_id("taskId", required=True, description="Task ID"),
            positive_id("keywordId", required=True, description="Keyword ID"),
        ),
    ),
]


def create_server(user_id, api_key=None, client=None):
    """Create a new server instance with optional user context"""
    return create_serpstat_server(
        SERVICE_NAME,
        TOOLS,
        user_id,
        api_key=api_key,
        client=client,
        base_url=SERPSTAT_RT_API_URL,
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
