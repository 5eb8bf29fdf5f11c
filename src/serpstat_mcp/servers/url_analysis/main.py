import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import (
    filters,
    page,
    search_engine_code,
    size,
    sort_object,
    url,
)
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import boolean, enum, string

SERVICE_NAME = Path(__file__).parent.name

PROCEDURE = "SerpstatUrlProcedure"


def paging():
    return (page(default=None), size(default=None))


TOOLS = [
    ToolSpec(
        name="getSummaryTraffic",
        upstream_method=f"{PROCEDURE}.getSummaryTraffic",
        description="Traffic and keyword totals for matching URLs of a domain",
        parameters=(
            search_engine_code(),
            string("domain", required=True, min_length=1, description="Domain"),
            string(
                "urlContains",
                required=True,
                min_length=1,
                description="Substring the URLs must contain",
            ),
            enum(
                "output_data",
                ["traffic", "keywords"],
                description="Which totals to return",
            ),
        ),
    ),
    ToolSpec(
        name="getUrlCompetitors",
        upstream_method=f"{PROCEDURE}.getUrlCompetitors",
        description="Pages competing with a URL in organic search",
        parameters=(search_engine_code(), url(), sort_object()) + paging(),
    ),
    ToolSpec(
        name="getUrlKeywords",
        upstream_method=f"{PROCEDURE}.getUrlKeywords",
        description="Keywords a URL ranks for",
        parameters=(
            search_engine_code(),
            url(),
            boolean("withIntents", description="Include keyword intents"),
            sort_object(),
            filters(),
        )
        + paging(),
    ),
    ToolSpec(
        name="getUrlMissingKeywords",
        upstream_method=f"{PROCEDURE}.getUrlMissingKeywords",
        description="Keywords competitors of a URL rank for that the URL does not",
        parameters=(search_engine_code(), url(), sort_object(), filters()) + paging(),
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
