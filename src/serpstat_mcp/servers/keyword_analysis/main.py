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
    string_list,
)
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import boolean, obj, string

SERVICE_NAME = Path(__file__).parent.name

PROCEDURE = "SerpstatKeywordProcedure"


def keyword(description="Keyword to analyze"):
    return string("keyword", required=True, min_length=1, description=description)


def with_intents():
    return boolean(
        "withIntents",
        description="Include keyword intents (g_ua and g_us databases only)",
    )


def suggestion_filters():
    return obj(
        "filters",
        description="Filter conditions",
        properties=(string_list("minus_keywords", "Keywords to exclude"),),
    )


def keyword_report(name, description):
    """A paginated keyword report with opaque filters and sort"""
    return ToolSpec(
        name=name,
        upstream_method=f"{PROCEDURE}.{name}",
        description=description,
        parameters=(
            search_engine_code(),
            keyword(),
            filters(),
            sort_object(),
            page(default=None),
            size(default=None),
        ),
    )


TOOLS = [
    ToolSpec(
        name="getKeywords",
        upstream_method=f"{PROCEDURE}.getKeywords",
        description="Phrase match keywords containing the given keyword",
        parameters=(
            search_engine_code(),
            keyword(),
            string_list("minusKeywords", "Keywords to exclude from the results"),
            with_intents(),
            filters(),
            sort_object(),
            page(default=None),
            size(default=None),
        ),
    ),
    ToolSpec(
        name="getSuggestions",
        upstream_method=f"{PROCEDURE}.getSuggestions",
        description="Search suggestions for a keyword",
        parameters=(
            search_engine_code(),
            keyword(),
            suggestion_filters(),
            page(default=None),
            size(default=None),
        ),
    ),
    ToolSpec(
        name="getKeywordsInfo",
        upstream_method=f"{PROCEDURE}.getKeywordsInfo",
        description="Volume, CPC and difficulty for a list of keywords",
        parameters=(
            search_engine_code(),
            string_list(
                "keywords",
                "Keywords to look up",
                required=True,
                min_items=1,
                max_items=1000,
            ),
            with_intents(),
            filters(),
            sort_object(),
        ),
    ),
    keyword_report("getRelatedKeywords", "Semantically related keywords"),
    keyword_report("getTopUrls", "URLs ranking best for keywords with this phrase"),
    keyword_report("getCompetitors", "Domains competing in the keyword's SERP"),
    keyword_report("getAdKeywords", "Ad keywords that contain the keyword"),
    keyword_report("getAdsCompetitors", "Domains advertising on the keyword"),
    keyword_report("getKeywordTop", "Top organic results for the keyword"),
    keyword_report("getKeywordFullTop", "Top-100 organic results for the keyword"),
    keyword_report("exportKeywordsPhrase", "Export the phrase match keyword report"),
    ToolSpec(
        name="exportSuggestions",
        upstream_method=f"{PROCEDURE}.exportSuggestions",
        description="Export the search suggestions report",
        parameters=(
            search_engine_code(),
            keyword(),
            suggestion_filters(),
            page(default=None),
            size(default=None),
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
