import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import (
    domain,
    filters,
    order,
    page,
    search_engine,
    size,
    sort_object,
    string_list,
    url,
)
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import boolean, enum

SERVICE_NAME = Path(__file__).parent.name

PROCEDURE = "SerpstatDomainProcedure"


def keyword_report_parameters():
    """Fields of the keyword and ads reports of a domain"""
    return (
        domain(),
        search_engine(),
        boolean("withSubdomains", description="Include subdomains"),
        boolean(
            "withIntents",
            description="Include keyword intents (g_ua and g_us databases only)",
        ),
        url(required=False, description="Only keywords of this URL"),
        string_list("keywords", "Only keywords containing these words"),
        string_list("minusKeywords", "Exclude keywords containing these words"),
        filters(),
        sort_object(),
        page(),
        size(),
    )


def listing_parameters(**size_bounds):
    return (
        domain(),
        search_engine(),
        filters(),
        sort_object(),
        page(),
        size(**size_bounds),
    )


TOOLS = [
    ToolSpec(
        name="getDomainsInfo",
        upstream_method=f"{PROCEDURE}.getDomainsInfo",
        description="Visibility, keyword and traffic summary for up to 100 domains",
        parameters=(
            string_list(
                "domains",
                "Domains to look up, 5 credits each",
                required=True,
                min_items=1,
                max_items=100,
            ),
            search_engine(),
        ),
    ),
    ToolSpec(
        name="getDomainKeywords",
        upstream_method=f"{PROCEDURE}.getDomainKeywords",
        description="Keywords a domain ranks for in the Google top-100",
        parameters=keyword_report_parameters(),
    ),
    ToolSpec(
        name="getAdKeywords",
        upstream_method=f"{PROCEDURE}.getAdKeywords",
        description="Keywords a domain advertises on",
        parameters=keyword_report_parameters(),
    ),
    ToolSpec(
        name="getAdsCompetitors",
        upstream_method=f"{PROCEDURE}.getAdsCompetitors",
        description="Domains competing with a domain in paid search",
        parameters=keyword_report_parameters(),
    ),
    ToolSpec(
        name="getOrganicCompetitorsPage",
        upstream_method=f"{PROCEDURE}.getOrganicCompetitorsPage",
        description="Domains competing with a domain in organic search",
        parameters=(
            domain(),
            search_engine(),
            sort_object(),
            page(),
            size(minimum=10, maximum=500),
        ),
    ),
    ToolSpec(
        name="getTopUrls",
        upstream_method=f"{PROCEDURE}.getTopUrls",
        description="Pages of a domain with the most keywords",
        parameters=listing_parameters(),
    ),
    ToolSpec(
        name="getDomainUrls",
        upstream_method=f"{PROCEDURE}.getDomainUrls",
        description="URLs of a domain with their keyword counts",
        parameters=listing_parameters(),
    ),
    ToolSpec(
        name="getDomainsHistory",
        upstream_method=f"{PROCEDURE}.getDomainsHistory",
        description="Historical visibility and traffic of a domain",
        parameters=(
            domain(),
            search_engine(),
            boolean("during_all_time", description="Return the whole history"),
            filters(),
            sort_object(),
            size(),
        ),
    ),
    ToolSpec(
        name="getDomainsIntersection",
        upstream_method=f"{PROCEDURE}.getDomainsIntersection",
        description="Keywords shared by two or three domains",
        parameters=(
            search_engine(),
            string_list(
                "domains",
                "Domains to intersect",
                required=True,
                min_items=2,
                max_items=3,
            ),
            filters(),
            sort_object(),
            page(),
            size(),
        ),
    ),
    ToolSpec(
        name="getDomainsUniqKeywords",
        upstream_method=f"{PROCEDURE}.getDomainsUniqKeywords",
        description="Keywords of one or two domains that another domain lacks",
        parameters=(
            search_engine(),
            string_list(
                "domains",
                "Domains whose keywords are compared",
                required=True,
                min_items=1,
                max_items=2,
            ),
            domain("minusDomain", description="Domain whose keywords are excluded"),
            filters(),
            page(),
            size(),
        ),
    ),
    ToolSpec(
        name="getAllRegionsTraffic",
        upstream_method=f"{PROCEDURE}.getAllRegionsTraffic",
        description="Traffic of a domain in every regional database",
        parameters=(
            domain(),
            enum(
                "sort",
                ["traff", "region", "country_name_en", "google_domain"],
                description="Sort field",
            ),
            order(default="desc"),
        ),
    ),
    ToolSpec(
        name="getRegionsCount",
        upstream_method=f"{PROCEDURE}.getRegionsCount",
        description="Keyword counts of a domain per regional database",
        parameters=(
            domain(),
            enum(
                "sort",
                ["keywords_count", "db_name", "country_name_en", "google_domain"],
                description="Sort field",
            ),
            order(default="desc"),
        ),
    ),
    ToolSpec(
        name="exportPositions",
        upstream_method=f"{PROCEDURE}.exportPositions",
        description="Export the organic positions of a domain as CSV",
        parameters=listing_parameters(maximum=60000),
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
