import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import date, order, positive_id, string_list
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import boolean, enum, integer, string

SERVICE_NAME = Path(__file__).parent.name

HISTORY_SORT_OPTIONS = ["keyword", "date"]
COMPETITORS_SORT_OPTIONS = [
    "domain",
    "sum_traffic",
    "keywords_count",
    "avg_position",
    "position_ranges",
    "ads_count",
]
SORT_RANGE_OPTIONS = [
    "top1",
    "top2",
    "top3",
    "top5",
    "top10",
    "top20",
    "top101",
    "keywords_count_bottom",
    "keywords_count_top",
    "avg_position_top",
    "avg_position_bottom",
]
HISTORY_PAGE_SIZES = [20, 50, 100, 200, 500]


def project_id():
    return positive_id("projectId", required=True, description="Project ID")


def project_region_id():
    return positive_id(
        "projectRegionId",
        required=True,
        description="Project region ID, see getProjectRegions",
    )


def history_parameters():
    return (
        project_id(),
        project_region_id(),
        integer("page", required=True, minimum=1, description="Page number"),
        enum(
            "pageSize",
            HISTORY_PAGE_SIZES,
            default=100,
            description="Results per page",
        ),
        date("dateFrom", description="Start date, YYYY-MM-DD"),
        date("dateTo", description="End date, YYYY-MM-DD"),
        enum("sort", HISTORY_SORT_OPTIONS, description="Sort field"),
        order(),
        string_list("keywords", "Only these keywords", max_items=1000),
        boolean("withTags", default=False, description="Include keyword tags"),
    )


TOOLS = [
    ToolSpec(
        name="getProjects",
        upstream_method="RtApiProjectProcedure.getProjects",
        description="List rank tracker projects",
        parameters=(
            integer("page", minimum=1, default=1, description="Page number"),
            enum(
                "pageSize",
                [20, 50, 100, 500],
                default=100,
                description="Projects per page",
            ),
        ),
    ),
    ToolSpec(
        name="getProjectStatus",
        upstream_method="RtApiProjectProcedure.getProjectStatus",
        description="Whether position tracking of a project region is finished",
        parameters=(
            project_id(),
            positive_id("regionId", required=True, description="Region ID"),
        ),
    ),
    ToolSpec(
        name="getProjectRegions",
        upstream_method="RtApiSearchEngineProcedure.getProjectRegions",
        description="Search engine regions tracked by a project",
        parameters=(project_id(),),
    ),
    ToolSpec(
        name="getKeywordsSerpResultsHistory",
        upstream_method="RtApiSerpResultsProcedure.getKeywordsSerpResultsHistory",
        description="Top-100 SERP history for the project's keywords",
        parameters=history_parameters(),
    ),
    ToolSpec(
        name="getUrlsSerpResultsHistory",
        upstream_method="RtApiSerpResultsProcedure.getUrlsSerpResultsHistory",
        description="Position history of the project's URLs for its keywords",
        parameters=history_parameters()
        + (string("domain", min_length=1, description="Domain to report on"),),
    ),
    ToolSpec(
        name="getTopCompetitorsDomainsHistory",
        upstream_method="RtApiSerpResultsProcedure.getTopCompetitorsDomainsHistory",
        description="Competitor domains of the project over a date range",
        parameters=(
            project_id(),
            project_region_id(),
            integer(
                "page",
                required=True,
                minimum=1,
                description="Page number",
            ),
            enum(
                "pageSize",
                HISTORY_PAGE_SIZES,
                required=True,
                description="Results per page",
            ),
            date("dateFrom", required=True, description="Start date, YYYY-MM-DD"),
            date("dateTo", required=True, description="End date, YYYY-MM-DD"),
            enum(
                "sort",
                COMPETITORS_SORT_OPTIONS,
                default="sum_traffic",
                description="Sort field",
            ),
            enum("sortRange", SORT_RANGE_OPTIONS, description="Position range"),
            order(default="desc"),
            string_list("domains", "Competitor domains", required=True, min_items=1),
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
