import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import date, order, page, size, string_list
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import array, enum, integer, string

SERVICE_NAME = Path(__file__).parent.name

PROCEDURE = "SerpstatBacklinksProcedure"

SEARCH_TYPES = ["domain", "domain_with_subdomains"]


def query():
    return string(
        "query", required=True, min_length=1, description="Domain of the analyzed site"
    )


def search_type(default="domain_with_subdomains"):
    return enum(
        "searchType",
        SEARCH_TYPES,
        default=default,
        always_send=True,
        description="Analyze the domain alone or with its subdomains",
    )


def sort(default, fields):
    return string(
        "sort",
        default=default,
        always_send=True,
        description=f"Sort field ({fields})",
    )


def complex_filter():
    # Outer list is OR-ed, inner lists are AND-ed condition objects
    return array(
        "complexFilter",
        items=array("conditions"),
        description="Filter groups: [[{field, compareType, value}, ...], ...]",
    )


def link_per_domain():
    return integer("linkPerDomain", minimum=1, description="Links per domain limit")


def paging():
    return (page(default=None), size(default=None))


def links_report(name, description, default_sort, sort_fields):
    """Paginated backlink listing sorted by a field"""
    return ToolSpec(
        name=name,
        upstream_method=f"{PROCEDURE}.{name}",
        description=description,
        parameters=(query(), search_type())
        + paging()
        + (
            sort(default_sort, sort_fields),
            order(),
            complex_filter(),
            link_per_domain(),
        ),
    )


def anchors_report(name, description, default_sort, sort_fields):
    return ToolSpec(
        name=name,
        upstream_method=f"{PROCEDURE}.{name}",
        description=description,
        parameters=(query(), search_type())
        + paging()
        + (
            sort(default_sort, sort_fields),
            order(),
            string("anchor", description="Only anchors containing this text"),
            string("count", description="Number of words in the anchor"),
            complex_filter(),
        ),
    )


def intersect(description):
    return string_list(
        "intersect", description, required=True, min_items=1, max_items=5
    )


BACKLINK_SORT = (
    "url_from, anchor, link_nofollow, links_external, "
    "link_type, url_to, check, add, domain_rank"
)
THREAT_SORT = "lastupdate, domain_link, links_count, platform_type, threat_type"

TOOLS = [
    ToolSpec(
        name="getSummary",
        upstream_method=f"{PROCEDURE}.getSummary",
        description="Backlink profile summary of a domain",
        parameters=(query(), search_type(default="domain")),
    ),
    links_report(
        "getRefDomains",
        "Referring domains of a domain",
        "check",
        "domain_links, domain_from, domain_rank, check",
    ),
    links_report("getNewBacklinks", "Recently found backlinks", "check", BACKLINK_SORT),
    links_report("getLostBacklinks", "Recently lost backlinks", "check", BACKLINK_SORT),
    links_report("getOutlinks", "Outgoing links of a domain", "check", BACKLINK_SORT),
    anchors_report(
        "getAnchors",
        "Anchor texts of backlinks to a domain",
        "lastupdate",
        "total, refDomains, nofollow, anchor, lastupdate",
    ),
    ToolSpec(
        name="getTopPages",
        upstream_method=f"{PROCEDURE}.getTopPages",
        description="Pages of a domain with the most backlinks",
        parameters=(query(), search_type())
        + paging()
        + (
            sort("lastupdate", "ips, count, domains, url_to, lastupdate"),
            order(),
            complex_filter(),
        ),
    ),
    ToolSpec(
        name="getIntersect",
        upstream_method=f"{PROCEDURE}.getIntersect",
        description="Backlinks a domain shares with up to five competitors",
        parameters=(query(), search_type())
        + paging()
        + (
            intersect("Competitor domains"),
            sort("links_count1", "links_count1, links_count2, ..."),
            order(),
            complex_filter(),
        ),
    ),
    ToolSpec(
        name="getIntersectSummary",
        upstream_method=f"{PROCEDURE}.getIntersectSummary",
        description="Summary of backlinks shared with competitors",
        parameters=(query(), search_type(), intersect("Competitor domains")),
    ),
    ToolSpec(
        name="getRedirectedDomains",
        upstream_method=f"{PROCEDURE}.getRedirectedDomains",
        description="Domains redirecting to a domain",
        parameters=(query(), search_type())
        + paging()
        + (
            string("sort", description="Sort field"),
            order(),
            complex_filter(),
            link_per_domain(),
        ),
    ),
    ToolSpec(
        name="getDistributionSdr",
        upstream_method=f"{PROCEDURE}.getDistributionSDR",
        description="Referring domains grouped by domain rank",
        parameters=(query(), search_type(), complex_filter()),
    ),
    ToolSpec(
        name="getDistributionTld",
        upstream_method=f"{PROCEDURE}.getDistributionTLD",
        description="Referring domains grouped by top level domain",
        parameters=(query(), search_type(), complex_filter()),
    ),
    links_report(
        "getThreats", "Malicious referring domains", "lastupdate", THREAT_SORT
    ),
    links_report(
        "getThreatsLinks", "Backlinks from malicious pages", "lastupdate", THREAT_SORT
    ),
    links_report(
        "getOutThreats", "Malicious domains linked to", "lastupdate", THREAT_SORT
    ),
    links_report(
        "getOutThreatsLinks",
        "Outgoing links to malicious pages",
        "lastupdate",
        THREAT_SORT,
    ),
    anchors_report(
        "getTopAnchors",
        "Most used anchor texts",
        "total",
        "total, refDomains, nofollow, anchor",
    ),
    links_report(
        "getOutDomains",
        "Domains the site links to",
        "domain_links",
        "domain_links, domain_from, domain_rank",
    ),
    links_report(
        "getLostOutlinks",
        "Outgoing links that disappeared",
        "check",
        "url_from, anchor, link_nofollow, links_external",
    ),
    ToolSpec(
        name="getBacklinksChangesHistory",
        upstream_method=f"{PROCEDURE}.getBacklinksChangesHistory",
        description="New and lost backlinks over time",
        parameters=(query(), search_type())
        + paging()
        + (
            string("sort", description="Sort field"),
            order(),
            date("dateFrom", description="Start date, YYYY-MM-DD"),
            date("dateTo", description="End date, YYYY-MM-DD"),
            complex_filter(),
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
