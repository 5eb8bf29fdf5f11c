import pytest

from tests.utils.test_tools import get_test_id, run_list_tools_test, run_tool_test

EXPECTED_TOOLS = [
    "getSummary",
    "getRefDomains",
    "getNewBacklinks",
    "getLostBacklinks",
    "getOutlinks",
    "getAnchors",
    "getTopPages",
    "getIntersect",
    "getIntersectSummary",
    "getRedirectedDomains",
    "getDistributionSdr",
    "getDistributionTld",
    "getThreats",
    "getThreatsLinks",
    "getOutThreats",
    "getOutThreatsLinks",
    "getTopAnchors",
    "getOutDomains",
    "getLostOutlinks",
    "getBacklinksChangesHistory",
]

TOOL_TESTS = [
    {
        "name": "getSummary",
        "args": {"query": "example.com"},
        "expected_method": "SerpstatBacklinksProcedure.getSummary",
        "expected_params": {"query": "example.com", "searchType": "domain"},
        "description": "summary always sends search type",
    },
    {
        "name": "getRefDomains",
        "args": {"query": "example.com"},
        "expected_method": "SerpstatBacklinksProcedure.getRefDomains",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain_with_subdomains",
            "sort": "check",
        },
        "description": "referring domains with default sort",
    },
    {
        "name": "getRefDomains",
        "args": {
            "query": "example.com",
            "searchType": "domain",
            "page": 2,
            "size": 50,
            "sort": "domain_rank",
            "order": "desc",
            "complexFilter": [
                [{"field": "domain_rank", "compareType": "gte", "value": [30]}]
            ],
            "linkPerDomain": 1,
        },
        "expected_method": "SerpstatBacklinksProcedure.getRefDomains",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain",
            "page": 2,
            "size": 50,
            "sort": "domain_rank",
            "order": "desc",
            "complexFilter": [
                [{"field": "domain_rank", "compareType": "gte", "value": [30]}]
            ],
            "linkPerDomain": 1,
        },
        "description": "referring domains with complex filter",
    },
    {
        "name": "getNewBacklinks",
        "args": {"query": "example.com", "complexFilter": [{"field": "check"}]},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "complexFilter[0]: expected array, got object",
        "description": "reject flat complex filter",
    },
    {
        "name": "getAnchors",
        "args": {"query": "example.com", "anchor": "seo", "count": "2"},
        "expected_method": "SerpstatBacklinksProcedure.getAnchors",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain_with_subdomains",
            "sort": "lastupdate",
            "anchor": "seo",
            "count": "2",
        },
        "description": "anchors containing text",
    },
    {
        "name": "getIntersect",
        "args": {"query": "example.com", "intersect": ["a.com", "b.com"]},
        "expected_method": "SerpstatBacklinksProcedure.getIntersect",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain_with_subdomains",
            "intersect": ["a.com", "b.com"],
            "sort": "links_count1",
        },
        "description": "shared backlinks",
    },
    {
        "name": "getIntersectSummary",
        "args": {
            "query": "example.com",
            "intersect": ["a.com", "b.com", "c.com", "d.com", "e.com", "f.com"],
        },
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "intersect: must contain at most 5 items",
        "description": "reject too many competitors",
    },
    {
        "name": "getRedirectedDomains",
        "args": {"query": "example.com"},
        "expected_method": "SerpstatBacklinksProcedure.getRedirectedDomains",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain_with_subdomains",
        },
        "description": "redirected domains without sort",
    },
    {
        "name": "getDistributionSdr",
        "args": {"query": "example.com"},
        "expected_method": "SerpstatBacklinksProcedure.getDistributionSDR",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain_with_subdomains",
        },
        "description": "domain rank distribution",
    },
    {
        "name": "getDistributionTld",
        "args": {"query": "example.com", "searchType": "subdomain"},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "searchType: must be one of: domain, domain_with_subdomains",
        "description": "reject unknown search type",
    },
    {
        "name": "getBacklinksChangesHistory",
        "args": {
            "query": "example.com",
            "dateFrom": "2024-01-01",
            "dateTo": "2024-02-01",
        },
        "expected_method": "SerpstatBacklinksProcedure.getBacklinksChangesHistory",
        "expected_params": {
            "query": "example.com",
            "searchType": "domain_with_subdomains",
            "dateFrom": "2024-01-01",
            "dateTo": "2024-02-01",
        },
        "description": "backlink changes over a month",
    },
    {
        "name": "getThreats",
        "args": {"query": ""},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "query: must be at least 1 characters",
        "description": "reject empty query",
    },
]


@pytest.mark.asyncio
async def test_list_tools(server_name):
    await run_list_tools_test(server_name, EXPECTED_TOOLS)


@pytest.mark.asyncio
@pytest.mark.parametrize("test_config", TOOL_TESTS, ids=get_test_id)
async def test_backlinks_tool(server_name, test_config):
    await run_tool_test(server_name, test_config)
