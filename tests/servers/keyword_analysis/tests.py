import pytest

from serpstat_mcp.utils.serpstat.client import RpcResult

from tests.utils.test_tools import get_test_id, run_list_tools_test, run_tool_test

EXPECTED_TOOLS = [
    "getKeywords",
    "getSuggestions",
    "getKeywordsInfo",
    "getRelatedKeywords",
    "getTopUrls",
    "getCompetitors",
    "getAdKeywords",
    "getAdsCompetitors",
    "getKeywordTop",
    "getKeywordFullTop",
    "exportKeywordsPhrase",
    "exportSuggestions",
]

TOOL_TESTS = [
    {
        "name": "getKeywords",
        "args": {"se": "g_us", "keyword": "seo tools"},
        "expected_method": "SerpstatKeywordProcedure.getKeywords",
        "expected_params": {"se": "g_us", "keyword": "seo tools"},
        "description": "phrase match keywords",
    },
    {
        "name": "getKeywords",
        "args": {
            "se": "g_us",
            "keyword": "seo tools",
            "minusKeywords": ["free"],
            "withIntents": True,
            "filters": {"cost_from": 1},
            "sort": {"region_queries_count": "desc"},
            "page": 2,
            "size": 50,
        },
        "expected_method": "SerpstatKeywordProcedure.getKeywords",
        "expected_params": {
            "se": "g_us",
            "keyword": "seo tools",
            "minusKeywords": ["free"],
            "withIntents": True,
            "filters": {"cost_from": 1},
            "sort": {"region_queries_count": "desc"},
            "page": 2,
            "size": 50,
        },
        "description": "phrase match keywords with filters",
    },
    {
        "name": "getKeywords",
        "args": {"se": "g_us", "keyword": ""},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "keyword: must be at least 1 characters",
        "description": "reject empty keyword",
    },
    {
        "name": "getSuggestions",
        "args": {
            "se": "g_ua",
            "keyword": "seo",
            "filters": {"minus_keywords": ["free", "cheap"]},
        },
        "expected_method": "SerpstatKeywordProcedure.getSuggestions",
        "expected_params": {
            "se": "g_ua",
            "keyword": "seo",
            "filters": {"minus_keywords": ["free", "cheap"]},
        },
        "description": "suggestions excluding words",
    },
    {
        "name": "getSuggestions",
        "args": {"se": "g_ua", "keyword": "seo", "filters": {"minus_keywords": "x"}},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "filters.minus_keywords: expected array, got string",
        "description": "reject scalar minus keywords",
    },
    {
        "name": "getKeywordsInfo",
        "args": {"se": "g_us", "keywords": ["seo", "serp"]},
        "expected_method": "SerpstatKeywordProcedure.getKeywordsInfo",
        "expected_params": {"se": "g_us", "keywords": ["seo", "serp"]},
        "description": "info for keyword list",
    },
    {
        "name": "getKeywordsInfo",
        "args": {"se": "g_us", "keywords": []},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "keywords: must contain at least 1 items",
        "description": "reject empty keyword list",
    },
    {
        "name": "getKeywordFullTop",
        "args": {"se": "g_us", "keyword": "seo", "size": 100},
        "expected_method": "SerpstatKeywordProcedure.getKeywordFullTop",
        "expected_params": {"se": "g_us", "keyword": "seo", "size": 100},
        "description": "full top with explicit size",
    },
    {
        "name": "getCompetitors",
        "args": {"keyword": "seo"},
        "expected_error": "INVALID_ARGUMENTS",
        "error_contains": "se: required field missing",
        "description": "missing search engine",
    },
    {
        "name": "exportKeywordsPhrase",
        "args": {"se": "g_us", "keyword": "seo"},
        "responses": [
            RpcResult(
                success=True,
                data={"result": {"file": "https://serpstat.com/export/123.csv"}},
            )
        ],
        "expected_method": "SerpstatKeywordProcedure.exportKeywordsPhrase",
        "expected_text": (
            '{\n  "result": {\n'
            '    "file": "https://serpstat.com/export/123.csv"\n  }\n}'
        ),
        "description": "export link",
    },
]


@pytest.mark.asyncio
async def test_list_tools(server_name):
    await run_list_tools_test(server_name, EXPECTED_TOOLS)


@pytest.mark.asyncio
@pytest.mark.parametrize("test_config", TOOL_TESTS, ids=get_test_id)
async def test_keyword_analysis_tool(server_name, test_config):
    await run_tool_test(server_name, test_config)
