import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.models import InitializationOptions

from serpstat_mcp.utils.serpstat.dispatcher import ToolSpec
from serpstat_mcp.utils.serpstat.params import EMAIL_PATTERN, positive_id
from serpstat_mcp.utils.serpstat.server import (
    create_serpstat_server,
    get_serpstat_initialization_options,
)
from serpstat_mcp.utils.serpstat.util import authenticate_and_save_serpstat_key
from serpstat_mcp.utils.serpstat.validation import (
    array,
    boolean,
    enum,
    integer,
    obj,
    string,
)

SERVICE_NAME = Path(__file__).parent.name

ERROR_MODES = ["all", "new", "solved"]
EXPORT_TYPES = ["mgxlsx", "mgxlsx_mfiles", "puppeter_pdf"]


def project_id():
    return positive_id("projectId", required=True, description="Audit project ID")


def report_id(name="reportId", required=True):
    return positive_id(name, required=required, description="Audit report ID")


def error_name():
    return string(
        "errorName",
        required=True,
        min_length=1,
        description="Error type, e.g. tiny_title or no_description",
    )


def limit(default=None, maximum=None):
    return integer(
        "limit", minimum=1, maximum=maximum, default=default, description="Page size"
    )


def offset(default=None):
    return integer("offset", minimum=0, default=default, description="Rows to skip")


def ranged(name, minimum, maximum, description=""):
    return integer(name, minimum=minimum, maximum=maximum, description=description)


def keywords_block(name, description):
    return obj(
        name,
        required=True,
        description=description,
        properties=(
            boolean("checked"),
            string("keywords", description="Comma separated keywords"),
        ),
    )


SET_SETTINGS_PARAMETERS = (
    project_id(),
    obj(
        "mainSettings",
        required=True,
        description="Main scan settings",
        properties=(
            string("domain", required=True, min_length=1),
            string("name", required=True, min_length=1),
            boolean("subdomainsCheck"),
            ranged("pagesLimit", 1, 100000, "Maximum pages to scan"),
            ranged("scanSpeed", 1, 10, "Scan speed"),
            boolean("autoSpeed"),
            boolean("autoUserAgent"),
            boolean("scanNoIndex"),
            boolean("scanWrongCanonical"),
            ranged("scanDuration", 1, 168, "Maximum scan duration in hours"),
            ranged("folderDepth", 0, 20),
            ranged("urlDepth", 1, 50),
            ranged("userAgent", 0, 10, "User agent preset"),
            boolean("robotsTxt"),
            boolean("withImages"),
        ),
    ),
    keywords_block("dontScanKeywordsBlock", "Skip URLs containing these keywords"),
    keywords_block("onlyScanKeywordsBlock", "Only scan URLs containing these keywords"),
    obj(
        "baseAuthBlock",
        required=True,
        description="HTTP basic auth credentials for the site",
        properties=(string("login"), string("password")),
    ),
    obj(
        "mailTriggerSettings",
        required=True,
        description="Email notifications",
        properties=(
            array(
                "emails",
                items=string(
                    "email",
                    pattern=EMAIL_PATTERN,
                    pattern_message="invalid email address",
                ),
            ),
            ranged("interval", 1, 30),
            boolean("enabled"),
            boolean("enableExportAfterFinish"),
        ),
    ),
    obj(
        "scheduleSettings",
        required=True,
        description="Scan schedule",
        properties=(ranged("scheduleRepeatOption", 0, 10),),
    ),
    obj(
        "scanSetting",
        required=True,
        description="Scan source",
        properties=(
            ranged("type", 1, 5, "Scan type"),
            array("list", items=string("url")),
            string("importedFilename"),
        ),
    ),
    obj(
        "errorsSettings",
        required=True,
        description="Thresholds used to flag errors",
        properties=(
            ranged("tiny_title", 1, 100),
            ranged("long_title", 50, 200),
            ranged("tiny_desc", 50, 200),
            ranged("long_desc", 150, 320),
            ranged("long_url", 500, 4096),
            ranged("large_image_size", 50, 5000),
            ranged("large_page_size", 1, 10),
            ranged("many_external_links", 10, 1000),
        ),
    ),
)

TOOLS = [
    ToolSpec(
        name="start",
        upstream_method="AuditSite.start",
        description="Start a site audit for a project",
        parameters=(project_id(),),
    ),
    ToolSpec(
        name="stop",
        upstream_method="AuditSite.stop",
        description="Stop the running audit of a project",
        parameters=(project_id(),),
    ),
    ToolSpec(
        name="getBasicInfo",
        upstream_method="AuditSite.getBasicInfo",
        description="Summary of an audit report: score, errors and pages scanned",
        parameters=(report_id(),),
    ),
    ToolSpec(
        name="getErrorElements",
        upstream_method="AuditSite.getErrorElements",
        description="Pages affected by one error type, compared with another report",
        parameters=(
            report_id(),
            report_id("compareReportId"),
            project_id(),
            error_name(),
            enum("mode", ERROR_MODES, default="all", description="Which errors"),
            limit(default=10),
            offset(default=0),
        ),
    ),
    ToolSpec(
        name="getCategoriesStatistic",
        upstream_method="AuditSite.getCategoriesStatistic",
        description="Error counts per category for a report",
        parameters=(report_id(),),
    ),
    ToolSpec(
        name="getSettings",
        upstream_method="AuditSite.getSettings",
        description="Current audit settings of a project",
        parameters=(project_id(),),
    ),
    ToolSpec(
        name="setSettings",
        upstream_method="AuditSite.setSettings",
        description="Replace the audit settings of a project",
        parameters=SET_SETTINGS_PARAMETERS,
    ),
    ToolSpec(
        name="getDefaultSettings",
        upstream_method="AuditSite.getDefaultSettings",
        description="Default audit settings",
    ),
    ToolSpec(
        name="getList",
        upstream_method="AuditSite.getList",
        description="Audit reports of a project",
        parameters=(project_id(), limit(maximum=100), offset()),
    ),
    ToolSpec(
        name="getReportWithoutDetails",
        upstream_method="AuditSite.getReportWithoutDetails",
        description="Error totals of a report without page details",
        parameters=(report_id(),),
    ),
    ToolSpec(
        name="getSubElementsByCrc",
        upstream_method="AuditSite.getSubElementsByCrc",
        description="Sub elements of an error identified by its checksum",
        parameters=(
            report_id(),
            project_id(),
            error_name(),
            integer("crc", required=True, description="Error element checksum"),
            report_id("compareReportId", required=False),
            enum("mode", ERROR_MODES, default="all", description="Which errors"),
            limit(default=30),
            offset(default=0),
        ),
    ),
    ToolSpec(
        name="getScanUserUrlList",
        upstream_method="AuditSite.getScanUserUrlList",
        description="URLs the user asked the audit to scan",
        parameters=(project_id(),),
    ),
    ToolSpec(
        name="getHistoryByCountError",
        upstream_method="AuditSite.getHistoryByCountError",
        description="How the count of an error changed across reports",
        parameters=(project_id(), error_name(), limit(default=30), offset(default=0)),
    ),
    ToolSpec(
        name="export",
        upstream_method="AuditSite.export",
        description="Export a report to XLSX or PDF",
        parameters=(
            report_id(),
            enum("exportType", EXPORT_TYPES, required=True, description="File type"),
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
