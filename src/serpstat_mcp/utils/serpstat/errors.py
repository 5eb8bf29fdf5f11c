UNKNOWN_TOOL = "UNKNOWN_TOOL"
INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
API_REQUEST_FAILED = "API_REQUEST_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class SerpstatError(Exception):
    """Base class for errors raised by the Serpstat servers"""

    code = INTERNAL_ERROR


class ToolNotFoundError(SerpstatError, KeyError):
    """Raised when a tool name is not present in a registry"""

    code = UNKNOWN_TOOL

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"


class MissingCredentialError(SerpstatError, ValueError):
    """Raised when no Serpstat API key can be found for a user"""

    code = MISSING_CREDENTIAL


class ToolEnvelopeError(SerpstatError):
    """Carries an error envelope out of an MCP tool handler.

    The low-level MCP server converts exceptions raised by a tool handler
    into a result with ``isError`` set and the exception text as content,
    so the message is the envelope text itself.
    """

    def __init__(self, text: str, code: str = INTERNAL_ERROR):
        self.text = text
        self.code = code
        super().__init__(text)
