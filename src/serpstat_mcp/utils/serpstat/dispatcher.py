import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from .client import RpcResult
from .errors import (
    INTERNAL_ERROR,
    INVALID_ARGUMENTS,
    UNKNOWN_TOOL,
    SerpstatError,
    ToolNotFoundError,
)
from .validation import ParamSpec, object_schema, validate

logger = logging.getLogger("serpstat-dispatcher")


@dataclass(frozen=True)
class ToolSpec:
    """One tool exposed by a server, backed by exactly one upstream method"""

    name: str
    upstream_method: str
    description: str
    parameters: Tuple[ParamSpec, ...] = ()

    def input_schema(self) -> Dict[str, Any]:
        return object_schema(self.parameters)


@dataclass
class InvocationRequest:
    tool_name: str
    arguments: Optional[Mapping[str, Any]] = field(default_factory=dict)


@dataclass
class ToolEnvelope:
    text: str
    is_error: bool = False
    code: Optional[str] = None


class RpcInvoker(Protocol):
    async def invoke(self, method: str, params: Dict[str, Any]) -> RpcResult: ...


class ToolRegistry:
    """Read-only map of tool name to ToolSpec"""

    def __init__(self, tools: Iterable[ToolSpec]):
        self._tools: Dict[str, ToolSpec] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool

    def lookup(self, name: str) -> ToolSpec:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def tools(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def error_envelope(code: str, message: str) -> ToolEnvelope:
    payload = {"success": False, "error": {"code": code, "message": message}}
    return ToolEnvelope(text=json.dumps(payload, indent=2), is_error=True, code=code)


def success_envelope(data: Any) -> ToolEnvelope:
    if isinstance(data, str):
        return ToolEnvelope(text=data)
    return ToolEnvelope(text=json.dumps(data, indent=2))


def build_upstream_params(
    spec: ToolSpec, validated: Mapping[str, Any]
) -> Dict[str, Any]:
    """Drop fields still at their declared default unless they must always be sent"""
    params: Dict[str, Any] = {}
    for param in spec.parameters:
        if param.name not in validated:
            continue
        value = validated[param.name]
        if (
            not param.always_send
            and param.default is not None
            and value == param.default
        ):
            continue
        params[param.name] = value
    return params


class Dispatcher:
    """Runs validate, build params, invoke and envelope for every tool call.

    ``handle`` never raises. Every outcome, including an unexpected fault in
    the RPC client, comes back as a ToolEnvelope.
    """

    def __init__(self, registry: ToolRegistry, client: RpcInvoker):
        self.registry = registry
        self.client = client

    async def handle(self, request: InvocationRequest) -> ToolEnvelope:
        try:
            spec = self.registry.lookup(request.tool_name)
        except ToolNotFoundError as e:
            logger.error(str(e))
            return error_envelope(UNKNOWN_TOOL, str(e))

        result = validate(spec.parameters, request.arguments)
        if not result.ok:
            message = f"Invalid arguments for {spec.name}: {result.message}"
            logger.error(message)
            return error_envelope(INVALID_ARGUMENTS, message)

        params = build_upstream_params(spec, result.arguments)

        try:
            rpc_result = await self.client.invoke(spec.upstream_method, params)
        except SerpstatError as e:
            logger.error(f"Could not call {spec.upstream_method}: {str(e)}")
            return error_envelope(e.code, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error calling {spec.upstream_method}")
            return error_envelope(INTERNAL_ERROR, f"Internal error: {str(e)}")

        if rpc_result.success:
            return success_envelope(rpc_result.data)
        return error_envelope(
            rpc_result.error_code or INTERNAL_ERROR,
            rpc_result.error_message or "Unknown API error",
        )
