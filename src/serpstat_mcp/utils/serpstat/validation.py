import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

INTEGER = "integer"
NUMBER = "number"
STRING = "string"
BOOLEAN = "boolean"
ENUM = "enum"
ARRAY = "array"
OBJECT = "object"

KINDS = (INTEGER, NUMBER, STRING, BOOLEAN, ENUM, ARRAY, OBJECT)


@dataclass(frozen=True)
class ParamSpec:
    """Declarative description of one tool argument"""

    name: str
    kind: str
    required: bool = False
    default: Any = None
    description: str = ""
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    pattern_message: Optional[str] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    items: Optional["ParamSpec"] = None
    choices: Optional[Tuple[Any, ...]] = None
    properties: Optional[Tuple["ParamSpec", ...]] = None
    always_send: bool = False

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"Unsupported parameter kind: {self.kind}")
        if self.kind == ENUM and not self.choices:
            raise ValueError(f"Enum parameter {self.name} declares no choices")

    def to_json_schema(self) -> Dict[str, Any]:
        """Render this parameter as a JSON schema fragment"""
        schema: Dict[str, Any] = {}

        if self.kind == ENUM:
            all_ints = all(
                isinstance(c, int) and not isinstance(c, bool) for c in self.choices
            )
            schema["type"] = INTEGER if all_ints else STRING
            schema["enum"] = list(self.choices)
        else:
            schema["type"] = self.kind

        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default

        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.min_length is not None:
            schema["minLength"] = self.min_length
        if self.max_length is not None:
            schema["maxLength"] = self.max_length
        if self.pattern is not None:
            schema["pattern"] = self.pattern
        if self.min_items is not None:
            schema["minItems"] = self.min_items
        if self.max_items is not None:
            schema["maxItems"] = self.max_items
        if self.items is not None:
            schema["items"] = self.items.to_json_schema()
        if self.properties is not None:
            schema.update(object_schema(self.properties))

        return schema


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationResult:
    arguments: Optional[Dict[str, Any]] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        return "; ".join(str(error) for error in self.errors)


def object_schema(params: Tuple[ParamSpec, ...]) -> Dict[str, Any]:
    schema: Dict[str, Any] = {
        "type": OBJECT,
        "properties": {p.name: p.to_json_schema() for p in params},
    }
    required = [p.name for p in params if p.required]
    if required:
        schema["required"] = required
    return schema


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, float):
        return NUMBER
    if isinstance(value, str):
        return STRING
    if isinstance(value, (list, tuple)):
        return ARRAY
    if isinstance(value, Mapping):
        return OBJECT
    return type(value).__name__


def _fmt(number) -> str:
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def _drop_nulls(value: Any) -> Any:
    """Remove null members from every object so they read as absent"""
    if isinstance(value, Mapping):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_drop_nulls(item) for item in value]
    return value


def _locate(
    params: Tuple[ParamSpec, ...], parts: Sequence[Any]
) -> Tuple[Optional[ParamSpec], Tuple[int, ...]]:
    """Find the declaration at a schema error path.

    Also returns a sort key made of declaration positions, so errors come
    out in the order the fields were declared.
    """
    spec: Optional[ParamSpec] = None
    properties: Optional[Tuple[ParamSpec, ...]] = params
    key: List[int] = []

    for part in parts:
        if isinstance(part, int):
            spec = spec.items if spec is not None else None
            key.append(part)
        else:
            names = [p.name for p in properties or ()]
            index = names.index(part) if part in names else len(names)
            spec = properties[index] if index < len(names) else None
            key.append(index)
        properties = spec.properties if spec is not None else None

    return spec, tuple(key)


def _format_path(parts: Sequence[Any]) -> str:
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path or "arguments"


def _describe(error: ValidationError, spec: Optional[ParamSpec]) -> str:
    keyword = error.validator
    limit = error.validator_value

    if keyword == "type":
        return f"expected {limit}, got {_json_type(error.instance)}"
    if keyword == "minimum":
        return f"must be at least {_fmt(limit)}"
    if keyword == "maximum":
        return f"must be at most {_fmt(limit)}"
    if keyword == "minLength":
        return f"must be at least {limit} characters"
    if keyword == "maxLength":
        return f"must be at most {limit} characters"
    if keyword == "minItems":
        return f"must contain at least {limit} items"
    if keyword == "maxItems":
        return f"must contain at most {limit} items"
    if keyword == "enum":
        return "must be one of: " + ", ".join(str(c) for c in limit)
    if keyword == "pattern":
        if spec is not None and spec.pattern_message:
            return spec.pattern_message
        return "does not match the required format"
    return error.message


def _field_errors(
    params: Tuple[ParamSpec, ...], errors: Sequence[ValidationError]
) -> List[FieldError]:
    located = []

    for error in errors:
        parts = list(error.absolute_path)

        if error.validator == "required":
            missing = next(
                name
                for name in error.validator_value
                if error.message.startswith(repr(name))
            )
            path = parts + [missing]
            _, key = _locate(params, path)
            located.append(
                (key, FieldError(_format_path(path), "required field missing"))
            )
            continue

        # A wrong type on an enum is reported once, as the enum error
        if error.validator == "type" and "enum" in error.schema:
            continue

        spec, key = _locate(params, parts)
        located.append((key, FieldError(_format_path(parts), _describe(error, spec))))

    located.sort(key=lambda pair: pair[0])
    return [field_error for _, field_error in located]


def _normalise(spec: ParamSpec, value: Any) -> Any:
    if spec.kind in (INTEGER, ENUM):
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    if spec.kind == ARRAY:
        if spec.items is None:
            return list(value)
        return [_normalise(spec.items, item) for item in value]
    if spec.kind == OBJECT:
        if spec.properties is None:
            return dict(value)
        return _fill(spec.properties, value)
    return value


def _fill(params: Tuple[ParamSpec, ...], raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply defaults, drop undeclared fields and normalise integral numbers"""
    filled: Dict[str, Any] = {}

    for spec in params:
        if spec.name not in raw:
            if spec.default is not None:
                filled[spec.name] = copy.deepcopy(spec.default)
            continue
        filled[spec.name] = _normalise(spec, raw[spec.name])

    return filled


def validate(params: Tuple[ParamSpec, ...], raw: Any) -> ValidationResult:
    """Validate raw tool arguments against declared parameters.

    The arguments are checked with jsonschema against the schema rendered
    from the declarations. Absent (or null) optional fields then take their
    declared default, or are left out entirely when no default exists.
    Undeclared fields are dropped. Every failure is collected rather than
    stopping at the first one.

    Args:
        params: The tool's parameter declarations
        raw: Arguments as received from the caller

    Returns:
        ValidationResult holding either the validated arguments or the errors
    """
    if raw is None:
        raw = {}
    arguments = _drop_nulls(raw)

    validator = Draft202012Validator(object_schema(params))
    errors = _field_errors(params, list(validator.iter_errors(arguments)))

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(arguments=_fill(params, arguments))


# Shorthand constructors used by the tool tables


def integer(name, **kwargs) -> ParamSpec:
    return ParamSpec(name, INTEGER, **kwargs)


def number(name, **kwargs) -> ParamSpec:
    return ParamSpec(name, NUMBER, **kwargs)


def string(name, **kwargs) -> ParamSpec:
    return ParamSpec(name, STRING, **kwargs)


def boolean(name, **kwargs) -> ParamSpec:
    return ParamSpec(name, BOOLEAN, **kwargs)


def enum(name, choices, **kwargs) -> ParamSpec:
    return ParamSpec(name, ENUM, choices=tuple(choices), **kwargs)


def array(name, items: Optional[ParamSpec] = None, **kwargs) -> ParamSpec:
    return ParamSpec(name, ARRAY, items=items, **kwargs)


def obj(name, properties=None, **kwargs) -> ParamSpec:
    if properties is not None:
        properties = tuple(properties)
    return ParamSpec(name, OBJECT, properties=properties, **kwargs)
