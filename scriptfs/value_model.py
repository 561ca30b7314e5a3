"""Script value model, runtime adaptation and path coercion."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
import math
import os

from scriptfs.error_msg import BindingError, ConversionError


MAX_PREVIEW_LENGTH = 2048
MAX_LIST_PREVIEW = 16


class ScriptValueError(RuntimeError):
    """Base runtime error for script value handling."""


class UnsupportedScriptValueError(ScriptValueError):
    """Raised when a native value has no script-level representation."""

    code = "E_UNSUPPORTED_VALUE_TYPE"

    def __init__(self, value: Any, message: str | None = None):
        type_name = f"{type(value).__module__}.{type(value).__name__}"
        detail = message or f"Value type '{type_name}' has no script representation."
        super().__init__(detail)
        self.value_type = type_name


class ScriptValue(ABC):
    """Object-oriented adapter for values crossing the script boundary."""

    script_type: str = "unknown"

    def __init__(self, raw: Any):
        self.raw = raw

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        """Return canonical descriptor for this value."""

    def to_json_native(self) -> Any:
        raise ScriptValueError(f"Value type '{self.script_type}' does not support JSON-native serialization")

    def descriptor_base(self) -> dict[str, Any]:
        return {"script_type": self.script_type, "summary": {}}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptValue):
            return NotImplemented
        return self.script_type == other.script_type and self.to_json_native() == other.to_json_native()

    def __hash__(self) -> int:
        return hash((self.script_type, repr(self.raw)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.raw!r})"


class ScriptVoidValue(ScriptValue):
    """Unit result of effectful primitives, also used for absent values."""

    script_type = "void"

    def __init__(self, raw: Any = None):
        super().__init__(None)

    def describe(self) -> dict[str, Any]:
        payload = self.descriptor_base()
        payload["summary"] = {"value": None}
        return payload

    def to_json_native(self) -> Any:
        return None


class ScriptBooleanValue(ScriptValue):
    script_type = "boolean"

    def describe(self) -> dict[str, Any]:
        payload = self.descriptor_base()
        payload["summary"] = {"value": bool(self.raw)}
        return payload

    def to_json_native(self) -> Any:
        return bool(self.raw)


class ScriptNumberValue(ScriptValue):
    script_type = "number"

    def describe(self) -> dict[str, Any]:
        payload = self.descriptor_base()
        payload["summary"] = {"value": self.to_json_native()}
        return payload

    def to_json_native(self) -> Any:
        if isinstance(self.raw, int):
            return int(self.raw)
        number = float(self.raw)
        if not math.isfinite(number):
            raise ScriptValueError("Non-finite numbers are not JSON-native")
        return number


class ScriptStringValue(ScriptValue):
    script_type = "string"

    def describe(self) -> dict[str, Any]:
        text = str(self.raw)
        payload = self.descriptor_base()
        payload["summary"] = {
            "length": len(text),
            "value": text[:MAX_PREVIEW_LENGTH],
            "truncated": len(text) > MAX_PREVIEW_LENGTH,
        }
        return payload

    def to_json_native(self) -> Any:
        return str(self.raw)


class ScriptListValue(ScriptValue):
    script_type = "list"

    def __init__(self, raw: Any):
        super().__init__([adapt_runtime_value(item) for item in raw])

    @property
    def items(self) -> list[ScriptValue]:
        return list(self.raw)

    def describe(self) -> dict[str, Any]:
        payload = self.descriptor_base()
        payload["summary"] = {
            "length": len(self.raw),
            "preview": [item.describe() for item in self.raw[:MAX_LIST_PREVIEW]],
            "truncated": len(self.raw) > MAX_LIST_PREVIEW,
        }
        return payload

    def to_json_native(self) -> Any:
        return [item.to_json_native() for item in self.raw]


class ScriptErrorValue(ScriptValue):
    """Error value carrying a taxonomy kind, for hosts that report rather than raise."""

    script_type = "error"

    def describe(self) -> dict[str, Any]:
        payload = self.descriptor_base()
        payload["summary"] = self.to_json_native()
        return payload

    @property
    def kind(self) -> str:
        return getattr(self.raw, "kind", type(self.raw).__name__)

    def to_json_native(self) -> Any:
        if isinstance(self.raw, BindingError):
            return self.raw.to_payload()
        return {"kind": self.kind, "message": str(self.raw)}


def adapt_runtime_value(value: Any) -> ScriptValue:
    """Adapt a native result to the script value model."""
    if isinstance(value, ScriptValue):
        return value
    if value is None:
        return ScriptVoidValue()
    if isinstance(value, bool):
        return ScriptBooleanValue(value)
    if isinstance(value, (int, float)):
        return ScriptNumberValue(value)
    if isinstance(value, str):
        return ScriptStringValue(value)
    if isinstance(value, os.PathLike):
        return ScriptStringValue(os.fspath(value))
    if isinstance(value, BaseException):
        return ScriptErrorValue(value)
    if isinstance(value, (list, tuple)):
        return ScriptListValue(value)
    raise UnsupportedScriptValueError(value)


def unwrap_script_value(value: Any) -> Any:
    """Return the native payload of a script value; natives pass through."""
    if isinstance(value, ScriptListValue):
        return [unwrap_script_value(item) for item in value.raw]
    if isinstance(value, ScriptValue):
        return value.raw
    return value


def _describe_argument(value: Any) -> str:
    if isinstance(value, ScriptValue):
        return value.script_type
    return type(value).__name__


def coerce_path(value: Any, *, operation: str | None = None) -> Path:
    """Convert a script argument to a host path.

    Runs before any OS call; every rejection is a ``ConversionError``.
    """
    raw = value.raw if isinstance(value, ScriptStringValue) else value

    if isinstance(raw, bytes):
        try:
            raw = os.fsdecode(raw)
        except UnicodeDecodeError as exc:
            raise ConversionError(
                "path bytes are not valid in the filesystem encoding",
                operation=operation,
            ) from exc
    elif isinstance(raw, os.PathLike):
        raw = os.fspath(raw)
        if isinstance(raw, bytes):
            raw = os.fsdecode(raw)

    if not isinstance(raw, str):
        raise ConversionError(
            f"expected a path string, got {_describe_argument(value)}",
            operation=operation,
        )
    if raw == "":
        raise ConversionError("path must not be empty", operation=operation)
    if "\x00" in raw:
        raise ConversionError("path must not contain NUL characters", operation=operation)
    try:
        os.fsencode(raw)
    except UnicodeEncodeError as exc:
        raise ConversionError(
            "path is not representable in the filesystem encoding",
            operation=operation,
        ) from exc
    return Path(raw)
