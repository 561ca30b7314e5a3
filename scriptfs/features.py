"""
This module defines all scriptfs features using a unified registry system.
CLI commands and API endpoints both dispatch through it.
"""

from typing import (
    Dict,
    Any,
    Callable,
    List,
    Optional,
    TypeVar,
    Generic,
)
from dataclasses import dataclass
import logging

from scriptfs.error_msg import BindingError, ScriptException
from scriptfs.interpreter import run_program
from scriptfs.primitives.registry import get_registry
from scriptfs.value_model import ScriptErrorValue

logger = logging.getLogger("scriptfs.features")

T = TypeVar("T")


class OperationResult(Generic[T]):
    """Wrapper for operation results with success/error handling"""

    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        error_kind: Optional[str] = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.error_kind = error_kind

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls, error: str, error_kind: Optional[str] = None, data: Optional[T] = None
    ) -> "OperationResult[T]":
        return cls(success=False, data=data, error=error, error_kind=error_kind)


@dataclass
class Feature:
    """Base class for all scriptfs features"""

    name: str
    description: str
    handler: Callable


class FeatureRegistry:
    """Registry for all scriptfs features"""

    _features: Dict[str, Feature] = {}

    @classmethod
    def register(cls, feature: Feature) -> Feature:
        """Register a new feature"""
        cls._features[feature.name] = feature
        return feature

    @classmethod
    def get_feature(cls, name: str) -> Optional[Feature]:
        """Get a feature by name"""
        return cls._features.get(name)

    @classmethod
    def get_all_features(cls) -> Dict[str, Feature]:
        """Get all registered features"""
        return cls._features.copy()


def _error_kind(exc: Exception) -> str:
    if isinstance(exc, BindingError):
        return exc.kind
    return type(exc).__name__


# ----------------- Feature Handlers -----------------


def handle_version(**kwargs) -> OperationResult[Dict[str, str]]:
    """Handle version request"""
    from scriptfs.version import get_version

    return OperationResult.ok({"version": get_version()})


def handle_run(program: str, **kwargs) -> OperationResult[Dict[str, Any]]:
    """Evaluate a script and report each top-level result"""
    try:
        outcome = run_program(program)
    except ScriptException as e:
        return OperationResult.fail(str(e), error_kind=_error_kind(e))

    data: Dict[str, Any] = {
        "results": [result.to_payload() for result in outcome.results],
        "forms_evaluated": len(outcome.results),
    }
    if outcome.error is not None:
        data["error"] = ScriptErrorValue(outcome.error).to_json_native()
        logger.debug("Script stopped after %d form(s)", len(outcome.results))
        return OperationResult.fail(
            outcome.error.format_message(),
            error_kind=_error_kind(outcome.error),
            data=data,
        )
    return OperationResult.ok(data)


def handle_call(
    name: str, args: Optional[List[Any]] = None, **kwargs
) -> OperationResult[Dict[str, Any]]:
    """Invoke a single primitive with native arguments"""
    registry = get_registry()
    try:
        spec = registry.resolve(name)
    except KeyError:
        return OperationResult.fail(
            f"Unknown primitive: {name}", error_kind="KeyError"
        )

    try:
        value = registry.call(name, *(args or []))
    except ScriptException as e:
        return OperationResult.fail(
            e.format_message(), error_kind=_error_kind(e)
        )
    except ValueError as e:
        return OperationResult.fail(
            f"{name}: {e}", error_kind="ArityError"
        )

    return OperationResult.ok(
        {
            "primitive": spec.qualified_name,
            "value": value.to_json_native(),
            "descriptor": value.describe(),
        }
    )


def handle_list_primitives(
    namespace: Optional[str] = None,
    **kwargs
) -> OperationResult[Dict[str, Any]]:
    """Handle listing available primitives"""
    try:
        registry = get_registry()
        primitives = registry.list_primitives(namespace)

        # Also get list of available namespaces
        namespaces = registry.list_namespaces()

        result = {
            "primitives": primitives,
            "namespaces": namespaces,
            "namespace_filter": namespace
        }

        return OperationResult.ok(result)

    except ValueError as e:
        return OperationResult.fail(
            f"Failed to list primitives: {str(e)}"
        )


# Register all features
version_feature = FeatureRegistry.register(
    Feature(
        name="version",
        description="Get the scriptfs version",
        handler=handle_version,
    )
)

run_feature = FeatureRegistry.register(
    Feature(
        name="run",
        description="Evaluate a script of filesystem primitive calls",
        handler=handle_run,
    )
)

call_feature = FeatureRegistry.register(
    Feature(
        name="call",
        description="Invoke one filesystem primitive",
        handler=handle_call,
    )
)

list_primitives_feature = FeatureRegistry.register(
    Feature(
        name="list_primitives",
        description="List available primitives",
        handler=handle_list_primitives,
    )
)
