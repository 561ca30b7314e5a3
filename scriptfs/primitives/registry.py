"""Deterministic primitive discovery, resolution and invocation registry."""

from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import Any
import importlib
import inspect
import logging

from scriptfs.policy import enforce_effect_policy
from scriptfs.primitives.api import KernelFn, PrimitiveSpec, validate_spec
from scriptfs.value_model import ScriptValue, adapt_runtime_value, unwrap_script_value

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "filesystem"

_FORBIDDEN_KERNEL_PARAMS = {"registry", "interpreter", "environment"}


class PrimitiveRegistry:
    """Registry with deterministic namespace loading and name resolution."""

    def __init__(self, primitives_dir: Path | None = None) -> None:
        if primitives_dir is None:
            primitives_dir = Path(__file__).parent

        self.primitives_dir = primitives_dir
        self._specs_by_qualified: OrderedDict[str, PrimitiveSpec] = OrderedDict()
        self._kernels_by_name: dict[str, KernelFn] = {}
        self._specs_by_namespace: dict[str, OrderedDict[str, PrimitiveSpec]] = {}
        self._import_order: list[str] = []
        self._loaded_namespaces: set[str] = set()

        self._discover_namespaces()
        self.import_namespace(DEFAULT_NAMESPACE)

    @property
    def imported_namespaces(self) -> tuple[str, ...]:
        return tuple(self._import_order)

    def _discover_namespaces(self) -> None:
        if not self.primitives_dir.exists():
            return
        for item in sorted(self.primitives_dir.iterdir(), key=lambda p: p.name):
            if not item.is_dir() or item.name.startswith("_"):
                continue
            self._load_namespace(item.name)

    def _load_namespace(self, namespace: str) -> None:
        if namespace in self._loaded_namespaces:
            return

        namespace_dir = self.primitives_dir / namespace
        if not namespace_dir.exists() or not namespace_dir.is_dir():
            raise ValueError(f"Unknown primitive namespace: {namespace}")

        module_path = f"scriptfs.primitives.{namespace}"
        importlib.import_module(module_path)
        namespace_specs = self._specs_by_namespace.setdefault(namespace, OrderedDict())

        for py_file in sorted(namespace_dir.glob("*.py"), key=lambda p: p.name):
            if py_file.name.startswith("_"):
                continue
            module_name = f"{module_path}.{py_file.stem}"
            try:
                module = importlib.import_module(module_name)
            except Exception as exc:
                logger.warning(
                    "Failed loading primitive module %s: %s", module_name, exc
                )
                continue

            spec_and_kernel = self._extract_spec_from_module(module, module_name)
            if spec_and_kernel is None:
                continue

            spec, kernel = spec_and_kernel
            self.register(spec, kernel)
            namespace_specs[spec.name] = spec

        logger.debug(
            "Loaded namespace %s with %d primitives", namespace, len(namespace_specs)
        )
        self._loaded_namespaces.add(namespace)

    def _extract_spec_from_module(
        self,
        module: Any,
        module_name: str,
    ) -> tuple[PrimitiveSpec, KernelFn] | None:
        if not hasattr(module, "PRIMITIVE_SPEC"):
            return None

        spec = module.PRIMITIVE_SPEC
        if not isinstance(spec, PrimitiveSpec):
            raise TypeError(f"{module_name}.PRIMITIVE_SPEC must be PrimitiveSpec")
        kernel = getattr(module, "KERNEL", None) or getattr(module, "execute", None)
        if kernel is None:
            raise ValueError(
                f"{module_name} provides PRIMITIVE_SPEC but no KERNEL/execute"
            )
        return spec, kernel

    def register(self, spec: PrimitiveSpec, kernel: KernelFn) -> None:
        validate_spec(spec)

        qualified_name = spec.qualified_name
        if qualified_name in self._specs_by_qualified:
            raise ValueError(f"Primitive already registered: {qualified_name}")

        if spec.kernel_name in self._kernels_by_name:
            raise ValueError(f"Kernel name already registered: {spec.kernel_name}")

        _validate_kernel_signature(spec, kernel)

        self._specs_by_qualified[qualified_name] = spec
        self._kernels_by_name[spec.kernel_name] = kernel
        self._specs_by_namespace.setdefault(spec.namespace, OrderedDict())[spec.name] = spec

    def import_namespace(self, namespace: str) -> None:
        if namespace not in self._loaded_namespaces:
            self._load_namespace(namespace)

        if namespace not in self._import_order:
            self._import_order.append(namespace)

    def resolve(self, name: str) -> PrimitiveSpec:
        if "." in name:
            namespace, primitive_name = name.split(".", 1)
            if namespace and primitive_name and namespace in self._specs_by_namespace:
                qualified = f"{namespace}.{primitive_name}"
                if qualified not in self._specs_by_qualified:
                    raise KeyError(f"Unknown primitive: {qualified}")
                return self._specs_by_qualified[qualified]

        ordered = list(self._import_order)

        # Ensure deterministic behavior even for not-yet-imported namespaces.
        for namespace in sorted(self._specs_by_namespace.keys()):
            if namespace not in ordered:
                ordered.append(namespace)

        for namespace in ordered:
            specs = self._specs_by_namespace.get(namespace)
            if specs and name in specs:
                return specs[name]

        raise KeyError(f"Unknown primitive: {name}")

    def load_kernel(self, name: str) -> KernelFn:
        spec = self.resolve(name)
        return self._kernels_by_name[spec.kernel_name]

    def get_spec(self, name: str) -> PrimitiveSpec:
        return self.resolve(name)

    def call(self, name: str, *args: Any) -> ScriptValue:
        """Invoke a primitive with script (or native) arguments.

        Arity is checked and the serve-mode effect gate applied before the
        kernel runs; the native result is adapted back to a script value.
        """
        spec = self.resolve(name)
        spec.arity.validate(len(args))
        enforce_effect_policy(spec)

        kernel = self._kernels_by_name[spec.kernel_name]
        arguments = {str(index): unwrap_script_value(arg) for index, arg in enumerate(args)}
        logger.debug("Calling %s with %d argument(s)", spec.qualified_name, len(args))
        return adapt_runtime_value(kernel(**arguments))

    def list_namespaces(self) -> list[str]:
        return sorted(self._specs_by_namespace.keys())

    def list_primitives(self, namespace_name: str | None = None) -> dict[str, str]:
        if namespace_name is not None:
            if namespace_name not in self._loaded_namespaces:
                self._load_namespace(namespace_name)

            selected_specs: OrderedDict[str, PrimitiveSpec] = self._specs_by_namespace.get(
                namespace_name,
                OrderedDict(),
            )
            return {
                name: spec.description or "Primitive"
                for name, spec in selected_specs.items()
            }

        output: dict[str, str] = {}
        for namespace in self.list_namespaces():
            namespace_specs: OrderedDict[str, PrimitiveSpec] = self._specs_by_namespace.get(
                namespace,
                OrderedDict(),
            )
            for primitive_name, spec in namespace_specs.items():
                output[f"{namespace}.{primitive_name}"] = spec.description or "Primitive"
        return output


def _validate_kernel_signature(spec: PrimitiveSpec, kernel: KernelFn) -> None:
    signature = inspect.signature(kernel)
    forbidden = _FORBIDDEN_KERNEL_PARAMS.intersection(signature.parameters.keys())
    if forbidden:
        joined = ", ".join(sorted(forbidden))
        raise ValueError(
            f"Primitive '{spec.qualified_name}' kernel cannot depend on runtime internals ({joined})"
        )


_default_registry: PrimitiveRegistry | None = None


def get_registry() -> PrimitiveRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PrimitiveRegistry()
    return _default_registry
