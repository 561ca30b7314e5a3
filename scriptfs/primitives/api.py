"""Stable primitives API contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

PrimitiveKind = Literal["query", "effect"]
KernelFn = Callable[..., Any]

PRIMITIVE_KINDS = ("query", "effect")


@dataclass(frozen=True)
class AritySpec:
    """Arity contract for primitive calls."""

    min_args: int
    max_args: int | None = None

    @classmethod
    def fixed(cls, count: int) -> "AritySpec":
        return cls(min_args=count, max_args=count)

    def validate(self, count: int) -> None:
        if count < self.min_args:
            raise ValueError(
                f"Expected at least {self.min_args} arguments, got {count}"
            )
        if self.max_args is not None and count > self.max_args:
            raise ValueError(
                f"Expected at most {self.max_args} arguments, got {count}"
            )


@dataclass(frozen=True)
class PrimitiveSpec:
    """Primitive descriptor consumed by the registry and the interpreter.

    `kind` is "effect" for primitives that mutate the filesystem and
    "query" for read-only ones.
    """

    name: str
    kind: PrimitiveKind
    arity: AritySpec
    kernel_name: str
    namespace: str = "filesystem"
    description: str = ""

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"


def validate_spec(spec: PrimitiveSpec) -> None:
    """Validate a primitive spec before registration."""

    if not spec.name:
        raise ValueError("Primitive name cannot be empty")
    if "." in spec.name:
        raise ValueError("Primitive name must be unqualified")
    if not spec.namespace:
        raise ValueError("Primitive namespace cannot be empty")
    if not spec.kernel_name:
        raise ValueError("Primitive kernel_name cannot be empty")
    if spec.kind not in PRIMITIVE_KINDS:
        raise ValueError(f"Invalid primitive kind: {spec.kind}")
