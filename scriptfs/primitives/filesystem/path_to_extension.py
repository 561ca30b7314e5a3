"""Path extension primitive."""

from __future__ import annotations

from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

OPERATION = "path->extension"


def execute(**kwargs) -> str | None:
    """Return the text after the last `.` of the final segment, or None.

    A name whose only dot is the leading one (`.bashrc`) has no extension;
    a trailing dot (`foo.`) gives the empty extension.
    """
    path = path_argument(kwargs, 0, OPERATION)
    name = path.name
    if not name or name == "..":
        return None
    stem, dot, extension = name.rpartition(".")
    if not dot or not stem:
        return None
    return extension


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Extension of the final path segment, void when absent",
)
