"""Final path segment primitive."""

from __future__ import annotations

from scriptfs.error_msg import ConversionError
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

OPERATION = "file-name"


def execute(**kwargs) -> str:
    """Return the last segment of a path; the path need not exist.

    Example:
    - `file-name("/a/b/c.txt")` -> `"c.txt"`

    Paths without a final segment (`/`, `.`, `..`) are rejected.
    """
    path = path_argument(kwargs, 0, OPERATION)
    name = path.name
    if not name or name == "..":
        raise ConversionError(
            f"path has no final component: {path}", operation=OPERATION, path=path
        )
    return name


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Last segment of a path",
)
