"""Serve-mode runtime policy: allowed roots and effect gating."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator
import os

from scriptfs.error_msg import PolicyViolationError
from scriptfs.primitives.api import PrimitiveSpec

SERVE_ROOT_ENV = "SCRIPTFS_SERVE_ROOT"
SERVE_EXTRA_ROOTS_ENV = "SCRIPTFS_SERVE_EXTRA_ROOTS"
SERVE_ALLOW_EFFECTS_ENV = "SCRIPTFS_SERVE_ALLOW_EFFECTS"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RuntimePolicyContext:
    """Runtime policy controls applied while serving requests."""

    serve_mode: bool
    allowed_roots: tuple[Path, ...]
    allow_effects: bool = False


_RUNTIME_POLICY: ContextVar[RuntimePolicyContext | None] = ContextVar(
    "scriptfs_runtime_policy",
    default=None,
)


def resolve_serve_roots() -> tuple[Path, ...]:
    """Resolve serve-mode allowed roots from environment variables."""
    configured = os.environ.get(SERVE_ROOT_ENV, "").strip()
    if configured:
        primary = Path(configured).expanduser().resolve()
    else:
        primary = Path.cwd().resolve()

    extras_raw = os.environ.get(SERVE_EXTRA_ROOTS_ENV, "")
    roots: list[Path] = [primary]
    for token in extras_raw.split(","):
        stripped = token.strip()
        if not stripped:
            continue
        roots.append(Path(stripped).expanduser().resolve())

    deduped: list[Path] = []
    seen: set[str] = set()
    for root in roots:
        marker = str(root)
        if marker in seen:
            continue
        seen.add(marker)
        deduped.append(root)
    return tuple(deduped)


def serve_policy_from_env() -> RuntimePolicyContext:
    allow_raw = os.environ.get(SERVE_ALLOW_EFFECTS_ENV, "").strip().lower()
    return RuntimePolicyContext(
        serve_mode=True,
        allowed_roots=resolve_serve_roots(),
        allow_effects=allow_raw in _TRUTHY,
    )


def current_policy() -> RuntimePolicyContext | None:
    return _RUNTIME_POLICY.get()


@contextmanager
def runtime_policy(context: RuntimePolicyContext | None) -> Iterator[None]:
    """Install ``context`` as the active policy for the duration of the block."""
    token = _RUNTIME_POLICY.set(context)
    try:
        yield
    finally:
        _RUNTIME_POLICY.reset(token)


def _path_within_roots(candidate: Path, roots: tuple[Path, ...]) -> bool:
    for root in roots:
        try:
            candidate.relative_to(root)
            return True
        except ValueError:
            continue
    return False


def enforce_effect_policy(spec: PrimitiveSpec) -> None:
    """Reject effectful primitives in serve mode unless explicitly enabled."""
    context = current_policy()
    if context is None or not context.serve_mode:
        return
    if spec.kind == "effect" and not context.allow_effects:
        raise PolicyViolationError(
            f"mutating primitives are disabled in serve mode (set {SERVE_ALLOW_EFFECTS_ENV}=1)",
            operation=spec.name,
        )


def enforce_path_policy(path: Path, *, operation: str | None = None) -> None:
    """Reject paths outside the allowed roots in serve mode."""
    context = current_policy()
    if context is None or not context.serve_mode:
        return
    candidate = Path(os.path.realpath(path))
    if _path_within_roots(candidate, context.allowed_roots):
        return
    roots_text = ", ".join(str(root) for root in context.allowed_roots)
    raise PolicyViolationError(
        f"path '{candidate}' is outside the allowed roots: {roots_text}",
        operation=operation,
        path=candidate,
    )
