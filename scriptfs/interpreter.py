"""Tree-walking evaluation of scripts against the primitive registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import logging

from scriptfs.error_msg import ScriptException
from scriptfs.parser import (
    EBool,
    EList,
    ENumber,
    EString,
    ESymbol,
    Expression,
    Program,
    parse_program_content,
)
from scriptfs.primitives.registry import PrimitiveRegistry, get_registry
from scriptfs.value_model import (
    ScriptBooleanValue,
    ScriptListValue,
    ScriptNumberValue,
    ScriptStringValue,
    ScriptValue,
    ScriptVoidValue,
)

logger = logging.getLogger(__name__)

SPECIAL_FORMS = frozenset({"define"})


@dataclass
class FormResult:
    """Outcome of one top-level form."""

    syntax: str
    value: ScriptValue

    def to_payload(self) -> dict[str, Any]:
        return {"form": self.syntax, "value": self.value.to_json_native()}


@dataclass
class RunResult:
    """Outcome of a whole script: results so far, plus the error that stopped it."""

    results: list[FormResult] = field(default_factory=list)
    error: ScriptException | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class Interpreter:
    """Evaluate script forms.

    Only `define` and primitive calls are understood; everything else about
    the language belongs to the embedding host.
    """

    def __init__(self, registry: PrimitiveRegistry | None = None) -> None:
        self.registry = registry or get_registry()
        self.environment: dict[str, ScriptValue] = {}

    def evaluate(self, expression: Expression) -> ScriptValue:
        if isinstance(expression, EString):
            return ScriptStringValue(expression.value)
        if isinstance(expression, EBool):
            return ScriptBooleanValue(expression.value)
        if isinstance(expression, ENumber):
            return ScriptNumberValue(expression.value)
        if isinstance(expression, ESymbol):
            return self._lookup(expression)
        if isinstance(expression, EList):
            return self._evaluate_list(expression)
        raise ScriptException(f"Cannot evaluate {type(expression).__name__}")

    def _lookup(self, symbol: ESymbol) -> ScriptValue:
        if symbol.name in self.environment:
            return self.environment[symbol.name]
        raise ScriptException(
            f"Unbound symbol '{symbol.name}'", [(symbol.name, symbol.position)]
        )

    def _evaluate_list(self, form: EList) -> ScriptValue:
        head = form.head
        if head is None:
            return ScriptListValue([])
        if not isinstance(head, ESymbol):
            raise ScriptException(
                f"Cannot apply {head.to_syntax()}", [(form.to_syntax(), form.position)]
            )
        if head.name == "define":
            return self._evaluate_define(form)
        return self._evaluate_call(head, form)

    def _evaluate_define(self, form: EList) -> ScriptValue:
        if len(form.items) != 3 or not isinstance(form.items[1], ESymbol):
            raise ScriptException(
                "define expects (define name expression)", [("define", form.position)]
            )
        name = form.items[1].name
        if name in SPECIAL_FORMS:
            raise ScriptException(f"Cannot redefine special form '{name}'", [("define", form.position)])
        self.environment[name] = self.evaluate(form.items[2])
        logger.debug("Bound %s", name)
        return ScriptVoidValue()

    def _evaluate_call(self, head: ESymbol, form: EList) -> ScriptValue:
        try:
            self.registry.resolve(head.name)
        except KeyError as exc:
            raise ScriptException(
                f"Unknown primitive '{head.name}'", [(head.name, form.position)]
            ) from exc

        arguments = [self.evaluate(item) for item in form.items[1:]]
        try:
            return self.registry.call(head.name, *arguments)
        except ScriptException as exc:
            exc.push_frame(head.name, form.position)
            raise
        except ValueError as exc:
            # Arity violations from the primitive contract.
            raise ScriptException(f"{head.name}: {exc}", [(head.name, form.position)]) from exc

    def run(self, program: Program) -> RunResult:
        """Evaluate every top-level form in order, stopping at the first error."""
        outcome = RunResult()
        for form in program.forms:
            try:
                value = self.evaluate(form)
            except ScriptException as exc:
                logger.debug("Evaluation stopped at %s: %s", form.to_syntax(), exc)
                outcome.error = exc
                break
            outcome.results.append(FormResult(form.to_syntax(), value))
        return outcome


def run_program(text: str, registry: PrimitiveRegistry | None = None) -> RunResult:
    """Parse and evaluate script text with a fresh environment."""
    program = parse_program_content(text)
    return Interpreter(registry).run(program)
