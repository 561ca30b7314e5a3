"""
scriptfs reader - s-expression parser using Lark
"""

from dataclasses import dataclass
from typing import List, Union
import re

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import LarkError, VisitError

from scriptfs.error_msg import ScriptException

Position = str


@dataclass
class Expression:
    """Base class for expressions read from a script"""

    position: Position

    def to_syntax(self) -> str:
        """Convert the expression back to source form"""
        raise NotImplementedError("Must be implemented by subclasses")


@dataclass
class EList(Expression):
    """Parenthesised form, either a call or a special form"""

    items: List[Expression]

    @property
    def head(self) -> "Expression | None":
        return self.items[0] if self.items else None

    def to_syntax(self) -> str:
        return "(" + " ".join(item.to_syntax() for item in self.items) + ")"


@dataclass
class ESymbol(Expression):
    """Identifier: a primitive name or a bound variable"""

    name: str

    def to_syntax(self) -> str:
        return self.name


@dataclass
class ENumber(Expression):
    """Numeric literal"""

    value: Union[int, float]

    def to_syntax(self) -> str:
        return f"{self.value}"


@dataclass
class EBool(Expression):
    """Boolean literal"""

    value: bool

    def to_syntax(self) -> str:
        return "#t" if self.value else "#f"


_ESCAPES_OUT = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r", "\0": "\\0"}


@dataclass
class EString(Expression):
    """String literal"""

    value: str

    def to_syntax(self) -> str:
        return '"' + "".join(_ESCAPES_OUT.get(ch, ch) for ch in self.value) + '"'


@dataclass
class Program:
    """A script: a sequence of top-level forms"""

    forms: List[Expression]

    def to_syntax(self) -> str:
        return "\n".join(form.to_syntax() for form in self.forms)

    def __str__(self) -> str:
        return self.to_syntax()


# Lark grammar for the script reader
grammar = r"""
    program: form*

    ?form: list | atom

    list: "(" form* ")"
        | "[" form* "]"

    ?atom: STRING   -> string
         | BOOLEAN  -> boolean
         | NUMBER   -> number
         | SYMBOL   -> symbol

    STRING: /"(\\.|[^"\\])*"/
    BOOLEAN.3: /#(true|false|t|f)(?![^\s()\[\]";])/
    NUMBER.2: /[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?(?![^\s()\[\]";])/
    SYMBOL: /[^\s()\[\]";#'`,][^\s()\[\]";'`,]*/

    COMMENT: /;[^\n]*/

    %import common.WS
    %ignore WS
    %ignore COMMENT
"""

_ESCAPES_IN = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"'}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def _unescape(body: str) -> str:
    def _replace(match: "re.Match[str]") -> str:
        char = match.group(1)
        if char not in _ESCAPES_IN:
            raise ValueError(f"invalid escape sequence '\\{char}'")
        return _ESCAPES_IN[char]

    return _ESCAPE_RE.sub(_replace, body)


def _position(token: Token) -> Position:
    line = getattr(token, "line", None)
    column = getattr(token, "column", None)
    if line is None:
        return "unknown"
    return f"line {line}, column {column}"


class ScriptTransformer(Transformer):
    """Transform the parse tree into the AST"""

    @v_args(inline=True)
    def program(self, *forms):
        return Program(list(forms))

    @v_args(meta=True)
    def list(self, meta, items):
        position = f"line {meta.line}, column {meta.column}" if not meta.empty else "unknown"
        return EList(position, list(items))

    @v_args(inline=True)
    def string(self, token):
        # Remove the quotes from the string
        return EString(_position(token), _unescape(token[1:-1]))

    @v_args(inline=True)
    def boolean(self, token):
        return EBool(_position(token), token in ("#t", "#true"))

    @v_args(inline=True)
    def number(self, token):
        text = str(token)
        if re.fullmatch(r"[+-]?\d+", text):
            return ENumber(_position(token), int(text))
        return ENumber(_position(token), float(text))

    @v_args(inline=True)
    def symbol(self, token):
        return ESymbol(_position(token), str(token))


# Create the parser
parser = Lark(
    grammar,
    start="program",
    parser="lalr",
    propagate_positions=True,
    maybe_placeholders=False,
)


def parse_program_content(content: str) -> Program:
    """
    Parse a script from a content string

    Args:
        content: String containing the script text

    Returns:
        A Program object representing the parsed script

    Raises:
        ScriptException: if the text is not a well-formed script
    """
    try:
        # Positions for list forms come from tree metadata, so the transformer
        # runs as a separate pass rather than inside the parser.
        parse_tree = parser.parse(content)
        result = ScriptTransformer().transform(parse_tree)
    except VisitError as exc:
        raise ScriptException(f"Parse error: {exc.orig_exc}") from exc
    except LarkError as exc:
        raise ScriptException(f"Parse error: {exc}") from exc

    # Ensure we got a Program object
    if not isinstance(result, Program):
        raise ValueError(f"Expected Program object, got {type(result).__name__}")

    return result

