"""
Operand phrasing table for binary arithmetic handlers.

Each row pairs an operation with a regex whose named groups ``a`` and ``b``
capture the first and second operand. Rows are tried in order; the first
match wins. Rows tagged ``any`` apply to every arithmetic operation.
"""

import re
from dataclasses import dataclass

from validation.values import parse_number

NUM = r"-?\d+(?:\.\d+)?"
ARITHMETIC_ACTIONS = ("add", "subtract", "multiply", "divide")


@dataclass(frozen=True)
class OperandPattern:
    operation: str
    regex: re.Pattern[str]


def _row(operation: str, template: str) -> OperandPattern:
    pattern = template.replace("{A}", f"(?P<a>{NUM})").replace("{B}", f"(?P<b>{NUM})")
    return OperandPattern(operation, re.compile(pattern, re.IGNORECASE))


OPERAND_PATTERNS: tuple[OperandPattern, ...] = (
    # add
    _row("add", r"add\s+{A}\s+(?:and|to|with|plus)\s+{B}"),
    _row("add", r"{A}\s*\+\s*{B}"),
    _row("add", r"{A}\s+plus\s+{B}"),
    _row("add", r"sum\s+of\s+{A}\s+and\s+{B}"),
    _row("add", r"total\s+of\s+{A}\s+and\s+{B}"),
    _row("add", r"combine\s+{A}\s+(?:and|with)\s+{B}"),
    # subtract: "subtract 15 from 20" keeps text order, A=15 B=20
    _row("subtract", r"subtract\s+{A}\s+from\s+{B}"),
    _row("subtract", r"take\s+(?:away\s+)?{A}\s+from\s+{B}"),
    _row("subtract", r"{A}\s+minus\s+{B}"),
    _row("subtract", r"difference\s+(?:between|of)\s+{A}\s+and\s+{B}"),
    _row("subtract", r"subtract\s+{A}\s+(?:and|minus)\s+{B}"),
    # divide
    _row("divide", r"divide\s+{A}\s+by\s+{B}"),
    _row("divide", r"{A}\s+divided\s+by\s+{B}"),
    _row("divide", r"quotient\s+of\s+{A}\s+and\s+{B}"),
    _row("divide", r"divide\s+{A}\s+(?:and|with)\s+{B}"),
    _row("divide", r"{A}\s*[/÷]\s*{B}"),
    # multiply
    _row("multiply", r"multiply\s+{A}\s+(?:by|and|with|times)\s+{B}"),
    _row("multiply", r"{A}\s+multiplied\s+by\s+{B}"),
    _row("multiply", r"{A}\s+times\s+{B}"),
    _row("multiply", r"product\s+of\s+{A}\s+and\s+{B}"),
    _row("multiply", r"{A}\s*[*x×]\s*{B}"),
    # infix minus last; it also matches signed operands
    _row("subtract", r"{A}\s*-\s*{B}"),
    _row("any", r"{A}\s+(?:and|with)\s+{B}"),
)


def match_operands(
    text: str,
    operation: str | None = None,
    patterns: tuple[OperandPattern, ...] = OPERAND_PATTERNS,
) -> tuple[int | float, int | float] | None:
    """Return (first operand, second operand) for the first matching row."""
    op = (operation or "").lower()
    restrict = op in ARITHMETIC_ACTIONS
    for row in patterns:
        if restrict and row.operation not in (op, "any"):
            continue
        m = row.regex.search(text)
        if not m:
            continue
        a = parse_number(m.group("a"))
        b = parse_number(m.group("b"))
        if a is not None and b is not None:
            return a, b
    return None


def operand_role(param_name: str) -> int | None:
    """Position of an operand parameter: A → 0, B → 1, anything else → None."""
    return {"a": 0, "b": 1}.get(param_name.lower())
