from __future__ import annotations

import pytest

from extraction.operand_patterns import match_operands, operand_role


@pytest.mark.parametrize(
    ("text", "operation", "expected"),
    [
        ("add 5 and 3", "Add", (5, 3)),
        ("12 + 30", "Add", (12, 30)),
        ("sum of 1.5 and 2", "Add", (1.5, 2)),
        ("subtract 15 from 20", "Subtract", (15, 20)),
        ("20 - 15", "Subtract", (20, 15)),
        ("take away 4 from 9", "Subtract", (4, 9)),
        ("divide 10 by 0", "Divide", (10, 0)),
        ("9 / 3", "Divide", (9, 3)),
        ("multiply 6 by 7", "Multiply", (6, 7)),
        ("product of 2 and -4", "Multiply", (2, -4)),
    ],
)
def test_operands_follow_text_order(text, operation, expected) -> None:
    assert match_operands(text, operation) == expected


def test_rows_are_restricted_to_the_operation() -> None:
    # "+" belongs to add; a subtract handler falls through to the generic row
    assert match_operands("5 + 3", "Subtract") is None
    assert match_operands("use 5 and 3", "Subtract") == (5, 3)


def test_unknown_operation_tries_every_row() -> None:
    assert match_operands("6 times 7", "Calculate") == (6, 7)
    assert match_operands("6 times 7") == (6, 7)


def test_no_operands() -> None:
    assert match_operands("add some numbers", "Add") is None


def test_operand_role() -> None:
    assert operand_role("A") == 0
    assert operand_role("b") == 1
    assert operand_role("Quantity") is None
