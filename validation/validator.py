"""
Parameter Validator — judges an extracted parameter map against a handler.

Responsibility:
- Per declared parameter: presence, type, optional rule (min/max, pattern, enum)
- Cross-parameter contracts for canonical arithmetic handlers
- Warnings for undeclared parameters and suspicious values
- Typed record of declared parameters coerced to their declared types

Prohibitions:
- Never raises on bad input; every problem becomes an error or warning
"""

import logging
from typing import Any

from shared.models import HandlerDescriptor, ParameterDescriptor, ValidationOutcome
from validation.values import check_rule, check_value, coerce_value

logger = logging.getLogger(__name__)

ARITHMETIC_CONTRACT_ACTIONS = ("add", "divide", "multiply", "subtract")
LARGE_OPERAND_THRESHOLD = 1e10
SHORT_ADDRESS_LENGTH = 10
DIVISION_BY_ZERO = "Division by zero is not allowed"

_TYPE_FIXES = {
    "address": "Use a valid address for '{name}': 1-43 characters of letters, numbers, underscores or dashes",
    "boolean": "Use true/false, yes/no, on/off or 1/0 for '{name}'",
    "json": "Provide a JSON object or array for '{name}', e.g. {name}={{\"key\": \"value\"}}",
    "number": "Provide a numeric value for '{name}', e.g. {name}=10",
    "string": "Provide a non-empty text value for '{name}'",
}


class ParameterValidator:
    """Validates parameter maps; produces ValidationOutcome."""

    def validate(self, parameters: dict[str, Any], handler: HandlerDescriptor) -> ValidationOutcome:
        errors: list[str] = []
        warnings: list[str] = []
        fixes: list[str] = []
        values: dict[str, Any] = {}

        for param in handler.parameters:
            value = parameters.get(param.name)
            if value is None:
                if param.required:
                    errors.append(f"Required parameter '{param.name}' is missing")
                    fixes.append(f"Provide the required parameter '{param.name}' ({param.type})")
                continue

            problem = check_value(value, param)
            if problem:
                errors.append(problem)
                fixes.append(_TYPE_FIXES.get(param.type, "Check the value of '{name}'").format(name=param.name))
                continue

            coerced = coerce_value(value, param.type)
            typed = coerced.value if coerced.success else value

            rule_problem = check_rule(typed, param)
            if rule_problem:
                errors.append(rule_problem)
                fixes.append(self._rule_fix(param))
                continue

            if param.type == "address" and len(typed) < SHORT_ADDRESS_LENGTH:
                warnings.append(
                    f"Parameter '{param.name}' address '{typed}' is unusually short; "
                    "verify it is a complete actor or wallet id"
                )
            values[param.name] = typed

        declared = {p.name for p in handler.parameters}
        for name in parameters:
            if name not in declared:
                warnings.append(f"Parameter '{name}' is not declared by handler '{handler.action}' and will be ignored")

        contract_errors, contract_warnings, contract_fixes = self._check_contracts(handler, values)
        errors.extend(contract_errors)
        warnings.extend(contract_warnings)
        fixes.extend(contract_fixes)

        if errors:
            logger.debug("Validation of %s failed with %d error(s)", handler.action, len(errors))

        return ValidationOutcome(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            suggested_fixes=list(dict.fromkeys(fixes)),
            values=values if not errors else {},
        )

    def _rule_fix(self, param: ParameterDescriptor) -> str:
        rule = param.validation
        if rule and rule.enum:
            return f"Use one of the allowed values for '{param.name}': {', '.join(rule.enum)}"
        if rule and (rule.min is not None or rule.max is not None):
            low = "-inf" if rule.min is None else f"{rule.min:g}"
            high = "inf" if rule.max is None else f"{rule.max:g}"
            return f"Keep '{param.name}' within [{low}, {high}]"
        return f"Check the format of '{param.name}'"

    def _check_contracts(
        self, handler: HandlerDescriptor, values: dict[str, Any]
    ) -> tuple[list[str], list[str], list[str]]:
        """Arithmetic contracts on operands A and B."""
        action = handler.action.lower()
        if action not in ARITHMETIC_CONTRACT_ACTIONS:
            return [], [], []

        errors: list[str] = []
        warnings: list[str] = []
        fixes: list[str] = []

        operands = {name: _as_number(_lookup(values, name)) for name in ("A", "B")}
        if action == "divide" and operands["B"] == 0:
            errors.append(DIVISION_BY_ZERO)
            fixes.append("Use a non-zero divisor for parameter 'B'")

        for name, number in operands.items():
            if number is not None and abs(number) > LARGE_OPERAND_THRESHOLD:
                warnings.append(f"Very large value for '{name}' ({number:g}); the result may lose precision")
        return errors, warnings, fixes


def _lookup(values: dict[str, Any], name: str) -> Any:
    for key, value in values.items():
        if key.lower() == name.lower():
            return value
    return None


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    coerced = coerce_value(value, "number")
    return coerced.value if coerced.success else None
