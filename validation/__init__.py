"""Parameter validation."""

from validation.validator import ParameterValidator
from validation.values import check_value, coerce_value

__all__ = ["ParameterValidator", "check_value", "coerce_value"]
