"""Free text → parameter maps."""

from extraction.engine import ParameterExtractionEngine, infer_parameters_from_examples
from extraction.strategies import STRATEGIES, ExtractionStrategy
from extraction.structures import detect_parameter_format, parse_direct_parameter_format

__all__ = [
    "STRATEGIES",
    "ExtractionStrategy",
    "ParameterExtractionEngine",
    "detect_parameter_format",
    "infer_parameters_from_examples",
    "parse_direct_parameter_format",
]
