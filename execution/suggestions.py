"""
Remediation hints for requests that could not be translated.

Alternative phrasings (direct, JSON, natural language), parameter tips,
interactive guidance, troubleshooting lists and a diagnostic report.
Pure functions of the handler and what extraction/validation produced.
"""

import json
import re
from typing import Any

from shared.models import (
    DiagnosticReport,
    ExtractionAttempt,
    HandlerDescriptor,
    InteractiveGuidance,
    ParameterDescriptor,
    ParameterDiagnostic,
    ValidationOutcome,
)

GENERIC_FIXES = (
    "Check that the process ID is correct",
    "Verify network connectivity to the actor",
    "Ensure the actor supports ADP",
    "Try a simpler request",
)

NATURAL_LANGUAGE_TEMPLATES: dict[str, tuple[str, ...]] = {
    "add": (
        'Natural language: "add 15 and 25" or "calculate 15 + 25"',
        'Mathematical format: "15 + 25" or "sum of 15 and 25"',
    ),
    "subtract": ('Natural language: "subtract 5 from 20" or "20 - 5"',),
    "multiply": ('Natural language: "multiply 6 by 7" or "6 * 7"',),
    "divide": ('Natural language: "divide 15 by 3" or "15 / 3"',),
    "transfer": (
        'Natural language: "transfer 100 tokens to alice123"',
        'Format: "send [amount] to [recipient]"',
    ),
    "mint": ('Natural language: "mint 500 tokens to bob456"',),
    "burn": ('Natural language: "burn 50 tokens"',),
    "balance": ('Natural language: "check balance of alice123" or just "balance"',),
    "info": ('Simple format: "info" or "get information"',),
    "ping": ('Simple format: "ping" or "ping process"',),
}
_TEMPLATE_ALIASES = {
    "addition": "add",
    "subtraction": "subtract",
    "multiplication": "multiply",
    "division": "divide",
    "send": "transfer",
    "information": "info",
}


def example_value(param: ParameterDescriptor) -> Any:
    if param.type == "address":
        return "abc123def456"
    if param.type == "boolean":
        return True
    if param.type == "number":
        return {"a": 5, "b": 3}.get(param.name.lower(), 10)
    if param.type == "json":
        return {"key": "value"}
    return f"example_{param.name.lower()}"


def _direct_token(param: ParameterDescriptor) -> str:
    value = example_value(param)
    if isinstance(value, bool):
        return f"{param.name}={'true' if value else 'false'}"
    if isinstance(value, dict):
        return f"{param.name}={json.dumps(value, separators=(',', ':'))}"
    return f"{param.name}={value}"


def direct_example(handler: HandlerDescriptor) -> str:
    return " ".join(_direct_token(p) for p in handler.parameters)


def json_example(handler: HandlerDescriptor) -> str:
    return json.dumps({p.name: example_value(p) for p in handler.parameters})


def natural_language_suggestions(handler: HandlerDescriptor) -> list[str]:
    action = handler.action.lower()
    key = _TEMPLATE_ALIASES.get(action, action)
    if key in NATURAL_LANGUAGE_TEMPLATES:
        return list(NATURAL_LANGUAGE_TEMPLATES[key])
    return [
        f'Natural language: "{action} [parameters]"',
        f"Try being more specific about the {action} operation",
    ]


def parameter_tips(parameters: list[ParameterDescriptor]) -> list[str]:
    tips: list[str] = []
    required = [p for p in parameters if p.required]
    optional = [p for p in parameters if not p.required]
    if required:
        tips.append("Required parameters: " + ", ".join(f"{p.name} ({p.type})" for p in required))
    if optional:
        tips.append("Optional parameters: " + ", ".join(f"{p.name} ({p.type})" for p in optional))

    by_type = {
        "number": "Numbers: Use decimal numbers (e.g., 5, 3.14, -10) for {}",
        "address": "Addresses: Use alphanumeric strings (e.g., abc123def456) for {}",
        "string": "Strings: Use text values for {}",
    }
    for type_name, template in by_type.items():
        names = [p.name for p in parameters if p.type == type_name]
        if names:
            tips.append(template.format(", ".join(names)))
    return tips


def alternative_formats(handler: HandlerDescriptor) -> list[str]:
    """Direct example, JSON example, action phrasings, then parameter tips."""
    if not handler.parameters:
        return [f"Handler '{handler.action}' requires no parameters. Try: \"{handler.action}\""]
    return [
        f'Direct format: "{direct_example(handler)}"',
        f'JSON format: "{json_example(handler)}"',
        *natural_language_suggestions(handler),
        *parameter_tips(handler.parameters),
    ]


def working_examples(handler: HandlerDescriptor) -> list[str]:
    action = handler.action.lower()
    if action == "add" and len(handler.parameters) == 2:
        return [
            "Working examples:",
            '  "add 15 and 25"',
            '  "A=15 B=25"',
            '  "15 + 25"',
            '  "{"A": 15, "B": 25}"',
        ]
    if action == "transfer":
        return [
            "Working examples:",
            '  "transfer 100 tokens to alice123"',
            '  "quantity=100 recipient=alice123"',
            '  "{"quantity": "100", "recipient": "alice123"}"',
        ]
    if handler.parameters:
        return ["Working examples:", f'  "{direct_example(handler)}"', f'  "{json_example(handler)}"']
    return []


def interactive_guidance(
    handler: HandlerDescriptor,
    extraction_errors: list[str],
    validation_errors: list[str],
) -> InteractiveGuidance:
    alternatives = alternative_formats(handler)
    primary = alternatives[0] if alternatives else "Try using direct parameter format"

    if any("could not be extracted" in e for e in extraction_errors):
        primary = next((a for a in alternatives if a.startswith("Direct format")), primary)
    if any("expected" in e for e in validation_errors):
        primary = "Check parameter types and use correct format"

    troubleshooting: list[str] = []
    if extraction_errors:
        troubleshooting.append("Parameter extraction failed - try being more explicit")
        troubleshooting.append("Use parameter names directly (A=5, B=3)")
    if validation_errors:
        troubleshooting.append("Parameter validation failed - check types and values")
        if any(p.type == "number" for p in handler.parameters):
            troubleshooting.append("Ensure numeric parameters are valid numbers")
        if any(p.type == "address" for p in handler.parameters):
            troubleshooting.append("Ensure address parameters are alphanumeric strings")

    return InteractiveGuidance(
        primary_suggestion=primary,
        alternatives=alternatives[1:],
        examples=working_examples(handler),
        troubleshooting=troubleshooting,
    )


def troubleshooting_tips(
    request: str,
    handler: HandlerDescriptor,
    attempts: list[ExtractionAttempt],
    validation: ValidationOutcome,
) -> list[str]:
    tips: list[str] = []
    if not any(a.success for a in attempts):
        expected = ", ".join(f"{p.name} ({p.type})" for p in handler.parameters) or "none"
        tips.append("No extraction strategy was completely successful")
        tips.append("Try being more explicit about parameter values")
        tips.append(f"Expected parameters: {expected}")

    if "add" in handler.action.lower() and "add" not in request.lower():
        tips.append('For addition operations, try using words like "add", "plus", or "+"')

    if any(p.type == "address" for p in handler.parameters) and not re.search(r"[A-Za-z0-9_-]{10,}", request):
        tips.append("Address parameters should be alphanumeric strings, typically 10+ characters")

    if validation.errors:
        tips.append("Validation errors occurred - check parameter types and formats")
        tips.extend(validation.suggested_fixes)

    tips.append('Try using explicit parameter syntax: "A=5 B=10"')
    tips.append("Use clear action words that match the handler name")
    return tips


def diagnostic_report(
    request: str,
    handler: HandlerDescriptor,
    parameters: dict[str, Any],
    extraction_errors: list[str],
    validation: ValidationOutcome,
) -> DiagnosticReport:
    """Explain an extraction/validation result in user-facing terms."""
    diagnostics: list[ParameterDiagnostic] = []
    quick_fixes: list[str] = []

    if len(request.split()) < 3:
        diagnostics.append(ParameterDiagnostic(
            category="Request Structure",
            message="Request is very short and may lack necessary context",
            suggestion="Try adding more descriptive words about the desired action",
        ))
        quick_fixes.append("Add more context to your request")

    if not re.search(r"\d", request) and any(p.type == "number" for p in handler.parameters):
        diagnostics.append(ParameterDiagnostic(
            category="Parameter Content",
            message="Request lacks numbers but handler expects numeric parameters",
            suggestion="Include specific numbers in your request",
        ))
        quick_fixes.append("Add numeric values to your request")

    if extraction_errors:
        diagnostics.append(ParameterDiagnostic(
            category="Parameter Extraction",
            message=f"Failed to extract {len(extraction_errors)} parameters",
            suggestion="Use more explicit parameter naming or values",
        ))

    if not validation.valid:
        diagnostics.append(ParameterDiagnostic(
            category="Parameter Validation",
            message=f"Validation failed with {len(validation.errors)} errors",
            suggestion="Check parameter types and required fields",
        ))
        quick_fixes.extend(validation.suggested_fixes)

    missing = [p.name for p in handler.required_parameters if p.name not in parameters]
    if missing:
        diagnostics.append(ParameterDiagnostic(
            category="Required Parameters",
            message=f"Missing {len(missing)} required parameters: {', '.join(missing)}",
            suggestion="Ensure your request includes all required parameters",
        ))

    if validation.errors:
        severity, summary = "error", "Parameter extraction failed with validation errors"
    elif extraction_errors:
        severity, summary = "warning", "Parameter extraction completed with warnings"
    else:
        severity, summary = "info", "Parameter extraction completed successfully"

    return DiagnosticReport(
        diagnostics=diagnostics,
        quick_fixes=list(dict.fromkeys(quick_fixes)),
        severity=severity,
        summary=summary,
    )
