"""
Shared Pydantic models for all layers.
All descriptors and results are immutable (frozen) after creation.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ParameterType = Literal["string", "number", "boolean", "address", "json"]
HandlerCategory = Literal["core", "utility", "custom"]
TransmissionStrategy = Literal["tags", "payload", "hybrid"]
ParameterFormat = Literal["direct", "json", "natural"]
DispatchMethod = Literal["read", "write"]
FallbackMethod = Literal["direct_format", "process_specific"]
ErrorCategory = Literal[
    "configuration",
    "discovery",
    "execution",
    "extraction",
    "matching",
    "network",
    "validation",
]

PRIMITIVE_PARAMETER_TYPES = ("address", "boolean", "number", "string")


# ─── Protocol Layer (ADP descriptors) ──────────────────────────

class Tag(BaseModel):
    """A single name/value pair on an outbound actor message."""
    model_config = {"frozen": True}

    name: str
    value: str

    def as_wire(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


class ParameterRule(BaseModel):
    """Optional validation rule attached to a declared parameter."""
    model_config = {"frozen": True}

    pattern: str | None = Field(default=None, description="Regex a string value must match")
    min: float | None = Field(default=None, description="Minimum value for numbers")
    max: float | None = Field(default=None, description="Maximum value for numbers")
    enum: list[str] | None = Field(default=None, description="Allowed values")


class ParameterDescriptor(BaseModel):
    """A parameter declared by a handler in its ADP schema."""
    model_config = {"frozen": True}

    name: str
    type: ParameterType = "string"
    required: bool = False
    description: str = ""
    examples: list[str] = Field(default_factory=list)
    validation: ParameterRule | None = None


class HandlerDescriptor(BaseModel):
    """A callable operation exposed by an actor."""
    model_config = {"frozen": True}

    action: str
    description: str = ""
    category: HandlerCategory = "custom"
    examples: list[str] = Field(default_factory=list)
    parameters: list[ParameterDescriptor] = Field(default_factory=list)
    pattern: list[str] | None = Field(default=None, description="Tag names the handler matches on")
    version: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> str:
        # Unknown categories are folded into "custom" for older actors.
        if value in ("core", "utility", "custom"):
            return value
        return "custom"

    @property
    def required_parameters(self) -> list[ParameterDescriptor]:
        return [p for p in self.parameters if p.required]

    def parameter(self, name: str) -> ParameterDescriptor | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


class ActorCapabilities(BaseModel):
    model_config = {"frozen": True, "populate_by_name": True}

    supports_examples: bool = Field(default=False, alias="supportsExamples")
    supports_handler_registry: bool = Field(default=False, alias="supportsHandlerRegistry")
    supports_parameter_validation: bool | None = Field(default=None, alias="supportsParameterValidation")


class ActorMetadata(BaseModel):
    """Capability document returned by an actor's Info handler."""
    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    protocol_version: Literal["1.0"] = Field(default="1.0", alias="protocolVersion")
    handlers: list[HandlerDescriptor] = Field(default_factory=list)
    capabilities: ActorCapabilities | None = None
    last_updated: str = Field(default="", alias="lastUpdated")

    # Standard actor info fields
    name: str | None = Field(default=None, alias="Name")
    ticker: str | None = Field(default=None, alias="Ticker")
    description: str | None = Field(default=None, alias="Description")
    owner: str | None = Field(default=None, alias="Owner")
    process_id: str | None = Field(default=None, alias="ProcessId")
    denomination: str | None = Field(default=None, alias="Denomination")
    total_supply: str | None = Field(default=None, alias="TotalSupply")
    logo: str | None = Field(default=None, alias="Logo")

    @property
    def handler_names(self) -> list[str]:
        return [h.action for h in self.handlers]


# ─── Translation Layer ─────────────────────────────────────────

class HandlerMatch(BaseModel):
    """Best handler for a request and how confident the matcher is."""
    model_config = {"frozen": True}

    handler: HandlerDescriptor
    confidence: float = Field(..., description="Match score clamped to 0.0-1.0")


class ExtractionAttempt(BaseModel):
    """Output of one extraction strategy. Lives only within one request."""
    model_config = {"frozen": True}

    strategy: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    success: bool = False


class RetryExtraction(BaseModel):
    """Result of the sequential strategy rotation."""
    model_config = {"frozen": True}

    parameters: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    strategies_used: list[str] = Field(default_factory=list)

    @property
    def retry_attempts(self) -> int:
        return len(self.strategies_used)


class ValidationOutcome(BaseModel):
    """Aggregated result of per-parameter and contract validation."""
    model_config = {"frozen": True}

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggested_fixes: list[str] = Field(default_factory=list)
    values: dict[str, Any] = Field(
        default_factory=dict,
        description="Declared parameters coerced to their declared types",
    )


# ─── Dispatch ──────────────────────────────────────────────────

class DispatchOutcome(BaseModel):
    """What came back from one message sent to an actor."""
    model_config = {"frozen": True}

    success: bool
    method: DispatchMethod
    transmission_strategy: TransmissionStrategy
    data: Any = None
    tags: list[Tag] = Field(default_factory=list)


# ─── Diagnostics ───────────────────────────────────────────────

class InteractiveGuidance(BaseModel):
    """Context-aware hints for a request that could not be translated."""
    model_config = {"frozen": True}

    primary_suggestion: str
    alternatives: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    troubleshooting: list[str] = Field(default_factory=list)


class ParameterDiagnostic(BaseModel):
    model_config = {"frozen": True}

    category: str
    message: str
    suggestion: str


class DiagnosticReport(BaseModel):
    """Why parameter extraction/validation went the way it did."""
    model_config = {"frozen": True}

    diagnostics: list[ParameterDiagnostic] = Field(default_factory=list)
    quick_fixes: list[str] = Field(default_factory=list)
    severity: Literal["error", "info", "warning"] = "info"
    summary: str = ""


class TranslationInspection(BaseModel):
    """Side-by-side output of every extraction strategy for one request."""
    model_config = {"frozen": True}

    handler: str
    attempts: list[ExtractionAttempt] = Field(default_factory=list)
    best_strategy: str
    final_parameters: dict[str, Any] = Field(default_factory=dict)
    validation: ValidationOutcome
    troubleshooting: list[str] = Field(default_factory=list)


class SchemaTestCase(BaseModel):
    """A request paired with the parameters it should translate to."""
    model_config = {"frozen": True, "populate_by_name": True}

    input: str
    description: str = ""
    expected_parameters: dict[str, Any] = Field(default_factory=dict, alias="expectedParameters")


class SchemaTestResult(BaseModel):
    model_config = {"frozen": True}

    input: str
    description: str = ""
    passed: bool
    handler_used: str | None = None
    expected: dict[str, Any] = Field(default_factory=dict)
    actual: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    strategies_used: list[str] = Field(default_factory=list)


class SchemaValidationReport(BaseModel):
    model_config = {"frozen": True}

    actor_id: str
    overall_success: bool
    metadata: ActorMetadata
    results: list[SchemaTestResult] = Field(default_factory=list)


class ErrorContext(BaseModel):
    """Structured debugging context attached to failures in verbose mode."""
    model_config = {"frozen": True}

    category: ErrorCategory
    step: str
    session_id: str
    actor_id: str
    user_request: str
    timestamp: str
    execution_time_ms: float | None = None
    available_handlers: list[str] = Field(default_factory=list)
    extracted_parameters: dict[str, Any] = Field(default_factory=dict)
    validation_errors: list[str] = Field(default_factory=list)
    suggested_fixes: list[str] = Field(default_factory=list)
    suggested_alternatives: list[str] = Field(default_factory=list)
    fallback_attempted: bool = False


# ─── Engine Output ─────────────────────────────────────────────

class CommunicationResult(BaseModel):
    """Public output of the request-translation engine."""
    model_config = {"frozen": True}

    success: bool
    data: Any = None
    handler_used: str | None = None
    method_used: DispatchMethod | None = None
    parameters_used: dict[str, Any] = Field(default_factory=dict)
    confidence: float | None = None

    # Fallback metadata
    fallback_used: bool = False
    fallback_method: FallbackMethod | None = None
    parameter_format: ParameterFormat | None = None
    transmission_strategy: TransmissionStrategy | None = None
    original_extraction_failed: bool = False

    # Failure details
    error: str | None = None
    error_category: ErrorCategory | None = None
    error_context: ErrorContext | None = None
    available_handlers: list[str] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggested_fixes: list[str] = Field(default_factory=list)
    suggested_alternatives: list[str] = Field(default_factory=list)
