import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic.alias_generators import to_camel

from enrollwatch.core.models import stringify_value


class RuleSeverity(str, Enum):
    """Enumerates the severity levels of a diagnosis."""

    INFO = "info"
    WARNING = "warning"
    HIGH = "high"
    CRITICAL = "critical"


class RuleCategory(str, Enum):
    """Built-in rule categories. Custom rules may use any category string."""

    NETWORK = "network"
    IDENTITY = "identity"
    ENROLLMENT = "enrollment"
    APPS = "apps"
    ESP = "esp"
    DEVICE = "device"


class RuleTrigger(str, Enum):
    """Descriptive rule kind. Both kinds are evaluated identically."""

    SINGLE = "single"
    CORRELATION = "correlation"


class ConditionSource(str, Enum):
    """Where a condition looks for its signal."""

    EVENT_TYPE = "event_type"
    EVENT_DATA = "event_data"
    EVENT_COUNT = "event_count"
    PHASE_DURATION = "phase_duration"
    APP_INSTALL_DURATION = "app_install_duration"
    EVENT_CORRELATION = "event_correlation"
    UNKNOWN = "unknown"


class ConditionOperator(str, Enum):
    """Comparison operators applied to payload values."""

    EQUALS = "equals"
    CONTAINS = "contains"
    REGEX = "regex"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EXISTS = "exists"
    COUNT_GTE = "count_gte"
    UNKNOWN = "unknown"


class FactorKind(str, Enum):
    """Parsed form of a confidence factor expression."""

    EXISTS = "exists"
    COUNT_GTE = "count_gte"
    PHASE_DURATION_GT = "phase_duration_gt"
    INVALID = "invalid"


_COUNT_GTE_PATTERN = re.compile(r"^count\s*>=\s*(-?\d+)$", re.IGNORECASE)
_PHASE_DURATION_PATTERN = re.compile(r"^phase_duration\s*>\s*(-?\d+)$", re.IGNORECASE)


@dataclass(frozen=True)
class FactorExpression:
    """A confidence factor condition parsed into operator + operand."""

    kind: FactorKind
    threshold: int | None = None
    source: str = ""

    @classmethod
    def parse(cls, expression: str | None) -> "FactorExpression":
        """
        Parse "exists", "count >= N" or "phase_duration > N".

        Anything else yields an INVALID expression that never satisfies.
        """
        text = (expression or "").strip()
        if text.lower() == "exists":
            return cls(kind=FactorKind.EXISTS, source=text)

        match = _COUNT_GTE_PATTERN.match(text)
        if match:
            return cls(kind=FactorKind.COUNT_GTE, threshold=int(match.group(1)), source=text)

        match = _PHASE_DURATION_PATTERN.match(text)
        if match:
            return cls(kind=FactorKind.PHASE_DURATION_GT, threshold=int(match.group(1)), source=text)

        return cls(kind=FactorKind.INVALID, source=text)


def _coerce_enum(enum_cls: type[Enum], value: Any, fallback: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return fallback


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class RuleCondition(_CamelModel):
    """One testable predicate over a session's event stream."""

    signal: str
    source: ConditionSource
    event_type: str | None = None
    data_field: str | None = None
    operator: ConditionOperator | None = None
    value: str | None = None
    required: bool = False

    # Only used when source is event_correlation
    correlate_event_type: str | None = None
    join_field: str | None = None
    time_window_seconds: int | None = None
    event_a_filter_field: str | None = None
    event_a_filter_operator: ConditionOperator | None = None
    event_a_filter_value: str | None = None

    @field_validator("source", mode="before")
    @classmethod
    def _parse_source(cls, value: Any) -> ConditionSource:
        return _coerce_enum(ConditionSource, value, ConditionSource.UNKNOWN)

    @field_validator("operator", "event_a_filter_operator", mode="before")
    @classmethod
    def _parse_operator(cls, value: Any) -> ConditionOperator | None:
        if value is None or value == "":
            return None
        return _coerce_enum(ConditionOperator, value, ConditionOperator.UNKNOWN)

    @field_validator("value", "event_a_filter_value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return stringify_value(value)


class ConfidenceFactor(_CamelModel):
    """A weighted booster applied when an auxiliary signal is present."""

    signal: str
    condition: str
    weight: int = 0

    _expression: FactorExpression = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._expression = FactorExpression.parse(self.condition)

    @property
    def expression(self) -> FactorExpression:
        """The condition string, parsed once on construction."""
        return self._expression


class RemediationStep(_CamelModel):
    """A remediation approach with ordered steps."""

    title: str
    steps: list[str] = Field(default_factory=list)


class RelatedDoc(_CamelModel):
    """A link to related documentation."""

    title: str
    url: str


class RuleDefinition(_CamelModel):
    """Declarative failure pattern evaluated against a session's events."""

    rule_id: str
    title: str
    description: str = ""
    severity: RuleSeverity = RuleSeverity.WARNING
    category: str = RuleCategory.ENROLLMENT.value
    version: str = "1.0.0"
    author: str = ""
    enabled: bool = True
    is_builtin: bool = False
    is_community: bool = False
    trigger: RuleTrigger = RuleTrigger.SINGLE
    conditions: list[RuleCondition] = Field(default_factory=list)
    base_confidence: int = Field(default=50, ge=0, le=100)
    confidence_factors: list[ConfidenceFactor] = Field(default_factory=list)
    confidence_threshold: int = Field(default=40, ge=0, le=100)
    explanation: str = ""
    remediation_steps: list[RemediationStep] = Field(
        default_factory=list,
        validation_alias=AliasChoices("remediationSteps", "remediation_steps", "remediation"),
    )
    related_docs: list[RelatedDoc] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> RuleSeverity:
        if isinstance(value, RuleSeverity):
            return value
        return RuleSeverity(str(value).strip().lower())

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> str:
        if isinstance(value, Enum):
            return value.value
        return str(value).strip().lower()

    @field_validator("trigger", mode="before")
    @classmethod
    def _parse_trigger(cls, value: Any) -> RuleTrigger:
        return _coerce_enum(RuleTrigger, value, RuleTrigger.SINGLE)

    @property
    def required_conditions(self) -> list[RuleCondition]:
        return [c for c in self.conditions if c.required]


class RuleResult(_CamelModel):
    """A diagnosis produced by a fired rule for one session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    result_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str = ""
    tenant_id: str = ""
    rule_id: str
    rule_title: str
    severity: RuleSeverity
    category: str
    confidence_score: int = Field(ge=0, le=100)
    explanation: str = ""
    remediation_steps: list[RemediationStep] = Field(default_factory=list)
    related_docs: list[RelatedDoc] = Field(default_factory=list)
    matched_conditions: dict[str, Any] = Field(default_factory=dict)
    detected_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
