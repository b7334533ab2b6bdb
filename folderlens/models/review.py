"""Content-review models: issues, the model's analysis schema, page reviews.

The LLM answers review prompts with camelCase JSON.  The issue and analysis
models accept both camelCase and snake_case on input (``alias_generator`` +
``populate_by_name``) and dump camelCase under ``by_alias=True``, which is
how the API serializes them.  ``PageReview`` itself keeps snake_case field
names.  ``ModelAnalysis`` is the strict boundary schema: a reply that does
not validate against it is treated as a failed model analysis.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_REVIEW_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _lower_enum_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------
class AnalysisIssue(BaseModel):
    """One finding about a reviewed page.

    ``current_text`` also accepts ``outdatedText`` so heuristic and model
    findings share one deduplication key.
    """

    model_config = _REVIEW_CONFIG

    type: str = Field(default="Messaging Update", description="Issue category tag.")
    description: str = Field(default="", description="What needs changing and why.")
    severity: Severity = Field(default=Severity.LOW)
    current_text: str | None = Field(
        default=None,
        validation_alias=AliasChoices("current_text", "currentText", "outdated_text", "outdatedText"),
        description="Exact text found on the page.",
    )
    suggested_replacement: str | None = None
    reasoning: str | None = None
    location: str | None = Field(default=None, description="Where on the page, e.g. 'Sentence 3'.")
    priority: Priority | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        return _lower_enum_value(value) or Severity.LOW

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> Any:
        return _lower_enum_value(value) or None

    @property
    def dedup_key(self) -> tuple[str | None, str | None]:
        return (self.current_text, self.location)


# ---------------------------------------------------------------------------
# Strict schema for the model's JSON reply
# ---------------------------------------------------------------------------
class CurrentRelevance(BaseModel):
    model_config = _REVIEW_CONFIG

    is_relevant: bool = False
    reason: str = ""
    accurate_content: list[str] = Field(default_factory=list)
    needs_updating: list[str] = Field(default_factory=list)


class FutureRelevance(BaseModel):
    model_config = _REVIEW_CONFIG

    is_relevant: bool = False
    reason: str = ""
    should_update: bool = False
    should_archive: bool = False
    reasoning: str = ""


class MessagingStrategy(BaseModel):
    model_config = _REVIEW_CONFIG

    current_state: str = ""
    transition_message: str = ""
    tone: str = ""
    key_messages: list[str] = Field(default_factory=list)


class InstructorRecommendations(BaseModel):
    model_config = _REVIEW_CONFIG

    add_dev_shell_link: bool = False
    dev_shell_link_text: str = ""
    workshop_mention: str = ""
    ultra_features_to_highlight: list[str] = Field(default_factory=list)
    transition_guidance: str = ""


class SpecificChange(BaseModel):
    model_config = _REVIEW_CONFIG

    action: str = "update"
    current_text: str = ""
    new_text: str = ""
    location: str = ""
    reason: str = ""


class ModelAnalysis(BaseModel):
    """The structured analysis the LLM must return for a reviewed page."""

    model_config = _REVIEW_CONFIG

    risks: list[str] = Field(default_factory=list)
    summary: str = ""
    risk_level: Severity | None = None
    issues: list[AnalysisIssue] = Field(default_factory=list)
    outdated_terms_found: list[str] = Field(default_factory=list)
    update_priority: Severity | None = None
    current_relevance: CurrentRelevance | None = None
    future_relevance: FutureRelevance | None = None
    messaging_strategy: MessagingStrategy | None = None
    instructor_recommendations: InstructorRecommendations | None = None
    specific_changes: list[SpecificChange] = Field(default_factory=list)

    @field_validator("risk_level", "update_priority", mode="before")
    @classmethod
    def _normalize_levels(cls, value: Any) -> Any:
        return _lower_enum_value(value) or None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class AggregateResult(BaseModel):
    """Deduplicated issues plus the overall severity of a page."""

    model_config = ConfigDict(frozen=True)

    unique_issues: list[AnalysisIssue] = Field(default_factory=list)
    overall_severity: Severity = Severity.LOW
    used_fallback: bool = Field(
        default=False, description="True when the model path failed and heuristics alone were used."
    )


class PageReview(BaseModel):
    """Review outcome for one URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    success: bool
    error: str | None = None
    summary: str = ""
    overall_severity: Severity = Severity.LOW
    issues: list[AnalysisIssue] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    outdated_terms_found: list[str] = Field(default_factory=list)
    update_priority: Severity = Severity.LOW
    specific_changes: list[SpecificChange] = Field(default_factory=list)
    used_fallback: bool = False
    analysis: ModelAnalysis | None = None
