"""Pydantic schemas for questionnaire classification requests/responses.

Questionnaire answers arrive as the free text the onboarding form stores
("Mediano plazo (2-5 años)", "Conservador", ...). They are normalized to
enum members here, so the classifier never has to guess from wording.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, Field, field_validator

from app.services.investor_classifier import (
    InvestmentHorizon,
    InvestorType,
    KnowledgeLevel,
    QuestionnaireProfile,
    RiskTolerance,
    parse_investment_horizon,
    parse_knowledge_level,
    parse_risk_tolerance,
)


def _normalize(value: Any, parser: Callable[[str], Any], allowed: list[str]) -> Any:
    """Normalize free text to an enum member.

    None and blank strings mean "not answered" and become None. Any other
    string must contain one of the allowed keywords.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    if not value.strip():
        return None
    parsed = parser(value)
    if parsed is None:
        raise ValueError(f"unrecognized answer {value!r}; expected one of {', '.join(allowed)}")
    return parsed


class QuestionnaireRequest(BaseModel):
    """Questionnaire answers submitted for classification."""

    questionnaire_completed: bool = Field(
        ...,
        description="Classification only runs once the questionnaire is completed.",
    )
    risk_tolerance: RiskTolerance | None = Field(
        default=None,
        description="conservador, moderado or agresivo (free text containing one is accepted).",
        examples=["Moderado"],
    )
    investment_horizon: InvestmentHorizon | None = Field(
        default=None,
        description="corto, mediano or largo (e.g. 'Largo plazo (5+ años)').",
        examples=["Largo plazo"],
    )
    knowledge_level: KnowledgeLevel | None = Field(
        default=None,
        description="principiante, intermedio or avanzado.",
        examples=["Intermedio"],
    )
    has_emergency_fund: bool | None = Field(
        default=None,
        description="Whether the user has an emergency fund; null when unknown.",
    )

    @field_validator("risk_tolerance", mode="before")
    @classmethod
    def _normalize_risk_tolerance(cls, value: Any) -> Any:
        return _normalize(value, parse_risk_tolerance, [m.value for m in RiskTolerance])

    @field_validator("investment_horizon", mode="before")
    @classmethod
    def _normalize_investment_horizon(cls, value: Any) -> Any:
        return _normalize(value, parse_investment_horizon, [m.value for m in InvestmentHorizon])

    @field_validator("knowledge_level", mode="before")
    @classmethod
    def _normalize_knowledge_level(cls, value: Any) -> Any:
        return _normalize(value, parse_knowledge_level, [m.value for m in KnowledgeLevel])

    def to_profile(self) -> QuestionnaireProfile:
        return QuestionnaireProfile(
            questionnaire_completed=self.questionnaire_completed,
            risk_tolerance=self.risk_tolerance,
            investment_horizon=self.investment_horizon,
            knowledge_level=self.knowledge_level,
            has_emergency_fund=self.has_emergency_fund,
        )


class InvestorTypeResponse(BaseModel):
    """Classification outcome."""

    questionnaire_completed: bool = Field(
        ..., description="Echo of the request gate."
    )
    investor_type: InvestorType | None = Field(
        default=None,
        description="Investor type, or null while the questionnaire is incomplete.",
    )
    score: float | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Composite 0-100 score (higher = more aggressive).",
    )
    description: str | None = Field(
        default=None,
        description="User-facing description of the investor type (Spanish).",
    )


class RateLimitStatusResponse(BaseModel):
    """Remaining quota for the caller on one endpoint."""

    endpoint: str = Field(..., description="Rate limit preset name.")
    limit: int = Field(..., description="Maximum requests per window.")
    window_ms: int = Field(..., description="Window length in milliseconds.")
    active: bool = Field(
        ..., description="False when the caller has no open window (full quota)."
    )
    remaining: int = Field(..., description="Requests left in the current window.")
    reset_ms: int | None = Field(
        default=None, description="Milliseconds until the window resets."
    )
    reset_time: datetime | None = Field(
        default=None, description="When the window resets (UTC)."
    )
