"""Investor type classification from questionnaire answers.

The questionnaire is scored on a 0-100 scale (higher = more aggressive)
as a weighted sum of four factors:

- risk tolerance: 40%
- investment horizon: 30%
- knowledge level: 20%
- emergency fund: 10%

The score then maps to one of three investor types:

- 0-33: conservador
- 34-66: moderado
- 67-100: agresivo

Categorical answers may be enum members or the free text the questionnaire
stores (e.g. "Mediano plazo (2-5 años)"); free text is matched by
case-insensitive keyword containment. Unrecognized text falls back to the
factor's default score. A missing answer (None or empty) adds nothing to the
sum, it is not treated as a neutral midpoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Type, TypeVar

RISK_WEIGHT = 0.4
HORIZON_WEIGHT = 0.3
KNOWLEDGE_WEIGHT = 0.2
EMERGENCY_FUND_WEIGHT = 0.1

CONSERVATIVE_MAX_SCORE = 33
MODERATE_MAX_SCORE = 66


class InvestorType(str, Enum):
    CONSERVADOR = "conservador"
    MODERADO = "moderado"
    AGRESIVO = "agresivo"


class RiskTolerance(str, Enum):
    CONSERVADOR = "conservador"
    MODERADO = "moderado"
    AGRESIVO = "agresivo"


class InvestmentHorizon(str, Enum):
    CORTO = "corto"  # < 1-2 years
    MEDIANO = "mediano"  # 2-5 years
    LARGO = "largo"  # 5+ years


class KnowledgeLevel(str, Enum):
    PRINCIPIANTE = "principiante"
    INTERMEDIO = "intermedio"
    AVANZADO = "avanzado"


RISK_TOLERANCE_SCORES: dict[RiskTolerance, int] = {
    RiskTolerance.CONSERVADOR: 0,
    RiskTolerance.MODERADO: 50,
    RiskTolerance.AGRESIVO: 100,
}
INVESTMENT_HORIZON_SCORES: dict[InvestmentHorizon, int] = {
    InvestmentHorizon.CORTO: 0,
    InvestmentHorizon.MEDIANO: 50,
    InvestmentHorizon.LARGO: 100,
}
KNOWLEDGE_LEVEL_SCORES: dict[KnowledgeLevel, int] = {
    KnowledgeLevel.PRINCIPIANTE: 0,
    KnowledgeLevel.INTERMEDIO: 50,
    KnowledgeLevel.AVANZADO: 100,
}

# Scores for answers that are present but unrecognized
DEFAULT_RISK_TOLERANCE_SCORE = 50
DEFAULT_INVESTMENT_HORIZON_SCORE = 50
DEFAULT_KNOWLEDGE_LEVEL_SCORE = 0

INVESTOR_TYPE_DESCRIPTIONS: dict[InvestorType, str] = {
    InvestorType.CONSERVADOR: (
        "Preferís preservar tu capital y evitar riesgos. Inversiones de bajo "
        "riesgo como plazos fijos o bonos son ideales para vos."
    ),
    InvestorType.MODERADO: (
        "Buscás un balance entre seguridad y crecimiento. Podés tolerar cierta "
        "volatilidad a cambio de mejores retornos a largo plazo."
    ),
    InvestorType.AGRESIVO: (
        "Buscás maximizar retornos y estás dispuesto a asumir mayor riesgo. "
        "Inversiones en acciones y activos de alto crecimiento son apropiadas "
        "para vos."
    ),
}

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class QuestionnaireProfile:
    """Snapshot of the questionnaire fields the classifier reads."""

    questionnaire_completed: bool
    risk_tolerance: RiskTolerance | str | None = None
    investment_horizon: InvestmentHorizon | str | None = None
    knowledge_level: KnowledgeLevel | str | None = None
    has_emergency_fund: bool | None = None


def _match_keyword(value: str, enum_cls: Type[E]) -> E | None:
    """Find the first enum member whose value appears in ``value``.

    Members are tried in declaration order (low, mid, high).
    """
    normalized = value.lower()
    for member in enum_cls:
        if member.value in normalized:
            return member
    return None


def parse_risk_tolerance(value: str) -> RiskTolerance | None:
    """Map questionnaire text to a RiskTolerance, or None if unrecognized.

    >>> parse_risk_tolerance("Moderado")
    <RiskTolerance.MODERADO: 'moderado'>
    """
    return _match_keyword(value, RiskTolerance)


def parse_investment_horizon(value: str) -> InvestmentHorizon | None:
    """Map questionnaire text to an InvestmentHorizon, or None if unrecognized.

    >>> parse_investment_horizon("Largo plazo (5+ años)")
    <InvestmentHorizon.LARGO: 'largo'>
    """
    return _match_keyword(value, InvestmentHorizon)


def parse_knowledge_level(value: str) -> KnowledgeLevel | None:
    """Map questionnaire text to a KnowledgeLevel, or None if unrecognized."""
    return _match_keyword(value, KnowledgeLevel)


def risk_tolerance_score(value: RiskTolerance | str) -> int:
    level = value if isinstance(value, RiskTolerance) else parse_risk_tolerance(value)
    if level is None:
        return DEFAULT_RISK_TOLERANCE_SCORE
    return RISK_TOLERANCE_SCORES[level]


def investment_horizon_score(value: InvestmentHorizon | str) -> int:
    # Longer horizon can weather more volatility
    horizon = value if isinstance(value, InvestmentHorizon) else parse_investment_horizon(value)
    if horizon is None:
        return DEFAULT_INVESTMENT_HORIZON_SCORE
    return INVESTMENT_HORIZON_SCORES[horizon]


def knowledge_level_score(value: KnowledgeLevel | str) -> int:
    level = value if isinstance(value, KnowledgeLevel) else parse_knowledge_level(value)
    if level is None:
        return DEFAULT_KNOWLEDGE_LEVEL_SCORE
    return KNOWLEDGE_LEVEL_SCORES[level]


def emergency_fund_score(has_emergency_fund: bool | None) -> int:
    # Unknown is scored like "no fund"
    return 100 if has_emergency_fund is True else 0


def calculate_investor_score(profile: QuestionnaireProfile) -> float:
    """Compute the weighted 0-100 score for a questionnaire.

    Does not check ``questionnaire_completed``; see ``classify_investor``.

    Args:
        profile: Questionnaire answers.

    Returns:
        Composite score, higher meaning more aggressive.
    """
    score = 0.0

    if profile.risk_tolerance:
        score += risk_tolerance_score(profile.risk_tolerance) * RISK_WEIGHT

    if profile.investment_horizon:
        score += investment_horizon_score(profile.investment_horizon) * HORIZON_WEIGHT

    if profile.knowledge_level:
        score += knowledge_level_score(profile.knowledge_level) * KNOWLEDGE_WEIGHT

    score += emergency_fund_score(profile.has_emergency_fund) * EMERGENCY_FUND_WEIGHT

    # Float weights can overshoot 100 by an ulp
    return min(score, 100.0)


def investor_type_for_score(score: float) -> InvestorType:
    """Map a composite score to its investor type band."""
    if score <= CONSERVATIVE_MAX_SCORE:
        return InvestorType.CONSERVADOR
    if score <= MODERATE_MAX_SCORE:
        return InvestorType.MODERADO
    return InvestorType.AGRESIVO


def classify_investor(profile: QuestionnaireProfile) -> InvestorType | None:
    """Classify a user as conservador, moderado or agresivo.

    Args:
        profile: Questionnaire answers.

    Returns:
        The investor type, or None while the questionnaire is incomplete.
    """
    if not profile.questionnaire_completed:
        return None
    return investor_type_for_score(calculate_investor_score(profile))


def describe_investor_type(investor_type: InvestorType) -> str:
    """Return the Spanish description shown to users for an investor type."""
    return INVESTOR_TYPE_DESCRIPTIONS[InvestorType(investor_type)]
