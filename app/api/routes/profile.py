from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.rate_limit import RATE_LIMITS, rate_limited
from app.schemas.profile import InvestorTypeResponse, QuestionnaireRequest
from app.services.investor_classifier import (
    calculate_investor_score,
    describe_investor_type,
    investor_type_for_score,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])


@router.post(
    "/profile/investor-type",
    response_model=InvestorTypeResponse,
    dependencies=[Depends(rate_limited("api", RATE_LIMITS["api"]))],
)
async def classify_profile(body: QuestionnaireRequest) -> InvestorTypeResponse:
    """Classify questionnaire answers into an investor type.

    Free-text answers ("Mediano plazo (2-5 años)") are normalized by the
    request schema; unrecognized wording is rejected with 422.

    Args:
        body: Questionnaire answers.

    Returns:
        InvestorTypeResponse: Type, score and description, all null while
            the questionnaire is incomplete.
    """
    profile = body.to_profile()

    if not profile.questionnaire_completed:
        logger.info("investor_type.skipped", extra={"reason": "questionnaire_incomplete"})
        return InvestorTypeResponse(questionnaire_completed=False)

    score = calculate_investor_score(profile)
    investor_type = investor_type_for_score(score)
    logger.info(
        "investor_type.classified",
        extra={
            "investor_type": investor_type.value,
            "score": round(score, 2),
            "missing_answers": [
                name
                for name in ("risk_tolerance", "investment_horizon", "knowledge_level")
                if getattr(profile, name) is None
            ],
        },
    )

    return InvestorTypeResponse(
        questionnaire_completed=True,
        investor_type=investor_type,
        score=round(score, 2),
        description=describe_investor_type(investor_type),
    )
