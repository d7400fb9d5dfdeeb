from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.adapters.rate_limit.base import AbstractRateLimitStore
from app.core.errors import NotFoundAppError
from app.core.rate_limit import RATE_LIMITS, get_rate_limit_store, identify_client
from app.schemas.profile import RateLimitStatusResponse

router = APIRouter(tags=["Rate limit"])


@router.get("/rate-limit/{endpoint}", response_model=RateLimitStatusResponse)
async def rate_limit_status(
    endpoint: str,
    request: Request,
    store: AbstractRateLimitStore = Depends(get_rate_limit_store),
) -> RateLimitStatusResponse:
    """Report the caller's remaining quota for a rate limit preset.

    Read-only: checking the status never consumes a request.

    Raises:
        NotFoundAppError: If ``endpoint`` is not a known preset.
    """
    config = RATE_LIMITS.get(endpoint)
    if config is None:
        raise NotFoundAppError(
            code="unknown_rate_limit",
            message=f"No existe un límite de uso llamado '{endpoint}'",
            details={"allowed_values": sorted(RATE_LIMITS)},
        )

    info = store.get_info(identify_client(request), endpoint, config)
    if info is None:
        return RateLimitStatusResponse(
            endpoint=endpoint,
            limit=config.max_requests,
            window_ms=config.window_ms,
            active=False,
            remaining=config.max_requests,
        )

    return RateLimitStatusResponse(
        endpoint=endpoint,
        limit=info.limit,
        window_ms=config.window_ms,
        active=True,
        remaining=info.remaining,
        reset_ms=info.reset_ms,
        reset_time=info.reset_time,
    )
