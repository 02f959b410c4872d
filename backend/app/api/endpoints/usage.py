from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user
from app.schemas.usage import AiUsageRequest, AiUsageResponse, UsageSummaryResponse
from app.services.usage_meter import UsageLimitExceeded, record_usage, usage_summary


router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/ai-usage", response_model=AiUsageResponse)
async def track_ai_usage(
    body: AiUsageRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return record_usage(db, current_user.id, body.feature_type.strip(), body.credits_used)
    except UsageLimitExceeded as exc:
        return JSONResponse(
            status_code=403,
            content={"detail": str(exc), "currentUsage": exc.current_usage, "limit": exc.limit},
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/ai-usage", response_model=UsageSummaryResponse)
async def ai_usage_summary(db: Session = Depends(get_db), current_user: CurrentUser = Depends(get_current_user)):
    summary = usage_summary(db, current_user.id)
    return UsageSummaryResponse(
        month=summary.month,
        year=summary.year,
        used=summary.used,
        limit=summary.limit,
        remaining=summary.remaining,
    )
