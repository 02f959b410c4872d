from __future__ import annotations

from fastapi import APIRouter

from app.core.settings import settings


router = APIRouter()


@router.get("/public-config")
async def public_config() -> dict:
    return {
        "environment": settings.environment,
        "airwallexEnv": settings.airwallex_env,
        "currency": settings.billing_currency,
    }
