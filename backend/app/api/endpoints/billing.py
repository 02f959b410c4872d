from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user
from app.core.settings import settings
from app.models.payment_transaction import PaymentTransaction, TransactionStatus
from app.models.user import User
from app.schemas.account import SubscriptionResponse
from app.schemas.billing import (
    CheckoutResponse,
    CreatePaymentIntentRequest,
    PaymentSuccessResponse,
    TransactionResponse,
)
from app.services import airwallex
from app.services.plan_catalog import ensure_provider_price, get_plan, price_for_cycle
from app.services.subscriptions import (
    cancel_subscription,
    get_current_subscription,
    get_transaction,
    record_payment_status,
    record_payment_succeeded,
)


logger = logging.getLogger(__name__)

router = APIRouter()

EVENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_FAILED = "payment_intent.failed"
EVENT_CANCELLED = "payment_intent.cancelled"


def _verify_airwallex_webhook_signature(raw_body: bytes, timestamp: str | None, signature: str | None) -> None:
    if not settings.airwallex_webhook_secret:
        raise HTTPException(status_code=500, detail="AIRWALLEX_WEBHOOK_SECRET is not configured")
    ts = (timestamp or "").strip()
    sig = (signature or "").strip()
    if not ts or not sig:
        raise HTTPException(status_code=400, detail="Missing webhook signature")
    digest = hmac.new(
        key=str(settings.airwallex_webhook_secret).encode("utf-8"),
        msg=ts.encode("utf-8", "surrogateescape") + raw_body,
        digestmod=hashlib.sha256,
    ).hexdigest()
    if not hmac.compare_digest(digest.encode("ascii"), sig.encode("utf-8", "surrogateescape")):
        raise HTTPException(status_code=400, detail="Invalid signature")

    # x-timestamp is epoch milliseconds.
    try:
        sent_at = int(ts) / 1000.0
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid webhook timestamp")
    if abs(time.time() - sent_at) > settings.airwallex_webhook_tolerance_s:
        raise HTTPException(status_code=400, detail="Webhook timestamp outside tolerance")


def _payment_method_type(obj: dict[str, Any]) -> str | None:
    method = obj.get("payment_method")
    if isinstance(method, dict):
        return str(method.get("type") or "").strip() or None
    if isinstance(method, str):
        return method.strip() or None
    return None


@router.post("/create-payment-intent", response_model=CheckoutResponse)
async def create_payment_intent(
    body: CreatePaymentIntentRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    user = db.query(User).filter(User.id == current_user.id).first()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    plan = get_plan(db, body.plan_id)
    if plan is None or not plan.is_active:
        raise HTTPException(status_code=404, detail="Subscription plan not found")

    amount = price_for_cycle(plan, body.billing_cycle)
    if amount is None or amount <= 0:
        raise HTTPException(status_code=400, detail="Invalid plan pricing")

    currency = settings.billing_currency
    try:
        customer_id = user.billing_customer_id
        if not customer_id:
            customer = airwallex.create_billing_customer(user.email, user.first_name, user.last_name)
            customer_id = str(customer["id"])
            user.billing_customer_id = customer_id
            db.commit()

        price_id = ensure_provider_price(db, plan, body.billing_cycle, currency)
        checkout = airwallex.create_billing_checkout(
            customer_id=customer_id,
            price_id=price_id,
            billing_cycle=body.billing_cycle,
            plan_id=plan.id,
            success_url=f"{settings.app_base_url}/payment-success",
            cancel_url=f"{settings.app_base_url}/payment-cancel",
        )
    except airwallex.AirwallexError:
        db.rollback()
        logger.exception("billing.checkout.provider_error user_id=%s plan_id=%s", user.id, plan.id)
        raise HTTPException(status_code=500, detail="Failed to create payment intent")

    checkout_id = str(checkout["id"])
    tx = PaymentTransaction(
        user_id=user.id,
        plan_id=plan.id,
        provider_reference=checkout_id,
        amount=amount,
        currency=currency,
        status=TransactionStatus.PENDING.value,
        billing_cycle=body.billing_cycle,
    )
    try:
        db.add(tx)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "billing.checkout.created user_id=%s plan_id=%s cycle=%s checkout_id=%s",
        user.id,
        plan.id,
        body.billing_cycle,
        checkout_id,
    )
    return CheckoutResponse(
        checkout_url=str(checkout["url"]),
        checkout_id=checkout_id,
        amount=amount,
        currency=currency,
        plan_name=plan.name,
        billing_cycle=body.billing_cycle,
    )


@router.get("/payment-transactions", response_model=List[TransactionResponse])
async def payment_transactions(db: Session = Depends(get_db), current_user: CurrentUser = Depends(get_current_user)):
    return (
        db.query(PaymentTransaction)
        .filter(PaymentTransaction.user_id == current_user.id)
        .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
        .all()
    )


@router.post("/payment-webhook")
async def payment_webhook(request: Request, db: Session = Depends(get_db)) -> dict:
    raw_body = await request.body()
    _verify_airwallex_webhook_signature(
        raw_body,
        request.headers.get("x-timestamp"),
        request.headers.get("x-signature"),
    )
    try:
        payload = json.loads(raw_body or b"{}") or {}
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON")

    event_type = str(payload.get("event_type") or payload.get("name") or "").strip()
    data = payload.get("data") or {}
    obj = (data.get("object") if isinstance(data, dict) else None) or {}
    if not isinstance(obj, dict):
        obj = {}
    reference = str(obj.get("id") or "").strip()

    if event_type not in {EVENT_SUCCEEDED, EVENT_FAILED, EVENT_CANCELLED}:
        logger.info("billing.webhook.ignored event_type=%s", event_type)
        return {"received": True}
    if not reference:
        raise HTTPException(status_code=400, detail="Missing payment reference")

    tx = get_transaction(db, reference, for_update=True)

    if event_type == EVENT_SUCCEEDED:
        if tx is None:
            logger.warning("billing.webhook.unknown_transaction reference=%s", reference)
            raise HTTPException(status_code=404, detail="Payment transaction not found")
        _sub, applied = record_payment_succeeded(
            db,
            tx,
            provider_subscription_id=(str(obj.get("subscription_id") or "").strip() or None),
            payment_method=_payment_method_type(obj),
        )
        return {"received": True, "duplicate": not applied}

    if tx is None:
        logger.info("billing.webhook.unknown_transaction reference=%s event_type=%s", reference, event_type)
        return {"received": True}
    status = TransactionStatus.FAILED if event_type == EVENT_FAILED else TransactionStatus.CANCELLED
    record_payment_status(db, tx, status)
    return {"received": True}


@router.get("/payment-success", response_model=PaymentSuccessResponse)
async def payment_success(
    intent_id: str | None = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    reference = (intent_id or "").strip()
    if not reference:
        raise HTTPException(status_code=400, detail="Payment intent ID required")

    tx = get_transaction(db, reference)
    if tx is None or tx.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Payment transaction not found")

    # The webhook may not have landed yet; report what the ledger says now.
    if tx.status == TransactionStatus.SUCCEEDED.value:
        message = "Payment processed successfully"
    elif tx.status == TransactionStatus.PENDING.value:
        message = "Payment is being processed"
    else:
        message = f"Payment {tx.status}"

    sub = get_current_subscription(db, current_user.id)
    return PaymentSuccessResponse(
        success=(tx.status == TransactionStatus.SUCCEEDED.value),
        status=tx.status,
        message=message,
        transaction=TransactionResponse.model_validate(tx),
        subscription=(SubscriptionResponse.model_validate(sub) if sub is not None else None),
    )


@router.post("/subscription/cancel", response_model=SubscriptionResponse)
async def subscription_cancel(db: Session = Depends(get_db), current_user: CurrentUser = Depends(get_current_user)):
    sub = cancel_subscription(db, current_user.id)
    if sub is None:
        raise HTTPException(status_code=404, detail="No active subscription found")
    return sub
