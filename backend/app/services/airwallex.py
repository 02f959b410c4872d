"""Thin client for the Airwallex billing API.

Covers what the checkout flow needs: token login, billing customers, the
product and price a plan is sold under, and hosted billing checkouts. Every
call is a single attempt; failures surface as ``AirwallexError`` and the caller
decides what to return to the client.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import uuid4

import requests

from app.core.settings import settings
from app.services.cache import TTLCache


logger = logging.getLogger(__name__)

API_VERSION = "2025-08-29"

CHECKOUT_MODE_SUBSCRIPTION = "subscription"
CHECKOUT_MODE_PAYMENT = "payment"

RECURRING_PERIOD_UNITS = {"monthly": "MONTH", "yearly": "YEAR"}

# Airwallex tokens live 30 minutes; refresh a little early.
_TOKEN_CACHE = TTLCache(max_items=4, ttl_s=25 * 60)


class AirwallexError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _request_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


def _require_credentials() -> tuple[str, str]:
    if not settings.airwallex_client_id or not settings.airwallex_api_key:
        raise AirwallexError("Airwallex credentials not configured")
    return settings.airwallex_client_id, settings.airwallex_api_key


def _raise_for_status(resp: requests.Response, action: str) -> None:
    if resp.status_code < 400:
        return
    body = resp.text
    logger.error("airwallex.%s.error status=%s body=%s", action, resp.status_code, body[:2000])
    raise AirwallexError(f"Failed to {action.replace('_', ' ')}: {resp.status_code}", resp.status_code, body)


def _token_cache_key(client_id: str) -> str:
    return f"token:{settings.airwallex_base_url}:{client_id}"


def get_access_token() -> str:
    client_id, api_key = _require_credentials()
    cache_key = _token_cache_key(client_id)
    cached = _TOKEN_CACHE.get(cache_key)
    if isinstance(cached, str) and cached:
        return cached

    logger.info("airwallex.authenticate base_url=%s", settings.airwallex_base_url)
    try:
        resp = requests.post(
            f"{settings.airwallex_base_url}/api/v1/authentication/login",
            headers={
                "Content-Type": "application/json",
                "x-client-id": client_id,
                "x-api-key": api_key,
            },
            json={},
            timeout=settings.airwallex_timeout_s,
        )
    except requests.RequestException as exc:
        raise AirwallexError(f"Failed to authenticate with Airwallex: {exc}") from exc
    _raise_for_status(resp, "authenticate")
    token = str((resp.json() or {}).get("token") or "")
    if not token:
        raise AirwallexError("Airwallex authentication returned no token")
    _TOKEN_CACHE.set(cache_key, token)
    return token


def _post(path: str, payload: dict[str, Any], action: str) -> dict[str, Any]:
    token = get_access_token()
    try:
        resp = requests.post(
            f"{settings.airwallex_base_url}{path}",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "x-api-version": API_VERSION,
            },
            json=payload,
            timeout=settings.airwallex_timeout_s,
        )
    except requests.RequestException as exc:
        raise AirwallexError(f"Failed to {action.replace('_', ' ')}: {exc}") from exc
    if resp.status_code == 401:
        _TOKEN_CACHE.pop(_token_cache_key(str(settings.airwallex_client_id)))
    _raise_for_status(resp, action)
    return resp.json() or {}


def create_billing_customer(
    email: str | None,
    first_name: str | None = None,
    last_name: str | None = None,
    country_code: str = "US",
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "request_id": _request_id("billing_cus"),
        "type": "INDIVIDUAL",
        "address": {"country_code": country_code},
    }
    if email:
        payload["email"] = email
    name = " ".join(p for p in (first_name, last_name) if p)
    if name:
        payload["name"] = name

    data = _post("/api/v1/billing_customers/create", payload, "create_billing_customer")
    if not data.get("id"):
        raise AirwallexError("Billing customer response had no id")
    logger.info("airwallex.billing_customer.created customer_id=%s", data.get("id"))
    return data


def create_product(plan_name: str, description: str) -> dict[str, Any]:
    payload = {
        "request_id": _request_id("product"),
        "name": plan_name,
        "description": description,
        "type": "service",
    }
    data = _post("/api/v1/products/create", payload, "create_product")
    if not data.get("id"):
        raise AirwallexError("Product response had no id")
    logger.info("airwallex.product.created product_id=%s name=%s", data.get("id"), plan_name)
    return data


def create_price(
    *,
    product_id: str,
    plan_name: str,
    amount: Decimal,
    currency: str,
    billing_cycle: str,
) -> dict[str, Any]:
    """Create a flat price for one billing cycle.

    Monthly and yearly prices recur every period; a lifetime price is a
    one-off charge and carries no ``recurring`` block.
    """
    unit = RECURRING_PERIOD_UNITS.get(billing_cycle)
    if unit is None and billing_cycle != "lifetime":
        raise ValueError(f"Unknown billing cycle: {billing_cycle}")
    label = {"MONTH": "month", "YEAR": "year"}.get(unit or "", "lifetime")
    payload: dict[str, Any] = {
        "request_id": _request_id("price"),
        "product_id": product_id,
        "active": True,
        "currency": currency,
        "description": f"{plan_name} Plan: {amount} {currency} / {label}",
        "flat_amount": float(amount),
        "pricing_model": "FLAT",
        "billing_type": "IN_ADVANCE",
    }
    if unit is not None:
        payload["recurring"] = {"period": 1, "period_unit": unit}

    data = _post("/api/v1/prices/create", payload, "create_price")
    if not data.get("id"):
        raise AirwallexError("Price response had no id")
    logger.info(
        "airwallex.price.created price_id=%s product_id=%s cycle=%s",
        data.get("id"),
        product_id,
        billing_cycle,
    )
    return data


def checkout_mode(billing_cycle: str) -> str:
    return CHECKOUT_MODE_PAYMENT if billing_cycle == "lifetime" else CHECKOUT_MODE_SUBSCRIPTION


def create_billing_checkout(
    *,
    customer_id: str,
    price_id: str,
    billing_cycle: str,
    plan_id: str,
    success_url: str,
    cancel_url: str,
) -> dict[str, Any]:
    payload = {
        "request_id": _request_id("billing_checkout"),
        "mode": checkout_mode(billing_cycle),
        "customer_id": customer_id,
        "price_id": price_id,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": {"plan_id": plan_id, "billing_cycle": billing_cycle},
    }
    data = _post("/api/v1/billing_checkouts/create", payload, "create_billing_checkout")
    if not data.get("id") or not data.get("url"):
        raise AirwallexError("Billing checkout response had no id/url")
    logger.info("airwallex.billing_checkout.created checkout_id=%s plan_id=%s", data.get("id"), plan_id)
    return data
