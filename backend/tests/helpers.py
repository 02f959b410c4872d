import hashlib
import hmac
import json
import time
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.settings import settings
from app.models import ai_usage, payment_transaction, subscription_plan, user, user_project, user_subscription  # noqa: F401
from app.models.payment_transaction import PaymentTransaction
from app.models.subscription_plan import SubscriptionPlan
from app.models.user_subscription import UserSubscription
from app.services.plan_catalog import seed_plans

import main


WEBHOOK_SECRET = "whsec_test_secret"


def make_session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


class DatabaseTestCase(unittest.TestCase):
    def setUp(self):
        self.engine, self.SessionLocal = make_session_factory()
        db = self.SessionLocal()
        try:
            seed_plans(db)
        finally:
            db.close()

    def tearDown(self):
        self.engine.dispose()

    def query(self, fn):
        db = self.SessionLocal()
        try:
            return fn(db)
        finally:
            db.close()

    def plan(self, name: str) -> SubscriptionPlan:
        return self.query(lambda db: db.query(SubscriptionPlan).filter(SubscriptionPlan.name == name).one())

    def subscriptions(self, user_id: str) -> list[UserSubscription]:
        return self.query(lambda db: db.query(UserSubscription).filter(UserSubscription.user_id == user_id).all())

    def transaction(self, reference: str) -> PaymentTransaction:
        return self.query(
            lambda db: db.query(PaymentTransaction).filter(PaymentTransaction.provider_reference == reference).one()
        )

    def add_transaction(
        self, user_id: str, plan_name: str, billing_cycle: str = "monthly", reference: str = "chk_1", amount=None
    ):
        plan = self.plan(plan_name)
        amount = amount or {
            "monthly": plan.monthly_price,
            "yearly": plan.yearly_price,
            "lifetime": plan.lifetime_price,
        }[billing_cycle]
        db = self.SessionLocal()
        try:
            tx = PaymentTransaction(
                user_id=user_id,
                plan_id=plan.id,
                provider_reference=reference,
                amount=Decimal(amount),
                currency="USD",
                status="pending",
                billing_cycle=billing_cycle,
            )
            db.add(tx)
            db.commit()
            db.refresh(tx)
            return tx
        finally:
            db.close()

    def activate(self, user_id: str, plan_name: str, *, status: str = "active", days_left: int = 30):
        plan = self.plan(plan_name)
        now = datetime.now(timezone.utc)
        db = self.SessionLocal()
        try:
            sub = UserSubscription(
                user_id=user_id,
                plan_id=plan.id,
                status=status,
                billing_cycle="monthly",
                current_period_start=now - timedelta(days=1),
                current_period_end=now + timedelta(days=days_left),
            )
            db.add(sub)
            db.commit()
            db.refresh(sub)
            return sub
        finally:
            db.close()


class ApiTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        main.app.dependency_overrides[get_db] = override_get_db
        self._saved_secret = settings.airwallex_webhook_secret
        settings.airwallex_webhook_secret = WEBHOOK_SECRET
        self.client = TestClient(main.app)

    def tearDown(self):
        main.app.dependency_overrides.clear()
        settings.airwallex_webhook_secret = self._saved_secret
        super().tearDown()

    def register(self, username: str = "alice", password: str = "secret123") -> tuple[str, dict]:
        resp = self.client.post(
            "/api/register",
            json={"username": username, "password": password, "email": f"{username}@example.com"},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['accessToken']}"}

    def send_webhook(
        self,
        payload: dict,
        *,
        secret: str = WEBHOOK_SECRET,
        signature: str | bytes | None = None,
        timestamp: str | None = None,
    ):
        raw = json.dumps(payload).encode("utf-8")
        ts = timestamp if timestamp is not None else str(int(time.time() * 1000))
        if signature is None:
            signature = hmac.new(secret.encode("utf-8"), ts.encode("utf-8") + raw, hashlib.sha256).hexdigest()
        return self.client.post(
            "/api/payment-webhook",
            content=raw,
            headers={"content-type": "application/json", "x-timestamp": ts, "x-signature": signature},
        )


def succeeded_event(reference: str, **extra) -> dict:
    obj = {"id": reference, "payment_method": {"type": "card"}}
    obj.update(extra)
    return {"event_type": "payment_intent.succeeded", "data": {"object": obj}}
