from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base
from app.models.payment_transaction import PaymentTransaction
from app.models.user import User
from app.models.user_subscription import UserSubscription
from app.models import ai_usage, user_project  # noqa: F401
from app.services.plan_catalog import get_free_plan, list_active_plans, seed_plans
from app.services.subscriptions import record_payment_succeeded
from app.services.usage_meter import UsageLimitExceeded, record_usage


def main() -> None:
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        assert seed_plans(db) == 3
        plans = {p.name: p for p in list_active_plans(db)}
        assert get_free_plan(db).ai_credits_per_month == 5

        user = User(username="verify", password_hash="x")
        db.add(user)
        db.commit()

        for _ in range(5):
            record_usage(db, user.id, "enhance")
        try:
            record_usage(db, user.id, "enhance")
            raise AssertionError("free quota not enforced")
        except UsageLimitExceeded as exc:
            assert exc.current_usage == 5, exc.current_usage

        tx = PaymentTransaction(
            user_id=user.id,
            plan_id=plans["Pro"].id,
            provider_reference="chk_verify",
            amount=Decimal("99.00"),
            status="pending",
            billing_cycle="lifetime",
        )
        db.add(tx)
        db.commit()

        sub, applied = record_payment_succeeded(db, tx)
        assert applied
        _sub, applied_again = record_payment_succeeded(db, tx)
        assert not applied_again
        assert db.query(UserSubscription).filter(UserSubscription.user_id == user.id).count() == 1
        assert sub.current_period_end - sub.current_period_start > timedelta(days=365 * 99)

        record_usage(db, user.id, "enhance", 100, now=datetime.now(timezone.utc))
    finally:
        db.close()


if __name__ == "__main__":
    main()
    print("OK")
