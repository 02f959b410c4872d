import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from app.models.user import User
from app.services import subscriptions
from app.services.subscriptions import (
    cancel_subscription,
    effective_plan,
    get_current_subscription,
    record_payment_succeeded,
)

from helpers import DatabaseTestCase


class TestLedger(DatabaseTestCase):
    def setUp(self):
        super().setUp()

        def create(db):
            user = User(username="lena", password_hash="x")
            db.add(user)
            db.commit()
            return user.id

        self.user_id = self.query(create)

    def test_conflict_on_first_insert_is_retried_as_update(self):
        self.add_transaction(self.user_id, "Pro", reference="chk_race")
        real_apply = subscriptions._apply_success
        calls = []

        def flaky(db, tx, **kwargs):
            calls.append(tx.id)
            if len(calls) == 1:
                raise IntegrityError("INSERT INTO user_subscriptions", {}, Exception("UNIQUE constraint failed"))
            return real_apply(db, tx, **kwargs)

        db = self.SessionLocal()
        try:
            tx = subscriptions.get_transaction(db, "chk_race")
            with patch("app.services.subscriptions._apply_success", side_effect=flaky):
                sub, applied = record_payment_succeeded(db, tx)
            self.assertTrue(applied)
            self.assertEqual(sub.status, "active")
        finally:
            db.close()

        self.assertEqual(len(calls), 2)
        self.assertEqual(len(self.subscriptions(self.user_id)), 1)
        self.assertEqual(self.transaction("chk_race").status, "succeeded")

    def test_repeated_conflict_propagates(self):
        self.add_transaction(self.user_id, "Pro", reference="chk_stuck")
        error = IntegrityError("INSERT INTO user_subscriptions", {}, Exception("UNIQUE constraint failed"))
        db = self.SessionLocal()
        try:
            tx = subscriptions.get_transaction(db, "chk_stuck")
            with patch("app.services.subscriptions._apply_success", side_effect=error):
                with self.assertRaises(IntegrityError):
                    record_payment_succeeded(db, tx)
        finally:
            db.close()
        self.assertEqual(self.transaction("chk_stuck").status, "pending")

    def test_overdue_active_row_expires_on_read(self):
        self.activate(self.user_id, "Pro", days_left=-1)
        db = self.SessionLocal()
        try:
            sub = get_current_subscription(db, self.user_id)
            self.assertEqual(sub.status, "expired")
        finally:
            db.close()
        self.assertEqual(self.subscriptions(self.user_id)[0].status, "expired")

    def test_cancel_then_repurchase_reactivates_same_row(self):
        self.activate(self.user_id, "Pro")
        db = self.SessionLocal()
        try:
            cancelled = cancel_subscription(db, self.user_id)
            self.assertEqual(cancelled.status, "cancelled")
            self.assertIsNotNone(cancelled.cancelled_at)
            plan, _sub = effective_plan(db, self.user_id)
            self.assertEqual(plan.name, "Pro")
        finally:
            db.close()

        self.add_transaction(self.user_id, "Enterprise", reference="chk_again")
        db = self.SessionLocal()
        try:
            tx = subscriptions.get_transaction(db, "chk_again")
            sub, applied = record_payment_succeeded(db, tx, now=datetime(2026, 1, 31, tzinfo=timezone.utc))
            self.assertTrue(applied)
            self.assertEqual(sub.status, "active")
            self.assertIsNone(sub.cancelled_at)
            self.assertEqual(subscriptions.as_utc(sub.current_period_end), datetime(2026, 2, 28, tzinfo=timezone.utc))
        finally:
            db.close()

        rows = self.subscriptions(self.user_id)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].plan_id, self.plan("Enterprise").id)

    def test_cancel_requires_active_subscription(self):
        db = self.SessionLocal()
        try:
            self.assertIsNone(cancel_subscription(db, self.user_id))
        finally:
            db.close()

    def test_cancelled_plan_lapses_after_period_end(self):
        self.activate(self.user_id, "Pro", status="cancelled", days_left=2)
        later = datetime.now(timezone.utc) + timedelta(days=3)
        db = self.SessionLocal()
        try:
            plan, sub = effective_plan(db, self.user_id, now=later)
            self.assertEqual(plan.name, "Free")
            self.assertIsNone(sub)
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
