import unittest
from datetime import datetime, timezone

from app.models.ai_usage import AiUsage
from app.services.usage_meter import (
    UsageLimitExceeded,
    monthly_total,
    record_usage,
    usage_summary,
    would_exceed,
)

from helpers import ApiTestCase, DatabaseTestCase


class TestQuotaRule(unittest.TestCase):
    def test_unlimited_never_gates(self):
        self.assertFalse(would_exceed(None, 10_000, 50))

    def test_at_quota_allows_last_credit(self):
        self.assertFalse(would_exceed(5, 4, 1))

    def test_over_quota(self):
        self.assertTrue(would_exceed(5, 5, 1))
        self.assertTrue(would_exceed(5, 3, 3))


class TestUsageMeterService(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        from app.models.user import User

        def create(db):
            user = User(username="ivan", password_hash="x")
            db.add(user)
            db.commit()
            return user.id

        self.user_id = self.query(create)

    def test_free_user_is_rejected_after_quota(self):
        for _ in range(5):
            self.query(lambda db: record_usage(db, self.user_id, "enhance"))
        with self.assertRaises(UsageLimitExceeded) as ctx:
            self.query(lambda db: record_usage(db, self.user_id, "enhance"))
        self.assertEqual(ctx.exception.current_usage, 5)
        self.assertEqual(ctx.exception.limit, 5)
        self.assertEqual(self.query(lambda db: db.query(AiUsage).count()), 5)

    def test_previous_month_does_not_count(self):
        september = datetime(2026, 9, 30, 23, 0, tzinfo=timezone.utc)
        october = datetime(2026, 10, 1, 0, 30, tzinfo=timezone.utc)
        self.query(lambda db: record_usage(db, self.user_id, "enhance", 5, now=september))
        entry = self.query(lambda db: record_usage(db, self.user_id, "enhance", 1, now=october))
        self.assertEqual((entry.month, entry.year), (10, 2026))
        self.assertEqual(self.query(lambda db: monthly_total(db, self.user_id, 9, 2026)), 5)
        self.assertEqual(self.query(lambda db: monthly_total(db, self.user_id, 10, 2026)), 1)

    def test_non_positive_credits(self):
        with self.assertRaises(ValueError):
            self.query(lambda db: record_usage(db, self.user_id, "enhance", 0))

    def test_cancelled_plan_applies_until_period_end(self):
        self.activate(self.user_id, "Pro", status="cancelled", days_left=3)
        self.query(lambda db: record_usage(db, self.user_id, "enhance", 20))
        summary = self.query(lambda db: usage_summary(db, self.user_id))
        self.assertIsNone(summary.limit)
        self.assertIsNone(summary.remaining)

    def test_expired_subscription_falls_back_to_free(self):
        sub = self.activate(self.user_id, "Pro", days_left=-1)
        with self.assertRaises(UsageLimitExceeded):
            self.query(lambda db: record_usage(db, self.user_id, "enhance", 6))
        status = self.query(lambda db: db.get(type(sub), sub.id).status)
        self.assertEqual(status, "expired")

    def test_usage_links_subscription(self):
        sub = self.activate(self.user_id, "Enterprise")
        entry = self.query(lambda db: record_usage(db, self.user_id, "background_removal", 2))
        self.assertEqual(entry.subscription_id, sub.id)


class TestUsageEndpoints(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user_id, self.headers = self.register("judy")

    def use(self, credits=None, feature="enhance"):
        payload = {"featureType": feature}
        if credits is not None:
            payload["creditsUsed"] = credits
        return self.client.post("/api/ai-usage", json=payload, headers=self.headers)

    def test_free_tier_limit(self):
        self.assertEqual(self.use(5).status_code, 200)
        resp = self.use(1)
        self.assertEqual(resp.status_code, 403)
        body = resp.json()
        self.assertEqual(body["currentUsage"], 5)
        self.assertEqual(body["limit"], 5)

    def test_enterprise_is_never_rejected(self):
        self.activate(self.user_id, "Enterprise")
        for _ in range(3):
            resp = self.use(50)
            self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["creditsUsed"], 50)

    def test_default_credit_is_one(self):
        resp = self.use()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["creditsUsed"], 1)
        self.assertEqual(resp.json()["featureType"], "enhance")

    def test_rejects_zero_credits(self):
        self.assertEqual(self.use(0).status_code, 400)

    def test_summary(self):
        self.use(2)
        body = self.client.get("/api/ai-usage", headers=self.headers).json()
        self.assertEqual(body["used"], 2)
        self.assertEqual(body["limit"], 5)
        self.assertEqual(body["remaining"], 3)

    def test_auth_user_reports_monthly_usage(self):
        self.use(3)
        body = self.client.get("/api/auth/user", headers=self.headers).json()
        self.assertEqual(body["aiUsageThisMonth"], 3)


if __name__ == "__main__":
    unittest.main()
