import unittest
from datetime import datetime, timezone

from app.services.subscriptions import add_months, add_years, as_utc, compute_period_end


class TestPeriodArithmetic(unittest.TestCase):
    def test_monthly(self):
        start = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(compute_period_end(start, "monthly"), datetime(2026, 4, 15, 12, 0, tzinfo=timezone.utc))

    def test_monthly_clamps_to_month_end(self):
        start = datetime(2026, 1, 31, tzinfo=timezone.utc)
        self.assertEqual(compute_period_end(start, "monthly"), datetime(2026, 2, 28, tzinfo=timezone.utc))

    def test_monthly_crosses_year(self):
        start = datetime(2026, 12, 10, tzinfo=timezone.utc)
        self.assertEqual(add_months(start, 1), datetime(2027, 1, 10, tzinfo=timezone.utc))

    def test_yearly(self):
        start = datetime(2026, 10, 19, tzinfo=timezone.utc)
        self.assertEqual(compute_period_end(start, "yearly"), datetime(2027, 10, 19, tzinfo=timezone.utc))

    def test_leap_day_rolls_back(self):
        self.assertEqual(add_years(datetime(2024, 2, 29), 1), datetime(2025, 2, 28))

    def test_lifetime_is_at_least_99_years(self):
        start = datetime(2026, 10, 19, tzinfo=timezone.utc)
        end = compute_period_end(start, "lifetime")
        self.assertGreaterEqual(end.year - start.year, 99)
        self.assertGreater(end, start.replace(year=start.year + 99))

    def test_unknown_cycle(self):
        with self.assertRaises(ValueError):
            compute_period_end(datetime(2026, 1, 1), "weekly")

    def test_as_utc_treats_naive_as_utc(self):
        self.assertEqual(as_utc(datetime(2026, 1, 1)), datetime(2026, 1, 1, tzinfo=timezone.utc))
        self.assertIsNone(as_utc(None))


if __name__ == "__main__":
    unittest.main()
