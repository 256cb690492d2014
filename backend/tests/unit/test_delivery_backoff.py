"""
Unit tests for retry/backoff and email rendering in services/notifications/delivery.py
"""

import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.services.notifications.delivery import backoff_minutes, render_email, retry_state


class TestBackoff(unittest.TestCase):
    def test_sequence_for_attempts_one_to_five(self):
        self.assertEqual([backoff_minutes(n) for n in range(1, 6)], [2, 4, 8, 16, 32])

    def test_capped_at_sixty_minutes(self):
        self.assertEqual(backoff_minutes(6), 60)
        self.assertEqual(backoff_minutes(10), 60)


class TestRetryState(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_pending_with_backoff_before_fifth_attempt(self):
        for attempts in range(1, 5):
            status, next_at = retry_state(attempts, self.now)
            self.assertEqual(status, "pending")
            self.assertEqual(next_at, self.now + timedelta(minutes=min(60, 2**attempts)))

    def test_failed_exactly_at_fifth_attempt(self):
        status, next_at = retry_state(5, self.now)
        self.assertEqual(status, "failed")
        self.assertIsNone(next_at)


class TestRenderEmail(unittest.TestCase):
    def _notification(self, **overrides):
        fields = {
            "priority": "high",
            "title": "Expense paid",
            "body": "Concrete delivery was paid.",
            "category": "FINANCIAL",
        }
        fields.update(overrides)
        return SimpleNamespace(**fields)

    def test_subject_has_upper_priority_prefix(self):
        subject, _ = render_email(self._notification(), "Ana", "Tower A")
        self.assertEqual(subject, "[HIGH] Expense paid")

    def test_body_contains_fields(self):
        _, body = render_email(self._notification(), "Ana", "Tower A")
        self.assertIn("Hello Ana", body)
        self.assertIn("Concrete delivery was paid.", body)
        self.assertIn("FINANCIAL", body)
        self.assertIn("Tower A", body)

    def test_missing_project_is_na(self):
        _, body = render_email(self._notification(), "Ana", None)
        self.assertIn("N/A", body)

    def test_escapes_html(self):
        _, body = render_email(self._notification(body="<script>x</script>"), "Ana", None)
        self.assertNotIn("<script>", body)
        self.assertIn("&lt;script&gt;", body)
