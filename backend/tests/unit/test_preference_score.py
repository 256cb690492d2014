"""
Unit tests for preference_score() in services/notifications/preferences.py

Exact project +8 / global +2; exact category +4 / '*' +1; exact event type +2 / '*' +1.
"""

import unittest
from types import SimpleNamespace

from app.services.notifications.preferences import preference_score


def _pref(project_id=None, category="*", event_type="*"):
    return SimpleNamespace(project_id=project_id, category=category, event_type=event_type)


class TestPreferenceScore(unittest.TestCase):
    def test_global_wildcard_row(self):
        self.assertEqual(preference_score(_pref(), "p1", "FINANCIAL", "EXPENSE_PAID"), 2 + 1 + 1)

    def test_exact_project_category_event(self):
        pref = _pref("p1", "FINANCIAL", "EXPENSE_PAID")
        self.assertEqual(preference_score(pref, "p1", "FINANCIAL", "EXPENSE_PAID"), 8 + 4 + 2)

    def test_project_bonus_and_global_bonus_are_exclusive(self):
        self.assertEqual(preference_score(_pref("p1"), "p1", "X", "Y"), 8 + 1 + 1)
        self.assertEqual(preference_score(_pref(None), "p1", "X", "Y"), 2 + 1 + 1)

    def test_other_project_gets_no_project_points(self):
        self.assertEqual(preference_score(_pref("p2"), "p1", "X", "Y"), 0 + 1 + 1)

    def test_exact_always_beats_wildcard(self):
        exact = preference_score(_pref("p1", "FINANCIAL", "EXPENSE_PAID"), "p1", "FINANCIAL", "EXPENSE_PAID")
        for wildcard in (
            _pref("p1", "*", "EXPENSE_PAID"),
            _pref("p1", "FINANCIAL", "*"),
            _pref(None, "FINANCIAL", "EXPENSE_PAID"),
        ):
            self.assertGreater(exact, preference_score(wildcard, "p1", "FINANCIAL", "EXPENSE_PAID"))

    def test_category_outweighs_event_type(self):
        by_category = preference_score(_pref(None, "FINANCIAL", "*"), None, "FINANCIAL", "EXPENSE_PAID")
        by_event = preference_score(_pref(None, "*", "EXPENSE_PAID"), None, "FINANCIAL", "EXPENSE_PAID")
        self.assertGreater(by_category, by_event)
