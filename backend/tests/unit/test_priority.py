"""
Unit tests for services/notifications/priority.py

Priority ordering (low < normal < high < critical) and frequency normalization.
"""

import unittest

from app.services.notifications.priority import (
    max_priority,
    meets_min_priority,
    normalize_frequency,
    normalize_priority,
    priority_weight,
)


class TestNormalizePriority(unittest.TestCase):
    def test_known_values_pass_through(self):
        for value in ("low", "normal", "high", "critical"):
            self.assertEqual(normalize_priority(value), value)

    def test_unknown_defaults_to_normal(self):
        self.assertEqual(normalize_priority("urgent"), "normal")
        self.assertEqual(normalize_priority(None), "normal")
        self.assertEqual(normalize_priority("HIGH"), "normal")


class TestPriorityOrdering(unittest.TestCase):
    def test_weights_are_strictly_increasing(self):
        weights = [priority_weight(p) for p in ("low", "normal", "high", "critical")]
        self.assertEqual(weights, sorted(weights))
        self.assertEqual(len(set(weights)), 4)

    def test_max_priority(self):
        self.assertEqual(max_priority("low", "high"), "high")
        self.assertEqual(max_priority("critical", "normal"), "critical")
        self.assertEqual(max_priority("normal", "normal"), "normal")

    def test_meets_min_priority(self):
        self.assertTrue(meets_min_priority("high", "normal"))
        self.assertTrue(meets_min_priority("normal", "normal"))
        self.assertFalse(meets_min_priority("low", "normal"))
        self.assertFalse(meets_min_priority("high", "critical"))


class TestNormalizeFrequency(unittest.TestCase):
    def test_known_values(self):
        for value in ("immediate", "digest", "off"):
            self.assertEqual(normalize_frequency(value), value)

    def test_unknown_defaults_to_immediate(self):
        self.assertEqual(normalize_frequency("weekly"), "immediate")
        self.assertEqual(normalize_frequency(None), "immediate")
