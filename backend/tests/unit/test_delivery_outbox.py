"""
Unit tests for scheduler/delivery_job.py

The outbox never raises into the producer: batch errors are logged and swallowed.
"""

import unittest
from unittest.mock import MagicMock, patch

from app.scheduler.delivery_job import DeliveryOutbox, run_delivery_sweep_job


class TestDeliveryOutbox(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.factory = MagicMock(return_value=self.session)
        self.mailer = MagicMock()
        self.outbox = DeliveryOutbox(session_factory=self.factory, mailer=self.mailer, max_workers=1)

    def tearDown(self):
        self.outbox.shutdown(wait=True)

    @patch("app.scheduler.delivery_job.process_pending_deliveries")
    def test_drain_runs_batch_in_own_session(self, mock_process):
        mock_process.return_value = {"processed": 1, "sent": 1, "failed": 0}

        result = self.outbox.drain(25)

        self.assertEqual(result["sent"], 1)
        mock_process.assert_called_once_with(self.session, 25, mailer=self.mailer)
        self.session.close.assert_called_once()

    @patch("app.scheduler.delivery_job.process_pending_deliveries")
    def test_drain_swallows_errors(self, mock_process):
        mock_process.side_effect = RuntimeError("db down")

        with self.assertLogs("app.scheduler.delivery_job", level="ERROR"):
            result = self.outbox.drain(25)

        self.assertIsNone(result)
        self.session.rollback.assert_called_once()
        self.session.close.assert_called_once()

    @patch("app.scheduler.delivery_job.process_pending_deliveries")
    def test_enqueue_runs_on_executor(self, mock_process):
        mock_process.return_value = {"processed": 0, "sent": 0, "failed": 0}

        future = self.outbox.enqueue(25)

        self.assertEqual(future.result(timeout=5), {"processed": 0, "sent": 0, "failed": 0})
        mock_process.assert_called_once_with(self.session, 25, mailer=self.mailer)


class TestSweepJob(unittest.TestCase):
    @patch("app.scheduler.delivery_job.get_outbox")
    def test_sweep_drains_default_batch(self, mock_get_outbox):
        mock_get_outbox.return_value.drain.return_value = {"processed": 0, "sent": 0, "failed": 0}

        run_delivery_sweep_job()

        mock_get_outbox.return_value.drain.assert_called_once_with(100)
