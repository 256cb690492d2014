"""
Integration tests for emit(): fan-out, preference filtering, dedupe, actor snapshot, outbox trigger.
"""

from unittest.mock import MagicMock

from app.db.base import utcnow
from app.models.notification import Notification
from app.models.notification_dedupe_key import NotificationDedupeKey
from app.models.notification_delivery import NotificationDelivery
from app.models.notification_recipient import NotificationRecipient
from app.services.notifications import emit

from tests.fixtures.db import DbTestCase
from tests.fixtures.directory_factory import (
    OTHER_TENANT,
    backdate_notification,
    create_preference,
    create_project,
    create_user,
)
from tests.fixtures.notification_factory import create_notification, create_test_event


class EmitTestCase(DbTestCase):
    def setUp(self):
        super().setUp()
        self.trigger = MagicMock()
        self.project = create_project(self.db)
        self.ana = create_user(self.db, name="Ana")
        self.ben = create_user(self.db, name="Ben")

    def _emit(self, **overrides):
        overrides.setdefault("project_id", self.project.id)
        overrides.setdefault("specific_user_ids", [self.ana.id, self.ben.id])
        return emit(self.db, create_test_event(**overrides), trigger=self.trigger)

    def _recipients(self, notification_id=None):
        q = self.db.query(NotificationRecipient)
        if notification_id:
            q = q.filter(NotificationRecipient.notification_id == notification_id)
        return q.all()

    def _deliveries(self):
        return self.db.query(NotificationDelivery).all()


class TestEmitFanOut(EmitTestCase):
    def test_creates_notification_and_in_app_recipients(self):
        notification = self._emit()

        self.assertIsNotNone(notification)
        self.assertEqual(notification.priority, "high")
        self.assertEqual(notification.tenant_id, self.project.tenant_id)
        recipients = self._recipients(notification.id)
        self.assertEqual({r.user_id for r in recipients}, {self.ana.id, self.ben.id})
        self.assertTrue(all(r.channel_in_app and not r.is_read for r in recipients))
        # default preference: email off
        self.assertEqual(self._deliveries(), [])
        self.trigger.enqueue.assert_not_called()

    def test_no_candidates_writes_nothing(self):
        result = self._emit(specific_user_ids=[])

        self.assertIsNone(result)
        self.assertEqual(self.db.query(Notification).count(), 0)

    def test_unknown_priority_normalized(self):
        self.assertEqual(self._emit(priority="urgent").priority, "normal")

    def test_disabled_and_off_preferences_skip_user(self):
        create_preference(self.db, self.ana, is_enabled=False)
        create_preference(self.db, self.ben, frequency="off")

        notification = self._emit()

        self.assertIsNotNone(notification)
        self.assertEqual(self._recipients(notification.id), [])

    def test_no_channel_skips_user(self):
        create_preference(self.db, self.ana, channel_in_app=False, channel_email=False)

        notification = self._emit()

        self.assertEqual({r.user_id for r in self._recipients(notification.id)}, {self.ben.id})

    def test_min_priority_filters(self):
        create_preference(self.db, self.ana, min_priority="critical")

        notification = self._emit(priority="high")

        self.assertEqual({r.user_id for r in self._recipients(notification.id)}, {self.ben.id})

    def test_email_preference_creates_pending_delivery_and_triggers_outbox(self):
        create_preference(self.db, self.ana, channel_email=True)

        notification = self._emit()

        deliveries = self._deliveries()
        self.assertEqual(len(deliveries), 1)
        delivery = deliveries[0]
        self.assertEqual(delivery.user_id, self.ana.id)
        self.assertEqual(delivery.notification_id, notification.id)
        self.assertEqual(delivery.channel, "email")
        self.assertEqual(delivery.status, "pending")
        self.assertEqual(delivery.attempts, 0)
        self.assertIsNone(delivery.next_attempt_at)
        self.assertEqual(delivery.payload["email"], self.ana.email)
        self.assertEqual(delivery.payload["eventType"], "EXPENSE_PAID")
        self.trigger.enqueue.assert_called_once_with(25)

    def test_digest_preference_creates_digest_pending_without_trigger(self):
        create_preference(self.db, self.ana, channel_email=True, frequency="digest")

        self._emit()

        deliveries = self._deliveries()
        self.assertEqual([d.status for d in deliveries], ["digest_pending"])
        self.trigger.enqueue.assert_not_called()

    def test_email_only_recipient_hidden_from_inbox_channel(self):
        create_preference(self.db, self.ana, channel_in_app=False, channel_email=True)

        notification = self._emit()

        row = [r for r in self._recipients(notification.id) if r.user_id == self.ana.id][0]
        self.assertFalse(row.channel_in_app)
        self.assertTrue(row.channel_email)

    def test_trigger_failure_does_not_fail_emit(self):
        create_preference(self.db, self.ana, channel_email=True)
        self.trigger.enqueue.side_effect = RuntimeError("executor gone")

        with self.assertLogs("app.services.notifications.emitter", level="WARNING"):
            notification = self._emit()

        self.assertIsNotNone(notification)
        self.assertEqual(len(self._deliveries()), 1)


class TestEmitTenantAndActor(EmitTestCase):
    def test_project_tenant_overrides_event_tenant(self):
        foreign_project = create_project(self.db, tenant_id=OTHER_TENANT, name="Depot")
        foreign_user = create_user(self.db, tenant_id=OTHER_TENANT)

        notification = self._emit(project_id=foreign_project.id, specific_user_ids=[foreign_user.id])

        self.assertEqual(notification.tenant_id, OTHER_TENANT)

    def test_actor_snapshot_added_and_actor_not_notified(self):
        actor = create_user(self.db, name="Carla", profile_image="/img/carla.png")

        notification = self._emit(
            actor_user_id=actor.id,
            specific_user_ids=[actor.id, self.ana.id],
            metadata={"expenseId": "e-1"},
        )

        self.assertEqual(notification.payload["expenseId"], "e-1")
        self.assertEqual(
            notification.payload["actor"], {"id": actor.id, "name": "Carla", "profileImage": "/img/carla.png"}
        )
        self.assertEqual({r.user_id for r in self._recipients(notification.id)}, {self.ana.id})

    def test_unknown_actor_leaves_metadata_untouched(self):
        notification = self._emit(actor_user_id="ghost", metadata={"k": "v"})
        self.assertEqual(notification.payload, {"k": "v"})


class TestEmitDedupe(EmitTestCase):
    def test_same_key_within_window_reuses_notification(self):
        first = self._emit(dedupe_key="expense:e-1:paid", specific_user_ids=[self.ana.id])
        second = self._emit(dedupe_key="expense:e-1:paid", specific_user_ids=[self.ana.id, self.ben.id])

        self.assertEqual(first.id, second.id)
        self.assertEqual(self.db.query(Notification).count(), 1)
        # recipients are insert-or-skip: Ana keeps one row, Ben joins
        recipients = self._recipients(first.id)
        self.assertEqual(len(recipients), 2)
        self.assertEqual({r.user_id for r in recipients}, {self.ana.id, self.ben.id})

    def test_repeat_emit_keeps_one_delivery_per_user(self):
        create_preference(self.db, self.ana, channel_email=True)

        self._emit(dedupe_key="k1")
        self._emit(dedupe_key="k1")

        self.assertEqual(len(self._deliveries()), 1)

    def test_same_key_after_window_creates_new_notification(self):
        first = self._emit(dedupe_key="expense:e-1:paid")
        backdate_notification(self.db, first.id, 11)

        second = self._emit(dedupe_key="expense:e-1:paid")

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(self.db.query(Notification).count(), 2)

    def test_same_key_other_tenant_is_independent(self):
        foreign_project = create_project(self.db, tenant_id=OTHER_TENANT, name="Depot")
        foreign_user = create_user(self.db, tenant_id=OTHER_TENANT)

        first = self._emit(dedupe_key="shared")
        second = self._emit(dedupe_key="shared", project_id=foreign_project.id, specific_user_ids=[foreign_user.id])

        self.assertNotEqual(first.id, second.id)

    def test_without_key_every_emit_is_new(self):
        first = self._emit()
        second = self._emit()
        self.assertNotEqual(first.id, second.id)

    def test_key_claimed_by_concurrent_emit_is_reused(self):
        # Winner of the claim has committed its key row but its notification is not yet visible by key
        owner = create_notification(self.db, project_id=self.project.id, title="Expense paid")
        self.db.add(
            NotificationDedupeKey(
                tenant_id=self.project.tenant_id,
                dedupe_key="expense:e-2:paid",
                notification_id=owner.id,
                claimed_at=utcnow(),
            )
        )
        self.db.commit()

        with self.assertLogs("app.services.notifications.emitter", level="INFO"):
            result = self._emit(dedupe_key="expense:e-2:paid")

        self.assertEqual(result.id, owner.id)
        self.assertEqual(self.db.query(Notification).count(), 1)
        self.assertEqual({r.user_id for r in self._recipients(owner.id)}, {self.ana.id, self.ben.id})
