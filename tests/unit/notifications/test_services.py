from __future__ import annotations

from uuid import uuid4

import pytest

from modules.core.models import OutboxEvent, OutboxTopic
from modules.notifications.constants import NotificationType, RelatedEntity
from modules.notifications.services import NotificationService
from shared.domain.actor import ADMIN

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return NotificationService()


class TestNotify:
    def test_enqueues_one_outbox_row(self, service):
        order_id = uuid4()

        request = service.notify(
            [3, 4],
            NotificationType.ORDER_STATUS,
            "notifications.order_status",
            {"order_number": "ORD-20250101-ABC123"},
            related_entity={"id": order_id, "type": RelatedEntity.ORDER},
        )

        row = OutboxEvent.objects.get()
        assert row.topic == OutboxTopic.NOTIFICATIONS
        assert row.event_type == "notification.order_status"
        assert row.aggregate_id == str(order_id)
        assert row.payload["recipients"] == ["3", "4"]
        assert row.payload["template_args"] == {"order_number": "ORD-20250101-ABC123"}
        assert request.related_entity_type == "Order"

    def test_recipients_are_deduplicated_and_none_dropped(self, service):
        request = service.notify([7, "7", None, 8], NotificationType.SYSTEM, "notifications.system")
        assert request.recipients == ["7", "8"]

    @pytest.mark.parametrize("recipients", [[], [None]])
    def test_nobody_to_notify(self, service, recipients):
        assert service.notify(recipients, NotificationType.SYSTEM, "notifications.system") is None
        assert not OutboxEvent.objects.exists()

    def test_out_of_band_flag_is_carried(self, service):
        service.notify([1], NotificationType.ADMIN_MESSAGE, "notifications.admin", out_of_band=True)
        assert OutboxEvent.objects.get().payload["out_of_band"] is True


class TestAdmins:
    def test_admin_ids_include_group_staff_and_superusers(self, make_user, django_user_model):
        grouped = make_user("ops", ADMIN)
        staff = make_user("staffer", is_staff=True)
        root = django_user_model.objects.create_superuser("root", "root@example.com", "pw")
        make_user("shopper")
        make_user("retired", ADMIN, is_active=False)

        assert sorted(NotificationService.admin_ids()) == sorted([grouped.pk, staff.pk, root.pk])

    def test_notify_admins_without_admins_is_a_no_op(self, service, make_user):
        make_user("shopper")
        assert service.notify_admins(NotificationType.NEW_ORDER_REQUEST, "notifications.new_order") is None
