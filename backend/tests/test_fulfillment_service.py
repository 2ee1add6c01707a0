"""
Fulfillment state machine tests.

Verifies:
- Each transition checks role, source stage and guards
- Each successful transition appends exactly one history entry
- Failed transitions leave the order untouched
- Deliverymen act only on their own assignments
"""

from datetime import date

import pytest
from sqlalchemy import update

from portal.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionFailedError,
    ValidationError,
)
from portal.extensions import db
from portal.models import Order
from portal.services import cash_service, employee_service, fulfillment_service, order_store
from portal.services.fulfillment_service import fulfillment_stage


def _reload(order_id: int) -> Order:
    db.session.expire_all()
    return db.session.get(Order, order_id)


# =============================================================================
# CALL CENTER
# =============================================================================


class TestConfirmations:

    def test_confirm_address_records_fact_and_history(self, make_order, staff):
        order = make_order()
        callcenter = staff["callcenter"]

        result = fulfillment_service.confirm_address(order.id, callcenter, "Spoke to customer")

        assert result.status == "processing"
        assert fulfillment_stage(result) == "address_confirmed"
        assert result.address_confirmed_by_id == callcenter.user_id
        assert result.address_confirmed_by_name == callcenter.name
        assert result.address_confirmed_at is not None
        assert len(result.status_history) == 1
        entry = result.status_history[0]
        assert entry.sequence == 1
        assert entry.status == "address_confirmed"
        assert entry.changed_by_role == "callcenter"
        assert entry.notes == "Spoke to customer"

    def test_confirm_order_before_address_fails(self, make_order, staff):
        order = make_order()

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.confirm_order(order.id, staff["callcenter"])

        fresh = _reload(order.id)
        assert fresh.status == "pending"
        assert fresh.order_confirmed_at is None
        assert fresh.status_history == []

    def test_confirm_order_after_address(self, make_order, staff):
        order = make_order()
        fulfillment_service.confirm_address(order.id, staff["callcenter"])

        result = fulfillment_service.confirm_order(order.id, staff["callcenter"])

        assert fulfillment_stage(result) == "order_confirmed"
        assert [e.status for e in result.status_history] == ["address_confirmed", "order_confirmed"]

    def test_confirm_address_twice_fails(self, make_order, staff):
        order = make_order()
        fulfillment_service.confirm_address(order.id, staff["callcenter"])

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.confirm_address(order.id, staff["callcenter"])
        assert len(_reload(order.id).status_history) == 1

    def test_packer_cannot_confirm(self, make_order, staff):
        order = make_order()

        with pytest.raises(PermissionDeniedError):
            fulfillment_service.confirm_address(order.id, staff["packer"])
        assert _reload(order.id).address_confirmed_at is None

    def test_inactive_employee_denied_with_stale_context(self, make_order, staff):
        order = make_order()
        callcenter = staff["callcenter"]
        employee_service.set_employee_status(callcenter.identity_id, "inactive")

        with pytest.raises(PermissionDeniedError):
            fulfillment_service.confirm_address(order.id, callcenter)

    def test_missing_order(self, staff):
        with pytest.raises(NotFoundError):
            fulfillment_service.confirm_address(9999, staff["callcenter"])


class TestShippingAddress:

    ADDRESS = {
        "name": "Casey Customer",
        "street": "22 Elm St",
        "city": "Shelbyville",
        "state": "IL",
        "postal_code": "62565",
        "country": "US",
    }

    def test_update_before_confirmation_adds_no_history(self, make_order, staff):
        order = make_order()

        result = fulfillment_service.update_shipping_address(order.id, staff["callcenter"], dict(self.ADDRESS))

        assert result.shipping_street == "22 Elm St"
        assert result.shipping_city == "Shelbyville"
        assert result.status_history == []

    def test_update_after_confirmation_fails(self, make_order, staff):
        order = make_order()
        fulfillment_service.confirm_address(order.id, staff["callcenter"])

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.update_shipping_address(order.id, staff["callcenter"], dict(self.ADDRESS))
        assert _reload(order.id).shipping_street == "1 Main St"

    def test_missing_street_rejected(self, make_order, staff):
        order = make_order()
        payload = dict(self.ADDRESS)
        del payload["street"]

        with pytest.raises(ValidationError):
            fulfillment_service.update_shipping_address(order.id, staff["callcenter"], payload)

    def test_unknown_field_rejected(self, make_order, staff):
        order = make_order()
        payload = dict(self.ADDRESS, status="delivered")

        with pytest.raises(ValidationError):
            fulfillment_service.update_shipping_address(order.id, staff["callcenter"], payload)

    def test_non_text_values_rejected(self, make_order, staff):
        order = make_order()

        for bad in (["22 Elm St"], True, {"line1": "22 Elm St"}):
            with pytest.raises(ValidationError):
                fulfillment_service.update_shipping_address(
                    order.id, staff["callcenter"], dict(self.ADDRESS, street=bad)
                )

        result = fulfillment_service.update_shipping_address(
            order.id, staff["callcenter"], dict(self.ADDRESS, postal_code=62565)
        )
        assert result.shipping_postal_code == "62565"


# =============================================================================
# PACKING / WAREHOUSE
# =============================================================================


class TestPackingAndDispatch:

    def test_pack_requires_order_confirmation(self, make_order, staff):
        order = make_order()
        fulfillment_service.confirm_address(order.id, staff["callcenter"])

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.mark_as_packed(order.id, staff["packer"])

    def test_pack(self, make_order, staff, drive):
        order = make_order()
        result = drive(order.id, "packed")

        assert result.status == "packed"
        assert result.packed_by_id == staff["packer"].user_id
        assert result.packed_at is not None

    def test_assign_on_order_confirmed_fails(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "order_confirmed")

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.assign_deliveryman(order.id, staff["warehouse"], staff["deliveryman"].user_id)

        fresh = _reload(order.id)
        assert fresh.assigned_deliveryman_id is None
        assert len(fresh.status_history) == 2

    def test_assign_records_dispatch(self, make_order, staff, drive):
        order = make_order()
        result = drive(order.id, "ready_for_delivery")

        assert result.status == "ready_for_delivery"
        assert result.assigned_deliveryman_id == staff["deliveryman"].user_id
        assert result.assigned_deliveryman_name == staff["deliveryman"].name
        assert result.dispatched_by_id == staff["warehouse"].user_id

    def test_assignee_must_be_deliveryman(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "packed")

        with pytest.raises(NotFoundError):
            fulfillment_service.assign_deliveryman(order.id, staff["warehouse"], staff["packer"].user_id)
        assert _reload(order.id).status == "packed"

    def test_assignee_must_be_active(self, make_order, make_employee, staff, drive):
        order = make_order()
        drive(order.id, "packed")
        idle = make_employee("deliveryman", status="inactive")

        with pytest.raises(NotFoundError):
            fulfillment_service.assign_deliveryman(order.id, staff["warehouse"], idle.user_id)

    def test_invalid_deliveryman_id(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "packed")

        with pytest.raises(ValidationError):
            fulfillment_service.assign_deliveryman(order.id, staff["warehouse"], "abc")


# =============================================================================
# DELIVERY
# =============================================================================


class TestDelivery:

    def test_start_delivery_counts_attempt(self, make_order, drive):
        order = make_order()
        result = drive(order.id, "out_for_delivery")

        assert result.status == "out_for_delivery"
        assert result.delivery_attempts == 1

    def test_other_deliveryman_cannot_start(self, make_order, make_employee, drive):
        order = make_order()
        drive(order.id, "ready_for_delivery")
        other = make_employee("deliveryman")

        with pytest.raises(PermissionDeniedError):
            fulfillment_service.start_delivery(order.id, other)
        assert _reload(order.id).status == "ready_for_delivery"

    def test_incharge_can_act_on_any_assignment(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "ready_for_delivery")

        result = fulfillment_service.start_delivery(order.id, staff["incharge"])
        assert result.status == "out_for_delivery"
        assert result.status_history[-1].changed_by_role == "incharge"

    def test_cod_delivery_requires_cash(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "out_for_delivery")

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.mark_as_delivered(order.id, staff["deliveryman"])

        fresh = _reload(order.id)
        assert fresh.status == "out_for_delivery"
        assert fresh.delivered_at is None
        assert len(fresh.status_history) == 5

    def test_cod_delivery_after_cash(self, make_order, drive):
        order = make_order()
        result = drive(order.id, "delivered")

        assert result.status == "delivered"
        assert result.delivered_at is not None
        assert result.cash_collected is True

    def test_online_order_delivers_without_cash(self, make_order, staff, drive):
        order = make_order(payment_method="online", payment_status="paid", stripe_payment_intent_id="pi_1")
        drive(order.id, "out_for_delivery")

        result = fulfillment_service.mark_as_delivered(order.id, staff["deliveryman"])
        assert result.status == "delivered"

    def test_reschedule_and_restart(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "out_for_delivery")
        deliveryman = staff["deliveryman"]

        result = fulfillment_service.reschedule_delivery(order.id, deliveryman, "2026-11-02", "Customer away")
        assert result.status == "rescheduled"
        assert result.rescheduled_date == date(2026, 11, 2)
        assert result.delivery_notes == "Customer away"

        result = fulfillment_service.start_delivery(order.id, deliveryman)
        assert result.status == "out_for_delivery"
        assert result.delivery_attempts == 2

    def test_reschedule_requires_reason_and_date(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "out_for_delivery")

        with pytest.raises(ValidationError):
            fulfillment_service.reschedule_delivery(order.id, staff["deliveryman"], "2026-11-02", "  ")
        with pytest.raises(ValidationError):
            fulfillment_service.reschedule_delivery(order.id, staff["deliveryman"], "next week", "Away")
        assert _reload(order.id).status == "out_for_delivery"

    def test_failed_delivery_starts_new_cycle(self, make_order, make_employee, staff, drive):
        order = make_order()
        drive(order.id, "out_for_delivery")

        failed = fulfillment_service.mark_delivery_failed(order.id, staff["deliveryman"], "Address not found")
        assert failed.status == "failed_delivery"
        assert failed.delivery_notes == "Address not found"

        second = make_employee("deliveryman")
        result = fulfillment_service.assign_deliveryman(order.id, staff["warehouse"], second.user_id)
        assert result.status == "ready_for_delivery"
        assert result.assigned_deliveryman_id == second.user_id

        result = fulfillment_service.start_delivery(order.id, second)
        assert result.delivery_attempts == 2

    def test_fail_requires_reason(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "out_for_delivery")

        with pytest.raises(ValidationError):
            fulfillment_service.mark_delivery_failed(order.id, staff["deliveryman"], None)


# =============================================================================
# LEDGER / TERMINAL STATES
# =============================================================================


class TestHistoryAndTerminalStates:

    def test_history_grows_by_one_per_transition(self, make_order, staff, drive):
        order = make_order()
        drive(order.id, "delivered")

        fresh = _reload(order.id)
        assert [e.sequence for e in fresh.status_history] == [1, 2, 3, 4, 5, 6, 7]
        assert [e.status for e in fresh.status_history] == [
            "address_confirmed",
            "order_confirmed",
            "packed",
            "ready_for_delivery",
            "out_for_delivery",
            "cash_collected",
            "delivered",
        ]

    def test_cancelled_order_accepts_no_transitions(self, make_order, staff):
        order = make_order(status="cancelled")

        with pytest.raises(PreconditionFailedError):
            fulfillment_service.confirm_address(order.id, staff["incharge"])
        with pytest.raises(PreconditionFailedError):
            fulfillment_service.mark_as_packed(order.id, staff["incharge"])
        assert _reload(order.id).status_history == []

    def test_concurrent_change_reports_conflict(self, make_order):
        order = make_order()

        def _op():
            loaded = order_store.get_order(order.id, for_update=True)
            # Another writer commits first
            db.session.execute(
                update(Order.__table__)
                .where(Order.__table__.c.id == loaded.id)
                .values(version_id=Order.__table__.c.version_id + 1)
            )
            loaded.status = "processing"
            db.session.commit()

        with pytest.raises(ConflictError):
            order_store.transact(_op)
        assert _reload(order.id).status == "pending"


# =============================================================================
# SINGLE ORDER READS
# =============================================================================


class TestOrderReads:

    def test_deliveryman_reads_own_assignment_only(self, make_order, make_employee, staff, drive):
        other = make_employee("deliveryman")
        mine = make_order()
        theirs = make_order()
        drive(mine.id, "ready_for_delivery")
        drive(theirs.id, "ready_for_delivery", deliveryman=other)

        assert fulfillment_service.get_order_for_employee(mine.id, staff["deliveryman"]).id == mine.id
        with pytest.raises(PermissionDeniedError):
            fulfillment_service.get_order_for_employee(theirs.id, staff["deliveryman"])

    def test_accounts_reads_online_and_own_submissions(self, make_order, staff, drive):
        online = make_order(payment_method="online", payment_status="paid", stripe_payment_intent_id="pi_1")
        unrelated = make_order()
        submitted = make_order()
        drive(submitted.id, "delivered")
        cash_service.submit_cash_to_accounts(submitted.id, staff["deliveryman"], staff["accounts"].user_id)

        assert fulfillment_service.get_order_for_employee(online.id, staff["accounts"]).id == online.id
        assert fulfillment_service.get_order_for_employee(submitted.id, staff["accounts"]).id == submitted.id
        with pytest.raises(PermissionDeniedError):
            fulfillment_service.get_order_for_employee(unrelated.id, staff["accounts"])

    def test_pipeline_roles_read_any_order(self, make_order, staff):
        order = make_order()

        for role in ("callcenter", "packer", "warehouse", "incharge"):
            assert fulfillment_service.get_order_for_employee(order.id, staff[role]).id == order.id

    def test_missing_order(self, staff):
        with pytest.raises(NotFoundError):
            fulfillment_service.get_order_for_employee(999, staff["incharge"])
