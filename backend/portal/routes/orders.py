# Overview: Flask API routes for order fulfillment; parses input and returns JSON responses.

"""
Employee Order API Routes

Every route resolves the caller to an active employee; the service layer
then checks the role against the permission table for the specific
transition. Each view runs through @api_operation, so failures come back as
{"success": false, "error", "message"} with the status code of the error
class, and store or identity provider outages as 503.
"""

from flask import Blueprint, g

from ..decorators import api_operation, require_auth, require_employee
from ..responses import json_body, order_payload
from ..services import fulfillment_service, reporting_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/employee/orders")


# =============================================================================
# QUERIES
# =============================================================================

@orders_bp.get("")
@require_auth
@require_employee
@api_operation("Orders loaded")
def list_orders_route():
    """
    Orders for the caller's role.

    callcenter: awaiting confirmation; packer: confirmed and packed;
    warehouse: packed, dispatched, failed; deliveryman: own assignments;
    accounts: online payments and cash handed over; incharge: everything.
    """
    orders = reporting_service.get_orders_for_employee(g.employee)
    return {
        "orders": [order_payload(o) for o in orders],
        "employee": g.employee.to_dict(),
    }


@orders_bp.get("/<int:order_id>")
@require_auth
@require_employee
@api_operation("Order loaded")
def get_order_route(order_id: int):
    order = fulfillment_service.get_order_for_employee(order_id, g.employee)
    return {"order": order_payload(order, include_notes=True)}


# =============================================================================
# CALL CENTER
# =============================================================================

@orders_bp.post("/<int:order_id>/confirm-address")
@require_auth
@require_employee
@api_operation("Address confirmed")
def confirm_address_route(order_id: int):
    """
    Confirm the shipping address.

    Request body: {"notes": "Customer confirmed by phone"}  (optional)
    """
    data = json_body()
    order = fulfillment_service.confirm_address(order_id, g.employee, data.get("notes"))
    return {"order": order_payload(order)}


@orders_bp.post("/<int:order_id>/confirm-order")
@require_auth
@require_employee
@api_operation("Order confirmed")
def confirm_order_route(order_id: int):
    data = json_body()
    order = fulfillment_service.confirm_order(order_id, g.employee, data.get("notes"))
    return {"order": order_payload(order)}


@orders_bp.put("/<int:order_id>/shipping-address")
@require_auth
@require_employee
@api_operation("Shipping address updated")
def update_shipping_address_route(order_id: int):
    """
    Replace the shipping address before it is confirmed.

    Request body:
    {
        "address": {
            "name": "Jane Doe",          (optional)
            "street": "1 Main St",
            "city": "Springfield",
            "state": "IL",
            "postal_code": "62701",
            "country": "US",
            "phone": "+1 555 0100"       (optional)
        }
    }
    """
    data = json_body()
    order = fulfillment_service.update_shipping_address(order_id, g.employee, data.get("address"))
    return {"order": order_payload(order)}


# =============================================================================
# PACKING / WAREHOUSE
# =============================================================================

@orders_bp.post("/<int:order_id>/pack")
@require_auth
@require_employee
@api_operation("Order packed")
def pack_order_route(order_id: int):
    data = json_body()
    order = fulfillment_service.mark_as_packed(order_id, g.employee, data.get("notes"))
    return {"order": order_payload(order)}


@orders_bp.post("/<int:order_id>/assign-deliveryman")
@require_auth
@require_employee
@api_operation("Order assigned")
def assign_deliveryman_route(order_id: int):
    """
    Dispatch a packed (or failed) order.

    Request body: {"deliveryman_id": 12, "notes": "..."}
    """
    data = json_body()
    order = fulfillment_service.assign_deliveryman(
        order_id,
        g.employee,
        data.get("deliveryman_id"),
        data.get("notes"),
    )
    return {
        "message": f"Order assigned to {order.assigned_deliveryman_name}",
        "order": order_payload(order),
    }


# =============================================================================
# DELIVERY
# =============================================================================

@orders_bp.post("/<int:order_id>/start-delivery")
@require_auth
@require_employee
@api_operation("Delivery started")
def start_delivery_route(order_id: int):
    data = json_body()
    order = fulfillment_service.start_delivery(order_id, g.employee, data.get("notes"))
    return {"order": order_payload(order)}


@orders_bp.post("/<int:order_id>/deliver")
@require_auth
@require_employee
@api_operation("Order delivered")
def deliver_route(order_id: int):
    data = json_body()
    order = fulfillment_service.mark_as_delivered(order_id, g.employee, data.get("notes"))
    return {"order": order_payload(order)}


@orders_bp.post("/<int:order_id>/reschedule")
@require_auth
@require_employee
@api_operation("Delivery rescheduled")
def reschedule_route(order_id: int):
    """Request body: {"date": "2026-03-01", "reason": "Customer not home"}"""
    data = json_body()
    order = fulfillment_service.reschedule_delivery(
        order_id,
        g.employee,
        data.get("date"),
        data.get("reason"),
    )
    return {"order": order_payload(order)}


@orders_bp.post("/<int:order_id>/fail")
@require_auth
@require_employee
@api_operation("Delivery marked as failed")
def fail_delivery_route(order_id: int):
    """Request body: {"reason": "Address not found"}"""
    data = json_body()
    order = fulfillment_service.mark_delivery_failed(order_id, g.employee, data.get("reason"))
    return {"order": order_payload(order)}
