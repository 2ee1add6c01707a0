# Overview: JSON response helpers shared by the API blueprints.

from flask import jsonify, request

from .errors import OperationError, ValidationError
from .services.fulfillment_service import fulfillment_stage
from .services.reporting_service import history_notes


def success(message: str, status: int = 200, **payload):
    body = {"success": True, "message": message}
    body.update(payload)
    return jsonify(body), status


def failure(exc: OperationError):
    return jsonify({
        "success": False,
        "error": exc.error_code,
        "message": exc.message,
    }), exc.http_status


def result_response(result):
    """
    Flask response for an OperationResult.

    A dict value is spread into the success body; its "message" key, when
    present, replaces the default message.
    """
    if not result.success:
        return jsonify(result.to_dict()), result.http_status
    if isinstance(result.data, dict):
        return success(**{"message": result.message, **result.data})
    return success(result.message, data=result.data)


def order_payload(order, *, include_notes: bool = False) -> dict:
    data = order.to_dict()
    data["stage"] = fulfillment_stage(order)
    if include_notes:
        data["notes"] = history_notes(order)
    return data


def json_body() -> dict:
    """Request JSON object; an absent body reads as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data
