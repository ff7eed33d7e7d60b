from flask import Blueprint, current_app, g, jsonify, request

from ..exceptions import RentalError
from ..utils.decorators import admin_required

bp = Blueprint("rent_requests", __name__, url_prefix="/api")

STATUS_CODES = {
    "validation_error": 400,
    "duplicate_request": 400,
    "not_found": 404,
    "forbidden": 403,
    "booking_conflict": 409,
    "invalid_transition": 422,
    "dependency_error": 503,
    "timeout": 504,
}


def _services():
    return current_app.extensions["rentdesk"]


def _ok(data, status: int = 200):
    return jsonify({"success": True, "data": data}), status


@bp.app_errorhandler(RentalError)
def handle_rental_error(err: RentalError):
    body = {"success": False, "error": err.code, "message": err.message, "details": err.details}
    return jsonify(body), STATUS_CODES.get(err.code, 500)


@bp.get("/vehicles/<vid>/availability")
def vehicle_availability(vid):
    """Public availability check for a date range."""
    result = _services()["requests"].check_availability(
        vid,
        request.args.get("start_date"),
        request.args.get("end_date"),
        exclude_request_id=request.args.get("exclude_request_id") or None,
    )
    return _ok(result.to_dict())


@bp.post("/rent-requests")
def create_rent_request():
    """Public submission: always lands in PENDING."""
    data = request.get_json(silent=True) or {}
    req = _services()["requests"].create(data)
    return _ok(req.to_dict(), 201)


@bp.get("/rent-requests")
@admin_required
def list_rent_requests():
    page = _services()["requests"].list_requests(request.args.to_dict())
    return _ok({
        "requests": [r.to_dict() for r in page["requests"]],
        "pagination": page["pagination"],
    })


@bp.get("/rent-requests/statistics")
@admin_required
def rent_request_statistics():
    return _ok(_services()["statistics"].get_statistics())


@bp.post("/rent-requests/expire")
@admin_required
def expire_rent_requests():
    count = _services()["requests"].expire_pending()
    return _ok({"expired": count})


@bp.get("/rent-requests/<pk>")
@admin_required
def get_rent_request(pk):
    return _ok(_services()["requests"].get(pk).to_dict())


@bp.patch("/rent-requests/<pk>")
@admin_required
def update_rent_request(pk):
    data = request.get_json(silent=True) or {}
    req = _services()["requests"].update(pk, data, actor=g.actor)
    return _ok(req.to_dict())


@bp.delete("/rent-requests/<pk>")
@admin_required
def delete_rent_request(pk):
    _services()["requests"].delete(pk)
    return _ok({"deleted": pk})
