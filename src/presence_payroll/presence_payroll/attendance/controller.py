from __future__ import annotations

from flask import Flask, request

from ..common.web import current_actor, error_response, json_body, login_required, result_response
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..geofence.model import GeoPoint


def _optional_float(value):
    if value is None or value == "":
        return None
    return float(value)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="api_clock_in")
    @login_required
    def api_clock_in():
        """Single-shot clock-in: the client posts one position fix (or none)."""
        data = json_body()
        try:
            coords = GeoPoint(lat=_optional_float(data.get("lat")), lng=_optional_float(data.get("lng")))
        except (TypeError, ValueError):
            return error_response("Coordinates must be numeric")

        result = container.attendance_service.record_attempt(current_actor(), coords)
        if result.success and not result.data.success:
            # Attempt stored, clock-in refused; the client offers a dispute.
            return result_response(result, ok_status=422)
        return result_response(result, ok_status=201)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="api_clock_out")
    @login_required
    def api_clock_out():
        return result_response(container.attendance_service.clock_out(current_actor()))

    @app.route("/api/attendance/status", methods=["GET"], endpoint="api_clock_status")
    @login_required
    def api_clock_status():
        return result_response(container.attendance_service.get_clock_status(current_actor()))

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_attendance_history")
    @login_required
    def api_attendance_history():
        limit = request.args.get("limit", type=int) or DEFAULT_HISTORY_LIMIT
        return result_response(container.attendance_service.get_history(current_actor(), limit=limit))

    @app.route("/api/attendance/attempts/<int:attempt_id>", methods=["GET"], endpoint="api_get_attempt")
    @login_required
    def api_get_attempt(attempt_id: int):
        return result_response(container.attendance_service.get_attempt(current_actor(), attempt_id))
