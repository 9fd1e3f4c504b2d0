from __future__ import annotations

from datetime import datetime

from flask import Flask

from ..common.web import current_actor, error_response, json_body, login_required, result_response
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/settings", methods=["GET"], endpoint="api_get_settings")
    @login_required
    def api_get_settings():
        return result_response(container.institution_service.get_settings(current_actor()))

    @app.route("/api/settings/geofence", methods=["PUT"], endpoint="api_configure_geofence")
    @login_required
    def api_configure_geofence():
        data = json_body()
        cutoff = None
        if data.get("lateness_cutoff"):
            try:
                cutoff = datetime.strptime(data["lateness_cutoff"], "%H:%M").time()
            except ValueError:
                return error_response("lateness_cutoff must be HH:MM")

        result = container.institution_service.configure_geofence(
            current_actor(),
            lat=data.get("lat"),
            lng=data.get("lng"),
            radius_meters=data.get("radius_meters"),
            lateness_cutoff=cutoff,
            late_fine=data.get("late_fine"),
            absence_rate=data.get("absence_rate"),
        )
        return result_response(result)
