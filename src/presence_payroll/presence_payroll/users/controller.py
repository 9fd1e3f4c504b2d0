from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, jsonify, request, session

from ..common.web import error_response, json_body, login_required
from ..container import Container
from ..core.enums import ErrorKind
from ..core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body() or request.form
        try:
            s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))
        except AuthenticationError as e:
            logger.info("Failed login for %r", data.get("username", ""))
            return error_response(str(e), 401, ErrorKind.FORBIDDEN)

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)

        session["user_id"] = s_user.user_id
        session["tenant_id"] = s_user.tenant_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value

        return jsonify(
            {
                "success": True,
                "data": {
                    "user_id": s_user.user_id,
                    "tenant_id": s_user.tenant_id,
                    "full_name": s_user.full_name,
                    "role": s_user.role.value,
                },
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True, "data": None})

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return jsonify(
            {
                "success": True,
                "data": {
                    "user_id": session["user_id"],
                    "tenant_id": session["tenant_id"],
                    "full_name": session.get("name"),
                    "role": session["role"],
                },
            }
        )
