from __future__ import annotations

from flask import Flask, request

from ..common.web import current_actor, error_response, json_body, login_required, result_response
from ..container import Container
from ..core.enums import ApprovalKind


def register(app: Flask, container: Container) -> None:
    @app.route("/api/approvals/disputes", methods=["POST"], endpoint="api_submit_dispute")
    @login_required
    def api_submit_dispute():
        data = json_body()
        try:
            attempt_id = int(data.get("attempt_id"))
        except (TypeError, ValueError):
            return error_response("attempt_id is required")
        result = container.approval_service.submit_dispute(
            current_actor(),
            attempt_id,
            data.get("reason", ""),
            data.get("proof_url"),
        )
        return result_response(result, ok_status=201)

    @app.route("/api/approvals/disputes/<int:dispute_id>", methods=["GET"], endpoint="api_get_dispute")
    @login_required
    def api_get_dispute(dispute_id: int):
        return result_response(container.approval_service.get_dispute(current_actor(), dispute_id))

    @app.route("/api/approvals/items", methods=["POST"], endpoint="api_submit_item")
    @login_required
    def api_submit_item():
        data = json_body()
        try:
            kind = ApprovalKind(data.get("kind"))
        except ValueError:
            return error_response("A valid approval kind is required")
        result = container.approval_service.submit_item(current_actor(), kind, data.get("title", ""), data.get("reason", ""))
        return result_response(result, ok_status=201)

    @app.route("/api/approvals/pending", methods=["GET"], endpoint="api_pending_approvals")
    @login_required
    def api_pending_approvals():
        kind = request.args.get("kind") or None
        if kind and kind not in {k.value for k in ApprovalKind}:
            return error_response(f"Unknown approval kind {kind!r}")
        return result_response(container.approval_service.list_pending(current_actor(), kind))

    @app.route("/api/approvals/mine", methods=["GET"], endpoint="api_my_approvals")
    @login_required
    def api_my_approvals():
        return result_response(container.approval_service.list_mine(current_actor()))

    @app.route("/api/approvals/<int:item_id>/approve", methods=["POST"], endpoint="api_approve")
    @login_required
    def api_approve(item_id: int):
        note = json_body().get("note")
        return result_response(container.approval_service.approve(current_actor(), item_id, note))

    @app.route("/api/approvals/<int:item_id>/reject", methods=["POST"], endpoint="api_reject")
    @login_required
    def api_reject(item_id: int):
        note = json_body().get("note", "")
        return result_response(container.approval_service.reject(current_actor(), item_id, note))
