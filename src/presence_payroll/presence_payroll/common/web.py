"""Helpers shared by the JSON controllers: auth guards and result rendering."""

from __future__ import annotations

import math
from dataclasses import fields, is_dataclass
from datetime import date, datetime, time
from enum import Enum
from functools import wraps
from typing import Any

from flask import jsonify, request, session

from ..core.enums import ErrorKind, Role
from ..core.result import Result
from ..users.model import Actor

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.ALREADY_DECIDED: 409,
    ErrorKind.DUPLICATE_RUN: 409,
    ErrorKind.UNRESOLVED_DISPUTES: 409,
}


def to_jsonable(value: Any) -> Any:
    """Convert domain objects to plain JSON types. Infinite distances become null.

    Models with derived fields expose them through their own ``to_dict``.
    """
    if hasattr(value, "to_dict") and not isinstance(value, type):
        return to_jsonable(value.to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float) and (math.isinf(value) or math.isnan(value)):
        return None
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value


def error_response(message: str, status: int = 400, kind: ErrorKind = ErrorKind.VALIDATION):
    return jsonify({"success": False, "error": message, "errorKind": kind.value, "data": None}), status


def result_response(result: Result, *, ok_status: int = 200):
    body = to_jsonable(result.to_dict())
    if result.success:
        return jsonify(body), ok_status
    return jsonify(body), _STATUS_BY_KIND.get(result.error_kind, 400)


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def current_actor() -> Actor:
    return Actor(
        staff_id=int(session["user_id"]),
        tenant_id=int(session["tenant_id"]),
        role=Role(session["role"]),
    )


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("Please sign in to continue", 401, ErrorKind.FORBIDDEN)
        return view(*args, **kwargs)

    return wrapper
