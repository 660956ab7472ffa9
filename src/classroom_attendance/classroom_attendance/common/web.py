from __future__ import annotations

from functools import wraps
from typing import Iterable

from flask import jsonify, session

from ..core.enums import Role


def json_error(message: str, status: int, **extra):
    payload = {"success": False, "message": message}
    payload.update(extra)
    return jsonify(payload), status


def current_account_id() -> int:
    return int(session["account_id"])


def current_role() -> Role:
    return Role(session.get("role"))


def roles_required(roles: Iterable[Role]):
    allowed = frozenset(r.value for r in roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "account_id" not in session:
                return json_error("Please log in to continue", 401)
            if session.get("role") not in allowed:
                return json_error("You do not have permission for this action", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


staff_required = roles_required((Role.TEACHER, Role.ADMIN))
admin_required = roles_required((Role.ADMIN,))
student_required = roles_required((Role.STUDENT,))
