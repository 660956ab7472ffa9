from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.web import admin_required, current_role, json_error, staff_required
from ..core.exceptions import (
    AccountNotFound,
    AuthenticationError,
    AuthorizationError,
    DeviceLockViolation,
    InvalidCredential,
)
from ..container import Container

logger = logging.getLogger(__name__)

_AUTH_STATUS = {
    InvalidCredential: 401,
    DeviceLockViolation: 423,
    AccountNotFound: 404,
}

_DEVICE_FILTERS = {"locked": True, "unlocked": False, "all": None}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or {}
        try:
            result = container.device_lock_guard.authenticate(
                str(data.get("identifier", "")),
                str(data.get("credential", "")),
                str(data.get("fingerprint", "")),
            )
        except AuthenticationError as e:
            return json_error(str(e), _AUTH_STATUS.get(type(e), 401), error=e.code)
        except Exception:
            logger.exception("Login failed unexpectedly")
            return json_error("Login failed because of a system error", 500)

        session.clear()
        session["account_id"] = result.account_id
        session["name"] = result.full_name
        session["role"] = result.role.value
        return jsonify({"success": True, "account_id": result.account_id, "role": result.role.value})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/admin/students", methods=["GET"], endpoint="admin_students")
    @staff_required
    def admin_students():
        device = (request.args.get("device") or "all").lower()
        if device not in _DEVICE_FILTERS:
            return json_error("Unknown device filter", 400)

        rows = container.device_lock_guard.list_students(device_locked=_DEVICE_FILTERS[device])
        return jsonify(
            {
                "success": True,
                "students": [
                    {
                        "account_id": r.account_id,
                        "full_name": r.full_name,
                        "login_identifier": r.login_identifier,
                        "device_lock_active": r.device_lock_active,
                    }
                    for r in rows
                ],
            }
        )

    @app.route("/api/admin/accounts/<int:account_id>/device-reset", methods=["POST"], endpoint="device_reset")
    @admin_required
    def device_reset(account_id: int):
        try:
            container.device_lock_guard.reset_device_lock(account_id, current_role=current_role())
        except AccountNotFound as e:
            return json_error(str(e), 404, error=e.code)
        except AuthorizationError as e:
            return json_error(str(e), 403)
        return jsonify({"success": True})
