from __future__ import annotations

import logging
import re

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_hours
from ..common.validators import require_positive_id
from ..common.web import current_account_id, current_role, json_error, staff_required, student_required
from ..core.constants import JOIN_PATH_SEGMENT
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)

_JOIN_URL_RE = re.compile(rf"/{JOIN_PATH_SEGMENT}/([^/?#]+)")


def extract_token(payload: str) -> str:
    """Return the join token from a scanned payload.

    Accepts a bare token or a URL such as ``https://host/#/attend/<token>``.
    """

    text = (payload or "").strip()
    match = _JOIN_URL_RE.search(text)
    return match.group(1) if match else text


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/join", methods=["POST"], endpoint="attendance_join")
    @student_required
    def attendance_join():
        data = request.get_json(silent=True) or {}
        token = extract_token(str(data.get("token") or data.get("payload") or ""))

        try:
            result = container.join_coordinator.verify_and_join(token, current_account_id())
        except Exception:
            logger.exception("Join failed unexpectedly")
            return json_error("Failed to verify attendance. Please try again.", 500)

        return jsonify(result.to_dict()), 200 if result.success else 409

    @app.route("/api/attendance/leave", methods=["POST"], endpoint="attendance_leave")
    @student_required
    def attendance_leave():
        data = request.get_json(silent=True) or {}
        try:
            session_id = require_positive_id(data.get("session_id"), "Session")
            record = container.hours_accumulator.leave(session_id, current_account_id())
        except ValidationError as e:
            return json_error(str(e), 400)

        return jsonify(
            {
                "success": True,
                "hours_attended": str(record.hours_attended),
                "hours_label": format_hours(record.hours_attended),
            }
        )

    @app.route("/api/attendance/records/<int:attendance_id>/remove", methods=["POST"], endpoint="attendance_remove")
    @staff_required
    def attendance_remove(attendance_id: int):
        try:
            record = container.hours_accumulator.remove_record(attendance_id, current_role=current_role())
        except AuthorizationError as e:
            return json_error(str(e), 403)
        except ValidationError as e:
            return json_error(str(e), 400)

        return jsonify(
            {
                "success": True,
                "status": record.status.value,
                "hours_attended": str(record.hours_attended),
            }
        )
