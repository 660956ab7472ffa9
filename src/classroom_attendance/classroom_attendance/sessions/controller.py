from __future__ import annotations

import io
import logging
from datetime import date

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import format_hours, parse_optional_date
from ..common.web import current_account_id, current_role, json_error, staff_required
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .model import ClassSession

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


def register(app: Flask, container: Container) -> None:
    def _session_json(s: ClassSession) -> dict:
        return {
            "session_id": s.session_id,
            "class_id": s.class_id,
            "lecture_id": s.lecture_id,
            "session_date": s.session_date.strftime("%Y-%m-%d"),
            "status": s.status.value,
            "started_at": _iso(s.started_at),
            "ended_at": _iso(s.ended_at),
            "token": s.token,
            "token_expiry": _iso(s.token_expiry),
            "join_url": container.session_service.join_url(s) if s.token else None,
        }

    def _run(action):
        try:
            return jsonify({"success": True, "session": _session_json(action())})
        except AuthorizationError as e:
            return json_error(str(e), 403)
        except ValidationError as e:
            return json_error(str(e), 400)
        except Exception:
            logger.exception("Session action failed")
            return json_error("Session action failed because of a system error", 500)

    @app.route("/api/sessions", methods=["POST"], endpoint="session_create")
    @staff_required
    def session_create():
        data = request.get_json(silent=True) or {}
        try:
            session_date = parse_optional_date(data.get("session_date")) or date.today()
        except ValueError:
            return json_error("Invalid date (YYYY-MM-DD)", 400)

        return _run(
            lambda: container.session_service.create_session(
                current_role=current_role(),
                class_id=data.get("class_id"),
                teacher_id=current_account_id(),
                session_date=session_date,
                lecture_id=data.get("lecture_id") or None,
            )
        )

    @app.route("/api/sessions/<int:session_id>/start", methods=["POST"], endpoint="session_start")
    @staff_required
    def session_start(session_id: int):
        return _run(lambda: container.session_service.start_session(session_id, current_role=current_role()))

    @app.route("/api/sessions/<int:session_id>/token", methods=["POST"], endpoint="session_rotate_token")
    @staff_required
    def session_rotate_token(session_id: int):
        return _run(lambda: container.session_service.rotate_token(session_id, current_role=current_role()))

    @app.route("/api/sessions/<int:session_id>/token", methods=["DELETE"], endpoint="session_hide_token")
    @staff_required
    def session_hide_token(session_id: int):
        return _run(lambda: container.session_service.hide_token(session_id, current_role=current_role()))

    @app.route("/api/sessions/<int:session_id>/end", methods=["POST"], endpoint="session_end")
    @staff_required
    def session_end(session_id: int):
        return _run(lambda: container.session_service.end_session(session_id, current_role=current_role()))

    @app.route("/api/sessions/<int:session_id>/records", methods=["GET"], endpoint="session_records")
    @staff_required
    def session_records(session_id: int):
        try:
            rows = container.hours_accumulator.get_session_records(session_id)
        except ValidationError as e:
            return json_error(str(e), 404)

        return jsonify(
            {
                "success": True,
                "records": [
                    {
                        "attendance_id": r.attendance_id,
                        "student_id": r.student_id,
                        "full_name": r.full_name,
                        "time_joined": _iso(r.time_joined),
                        "time_left": _iso(r.time_left),
                        "hours_attended": str(r.hours_attended),
                        "hours_label": format_hours(r.hours_attended),
                        "status": r.status.value,
                    }
                    for r in rows
                ],
            }
        )

    @app.route("/api/sessions/<int:session_id>/qr.png", methods=["GET"], endpoint="session_qr")
    @staff_required
    def session_qr(session_id: int):
        try:
            session = container.session_service.get(session_id)
            png = container.session_service.join_qr_png(session)
        except ValidationError as e:
            return json_error(str(e), 404)
        return send_file(io.BytesIO(png), mimetype="image/png")
