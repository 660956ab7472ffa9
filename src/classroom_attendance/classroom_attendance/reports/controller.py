from __future__ import annotations

import csv
import io

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_hours, parse_optional_date
from ..common.web import current_role, json_error, staff_required
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .model import ReportData, ReportFilter

CSV_FIELDS = [
    "session_date",
    "class_name",
    "lecture_title",
    "student_id",
    "full_name",
    "time_joined",
    "time_left",
    "hours_attended",
    "status",
]


def _optional_int(value):
    value = (value or "").strip()
    if not value:
        return None
    if not value.isdigit():
        raise ValidationError(f"Invalid id: {value}")
    return int(value)


def filter_from_args(args) -> ReportFilter:
    try:
        return ReportFilter(
            student_id=_optional_int(args.get("student_id")),
            class_id=_optional_int(args.get("class_id")),
            lecture_id=_optional_int(args.get("lecture_id")),
            date_from=parse_optional_date(args.get("date_from")),
            date_to=parse_optional_date(args.get("date_to")),
        )
    except ValueError:
        raise ValidationError("Invalid date (YYYY-MM-DD)")


def register(app: Flask, container: Container) -> None:
    def _build() -> ReportData:
        return container.report_aggregator.build_report(filter_from_args(request.args), current_role=current_role())

    def _write_report_csv(*, data: ReportData, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row)

        return app.response_class(
            out.getvalue().encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/reports/sessions", methods=["GET"], endpoint="report_sessions")
    @staff_required
    def report_sessions():
        try:
            data = _build()
        except AuthorizationError as e:
            return json_error(str(e), 403)
        except ValidationError as e:
            return json_error(str(e), 400)

        summary = data.summary
        return jsonify(
            {
                "success": True,
                "summary": {
                    "total_hours": str(summary.total_hours),
                    "present_hours": str(summary.present_hours),
                    "absent_hours": str(summary.absent_hours),
                    "total_label": format_hours(summary.total_hours),
                    "present_label": format_hours(summary.present_hours),
                    "absent_label": format_hours(summary.absent_hours),
                },
                "sessions": [
                    {
                        "session_id": s.session_id,
                        "class_id": s.class_id,
                        "class_name": s.class_name,
                        "lecture_id": s.lecture_id,
                        "lecture_title": s.lecture_title,
                        "session_date": s.session_date.strftime("%Y-%m-%d"),
                        "started_at": s.started_at.isoformat() if s.started_at else None,
                        "ended_at": s.ended_at.isoformat() if s.ended_at else None,
                        "records": [
                            {
                                "attendance_id": r.attendance_id,
                                "student_id": r.student_id,
                                "full_name": r.full_name,
                                "time_joined": r.time_joined.isoformat(),
                                "time_left": r.time_left.isoformat() if r.time_left else None,
                                "hours_attended": str(r.hours_attended),
                                "status": r.status.value,
                            }
                            for r in s.records
                        ],
                    }
                    for s in data.sessions
                ],
            }
        )

    @app.route("/api/reports/sessions.csv", methods=["GET"], endpoint="report_sessions_csv")
    @staff_required
    def report_sessions_csv():
        try:
            data = _build()
        except AuthorizationError as e:
            return json_error(str(e), 403)
        except ValidationError as e:
            return json_error(str(e), 400)
        return _write_report_csv(data=data, filename="attendance_report.csv")
