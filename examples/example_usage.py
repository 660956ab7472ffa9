"""Example: drive the service layer without Flask.

Controllers are thin; every rule lives in the services used below.
"""

import importlib

from config import get_settings_module

from src.classroom_attendance.classroom_attendance.container import build_container
from src.classroom_attendance.classroom_attendance.reports.model import ReportFilter


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    sessions = container.report_aggregator.get_report_sessions(ReportFilter())
    counts = container.report_aggregator.enrolled_counts(sessions)
    print(container.report_aggregator.compute_summary(sessions, enrolled_counts=counts))


if __name__ == "__main__":
    main()
