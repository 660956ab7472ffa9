from __future__ import annotations

import logging
import re
from contextlib import closing
from pathlib import Path
from typing import Iterable, Mapping

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

_CREATE_DB_RE = re.compile(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$")
_USE_DB_RE = re.compile(r"(?im)^\s*USE\b.*?;\s*$")

# (full_name, login_identifier, password, role)
DEMO_ACCOUNTS = (
    ("Admin Demo", "admin@example.edu", "admin-demo-pass", "admin"),
    ("Teacher Demo", "teacher@example.edu", "teacher-demo-pass", "teacher"),
    ("Student One", "S-0001", "1111", "student"),
    ("Student Two", "S-0002", "2222", "student"),
)


def _strip_database_statements(sql: str) -> str:
    # Schema files name a database; the configured one wins.
    return _USE_DB_RE.sub("", _CREATE_DB_RE.sub("", sql))


def _iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' while ignoring separators inside quotes."""
    buf: list[str] = []
    quote = ""
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            buf.pop()
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(conn_factory: DatabaseConnection, path: Path) -> None:
    sql = _strip_database_statements(path.read_text(encoding="utf-8"))
    with closing(conn_factory.connect()) as conn:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    name = conn_factory.config.database
    with closing(conn_factory.connect(with_database=False)) as conn:
        cur = conn.cursor()
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()


def apply_schema(db_config: Mapping, *, schema_path: str | Path) -> None:
    conn_factory = DatabaseConnection(DBConfig.from_mapping(db_config))
    ensure_database_exists(conn_factory)
    _run_script(conn_factory, Path(schema_path))
    logger.info("Schema applied from %s", schema_path)


def apply_seed_sql(db_config: Mapping, *, seed_path: str | Path) -> None:
    conn_factory = DatabaseConnection(DBConfig.from_mapping(db_config))
    _run_script(conn_factory, Path(seed_path))
    logger.info("Seed applied from %s", seed_path)


def ensure_demo_accounts(db_config: Mapping) -> None:
    """Create (or refresh) demo accounts and enroll demo students in every class.

    Device locks of existing accounts are left untouched.
    """

    conn_factory = DatabaseConnection(DBConfig.from_mapping(db_config))
    with closing(conn_factory.connect()) as conn:
        cur = conn.cursor(dictionary=True)
        for full_name, identifier, password, role in DEMO_ACCOUNTS:
            cur.execute(
                """
                INSERT INTO accounts(full_name, login_identifier, credential_hash, role, is_active)
                VALUES(%s,%s,%s,%s,1)
                ON DUPLICATE KEY UPDATE full_name=VALUES(full_name), credential_hash=VALUES(credential_hash),
                                        role=VALUES(role), is_active=1
                """,
                (full_name, identifier, generate_password_hash(password), role),
            )

        cur.execute(
            """
            INSERT IGNORE INTO enrollments(student_id, class_id)
            SELECT a.account_id, c.class_id
            FROM accounts a CROSS JOIN classes c
            WHERE a.role='student'
            """
        )
        conn.commit()
    logger.info("Demo accounts ready (%d)", len(DEMO_ACCOUNTS))


def list_tables(db_config: Mapping) -> list[str]:
    conn_factory = DatabaseConnection(DBConfig.from_mapping(db_config))
    with closing(conn_factory.connect()) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
