from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Account
from .repository import AccountRepository

_COLUMNS = "account_id, full_name, login_identifier, credential_hash, role, device_fingerprint, is_active"


def _to_account(row: Dict[str, Any]) -> Account:
    return Account(
        account_id=int(row["account_id"]),
        full_name=row["full_name"],
        login_identifier=row["login_identifier"],
        credential_hash=row["credential_hash"],
        role=Role(row["role"]),
        device_fingerprint=row.get("device_fingerprint") or None,
        is_active=bool(row.get("is_active", True)),
    )


class MySQLAccountRepository(AccountRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, account_id: int) -> Optional[Account]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE account_id=%s", (int(account_id),))
            row = fetchone(cur)
            return _to_account(row) if row else None

    def get_by_login_identifier(self, login_identifier: str) -> Optional[Account]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE login_identifier=%s", (login_identifier,))
            row = fetchone(cur)
            return _to_account(row) if row else None

    def bind_device_if_unset(self, account_id: int, fingerprint: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE accounts
                SET device_fingerprint=%s
                WHERE account_id=%s AND device_fingerprint IS NULL
                """,
                (fingerprint, int(account_id)),
            )
            return cur.rowcount == 1

    def clear_device(self, account_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE accounts SET device_fingerprint=NULL WHERE account_id=%s", (int(account_id),))

    def list_by_role(self, role: Role, *, device_locked: Optional[bool] = None) -> Sequence[Account]:
        clauses = ["role=%s"]
        if device_locked is True:
            clauses.append("device_fingerprint IS NOT NULL")
        elif device_locked is False:
            clauses.append("device_fingerprint IS NULL")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM accounts WHERE {' AND '.join(clauses)} ORDER BY full_name",
                (role.value,),
            )
            return [_to_account(r) for r in fetchall(cur)]
