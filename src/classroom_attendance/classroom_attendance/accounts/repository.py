from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Account


class AccountRepository(Protocol):
    """Account store interface.

    Note: services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, account_id: int) -> Optional[Account]:
        raise NotImplementedError

    def get_by_login_identifier(self, login_identifier: str) -> Optional[Account]:
        raise NotImplementedError

    def bind_device_if_unset(self, account_id: int, fingerprint: str) -> bool:
        """Set the fingerprint only if none is set yet.

        Must be a single compare-and-set. Returns True when this call won.
        """

        raise NotImplementedError

    def clear_device(self, account_id: int) -> None:
        raise NotImplementedError

    def list_by_role(self, role: Role, *, device_locked: Optional[bool] = None) -> Sequence[Account]:
        raise NotImplementedError
