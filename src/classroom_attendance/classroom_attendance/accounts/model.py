from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Account:
    """Domain entity: an account that can log in.

    Note: Plain data object (no DB access). ``device_fingerprint`` is written
    only through DeviceLockGuard.
    """

    account_id: int
    full_name: str
    login_identifier: str
    credential_hash: str
    role: Role
    device_fingerprint: Optional[str] = None
    is_active: bool = True

    @property
    def device_lock_active(self) -> bool:
        return self.device_fingerprint is not None
