from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from werkzeug.security import check_password_hash

from ..core.enums import Role
from ..core.exceptions import AccountNotFound, AuthorizationError, DeviceLockViolation, InvalidCredential
from .model import Account
from .repository import AccountRepository

logger = logging.getLogger(__name__)

CredentialVerifier = Callable[[str, str], bool]


def verify_password_hash(credential_hash: str, credential: str) -> bool:
    try:
        return check_password_hash(credential_hash, credential)
    except (ValueError, TypeError):
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


@dataclass(frozen=True)
class AuthResult:
    """What callers store into the Flask session after login."""

    account_id: int
    full_name: str
    role: Role
    device_bound: bool = False


@dataclass(frozen=True)
class StudentDeviceRow:
    account_id: int
    full_name: str
    login_identifier: str
    device_lock_active: bool


class DeviceLockGuard:
    """Use case: log in while pinning each account to a single device.

    The first successful login binds the presented fingerprint; later logins
    must present the same one until an admin resets the lock.
    """

    def __init__(self, accounts: AccountRepository, *, verify_credential: Optional[CredentialVerifier] = None):
        self._accounts = accounts
        self._verify_credential = verify_credential or verify_password_hash

    def authenticate(self, identifier: str, credential: str, fingerprint: str) -> AuthResult:
        """Log in and enforce the device lock.

        Raises AccountNotFound for a blank or unknown identifier and
        DeviceLockViolation when no fingerprint is presented.
        """
        identifier = (identifier or "").strip()
        if not identifier:
            raise AccountNotFound()

        account = self._accounts.get_by_login_identifier(identifier)
        if not account or not account.is_active:
            raise AccountNotFound()

        if not self._verify_credential(account.credential_hash, credential or ""):
            raise InvalidCredential()

        fingerprint = (fingerprint or "").strip()
        if not fingerprint:
            logger.warning("Login without device fingerprint for account %s", account.account_id)
            raise DeviceLockViolation("A device fingerprint is required")

        # A second attempt covers a bind that lost to an admin reset.
        for _ in range(2):
            if account.device_fingerprint is not None:
                break
            if self._accounts.bind_device_if_unset(account.account_id, fingerprint):
                logger.info("Device bound for account %s", account.account_id)
                return self._result(account, device_bound=True)

            # Lost a race against a concurrent first login; the winner's value decides.
            account = self._accounts.get_by_id(account.account_id)
            if account is None:
                raise AccountNotFound()

        if account.device_fingerprint != fingerprint:
            logger.warning("Device lock violation for account %s", account.account_id)
            raise DeviceLockViolation()

        return self._result(account)

    def reset_device_lock(self, account_id: int, *, current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only an admin can reset a device lock")

        account = self._accounts.get_by_id(int(account_id))
        if not account:
            raise AccountNotFound()

        self._accounts.clear_device(account.account_id)
        logger.info("Device lock reset for account %s", account.account_id)

    def list_students(self, *, device_locked: Optional[bool] = None) -> Sequence[StudentDeviceRow]:
        return [
            StudentDeviceRow(
                account_id=a.account_id,
                full_name=a.full_name,
                login_identifier=a.login_identifier,
                device_lock_active=a.device_lock_active,
            )
            for a in self._accounts.list_by_role(Role.STUDENT, device_locked=device_locked)
        ]

    @staticmethod
    def _result(account: Account, *, device_bound: bool = False) -> AuthResult:
        return AuthResult(
            account_id=account.account_id,
            full_name=account.full_name,
            role=account.role,
            device_bound=device_bound,
        )
