"""
Migration capability: a revocable minter/pauser handle on a ledger.

The balance copier never touches a ledger's state directly. It is handed a
``MigrationCapability`` by ``Ledger.grant_capability`` and acts through it;
``revoke()`` renounces both roles and turns the handle inert.
"""

from typing import Any, Dict, FrozenSet, Iterable

from ..exceptions import UnauthorizedError
from ..logger import get_logger

logger = get_logger(__name__)


class MigrationCapability:
    """Minter and pauser rights of *holder* on *ledger*."""

    def __init__(self, ledger, holder: str, granted_roles: Iterable[str] = ("pauser", "minter")):
        self._ledger = ledger
        self._holder = holder
        # roles added by the grant; only these are renounced on revoke
        self._granted: FrozenSet[str] = frozenset(granted_roles)
        self._active = True

    @property
    def ledger(self):
        return self._ledger

    @property
    def holder(self) -> str:
        return self._holder

    @property
    def active(self) -> bool:
        return self._active

    @property
    def granted_roles(self) -> FrozenSet[str]:
        return self._granted

    def _require_active(self):
        if not self._active:
            raise UnauthorizedError(
                f"Capability of {self._holder} on {self._ledger.symbol} has been revoked"
            )

    def mint(self, recipient: str, amount: int):
        self._require_active()
        return self._ledger.mint(self._holder, recipient, amount)

    def pause(self):
        self._require_active()
        return self._ledger.pause(self._holder)

    def unpause(self):
        self._require_active()
        return self._ledger.unpause(self._holder)

    def unpause_and_lock(self):
        self._require_active()
        return self._ledger.unpause_and_lock(self._holder)

    def revoke(self) -> None:
        """Renounce the pauser and minter roles this capability granted."""
        self._require_active()
        if "minter" in self._granted and self._ledger.is_minter(self._holder):
            self._ledger.renounce_minter(self._holder)
        if "pauser" in self._granted and self._ledger.is_pauser(self._holder):
            self._ledger.renounce_pauser(self._holder)
        self._active = False
        logger.info(f"Capability revoked: {self._holder} on {self._ledger.symbol}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "holder": self._holder,
            "token": self._ledger.symbol,
            "grantedRoles": sorted(self._granted),
            "active": self._active,
        }

    def __repr__(self) -> str:
        state = "active" if self._active else "revoked"
        return f"<MigrationCapability {self._holder} on {self._ledger.symbol} {state}>"
