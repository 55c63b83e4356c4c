"""
Bridge Handshake: intermediate address registration

A principal becomes a bridge intermediate in two steps:

  1. the ledger's bridge authority proposes it   (None    → Pending)
  2. the principal itself confirms               (Pending → Confirmed)

Confirmed is terminal. The ledger sweeps a confirming principal's balance
into custody and diverts every later transfer addressed to it. This module
only tracks the state machine; balance effects live in the ledger.
"""

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List

from ..addresses import is_null_address, normalize_address
from ..exceptions import (
    AlreadyProposedError,
    InvalidConfigurationError,
    NotPendingError,
    UnauthorizedError,
)
from ..logger import get_logger

logger = get_logger(__name__)


class HandshakeStatus(IntEnum):
    """Per-principal handshake state."""
    NONE      = 0
    PENDING   = 1
    CONFIRMED = 2


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class IntermediateProposedEvent:
    """Emitted when the bridge authority proposes an intermediate address."""
    token_symbol: str
    target: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "IntermediateAddressProposed",
            "token": self.token_symbol,
            "target": self.target,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class IntermediateConfirmedEvent:
    """Emitted when a pending intermediate confirms; *swept* went to custody."""
    token_symbol: str
    target: str
    swept: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "IntermediateAddressConfirmed",
            "token": self.token_symbol,
            "target": self.target,
            "swept": str(self.swept),
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  HANDSHAKE
# ══════════════════════════════════════════════════════════════════════

class BridgeHandshake:
    """
    Propose/confirm state machine for bridge intermediate addresses.

    Principals never seen by the handshake are in state NONE. The bridge
    authority is fixed at construction.
    """

    def __init__(self, bridge_authority: str):
        if is_null_address(bridge_authority):
            raise InvalidConfigurationError("Bridge authority cannot be the null address")
        self._bridge_authority = normalize_address(bridge_authority)
        self._states: Dict[str, HandshakeStatus] = {}

    @property
    def bridge_authority(self) -> str:
        return self._bridge_authority

    def status(self, address: str) -> HandshakeStatus:
        return self._states.get(normalize_address(address), HandshakeStatus.NONE)

    def is_confirmed(self, address: str) -> bool:
        return self.status(address) == HandshakeStatus.CONFIRMED

    def pending(self) -> List[str]:
        return [a for a, s in self._states.items() if s == HandshakeStatus.PENDING]

    def confirmed(self) -> List[str]:
        return [a for a, s in self._states.items() if s == HandshakeStatus.CONFIRMED]

    # ── Transitions ───────────────────────────────────────────────────

    def propose(self, caller: str, target: str) -> str:
        """
        None → Pending. Only the bridge authority may propose.

        Returns the normalised target.
        """
        if normalize_address(caller) != self._bridge_authority:
            raise UnauthorizedError(f"{caller} is not the bridge authority")
        if is_null_address(target):
            raise InvalidConfigurationError("Cannot propose the null address")
        target = normalize_address(target)
        current = self.status(target)
        if current != HandshakeStatus.NONE:
            raise AlreadyProposedError(f"{target} is already {current.name.lower()}")

        self._states[target] = HandshakeStatus.PENDING
        logger.info(f"Intermediate address proposed: {target}")
        return target

    def require_pending(self, caller: str) -> str:
        """Check that *caller* may confirm; returns the normalised caller."""
        caller = normalize_address(caller)
        current = self.status(caller)
        if current != HandshakeStatus.PENDING:
            raise NotPendingError(f"{caller} is {current.name.lower()}, not pending")
        return caller

    def mark_confirmed(self, caller: str) -> None:
        """Pending → Confirmed. Callers must have passed ``require_pending``."""
        caller = self.require_pending(caller)
        self._states[caller] = HandshakeStatus.CONFIRMED
        logger.info(f"Intermediate address confirmed: {caller}")

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bridgeAuthority": self._bridge_authority,
            "states": {a: s.name for a, s in self._states.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeHandshake":
        handshake = cls(data.get("bridgeAuthority", ""))
        for address, name in data.get("states", {}).items():
            try:
                state = HandshakeStatus[name]
            except KeyError:
                raise InvalidConfigurationError(f"Unknown handshake state {name!r}") from None
            if state != HandshakeStatus.NONE:
                handshake._states[normalize_address(address)] = state
        return handshake

    def __repr__(self) -> str:
        return (
            f"<BridgeHandshake pending={len(self.pending())} "
            f"confirmed={len(self.confirmed())}>"
        )
