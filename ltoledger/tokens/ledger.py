"""
LTO Token Ledger

Implements the token ledger with:
  - ERC-20–style interface (transfer, approve, transfer_from, balance_of)
  - a custody pool ("bridge balance") kept outside circulating supply
  - a pre-mint phase closed for good by ``unpause_and_lock``
  - pauser / minter roles
  - bridge intermediate addresses: transfers to a confirmed intermediate
    are diverted into custody instead of being credited

Every write either commits completely or raises a ``LedgerException``
leaving the ledger untouched. All amounts are unsigned 256-bit integers.
"""

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Set, Tuple

from ..addresses import is_null_address, normalize_address
from ..bridge.handshake import (
    BridgeHandshake,
    HandshakeStatus,
    IntermediateConfirmedEvent,
    IntermediateProposedEvent,
)
from ..constants import (
    TOKEN_DEFAULT_DECIMALS,
    TOKEN_DEFAULT_NAME,
    TOKEN_DEFAULT_SYMBOL,
    TOKEN_MAX_DECIMALS,
    UINT256_MAX,
)
from ..exceptions import (
    AlreadyUnlockedError,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidConfigurationError,
    InvariantViolationError,
    LedgerOverflowError,
    LedgerPausedError,
    LedgerUnderflowError,
    MintingClosedError,
    UnauthorizedError,
)
from ..logger import get_logger
from .capability import MigrationCapability

logger = get_logger(__name__)


class TransferOutcome(IntEnum):
    """How a transfer was settled."""
    DIRECT   = 1  # credited to the recipient
    DIVERTED = 2  # absorbed into the custody pool


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """
    Emitted on every successful transfer.

    ``recipient`` is always the nominal recipient, also when the amount was
    diverted into custody.
    """
    token_symbol: str
    sender: str
    recipient: str
    amount: int
    outcome: TransferOutcome = TransferOutcome.DIRECT
    timestamp: float = field(default_factory=time.time)

    @property
    def diverted(self) -> bool:
        return self.outcome == TransferOutcome.DIVERTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "outcome": self.outcome.name,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class MintEvent:
    token_symbol: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Mint",
            "token": self.token_symbol,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class PauseEvent:
    """Emitted by pause / unpause / unpause_and_lock."""
    token_symbol: str
    account: str
    paused: bool
    locked: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Paused" if self.paused else "Unpaused",
            "token": self.token_symbol,
            "account": self.account,
            "locked": self.locked,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RoleEvent:
    token_symbol: str
    role: str
    account: str
    granted: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        action = "Added" if self.granted else "Removed"
        return {
            "event": f"{self.role.capitalize()}{action}",
            "token": self.token_symbol,
            "account": self.account,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  CHECKED ARITHMETIC
# ══════════════════════════════════════════════════════════════════════

def _checked_add(a: int, b: int) -> int:
    result = a + b
    if result > UINT256_MAX:
        raise LedgerOverflowError(f"{a} + {b} exceeds uint256")
    return result


def _checked_sub(a: int, b: int) -> int:
    if b > a:
        raise LedgerUnderflowError(f"{a} - {b} is negative")
    return a - b


def _require_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidAmountError(f"Amount cannot be negative, got {amount}")
    if amount > UINT256_MAX:
        raise LedgerOverflowError(f"Amount {amount} exceeds uint256")
    return amount


def _require_flag(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise InvalidConfigurationError(
            f"Malformed ledger snapshot: {key} must be a boolean, got {value!r}"
        )
    return value


@dataclass
class _Settlement:
    """Pending effect of a transfer, computed before anything is written."""
    balances: Dict[str, int]
    total_supply: int
    custody: int
    outcome: TransferOutcome


# ══════════════════════════════════════════════════════════════════════
#  LEDGER
# ══════════════════════════════════════════════════════════════════════

class Ledger:
    """
    LTO token ledger.

    Mirrors ERC-20 semantics:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, sender, recipient, amount)
        - total_supply → int (circulating only)

    Additional state:
        - bridge_balance: custody pool, not owned by any principal
        - paused: transfers rejected while True
        - minted: one-way latch; once set, minting is closed for good

    A new ledger is paused and unminted. The ``owner`` starts with the
    minter and pauser roles.
    """

    def __init__(
        self,
        bridge_authority: str,
        initial_custody_pool: int = 0,
        *,
        owner: str,
        name: str = TOKEN_DEFAULT_NAME,
        symbol: str = TOKEN_DEFAULT_SYMBOL,
        decimals: int = TOKEN_DEFAULT_DECIMALS,
    ):
        """
        Args:
            bridge_authority: Principal allowed to propose intermediate addresses
            initial_custody_pool: Starting bridge balance
            owner: Deploying principal, granted minter and pauser roles
            name: Human-readable token name
            symbol: Short ticker
            decimals: Fractional digits (display only)
        """
        if is_null_address(bridge_authority):
            raise InvalidConfigurationError("Bridge authority cannot be the null address")
        if is_null_address(owner):
            raise InvalidConfigurationError("Owner cannot be the null address")
        if not name:
            raise InvalidConfigurationError("Token name cannot be empty")
        if not symbol:
            raise InvalidConfigurationError("Token symbol cannot be empty")
        if isinstance(decimals, bool) or not isinstance(decimals, int) \
                or not 0 <= decimals <= TOKEN_MAX_DECIMALS:
            raise InvalidConfigurationError(
                f"Decimals must be 0-{TOKEN_MAX_DECIMALS}, got {decimals}"
            )
        if isinstance(initial_custody_pool, bool) or not isinstance(initial_custody_pool, int) \
                or not 0 <= initial_custody_pool <= UINT256_MAX:
            raise InvalidConfigurationError(
                f"Initial custody pool must be a uint256, got {initial_custody_pool!r}"
            )

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = normalize_address(owner)

        self._handshake = BridgeHandshake(bridge_authority)
        self._total_supply = 0
        self._custody = initial_custody_pool
        self._paused = True
        self._minted = False

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._pausers: Set[str] = {self.owner}
        self._minters: Set[str] = {self.owner}

        self._events: List[Any] = []

        logger.info(
            f"Ledger created: {symbol} ({name}), bridge={self._handshake.bridge_authority}, "
            f"custody={initial_custody_pool}"
        )

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def bridge_balance(self) -> int:
        return self._custody

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def minted(self) -> bool:
        return self._minted

    @property
    def bridge_authority(self) -> str:
        return self._handshake.bridge_authority

    @property
    def handshake(self) -> BridgeHandshake:
        return self._handshake

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def status(self, address: str) -> HandshakeStatus:
        return self._handshake.status(address)

    def is_pauser(self, address: str) -> bool:
        return normalize_address(address) in self._pausers

    def is_minter(self, address: str) -> bool:
        return normalize_address(address) in self._minters

    def holders(self) -> List[str]:
        """Principals with a non-zero balance, in first-credit order."""
        return [a for a, b in self._balances.items() if b > 0]

    def check_invariants(self) -> None:
        """
        Raise InvariantViolationError unless circulating supply equals the
        sum of all balances and every quantity is a uint256.
        """
        if any(b < 0 or b > UINT256_MAX for b in self._balances.values()):
            raise InvariantViolationError(f"{self.symbol}: balance outside uint256 range")
        held = sum(self._balances.values())
        if held != self._total_supply:
            raise InvariantViolationError(
                f"{self.symbol}: total supply {self._total_supply} != sum of balances {held}"
            )
        if not 0 <= self._custody <= UINT256_MAX:
            raise InvariantViolationError(f"{self.symbol}: custody pool outside uint256 range")

    # ── State guards ──────────────────────────────────────────────────

    def _require_not_paused(self):
        if self._paused:
            raise LedgerPausedError(f"Ledger {self.symbol} is paused")

    def _require_pauser(self, address: str):
        if address not in self._pausers:
            raise UnauthorizedError(f"{address} is not a pauser")

    def _require_minter(self, address: str):
        if address not in self._minters:
            raise UnauthorizedError(f"{address} is not a minter")

    def _record(self, event):
        self._events.append(event)
        self.check_invariants()
        return event

    # ── Roles ─────────────────────────────────────────────────────────

    def add_pauser(self, caller: str, account: str) -> RoleEvent:
        caller, account = normalize_address(caller), normalize_address(account)
        self._require_pauser(caller)
        self._pausers.add(account)
        logger.info(f"Pauser added: {account} for {self.symbol}")
        return self._record(RoleEvent(self.symbol, "pauser", account, granted=True))

    def renounce_pauser(self, caller: str) -> RoleEvent:
        caller = normalize_address(caller)
        self._require_pauser(caller)
        self._pausers.discard(caller)
        logger.info(f"Pauser renounced: {caller} for {self.symbol}")
        return self._record(RoleEvent(self.symbol, "pauser", caller, granted=False))

    def add_minter(self, caller: str, account: str) -> RoleEvent:
        caller, account = normalize_address(caller), normalize_address(account)
        self._require_minter(caller)
        self._minters.add(account)
        logger.info(f"Minter added: {account} for {self.symbol}")
        return self._record(RoleEvent(self.symbol, "minter", account, granted=True))

    def renounce_minter(self, caller: str) -> RoleEvent:
        caller = normalize_address(caller)
        self._require_minter(caller)
        self._minters.discard(caller)
        logger.info(f"Minter renounced: {caller} for {self.symbol}")
        return self._record(RoleEvent(self.symbol, "minter", caller, granted=False))

    def grant_capability(self, caller: str, holder: str) -> MigrationCapability:
        """
        Grant *holder* minter and pauser rights, returned as a revocable
        ``MigrationCapability``. The caller must hold both roles. Roles the
        holder already had are not part of the grant and survive ``revoke``.
        """
        caller, holder = normalize_address(caller), normalize_address(holder)
        self._require_pauser(caller)
        self._require_minter(caller)
        if is_null_address(holder):
            raise InvalidConfigurationError("Cannot grant a capability to the null address")

        granted = []
        if holder not in self._pausers:
            self.add_pauser(caller, holder)
            granted.append("pauser")
        if holder not in self._minters:
            self.add_minter(caller, holder)
            granted.append("minter")
        return MigrationCapability(self, holder, granted)

    # ── Pre-mint phase ────────────────────────────────────────────────

    def mint(self, caller: str, recipient: str, amount: int) -> MintEvent:
        """
        Credit *amount* new units to *recipient*.

        Only possible before ``unpause_and_lock``; afterwards every call fails
        with MintingClosedError, whoever the caller and whatever the amount.
        """
        if self._minted:
            raise MintingClosedError(f"Minting of {self.symbol} is closed")

        caller, recipient = normalize_address(caller), normalize_address(recipient)
        self._require_minter(caller)
        amount = _require_amount(amount)

        new_supply = _checked_add(self._total_supply, amount)
        new_balance = _checked_add(self._balances.get(recipient, 0), amount)

        self._total_supply = new_supply
        self._balances[recipient] = new_balance

        logger.info(f"Mint: {amount} {self.symbol} → {recipient}")
        return self._record(MintEvent(self.symbol, recipient, amount))

    def unpause_and_lock(self, caller: str) -> PauseEvent:
        """Unpause and close minting for good. Succeeds once per ledger."""
        caller = normalize_address(caller)
        self._require_pauser(caller)
        if self._minted:
            raise AlreadyUnlockedError(f"Ledger {self.symbol} is already locked")

        self._paused = False
        self._minted = True

        logger.info(f"Ledger {self.symbol} unpaused and locked, supply={self._total_supply}")
        return self._record(PauseEvent(self.symbol, caller, paused=False, locked=True))

    # ── Pause / unpause ───────────────────────────────────────────────

    def pause(self, caller: str) -> PauseEvent:
        caller = normalize_address(caller)
        self._require_pauser(caller)
        self._paused = True
        logger.warning(f"Ledger {self.symbol} PAUSED by {caller}")
        return self._record(PauseEvent(self.symbol, caller, paused=True))

    def unpause(self, caller: str) -> PauseEvent:
        """Clear the paused flag. Never touches ``minted``."""
        caller = normalize_address(caller)
        self._require_pauser(caller)
        self._paused = False
        logger.info(f"Ledger {self.symbol} unpaused by {caller}")
        return self._record(PauseEvent(self.symbol, caller, paused=False))

    # ── Transfers ─────────────────────────────────────────────────────

    def _settle(self, sender: str, recipient: str, amount: int) -> _Settlement:
        """Compute the effect of moving *amount* without applying it."""
        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {balance} < transfer amount {amount}"
            )
        remaining = balance - amount

        if self._handshake.is_confirmed(recipient):
            return _Settlement(
                balances={sender: remaining},
                total_supply=_checked_sub(self._total_supply, amount),
                custody=_checked_add(self._custody, amount),
                outcome=TransferOutcome.DIVERTED,
            )

        if sender == recipient:
            credited = remaining + amount
        else:
            credited = _checked_add(self._balances.get(recipient, 0), amount)
        return _Settlement(
            balances={sender: remaining, recipient: credited},
            total_supply=self._total_supply,
            custody=self._custody,
            outcome=TransferOutcome.DIRECT,
        )

    def _apply(self, settlement: _Settlement) -> None:
        self._balances.update(settlement.balances)
        self._total_supply = settlement.total_supply
        self._custody = settlement.custody

    def _transfer_event(self, sender, recipient, amount, outcome) -> TransferEvent:
        if outcome == TransferOutcome.DIVERTED:
            logger.warning(
                f"Transfer DIVERTED to custody: {sender} → {recipient} {amount} {self.symbol}"
            )
        else:
            logger.debug(f"Transfer: {sender} → {recipient} {amount} {self.symbol}")
        return self._record(TransferEvent(self.symbol, sender, recipient, amount, outcome))

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """
        Move *amount* from *sender* to *recipient*.

        If *recipient* is a confirmed bridge intermediate, the amount leaves
        circulation and is added to the custody pool; the recipient balance
        is unchanged. The returned event's ``outcome`` tells which happened.
        """
        sender, recipient = normalize_address(sender), normalize_address(recipient)
        amount = _require_amount(amount)
        self._require_not_paused()

        settlement = self._settle(sender, recipient, amount)
        self._apply(settlement)
        return self._transfer_event(sender, recipient, amount, settlement.outcome)

    def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        owner, spender = normalize_address(owner), normalize_address(spender)
        amount = _require_amount(amount)
        self._require_not_paused()

        self._allowances[(owner, spender)] = amount
        logger.debug(f"Approve: {owner} → {spender} allowance={amount} {self.symbol}")
        return self._record(ApprovalEvent(self.symbol, owner, spender, amount))

    def transfer_from(
        self,
        spender: str,
        sender: str,
        recipient: str,
        amount: int,
    ) -> TransferEvent:
        """Transfer on behalf of *sender* using spender's allowance."""
        spender = normalize_address(spender)
        sender, recipient = normalize_address(sender), normalize_address(recipient)
        amount = _require_amount(amount)
        self._require_not_paused()

        settlement = self._settle(sender, recipient, amount)
        allow = self._allowances.get((sender, spender), 0)
        if allow < amount:
            raise InsufficientAllowanceError(
                f"Allowance {allow} < transfer amount {amount}"
            )

        self._apply(settlement)
        self._allowances[(sender, spender)] = allow - amount
        return self._transfer_event(sender, recipient, amount, settlement.outcome)

    # ── Bridge handshake ──────────────────────────────────────────────

    def propose(self, caller: str, target: str) -> IntermediateProposedEvent:
        """Bridge authority proposes *target* as an intermediate address."""
        target = self._handshake.propose(caller, target)
        return self._record(IntermediateProposedEvent(self.symbol, target))

    def confirm(self, caller: str) -> IntermediateConfirmedEvent:
        """
        A pending intermediate confirms itself. Its whole current balance is
        swept into custody; later transfers to it are diverted.
        """
        caller = self._handshake.require_pending(caller)
        swept = self._balances.get(caller, 0)
        new_supply = _checked_sub(self._total_supply, swept)
        new_custody = _checked_add(self._custody, swept)

        self._handshake.mark_confirmed(caller)
        self._balances[caller] = 0
        self._total_supply = new_supply
        self._custody = new_custody

        if swept:
            logger.warning(f"Swept {swept} {self.symbol} from {caller} into custody")
        return self._record(IntermediateConfirmedEvent(self.symbol, caller, swept))

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """Full ledger state as JSON-safe values (amounts as strings)."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "owner": self.owner,
            "bridgeAuthority": self.bridge_authority,
            "totalSupply": str(self._total_supply),
            "bridgeBalance": str(self._custody),
            "paused": self._paused,
            "minted": self._minted,
            "pausers": sorted(self._pausers),
            "minters": sorted(self._minters),
            "balances": {a: str(b) for a, b in self._balances.items() if b > 0},
            "allowances": [
                {"owner": o, "spender": s, "amount": str(v)}
                for (o, s), v in self._allowances.items() if v > 0
            ],
            "handshake": self._handshake.to_dict()["states"],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ledger":
        """
        Rebuild a ledger from ``to_dict`` output.

        Raises InvalidConfigurationError if the snapshot is malformed or does
        not conserve supply.
        """
        try:
            ledger = cls(
                data["bridgeAuthority"],
                int(data.get("bridgeBalance", 0)),
                owner=data["owner"],
                name=data.get("name", TOKEN_DEFAULT_NAME),
                symbol=data.get("symbol", TOKEN_DEFAULT_SYMBOL),
                decimals=data.get("decimals", TOKEN_DEFAULT_DECIMALS),
            )
            ledger._paused = _require_flag(data, "paused", True)
            ledger._minted = _require_flag(data, "minted", False)
            ledger._total_supply = int(data.get("totalSupply", 0))
            if "pausers" in data:
                ledger._pausers = {normalize_address(a) for a in data["pausers"]}
            if "minters" in data:
                ledger._minters = {normalize_address(a) for a in data["minters"]}
            for address, amount in data.get("balances", {}).items():
                ledger._balances[normalize_address(address)] = int(amount)
            for entry in data.get("allowances", []):
                key = (normalize_address(entry["owner"]), normalize_address(entry["spender"]))
                ledger._allowances[key] = int(entry["amount"])
            ledger._handshake = BridgeHandshake.from_dict({
                "bridgeAuthority": data["bridgeAuthority"],
                "states": data.get("handshake", {}),
            })
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidConfigurationError(f"Malformed ledger snapshot: {e}") from e

        try:
            ledger.check_invariants()
            if any(v < 0 or v > UINT256_MAX for v in ledger._allowances.values()):
                raise InvariantViolationError("allowance outside uint256 range")
        except InvariantViolationError as e:
            raise InvalidConfigurationError(f"Inconsistent ledger snapshot: {e}") from e
        return ledger

    def summary(self) -> Dict[str, Any]:
        """Short description used by the CLI and log lines."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": self._total_supply,
            "bridgeBalance": self._custody,
            "paused": self._paused,
            "minted": self._minted,
            "holders": len(self.holders()),
            "pendingIntermediates": len(self._handshake.pending()),
            "confirmedIntermediates": len(self._handshake.confirmed()),
        }

    def __repr__(self) -> str:
        return (
            f"<Ledger {self.symbol} supply={self._total_supply} custody={self._custody} "
            f"paused={self._paused} minted={self._minted}>"
        )
