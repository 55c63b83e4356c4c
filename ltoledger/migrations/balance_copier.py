"""
Balance Copier: one-time migration from a retiring ledger

Replays the balances of a frozen (paused) source ledger into a fresh target
ledger by minting, then locks the target and gives up its own rights.

Guarantees:
  - each principal is copied at most once
  - excluded principals (pools, exchanges) are never copied
  - every single copy is atomic; a batch never undoes earlier copies

Usage::

    capability = new_token.grant_capability(owner, copier_address)
    copier = BalanceCopier(old_token, capability, excluded=[dex], operator=owner)

    old_token.pause(owner)
    report = copier.copy_all(owner, old_token.holders())
    copier.finalize(owner)
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Set

from ..addresses import is_null_address, normalize_address
from ..exceptions import (
    AlreadyCopiedError,
    AlreadyFinalizedError,
    ErrorKind,
    ExcludedAddressError,
    InvalidConfigurationError,
    LedgerException,
    NothingToCopyError,
    SourceNotFrozenError,
    UnauthorizedError,
)
from ..logger import get_logger
from ..tokens.capability import MigrationCapability
from ..tokens.ledger import Ledger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CopyRecord:
    """One principal's balance copied into the target ledger."""
    principal: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": self.principal,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass
class CopyReport:
    """
    Result of a ``copy_all`` batch.

    Attributes:
        copied:  records of the principals copied by this batch, in order
        skipped: principal → failure kind for every principal not copied
    """
    copied: List[CopyRecord] = field(default_factory=list)
    skipped: Dict[str, ErrorKind] = field(default_factory=dict)

    @property
    def total_copied(self) -> int:
        return sum(r.amount for r in self.copied)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "copied": [r.to_dict() for r in self.copied],
            "skipped": {p: kind.value for p, kind in self.skipped.items()},
            "totalCopied": str(self.total_copied),
        }


class BalanceCopier:
    """
    Migration controller between two independent ledgers.

    Reads balances from *source* and mints them on the target through
    *capability*. Only *operator* may drive it. After ``finalize`` the
    target is unpaused and locked and the copier holds no rights on it.
    """

    def __init__(
        self,
        source: Ledger,
        capability: MigrationCapability,
        excluded: Iterable[str] = (),
        *,
        operator: str,
    ):
        if capability.ledger is source:
            raise InvalidConfigurationError("Source and target ledger must differ")
        if not capability.active:
            raise InvalidConfigurationError("Capability has already been revoked")
        if is_null_address(operator):
            raise InvalidConfigurationError("Operator cannot be the null address")

        self._source = source
        self._capability = capability
        self._operator = normalize_address(operator)
        self._excluded: FrozenSet[str] = frozenset(normalize_address(a) for a in excluded)
        self._copied: Set[str] = set()
        self._finalized = False

        logger.info(
            f"Balance copier {capability.holder}: {source.symbol} → "
            f"{capability.ledger.symbol}, excluded={len(self._excluded)}"
        )

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def source(self) -> Ledger:
        return self._source

    @property
    def target(self) -> Ledger:
        return self._capability.ledger

    @property
    def address(self) -> str:
        return self._capability.holder

    @property
    def operator(self) -> str:
        return self._operator

    @property
    def excluded(self) -> FrozenSet[str]:
        return self._excluded

    @property
    def copied(self) -> FrozenSet[str]:
        return frozenset(self._copied)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def is_copied(self, address: str) -> bool:
        return normalize_address(address) in self._copied

    def is_excluded(self, address: str) -> bool:
        return normalize_address(address) in self._excluded

    # ── Guards ────────────────────────────────────────────────────────

    def _require_operator(self, caller: str):
        if normalize_address(caller) != self._operator:
            raise UnauthorizedError(f"{caller} is not the balance copier operator")

    def _require_not_finalized(self):
        if self._finalized:
            raise AlreadyFinalizedError("Balance copy has already been finalized")

    def _require_source_frozen(self):
        if not self._source.paused:
            raise SourceNotFrozenError(f"Source ledger {self._source.symbol} is not paused")

    # ── Copy ──────────────────────────────────────────────────────────

    @staticmethod
    def _report_key(principal) -> str:
        try:
            return normalize_address(principal)
        except InvalidConfigurationError:
            return str(principal)

    def _copy_one(self, principal: str) -> CopyRecord:
        principal = normalize_address(principal)
        if principal in self._copied:
            raise AlreadyCopiedError(f"{principal} has already been copied")
        if principal in self._excluded:
            raise ExcludedAddressError(f"{principal} is excluded from the copy")
        amount = self._source.balance_of(principal)
        if amount == 0:
            raise NothingToCopyError(f"{principal} has no balance on {self._source.symbol}")

        self._capability.mint(principal, amount)
        self._copied.add(principal)

        logger.info(f"Copied {amount} {self.target.symbol} → {principal}")
        return CopyRecord(principal, amount)

    def copy(self, caller: str, principal: str) -> CopyRecord:
        """Copy exactly one principal's source balance, exactly once."""
        self._require_operator(caller)
        self._require_not_finalized()
        self._require_source_frozen()
        return self._copy_one(principal)

    def copy_all(self, caller: str, principals: Iterable[str]) -> CopyReport:
        """
        Copy every principal in *principals*, best-effort.

        Caller, finalization and source-frozen checks apply to the whole
        batch. Each principal after that is copied independently: failures
        are collected in ``CopyReport.skipped`` and the batch carries on.
        """
        self._require_operator(caller)
        self._require_not_finalized()
        self._require_source_frozen()

        report = CopyReport()
        for principal in principals:
            try:
                report.copied.append(self._copy_one(principal))
            except LedgerException as e:
                report.skipped[self._report_key(principal)] = e.kind
                logger.warning(f"Skipped {principal}: [{e.kind.value}] {e}")

        logger.info(
            f"Batch copy: {len(report.copied)} copied, {len(report.skipped)} skipped, "
            f"total={report.total_copied}"
        )
        return report

    # ── Finalize ──────────────────────────────────────────────────────

    def finalize(self, caller: str) -> None:
        """
        Complete the migration ("done"): unpause and lock the target, then
        drop the copier's minter and pauser roles on it.
        """
        self._require_operator(caller)
        self._require_not_finalized()

        self._capability.unpause_and_lock()
        self._capability.revoke()
        self._finalized = True

        logger.info(
            f"Balance copy finalized: {len(self._copied)} principals, "
            f"{self.target.symbol} supply={self.target.total_supply}"
        )

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "operator": self._operator,
            "source": self._source.symbol,
            "target": self.target.symbol,
            "excluded": sorted(self._excluded),
            "copied": sorted(self._copied),
            "finalized": self._finalized,
        }

    def __repr__(self) -> str:
        return (
            f"<BalanceCopier copied={len(self._copied)} "
            f"excluded={len(self._excluded)} finalized={self._finalized}>"
        )
