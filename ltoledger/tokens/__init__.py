"""
LTO Token Ledger

Provides:
  - Ledger               : token ledger with custody pool and mint lock
  - MigrationCapability  : revocable minter/pauser handle on a ledger
  - TransferOutcome      : DIRECT or DIVERTED settlement of a transfer
"""

from .capability import MigrationCapability
from .ledger import (
    ApprovalEvent,
    Ledger,
    MintEvent,
    PauseEvent,
    RoleEvent,
    TransferEvent,
    TransferOutcome,
)

__all__ = [
    "Ledger",
    "MigrationCapability",
    "TransferOutcome",
    # Events
    "TransferEvent",
    "MintEvent",
    "ApprovalEvent",
    "PauseEvent",
    "RoleEvent",
]
