"""
Bridge intermediate-address handshake.

Provides:
  - HandshakeStatus  : NONE / PENDING / CONFIRMED
  - BridgeHandshake  : propose/confirm state machine owned by a Ledger
"""

from .handshake import (
    BridgeHandshake,
    HandshakeStatus,
    IntermediateConfirmedEvent,
    IntermediateProposedEvent,
)

__all__ = [
    "BridgeHandshake",
    "HandshakeStatus",
    "IntermediateConfirmedEvent",
    "IntermediateProposedEvent",
]
