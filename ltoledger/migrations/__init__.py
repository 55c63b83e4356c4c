"""
LTO Ledger Migrations

Contains the balance copier used to move a retiring ledger's balances into
its replacement.
"""

from .balance_copier import BalanceCopier, CopyRecord, CopyReport

__all__ = ['BalanceCopier', 'CopyRecord', 'CopyReport']
