"""
LTO Ledger Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole package. For direct module access, import from submodules:

    from ltoledger.tokens import Ledger
    from ltoledger.migrations import BalanceCopier
    from ltoledger.exceptions import LedgerException
"""

__version__ = "1.0.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'Ledger':
        from .tokens import Ledger
        return Ledger
    elif name == 'BalanceCopier':
        from .migrations import BalanceCopier
        return BalanceCopier
    elif name == 'LedgerException':
        from .exceptions import LedgerException
        return LedgerException
    raise AttributeError(f"module 'ltoledger' has no attribute {name!r}")

__all__ = ['Ledger', 'BalanceCopier', 'LedgerException']
