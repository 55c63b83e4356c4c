"""
LTO Ledger Configuration

Loads all sections of config.toml. Environment variables override TOML values.
"""

from .loader import (
    BalanceCopyConfig,
    LedgerConfig,
    LoggingConfig,
    TokenConfig,
    TokenSaleConfig,
    load_config,
)

__all__ = [
    "BalanceCopyConfig",
    "LedgerConfig",
    "LoggingConfig",
    "TokenConfig",
    "TokenSaleConfig",
    "load_config",
]
