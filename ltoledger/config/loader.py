"""
LTO Ledger TOML Configuration Loader

Loads every section of config.toml with environment variable overrides
(dataclass + from_dict + from_file).

Environment variable mapping:
    [token] bridge_address        → LTO_BRIDGE_ADDRESS
    [token] bridge_supply         → LTO_BRIDGE_SUPPLY
    [balance_copy] operator       → LTO_OPERATOR
    [balance_copy] excluded       → LTO_EXCLUDED (comma-separated)
    [logging] level               → LTO_LOG_LEVEL
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..addresses import is_null_address, normalize_address
from ..constants import (
    CONFIG_DEFAULT_PATH,
    CONFIG_ENV_VAR,
    TOKEN_DEFAULT_DECIMALS,
    TOKEN_DEFAULT_NAME,
    TOKEN_DEFAULT_SYMBOL,
    TOKEN_MAX_DECIMALS,
    UINT256_MAX,
)
from ..exceptions import InvalidConfigurationError
from ..logger import get_logger
from ..tokens.ledger import Ledger

logger = get_logger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _require_uint(section: str, name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT256_MAX:
        raise InvalidConfigurationError(f"[{section}] {name} must be a non-negative integer")


def _int_env(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError:
        raise InvalidConfigurationError(f"{name} must be an integer, got {v!r}") from None


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass
class TokenConfig:
    """[token] section."""
    name: str = TOKEN_DEFAULT_NAME
    symbol: str = TOKEN_DEFAULT_SYMBOL
    decimals: int = TOKEN_DEFAULT_DECIMALS
    bridge_address: str = ""
    bridge_supply: int = 0
    total_supply: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenConfig":
        return cls(
            name=data.get("name", TOKEN_DEFAULT_NAME),
            symbol=data.get("symbol", TOKEN_DEFAULT_SYMBOL),
            decimals=data.get("decimals", TOKEN_DEFAULT_DECIMALS),
            bridge_address=data.get("bridge_address", ""),
            bridge_supply=data.get("bridge_supply", 0),
            total_supply=data.get("total_supply", 0),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LTO_BRIDGE_ADDRESS"):
            self.bridge_address = v
        if (v := _int_env("LTO_BRIDGE_SUPPLY")) is not None:
            self.bridge_supply = v

    def validate(self) -> None:
        if is_null_address(self.bridge_address):
            raise InvalidConfigurationError("[token] bridge_address must be set")
        if not self.name or not self.symbol:
            raise InvalidConfigurationError("[token] name and symbol must be set")
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int) \
                or not 0 <= self.decimals <= TOKEN_MAX_DECIMALS:
            raise InvalidConfigurationError(f"[token] decimals must be 0-{TOKEN_MAX_DECIMALS}")
        _require_uint("token", "bridge_supply", self.bridge_supply)
        _require_uint("token", "total_supply", self.total_supply)

    def create_ledger(self, owner: str) -> Ledger:
        """Create a fresh (paused, unminted) ledger described by this section."""
        self.validate()
        return Ledger(
            self.bridge_address,
            self.bridge_supply,
            owner=owner,
            name=self.name,
            symbol=self.symbol,
            decimals=self.decimals,
        )


@dataclass
class TokenSaleConfig:
    """
    [token_sale] section.

    Parameters of the external sale contract. The ledger never runs the
    sale; the section is loaded and checked so one config file describes
    a whole deployment.
    """
    receiver_address: str = ""
    total_sale_amount: int = 0
    start_time: int = 0
    rate: int = 0
    duration: int = 0
    bonus_duration: int = 0
    bonus_percentage: int = 0
    bonus_decrease_rate: int = 0
    user_withdrawal_delay_sec: int = 0
    clear_delay_sec: int = 0
    cap_list_address: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenSaleConfig":
        return cls(
            receiver_address=data.get("receiver_address", ""),
            total_sale_amount=data.get("total_sale_amount", 0),
            start_time=data.get("start_time", 0),
            rate=data.get("rate", 0),
            duration=data.get("duration", 0),
            bonus_duration=data.get("bonus_duration", 0),
            bonus_percentage=data.get("bonus_percentage", 0),
            bonus_decrease_rate=data.get("bonus_decrease_rate", 0),
            user_withdrawal_delay_sec=data.get("user_withdrawal_delay_sec", 0),
            clear_delay_sec=data.get("clear_delay_sec", 0),
            cap_list_address=data.get("cap_list_address", ""),
        )

    def validate(self, token: TokenConfig) -> None:
        for name in (
            "total_sale_amount", "start_time", "rate", "duration", "bonus_duration",
            "bonus_percentage", "bonus_decrease_rate", "user_withdrawal_delay_sec",
            "clear_delay_sec",
        ):
            _require_uint("token_sale", name, getattr(self, name))
        if self.total_sale_amount > token.total_supply:
            raise InvalidConfigurationError(
                "[token_sale] total_sale_amount exceeds [token] total_supply"
            )
        if self.bonus_percentage > 100:
            raise InvalidConfigurationError("[token_sale] bonus_percentage must be <= 100")

    def keep_amount(self, token: TokenConfig) -> int:
        """Part of the token total supply not offered in the sale."""
        return token.total_supply - self.total_sale_amount


@dataclass
class BalanceCopyConfig:
    """[balance_copy] section."""
    operator: str = ""
    copier_address: str = ""
    excluded: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BalanceCopyConfig":
        return cls(
            operator=data.get("operator", ""),
            copier_address=data.get("copier_address", ""),
            excluded=list(data.get("excluded", [])),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LTO_OPERATOR"):
            self.operator = v
        if v := os.environ.get("LTO_EXCLUDED"):
            self.excluded = [a.strip() for a in v.split(",") if a.strip()]

    def validate(self) -> None:
        if is_null_address(self.operator):
            raise InvalidConfigurationError("[balance_copy] operator must be set")
        if is_null_address(self.copier_address):
            raise InvalidConfigurationError("[balance_copy] copier_address must be set")
        if normalize_address(self.copier_address) == normalize_address(self.operator):
            raise InvalidConfigurationError(
                "[balance_copy] copier_address must differ from operator"
            )


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(level=data.get("level", "INFO"))

    def apply_env(self) -> None:
        if v := os.environ.get("LTO_LOG_LEVEL"):
            self.level = v

    def validate(self) -> None:
        if str(self.level).upper() not in _LOG_LEVELS:
            raise InvalidConfigurationError(f"Invalid log level: {self.level}")


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class LedgerConfig:
    """
    Unified configuration.

    Loads every section of config.toml and applies environment variable
    overrides.
    """
    token: TokenConfig = field(default_factory=TokenConfig)
    token_sale: TokenSaleConfig = field(default_factory=TokenSaleConfig)
    balance_copy: BalanceCopyConfig = field(default_factory=BalanceCopyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        return cls(
            token=TokenConfig.from_dict(data.get("token", {})),
            token_sale=TokenSaleConfig.from_dict(data.get("token_sale", {})),
            balance_copy=BalanceCopyConfig.from_dict(data.get("balance_copy", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "LedgerConfig":
        """
        Load configuration from a TOML file. A missing file yields the
        defaults (with environment overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Config file not found: {config_path} - using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise InvalidConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.token.apply_env()
        self.balance_copy.apply_env()
        self.logging.apply_env()

    def validate(self, *, migration: bool = False) -> bool:
        """
        Validate all sections. ``[balance_copy]`` is only required when
        *migration* is set.

        Raises:
            InvalidConfigurationError: on invalid config
        """
        self.token.validate()
        self.token_sale.validate(self.token)
        self.logging.validate()
        if migration:
            self.balance_copy.validate()
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "token": {
                "name": self.token.name,
                "symbol": self.token.symbol,
                "decimals": self.token.decimals,
                "bridge_address": self.token.bridge_address,
                "bridge_supply": self.token.bridge_supply,
                "total_supply": self.token.total_supply,
            },
            "token_sale": {
                "receiver_address": self.token_sale.receiver_address,
                "total_sale_amount": self.token_sale.total_sale_amount,
                "start_time": self.token_sale.start_time,
                "rate": self.token_sale.rate,
                "duration": self.token_sale.duration,
            },
            "balance_copy": {
                "operator": self.balance_copy.operator,
                "copier_address": self.balance_copy.copier_address,
                "excluded": list(self.balance_copy.excluded),
            },
            "logging": {"level": self.logging.level},
        }


def load_config(path: Optional[str] = None) -> LedgerConfig:
    """
    Load ledger configuration.

    Resolution order:
        1. Explicit *path* argument
        2. LTO_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR, CONFIG_DEFAULT_PATH)
    return LedgerConfig.from_file(path)
