"""
Configuration Loader Test Suite

Coverage:
  - TOML loading of [token], [token_sale], [balance_copy], [logging]
  - environment variable overrides
  - resolution order and missing files
  - validation errors
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ltoledger.config import (
    BalanceCopyConfig,
    LedgerConfig,
    TokenConfig,
    TokenSaleConfig,
    load_config,
)
from ltoledger.exceptions import InvalidConfigurationError


OWNER = "0x" + "11" * 20
BRIDGE = "0x" + "22" * 20
COPIER = "0x" + "77" * 20
DEX = "0x" + "88" * 20
OTHER_BRIDGE = "0x" + "23" * 20

ENV_VARS = (
    "LTO_CONFIG",
    "LTO_BRIDGE_ADDRESS",
    "LTO_BRIDGE_SUPPLY",
    "LTO_OPERATOR",
    "LTO_EXCLUDED",
    "LTO_LOG_LEVEL",
)

CONFIG_TOML = f"""
[token]
name = "LTO Network Token"
symbol = "LTO"
decimals = 8
bridge_address = "{BRIDGE}"
bridge_supply = 40
total_supply = 500000000

[token_sale]
receiver_address = "{OWNER}"
total_sale_amount = 100000000
start_time = 1546300800
rate = 1000
duration = 86400
bonus_duration = 3600
bonus_percentage = 20
bonus_decrease_rate = 2

[balance_copy]
operator = "{OWNER}"
copier_address = "{COPIER}"
excluded = ["{DEX}"]

[logging]
level = "DEBUG"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TOML)
    return path


class TestLoadConfig:
    """load_config() and LedgerConfig.from_file()."""

    def test_load(self, config_file):
        cfg = load_config(str(config_file))
        assert cfg.token.symbol == "LTO"
        assert cfg.token.decimals == 8
        assert cfg.token.bridge_address == BRIDGE
        assert cfg.token.bridge_supply == 40
        assert cfg.token_sale.total_sale_amount == 100000000
        assert cfg.token_sale.bonus_percentage == 20
        assert cfg.balance_copy.operator == OWNER
        assert cfg.balance_copy.excluded == [DEX]
        assert cfg.logging.level == "DEBUG"
        assert cfg.validate(migration=True) is True

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.toml"))
        assert cfg.token.symbol == "LTO"
        assert cfg.token.bridge_address == ""
        assert cfg.balance_copy.excluded == []

    def test_missing_file_still_applies_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LTO_BRIDGE_ADDRESS", BRIDGE)
        cfg = load_config(str(tmp_path / "nope.toml"))
        assert cfg.token.bridge_address == BRIDGE
        cfg.validate()

    def test_env_var_path(self, config_file, monkeypatch):
        monkeypatch.setenv("LTO_CONFIG", str(config_file))
        cfg = load_config()
        assert cfg.token.bridge_supply == 40

    def test_default_path_in_cwd(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)
        cfg = load_config()
        assert cfg.balance_copy.copier_address == COPIER

    def test_invalid_toml_raises(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[token\nsymbol = ")
        with pytest.raises(InvalidConfigurationError, match="Invalid TOML"):
            load_config(str(path))

    def test_to_dict(self, config_file):
        d = load_config(str(config_file)).to_dict()
        assert d["token"]["bridge_supply"] == 40
        assert d["balance_copy"]["excluded"] == [DEX]
        assert d["logging"]["level"] == "DEBUG"


class TestEnvOverrides:
    """Environment variables take precedence over the file."""

    def test_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("LTO_BRIDGE_ADDRESS", OTHER_BRIDGE)
        monkeypatch.setenv("LTO_BRIDGE_SUPPLY", "7")
        monkeypatch.setenv("LTO_OPERATOR", COPIER)
        monkeypatch.setenv("LTO_EXCLUDED", f"{DEX}, {OWNER} ,")
        monkeypatch.setenv("LTO_LOG_LEVEL", "WARNING")

        cfg = load_config(str(config_file))

        assert cfg.token.bridge_address == OTHER_BRIDGE
        assert cfg.token.bridge_supply == 7
        assert cfg.balance_copy.operator == COPIER
        assert cfg.balance_copy.excluded == [DEX, OWNER]
        assert cfg.logging.level == "WARNING"

    def test_non_integer_supply_raises(self, config_file, monkeypatch):
        monkeypatch.setenv("LTO_BRIDGE_SUPPLY", "lots")
        with pytest.raises(InvalidConfigurationError, match="LTO_BRIDGE_SUPPLY"):
            load_config(str(config_file))


class TestValidation:
    """Section validation."""

    def test_missing_bridge_address(self):
        with pytest.raises(InvalidConfigurationError, match="bridge_address"):
            TokenConfig().validate()

    def test_negative_bridge_supply(self):
        token = TokenConfig(bridge_address=BRIDGE, bridge_supply=-1)
        with pytest.raises(InvalidConfigurationError, match="bridge_supply"):
            token.validate()

    def test_bad_decimals(self):
        token = TokenConfig(bridge_address=BRIDGE, decimals=30)
        with pytest.raises(InvalidConfigurationError, match="decimals"):
            token.validate()

    def test_sale_exceeds_supply(self):
        token = TokenConfig(bridge_address=BRIDGE, total_supply=100)
        sale = TokenSaleConfig(total_sale_amount=101)
        with pytest.raises(InvalidConfigurationError, match="total_sale_amount"):
            sale.validate(token)

    def test_bonus_percentage_above_100(self):
        token = TokenConfig(bridge_address=BRIDGE, total_supply=100)
        sale = TokenSaleConfig(bonus_percentage=101)
        with pytest.raises(InvalidConfigurationError, match="bonus_percentage"):
            sale.validate(token)

    def test_keep_amount(self):
        token = TokenConfig(bridge_address=BRIDGE, total_supply=500)
        sale = TokenSaleConfig(total_sale_amount=200)
        assert sale.keep_amount(token) == 300

    def test_balance_copy_only_required_for_migration(self):
        cfg = LedgerConfig(token=TokenConfig(bridge_address=BRIDGE))
        assert cfg.validate() is True
        with pytest.raises(InvalidConfigurationError, match="operator"):
            cfg.validate(migration=True)

    def test_missing_copier_address(self):
        with pytest.raises(InvalidConfigurationError, match="copier_address"):
            BalanceCopyConfig(operator=OWNER).validate()

    def test_copier_address_must_differ_from_operator(self):
        cfg = BalanceCopyConfig(operator="0x" + "ab" * 20, copier_address="0x" + "AB" * 20)
        with pytest.raises(InvalidConfigurationError, match="differ from operator"):
            cfg.validate()

    def test_bad_log_level(self):
        cfg = LedgerConfig(token=TokenConfig(bridge_address=BRIDGE))
        cfg.logging.level = "CHATTY"
        with pytest.raises(InvalidConfigurationError, match="log level"):
            cfg.validate()


class TestCreateLedger:
    """TokenConfig.create_ledger()."""

    def test_create_ledger(self, config_file):
        cfg = load_config(str(config_file))
        ledger = cfg.token.create_ledger(owner=OWNER)
        assert ledger.symbol == "LTO"
        assert ledger.decimals == 8
        assert ledger.bridge_authority == BRIDGE
        assert ledger.bridge_balance == 40
        assert ledger.total_supply == 0
        assert ledger.paused is True
        assert ledger.is_minter(OWNER)

    def test_create_ledger_validates(self):
        with pytest.raises(InvalidConfigurationError):
            TokenConfig().create_ledger(owner=OWNER)
