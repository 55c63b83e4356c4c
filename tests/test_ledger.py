"""
Token Ledger Test Suite

Coverage:
  - creation: paused, unminted, custody pool, bridge authority checks
  - pre-mint phase: mint, minter role, one-way lock
  - pause / unpause and the pauser role
  - transfer, approve, transfer_from
  - checked uint256 arithmetic and all-or-nothing writes
  - conservation invariant and snapshots
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ltoledger.constants import (
    TOKEN_DEFAULT_DECIMALS,
    TOKEN_DEFAULT_NAME,
    TOKEN_DEFAULT_SYMBOL,
    UINT256_MAX,
    ZERO_ADDRESS,
)
from ltoledger.exceptions import (
    AlreadyUnlockedError,
    ErrorKind,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidConfigurationError,
    LedgerException,
    LedgerOverflowError,
    LedgerPausedError,
    MintingClosedError,
    UnauthorizedError,
)
from ltoledger.tokens import (
    ApprovalEvent,
    Ledger,
    MintEvent,
    PauseEvent,
    RoleEvent,
    TransferEvent,
    TransferOutcome,
)


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

OWNER = "0x" + "11" * 20
BRIDGE = "0x" + "22" * 20
ALICE = "0x" + "33" * 20
BOB = "0x" + "44" * 20
CAROL = "0x" + "55" * 20
EVE = "0x" + "66" * 20


def make_ledger(custody=50, owner=OWNER, bridge=BRIDGE, **kwargs) -> Ledger:
    """Fresh ledger in its pre-mint phase."""
    return Ledger(bridge, custody, owner=owner, **kwargs)


def make_live_ledger(custody=50, mints=None) -> Ledger:
    """Ledger that has been pre-minted and locked."""
    ledger = make_ledger(custody=custody)
    for address, amount in (mints or {OWNER: 50}).items():
        ledger.mint(OWNER, address, amount)
    ledger.unpause_and_lock(OWNER)
    return ledger


def state_of(ledger: Ledger):
    return ledger.to_dict()


# ══════════════════════════════════════════════════════════════════════
#  CREATION
# ══════════════════════════════════════════════════════════════════════


class TestLedgerCreate:
    """Ledger construction and initial state."""

    def test_create_basic(self):
        ledger = make_ledger()
        assert ledger.name == TOKEN_DEFAULT_NAME
        assert ledger.symbol == TOKEN_DEFAULT_SYMBOL
        assert ledger.decimals == TOKEN_DEFAULT_DECIMALS
        assert ledger.total_supply == 0
        assert ledger.bridge_balance == 50
        assert ledger.bridge_authority == BRIDGE

    def test_created_paused_and_unminted(self):
        ledger = make_ledger()
        assert ledger.paused is True
        assert ledger.minted is False

    def test_owner_holds_both_roles(self):
        ledger = make_ledger()
        assert ledger.is_pauser(OWNER)
        assert ledger.is_minter(OWNER)
        assert not ledger.is_pauser(ALICE)
        assert not ledger.is_minter(ALICE)

    def test_null_bridge_authority_raises(self):
        with pytest.raises(InvalidConfigurationError, match="Bridge authority"):
            make_ledger(bridge=ZERO_ADDRESS)

    def test_missing_bridge_authority_raises(self):
        with pytest.raises(InvalidConfigurationError):
            make_ledger(bridge="")

    def test_null_owner_raises(self):
        with pytest.raises(InvalidConfigurationError, match="Owner"):
            make_ledger(owner=ZERO_ADDRESS)

    def test_negative_custody_raises(self):
        with pytest.raises(InvalidConfigurationError, match="custody"):
            make_ledger(custody=-1)

    def test_custody_above_uint256_raises(self):
        with pytest.raises(InvalidConfigurationError):
            make_ledger(custody=UINT256_MAX + 1)

    def test_invalid_decimals_raises(self):
        with pytest.raises(InvalidConfigurationError, match="Decimals"):
            make_ledger(decimals=19)

    def test_empty_symbol_raises(self):
        with pytest.raises(InvalidConfigurationError, match="symbol"):
            make_ledger(symbol="")

    def test_error_kind(self):
        with pytest.raises(LedgerException) as exc_info:
            make_ledger(bridge=ZERO_ADDRESS)
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIGURATION

    def test_repr(self):
        assert "LTO" in repr(make_ledger())


# ══════════════════════════════════════════════════════════════════════
#  PRE-MINT PHASE
# ══════════════════════════════════════════════════════════════════════


class TestMint:
    """mint() during the pre-mint phase."""

    def test_mint(self):
        ledger = make_ledger()
        event = ledger.mint(OWNER, ALICE, 50)
        assert isinstance(event, MintEvent)
        assert ledger.balance_of(ALICE) == 50
        assert ledger.total_supply == 50

    def test_mint_leaves_custody_untouched(self):
        ledger = make_ledger(custody=100)
        ledger.mint(OWNER, ALICE, 60)
        assert ledger.bridge_balance == 100

    def test_repeated_mints_accumulate(self):
        ledger = make_ledger()
        ledger.mint(OWNER, ALICE, 32)
        ledger.mint(OWNER, ALICE, 8)
        ledger.mint(OWNER, BOB, 20)
        assert ledger.balance_of(ALICE) == 40
        assert ledger.total_supply == 60

    def test_mint_by_non_minter_raises(self):
        ledger = make_ledger()
        with pytest.raises(UnauthorizedError, match="not a minter"):
            ledger.mint(EVE, EVE, 10)
        assert ledger.total_supply == 0

    def test_mint_gated_on_latch_not_pause(self):
        ledger = make_ledger()
        ledger.unpause(OWNER)
        assert ledger.paused is False
        ledger.mint(OWNER, ALICE, 5)
        assert ledger.balance_of(ALICE) == 5

    def test_mint_after_lock_raises(self):
        ledger = make_live_ledger()
        with pytest.raises(MintingClosedError):
            ledger.mint(OWNER, ALICE, 1)

    def test_mint_after_lock_raises_for_any_caller_and_amount(self):
        ledger = make_live_ledger()
        for caller in (OWNER, EVE, BRIDGE):
            for amount in (0, 1, UINT256_MAX, -5):
                with pytest.raises(MintingClosedError):
                    ledger.mint(caller, ALICE, amount)
        assert ledger.total_supply == 50

    def test_mint_after_lock_and_repause_still_closed(self):
        ledger = make_live_ledger()
        ledger.pause(OWNER)
        assert ledger.minted is True
        with pytest.raises(MintingClosedError):
            ledger.mint(OWNER, ALICE, 1)

    def test_mint_overflow_raises(self):
        ledger = make_ledger()
        ledger.mint(OWNER, ALICE, UINT256_MAX)
        before = state_of(ledger)
        with pytest.raises(LedgerOverflowError):
            ledger.mint(OWNER, BOB, 1)
        assert state_of(ledger) == before

    def test_mint_negative_amount_raises(self):
        ledger = make_ledger()
        with pytest.raises(InvalidAmountError, match="negative"):
            ledger.mint(OWNER, ALICE, -1)

    @pytest.mark.parametrize("amount", [1.5, "10", True, None])
    def test_mint_non_integer_amount_raises(self, amount):
        ledger = make_ledger()
        with pytest.raises(InvalidAmountError):
            ledger.mint(OWNER, ALICE, amount)


class TestUnpauseAndLock:
    """The one-way transition out of the pre-mint phase."""

    def test_unpause_and_lock(self):
        ledger = make_ledger()
        event = ledger.unpause_and_lock(OWNER)
        assert isinstance(event, PauseEvent)
        assert event.locked
        assert ledger.paused is False
        assert ledger.minted is True

    def test_second_call_raises(self):
        ledger = make_live_ledger()
        with pytest.raises(AlreadyUnlockedError):
            ledger.unpause_and_lock(OWNER)
        assert ledger.minted is True

    def test_second_call_after_repause_raises(self):
        ledger = make_live_ledger()
        ledger.pause(OWNER)
        with pytest.raises(AlreadyUnlockedError):
            ledger.unpause_and_lock(OWNER)
        assert ledger.paused is True

    def test_non_pauser_raises(self):
        ledger = make_ledger()
        with pytest.raises(UnauthorizedError):
            ledger.unpause_and_lock(EVE)
        assert ledger.paused is True
        assert ledger.minted is False


# ══════════════════════════════════════════════════════════════════════
#  PAUSE / ROLES
# ══════════════════════════════════════════════════════════════════════


class TestPause:
    """pause() / unpause()."""

    def test_pause_blocks_transfers(self):
        ledger = make_live_ledger()
        ledger.pause(OWNER)
        with pytest.raises(LedgerPausedError):
            ledger.transfer(OWNER, ALICE, 1)

    def test_unpause_allows_transfers(self):
        ledger = make_live_ledger()
        ledger.pause(OWNER)
        ledger.unpause(OWNER)
        ledger.transfer(OWNER, ALICE, 1)
        assert ledger.balance_of(ALICE) == 1

    def test_pause_does_not_touch_minted(self):
        ledger = make_ledger()
        ledger.unpause(OWNER)
        ledger.pause(OWNER)
        assert ledger.minted is False

    def test_pause_twice_is_allowed(self):
        ledger = make_live_ledger()
        ledger.pause(OWNER)
        ledger.pause(OWNER)
        assert ledger.paused is True

    def test_non_pauser_cannot_pause(self):
        ledger = make_live_ledger()
        with pytest.raises(UnauthorizedError, match="not a pauser"):
            ledger.pause(EVE)
        assert ledger.paused is False

    def test_non_pauser_cannot_unpause(self):
        ledger = make_ledger()
        with pytest.raises(UnauthorizedError):
            ledger.unpause(EVE)
        assert ledger.paused is True


class TestRoles:
    """Pauser and minter role management."""

    def test_add_pauser(self):
        ledger = make_ledger()
        event = ledger.add_pauser(OWNER, ALICE)
        assert isinstance(event, RoleEvent)
        assert event.to_dict()["event"] == "PauserAdded"
        assert ledger.is_pauser(ALICE)
        ledger.pause(ALICE)

    def test_add_pauser_requires_pauser(self):
        ledger = make_ledger()
        with pytest.raises(UnauthorizedError):
            ledger.add_pauser(EVE, EVE)
        assert not ledger.is_pauser(EVE)

    def test_renounce_pauser(self):
        ledger = make_ledger()
        ledger.add_pauser(OWNER, ALICE)
        ledger.renounce_pauser(ALICE)
        assert not ledger.is_pauser(ALICE)
        with pytest.raises(UnauthorizedError):
            ledger.unpause(ALICE)

    def test_add_and_renounce_minter(self):
        ledger = make_ledger()
        ledger.add_minter(OWNER, ALICE)
        ledger.mint(ALICE, BOB, 3)
        event = ledger.renounce_minter(ALICE)
        assert event.to_dict()["event"] == "MinterRemoved"
        with pytest.raises(UnauthorizedError):
            ledger.mint(ALICE, BOB, 3)
        assert ledger.balance_of(BOB) == 3

    def test_renounce_without_role_raises(self):
        ledger = make_ledger()
        with pytest.raises(UnauthorizedError):
            ledger.renounce_minter(EVE)


# ══════════════════════════════════════════════════════════════════════
#  TRANSFERS
# ══════════════════════════════════════════════════════════════════════


class TestTransfer:
    """transfer() between ordinary principals."""

    def test_transfer_during_pre_mint_raises(self):
        ledger = make_ledger()
        ledger.mint(OWNER, OWNER, 50)
        with pytest.raises(LedgerPausedError):
            ledger.transfer(OWNER, CAROL, 5)
        assert ledger.balance_of(OWNER) == 50

    def test_basic_transfer(self):
        ledger = make_live_ledger()
        event = ledger.transfer(OWNER, ALICE, 2)
        ledger.transfer(OWNER, BOB, 2)
        assert isinstance(event, TransferEvent)
        assert event.outcome == TransferOutcome.DIRECT
        assert not event.diverted
        assert ledger.balance_of(ALICE) == 2
        assert ledger.balance_of(BOB) == 2
        assert ledger.balance_of(OWNER) == 46
        assert ledger.total_supply == 50
        assert ledger.bridge_balance == 50

    def test_transfer_insufficient_balance(self):
        ledger = make_live_ledger()
        before = state_of(ledger)
        with pytest.raises(InsufficientBalanceError):
            ledger.transfer(OWNER, ALICE, 51)
        assert state_of(ledger) == before

    def test_transfer_from_empty_account(self):
        ledger = make_live_ledger()
        with pytest.raises(InsufficientBalanceError):
            ledger.transfer(EVE, ALICE, 1)

    def test_transfer_zero_amount(self):
        ledger = make_live_ledger()
        ledger.transfer(OWNER, ALICE, 0)
        assert ledger.balance_of(ALICE) == 0
        assert ledger.balance_of(OWNER) == 50

    def test_transfer_to_self(self):
        ledger = make_live_ledger()
        ledger.transfer(OWNER, OWNER, 20)
        assert ledger.balance_of(OWNER) == 50
        assert ledger.total_supply == 50

    def test_transfer_whole_balance(self):
        ledger = make_live_ledger()
        ledger.transfer(OWNER, ALICE, 50)
        assert ledger.balance_of(OWNER) == 0
        assert ledger.holders() == [ALICE]

    def test_transfer_emits_event(self):
        ledger = make_live_ledger()
        ledger.transfer(OWNER, ALICE, 7)
        last = ledger.events[-1]
        assert isinstance(last, TransferEvent)
        d = last.to_dict()
        assert d["event"] == "Transfer"
        assert d["from"] == OWNER
        assert d["to"] == ALICE
        assert d["amount"] == "7"
        assert d["outcome"] == "DIRECT"

    def test_address_case_is_normalised(self):
        mixed = "0x" + "ab" * 20
        ledger = make_live_ledger()
        ledger.transfer(OWNER, mixed, 4)
        assert ledger.balance_of("0x" + "AB" * 20) == 4
        assert ledger.balance_of(mixed) == 4
        assert len(ledger.holders()) == 2

    def test_events_returns_copy(self):
        ledger = make_live_ledger()
        events = ledger.events
        events.clear()
        assert len(ledger.events) > 0


class TestAllowance:
    """approve() / transfer_from()."""

    def test_approve(self):
        ledger = make_live_ledger()
        event = ledger.approve(OWNER, ALICE, 10)
        assert isinstance(event, ApprovalEvent)
        assert ledger.allowance(OWNER, ALICE) == 10

    def test_approve_overwrite(self):
        ledger = make_live_ledger()
        ledger.approve(OWNER, ALICE, 10)
        ledger.approve(OWNER, ALICE, 3)
        assert ledger.allowance(OWNER, ALICE) == 3

    def test_approve_while_paused_raises(self):
        ledger = make_ledger()
        with pytest.raises(LedgerPausedError):
            ledger.approve(OWNER, ALICE, 10)

    def test_transfer_from(self):
        ledger = make_live_ledger()
        ledger.approve(OWNER, ALICE, 10)
        event = ledger.transfer_from(ALICE, OWNER, BOB, 6)
        assert event.sender == OWNER
        assert event.recipient == BOB
        assert ledger.balance_of(BOB) == 6
        assert ledger.balance_of(OWNER) == 44
        assert ledger.allowance(OWNER, ALICE) == 4

    def test_transfer_from_exceeds_allowance(self):
        ledger = make_live_ledger()
        ledger.approve(OWNER, ALICE, 5)
        before = state_of(ledger)
        with pytest.raises(InsufficientAllowanceError):
            ledger.transfer_from(ALICE, OWNER, BOB, 6)
        assert state_of(ledger) == before

    def test_transfer_from_exceeds_balance(self):
        ledger = make_live_ledger()
        ledger.approve(OWNER, ALICE, 500)
        with pytest.raises(InsufficientBalanceError):
            ledger.transfer_from(ALICE, OWNER, BOB, 51)
        assert ledger.allowance(OWNER, ALICE) == 500

    def test_transfer_from_while_paused_raises(self):
        ledger = make_live_ledger()
        ledger.approve(OWNER, ALICE, 5)
        ledger.pause(OWNER)
        with pytest.raises(LedgerPausedError):
            ledger.transfer_from(ALICE, OWNER, BOB, 5)


# ══════════════════════════════════════════════════════════════════════
#  INVARIANTS & SNAPSHOTS
# ══════════════════════════════════════════════════════════════════════


class TestInvariants:
    """Conservation of circulating supply."""

    def test_supply_equals_sum_of_balances(self):
        ledger = make_live_ledger(mints={OWNER: 40, ALICE: 10})
        ledger.transfer(OWNER, BOB, 15)
        ledger.transfer(ALICE, CAROL, 10)
        ledger.transfer(BOB, OWNER, 5)
        total = sum(ledger.balance_of(a) for a in (OWNER, ALICE, BOB, CAROL))
        assert total == ledger.total_supply == 50
        ledger.check_invariants()

    def test_balance_may_reach_uint256_max(self):
        ledger = make_ledger(custody=0)
        ledger.mint(OWNER, ALICE, UINT256_MAX - 1)
        ledger.mint(OWNER, BOB, 1)
        ledger.unpause_and_lock(OWNER)
        ledger.transfer(BOB, ALICE, 1)
        assert ledger.balance_of(ALICE) == UINT256_MAX

    def test_amount_above_uint256_raises(self):
        ledger = make_live_ledger()
        with pytest.raises(LedgerOverflowError):
            ledger.transfer(OWNER, ALICE, UINT256_MAX + 1)


class TestSnapshot:
    """to_dict() / from_dict()."""

    def test_snapshot_roundtrip(self):
        ledger = make_live_ledger(mints={OWNER: 40, ALICE: 10})
        ledger.approve(ALICE, BOB, 3)
        ledger.propose(BRIDGE, CAROL)
        restored = Ledger.from_dict(ledger.to_dict())
        assert restored.to_dict() == ledger.to_dict()
        assert restored.minted is True
        assert restored.allowance(ALICE, BOB) == 3

    def test_snapshot_amounts_are_strings(self):
        ledger = make_live_ledger()
        d = ledger.to_dict()
        assert d["totalSupply"] == "50"
        assert d["bridgeBalance"] == "50"
        assert d["balances"] == {OWNER: "50"}

    def test_inconsistent_snapshot_raises(self):
        data = make_live_ledger().to_dict()
        data["totalSupply"] = "51"
        with pytest.raises(InvalidConfigurationError, match="Inconsistent"):
            Ledger.from_dict(data)

    def test_negative_balance_snapshot_raises(self):
        data = make_live_ledger().to_dict()
        data["balances"][ALICE] = "-5"
        data["totalSupply"] = "45"
        with pytest.raises(InvalidConfigurationError):
            Ledger.from_dict(data)

    def test_malformed_snapshot_raises(self):
        with pytest.raises(InvalidConfigurationError, match="Malformed"):
            Ledger.from_dict({"owner": OWNER})

    @pytest.mark.parametrize("key, value", [
        ("paused", "false"),
        ("minted", "true"),
        ("paused", 0),
    ])
    def test_non_boolean_flag_raises(self, key, value):
        data = make_live_ledger().to_dict()
        data[key] = value
        with pytest.raises(InvalidConfigurationError, match="boolean"):
            Ledger.from_dict(data)

    def test_summary(self):
        ledger = make_live_ledger(mints={OWNER: 40, ALICE: 10})
        s = ledger.summary()
        assert s["holders"] == 2
        assert s["totalSupply"] == 50
        assert s["minted"] is True
