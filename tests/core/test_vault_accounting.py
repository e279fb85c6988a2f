from __future__ import annotations

import pytest

from src.core.errors import (
    AllowanceExceededError,
    InsufficientBalanceError,
    ReentrancyError,
    ZeroAmountError,
    ZeroAssetsError,
    ZeroSharesError,
)
from src.core.events import Deposit, Withdraw
from src.core.vault_accounting import UNBOUNDED, VaultAccounting
from src.state.allowances import Allowance
from src.venues.ledger import InMemoryLedger


ASSET = "LP"
SHARE = "vLP"
VAULT = "vault"


def _vault(*, decimals: int = 18) -> tuple[InMemoryLedger, VaultAccounting]:
    ledger = InMemoryLedger()
    ledger.register_token(ASSET, decimals)
    ledger.register_token(SHARE, decimals)
    for account in ("alice", "bob"):
        ledger.mint(ASSET, account, 10_000)
        ledger.approve(ASSET, VAULT, Allowance.unlimited(), sender=account)
    return ledger, VaultAccounting(ledger=ledger, asset=ASSET, share_token=SHARE, address=VAULT)


def _donate(ledger: InMemoryLedger, amount: int) -> None:
    ledger.mint(ASSET, VAULT, amount)


def test_first_deposit_mints_one_to_one() -> None:
    ledger, vault = _vault()
    assert vault.deposit(1000, "alice", caller="alice") == 1000
    assert vault.balance_of("alice") == 1000
    assert vault.total_supply() == 1000
    assert vault.total_assets() == 1000
    assert ledger.balance_of(ASSET, "alice") == 9000
    assert list(vault.events) == [Deposit(caller="alice", owner="alice", assets=1000, shares=1000)]


def test_deposit_can_credit_another_receiver() -> None:
    ledger, vault = _vault()
    vault.deposit(400, "carol", caller="alice")
    assert vault.balance_of("carol") == 400
    assert vault.balance_of("alice") == 0
    assert vault.events.last() == Deposit(caller="alice", owner="carol", assets=400, shares=400)


def test_conversions_and_previews_round_for_the_vault() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 500)  # 1500 assets / 1000 shares

    assert vault.convert_to_shares(100) == 66
    assert vault.preview_deposit(100) == 66
    assert vault.preview_withdraw(100) == 67
    assert vault.convert_to_assets(1) == 1
    assert vault.preview_mint(1) == 2
    assert vault.preview_redeem(1) == 1


def test_equal_deposits_get_shares_inverse_to_price() -> None:
    ledger, vault = _vault()
    vault.deposit(300, "alice", caller="alice")
    _donate(ledger, 300)  # price doubles
    assert vault.deposit(300, "bob", caller="bob") == 150


def test_mint_charges_rounded_up_assets() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 500)
    assert vault.mint(201, "bob", caller="bob") == 302  # ceil(201 * 1.5)
    assert vault.balance_of("bob") == 201
    assert ledger.balance_of(ASSET, "bob") == 10_000 - 302


def test_withdraw_burns_rounded_up_shares() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 500)

    shares = vault.withdraw(100, "dave", "alice", caller="alice")
    assert shares == 67
    assert vault.balance_of("alice") == 933
    assert ledger.balance_of(ASSET, "dave") == 100
    assert vault.events.last() == Withdraw(caller="alice", receiver="dave", owner="alice", assets=100, shares=67)


def test_withdraw_one_unit_burns_at_least_one_share() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 9000)  # 10 assets per share
    assert vault.withdraw(1, "alice", "alice", caller="alice") == 1


def test_redeem_pays_rounded_down_assets() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 500)
    assert vault.redeem(3, "alice", "alice", caller="alice") == 4
    assert vault.total_supply() == 997


def test_zero_amount_rules() -> None:
    ledger, vault = _vault()
    with pytest.raises(ZeroSharesError):
        vault.deposit(0, "alice", caller="alice")
    with pytest.raises(ZeroAmountError):
        vault.mint(0, "alice", caller="alice")

    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 1000)  # 2 assets per share
    with pytest.raises(ZeroSharesError):
        vault.deposit(1, "bob", caller="bob")
    with pytest.raises(ZeroAmountError):
        vault.withdraw(0, "alice", "alice", caller="alice")
    with pytest.raises(ZeroAssetsError):
        vault.redeem(0, "alice", "alice", caller="alice")
    assert len(vault.events) == 1


def test_mint_costing_nothing_is_rejected() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    ledger.burn(ASSET, VAULT, 1000)
    ledger.mint(ASSET, VAULT, 1)  # 1 asset backs 1000 shares
    with pytest.raises(ValueError):
        vault.preview_mint(-1)
    assert vault.preview_mint(1) == 1
    ledger.burn(ASSET, VAULT, 1)
    with pytest.raises(ZeroAssetsError):
        vault.mint(1, "bob", caller="bob")
    with pytest.raises(ValueError, match="no assets"):
        vault.deposit(10, "bob", caller="bob")


def test_malformed_amounts_rejected_before_state_changes() -> None:
    ledger, vault = _vault()
    with pytest.raises(TypeError):
        vault.deposit(True, "alice", caller="alice")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        vault.deposit(-5, "alice", caller="alice")
    with pytest.raises(TypeError):
        vault.redeem(1.5, "alice", "alice", caller="alice")  # type: ignore[arg-type]
    assert vault.total_supply() == 0
    assert len(vault.events) == 0


def test_third_party_withdraw_needs_allowance() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    with pytest.raises(AllowanceExceededError):
        vault.redeem(10, "bob", "alice", caller="bob")

    ledger.approve(SHARE, "bob", Allowance.bounded(50), sender="alice")
    vault.redeem(30, "bob", "alice", caller="bob")
    assert ledger.allowance(SHARE, "alice", "bob") == Allowance.bounded(20)
    assert ledger.balance_of(ASSET, "bob") == 10_030
    with pytest.raises(AllowanceExceededError):
        vault.withdraw(21, "bob", "alice", caller="bob")
    assert ledger.allowance(SHARE, "alice", "bob") == Allowance.bounded(20)


def test_unlimited_share_allowance_is_never_decremented() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    ledger.approve(SHARE, "bob", Allowance.unlimited(), sender="alice")
    vault.withdraw(600, "bob", "alice", caller="bob")
    assert ledger.allowance(SHARE, "alice", "bob").is_unlimited


def test_failed_operation_leaves_no_trace() -> None:
    ledger, vault = _vault()
    ledger.approve(ASSET, VAULT, Allowance.bounded(10), sender="alice")
    with pytest.raises(AllowanceExceededError):
        vault.deposit(100, "alice", caller="alice")
    vault.deposit(10, "alice", caller="alice")
    with pytest.raises(InsufficientBalanceError):
        vault.redeem(11, "alice", "alice", caller="alice")
    assert vault.balance_of("alice") == 10
    assert vault.total_assets() == 10
    assert len(vault.events) == 1


def test_max_views() -> None:
    ledger, vault = _vault()
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 500)
    assert vault.max_deposit("alice") == UNBOUNDED
    assert vault.max_mint("alice") == UNBOUNDED
    assert vault.max_redeem("alice") == 1000
    assert vault.max_withdraw("alice") == 1500
    assert vault.max_redeem("nobody") == 0


def test_price_per_share_uses_asset_decimals() -> None:
    ledger, vault = _vault(decimals=6)
    assert vault.decimals() == 6
    assert vault.price_per_share() == 10**6
    vault.deposit(1000, "alice", caller="alice")
    _donate(ledger, 500)
    assert vault.price_per_share() == 1_500_000


def test_assets_arrive_before_shares_are_minted() -> None:
    ledger, vault = _vault()
    seen = []

    def observer(token, from_, to, amount):
        if token == ASSET and to == VAULT:
            seen.append((vault.total_assets(), vault.total_supply()))

    ledger.add_transfer_observer(observer)
    vault.deposit(700, "alice", caller="alice")
    assert seen == [(700, 0)]


def test_shares_are_burned_before_assets_leave() -> None:
    ledger, vault = _vault()
    vault.deposit(700, "alice", caller="alice")
    seen = []

    def observer(token, from_, to, amount):
        if token == ASSET and from_ == VAULT:
            seen.append((vault.balance_of("alice"), vault.total_supply()))

    ledger.add_transfer_observer(observer)
    vault.redeem(200, "alice", "alice", caller="alice")
    assert seen == [(500, 500)]


def test_nested_call_from_a_transfer_is_rejected() -> None:
    ledger, vault = _vault()
    vault.deposit(500, "bob", caller="bob")
    attempts = []

    def observer(token, from_, to, amount):
        if token == ASSET and to == VAULT:
            assert vault.in_operation
            try:
                vault.redeem(500, "bob", "bob", caller="bob")
            except ReentrancyError as exc:
                attempts.append(exc.code)

    ledger.add_transfer_observer(observer)
    vault.deposit(100, "alice", caller="alice")
    assert attempts == ["reentrancy"]
    assert vault.balance_of("bob") == 500
    assert not vault.in_operation


def test_reentrancy_that_escapes_rolls_back_the_outer_call() -> None:
    ledger, vault = _vault()

    def observer(token, from_, to, amount):
        if token == ASSET and to == VAULT:
            vault.deposit(1, "bob", caller="bob")

    ledger.add_transfer_observer(observer)
    with pytest.raises(ReentrancyError):
        vault.deposit(100, "alice", caller="alice")
    assert ledger.balance_of(ASSET, "alice") == 10_000
    assert vault.total_supply() == 0
    assert len(vault.events) == 0
