"""
Tests for the money-movement engine: deposits, withdrawals and transfers.
"""

import pytest
from decimal import Decimal

from conftest import balance_of, open_account
from banking.core.errors import (
    AccountNotActive, AccountNotFound, CurrencyMismatch, Forbidden, InsufficientFunds,
    InvalidAmount, InvalidRequest, OperationTimeout, SameAccount,
)
from banking.core.retry import deadline_after
from banking.core.security import Caller
from banking.models import AccountStatus, Transaction, TransactionStatus, TransactionType
from banking.services import BankingServices


def history(services, caller, account_number):
    return services.history.history_by_number(account_number, caller, page_size=100).items


# ==================== DEPOSIT TESTS ====================

def test_basic_deposit(services, alice):
    """Deposit into an empty savings account."""
    account = open_account(services, alice, "0.00")

    entry = services.ledger.deposit(account.account_number, Decimal("100.00"), alice)

    assert entry.kind == TransactionType.DEPOSIT
    assert entry.amount == Decimal("100.00")
    assert entry.balance_after == Decimal("100.00")
    assert entry.status == TransactionStatus.SUCCESS
    assert entry.account_number == account.account_number
    assert balance_of(services, account.account_number) == Decimal("100.00")


@pytest.mark.parametrize("amount", ["0", "0.00", "-5.00", "1.001", "abc"])
def test_deposit_rejects_invalid_amounts(services, alice, amount):
    """Zero, negative, sub-cent and non-numeric amounts are invalid requests."""
    account = open_account(services, alice, "10.00")

    with pytest.raises(InvalidRequest):
        services.ledger.deposit(account.account_number, amount, alice)

    assert balance_of(services, account.account_number) == Decimal("10.00")
    assert history(services, alice, account.account_number) == []


def test_deposit_rejects_float(services, alice):
    """Binary floats are refused outright."""
    account = open_account(services, alice)

    with pytest.raises(InvalidAmount):
        services.ledger.deposit(account.account_number, 10.5, alice)


def test_deposit_accepts_strings_and_ints(services, alice):
    account = open_account(services, alice)

    services.ledger.deposit(account.account_number, "12.50", alice)
    services.ledger.deposit(account.account_number, 3, alice)

    assert balance_of(services, account.account_number) == Decimal("15.50")


def test_deposit_unknown_account(services, alice):
    with pytest.raises(AccountNotFound):
        services.ledger.deposit("ACC0000000000", Decimal("1.00"), alice)


# ==================== WITHDRAWAL TESTS ====================

def test_withdraw_to_zero(services, alice):
    """Withdrawing the whole balance leaves exactly 0.00."""
    account = open_account(services, alice)
    services.ledger.deposit(account.account_number, Decimal("100.00"), alice)

    entry = services.ledger.withdraw(account.account_number, Decimal("100.00"), alice)

    assert entry.kind == TransactionType.WITHDRAWAL
    assert entry.amount == Decimal("100.00")
    assert entry.balance_after == Decimal("0.00")
    assert balance_of(services, account.account_number) == Decimal("0.00")


def test_withdraw_one_penny_over_balance(services, alice):
    """Insufficient funds leaves the balance and the ledger untouched."""
    account = open_account(services, alice, "10.00")

    with pytest.raises(InsufficientFunds) as exc_info:
        services.ledger.withdraw(account.account_number, Decimal("10.01"), alice)

    assert "Insufficient funds" in exc_info.value.message
    assert balance_of(services, account.account_number) == Decimal("10.00")
    assert history(services, alice, account.account_number) == []


def test_deposit_then_withdraw_restores_balance(services, alice):
    account = open_account(services, alice, "25.00")

    services.ledger.deposit(account.account_number, Decimal("40.00"), alice)
    services.ledger.withdraw(account.account_number, Decimal("40.00"), alice)

    assert balance_of(services, account.account_number) == Decimal("25.00")
    rows = history(services, alice, account.account_number)
    assert len(rows) == 2
    assert all(row.status == TransactionStatus.SUCCESS for row in rows)


# ==================== TRANSFER TESTS ====================

def test_transfer_between_own_accounts(services, alice):
    """Transfer writes two TRANSFER rows and conserves the total."""
    source = open_account(services, alice, "500.00")
    destination = open_account(services, alice, "0.00", account_type="CHECKING")

    outbound, inbound = services.ledger.transfer(
        source.account_number, destination.account_number, Decimal("150.00"), alice
    )

    assert outbound.account_number == source.account_number
    assert inbound.account_number == destination.account_number
    assert outbound.kind == inbound.kind == TransactionType.TRANSFER
    assert outbound.amount == inbound.amount == Decimal("150.00")
    assert outbound.balance_after == Decimal("350.00")
    assert inbound.balance_after == Decimal("150.00")
    assert outbound.timestamp == inbound.timestamp
    assert outbound.description == f"Transfer to {destination.account_number}"
    assert inbound.description == f"Transfer from {source.account_number}"

    assert balance_of(services, source.account_number) == Decimal("350.00")
    assert balance_of(services, destination.account_number) == Decimal("150.00")


def test_transfer_to_another_customer(services, alice, bob):
    """The destination does not have to belong to the caller."""
    source = open_account(services, alice, "80.00")
    destination = open_account(services, bob, "0.00")

    services.ledger.transfer(source.account_number, destination.account_number, Decimal("30.00"), alice)

    assert balance_of(services, source.account_number) == Decimal("50.00")
    assert balance_of(services, destination.account_number) == Decimal("30.00")
    assert len(history(services, bob, destination.account_number)) == 1


def test_transfer_there_and_back(services, alice):
    a = open_account(services, alice, "100.00")
    b = open_account(services, alice, "20.00")

    services.ledger.transfer(a.account_number, b.account_number, Decimal("60.00"), alice)
    services.ledger.transfer(b.account_number, a.account_number, Decimal("60.00"), alice)

    assert balance_of(services, a.account_number) == Decimal("100.00")
    assert balance_of(services, b.account_number) == Decimal("20.00")
    rows = history(services, alice, a.account_number) + history(services, alice, b.account_number)
    assert len(rows) == 4
    assert all(row.kind == TransactionType.TRANSFER for row in rows)


def test_transfer_to_same_account(services, alice):
    account = open_account(services, alice, "100.00")

    with pytest.raises(SameAccount):
        services.ledger.transfer(account.account_number, account.account_number, Decimal("1.00"), alice)


def test_transfer_insufficient_funds(services, alice):
    source = open_account(services, alice, "100.00")
    destination = open_account(services, alice)

    with pytest.raises(InsufficientFunds):
        services.ledger.transfer(source.account_number, destination.account_number, Decimal("100.01"), alice)

    assert balance_of(services, source.account_number) == Decimal("100.00")
    assert balance_of(services, destination.account_number) == Decimal("0.00")
    assert history(services, alice, destination.account_number) == []


def test_transfer_to_missing_account(services, alice):
    source = open_account(services, alice, "100.00")

    with pytest.raises(AccountNotFound):
        services.ledger.transfer(source.account_number, "ACC0000000000", Decimal("1.00"), alice)

    assert balance_of(services, source.account_number) == Decimal("100.00")


def test_transfer_currency_mismatch(services, alice):
    dollars = open_account(services, alice, "100.00", currency="USD")
    euros = open_account(services, alice, "0.00", currency="EUR")

    with pytest.raises(CurrencyMismatch):
        services.ledger.transfer(dollars.account_number, euros.account_number, Decimal("10.00"), alice)


def test_decimal_precision_is_exact(services, alice):
    """Three transfers of 0.33 move exactly 0.99."""
    source = open_account(services, alice, "100.00")
    destination = open_account(services, alice)

    for _ in range(3):
        services.ledger.transfer(source.account_number, destination.account_number, Decimal("0.33"), alice)

    assert balance_of(services, source.account_number) == Decimal("99.01")
    assert balance_of(services, destination.account_number) == Decimal("0.99")


# ==================== ACCOUNT STATUS TESTS ====================

@pytest.mark.parametrize("status", [AccountStatus.FROZEN, AccountStatus.CLOSED])
def test_inactive_account_rejects_mutations(services, alice, status):
    account = open_account(services, alice, "50.00")
    other = open_account(services, alice, "50.00")
    services.accounts.set_status(account.id, status)

    with pytest.raises(AccountNotActive):
        services.ledger.deposit(account.account_number, Decimal("1.00"), alice)
    with pytest.raises(AccountNotActive):
        services.ledger.withdraw(account.account_number, Decimal("1.00"), alice)
    with pytest.raises(AccountNotActive):
        services.ledger.transfer(account.account_number, other.account_number, Decimal("1.00"), alice)
    with pytest.raises(AccountNotActive):
        services.ledger.transfer(other.account_number, account.account_number, Decimal("1.00"), alice)

    assert balance_of(services, account.account_number) == Decimal("50.00")
    assert balance_of(services, other.account_number) == Decimal("50.00")


def test_unfrozen_account_accepts_deposits_again(services, alice):
    account = open_account(services, alice)
    services.accounts.set_status(account.id, AccountStatus.FROZEN)
    services.accounts.set_status(account.id, AccountStatus.ACTIVE)

    services.ledger.deposit(account.account_number, Decimal("5.00"), alice)

    assert balance_of(services, account.account_number) == Decimal("5.00")


# ==================== OWNERSHIP TESTS ====================

def test_foreign_account_reads_as_missing(services, alice, bob):
    """Bob cannot touch Alice's account and cannot tell that it exists."""
    account = open_account(services, alice, "100.00")
    bobs = open_account(services, bob, "0.00")

    with pytest.raises(AccountNotFound):
        services.ledger.deposit(account.account_number, Decimal("10.00"), bob)
    with pytest.raises(AccountNotFound):
        services.ledger.withdraw(account.account_number, Decimal("10.00"), bob)
    with pytest.raises(AccountNotFound):
        services.ledger.transfer(account.account_number, bobs.account_number, Decimal("10.00"), bob)

    assert balance_of(services, account.account_number) == Decimal("100.00")
    assert history(services, alice, account.account_number) == []


def test_foreign_frozen_account_still_reads_as_missing(services, alice, bob):
    """Ownership is checked before status, so status is not leaked either."""
    account = open_account(services, alice, "100.00")
    services.accounts.set_status(account.id, AccountStatus.FROZEN)

    with pytest.raises(AccountNotFound):
        services.ledger.deposit(account.account_number, Decimal("10.00"), bob)


def test_reveal_forbidden_policy(session_factory, test_settings, alice):
    """Deployments may opt into an explicit Forbidden instead of NotFound."""
    revealing = BankingServices(session_factory, test_settings.model_copy(update={"REVEAL_FORBIDDEN": True}))
    intruder = revealing.identity.register("mallory", "s3cure-passw0rd", "mallory@example.com")
    account = open_account(revealing, alice, "100.00")

    with pytest.raises(Forbidden):
        revealing.ledger.withdraw(account.account_number, Decimal("1.00"), Caller(user_id=intruder.id))


# ==================== LEDGER INVARIANT TESTS ====================

def test_balance_after_chain(services, alice, bob):
    """Each row's balance_after equals the opening balance plus the signed effects so far."""
    account = open_account(services, alice, "200.00")
    other = open_account(services, bob, "300.00")

    services.ledger.deposit(account.account_number, Decimal("50.00"), alice)
    services.ledger.withdraw(account.account_number, Decimal("20.25"), alice)
    services.ledger.transfer(account.account_number, other.account_number, Decimal("100.00"), alice)
    services.ledger.transfer(other.account_number, account.account_number, Decimal("75.50"), bob)
    services.ledger.deposit(account.account_number, Decimal("0.01"), alice)

    rows = list(reversed(history(services, alice, account.account_number)))
    running = Decimal("200.00")
    for row in rows:
        if row.kind == TransactionType.DEPOSIT:
            running += row.amount
        elif row.kind == TransactionType.WITHDRAWAL:
            running -= row.amount
        elif row.description.startswith("Transfer to"):
            running -= row.amount
        else:
            running += row.amount
        assert row.balance_after == running
        assert row.balance_after >= 0

    assert running == balance_of(services, account.account_number) == Decimal("205.26")


def test_transfers_conserve_money(services, alice, bob):
    accounts = [open_account(services, alice, "1000.00") for _ in range(3)]
    accounts.append(open_account(services, bob, "1000.00"))
    numbers = [account.account_number for account in accounts]

    services.ledger.transfer(numbers[0], numbers[1], Decimal("100.00"), alice)
    services.ledger.transfer(numbers[1], numbers[2], Decimal("200.00"), alice)
    services.ledger.transfer(numbers[2], numbers[3], Decimal("150.00"), alice)
    services.ledger.transfer(numbers[3], numbers[0], Decimal("250.00"), bob)

    total = sum(balance_of(services, number) for number in numbers)
    assert total == Decimal("4000.00")


def test_ledger_rows_are_immutable(services, session_factory, alice):
    account = open_account(services, alice)
    entry = services.ledger.deposit(account.account_number, Decimal("10.00"), alice)

    with session_factory() as db:
        row = db.get(Transaction, entry.id)
        row.amount = Decimal("99.00")
        with pytest.raises(ValueError):
            db.commit()


# ==================== DEADLINE TESTS ====================

def test_expired_deadline_leaves_no_trace(services, alice):
    account = open_account(services, alice, "10.00")

    with pytest.raises(OperationTimeout):
        services.ledger.withdraw(account.account_number, Decimal("5.00"), alice, deadline=deadline_after(-1))

    assert balance_of(services, account.account_number) == Decimal("10.00")
    assert history(services, alice, account.account_number) == []
