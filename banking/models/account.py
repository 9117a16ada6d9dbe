"""
Account database model.
Represents bank accounts in the system.
"""

import enum

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer,
    Numeric, String, event, inspect,
)

from banking.database import Base
from banking.models.user import utcnow


class AccountStatus(str, enum.Enum):
    """Account lifecycle states."""
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    FROZEN = "FROZEN"


class AccountType(str, enum.Enum):
    """Well-known account types. The ledger treats the stored type as opaque."""
    SAVINGS = "SAVINGS"
    CHECKING = "CHECKING"
    MONEY_MARKET = "MONEY_MARKET"


# Allowed lifecycle moves; CLOSED is terminal
STATUS_TRANSITIONS = {
    AccountStatus.ACTIVE: {AccountStatus.CLOSED, AccountStatus.FROZEN},
    AccountStatus.FROZEN: {AccountStatus.ACTIVE},
    AccountStatus.CLOSED: set(),
}

IMMUTABLE_ACCOUNT_COLUMNS = ("user_id", "account_number", "created_date")


class Account(Base):
    """
    Account table - stores bank account information.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_non_negative_balance"),
        Index("ix_accounts_user_status", "user_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    account_number = Column(String(20), unique=True, index=True, nullable=False)
    account_type = Column(String(50), nullable=False)
    balance = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(SQLEnum(AccountStatus), nullable=False, default=AccountStatus.ACTIVE)
    created_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_date = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Account(account_number={self.account_number}, user_id={self.user_id}, balance={self.balance})>"


@event.listens_for(Account, "before_update")
def reject_identity_change(mapper, connection, target):
    state = inspect(target)
    for column in IMMUTABLE_ACCOUNT_COLUMNS:
        if state.attrs[column].history.has_changes():
            raise ValueError(f"Account.{column} cannot change after insert")
