"""
Transaction database model.
Represents one ledger entry against one account.
"""

import enum

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer,
    Numeric, String, event,
)

from banking.database import Base
from banking.models.user import utcnow


class TransactionType(str, enum.Enum):
    """Kinds of balance effect."""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"


class TransactionStatus(str, enum.Enum):
    """Transaction outcome states."""
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"


class Transaction(Base):
    """
    Transaction table - append-only ledger rows.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    kind = Column(SQLEnum(TransactionType), nullable=False)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    balance_after = Column(Numeric(precision=15, scale=2), nullable=False)
    description = Column(String(500), nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    status = Column(SQLEnum(TransactionStatus), nullable=False, default=TransactionStatus.SUCCESS)

    def __repr__(self):
        return f"<Transaction(id={self.id}, account_id={self.account_id}, kind={self.kind}, amount={self.amount})>"


# History pages read newest first per account
Index("ix_transactions_account_timestamp", Transaction.account_id, Transaction.timestamp.desc())


@event.listens_for(Transaction, "before_update")
def reject_ledger_update(mapper, connection, target):
    raise ValueError(f"Transaction {target.id} is immutable")
