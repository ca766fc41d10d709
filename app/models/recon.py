"""SQLAlchemy models for the budget ledger and reconciliation."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class RecurringTransaction(Base):
    """Template for a periodic expected cash flow."""

    __tablename__ = "recurring_transactions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Recurrence rule
    frequency: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # daily, weekly, biweekly, monthly, quarterly, yearly
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    day_of_month: Mapped[int | None] = mapped_column(Integer)
    day_of_week: Mapped[int | None] = mapped_column(Integer)  # Monday = 0
    month_of_year: Mapped[int | None] = mapped_column(Integer)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Ownership
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default="shared")  # shared, personal
    owner_user_id: Mapped[UUID | None] = mapped_column(Uuid)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    exceptions: Mapped[list["RecurringTransactionException"]] = relationship(
        "RecurringTransactionException",
        back_populates="recurring_transaction",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    reconciliation_matches: Mapped[list["ReconciliationMatch"]] = relationship(
        "ReconciliationMatch", back_populates="recurring_transaction", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_recurring_active", "is_active"),)

    def __repr__(self) -> str:
        return f"<RecurringTransaction {self.id} {self.description} {self.amount} {self.currency}>"


class RecurringTransactionException(Base):
    """Skip or modify override for one occurrence of a recurring transaction."""

    __tablename__ = "recurring_transaction_exceptions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    recurring_transaction_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("recurring_transactions.id", ondelete="CASCADE"), nullable=False
    )
    original_date: Mapped[date] = mapped_column(Date, nullable=False)
    exception_type: Mapped[str] = mapped_column(String(20), nullable=False)  # skipped, modified

    # NULL = use the series value
    modified_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    modified_description: Mapped[str | None] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    recurring_transaction: Mapped["RecurringTransaction"] = relationship(
        "RecurringTransaction", back_populates="exceptions"
    )

    __table_args__ = (
        UniqueConstraint(
            "recurring_transaction_id", "original_date", name="uq_recurring_exception_date"
        ),
    )

    def __repr__(self) -> str:
        return f"<RecurringTransactionException {self.original_date} {self.exception_type}>"


class Transaction(Base):
    """Imported ledger transaction."""

    __tablename__ = "transactions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)

    # Link to the recurring instance this transaction settles
    recurring_transaction_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("recurring_transactions.id", ondelete="SET NULL")
    )
    recurring_instance_date: Mapped[date | None] = mapped_column(Date)

    # Unannotated: the attribute name shadows datetime.date in the class body
    date = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    reconciliation_matches: Mapped[list["ReconciliationMatch"]] = relationship(
        "ReconciliationMatch", back_populates="transaction", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_transactions_date", "date"),
        Index("idx_transactions_account", "account_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.date} {self.amount} {self.currency}>"


class ReconciliationMatch(Base):
    """Proposed or decided pairing of a transaction with a recurring instance."""

    __tablename__ = "reconciliation_matches"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    imported_transaction_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    recurring_transaction_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("recurring_transactions.id", ondelete="CASCADE"), nullable=False
    )
    recurring_instance_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Scoring
    confidence_score: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    amount_variance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    date_offset_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Decision state
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="suggested"
    )  # suggested, auto_matched, accepted, rejected
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="auto")  # auto, manual

    # Ownership
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default="shared")
    owner_user_id: Mapped[UUID | None] = mapped_column(Uuid)

    # Timestamps
    created_at_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    transaction: Mapped["Transaction"] = relationship(
        "Transaction", back_populates="reconciliation_matches"
    )
    recurring_transaction: Mapped["RecurringTransaction"] = relationship(
        "RecurringTransaction", back_populates="reconciliation_matches"
    )

    __table_args__ = (
        UniqueConstraint(
            "imported_transaction_id",
            "recurring_transaction_id",
            "recurring_instance_date",
            name="uq_recon_match_triple",
        ),
        Index("idx_recon_match_status", "status"),
        Index("idx_recon_match_instance", "recurring_transaction_id", "recurring_instance_date"),
    )

    def __repr__(self) -> str:
        return f"<ReconciliationMatch {self.id} {self.status} {self.confidence_score}>"
