import uuid

from sqlalchemy import (
    Column,
    ForeignKey,
    String,
    Numeric,
    Boolean,
    Date,
    TIMESTAMP,
    Text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ledger_assistant.core.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def company_fk():
    return Column(
        String,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


# =========================
# Company (tenant)
# =========================
class Company(Base):
    __tablename__ = "companies"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    base_currency = Column(String, nullable=False, default="MYR")

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    users = relationship(
        "User",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =========================
# User
# =========================
class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)

    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, server_default="user")

    company_id = company_fk()

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    company = relationship("Company", back_populates="users")


# =========================
# Contact (customers and vendors)
# =========================
class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String, primary_key=True, default=new_id)
    code = Column(String)
    name = Column(String, nullable=False)
    email = Column(String)
    phone = Column(String)
    address = Column(Text)
    type = Column(String, nullable=False, default="CUSTOMER")  # CUSTOMER/VENDOR/BOTH
    credit_terms = Column(String)  # "Net 30"
    credit_limit = Column(Numeric(14, 2))

    company_id = company_fk()


# =========================
# Account (chart of accounts)
# =========================
class Account(Base):
    __tablename__ = "accounts"

    id = Column(String, primary_key=True, default=new_id)
    code = Column(String, nullable=False)  # "4000" revenue, "5000" COGS, ...
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # ASSET/LIABILITY/EQUITY/REVENUE/EXPENSE
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)

    company_id = company_fk()


# =========================
# Invoice
# =========================
class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True, default=new_id)
    invoice_no = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    due_date = Column(Date)

    contact_id = Column(
        String, ForeignKey("contacts.id", ondelete="SET NULL"), index=True
    )

    status = Column(String, nullable=False, default="DRAFT")
    doc_type = Column(String, nullable=False, default="INVOICE")

    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax_total = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(Text)

    company_id = company_fk()

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    lines = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )


class InvoiceLine(Base):
    """
    Invoice line items.
    company_id is copied from the parent invoice so every table the
    assistant can read is filtered by the same tenant column.
    """

    __tablename__ = "invoice_lines"

    id = Column(String, primary_key=True, default=new_id)
    invoice_id = Column(
        String,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    item_name = Column(String)
    item_code = Column(String)
    description = Column(Text)
    quantity = Column(Numeric(14, 4), nullable=False, default=1)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(5, 2), nullable=False, default=0)  # percent 0-100
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)  # percent 0-100
    amount = Column(Numeric(14, 2), nullable=False, default=0)

    company_id = company_fk()

    invoice = relationship("Invoice", back_populates="lines")


# =========================
# Journal
# =========================
class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(String, primary_key=True, default=new_id)
    entry_no = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text)
    reference = Column(String)

    company_id = company_fk()

    lines = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
    )


class JournalLine(Base):
    __tablename__ = "journal_lines"

    id = Column(String, primary_key=True, default=new_id)
    journal_entry_id = Column(
        String,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id = Column(
        String, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False
    )
    description = Column(Text)
    debit = Column(Numeric(14, 2), nullable=False, default=0)
    credit = Column(Numeric(14, 2), nullable=False, default=0)

    company_id = company_fk()

    entry = relationship("JournalEntry", back_populates="lines")
