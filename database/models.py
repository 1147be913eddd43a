from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.database import Base

MONEY = Numeric(12, 2)
RATE = Numeric(7, 3)


class ExpenseRecord(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String, default="")
    category = Column(String, nullable=True)
    total_amount = Column(MONEY, nullable=False)
    date = Column(Date, nullable=True)
    notes = Column(String, nullable=True)
    group_id = Column(String, index=True, nullable=True)
    group_name = Column(String, nullable=True)
    split_method = Column(String, nullable=False)
    tax_rate = Column(RATE, default=0)
    tip_rate = Column(RATE, default=0)
    creator_id = Column(String, index=True)
    creator_name = Column(String, nullable=True)
    is_personal = Column(Boolean, default=False)
    is_settled = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    # Bumped on every UPDATE; a stale version makes the flush fail
    version = Column(Integer, nullable=False)

    # Relationships
    payers = relationship("PayerRecord", back_populates="expense", cascade="all, delete-orphan",
                          order_by="PayerRecord.id")
    participants = relationship("ParticipantRecord", back_populates="expense", cascade="all, delete-orphan",
                                order_by="ParticipantRecord.position")
    items = relationship("ExpenseItemRecord", back_populates="expense", cascade="all, delete-orphan",
                         order_by="ExpenseItemRecord.position")

    __mapper_args__ = {"version_id_col": version}


class PayerRecord(Base):
    __tablename__ = "payers"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), index=True)
    user_id = Column(String, index=True)
    name = Column(String, nullable=True)
    paid_amount = Column(MONEY, default=0)

    # Relationships
    expense = relationship("ExpenseRecord", back_populates="payers")


class ParticipantRecord(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), index=True)
    position = Column(Integer, default=0)  # Order the client submitted
    user_id = Column(String, index=True)
    name = Column(String, nullable=True)
    share = Column(MONEY, default=0)  # Amount this user owes
    paid = Column(MONEY, default=0)  # Amount this user paid
    net = Column(MONEY, default=0)
    settled_amount = Column(MONEY, default=0)
    fully_settled = Column(Boolean, default=False)

    # Relationships
    expense = relationship("ExpenseRecord", back_populates="participants")


class ExpenseItemRecord(Base):
    __tablename__ = "expense_items"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), index=True)
    position = Column(Integer, default=0)
    name = Column(String, default="")
    amount = Column(MONEY, default=0)
    user_shares = Column(JSON, default=dict)  # {user_id: fraction as string}

    # Relationships
    expense = relationship("ExpenseRecord", back_populates="items")
