"""
SQLAlchemy-backed store for expenses.

Settlement writes go through save_settlement, which relies on the expense
row's version column: if another request settled the same expense since it
was loaded, the write is refused with ConcurrentModificationError.
"""
import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from database.models import ExpenseItemRecord, ExpenseRecord, ParticipantRecord, PayerRecord
from expense_types.types import Expense
from ledger.errors import ConcurrentModificationError, ExpenseNotFoundError, ParticipantNotFoundError

logger = logging.getLogger(__name__)


def to_domain(record: ExpenseRecord) -> Expense:
    return Expense.model_validate(record)


def to_record(expense: Expense) -> ExpenseRecord:
    record = ExpenseRecord(
        description=expense.description,
        category=expense.category,
        total_amount=expense.total_amount,
        date=expense.date,
        notes=expense.notes,
        group_id=expense.group_id,
        group_name=expense.group_name,
        split_method=expense.split_method.value,
        tax_rate=expense.tax_rate,
        tip_rate=expense.tip_rate,
        creator_id=expense.creator_id,
        creator_name=expense.creator_name,
        is_personal=expense.is_personal,
        is_settled=expense.is_settled,
    )
    record.payers = [
        PayerRecord(user_id=p.user_id, name=p.name, paid_amount=p.paid_amount)
        for p in expense.payers
    ]
    record.participants = [
        ParticipantRecord(
            position=position,
            user_id=p.user_id,
            name=p.name,
            share=p.share,
            paid=p.paid,
            net=p.net,
            settled_amount=p.settled_amount,
            fully_settled=p.fully_settled,
        )
        for position, p in enumerate(expense.participants)
    ]
    record.items = [
        ExpenseItemRecord(
            position=position,
            name=item.name,
            amount=item.amount,
            user_shares={user_id: str(fraction) for user_id, fraction in item.user_shares.items()},
        )
        for position, item in enumerate(expense.items)
    ]
    return record


class ExpenseStore:
    def __init__(self, db: Session):
        self.db = db

    def _get_record(self, expense_id: int, for_update: bool = False) -> ExpenseRecord:
        query = self.db.query(ExpenseRecord).filter(ExpenseRecord.id == expense_id)
        if for_update:
            # Row lock where the backend supports it (ignored by SQLite)
            query = query.with_for_update()
        record = query.first()
        if record is None:
            raise ExpenseNotFoundError(expense_id)
        return record

    def add(self, expense: Expense) -> Expense:
        """Persist a newly split expense"""
        record = to_record(expense)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Expense saved with id={record.id}, total_amount={record.total_amount}")
        return to_domain(record)

    def get(self, expense_id: int) -> Expense:
        return to_domain(self._get_record(expense_id))

    def delete(self, expense_id: int):
        record = self._get_record(expense_id)
        self.db.delete(record)
        self.db.commit()
        logger.info(f"Expense {expense_id} deleted")

    def save_settlement(self, expense: Expense) -> Expense:
        """Write settlement state back, refusing if the expense changed since it was loaded"""
        record = self._get_record(expense.id, for_update=True)
        if record.version != expense.version:
            logger.warning(f"Expense {expense.id} is at version {record.version}, settlement was based on {expense.version}")
            self.db.rollback()
            raise ConcurrentModificationError(expense.id)

        by_user = {p.user_id: p for p in expense.participants}
        for row in record.participants:
            participant = by_user.get(row.user_id)
            if participant is None:
                self.db.rollback()
                raise ParticipantNotFoundError(row.user_id, expense.id)
            row.settled_amount = participant.settled_amount
            row.fully_settled = participant.fully_settled

        record.is_settled = expense.is_settled
        # Touch the row so the version check runs even if is_settled is unchanged
        record.updated_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Lost settlement race on expense {expense.id}")
            raise ConcurrentModificationError(expense.id)

        self.db.refresh(record)
        return to_domain(record)

    def expenses_for_user(
        self,
        user_id: str,
        involvement: str = "ALL",
        start: Optional[date] = None,
        end: Optional[date] = None,
        counterparty_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> List[Expense]:
        """Expenses the user created, paid for or takes part in, newest first"""
        as_creator = ExpenseRecord.creator_id == user_id
        as_payer = ExpenseRecord.payers.any(PayerRecord.user_id == user_id)
        as_participant = ExpenseRecord.participants.any(ParticipantRecord.user_id == user_id)

        involvement = (involvement or "ALL").upper()
        if involvement == "CREATOR":
            condition = as_creator
        elif involvement == "PAYER":
            condition = as_payer
        elif involvement == "PARTICIPANT":
            condition = as_participant
        else:
            condition = or_(as_creator, as_payer, as_participant)

        query = self.db.query(ExpenseRecord).filter(condition)

        if start is not None:
            query = query.filter(ExpenseRecord.date >= start)
        if end is not None:
            query = query.filter(ExpenseRecord.date <= end)
        if group_id is not None:
            query = query.filter(ExpenseRecord.group_id == group_id)
        if counterparty_id is not None:
            query = query.filter(or_(
                ExpenseRecord.creator_id == counterparty_id,
                ExpenseRecord.payers.any(PayerRecord.user_id == counterparty_id),
                ExpenseRecord.participants.any(ParticipantRecord.user_id == counterparty_id),
            ))

        records = query.order_by(ExpenseRecord.created_at.desc(), ExpenseRecord.id.desc()).all()
        return [to_domain(r) for r in records]

    def expenses_for_group(self, group_id: str) -> List[Expense]:
        records = self.db.query(ExpenseRecord).filter(
            ExpenseRecord.group_id == group_id
        ).order_by(ExpenseRecord.created_at.desc(), ExpenseRecord.id.desc()).all()
        return [to_domain(r) for r in records]
