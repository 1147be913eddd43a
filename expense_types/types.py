import datetime as dt
import logging
from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

from ledger.money import MONEY_TOLERANCE, ZERO

logger = logging.getLogger(__name__)


class SplitMethod(str, Enum):
    EQUALLY = "EQUALLY"
    PERCENTAGE = "PERCENTAGE"
    EXACT_AMOUNTS = "EXACT_AMOUNTS"
    SHARES = "SHARES"
    ITEMIZED = "ITEMIZED"
    TWO_PERSON = "TWO_PERSON"

    @classmethod
    def parse(cls, value) -> "SplitMethod":
        """Parse a method tag; anything unrecognized splits equally"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except (ValueError, AttributeError):
            logger.warning(f"Unknown split method {value!r}, defaulting to EQUALLY")
            return cls.EQUALLY


class FullOweSide(str, Enum):
    """Which side of a two-person expense owes the whole amount, seen from the creator"""
    YOU = "you"
    OTHER = "other"


class SettlementStatus(str, Enum):
    UNSETTLED = "UNSETTLED"
    PARTIALLY_SETTLED = "PARTIALLY_SETTLED"
    FULLY_SETTLED = "FULLY_SETTLED"


class BalanceDirection(str, Enum):
    OWED_TO_YOU = "OWED_TO_YOU"
    YOU_OWE = "YOU_OWE"
    SETTLED = "SETTLED"

    @classmethod
    def of(cls, balance: Decimal) -> "BalanceDirection":
        if balance > MONEY_TOLERANCE:
            return cls.OWED_TO_YOU
        if balance < -MONEY_TOLERANCE:
            return cls.YOU_OWE
        return cls.SETTLED


# Raw split inputs, one variant per method that needs one

class PercentSplit(BaseModel):
    kind: Literal["percent"] = "percent"
    percent: Decimal = Field(description="Percentage of the total this user owes")


class ExactSplit(BaseModel):
    kind: Literal["exact"] = "exact"
    amount: Decimal = Field(description="Exact amount this user owes")


class SharesSplit(BaseModel):
    kind: Literal["shares"] = "shares"
    weight: int = Field(ge=0, description="Integer weight of this user's share")


SplitInput = Annotated[Union[PercentSplit, ExactSplit, SharesSplit], Field(discriminator="kind")]


class Payer(BaseModel):
    user_id: str
    name: Optional[str] = None
    paid_amount: Decimal = Field(ge=0)

    class Config:
        from_attributes = True


class ParticipantInput(BaseModel):
    """A participant as supplied to the split calculator"""
    user_id: str
    name: Optional[str] = None
    split: Optional[SplitInput] = None

    class Config:
        frozen = True


class ClientParticipant(BaseModel):
    """Split values as the client computed them"""
    user_id: Optional[str] = None
    name: Optional[str] = None
    paid: Decimal = ZERO
    owes: Decimal = ZERO
    net: Decimal = ZERO


class Participant(BaseModel):
    user_id: str
    name: Optional[str] = None
    share: Decimal = ZERO
    paid: Decimal = ZERO
    net: Decimal = ZERO
    settled_amount: Decimal = ZERO
    fully_settled: bool = False

    class Config:
        from_attributes = True

    @property
    def owed(self) -> Decimal:
        return abs(self.net)

    @computed_field
    @property
    def status(self) -> SettlementStatus:
        if self.fully_settled:
            return SettlementStatus.FULLY_SETTLED
        if self.settled_amount > 0:
            return SettlementStatus.PARTIALLY_SETTLED
        return SettlementStatus.UNSETTLED


class ExpenseItem(BaseModel):
    name: str = ""
    amount: Decimal = Field(ge=0)
    user_shares: Dict[str, Decimal] = Field(default_factory=dict, description="user id -> fraction of this item")

    class Config:
        from_attributes = True

    @field_validator('user_shares')
    def validate_fractions(cls, v):
        if any(fraction < 0 for fraction in v.values()):
            raise ValueError("Item fractions cannot be negative")
        return v


class Expense(BaseModel):
    id: Optional[int] = None
    description: str = ""
    category: Optional[str] = None
    total_amount: Decimal = Field(ge=0)
    date: Optional[dt.date] = None
    notes: Optional[str] = None
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    split_method: SplitMethod = SplitMethod.EQUALLY
    payers: List[Payer] = Field(default_factory=list)
    participants: List[Participant] = Field(default_factory=list)
    items: List[ExpenseItem] = Field(default_factory=list)
    tax_rate: Decimal = ZERO
    tip_rate: Decimal = ZERO
    creator_id: Optional[str] = None
    creator_name: Optional[str] = None
    is_personal: bool = False
    is_settled: bool = False
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    version: int = 0

    class Config:
        from_attributes = True

    def find_participant(self, user_id: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.user_id == user_id), None)


# Balance netting outputs

class FriendBalance(BaseModel):
    counterparty_id: str
    counterparty_name: Optional[str] = None
    balance: Decimal
    direction: BalanceDirection
    shared_expenses: int = 0
    total_shared: Decimal = ZERO
    last_activity: Optional[dt.datetime] = None


class GroupBalance(BaseModel):
    group_id: str
    group_name: Optional[str] = None
    expense_count: int = 0
    total_group_spending: Decimal = ZERO
    your_contribution: Decimal = ZERO
    your_share: Decimal = ZERO
    your_balance: Decimal = ZERO
    direction: BalanceDirection = BalanceDirection.SETTLED


class BalanceOverview(BaseModel):
    total_owed_to_you: Decimal = ZERO
    total_you_owe: Decimal = ZERO
    net_balance: Decimal = ZERO
    unsettled_count: int = 0
    largest_balance: Decimal = ZERO
    largest_balance_with: Optional[str] = None


class PendingSettlement(BaseModel):
    counterparty_id: str
    counterparty_name: Optional[str] = None
    amount: Decimal
    description: str


class Dashboard(BaseModel):
    overview: BalanceOverview
    friend_balances: List[FriendBalance]
    group_balances: List[GroupBalance]
    pending_settlements: List[PendingSettlement]


# Request bodies

class ParticipantEntry(BaseModel):
    """One participant row from the client: raw split input plus its own computed values"""
    user_id: Optional[str] = None
    name: Optional[str] = None
    split: Optional[SplitInput] = None
    paid: Optional[Decimal] = None
    owes: Optional[Decimal] = None
    net: Optional[Decimal] = None


class CreateExpenseRequest(BaseModel):
    creator_id: str
    description: str = ""
    category: Optional[str] = "general"
    total_amount: Decimal = Field(default=ZERO, ge=0, description="Ignored for itemized expenses")
    date: Optional[dt.date] = None
    notes: Optional[str] = ""
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    split_method: str = SplitMethod.EQUALLY.value
    payers: List[Payer] = Field(default_factory=list)
    participants: List[ParticipantEntry] = Field(default_factory=list)
    items: List[ExpenseItem] = Field(default_factory=list)
    tax_rate: Decimal = Field(default=ZERO, ge=0)
    tip_rate: Decimal = Field(default=ZERO, ge=0)
    full_owe: Optional[str] = Field(default=None, description="'you' or 'other', two-person expenses only")
    is_personal: bool = False

    @field_validator('participants')
    def validate_participants(cls, v):
        if not v:
            raise ValueError("At least 1 participant required")
        return v


class SettleExpenseRequest(BaseModel):
    participant_user_id: str
    settle_amount: Decimal = ZERO
    settle_full_amount: bool = False
