from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from database.database import init_db, make_engine
from database.repository import ExpenseStore
from expense_types.types import CreateExpenseRequest, ExpenseItem, SplitMethod
from ledger.errors import ConcurrentModificationError, ExpenseNotFoundError
from ledger.service import ExpenseService
from ledger.settlement import settle_partial


def request(creator="alice", payer="alice", people=("alice", "bob"), total="60", **kwargs):
    return CreateExpenseRequest(
        creator_id=creator,
        description=kwargs.pop("description", "Groceries"),
        total_amount=Decimal(total),
        payers=[{"user_id": payer, "paid_amount": total}],
        participants=[{"user_id": user_id} for user_id in people],
        **kwargs,
    )


def test_add_and_get(service, store):
    created = service.create_expense(request(date=date(2024, 3, 1), group_id="flat", group_name="Flat"))

    assert created.id is not None
    assert created.version == 1
    assert created.created_at is not None

    loaded = store.get(created.id)
    assert loaded.description == "Groceries"
    assert loaded.date == date(2024, 3, 1)
    assert loaded.group_name == "Flat"
    assert loaded.split_method == SplitMethod.EQUALLY
    assert [p.user_id for p in loaded.participants] == ["alice", "bob"]
    assert [p.share for p in loaded.participants] == [Decimal("30.00"), Decimal("30.00")]
    assert loaded.payers[0].paid_amount == Decimal("60.00")


def test_items_survive_a_round_trip(service, store):
    created = service.create_expense(request(
        total="33",
        split_method="ITEMIZED",
        items=[ExpenseItem(name="pasta", amount=Decimal("30"), user_shares={"alice": Decimal("0.5"), "bob": Decimal("0.5")})],
        tax_rate=Decimal("10"),
    ))

    loaded = store.get(created.id)
    assert loaded.total_amount == Decimal("33.00")
    assert loaded.items[0].name == "pasta"
    assert loaded.items[0].user_shares == {"alice": Decimal("0.5"), "bob": Decimal("0.5")}
    assert loaded.tax_rate == Decimal("10")


def test_get_missing(store):
    with pytest.raises(ExpenseNotFoundError):
        store.get(404)


def test_delete(service, store):
    created = service.create_expense(request())
    store.delete(created.id)

    with pytest.raises(ExpenseNotFoundError):
        store.get(created.id)
    with pytest.raises(ExpenseNotFoundError):
        store.delete(created.id)


def test_involvement_filters(service, store):
    mine = service.create_expense(request(creator="alice", payer="bob", people=("bob", "carol")))
    paid = service.create_expense(request(creator="bob", payer="alice", people=("bob", "carol")))
    joined = service.create_expense(request(creator="bob", payer="bob", people=("alice", "bob")))
    service.create_expense(request(creator="bob", payer="bob", people=("bob", "carol")))

    def ids(involvement):
        return {e.id for e in store.expenses_for_user("alice", involvement)}

    assert ids("ALL") == {mine.id, paid.id, joined.id}
    assert ids("creator") == {mine.id}
    assert ids("PAYER") == {paid.id}
    assert ids("PARTICIPANT") == {joined.id}


def test_newest_first(service, store):
    first = service.create_expense(request())
    second = service.create_expense(request())
    assert [e.id for e in store.expenses_for_user("alice")] == [second.id, first.id]


def test_date_group_and_counterparty_filters(service, store):
    march = service.create_expense(request(date=date(2024, 3, 10), group_id="flat"))
    april = service.create_expense(request(date=date(2024, 4, 10), people=("alice", "carol")))

    in_march = store.expenses_for_user("alice", start=date(2024, 3, 1), end=date(2024, 3, 31))
    assert [e.id for e in in_march] == [march.id]

    assert [e.id for e in store.expenses_for_user("alice", group_id="flat")] == [march.id]
    assert [e.id for e in store.expenses_for_user("alice", counterparty_id="carol")] == [april.id]
    assert [e.id for e in store.expenses_for_group("flat")] == [march.id]


def test_save_settlement_bumps_version(service, store):
    created = service.create_expense(request())
    expense = store.get(created.id)
    settle_partial(expense, "bob", Decimal("10"))

    saved = store.save_settlement(expense)
    assert saved.version == created.version + 1
    assert saved.find_participant("bob").settled_amount == Decimal("10.00")
    assert saved.is_settled is False


def test_stale_copy_is_refused(service, store):
    created = service.create_expense(request())
    first = store.get(created.id)
    second = store.get(created.id)

    settle_partial(first, "bob", Decimal("10"))
    store.save_settlement(first)

    settle_partial(second, "bob", Decimal("30"))
    with pytest.raises(ConcurrentModificationError):
        store.save_settlement(second)

    assert store.get(created.id).find_participant("bob").settled_amount == Decimal("10.00")


def test_concurrent_sessions_conflict(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session_a, session_b = Session(), Session()

    try:
        store_a, store_b = ExpenseStore(session_a), ExpenseStore(session_b)
        created = ExpenseService(store_a).create_expense(request())

        seen_by_a = store_a.get(created.id)
        seen_by_b = store_b.get(created.id)

        settle_partial(seen_by_b, "bob")
        store_b.save_settlement(seen_by_b)

        settle_partial(seen_by_a, "bob", Decimal("5"))
        with pytest.raises(ConcurrentModificationError):
            store_a.save_settlement(seen_by_a)
    finally:
        session_a.close()
        session_b.close()
        engine.dispose()
