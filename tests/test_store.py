from datetime import date, timezone

import pytest

from models import Customer, Expense
from store import UNIQUE_VIOLATION, StoreError


def test_select_filters_and_orders(store, make_expense):
  make_expense(10, date(2024, 1, 31))
  make_expense(20, date(2024, 2, 1))
  make_expense(30, date(2024, 2, 29))
  make_expense(40, date(2024, 3, 1))

  rows = store.select(
    Expense,
    gte={"expense_date": date(2024, 2, 1)},
    lt={"expense_date": date(2024, 3, 1)},
    order_by="expense_date",
    descending=True,
  )
  assert [e.amount for e in rows] == [30, 20]


def test_count_with_filters(store, make_customer):
  make_customer(registered_on=date(2024, 1, 1))
  make_customer(registered_on=date(2024, 5, 1))
  assert store.count(Customer) == 2
  assert store.count(Customer, lte={"registered_on": date(2024, 4, 30)}) == 1
  assert store.count(Customer, eq={"phone": "nope"}) == 0


def test_unique_violation_carries_conflict_code(store, make_customer):
  make_customer(phone="0811")
  with pytest.raises(StoreError) as exc:
    make_customer(phone="0811")
  assert exc.value.code == UNIQUE_VIOLATION
  assert exc.value.is_conflict
  # session is usable again after the rollback
  assert store.count(Customer) == 1


def test_update_and_delete_missing_rows(store, make_customer):
  c = make_customer()
  assert store.update(Customer, 999, {"name": "x"}) is None
  assert store.delete(Customer, 999) is False
  assert store.update(Customer, c.id, {"name": "Renamed"}).name == "Renamed"
  assert store.delete(Customer, c.id) is True
  assert store.get(Customer, c.id) is None


def test_not_null_failure_is_not_a_conflict(store):
  with pytest.raises(StoreError) as exc:
    store.insert(Expense(category="ISP", amount=None, expense_date=date(2024, 1, 1)))
  assert not exc.value.is_conflict


def test_timestamps_are_timezone_aware(store):
  fresh = Customer(name="Tz", phone="0810", registered_on=date(2024, 1, 1))
  assert fresh.created_at.tzinfo is timezone.utc
  assert Customer.__table__.c.created_at.type.timezone is True

  saved = store.insert(fresh)
  assert saved.id is not None
  updated = store.update(Customer, saved.id, {"name": "Tz 2"})
  assert updated.name == "Tz 2"
  assert store.count(Customer) == 1
