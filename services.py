# services.py
"""
Record operations used by the routes. Each mutating call returns an
OpResult instead of raising, so callers never see store exceptions.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from auth import AuthContext
from models import Customer, Expense, ExpenseCategory, Payment, PaymentStatus, UserSettings, utc_now
from schemas import (
  CustomerIn, CustomerUpdate, ExpenseIn, ExpenseUpdate, OpResult,
  PaymentIn, PaymentUpdate, SettingsUpdate,
)
from store import RecordStore, StoreError

logger = logging.getLogger(__name__)

PHONE_TAKEN = "This phone number is already registered. Please use a different phone number."


def _match(q: str, *values: str) -> bool:
  ql = q.strip().lower()
  return any(ql in (v or "").lower() for v in values)


def _failed(e: StoreError, conflict_message: Optional[str] = None) -> OpResult:
  if e.is_conflict and conflict_message:
    return OpResult(success=False, error=conflict_message, reason="conflict")
  return OpResult(success=False, error=e.message, reason="store")


def _not_found(what: str, row_id: Any) -> OpResult:
  return OpResult(success=False, error=f"{what} {row_id} not found", reason="not_found")


# customers

def get_customer(store: RecordStore, customer_id: int) -> OpResult:
  try:
    customer = store.get(Customer, customer_id)
  except StoreError as e:
    return _failed(e)
  if customer is None:
    return _not_found("Customer", customer_id)
  return OpResult(success=True, data=customer)


def list_customers(store: RecordStore, q: Optional[str] = None) -> List[Customer]:
  rows = store.select(Customer, order_by=["created_at", "id"], descending=True)
  if not q:
    return rows
  return [r for r in rows if _match(q, r.name, r.phone, r.address, r.package)]


def add_customer(store: RecordStore, data: CustomerIn) -> OpResult:
  try:
    customer = store.insert(Customer(**data.model_dump()))
  except StoreError as e:
    return _failed(e, PHONE_TAKEN)
  logger.info(f"Customer added: {customer.id} {customer.name}")
  return OpResult(success=True, data=customer)


def update_customer(store: RecordStore, customer_id: int, data: CustomerUpdate) -> OpResult:
  try:
    customer = store.update(Customer, customer_id, data.model_dump(exclude_none=True))
  except StoreError as e:
    return _failed(e, PHONE_TAKEN)
  if customer is None:
    return _not_found("Customer", customer_id)
  return OpResult(success=True, data=customer)


def delete_customer(store: RecordStore, customer_id: int) -> OpResult:
  try:
    deleted = store.delete(Customer, customer_id)
  except StoreError as e:
    return _failed(e)
  if not deleted:
    return _not_found("Customer", customer_id)
  logger.info(f"Customer deleted: {customer_id}")
  return OpResult(success=True)


# payments

def get_payment(store: RecordStore, payment_id: int) -> OpResult:
  try:
    payment = store.get(Payment, payment_id)
  except StoreError as e:
    return _failed(e)
  if payment is None:
    return _not_found("Payment", payment_id)
  return OpResult(success=True, data=payment)


def _payment_view(p: Payment, customer: Optional[Customer]) -> Dict[str, Any]:
  row = p.model_dump()
  row["customer"] = (
    {"id": customer.id, "name": customer.name, "phone": customer.phone, "package": customer.package}
    if customer else None
  )
  return row


def list_payments(
  store: RecordStore,
  q: Optional[str] = None,
  status: Optional[PaymentStatus] = None,
) -> List[Dict[str, Any]]:
  eq = {"status": status.value} if status else None
  payments = store.select(Payment, eq=eq, order_by=["created_at", "id"], descending=True)
  customers = {c.id: c for c in store.select(Customer)}
  rows = []
  for p in payments:
    owner = customers.get(p.customer_id)
    if q and not (owner and _match(q, owner.name, owner.phone)):
      continue
    rows.append(_payment_view(p, owner))
  return rows


def add_payment(store: RecordStore, data: PaymentIn, today: date) -> OpResult:
  try:
    if store.get(Customer, data.customer_id) is None:
      return _not_found("Customer", data.customer_id)
    values = data.model_dump()
    values["status"] = data.status.value
    if data.status is PaymentStatus.PAID and data.paid_on is None:
      values["paid_on"] = today
    payment = store.insert(Payment(**values))
  except StoreError as e:
    return _failed(e)
  logger.info(f"Payment added: {payment.id} customer={payment.customer_id} {payment.month}/{payment.year}")
  return OpResult(success=True, data=payment)


def update_payment(store: RecordStore, payment_id: int, data: PaymentUpdate) -> OpResult:
  try:
    payment = store.update(Payment, payment_id, data.model_dump(exclude_unset=True))
  except StoreError as e:
    return _failed(e)
  if payment is None:
    return _not_found("Payment", payment_id)
  return OpResult(success=True, data=payment)


def change_payment_status(
  store: RecordStore,
  payment_id: int,
  status: PaymentStatus,
  today: date,
  paid_on: Optional[date] = None,
) -> OpResult:
  """Paid always stamps today's date; other statuses store `paid_on` as given."""
  updates = {
    "status": status.value,
    "paid_on": today if status is PaymentStatus.PAID else paid_on,
  }
  try:
    payment = store.update(Payment, payment_id, updates)
  except StoreError as e:
    return _failed(e)
  if payment is None:
    return _not_found("Payment", payment_id)
  logger.info(f"Payment {payment_id} status -> {status.value}")
  return OpResult(success=True, data=payment)


def delete_payment(store: RecordStore, payment_id: int) -> OpResult:
  try:
    deleted = store.delete(Payment, payment_id)
  except StoreError as e:
    return _failed(e)
  if not deleted:
    return _not_found("Payment", payment_id)
  return OpResult(success=True)


# expenses

def list_expenses(store: RecordStore, category: Optional[ExpenseCategory] = None) -> List[Expense]:
  eq = {"category": category.value} if category else None
  return store.select(Expense, eq=eq, order_by=["created_at", "id"], descending=True)


def add_expense(store: RecordStore, data: ExpenseIn) -> OpResult:
  values = data.model_dump()
  values["category"] = data.category.value
  try:
    expense = store.insert(Expense(**values))
  except StoreError as e:
    return _failed(e)
  logger.info(f"Expense added: {expense.id} {expense.category} {expense.amount}")
  return OpResult(success=True, data=expense)


def update_expense(store: RecordStore, expense_id: int, data: ExpenseUpdate) -> OpResult:
  updates = data.model_dump(exclude_none=True)
  if updates.get("category") is not None:
    updates["category"] = ExpenseCategory(updates["category"]).value
  try:
    expense = store.update(Expense, expense_id, updates)
  except StoreError as e:
    return _failed(e)
  if expense is None:
    return _not_found("Expense", expense_id)
  return OpResult(success=True, data=expense)


def delete_expense(store: RecordStore, expense_id: int) -> OpResult:
  try:
    deleted = store.delete(Expense, expense_id)
  except StoreError as e:
    return _failed(e)
  if not deleted:
    return _not_found("Expense", expense_id)
  return OpResult(success=True)


# settings

def get_settings(store: RecordStore, ctx: AuthContext) -> OpResult:
  """The user's settings row, created with defaults on first read."""
  try:
    rows = store.select(UserSettings, eq={"user_id": ctx.user_id})
    if rows:
      return OpResult(success=True, data=rows[0])
    settings = store.insert(UserSettings(user_id=ctx.user_id))
  except StoreError as e:
    return _failed(e)
  logger.info(f"Default settings created for user {ctx.user_id}")
  return OpResult(success=True, data=settings)


def update_settings(store: RecordStore, ctx: AuthContext, data: SettingsUpdate) -> OpResult:
  current = get_settings(store, ctx)
  if not current.success:
    return current
  updates = data.model_dump(exclude_none=True)
  updates["updated_at"] = utc_now()
  try:
    settings = store.update(UserSettings, current.data.id, updates)
  except StoreError as e:
    return _failed(e)
  return OpResult(success=True, data=settings)
