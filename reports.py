# reports.py
"""
Monthly income/expense reconciliation.

For a (month, year) pair the aggregator reads that month's payments and
expenses plus the number of customers registered by the end of the month,
and reduces them into a MonthlyReport. A year report is twelve of those,
computed in month order.
"""
import calendar
import logging
from datetime import MAXYEAR, date
from typing import List, Optional, Tuple

from models import Customer, Expense, Payment, PaymentStatus
from schemas import ChartPoint, MonthlyReport, ReportResult, StatusCounts
from store import RecordStore, StoreError

logger = logging.getLogger(__name__)

MONTH_NAMES = [
  "January", "February", "March", "April", "May", "June",
  "July", "August", "September", "October", "November", "December",
]
MONTH_ABBR = [name[:3] for name in MONTH_NAMES]

_BUCKETS = {
  PaymentStatus.PAID: "paid",
  PaymentStatus.UNPAID: "unpaid",
  PaymentStatus.OVERDUE: "overdue",
  PaymentStatus.FREE: "free",
}


def _check_month(month: int) -> None:
  if not 1 <= month <= 12:
    raise ValueError(f"month must be between 1 and 12, got {month}")


def month_bounds(year: int, month: int) -> Tuple[date, Optional[date]]:
  """Half-open [first day, first day of next month) interval.

  December of the last representable year has no next month; its end is None.
  """
  _check_month(month)
  start = date(year, month, 1)
  if month < 12:
    return start, date(year, month + 1, 1)
  if year >= MAXYEAR:
    return start, None
  return start, date(year + 1, 1, 1)


def last_day_of_month(year: int, month: int) -> date:
  _check_month(month)
  return date(year, month, calendar.monthrange(year, month)[1])


def count_statuses(payments) -> StatusCounts:
  counts = StatusCounts()
  for p in payments:
    status = PaymentStatus.parse(p.status)
    if status is None:
      continue
    field = _BUCKETS[status]
    setattr(counts, field, getattr(counts, field) + 1)
  return counts


def paid_income(payments) -> int:
  return sum(p.amount or 0 for p in payments if PaymentStatus.parse(p.status) is PaymentStatus.PAID)


def month_expenses(store: RecordStore, year: int, month: int) -> int:
  start, end = month_bounds(year, month)
  lt = {"expense_date": end} if end else None
  rows = store.select(Expense, gte={"expense_date": start}, lt=lt)
  return sum(e.amount or 0 for e in rows)


def aggregate_month(store: RecordStore, year: int, month: int) -> MonthlyReport:
  """Reduce one month. Read-only; store failures raise StoreError."""
  _check_month(month)
  payments = store.select(Payment, eq={"month": month, "year": year})
  income = paid_income(payments)
  expenses = month_expenses(store, year, month)
  customers = store.count(Customer, lte={"registered_on": last_day_of_month(year, month)})

  return MonthlyReport(
    month=MONTH_NAMES[month - 1],
    month_number=month,
    year=year,
    income=income,
    expenses=expenses,
    profit=income - expenses,
    customers=customers,
    payments=count_statuses(payments),
  )


def build_year_report(store: RecordStore, year: int) -> ReportResult:
  try:
    reports = [aggregate_month(store, year, month) for month in range(1, 13)]
  except StoreError as e:
    logger.error(f"Year report {year} failed: {e.message}")
    return ReportResult(success=False, year=year, error=e.message)

  total_income = sum(r.income for r in reports)
  total_expenses = sum(r.expenses for r in reports)
  logger.info(f"Year report {year}: income={total_income} expenses={total_expenses}")
  return ReportResult(
    success=True,
    year=year,
    reports=reports,
    total_income=total_income,
    total_expenses=total_expenses,
    total_profit=total_income - total_expenses,
  )


def income_expense_series(store: RecordStore, year: int) -> List[ChartPoint]:
  points = []
  for month in range(1, 13):
    payments = store.select(
      Payment, eq={"month": month, "year": year, "status": PaymentStatus.PAID.value}
    )
    points.append(ChartPoint(
      month=MONTH_ABBR[month - 1],
      income=paid_income(payments),
      expense=month_expenses(store, year, month),
    ))
  return points
