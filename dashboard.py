# dashboard.py
import logging
import threading
from datetime import date
from typing import Any, Optional, Tuple

from models import Customer
from reports import aggregate_month, income_expense_series
from schemas import DashboardStats, StatusCounts, StatusShares
from store import RecordStore

logger = logging.getLogger(__name__)


def status_share(count: int, total: int) -> float:
  """Percentage of `total`; 0.0 when nothing was billed."""
  if total <= 0:
    return 0.0
  return round(count * 100.0 / total, 1)


def status_shares(counts: StatusCounts) -> StatusShares:
  total = counts.total
  return StatusShares(
    paid=status_share(counts.paid, total),
    unpaid=status_share(counts.unpaid, total),
    overdue=status_share(counts.overdue, total),
    free=status_share(counts.free, total),
  )


def summarize(store: RecordStore, today: date) -> DashboardStats:
  current = aggregate_month(store, today.year, today.month)
  return DashboardStats(
    month=today.month,
    year=today.year,
    total_customers=store.count(Customer),
    monthly_income=current.income,
    monthly_expenses=current.expenses,
    profit=current.profit,
    payments=current.payments,
    shares=status_shares(current.payments),
    series=income_expense_series(store, today.year),
  )


class RefreshTracker:
  """Keeps the newest refresh result.

  Each refresh takes a token from `begin()`. A result is only published if
  no later refresh has started since, so a slow older refresh can't replace
  a newer snapshot.
  """

  def __init__(self):
    self._lock = threading.Lock()
    self._issued = 0
    self._published_token = 0
    self._latest: Optional[Any] = None

  def begin(self) -> int:
    with self._lock:
      self._issued += 1
      return self._issued

  def publish(self, token: int, value: Any) -> bool:
    with self._lock:
      if token != self._issued:
        logger.info(f"Dropping stale refresh {token} (latest is {self._issued})")
        return False
      self._published_token = token
      self._latest = value
      return True

  @property
  def latest(self) -> Optional[Any]:
    with self._lock:
      return self._latest

  def snapshot(self) -> Tuple[int, Optional[Any]]:
    """The published token and its value, read together."""
    with self._lock:
      return self._published_token, self._latest
