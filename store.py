# store.py
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

T = TypeVar("T", bound=SQLModel)


class StoreError(Exception):
  """A failed store call. `code` carries the SQLSTATE where one is known."""

  def __init__(self, message: str, code: Optional[str] = None):
    super().__init__(message)
    self.message = message
    self.code = code

  @property
  def is_conflict(self) -> bool:
    return self.code == UNIQUE_VIOLATION


def _error_code(exc: SQLAlchemyError) -> Optional[str]:
  orig = getattr(exc, "orig", None)
  code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
  if code:
    return code
  # sqlite has no SQLSTATE, map its unique failure onto the postgres code
  if isinstance(exc, IntegrityError) and "UNIQUE constraint failed" in str(orig):
    return UNIQUE_VIOLATION
  return None


class RecordStore:
  """Filter/sort/count/insert/update/delete over the application tables.

  Every method raises `StoreError` instead of leaking SQLAlchemy exceptions.
  Filters are plain dicts of column name -> value:

    store.select(Payment, eq={"month": 2, "year": 2024})
    store.count(Customer, lte={"registered_on": date(2024, 2, 29)})
  """

  def __init__(self, session: Session):
    self.session = session

  @contextmanager
  def _guard(self, action: str, rollback: bool = False):
    try:
      yield
    except SQLAlchemyError as e:
      if rollback:
        self.session.rollback()
      orig = getattr(e, "orig", None)
      message = str(orig) if orig is not None else str(e)
      code = _error_code(e)
      logger.warning(f"Store {action} failed ({code or 'no code'}): {message}")
      raise StoreError(message, code) from e

  def _where(self, stmt, model: Type[T], eq=None, gte=None, lt=None, lte=None):
    for name, value in (eq or {}).items():
      stmt = stmt.where(getattr(model, name) == value)
    for name, value in (gte or {}).items():
      stmt = stmt.where(getattr(model, name) >= value)
    for name, value in (lt or {}).items():
      stmt = stmt.where(getattr(model, name) < value)
    for name, value in (lte or {}).items():
      stmt = stmt.where(getattr(model, name) <= value)
    return stmt

  def select(
    self,
    model: Type[T],
    *,
    eq: Optional[Dict[str, Any]] = None,
    gte: Optional[Dict[str, Any]] = None,
    lt: Optional[Dict[str, Any]] = None,
    lte: Optional[Dict[str, Any]] = None,
    order_by: Union[str, Sequence[str], None] = None,
    descending: bool = False,
  ) -> List[T]:
    stmt = self._where(select(model), model, eq, gte, lt, lte)
    if order_by:
      names = [order_by] if isinstance(order_by, str) else list(order_by)
      for name in names:
        column = getattr(model, name)
        stmt = stmt.order_by(column.desc() if descending else column.asc())
    with self._guard(f"select {model.__tablename__}"):
      return list(self.session.exec(stmt).all())

  def count(
    self,
    model: Type[T],
    *,
    eq: Optional[Dict[str, Any]] = None,
    gte: Optional[Dict[str, Any]] = None,
    lt: Optional[Dict[str, Any]] = None,
    lte: Optional[Dict[str, Any]] = None,
  ) -> int:
    stmt = self._where(select(func.count()).select_from(model), model, eq, gte, lt, lte)
    with self._guard(f"count {model.__tablename__}"):
      return int(self.session.exec(stmt).one())

  def get(self, model: Type[T], row_id: Any) -> Optional[T]:
    with self._guard(f"get {model.__tablename__}"):
      return self.session.get(model, row_id)

  def insert(self, row: T) -> T:
    with self._guard(f"insert {row.__tablename__}", rollback=True):
      self.session.add(row)
      self.session.commit()
      self.session.refresh(row)
    return row

  def update(self, model: Type[T], row_id: Any, updates: Dict[str, Any]) -> Optional[T]:
    row = self.get(model, row_id)
    if row is None:
      return None
    with self._guard(f"update {model.__tablename__}", rollback=True):
      for name, value in updates.items():
        setattr(row, name, value)
      self.session.add(row)
      self.session.commit()
      self.session.refresh(row)
    return row

  def delete(self, model: Type[T], row_id: Any) -> bool:
    row = self.get(model, row_id)
    if row is None:
      return False
    with self._guard(f"delete {model.__tablename__}", rollback=True):
      self.session.delete(row)
      self.session.commit()
    return True
