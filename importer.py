# importer.py
"""
Spreadsheet import for customers and expenses.

Rows are inserted one at a time. A bad row is recorded in the summary and
skipped; the rest of the sheet is still processed.
"""
import logging
import numbers
from datetime import date
from io import BytesIO
from typing import Any, Callable, Dict, Optional

import pandas as pd

from exporter import CUSTOMERS_SHEET, EXPENSES_SHEET
from models import Customer, Expense, ExpenseCategory
from schemas import ImportSummary
from store import RecordStore, StoreError

logger = logging.getLogger(__name__)

# day 0 of the 1900 date system, with the 1900 leap-year bug folded in
EXCEL_EPOCH = "1899-12-30"


class RowError(ValueError):
  pass


def _cell(value: Any) -> Any:
  if value is None:
    return None
  if isinstance(value, str):
    value = value.strip()
    return value or None
  try:
    if pd.isna(value):
      return None
  except (TypeError, ValueError):
    pass
  return value


def _text(row: Dict[str, Any], column: str, required: bool = False) -> str:
  value = _cell(row.get(column))
  if value is None:
    if required:
      raise RowError(f"{column} is required")
    return ""
  if isinstance(value, float) and value.is_integer():
    value = int(value)
  return str(value)


def _whole_number(row: Dict[str, Any], column: str, default: Optional[int] = None) -> int:
  value = _cell(row.get(column))
  if value is None:
    if default is None:
      raise RowError(f"{column} is required")
    return default
  try:
    number = float(str(value).replace(",", ""))
  except ValueError:
    raise RowError(f"{column} must be a number, got {value!r}")
  if not number.is_integer():
    raise RowError(f"{column} must be a whole number, got {value!r}")
  return int(number)


def _date(row: Dict[str, Any], column: str) -> date:
  value = _cell(row.get(column))
  if value is None:
    raise RowError(f"{column} is required")
  try:
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
      # unformatted cell holding an Excel day serial
      if value < 1:
        raise ValueError(value)
      parsed = pd.to_datetime(value, unit="D", origin=EXCEL_EPOCH)
    else:
      parsed = pd.to_datetime(value)
  except (ValueError, TypeError, OverflowError):
    raise RowError(f"{column} is not a valid date: {value!r}")
  if pd.isna(parsed):
    raise RowError(f"{column} is not a valid date: {value!r}")
  return parsed.date()


def customer_from_row(row: Dict[str, Any]) -> Customer:
  payment_day = _whole_number(row, "Payment Day", default=1)
  if not 1 <= payment_day <= 31:
    raise RowError(f"Payment Day must be between 1 and 31, got {payment_day}")
  return Customer(
    name=_text(row, "Name", required=True),
    address=_text(row, "Address"),
    phone=_text(row, "Phone", required=True),
    package=_text(row, "Package", required=True),
    registered_on=_date(row, "Registration Date"),
    payment_day=payment_day,
    payment_note=_text(row, "Payment Note"),
  )


def expense_from_row(row: Dict[str, Any]) -> Expense:
  raw_category = _text(row, "Category", required=True)
  category = ExpenseCategory.parse(raw_category)
  if category is None:
    allowed = ", ".join(c.value for c in ExpenseCategory)
    raise RowError(f"invalid category {raw_category!r} (expected one of: {allowed})")
  amount = _whole_number(row, "Amount")
  if amount < 0:
    raise RowError(f"Amount must not be negative, got {amount}")
  return Expense(
    category=category.value,
    description=_text(row, "Description"),
    amount=amount,
    expense_date=_date(row, "Expense Date"),
  )


def _import_sheet(
  store: RecordStore,
  df: pd.DataFrame,
  sheet: str,
  build: Callable[[Dict[str, Any]], Any],
  summary: ImportSummary,
) -> int:
  inserted = 0
  # header is spreadsheet row 1
  for line, row in enumerate(df.to_dict(orient="records"), start=2):
    if all(_cell(v) is None for v in row.values()):
      continue
    try:
      record = build(row)
      store.insert(record)
      inserted += 1
    except RowError as e:
      summary.errors.append(f"{sheet} row {line}: {e}")
    except StoreError as e:
      if e.is_conflict and sheet == CUSTOMERS_SHEET:
        phone = _text(row, "Phone")
        summary.errors.append(f"{sheet} row {line}: phone number {phone} is already registered")
      else:
        summary.errors.append(f"{sheet} row {line}: {e.message}")
  return inserted


def import_workbook(store: RecordStore, content: bytes) -> ImportSummary:
  summary = ImportSummary()
  try:
    sheets = pd.read_excel(BytesIO(content), sheet_name=None, dtype=object)
  except Exception as e:
    logger.error(f"Import failed to read workbook: {e}")
    summary.errors.append(f"Could not read spreadsheet: {e}")
    return summary

  if CUSTOMERS_SHEET not in sheets and EXPENSES_SHEET not in sheets:
    summary.errors.append(f"No '{CUSTOMERS_SHEET}' or '{EXPENSES_SHEET}' sheet found")
    return summary

  if CUSTOMERS_SHEET in sheets:
    summary.customers = _import_sheet(store, sheets[CUSTOMERS_SHEET], CUSTOMERS_SHEET, customer_from_row, summary)
  if EXPENSES_SHEET in sheets:
    summary.expenses = _import_sheet(store, sheets[EXPENSES_SHEET], EXPENSES_SHEET, expense_from_row, summary)

  logger.info(
    f"Import done: customers={summary.customers} expenses={summary.expenses} errors={len(summary.errors)}"
  )
  for err in summary.errors:
    logger.warning(f"Import row skipped: {err}")
  return summary
