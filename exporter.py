# exporter.py
"""
Spreadsheet output: the yearly financial report and the full data backup.
"""
import logging
from datetime import date
from io import BytesIO
from typing import Dict, List, Sequence, Tuple

import pandas as pd
from openpyxl.styles import Alignment, Font

from models import Customer, Expense, Payment
from schemas import MonthlyReport
from store import RecordStore

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
  "Month",
  "Income",
  "Expense",
  "Profit",
  "Total Customers",
  "Paid Count",
  "Pending Count",
  "Overdue Count",
]

# shared with the importer so a backup can be imported again
CUSTOMER_COLUMNS = [
  "Name",
  "Address",
  "Phone",
  "Package",
  "Registration Date",
  "Payment Day",
  "Payment Note",
]
EXPENSE_COLUMNS = ["Category", "Description", "Amount", "Expense Date"]
PAYMENT_COLUMNS = ["Customer Phone", "Customer Name", "Month", "Year", "Amount", "Status", "Paid On"]

CUSTOMERS_SHEET = "Customers"
EXPENSES_SHEET = "Expenses"
PAYMENTS_SHEET = "Payments"


def report_filename(year: int) -> str:
  return f"ISP_Report_{year}.xlsx"


def backup_filename(today: date) -> str:
  return f"ISP_Backup_{today.strftime('%Y%m%d')}.xlsx"


def report_rows(reports: Sequence[MonthlyReport]) -> List[Dict[str, object]]:
  """One row per month plus a TOTAL row.

  The totals row sums only the money columns. Customer and status counts are
  left as empty strings: a sum of point-in-time counts means nothing.
  """
  rows = [
    {
      "Month": r.month,
      "Income": r.income,
      "Expense": r.expenses,
      "Profit": r.profit,
      "Total Customers": r.customers,
      "Paid Count": r.payments.paid,
      "Pending Count": r.payments.unpaid,
      "Overdue Count": r.payments.overdue,
    }
    for r in reports
  ]

  total_income = sum(r.income for r in reports)
  total_expenses = sum(r.expenses for r in reports)
  rows.append({
    "Month": "TOTAL",
    "Income": total_income,
    "Expense": total_expenses,
    "Profit": total_income - total_expenses,
    "Total Customers": "",
    "Paid Count": "",
    "Pending Count": "",
    "Overdue Count": "",
  })
  return rows


def _style_sheet(ws, widths: Sequence[int]) -> None:
  for cell in ws[1]:
    cell.font = Font(bold=True)
    cell.alignment = Alignment(horizontal="center")
  for idx, width in enumerate(widths, start=1):
    ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width


def export_report(reports: Sequence[MonthlyReport], year: int) -> Tuple[str, bytes]:
  filename = report_filename(year)
  sheet_name = f"Report {year}"
  df = pd.DataFrame(report_rows(reports), columns=REPORT_COLUMNS)

  buffer = BytesIO()
  with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
    df.to_excel(writer, sheet_name=sheet_name, index=False)
    _style_sheet(writer.sheets[sheet_name], [12, 15, 15, 15, 15, 15, 15, 12])

  logger.info(f"Report exported: {filename} ({len(reports)} months)")
  return filename, buffer.getvalue()


def _customer_row(c: Customer) -> Dict[str, object]:
  return {
    "Name": c.name,
    "Address": c.address,
    "Phone": c.phone,
    "Package": c.package,
    "Registration Date": c.registered_on,
    "Payment Day": c.payment_day,
    "Payment Note": c.payment_note,
  }


def _expense_row(e: Expense) -> Dict[str, object]:
  return {
    "Category": e.category,
    "Description": e.description,
    "Amount": e.amount,
    "Expense Date": e.expense_date,
  }


def export_backup(store: RecordStore, today: date) -> Tuple[str, bytes]:
  """Every customer, payment and expense, one sheet each."""
  customers = store.select(Customer, order_by="id")
  payments = store.select(Payment, order_by=["year", "month", "id"])
  expenses = store.select(Expense, order_by=["expense_date", "id"])
  by_id = {c.id: c for c in customers}

  payment_rows = []
  for p in payments:
    owner = by_id.get(p.customer_id)
    payment_rows.append({
      "Customer Phone": owner.phone if owner else "",
      "Customer Name": owner.name if owner else "",
      "Month": p.month,
      "Year": p.year,
      "Amount": p.amount,
      "Status": p.status,
      "Paid On": p.paid_on,
    })

  sheets = [
    (CUSTOMERS_SHEET, pd.DataFrame([_customer_row(c) for c in customers], columns=CUSTOMER_COLUMNS)),
    (PAYMENTS_SHEET, pd.DataFrame(payment_rows, columns=PAYMENT_COLUMNS)),
    (EXPENSES_SHEET, pd.DataFrame([_expense_row(e) for e in expenses], columns=EXPENSE_COLUMNS)),
  ]

  filename = backup_filename(today)
  buffer = BytesIO()
  with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
    for name, df in sheets:
      df.to_excel(writer, sheet_name=name, index=False)
      _style_sheet(writer.sheets[name], [18] * len(df.columns))

  logger.info(
    f"Backup exported: {filename} "
    f"(customers={len(customers)}, payments={len(payments)}, expenses={len(expenses)})"
  )
  return filename, buffer.getvalue()
