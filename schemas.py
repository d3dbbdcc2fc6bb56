# schemas.py
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models import ExpenseCategory, PaymentStatus


class OpResult(BaseModel):
  success: bool
  data: Any = None
  error: Optional[str] = None
  # lets routes pick an HTTP status without parsing the message
  reason: Optional[str] = None  # not_found|conflict|invalid|store


class CustomerIn(BaseModel):
  name: str = Field(min_length=1)
  address: str = ""
  phone: str = Field(min_length=1)
  package: str = ""
  registered_on: date
  payment_day: int = Field(default=1, ge=1, le=31)
  payment_note: str = ""


class CustomerUpdate(BaseModel):
  name: Optional[str] = Field(default=None, min_length=1)
  address: Optional[str] = None
  phone: Optional[str] = Field(default=None, min_length=1)
  package: Optional[str] = None
  registered_on: Optional[date] = None
  payment_day: Optional[int] = Field(default=None, ge=1, le=31)
  payment_note: Optional[str] = None


class PaymentIn(BaseModel):
  customer_id: int
  month: int = Field(ge=1, le=12)
  year: int = Field(ge=1000, le=9999)
  amount: int = Field(ge=0)
  status: PaymentStatus = PaymentStatus.UNPAID
  paid_on: Optional[date] = None


class PaymentUpdate(BaseModel):
  month: Optional[int] = Field(default=None, ge=1, le=12)
  year: Optional[int] = Field(default=None, ge=1000, le=9999)
  amount: Optional[int] = Field(default=None, ge=0)
  paid_on: Optional[date] = None


class StatusChange(BaseModel):
  status: PaymentStatus
  paid_on: Optional[date] = None


class ExpenseIn(BaseModel):
  category: ExpenseCategory
  description: str = ""
  amount: int = Field(ge=0)
  expense_date: date


class ExpenseUpdate(BaseModel):
  category: Optional[ExpenseCategory] = None
  description: Optional[str] = None
  amount: Optional[int] = Field(default=None, ge=0)
  expense_date: Optional[date] = None


class SettingsUpdate(BaseModel):
  business_name: Optional[str] = None
  reminder_enabled: Optional[bool] = None
  email_reports_enabled: Optional[bool] = None


class Credentials(BaseModel):
  email: str = Field(min_length=3)
  password: str = Field(min_length=6)


class StatusCounts(BaseModel):
  paid: int = 0
  unpaid: int = 0
  overdue: int = 0
  free: int = 0

  @property
  def total(self) -> int:
    return self.paid + self.unpaid + self.overdue + self.free


class MonthlyReport(BaseModel):
  month: str
  month_number: int
  year: int
  income: int = 0
  expenses: int = 0
  profit: int = 0
  customers: int = 0
  payments: StatusCounts = Field(default_factory=StatusCounts)


class ReportResult(BaseModel):
  success: bool
  year: int
  reports: List[MonthlyReport] = Field(default_factory=list)
  total_income: int = 0
  total_expenses: int = 0
  total_profit: int = 0
  error: Optional[str] = None


class ChartPoint(BaseModel):
  month: str
  income: int = 0
  expense: int = 0


class StatusShares(BaseModel):
  paid: float = 0.0
  unpaid: float = 0.0
  overdue: float = 0.0
  free: float = 0.0


class DashboardStats(BaseModel):
  month: int
  year: int
  total_customers: int = 0
  monthly_income: int = 0
  monthly_expenses: int = 0
  profit: int = 0
  payments: StatusCounts = Field(default_factory=StatusCounts)
  shares: StatusShares = Field(default_factory=StatusShares)
  series: List[ChartPoint] = Field(default_factory=list)


class ImportSummary(BaseModel):
  customers: int = 0
  expenses: int = 0
  errors: List[str] = Field(default_factory=list)


class InvoiceOut(BaseModel):
  invoice_number: str
  issued: date
  period: str
  amount: int
  amount_text: str
  status: str
  customer: Dict[str, Any]
  share_message: str
  whatsapp_url: str
  mailto_url: str
  qr_code: str  # PNG data URL
