# models.py
from enum import Enum
from typing import Optional
from datetime import date, datetime, timezone
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
  return datetime.now(timezone.utc)


class PaymentStatus(str, Enum):
  PAID = "Paid"
  UNPAID = "Unpaid"
  OVERDUE = "Overdue"
  FREE = "Free"

  @classmethod
  def parse(cls, value) -> Optional["PaymentStatus"]:
    """Map a stored value to a member, or None for anything unrecognised."""
    try:
      return cls(value)
    except ValueError:
      return None


class ExpenseCategory(str, Enum):
  ISP = "ISP"
  ELECTRICITY = "electricity"
  EQUIPMENT = "equipment"
  MAINTENANCE = "maintenance"
  OTHER = "other"

  @classmethod
  def parse(cls, value) -> Optional["ExpenseCategory"]:
    try:
      return cls(value)
    except ValueError:
      return None


class Customer(SQLModel, table=True):
  __tablename__ = "customers"

  id: Optional[int] = Field(default=None, primary_key=True)
  name: str
  address: str = ""
  phone: str = Field(unique=True, index=True)
  package: str = ""
  registered_on: date = Field(index=True)
  payment_day: int = 1  # 1-31
  payment_note: str = ""
  created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Payment(SQLModel, table=True):
  __tablename__ = "payments"

  id: Optional[int] = Field(default=None, primary_key=True)
  customer_id: int = Field(foreign_key="customers.id", index=True, ondelete="CASCADE")
  month: int = Field(index=True)  # 1-12
  year: int = Field(index=True)
  amount: int
  # kept as text so rows written outside the API still load
  status: str = PaymentStatus.UNPAID.value
  paid_on: Optional[date] = None
  created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Expense(SQLModel, table=True):
  __tablename__ = "expenses"

  id: Optional[int] = Field(default=None, primary_key=True)
  category: str = ExpenseCategory.OTHER.value
  description: str = ""
  amount: int
  expense_date: date = Field(index=True)
  created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class User(SQLModel, table=True):
  __tablename__ = "users"

  id: Optional[int] = Field(default=None, primary_key=True)
  email: str = Field(unique=True, index=True)
  password_hash: str
  created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class AuthSession(SQLModel, table=True):
  __tablename__ = "auth_sessions"

  token: str = Field(primary_key=True)
  user_id: int = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
  created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class UserSettings(SQLModel, table=True):
  __tablename__ = "user_settings"

  id: Optional[int] = Field(default=None, primary_key=True)
  user_id: int = Field(foreign_key="users.id", unique=True, index=True, ondelete="CASCADE")
  business_name: str = ""
  reminder_enabled: bool = False
  email_reports_enabled: bool = False
  created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
  updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
