import os

# must be set before db.py is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from io import BytesIO

import pandas as pd
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import db
from deps import today
from main import app
from report_route import _trackers
from models import Customer, Expense, Payment
from store import RecordStore

FIXED_TODAY = date(2024, 3, 15)


@pytest.fixture
def engine():
  eng = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
  )
  db.enable_sqlite_foreign_keys(eng)
  db.init_db(eng)
  yield eng
  SQLModel.metadata.drop_all(eng)
  eng.dispose()


@pytest.fixture
def session(engine):
  with Session(engine) as s:
    yield s


@pytest.fixture
def store(session):
  return RecordStore(session)


@pytest.fixture
def client(engine):
  def _session():
    with Session(engine) as s:
      yield s

  app.dependency_overrides[db.get_session] = _session
  app.dependency_overrides[today] = lambda: FIXED_TODAY
  _trackers.clear()
  yield TestClient(app)
  app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
  creds = {"email": "owner@example.com", "password": "secret123"}
  assert client.post("/api/auth/signup", json=creds).status_code == 201
  r = client.post("/api/auth/signin", json=creds)
  assert r.status_code == 200
  return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def make_customer(store):
  counter = {"n": 0}

  def _make(registered_on=date(2024, 1, 10), phone=None, name=None, **extra):
    counter["n"] += 1
    n = counter["n"]
    return store.insert(Customer(
      name=name or f"Customer {n}",
      phone=phone or f"0812000{n:04d}",
      package="10 Mbps",
      registered_on=registered_on,
      **extra,
    ))

  return _make


@pytest.fixture
def make_payment(store, make_customer):
  def _make(month, year, amount, status="Paid", customer=None, paid_on=None):
    owner = customer or make_customer()
    return store.insert(Payment(
      customer_id=owner.id, month=month, year=year, amount=amount, status=status, paid_on=paid_on,
    ))

  return _make


@pytest.fixture
def make_expense(store):
  def _make(amount, expense_date, category="ISP", description=""):
    return store.insert(Expense(
      category=category, description=description, amount=amount, expense_date=expense_date,
    ))

  return _make


def workbook(**sheets) -> bytes:
  buffer = BytesIO()
  with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
    for name, rows in sheets.items():
      pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
  return buffer.getvalue()


@pytest.fixture
def build_workbook():
  return workbook
