from datetime import date
from io import BytesIO

import pandas as pd
import pytest

import config

FIXED_TODAY = date(2024, 3, 15)


def _customer(client, headers, phone="081234567890", name="Siti", registered_on="2024-01-15"):
  r = client.post("/api/customers", headers=headers, json={
    "name": name,
    "address": "Jl. Kenanga 3",
    "phone": phone,
    "package": "10 Mbps",
    "registered_on": registered_on,
    "payment_day": 10,
  })
  assert r.status_code == 201, r.text
  return r.json()


def _payment(client, headers, customer_id, month=3, year=2024, amount=150000, status="Unpaid"):
  r = client.post("/api/payments", headers=headers, json={
    "customer_id": customer_id, "month": month, "year": year, "amount": amount, "status": status,
  })
  assert r.status_code == 201, r.text
  return r.json()


def test_health(client):
  r = client.get("/health")
  assert r.status_code == 200
  assert r.json()["ok"] is True


@pytest.mark.parametrize("path", ["/api/customers", "/api/reports/2024", "/api/dashboard", "/api/settings"])
def test_routes_require_sign_in(client, path):
  assert client.get(path).status_code == 401
  assert client.get(path, headers={"Authorization": "Bearer nope"}).status_code == 401


def test_sign_in_flow(client, auth_headers):
  me = client.get("/api/auth/me", headers=auth_headers)
  assert me.json()["email"] == "owner@example.com"

  bad = client.post("/api/auth/signin", json={"email": "owner@example.com", "password": "wrongpass"})
  assert bad.status_code == 401

  dup = client.post("/api/auth/signup", json={"email": "OWNER@example.com", "password": "secret123"})
  assert dup.status_code == 409

  assert client.post("/api/auth/signout", headers=auth_headers).status_code == 200
  assert client.get("/api/auth/me", headers=auth_headers).status_code == 401


def test_demo_sign_in_is_off_by_default(client, monkeypatch):
  monkeypatch.setattr(config, "DEMO_MODE", False)
  assert client.post("/api/auth/demo").status_code == 404


def test_demo_sign_in_when_enabled(client, monkeypatch):
  monkeypatch.setattr(config, "DEMO_MODE", True)
  monkeypatch.setattr(config, "DEMO_EMAIL", "demo@example.com")
  monkeypatch.setattr(config, "DEMO_PASSWORD", "demo-pass-1")

  first = client.post("/api/auth/demo")
  second = client.post("/api/auth/demo")
  assert first.status_code == 200 and second.status_code == 200
  token = second.json()["token"]
  me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
  assert me.json()["email"] == "demo@example.com"


def test_demo_with_short_password_is_a_client_error(client, monkeypatch):
  monkeypatch.setattr(config, "DEMO_MODE", True)
  monkeypatch.setattr(config, "DEMO_EMAIL", "demo@example.com")
  monkeypatch.setattr(config, "DEMO_PASSWORD", "demo")

  r = client.post("/api/auth/demo")
  assert r.status_code == 400
  assert "Demo credentials rejected" in r.json()["detail"]


def test_customer_crud_and_phone_conflict(client, auth_headers):
  c = _customer(client, auth_headers)
  _customer(client, auth_headers, phone="089999999999", name="Andi")

  dup = client.post("/api/customers", headers=auth_headers, json={
    "name": "Other", "phone": "081234567890", "registered_on": "2024-02-01",
  })
  assert dup.status_code == 409
  assert "already registered" in dup.json()["detail"]

  r = client.put(f"/api/customers/{c['id']}", headers=auth_headers, json={"package": "20 Mbps"})
  assert r.json()["package"] == "20 Mbps"
  r = client.put(f"/api/customers/{c['id']}", headers=auth_headers, json={"phone": "089999999999"})
  assert r.status_code == 409

  found = client.get("/api/customers", params={"q": "andi"}, headers=auth_headers).json()
  assert [x["name"] for x in found] == ["Andi"]

  assert client.delete(f"/api/customers/{c['id']}", headers=auth_headers).status_code == 200
  assert client.delete(f"/api/customers/{c['id']}", headers=auth_headers).status_code == 404
  assert client.put("/api/customers/999", headers=auth_headers, json={"name": "x"}).status_code == 404


def test_customer_payment_day_range(client, auth_headers):
  r = client.post("/api/customers", headers=auth_headers, json={
    "name": "X", "phone": "0800", "registered_on": "2024-01-01", "payment_day": 32,
  })
  assert r.status_code == 422


def test_payment_status_sets_paid_date(client, auth_headers):
  c = _customer(client, auth_headers)
  p = _payment(client, auth_headers, c["id"])
  assert p["paid_on"] is None

  r = client.post(f"/api/payments/{p['id']}/status", headers=auth_headers, json={"status": "Paid"})
  assert r.status_code == 200
  assert r.json()["status"] == "Paid"
  assert r.json()["paid_on"] == FIXED_TODAY.isoformat()

  r = client.post(f"/api/payments/{p['id']}/status", headers=auth_headers, json={"status": "Overdue"})
  assert r.json()["paid_on"] is None

  r = client.post(f"/api/payments/{p['id']}/status", headers=auth_headers, json={"status": "Lunas"})
  assert r.status_code == 422


def test_payment_created_as_paid_gets_todays_date(client, auth_headers):
  c = _customer(client, auth_headers)
  p = _payment(client, auth_headers, c["id"], status="Paid")
  assert p["paid_on"] == FIXED_TODAY.isoformat()


def test_payment_needs_existing_customer(client, auth_headers):
  r = client.post("/api/payments", headers=auth_headers, json={
    "customer_id": 42, "month": 1, "year": 2024, "amount": 1000,
  })
  assert r.status_code == 404


def test_payment_listing_and_cascade(client, auth_headers):
  siti = _customer(client, auth_headers)
  andi = _customer(client, auth_headers, phone="0877", name="Andi")
  _payment(client, auth_headers, siti["id"], status="Paid")
  _payment(client, auth_headers, andi["id"], status="Overdue")

  overdue = client.get("/api/payments", params={"status": "Overdue"}, headers=auth_headers).json()
  assert [p["customer"]["name"] for p in overdue] == ["Andi"]
  by_phone = client.get("/api/payments", params={"q": "0877"}, headers=auth_headers).json()
  assert len(by_phone) == 1

  client.delete(f"/api/customers/{andi['id']}", headers=auth_headers)
  remaining = client.get("/api/payments", headers=auth_headers).json()
  assert [p["customer_id"] for p in remaining] == [siti["id"]]


def test_expense_crud(client, auth_headers):
  r = client.post("/api/expenses", headers=auth_headers, json={
    "category": "electricity", "description": "PLN", "amount": 250000, "expense_date": "2024-03-02",
  })
  assert r.status_code == 201
  e = r.json()

  bad = client.post("/api/expenses", headers=auth_headers, json={
    "category": "listrik", "amount": 1, "expense_date": "2024-03-02",
  })
  assert bad.status_code == 422

  r = client.put(f"/api/expenses/{e['id']}", headers=auth_headers, json={"category": "maintenance"})
  assert r.json()["category"] == "maintenance"
  listed = client.get("/api/expenses", params={"category": "maintenance"}, headers=auth_headers).json()
  assert len(listed) == 1
  assert client.delete(f"/api/expenses/{e['id']}", headers=auth_headers).status_code == 200
  assert client.get("/api/expenses", headers=auth_headers).json() == []


def test_year_report_and_export(client, auth_headers):
  c = _customer(client, auth_headers, registered_on="2024-02-29")
  _payment(client, auth_headers, c["id"], month=2, amount=150000, status="Paid")
  client.post("/api/expenses", headers=auth_headers, json={
    "category": "ISP", "amount": 400000, "expense_date": "2024-02-10",
  })

  report = client.get("/api/reports/2024", headers=auth_headers).json()
  assert report["success"] is True
  feb = report["reports"][1]
  assert feb["month"] == "February"
  assert (feb["income"], feb["expenses"], feb["profit"]) == (150000, 400000, -250000)
  assert feb["customers"] == 1
  assert report["reports"][0]["customers"] == 0

  r = client.get("/api/reports/2024/export", headers=auth_headers)
  assert r.status_code == 200
  assert 'filename="ISP_Report_2024.xlsx"' in r.headers["content-disposition"]
  df = pd.read_excel(BytesIO(r.content))
  assert df.iloc[-1]["Income"] == 150000


@pytest.mark.parametrize("year", [1000, 9999])
def test_report_accepts_every_four_digit_year(client, auth_headers, year):
  r = client.get(f"/api/reports/{year}", headers=auth_headers)
  assert r.status_code == 200
  assert r.json()["success"] is True
  assert client.get(f"/api/reports/{year}/export", headers=auth_headers).status_code == 200
  assert client.get("/api/reports/10000", headers=auth_headers).status_code == 422


def test_dashboard_refresh_and_latest(client, auth_headers):
  assert client.get("/api/dashboard/latest", headers=auth_headers).status_code == 404

  c = _customer(client, auth_headers)
  _payment(client, auth_headers, c["id"], month=FIXED_TODAY.month, year=FIXED_TODAY.year, status="Paid")

  stats = client.get("/api/dashboard", headers=auth_headers).json()
  assert stats["monthly_income"] == 150000
  assert stats["shares"]["paid"] == 100.0

  first = client.post("/api/dashboard/refresh", headers=auth_headers).json()
  second = client.post("/api/dashboard/refresh", headers=auth_headers).json()
  assert first["applied"] and second["applied"]
  assert second["token"] > first["token"]
  assert second["stats_token"] == second["token"]
  assert second["stats"]["monthly_income"] == 150000

  latest = client.get("/api/dashboard/latest", headers=auth_headers).json()
  assert latest["total_customers"] == 1


def test_import_and_backup(client, auth_headers, build_workbook):
  content = build_workbook(Customers=[
    {"Name": "Rina", "Phone": "0855", "Package": "5 Mbps", "Registration Date": "2024-01-02"},
    {"Name": "", "Phone": "0856", "Package": "5 Mbps", "Registration Date": "2024-01-02"},
  ])
  r = client.post(
    "/api/data/import",
    headers=auth_headers,
    files={"file": ("data.xlsx", content, "application/octet-stream")},
  )
  assert r.status_code == 200
  assert r.json()["customers"] == 1
  assert r.json()["errors"] == ["Customers row 3: Name is required"]

  empty = client.post(
    "/api/data/import", headers=auth_headers, files={"file": ("empty.xlsx", b"", "application/octet-stream")},
  )
  assert empty.status_code == 400

  backup = client.get("/api/data/backup", headers=auth_headers)
  assert 'filename="ISP_Backup_20240315.xlsx"' in backup.headers["content-disposition"]
  sheets = pd.read_excel(BytesIO(backup.content), sheet_name=None)
  assert list(sheets["Customers"]["Name"]) == ["Rina"]


def test_invoice_json_and_pdf(client, auth_headers):
  c = _customer(client, auth_headers)
  p = _payment(client, auth_headers, c["id"], amount=175000, status="Paid")

  inv = client.get(f"/api/payments/{p['id']}/invoice", headers=auth_headers).json()
  assert inv["invoice_number"] == f"INV15MAR2024{p['id']:04d}"
  assert inv["amount_text"] == "Rp 175.000"
  assert inv["period"] == "March 2024"
  assert "Siti" in inv["share_message"]
  assert inv["whatsapp_url"].startswith("https://wa.me/6281234567890?text=")
  assert inv["mailto_url"].startswith("mailto:?subject=")
  assert inv["qr_code"].startswith("data:image/png;base64,")

  pdf = client.get(f"/api/payments/{p['id']}/invoice.pdf", headers=auth_headers)
  assert pdf.status_code == 200
  assert pdf.headers["content-type"] == "application/pdf"
  assert pdf.content.startswith(b"%PDF")

  assert client.get("/api/payments/999/invoice", headers=auth_headers).status_code == 404


def test_invoice_pdf_with_non_latin_name(client, auth_headers):
  c = _customer(client, auth_headers, name="Dewi – Rumah 王")
  p = _payment(client, auth_headers, c["id"])
  pdf = client.get(f"/api/payments/{p['id']}/invoice.pdf", headers=auth_headers)
  assert pdf.status_code == 200
  assert pdf.content.startswith(b"%PDF")


def test_settings_are_created_on_first_read(client, auth_headers):
  s = client.get("/api/settings", headers=auth_headers).json()
  assert s["business_name"] == ""
  assert s["reminder_enabled"] is False

  r = client.put("/api/settings", headers=auth_headers, json={"business_name": "Net Desa", "reminder_enabled": True})
  assert r.json()["business_name"] == "Net Desa"
  again = client.get("/api/settings", headers=auth_headers).json()
  assert again["id"] == s["id"]
  assert again["reminder_enabled"] is True
