# billing_route.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

import config
import services
from deps import get_store, require_auth, today, unwrap
from invoice import (
  billing_period, format_currency, invoice_number, mailto_url, qr_data_url, qr_payload,
  render_invoice_pdf, share_message, whatsapp_url,
)
from models import Customer, Expense, ExpenseCategory, Payment, PaymentStatus
from schemas import (
  CustomerIn, CustomerUpdate, ExpenseIn, ExpenseUpdate, InvoiceOut,
  PaymentIn, PaymentUpdate, StatusChange,
)
from auth import AuthContext
from store import RecordStore

router = APIRouter(prefix="/api", tags=["billing"], dependencies=[Depends(require_auth)])


@router.get("/customers", response_model=List[Customer])
def list_customers(q: Optional[str] = None, store: RecordStore = Depends(get_store)):
  return services.list_customers(store, q)


@router.post("/customers", response_model=Customer, status_code=201)
def create_customer(c: CustomerIn, store: RecordStore = Depends(get_store)):
  return unwrap(services.add_customer(store, c))


@router.put("/customers/{customer_id}", response_model=Customer)
def update_customer(customer_id: int, c: CustomerUpdate, store: RecordStore = Depends(get_store)):
  return unwrap(services.update_customer(store, customer_id, c))


@router.delete("/customers/{customer_id}")
def delete_customer(customer_id: int, store: RecordStore = Depends(get_store)):
  unwrap(services.delete_customer(store, customer_id))
  return {"ok": True, "customer_id": customer_id}


@router.get("/payments")
def list_payments(
  q: Optional[str] = None,
  status: Optional[PaymentStatus] = None,
  store: RecordStore = Depends(get_store),
):
  return services.list_payments(store, q, status)


@router.post("/payments", response_model=Payment, status_code=201)
def create_payment(p: PaymentIn, store: RecordStore = Depends(get_store), now: date = Depends(today)):
  return unwrap(services.add_payment(store, p, now))


@router.put("/payments/{payment_id}", response_model=Payment)
def update_payment(payment_id: int, p: PaymentUpdate, store: RecordStore = Depends(get_store)):
  return unwrap(services.update_payment(store, payment_id, p))


@router.post("/payments/{payment_id}/status", response_model=Payment)
def change_status(
  payment_id: int,
  change: StatusChange,
  store: RecordStore = Depends(get_store),
  now: date = Depends(today),
):
  return unwrap(services.change_payment_status(store, payment_id, change.status, now, change.paid_on))


@router.delete("/payments/{payment_id}")
def delete_payment(payment_id: int, store: RecordStore = Depends(get_store)):
  unwrap(services.delete_payment(store, payment_id))
  return {"ok": True, "payment_id": payment_id}


def _invoice_parts(store: RecordStore, payment_id: int, ctx: AuthContext):
  payment = unwrap(services.get_payment(store, payment_id))
  customer = unwrap(services.get_customer(store, payment.customer_id))
  settings = unwrap(services.get_settings(store, ctx))
  return payment, customer, settings.business_name or config.BUSINESS_NAME


@router.get("/payments/{payment_id}/invoice", response_model=InvoiceOut)
def get_invoice(
  payment_id: int,
  store: RecordStore = Depends(get_store),
  now: date = Depends(today),
  ctx: AuthContext = Depends(require_auth),
):
  payment, customer, business_name = _invoice_parts(store, payment_id, ctx)
  return InvoiceOut(
    invoice_number=invoice_number(payment, now),
    issued=now,
    period=billing_period(payment),
    amount=payment.amount,
    amount_text=format_currency(payment.amount),
    status=payment.status,
    customer={"id": customer.id, "name": customer.name, "phone": customer.phone, "address": customer.address},
    share_message=share_message(payment, customer, now),
    whatsapp_url=whatsapp_url(payment, customer, now),
    mailto_url=mailto_url(payment, customer, now, business_name),
    qr_code=qr_data_url(qr_payload(payment, now, business_name)),
  )


@router.get("/payments/{payment_id}/invoice.pdf")
def get_invoice_pdf(
  payment_id: int,
  store: RecordStore = Depends(get_store),
  now: date = Depends(today),
  ctx: AuthContext = Depends(require_auth),
):
  payment, customer, business_name = _invoice_parts(store, payment_id, ctx)
  content = render_invoice_pdf(payment, customer, business_name, now, note=customer.payment_note or None)
  filename = f"{invoice_number(payment, now)}.pdf"
  return Response(
    content=content,
    media_type="application/pdf",
    headers={"Content-Disposition": f'attachment; filename="{filename}"'},
  )


@router.get("/expenses", response_model=List[Expense])
def list_expenses(category: Optional[ExpenseCategory] = None, store: RecordStore = Depends(get_store)):
  return services.list_expenses(store, category)


@router.post("/expenses", response_model=Expense, status_code=201)
def create_expense(e: ExpenseIn, store: RecordStore = Depends(get_store)):
  return unwrap(services.add_expense(store, e))


@router.put("/expenses/{expense_id}", response_model=Expense)
def update_expense(expense_id: int, e: ExpenseUpdate, store: RecordStore = Depends(get_store)):
  return unwrap(services.update_expense(store, expense_id, e))


@router.delete("/expenses/{expense_id}")
def delete_expense(expense_id: int, store: RecordStore = Depends(get_store)):
  unwrap(services.delete_expense(store, expense_id))
  return {"ok": True, "expense_id": expense_id}
