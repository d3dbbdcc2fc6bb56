# invoice.py
import base64
import re
import unicodedata
from datetime import date
from io import BytesIO
from typing import Optional
from urllib.parse import quote

import qrcode
from fpdf import FPDF
from fpdf.enums import XPos, YPos

import config
from models import Customer, Payment
from reports import MONTH_NAMES

_PUNCTUATION = str.maketrans({
  "\u2013": "-", "\u2014": "-", "\u2212": "-",
  "\u2018": "'", "\u2019": "'", "\u201c": '"', "\u201d": '"',
  "\u2026": "...", "\u00a0": " ",
})


def format_currency(amount: int) -> str:
  """1500000 -> 'Rp 1.500.000'"""
  text = f"{config.CURRENCY_PREFIX} {abs(int(amount)):,}".replace(",", ".")
  return f"-{text}" if amount < 0 else text


def invoice_number(payment: Payment, issued: date) -> str:
  return f"INV{issued.strftime('%d%b%Y').upper()}{payment.id:04d}"


def billing_period(payment: Payment) -> str:
  return f"{MONTH_NAMES[payment.month - 1]} {payment.year}"


def share_message(payment: Payment, customer: Customer, issued: date) -> str:
  """Text sent to the customer over WhatsApp or e-mail."""
  return (
    f"Hello {customer.name}, here is your internet invoice for {billing_period(payment)}. "
    f"Invoice: {invoice_number(payment, issued)}. "
    f"Total: {format_currency(payment.amount)}. Thank you!"
  )


def whatsapp_number(phone: str) -> str:
  """Local 08xx numbers become 628xx; everything but digits is dropped."""
  digits = re.sub(r"\D", "", phone or "")
  return re.sub(r"^0", "62", digits)


def whatsapp_url(payment: Payment, customer: Customer, issued: date) -> str:
  text = quote(share_message(payment, customer, issued), safe="")
  return f"https://wa.me/{whatsapp_number(customer.phone)}?text={text}"


def mailto_url(payment: Payment, customer: Customer, issued: date, business_name: str) -> str:
  number = invoice_number(payment, issued)
  period = billing_period(payment)
  subject = f"Internet Invoice - {number}"
  body = (
    f"Dear {customer.name},\n\n"
    f"Here is your internet invoice for {period}:\n\n"
    f"Invoice Number: {number}\n"
    f"Period: {period}\n"
    f"Package: {customer.package}\n"
    f"Total: {format_currency(payment.amount)}\n"
    f"Status: {payment.status}\n\n"
    f"Thank you for using our service.\n\n"
    f"Regards,\n{business_name}"
  )
  return f"mailto:?subject={quote(subject, safe='')}&body={quote(body, safe='')}"


def qr_payload(payment: Payment, issued: date, business_name: str) -> str:
  if config.QRIS_MERCHANT:
    return f"{config.QRIS_MERCHANT}{payment.amount}"
  return f"{business_name}|{invoice_number(payment, issued)}|{payment.amount}"


def qr_png(payload: str) -> bytes:
  qr = qrcode.QRCode(box_size=8, border=2)
  qr.add_data(payload)
  qr.make(fit=True)
  buffer = BytesIO()
  qr.make_image(fill_color="black", back_color="white").save(buffer)
  return buffer.getvalue()


def qr_data_url(payload: str) -> str:
  return "data:image/png;base64," + base64.b64encode(qr_png(payload)).decode("ascii")


def pdf_text(value: str) -> str:
  """Fold text into Latin-1, the only range the core PDF fonts can draw."""
  out = []
  for ch in (value or "").translate(_PUNCTUATION):
    if ord(ch) < 256:
      out.append(ch)
      continue
    folded = unicodedata.normalize("NFKD", ch).encode("latin-1", "ignore").decode("latin-1")
    out.append(folded or "?")
  return "".join(out)


def render_invoice_pdf(
  payment: Payment,
  customer: Customer,
  business_name: str,
  issued: date,
  note: Optional[str] = None,
) -> bytes:
  pdf = FPDF(orientation="P", unit="mm", format="A4")
  pdf.add_page()
  nl = {"new_x": XPos.LMARGIN, "new_y": YPos.NEXT}

  pdf.set_font("Helvetica", "B", 18)
  pdf.cell(0, 12, pdf_text(business_name), align="C", **nl)
  pdf.set_font("Helvetica", "", 12)
  pdf.cell(0, 8, "INVOICE", align="C", **nl)
  pdf.line(10, pdf.get_y() + 2, 200, pdf.get_y() + 2)
  pdf.ln(6)

  details_top = pdf.get_y()
  pdf.set_font("Helvetica", "B", 12)
  pdf.cell(0, 8, "Invoice Details", **nl)
  pdf.set_font("Helvetica", "", 11)
  pdf.cell(0, 7, f"Invoice Number: {invoice_number(payment, issued)}", **nl)
  pdf.cell(0, 7, f"Issued: {issued.strftime('%d-%m-%Y')}", **nl)
  pdf.cell(0, 7, f"Period: {billing_period(payment)}", **nl)
  pdf.cell(0, 7, f"Status: {pdf_text(payment.status)}", **nl)
  if payment.paid_on:
    pdf.cell(0, 7, f"Paid On: {payment.paid_on.strftime('%d-%m-%Y')}", **nl)

  qr = BytesIO(qr_png(qr_payload(payment, issued, business_name)))
  pdf.image(qr, x=160, y=details_top, w=40)
  pdf.set_xy(160, details_top + 40)
  pdf.set_font("Helvetica", "", 8)
  pdf.cell(40, 5, "Scan to pay", align="C")
  pdf.set_xy(pdf.l_margin, max(pdf.get_y(), details_top + 46))
  pdf.ln(4)

  pdf.set_font("Helvetica", "B", 12)
  pdf.cell(0, 8, "Bill To", **nl)
  pdf.set_font("Helvetica", "", 11)
  pdf.cell(0, 7, pdf_text(customer.name), **nl)
  if customer.address:
    pdf.multi_cell(0, 7, pdf_text(customer.address), **nl)
  pdf.cell(0, 7, f"Phone: {pdf_text(customer.phone)}", **nl)
  if customer.package:
    pdf.cell(0, 7, f"Package: {pdf_text(customer.package)}", **nl)
  pdf.ln(6)

  # one line item table
  pdf.set_font("Helvetica", "B", 11)
  pdf.cell(130, 9, "Description", border=1, align="C")
  pdf.cell(60, 9, "Amount", border=1, align="C", **nl)
  pdf.set_font("Helvetica", "", 11)
  label = pdf_text(f"Internet service {customer.package}".strip())
  pdf.cell(130, 9, f"{label} - {billing_period(payment)}", border=1)
  pdf.cell(60, 9, pdf_text(format_currency(payment.amount)), border=1, align="R", **nl)
  pdf.set_font("Helvetica", "B", 11)
  pdf.cell(130, 9, "Total", border=1, align="R")
  pdf.cell(60, 9, pdf_text(format_currency(payment.amount)), border=1, align="R", **nl)

  if note:
    pdf.ln(6)
    pdf.set_font("Helvetica", "I", 10)
    pdf.multi_cell(0, 6, pdf_text(note), **nl)

  pdf.ln(10)
  pdf.set_font("Helvetica", "", 9)
  footer = f"Generated by {business_name} on {issued.strftime('%d %B %Y')}"
  pdf.cell(0, 6, pdf_text(footer), align="C", **nl)

  return bytes(pdf.output())
