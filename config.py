import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
  return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
CORS_ORIGINS = [
  x.strip()
  for x in os.getenv("CORS_ORIGINS", "http://127.0.0.1:5173,http://localhost:5173").split(",")
  if x.strip()
]

# demo account is a development convenience, never enabled by default
DEMO_MODE = _flag("DEMO_MODE")
DEMO_EMAIL = os.getenv("DEMO_EMAIL", "").strip()
DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "").strip()

BUSINESS_NAME = os.getenv("BUSINESS_NAME", "WiFi Manager").strip()
CURRENCY_PREFIX = os.getenv("CURRENCY_PREFIX", "Rp").strip()

# static merchant QRIS string from the payment provider; the amount is appended per invoice
QRIS_MERCHANT = os.getenv("QRIS_MERCHANT", "").strip()
