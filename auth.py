# auth.py
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

import bcrypt
from pydantic import ValidationError

from models import AuthSession, User
from schemas import Credentials, OpResult
from store import RecordStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
  """The signed-in user, passed explicitly to anything that needs it."""
  user_id: int
  email: str
  token: str = ""


def hash_password(password: str) -> str:
  return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
  try:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
  except ValueError:
    return False


def _normalize(email: str) -> str:
  return email.strip().lower()


def sign_up(store: RecordStore, creds: Credentials) -> OpResult:
  email = _normalize(creds.email)
  try:
    user = store.insert(User(email=email, password_hash=hash_password(creds.password)))
  except StoreError as e:
    if e.is_conflict:
      return OpResult(success=False, error="This e-mail is already registered.", reason="conflict")
    return OpResult(success=False, error=e.message, reason="store")
  logger.info(f"User signed up: {email}")
  return OpResult(success=True, data={"id": user.id, "email": user.email})


def sign_in(store: RecordStore, creds: Credentials) -> OpResult:
  email = _normalize(creds.email)
  try:
    users = store.select(User, eq={"email": email})
    if not users or not verify_password(creds.password, users[0].password_hash):
      return OpResult(success=False, error="Invalid e-mail or password.", reason="invalid")
    user = users[0]
    token = secrets.token_urlsafe(32)
    store.insert(AuthSession(token=token, user_id=user.id))
  except StoreError as e:
    return OpResult(success=False, error=e.message, reason="store")
  logger.info(f"User signed in: {email}")
  return OpResult(success=True, data={"token": token, "user_id": user.id, "email": user.email})


def sign_out(store: RecordStore, ctx: AuthContext) -> OpResult:
  try:
    store.delete(AuthSession, ctx.token)
  except StoreError as e:
    return OpResult(success=False, error=e.message, reason="store")
  logger.info(f"User signed out: {ctx.email}")
  return OpResult(success=True)


def resolve_token(store: RecordStore, token: str) -> Optional[AuthContext]:
  if not token:
    return None
  session = store.get(AuthSession, token)
  if session is None:
    return None
  user = store.get(User, session.user_id)
  if user is None:
    return None
  return AuthContext(user_id=user.id, email=user.email, token=token)


def ensure_demo_user(store: RecordStore, email: str, password: str) -> OpResult:
  """Create the demo account if it doesn't exist yet."""
  if not email or not password:
    return OpResult(success=False, error="DEMO_EMAIL and DEMO_PASSWORD must be set", reason="invalid")
  try:
    creds = Credentials(email=email, password=password)
  except ValidationError as e:
    problems = "; ".join(f"{err['loc'][0]}: {err['msg']}" for err in e.errors())
    return OpResult(success=False, error=f"Demo credentials rejected: {problems}", reason="invalid")
  if store.count(User, eq={"email": _normalize(email)}):
    return OpResult(success=True, data={"email": _normalize(email), "created": False})
  result = sign_up(store, creds)
  if not result.success:
    return result
  logger.warning(f"Demo account created: {result.data['email']}")
  return OpResult(success=True, data={"email": result.data["email"], "created": True})
