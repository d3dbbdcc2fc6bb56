# deps.py
from datetime import date
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from auth import AuthContext, resolve_token
from db import get_session
from schemas import OpResult
from store import RecordStore

_STATUS_BY_REASON = {
  "not_found": 404,
  "conflict": 409,
  "invalid": 400,
  "store": 502,
}


def get_store(session: Session = Depends(get_session)) -> RecordStore:
  return RecordStore(session)


def today() -> date:
  return date.today()


def require_auth(
  authorization: Optional[str] = Header(default=None),
  store: RecordStore = Depends(get_store),
) -> AuthContext:
  scheme, _, token = (authorization or "").partition(" ")
  if scheme.lower() != "bearer" or not token.strip():
    raise HTTPException(status_code=401, detail="Not signed in")
  ctx = resolve_token(store, token.strip())
  if ctx is None:
    raise HTTPException(status_code=401, detail="Session expired or invalid")
  return ctx


def unwrap(result: OpResult):
  """Return the result's data or raise the matching HTTPException."""
  if result.success:
    return result.data
  raise HTTPException(
    status_code=_STATUS_BY_REASON.get(result.reason or "store", 500),
    detail=result.error or "Request failed",
  )
