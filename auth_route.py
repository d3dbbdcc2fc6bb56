# auth_route.py
from fastapi import APIRouter, Depends, HTTPException

import auth
import config
import services
from auth import AuthContext
from deps import get_store, require_auth, unwrap
from models import UserSettings
from schemas import Credentials, SettingsUpdate
from store import RecordStore

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/auth/signup", status_code=201)
def signup(creds: Credentials, store: RecordStore = Depends(get_store)):
  return unwrap(auth.sign_up(store, creds))


@router.post("/auth/signin")
def signin(creds: Credentials, store: RecordStore = Depends(get_store)):
  result = auth.sign_in(store, creds)
  if not result.success and result.reason == "invalid":
    raise HTTPException(status_code=401, detail=result.error)
  return unwrap(result)


@router.post("/auth/signout")
def signout(ctx: AuthContext = Depends(require_auth), store: RecordStore = Depends(get_store)):
  unwrap(auth.sign_out(store, ctx))
  return {"ok": True}


@router.get("/auth/me")
def me(ctx: AuthContext = Depends(require_auth)):
  return {"user_id": ctx.user_id, "email": ctx.email}


@router.post("/auth/demo")
def demo_signin(store: RecordStore = Depends(get_store)):
  if not config.DEMO_MODE:
    raise HTTPException(status_code=404, detail="Demo mode is disabled")
  unwrap(auth.ensure_demo_user(store, config.DEMO_EMAIL, config.DEMO_PASSWORD))
  return unwrap(auth.sign_in(store, Credentials(email=config.DEMO_EMAIL, password=config.DEMO_PASSWORD)))


@router.get("/settings", response_model=UserSettings)
def get_settings(ctx: AuthContext = Depends(require_auth), store: RecordStore = Depends(get_store)):
  return unwrap(services.get_settings(store, ctx))


@router.put("/settings", response_model=UserSettings)
def update_settings(
  updates: SettingsUpdate,
  ctx: AuthContext = Depends(require_auth),
  store: RecordStore = Depends(get_store),
):
  return unwrap(services.update_settings(store, ctx, updates))
