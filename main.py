import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

import config
from auth import ensure_demo_user
from auth_route import router as auth_router
from billing_route import router as billing_router
from db import engine, init_db
from report_route import router as report_router
from store import RecordStore, StoreError

logging.basicConfig(
  level=config.LOG_LEVEL,
  format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
  init_db()
  if config.DEMO_MODE:
    logger.warning("DEMO_MODE is on, do not use in production")
    with Session(engine) as session:
      result = ensure_demo_user(RecordStore(session), config.DEMO_EMAIL, config.DEMO_PASSWORD)
      if not result.success:
        logger.error(f"Demo account not available: {result.error}")
  yield


app = FastAPI(title="WiFi Manager Backend", version="1.0.0", lifespan=lifespan)
app.add_middleware(
  CORSMiddleware,
  allow_origins=config.CORS_ORIGINS,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(_request: Request, exc: StoreError):
  logger.error(f"Unhandled store error: {exc.message}")
  return JSONResponse(status_code=502, content={"detail": f"Store error: {exc.message}"})


app.include_router(auth_router)
app.include_router(billing_router)
app.include_router(report_router)


@app.get("/health")
def health():
  return {"ok": True, "demo_mode": config.DEMO_MODE}
