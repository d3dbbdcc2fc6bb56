# db.py
from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from config import DATABASE_URL

if not DATABASE_URL:
  raise RuntimeError("DATABASE_URL is not set in backend .env")

# FastAPI may resolve dependencies and run the endpoint on different threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True, connect_args=connect_args)


def enable_sqlite_foreign_keys(target_engine) -> None:
  if target_engine.dialect.name != "sqlite":
    return

  @event.listens_for(target_engine, "connect")
  def _fk_pragma(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


enable_sqlite_foreign_keys(engine)


def init_db(target_engine=None) -> None:
  import models  # noqa: F401  registers the tables on SQLModel.metadata
  SQLModel.metadata.create_all(target_engine or engine)


def get_session():
  with Session(engine) as session:
    yield session
