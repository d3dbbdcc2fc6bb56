# report_route.py
import logging
import threading
from datetime import date
from typing import Dict

from fastapi import APIRouter, Depends, File, HTTPException, Path, Response, UploadFile

from auth import AuthContext
from dashboard import RefreshTracker, summarize
from deps import get_store, require_auth, today
from exporter import export_backup, export_report
from importer import import_workbook
from reports import build_year_report
from schemas import DashboardStats, ImportSummary, ReportResult
from store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"], dependencies=[Depends(require_auth)])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_trackers: Dict[int, RefreshTracker] = {}
_trackers_lock = threading.Lock()


def tracker_for(user_id: int) -> RefreshTracker:
  with _trackers_lock:
    if user_id not in _trackers:
      _trackers[user_id] = RefreshTracker()
    return _trackers[user_id]


def _xlsx(filename: str, content: bytes) -> Response:
  return Response(
    content=content,
    media_type=XLSX_MEDIA_TYPE,
    headers={"Content-Disposition": f'attachment; filename="{filename}"'},
  )


def _year_report(store: RecordStore, year: int) -> ReportResult:
  result = build_year_report(store, year)
  if not result.success:
    raise HTTPException(status_code=502, detail=f"Could not load report: {result.error}")
  return result


@router.get("/reports/{year}", response_model=ReportResult)
def get_report(year: int = Path(ge=1000, le=9999), store: RecordStore = Depends(get_store)):
  return _year_report(store, year)


@router.get("/reports/{year}/export")
def export_year(year: int = Path(ge=1000, le=9999), store: RecordStore = Depends(get_store)):
  result = _year_report(store, year)
  filename, content = export_report(result.reports, year)
  return _xlsx(filename, content)


@router.get("/dashboard", response_model=DashboardStats)
def get_dashboard(store: RecordStore = Depends(get_store), now: date = Depends(today)):
  return summarize(store, now)


@router.post("/dashboard/refresh")
def refresh_dashboard(
  store: RecordStore = Depends(get_store),
  now: date = Depends(today),
  ctx: AuthContext = Depends(require_auth),
):
  tracker = tracker_for(ctx.user_id)
  token = tracker.begin()
  stats = summarize(store, now)
  applied = tracker.publish(token, stats)
  # a newer refresh may have finished first; answer with the newest snapshot
  shown_token, latest = tracker.snapshot()
  if latest is None:
    shown_token, latest = token, stats
  return {"token": token, "applied": applied, "stats_token": shown_token, "stats": latest}


@router.get("/dashboard/latest", response_model=DashboardStats)
def latest_dashboard(ctx: AuthContext = Depends(require_auth)):
  stats = tracker_for(ctx.user_id).latest
  if stats is None:
    raise HTTPException(status_code=404, detail="Dashboard has not been refreshed yet")
  return stats


@router.post("/data/import", response_model=ImportSummary)
async def import_data(file: UploadFile = File(...), store: RecordStore = Depends(get_store)):
  content = await file.read()
  if not content:
    raise HTTPException(status_code=400, detail="Uploaded file is empty")
  logger.info(f"Importing {file.filename or 'upload'} ({len(content)} bytes)")
  return import_workbook(store, content)


@router.get("/data/backup")
def backup_data(store: RecordStore = Depends(get_store), now: date = Depends(today)):
  filename, content = export_backup(store, now)
  return _xlsx(filename, content)
