"""Roster schedule lookups and spreadsheet upload."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.encoders import jsonable_encoder

from roster import queries
from roster.config import get_settings as get_roster_settings
from roster.errors import StorageTransientError, WorkbookFormatError
from roster.importer import SPREADSHEET_SUFFIXES, BatchImportSummary, import_roster_bytes
from ..config import get_settings
from ..utils.parsing import flatten_list_param, parse_match_mode, parse_month_param

log = logging.getLogger(__name__)

router = APIRouter(prefix="/roster", tags=["roster"])
legacy_router = APIRouter(tags=["roster-legacy"])

STORAGE_UNAVAILABLE = "Сховище тимчасово недоступне, спробуйте пізніше"


def _storage_unavailable(exc: StorageTransientError) -> HTTPException:
    log.warning("Roster storage unavailable: %s", exc)
    return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, STORAGE_UNAVAILABLE)


@router.get("/by-name")
def api_schedule_by_name(name: str = Query(..., min_length=1)):
    try:
        result = queries.schedule_for_employee(name)
    except StorageTransientError as exc:
        raise _storage_unavailable(exc) from exc
    if result is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Працівника не знайдено")
    return jsonable_encoder(result)


@router.get("/by-departments")
def api_schedule_by_departments(departments: List[str] = Query(...)):
    wanted = flatten_list_param(departments)
    if not wanted:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid departments")
    try:
        items = queries.schedules_for_departments(wanted)
    except StorageTransientError as exc:
        raise _storage_unavailable(exc) from exc
    if not items:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Нічого не знайдено для вказаних відділів")
    return jsonable_encoder(items)


@router.get("/by-month")
def api_schedule_by_month(
    date: str = Query(..., description="Month as MM.YYYY"),
    name: List[str] = Query(default=[]),
    department: List[str] = Query(default=[]),
    match: Optional[str] = Query(default=None, description="any (OR) or all (AND)"),
):
    month, year = parse_month_param("date", date)
    mode = parse_match_mode(match, get_settings().filter_mode)
    try:
        items = queries.schedules_for_month(
            month,
            year,
            names=flatten_list_param(name),
            departments=flatten_list_param(department),
            match=mode,
        )
    except StorageTransientError as exc:
        raise _storage_unavailable(exc) from exc
    return jsonable_encoder(items)


@router.get("/suggest")
def api_suggest(info: str = Query(default="")):
    try:
        result = queries.suggest(info)
    except StorageTransientError as exc:
        raise _storage_unavailable(exc) from exc
    return jsonable_encoder(result)


def _summary_payload(summary: BatchImportSummary) -> dict:
    return {
        "file": summary.source,
        "status": "ok" if summary.ok else "partial",
        "sheets": summary.sheets,
        "employees": summary.employees,
        "entries": summary.entries_written,
        "dates": len(summary.dates),
        "skipped_blocks": len(summary.skipped_blocks),
        "invalid_dates": sum(summary.invalid_dates.values()),
        "failed_entries": len(summary.failed_entries) + sum(summary.failed_employees.values()),
        "failed_sheets": [failure.sheet for failure in summary.failed_sheets],
    }


@router.post("/import")
def api_import_rosters(files: List[UploadFile] = File(...)):
    """Import roster workbooks one by one; a bad file does not stop the others."""
    settings = get_settings()
    if len(files) > settings.max_upload_files:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Забагато файлів ({len(files)}), ліміт {settings.max_upload_files}",
        )

    options = get_roster_settings().import_options()
    results: List[dict] = []
    imported = 0

    for upload in files:
        filename = upload.filename or "roster.xlsx"
        if Path(filename).suffix.lower() not in SPREADSHEET_SUFFIXES:
            log.warning("Upload %s skipped: not an xlsx workbook", filename)
            results.append({"file": filename, "status": "skipped", "error": "not an xlsx workbook"})
            continue

        data = upload.file.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            results.append({"file": filename, "status": "skipped", "error": "file too large"})
            continue

        try:
            summary = import_roster_bytes(data, source=filename, options=options)
        except WorkbookFormatError as exc:
            results.append({"file": filename, "status": "skipped", "error": str(exc)})
            continue
        except StorageTransientError as exc:
            log.error("Upload %s failed, storage unavailable: %s", filename, exc)
            results.append({"file": filename, "status": "failed", "error": STORAGE_UNAVAILABLE})
            continue
        except Exception:  # pylint: disable=broad-except
            log.exception("Upload %s failed", filename)
            results.append({"file": filename, "status": "failed", "error": "import failed"})
            continue

        imported += 1
        results.append(_summary_payload(summary))

    if not imported:
        failed = any(item["status"] == "failed" for item in results)
        raise HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE if failed else status.HTTP_400_BAD_REQUEST,
            detail={"message": "Жоден файл не імпортовано", "files": results},
        )

    overall = "ok" if all(item["status"] == "ok" for item in results) else "partial"
    return {"status": overall, "files": results}


# Paths used by the mobile calendar client.
legacy_router.add_api_route("/getAllByUser", api_schedule_by_name, methods=["GET"])
legacy_router.add_api_route("/getByDepartments", api_schedule_by_departments, methods=["GET"])
legacy_router.add_api_route("/getByMonth&NameOrDepartment", api_schedule_by_month, methods=["GET"])
legacy_router.add_api_route("/findAll", api_suggest, methods=["GET"])
