"""Reconcile decoded roster batches into the schedule store."""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from repositories import employee_repository, schedule_repository
from repositories.schedule_repository import EntryRow

from .config import ImportOptions
from .errors import StorageTransientError, WorkbookFormatError
from .intermediate import parse_json, parse_text, write_artifacts
from .layout import decode_workbook
from .normalize import parse_roster_date
from .records import DecodedWorkbook, EmployeeRecord, SheetFailure, SkipRecord

log = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}
TEXT_SUFFIXES = {".txt"}
JSON_SUFFIXES = {".json"}

# Full-day replacement is not safe for overlapping concurrent imports.
_IMPORT_LOCK = threading.Lock()


@dataclass
class EntryFailure:
    employee: str
    schedule_date: date
    error: str


@dataclass
class BatchImportSummary:
    source: str
    sheets: int = 0
    employees: int = 0
    entries_written: int = 0
    entries_planned: int = 0
    entries_deleted: int = 0
    dates: List[date] = field(default_factory=list)
    invalid_dates: Counter[str] = field(default_factory=Counter)
    failed_entries: List[EntryFailure] = field(default_factory=list)
    failed_employees: Counter[str] = field(default_factory=Counter)
    skipped_blocks: List[SkipRecord] = field(default_factory=list)
    failed_sheets: List[SheetFailure] = field(default_factory=list)
    artifacts: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_entries and not self.failed_employees and not self.failed_sheets


@dataclass
class FileFailure:
    source: str
    error: str


@dataclass
class ImportOutcome:
    summaries: List[BatchImportSummary]
    failures: List[FileFailure]
    replace_days: bool
    dry_run: bool

    @property
    def ok(self) -> bool:
        return not self.failures and all(summary.ok for summary in self.summaries)


def normalize_schedule(employee: EmployeeRecord, invalid: Counter[str]) -> List[EntryRow]:
    """Turn an employee's shift records into storable rows, skipping bad dates."""
    rows: List[EntryRow] = []
    for shift in employee.schedule:
        parsed = parse_roster_date(shift.date)
        if parsed is None:
            log.warning("Employee %r: invalid date %r, shift skipped", employee.name, shift.date)
            invalid[shift.date] += 1
            continue
        rows.append((parsed, shift.action, shift.department or "", bool(shift.duty)))
    return rows


def collect_batch_dates(batch: Sequence[Tuple[EmployeeRecord, List[EntryRow]]]) -> Set[date]:
    return {row[0] for _, rows in batch for row in rows}


def import_batch(
    employees: Iterable[EmployeeRecord],
    *,
    source: str,
    options: ImportOptions,
    skipped: Sequence[SkipRecord] = (),
    failed_sheets: Sequence[SheetFailure] = (),
    sheets: int = 0,
) -> BatchImportSummary:
    """Write one import batch.

    Every date present in the batch is vacated first (when
    ``options.replace_days``), then each employee is resolved by name and its
    entries are upserted. A failure of one entry or one employee is logged and
    does not stop the rest of the batch. Storage errors raised while vacating
    dates abort the batch before anything is written.
    """
    summary = BatchImportSummary(
        source=source,
        sheets=sheets,
        skipped_blocks=list(skipped),
        failed_sheets=list(failed_sheets),
    )

    batch: List[Tuple[EmployeeRecord, List[EntryRow]]] = []
    for employee in employees:
        batch.append((employee, normalize_schedule(employee, summary.invalid_dates)))
    summary.employees = len(batch)
    summary.dates = sorted(collect_batch_dates(batch))

    if options.dry_run:
        summary.entries_planned = sum(len(rows) for _, rows in batch)
        return summary

    with _IMPORT_LOCK:
        schedule_repository.ensure_schedule_tables()
        if options.replace_days and summary.dates:
            summary.entries_deleted = schedule_repository.delete_entries_for_dates(summary.dates)
            log.info("%s: vacated %s days (%s entries removed)", source, len(summary.dates), summary.entries_deleted)

        for employee, rows in batch:
            try:
                record = employee_repository.get_or_create_employee(employee.name, employee.position)
                written, failures = schedule_repository.upsert_employee_schedule(
                    record["id"],
                    rows,
                    source=source,
                )
            except StorageTransientError as exc:
                log.error("%s: storage error while importing %r: %s", source, employee.name, exc)
                summary.failed_employees[employee.name] += 1
                continue
            except Exception:  # pylint: disable=broad-except
                log.exception("%s: failed to import employee %r", source, employee.name)
                summary.failed_employees[employee.name] += 1
                continue

            summary.entries_written += written
            for schedule_date, error in failures:
                summary.failed_entries.append(
                    EntryFailure(employee=employee.name, schedule_date=schedule_date, error=error)
                )

    log.info(
        "%s: %s employees, %s entries written, %s invalid dates, %s failed entries",
        source,
        summary.employees,
        summary.entries_written,
        sum(summary.invalid_dates.values()),
        len(summary.failed_entries),
    )
    return summary


def import_decoded_workbook(decoded: DecodedWorkbook, options: ImportOptions) -> BatchImportSummary:
    artifacts: List[Path] = []
    if options.intermediate_dir is not None:
        try:
            artifacts = write_artifacts(decoded, options.intermediate_dir)
        except OSError:
            log.exception("%s: failed to write intermediate artifacts", decoded.source)

    summary = import_batch(
        decoded.employees,
        source=decoded.source,
        options=options,
        skipped=decoded.skipped,
        failed_sheets=decoded.failures,
        sheets=len(decoded.sheets),
    )
    summary.artifacts = artifacts
    return summary


def import_roster_bytes(data: bytes, *, source: str, options: ImportOptions) -> BatchImportSummary:
    decoded = decode_workbook(data, source=source)
    return import_decoded_workbook(decoded, options)


def import_roster_text(text: str, *, source: str, options: ImportOptions) -> BatchImportSummary:
    """Replay an intermediate text (or JSON) dump."""
    if source.lower().endswith(".json"):
        try:
            employees = parse_json(text)
        except (ValueError, AttributeError) as exc:
            raise WorkbookFormatError(f"not a roster JSON document: {exc}") from exc
    else:
        employees = parse_text(text)
    return import_batch(employees, source=source, options=options)


def _import_one_file(path: Path, options: ImportOptions) -> BatchImportSummary:
    suffix = path.suffix.lower()
    if suffix in SPREADSHEET_SUFFIXES:
        return import_roster_bytes(path.read_bytes(), source=path.name, options=options)
    if suffix in TEXT_SUFFIXES or suffix in JSON_SUFFIXES:
        return import_roster_text(path.read_text(encoding="utf-8"), source=path.name, options=options)
    raise WorkbookFormatError(f"unsupported file type {suffix or '<none>'}")


def import_roster_files(paths: Iterable[Path], options: ImportOptions) -> ImportOutcome:
    """Import files one by one; a failing file never stops the ones after it."""
    summaries: List[BatchImportSummary] = []
    failures: List[FileFailure] = []

    for path in paths:
        try:
            summaries.append(_import_one_file(path, options))
        except WorkbookFormatError as exc:
            log.warning("%s: skipped, %s", path, exc)
            failures.append(FileFailure(source=path.name, error=str(exc)))
        except StorageTransientError as exc:
            log.error("%s: storage unavailable, retry the import later: %s", path, exc)
            failures.append(FileFailure(source=path.name, error=str(exc)))
        except OSError as exc:
            log.warning("%s: cannot read file: %s", path, exc)
            failures.append(FileFailure(source=path.name, error=str(exc)))
        except Exception as exc:  # pylint: disable=broad-except
            log.exception("%s: import failed", path)
            failures.append(FileFailure(source=path.name, error=str(exc)))

    return ImportOutcome(
        summaries=summaries,
        failures=failures,
        replace_days=options.replace_days,
        dry_run=options.dry_run,
    )


def discover_roster_files(directory: Path) -> List[Path]:
    suffixes = SPREADSHEET_SUFFIXES | TEXT_SUFFIXES | JSON_SUFFIXES
    return sorted(path for path in directory.iterdir() if path.is_file() and path.suffix.lower() in suffixes)


def _format_counter_section(
    lines: List[str],
    counter: Counter[str],
    title: str,
) -> None:
    if not counter:
        return
    lines.append(f"  {title}:")
    for name, count in counter.most_common():
        lines.append(f"    · {name} × {count}")


def format_import_report(outcome: ImportOutcome, *, max_entry_failures: Optional[int] = 3) -> str:
    replace_text = "yes" if outcome.replace_days else "no"
    lines: List[str] = [
        f"Файлів оброблено: {len(outcome.summaries)} (replace={replace_text}, dry_run={outcome.dry_run})"
    ]

    for summary in outcome.summaries:
        span = ""
        if summary.dates:
            span = f" {summary.dates[0].isoformat()}..{summary.dates[-1].isoformat()}"
        if outcome.dry_run:
            counts = f"буде записано={summary.entries_planned}"
        else:
            counts = f"записів={summary.entries_written} видалено={summary.entries_deleted}"
        lines.append(
            f"- {summary.source}{span}: аркушів={summary.sheets} працівників={summary.employees} {counts}"
        )
        _format_counter_section(lines, summary.invalid_dates, "Некоректні дати")
        _format_counter_section(lines, summary.failed_employees, "Працівники з помилками запису")
        for skip in summary.skipped_blocks:
            lines.append(f"    · пропущено '{skip.name}' (аркуш '{skip.sheet}', рядок {skip.row}): {skip.reason}")
        for failure in summary.failed_sheets:
            lines.append(f"    · аркуш '{failure.sheet}' не розібрано: {failure.error}")
        limit = len(summary.failed_entries) if max_entry_failures is None else max_entry_failures
        for failure in summary.failed_entries[:limit]:
            lines.append(
                f"    · запис {failure.employee} {failure.schedule_date.isoformat()} не збережено: {failure.error}"
            )
        hidden = len(summary.failed_entries) - limit
        if hidden > 0:
            lines.append(f"    · ... ще {hidden} помилок запису")

    if outcome.failures:
        lines.append("\nФайли з помилками:")
        for failure in outcome.failures:
            lines.append(f"  · {failure.source}: {failure.error}")

    if outcome.dry_run:
        lines.append("\nDRY RUN завершено. Зміни до бази не вносилися.")

    return "\n".join(lines)
