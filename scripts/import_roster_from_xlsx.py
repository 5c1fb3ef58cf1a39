#!/usr/bin/env python3
"""Import duty-roster XLSX workbooks (or intermediate dumps) into the schedule tables."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

import sys

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from roster.config import ImportOptions, get_settings
from roster.importer import discover_roster_files, format_import_report, import_roster_files


def _collect_paths(args: argparse.Namespace, input_dir: Path | None) -> List[Path]:
    paths: List[Path] = list(args.files or [])
    directory = args.input_dir or input_dir
    if not paths and directory is not None:
        if not directory.is_dir():
            raise SystemExit(f"Каталог {directory} не знайдено.")
        paths = discover_roster_files(directory)
    return paths


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "files",
        nargs="*",
        type=Path,
        help="XLSX файли графіків або .txt/.json дампи для повторного імпорту.",
    )
    parser.add_argument(
        "--input-dir",
        type=Path,
        help="Імпортувати всі файли з каталогу (за замовчуванням ROSTER_INPUT_DIR).",
    )
    parser.add_argument(
        "--dump-dir",
        type=Path,
        default=settings.intermediate_dir,
        help="Зберегти проміжні .txt/.json файли в цей каталог.",
    )
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Не очищати дні, що імпортуються; лише оновлювати записи працівників з файлу.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Лише розібрати файли і показати звіт, без запису в базу.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")

    paths = _collect_paths(args, settings.input_dir)
    if not paths:
        raise SystemExit("Немає файлів для імпорту.")

    missing = [path for path in paths if not path.exists()]
    for path in missing:
        logging.getLogger(__name__).warning("Файл %s не знайдено, пропускаємо", path)
    paths = [path for path in paths if path.exists()]

    options = ImportOptions(
        replace_days=settings.replace_days and not args.keep_existing,
        dry_run=args.dry_run,
        intermediate_dir=args.dump_dir.resolve() if args.dump_dir else None,
    )
    outcome = import_roster_files(paths, options)

    print(format_import_report(outcome))
    if not outcome.ok or missing:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
