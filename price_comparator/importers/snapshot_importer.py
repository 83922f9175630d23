# price_comparator/importers/snapshot_importer.py

"""Import per-store, per-day price and discount CSV snapshots.

Each file is reconciled against what the store already holds for the
same ``(store, date)``: rows whose product id is already stored update
that record in place, the rest become new records, and repeated ids
inside one file are counted and ignored after their first occurrence.
A file is persisted as one atomic batch, and a bad file never stops the
rest of the directory from being imported.
"""

import csv
import logging
import re
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, TypeVar

from price_comparator.config.settings import Settings
from price_comparator.importers.filename_classifier import (
    DiscountFile,
    ProductFile,
    Unrecognized,
    classify,
    has_snapshot_extension,
)
from price_comparator.models.discount_snapshot import DiscountSnapshot
from price_comparator.models.product_snapshot import ProductSnapshot
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.importer")

_RecordT = TypeVar("_RecordT", ProductSnapshot, DiscountSnapshot)

_HUNDRED = Decimal(100)

# Plain decimals only: optional sign, digits, optional fraction
_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$", re.ASCII)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)


@dataclass
class FileImportResult:
    """Outcome of importing a single snapshot file."""

    filename: str
    kind: str  # "product", "discount", "unrecognized"
    store: str = ""
    snapshot_date: date | None = None
    new_count: int = 0
    updated_count: int = 0
    duplicates_skipped: int = 0
    malformed_skipped: int = 0
    status: str = "ok"  # "ok", "skipped", "failed"
    message: str = ""


@dataclass
class ImportReport:
    """Aggregated outcome of one directory import."""

    directory: str
    directory_found: bool = True
    files: list[FileImportResult] = field(
        default_factory=lambda: list[FileImportResult]()
    )

    @property
    def new_count(self) -> int:
        return sum(f.new_count for f in self.files)

    @property
    def updated_count(self) -> int:
        return sum(f.updated_count for f in self.files)

    @property
    def duplicates_skipped(self) -> int:
        return sum(f.duplicates_skipped for f in self.files)

    @property
    def malformed_skipped(self) -> int:
        return sum(f.malformed_skipped for f in self.files)

    @property
    def files_imported(self) -> int:
        return sum(1 for f in self.files if f.status == "ok")


def normalize_package_unit(raw: str) -> str:
    """Trim a package unit and map known aliases (``role`` -> ``piece``)."""
    unit = raw.strip()
    return Settings.PACKAGE_UNIT_ALIASES.get(unit.lower(), unit)


def _decimal(raw: str, label: str) -> Decimal:
    """Parse a plain decimal such as ``9.80``, else raise ``ValueError``.

    Digit grouping (``9_80``), exponents and NaN/Infinity are rejected.
    """
    text = raw.strip()
    if not _DECIMAL_RE.match(text):
        msg = f"invalid {label} '{raw}'"
        raise ValueError(msg)
    return Decimal(text)


def _iso_date(raw: str, label: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` date, raising ``ValueError`` otherwise."""
    text = raw.strip()
    if not _DATE_RE.match(text):
        msg = f"invalid {label} '{raw}', expected YYYY-MM-DD"
        raise ValueError(msg)
    return date.fromisoformat(text)


def _parse_product_fields(row: list[str]) -> dict[str, Any]:
    """Map a product row to the mutable ProductSnapshot fields."""
    price = _decimal(row[6], "price")
    if price <= 0:
        msg = f"price must be positive, got {price}"
        raise ValueError(msg)
    return {
        "name": row[1].strip(),
        "category": row[2].strip(),
        "brand": row[3].strip(),
        "package_quantity": _decimal(row[4], "package quantity"),
        "package_unit": normalize_package_unit(row[5]),
        "price": price,
        "currency": row[7].strip(),
    }


def _parse_discount_fields(row: list[str]) -> dict[str, Any]:
    """Map a discount row to the mutable DiscountSnapshot fields."""
    from_date = _iso_date(row[6], "from_date")
    to_date = _iso_date(row[7], "to_date")
    if from_date > to_date:
        msg = f"from_date {from_date} is after to_date {to_date}"
        raise ValueError(msg)
    percentage = _decimal(row[8], "percentage")
    if not 0 < percentage <= _HUNDRED:
        msg = f"percentage must be in (0, 100], got {percentage}"
        raise ValueError(msg)
    return {
        "product_name": row[1].strip(),
        "brand": row[2].strip(),
        "package_quantity": _decimal(row[3], "package quantity"),
        "package_unit": normalize_package_unit(row[4]),
        "category": row[5].strip(),
        "from_date": from_date,
        "to_date": to_date,
        "percentage": percentage,
    }


def _read_rows(path: Path) -> list[list[str]]:
    """Read all data rows of a semicolon CSV, skipping the header."""
    with open(path, encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f, delimiter=Settings.CSV_DELIMITER)
        next(reader, None)
        return list(reader)


def _reconcile_rows(
    rows: list[list[str]],
    result: FileImportResult,
    min_fields: int,
    existing: dict[str, _RecordT],
    parse: Callable[[list[str]], dict[str, Any]],
    create: Callable[[str, dict[str, Any]], _RecordT],
) -> list[_RecordT]:
    """Turn parsed rows into the list of records to upsert.

    ``existing`` is indexed once per file; ``processed`` tracks ids seen
    in this file so only their first occurrence is used.
    """
    processed: set[str] = set()
    to_save: list[_RecordT] = []

    for line_no, row in enumerate(rows, start=2):
        if len(row) < min_fields:
            logger.warning(
                "Skipping malformed %s row %d in %s: %s",
                result.kind,
                line_no,
                result.filename,
                ";".join(row),
            )
            result.malformed_skipped += 1
            continue

        product_id = row[0].strip()
        if product_id in processed:
            logger.debug(
                "Skipping duplicate product id %s in %s",
                product_id,
                result.filename,
            )
            result.duplicates_skipped += 1
            continue
        processed.add(product_id)

        try:
            fields = parse(row)
        except ValueError as exc:
            logger.error(
                "Error parsing %s row %d for product id %s in %s: %s - %s",
                result.kind,
                line_no,
                product_id,
                result.filename,
                ";".join(row),
                exc,
            )
            result.malformed_skipped += 1
            continue

        record = existing.get(product_id)
        if record is not None:
            for name, value in fields.items():
                setattr(record, name, value)
            result.updated_count += 1
        else:
            record = create(product_id, fields)
            result.new_count += 1
        to_save.append(record)

    return to_save


class SnapshotImporter:
    """Reconciles snapshot files in a directory into the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def import_from(self, directory: str | Path) -> ImportReport:
        """Import every snapshot file directly inside *directory*."""
        path = Path(directory)
        report = ImportReport(directory=str(path))
        if not path.is_dir():
            logger.error(
                "Directory not found or is not a directory: %s", path,
            )
            report.directory_found = False
            return report

        files = sorted(
            p for p in path.iterdir()
            if p.is_file() and has_snapshot_extension(p.name)
        )
        for filepath in files:
            report.files.append(self.import_file(filepath))

        logger.info(
            "Import of %s complete: %d files, %d new, %d updated, "
            "%d duplicates skipped, %d malformed rows",
            path,
            report.files_imported,
            report.new_count,
            report.updated_count,
            report.duplicates_skipped,
            report.malformed_skipped,
        )
        return report

    def import_file(self, filepath: Path) -> FileImportResult:
        """Classify and import one file."""
        kind = classify(filepath.name)
        if isinstance(kind, Unrecognized):
            logger.warning(
                "Skipping file %s: %s", kind.filename, kind.reason,
            )
            return FileImportResult(
                filename=filepath.name,
                kind="unrecognized",
                status="skipped",
                message=kind.reason,
            )
        if isinstance(kind, DiscountFile):
            return self._import_discounts(filepath, kind)
        return self._import_products(filepath, kind)

    # ── Per-kind import ──────────────────────────────────

    def _import_products(
        self, filepath: Path, info: ProductFile,
    ) -> FileImportResult:
        result = FileImportResult(
            filename=filepath.name,
            kind="product",
            store=info.store,
            snapshot_date=info.snapshot_date,
        )
        logger.info("Importing product prices from %s", filepath.name)

        def create(product_id: str, fields: dict[str, Any]) -> ProductSnapshot:
            return ProductSnapshot(
                product_id=product_id,
                store=info.store,
                price_date=info.snapshot_date,
                **fields,
            )

        with self._store.key_lock("product", info.store, info.snapshot_date):
            existing = {
                s.product_id: s
                for s in self._store.find_snapshots(
                    store=info.store, date_exact=info.snapshot_date,
                )
            }
            to_save = self._read_and_reconcile(
                filepath,
                result,
                Settings.MIN_PRODUCT_FIELDS,
                existing,
                _parse_product_fields,
                create,
            )
            if to_save is not None:
                self._persist(
                    result, lambda: self._store.upsert_snapshots(to_save),
                )
        return result

    def _import_discounts(
        self, filepath: Path, info: DiscountFile,
    ) -> FileImportResult:
        result = FileImportResult(
            filename=filepath.name,
            kind="discount",
            store=info.store,
            snapshot_date=info.snapshot_date,
        )
        logger.info("Importing discounts from %s", filepath.name)

        def create(
            product_id: str, fields: dict[str, Any],
        ) -> DiscountSnapshot:
            return DiscountSnapshot(
                product_id=product_id,
                store=info.store,
                discount_date=info.snapshot_date,
                **fields,
            )

        with self._store.key_lock(
            "discount", info.store, info.snapshot_date,
        ):
            existing = {
                d.product_id: d
                for d in self._store.find_discounts(
                    store=info.store,
                    discount_date_exact=info.snapshot_date,
                )
            }
            to_save = self._read_and_reconcile(
                filepath,
                result,
                Settings.MIN_DISCOUNT_FIELDS,
                existing,
                _parse_discount_fields,
                create,
            )
            if to_save is not None:
                self._persist(
                    result, lambda: self._store.upsert_discounts(to_save),
                )
        return result

    # ── Helpers ──────────────────────────────────────────

    @staticmethod
    def _read_and_reconcile(
        filepath: Path,
        result: FileImportResult,
        min_fields: int,
        existing: dict[str, _RecordT],
        parse: Callable[[list[str]], dict[str, Any]],
        create: Callable[[str, dict[str, Any]], _RecordT],
    ) -> list[_RecordT] | None:
        """Read the file and reconcile it; ``None`` if it was unreadable."""
        try:
            rows = _read_rows(filepath)
        except (OSError, csv.Error, UnicodeDecodeError) as exc:
            logger.error("Error reading %s: %s", filepath.name, exc)
            result.status = "failed"
            result.message = str(exc)
            return None
        return _reconcile_rows(
            rows, result, min_fields, existing, parse, create,
        )

    @staticmethod
    def _persist(
        result: FileImportResult, save: Callable[[], int],
    ) -> None:
        """Run the batch upsert and log the per-file counts."""
        try:
            saved = save()
        except sqlite3.Error as exc:
            logger.error(
                "Failed to persist %s, nothing saved: %s",
                result.filename,
                exc,
            )
            result.status = "failed"
            result.message = str(exc)
            return

        if saved:
            logger.info(
                "Imported %d %s records from %s "
                "(%d new, %d updated, %d duplicates skipped)",
                saved,
                result.kind,
                result.filename,
                result.new_count,
                result.updated_count,
                result.duplicates_skipped,
            )
        else:
            logger.info(
                "No %s records to import from %s "
                "(new: %d, updated: %d, duplicates skipped: %d)",
                result.kind,
                result.filename,
                result.new_count,
                result.updated_count,
                result.duplicates_skipped,
            )
