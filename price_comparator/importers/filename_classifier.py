# price_comparator/importers/filename_classifier.py

"""Classify snapshot file names into product / discount / unrecognized."""

import re
from dataclasses import dataclass
from datetime import date

from price_comparator.config.settings import Settings

# {store}_discounts_{YYYY-MM-DD}.{ext}
_DISCOUNT_RE = re.compile(
    r"^([A-Za-z0-9]+)_discounts_(\d{4}-\d{2}-\d{2})\.([A-Za-z0-9]+)$"
)

# {store}_{YYYY-MM-DD}.{ext}
_PRODUCT_RE = re.compile(
    r"^([A-Za-z0-9]+)_(\d{4}-\d{2}-\d{2})\.([A-Za-z0-9]+)$"
)


@dataclass(frozen=True)
class ProductFile:
    """A per-store, per-day price file."""

    store: str
    snapshot_date: date


@dataclass(frozen=True)
class DiscountFile:
    """A per-store, per-day discount file."""

    store: str
    snapshot_date: date


@dataclass(frozen=True)
class Unrecognized:
    """A file name that is not a snapshot, with the reason why."""

    filename: str
    reason: str


FileKind = ProductFile | DiscountFile | Unrecognized


def has_snapshot_extension(filename: str) -> bool:
    """Return True if *filename* ends in a configured snapshot extension."""
    lowered = filename.lower()
    return any(
        lowered.endswith(ext) for ext in Settings.SNAPSHOT_EXTENSIONS
    )


def classify(filename: str) -> FileKind:
    """Classify a bare file name.

    The discount pattern is tried first; a product-shaped name cannot
    contain the ``_discounts_`` infix because store names are
    alphanumeric.
    """
    if not has_snapshot_extension(filename):
        return Unrecognized(filename, "unsupported extension")

    for pattern, kind in (
        (_DISCOUNT_RE, DiscountFile),
        (_PRODUCT_RE, ProductFile),
    ):
        match = pattern.match(filename)
        if match is None:
            continue
        try:
            snapshot_date = date.fromisoformat(match.group(2))
        except ValueError:
            return Unrecognized(
                filename, f"invalid date '{match.group(2)}'",
            )
        return kind(store=match.group(1), snapshot_date=snapshot_date)

    return Unrecognized(filename, "name does not match a snapshot pattern")
