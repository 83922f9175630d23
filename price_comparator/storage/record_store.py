# price_comparator/storage/record_store.py

"""SQLite-backed record store for product, discount and alert records."""

import logging
import sqlite3
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from price_comparator.config.settings import Settings
from price_comparator.models.alert import Alert
from price_comparator.models.discount_snapshot import DiscountSnapshot
from price_comparator.models.product_snapshot import ProductSnapshot

logger = logging.getLogger("price_comparator.store")

# Money, quantities and percentages are stored as TEXT so Decimal
# values survive the round trip exactly.
_SCHEMA = """\
CREATE TABLE IF NOT EXISTS product_snapshots (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id       TEXT NOT NULL,
    store            TEXT NOT NULL,
    price_date       TEXT NOT NULL,
    name             TEXT NOT NULL,
    category         TEXT NOT NULL,
    brand            TEXT NOT NULL,
    price            TEXT NOT NULL,
    currency         TEXT NOT NULL,
    package_quantity TEXT NOT NULL,
    package_unit     TEXT NOT NULL,
    UNIQUE (product_id, store, price_date)
);

CREATE INDEX IF NOT EXISTS idx_products_store_date
    ON product_snapshots(store, price_date);
CREATE INDEX IF NOT EXISTS idx_products_name_store_date
    ON product_snapshots(name, store, price_date);

CREATE TABLE IF NOT EXISTS discount_snapshots (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id       TEXT NOT NULL,
    store            TEXT NOT NULL,
    discount_date    TEXT NOT NULL,
    product_name     TEXT NOT NULL,
    category         TEXT NOT NULL,
    brand            TEXT NOT NULL,
    package_quantity TEXT NOT NULL,
    package_unit     TEXT NOT NULL,
    from_date        TEXT NOT NULL,
    to_date          TEXT NOT NULL,
    percentage       TEXT NOT NULL,
    UNIQUE (product_id, store, discount_date)
);

CREATE INDEX IF NOT EXISTS idx_discounts_window
    ON discount_snapshots(from_date, to_date);
CREATE INDEX IF NOT EXISTS idx_discounts_store_date
    ON discount_snapshots(store, discount_date);

CREATE TABLE IF NOT EXISTS alerts (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    product_name  TEXT    NOT NULL,
    store         TEXT    NOT NULL,
    target_price  TEXT    NOT NULL,
    active        INTEGER NOT NULL DEFAULT 1,
    creation_date TEXT    NOT NULL
);
"""

_SNAPSHOT_COLUMNS = (
    "id, product_id, store, price_date, name, category, brand, "
    "price, currency, package_quantity, package_unit"
)

_DISCOUNT_COLUMNS = (
    "id, product_id, store, discount_date, product_name, category, "
    "brand, package_quantity, package_unit, from_date, to_date, percentage"
)


def _row_to_snapshot(row: sqlite3.Row) -> ProductSnapshot:
    return ProductSnapshot(
        id=row["id"],
        product_id=row["product_id"],
        store=row["store"],
        price_date=date.fromisoformat(row["price_date"]),
        name=row["name"],
        category=row["category"],
        brand=row["brand"],
        price=Decimal(row["price"]),
        currency=row["currency"],
        package_quantity=Decimal(row["package_quantity"]),
        package_unit=row["package_unit"],
    )


def _row_to_discount(row: sqlite3.Row) -> DiscountSnapshot:
    return DiscountSnapshot(
        id=row["id"],
        product_id=row["product_id"],
        store=row["store"],
        discount_date=date.fromisoformat(row["discount_date"]),
        product_name=row["product_name"],
        category=row["category"],
        brand=row["brand"],
        package_quantity=Decimal(row["package_quantity"]),
        package_unit=row["package_unit"],
        from_date=date.fromisoformat(row["from_date"]),
        to_date=date.fromisoformat(row["to_date"]),
        percentage=Decimal(row["percentage"]),
    )


def _row_to_alert(row: sqlite3.Row) -> Alert:
    return Alert(
        id=row["id"],
        product_name=row["product_name"],
        store=row["store"],
        target_price=Decimal(row["target_price"]),
        active=bool(row["active"]),
        creation_date=date.fromisoformat(row["creation_date"]),
    )


class RecordStore:
    """SQLite-backed store for snapshots and alerts.

    One connection is shared between threads and guarded by a
    re-entrant lock. :meth:`transaction` scopes are nestable; only the
    outermost scope commits, and an exception rolls the scope back.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._lock = threading.RLock()
        self._depth = 0
        # Entries drop out once no importer holds the lock
        self._key_locks: weakref.WeakValueDictionary[
            tuple[str, str, date], threading.Lock,
        ] = weakref.WeakValueDictionary()
        self._key_locks_guard = threading.Lock()
        logger.debug("RecordStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Transactions and locking ─────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed block as one atomic unit of work."""
        with self._lock:
            self._depth += 1
            try:
                yield self._conn
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._conn.rollback()
                raise
            self._depth -= 1
            if self._depth == 0:
                self._conn.commit()

    def key_lock(
        self, kind: str, store: str, day: date,
    ) -> threading.Lock:
        """Return the lock serialising imports of one snapshot key."""
        with self._key_locks_guard:
            return self._key_locks.setdefault(
                (kind, store, day), threading.Lock(),
            )

    def _query(
        self, sql: str, params: list[Any],
    ) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    # ── Product snapshots ────────────────────────────────

    def find_snapshots(
        self,
        store: str | None = None,
        name: str | None = None,
        category: str | None = None,
        brand: str | None = None,
        date_exact: date | None = None,
        date_range: tuple[date, date] | None = None,
        product_id: str | None = None,
    ) -> list[ProductSnapshot]:
        """Return snapshots matching every given filter, oldest first.

        ``date_range`` is inclusive on both ends.
        """
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (
            ("store", store),
            ("name", name),
            ("category", category),
            ("brand", brand),
            ("product_id", product_id),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        if date_exact is not None:
            clauses.append("price_date = ?")
            params.append(date_exact.isoformat())
        if date_range is not None:
            clauses.append("price_date BETWEEN ? AND ?")
            params.extend(d.isoformat() for d in date_range)

        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = self._query(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM product_snapshots "
            f"{where}ORDER BY price_date ASC, id ASC",
            params,
        )
        return [_row_to_snapshot(r) for r in rows]

    def get_snapshot(self, snapshot_id: int) -> ProductSnapshot | None:
        """Fetch one snapshot by surrogate id."""
        rows = self._query(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM product_snapshots "
            "WHERE id = ?",
            [snapshot_id],
        )
        return _row_to_snapshot(rows[0]) if rows else None

    def upsert_snapshots(
        self, snapshots: list[ProductSnapshot],
    ) -> int:
        """Insert or update snapshots by natural key in one transaction.

        Assigns ``id`` on records that did not have one.
        Returns the number of records written.
        """
        with self.transaction() as conn:
            for s in snapshots:
                conn.execute(
                    "INSERT INTO product_snapshots "
                    "(product_id, store, price_date, name, category, "
                    " brand, price, currency, package_quantity, "
                    " package_unit) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(product_id, store, price_date) "
                    "DO UPDATE SET name=excluded.name, "
                    "category=excluded.category, brand=excluded.brand, "
                    "price=excluded.price, currency=excluded.currency, "
                    "package_quantity=excluded.package_quantity, "
                    "package_unit=excluded.package_unit",
                    (
                        s.product_id, s.store, s.price_date.isoformat(),
                        s.name, s.category, s.brand, str(s.price),
                        s.currency, str(s.package_quantity),
                        s.package_unit,
                    ),
                )
                if s.id is None:
                    s.id = conn.execute(
                        "SELECT id FROM product_snapshots "
                        "WHERE product_id = ? AND store = ? "
                        "AND price_date = ?",
                        (s.product_id, s.store, s.price_date.isoformat()),
                    ).fetchone()[0]
        if snapshots:
            logger.debug("Upserted %d product snapshots", len(snapshots))
        return len(snapshots)

    # ── Discount snapshots ───────────────────────────────

    def find_discounts(
        self,
        store: str | None = None,
        discount_date_exact: date | None = None,
        discount_date_ge: date | None = None,
        active_on: date | None = None,
    ) -> list[DiscountSnapshot]:
        """Return discounts matching every given filter.

        Rows come back in insertion order so "first encountered" is
        stable across calls.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if store is not None:
            clauses.append("store = ?")
            params.append(store)
        if discount_date_exact is not None:
            clauses.append("discount_date = ?")
            params.append(discount_date_exact.isoformat())
        if discount_date_ge is not None:
            clauses.append("discount_date >= ?")
            params.append(discount_date_ge.isoformat())
        if active_on is not None:
            clauses.append("from_date <= ? AND to_date >= ?")
            params.extend([active_on.isoformat()] * 2)

        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = self._query(
            f"SELECT {_DISCOUNT_COLUMNS} FROM discount_snapshots "
            f"{where}ORDER BY id ASC",
            params,
        )
        return [_row_to_discount(r) for r in rows]

    def upsert_discounts(
        self, discounts: list[DiscountSnapshot],
    ) -> int:
        """Insert or update discounts by natural key in one transaction."""
        with self.transaction() as conn:
            for d in discounts:
                conn.execute(
                    "INSERT INTO discount_snapshots "
                    "(product_id, store, discount_date, product_name, "
                    " category, brand, package_quantity, package_unit, "
                    " from_date, to_date, percentage) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(product_id, store, discount_date) "
                    "DO UPDATE SET product_name=excluded.product_name, "
                    "category=excluded.category, brand=excluded.brand, "
                    "package_quantity=excluded.package_quantity, "
                    "package_unit=excluded.package_unit, "
                    "from_date=excluded.from_date, "
                    "to_date=excluded.to_date, "
                    "percentage=excluded.percentage",
                    (
                        d.product_id, d.store, d.discount_date.isoformat(),
                        d.product_name, d.category, d.brand,
                        str(d.package_quantity), d.package_unit,
                        d.from_date.isoformat(), d.to_date.isoformat(),
                        str(d.percentage),
                    ),
                )
                if d.id is None:
                    d.id = conn.execute(
                        "SELECT id FROM discount_snapshots "
                        "WHERE product_id = ? AND store = ? "
                        "AND discount_date = ?",
                        (
                            d.product_id, d.store,
                            d.discount_date.isoformat(),
                        ),
                    ).fetchone()[0]
        if discounts:
            logger.debug("Upserted %d discount snapshots", len(discounts))
        return len(discounts)

    # ── Alerts ───────────────────────────────────────────

    def find_alerts(self, active_only: bool = False) -> list[Alert]:
        """Return alerts ordered by id, optionally only active ones."""
        where = "WHERE active = 1 " if active_only else ""
        rows = self._query(
            "SELECT id, product_name, store, target_price, active, "
            f"creation_date FROM alerts {where}ORDER BY id ASC",
            [],
        )
        return [_row_to_alert(r) for r in rows]

    def get_alert(self, alert_id: int) -> Alert | None:
        """Fetch one alert by id."""
        rows = self._query(
            "SELECT id, product_name, store, target_price, active, "
            "creation_date FROM alerts WHERE id = ?",
            [alert_id],
        )
        return _row_to_alert(rows[0]) if rows else None

    def save_alert(self, alert: Alert) -> Alert:
        """Insert a new alert or update an existing one by id."""
        with self.transaction() as conn:
            if alert.id is None:
                cur = conn.execute(
                    "INSERT INTO alerts "
                    "(product_name, store, target_price, active, "
                    " creation_date) VALUES (?, ?, ?, ?, ?)",
                    (
                        alert.product_name, alert.store,
                        str(alert.target_price), int(alert.active),
                        alert.creation_date.isoformat(),
                    ),
                )
                alert.id = cur.lastrowid
            else:
                conn.execute(
                    "UPDATE alerts SET product_name = ?, store = ?, "
                    "target_price = ?, active = ?, creation_date = ? "
                    "WHERE id = ?",
                    (
                        alert.product_name, alert.store,
                        str(alert.target_price), int(alert.active),
                        alert.creation_date.isoformat(), alert.id,
                    ),
                )
        return alert
