import os
import sqlite3
import datetime
from contextlib import contextmanager
from typing import Iterable, List, Optional

import pytz

from .errors import StorageError
from .logger import get_logger
from .models import MenuItem
from .query import build_predicate

logger = get_logger(__name__)

DB_PATH = os.getenv("DB_PATH", "/data/little_lemon.sqlite3")

_COLUMNS = "id, name, price, description, image, category"
_ORDER_BY = "ORDER BY category, name"


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def _casefold(value) -> str:
    return "" if value is None else str(value).casefold()


def _row_to_item(row) -> MenuItem:
    item_id, name, price, description, image, category = row
    return MenuItem(
        id=item_id,
        name=name or "",
        price=price or "",
        description=description or "",
        image=image or "",
        category=category or "",
    )


class MenuStore:
    """
    SQLite-backed menu table.
    Each call opens its own connection; a write batch is one transaction.
    """

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        con = sqlite3.connect(self.db_path)
        con.create_function("casefold", 1, _casefold, deterministic=True)
        return con

    @contextmanager
    def _connection(self, action: str):
        """Yield a connection; commit on success, roll back and wrap faults."""
        try:
            con = self._connect()
        except (sqlite3.Error, OSError) as e:
            logger.error("Cannot open menu store at %s: %s", self.db_path, e)
            raise StorageError(f"{action} failed: {e}") from e
        try:
            with con:
                yield con
        except sqlite3.Error as e:
            logger.error("Menu store %s failed at %s: %s", action, self.db_path, e)
            raise StorageError(f"{action} failed: {e}") from e
        finally:
            con.close()

    def ensure_schema(self) -> None:
        with self._connection("ensure_schema") as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS menuitems (
                    id INTEGER PRIMARY KEY NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    price TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL DEFAULT '',
                    image TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT ''
                )
            """
            )
        logger.debug("Menu schema ensured at %s", self.db_path)

    def read_all(self) -> List[MenuItem]:
        return self.select(None)

    def read_filtered(
        self, term: Optional[str], categories: Optional[Iterable[str]] = None
    ) -> List[MenuItem]:
        return self.select(build_predicate(term, categories))

    def select(self, predicate=None) -> List[MenuItem]:
        """
        Run one SELECT for an optional predicate tree, in (category, name) order.
        """
        sql = f"SELECT {_COLUMNS} FROM menuitems"
        params: list = []
        if predicate is not None:
            where, params = predicate.to_sql()
            sql += f" WHERE {where}"
        sql += f" {_ORDER_BY}"

        with self._connection("read") as con:
            rows = con.execute(sql, params).fetchall()
        return [_row_to_item(row) for row in rows]

    def upsert_many(self, items: List[MenuItem]) -> None:
        if not items:
            logger.debug("upsert_many called with no items; nothing to write.")
            return

        rows = [
            (
                it.id,
                it.name or "",
                it.price or "",
                it.description or "",
                it.image or "",
                it.category or "",
            )
            for it in items
        ]
        with self._connection("upsert") as con:
            con.executemany(
                f"""
                INSERT INTO menuitems ({_COLUMNS})
                VALUES (?,?,?,?,?,?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    price=excluded.price,
                    description=excluded.description,
                    image=excluded.image,
                    category=excluded.category
            """,
                rows,
            )
        logger.info("Upserted %d menu items into %s", len(rows), self.db_path)

    def count(self) -> int:
        with self._connection("count") as con:
            row = con.execute("SELECT COUNT(*) FROM menuitems").fetchone()
        return row[0] if row and row[0] is not None else 0

    def distinct_categories(self) -> List[str]:
        with self._connection("categories") as con:
            rows = con.execute(
                "SELECT DISTINCT category FROM menuitems "
                "WHERE category != '' ORDER BY category"
            ).fetchall()
        return [r[0] for r in rows]
