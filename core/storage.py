# core/storage.py
import datetime
import json
import os
import sqlite3
from typing import List, Optional

import pytz

from .logger import get_logger
from .models import GuestEntry, normalize_id

logger = get_logger(__name__)

GUEST_DB_PATH = os.getenv("GUEST_DB_PATH", "/data/guest_wishlist.sqlite3")
GUEST_STORAGE_KEY = os.getenv("GUEST_STORAGE_KEY", "guestWishlist")


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


class GuestStore:
    """
    Anonymous wishlist kept in on-device storage.

    The store holds a single named entry containing a JSON array of
    {"productId", "variantId"} objects. Nothing is cached in memory: other
    processes may write the same database, so every call re-reads it.
    """

    def __init__(self, db_path: str = GUEST_DB_PATH, key: str = GUEST_STORAGE_KEY):
        self.db_path = db_path
        self.key = key
        self.ensure_db()

    def _connect(self):
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def ensure_db(self):
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """
            )
            con.commit()

    def _read_raw(self) -> Optional[str]:
        with self._connect() as con:
            cur = con.cursor()
            cur.execute("SELECT value FROM storage WHERE key=?", (self.key,))
            row = cur.fetchone()
        return row[0] if row else None

    def _write(self, entries: List[GuestEntry]):
        payload = json.dumps([e.to_storage() for e in entries])
        with self._connect() as con:
            con.execute(
                """
                INSERT INTO storage (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
                (self.key, payload),
            )
            con.commit()

    def list(self) -> List[GuestEntry]:
        raw = self._read_raw()
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Guest wishlist entry '%s' is corrupt; treating as empty.", self.key)
            return []
        if not isinstance(data, list):
            return []
        out: List[GuestEntry] = []
        for raw_entry in data:
            entry = GuestEntry.from_storage(raw_entry)
            if entry is not None:
                out.append(entry)
        return out

    def _find(self, entries: List[GuestEntry], product_id: str, variant_id: Optional[str]) -> int:
        wanted = (normalize_id(product_id), normalize_id(variant_id))
        for index, entry in enumerate(entries):
            if entry.key == wanted:
                return index
        return -1

    def contains(self, product_id: str, variant_id: Optional[str]) -> bool:
        return self._find(self.list(), product_id, variant_id) != -1

    def add(self, product_id: str, variant_id: Optional[str]) -> bool:
        """Append the pair unless present. Returns True when the store changed."""
        entries = self.list()
        if self._find(entries, product_id, variant_id) != -1:
            return False
        entry = GuestEntry(normalize_id(product_id), normalize_id(variant_id) or None)
        self._write(entries + [entry])
        logger.info("Guest wishlist: added %s/%s", entry.product_id, entry.variant_id)
        return True

    def remove(self, product_id: str, variant_id: Optional[str]) -> bool:
        entries = self.list()
        wanted = (normalize_id(product_id), normalize_id(variant_id))
        remaining = [e for e in entries if e.key != wanted]
        if len(remaining) == len(entries):
            return False
        self._write(remaining)
        logger.info("Guest wishlist: removed %s/%s", wanted[0], wanted[1])
        return True

    def clear(self):
        self._write([])
