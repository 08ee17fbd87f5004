# report_store.py
# ------------------------------------------------------------
# This module handles persistent storage of reports, sent
# auto-replies and audit entries.
# It:
#   - keeps named tables of JSON rows in one local file
#   - inserts rows (assigning an id when missing)
#   - queries rows with equality filters, ordering and a limit
#
# Callers only use insert_row() and query(), so a relational
# backend can be swapped in behind the same two methods.
# ------------------------------------------------------------

import json                      # For reading/writing JSON files
import os
import threading                 # Webhook requests run on worker threads
import uuid
from pathlib import Path          # For cleaner file path handling
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

REPORTS_TABLE = "medical_reports"
SENT_EMAILS_TABLE = "sent_emails"
AUDIT_TABLE = "audit_log"

# Default file lives in the same directory as this module.
DEFAULT_STORE_PATH = Path(
    os.environ.get("REPORT_STORE_PATH", str(Path(__file__).parent / "report_store.json"))
)


class ReportStore:
    """
    JSON-file table store.

    Every write rewrites the whole file under a lock; fine for the
    volume of a single inbound mailbox.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else DEFAULT_STORE_PATH
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, List[dict]]:
        # If the store file does not exist yet, every table is empty
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as f:
            return json.load(f)

    def _save(self, tables: Dict[str, List[dict]]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(tables, f, indent=2)
        tmp.replace(self.path)

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append `row` to `table` and return the stored copy.

        An "id" is generated when the row has none.
        Raises OSError if the file cannot be written.
        """
        stored = dict(row)
        stored.setdefault("id", str(uuid.uuid4()))
        with self._lock:
            tables = self._load()
            tables.setdefault(table, []).append(stored)
            self._save(tables)
        return stored

    def query(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Rows of `table` whose fields equal every value in `filters`.

        Rows missing the `order_by` field sort last.
        """
        with self._lock:
            rows = list(self._load().get(table, []))

        if filters:
            rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]

        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + missing

        if limit is not None:
            rows = rows[:limit]
        return rows
