# frontdesk/visitors.py
"""
Front Desk Visitor Log - Visitor Repository

Registration, sign-in/sign-out, corrections, ban/unban and the read
queries behind search, history and export.

Dependents are never aggregated into strings in SQL: read queries fetch
them with one batched query per result set and attach real lists.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass, asdict
from typing import Any, Iterable

from .clock import to_iso, utc_now
from .config import MAX_NAME_LENGTH, MAX_TEXT_LENGTH
from .database import VisitorStore
from .logging_config import QueryLogger
from .validators import (
    escape_like_wildcards,
    validate_date_range_exclusive,
    validate_length,
    validate_required,
)

logger = logging.getLogger(__name__)

# SQLite's default host-parameter limit is 999 on older builds
_IN_CHUNK = 500


class VisitorNotFoundError(LookupError):
    pass


class VisitorBannedError(PermissionError):
    pass


# ==========================================================
# Input Models
# ==========================================================
@dataclass
class VisitDetails:
    """Descriptive fields captured for every visit."""
    unit: str
    type: str = "Visitor"
    phone_number: str | None = None
    reason_for_visit: str | None = None
    company_name: str | None = None
    known_as: str | None = None
    address: str | None = None
    mandatory_acknowledgment_taken: bool = False

    def validated(self) -> "VisitDetails":
        self.unit = validate_required(self.unit, "unit")
        self.type = validate_required(self.type, "type")
        for name in ("unit", "type", "phone_number", "reason_for_visit",
                     "company_name", "known_as", "address"):
            validate_length(getattr(self, name), MAX_TEXT_LENGTH, name)
        return self

    @classmethod
    def from_row(cls, row: dict | None) -> "VisitDetails":
        """Details of a previous visit, with front-desk defaults for gaps."""
        row = row or {}
        return cls(
            unit=row.get("unit") or "--",
            type=row.get("type") or "Visitor",
            phone_number=row.get("phone_number"),
            reason_for_visit=row.get("reason_for_visit"),
            company_name=row.get("company_name"),
            known_as=row.get("known_as"),
            address=row.get("address"),
            mandatory_acknowledgment_taken=bool(row.get("mandatory_acknowledgment_taken")),
        )


@dataclass
class Dependent:
    full_name: str
    age: int | None = None


VISIT_DETAIL_COLUMNS = (
    "known_as",
    "address",
    "phone_number",
    "unit",
    "reason_for_visit",
    "type",
    "company_name",
    "mandatory_acknowledgment_taken",
)


def parse_dependents(raw: Any) -> list[Dependent]:
    """
    Normalize the additional_dependents payload.

    Accepts None, a JSON array string (what the registration form posts),
    or a list of dicts / Dependent. Entries with a blank name are dropped.

    Raises:
        ValueError: invalid JSON, non-list payload or a non-numeric age.
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValueError("Invalid dependents JSON format.")

    if not isinstance(raw, list):
        raise ValueError("Dependents must be a list.")

    dependents = []
    for item in raw:
        if isinstance(item, Dependent):
            item = asdict(item)
        if not isinstance(item, dict):
            raise ValueError("Each dependent must be an object with full_name and age.")

        full_name = (item.get("full_name") or "").strip()
        if not full_name:
            continue
        validate_length(full_name, MAX_NAME_LENGTH, "dependent full_name")

        age = item.get("age")
        if age in (None, ""):
            age = None
        else:
            try:
                age = int(age)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid age for dependent '{full_name}': {age!r}")
            if age < 0:
                raise ValueError(f"Invalid age for dependent '{full_name}': {age}")

        dependents.append(Dependent(full_name=full_name, age=age))
    return dependents


# ==========================================================
# Write Helpers
# ==========================================================
def _insert_visit(
    conn,
    visitor_id: int,
    details: VisitDetails,
    entry_time: str,
    exit_time: str | None = None,
) -> int:
    columns = ("visitor_id", "entry_time", "exit_time") + VISIT_DETAIL_COLUMNS
    values = [visitor_id, entry_time, exit_time] + [
        int(details.mandatory_acknowledgment_taken) if col == "mandatory_acknowledgment_taken"
        else getattr(details, col)
        for col in VISIT_DETAIL_COLUMNS
    ]
    placeholders = ", ".join("?" for _ in columns)
    cur = conn.execute(
        f"INSERT INTO visits ({', '.join(columns)}) VALUES ({placeholders})",
        values,
    )
    return cur.lastrowid


def _insert_dependents(conn, visit_id: int, dependents: Iterable[Dependent]) -> int:
    rows = [(d.full_name, d.age, visit_id) for d in dependents]
    if rows:
        conn.executemany(
            "INSERT INTO dependents (full_name, age, visit_id) VALUES (?, ?, ?)",
            rows,
        )
    return len(rows)


def _get_visitor(store: VisitorStore, visitor_id: int) -> dict:
    visitor = store.query_one(
        "SELECT id, first_name, last_name, photo_path, is_banned FROM visitors WHERE id = ?",
        [visitor_id],
    )
    if visitor is None:
        raise VisitorNotFoundError(f"Visitor {visitor_id} not found.")
    return visitor


def _last_visit(store: VisitorStore, visitor_id: int) -> dict | None:
    return store.query_one(
        "SELECT * FROM visits WHERE visitor_id = ? ORDER BY entry_time DESC, id DESC LIMIT 1",
        [visitor_id],
    )


# ==========================================================
# Registration & Sign-in
# ==========================================================
def register_visitor(
    store: VisitorStore,
    first_name: str,
    last_name: str,
    details: VisitDetails,
    dependents: Iterable[Dependent] = (),
    photo_path: str | None = None,
    now: dt.datetime | None = None,
) -> int:
    """
    Create a visitor profile and sign them in (one transaction).

    Returns:
        The new visitor id.
    """
    first_name = validate_length(validate_required(first_name, "first_name"), MAX_NAME_LENGTH, "first_name")
    last_name = validate_length(validate_required(last_name, "last_name"), MAX_NAME_LENGTH, "last_name")
    details.validated()
    dependents = list(dependents)
    entry_time = to_iso(now or utc_now())

    with store.transaction() as conn:
        cur = conn.execute(
            "INSERT INTO visitors (first_name, last_name, photo_path) VALUES (?, ?, ?)",
            [first_name, last_name, photo_path],
        )
        visitor_id = cur.lastrowid
        visit_id = _insert_visit(conn, visitor_id, details, entry_time)
        _insert_dependents(conn, visit_id, dependents)

    logger.info(
        "Visitor registered (Visitor ID: %s, Visit ID: %s, dependents: %d)",
        visitor_id, visit_id, len(dependents),
    )
    return visitor_id


def sign_in_returning_visitor(
    store: VisitorStore,
    visitor_id: int,
    now: dt.datetime | None = None,
) -> dict:
    """
    Sign a known visitor in again with the details of their last visit.

    Returns:
        Visitor data for the front-desk form, including the previous
        visit's dependents for pre-filling.

    Raises:
        VisitorNotFoundError, VisitorBannedError
    """
    visitor = _get_visitor(store, visitor_id)
    if visitor["is_banned"]:
        logger.warning("Banned visitor %s attempted to sign in", visitor_id)
        raise VisitorBannedError("This visitor is banned and cannot log in.")

    last = _last_visit(store, visitor_id)
    details = VisitDetails.from_row(last)
    entry_time = to_iso(now or utc_now())

    with store.transaction() as conn:
        visit_id = _insert_visit(conn, visitor_id, details, entry_time)

    previous_dependents = _dependents_by_visit(store, [last["id"]]).get(last["id"], []) if last else []
    logger.info("Returning visitor signed in (Visitor ID: %s, Visit ID: %s)", visitor_id, visit_id)

    return {
        **visitor,
        **asdict(details),
        "visit_id": visit_id,
        "entry_time": entry_time,
        "dependents": previous_dependents,
    }


def update_visitor_details(
    store: VisitorStore,
    visitor_id: int,
    details: VisitDetails,
    dependents: Iterable[Dependent] = (),
    now: dt.datetime | None = None,
) -> int:
    """
    Sign a known visitor in with new visit details and dependents.

    Returns:
        The new visit id.

    Raises:
        VisitorNotFoundError, VisitorBannedError
    """
    details.validated()
    dependents = list(dependents)
    entry_time = to_iso(now or utc_now())

    with store.transaction() as conn:
        row = conn.execute("SELECT is_banned FROM visitors WHERE id = ?", [visitor_id]).fetchone()
        if row is None:
            raise VisitorNotFoundError(f"Visitor {visitor_id} not found.")
        if row["is_banned"]:
            raise VisitorBannedError("This visitor is banned and cannot log in.")
        visit_id = _insert_visit(conn, visitor_id, details, entry_time)
        _insert_dependents(conn, visit_id, dependents)

    logger.info(
        "Visitor re-registered (Visit ID: %s, Visitor ID: %s, dependents: %d)",
        visit_id, visitor_id, len(dependents),
    )
    return visit_id


def sign_out_visitor(
    store: VisitorStore,
    visitor_id: int,
    now: dt.datetime | None = None,
) -> str:
    """
    Close the visitor's most recent open visit.

    Returns:
        The visitor's full name.

    Raises:
        VisitorNotFoundError: unknown visitor or nobody signed in.
    """
    exit_time = to_iso(now or utc_now())

    with store.transaction() as conn:
        row = conn.execute(
            "SELECT T1.id AS visit_id, T2.first_name, T2.last_name "
            "FROM visits T1 JOIN visitors T2 ON T1.visitor_id = T2.id "
            "WHERE T1.visitor_id = ? AND T1.exit_time IS NULL "
            "ORDER BY T1.entry_time DESC LIMIT 1",
            [visitor_id],
        ).fetchone()
        if row is None:
            raise VisitorNotFoundError("Visitor not found or already signed out.")
        conn.execute("UPDATE visits SET exit_time = ? WHERE id = ?", [exit_time, row["visit_id"]])

    full_name = f"{row['first_name']} {row['last_name']}"
    logger.info("Visitor %s signed out (Visit ID: %s)", visitor_id, row["visit_id"])
    return full_name


def record_missed_visit(
    store: VisitorStore,
    visitor_id: int,
    past_entry_time: dt.datetime,
    now: dt.datetime | None = None,
) -> tuple[str, str]:
    """
    Record a visit the desk missed at sign-in: entry in the past, exit now.

    Returns:
        (entry_time, exit_time) as stored.

    Raises:
        ValueError: entry time is not before now.
        VisitorNotFoundError
    """
    now = now or utc_now()
    if past_entry_time >= now:
        raise ValueError(
            "Invalid entry time. It must be a valid date/time and occur before the current exit time."
        )
    entry_time, exit_time = to_iso(past_entry_time), to_iso(now)

    _get_visitor(store, visitor_id)
    details = VisitDetails.from_row(_last_visit(store, visitor_id))
    details.known_as = details.known_as or "--"
    details.address = details.address or "--"

    with store.transaction() as conn:
        visit_id = _insert_visit(conn, visitor_id, details, entry_time, exit_time)

    logger.info("Missed visit recorded (Visitor ID: %s, Visit ID: %s, entry=%s)", visitor_id, visit_id, entry_time)
    return entry_time, exit_time


# ==========================================================
# Ban / Unban
# ==========================================================
def ban_visitor(store: VisitorStore, visitor_id: int, now: dt.datetime | None = None) -> int:
    """
    Ban a visitor and sign out any open visit.

    Returns:
        Number of open visits that were closed.
    """
    exit_time = to_iso(now or utc_now())
    with store.transaction() as conn:
        cur = conn.execute("UPDATE visitors SET is_banned = 1 WHERE id = ?", [visitor_id])
        if cur.rowcount == 0:
            raise VisitorNotFoundError(f"Visitor {visitor_id} not found.")
        closed = conn.execute(
            "UPDATE visits SET exit_time = ? WHERE visitor_id = ? AND exit_time IS NULL",
            [exit_time, visitor_id],
        ).rowcount

    logger.info("Visitor %s banned (%d open visit(s) closed)", visitor_id, closed)
    return closed


def unban_visitor(store: VisitorStore, visitor_id: int) -> None:
    if store.execute("UPDATE visitors SET is_banned = 0 WHERE id = ?", [visitor_id]) == 0:
        raise VisitorNotFoundError(f"Visitor {visitor_id} not found.")
    logger.info("Visitor %s unbanned", visitor_id)


# ==========================================================
# Read Queries
# ==========================================================
def _dependents_by_visit(store: VisitorStore, visit_ids: Iterable[int]) -> dict[int, list[dict]]:
    """Batched dependents lookup: visit_id -> [{full_name, age}, ...]."""
    ids = sorted({v for v in visit_ids if v is not None})
    grouped: dict[int, list[dict]] = {}
    for start in range(0, len(ids), _IN_CHUNK):
        chunk = ids[start:start + _IN_CHUNK]
        placeholders = ", ".join("?" for _ in chunk)
        rows = store.query(
            f"SELECT visit_id, full_name, age FROM dependents "
            f"WHERE visit_id IN ({placeholders}) ORDER BY id",
            chunk,
        )
        for row in rows:
            grouped.setdefault(row["visit_id"], []).append(
                {"full_name": row["full_name"], "age": row["age"]}
            )
    return grouped


def _attach_dependents(store: VisitorStore, rows: list[dict], visit_key: str = "visit_id") -> list[dict]:
    grouped = _dependents_by_visit(store, (r.get(visit_key) for r in rows))
    for row in rows:
        row["dependents"] = grouped.get(row.get(visit_key), [])
    return rows


def list_active_visitors(store: VisitorStore) -> list[dict]:
    """Everyone currently on site (visits with no exit time), newest first."""
    with QueryLogger("active_visitors", logger) as ql:
        rows = store.query(
            """
            SELECT
                T1.id, T1.first_name, T1.last_name, T1.photo_path, T1.is_banned,
                T2.id AS visit_id, T2.entry_time, T2.exit_time, T2.phone_number,
                T2.unit, T2.reason_for_visit, T2.company_name, T2.type
            FROM visitors AS T1
            JOIN visits AS T2 ON T1.id = T2.visitor_id
            WHERE T2.exit_time IS NULL
            ORDER BY T2.entry_time DESC
            """
        )
        ql.set_row_count(len(rows))
    return _attach_dependents(store, rows)


def search_visitors(store: VisitorStore, name: str) -> list[dict]:
    """
    Find visitors whose first or last name contains every search term.

    Each result carries the visitor's latest visit details and the
    dependents of that visit.
    """
    terms = (name or "").split()
    if not terms:
        raise ValueError("Search term 'name' is required.")

    conditions = []
    params: list[Any] = []
    for term in terms:
        like = f"%{escape_like_wildcards(term)}%"
        conditions.append(r"(T1.first_name LIKE ? ESCAPE '\' OR T1.last_name LIKE ? ESCAPE '\')")
        params.extend([like, like])

    sql = f"""
        SELECT
            T1.id, T1.first_name, T1.last_name, T1.photo_path, T1.is_banned,
            T2.id AS visit_id, T2.known_as, T2.address, T2.phone_number, T2.unit,
            T2.reason_for_visit, T2.company_name, T2.type,
            T2.mandatory_acknowledgment_taken
        FROM visitors AS T1
        LEFT JOIN (
            SELECT *, ROW_NUMBER() OVER (
                PARTITION BY visitor_id ORDER BY entry_time DESC, id DESC
            ) AS rn
            FROM visits
        ) AS T2 ON T1.id = T2.visitor_id AND T2.rn = 1
        WHERE {" AND ".join(conditions)}
        ORDER BY T1.last_name, T1.first_name, T1.id
    """

    with QueryLogger("search", logger) as ql:
        rows = store.query(sql, params)
        ql.set_row_count(len(rows))
        ql.add_info("terms", len(terms))
    return _attach_dependents(store, rows)


def visit_history(
    store: VisitorStore,
    search: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[dict]:
    """
    All visits joined with their visitor, newest first.

    Args:
        search: Case-insensitive substring of first or last name
        start_date: YYYY-MM-DD, inclusive
        end_date: YYYY-MM-DD, inclusive

    Raises:
        ValueError: invalid date format or range.
    """
    date_from, date_to_exclusive = validate_date_range_exclusive(start_date, end_date)

    where = []
    params: list[Any] = []

    if search:
        like = f"%{escape_like_wildcards(search.lower())}%"
        where.append(r"(LOWER(T1.first_name) LIKE ? ESCAPE '\' OR LOWER(T1.last_name) LIKE ? ESCAPE '\')")
        params.extend([like, like])

    if date_from:
        where.append("T2.entry_time >= ?")
        params.append(date_from)

    if date_to_exclusive:
        where.append("T2.entry_time < ?")
        params.append(date_to_exclusive)

    where_clause = f"WHERE {' AND '.join(where)}" if where else ""

    sql = f"""
        SELECT
            T1.id AS visitor_id, T1.first_name, T1.last_name, T1.photo_path, T1.is_banned,
            T2.id AS visit_id, T2.known_as, T2.entry_time, T2.exit_time, T2.address,
            T2.phone_number, T2.unit, T2.reason_for_visit, T2.company_name, T2.type
        FROM visitors AS T1
        JOIN visits AS T2 ON T1.id = T2.visitor_id
        {where_clause}
        ORDER BY T2.entry_time DESC, T2.id DESC
    """

    with QueryLogger("history", logger) as ql:
        rows = store.query(sql, params)
        ql.set_row_count(len(rows))
    return _attach_dependents(store, rows)


def export_visitor_rows(store: VisitorStore, visitor_id: int) -> list[dict]:
    """
    One flat row per visit of a visitor, for CSV export.

    Dependents are flattened to "Name (age)" joined with ", ".
    A visitor with no visits yields a single row with empty visit fields.

    Raises:
        VisitorNotFoundError
    """
    with QueryLogger("export", logger) as ql:
        rows = store.query(
            """
            SELECT
                T1.first_name, T1.last_name, T1.photo_path, T1.is_banned,
                T2.id AS visit_id, T2.entry_time, T2.exit_time, T2.phone_number,
                T2.unit, T2.reason_for_visit, T2.company_name, T2.type
            FROM visitors AS T1
            LEFT JOIN visits AS T2 ON T1.id = T2.visitor_id
            WHERE T1.id = ?
            ORDER BY T2.entry_time DESC
            """,
            [visitor_id],
        )
        ql.set_row_count(len(rows))

    if not rows:
        raise VisitorNotFoundError(f"Visitor {visitor_id} not found.")

    grouped = _dependents_by_visit(store, (r["visit_id"] for r in rows))
    for row in rows:
        deps = grouped.get(row.pop("visit_id"), [])
        row["dependents_info_age"] = ", ".join(
            f"{d['full_name']} ({d['age']})" if d["age"] is not None else d["full_name"]
            for d in deps
        )
    return rows
