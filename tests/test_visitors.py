# tests/test_visitors.py
"""
Visitor Repository Tests

Registration, sign-in/out, corrections, ban/unban and the read queries
(active list, search, history, export) against a real SQLite store.
"""

import datetime as dt
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from frontdesk import visitors as repo
from frontdesk.visitors import (
    Dependent,
    VisitDetails,
    VisitorBannedError,
    VisitorNotFoundError,
    parse_dependents,
)

NOW = dt.datetime(2026, 1, 31, 12, 0, tzinfo=dt.timezone.utc)


def _details(**overrides) -> VisitDetails:
    base = dict(unit="12B", type="Guest", phone_number="555-0100", reason_for_visit="Family")
    base.update(overrides)
    return VisitDetails(**base)


# ==========================================================
# Dependents Payload
# ==========================================================
class TestParseDependents:
    """additional_dependents 파싱"""

    def test_empty_inputs(self):
        assert parse_dependents(None) == []
        assert parse_dependents("") == []
        assert parse_dependents("[]") == []

    def test_json_string(self):
        deps = parse_dependents('[{"full_name": "Tim", "age": "6"}, {"full_name": "Ann", "age": null}]')
        assert deps == [Dependent("Tim", 6), Dependent("Ann", None)]

    def test_blank_names_dropped(self):
        assert parse_dependents([{"full_name": "  ", "age": 3}]) == []

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="Invalid dependents JSON format"):
            parse_dependents("[{oops")

    def test_invalid_age(self):
        with pytest.raises(ValueError, match="Invalid age"):
            parse_dependents([{"full_name": "Tim", "age": "six"}])

    def test_not_a_list(self):
        with pytest.raises(ValueError):
            parse_dependents('{"full_name": "Tim"}')


# ==========================================================
# Registration & Sign-in
# ==========================================================
class TestRegistration:
    """신규 등록: 방문자 + 방문 + 동반자 (단일 트랜잭션)"""

    def test_register_creates_visit_and_dependents(self, store, seed):
        visitor_id = repo.register_visitor(
            store, "Jane", "Doe", _details(), [Dependent("Tim", 6)], now=NOW
        )

        active = repo.list_active_visitors(store)
        assert len(active) == 1
        assert active[0]["id"] == visitor_id
        assert active[0]["entry_time"] == "2026-01-31T12:00:00.000Z"
        assert active[0]["unit"] == "12B"
        assert active[0]["dependents"] == [{"full_name": "Tim", "age": 6}]

    def test_missing_unit_rejected(self, store, seed):
        with pytest.raises(ValueError, match="unit is required"):
            repo.register_visitor(store, "Jane", "Doe", _details(unit=""))
        assert seed.count("visitors") == 0

    def test_missing_name_rejected(self, store, seed):
        with pytest.raises(ValueError, match="last_name is required"):
            repo.register_visitor(store, "Jane", None, _details())

    def test_failed_dependent_insert_rolls_back(self, store, seed):
        """동반자 저장 실패 시 방문자/방문 기록도 롤백"""
        with pytest.raises(Exception):
            repo.register_visitor(store, "Jane", "Doe", _details(), [Dependent(None, 3)])
        assert seed.count("visitors") == 0
        assert seed.count("visits") == 0


class TestReturningVisitor:
    """재방문 로그인 / 정보 갱신"""

    def test_login_reuses_last_details(self, store, seed):
        visitor = seed.visitor("Jane", "Doe")
        last = seed.visit(visitor, NOW - dt.timedelta(days=3), NOW - dt.timedelta(days=3, hours=-1),
                          unit="7A", type="Contractor", company_name="Acme")
        seed.dependent(last, "Tim", 6)

        data = repo.sign_in_returning_visitor(store, visitor, now=NOW)

        assert data["unit"] == "7A"
        assert data["type"] == "Contractor"
        assert data["company_name"] == "Acme"
        assert data["dependents"] == [{"full_name": "Tim", "age": 6}]
        assert data["entry_time"] == "2026-01-31T12:00:00.000Z"
        # dependents are only returned for pre-filling, not copied
        assert seed.count("dependents") == 1
        assert seed.count("visits") == 2

    def test_login_without_previous_visit_uses_defaults(self, store, seed):
        visitor = seed.visitor()
        data = repo.sign_in_returning_visitor(store, visitor, now=NOW)
        assert data["unit"] == "--"
        assert data["type"] == "Visitor"
        assert data["dependents"] == []

    def test_login_unknown(self, store):
        with pytest.raises(VisitorNotFoundError):
            repo.sign_in_returning_visitor(store, 999)

    def test_login_banned(self, store, seed):
        visitor = seed.visitor(banned=True)
        with pytest.raises(VisitorBannedError):
            repo.sign_in_returning_visitor(store, visitor)
        assert seed.count("visits") == 0

    def test_update_details_creates_new_visit(self, store, seed):
        visitor = seed.visitor()
        visit_id = repo.update_visitor_details(
            store, visitor, _details(unit="3C"), [Dependent("Ann", 4)], now=NOW
        )
        row = store.query_one("SELECT * FROM visits WHERE id = ?", [visit_id])
        assert row["unit"] == "3C"
        assert row["exit_time"] is None
        assert seed.count("dependents") == 1

    def test_update_details_banned(self, store, seed):
        visitor = seed.visitor(banned=True)
        with pytest.raises(VisitorBannedError):
            repo.update_visitor_details(store, visitor, _details())

    def test_update_details_unknown(self, store):
        with pytest.raises(VisitorNotFoundError):
            repo.update_visitor_details(store, 42, _details())


# ==========================================================
# Sign-out & Missed Visits
# ==========================================================
class TestSignOut:
    """퇴실 처리 및 누락 방문 기록"""

    def test_sign_out_latest_open_visit(self, store, seed):
        visitor = seed.visitor("Jane", "Doe")
        visit = seed.visit(visitor, NOW - dt.timedelta(hours=2))

        assert repo.sign_out_visitor(store, visitor, now=NOW) == "Jane Doe"
        row = store.query_one("SELECT exit_time FROM visits WHERE id = ?", [visit])
        assert row["exit_time"] == "2026-01-31T12:00:00.000Z"
        assert repo.list_active_visitors(store) == []

    def test_sign_out_twice(self, store, seed):
        visitor = seed.visitor()
        seed.visit(visitor, NOW - dt.timedelta(hours=2))
        repo.sign_out_visitor(store, visitor, now=NOW)

        with pytest.raises(VisitorNotFoundError):
            repo.sign_out_visitor(store, visitor, now=NOW)

    def test_record_missed_visit(self, store, seed):
        visitor = seed.visitor()
        seed.visit(visitor, NOW - dt.timedelta(days=10), NOW - dt.timedelta(days=10), unit="9F")

        entry, exit_ = repo.record_missed_visit(store, visitor, NOW - dt.timedelta(hours=3), now=NOW)

        assert entry == "2026-01-31T09:00:00.000Z"
        assert exit_ == "2026-01-31T12:00:00.000Z"
        row = store.query_one("SELECT * FROM visits WHERE entry_time = ?", [entry])
        assert row["unit"] == "9F"
        assert row["known_as"] == "--"

    def test_record_missed_visit_in_future(self, store, seed):
        visitor = seed.visitor()
        with pytest.raises(ValueError, match="before the current exit time"):
            repo.record_missed_visit(store, visitor, NOW + dt.timedelta(minutes=1), now=NOW)

    def test_record_missed_visit_unknown(self, store):
        with pytest.raises(VisitorNotFoundError):
            repo.record_missed_visit(store, 7, NOW - dt.timedelta(hours=1), now=NOW)


# ==========================================================
# Ban / Unban
# ==========================================================
class TestBan:
    """차단 / 차단 해제"""

    def test_ban_closes_open_visits(self, store, seed):
        visitor = seed.visitor()
        seed.visit(visitor, NOW - dt.timedelta(hours=1))

        assert repo.ban_visitor(store, visitor, now=NOW) == 1
        assert store.query_one("SELECT is_banned FROM visitors WHERE id = ?", [visitor])["is_banned"] == 1
        assert repo.list_active_visitors(store) == []

    def test_ban_unknown(self, store):
        with pytest.raises(VisitorNotFoundError):
            repo.ban_visitor(store, 404)

    def test_unban(self, store, seed):
        visitor = seed.visitor(banned=True)
        repo.unban_visitor(store, visitor)
        assert store.query_one("SELECT is_banned FROM visitors WHERE id = ?", [visitor])["is_banned"] == 0

    def test_unban_unknown(self, store):
        with pytest.raises(VisitorNotFoundError):
            repo.unban_visitor(store, 404)


# ==========================================================
# Read Queries
# ==========================================================
class TestSearch:
    """이름 검색 (모든 단어가 이름/성에 포함)"""

    def test_multi_term_search(self, store, seed):
        jane = seed.visitor("Jane", "Doe")
        seed.visitor("Jane", "Smith")
        seed.visitor("John", "Doe")

        results = repo.search_visitors(store, "jane doe")
        assert [r["id"] for r in results] == [jane]

    def test_latest_visit_and_dependents(self, store, seed):
        jane = seed.visitor("Jane", "Doe")
        seed.visit(jane, NOW - dt.timedelta(days=5), unit="OLD")
        latest = seed.visit(jane, NOW - dt.timedelta(days=1), unit="NEW")
        seed.dependent(latest, "Tim", 6)

        [result] = repo.search_visitors(store, "Doe")
        assert result["unit"] == "NEW"
        assert result["visit_id"] == latest
        assert result["dependents"] == [{"full_name": "Tim", "age": 6}]

    def test_visitor_without_visits(self, store, seed):
        seed.visitor("Solo", "Person")
        [result] = repo.search_visitors(store, "solo")
        assert result["visit_id"] is None
        assert result["dependents"] == []

    def test_wildcards_are_literal(self, store, seed):
        seed.visitor("Ann", "Smith")
        assert repo.search_visitors(store, "%") == []
        assert repo.search_visitors(store, "_") == []

    def test_blank_search(self, store):
        with pytest.raises(ValueError):
            repo.search_visitors(store, "   ")


class TestHistoryAndExport:
    """방문 이력 조회 및 CSV 내보내기 행"""

    def test_history_date_range_inclusive(self, store, seed):
        jane = seed.visitor("Jane", "Doe")
        seed.visit(jane, dt.datetime(2026, 1, 9, 23, 0, tzinfo=dt.timezone.utc))
        in_range = seed.visit(jane, dt.datetime(2026, 1, 10, 8, 0, tzinfo=dt.timezone.utc))
        last_day = seed.visit(jane, dt.datetime(2026, 1, 12, 23, 59, tzinfo=dt.timezone.utc))
        seed.visit(jane, dt.datetime(2026, 1, 13, 0, 0, tzinfo=dt.timezone.utc))

        rows = repo.visit_history(store, start_date="2026-01-10", end_date="2026-01-12")
        assert [r["visit_id"] for r in rows] == [last_day, in_range]

    def test_history_search_and_dependents(self, store, seed):
        jane = seed.visitor("Jane", "Doe")
        bob = seed.visitor("Bob", "Roe")
        v1 = seed.visit(jane, NOW - dt.timedelta(days=1))
        seed.visit(bob, NOW - dt.timedelta(days=2))
        seed.dependent(v1, "Tim", 6)
        seed.dependent(v1, "Ann", 4)

        rows = repo.visit_history(store, search="JANE")
        assert len(rows) == 1
        assert [d["full_name"] for d in rows[0]["dependents"]] == ["Tim", "Ann"]

    def test_history_bad_date(self, store):
        with pytest.raises(ValueError):
            repo.visit_history(store, start_date="01/10/2026")

    def test_export_rows(self, store, seed):
        jane = seed.visitor("Jane", "Doe")
        v1 = seed.visit(jane, NOW - dt.timedelta(days=2), NOW - dt.timedelta(days=2, hours=-1))
        seed.visit(jane, NOW - dt.timedelta(days=1))
        seed.dependent(v1, "Tim", 6)
        seed.dependent(v1, "Ann", None)

        rows = repo.export_visitor_rows(store, jane)
        assert len(rows) == 2
        assert rows[0]["dependents_info_age"] == ""
        assert rows[1]["dependents_info_age"] == "Tim (6), Ann"
        assert "visit_id" not in rows[0]

    def test_export_unknown(self, store):
        with pytest.raises(VisitorNotFoundError):
            repo.export_visitor_rows(store, 999)
