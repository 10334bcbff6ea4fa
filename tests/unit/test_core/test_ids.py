"""
test_ids.py - ID/아카이브 키 생성 테스트
"""

import re
from datetime import date

from src.core.ids import build_archive_key, generate_run_id, sanitize_archive_name


class TestGenerateRunId:
    """generate_run_id 함수 테스트."""

    def test_format(self):
        """RUN-{YYYYMMDDHHMMSS}-{8 hex}."""
        run_id = generate_run_id()

        assert re.fullmatch(r"RUN-\d{14}-[0-9a-f]{8}", run_id)

    def test_unique(self):
        ids = {generate_run_id() for _ in range(50)}

        assert len(ids) == 50


class TestSanitizeArchiveName:
    """sanitize_archive_name 함수 테스트."""

    def test_punctuation_and_spaces(self):
        assert sanitize_archive_name("South-West 2024!!") == "south_west_2024"

    def test_lowercase(self):
        assert sanitize_archive_name("Wedding") == "wedding"

    def test_collapses_runs(self):
        assert sanitize_archive_name("a -- b") == "a_b"

    def test_non_ascii_replaced(self):
        assert sanitize_archive_name("서울 trip") == "trip"

    def test_empty_becomes_placeholder(self):
        assert sanitize_archive_name("") == "project"
        assert sanitize_archive_name("!!!") == "project"

    def test_capped_length(self):
        result = sanitize_archive_name("x" * 80)

        assert result == "x" * 50

    def test_cap_does_not_leave_trailing_underscore(self):
        result = sanitize_archive_name("abc def", max_length=4)

        assert result == "abc"


class TestBuildArchiveKey:
    """build_archive_key 함수 테스트."""

    def test_single_part_has_no_suffix(self):
        key = build_archive_key("sw2024", "south_west_2024", date(2024, 6, 1), 1, 1)

        assert key == "projects/sw2024/south_west_2024_2024-06-01.zip"

    def test_multi_part_suffix(self):
        keys = [
            build_archive_key("sw2024", "trip", date(2024, 6, 1), n, 3)
            for n in (1, 2, 3)
        ]

        assert keys == [
            "projects/sw2024/trip_2024-06-01_part1.zip",
            "projects/sw2024/trip_2024-06-01_part2.zip",
            "projects/sw2024/trip_2024-06-01_part3.zip",
        ]

    def test_custom_root(self):
        key = build_archive_key("p", "trip", date(2024, 1, 2), 1, 1, root="exports/")

        assert key == "exports/p/trip_2024-01-02.zip"
