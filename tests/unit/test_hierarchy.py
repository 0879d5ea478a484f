"""
Unit tests for the record <-> hierarchy mapping.

Covers round normalization and the two-pass load join WITHOUT a store.
"""

import json

import pytest

from study_tracker.tracker.hierarchy import (
    build_hierarchy,
    normalize_rounds,
    row_record,
    rounds_payload,
    subject_from_record,
    subject_record,
)
from study_tracker.tracker.models import RoundData, RowData, SubjectInfo, empty_rounds
from tests.fakes import make_rounds


class TestNormalizeRounds:
    """Tests for normalize_rounds."""

    @pytest.mark.parametrize("raw", [None, "", "not json", 42, {"mcq": True}, "{}"])
    def test_missing_or_malformed_gives_fresh_rounds(self, raw):
        assert normalize_rounds(raw, 8) == empty_rounds(8)

    def test_short_list_is_padded(self):
        """First k rounds kept verbatim, the rest all-false."""
        raw = [{"mcq": True, "essay": False}, {"mcq": False, "essay": True}, {"mcq": True, "essay": True}]
        rounds = normalize_rounds(raw, 8)

        assert len(rounds) == 8
        assert rounds[0] == RoundData(mcq=True, essay=False)
        assert rounds[1] == RoundData(mcq=False, essay=True)
        assert rounds[2] == RoundData(mcq=True, essay=True)
        assert all(r == RoundData() for r in rounds[3:])

    def test_long_list_is_not_truncated(self):
        raw = make_rounds(total=10)
        raw[9] = {"mcq": True, "essay": False}
        rounds = normalize_rounds(raw, 8)

        assert len(rounds) == 10
        assert rounds[9].mcq is True

    def test_exact_length_kept(self):
        raw = make_rounds((True, True), total=8)
        assert normalize_rounds(raw, 8)[0] == RoundData(mcq=True, essay=True)

    def test_json_string_is_decoded(self):
        raw = json.dumps([{"mcq": True, "essay": False}])
        rounds = normalize_rounds(raw, 8)
        assert len(rounds) == 8
        assert rounds[0].mcq is True

    def test_bad_entries_become_false_rounds(self):
        rounds = normalize_rounds([None, "x", {"essay": 1}], 4)
        assert rounds == (
            RoundData(),
            RoundData(),
            RoundData(mcq=False, essay=True),
            RoundData(),
        )

    def test_empty_list_is_padded(self):
        assert normalize_rounds([], 8) == empty_rounds(8)


class TestBuildHierarchy:
    """Tests for the two-pass join."""

    def test_subjects_keep_given_order(self, subject_records, row_records):
        subjects, data = build_hierarchy(subject_records, row_records)

        assert [s.key for s in subjects] == ["physics", "chemistry"]
        assert set(data) == {"physics", "chemistry"}

    def test_subject_fields(self, subject_records):
        subjects, _ = build_hierarchy(subject_records, [])
        physics = subjects[0]

        assert physics == SubjectInfo(key="physics", label="Physics", icon="⚛️", remote_id="s2")

    def test_rows_folded_into_subjects(self, subject_records, row_records):
        _, data = build_hierarchy(subject_records, row_records)

        assert [r.id for r in data["chemistry"].rows] == ["c1", "c2"]
        assert [r.id for r in data["physics"].rows] == ["p1"]

    def test_orphan_rows_are_dropped(self, subject_records, row_records):
        """A row whose subject_id matches no subject appears nowhere."""
        _, data = build_hierarchy(subject_records, row_records)

        all_ids = {r.id for d in data.values() for r in d.rows}
        assert "x1" not in all_ids

    def test_rows_normalized_on_load(self, subject_records, row_records):
        _, data = build_hierarchy(subject_records, row_records, total_rounds=8)

        p1 = data["physics"].rows[0]
        assert len(p1.rounds) == 8
        assert p1.rounds[0] == RoundData(mcq=True, essay=True)
        assert all(r == RoundData() for r in p1.rounds[1:])

    def test_every_data_key_has_subject(self, subject_records, row_records):
        subjects, data = build_hierarchy(subject_records, row_records)
        assert set(data) == {s.key for s in subjects}

    def test_subject_without_rows_gets_empty_data(self, subject_records):
        _, data = build_hierarchy(subject_records, [])
        assert data["physics"].rows == ()

    def test_duplicate_subject_key_keeps_first(self):
        records = [
            {"id": "a", "key": "maths", "label": "Maths", "icon": "", "sort_order": 0},
            {"id": "b", "key": "maths", "label": "Maths again", "icon": "", "sort_order": 1},
        ]
        rows = [{"id": "r1", "subject_id": "b", "name": "2015", "rounds": None}]
        subjects, data = build_hierarchy(records, rows)

        assert [s.remote_id for s in subjects] == ["a"]
        assert data["maths"].rows == ()

    def test_missing_key_derived_from_label(self):
        info = subject_from_record({"id": 7, "label": "Combined Maths", "icon": "📐"})
        assert info.key == "combined-maths"
        assert info.remote_id == "7"

    def test_numeric_ids_are_stringified(self):
        subjects, data = build_hierarchy(
            [{"id": 1, "key": "chem", "label": "Chem", "sort_order": 0}],
            [{"id": 10, "subject_id": 1, "name": "2015", "rounds": []}],
        )
        assert subjects[0].remote_id == "1"
        assert data["chem"].rows[0].id == "10"

    def test_records_without_id_are_skipped(self):
        subjects, data = build_hierarchy(
            [
                {"key": "a", "label": "A", "sort_order": 0},
                {"id": "s1", "key": "chem", "label": "Chem", "sort_order": 1},
                "not a record",
            ],
            [
                {"subject_id": "s1", "name": "no id", "rounds": []},
                {"id": None, "subject_id": "s1", "name": "null id", "rounds": []},
                {"id": "r1", "subject_id": "s1", "name": "2015", "rounds": []},
            ],
        )

        assert [s.key for s in subjects] == ["chem"]
        assert [r.id for r in data["chem"].rows] == ["r1"]


class TestRecords:
    """Tests for outgoing payloads."""

    def test_subject_record(self):
        info = SubjectInfo(key="chemistry", label="Chemistry", icon="⚗️")
        assert subject_record(info, 3) == {
            "key": "chemistry",
            "label": "Chemistry",
            "icon": "⚗️",
            "sort_order": 3,
        }

    def test_row_record(self):
        row = RowData(id="tmp", name="2015", rounds=empty_rounds(2))
        record = row_record(row, "s1", 4)

        assert record == {
            "subject_id": "s1",
            "name": "2015",
            "rounds": [{"mcq": False, "essay": False}, {"mcq": False, "essay": False}],
            "sort_order": 4,
        }
        assert "id" not in record

    def test_rounds_payload_shape(self):
        payload = rounds_payload((RoundData(mcq=True), RoundData(essay=True)))
        assert payload == [{"mcq": True, "essay": False}, {"mcq": False, "essay": True}]
