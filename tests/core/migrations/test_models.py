"""Tests for the migration value types."""

from __future__ import annotations

import datetime

import pytest

from steward.core.errors import InvalidMigrationError
from steward.core.migrations.models import (
    MigrationDescriptor,
    MigrationOutcome,
    MigrationRecord,
    MigrationResult,
    Phase,
)


def _body(db, settings):
    return db.noop()


class TestMigrationResult:
    def test_constructors(self):
        assert MigrationResult.skipped("m").outcome is MigrationOutcome.SKIPPED
        assert MigrationResult.applied("m").outcome is MigrationOutcome.APPLIED
        assert MigrationResult.noop("m").outcome is MigrationOutcome.NOOP_GUARD_FALSE
        failed = MigrationResult.failed("m", "boom")
        assert failed.outcome is MigrationOutcome.FAILED
        assert failed.errors == ("boom",)

    def test_warnings_are_kept_in_order(self):
        r = MigrationResult.applied_with_warnings("m", ["first", "second"])
        assert r.errors == ("first", "second")

    @pytest.mark.parametrize(
        "result, attempted, ok",
        [
            (MigrationResult.skipped("m"), False, True),
            (MigrationResult.noop("m"), False, True),
            (MigrationResult.applied("m"), True, True),
            (MigrationResult.applied_with_warnings("m", ["x"]), True, False),
            (MigrationResult.failed("m", "x"), False, False),
        ],
    )
    def test_flags(self, result, attempted, ok):
        assert result.attempted_work is attempted
        assert result.ok is ok

    def test_to_dict(self):
        r = MigrationResult.applied_with_warnings("m", ["x"])
        assert r.to_dict() == {"name": "m", "outcome": "applied_with_warnings", "errors": ["x"]}


class TestMigrationDescriptor:
    def test_valid(self):
        d = MigrationDescriptor("20221016-drop_rank_column", Phase.POST, _body)
        assert d.phase is Phase.POST
        assert d.description == ""

    def test_phase_string_is_coerced(self):
        assert MigrationDescriptor("m1", "pre", _body).phase is Phase.PRE

    @pytest.mark.parametrize("name", ["", "   ", "has space", "tab\tname", "x" * 256, None])
    def test_bad_names(self, name):
        with pytest.raises(InvalidMigrationError):
            MigrationDescriptor(name, Phase.PRE, _body)

    def test_body_must_be_callable(self):
        with pytest.raises(InvalidMigrationError, match="callable"):
            MigrationDescriptor("m1", Phase.PRE, "not a function")

    def test_unknown_phase(self):
        with pytest.raises(InvalidMigrationError, match="unknown phase"):
            MigrationDescriptor("m1", "during", _body)

    def test_equality_ignores_body(self):
        assert MigrationDescriptor("m1", Phase.PRE, _body) == MigrationDescriptor("m1", Phase.PRE, lambda d, s: None)


class TestMigrationRecord:
    def test_to_dict(self):
        ts = datetime.datetime(2022, 10, 16, 12, 0, tzinfo=datetime.timezone.utc)
        assert MigrationRecord("m1", ts).to_dict() == {
            "name": "m1",
            "completed_at": "2022-10-16T12:00:00+00:00",
        }
