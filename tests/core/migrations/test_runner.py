"""Tests for MigrationRunner: phase ordering, skip flag, failure absorption."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from steward.core.errors import SchemaSyncError
from steward.core.migrations.ledger import MigrationLedger
from steward.core.migrations.models import MigrationDescriptor, MigrationOutcome, Phase
from steward.core.migrations.registry import MigrationRegistry
from steward.core.migrations.runner import MigrationRunner, RunnerState
from steward.core.settings import StewardSettings


def _recording(journal, label):
    def body(db, settings):
        journal.append(label)
        return db.noop()

    return body


@pytest.fixture
def journal():
    return []


@pytest.fixture
def registry(journal):
    registry = MigrationRegistry()
    registry.register_pre(MigrationDescriptor("p1", Phase.PRE, _recording(journal, "pre:p1")))
    registry.register_pre(MigrationDescriptor("p2", Phase.PRE, _recording(journal, "pre:p2")))
    registry.register_post(MigrationDescriptor("q1", Phase.POST, _recording(journal, "post:q1")))
    return registry


class TestOrdering:
    def test_pre_sync_post(self, engine, settings, registry, journal, recording_sync):
        sync = recording_sync(journal)
        report = MigrationRunner(registry, sync).run(engine, settings)

        assert journal == ["pre:p1", "pre:p2", "sync", "post:q1"]
        assert sync.calls == 1
        assert report.state is RunnerState.DONE
        assert [r.name for r in report.pre] == ["p1", "p2"]
        assert [r.name for r in report.post] == ["q1"]

    def test_sync_runs_even_with_empty_registry(self, engine, settings, recording_sync):
        sync = recording_sync()
        report = MigrationRunner(MigrationRegistry(), sync).run(engine, settings)
        assert sync.journal == ["sync"]
        assert report.results == []

    def test_every_result_is_recorded(self, engine, settings, registry, recording_sync):
        MigrationRunner(registry, recording_sync()).run(engine, settings)
        assert MigrationLedger(engine).completed_names() == {"p1", "p2", "q1"}


class TestSkipFlag:
    def test_nothing_runs(self, engine, db_url, registry, journal, recording_sync, counting_introspector):
        settings = StewardSettings(database_url=db_url, skip_migrations=True, _env_file=None)
        created = []

        def introspector_factory(eng):
            created.append(eng)
            return counting_introspector(eng)

        sync = recording_sync(journal)
        with capture_logs() as logs:
            report = MigrationRunner(registry, sync, introspector_factory=introspector_factory).run(engine, settings)

        assert journal == []
        assert created == []
        assert report.skipped_by_config is True
        assert report.state is RunnerState.IDLE
        assert [e["event"] for e in logs if e["log_level"] == "info"] == ["skipping migrations"]


class TestFailures:
    def test_sync_failure_still_runs_post_phase(self, engine, settings, registry, journal, recording_sync):
        sync = recording_sync(journal, error=SchemaSyncError("create_all failed"))
        with capture_logs() as logs:
            report = MigrationRunner(registry, sync).run(engine, settings)

        assert journal == ["pre:p1", "pre:p2", "sync", "post:q1"]
        assert report.sync is None
        assert report.sync_error == "create_all failed"
        assert report.state is RunnerState.DONE
        assert any(e["log_level"] == "error" and e["event"] == "create_all failed" for e in logs)

    def test_unexpected_sync_exception_is_wrapped(self, engine, settings, registry, recording_sync):
        with capture_logs() as logs:
            report = MigrationRunner(registry, recording_sync(error=RuntimeError("boom"))).run(engine, settings)
        errors = [e for e in logs if e["log_level"] == "error"]
        assert errors[0]["event"] == "schema sync failed"
        assert errors[0]["error_type"] == "SchemaSyncError"
        assert report.sync_error == "boom"

    def test_failing_migration_does_not_stop_the_phase(self, engine, settings, journal, recording_sync):
        def explode(db, s):
            raise RuntimeError("boom")

        registry = MigrationRegistry()
        registry.register_post(MigrationDescriptor("a", Phase.POST, explode))
        registry.register_post(MigrationDescriptor("b", Phase.POST, _recording(journal, "post:b")))

        report = MigrationRunner(registry, recording_sync(journal)).run(engine, settings)
        assert report.result_for("a").outcome is MigrationOutcome.FAILED
        assert report.result_for("b").outcome is MigrationOutcome.NOOP_GUARD_FALSE
        assert journal == ["sync", "post:b"]

    def test_ledger_factory_failure(self, engine, settings, registry, journal, recording_sync):
        def broken_ledger(eng):
            raise RuntimeError("no ledger")

        with capture_logs() as logs:
            report = MigrationRunner(registry, recording_sync(journal), ledger_factory=broken_ledger).run(
                engine, settings
            )

        assert journal == []
        assert report.state is RunnerState.IDLE
        assert [e["event"] for e in logs if e["log_level"] == "warning"] == ["failed to set up migration runner"]


class TestRunOnce:
    def test_second_run_returns_cached_report(self, engine, settings, registry, journal, recording_sync):
        runner = MigrationRunner(registry, recording_sync(journal))
        first = runner.run(engine, settings)
        with capture_logs() as logs:
            second = runner.run(engine, settings)

        assert second is first
        assert journal == ["pre:p1", "pre:p2", "sync", "post:q1"]
        assert [e["event"] for e in logs if e["log_level"] == "warning"] == [
            "migration runner already ran, ignoring"
        ]

    def test_report_to_dict(self, engine, settings, registry, recording_sync):
        report = MigrationRunner(registry, recording_sync()).run(engine, settings)
        data = report.to_dict()
        assert data["state"] == "done"
        assert data["skipped_by_config"] is False
        assert [r["outcome"] for r in data["pre"]] == ["noop_guard_false", "noop_guard_false"]
        assert data["sync"] == {"created_tables": [], "added_columns": [], "errors": []}
