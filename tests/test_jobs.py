"""
Tests for the scheduled job entry points.
"""
from app import jobs
from app.models.entry import EntryStatus


class TestJobs:
    def test_submit_job(self, session_factory, make_source, make_entry, make_target, fake_timelog):
        _, task = make_target()
        make_entry(make_source(), status=EntryStatus.mapped, timelog_task_id=task.id)
        summary = jobs.submit_mapped_entries_job(session_factory, client=fake_timelog.client())
        assert summary.succeeded == 1

    def test_sync_job(self, session_factory, fake_timelog):
        fake_timelog.projects = [{"ProjectID": 5, "Name": "Ops"}]
        result = jobs.sync_taxonomy_job(session_factory, client=fake_timelog.client())
        assert result.projects == 1

    def test_pull_job_without_sources(self, session_factory):
        assert jobs.pull_worklogs_job(session_factory) == []

    def test_main_reports_failure(self, monkeypatch):
        def boom():
            raise RuntimeError("boom")

        monkeypatch.setitem(jobs.JOBS, "submit", boom)
        assert jobs.main(["submit"]) == 1

    def test_main_runs_job(self, monkeypatch):
        calls = []
        monkeypatch.setitem(jobs.JOBS, "sync-taxonomy", lambda: calls.append(1))
        assert jobs.main(["sync-taxonomy"]) == 0
        assert calls == [1]
