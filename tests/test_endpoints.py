"""
Integration tests for API endpoints using a SQLite DB.
"""
import httpx

from app.models.entry import EntryStatus
from app.models.import_source import SourceType
from app.services import ingest

CSV = b"Date,Hours,Email,Project\n2024-03-15,1.5,dev@example.com,ACME\n"


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestSources:
    def test_create_and_list(self, client):
        r = client.post("/sources", json={"name": "Uploads", "source_type": "upload"})
        assert r.status_code == 201
        body = r.json()
        assert body["source_type"] == "upload"
        assert body["has_api_token"] is False

        r = client.get("/sources")
        assert [s["name"] for s in r.json()] == ["Uploads"]
        assert r.json()[0]["entry_count"] == 0

    def test_duplicate_name(self, client):
        client.post("/sources", json={"name": "Tempo", "source_type": "tempo", "api_token": "t"})
        r = client.post("/sources", json={"name": "Tempo", "source_type": "tempo"})
        assert r.status_code == 409
        assert r.json()["code"] == "DUPLICATE_SOURCE"

    def test_file_import(self, client, make_source):
        source = make_source(name="Uploads", source_type=SourceType.upload)
        files = {"file": ("week.csv", CSV, "text/csv")}
        r = client.post(f"/sources/{source.id}/import/file", files=files)
        assert r.status_code == 200
        assert r.json() == {"total": 1, "imported": 1, "skipped": 0, "errors": []}

        r = client.post(f"/sources/{source.id}/import/file", files=files)
        assert r.json()["skipped"] == 1
        listed = client.get("/sources").json()[0]
        assert (listed["entry_count"], listed["pending_count"]) == (1, 1)

    def test_file_import_wrong_source_type(self, client, make_source):
        source = make_source()
        r = client.post(f"/sources/{source.id}/import/file", files={"file": ("w.csv", CSV, "text/csv")})
        assert r.status_code == 409
        assert r.json()["code"] == "SOURCE_TYPE_MISMATCH"

    def test_file_too_large(self, client, make_source, monkeypatch):
        from app.core.config import settings
        monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 10)
        source = make_source(name="Uploads", source_type=SourceType.upload)
        r = client.post(f"/sources/{source.id}/import/file", files={"file": ("w.csv", CSV, "text/csv")})
        assert r.status_code == 413

    def test_worklog_range_validated(self, client, make_source):
        source = make_source()
        r = client.post(
            f"/sources/{source.id}/import/worklogs",
            json={"date_from": "2024-03-31", "date_to": "2024-03-01"},
        )
        assert r.status_code == 422

    def test_worklog_upstream_failure(self, client, make_source, monkeypatch):
        source = make_source()

        def failing(*args, **kwargs):
            raise httpx.ConnectError("no route to host")

        monkeypatch.setattr(ingest, "import_worklogs", failing)
        r = client.post(
            f"/sources/{source.id}/import/worklogs",
            json={"date_from": "2024-03-01", "date_to": "2024-03-01"},
        )
        assert r.status_code == 502
        assert r.json()["code"] == "UPSTREAM_ERROR"

    def test_import_yesterday_no_sources(self, client):
        r = client.post("/sources/import/yesterday")
        assert r.status_code == 200
        assert r.json() == []


class TestEntries:
    def test_unmapped_ignore_and_map(self, client, make_source, make_entry, make_target):
        source = make_source()
        a = make_entry(source)
        b = make_entry(source)
        project, task = make_target()

        r = client.get("/entries/unmapped")
        assert {e["id"] for e in r.json()} == {a.id, b.id}

        r = client.post(f"/entries/{a.id}/ignore")
        assert r.status_code == 200
        assert r.json()["status"] == "ignored"

        r = client.post(f"/entries/{b.id}/map", json={"timelog_project_id": project.id, "timelog_task_id": task.id})
        assert r.status_code == 200
        assert r.json()["status"] == "mapped"

        assert client.get("/entries/unmapped").json() == []

    def test_ignore_twice_conflicts(self, client, make_source, make_entry):
        entry = make_entry(make_source(), status=EntryStatus.ignored)
        r = client.post(f"/entries/{entry.id}/ignore")
        assert r.status_code == 409
        assert r.json()["code"] == "INVALID_ENTRY_STATUS"


class TestRules:
    def _body(self, project, **kwargs):
        body = {
            "name": "ACME",
            "match_field": "project_key",
            "match_operator": "equals",
            "match_value": "ACME",
            "timelog_project_id": project.id,
        }
        body.update(kwargs)
        return body

    def test_crud_and_apply(self, client, make_source, make_entry, make_target):
        project, task = make_target()
        entry = make_entry(make_source(), project_key="ACME")

        r = client.post("/rules", json=self._body(project, timelog_task_id=task.id))
        assert r.status_code == 201
        rule_id = r.json()["id"]

        r = client.get(f"/rules/{rule_id}/preview")
        assert r.json()["match_count"] == 1
        assert r.json()["entries"][0]["id"] == entry.id

        r = client.post("/rules/apply-pending")
        assert r.json() == {"mapped": 1}

        r = client.put(f"/rules/{rule_id}", json=self._body(project, match_value="OTHER"))
        assert r.status_code == 200
        assert r.json()["match_value"] == "OTHER"

        r = client.post(f"/rules/{rule_id}/enabled", json={"is_enabled": False})
        assert r.json()["is_enabled"] is False

        assert client.delete(f"/rules/{rule_id}").status_code == 204
        assert client.get("/rules").json() == []

    def test_invalid_regex(self, client, make_target):
        project, _ = make_target()
        r = client.post("/rules", json=self._body(project, match_operator="regex", match_value="[a-"))
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_RULE_PATTERN"

    def test_move(self, client, make_target, make_rule):
        project, _ = make_target()
        make_rule(project, priority=1, name="first")
        second = make_rule(project, priority=2, name="second")
        r = client.post(f"/rules/{second.id}/move", json={"direction": "up"})
        assert [rule["name"] for rule in r.json()] == ["second", "first"]

    def test_apply_single(self, client, make_source, make_entry, make_target, make_rule):
        project, _ = make_target()
        rule = make_rule(project, is_enabled=False)
        make_entry(make_source(), project_key="ACME")
        assert client.post(f"/rules/{rule.id}/apply").json() == {"mapped": 1}

    def test_unknown_rule(self, client):
        assert client.get("/rules/77/preview").status_code == 404


class TestSubmissions:
    def test_run_and_history(self, client, fake_timelog, make_source, make_entry, make_target):
        _, task = make_target(task_external_id="88")
        entry = make_entry(make_source(), status=EntryStatus.mapped, timelog_task_id=task.id)

        r = client.post("/submissions/run")
        assert r.status_code == 200
        assert r.json() == {"attempted": 1, "succeeded": 1, "failed": 0, "skipped": 0}
        assert fake_timelog.bookings[0]["TaskID"] == 88

        history = client.get("/submissions").json()
        assert history[0]["imported_entry_id"] == entry.id
        assert history[0]["status"] == "success"
        assert history[0]["attempt_count"] == 1

    def test_single_entry(self, client, fake_timelog, make_source, make_entry, make_target):
        _, task = make_target()
        entry = make_entry(make_source(), status=EntryStatus.mapped, timelog_task_id=task.id)
        fake_timelog.booking_status = 422
        r = client.post(f"/submissions/entries/{entry.id}")
        assert r.status_code == 200
        assert r.json()["status"] == "failed"
        assert r.json()["error_message"].startswith("422: ")

    def test_single_entry_without_task(self, client, make_source, make_entry):
        entry = make_entry(make_source(), status=EntryStatus.mapped)
        assert client.post(f"/submissions/entries/{entry.id}").status_code == 204

    def test_pending_entry_conflicts(self, client, make_source, make_entry, make_target):
        _, task = make_target()
        entry = make_entry(make_source(), timelog_task_id=task.id)
        r = client.post(f"/submissions/entries/{entry.id}")
        assert r.status_code == 409


class TestTaxonomy:
    def test_sync_and_list(self, client, fake_timelog):
        fake_timelog.projects = [{"ProjectID": 1, "Name": "Alpha"}]
        fake_timelog.tasks = {1: [{"TaskID": 11, "Name": "Build", "ProjectID": 1}]}

        r = client.post("/taxonomy/sync")
        assert r.status_code == 200
        assert r.json() == {"projects": 1, "tasks": 1, "stale_projects": 0, "stale_tasks": 0}

        body = client.get("/taxonomy/projects").json()
        assert body["last_synced_at"] is not None
        assert body["projects"][0]["name"] == "Alpha"
        assert body["projects"][0]["tasks"][0]["external_id"] == "11"

    def test_sync_upstream_failure(self, client, fake_timelog):
        def broken(request):
            return httpx.Response(503)

        fake_timelog.handler = broken
        r = client.post("/taxonomy/sync")
        assert r.status_code == 502
