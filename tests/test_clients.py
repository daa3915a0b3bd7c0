"""
Tests for HTTP client lifetimes: clients close the connection pools they
create and leave caller-supplied ones alone.
"""
import httpx
import pytest

from app import jobs
from app.clients.jira import JiraClient
from app.clients.tempo import TempoClient
from app.clients.timelog import TimelogClient, get_timelog_client
from app.core.config import settings


def _injected():
    return httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))


class TestClientLifetime:
    @pytest.mark.parametrize("build", [
        lambda http: TempoClient("https://tempo.test/4", "token", http=http),
        lambda http: JiraClient("https://jira.test", "me@example.com", "token", http=http),
        lambda http: TimelogClient("https://timelog.test/api", "secret", http=http),
    ])
    def test_owned_pool_closed_injected_pool_kept(self, build):
        with build(None) as client:
            own = client._http
        assert own.is_closed

        http = _injected()
        with build(http):
            pass
        assert not http.is_closed
        http.close()

    def test_dependency_closes_after_request(self, monkeypatch):
        monkeypatch.setattr(settings, "TIMELOG_BASE_URL", "https://timelog.test/api")
        monkeypatch.setattr(settings, "TIMELOG_API_KEY", "secret")
        dependency = get_timelog_client()
        client = next(dependency)
        assert not client._http.is_closed
        with pytest.raises(StopIteration):
            next(dependency)
        assert client._http.is_closed


class TestJobClients:
    def test_job_closes_client_it_builds(self, session_factory, fake_timelog, monkeypatch):
        built = fake_timelog.client()
        closed = []
        monkeypatch.setattr(built, "close", lambda: closed.append(True))
        monkeypatch.setattr(jobs.TimelogClient, "from_settings", classmethod(lambda cls: built))
        jobs.sync_taxonomy_job(session_factory)
        assert closed == [True]

    def test_job_leaves_given_client_open(self, session_factory, fake_timelog, monkeypatch):
        given = fake_timelog.client()
        closed = []
        monkeypatch.setattr(given, "close", lambda: closed.append(True))
        jobs.submit_mapped_entries_job(session_factory, client=given)
        assert closed == []
