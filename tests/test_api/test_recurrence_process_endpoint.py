"""Tests for the due-recurrence cron endpoint."""

import pytest

from api.recurrence.process import handler
from tashks.services.task_store import FileTaskStore
from tests.utils.assertions import assert_valid_response
from tests.utils.factories import make_clock_task
from tests.utils.helpers import create_vercel_request


@pytest.fixture
def cron_env(monkeypatch, data_dir, hooks_dir):
    monkeypatch.setenv("TASHKS_DATA_DIR", str(data_dir))
    monkeypatch.setenv("TASHKS_HOOKS_DIR", str(hooks_dir))
    monkeypatch.delenv("SWEEP_FAILURE_POLICY", raising=False)
    return FileTaskStore(data_dir)


@pytest.mark.unit
def test_process_generates_due_instances(cron_env):
    cron_env.save(make_clock_task("FREQ=DAILY", id="standup-aaaaaa", created="2026-02-01"))

    response = handler(create_vercel_request({"now": "2026-03-01T09:00:00Z"}))

    body = assert_valid_response(response, 200)
    assert body["ok"] is True
    assert body["now"] == "2026-03-01T09:00:00Z"
    assert len(body["created"]) == 1
    assert body["replaced"] == ["standup-aaaaaa"]
    assert body["failed"] == []
    assert cron_env.load(body["created"][0]).status == "active"


@pytest.mark.unit
def test_process_is_idempotent(cron_env):
    cron_env.save(make_clock_task("FREQ=DAILY", id="standup-aaaaaa", created="2026-02-01"))
    request = create_vercel_request({"now": "2026-03-01T09:00:00Z"})

    handler(request)
    body = assert_valid_response(handler(request), 200)

    assert body["created"] == []


@pytest.mark.unit
def test_process_invalid_now(cron_env):
    body = assert_valid_response(handler(create_vercel_request({"now": "tomorrow-ish"})), 400)

    assert "now" in body["error"]


@pytest.mark.unit
def test_process_abort_policy_reports_error(cron_env):
    cron_env.save(make_clock_task("FREQ=FORTNIGHTLY", id="broken-aaaaaa", created="2026-02-01"))

    body = assert_valid_response(handler(create_vercel_request({"now": "2026-03-01T09:00:00Z"})), 500)

    assert "broken-aaaaaa" in body["error"]


@pytest.mark.unit
def test_process_skip_policy(cron_env, monkeypatch):
    monkeypatch.setenv("SWEEP_FAILURE_POLICY", "skip")
    cron_env.save(make_clock_task("FREQ=FORTNIGHTLY", id="broken-aaaaaa", created="2026-02-01"))

    body = assert_valid_response(handler(create_vercel_request({"now": "2026-03-01T09:00:00Z"})), 200)

    assert body["failed"] == ["broken-aaaaaa"]


@pytest.mark.unit
def test_process_without_query(cron_env):
    body = assert_valid_response(handler({"query": None}), 200)

    assert body["created"] == []
