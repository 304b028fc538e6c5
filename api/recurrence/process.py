"""Due-recurrence sweep endpoint (called via Vercel cron)."""

import json
from datetime import datetime, timezone

from tashks.services.date_arithmetic import parse_iso_timestamp, to_iso_timestamp
from tashks.services.recurrence_sweep import process_due_recurrences
from tashks.services.task_store import FileTaskStore
from tashks.utils.config import TashksConfig
from tashks.utils.errors import InvalidDate
from tashks.utils.logging import get_structured_logger, setup_logging

setup_logging()
logger = get_structured_logger(__name__)


def _json_response(status_code: int, payload: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload)
    }


def handler(request):
    """
    Generate the next instance of every clock-driven task that is due.

    An optional ``now`` query parameter (ISO timestamp) replaces the current
    time, which makes a sweep reproducible.
    """
    query_params = request.get("query", {}) or {}
    raw_now = query_params.get("now")

    try:
        now = parse_iso_timestamp(raw_now, "now") if raw_now else datetime.now(timezone.utc)
    except InvalidDate as e:
        return _json_response(400, {"error": str(e)})

    try:
        config = TashksConfig.from_env()
        store = FileTaskStore(config.data_dir)
        result = process_due_recurrences(store, now, failure_policy=config.sweep_failure_policy)

        return _json_response(200, {
            "ok": True,
            "now": to_iso_timestamp(now),
            "created": [task.id for task in result.created],
            "replaced": result.replaced,
            "failed": result.failed
        })

    except Exception as e:
        logger.exception("Error processing due recurrences", error=str(e))
        return _json_response(500, {"error": str(e)})
