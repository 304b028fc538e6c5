"""Fixed-interval recurrence parsing for completion-driven tasks.

Completion-driven recurrence shifts dates by a fixed step, so only rules that
reduce to ``{frequency, interval}`` are accepted here. Clock-driven due-ness
evaluates the full rule instead (see ``recurrence_evaluator``); the two paths
are intentionally not unified.
"""

from datetime import datetime, timezone

from dateutil.rrule import rrule, rrulestr

from tashks.models.recurrence import Frequency, RecurrenceInterval
from tashks.utils.errors import UnsupportedRecurrence
from tashks.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

RULE_PREFIX = "RRULE:"
# Only FREQ/INTERVAL are read from the parsed rule, so any aware anchor will do
RULE_ANCHOR = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _rule_body(recurrence: str) -> str:
    """Return the ``FREQ=...;...`` part of a single-rule string."""
    lines = [line.strip() for line in recurrence.strip().splitlines() if line.strip()]
    rule_lines = [line for line in lines if line.upper().startswith(RULE_PREFIX)]

    if rule_lines:
        return rule_lines[0][len(RULE_PREFIX):]
    # Bare rule without a property name, e.g. "FREQ=DAILY;INTERVAL=2"
    return lines[0] if lines else ""


def _rule_parts(body: str) -> dict[str, str]:
    parts = {}
    for chunk in body.split(";"):
        if not chunk.strip():
            continue
        key, _, value = chunk.partition("=")
        parts[key.strip().upper()] = value.strip()
    return parts


def _parse_rule(recurrence: str):
    try:
        return rrulestr(recurrence, forceset=False)
    except ValueError:
        # UNTIL in UTC needs an aware DTSTART
        return rrulestr(recurrence, dtstart=RULE_ANCHOR, forceset=False)


def parse_completion_interval(recurrence: str) -> RecurrenceInterval:
    """
    Parse a recurrence rule into a fixed ``RecurrenceInterval``.

    Raises UnsupportedRecurrence when the string is not exactly one RRULE,
    the frequency is not DAILY/WEEKLY/MONTHLY/YEARLY, the interval is not a
    positive integer, or the rule carries BY* constraints.
    """
    try:
        parsed = _parse_rule(recurrence)
    except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        raise UnsupportedRecurrence(f"Failed to parse recurrence {recurrence!r}: {e}") from e

    if not isinstance(parsed, rrule):
        raise UnsupportedRecurrence("Unsupported completion recurrence: expected a single RRULE")

    parts = _rule_parts(_rule_body(recurrence))

    freq_label = parts.get("FREQ", "").upper()
    try:
        frequency = Frequency(freq_label)
    except ValueError:
        raise UnsupportedRecurrence(f"Unsupported completion recurrence frequency: {freq_label or 'missing'}")

    constraints = sorted(key for key in parts if key.startswith("BY"))
    if constraints:
        raise UnsupportedRecurrence(
            f"Unsupported completion recurrence constraints: {', '.join(constraints)}"
        )

    raw_interval = parts.get("INTERVAL", "1")
    try:
        interval = int(raw_interval)
    except ValueError:
        raise UnsupportedRecurrence(f"Invalid recurrence interval: {raw_interval}")
    if interval < 1:
        raise UnsupportedRecurrence(f"Invalid recurrence interval: {raw_interval}")

    logger.debug(
        "Parsed completion recurrence",
        recurrence=recurrence,
        frequency=frequency.value,
        interval=interval
    )
    return RecurrenceInterval(frequency=frequency, interval=interval)
