"""Two-threshold hysteresis rule for the battery grid-feed toggle.

The rule is stateless: the inverter's current feed setting is re-read every
cycle, so the band between the low and high threshold is what keeps the
toggle from flapping, not any memory on our side.
"""

import math

from control.actions import Decision
from growatt.result import Ok, Result


def parse_number(text: str) -> float | None:
    """Parse a telemetry string, returning None for anything non-finite."""
    try:
        value = float(str(text).strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def determine_action(
    soc: Result,
    feed: Result,
    low_soc_pct: float,
    high_soc_pct: float,
) -> Decision:
    """Decide whether grid-feed should be switched this cycle.

    Both reads must have succeeded and parsed as numbers; otherwise the
    answer is NOOP. Feed state counts as on for any non-zero value.
    """
    if low_soc_pct >= high_soc_pct:
        raise ValueError(
            f"low threshold {low_soc_pct} must be below high threshold {high_soc_pct}"
        )

    if not (isinstance(soc, Ok) and isinstance(feed, Ok)):
        return Decision.NOOP

    soc_pct = parse_number(soc.value)
    feed_state = parse_number(feed.value)
    if soc_pct is None or feed_state is None:
        return Decision.NOOP

    feed_on = feed_state != 0
    if soc_pct <= low_soc_pct and feed_on:
        return Decision.DISABLE
    if soc_pct >= high_soc_pct and not feed_on:
        return Decision.ENABLE
    return Decision.NOOP
