from enum import Enum


class Decision(Enum):
    """What a control cycle does to the inverter.

    These map to Growatt write commands:
    - NOOP    -> nothing is sent
    - DISABLE -> battery grid-feed off
    - ENABLE  -> battery grid-feed on, then peak-shaving on
    """

    NOOP = "noop"
    """SOC is inside the hysteresis band, the feed toggle already matches,
    or telemetry was incomplete."""

    DISABLE = "disable"
    """SOC at or below the low threshold while grid-feed is on.
    Stop exporting before the battery drains further."""

    ENABLE = "enable"
    """SOC at or above the high threshold while grid-feed is off.
    Resume export and peak-shaving once the battery has recharged."""

    @property
    def code(self) -> int:
        """Integer form (-1/0/1) reported as ``action`` in HTTP replies."""
        return {Decision.NOOP: -1, Decision.DISABLE: 0, Decision.ENABLE: 1}[self]
