import logging
from dataclasses import dataclass, field

from control.actions import Decision
from growatt.client import GrowattClient
from growatt.result import Err, Result

logger = logging.getLogger(__name__)

NO_ACTION = "No action taken"


@dataclass
class CommandOutcome:
    """Result of one write command sent to the inverter."""
    command: str        # e.g. 'enable_battery_feed'
    succeeded: bool
    detail: str         # gateway msg, 'dry run', or the failure reason

    @property
    def line(self) -> str:
        label = _LABELS[self.command]
        if self.succeeded:
            return f"{label} succeeded"
        return f"{label} failed: {self.detail}"


@dataclass
class ExecutionReport:
    decision: Decision
    outcomes: dict[str, CommandOutcome] = field(default_factory=dict)

    @property
    def lines(self) -> list[str]:
        if not self.outcomes:
            return [NO_ACTION]
        return [o.line for o in self.outcomes.values()]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def all_succeeded(self) -> bool:
        return all(o.succeeded for o in self.outcomes.values())


_LABELS = {
    "enable_battery_feed": "Enable battery grid-feed",
    "disable_battery_feed": "Disable battery grid-feed",
    "enable_peak_shaving": "Enable peak-shaving",
}


class CommandExecutor:
    """Sends the write commands a decision calls for.

    Every command is attempted regardless of how earlier ones fared, and
    each gets its own outcome. Commands are not idempotent here: running
    ENABLE twice sends both writes twice.
    """

    def __init__(self, client: GrowattClient):
        self.client = client

    def execute(self, decision: Decision) -> ExecutionReport:
        report = ExecutionReport(decision)

        if decision == Decision.ENABLE:
            self._record(report, "enable_battery_feed", self.client.set_battery_feed(True))
            self._record(report, "enable_peak_shaving", self.client.set_peak_shaving(True))
        elif decision == Decision.DISABLE:
            self._record(report, "disable_battery_feed", self.client.set_battery_feed(False))
        elif decision == Decision.NOOP:
            logger.debug("No command to send")
        else:
            raise ValueError(f"Unhandled decision: {decision!r}")

        return report

    @staticmethod
    def _record(report: ExecutionReport, command: str, result: Result):
        if isinstance(result, Err):
            outcome = CommandOutcome(command, False, result.reason)
            logger.error("%s failed: %s", command, result.reason)
        else:
            outcome = CommandOutcome(command, True, result.value)
            logger.info("%s succeeded", command)
        report.outcomes[command] = outcome
