"""Growatt Feed Control - Scheduler and HTTP trigger

Each cycle, on a timer or on request:
1. Read battery SOC (Growatt OSS API)
2. Read the battery grid-feed toggle
3. Apply the low/high SOC hysteresis rule
4. Switch grid-feed (and peak-shaving) when the rule says so
5. Report one line per command sent
"""

import http.server
import json
import logging
import signal
import sys
import threading
import time
from dataclasses import dataclass
from urllib.parse import urlsplit

import schedule

import config
from config import AppConfig
from control.actions import Decision
from control.executor import CommandExecutor, ExecutionReport
from control.policy import determine_action
from growatt.client import GrowattClient
from growatt.result import Result

logger = logging.getLogger("feed_control")

RUN_PATHS = ("/", "/api/run")


@dataclass
class CycleResult:
    """Everything one control cycle saw and did. Not kept between cycles."""
    soc: Result | None = None
    feed: Result | None = None
    decision: Decision = Decision.NOOP
    report: ExecutionReport | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def output(self) -> str:
        return self.report.text if self.report else ""

    @classmethod
    def failed(cls, error: str) -> "CycleResult":
        return cls(error=error)


class FeedController:
    def __init__(self, settings: AppConfig, client: GrowattClient | None = None):
        self.settings = settings
        self._client = client
        self._running = True
        self._server: http.server.HTTPServer | None = None

    def _gateway(self) -> GrowattClient:
        if self._client is None:
            self._client = GrowattClient(
                self.settings.growatt, dry_run=self.settings.system.dry_run
            )
        return self._client

    def run_cycle(self) -> CycleResult:
        """Execute one read-decide-act cycle."""
        problems = self.settings.problems()
        if problems:
            error = "; ".join(problems)
            logger.error("Configuration error, skipping cycle: %s", error)
            return CycleResult.failed(error)

        client = self._gateway()
        control = self.settings.control

        # 1. Read telemetry
        soc = client.read_soc()
        logger.info("SOC read: %s", soc)
        feed = client.read_battery_feed()
        logger.info("Battery grid-feed read: %s", feed)

        # 2. Decide
        decision = determine_action(
            soc, feed, control.low_soc_pct, control.high_soc_pct
        )
        logger.info(
            "Decision: %s (band %g-%g%%)",
            decision.name, control.low_soc_pct, control.high_soc_pct,
        )

        # 3. Act
        report = CommandExecutor(client).execute(decision)
        logger.info(
            "Result (%s, %s): %s",
            report.decision.name,
            "all commands succeeded" if report.all_succeeded else "some commands failed",
            report.text.replace("\n", " | "),
        )

        return CycleResult(soc=soc, feed=feed, decision=decision, report=report)

    def handle_request(self) -> tuple[int, dict]:
        """Run a cycle for an HTTP caller. Returns (status, JSON body)."""
        try:
            result = self.run_cycle()
        except Exception as e:
            logger.exception("On-demand cycle failed: %s", e)
            return 500, {"success": False, "msg": "Failed to process request"}

        if not result.success:
            return 500, {"success": False, "msg": result.error}
        return 200, {
            "success": True,
            "action": result.decision.code,
            "decision": result.decision.value,
            "output": result.output,
        }

    def run_scheduled(self, trigger: str = "interval") -> CycleResult:
        """Timer entry point. Logs the outcome and never raises."""
        logger.info("Scheduled cycle triggered (%s)", trigger)
        try:
            result = self.run_cycle()
        except Exception as e:
            logger.exception("Scheduled cycle failed: %s", e)
            return CycleResult.failed(f"Scheduled cycle failed: {e}")

        if result.success:
            logger.info("Scheduled cycle complete: %s", result.decision.name)
        else:
            logger.error("Scheduled cycle failed: %s", result.error)
        return result

    def _start_http_server(self):
        """Start the on-demand trigger in a background daemon thread."""
        port = self.settings.system.http_port
        self._server = http.server.HTTPServer(("", port), make_handler(self))
        thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        thread.start()
        logger.info("On-demand trigger at http://localhost:%d/api/run", port)

    def start(self):
        """Start the scheduler."""
        system = self.settings.system
        logger.info("Growatt Feed Control starting")
        logger.info(
            "Inverter %s, hysteresis band %g-%g%%",
            self.settings.growatt.serial_num or "<unset>",
            self.settings.control.low_soc_pct, self.settings.control.high_soc_pct,
        )
        logger.info("Scheduler interval: %ds", system.scheduler_interval_s)
        if system.dry_run:
            logger.info("*** DRY RUN MODE - no write commands will be sent ***")

        if system.http_enabled:
            self._start_http_server()

        # Run first cycle immediately
        self.run_scheduled(trigger="startup")

        schedule.every(system.scheduler_interval_s).seconds.do(self.run_scheduled)

        logger.info("Scheduler running. Press Ctrl+C to stop.")
        while self._running:
            schedule.run_pending()
            time.sleep(1)

    def stop(self):
        self._running = False
        schedule.clear()
        if self._server is not None:
            self._server.shutdown()
        logger.info("Shutting down")


def make_handler(controller: FeedController):
    """Build a request handler class bound to *controller*."""

    class FeedRequestHandler(http.server.BaseHTTPRequestHandler):
        def log_message(self, format, *args):
            pass  # suppress access logs

        def _send_json(self, data, status=200):
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.end_headers()
            self.wfile.write(json.dumps(data, ensure_ascii=False).encode())

        def _dispatch(self, allow_health: bool):
            path = urlsplit(self.path).path
            if path in RUN_PATHS:
                status, body = controller.handle_request()
                self._send_json(body, status)
            elif allow_health and path == "/health":
                self._send_json({"ok": True})
            else:
                self.send_error(404)

        def do_GET(self):
            self._dispatch(allow_health=True)

        def do_POST(self):
            self._dispatch(allow_health=False)

    return FeedRequestHandler


def main():
    settings = config.load()
    logging.basicConfig(
        level=getattr(logging, settings.system.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    controller = FeedController(settings)

    if "--once" in sys.argv[1:]:
        status, body = controller.handle_request()
        print(json.dumps(body, ensure_ascii=False, indent=2))
        sys.exit(0 if status == 200 else 1)

    def signal_handler(sig, frame):
        controller.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    controller.start()


if __name__ == "__main__":
    main()
