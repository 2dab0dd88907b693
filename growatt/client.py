"""Growatt OSS ``tcpSet.do`` client for one storage inverter.

Every operation is a single form-encoded POST; the reply is a
``{"success": bool, "msg": str}`` envelope. Failures never raise out of
this module: transport and parse errors come back as
``Err("request failed")`` so callers treat them like a refused command.
"""

import logging

import requests

from config import GrowattConfig
from growatt.result import REQUEST_FAILED, Err, Ok, Result, from_envelope

logger = logging.getLogger(__name__)


class Param:
    """Storage parameter identifiers used by the SPF5000 family."""
    SOC = "storage_soc"
    BATTERY_FEED = "storage_spf5000_uw_bat_feed_en"
    PEAK_SHAVING = "storage_spf5000_ut_peak_shaving_set"


class GrowattClient:
    """Reads telemetry from and writes settings to one inverter."""

    def __init__(self, cfg: GrowattConfig, dry_run: bool = False):
        self.url = cfg.base_url
        self.serial_num = cfg.serial_num
        self.timeout_s = cfg.timeout_s
        self.dry_run = dry_run
        self._headers = {
            "maketoken": cfg.token,
            "permissionskey": cfg.permissions_key,
        }

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def read_soc(self) -> Result:
        """Battery state of charge in percent, as the raw string."""
        return self._post({
            "action": "getDeviceData",
            "serialNum": self.serial_num,
            "paramId": Param.SOC,
        })

    def read_battery_feed(self) -> Result:
        """Battery grid-feed toggle: ``"1"`` when enabled, ``"0"`` when not."""
        return self._post({
            "action": "readStorageParam",
            "serialNum": self.serial_num,
            "paramId": Param.BATTERY_FEED,
            "startAddr": "-1",
            "endAddr": "-1",
        })

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def set_battery_feed(self, enabled: bool) -> Result:
        return self._write(Param.BATTERY_FEED, enabled)

    def set_peak_shaving(self, enabled: bool) -> Result:
        return self._write(Param.PEAK_SHAVING, enabled)

    def _write(self, param_type: str, enabled: bool) -> Result:
        value = "1" if enabled else "0"
        if self.dry_run:
            logger.info("[DRY RUN] Would send %s = %s", param_type, value)
            return Ok("dry run")

        return self._post({
            "action": "storageSPF5000Set",
            "serialNum": self.serial_num,
            "type": param_type,
            "param1": value,
        })

    def _post(self, params: dict[str, str]) -> Result:
        try:
            resp = requests.post(
                self.url,
                data=params,
                headers=self._headers,
                timeout=self.timeout_s,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Growatt %s request failed: %s", params["action"], e)
            return Err(REQUEST_FAILED)

        result = from_envelope(payload)
        if isinstance(result, Err):
            logger.warning(
                "Growatt %s rejected (%s): %s",
                params["action"], params.get("paramId") or params.get("type"),
                result.reason,
            )
        return result
