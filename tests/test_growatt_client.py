"""Tests for the Growatt OSS HTTP client (no network)."""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
import requests

from config import GrowattConfig
from growatt import client as client_module
from growatt.client import GrowattClient, Param
from growatt.result import REQUEST_FAILED, Err, Ok, from_envelope


class FakeResponse:
    def __init__(self, payload=None, status_code=200, body_error=None):
        self._payload = payload
        self.status_code = status_code
        self._body_error = body_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._body_error:
            raise self._body_error
        return self._payload


class FakePost:
    """Replaces requests.post; records calls and returns a scripted reply."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def __call__(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


CFG = GrowattConfig(
    token="tok-123",
    serial_num="ABC1234567",
    base_url="https://oss.example.com/tcpSet.do",
    permissions_key="oss_cn_",
    timeout_s=7.5,
)


@pytest.fixture()
def fake_post(monkeypatch):
    def install(reply):
        fake = FakePost(reply)
        monkeypatch.setattr(client_module.requests, "post", fake)
        return fake
    return install


class TestReads:
    def test_read_soc_request_shape(self, fake_post):
        post = fake_post(FakeResponse({"success": True, "msg": "56"}))
        result = GrowattClient(CFG).read_soc()

        assert result == Ok("56")
        call = post.calls[0]
        assert call["url"] == "https://oss.example.com/tcpSet.do"
        assert call["data"] == {
            "action": "getDeviceData",
            "serialNum": "ABC1234567",
            "paramId": Param.SOC,
        }
        assert call["headers"] == {"maketoken": "tok-123", "permissionskey": "oss_cn_"}
        assert call["timeout"] == 7.5

    def test_read_battery_feed_request_shape(self, fake_post):
        post = fake_post(FakeResponse({"success": True, "msg": "1"}))
        result = GrowattClient(CFG).read_battery_feed()

        assert result == Ok("1")
        assert post.calls[0]["data"] == {
            "action": "readStorageParam",
            "serialNum": "ABC1234567",
            "paramId": "storage_spf5000_uw_bat_feed_en",
            "startAddr": "-1",
            "endAddr": "-1",
        }

    def test_business_failure_keeps_message(self, fake_post):
        fake_post(FakeResponse({"success": False, "msg": "Device is offline"}))
        assert GrowattClient(CFG).read_soc() == Err("Device is offline")

    def test_connection_error_becomes_request_failed(self, fake_post):
        fake_post(requests.ConnectionError("connection refused"))
        assert GrowattClient(CFG).read_soc() == Err(REQUEST_FAILED)

    def test_timeout_becomes_request_failed(self, fake_post):
        fake_post(requests.Timeout("read timed out"))
        assert GrowattClient(CFG).read_battery_feed() == Err(REQUEST_FAILED)

    def test_http_error_becomes_request_failed(self, fake_post):
        fake_post(FakeResponse({"success": True, "msg": "50"}, status_code=502))
        assert GrowattClient(CFG).read_soc() == Err(REQUEST_FAILED)

    def test_unparseable_body_becomes_request_failed(self, fake_post):
        fake_post(FakeResponse(body_error=ValueError("Expecting value")))
        assert GrowattClient(CFG).read_soc() == Err(REQUEST_FAILED)


class TestWrites:
    def test_enable_battery_feed(self, fake_post):
        post = fake_post(FakeResponse({"success": True, "msg": "inv_set_success"}))
        result = GrowattClient(CFG).set_battery_feed(True)

        assert result.ok
        assert post.calls[0]["data"] == {
            "action": "storageSPF5000Set",
            "serialNum": "ABC1234567",
            "type": "storage_spf5000_uw_bat_feed_en",
            "param1": "1",
        }

    def test_disable_battery_feed(self, fake_post):
        post = fake_post(FakeResponse({"success": True, "msg": ""}))
        GrowattClient(CFG).set_battery_feed(False)
        assert post.calls[0]["data"]["param1"] == "0"

    def test_enable_peak_shaving(self, fake_post):
        post = fake_post(FakeResponse({"success": True, "msg": ""}))
        GrowattClient(CFG).set_peak_shaving(True)
        assert post.calls[0]["data"]["type"] == "storage_spf5000_ut_peak_shaving_set"
        assert post.calls[0]["data"]["param1"] == "1"

    def test_dry_run_skips_post(self, fake_post):
        post = fake_post(requests.ConnectionError("should not be called"))
        result = GrowattClient(CFG, dry_run=True).set_battery_feed(True)
        assert result == Ok("dry run")
        assert post.calls == []

    def test_dry_run_still_reads(self, fake_post):
        post = fake_post(FakeResponse({"success": True, "msg": "40"}))
        assert GrowattClient(CFG, dry_run=True).read_soc() == Ok("40")
        assert len(post.calls) == 1


class TestEnvelope:
    def test_success_with_numeric_msg(self):
        """Some firmware returns msg as a number rather than a string."""
        assert from_envelope({"success": True, "msg": 20}) == Ok("20")

    def test_success_without_msg(self):
        assert from_envelope({"success": True}) == Ok("")

    def test_failure_without_msg(self):
        assert from_envelope({"success": False}) == Err("unknown error")

    def test_integer_one_success_accepted(self):
        """Firmware that reports success as 1 must not turn every cycle into NOOP."""
        assert from_envelope({"success": 1, "msg": "20"}) == Ok("20")
        assert from_envelope({"success": 0, "msg": "busy"}) == Err("busy")

    def test_truthy_non_bool_success_is_failure(self):
        assert not from_envelope({"success": "true", "msg": "20"}).ok

    def test_non_object_is_request_failed(self):
        assert from_envelope(["success"]) == Err(REQUEST_FAILED)
        assert from_envelope(None) == Err(REQUEST_FAILED)
