import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://server-cn.growatt.com/tcpSet.do"


def _env(key: str, default: str | None = None) -> str:
    return os.getenv(key, default)


def _env_float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _env_bool(key: str, default: bool = False) -> bool:
    val = os.getenv(key, str(default)).lower()
    return val in ("true", "1", "yes")


@dataclass(frozen=True)
class GrowattConfig:
    token: str = ""
    serial_num: str = ""
    base_url: str = DEFAULT_BASE_URL
    permissions_key: str = "oss_cn_"
    timeout_s: float = 15.0

    @classmethod
    def from_env(cls) -> "GrowattConfig":
        return cls(
            token=_env("GROWATT_TOKEN", ""),
            serial_num=_env("GROWATT_SERIAL_NUM", ""),
            base_url=_env("GROWATT_BASE_URL", DEFAULT_BASE_URL),
            permissions_key=_env("GROWATT_PERMISSIONS_KEY", "oss_cn_"),
            timeout_s=_env_float("GROWATT_TIMEOUT_S", 15.0),
        )


@dataclass(frozen=True)
class ControlConfig:
    """Hysteresis band for the grid-feed toggle.

    Grid-feed is switched off at or below ``low_soc_pct`` and back on
    (together with peak-shaving) at or above ``high_soc_pct``.
    """
    low_soc_pct: float = 25.0
    high_soc_pct: float = 35.0

    @classmethod
    def from_env(cls) -> "ControlConfig":
        return cls(
            low_soc_pct=_env_float("LOW_SOC_PCT", 25.0),
            high_soc_pct=_env_float("HIGH_SOC_PCT", 35.0),
        )


@dataclass(frozen=True)
class SystemConfig:
    scheduler_interval_s: int = 300
    log_level: str = "INFO"
    dry_run: bool = False
    http_enabled: bool = True
    http_port: int = 8787

    @classmethod
    def from_env(cls) -> "SystemConfig":
        return cls(
            scheduler_interval_s=_env_int("SCHEDULER_INTERVAL_SECONDS", 300),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            dry_run=_env_bool("DRY_RUN", False),
            http_enabled=_env_bool("HTTP_ENABLED", True),
            http_port=_env_int("HTTP_PORT", 8787),
        )


@dataclass(frozen=True)
class AppConfig:
    growatt: GrowattConfig = field(default_factory=GrowattConfig)
    control: ControlConfig = field(default_factory=ControlConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    def problems(self) -> list[str]:
        """Describe settings that make a control cycle unsafe to run."""
        missing = []
        if not self.growatt.token:
            missing.append("GROWATT_TOKEN")
        if not self.growatt.serial_num:
            missing.append("GROWATT_SERIAL_NUM")

        problems = []
        if missing:
            problems.append(f"Missing required settings: {', '.join(missing)}")
        if self.control.low_soc_pct >= self.control.high_soc_pct:
            problems.append(
                f"LOW_SOC_PCT ({self.control.low_soc_pct:g}) must be below "
                f"HIGH_SOC_PCT ({self.control.high_soc_pct:g})"
            )
        return problems


def load() -> AppConfig:
    """Build the application settings from the environment (and .env)."""
    return AppConfig(
        growatt=GrowattConfig.from_env(),
        control=ControlConfig.from_env(),
        system=SystemConfig.from_env(),
    )
