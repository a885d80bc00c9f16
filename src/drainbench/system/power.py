"""
Battery power source reader.

Reads the Linux power_supply class attributes of one battery:

- voltage_now: µV
- current_now: raw units, converted to µA with `current_scale`
- charge_counter (Android) or charge_now: µAh
- temp: tenths of °C
- capacity: percent

Every attribute is optional; a missing or malformed file yields UNKNOWN and
sampling never raises.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import psutil

from ..models.config import MonitorConfig
from ..models.samples import UNKNOWN, PowerSample

logger = logging.getLogger(__name__)

# Attributes reported by describe_power_source(), when present.
DESCRIPTION_ATTRIBUTES = (
    "manufacturer",
    "model_name",
    "technology",
    "status",
    "charge_full_design",
    "charge_full",
    "voltage_min_design",
    "cycle_count",
)


def monotonic_ms() -> int:
    """Default millisecond clock used for samples and sessions."""
    return int(time.monotonic() * 1000)


def find_battery(sysfs_root: Path) -> Optional[Path]:
    """
    Return the first power supply under `sysfs_root` whose type is Battery.

    Supplies are examined in name order so the choice is stable across runs.
    """
    if not sysfs_root.is_dir():
        logger.warning(f"Power supply root not found: {sysfs_root}")
        return None
    for supply in sorted(sysfs_root.iterdir()):
        supply_type = _read_text(supply / "type")
        if supply_type is not None and supply_type.lower() == "battery":
            return supply
    return None


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text().strip()
    except OSError:
        return None


def _read_int(path: Path) -> int:
    text = _read_text(path)
    if text is None:
        return UNKNOWN
    try:
        return int(text)
    except ValueError:
        logger.debug(f"Malformed value in {path}: {text!r}")
        return UNKNOWN


class PowerSampler:
    """
    Takes PowerSample readings from one battery.

    Args:
        config: Monitor settings naming the supply and the current scale.
        clock: Millisecond clock stamped onto each sample.
    """

    def __init__(self, config: MonitorConfig, clock: Callable[[], int] = monotonic_ms):
        self.config = config
        self.clock = clock
        self.supply_dir = self._resolve_supply()

    def _resolve_supply(self) -> Optional[Path]:
        if self.config.power_supply == "auto":
            supply_dir = find_battery(self.config.sysfs_root)
            if supply_dir is None:
                logger.warning(
                    f"No battery found under {self.config.sysfs_root}; "
                    f"all readings will be unknown"
                )
            else:
                logger.info(f"Using power supply: {supply_dir.name}")
            return supply_dir

        supply_dir = self.config.sysfs_root / self.config.power_supply
        if not supply_dir.is_dir():
            logger.warning(f"Configured power supply not found: {supply_dir}")
        return supply_dir

    @property
    def available(self) -> bool:
        return self.supply_dir is not None and self.supply_dir.is_dir()

    def sample(self) -> PowerSample:
        """Take one reading. Never raises."""
        timestamp_ms = self.clock()
        if self.supply_dir is None:
            return PowerSample(timestamp_ms=timestamp_ms, level_percent=self._fallback_level())

        voltage_uv = _read_int(self.supply_dir / "voltage_now")
        voltage_mv = voltage_uv // 1000 if voltage_uv > 0 else UNKNOWN

        raw_current = _read_int(self.supply_dir / "current_now")
        if raw_current == UNKNOWN:
            current_ua = UNKNOWN
        else:
            current_ua = int(round(raw_current * self.config.current_scale))

        charge_uah = _read_int(self.supply_dir / "charge_counter")
        if charge_uah == UNKNOWN:
            charge_uah = _read_int(self.supply_dir / "charge_now")

        temperature = _read_int(self.supply_dir / "temp")

        level = _read_int(self.supply_dir / "capacity")
        if level == UNKNOWN:
            level = self._fallback_level()

        return PowerSample(
            timestamp_ms=timestamp_ms,
            voltage_mv=voltage_mv,
            current_ua=current_ua,
            charge_uah=charge_uah,
            temperature_decicelsius=temperature,
            level_percent=level,
        )

    def _fallback_level(self) -> int:
        try:
            battery = psutil.sensors_battery()
        except (AttributeError, NotImplementedError, OSError) as e:
            logger.debug(f"psutil battery query failed: {e}")
            return UNKNOWN
        if battery is None:
            return UNKNOWN
        return int(round(battery.percent))

    def describe_power_source(self) -> Dict[str, str]:
        """
        Static information about the battery for the startup description.
        """
        if self.supply_dir is None:
            return {"supply": "none"}
        description = {"supply": self.supply_dir.name}
        for attribute in DESCRIPTION_ATTRIBUTES:
            value = _read_text(self.supply_dir / attribute)
            if value is not None:
                description[attribute] = value
        charge_source = (
            "charge_counter" if (self.supply_dir / "charge_counter").exists()
            else "charge_now" if (self.supply_dir / "charge_now").exists()
            else "missing"
        )
        description["charge_source"] = charge_source
        description["current_scale"] = f"{self.config.current_scale:g}"
        return description
