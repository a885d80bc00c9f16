"""
CPU frequency and idle-state residency analysis.

Snapshots the cumulative cpufreq `time_in_state` and cpuidle `time`
counters of every processor and turns the difference between two snapshots
into percent-of-interval figures.
"""

import logging
import re
import time
from pathlib import Path
from typing import Callable, Dict, List

from ..models.config import ResidencyConfig
from ..models.results import CoreResidencyReport, ResidencyReport
from ..models.samples import CoreResidency, ResidencySnapshot

logger = logging.getLogger(__name__)

_CPU_DIR_PATTERN = re.compile(r"^cpu([0-9]+)$")
_IDLE_STATE_PATTERN = re.compile(r"^state([0-9]+)$")


class ResidencyAnalyzer:
    """
    Reads residency counters under `cpu_root` (normally /sys/devices/system/cpu).

    Args:
        config: Residency settings (counter root and tick length).
        clock_ns: Nanosecond clock stamped onto each snapshot.
    """

    def __init__(self, config: ResidencyConfig, clock_ns: Callable[[], int] = time.monotonic_ns):
        self.config = config
        self.clock_ns = clock_ns

    def _processor_dirs(self) -> Dict[int, Path]:
        processors: Dict[int, Path] = {}
        try:
            entries = list(self.config.cpu_root.iterdir())
        except OSError as e:
            logger.warning(f"Cannot list processors under {self.config.cpu_root}: {e}")
            return processors
        for entry in entries:
            match = _CPU_DIR_PATTERN.match(entry.name)
            if match and entry.is_dir():
                processors[int(match.group(1))] = entry
        return dict(sorted(processors.items()))

    def _read_frequency_residency(self, cpu_dir: Path) -> Dict[int, int]:
        residency: Dict[int, int] = {}
        stats_file = cpu_dir / "cpufreq" / "stats" / "time_in_state"
        try:
            lines = stats_file.read_text().splitlines()
        except OSError:
            return residency
        for line in lines:
            parts = line.split()
            if len(parts) != 2:
                continue
            try:
                freq_khz, ticks = int(parts[0]), int(parts[1])
            except ValueError:
                continue
            residency[freq_khz] = ticks * self.config.freq_time_unit_us
        return residency

    def _read_idle_residency(self, cpu_dir: Path) -> Dict[str, int]:
        residency: Dict[str, int] = {}
        idle_dir = cpu_dir / "cpuidle"
        try:
            entries = list(idle_dir.iterdir())
        except OSError:
            return residency
        states = []
        for entry in entries:
            match = _IDLE_STATE_PATTERN.match(entry.name)
            if match:
                states.append((int(match.group(1)), entry))
        for _, state_dir in sorted(states):
            try:
                name = (state_dir / "name").read_text().strip()
                time_us = int((state_dir / "time").read_text().strip())
            except (OSError, ValueError):
                continue
            residency[name] = time_us
        return residency

    def take_snapshot(self) -> ResidencySnapshot:
        """Capture the counters of every processor; unreadable ones are empty."""
        per_processor = {
            cpu_id: CoreResidency(
                frequency_residency_us=self._read_frequency_residency(cpu_dir),
                idle_state_residency_us=self._read_idle_residency(cpu_dir),
            )
            for cpu_id, cpu_dir in self._processor_dirs().items()
        }
        return ResidencySnapshot(per_processor=per_processor, taken_at_ns=self.clock_ns())

    def describe_processors(self) -> List[str]:
        """One line per processor saying which counters it exposes."""
        lines = []
        for cpu_id, cpu_dir in self._processor_dirs().items():
            has_freq = (cpu_dir / "cpufreq" / "stats" / "time_in_state").exists()
            has_idle = (cpu_dir / "cpuidle").is_dir()
            lines.append(
                f"CPU{cpu_id}: cpufreq stats {'yes' if has_freq else 'no'}, "
                f"cpuidle {'yes' if has_idle else 'no'}"
            )
        return lines

    @staticmethod
    def diff(start: ResidencySnapshot, end: ResidencySnapshot) -> ResidencyReport:
        """
        Percent of the interval between two snapshots spent in each state.

        Processors missing from `end` are skipped. Keys are taken from the
        start snapshot; a key missing from `end` counts as zero there, and
        negative deltas (counter reset) are dropped.
        """
        elapsed_us = (end.taken_at_ns - start.taken_at_ns) / 1000.0
        if elapsed_us <= 0:
            logger.warning(f"Residency interval is not positive ({elapsed_us} us); skipping")
            return ResidencyReport(elapsed_us=elapsed_us)

        per_processor: Dict[int, CoreResidencyReport] = {}
        for cpu_id, start_core in start.per_processor.items():
            end_core = end.per_processor.get(cpu_id)
            if end_core is None:
                continue
            report = CoreResidencyReport()
            for freq, start_us in start_core.frequency_residency_us.items():
                delta = end_core.frequency_residency_us.get(freq, 0) - start_us
                if delta >= 0:
                    report.frequency_percent[freq] = delta * 100.0 / elapsed_us
            for state, start_us in start_core.idle_state_residency_us.items():
                delta = end_core.idle_state_residency_us.get(state, 0) - start_us
                if delta >= 0:
                    report.idle_percent[state] = delta * 100.0 / elapsed_us
            per_processor[cpu_id] = report

        return ResidencyReport(elapsed_us=elapsed_us, per_processor=per_processor)
