"""
Energy monitor state machine.

Battery coulomb counters are coarse: the reported charge stays flat for a
while and then drops by a whole quantum. A run therefore only starts counting
once the first genuine drop is seen, which aligns the start of the
measurement with a counter edge. From then on two independent estimates are
kept:

- energy from charge: each observed drop times the voltage at that poll
- energy from current: the instantaneous power of the previous poll
  integrated over the time since it

The run stops at the first poll whose charge is below
`start charge - per_percent_unit * target_percent`. Polls get faster once the
next drop is expected to cross that threshold so that the overshoot stays
within one short poll period.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..models.config import MonitorConfig
from ..models.results import average_power
from ..models.samples import UNKNOWN, MonitoringSession, MonitorState, PowerSample
from ..orchestration.cues import CueEmitter, CueKind
from ..system.power import monotonic_ms

logger = logging.getLogger(__name__)

WAITING_MARKER = "WAITING FOR CHARGE DROP"


def sample_power_w(sample: PowerSample) -> float:
    """Discharge power of a sample in watts; charging or unknown counts as 0."""
    if not sample.has_voltage or not sample.has_current:
        return 0.0
    return max(0.0, -sample.current_ua * sample.voltage_mv / 1e9)


def _friendly_time() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S")


class EnergyMonitor:
    """
    Drives one MonitoringSession from a stream of PowerSamples.

    Args:
        settings: Poll delays, stale threshold and battery capacity.
        label: Run label, copied into the session and the log lines.
        target_percent: Drain target in percent of nominal capacity.
        sink: Receives one detail line per poll (anything with `detail(str)`).
        cues: Operator cue emitter.
        clock: Millisecond clock; must be the one that stamps the samples.
    """

    def __init__(
        self,
        settings: MonitorConfig,
        label: str,
        target_percent: int,
        sink: Any,
        cues: CueEmitter,
        clock: Callable[[], int] = monotonic_ms,
    ):
        self.settings = settings
        self.label = label
        self.target_percent = target_percent
        self.sink = sink
        self.cues = cues
        self.clock = clock
        self.session: Optional[MonitoringSession] = None

    def begin(self, initial_sample: PowerSample) -> MonitoringSession:
        """Create the session, using `initial_sample` as the reference charge."""
        now = self.clock()
        self.session = MonitoringSession(
            label=self.label,
            target_percent=self.target_percent,
            previous_charge_uah=initial_sample.charge_uah if initial_sample.has_charge else UNKNOWN,
            previous_sample_ms=now,
            start_ms=now,
            last_level_percent=float(initial_sample.level_percent),
        )
        logger.info(
            f"Monitoring {self.label}: target {self.target_percent}% "
            f"({self.settings.per_percent_unit_uah * self.target_percent} uAh), "
            f"initial charge {initial_sample.charge_uah}"
        )
        return self.session

    @property
    def done(self) -> bool:
        return self.session is not None and self.session.state is MonitorState.DONE

    def poll(self, sample: PowerSample) -> Optional[float]:
        """
        Process one sample.

        Returns:
            Seconds until the next poll, or None once the run is complete.
        """
        if self.session is None:
            self.begin(sample)
        session = self.session

        if session.state is MonitorState.DONE:
            return None
        if session.state is MonitorState.WAITING_FOR_DROP:
            return self._poll_waiting(session, sample)
        return self._poll_accumulating(session, sample)

    def _poll_waiting(self, session: MonitoringSession, sample: PowerSample) -> float:
        now = self.clock()
        if not (sample.has_charge and sample.has_voltage):
            return self._keep_waiting(session, sample, now)

        if session.previous_charge_uah == UNKNOWN:
            session.previous_charge_uah = sample.charge_uah
            return self._keep_waiting(session, sample, now)

        delta = session.previous_charge_uah - sample.charge_uah
        session.previous_charge_uah = sample.charge_uah
        if delta <= 0:
            return self._keep_waiting(session, sample, now)

        # First genuine drop: the measurement starts on this counter edge.
        session.start_ms = now
        session.previous_sample_ms = now
        session.threshold_charge_uah = (
            sample.charge_uah - self.settings.per_percent_unit_uah * self.target_percent
        )
        session.state = MonitorState.ACCUMULATING
        logger.info(
            f"Charge drop detected for {self.label}; stopping below "
            f"{session.threshold_charge_uah} uAh"
        )
        return self._accumulate(session, sample, now, delta=0, gap_ms=0)

    def _keep_waiting(self, session: MonitoringSession, sample: PowerSample, now: int) -> float:
        session.last_level_percent = float(sample.level_percent)
        session.trace.append(self._trace_record(session, sample, now, power_w=sample_power_w(sample)))
        self.sink.detail(f"Time: {_friendly_time()}, Charge: {sample.charge_uah} {WAITING_MARKER}")
        self.cues.emit(CueKind.WAITING, self.label)
        return self.settings.waiting_delay_seconds

    def _poll_accumulating(self, session: MonitoringSession, sample: PowerSample) -> Optional[float]:
        now = self.clock()
        gap_ms = now - session.previous_sample_ms
        delta = 0
        if sample.has_charge and sample.has_voltage:
            delta = session.previous_charge_uah - sample.charge_uah
            session.previous_charge_uah = sample.charge_uah
        return self._accumulate(session, sample, now, delta=delta, gap_ms=gap_ms)

    def _accumulate(
        self,
        session: MonitoringSession,
        sample: PowerSample,
        now: int,
        delta: int,
        gap_ms: int,
    ) -> Optional[float]:
        session.total_iterations += 1
        if gap_ms / 1000.0 > self.settings.stale_poll_seconds:
            session.slow_iteration_count += 1
            logger.warning(
                f"Slow poll for {self.label}: {gap_ms / 1000.0:.1f}s since the previous one "
                f"(slow iterations: {session.slow_iteration_count})"
            )
            self.cues.emit(CueKind.WARNING, f"slow poll {gap_ms / 1000.0:.1f}s")

        session.energy_from_current_wh += session.previous_power_w * gap_ms / 3_600_000.0

        time_to_stop = False
        nearly_time_to_stop = False
        if sample.has_charge and sample.has_voltage:
            if delta > 0:
                session.energy_from_charge_wh += delta * sample.voltage_mv / 1e9
                nearly_time_to_stop = sample.charge_uah - delta < session.threshold_charge_uah
            time_to_stop = sample.charge_uah < session.threshold_charge_uah
        # Decided afresh on every poll; the session only keeps it for the log lines.
        session.nearly_done = nearly_time_to_stop

        power_w = sample_power_w(sample)
        if sample.has_voltage and sample.has_current:
            session.previous_power_w = power_w
        session.previous_sample_ms = now
        session.last_level_percent = float(sample.level_percent)
        session.trace.append(self._trace_record(session, sample, now, power_w=power_w))
        self.sink.detail(self._detail_line(session, sample, now, power_w))

        if time_to_stop:
            session.state = MonitorState.DONE
            logger.info(f"Threshold reached for {self.label}")
            return None
        if nearly_time_to_stop:
            return self.settings.near_delay_seconds
        return self.settings.far_delay_seconds

    def _detail_line(
        self, session: MonitoringSession, sample: PowerSample, now: int, power_w: float
    ) -> str:
        hours = session.elapsed_hours(now)
        return (
            f"Time: {_friendly_time()}, Slow {session.slow_iteration_count} "
            f"NrlyStp: {session.nearly_done} "
            f"BTemp: {sample.temperature_celsius} "
            f"Voltage: {sample.voltage_mv} mV, Current: {sample.current_ua} uA, "
            f"Power(cur): {power_w:.3f} "
            f"Charge: {sample.charge_uah}, ThrCharge: {session.threshold_charge_uah} "
            f"AccEnergy(cur): {session.energy_from_current_wh:.3f} "
            f"AccEnergy(chg): {session.energy_from_charge_wh:.3f} "
            f"Hours: {hours:.2f} "
            f"AvgPower(cur): {average_power(session.energy_from_current_wh, hours):.3f} "
            f"AvgPower(chg): {average_power(session.energy_from_charge_wh, hours):.3f} "
            f"Bat: {sample.level_percent}%"
        )

    @staticmethod
    def _trace_record(
        session: MonitoringSession, sample: PowerSample, now: int, power_w: float
    ) -> Dict[str, Any]:
        return {
            "timestamp_ms": now,
            "state": session.state.value,
            "elapsed_hours": session.elapsed_hours(now),
            "voltage_mv": sample.voltage_mv,
            "current_ua": sample.current_ua,
            "charge_uah": sample.charge_uah,
            "temperature_decicelsius": sample.temperature_decicelsius,
            "level_percent": sample.level_percent,
            "power_w": power_w,
            "energy_from_current_wh": session.energy_from_current_wh,
            "energy_from_charge_wh": session.energy_from_charge_wh,
            "slow_iterations": session.slow_iteration_count,
            "nearly_done": session.nearly_done,
        }
