"""
Unit tests for ResidencyAnalyzer snapshots and diffs.
"""

import pytest

from drainbench.models.config import ResidencyConfig
from drainbench.models.samples import CoreResidency, ResidencySnapshot
from drainbench.system.residency import ResidencyAnalyzer


def snapshot(per_processor, taken_at_ns):
    return ResidencySnapshot(per_processor=per_processor, taken_at_ns=taken_at_ns)


def core(freq=None, idle=None):
    return CoreResidency(frequency_residency_us=freq or {}, idle_state_residency_us=idle or {})


@pytest.mark.unit
class TestTakeSnapshot:
    """Test reading counters from a fake sysfs tree."""

    def test_reads_frequency_and_idle_counters(self, cpu_root, make_cpu):
        make_cpu(cpu_root, 0, time_in_state={300000: 10, 1000000: 25}, idle_states=[("WFI", 1234)])
        make_cpu(cpu_root, 1, time_in_state={300000: 5})
        analyzer = ResidencyAnalyzer(ResidencyConfig(cpu_root=cpu_root), clock_ns=lambda: 42)

        result = analyzer.take_snapshot()

        assert result.taken_at_ns == 42
        assert result.per_processor[0].frequency_residency_us == {300000: 100_000, 1000000: 250_000}
        assert result.per_processor[0].idle_state_residency_us == {"WFI": 1234}
        assert result.per_processor[1].idle_state_residency_us == {}

    def test_ignores_non_processor_entries(self, cpu_root, make_cpu):
        make_cpu(cpu_root, 2, time_in_state={100: 1})
        (cpu_root / "cpufreq").mkdir()
        (cpu_root / "cpuidle").mkdir()
        (cpu_root / "online").write_text("0-2\n")

        result = ResidencyAnalyzer(ResidencyConfig(cpu_root=cpu_root)).take_snapshot()

        assert list(result.per_processor) == [2]

    def test_skips_malformed_lines(self, cpu_root, make_cpu):
        cpu_dir = make_cpu(cpu_root, 0)
        stats_dir = cpu_dir / "cpufreq" / "stats"
        stats_dir.mkdir(parents=True)
        (stats_dir / "time_in_state").write_text("300000 10\ngarbage\n400000 x\n500000 2\n")

        result = ResidencyAnalyzer(ResidencyConfig(cpu_root=cpu_root, freq_time_unit_us=1)).take_snapshot()

        assert result.per_processor[0].frequency_residency_us == {300000: 10, 500000: 2}

    def test_missing_root_gives_empty_snapshot(self, temp_dir):
        result = ResidencyAnalyzer(ResidencyConfig(cpu_root=temp_dir / "missing")).take_snapshot()
        assert result.per_processor == {}

    def test_idle_states_keep_kernel_order(self, cpu_root, make_cpu):
        make_cpu(cpu_root, 0, idle_states=[(f"S{i}", i) for i in range(12)])

        result = ResidencyAnalyzer(ResidencyConfig(cpu_root=cpu_root)).take_snapshot()

        assert list(result.per_processor[0].idle_state_residency_us) == [f"S{i}" for i in range(12)]


@pytest.mark.unit
class TestDiff:
    """Test the pure snapshot difference."""

    def test_percentages_over_elapsed_interval(self):
        start = snapshot({0: core({1000: 100_000}, {"WFI": 0})}, taken_at_ns=0)
        end = snapshot({0: core({1000: 250_000}, {"WFI": 400_000})}, taken_at_ns=1_000_000_000)

        report = ResidencyAnalyzer.diff(start, end)

        assert report.elapsed_us == pytest.approx(1_000_000)
        assert report.per_processor[0].frequency_percent[1000] == pytest.approx(15.0)
        assert report.per_processor[0].idle_percent["WFI"] == pytest.approx(40.0)

    def test_render_format(self):
        start = snapshot({0: core({1000: 100_000}, {"WFI": 0})}, taken_at_ns=0)
        end = snapshot({0: core({1000: 250_000}, {"WFI": 400_000})}, taken_at_ns=1_000_000_000)

        rendered = ResidencyAnalyzer.diff(start, end).render()

        assert rendered == "CPU0:\n  Active @ 1000kHz: 15.00%\n  Idle (WFI): 40.00%\n"

    def test_processor_missing_from_end_is_skipped(self):
        start = snapshot({0: core({1000: 0}), 1: core({1000: 0})}, taken_at_ns=0)
        end = snapshot({0: core({1000: 10})}, taken_at_ns=1_000_000)

        report = ResidencyAnalyzer.diff(start, end)

        assert list(report.per_processor) == [0]

    def test_key_missing_from_end_counts_as_zero_and_is_dropped(self):
        start = snapshot({0: core({1000: 50, 2000: 0})}, taken_at_ns=0)
        end = snapshot({0: core({2000: 100, 3000: 999})}, taken_at_ns=1_000_000)

        report = ResidencyAnalyzer.diff(start, end)

        # 1000 kHz: 0 - 50 < 0 dropped; 3000 kHz only in end, ignored.
        assert report.per_processor[0].frequency_percent == {2000: pytest.approx(10.0)}

    def test_zero_delta_is_kept(self):
        start = snapshot({0: core(idle={"WFI": 500})}, taken_at_ns=0)
        end = snapshot({0: core(idle={"WFI": 500})}, taken_at_ns=1_000_000)

        assert ResidencyAnalyzer.diff(start, end).per_processor[0].idle_percent == {"WFI": 0.0}

    def test_non_positive_interval_gives_empty_report(self):
        start = snapshot({0: core({1000: 0})}, taken_at_ns=5_000)
        end = snapshot({0: core({1000: 10})}, taken_at_ns=5_000)

        report = ResidencyAnalyzer.diff(start, end)

        assert report.per_processor == {}
        assert report.render() == ""

    def test_to_rows(self):
        start = snapshot({0: core({1000: 0}, {"WFI": 0})}, taken_at_ns=0)
        end = snapshot({0: core({1000: 500}, {"WFI": 250})}, taken_at_ns=1_000_000)

        rows = ResidencyAnalyzer.diff(start, end).to_rows("run-a")

        assert rows == [
            {"label": "run-a", "cpu": 0, "kind": "frequency", "state": "1000", "percent": 50.0},
            {"label": "run-a", "cpu": 0, "kind": "idle", "state": "WFI", "percent": 25.0},
        ]
