"""
Unit tests for the drainbench command-line entry point.
"""

import json
import sys
from unittest.mock import patch

import pytest

from drainbench.cli.main import _description_lines, describe_platform, main_cli
from drainbench.models.config import KeepAliveConfig, ResidencyConfig
from drainbench.system.keepalive import create_keepalive
from drainbench.system.power import PowerSampler
from drainbench.system.residency import ResidencyAnalyzer


@pytest.mark.unit
class TestPlatformDescription:
    """Test the startup platform description."""

    def test_describe_platform(self, monitor_config, power_supply_root, make_power_supply,
                               cpu_root, make_cpu):
        make_power_supply(power_supply_root, "BAT0", values={"charge_counter": 1, "technology": "Li-poly"})
        make_cpu(cpu_root, 0, time_in_state={1000: 1}, idle_states=[("WFI", 0)])

        description = describe_platform(
            PowerSampler(monitor_config),
            ResidencyAnalyzer(ResidencyConfig(cpu_root=cpu_root)),
            create_keepalive(KeepAliveConfig(enabled=False)),
        )

        assert description["power_source"]["technology"] == "Li-poly"
        assert description["processors"] == ["CPU0: cpufreq stats yes, cpuidle yes"]
        assert description["keepalive"] == "none"
        assert description["logical_cpus"] >= 1

    def test_description_lines(self):
        lines = _description_lines({"host": "dut", "power_source": {"supply": "BAT0"}, "processors": ["CPU0: x"]})

        assert lines == [
            "Platform description:",
            "  host: dut",
            "  power_source:",
            "    supply: BAT0",
            "  processors:",
            "    CPU0: x",
        ]


@pytest.mark.unit
class TestMainCli:
    """Test main_cli wiring with the scheduler stubbed out."""

    def test_missing_config_exits(self, temp_dir):
        with patch.object(sys, "argv", ["drainbench", "--config", str(temp_dir / "nope.toml")]):
            with pytest.raises(SystemExit) as exc_info:
                main_cli()

        assert exc_info.value.code == 1

    @patch("drainbench.cli.main.signal.signal")
    @patch("drainbench.cli.main._run_plotter")
    @patch("drainbench.cli.main.RunScheduler.run_all", return_value=[])
    def test_creates_experiment_directory(self, mock_run_all, mock_plotter, mock_signal, config_files):
        with patch.object(sys, "argv", ["drainbench", "--config", str(config_files["config"])]):
            main_cli()

        experiment_dirs = list((config_files["dir"] / "logs").glob("powertest_*"))
        assert len(experiment_dirs) == 1
        output_dir = experiment_dirs[0]
        assert "Platform description:" in (output_dir / "power_test_log.txt").read_text()
        assert (output_dir / "results.txt").exists()

        metadata = json.loads((output_dir / "experiment_metadata.json").read_text())
        assert len(metadata["runs"]) == 4
        assert metadata["config"]["runs_count"] == 4
        assert metadata["config"]["config_path"] == str(config_files["config"])

        matrix = mock_run_all.call_args[0][0]
        assert [w.name for w in matrix] == ["camera", "idle", "camera", "idle"]
        mock_plotter.assert_not_called()
        assert mock_signal.call_count == 2
