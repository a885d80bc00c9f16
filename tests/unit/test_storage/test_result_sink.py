"""
Unit tests for the append-only experiment logs.
"""

import threading

import pytest

from drainbench.storage.result_sink import ResultSink


@pytest.fixture
def sink_paths(temp_dir):
    return temp_dir / "power_test_log.txt", temp_dir / "results.txt"


@pytest.mark.unit
class TestResultSink:
    """Test cases for ResultSink."""

    def test_lines_go_to_their_own_file(self, sink_paths):
        detail_file, summary_file = sink_paths
        with ResultSink(detail_file, summary_file) as sink:
            sink.detail("poll 1")
            sink.summary("run done")

        assert detail_file.read_text() == "poll 1\n"
        assert summary_file.read_text() == "run done\n"

    def test_lines_are_flushed_immediately(self, sink_paths):
        detail_file, summary_file = sink_paths
        sink = ResultSink(detail_file, summary_file)
        sink.detail("poll 1")

        assert detail_file.read_text() == "poll 1\n"
        sink.close()

    def test_appends_to_existing_logs(self, sink_paths):
        detail_file, summary_file = sink_paths
        summary_file.write_text("earlier run\n")

        with ResultSink(detail_file, summary_file) as sink:
            sink.summary("new run")

        assert summary_file.read_text() == "earlier run\nnew run\n"

    def test_detail_block_keeps_its_lines(self, sink_paths):
        detail_file, summary_file = sink_paths
        with ResultSink(detail_file, summary_file) as sink:
            sink.detail_block("CPU0:\n  Idle (WFI): 40.00%\n")

        assert detail_file.read_text() == "CPU0:\n  Idle (WFI): 40.00%\n"

    def test_writes_after_close_are_dropped(self, sink_paths):
        detail_file, summary_file = sink_paths
        sink = ResultSink(detail_file, summary_file)
        sink.close()
        sink.close()

        sink.detail("late")

        assert detail_file.read_text() == ""

    def test_unwritable_location_raises(self, temp_dir):
        with pytest.raises(OSError):
            ResultSink(temp_dir / "missing" / "detail.txt", temp_dir / "results.txt")

    def test_concurrent_writers_do_not_interleave(self, sink_paths):
        detail_file, summary_file = sink_paths
        sink = ResultSink(detail_file, summary_file)

        def writer(tag):
            for i in range(200):
                sink.detail(f"{tag}-{i}-" + "x" * 50)

        threads = [threading.Thread(target=writer, args=(t,)) for t in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        sink.close()

        lines = detail_file.read_text().splitlines()
        assert len(lines) == 800
        assert all(line.endswith("x" * 50) for line in lines)
