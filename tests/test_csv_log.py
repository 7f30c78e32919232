# tests/test_csv_log.py
import csv
import logging
from decimal import Decimal

from hopwatch.buffers import BufferStore
from hopwatch.csv_log import CSV_HEADER, CsvLogger, open_next_log
from hopwatch.data_models import Endpoint, ProbeResult, Reply, Sample, TargetRegistry, TickDone, Timeout
from hopwatch.processor import Aggregator


def _rows(path):
    with open(path, newline="") as f:
        return list(csv.reader(f))


def test_first_run_creates_ping1(tmp_path):
    with CsvLogger(tmp_path) as logger:
        assert logger.path == tmp_path / "ping1.csv"
    assert _rows(tmp_path / "ping1.csv")[0] == CSV_HEADER


def test_next_free_number_is_used_and_old_files_untouched(tmp_path):
    (tmp_path / "ping1.csv").write_text("first run\n")
    (tmp_path / "ping2.csv").write_text("second run\n")
    with CsvLogger(tmp_path) as logger:
        logger.log("x", Sample.from_outcome(0, 1, Reply(3.0)))
    assert logger.path == tmp_path / "ping3.csv"
    assert (tmp_path / "ping1.csv").read_text() == "first run\n"
    assert (tmp_path / "ping2.csv").read_text() == "second run\n"


def test_gap_in_numbering_is_filled(tmp_path):
    (tmp_path / "ping2.csv").write_text("")
    path, f = open_next_log(tmp_path)
    f.close()
    assert path.name == "ping1.csv"


def test_timeout_rows_carry_the_literal_sentinel(tmp_path):
    logger = CsvLogger(tmp_path, write_summary=False).open()
    logger.log("example.test@203.0.113.10", Sample.from_outcome(0, 1, Reply(12.3456)))
    logger.log("example.test@203.0.113.10", Sample.from_outcome(1, 1, Timeout()))
    logger.close()
    rows = _rows(logger.path)
    assert rows[1] == ["0.0", "example.test@203.0.113.10", "12.346"]
    assert rows[2] == ["0.2", "example.test@203.0.113.10", "1000"]
    assert len(rows) == 3


def test_timestamps_step_by_exactly_one_interval(tmp_path, target):
    registry = TargetRegistry([target])
    logger = CsvLogger(tmp_path, write_summary=False).open()
    agg = Aggregator(registry, BufferStore(50), logger, interval_steps=3)  # 0.6 s
    for tick in range(12):
        agg.handle(ProbeResult(tick, Endpoint(target.name), target.address, Reply(10.0)))
        agg.handle(TickDone(tick))
    logger.close()
    stamps = [Decimal(r[0]) for r in _rows(logger.path)[1:]]
    assert len(stamps) == 12
    assert {b - a for a, b in zip(stamps, stamps[1:])} == {Decimal("0.6")}
    assert stamps[-1] == Decimal("6.6")


def test_rows_are_flushed_every_tick(tmp_path, target):
    registry = TargetRegistry([target])
    logger = CsvLogger(tmp_path).open()
    agg = Aggregator(registry, BufferStore(5), logger, interval_steps=1)
    agg.handle(ProbeResult(0, Endpoint(target.name), target.address, Reply(10.0)))
    agg.handle(TickDone(0))
    # still open, but the row is already on disk
    assert len(_rows(logger.path)) == 2
    logger.close()


def test_summary_rows_on_close(tmp_path):
    logger = CsvLogger(tmp_path).open()
    for tick, rtt in enumerate([10.0, 20.0, 30.0, 40.0]):
        logger.log("a", Sample.from_outcome(tick, 1, Reply(rtt)))
    logger.log("a", Sample.from_outcome(4, 1, Timeout()))
    logger.log("silent", Sample.from_outcome(4, 1, Timeout()))
    logger.close()
    rows = _rows(logger.path)
    summary = {r[0]: r for r in rows if r[0] in ("average", "p95", "p99")}
    assert summary["average"] == ["average", "a", "25.000"]
    assert summary["p95"][2] == "40.000"
    assert summary["p99"][2] == "40.000"
    assert not any(r[1] == "silent" and r[0] == "average" for r in rows)


def test_unwritable_location_disables_logging_with_one_warning(tmp_path, caplog):
    not_a_dir = tmp_path / "file"
    not_a_dir.write_text("")
    caplog.set_level(logging.WARNING, logger="hopwatch.csv_log")
    logger = CsvLogger(not_a_dir).open()
    for tick in range(5):
        logger.log("a", Sample.from_outcome(tick, 1, Reply(1.0)))
        logger.flush()
    logger.close()
    assert not logger.active
    assert logger.path is None
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1


def test_disabled_logger_writes_nothing(tmp_path):
    logger = CsvLogger(tmp_path, enabled=False).open()
    logger.log("a", Sample.from_outcome(0, 1, Reply(1.0)))
    logger.close()
    assert list(tmp_path.iterdir()) == []
