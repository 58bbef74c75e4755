"""Tests for logging configuration and utilities."""

import json
import logging
import os
import sys
import time

from crontask.logging import (
    ComponentFormatter,
    JSONLHandler,
    configure_logging,
    prune_old_logs,
    record_extra,
)


def make_record(name="crontask.dispatcher", msg="process_starting", **extra):
    record = logging.LogRecord(name, logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRecordExtra:
    """Tests for record_extra()."""

    def test_returns_only_extra_fields(self):
        record = make_record(**{"process.command": "echo hi"})
        assert record_extra(record) == {"process.command": "echo hi"}

    def test_plain_record_has_no_extra(self):
        assert record_extra(make_record()) == {}


class TestComponentFormatter:
    """Tests for ComponentFormatter."""

    def test_shortens_crontask_logger_names(self):
        formatter = ComponentFormatter("%(component)s | %(message)s")
        assert formatter.format(make_record()) == "dispatcher | process_starting"

    def test_keeps_foreign_logger_names(self):
        formatter = ComponentFormatter("%(component)s | %(message)s")
        record = make_record(name="myapp.jobs", msg="hello")
        assert formatter.format(record) == "myapp | hello"

    def test_appends_extra_fields(self):
        formatter = ComponentFormatter("%(message)s")
        record = make_record(**{"process.command": "echo hi", "process.background": True})
        assert formatter.format(record) == (
            "process_starting process.command=echo hi process.background=True"
        )


class TestJSONLHandler:
    """Tests for JSONLHandler."""

    def test_writes_one_json_object_per_record(self, tmp_path):
        handler = JSONLHandler(tmp_path / "logs")
        try:
            handler.emit(make_record(**{"process.exit_code": 0}))
            handler.emit(make_record(msg="job_started"))
        finally:
            handler.close()

        files = list((tmp_path / "logs").glob("*.jsonl"))
        assert len(files) == 1
        lines = [json.loads(line) for line in files[0].read_text().splitlines()]
        assert [line["message"] for line in lines] == ["process_starting", "job_started"]
        assert lines[0]["extra"] == {"process.exit_code": 0}
        assert lines[0]["logger"] == "crontask.dispatcher"
        assert "extra" not in lines[1]

    def test_records_exceptions(self, tmp_path):
        handler = JSONLHandler(tmp_path)
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        try:
            handler.emit(record)
        finally:
            handler.close()
        entry = json.loads(next(tmp_path.glob("*.jsonl")).read_text())
        assert "ValueError: bad" in entry["exception"]


class TestPruneOldLogs:
    """Tests for prune_old_logs()."""

    def test_deletes_only_old_jsonl_files(self, tmp_path):
        old = tmp_path / "2020-01-01.jsonl"
        new = tmp_path / "today.jsonl"
        other = tmp_path / "notes.txt"
        for path in (old, new, other):
            path.write_text("{}\n")
        stale = time.time() - 30 * 86400
        os.utime(old, (stale, stale))
        os.utime(other, (stale, stale))

        assert prune_old_logs(tmp_path, retention_days=7) == 1
        assert not old.exists()
        assert new.exists()
        assert other.exists()

    def test_missing_directory(self, tmp_path):
        assert prune_old_logs(tmp_path / "missing") == 0


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_sets_root_level(self):
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(level="LOUD")
        assert logging.getLogger().level == logging.INFO

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("CRONTASK_LOG_LEVEL", "WARNING")
        configure_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_file_logging(self, tmp_path):
        configure_logging(level="INFO", log_to_file=True, logs_dir=tmp_path)
        logging.getLogger("crontask.scheduler").info(
            "scheduler_run_started", extra={"schedule.registrations": 2}
        )
        root_handlers = logging.getLogger().handlers
        assert sum(isinstance(h, JSONLHandler) for h in root_handlers) == 1
        entry = json.loads(next(tmp_path.glob("*.jsonl")).read_text())
        assert entry["message"] == "scheduler_run_started"
        assert entry["extra"] == {"schedule.registrations": 2}

    def test_rich_console(self):
        from rich.logging import RichHandler

        configure_logging(use_rich=True)
        assert any(isinstance(h, RichHandler) for h in logging.getLogger().handlers)
