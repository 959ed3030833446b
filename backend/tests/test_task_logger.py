"""
test_task_logger.py — console lines, mirrored log records and the task decorator
"""
import io
import unittest
from contextlib import redirect_stdout
from types import SimpleNamespace

from chartradar.workers.task_logger import (
    LogLevel,
    TaskLogger,
    flatten_counters,
    format_log,
    logged_task,
    on_task_success,
)


class TestFormatting(unittest.TestCase):

    def test_format_log_carries_task_and_context(self):
        line = format_log(LogLevel.STEP, "ingest", "Ingest: beatport", "0123456789abcdef", {"inserted": 3})
        self.assertIn("INGEST", line)
        self.assertIn("(01234567)", line)
        self.assertIn("Ingest: beatport", line)
        self.assertIn("inserted=3", line)
        self.assertIn("(--------)", format_log(LogLevel.INFO, "celery", "x"))

    def test_flatten_counters(self):
        counters = {"discovery": {"upserted": 2}, "ingest": {"inserted": 6, "errors": []}, "run_id": 1}
        self.assertEqual(
            flatten_counters(counters),
            ["discovery.upserted: 2", "ingest.inserted: 6", "ingest.errors: []", "run_id: 1"],
        )


class TestTaskLogger(unittest.TestCase):

    def test_steps_are_numbered_and_mirrored(self):
        log = TaskLogger("scoring", task_id="task-1")
        out = io.StringIO()
        with redirect_stdout(out), self.assertLogs("chartradar.scoring", level="INFO") as records:
            log.step("Normalize + score")
            log.step("Write snapshots")
            log.success("2 artists scored")
        self.assertIn("[Step 1] Normalize + score", out.getvalue())
        self.assertIn("[Step 2] Write snapshots", out.getvalue())
        self.assertEqual(len(records.records), 3)

    def test_timer_reports_duration(self):
        log = TaskLogger("ingest", task_id="task-1")
        out = io.StringIO()
        with redirect_stdout(out):
            with log.timer("ingest beatport"):
                pass
        self.assertIn("End: ingest beatport", out.getvalue())
        self.assertIn("duration_ms=", out.getvalue())
        self.assertRegex(log.elapsed_str(), r"^\d+ms$")

    def test_logged_task_injects_logger_and_reraises(self):
        @logged_task("discovery")
        def task(self, log, platform):
            self.seen = log
            if platform == "broken":
                raise RuntimeError("index unreachable")
            return platform

        bound = SimpleNamespace(request=SimpleNamespace(id="abcdef123456"))
        with redirect_stdout(io.StringIO()):
            self.assertEqual(task(bound, "beatport"), "beatport")
            self.assertEqual(bound.seen.task_id, "abcdef123456")
            self.assertEqual(bound.seen.component, "discovery")
            out = io.StringIO()
            with redirect_stdout(out), self.assertRaises(RuntimeError):
                task(bound, "broken")
        self.assertIn("Task failed: index unreachable", out.getvalue())

    def test_success_hook_prints_counters(self):
        sender = SimpleNamespace(name="chartradar.workers.tasks.run_pipeline_task", request=SimpleNamespace(id="t-1"))
        out = io.StringIO()
        with redirect_stdout(out):
            on_task_success(sender=sender, result={"ingest": {"inserted": 6}})
        self.assertIn("run_pipeline_task completed", out.getvalue())
        self.assertIn("ingest.inserted: 6", out.getvalue())


if __name__ == "__main__":
    unittest.main()
