"""
Task Logger - console logging for Celery tasks

Colored, timestamped lines per component, mirrored to the standard
``logging`` tree, plus Celery signal hooks for task start / end / failure.
"""
import logging
import time
from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum
from contextlib import contextmanager
from functools import wraps

from celery import current_task
from celery.signals import task_prerun, task_postrun, task_success, task_failure, worker_ready


class Colors:
    """ANSI color codes"""
    RESET = "\033[0m"
    BOLD = "\033[1m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"
    STEP = "STEP"


LEVEL_COLORS = {
    LogLevel.DEBUG: Colors.GRAY,
    LogLevel.INFO: Colors.CYAN,
    LogLevel.WARNING: Colors.YELLOW,
    LogLevel.ERROR: Colors.RED,
    LogLevel.SUCCESS: Colors.GREEN,
    LogLevel.STEP: Colors.MAGENTA,
}

# python level for the mirrored record
PY_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.STEP: logging.INFO,
}

COMPONENT_EMOJI = {
    "celery": "🔄",
    "discovery": "🧭",
    "ingest": "📥",
    "backfill": "⏪",
    "toptracker": "🔐",
    "scoring": "📊",
    "enrichment": "🤖",
    "pipeline": "⚡",
}


def format_log(
    level: LogLevel,
    component: str,
    message: str,
    task_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> str:
    """One console line: time, level, component, short task id, message, context"""
    ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    color = LEVEL_COLORS.get(level, Colors.WHITE)
    emoji = COMPONENT_EMOJI.get(component.lower(), "📝")
    task_short = task_id[:8] if task_id else "--------"

    line = (
        f"{Colors.GRAY}[{ts}]{Colors.RESET} "
        f"{color}{Colors.BOLD}[{level.value:7}]{Colors.RESET} "
        f"{emoji} {Colors.BOLD}{component.upper():12}{Colors.RESET} "
        f"{Colors.GRAY}({task_short}){Colors.RESET} "
        f"{message}"
    )
    if context:
        line += f" {Colors.GRAY}» {' | '.join(f'{k}={v}' for k, v in context.items())}{Colors.RESET}"
    return line


def flatten_counters(result: Dict[str, Any], prefix: str = "") -> List[str]:
    """{'ingest': {'inserted': 3}} -> ['ingest.inserted: 3']"""
    lines = []
    for key, value in result.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            lines.extend(flatten_counters(value, f"{name}."))
        else:
            lines.append(f"{name}: {value}")
    return lines


class TaskLogger:
    """Per-task logger with numbered steps and timers"""

    def __init__(self, component: str, task_id: Optional[str] = None):
        self.component = component
        self.task_id = task_id or (current_task.request.id if current_task else None)
        self.start_time = time.time()
        self._step_count = 0
        self._logger = logging.getLogger(f"chartradar.{component}")

    def _log(self, level: LogLevel, message: str, context: Dict[str, Any] = None):
        # printed so it shows up in worker container logs
        print(format_log(level, self.component, message, self.task_id, context), flush=True)
        self._logger.log(PY_LEVELS[level], message, extra={"context": context})

    def debug(self, message: str, **context):
        self._log(LogLevel.DEBUG, message, context or None)

    def info(self, message: str, **context):
        self._log(LogLevel.INFO, message, context or None)

    def warning(self, message: str, **context):
        self._log(LogLevel.WARNING, message, context or None)

    def error(self, message: str, **context):
        self._log(LogLevel.ERROR, message, context or None)

    def success(self, message: str, **context):
        self._log(LogLevel.SUCCESS, message, context or None)

    def step(self, message: str, **context):
        self._step_count += 1
        self._log(LogLevel.STEP, f"[Step {self._step_count}] {message}", context or None)

    @contextmanager
    def timer(self, operation: str):
        start = time.time()
        self.debug(f"Start: {operation}")
        try:
            yield
        finally:
            self.info(f"End: {operation}", duration_ms=int((time.time() - start) * 1000))

    def elapsed_str(self) -> str:
        elapsed = time.time() - self.start_time
        if elapsed < 1:
            return f"{int(elapsed * 1000)}ms"
        if elapsed < 60:
            return f"{elapsed:.1f}s"
        return f"{int(elapsed // 60)}m {int(elapsed % 60)}s"


def get_task_logger(component: str) -> TaskLogger:
    task_id = current_task.request.id if current_task else None
    return TaskLogger(component, task_id)


# ================================================================
# CELERY SIGNALS
# ================================================================

@worker_ready.connect
def on_worker_ready(sender=None, **kwargs):
    from chartradar.workers.celery_app import celery_app

    queues = sorted({"celery"} | {r["queue"] for r in (celery_app.conf.task_routes or {}).values()})
    print(f"\n{Colors.GREEN}{Colors.BOLD} 🚀 CHART RADAR WORKER READY {Colors.RESET}", flush=True)
    print(f"{Colors.GRAY}Queues: {', '.join(queues)}{Colors.RESET}\n", flush=True)


@task_prerun.connect
def on_task_prerun(task_id, task, args, kwargs, **rest):
    print(format_log(LogLevel.INFO, "celery", f"▶️  {task.name.split('.')[-1]}", task_id, kwargs or None), flush=True)


@task_postrun.connect
def on_task_postrun(task_id, task, args, kwargs, retval, state, **rest):
    print(format_log(LogLevel.INFO, "celery", f"⏹️  {task.name.split('.')[-1]}", task_id, {"state": state}), flush=True)


@task_success.connect
def on_task_success(sender, result, **kwargs):
    print(format_log(LogLevel.SUCCESS, "celery", f"✅ {sender.name.split('.')[-1]} completed", sender.request.id), flush=True)
    if isinstance(result, dict):
        for line in flatten_counters(result):
            print(f"{Colors.GRAY}   └─ {line}{Colors.RESET}", flush=True)


@task_failure.connect
def on_task_failure(task_id, exception, traceback, einfo, **kwargs):
    print(format_log(LogLevel.ERROR, "celery", f"❌ Task failed: {exception}", task_id), flush=True)
    print(f"{Colors.RED}{einfo}{Colors.RESET}", flush=True)


# ================================================================
# DECORATOR
# ================================================================

def logged_task(component: str):
    """
    Inject a TaskLogger as the second argument of a bound task.

        @celery_app.task(bind=True)
        @logged_task("ingest")
        def ingest_task(self, log, source): ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            log = TaskLogger(component, self.request.id)
            try:
                return func(self, log, *args, **kwargs)
            except Exception as e:
                log.error(f"Task failed: {e}")
                raise
        return wrapper
    return decorator
