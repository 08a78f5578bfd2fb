"""
Cancellation handling for a batch run.

A run moves through RUNNING -> CANCEL_REQUESTED -> CLEANING -> REPORTED once an
interrupt arrives. The signal handler only flips the token and asks the active
ffmpeg process to terminate. It writes nothing: a handler runs between
bytecodes of the main flow, which may itself be in the middle of writing to
stdout. What the handler saw is kept on the token and logged by the main flow
when it observes the request, together with cleanup and reporting.
"""
import signal
import subprocess
import threading
from enum import Enum
from typing import Any, Dict, Optional

import hevc as hevc_module
from hevc.utils import LogLevel, logger


class RunState(Enum):
    """Lifecycle of a batch run."""
    RUNNING = 0
    CANCEL_REQUESTED = 1
    CLEANING = 2
    REPORTED = 3


class CancellationToken:
    """Shared flag checked by the orchestrator and the transcoder."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._process: Optional[subprocess.Popen] = None
        self.state = RunState.RUNNING
        self.details: Dict[str, Any] = {}
        self.repeats = 0

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, **details) -> bool:
        """
        Request cancellation and terminate the active subprocess, if any.

        ``details`` (signal name and the like) are kept for the main flow to
        log. Returns False when cancellation had already been requested.
        """
        with self._lock:
            if self._event.is_set():
                self.repeats += 1
                return False
            self.details.update(details)
            self._event.set()
            self.state = RunState.CANCEL_REQUESTED
            self.terminate_active()
            return True

    def attach(self, process: subprocess.Popen) -> None:
        """Register the running subprocess so cancellation can stop it."""
        with self._lock:
            self._process = process
            if self._event.is_set():
                self.terminate_active()

    def detach(self) -> None:
        with self._lock:
            self._process = None

    def terminate_active(self) -> None:
        """Ask the active subprocess to exit. Best effort; no process is fine."""
        with self._lock:
            process = self._process
        if process is None or process.poll() is not None:
            return
        try:
            process.terminate()
        except OSError as e:
            self.details["terminate_error"] = f"pid {process.pid}: {e}"

    def advance(self, state: RunState) -> None:
        """Move to a later state; the lifecycle never goes backwards."""
        with self._lock:
            if state.value < self.state.value:
                raise ValueError(f"cannot move from {self.state.name} to {state.name}")
            self.state = state

    def log_request(self) -> None:
        """Log what the interrupt handler recorded. Main flow only."""
        logger.log("cancel.requested", LogLevel.INFO,
                   msg="Received interrupt signal, stopping processes",
                   ignored_signals=self.repeats,
                   **self.details)
        if "terminate_error" in self.details:
            logger.log("cancel.terminate_failed", LogLevel.WARN, error=self.details["terminate_error"])


class InterruptHandler:
    """Routes SIGINT/SIGTERM to a CancellationToken."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, token: CancellationToken):
        self.token = token
        self._previous = {}

    def install(self) -> None:
        for signum in self.SIGNALS:
            self._previous[signum] = signal.signal(signum, self._signal_handler)

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _signal_handler(self, signum, frame):
        """Request cancellation. Must not write to any stream."""
        try:
            sig_name = signal.Signals(signum).name
        except ValueError:
            sig_name = str(signum)

        details = {"signal": sig_name}
        # In debug mode, note where the main flow was interrupted
        if getattr(hevc_module, "DEBUG", False) and frame is not None:
            mod = frame.f_globals.get("__name__", "?")
            func = getattr(frame.f_code, "co_name", "?")
            details["location"] = f"{mod}.{func}:{frame.f_lineno}"

        self.token.cancel(**details)

    def __enter__(self):
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.restore()
        return False
