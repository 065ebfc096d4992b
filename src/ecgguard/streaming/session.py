"""
Threaded stream session.

Decouples packet delivery from analysis:

- Producer side (``submit``): runs on whatever context the transport
  delivers packets on. Appends to the buffer and snapshots the window at
  that moment, so buffering never waits for scoring.
- Consumer side: one worker thread takes windows off a bounded FIFO
  queue and scores them one at a time.

When the worker falls behind and the queue fills up, the oldest pending
window is discarded; order is never changed. ``reset`` starts a new
session atomically: windows and decisions of the previous session are
dropped, never delivered under the new one.
"""

import logging
import queue
import threading
from collections import deque
from typing import Callable, Deque, Optional

from ..data.contracts import AnalysisWindow, Decision, RawBatch
from ..detection.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

_STOP = object()


class StreamSession:
    """
    Single-producer / single-consumer wrapper around a PipelineOrchestrator.

    Usage:
        with StreamSession(pipeline, on_decision=render) as session:
            for payload in notifications:
                session.submit_bytes(payload)
            session.flush()
    """

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        on_decision: Optional[Callable[[Decision], None]] = None,
        queue_maxsize: int = None,
        history: int = 100,
    ):
        self.orchestrator = orchestrator
        self.on_decision = on_decision
        maxsize = queue_maxsize or orchestrator.config.queue_maxsize

        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

        # Most recent decisions of the current session only
        self.decisions: Deque[Decision] = deque(maxlen=history)
        self.windows_dropped = 0
        self.stale_discarded = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> 'StreamSession':
        if self.is_running:
            return self
        self._worker = threading.Thread(
            target=self._run, name='ecgguard-pipeline', daemon=True
        )
        self._worker.start()
        logger.info(f"Stream session {self.orchestrator.session_id} worker started")
        return self

    def stop(self, timeout: float = None) -> None:
        """Process what is already queued, then stop the worker."""
        if self._worker is None:
            return
        self._queue.put(_STOP)
        self._worker.join(timeout)
        self._worker = None
        self.orchestrator.close()
        logger.info("Stream session worker stopped")

    def __enter__(self) -> 'StreamSession':
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def flush(self) -> None:
        """Block until every queued window has been processed."""
        self._queue.join()

    def reset(self) -> int:
        """
        Start a new stream session (e.g. after a reconnect).

        Returns:
            The new session id
        """
        with self._lock:
            self._drain_pending()
            session_id = self.orchestrator.reset()
            self.decisions.clear()
        return session_id

    # -------------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------------

    def submit(self, batch: RawBatch) -> bool:
        """
        Hand one packet to the pipeline.

        Returns:
            True if the packet produced a window for analysis
        """
        with self._lock:
            window = self.orchestrator.buffer_batch(batch)
            if window is None:
                return False
            self._enqueue(window)
        return True

    def submit_bytes(self, payload: bytes) -> bool:
        """Hand one raw notification payload to the pipeline."""
        return self.submit(RawBatch.from_bytes(payload))

    def _enqueue(self, window: AnalysisWindow) -> None:
        try:
            self._queue.put_nowait(window)
            return
        except queue.Full:
            pass
        # Worker is behind: discard the oldest pending window
        try:
            self._queue.get_nowait()
            self._queue.task_done()
            self.windows_dropped += 1
            logger.debug(f"Pipeline behind, dropped a pending window ({self.windows_dropped} total)")
        except queue.Empty:
            pass
        self._queue.put_nowait(window)

    def _drain_pending(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()
            if item is _STOP:
                # Keep a pending stop request
                self._queue.put_nowait(_STOP)
                return
            self.stale_discarded += 1

    # -------------------------------------------------------------------------
    # Consumer side
    # -------------------------------------------------------------------------

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._handle(item)
            except Exception:
                # One bad window must not stop the worker
                logger.exception(f"[seq {item.sequence}] Window processing failed")
            finally:
                self._queue.task_done()

    def _handle(self, window: AnalysisWindow) -> None:
        if window.session_id != self.orchestrator.session_id:
            self.stale_discarded += 1
            return

        decision = self.orchestrator.process_window(window)

        with self._lock:
            # A reset may have happened while this window was being scored
            if decision.session_id != self.orchestrator.session_id:
                self.stale_discarded += 1
                self.orchestrator.latest_window = None
                self.orchestrator.last_decision = None
                self.orchestrator.last_score = None
                return
            self.decisions.append(decision)

        if self.on_decision is not None:
            try:
                self.on_decision(decision)
            except Exception:
                logger.exception("Decision callback failed")
