from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import schedule

from gmail_autoreply.services.poller import Poller
from gmail_autoreply.services.responder import Responder, ReplyOutcome
from gmail_autoreply.services.statistics_service import StatisticsService

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TickReport:
    threads_seen: int = 0
    sent: List[str] = field(default_factory=list)
    already_replied: List[str] = field(default_factory=list)
    no_recipient: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    poll_failed: bool = False

    def to_counts(self) -> Dict[str, int]:
        return {
            "threads_seen": self.threads_seen,
            "replies_sent": len(self.sent),
            "already_replied": len(self.already_replied),
            "skipped_no_recipient": len(self.no_recipient),
            "failures": len(self.failed),
            "poll_failures": int(self.poll_failed),
        }


class AutoReplyScheduler:
    """Owns the polling timer: one tick polls, then answers each thread in turn.

    Ticks never overlap, ``schedule`` runs jobs synchronously in the loop
    thread so a slow tick pushes the next one back instead of racing it.
    """

    def __init__(
        self,
        poller: Poller,
        responder: Responder,
        min_seconds: int = 45,
        max_seconds: int = 120,
        stats: Optional[StatisticsService] = None,
        poll_resolution: float = 1.0,
    ):
        self._poller = poller
        self._responder = responder
        self._min_seconds = min_seconds
        self._max_seconds = max_seconds
        self._stats = stats
        self._poll_resolution = poll_resolution
        self._scheduler = schedule.Scheduler()
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.jobs) and not self._stop_event.is_set()

    def tick(self) -> TickReport:
        report = TickReport()
        try:
            thread_ids = self._poller.poll()
        except Exception:  # noqa: BLE001 - any API or transport failure ends this tick only
            LOGGER.exception("Polling for unreplied threads failed, retrying on the next tick")
            report.poll_failed = True
            self._record(report)
            return report

        report.threads_seen = len(thread_ids)
        for thread_id in thread_ids:
            try:
                outcome = self._responder.process_thread(thread_id)
            except Exception:  # noqa: BLE001 - one broken thread must not block the others
                LOGGER.exception("Failed to process thread %s", thread_id)
                report.failed.append(thread_id)
                continue
            if outcome is ReplyOutcome.SENT:
                report.sent.append(thread_id)
            elif outcome is ReplyOutcome.ALREADY_REPLIED:
                report.already_replied.append(thread_id)
            else:
                report.no_recipient.append(thread_id)

        if report.threads_seen:
            LOGGER.info(
                "Tick done: %s sent, %s already replied, %s without recipient, %s failed",
                len(report.sent),
                len(report.already_replied),
                len(report.no_recipient),
                len(report.failed),
            )
        self._record(report)
        return report

    def _record(self, report: TickReport) -> None:
        if self._stats is None:
            return
        try:
            self._stats.record_tick(report.to_counts())
        except OSError as exc:
            LOGGER.warning("Could not update statistics: %s", exc)

    def start(self, run_immediately: bool = True) -> None:
        """Register the randomized-interval job without blocking."""

        self._stop_event.clear()
        self._scheduler.clear()
        self._scheduler.every(self._min_seconds).to(self._max_seconds).seconds.do(self.tick)
        LOGGER.info(
            "Auto-reply started, polling every %s-%s seconds", self._min_seconds, self._max_seconds
        )
        if run_immediately:
            self.tick()

    def run_forever(self, run_immediately: bool = True) -> None:
        try:
            self.start(run_immediately=run_immediately)
            while not self._stop_event.is_set():
                self._scheduler.run_pending()
                self._stop_event.wait(self._poll_resolution)
        except KeyboardInterrupt:
            LOGGER.info("Interrupted")
        finally:
            self.stop()

    def stop(self) -> None:
        was_running = bool(self._scheduler.jobs)
        self._stop_event.set()
        self._scheduler.clear()
        if was_running:
            LOGGER.info("Auto-reply stopped")
