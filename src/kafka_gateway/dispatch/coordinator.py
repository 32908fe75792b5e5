"""
Dispatch coordinator: sends a sequence of message descriptors and aggregates
the outcome into a single report.

Two delivery modes are supported:

- ``fire_and_forget``: a message counts as sent once the producer accepted it
  (``send_async`` returned without raising). Broker acknowledgments are only
  logged by the producer.
- ``confirmed``: every delivery future is awaited, up to
  ``batch_timeout_seconds`` for the whole batch. Futures that fail or are
  still pending at the deadline count as failures.

A failing send never aborts the batch. Only an error in the loop itself
(for example the descriptor source raising) ends it early, in which case the
report carries ``status=Failed`` and the counts reached so far.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from core.errors.exceptions import DispatchError, UnexpectedDispatchError
from core.logging import format_dispatch_summary, log_exception, log_with_context
from kafka_gateway.dispatch.normalizer import MessageDescriptor

logger = logging.getLogger(__name__)


class DispatchStatus(str, Enum):
    COMPLETED = "Completed"
    FAILED = "Failed"


class DeliveryMode(str, Enum):
    FIRE_AND_FORGET = "fire_and_forget"
    CONFIRMED = "confirmed"


class MessageSender(Protocol):
    async def send_async(self, topic: str, key: str | None, value: str) -> asyncio.Future: ...


@dataclass
class DispatchReport:
    total_requested: int
    success_count: int
    failure_count: int
    status: DispatchStatus
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == DispatchStatus.COMPLETED

    def to_dict(self, include_counts: bool = True) -> dict[str, Any]:
        """Response body for the publish endpoints.

        A completed report always carries its counts. A failed report carries
        ``error`` and ``status``, plus the partial counts when
        ``include_counts`` is set.
        """
        if self.status == DispatchStatus.COMPLETED:
            return {
                "totalRequested": self.total_requested,
                "successCount": self.success_count,
                "failureCount": self.failure_count,
                "status": self.status.value,
            }

        body: dict[str, Any] = {"error": self.error}
        if include_counts:
            body["successCount"] = self.success_count
            body["failureCount"] = self.failure_count
        body["status"] = self.status.value
        return body


class DispatchCoordinator:
    """Sends descriptors through a ``MessageSender`` and counts the outcomes.

    Counters live on the stack of each ``dispatch`` call, so one coordinator
    can serve concurrent requests.
    """

    def __init__(
        self,
        sender: MessageSender,
        delivery_mode: DeliveryMode | str = DeliveryMode.FIRE_AND_FORGET,
        batch_timeout_seconds: float = 30.0,
    ):
        self.sender = sender
        self.delivery_mode = DeliveryMode(delivery_mode)
        self.batch_timeout_seconds = batch_timeout_seconds

    async def dispatch(
        self,
        descriptors: Iterable[MessageDescriptor],
        total: int | None = None,
    ) -> DispatchReport:
        start_time = time.perf_counter()
        attempted = 0
        success_count = 0
        failure_count = 0
        pending: list[asyncio.Future] = []

        try:
            for descriptor in descriptors:
                attempted += 1
                try:
                    future = await self.sender.send_async(
                        descriptor.topic, descriptor.key, descriptor.value
                    )
                except Exception as e:
                    failure_count += 1
                    log_exception(
                        logger,
                        DispatchError(descriptor.topic, descriptor.key, cause=e),
                        "Failed to send message",
                        level=logging.WARNING,
                        include_traceback=False,
                        topic=descriptor.topic,
                        key=descriptor.key,
                    )
                    continue

                if self.delivery_mode == DeliveryMode.CONFIRMED:
                    pending.append(future)
                else:
                    success_count += 1

            if pending:
                confirmed, unconfirmed = await self._await_confirmations(pending)
                success_count += confirmed
                failure_count += unconfirmed

        except Exception as e:
            log_exception(
                logger,
                UnexpectedDispatchError("Dispatch loop failed", cause=e),
                "Batch dispatch aborted",
                attempted=attempted,
                success_count=success_count,
                failure_count=failure_count,
            )
            return DispatchReport(
                total_requested=total if total is not None else attempted,
                success_count=success_count,
                failure_count=failure_count,
                status=DispatchStatus.FAILED,
                error=str(e),
            )

        total_requested = total if total is not None else attempted
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        log_with_context(
            logger,
            logging.INFO,
            f"Batch dispatch completed: "
            f"{format_dispatch_summary(total_requested, success_count, failure_count, duration_ms)}",
            total_requested=total_requested,
            success_count=success_count,
            failure_count=failure_count,
            delivery_mode=self.delivery_mode.value,
            duration_ms=duration_ms,
        )
        return DispatchReport(
            total_requested=total_requested,
            success_count=success_count,
            failure_count=failure_count,
            status=DispatchStatus.COMPLETED,
        )

    async def _await_confirmations(self, futures: list[asyncio.Future]) -> tuple[int, int]:
        """Wait for delivery futures. Returns (confirmed, unconfirmed)."""
        done, not_done = await asyncio.wait(futures, timeout=self.batch_timeout_seconds)

        confirmed = sum(1 for f in done if not f.cancelled() and f.exception() is None)
        unconfirmed = len(futures) - confirmed

        if not_done:
            logger.warning(
                "Delivery confirmations still pending at batch timeout",
                extra={
                    "pending_count": len(not_done),
                    "timeout_seconds": self.batch_timeout_seconds,
                },
            )
        return confirmed, unconfirmed


__all__ = [
    "DispatchStatus",
    "DeliveryMode",
    "MessageSender",
    "DispatchReport",
    "DispatchCoordinator",
]
