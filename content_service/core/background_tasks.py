# content_service/core/background_tasks.py
"""
Background tasks for periodic maintenance.

Currently a single task: the scheduled-publish sweep, either run in-process
(``local``) or triggered through the service's own HTTP endpoint (``http``)
so that only one replica needs to own the timer.
"""
import asyncio
import logging
from typing import List, Optional

import httpx

from content_service.core.config import Settings
from content_service.services.scheduler_service import ScheduledPublisher

logger = logging.getLogger(__name__)

SCHEDULER_MODES = ("local", "http")
TRIGGER_TOKEN_HEADER = "X-Scheduler-Token"


class BackgroundTaskManager:
    """Manages periodic background tasks."""

    def __init__(
        self,
        publisher: Optional[ScheduledPublisher] = None,
        enabled: bool = True,
        mode: str = "local",
        interval_seconds: float = 60.0,
        publish_url: Optional[str] = None,
        http_timeout: float = 10.0,
        trigger_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if mode not in SCHEDULER_MODES:
            raise ValueError(f"Unknown scheduler mode '{mode}', expected one of {SCHEDULER_MODES}")
        if mode == "local" and enabled and publisher is None:
            raise ValueError("Local scheduler mode needs a ScheduledPublisher")
        if mode == "http" and enabled and not publish_url:
            raise ValueError("HTTP scheduler mode needs a publish URL")

        self.publisher = publisher
        self.enabled = enabled
        self.mode = mode
        self.interval_seconds = interval_seconds
        self.publish_url = publish_url
        self.http_timeout = http_timeout
        self.trigger_token = trigger_token
        self._transport = transport

        self.tasks: List[asyncio.Task] = []
        self._running = False

    @classmethod
    def from_settings(cls, settings: Settings, publisher: Optional[ScheduledPublisher] = None) -> "BackgroundTaskManager":
        return cls(
            publisher=publisher,
            enabled=settings.SCHEDULER_ENABLED,
            mode=settings.SCHEDULER_MODE,
            interval_seconds=settings.SCHEDULER_INTERVAL_SECONDS,
            publish_url=settings.SCHEDULER_PUBLISH_URL,
            http_timeout=settings.SCHEDULER_HTTP_TIMEOUT,
            trigger_token=settings.SCHEDULER_TRIGGER_TOKEN,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start all background tasks."""
        if not self.enabled:
            logger.info("Scheduled publishing disabled, no background tasks started")
            return

        if self._running:
            logger.warning("Background tasks already running")
            return

        self._running = True
        logger.info("Starting background tasks...")

        self.tasks.append(asyncio.create_task(self.scheduled_publish_task()))

        logger.info(
            f"Started {len(self.tasks)} background tasks "
            f"(scheduler mode={self.mode}, interval={self.interval_seconds}s)"
        )

    async def stop(self):
        """Stop all background tasks."""
        if not self._running:
            return

        logger.info("Stopping background tasks...")
        self._running = False

        for task in self.tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.tasks.clear()
        logger.info("Background tasks stopped")

    async def run_once(self) -> Optional[int]:
        """
        One sweep tick.

        Returns:
            Number of posts published, or None if the tick failed. Failures
            are logged and left for the next tick.
        """
        try:
            if self.mode == "http":
                return await self._trigger_over_http()
            published = await asyncio.to_thread(self.publisher.publish_due_posts)
            return len(published)
        except Exception as e:
            logger.error(f"Error in scheduled publish tick: {e}")
            return None

    async def _trigger_over_http(self) -> int:
        headers = {"Content-Type": "application/json"}
        if self.trigger_token:
            headers[TRIGGER_TOKEN_HEADER] = self.trigger_token

        async with httpx.AsyncClient(timeout=self.http_timeout, transport=self._transport) as client:
            response = await client.post(self.publish_url, headers=headers)
            response.raise_for_status()
            payload = response.json()

        published = payload.get("published_posts", []) if isinstance(payload, dict) else []
        if published:
            logger.info(f"Published {len(published)} scheduled posts via {self.publish_url}")
        return len(published)

    async def scheduled_publish_task(self):
        """
        Periodically publish scheduled posts that are due.
        Runs every ``interval_seconds``.
        """
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                count = await self.run_once()
                if count:
                    logger.info(f"Scheduled publish tick published {count} posts")

            except asyncio.CancelledError:
                logger.info("Scheduled publish task cancelled")
                break
