"""
Fire-and-forget delivery of rendered messages to Slack incoming webhooks.

Delivery is at-most-once and best-effort: every accepted request spawns one
detached task, nobody awaits it on the request path, and a failed call is
only logged. There are no retries.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Set

from slack_sdk.webhook import WebhookClient, WebhookResponse

from app.relay.errors import DispatchFailure

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json; charset=UTF-8"


class SlackDispatcher:

    def __init__(self, timeout: float = 10.0, max_workers: int = 4):
        self.timeout = timeout
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="slack-dispatch")
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _post(self, url: str, body: Dict[str, Any]) -> WebhookResponse:
        client = WebhookClient(url=url, timeout=self.timeout, retry_handlers=[])
        return client.send_dict(body, headers={"Content-Type": CONTENT_TYPE})

    async def send(self, url: str, body: Dict[str, Any]) -> None:
        """Post one message, raising DispatchFailure on any error or non-2xx reply."""
        try:
            # Run the synchronous call in a thread pool to avoid blocking
            response = await asyncio.get_running_loop().run_in_executor(
                self.executor,
                lambda: self._post(url, body)
            )
        except Exception as e:
            raise DispatchFailure(f"Error sending to Slack: {e}") from e

        if response.status_code // 100 != 2:
            raise DispatchFailure(
                f"Received non-2XX status code {response.status_code}: {response.body}",
                status_code=response.status_code,
            )

    async def _deliver(self, url: str, body: Dict[str, Any], request_id: Optional[str]) -> None:
        try:
            await self.send(url, body)
        except DispatchFailure as e:
            logger.error(f"Dispatch failed (request {request_id}): {e}")
        except Exception as e:
            logger.error(f"Unexpected dispatch error (request {request_id}): {e}", exc_info=True)
        else:
            logger.info(f"Relayed message to Slack (request {request_id})")

    def dispatch(self, url: str, body: Dict[str, Any], request_id: Optional[str] = None) -> asyncio.Task:
        """Spawn the delivery as an independent task and return without waiting."""
        task = asyncio.get_running_loop().create_task(self._deliver(url, body, request_id))
        # Only keep a reference so the task is not garbage collected mid-flight
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self, timeout: float) -> None:
        """Give in-flight deliveries a grace period, then abandon the rest."""
        if self._pending:
            logger.info(f"Waiting up to {timeout}s for {len(self._pending)} pending dispatch(es)")
            _, pending = await asyncio.wait(set(self._pending), timeout=timeout)
            if pending:
                logger.warning(f"Abandoning {len(pending)} undelivered message(s) on shutdown")
        self.executor.shutdown(wait=False)
