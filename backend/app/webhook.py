"""
Completion webhook delivery.

POSTs the completion payload to QUESTIONNAIRE_WEBHOOK_URL with bounded
attempts and exponential backoff. Delivery failures are logged and
reported as False; they never fail the request that completed the
questionnaire.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """
    Args:
        url: Target URL; when None, dispatch is a logged no-op
        attempts: Maximum delivery attempts
        initial_delay: Seconds to wait after the first failure, doubled each time
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        url: Optional[str],
        attempts: int = 3,
        initial_delay: float = 0.5,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.attempts = attempts
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    async def dispatch(self, payload: Dict[str, Any]) -> bool:
        """
        Deliver a completion payload.

        Args:
            payload: JSON-serializable completion payload

        Returns:
            True if any attempt got a 2xx response, False otherwise
        """
        if not self.url:
            logger.info(f"Webhook not configured, skipping delivery for sessionId={payload.get('sessionId')}")
            return False

        delay = self.initial_delay
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, self.attempts + 1):
                try:
                    response = await client.post(self.url, json=payload)
                    if response.is_success:
                        logger.info(
                            f"Webhook delivered sessionId={payload.get('sessionId')} "
                            f"attempt={attempt} status={response.status_code}"
                        )
                        return True
                    logger.warning(
                        f"Webhook attempt {attempt}/{self.attempts} got status={response.status_code}"
                    )
                except httpx.HTTPError as e:
                    logger.warning(f"Webhook attempt {attempt}/{self.attempts} failed: {type(e).__name__}: {e}")

                if attempt < self.attempts:
                    await asyncio.sleep(delay)
                    delay *= 2

        logger.error(
            f"METRIC webhook_failed sessionId={payload.get('sessionId')} attempts={self.attempts}"
        )
        return False
