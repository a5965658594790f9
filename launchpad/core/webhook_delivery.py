"""Webhook delivery with exponential backoff retry logic.

- Exponential backoff between attempts (1s, 2s, ... doubling); three attempts by default
- Retry on 5xx errors and network failures, no retry on 4xx client errors
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import requests

logger = logging.getLogger(__name__)


@dataclass
class WebhookDelivery:
    """Configuration for webhook delivery with retry logic.

    Attributes:
        webhook_url: Target URL for webhook POST request
        payload: JSON payload to send
        headers: HTTP headers
        max_retries: Maximum number of attempts (default: 3)
        timeout: Request timeout in seconds (default: 10)
        event_type: Event type, for logging (e.g., "campaign.submitted")
    """

    webhook_url: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})
    max_retries: int = 3
    timeout: int = 10
    event_type: str | None = None


def deliver_webhook_with_retry(delivery: WebhookDelivery) -> tuple[bool, dict[str, Any]]:
    """Deliver webhook with exponential backoff retry.

    Retry strategy:
    - Attempt 1: Immediate
    - Attempt 2: After 1 second (2^0)
    - Attempt 3: After 2 seconds (2^1)

    Returns:
        Tuple of (success: bool, result: dict) where result contains:
        - delivery_id: Unique ID for this delivery
        - status: "delivered" or "failed"
        - attempts: Number of attempts made
        - response_code: HTTP status code (if received)
        - error: Error message (if failed)
    """
    delivery_id = f"whd_{uuid.uuid4().hex[:12]}"
    attempts = 0
    last_error = None
    response_code = None
    start_time = time.time()

    for attempt in range(delivery.max_retries):
        attempts += 1
        try:
            logger.info(
                f"[Webhook Delivery] Attempt {attempt + 1}/{delivery.max_retries} for {delivery_id} "
                f"({delivery.event_type}) to {delivery.webhook_url}"
            )
            response = requests.post(
                delivery.webhook_url, json=delivery.payload, headers=delivery.headers, timeout=delivery.timeout
            )
            response_code = response.status_code

            if 200 <= response_code < 300:
                logger.info(f"[Webhook Delivery] SUCCESS: {delivery_id} delivered after {attempts} attempts")
                return True, {
                    "delivery_id": delivery_id,
                    "status": "delivered",
                    "attempts": attempts,
                    "response_code": response_code,
                    "duration": time.time() - start_time,
                }

            if 400 <= response_code < 500:
                error_msg = f"Client error {response_code}: {response.text[:200]}"
                logger.warning(f"[Webhook Delivery] Client error, will NOT retry: {error_msg}")
                return False, {
                    "delivery_id": delivery_id,
                    "status": "failed",
                    "attempts": attempts,
                    "response_code": response_code,
                    "error": error_msg,
                }

            last_error = f"Server error {response_code}: {response.text[:200]}"
            logger.warning(f"[Webhook Delivery] Server error, will retry: {last_error}")

        except requests.exceptions.Timeout:
            last_error = f"Request timeout after {delivery.timeout}s"
            logger.warning(f"[Webhook Delivery] Timeout, will retry: {last_error}")

        except requests.exceptions.RequestException as e:
            last_error = f"Request exception: {str(e)[:200]}"
            logger.warning(f"[Webhook Delivery] Request failed, will retry: {last_error}")

        if attempt < delivery.max_retries - 1:
            backoff_time = 2**attempt  # 1s, 2s, 4s, ...
            logger.debug(f"[Webhook Delivery] Backing off {backoff_time}s before retry")
            time.sleep(backoff_time)

    logger.error(f"[Webhook Delivery] FAILED: {delivery_id} failed after {attempts} attempts")
    return False, {
        "delivery_id": delivery_id,
        "status": "failed",
        "attempts": attempts,
        "response_code": response_code,
        "error": last_error or "Max retries exceeded",
        "duration": time.time() - start_time,
    }
