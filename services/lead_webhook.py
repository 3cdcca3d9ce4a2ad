# services/lead_webhook.py
from __future__ import annotations

import logging
from typing import Optional

import httpx

from models import LeadNotification

logger = logging.getLogger("martivi-chat.webhook")

HEADERS = {
    "Content-Type": "application/json",
}

async def notify_lead(url: str,
                      notification: LeadNotification,
                      timeout: float = 10.0,
                      client: Optional[httpx.AsyncClient] = None) -> bool:
    """
    Best-effort delivery of a lead to the configured webhook.
    One POST, no retry. Every failure is logged and swallowed;
    the return value only says whether the receiver answered 2xx.
    """
    payload = notification.to_wire()
    try:
        if client is not None:
            r = await client.post(url, headers=HEADERS, json=payload, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as c:
                r = await c.post(url, headers=HEADERS, json=payload)
        r.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("[WEBHOOK][ERROR] receiver answered %s", e.response.status_code)
        return False
    except Exception as e:
        logger.error("[WEBHOOK][ERROR] %s", e)
        return False

    logger.info("[WEBHOOK] lead delivered -> %s", r.status_code)
    return True
