"""Delivery gateways — push backend adapters.

Architecture
~~~~~~~~~~~~
* **DeliveryGateway** — abstract base: ``async send(request) -> bool``.
* **LogGateway / OneSignalGateway** — concrete backends.
* **create_gateway()** — factory that picks a backend from settings.

A gateway performs exactly one network call per request and reports the
outcome as a boolean.  Ordinary failures (non-2xx, transport errors,
backend-reported errors) are logged and return ``False``; they never
raise.  Retries are not attempted here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import BaseModel, Field

from emotion_nudge.campaigns.models import RichMedia
from emotion_nudge.models import NotificationPriority

if TYPE_CHECKING:
    from emotion_nudge.config import Settings

logger = structlog.get_logger(__name__)

# OneSignal priority scale (1..10)
_PRIORITY_VALUE: dict[NotificationPriority, int] = {
    NotificationPriority.LOW: 3,
    NotificationPriority.MEDIUM: 5,
    NotificationPriority.HIGH: 8,
    NotificationPriority.URGENT: 10,
}


# ── Request / recipient ───────────────────────────────────────


class Recipient(BaseModel):
    subscriber_id: str = ""
    opted_in: bool = True
    permission_granted: bool = True

    @property
    def reachable(self) -> bool:
        return bool(self.subscriber_id) and self.opted_in and self.permission_granted


class DeliveryRequest(BaseModel):
    """Everything a backend needs for a single push."""

    target_id: str
    title: str
    body: str
    buttons: list[dict[str, str]] = Field(default_factory=list)
    custom_data: dict[str, str] = Field(default_factory=dict)
    tag_filters: list[dict[str, Any]] = Field(default_factory=list)
    send_after: datetime | None = None
    priority: NotificationPriority = NotificationPriority.MEDIUM
    rich_media: RichMedia | None = None


# ── Abstract gateway ──────────────────────────────────────────


class DeliveryGateway(ABC):
    """Contract for push backends."""

    name: str = "base"

    @abstractmethod
    async def send(self, request: DeliveryRequest) -> bool:
        """Deliver *request*.  Return ``True`` on success."""

    async def close(self) -> None:  # noqa: B027
        """Release transport resources (default: nothing to release)."""


# ── Concrete gateways ─────────────────────────────────────────


class LogGateway(DeliveryGateway):
    """Write pushes to the structured log (default when no backend is set)."""

    name = "log"

    async def send(self, request: DeliveryRequest) -> bool:
        logger.info(
            "delivery.log",
            target=request.target_id,
            title=request.title,
            buttons=[b["id"] for b in request.buttons],
            send_after=request.send_after.isoformat() if request.send_after else None,
            priority=request.priority.value,
        )
        return True


class OneSignalGateway(DeliveryGateway):
    """POST notifications to the OneSignal REST API."""

    name = "onesignal"

    def __init__(
        self,
        app_id: str,
        api_key: str,
        *,
        api_url: str = "https://onesignal.com/api/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._app_id = app_id
        self._url = f"{api_url.rstrip('/')}/notifications"
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Basic {api_key}",
                "Content-Type": "application/json",
            },
        )

    def build_payload(self, request: DeliveryRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "app_id": self._app_id,
            "headings": {"en": request.title},
            "contents": {"en": request.body},
            "data": request.custom_data,
            "buttons": [{"id": b["id"], "text": b["text"]} for b in request.buttons],
            "include_player_ids": [request.target_id],
            "filters": request.tag_filters,
            "priority": _PRIORITY_VALUE[request.priority],
        }
        if request.send_after is not None:
            payload["send_after"] = request.send_after.isoformat()
        media = request.rich_media
        if media is not None:
            if media.image_url:
                payload["big_picture"] = media.image_url
                payload["large_icon"] = media.image_url
            if media.sound_name:
                payload["ios_sound"] = media.sound_name
        return payload

    async def send(self, request: DeliveryRequest) -> bool:
        try:
            resp = await self._client.post(self._url, json=self.build_payload(request))
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("delivery.onesignal_failed", target=request.target_id, error=str(exc))
            return False

        if isinstance(body, dict) and body.get("errors"):
            logger.error(
                "delivery.onesignal_rejected",
                target=request.target_id,
                errors=body["errors"],
            )
            return False

        logger.info(
            "delivery.onesignal_sent",
            target=request.target_id,
            notification_id=body.get("id") if isinstance(body, dict) else None,
        )
        return True

    async def close(self) -> None:
        await self._client.aclose()


# ── Factory ───────────────────────────────────────────────────


def create_gateway(settings: Settings) -> DeliveryGateway:
    """Build the delivery gateway selected by application settings.

    * **OneSignalGateway** when ``settings.onesignal_app_id`` is non-empty.
    * **LogGateway** otherwise.
    """
    if settings.onesignal_app_id:
        return OneSignalGateway(
            settings.onesignal_app_id,
            settings.onesignal_rest_api_key,
            api_url=settings.onesignal_api_url,
            timeout=settings.delivery_timeout,
        )
    return LogGateway()
