"""Delivery sub-package — push gateways and outbound signals."""

from emotion_nudge.delivery.gateway import (
    DeliveryGateway,
    DeliveryRequest,
    Recipient,
    create_gateway,
)
from emotion_nudge.delivery.hooks import SignalHub

__all__ = ["DeliveryGateway", "DeliveryRequest", "Recipient", "SignalHub", "create_gateway"]
