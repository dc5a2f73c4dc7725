"""MQTT configuration and utilities."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .models import AdvisoryCard

logger = logging.getLogger(__name__)


@dataclass
class MQTTConfig:
    """MQTT broker configuration."""
    broker: str = "localhost"
    port: int = 1883
    client_id: str = "smfarm-advisor"
    keepalive: int = 60
    qos: int = 1
    topic_prefix: str = "smfarm/advisor"

    @classmethod
    def from_dict(cls, data: dict) -> "MQTTConfig":
        """Create config from dictionary."""
        return cls(
            broker=data.get("broker", "localhost"),
            port=data.get("port", 1883),
            client_id=data.get("client_id", "smfarm-advisor"),
            keepalive=data.get("keepalive", 60),
            qos=data.get("qos", 1),
            topic_prefix=data.get("topic_prefix", "smfarm/advisor"),
        )


def card_topic(prefix: str, device: Optional[str], card: AdvisoryCard) -> str:
    """Build the topic for one advisory card: {prefix}/{device|all}/{key}."""
    return f"{prefix}/{device or 'all'}/{card.parameter_key}"


def create_card_payload(
    card: AdvisoryCard,
    device: Optional[str],
    timestamp: Optional[float] = None,
) -> str:
    """Create a JSON payload for an advisory card.

    Args:
        card: The card to publish.
        device: Device the card was evaluated for ('' or None for all).
        timestamp: Unix timestamp (defaults to current time).

    Returns:
        JSON string payload.
    """
    payload: Dict[str, Any] = card.to_dict()
    payload["device"] = device or None
    payload["ts"] = timestamp or time.time()
    return json.dumps(payload, ensure_ascii=False)
