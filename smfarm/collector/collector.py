from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import logging

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from smfarm.advisor.engine import AdvisoryEngine
from smfarm.advisor.stats import MetricSummary, summarize
from smfarm.shared.models import AdvisoryCard, ReadingRecord
from smfarm.shared.mqtt import MQTTConfig, card_topic, create_card_payload
from smfarm.shared.store import ReadingStore, latest_of
from .builder import ReadingBuilder
from .config.settings import ViewFilters
from .readers.base import RowQuery, RowSource

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Everything a renderer needs after one refresh cycle."""
    latest: Optional[ReadingRecord]
    rows: List[ReadingRecord]
    chart_rows: List[ReadingRecord]
    summary: Dict[str, MetricSummary]
    devices: List[str]
    advisor_device: str
    cards: List[AdvisoryCard]
    updated_at: Optional[datetime] = None
    fetch_ok: bool = True
    filters: ViewFilters = field(default_factory=ViewFilters)


ResultCallback = Callable[[RefreshResult], Union[None, Awaitable[None]]]


class RefreshService:
    """Runs the refresh cycle: fetch, build, replace store, evaluate.

    The fetch is the only await point. Store replacement and evaluation run
    without yielding, and refreshes are serialized by a lock, so a refresh
    requested while another is in flight runs after it.
    """

    def __init__(
        self,
        source: RowSource,
        builder: Optional[ReadingBuilder] = None,
        store: Optional[ReadingStore] = None,
        engine: Optional[AdvisoryEngine] = None,
        mqtt_config: Optional[MQTTConfig] = None,
    ):
        self.source = source
        self.builder = builder or ReadingBuilder()
        self.store = store or ReadingStore()
        self.engine = engine or AdvisoryEngine()
        self.mqtt_client: Optional[mqtt.Client] = None
        self.mqtt_config = mqtt_config
        self._mqtt_connected = False
        # created on first refresh so it belongs to the running loop
        self._lock: Optional[asyncio.Lock] = None
        self.running = False

        if mqtt_config:
            self._init_mqtt(mqtt_config)

    def _init_mqtt(self, config: MQTTConfig):
        """Initialize MQTT client for publishing advisory cards."""
        try:
            self.mqtt_client = mqtt.Client(
                callback_api_version=CallbackAPIVersion.VERSION2,
                client_id=config.client_id,
            )

            def on_connect(client, userdata, flags, reason_code, properties):
                if reason_code == 0:
                    logger.info(f"Connected to MQTT broker at {config.broker}:{config.port}")
                    self._mqtt_connected = True
                else:
                    logger.error(f"Failed to connect to MQTT: {reason_code}")

            def on_disconnect(client, userdata, disconnect_flags, reason_code, properties):
                self._mqtt_connected = False
                if reason_code != 0:
                    logger.warning(f"MQTT disconnected: {reason_code}")

            self.mqtt_client.on_connect = on_connect
            self.mqtt_client.on_disconnect = on_disconnect

            self.mqtt_client.connect(config.broker, config.port, keepalive=config.keepalive)
            self.mqtt_client.loop_start()

        except Exception as e:
            logger.error(f"Failed to initialize MQTT: {e}")
            self.mqtt_client = None

    def _publish_cards(self, device: str, cards: List[AdvisoryCard]):
        """Publish advisory cards to MQTT for other dashboards."""
        if not self._mqtt_connected or not self.mqtt_client:
            return

        for card in cards:
            topic = card_topic(self.mqtt_config.topic_prefix, device, card)
            payload = create_card_payload(card, device)
            result = self.mqtt_client.publish(topic, payload, qos=self.mqtt_config.qos, retain=True)
            if result.rc == mqtt.MQTT_ERR_SUCCESS:
                logger.debug(f"Published to {topic}")
            else:
                logger.warning(f"Failed to publish to {topic}: rc={result.rc}")

    async def reload(self, filters: ViewFilters) -> bool:
        """Fetch rows and replace the store.

        On upstream failure the store keeps its previous generation.

        Returns:
            True if the store was replaced.
        """
        query = RowQuery(
            limit=filters.fetch_limit(),
            start_date=filters.start_date,
            end_date=filters.end_date,
        )
        try:
            rows = await self.source.fetch_rows(query)
        except Exception as e:
            logger.error(f"Failed to fetch rows from {self.source.__class__.__name__}: {e}")
            return False

        records = self.builder.build_all(rows)
        self.store.replace_all(records)
        logger.info(f"Loaded {len(records)} readings")
        return True

    def evaluate(self, filters: ViewFilters, fetch_ok: bool = True) -> RefreshResult:
        """Derive the main view and the advisor view from the current store."""
        store_latest = self.store.latest()

        rows = self.store.filter(filters.device, filters.start_date, filters.end_date)
        chart_rows = rows[:filters.points]

        advisor_device = filters.advisor_device
        if advisor_device is None:
            advisor_device = store_latest.device if store_latest else ""
        advisor_rows = self.store.filter(advisor_device, filters.start_date, filters.end_date)
        window = self.store.window(filters.points, advisor_device, filters.start_date, filters.end_date)
        cards = self.engine.evaluate(latest_of(advisor_rows), window)

        records = self.store.records
        return RefreshResult(
            latest=rows[0] if rows else None,
            rows=rows,
            chart_rows=chart_rows,
            summary=summarize(chart_rows),
            devices=self.store.devices(),
            advisor_device=advisor_device,
            cards=cards,
            updated_at=records[0].timestamp if records else None,
            fetch_ok=fetch_ok,
            filters=filters,
        )

    async def refresh(self, filters: Optional[ViewFilters] = None) -> RefreshResult:
        """Run one complete refresh cycle."""
        filters = filters or ViewFilters()
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            fetch_ok = await self.reload(filters)
            result = self.evaluate(filters, fetch_ok)

        self._publish_cards(result.advisor_device, result.cards)
        return result

    async def run(
        self,
        interval: float,
        filters_provider: Callable[[], ViewFilters],
        on_result: Optional[ResultCallback] = None,
    ) -> None:
        """Refresh every `interval` seconds until stop() is called.

        Each cycle finishes before the next sleep starts, so cycles never
        overlap.
        """
        self.running = True
        if not await self.source.check_health():
            logger.warning(f"{self.source.__class__.__name__} is not reachable yet")
        logger.info(f"Starting refresh loop every {interval}s")
        while self.running:
            try:
                result = await self.refresh(filters_provider())
                if on_result is not None:
                    outcome = on_result(result)
                    if asyncio.iscoroutine(outcome):
                        await outcome
            except Exception as e:
                logger.error(f"Refresh cycle failed: {e}")

            await asyncio.sleep(interval)

    def stop(self):
        self.running = False
        if self.mqtt_client:
            self.mqtt_client.loop_stop()
            self.mqtt_client.disconnect()
