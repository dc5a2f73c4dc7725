"""Sensor row collection and the refresh cycle."""

from .collector import RefreshResult, RefreshService


def create_source(config):
    """Create the row source named in the config."""
    from .readers import DummyReader, GvizSheetReader

    if config.source.type == "dummy":
        return DummyReader(config.source.devices)
    if config.source.type == "gviz":
        return GvizSheetReader(config.source.sheet)
    raise ValueError(f"Unsupported source type: {config.source.type}")


def create_service(config) -> RefreshService:
    """Wire a RefreshService from a loaded Config."""
    from smfarm.advisor.engine import AdvisoryEngine
    from .builder import ReadingBuilder
    from .units import UnitConverter

    return RefreshService(
        source=create_source(config),
        builder=ReadingBuilder(UnitConverter(config.conversion)),
        engine=AdvisoryEngine(config.thresholds),
        mqtt_config=config.mqtt,
    )


def main():
    """Entry point for the headless advisory service."""
    import asyncio
    import logging

    from .config.settings import load_config
    from smfarm.shared.logging import setup_logging

    config = load_config()
    setup_logging(config.log_level)
    logger = logging.getLogger("smfarm.collector")

    service = create_service(config)

    def log_cards(result: RefreshResult):
        for card in result.cards:
            logger.info(f"[{result.advisor_device or 'all'}] {card.severity.value.upper()} {card.title}: {card.message}")

    try:
        asyncio.run(service.run(config.refresh_interval, lambda: config.view, log_cards))
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()


__all__ = ["RefreshResult", "RefreshService", "create_service", "create_source", "main"]
