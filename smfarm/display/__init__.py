"""Terminal display and export."""

from .export import export_csv, export_filename
from .terminal_monitor import TerminalMonitor


def main():
    """Entry point for display service."""
    import asyncio

    from smfarm.collector import create_service
    from smfarm.collector.config.settings import load_config
    from smfarm.shared.logging import setup_logging

    config = load_config()
    setup_logging(config.log_level)

    service = create_service(config)
    monitor = TerminalMonitor()

    try:
        asyncio.run(service.run(config.refresh_interval, lambda: config.view, monitor.render))
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()


def export_main(argv=None):
    """Entry point for CSV export: one refresh, then write the file."""
    import argparse
    import asyncio
    from dataclasses import replace
    from datetime import datetime
    from pathlib import Path

    from smfarm.collector import create_service
    from smfarm.collector.config.settings import load_config
    from smfarm.shared.logging import setup_logging

    parser = argparse.ArgumentParser(description="Export soil readings to CSV")
    parser.add_argument("--device", default="", help="Device id (default: all)")
    parser.add_argument("--start", type=datetime.fromisoformat, help="Start, e.g. 2024-01-01T00:00")
    parser.add_argument("--end", type=datetime.fromisoformat, help="End, e.g. 2024-01-07T23:59")
    parser.add_argument("--output-dir", default=".", help="Directory for the CSV file")
    parser.add_argument("--config", default=None, help="Path to config YAML")
    args = parser.parse_args(argv)

    if args.start and args.end and args.start > args.end:
        parser.error("--end must not be before --start")

    config = load_config(args.config)
    setup_logging(config.log_level)

    service = create_service(config)
    filters = replace(
        config.view,
        start_date=args.start.date() if args.start else None,
        end_date=args.end.date() if args.end else None,
    )
    try:
        asyncio.run(service.reload(filters))
    finally:
        service.stop()

    path = Path(args.output_dir) / export_filename(args.device, args.start, args.end)
    with open(path, "w", newline="", encoding="utf-8") as f:
        count = export_csv(service.store.records, f, args.device, args.start, args.end)
    print(f"Wrote {count} readings to {path}")


__all__ = ["TerminalMonitor", "export_csv", "export_filename", "main", "export_main"]
