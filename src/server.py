"""Worker runner for the new-title notification pipeline.

Starts the delivery consumer pool that drains the notification queue, and
optionally the Protean Engine that feeds catalogue events into the fan-out.

Usage:
    python src/server.py                  # Run the delivery workers until interrupted
    python src/server.py --workers 8      # Override NOTIFICATIONS_CONSUMER_CONCURRENCY
    python src/server.py --once           # Drain what is queued right now and exit
    python src/server.py --with-engine    # Also run the notifications Engine
"""

import argparse
import asyncio
import signal
import threading

from protean.server.engine import Engine

from shared.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _init_domains():
    """Import and initialize the catalogue and notifications domains."""
    from catalogue.domain import catalogue
    from notifications.domain import notifications

    catalogue.init()
    notifications.init()
    return catalogue, notifications


def main():
    parser = argparse.ArgumentParser(description="Bookstore notification workers")
    parser.add_argument("--workers", type=int, help="Number of delivery worker threads")
    parser.add_argument("--once", action="store_true", help="Process currently available messages and exit")
    parser.add_argument(
        "--with-engine",
        action="store_true",
        help="Also run the notifications domain Engine (event handlers)",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    args = parser.parse_args()

    configure_logging(level=args.log_level, force=True)

    _, notifications = _init_domains()

    from notifications.notification.pipeline import build_consumer

    consumer = build_consumer(domain=notifications)

    if args.once:
        with notifications.domain_context():
            outcomes = consumer.process_available()
        logger.info("Drained notification queue", processed=len(outcomes))
        return

    stop_event = threading.Event()

    if args.with_engine:
        # The Engine owns the main thread and its signal handling; workers stop when it exits
        workers = threading.Thread(
            target=consumer.run,
            args=(stop_event, args.workers),
            name="delivery-consumer",
        )
        workers.start()
        try:
            asyncio.run(Engine(notifications).run())
        finally:
            stop_event.set()
            workers.join()
        return

    def _stop(signum, _frame):
        logger.info("Shutdown requested", signal=signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    consumer.run(stop_event, concurrency=args.workers)


if __name__ == "__main__":
    main()
