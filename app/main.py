#!/usr/bin/env python3
"""
Main / entry point for the Netgear cable modem exporter.

"""
import argparse
import asyncio
import sys
from os import getenv

import structlog
from netgear.metrics import ModemMetrics
from netgear.poll import DEFAULT_POLL_INTERVAL_SECONDS, Poller
from prometheus_client import start_http_server
from util.const import LogLevel

# k8s makes it trivial to define env-vars so those are the defaults.
# The flags are there for running it by hand.
##
DEFAULT_MODEM_BASE_URL = "http://192.168.100.1"
DEFAULT_MODEM_USERNAME = "admin"
# Factory default for this family; almost certainly changed
DEFAULT_MODEM_PASSWORD = "password"
# default prometheus_client implementation does not support setting the path, only the port.
DEFAULT_METRICS_PORT = 9090

log = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """CLI flags; anything not given falls back to the matching env-var, then to the default."""
    parser = argparse.ArgumentParser(
        description="Export Netgear cable modem channel stats as Prometheus metrics"
    )
    parser.add_argument(
        "-url",
        dest="url",
        default=getenv("MODEM_BASE_URL", DEFAULT_MODEM_BASE_URL),
        help="base URL to modem",
    )
    parser.add_argument(
        "-user",
        dest="user",
        default=getenv("MODEM_USERNAME", DEFAULT_MODEM_USERNAME),
        help="username to login",
    )
    parser.add_argument(
        "-pass",
        dest="password",
        default=getenv("MODEM_PASSWORD", DEFAULT_MODEM_PASSWORD),
        help="password to login",
    )
    parser.add_argument(
        "-port",
        dest="port",
        type=int,
        default=int(getenv("METRICS_PORT", str(DEFAULT_METRICS_PORT))),
        help="port to serve /metrics on",
    )
    parser.add_argument(
        "-interval",
        dest="interval",
        type=int,
        default=int(
            getenv(
                "METRICS_POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS)
            )
        ),
        help="seconds between scrapes",
    )
    return parser.parse_args(argv)


def configure_logging(level_name: str | None = None) -> LogLevel:
    if level_name not in LogLevel.__members__:
        print(f"Defaulting to {LogLevel.INFO} log level")
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel[level_name]
        print(f"Using log level {log_level.value}")

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level.value)
    )
    return log_level


async def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    log.info("Starting up", modem=args.url)

    metrics = ModemMetrics()

    # In testing, server responds to requests on / and /metrics so there's no real
    #   need to allow customizing the path, I think.
    server, _ = start_http_server(port=args.port)
    log.info("Metrics server started", server=server.server_address)

    poller = Poller(
        args.url, args.user, args.password, metrics, interval=args.interval
    )
    await poller.run_forever()


def cli() -> None:
    configure_logging(getenv("LOG_LEVEL"))
    try:
        asyncio.run(main())
    # pylint: disable=broad-exception-caught
    except Exception as e:
        # Nothing in here retries. Let the supervisor restart us.
        log.critical("Exiting after fatal scrape error", error=e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
