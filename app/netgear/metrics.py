"""All the boiler plate / init code for defining metrics.

Every metric is derived from one of the columns of the parsed channel table.
Rather than living at module level against the global registry, the metrics are owned by a ModemMetrics instance
    so that tests (or anything else) can hand in their own CollectorRegistry and read values straight back out.
"""

from collections import OrderedDict
from collections.abc import Iterable

import structlog
from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Summary,
    disable_created_metrics,
)
from netgear.parse import ChannelRecord

log = structlog.get_logger(__name__)

# By default, client will automatically create a "_created" meta metric for
#   each metric defined below.
# Having the unix epoch time of when the metric was created isn't that useful for us
#   so we'll disable it.
disable_created_metrics()


METRICS_NS = "netgear"
META_NS = "meta"

# Labels for the "info" style metric. Order matters; matches ChannelRecord field order.
INFO_LABELS = ["channel", "lock_status", "modulation", "channel_id", "frequency"]

# Record field -> (metric name, help text) for each per-channel gauge.
##
CHANNEL_GAUGES = OrderedDict()
CHANNEL_GAUGES["power_dbmv"] = ("power", "Power in dBmV")
CHANNEL_GAUGES["snr_mer_db"] = ("snrmer", "SNR/MER in dB")
CHANNEL_GAUGES["unerrored_codewords"] = (
    "unerrored_codewords",
    "number of unerrored codewords",
)
CHANNEL_GAUGES["correctable_codewords"] = (
    "correctable_codewords",
    "number of correctable codewords",
)
CHANNEL_GAUGES["uncorrectable_codewords"] = (
    "uncorrectable_codewords",
    "number of uncorrectable codewords",
)


class ModemMetrics:
    """Holds every metric the exporter publishes and knows how to update them from parsed records."""

    def __init__(
        self, registry: CollectorRegistry | None = None, namespace: str = METRICS_NS
    ):
        self.registry = REGISTRY if registry is None else registry

        ##
        # Meta Metrics
        ##
        # summary comes with both a count and a sum so we don't need to count the number of requests ourselves
        self.s_meta_request_time = Summary(
            f"{META_NS}_request_duration_seconds",
            "Time spent waiting for modem to respond",
            # Only a few fixed pages, so indexing by page is cheap
            labelnames=["scrape_target"],
            registry=self.registry,
        )

        # Pages * possible HTTP codes is bounded so this won't blow up storage.
        self.c_meta_scrape_result = Counter(
            f"{META_NS}_scrape_result",
            "Count of responses from modem by HTTP status",
            labelnames=["http_code", "scrape_target"],
            registry=self.registry,
        )

        # One series per numeric column, split by whether the cell parsed or not
        self.c_meta_parse_result = Counter(
            f"{META_NS}_parse_result",
            "Count of successful vs failed parse attempts",
            labelnames=["parse_target", "parse_result"],
            registry=self.registry,
        )

        self.g_meta_channel_count = Gauge(
            f"{META_NS}_channel_count",
            "Number of channel rows found in the most recent scrape.",
            registry=self.registry,
        )

        ##
        # Channel specific metrics
        ##
        # Value is always 1; this exists so the non-numeric columns can be graphed/joined as labels.
        self.g_channel_info = Gauge(
            f"{namespace}_channel_info",
            "Channel identity and status; value is always 1",
            labelnames=INFO_LABELS,
            registry=self.registry,
        )

        self.channel_gauges = OrderedDict()
        for field, (name, documentation) in CHANNEL_GAUGES.items():
            self.channel_gauges[field] = Gauge(
                f"{namespace}_{name}",
                documentation,
                labelnames=["channel"],
                registry=self.registry,
            )

    def project(self, records: Iterable[ChannelRecord]) -> None:
        """Push one scrape worth of records into the metrics.

        Fields that failed to parse leave the previous value alone. Channels that disappear keep their
        last value; nothing is ever removed.
        """
        count = 0
        for record in records:
            count += 1
            self.g_channel_info.labels(
                record.channel,
                record.lock_status,
                record.modulation,
                record.channel_id,
                record.frequency,
            ).set(1)

            for field, gauge in self.channel_gauges.items():
                _value = getattr(record, field)
                if _value is None:
                    self.c_meta_parse_result.labels(field, False).inc()
                    continue
                gauge.labels(record.channel).set(_value)
                self.c_meta_parse_result.labels(field, True).inc()

        self.g_meta_channel_count.set(count)
        log.debug("Projected channel records", count=count)
