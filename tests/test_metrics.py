"""Tests for projecting parsed channel records onto the metric series."""

from __future__ import annotations

from dataclasses import replace

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from netgear.metrics import ModemMetrics
from netgear.parse import ChannelRecord

RECORD_1 = ChannelRecord(
    channel="1",
    lock_status="Locked",
    modulation="QAM256",
    channel_id="5",
    frequency="549.0 MHz",
    power_dbmv=3.5,
    snr_mer_db=38.2,
    unerrored_codewords=123456.0,
    correctable_codewords=12.0,
    uncorrectable_codewords=0.0,
)

INFO_LABELS = {
    "channel": "1",
    "lock_status": "Locked",
    "modulation": "QAM256",
    "channel_id": "5",
    "frequency": "549.0 MHz",
}


def _value(registry: CollectorRegistry, name: str, channel: str = "1"):
    return registry.get_sample_value(name, {"channel": channel})


def _snapshot(registry: CollectorRegistry) -> dict:
    """Every netgear_* sample, keyed by name + labels."""
    return {
        (sample.name, tuple(sorted(sample.labels.items()))): sample.value
        for metric in registry.collect()
        if metric.name.startswith("netgear_")
        for sample in metric.samples
    }


def test_project_sets_every_series(registry, modem_metrics):
    modem_metrics.project([RECORD_1])

    assert registry.get_sample_value("netgear_channel_info", INFO_LABELS) == 1.0
    assert _value(registry, "netgear_power") == 3.5
    assert _value(registry, "netgear_snrmer") == 38.2
    assert _value(registry, "netgear_unerrored_codewords") == 123456.0
    assert _value(registry, "netgear_correctable_codewords") == 12.0
    assert _value(registry, "netgear_uncorrectable_codewords") == 0.0
    assert registry.get_sample_value("meta_channel_count") == 1.0


def test_failed_field_keeps_previous_value(registry, modem_metrics):
    modem_metrics.project([RECORD_1])
    modem_metrics.project([replace(RECORD_1, power_dbmv=None, snr_mer_db=40.0)])

    assert _value(registry, "netgear_power") == 3.5
    assert _value(registry, "netgear_snrmer") == 40.0


def test_failed_field_on_first_cycle_leaves_series_absent(registry, modem_metrics):
    modem_metrics.project([replace(RECORD_1, power_dbmv=None)])

    assert _value(registry, "netgear_power") is None
    assert _value(registry, "netgear_snrmer") == 38.2
    assert registry.get_sample_value("netgear_channel_info", INFO_LABELS) == 1.0


def test_projecting_twice_is_idempotent(registry, modem_metrics):
    modem_metrics.project([RECORD_1])
    once = _snapshot(registry)
    modem_metrics.project([RECORD_1])
    assert _snapshot(registry) == once


def test_last_write_wins(registry, modem_metrics):
    modem_metrics.project([RECORD_1])
    modem_metrics.project([replace(RECORD_1, correctable_codewords=99.0)])
    assert _value(registry, "netgear_correctable_codewords") == 99.0


def test_vanished_channels_are_not_evicted(registry, modem_metrics):
    record_2 = replace(RECORD_1, channel="2", power_dbmv=-1.0)
    modem_metrics.project([RECORD_1, record_2])
    modem_metrics.project([RECORD_1])

    assert _value(registry, "netgear_power", channel="2") == -1.0
    assert registry.get_sample_value("meta_channel_count") == 1.0


def test_changed_attributes_add_a_new_info_series(registry, modem_metrics):
    modem_metrics.project([RECORD_1])
    modem_metrics.project([replace(RECORD_1, lock_status="Not Locked")])

    assert registry.get_sample_value("netgear_channel_info", INFO_LABELS) == 1.0
    assert (
        registry.get_sample_value(
            "netgear_channel_info", {**INFO_LABELS, "lock_status": "Not Locked"}
        )
        == 1.0
    )


def test_parse_results_are_counted(registry, modem_metrics):
    modem_metrics.project([replace(RECORD_1, power_dbmv=None)])

    assert (
        registry.get_sample_value(
            "meta_parse_result_total",
            {"parse_target": "power_dbmv", "parse_result": "False"},
        )
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "meta_parse_result_total",
            {"parse_target": "snr_mer_db", "parse_result": "True"},
        )
        == 1.0
    )


def test_empty_scrape_resets_channel_count_only(registry, modem_metrics):
    modem_metrics.project([RECORD_1])
    modem_metrics.project([])

    assert registry.get_sample_value("meta_channel_count") == 0.0
    assert _value(registry, "netgear_power") == 3.5


def test_exposition_uses_netgear_names(registry, modem_metrics):
    modem_metrics.project([RECORD_1])
    text = generate_latest(registry).decode()

    assert 'netgear_power{channel="1"} 3.5' in text
    assert "netgear_channel_info{" in text
    # disable_created_metrics() is in effect
    assert "_created" not in text


def test_separate_registries_do_not_share_state():
    first, second = CollectorRegistry(), CollectorRegistry()
    ModemMetrics(registry=first).project([RECORD_1])
    ModemMetrics(registry=second)

    assert first.get_sample_value("netgear_power", {"channel": "1"}) == 3.5
    assert second.get_sample_value("netgear_power", {"channel": "1"}) is None


def test_same_registry_twice_is_rejected(registry, modem_metrics):
    with pytest.raises(ValueError):
        ModemMetrics(registry=registry)
