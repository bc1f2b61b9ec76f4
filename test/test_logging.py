import json

from conftest import sample
from userop_engine.core.logger import (
    get_logger,
    record_active_connections,
    record_cache_hit,
    record_gas_estimation,
    USEROP_GENERATION,
)


def test_structured_json_logs(capsys):
    log = get_logger("test")
    log.info("UNIT_TEST_EVENT", chain_id=1)
    line = capsys.readouterr().out.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "UNIT_TEST_EVENT"
    assert event["chain_id"] == 1
    assert event["level"] == "info"
    assert "timestamp" in event


def test_prometheus_metrics():
    c = USEROP_GENERATION.labels("unit", "success")
    initial = c._value.get()
    c.inc()
    assert c._value.get() == initial + 1

    before = sample("cache_hits_total", {"type": "unit_cache"})
    record_cache_hit("unit_cache")
    assert sample("cache_hits_total", {"type": "unit_cache"}) == before + 1

    record_active_connections(424242, 1)
    assert sample("active_connections", {"chain": "424242"}) == 1

    count_before = sample("gas_estimation_duration_seconds_count", {"chain": "424242"})
    record_gas_estimation(424242, 0.25)
    assert sample("gas_estimation_duration_seconds_count", {"chain": "424242"}) == count_before + 1
