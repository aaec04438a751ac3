from app.services import metrics


def test_summary_counts_calls_and_errors():
    metrics.reset()
    metrics.record_op("find_by_id", 3)
    metrics.record_op("find_by_id", 7, "not_found")
    metrics.record_op("insert_new", 12, "duplicate_entry")

    out = metrics.summary()
    assert out["find_by_id"]["calls"] == 2
    assert out["find_by_id"]["errors"] == {"not_found": 1}
    assert out["find_by_id"]["latency"]["max"] == 7
    assert out["insert_new"]["errors"] == {"duplicate_entry": 1}


def test_latency_percentiles():
    metrics.reset()
    for ms in range(1, 101):
        metrics.record_op("find_all", ms)
    lat = metrics.summary()["find_all"]["latency"]
    assert lat["p50"] in (50, 51)
    assert lat["p99"] >= 98
    assert lat["max"] == 100


def test_latency_window_is_bounded():
    metrics.reset()
    for _ in range(metrics.MAX_SAMPLES + 50):
        metrics.record_op("load", 1)
    summary = metrics.summary()["load"]
    assert summary["calls"] == metrics.MAX_SAMPLES + 50
    metrics.reset()
    assert metrics.summary() == {}
