import threading

from dumpfs.stats import StatisticsAggregate


def test_record_accumulates():
    agg = StatisticsAggregate()
    agg.record("a.txt", lines=1, chars=6)
    agg.record("b.bin")
    stats = agg.snapshot()
    assert stats.files_processed == 2
    assert stats.total_lines == 1
    assert stats.total_chars == 6
    assert stats.total_tokens is None
    assert stats.file_details["b.bin"].chars == 0


def test_token_totals_only_when_counting():
    agg = StatisticsAggregate(count_tokens=True)
    agg.record("a.txt", 1, 6, tokens=2)
    agg.record("b.bin")
    stats = agg.snapshot()
    assert stats.total_tokens == 2
    assert stats.file_details["b.bin"].tokens is None


def test_duplicate_path_replaces_previous_record():
    agg = StatisticsAggregate(count_tokens=True)
    agg.record("a.txt", 1, 10, tokens=3)
    agg.record("a.txt", 2, 4, tokens=1)
    stats = agg.snapshot()
    assert stats.files_processed == 1
    assert stats.total_lines == 2
    assert stats.total_chars == 4
    assert stats.total_tokens == 1


def test_snapshot_is_independent():
    agg = StatisticsAggregate()
    agg.record("a.txt", 1, 1)
    snap = agg.snapshot()
    agg.record("b.txt", 1, 1)
    assert snap.files_processed == 1
    assert "b.txt" not in snap.file_details
    assert agg.snapshot().files_processed == 2


def test_concurrent_records():
    agg = StatisticsAggregate()

    def worker(n):
        for i in range(200):
            agg.record(f"t{n}/f{i}", lines=1, chars=3)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = agg.snapshot()
    assert stats.files_processed == 1600
    assert stats.total_lines == 1600
    assert stats.total_chars == 4800
    assert len(stats.file_details) == 1600
