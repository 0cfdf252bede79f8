"""Tests for DedupRegistry."""

import threading

from relaybench.core.dedup import Admission, DedupRegistry


class TestDedupRegistry:
    """At-most-once admission per update id."""

    def test_first_arrival_accepted(self):
        registry = DedupRegistry()
        assert registry.admit(1, b"a") is Admission.ACCEPTED
        assert 1 in registry
        assert len(registry) == 1

    def test_repeat_is_duplicate(self):
        registry = DedupRegistry()
        registry.admit(1, b"a")
        assert registry.admit(1, b"a") is Admission.DUPLICATE
        assert registry.duplicates == 1
        assert len(registry) == 1

    def test_first_seen_bytes_win(self):
        registry = DedupRegistry()
        registry.admit(1, b"first")
        registry.admit(1, b"second")
        assert registry.get(1) == b"first"

    def test_ordered_is_ascending(self):
        registry = DedupRegistry()
        for update_id in (5, 2, 9, 1):
            registry.admit(update_id, bytes([update_id]))
        assert [i for i, _ in registry.ordered()] == [1, 2, 5, 9]

    def test_get_missing_returns_none(self):
        assert DedupRegistry().get(3) is None

    def test_concurrent_admits_accept_once(self):
        registry = DedupRegistry()
        results = []
        lock = threading.Lock()

        def admit_all():
            for update_id in range(200):
                outcome = registry.admit(update_id, b"x")
                with lock:
                    results.append(outcome)

        threads = [threading.Thread(target=admit_all) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(Admission.ACCEPTED) == 200
        assert registry.duplicates == 600
