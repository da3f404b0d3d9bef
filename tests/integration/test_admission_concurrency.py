"""
Concurrency tests for the in-memory admission store.

Run with: pytest tests/integration/test_admission_concurrency.py -v
"""
import threading

from contact.rate_limiting import AdmissionController, LocalWindowStore

THREADS = 8


def race(controller, identifiers):
    """Fire one admit() per identifier at the same instant; return the decisions."""
    barrier = threading.Barrier(len(identifiers))
    results = [None] * len(identifiers)

    def worker(index, identifier):
        barrier.wait()
        results[index] = controller.admit(identifier)

    threads = [
        threading.Thread(target=worker, args=(index, identifier))
        for index, identifier in enumerate(identifiers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results


class TestConcurrentAdmission:

    def test_last_slot_is_admitted_once(self, clock):
        for _ in range(50):
            controller = AdmissionController(LocalWindowStore(), max_requests=5,
                                             window_seconds=900, clock=clock)
            for _ in range(4):
                assert controller.admit('203.0.113.7')

            results = race(controller, ['203.0.113.7'] * THREADS)

            assert results.count(True) == 1
            assert results.count(False) == THREADS - 1

    def test_never_exceeds_limit_under_contention(self, clock):
        controller = AdmissionController(LocalWindowStore(), max_requests=5,
                                         window_seconds=900, clock=clock)

        results = race(controller, ['k'] * 32)

        assert results.count(True) == 5

    def test_distinct_identifiers_do_not_interfere(self, clock):
        controller = AdmissionController(LocalWindowStore(), max_requests=1,
                                         window_seconds=900, clock=clock)
        identifiers = [f'198.51.100.{n}' for n in range(THREADS)]

        results = race(controller, identifiers)

        assert all(results)
