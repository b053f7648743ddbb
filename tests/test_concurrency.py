import threading

from m3umerger.concurrency import ConcurrencyManager


def _run_concurrently(count, target):
    threads = [threading.Thread(target=target) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


def test_basic_ops(monkeypatch):
    monkeypatch.setenv("M3U_MAX_CONCURRENCY_TEST1", "2")
    cm = ConcurrencyManager()

    assert cm.check_concurrency("TEST1") is False

    cm.update_concurrency("TEST1", True)
    assert cm.get_count("TEST1") == 1

    cm.update_concurrency("TEST1", False)
    cm.update_concurrency("TEST1", False)
    assert cm.get_count("TEST1") == 0


def test_limit_reached(monkeypatch):
    monkeypatch.setenv("M3U_MAX_CONCURRENCY_TEST1", "2")
    cm = ConcurrencyManager()
    cm.update_concurrency("TEST1", True)
    cm.update_concurrency("TEST1", True)
    assert cm.check_concurrency("TEST1") is True
    assert cm.get_concurrency_status("TEST1") == (2, 2, 0)


def test_priority(monkeypatch):
    monkeypatch.setenv("M3U_MAX_CONCURRENCY_PRIO", "3")
    cm = ConcurrencyManager()
    assert cm.concurrency_priority_value("PRIO") == 3
    cm.update_concurrency("PRIO", True)
    assert cm.concurrency_priority_value("PRIO") == 2


def test_default_limit_is_one(monkeypatch):
    monkeypatch.setenv("M3U_MAX_CONCURRENCY_BAD", "many")
    monkeypatch.delenv("M3U_MAX_CONCURRENCY_UNSET", raising=False)
    cm = ConcurrencyManager()
    assert cm.get_concurrency_status("BAD")[1] == 1
    assert cm.get_concurrency_status("UNSET")[1] == 1


def test_increment_and_decrement(monkeypatch):
    cm = ConcurrencyManager()
    cm.increment("X")
    cm.increment("X")
    cm.decrement("X")
    assert cm.get_count("X") == 1
    cm.decrement("X")
    cm.decrement("X")
    assert cm.get_count("X") == 0


def test_race_conditions(monkeypatch):
    monkeypatch.setenv("M3U_MAX_CONCURRENCY_STRESS", "100")
    cm = ConcurrencyManager()

    _run_concurrently(150, lambda: cm.update_concurrency("STRESS", True))
    assert cm.get_count("STRESS") == 150

    _run_concurrently(150, lambda: cm.update_concurrency("STRESS", False))
    assert cm.get_count("STRESS") == 0