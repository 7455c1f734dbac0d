import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from mtgjson_sql.errors import StaleViewConflictError, TransformFailureError
from mtgjson_sql.view_registry import ViewRegistry, ViewState


class CountingBuild:
    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, view_name: str) -> None:
        with self._lock:
            self.calls.append(view_name)
        time.sleep(self.delay)


def wait_for_state(registry, view_name, state, timeout=5.0):
    deadline = time.monotonic() + timeout
    while registry.state(view_name) is not state:
        if time.monotonic() > deadline:
            raise AssertionError(f"{view_name} never reached {state}")
        time.sleep(0.005)


def test_concurrent_ensure_builds_once():
    build = CountingBuild(delay=0.1)
    registry = ViewRegistry(build, lambda: "v1")

    with ThreadPoolExecutor(max_workers=10) as pool:
        records = list(pool.map(lambda _: registry.ensure("cards"), range(10)))

    assert build.calls == ["cards"]
    assert len({id(record) for record in records}) == 1
    assert registry.state("cards") is ViewState.REGISTERED


def test_registered_view_is_not_rebuilt():
    build = CountingBuild()
    registry = ViewRegistry(build, lambda: "v1")
    first = registry.ensure("sets")
    assert registry.ensure("sets") is first
    assert build.calls == ["sets"]
    assert registry.registered() == ["sets"]


def test_failure_is_shared_with_waiters():
    release = threading.Event()

    def failing_build(view_name):
        release.wait(5)
        raise TransformFailureError(view_name, "bad leaf")

    registry = ViewRegistry(failing_build, lambda: "v1")
    with ThreadPoolExecutor(max_workers=2) as pool:
        owner = pool.submit(registry.ensure, "all_prices")
        wait_for_state(registry, "all_prices", ViewState.BUILDING)
        waiter = pool.submit(registry.ensure, "all_prices")
        time.sleep(0.05)
        release.set()

        for future in (owner, waiter):
            with pytest.raises(TransformFailureError) as error:
                future.result()
            assert error.value.view_name == "all_prices"

    assert registry.state("all_prices") is ViewState.UNREGISTERED
    assert registry.get("all_prices") is None


def test_failed_build_can_be_retried():
    attempts = []

    def flaky_build(view_name):
        attempts.append(view_name)
        if len(attempts) == 1:
            raise TransformFailureError(view_name, "first try")

    registry = ViewRegistry(flaky_build, lambda: "v1")
    with pytest.raises(TransformFailureError):
        registry.ensure("cards")
    assert registry.ensure("cards").view_name == "cards"
    assert len(attempts) == 2


def test_invalidate_forces_rebuild_with_new_fingerprint():
    fingerprint = {"value": "5.2.1"}
    build = CountingBuild()
    registry = ViewRegistry(build, lambda: fingerprint["value"])

    registry.ensure("cards")
    registry.ensure("sets")
    fingerprint["value"] = "5.2.2"
    assert registry.invalidate_all() == 2
    assert registry.state("cards") is ViewState.UNREGISTERED

    record = registry.ensure("cards")
    assert record.fingerprint == "5.2.2"
    assert record.generation == 1
    assert build.calls == ["cards", "sets", "cards"]


def test_fingerprint_change_alone_triggers_rebuild():
    fingerprint = {"value": "a"}
    build = CountingBuild()
    registry = ViewRegistry(build, lambda: fingerprint["value"])

    registry.ensure("cards")
    fingerprint["value"] = "b"
    record = registry.ensure("cards")

    assert build.calls == ["cards", "cards"]
    assert record.fingerprint == "b"
    assert record.generation == 0


def test_build_overtaken_by_refresh_is_retried():
    registry = None
    builds = []

    def build(view_name):
        builds.append(view_name)
        if len(builds) == 1:
            registry.invalidate_all()

    registry = ViewRegistry(build, lambda: "v1")
    record = registry.ensure("cards")

    assert len(builds) == 2
    assert record.generation == 1


def test_persistent_conflict_is_raised():
    registry = None

    def build(view_name):
        registry.invalidate_all()

    registry = ViewRegistry(build, lambda: "v1")
    with pytest.raises(StaleViewConflictError) as error:
        registry.ensure("cards")
    assert error.value.view_name == "cards"
    assert error.value.current_generation > error.value.started_generation


def test_mark_and_discard():
    registry = ViewRegistry(CountingBuild(), lambda: "v1")
    record = registry.mark_registered("decks")
    assert registry.state("decks") is ViewState.REGISTERED
    assert registry.ensure("decks") is record

    registry.discard("decks")
    assert registry.state("decks") is ViewState.UNREGISTERED
    assert registry.get("decks") is None


def test_interrupted_build_is_released():
    attempts = []

    def interrupted_build(view_name):
        attempts.append(view_name)
        if len(attempts) == 1:
            raise KeyboardInterrupt

    registry = ViewRegistry(interrupted_build, lambda: "v1")
    with pytest.raises(KeyboardInterrupt):
        registry.ensure("all_prices")
    assert registry.state("all_prices") is ViewState.UNREGISTERED

    with ThreadPoolExecutor(max_workers=1) as pool:
        record = pool.submit(registry.ensure, "all_prices").result(timeout=2)

    assert record.view_name == "all_prices"
    assert attempts == ["all_prices", "all_prices"]
    assert registry.state("all_prices") is ViewState.REGISTERED


def test_unrelated_views_build_concurrently():
    release = threading.Event()
    build = CountingBuild()

    def blocking_build(view_name):
        build(view_name)
        if view_name == "all_prices":
            release.wait(5)

    registry = ViewRegistry(blocking_build, lambda: "v1")
    with ThreadPoolExecutor(max_workers=2) as pool:
        slow = pool.submit(registry.ensure, "all_prices")
        wait_for_state(registry, "all_prices", ViewState.BUILDING)

        fast = pool.submit(registry.ensure, "sets")
        assert fast.result(timeout=2).view_name == "sets"
        assert registry.state("sets") is ViewState.REGISTERED
        assert registry.state("all_prices") is ViewState.BUILDING
        assert not slow.done()

        release.set()
        assert slow.result(timeout=2).view_name == "all_prices"

    assert sorted(build.calls) == ["all_prices", "sets"]
