"""
Tests for debounced draft saving.
"""
from types import SimpleNamespace
import threading
import pytest
from easysplit.client.api_client import ApiValidationError
from easysplit.client.autosave import SplitAutosaver
from easysplit.client.draft import SplitDraft
from easysplit.client.local_store import LocalSplitRegistry, MemoryStore


class FakeTimer:
    """Records timers instead of running them; tests fire them by hand."""
    created = []

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.started = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeApi:
    def __init__(self, fail_with=None):
        self.created = []
        self.updated = []
        self.fail_with = fail_with

    def create_split(self, payload):
        if self.fail_with:
            raise self.fail_with
        self.created.append(payload)
        return SimpleNamespace(code="ABCD1234")

    def update_split(self, code, payload):
        if self.fail_with:
            raise self.fail_with
        self.updated.append((code, payload))


@pytest.fixture(autouse=True)
def reset_timers():
    FakeTimer.created = []


@pytest.fixture
def draft():
    draft = SplitDraft(currency="£")
    draft.add_person("Alice", person_id="p1")
    return draft


def make_saver(draft, api, **kwargs):
    saver = SplitAutosaver(draft, api, delay=1.0, timer_factory=FakeTimer, **kwargs)
    saver.attach()
    return saver


def test_edits_within_quiet_period_save_once(draft):
    api = FakeApi()
    make_saver(draft, api)

    draft.add_item("Pizza", 30, owner_id="p1")
    draft.add_item("Beer", 5, owner_id="p1")
    draft.set_rates(tip_percent=10)

    timers = FakeTimer.created
    assert len(timers) == 3
    assert [t.cancelled for t in timers] == [True, True, False]
    assert all(t.daemon and t.delay == 1.0 for t in timers)

    for timer in timers:
        timer.fire()
    assert len(api.created) == 1
    assert api.created[0].tip_percent == 10
    assert not draft.is_dirty


def test_first_save_creates_then_updates(draft):
    api = FakeApi()
    registry = LocalSplitRegistry(MemoryStore())
    saved_codes = []
    saver = make_saver(draft, api, registry=registry, on_saved=saved_codes.append)

    draft.add_item("Pizza", 30, owner_id="p1")
    FakeTimer.created[-1].fire()
    draft.rename_person("p1", "Alicia")
    FakeTimer.created[-1].fire()

    assert saver.code == "ABCD1234"
    assert len(api.created) == 1
    assert [code for code, _ in api.updated] == ["ABCD1234"]
    assert api.updated[0][1].people[0].name == "Alicia"
    assert registry.my_splits() == ["ABCD1234"]
    assert saved_codes == ["ABCD1234", "ABCD1234"]


def test_failed_save_reports_and_stays_dirty(draft):
    error = ApiValidationError("Excess contribution", 400)
    api = FakeApi(fail_with=error)
    errors = []
    saver = make_saver(draft, api, on_error=errors.append)

    draft.add_item("Pizza", 30, owner_id="p1")
    FakeTimer.created[-1].fire()

    assert errors == [error]
    assert saver.last_error is error
    assert saver.code is None
    assert draft.is_dirty
    assert len(FakeTimer.created) == 1


def test_unsaveable_draft_is_reported(draft):
    errors = []
    saver = make_saver(draft, FakeApi(), on_error=errors.append)

    assert saver.flush() is False
    assert isinstance(errors[0], ValueError)


def test_flush_cancels_pending_timer(draft):
    api = FakeApi()
    saver = make_saver(draft, api)
    draft.add_item("Pizza", 30, owner_id="p1")
    assert saver.pending

    assert saver.flush() is True
    assert not saver.pending
    assert FakeTimer.created[-1].cancelled
    assert len(api.created) == 1


def test_detach_stops_scheduling(draft):
    saver = make_saver(draft, FakeApi())
    saver.detach()

    draft.add_item("Pizza", 30, owner_id="p1")

    assert FakeTimer.created == []


class SlowCreateApi(FakeApi):
    """create_split blocks until released so a second save can overlap it."""

    def __init__(self):
        super().__init__()
        self.creating = threading.Event()
        self.release = threading.Event()

    def create_split(self, payload):
        self.creating.set()
        self.release.wait(5)
        return super().create_split(payload)


def test_overlapping_saves_create_the_split_once(draft):
    api = SlowCreateApi()
    saver = make_saver(draft, api)
    draft.add_item("Pizza", 30, owner_id="p1")

    timed = threading.Thread(target=FakeTimer.created[-1].fire)
    timed.start()
    assert api.creating.wait(5)
    flushed = threading.Thread(target=saver.flush)
    flushed.start()
    api.release.set()
    timed.join(5)
    flushed.join(5)

    assert len(api.created) == 1
    assert [code for code, _ in api.updated] == ["ABCD1234"]
    assert saver.code == "ABCD1234"
