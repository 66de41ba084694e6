import threading
from types import SimpleNamespace

import pytest

from imagify.controllers.session import CompressionSession
from imagify.models.compression_model import CompressionFailure, CompressionSettings, PipelineState
from imagify.models.errors import EncodeFailure, InputInvalid

from conftest import make_source

TIMEOUT = 5


class FakeOrchestrator:
    def __init__(self, threshold=90, fail=False):
        self.threshold = threshold
        self.fail = fail
        self.calls = []
        self.last_failure = None
        self.gate = None
        self.dead_zone_gate = None

    def find_dead_zone_threshold(self, source, settings, reference_size=None):
        self.calls.append(("dead_zone", settings.quality, (settings.max_width, settings.max_height)))
        if self.dead_zone_gate is not None:
            gate, self.dead_zone_gate = self.dead_zone_gate, None
            gate()
        return self.threshold

    def compress(self, source, settings, reference_size=None):
        self.calls.append(("compress", settings.quality, (settings.max_width, settings.max_height)))
        if self.gate is not None:
            gate, self.gate = self.gate, None
            gate()
        if self.fail:
            error = EncodeFailure("boom")
            self.last_failure = CompressionFailure(stage=PipelineState.ENCODING, error=error)
            raise error
        return SimpleNamespace(settings=settings, source=source)


@pytest.fixture
def events():
    return {"results": [], "dead_zones": [], "failures": []}


@pytest.fixture
def make_session(events):
    sessions = []

    def make(orchestrator, debounce_s=0.05):
        session = CompressionSession(
            orchestrator=orchestrator,
            debounce_s=debounce_s,
            on_result=lambda result, _v: events["results"].append(result),
            on_dead_zone=lambda threshold, _v: events["dead_zones"].append(threshold),
            on_failure=lambda failure, _v: events["failures"].append(failure),
        )
        sessions.append(session)
        return session

    yield make
    for session in sessions:
        session.close()


@pytest.fixture
def source(noise_bitmap):
    return make_source(noise_bitmap(8, 8))


def test_load_runs_dead_zone_then_compression(make_session, events, source):
    orchestrator = FakeOrchestrator(threshold=81)
    session = make_session(orchestrator)
    version = session.load(source)
    assert session.wait_idle(TIMEOUT)

    assert [c[0] for c in orchestrator.calls] == ["dead_zone", "compress"]
    assert events["dead_zones"] == [81]
    assert [r.settings.quality for r in events["results"]] == [100]
    assert session.is_current(version)
    assert session.source is source


def test_rapid_changes_collapse_to_the_last_one(make_session, events, source):
    orchestrator = FakeOrchestrator()
    session = make_session(orchestrator, debounce_s=0.2)
    session.load(source)
    assert session.wait_idle(TIMEOUT)
    orchestrator.calls.clear()
    events["results"].clear()

    for quality in range(50, 56):
        session.submit(CompressionSettings(quality=quality))
    assert session.wait_idle(TIMEOUT)

    assert orchestrator.calls == [("compress", 55, (None, None))]
    assert [r.settings.quality for r in events["results"]] == [55]
    assert session.settings.quality == 55


def test_stale_result_is_discarded(make_session, events, source):
    orchestrator = FakeOrchestrator()
    session = make_session(orchestrator)
    entered, release = threading.Event(), threading.Event()

    def gate():
        entered.set()
        release.wait(TIMEOUT)

    orchestrator.gate = gate
    session.load(source)
    assert entered.wait(TIMEOUT)
    newer = session.submit(CompressionSettings(quality=40), immediate=True)
    release.set()
    assert session.wait_idle(TIMEOUT)

    assert [r.settings.quality for r in events["results"]] == [40]
    assert session.is_current(newer)


def test_dead_zone_is_recomputed_only_when_dimensions_change(make_session, events, source):
    orchestrator = FakeOrchestrator()
    session = make_session(orchestrator)
    session.load(source)
    assert session.wait_idle(TIMEOUT)
    orchestrator.calls.clear()

    session.submit(CompressionSettings(quality=70), immediate=True)
    assert session.wait_idle(TIMEOUT)
    assert [c[0] for c in orchestrator.calls] == ["compress"]

    orchestrator.calls.clear()
    session.submit(CompressionSettings(quality=70, max_width=4), immediate=True)
    assert session.wait_idle(TIMEOUT)
    assert orchestrator.calls == [("dead_zone", 70, (4, None)), ("compress", 70, (4, None))]
    assert len(events["dead_zones"]) == 2


def test_reset_recomputes_dead_zone_at_quality_100(make_session, events, source):
    orchestrator = FakeOrchestrator()
    session = make_session(orchestrator)
    session.load(source)
    assert session.wait_idle(TIMEOUT)
    orchestrator.calls.clear()

    session.reset()
    assert session.wait_idle(TIMEOUT)
    assert orchestrator.calls == [("dead_zone", 100, (None, None)), ("compress", 100, (None, None))]


def test_failure_is_reported(make_session, events, source):
    session = make_session(FakeOrchestrator(fail=True))
    session.load(source)
    assert session.wait_idle(TIMEOUT)

    assert events["results"] == []
    assert len(events["failures"]) == 1
    assert events["failures"][0].stage is PipelineState.ENCODING
    assert events["failures"][0].message == "boom"


def test_submit_without_source_is_a_no_op(make_session, events):
    orchestrator = FakeOrchestrator()
    session = make_session(orchestrator)
    assert session.submit(CompressionSettings(quality=10)) == 0
    assert session.wait_idle(TIMEOUT)
    assert orchestrator.calls == []
    assert session.settings.quality == 10


def test_callback_errors_do_not_stop_the_worker(events, source):
    orchestrator = FakeOrchestrator()

    def broken(_result, _version):
        raise RuntimeError("ui is gone")

    session = CompressionSession(orchestrator=orchestrator, debounce_s=0, on_result=broken)
    try:
        session.load(source)
        assert session.wait_idle(TIMEOUT)
        session.submit(CompressionSettings(quality=20), immediate=True)
        assert session.wait_idle(TIMEOUT)
        assert orchestrator.calls[-1] == ("compress", 20, (None, None))
    finally:
        session.close()


def test_superseded_dead_zone_skips_its_compression(make_session, events, source):
    orchestrator = FakeOrchestrator(threshold=77)
    session = make_session(orchestrator)
    entered, release = threading.Event(), threading.Event()

    def gate():
        entered.set()
        release.wait(TIMEOUT)

    orchestrator.dead_zone_gate = gate
    session.load(source)
    assert entered.wait(TIMEOUT)
    session.submit(CompressionSettings(quality=60), immediate=True)
    release.set()
    assert session.wait_idle(TIMEOUT)

    assert orchestrator.calls == [
        ("dead_zone", 100, (None, None)),
        ("dead_zone", 60, (None, None)),
        ("compress", 60, (None, None)),
    ]
    assert events["dead_zones"] == [77]
    assert [r.settings.quality for r in events["results"]] == [60]


def test_callbacks_receive_the_run_version(source):
    orchestrator = FakeOrchestrator()
    seen = []
    session = CompressionSession(
        orchestrator=orchestrator,
        debounce_s=0,
        on_result=lambda result, version: seen.append(("result", version)),
        on_dead_zone=lambda threshold, version: seen.append(("dead_zone", version)),
    )
    try:
        version = session.load(source)
        assert session.wait_idle(TIMEOUT)
    finally:
        session.close()
    assert seen == [("dead_zone", version), ("result", version)]


def test_enqueue_without_source_raises(make_session):
    session = make_session(FakeOrchestrator())
    with session._cond, pytest.raises(InputInvalid):
        session._enqueue(CompressionSettings(), force_dead_zone=False, delay=0.0)
    assert session.version == 0
