"""
Tests for the Proctor Session lifecycle
"""

import pytest

from conftest import ScriptedEmbeddingModel, StaticFrameSource


MISMATCH = [0.0, 1.0, 0.0]


class TestSessionCreation:
    """Tests for session setup and capability loading"""

    def test_session_id_format(self):
        from examguard.proctor.session import ProctorSession

        session = ProctorSession()

        assert session.id.startswith("EXM_")
        assert len(session.id) == 10
        assert session.id[4:] == session.id[4:].upper()

    def test_custom_session_id(self):
        from examguard.proctor.session import ProctorSession

        assert ProctorSession(session_id="EXM_CUSTOM").id == "EXM_CUSTOM"

    def test_starts_not_started(self):
        from examguard.proctor.context import SessionState
        from examguard.proctor.session import ProctorSession

        session = ProctorSession()

        assert session.state == SessionState.NOT_STARTED
        assert session.current_match_score() == 100.0
        assert session.violation_log() == []
        assert session.is_active is False

    def test_attach_moves_to_awaiting_baseline(self, session):
        from examguard.proctor.context import SessionState

        assert session.state == SessionState.AWAITING_BASELINE
        assert session.session_state() == SessionState.AWAITING_BASELINE

    def test_attach_incomplete_set_rejected(self):
        from examguard.proctor.capabilities import CapabilitySet
        from examguard.proctor.context import SessionState
        from examguard.proctor.errors import CapabilityLoadError
        from examguard.proctor.session import ProctorSession

        session = ProctorSession()

        with pytest.raises(CapabilityLoadError):
            session.attach_capabilities(CapabilitySet(frame_source=StaticFrameSource()))
        assert session.state == SessionState.NOT_STARTED

    @pytest.mark.asyncio
    async def test_initialize_with_loader(self, capabilities):
        from examguard.proctor.context import SessionState
        from examguard.proctor.session import ProctorSession

        session = ProctorSession()

        async def loader():
            return capabilities

        assert await session.initialize(loader) is True
        assert session.state == SessionState.AWAITING_BASELINE
        assert session.error is None

    @pytest.mark.asyncio
    async def test_load_failure_is_blocking(self):
        from examguard.proctor.capabilities import load_capabilities
        from examguard.proctor.context import SessionState
        from examguard.proctor.session import ProctorSession

        def broken():
            raise RuntimeError("weights not found")

        factories = {
            "embedding_model": ScriptedEmbeddingModel,
            "object_detector": broken,
            "face_detector": object,
            "landmark_detector": object
        }
        session = ProctorSession()

        ok = await session.initialize(lambda: load_capabilities(StaticFrameSource(), factories))

        assert ok is False
        assert session.state == SessionState.NOT_STARTED
        assert "object_detector" in session.error
        assert "weights not found" in session.error

    @pytest.mark.asyncio
    async def test_load_capabilities_success(self):
        from examguard.proctor.capabilities import load_capabilities

        async def async_factory():
            return object()

        capabilities = await load_capabilities(
            StaticFrameSource(),
            {
                "embedding_model": ScriptedEmbeddingModel,
                "object_detector": async_factory,
                "face_detector": object,
                "landmark_detector": object
            }
        )

        assert capabilities.is_ready()

    @pytest.mark.asyncio
    async def test_load_capabilities_missing_factory(self):
        from examguard.proctor.capabilities import load_capabilities
        from examguard.proctor.errors import CapabilityLoadError

        with pytest.raises(CapabilityLoadError):
            await load_capabilities(StaticFrameSource(), {"embedding_model": object})


class TestBaselineLock:
    """Tests for lock_baseline"""

    @pytest.mark.asyncio
    async def test_lock_starts_monitoring(self, session):
        from examguard.proctor.context import SessionState

        assert await session.lock_baseline() is True
        assert session.state == SessionState.MONITORING
        assert session.context.baseline.current() == [1.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_lock_before_ready_rejected(self):
        from examguard.proctor.errors import SessionStateError
        from examguard.proctor.session import ProctorSession

        with pytest.raises(SessionStateError):
            await ProctorSession().lock_baseline()

    @pytest.mark.asyncio
    async def test_lock_without_frame_is_noop(self, session, capabilities):
        from examguard.proctor.context import SessionState

        capabilities.frame_source.frame = None

        assert await session.lock_baseline() is False
        assert session.state == SessionState.AWAITING_BASELINE
        assert session.context.baseline.is_locked is False

    @pytest.mark.asyncio
    async def test_lock_with_failing_model_is_noop(self, session, capabilities):
        capabilities.embedding_model.embedding = RuntimeError("no face")

        assert await session.lock_baseline() is False
        assert session.context.baseline.is_locked is False

    @pytest.mark.asyncio
    async def test_relock_overwrites(self, session, capabilities):
        await session.lock_baseline()
        capabilities.embedding_model.embedding = [0.0, 0.0, 1.0]

        assert await session.lock_baseline() is True
        assert session.context.baseline.current() == [0.0, 0.0, 1.0]

    @pytest.mark.asyncio
    async def test_calibration_required(self, session, monkeypatch):
        from examguard.proctor.errors import CalibrationIncompleteError

        monkeypatch.setattr(session.settings, "REQUIRE_CALIBRATION", True)
        session.calibration.set("webcam")

        with pytest.raises(CalibrationIncompleteError) as exc_info:
            await session.lock_baseline()
        assert exc_info.value.pending == ["lighting", "identity"]

        session.calibration.set("lighting")
        session.calibration.set("identity")
        assert await session.lock_baseline() is True


class TestMonitoring:
    """Tests for ticks driven through the session"""

    @pytest.mark.asyncio
    async def test_tick_before_baseline_is_degraded(self, session, capabilities):
        capabilities.face_detector.faces = []

        result = await session.tick()

        assert result["processed"] is True
        assert result["scored"] is False
        assert session.violation_log() == []

    @pytest.mark.asyncio
    async def test_tick_not_started_rejected(self):
        from examguard.proctor.errors import SessionStateError
        from examguard.proctor.session import ProctorSession

        with pytest.raises(SessionStateError):
            await ProctorSession().tick()

    @pytest.mark.asyncio
    async def test_violations_recorded_while_monitoring(self, session, capabilities):
        await session.lock_baseline()
        capabilities.face_detector.faces = []

        result = await session.tick()

        assert [v.type for v in result["violations"]] == ["NO_FACE_IN_FRAME"]
        assert session.severity_counts() == {"Critical": 1, "Warning": 0}


class TestEndSession:
    """Tests for end_session and the audit report"""

    @pytest.mark.asyncio
    async def test_end_seals_ledger(self, session, capabilities, clock):
        from examguard.proctor.context import SessionState

        await session.lock_baseline()
        capabilities.face_detector.faces = [{}, {}]
        await session.tick()

        report = session.end_session()

        assert session.state == SessionState.ENDED
        assert report["state"] == "ended"
        assert report["total_violations"] == 1
        assert report["critical_count"] == 1

        clock.advance(5000)
        result = await session.tick()
        assert result["processed"] is False
        assert session.record_lockdown_event("blur") is None
        assert len(session.violation_log()) == 1

    @pytest.mark.asyncio
    async def test_end_is_idempotent(self, session, clock):
        await session.lock_baseline()
        first = session.end_session()
        clock.advance(1000)

        assert session.end_session() == first

    @pytest.mark.asyncio
    async def test_lock_after_end_rejected(self, session):
        from examguard.proctor.errors import SessionStateError

        session.end_session()

        with pytest.raises(SessionStateError):
            await session.lock_baseline()

    @pytest.mark.asyncio
    async def test_audit_report(self, session, capabilities, clock):
        await session.lock_baseline()
        capabilities.embedding_model.embedding = [0.6, 0.8, 0.0]
        await session.tick()
        session.record_lockdown_event("visibilitychange", hidden=True)
        clock.advance(90_000)

        report = session.end_session()

        assert report["assessment_id"] == "assessment-1"
        assert report["student_id"] == "student-1"
        assert report["warning_count"] == 1
        assert report["violations_by_type"] == {"TAB_SWITCH_DETECTED": 1}
        assert report["violations"][0]["type"] == "TAB_SWITCH_DETECTED"
        assert report["final_match_score"] == 60.0
        assert report["duration_seconds"] == pytest.approx(90.0)


class TestReset:
    """Tests for reset_session"""

    @pytest.mark.asyncio
    async def test_reset_restores_initial_state(self, session, capabilities):
        from examguard.proctor.context import SessionState

        await session.lock_baseline()
        capabilities.embedding_model.embedding = MISMATCH
        capabilities.face_detector.faces = []
        await session.tick()
        session.calibration.set("webcam")
        session.end_session()

        session.reset_session()

        assert session.state == SessionState.NOT_STARTED
        assert session.violation_log() == []
        assert session.current_match_score() == 100.0
        assert session.context.baseline.is_locked is False
        assert session.context.detection.mismatch_strikes == 0
        assert session.calibration.pending() == ["webcam", "lighting", "identity"]
        assert session.ledger.sealed is False

    @pytest.mark.asyncio
    async def test_reset_during_tick_keeps_ledger_empty(self, session, capabilities):
        import asyncio
        from examguard.proctor.context import SessionState

        await session.lock_baseline()
        started = asyncio.Event()
        release = asyncio.Event()

        class GatedObjectDetector:
            async def detect(self, frame):
                started.set()
                await release.wait()
                return [{"class": "cell phone"}]

        capabilities.object_detector = GatedObjectDetector()

        task = asyncio.ensure_future(session.tick())
        await asyncio.wait_for(started.wait(), timeout=2)

        session.reset_session()
        release.set()
        await task

        assert session.state == SessionState.NOT_STARTED
        assert session.violation_log() == []

    @pytest.mark.asyncio
    async def test_reset_during_lock_discards_embedding(self, session, capabilities):
        import asyncio
        from examguard.proctor.context import SessionState

        started = asyncio.Event()
        release = asyncio.Event()

        class GatedEmbeddingModel:
            async def predict(self, frame):
                started.set()
                await release.wait()
                return [1.0, 0.0, 0.0]

        capabilities.embedding_model = GatedEmbeddingModel()

        task = asyncio.ensure_future(session.lock_baseline())
        await asyncio.wait_for(started.wait(), timeout=2)

        session.reset_session()
        session.mark_ready()
        release.set()

        assert await task is False
        assert session.state == SessionState.AWAITING_BASELINE
        assert session.context.baseline.is_locked is False

    @pytest.mark.asyncio
    async def test_reset_then_rearm(self, session):
        from examguard.proctor.context import SessionState

        await session.lock_baseline()
        session.reset_session()
        session.mark_ready()

        assert session.state == SessionState.AWAITING_BASELINE
        assert await session.lock_baseline() is True


class TestBackgroundLoop:
    """Tests for start()"""

    @pytest.mark.asyncio
    async def test_start_and_end(self, session):
        import asyncio

        session.surveillance.frame_interval = 0
        await session.lock_baseline()

        task = session.start()
        assert session.start() is task

        await asyncio.sleep(0.01)
        session.end_session()
        await asyncio.wait_for(task, timeout=2)

        assert session.surveillance.tick_count > 0
        assert session.surveillance.running is False

    def test_start_requires_ready_session(self):
        from examguard.proctor.errors import SessionStateError
        from examguard.proctor.session import ProctorSession

        with pytest.raises(SessionStateError):
            ProctorSession().start()
