"""
Surveillance Loop - Per-frame orchestration of the detection bank

One tick:
1. Stop for good if the session has ended.
2. Read a frame and compute its embedding (skip the tick if either is unavailable).
3. Fast path: identity check against the baseline, every tick.
4. Slow batch: objects, faces and landmarks, at most once per interval.
5. Forward incidents to the ledger.

Missing frames and failing model calls are transient gaps: the tick is
skipped (or the affected detector is), never the loop. A session that is
reset while a tick awaits its models gets nothing from that tick.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from .capabilities import CapabilitySet, resolve
from .context import MonitoringContext
from .detectors.bank import DetectionBank, DetectionSnapshot
from .detectors.base import DetectionState
from .ledger import Incident, Violation, monotonic_ms

logger = logging.getLogger(__name__)


class FastPath:
    """Schedule for work done on every tick."""

    def due(self, state: DetectionState, now: float) -> bool:
        return True

    def mark(self, state: DetectionState, now: float):
        pass


class SlowBatch:
    """Schedule for the throttled detector batch, timed by state.slow_pass."""

    def due(self, state: DetectionState, now: float) -> bool:
        return state.slow_pass.ready(now)

    def mark(self, state: DetectionState, now: float):
        state.slow_pass.fire(now)


class SurveillanceLoop:
    """
    Drives ticks against a MonitoringContext.

    Ticks are non-reentrant: a tick requested while another is still
    awaiting its model calls is rejected with reason "busy". Cancellation
    is cooperative and checked between ticks.
    """

    DEFAULT_TICK_RATE_HZ = 60

    def __init__(
        self,
        capabilities: CapabilitySet,
        bank: DetectionBank,
        tick_rate_hz: float = DEFAULT_TICK_RATE_HZ,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            capabilities: Frame source and models
            bank: Detectors to evaluate
            tick_rate_hz: Background loop cadence
            clock: Monotonic milliseconds
        """
        self.capabilities = capabilities
        self.bank = bank
        self.frame_interval = 1.0 / tick_rate_hz if tick_rate_hz > 0 else 0.0
        self._clock = clock or monotonic_ms

        self.fast_path = FastPath()
        self.slow_batch = SlowBatch()

        self._in_tick = False
        self._run_token: Optional[object] = None
        self.running = False
        self.tick_count = 0

    # ============== Scheduling ==============

    async def run(self, ctx: MonitoringContext):
        """Tick at the configured cadence until stopped or the session ends."""
        # A newer run() or stop() replaces the token; the old run exits between ticks
        token = object()
        self._run_token = token
        self.running = True
        logger.info(f"Surveillance loop started for session {ctx.session_id}")

        try:
            while self._run_token is token and not ctx.ended:
                try:
                    await self.tick(ctx)
                except Exception as e:
                    logger.exception(f"Surveillance tick failed: {e}")
                await asyncio.sleep(self.frame_interval)
        finally:
            if self._run_token is token:
                self._run_token = None
                self.running = False
            logger.info(f"Surveillance loop stopped for session {ctx.session_id}")

    def stop(self):
        """Request the loop to exit before its next tick"""
        self._run_token = None
        self.running = False

    # ============== Tick ==============

    async def tick(self, ctx: MonitoringContext) -> Dict[str, Any]:
        """
        Run one surveillance tick.

        Returns:
            dict with processed, reason (when skipped), scored, match_score,
            similarity, strikes, slow_pass, detections and violations
            (the Violation entries recorded during this tick)
        """
        if ctx.ended:
            return self._skipped(ctx, "session_ended")

        if self._in_tick:
            return self._skipped(ctx, "busy")

        self._in_tick = True
        try:
            return await self._run_tick(ctx)
        finally:
            self._in_tick = False

    async def _run_tick(self, ctx: MonitoringContext) -> Dict[str, Any]:
        caps = self.capabilities
        generation = ctx.generation

        if caps.frame_source is None or caps.embedding_model is None:
            return self._skipped(ctx, "capabilities_unavailable")

        try:
            frame = caps.frame_source.read()
        except Exception as e:
            logger.debug(f"Frame read failed: {e}")
            return self._skipped(ctx, "frame_unavailable")

        if frame is None:
            return self._skipped(ctx, "frame_unavailable")

        try:
            embedding = await resolve(caps.embedding_model.predict(frame))
        except Exception as e:
            logger.debug(f"Embedding unavailable this tick: {e}")
            return self._skipped(ctx, "embedding_unavailable")

        if ctx.stale(generation):
            return self._skipped(ctx, self._stale_reason(ctx))

        self.tick_count += 1
        baseline = ctx.baseline.current()

        result = {
            "processed": True,
            "reason": None,
            "scored": False,
            "match_score": ctx.match_score,
            "similarity": None,
            "strikes": ctx.detection.mismatch_strikes,
            "slow_pass": False,
            "detections": {},
            "violations": []
        }

        # No baseline yet: degraded mode, nothing is scored or flagged
        if baseline is None:
            return result

        now = self._clock()
        recorded: List[Violation] = []

        if self.fast_path.due(ctx.detection, now):
            identity = self.bank.run_identity(ctx.detection, baseline, embedding, now)
            if identity is not None:
                ctx.last_similarity = identity["similarity"]
                ctx.match_score = identity["match_score"]
                result["scored"] = True
                result["similarity"] = identity["similarity"]
                result["strikes"] = identity["strikes"]
                self._record(ctx, identity["incident"], recorded)

        if self.slow_batch.due(ctx.detection, now):
            snapshot = await self._gather_snapshot(frame)

            # Reset while the models ran: nothing from this tick belongs to the new session
            if ctx.generation != generation:
                return self._skipped(ctx, "session_reset")

            if not ctx.ended:
                batch = self.bank.run_slow_batch(ctx.detection, snapshot, now)
                for incident in batch.incidents:
                    self._record(ctx, incident, recorded)
                result["detections"] = batch.results
                self.slow_batch.mark(ctx.detection, now)
                result["slow_pass"] = True

        result["match_score"] = ctx.match_score
        result["violations"] = recorded
        return result

    async def _gather_snapshot(self, frame: Any) -> DetectionSnapshot:
        """Await the three slow-batch models together; failures become None."""
        caps = self.capabilities

        async def _call(capability: Any, method: str) -> Any:
            if capability is None:
                return None
            return await resolve(getattr(capability, method)(frame))

        names = ("objects", "faces", "landmarks")
        results = await asyncio.gather(
            _call(caps.object_detector, "detect"),
            _call(caps.face_detector, "estimate_faces"),
            _call(caps.landmark_detector, "estimate_faces"),
            return_exceptions=True
        )

        values: Dict[str, Any] = {}
        for name, value in zip(names, results):
            if isinstance(value, Exception):
                logger.debug(f"No {name} this tick: {value}")
                value = None
            values[name] = value

        return DetectionSnapshot(**values)

    def _record(self, ctx: MonitoringContext, incident: Optional[Incident], recorded: List[Violation]):
        if incident is None or ctx.ended:
            return
        violation = ctx.ledger.record(incident)
        if violation is not None:
            recorded.append(violation)

    def _stale_reason(self, ctx: MonitoringContext) -> str:
        return "session_ended" if ctx.ended else "session_reset"

    def _skipped(self, ctx: MonitoringContext, reason: str) -> Dict[str, Any]:
        return {
            "processed": False,
            "reason": reason,
            "scored": False,
            "match_score": ctx.match_score,
            "similarity": None,
            "strikes": ctx.detection.mismatch_strikes,
            "slow_pass": False,
            "detections": {},
            "violations": []
        }
