"""
Stage 5 — Full-video sequence analysis.

Batch pipeline over one recording, run strictly in order:

    1. Extract    sample a frame every 0.5 s, detect landmarks, keep bodies
    2. Classify   fresh ``PoseClassifier`` per run (isolated smoothing window)
    3. Group      consecutive frames with the same label -> segments
    4. Clean      drop Unknown / short segments, merge same-pose gaps < 1.5 s
    5. Score      trim transitions, evaluate best frames, apex + dynamic metrics
    6. Summarize  session averages, weakest indicator, consistency, advice

Frame delivery is modelled as awaitable request/response calls
(``source.seek(t)`` then ``detector.detect(frame)``); the caller may abort
between frames through ``cancel_event``. No partial result is returned.
"""

import asyncio
import inspect
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Protocol

import numpy as np

from .classifier import PoseClassifier
from .config import THUMBNAIL_SIZE, UNKNOWN_POSE, AnalysisSettings, SequenceSettings, get_analysis_settings
from .errors import AnalysisCancelled, AnalysisError, InvalidInputError
from .evaluation import PoseEvaluator, clamp_score
from .landmarks import HIPS, SHOULDERS, mean_visibility, to_landmark_array
from .recommendation import RecommendationEngine, get_recommendation_engine, get_session_recommendation
from .references import ReferenceLibrary, get_reference_library
from .state import (
    AdvancedMetrics,
    DynamicMetrics,
    Evaluation,
    Level,
    PoseRanking,
    SegmentResult,
    SequenceAnalysis,
    SessionSummary,
)
from .utils import format_time, generate_session_feedback, level_label, std_dev, variance

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

_POWERHOUSE = [int(i) for i in SHOULDERS + HIPS]
_HIPS = [int(i) for i in HIPS]


# ============================================================================
# Collaborator protocols
# ============================================================================

class VideoSource(Protocol):
    """Seekable recording. ``seek`` resolves once the frame at *t* is ready.

    A source may also offer ``thumbnail(frame, size) -> Optional[str]``
    returning a small encoded image of a sought frame. It is optional, and a
    source without it yields segments with no key frame.
    """

    duration: float

    async def seek(self, timestamp: float) -> Any: ...


class PoseDetector(Protocol):
    """External landmark model: one frame in, 33 landmarks (or None) out."""

    async def detect(self, frame: Any) -> Optional[Any]: ...


# ============================================================================
# Working records
# ============================================================================

@dataclass
class FrameSample:
    time: float
    landmarks: np.ndarray            # (33, 4)
    visibility: float
    thumbnail: Optional[str] = None
    pose: str = UNKNOWN_POSE
    score: float = 0.0
    is_steady: bool = False


@dataclass
class Segment:
    pose: str
    start_time: float
    end_time: float
    frames: list[FrameSample] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


# ============================================================================
# Phases 3-4: grouping and cleaning (pure)
# ============================================================================

def group_into_segments(frames: list[FrameSample]) -> list[Segment]:
    """Collapse consecutive frames sharing a pose label into segments."""
    segments: list[Segment] = []
    for frame in frames:
        current = segments[-1] if segments else None
        if current is not None and current.pose == frame.pose:
            current.end_time = frame.time
            current.frames.append(frame)
        else:
            segments.append(Segment(frame.pose, frame.time, frame.time, [frame]))
    return segments


def clean_segments(
    segments: list[Segment],
    min_duration: float,
    merge_gap: float,
) -> list[Segment]:
    """Drop Unknown and short segments, then merge same-pose neighbours.

    Two segments of the same pose merge when the gap between the end of the
    first and the start of the second is below *merge_gap*. Input segments
    are not modified, and the result is stable under a second pass.
    """
    kept = [
        s for s in segments
        if s.pose != UNKNOWN_POSE and s.duration >= min_duration
    ]

    merged: list[Segment] = []
    for seg in kept:
        prev = merged[-1] if merged else None
        if prev is not None and prev.pose == seg.pose and (seg.start_time - prev.end_time) < merge_gap:
            prev.end_time = seg.end_time
            prev.frames = prev.frames + seg.frames
        else:
            merged.append(Segment(seg.pose, seg.start_time, seg.end_time, list(seg.frames)))
    return merged


# ============================================================================
# Dynamic metrics
# ============================================================================

def calculate_dynamic_metrics(
    frames: list[FrameSample],
    evaluations: list[Evaluation],
    settings: Optional[SequenceSettings] = None,
) -> DynamicMetrics:
    """Stability, endurance and fluidity of one segment (0-100 each).

    Args:
        frames: Segment frames in time order.
        evaluations: Per-frame evaluations in time order.
        settings: Gains and the endurance window.
    """
    cfg = settings or SequenceSettings()

    # Stability: positional variance of the shoulder+hip ("powerhouse") center
    stability = 100.0
    centers = np.array([f.landmarks[_POWERHOUSE, :2].mean(axis=0) for f in frames])
    if len(centers) > 1:
        spread = variance(centers[:, 0].tolist()) + variance(centers[:, 1].tolist())
        stability = clamp_score(100.0 - spread * cfg.stability_gain)

    # Endurance: score drop between the opening and closing windows
    endurance = 100.0
    if len(evaluations) > 3:
        split = max(1, int(len(evaluations) * cfg.endurance_window))
        early = np.mean([e.global_score for e in evaluations[:split]])
        late = np.mean([e.global_score for e in evaluations[-split:]])
        drop = float(early - late)
        if drop > 0:
            endurance = clamp_score(100.0 - drop * cfg.endurance_gain)

    # Fluidity: mean jerk (second difference) of the hip-center trajectory
    fluidity = 100.0
    hips = np.array([f.landmarks[_HIPS, :2].mean(axis=0) for f in frames])
    if len(hips) >= 3:
        jerk = np.linalg.norm(np.diff(hips, n=2, axis=0), axis=1)
        fluidity = clamp_score(100.0 - float(jerk.mean()) * cfg.fluidity_gain)

    return DynamicMetrics(
        stability=round(stability),
        endurance=round(endurance),
        fluidity=round(fluidity),
    )


# ============================================================================
# Analyzer
# ============================================================================

class VideoSequenceAnalyzer:
    """Runs the six-phase batch pipeline over one recording at a time."""

    def __init__(
        self,
        detector: Optional[PoseDetector],
        library: Optional[ReferenceLibrary] = None,
        settings: Optional[AnalysisSettings] = None,
        recommendations: Optional[RecommendationEngine] = None,
    ):
        self.detector = detector
        self.library = library if library is not None else get_reference_library()
        self.settings = settings or get_analysis_settings()
        self.evaluator = PoseEvaluator(self.library, self.settings.evaluator)
        self.recommendations = recommendations or get_recommendation_engine()

    @property
    def seq(self) -> SequenceSettings:
        return self.settings.sequence

    async def analyze(
        self,
        source: VideoSource,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Any] = None,
        video_name: Optional[str] = None,
    ) -> SequenceAnalysis:
        """Analyze a whole recording.

        Args:
            source: Seekable video exposing ``duration`` and ``seek``.
            on_progress: Called with 0-100 after every sampled timestamp.
            cancel_event: Object with ``is_set()``; checked before each seek.
            video_name: Echoed back in the result.

        Raises:
            AnalysisError: Missing detector/source or unreadable duration.
            AnalysisCancelled: ``cancel_event`` was set mid-run.
        """
        if self.detector is None:
            raise AnalysisError("Missing pose detector.")
        if source is None:
            raise AnalysisError("Missing video source.")
        duration = getattr(source, "duration", None)
        try:
            duration = float(duration)
        except (TypeError, ValueError):
            raise AnalysisError("Video duration unknown.") from None
        if not math.isfinite(duration) or duration <= 0:
            raise AnalysisError(f"Video duration unknown ({duration}).")

        frames = await self.extract_frames(source, duration, on_progress, cancel_event)
        logger.info("Phase 1: extracted %d frames with a body over %.1fs", len(frames), duration)

        classified = self.classify_frames(frames)
        segments = group_into_segments(classified)
        logger.info("Phase 3: %d raw segments", len(segments))

        cleaned = clean_segments(segments, self.seq.min_segment_duration, self.seq.merge_gap)
        logger.info("Phase 4: %d segments after cleaning", len(cleaned))

        sequence = [self.score_segment(seg) for seg in cleaned]
        summary = self.summarize(sequence)
        logger.info(
            "Phase 6: %d poses, session score %d (%s)",
            summary.total_poses, summary.global_score, summary.level.value,
        )
        return SequenceAnalysis(
            video_name=video_name,
            posture_sequence=sequence,
            session_summary=summary,
        )

    # ------------------------------------------------------------------
    # Phase 1: extraction
    # ------------------------------------------------------------------

    async def extract_frames(
        self,
        source: VideoSource,
        duration: float,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Any] = None,
    ) -> list[FrameSample]:
        interval = self.seq.sample_interval
        n_samples = max(1, math.ceil(duration / interval - 1e-9))
        thumbnail = getattr(source, "thumbnail", None)
        frames: list[FrameSample] = []

        for i in range(n_samples):
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled(f"Analysis cancelled at {i * interval:.1f}s.")

            t = round(i * interval, 6)
            frame = await _maybe_await(source.seek(t))
            landmarks = await self._detect(frame, t)

            if landmarks is not None:
                frames.append(FrameSample(
                    time=t,
                    landmarks=landmarks,
                    visibility=mean_visibility(landmarks),
                    thumbnail=self._thumbnail(thumbnail, frame, t),
                ))

            if on_progress is not None:
                on_progress(min(round((t + interval) / duration * 100), 100))

        return frames

    @staticmethod
    def _thumbnail(capture: Optional[Callable[..., Optional[str]]], frame: Any, t: float) -> Optional[str]:
        """Key-frame capture; a failing source only loses the image."""
        if capture is None:
            return None
        try:
            return capture(frame, THUMBNAIL_SIZE)
        except Exception as exc:
            logger.warning("Thumbnail failed on frame at %.1fs (%s), skipping", t, exc)
            return None

    async def _detect(self, frame: Any, t: float) -> Optional[np.ndarray]:
        """One detector round-trip; failures skip the frame."""
        try:
            result = self.detector.detect(frame)
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self.seq.frame_timeout)
        except asyncio.TimeoutError:
            logger.warning("Frame at %.1fs timed out, skipping", t)
            return None
        except Exception as exc:
            logger.warning("Detector failed on frame at %.1fs (%s), skipping", t, exc)
            return None

        if result is None:
            return None
        try:
            return to_landmark_array(result)
        except InvalidInputError as exc:
            logger.warning("Malformed landmarks at %.1fs (%s), skipping", t, exc)
            return None

    # ------------------------------------------------------------------
    # Phase 2: classification
    # ------------------------------------------------------------------

    def classify_frames(self, frames: list[FrameSample]) -> list[FrameSample]:
        classifier = PoseClassifier(self.library, self.settings.classifier)
        classified = []
        for frame in frames:
            result = classifier.classify(frame.landmarks)
            classified.append(replace(
                frame, pose=result.name, score=result.score, is_steady=result.is_steady,
            ))
        return classified

    # ------------------------------------------------------------------
    # Phase 5: per-segment scoring
    # ------------------------------------------------------------------

    def score_segment(self, segment: Segment) -> SegmentResult:
        cfg = self.seq
        start, end = segment.start_time, segment.end_time
        buffer = min(cfg.max_transition, segment.duration * cfg.transition_ratio)

        stable = [
            f for f in segment.frames
            if start + buffer <= f.time <= end - buffer and f.visibility > cfg.stable_visibility
        ]
        pool = stable if len(stable) > 2 else [
            f for f in segment.frames if f.visibility > cfg.fallback_visibility
        ]
        if not pool:
            logger.warning("Segment '%s' at %s has no usable frames", segment.pose, format_time(start))
            return self._empty_result(segment)

        ranked = sorted(pool, key=lambda f: f.visibility, reverse=True)
        keep = max(2, math.ceil(len(ranked) * cfg.best_frame_ratio))
        best_frames = ranked[:keep]

        scored: list[tuple[FrameSample, Evaluation]] = []
        for frame in best_frames:
            evaluation = self.evaluator.evaluate(frame.landmarks, segment.pose)
            if evaluation is not None:
                scored.append((frame, evaluation))
        if not scored:
            logger.warning("Segment '%s' at %s could not be evaluated", segment.pose, format_time(start))
            return self._empty_result(segment)

        apex_frame, apex = scored[0]
        for frame, evaluation in scored[1:]:
            if evaluation.global_score > apex.global_score:
                apex_frame, apex = frame, evaluation

        evaluations = [ev for _, ev in scored]
        avg_scores = {
            key: round(float(np.mean([ev.indicators.get(key, 0.0) for ev in evaluations])))
            for key in apex.indicators
        }

        best_conf = max(segment.frames, key=lambda f: f.score)
        in_time_order = [ev for _, ev in sorted(scored, key=lambda pair: pair[0].time)]
        dynamics = calculate_dynamic_metrics(segment.frames, in_time_order, cfg)

        feedback: list[str] = []
        for ev in evaluations:
            for line in ev.feedback:
                if line not in feedback:
                    feedback.append(line)

        return SegmentResult(
            pose=segment.pose,
            start_time=format_time(start),
            end_time=format_time(end),
            duration_sec=round(segment.duration, 1),
            confidence=round(best_conf.score, 3),
            key_frame=apex_frame.thumbnail or best_conf.thumbnail,
            global_score=round(apex.global_score),
            level=apex.level.value,
            detected_variant=apex.detected_variant,
            score=avg_scores,
            feedback=feedback[:cfg.max_feedback],
            apex_timestamp=apex_frame.time,
            dynamic_metrics=dynamics,
        )

    def _empty_result(self, segment: Segment) -> SegmentResult:
        first = segment.frames[0] if segment.frames else None
        return SegmentResult(
            pose=segment.pose,
            start_time=format_time(segment.start_time),
            end_time=format_time(segment.end_time),
            duration_sec=round(segment.duration, 1),
            key_frame=first.thumbnail if first else None,
            feedback=["Visibility too low for quality analysis."],
        )

    # ------------------------------------------------------------------
    # Phase 6: session summary
    # ------------------------------------------------------------------

    def summarize(self, sequence: list[SegmentResult]) -> SessionSummary:
        cfg = self.seq
        scored = [item for item in sequence if item.score]
        if not scored:
            return SessionSummary(
                total_poses=len(sequence),
                feedback="No poses were successfully analyzed. Ensure you are fully visible in the frame.",
                weakest_indicator="Visibility",
                recommendation=get_session_recommendation("Visibility", engine=self.recommendations),
            )

        indicator_values: dict[str, list[int]] = {}
        pose_scores: list[PoseRanking] = []
        repeats: dict[str, list[float]] = {}
        for item in scored:
            mean = float(np.mean(list(item.score.values())))
            pose_scores.append(PoseRanking(name=item.pose, score=round(mean, 1)))
            repeats.setdefault(item.pose, []).append(mean)
            for key, value in item.score.items():
                indicator_values.setdefault(key, []).append(value)

        avg_scores = {key: round(float(np.mean(vals))) for key, vals in indicator_values.items()}
        weakest = min(avg_scores, key=avg_scores.get)
        global_mean = float(np.mean(list(avg_scores.values())))

        ranked = sorted(pose_scores, key=lambda p: p.score, reverse=True)

        consistency_scores = [
            max(0.0, 100.0 - std_dev(values) * cfg.consistency_gain)
            for values in repeats.values() if len(values) > 1
        ]
        consistency = round(float(np.mean(consistency_scores))) if consistency_scores else 100

        dynamics = [item.dynamic_metrics for item in sequence]
        advanced = AdvancedMetrics(
            consistency=consistency,
            stability=round(float(np.mean([d.stability for d in dynamics]))),
            endurance=round(float(np.mean([d.endurance for d in dynamics]))),
            fluidity=round(float(np.mean([d.fluidity for d in dynamics]))),
        )

        return SessionSummary(
            scores=avg_scores,
            weakest_indicator=weakest,
            best_poses=ranked[:3],
            worst_poses=list(reversed(ranked[-3:])),
            feedback=generate_session_feedback(global_mean, weakest, avg_scores[weakest]),
            recommendation=get_session_recommendation(
                weakest, avg_scores[weakest], engine=self.recommendations,
            ),
            total_poses=len(sequence),
            global_score=round(global_mean),
            level=Level(level_label(global_mean)),
            advanced_metrics=advanced,
        )


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def analyze_video_sequence(
    source: VideoSource,
    detector: PoseDetector,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[Any] = None,
    library: Optional[ReferenceLibrary] = None,
    settings: Optional[AnalysisSettings] = None,
) -> SequenceAnalysis:
    """Convenience wrapper: build a disposable analyzer and run it once."""
    analyzer = VideoSequenceAnalyzer(detector, library=library, settings=settings)
    return await analyzer.analyze(source, on_progress=on_progress, cancel_event=cancel_event)
