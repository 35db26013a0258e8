"""
Pipeline logging with verbosity levels, operation timing and run metrics.

Each long-running unit (indexing, synthesis, dialogue, evaluation) creates
its own PipelineLogger so messages carry a "[NAME]" prefix.
"""
import time
import logging
from typing import Optional, Dict, Any
from enum import Enum
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """Log verbosity levels."""
    MINIMAL = "minimal"      # Errors and fallbacks only
    STANDARD = "standard"    # Phases, results and warnings
    VERBOSE = "verbose"      # Per-item progress and metrics

    @classmethod
    def from_name(cls, name: Optional[str]) -> "LogLevel":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.STANDARD


_RANK = {
    LogLevel.MINIMAL: 0,
    LogLevel.STANDARD: 1,
    LogLevel.VERBOSE: 2,
}


class PerformanceTimer:
    """Measures one operation; logs slow runs as warnings."""

    def __init__(self, operation: str, warn_threshold_ms: float = 3000):
        self.operation = operation
        self.warn_threshold_ms = warn_threshold_ms
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        if exc_type is not None:
            logger.debug(f"✗ {self.operation} aborted after {self.elapsed_ms():.0f}ms")

    def elapsed_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return (end - self.start_time) * 1000

    @property
    def slow(self) -> bool:
        return self.elapsed_ms() > self.warn_threshold_ms


class PipelineLogger:
    """Prefixed, verbosity-gated logger that also collects metrics."""

    def __init__(self, name: str, level: LogLevel = LogLevel.STANDARD, verbose: bool = False):
        self.name = name
        self.level = LogLevel.VERBOSE if verbose else level
        self.metrics: Dict[str, Any] = {}
        self.timings: Dict[str, float] = {}

    def _enabled(self, required: LogLevel) -> bool:
        return _RANK[self.level] >= _RANK[required]

    def info(self, message: str, level: LogLevel = LogLevel.STANDARD):
        if self._enabled(level):
            logger.info(f"[{self.name}] {message}")

    def debug(self, message: str):
        if self._enabled(LogLevel.VERBOSE):
            logger.debug(f"[{self.name}] {message}")

    def warning(self, message: str, level: LogLevel = LogLevel.MINIMAL):
        if self._enabled(level):
            logger.warning(f"[{self.name}] ⚠️ {message}")

    def phase(self, message: str):
        if self._enabled(LogLevel.STANDARD):
            logger.info(f"[{self.name}] 🔄 {message}")

    def success(self, message: str):
        if self._enabled(LogLevel.STANDARD):
            logger.info(f"[{self.name}] ✅ {message}")

    def metric(self, key: str, value: Any):
        self.metrics[key] = value
        self.debug(f"📊 {key}: {value}")

    @contextmanager
    def timer(self, operation: str, warn_threshold_ms: float = 3000):
        """Time a block; the duration is kept in self.timings."""
        with PerformanceTimer(operation, warn_threshold_ms) as timer:
            yield timer

        self.timings[operation] = timer.elapsed_ms()
        if timer.slow:
            self.warning(
                f"Slow operation: {operation} took {timer.elapsed_ms():.0f}ms "
                f"(threshold: {warn_threshold_ms:.0f}ms)",
                LogLevel.STANDARD
            )
        else:
            self.debug(f"{operation} completed in {timer.elapsed_ms():.0f}ms")

    def progress(self, current: int, total: int, item_name: str = "item"):
        if self._enabled(LogLevel.VERBOSE):
            pct = (current / total * 100) if total > 0 else 0
            logger.info(f"[{self.name}] 📈 {item_name} {current}/{total} ({pct:.0f}%)")

    def retrieval_stats(self, query_preview: str, chunks_found: int,
                        rubrics_matched: int, avg_distance: Optional[float] = None):
        """Log what one retrieval produced for a learner message."""
        if chunks_found == 0:
            self.warning("Retrieval returned no chunks - evaluator turn cannot be grounded", LogLevel.STANDARD)

        msg = f"'{query_preview[:40]}': {chunks_found} chunks, {rubrics_matched} matched rubrics"
        if avg_distance is not None:
            msg += f", avg distance {avg_distance:.2f}"
        self.debug(msg)

    def concept_decision(self, concept: str, level: str, score: float,
                         evidence_count: int, fallback: bool):
        """Log the scoring outcome of one rubric concept."""
        if fallback:
            self.warning(f"{concept}: evaluation fell back to novice - model output unusable", LogLevel.STANDARD)
        self.debug(f"{concept}: {level} (score {score:.2f}, {evidence_count} evidence messages)")

    def summary(self) -> str:
        """Render collected metrics and timings."""
        lines = [f"Pipeline metrics: {self.name}"]
        lines.extend(f"  {key}: {value}" for key, value in self.metrics.items())
        lines.extend(f"  {op}: {ms:.0f}ms" for op, ms in self.timings.items())
        return "\n".join(lines)


def create_logger(name: str, level: LogLevel = LogLevel.STANDARD,
                  verbose: bool = False) -> PipelineLogger:
    """Factory function to create a PipelineLogger."""
    return PipelineLogger(name, level, verbose)
