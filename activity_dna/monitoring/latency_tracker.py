"""
Latency-Aware Pipeline Monitoring

This module tracks how long each recognition step takes:
- Feature extraction time
- Classifier inference and fusion time
- Temporal aggregation time
- Total step time

One step is expected to finish well inside a sensor window hop.
"""
import statistics
import time
from collections import deque
from typing import Any, Deque, Dict, Optional

from config import LATENCY_HISTORY_SIZE, TARGET_LATENCY_MS

STAGES = ('feature_extraction', 'inference', 'aggregation')


class LatencyTracker:
    """
    Tracks latency metrics for the recognition pipeline.

    Attributes:
        target_latency_ms: Target maximum latency of one step
        history_size: Number of recent readings kept per stage
    """

    def __init__(self, history_size: int = LATENCY_HISTORY_SIZE, target_ms: float = TARGET_LATENCY_MS):
        """
        Initialize the latency tracker.

        Args:
            history_size: Number of readings to keep for statistics
            target_ms: Target latency in milliseconds
        """
        self.target_latency_ms = target_ms
        self.history_size = history_size

        self._stage_history: Dict[str, Deque[float]] = {
            stage: deque(maxlen=history_size) for stage in STAGES
        }
        self._total_history: Deque[float] = deque(maxlen=history_size)

        # Timing state of the step being measured
        self._last_mark: Optional[float] = None
        self._stage_times: Dict[str, float] = {}

        self._exceeded_count = 0
        self._total_count = 0

    def start_step(self) -> None:
        """Start timing a new pipeline step."""
        self._last_mark = time.perf_counter()
        self._stage_times = {}

    def mark_stage(self, stage: str) -> float:
        """
        Mark the completion of a stage.

        Args:
            stage: Name of the completed stage

        Returns:
            Milliseconds since the previous mark (or start_step)
        """
        if self._last_mark is None:
            raise RuntimeError("start_step() must be called before mark_stage()")

        current = time.perf_counter()
        elapsed = (current - self._last_mark) * 1000
        self._last_mark = current
        self._stage_times[stage] = elapsed
        return elapsed

    def end_step(self) -> Dict[str, Any]:
        """
        Record the stages marked since start_step().

        Stages that were not reached count as 0 ms.

        Returns:
            Dictionary with per-stage and total timings
        """
        timings = {stage: self._stage_times.get(stage, 0.0) for stage in STAGES}
        total_ms = sum(timings.values())

        for stage, elapsed in timings.items():
            self._stage_history[stage].append(elapsed)
        self._total_history.append(total_ms)

        self._total_count += 1
        if total_ms > self.target_latency_ms:
            self._exceeded_count += 1

        self._last_mark = None

        result = {f'{stage}_ms': round(elapsed, 2) for stage, elapsed in timings.items()}
        result['total_ms'] = round(total_ms, 2)
        result['within_target'] = total_ms <= self.target_latency_ms
        return result

    def get_current_stats(self) -> Dict[str, Any]:
        """
        Get current latency statistics.

        Returns:
            Dictionary with mean, median, max, and compliance metrics
        """
        if not self._total_history:
            return {
                'mean_total_ms': 0.0,
                'median_total_ms': 0.0,
                'max_total_ms': 0.0,
                'min_total_ms': 0.0,
                'target_ms': self.target_latency_ms,
                'compliance_rate': 1.0,
                'sample_count': 0
            }

        totals = list(self._total_history)

        return {
            'mean_total_ms': round(statistics.mean(totals), 2),
            'median_total_ms': round(statistics.median(totals), 2),
            'max_total_ms': round(max(totals), 2),
            'min_total_ms': round(min(totals), 2),
            'target_ms': self.target_latency_ms,
            'compliance_rate': round(1 - (self._exceeded_count / max(1, self._total_count)), 4),
            'sample_count': len(totals)
        }

    def get_breakdown_stats(self) -> Dict[str, Dict[str, float]]:
        """Get mean/median/max per pipeline stage and for the total."""
        def calc_stats(values: Deque[float]) -> Dict[str, float]:
            if not values:
                return {'mean': 0.0, 'median': 0.0, 'max': 0.0}
            vals = list(values)
            return {
                'mean': round(statistics.mean(vals), 2),
                'median': round(statistics.median(vals), 2),
                'max': round(max(vals), 2)
            }

        breakdown = {stage: calc_stats(history) for stage, history in self._stage_history.items()}
        breakdown['total'] = calc_stats(self._total_history)
        return breakdown

    def get_latest(self) -> Dict[str, float]:
        latest = {
            f'{stage}_ms': history[-1] if history else 0.0
            for stage, history in self._stage_history.items()
        }
        latest['total_ms'] = self._total_history[-1] if self._total_history else 0.0
        return latest

    def is_within_target(self) -> bool:
        """True if the latest step met the target (or nothing was measured)."""
        if not self._total_history:
            return True
        return self._total_history[-1] <= self.target_latency_ms

    def reset(self) -> None:
        for history in self._stage_history.values():
            history.clear()
        self._total_history.clear()
        self._last_mark = None
        self._stage_times = {}
        self._exceeded_count = 0
        self._total_count = 0
