"""
DNA Temporal Aggregator

Frame-by-frame predictions flicker. The aggregator keeps a bounded history
of recent classification results and turns it into one smoothed label,
together with a stability flag telling consumers when that label has held
for long enough to act on.

Strategies:
- MAJORITY_VOTE: most frequent label in the history
- WEIGHTED_AVERAGE: mean probability of each label over the history
- RECENT_WEIGHTED: exponentially decayed average favouring new results
- CONFIDENCE_THRESHOLD: newest sufficiently confident result
"""
import dataclasses
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from config import (
    DNA_CONFIDENCE_THRESHOLD,
    DNA_HISTORY_SIZE,
    DNA_MIN_SAMPLES,
    DNA_RECENCY_DECAY,
    DNA_STABILITY_THRESHOLD,
    UNKNOWN_LABEL
)
from activity_dna.buffers import RingBuffer
from activity_dna.ml.sensor_classifier import ClassificationResult

logger = logging.getLogger(__name__)


class AggregationStrategy(Enum):
    MAJORITY_VOTE = 'majority_vote'
    WEIGHTED_AVERAGE = 'weighted_average'
    RECENT_WEIGHTED = 'recent_weighted'
    CONFIDENCE_THRESHOLD = 'confidence_threshold'


@dataclass(frozen=True)
class DnaConfig:
    history_size: int = DNA_HISTORY_SIZE
    strategy: AggregationStrategy = AggregationStrategy.RECENT_WEIGHTED
    confidence_threshold: float = DNA_CONFIDENCE_THRESHOLD
    stability_threshold: int = DNA_STABILITY_THRESHOLD
    min_samples_for_aggregation: int = DNA_MIN_SAMPLES
    recency_decay: float = DNA_RECENCY_DECAY


@dataclass(frozen=True)
class AggregatedResult:
    label: str
    confidence: float
    strategy: AggregationStrategy
    distribution: Dict[str, float]
    sample_count: int
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def empty(cls) -> 'AggregatedResult':
        """Sentinel for "no data yet"."""
        return cls(
            label=UNKNOWN_LABEL,
            confidence=0.0,
            strategy=AggregationStrategy.MAJORITY_VOTE,
            distribution={},
            sample_count=0
        )

    def is_valid(self) -> bool:
        return self.confidence > 0 and self.sample_count > 0


class DnaAggregator:
    """
    Smooths a stream of classification results into a stable label.

    Stability is a run-length over incoming results: every result whose
    label equals the previous one extends the run, any other label starts
    a new run of length 1. The aggregator is stable while the run is at
    least stability_threshold long.

    Not thread-safe; one owner feeds results and reads the state.
    """

    def __init__(self, config: Optional[DnaConfig] = None):
        self.config = config or DnaConfig()
        if self.config.stability_threshold < 1:
            raise ValueError("stability_threshold must be at least 1")

        self._history: RingBuffer[ClassificationResult] = RingBuffer(self.config.history_size)
        self._aggregated_result: Optional[AggregatedResult] = None
        self._run_label: Optional[str] = None
        self._stability_count = 0
        self._subscribers: List[Callable[[AggregatedResult], None]] = []

    @property
    def aggregated_result(self) -> Optional[AggregatedResult]:
        """Aggregate computed by the last add_result(), None after reset."""
        return self._aggregated_result

    @property
    def stability_count(self) -> int:
        return self._stability_count

    def add_result(self, result: ClassificationResult) -> AggregatedResult:
        """
        Record a new classification result.

        Args:
            result: Latest per-frame (or fused) classification

        Returns:
            The recomputed aggregate
        """
        self._history.push(result)

        aggregated = self.aggregate()
        self._aggregated_result = aggregated

        self._update_stability(result.label)

        for callback in list(self._subscribers):
            callback(aggregated)

        return aggregated

    def aggregate(self) -> AggregatedResult:
        """Aggregate the current history with the configured strategy."""
        if self._history.is_empty:
            return AggregatedResult.empty()

        strategies = {
            AggregationStrategy.MAJORITY_VOTE: self._aggregate_majority_vote,
            AggregationStrategy.WEIGHTED_AVERAGE: self._aggregate_weighted_average,
            AggregationStrategy.RECENT_WEIGHTED: self._aggregate_recent_weighted,
            AggregationStrategy.CONFIDENCE_THRESHOLD: self._aggregate_confidence_threshold,
        }
        return strategies[self.config.strategy]()

    def _aggregate_majority_vote(self) -> AggregatedResult:
        labels = [result.label for result in self._history]

        # most_common keeps first-seen order among equal counts
        counts = Counter(labels)
        winner, votes = counts.most_common(1)[0]

        return AggregatedResult(
            label=winner,
            confidence=votes / len(labels),
            strategy=AggregationStrategy.MAJORITY_VOTE,
            distribution={label: count / len(labels) for label, count in counts.items()},
            sample_count=len(labels)
        )

    def _aggregate_weighted_average(self) -> AggregatedResult:
        results = self._history.to_list()
        distribution = self._weighted_distribution(results, [1.0] * len(results))
        return self._from_distribution(distribution, AggregationStrategy.WEIGHTED_AVERAGE, len(results))

    def _aggregate_recent_weighted(self) -> AggregatedResult:
        results = self._history.to_list()
        newest = len(results) - 1
        weights = [self.config.recency_decay ** (newest - index) for index in range(len(results))]
        distribution = self._weighted_distribution(results, weights)
        return self._from_distribution(distribution, AggregationStrategy.RECENT_WEIGHTED, len(results))

    def _aggregate_confidence_threshold(self) -> AggregatedResult:
        results = self._history.to_list()

        for result in reversed(results):
            if result.confidence >= self.config.confidence_threshold:
                return AggregatedResult(
                    label=result.label,
                    confidence=result.confidence,
                    strategy=AggregationStrategy.CONFIDENCE_THRESHOLD,
                    distribution=dict(result.probabilities),
                    sample_count=len(results)
                )

        return dataclasses.replace(
            self._aggregate_majority_vote(),
            strategy=AggregationStrategy.CONFIDENCE_THRESHOLD
        )

    @staticmethod
    def _weighted_distribution(results: List[ClassificationResult], weights: List[float]) -> Dict[str, float]:
        """Weighted mean of each label's probability; absent labels count as 0."""
        distribution: Dict[str, float] = {}
        for result, weight in zip(results, weights):
            for label, probability in result.probabilities.items():
                distribution[label] = distribution.get(label, 0.0) + probability * weight

        total_weight = sum(weights)
        if total_weight > 0:
            distribution = {label: value / total_weight for label, value in distribution.items()}
        return distribution

    @staticmethod
    def _from_distribution(
        distribution: Dict[str, float],
        strategy: AggregationStrategy,
        sample_count: int
    ) -> AggregatedResult:
        if not distribution:
            return dataclasses.replace(AggregatedResult.empty(), strategy=strategy, sample_count=sample_count)

        winner = max(distribution, key=distribution.get)
        return AggregatedResult(
            label=winner,
            confidence=distribution[winner],
            strategy=strategy,
            distribution=distribution,
            sample_count=sample_count
        )

    def _update_stability(self, label: str) -> None:
        was_stable = self.is_stable()

        if label == self._run_label:
            self._stability_count += 1
        else:
            self._run_label = label
            self._stability_count = 1

        if self.is_stable() and not was_stable:
            logger.debug("Label '%s' became stable after %d results", label, self._stability_count)

    def is_stable(self) -> bool:
        return self._stability_count >= self.config.stability_threshold

    def get_stable_label(self) -> Optional[str]:
        """
        Return the stable label, or None.

        The run of incoming labels must have reached the threshold and the
        current aggregate must agree with it.
        """
        if not self.is_stable() or self._aggregated_result is None:
            return None
        if self._aggregated_result.label != self._run_label:
            return None
        return self._aggregated_result.label

    def has_enough_data(self) -> bool:
        return self._history.size >= self.config.min_samples_for_aggregation

    def get_history_size(self) -> int:
        return self._history.size

    def subscribe(self, callback: Callable[[AggregatedResult], None]) -> Callable[[], None]:
        """
        Register a callback invoked with every new aggregate.

        Callbacks run synchronously inside add_result().

        Returns:
            Function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def reset(self) -> None:
        """Clear history, cached aggregate and stability state."""
        self._history.clear()
        self._aggregated_result = None
        self._run_label = None
        self._stability_count = 0
