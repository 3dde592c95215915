"""Tests for pipeline latency tracking."""

import pytest

from activity_dna.monitoring import STAGES, LatencyTracker


class TestLatencyTracker:

    def test_empty_stats(self):
        tracker = LatencyTracker()

        stats = tracker.get_current_stats()

        assert stats['sample_count'] == 0
        assert stats['compliance_rate'] == 1.0
        assert tracker.is_within_target()

    def test_step_records_every_stage(self):
        tracker = LatencyTracker(target_ms=1000)

        tracker.start_step()
        for stage in STAGES:
            assert tracker.mark_stage(stage) >= 0
        timings = tracker.end_step()

        assert set(timings) == {'feature_extraction_ms', 'inference_ms', 'aggregation_ms', 'total_ms', 'within_target'}
        assert timings['within_target']
        assert tracker.get_current_stats()['sample_count'] == 1
        assert set(tracker.get_breakdown_stats()) == set(STAGES) | {'total'}

    def test_missing_stage_counts_as_zero(self):
        tracker = LatencyTracker()

        tracker.start_step()
        tracker.mark_stage('feature_extraction')
        tracker.end_step()

        assert tracker.get_latest()['aggregation_ms'] == 0.0

    def test_exceeding_target_lowers_compliance(self):
        tracker = LatencyTracker(target_ms=-1)

        tracker.start_step()
        tracker.mark_stage('inference')
        timings = tracker.end_step()

        assert not timings['within_target']
        assert not tracker.is_within_target()
        assert tracker.get_current_stats()['compliance_rate'] == 0.0

    def test_mark_without_start_raises(self):
        with pytest.raises(RuntimeError):
            LatencyTracker().mark_stage('inference')

    def test_history_is_bounded(self):
        tracker = LatencyTracker(history_size=3)
        for _ in range(5):
            tracker.start_step()
            tracker.end_step()

        assert tracker.get_current_stats()['sample_count'] == 3

        tracker.reset()
        assert tracker.get_current_stats()['sample_count'] == 0
