"""
Temporal Aggregation Package

Smooths per-frame classification results into a stable activity label.
"""
from .dna_aggregator import AggregatedResult, AggregationStrategy, DnaAggregator, DnaConfig

__all__ = ['AggregatedResult', 'AggregationStrategy', 'DnaAggregator', 'DnaConfig']
