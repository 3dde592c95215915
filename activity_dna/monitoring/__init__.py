"""
Monitoring Package - Latency and Performance Tracking
"""
from .latency_tracker import STAGES, LatencyTracker

__all__ = ['STAGES', 'LatencyTracker']
