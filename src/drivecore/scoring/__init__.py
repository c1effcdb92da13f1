"""
Scoring module - Drift scoring.

This module contains:
- DriftScorer: Points, bonuses, combo and banking for drifts
"""

from drivecore.scoring.drift_scorer import DriftScorer, ScoringConfig

__all__ = [
    "DriftScorer",
    "ScoringConfig",
]
