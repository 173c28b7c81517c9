"""
Finding-to-control matching.
"""

from .batch_matcher import BatchMatcher, BatchMatchResult
from .match_engine import ControlMatch, MatchConfig, MatchEngine, MatchResult

__all__ = [
    'BatchMatcher',
    'BatchMatchResult',
    'ControlMatch',
    'MatchConfig',
    'MatchEngine',
    'MatchResult',
]
