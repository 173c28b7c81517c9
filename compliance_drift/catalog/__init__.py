"""
Control catalog and topic tagging.
"""

from .control_catalog import CatalogCandidate, ControlCatalog
from .topic_tagger import ControlTopic, TopicTagger

__all__ = [
    'CatalogCandidate',
    'ControlCatalog',
    'ControlTopic',
    'TopicTagger',
]
