"""Cumulative listening history: models, normalizers and the merge engine."""

from listening_stats.history.merge import MergeReport, merge_recent_plays
from listening_stats.history.models import ListeningHistory, PlayEvent, SongAggregate
from listening_stats.history.normalizers import normalize_recent_play, upgrade_history_payload

__all__ = [
    "ListeningHistory",
    "MergeReport",
    "PlayEvent",
    "SongAggregate",
    "merge_recent_plays",
    "normalize_recent_play",
    "upgrade_history_payload",
]
