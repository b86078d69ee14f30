"""Ranked projections of the listening history: rules, consolidation and the builder."""

from listening_stats.rankings.consolidation import Consolidator
from listening_stats.rankings.models import (
    AlbumSong,
    AlbumWithSongs,
    ProjectionResult,
    RankedAlbum,
    RankedArtist,
    RankedSong,
)
from listening_stats.rankings.projections import ProjectionBuilder, Projections
from listening_stats.rankings.rules import ConsolidationRule, ConsolidationRules
from listening_stats.rankings.stats import DetailedStats, DetailedStatsBuilder, build_detailed_stats

__all__ = [
    "AlbumSong",
    "AlbumWithSongs",
    "ConsolidationRule",
    "ConsolidationRules",
    "Consolidator",
    "DetailedStats",
    "DetailedStatsBuilder",
    "ProjectionBuilder",
    "ProjectionResult",
    "Projections",
    "RankedAlbum",
    "RankedArtist",
    "RankedSong",
    "build_detailed_stats",
]
