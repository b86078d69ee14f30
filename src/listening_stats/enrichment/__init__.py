"""Additive metadata enrichment: previous-run carry-forward and Spotify lookups."""

from listening_stats.enrichment.adapter import EnrichmentReport, MetadataEnricher, carry_forward
from listening_stats.enrichment.carry_forward import CarryForward
from listening_stats.enrichment.fill import fill_empty, fill_release, is_unset
from listening_stats.enrichment.history import HistoryEnrichmentReport, enrich_history, has_metadata

__all__ = [
    "CarryForward",
    "EnrichmentReport",
    "HistoryEnrichmentReport",
    "MetadataEnricher",
    "carry_forward",
    "enrich_history",
    "fill_empty",
    "fill_release",
    "has_metadata",
    "is_unset",
]
