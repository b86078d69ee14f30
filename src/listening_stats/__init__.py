"""Spotify listening history merge, consolidation and ranking pipeline."""

__version__ = "0.1.0"
