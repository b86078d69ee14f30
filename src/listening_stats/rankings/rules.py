"""Album consolidation rules: map edition variants onto a base album."""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from listening_stats.constants import UNKNOWN_ARTIST
from listening_stats.identity import AlbumKey, normalize

logger = logging.getLogger(__name__)


class ConsolidationRule(BaseModel):
    """All ``variations`` of an artist's album are grouped under ``base_album_name``."""

    model_config = {"populate_by_name": True}

    artist_name: str = Field(alias="artistName")
    base_album_name: str = Field(alias="baseAlbumName")
    variations: list[str] = Field(default_factory=list)


class ConsolidationRulesFile(BaseModel):
    rules: list[ConsolidationRule] = Field(default_factory=list)


class ConsolidationRules:
    """Lookup table built from a list of rules.

    An empty rule set is valid: every album then groups under its own
    normalized name.
    """

    def __init__(self, rules: list[ConsolidationRule] | None = None) -> None:
        self.rules = list(rules or [])
        # (artist, variation) -> normalized base name
        self._variations: dict[tuple[str, str], str] = {}
        # (artist, normalized base name) -> base name as written in the rule
        self._base_names: dict[tuple[str, str], str] = {}

        for rule in self.rules:
            artist = normalize(rule.artist_name)
            base = normalize(rule.base_album_name)
            for variation in rule.variations:
                self._variations[(artist, normalize(variation))] = base
            self._variations[(artist, base)] = base
            self._base_names.setdefault((artist, base), rule.base_album_name)

    @classmethod
    def load(cls, path: Path | None) -> "ConsolidationRules":
        """Load rules from a JSON file. A missing or unreadable file yields no rules."""
        if path is None:
            return cls()
        if not path.exists():
            logger.info("No consolidation rules file found at %s", path)
            return cls()
        try:
            data = ConsolidationRulesFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Failed to load consolidation rules from %s: %s", path, exc)
            return cls()
        logger.info("Loaded %d consolidation rules", len(data.rules))
        return cls(data.rules)

    def normalize_album_name(self, album_name: str, artist_name: str | None) -> str:
        """Normalized album name with any matching rule applied."""
        normalized = normalize(album_name)
        return self._variations.get((normalize(artist_name), normalized), normalized)

    def base_album_name(self, album_name: str, artist_name: str | None) -> str | None:
        """The rule's base album name (original casing) if a rule covers this album."""
        normalized = self.normalize_album_name(album_name, artist_name)
        return self._base_names.get((normalize(artist_name), normalized))

    def album_key(self, album_name: str, first_artist: str | None) -> AlbumKey:
        artist = first_artist or UNKNOWN_ARTIST
        return AlbumKey(self.normalize_album_name(album_name, artist), normalize(artist))

    def __len__(self) -> int:
        return len(self.rules)
