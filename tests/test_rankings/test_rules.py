"""Tests for ConsolidationRules."""

import json
from pathlib import Path

from listening_stats.identity import AlbumKey
from listening_stats.rankings.rules import ConsolidationRules


def _write_rules(path: Path) -> Path:
    path.write_text(
        json.dumps(
            {
                "rules": [
                    {
                        "artistName": "Taylor Swift",
                        "baseAlbumName": "Midnights",
                        "variations": ["Midnights (3am Edition)", "Midnights (The Til Dawn Edition)"],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


def test_load_rules_file(tmp_path: Path) -> None:
    """Rules load from the JSON file format."""
    rules = ConsolidationRules.load(_write_rules(tmp_path / "rules.json"))

    assert len(rules) == 1
    assert rules.normalize_album_name("MIDNIGHTS (3am edition)", "taylor swift") == "midnights"
    assert rules.base_album_name("Midnights (The Til Dawn Edition)", "Taylor Swift") == "Midnights"


def test_album_key_applies_rules(tmp_path: Path) -> None:
    """Variant and base album share one key."""
    rules = ConsolidationRules.load(_write_rules(tmp_path / "rules.json"))

    assert rules.album_key("Midnights (3am Edition)", "Taylor Swift") == AlbumKey("midnights", "taylor swift")
    assert rules.album_key("Midnights", "Taylor Swift") == rules.album_key("Midnights (3am Edition)", "Taylor Swift")


def test_unmatched_album_keeps_its_name() -> None:
    """Albums without a rule are only normalized."""
    rules = ConsolidationRules()

    assert rules.normalize_album_name("  Folklore ", "Taylor Swift") == "folklore"
    assert rules.base_album_name("Folklore", "Taylor Swift") is None


def test_missing_rules_file(tmp_path: Path) -> None:
    """A missing file yields an empty rule set."""
    assert len(ConsolidationRules.load(tmp_path / "nope.json")) == 0
    assert len(ConsolidationRules.load(None)) == 0


def test_invalid_rules_file(tmp_path: Path) -> None:
    """An unreadable file is logged and ignored."""
    path = tmp_path / "rules.json"
    path.write_text("{not json", encoding="utf-8")

    assert len(ConsolidationRules.load(path)) == 0
