"""Fill-only field updates shared by carry-forward and API enrichment."""

import copy
from typing import Any

from pydantic import BaseModel

from listening_stats.rankings.models import AlbumInfo, Followers


def is_unset(value: Any) -> bool:
    """Whether a descriptive field still holds its empty value.

    Numeric zero counts as unset (popularity ``0`` is a placeholder).
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return value == 0
    if isinstance(value, str | list | dict):
        return len(value) == 0
    if isinstance(value, Followers):
        return value.total == 0
    return False


def fill_empty(target: BaseModel, **values: Any) -> list[str]:
    """Copy each value onto ``target`` only where the target field is unset.

    Returns the names of the fields that were filled.
    """
    filled = []
    for name, value in values.items():
        if is_unset(getattr(target, name)) and not is_unset(value):
            setattr(target, name, copy.deepcopy(value))
            filled.append(name)
    return filled


def fill_release(
    album: AlbumInfo,
    release_date: str | None,
    release_date_precision: str | None,
    album_type: str | None,
) -> bool:
    """Fill the release date; type and precision are placeholders until a date is known."""
    if album.release_date or not release_date:
        return False
    album.release_date = release_date
    if release_date_precision:
        album.release_date_precision = release_date_precision
    if album_type:
        album.album_type = album_type
    return True
