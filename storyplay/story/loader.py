"""Story data loading from JSON files."""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any

from .index import StoryIndex
from .validation import validate_story


def load_story_data(path: str | Path) -> dict[str, Any]:
    """Read raw story data from a JSON file."""
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def load_story(path: str | Path, validate: bool = True) -> StoryIndex:
    """
    Load and index a story file.

    Raises StoryValidationError when validate=True and the data is malformed.
    """
    data = load_story_data(path)
    if validate:
        validate_story(data, raise_on_error=True)
    return StoryIndex.from_dict(data)
