"""
Story Module - Static story data.

The story graph (scenes -> sections -> steps) plus presets, resources and
UI screens is loaded once and treated as read-only for a play session.
"""

from .index import StoryIndex, Scene, Section, Step, AutoNext, InitialIds
from .validation import validate_story, ValidationResult
from .loader import load_story, load_story_data

__all__ = [
    "StoryIndex",
    "Scene",
    "Section",
    "Step",
    "AutoNext",
    "InitialIds",
    "validate_story",
    "ValidationResult",
    "load_story",
    "load_story_data",
]
