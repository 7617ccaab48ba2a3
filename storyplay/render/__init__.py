"""
Render Module - Turns presentation state into renderer input.

Drawing itself happens outside the engine; this package only produces
the element and transition lists a 2D renderer consumes.
"""

from .elements import (
    RenderElements,
    generate_render_elements,
    default_resolve_file,
)

__all__ = [
    "RenderElements",
    "generate_render_elements",
    "default_resolve_file",
]
