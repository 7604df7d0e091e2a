"""Slide generator package - archetype rendering, PPTX writing, snapshots.

Modules:
    canvas: Format-neutral slide drawing surface
    geometry: Anchor regions, density scaling, grid placement
    archetypes: Archetype renderer registry
    pptx_builder: PPTX document writer
    snapshot: PNG snapshot and clipboard export
"""

from .archetypes import RENDERERS, render
from .canvas import SlideCanvas
from .geometry import SlideGeometry, grid_cell, resolve_geometry
from .pptx_builder import (
    PPTXBuilder,
    build_image_deck,
    export_slide,
    finalize,
    prepare_image,
)
from .snapshot import CanvasSurface, copy_to_clipboard, export_snapshot, snapshot

__all__ = [
    "RENDERERS",
    "render",
    "SlideCanvas",
    "SlideGeometry",
    "grid_cell",
    "resolve_geometry",
    "PPTXBuilder",
    "build_image_deck",
    "export_slide",
    "finalize",
    "prepare_image",
    "CanvasSurface",
    "copy_to_clipboard",
    "export_snapshot",
    "snapshot",
]
