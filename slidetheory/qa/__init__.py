"""QA validation package for SlideTheory exports.

Reads produced PPTX bytes back and checks slide count, dimensions, the
title anchor and font, optional subtitle/footnote presence, and shapes
running past the slide edge.
"""

from .validator import (
    ExportValidator,
    Issue,
    QAResult,
    slide_xml,
    validate_export,
)

__all__ = [
    "ExportValidator",
    "Issue",
    "QAResult",
    "slide_xml",
    "validate_export",
]
