"""Slide schema package - typed models shared across the export pipeline.

Provides the contract between the input normalizer, the archetype renderers
and the document writer:

- models.py: Core dataclasses (ArchetypeId, TemplateProps, DesignSystem, etc.)
- design_system.py: Font roles, density scaling, value text formatting
- loader.py: YAML loading for export requests and design overrides
"""

from .design_system import (
    FontRole,
    base_font,
    format_delta,
    format_metric_value,
    format_plain,
    resolve_font,
    to_number,
)
from .loader import load_design, load_request, save_request
from .models import (
    PNG_MIME_TYPE,
    PPTX_MIME_TYPE,
    ArchetypeId,
    Density,
    DesignSystem,
    ExportArtifact,
    ExportRequest,
    FontSpec,
    Metric,
    ParsedTabularData,
    Position,
    Region,
    StructuredSlideContent,
    TemplateProps,
)

__all__ = [
    # Models
    "ArchetypeId",
    "Density",
    "DesignSystem",
    "ExportArtifact",
    "ExportRequest",
    "FontSpec",
    "Metric",
    "ParsedTabularData",
    "Position",
    "Region",
    "StructuredSlideContent",
    "TemplateProps",
    "PNG_MIME_TYPE",
    "PPTX_MIME_TYPE",
    # Loader
    "load_design",
    "load_request",
    "save_request",
    # Styling
    "FontRole",
    "base_font",
    "resolve_font",
    # Formatting
    "format_delta",
    "format_metric_value",
    "format_plain",
    "to_number",
]
