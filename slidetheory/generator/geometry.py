"""Geometry & style resolver.

Computes, for an (archetype, props) pair, the anchor regions every slide
shares (title, subtitle, body, footnote), the archetype's body offset, and
the density-scaled fonts and vertical steps the renderers use.  Renderers
think in design inches on a 10in x 5.625in grid; everything they hand to the
canvas goes through ``SlideGeometry.box`` / ``point`` and is stored as
fractions of the slide.

Usage::

    geo = resolve_geometry(ArchetypeId.KPI_DASHBOARD, props)
    region = geo.box(0.5, geo.body_top, 3.0, 1.0)
"""

from dataclasses import dataclass, field, replace

from slidetheory.schema.design_system import (
    FontRole,
    base_font,
    font_scale,
    spacing_scale,
)
from slidetheory.schema.models import (
    ArchetypeId,
    DesignSystem,
    Density,
    FontSpec,
    Region,
    TemplateProps,
)


# Extra drop (inches) below the shared content start, per archetype
BODY_OFFSETS_IN = {
    ArchetypeId.KPI_DASHBOARD: 0.3,
    ArchetypeId.PROCESS_FLOW: 0.5,
    ArchetypeId.WATERFALL_CHART: 0.5,
    ArchetypeId.TREND_LINE: 0.3,
    ArchetypeId.STACKED_BAR: 0.5,
    ArchetypeId.ISSUE_TREE: 0.3,
    ArchetypeId.DECISION_TREE: 0.3,
    ArchetypeId.MARKET_SIZING: 0.5,
    ArchetypeId.COMPETITIVE_LANDSCAPE: 0.3,
    ArchetypeId.AGENDA_DIVIDER: 0.5,
}

SUBTITLE_H_IN = 0.35
FOOTNOTE_OFFSET_IN = 0.3    # footnote top, measured up from the bottom edge
FOOTNOTE_W_IN = 6.0
FOOTNOTE_H_IN = 0.2


# ---------------------------------------------------------------------------
# Grid placement
# ---------------------------------------------------------------------------

def grid_cell(index: int, columns: int, left: float, top: float,
              cell_width: float, cell_height: float,
              gap_x: float = 0.0, gap_y: float = 0.0) -> tuple[float, float]:
    """Top-left corner of item ``index`` in a fixed-column grid.

    Column is ``index % columns`` and row ``index // columns``. Rows keep
    growing downward; nothing is clipped.
    """
    if columns < 1:
        raise ValueError(f"columns must be >= 1, got {columns}")
    col = index % columns
    row = index // columns
    return (left + col * (cell_width + gap_x),
            top + row * (cell_height + gap_y))


# ---------------------------------------------------------------------------
# SlideGeometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnchorRegions:
    """Shared slide regions, as fractions of the slide."""
    title: Region
    subtitle: Region | None
    body: Region
    footnote: Region


@dataclass(frozen=True)
class SlideGeometry:
    """Resolved layout and style context for one render."""
    archetype: ArchetypeId
    density: Density
    anchors: AnchorRegions
    body_top: float                      # inches
    design: DesignSystem = field(default_factory=DesignSystem, compare=False)

    @property
    def font_scale(self) -> float:
        return font_scale(self.density)

    @property
    def spacing_scale(self) -> float:
        return spacing_scale(self.density)

    @property
    def slide_width(self) -> float:
        return self.design.slide_width_in

    @property
    def slide_height(self) -> float:
        return self.design.slide_height_in

    @property
    def padding_x(self) -> float:
        return self.design.padding_x_in

    @property
    def content_width(self) -> float:
        return self.design.content_width_in

    def box(self, x: float, y: float, w: float, h: float) -> Region:
        """Convert a design-inch rectangle to a slide-relative Region."""
        return Region.from_inches(x, y, w, h, self.slide_width,
                                  self.slide_height)

    def point(self, x: float, y: float) -> tuple[float, float]:
        return (x / self.slide_width, y / self.slide_height)

    def step(self, inches: float) -> float:
        """Scale a vertical step by the density spacing factor."""
        return inches * self.spacing_scale

    def font(self, role: FontRole, **overrides) -> FontSpec:
        """Font for a role with optional overrides, scaled for density."""
        spec = base_font(role, self.design)
        if overrides:
            spec = replace(spec, **overrides)
        return spec.scaled(self.font_scale)

    def color(self, name: str) -> str:
        return getattr(self.design, name)


def anchor_regions(design: DesignSystem, has_subtitle: bool,
                   body_top: float) -> AnchorRegions:
    """Compute the shared anchors for a slide."""
    W, H = design.slide_width_in, design.slide_height_in

    def box(x, y, w, h):
        return Region.from_inches(x, y, w, h, W, H)

    title_h = design.title_h_in * 0.6 if has_subtitle else design.title_h_in
    title = box(design.padding_x_in, design.title_y_in,
                design.content_width_in, title_h)
    subtitle = None
    if has_subtitle:
        subtitle = box(design.padding_x_in,
                       design.title_y_in + design.title_h_in * 0.55,
                       design.content_width_in, SUBTITLE_H_IN)
    footnote_top = H - FOOTNOTE_OFFSET_IN
    footnote = box(design.padding_x_in, footnote_top,
                   FOOTNOTE_W_IN, FOOTNOTE_H_IN)
    body = box(design.padding_x_in, body_top, design.content_width_in,
               max(footnote_top - 0.05 - body_top, 0.0))
    return AnchorRegions(title=title, subtitle=subtitle, body=body,
                         footnote=footnote)


def resolve_geometry(archetype_id: ArchetypeId, props: TemplateProps,
                     design: DesignSystem | None = None) -> SlideGeometry:
    """Resolve geometry and style for an archetype and its props.

    Pure function of its inputs; unknown densities resolve to the default.
    """
    design = design or DesignSystem()
    archetype_id = ArchetypeId.parse(archetype_id)
    body_top = design.content_start_y_in + BODY_OFFSETS_IN.get(archetype_id, 0.0)
    has_subtitle = bool(props.subtitle and str(props.subtitle).strip())
    return SlideGeometry(
        archetype=archetype_id,
        density=props.density_mode,
        anchors=anchor_regions(design, has_subtitle, body_top),
        body_top=body_top,
        design=design,
    )
