"""Slide content models - the contract between normalizer, renderers, and writer.

Defines the closed set of slide archetypes, the template property bag the
classifier hands over, the archetype-independent slide content, and the
value objects the pipeline produces (parsed tables, export artifacts).
Geometry is expressed as fractions of the slide so nothing below the writer
depends on a physical resolution.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from slidetheory.errors import MissingFieldError, UnknownArchetypeError


PPTX_MIME_TYPE = (
    "application/vnd.openxmlformats-officedocument.presentationml.presentation"
)
PNG_MIME_TYPE = "image/png"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ArchetypeId(Enum):
    """Supported slide archetypes. Adding one requires a renderer."""
    EXECUTIVE_SUMMARY = "executive_summary"
    SITUATION_COMPLICATION_RESOLUTION = "situation_complication_resolution"
    TWO_BY_TWO_MATRIX = "two_by_two_matrix"
    COMPARISON_TABLE = "comparison_table"
    BEFORE_AFTER = "before_after"
    KPI_DASHBOARD = "kpi_dashboard"
    WATERFALL_CHART = "waterfall_chart"
    TREND_LINE = "trend_line"
    STACKED_BAR = "stacked_bar"
    PROCESS_FLOW = "process_flow"
    TIMELINE_SWIMLANE = "timeline_swimlane"
    DECISION_TREE = "decision_tree"
    ISSUE_TREE = "issue_tree"
    THREE_PILLAR = "three_pillar"
    GRID_CARDS = "grid_cards"
    MARKET_SIZING = "market_sizing"
    COMPETITIVE_LANDSCAPE = "competitive_landscape"
    AGENDA_DIVIDER = "agenda_divider"

    @classmethod
    def parse(cls, value: Any) -> "ArchetypeId":
        """Return the member for ``value`` or raise UnknownArchetypeError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise UnknownArchetypeError(value) from None


class Density(Enum):
    """Compactness mode scaling typography and vertical spacing."""
    PRESENTATION = "presentation"    # Default, ample whitespace
    READ_STYLE = "read_style"        # Denser, read-ahead layout

    @classmethod
    def resolve(cls, value: Any) -> "Density":
        """Map any input to a Density, falling back to PRESENTATION."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in _DENSITY_ALIASES:
                return _DENSITY_ALIASES[key]
        return cls.PRESENTATION


_DENSITY_ALIASES = {
    "presentation": Density.PRESENTATION,
    "read_style": Density.READ_STYLE,
    "compact": Density.READ_STYLE,
}


# ---------------------------------------------------------------------------
# Position and styling primitives
# ---------------------------------------------------------------------------

@dataclass
class Position:
    """Absolute shape box, in whatever unit the slide size was given in."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class Region:
    """Slide-relative rectangle; every field is a fraction of slide size."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @classmethod
    def from_inches(cls, left: float, top: float, width: float, height: float,
                    slide_width: float, slide_height: float) -> "Region":
        return cls(left=left / slide_width, top=top / slide_height,
                   width=width / slide_width, height=height / slide_height)

    def to_position(self, slide_width: float, slide_height: float) -> Position:
        """Resolve against a slide of the given size, in any unit."""
        return Position(
            left=self.left * slide_width,
            top=self.top * slide_height,
            width=self.width * slide_width,
            height=self.height * slide_height,
        )

    def to_dict(self) -> dict:
        return {"left": self.left, "top": self.top,
                "width": self.width, "height": self.height}


@dataclass(frozen=True)
class FontSpec:
    """Typography specification for a text element."""
    name: str = "Calibri"
    size_pt: float = 12.0
    bold: bool = False
    italic: bool = False
    color: str = "#1A202C"

    def scaled(self, factor: float) -> "FontSpec":
        """Return a copy with the size scaled and rounded to half points."""
        return replace(self, size_pt=round(self.size_pt * factor * 2) / 2)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"name": self.name, "size_pt": self.size_pt}
        if self.bold:
            d["bold"] = True
        if self.italic:
            d["italic"] = True
        if self.color != "#1A202C":
            d["color"] = self.color
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FontSpec":
        return cls(
            name=d.get("name", "Calibri"),
            size_pt=d.get("size_pt", 12.0),
            bold=d.get("bold", False),
            italic=d.get("italic", False),
            color=d.get("color", "#1A202C"),
        )


# ---------------------------------------------------------------------------
# DesignSystem - the fixed palette, typography and slide grid
# ---------------------------------------------------------------------------

@dataclass
class DesignSystem:
    """Brand design system applied to every exported slide."""
    # Colors
    navy900: str = "#1A365D"
    navy800: str = "#2C5282"
    navy700: str = "#2B6CB0"
    navy100: str = "#EBF8FF"
    coral600: str = "#E53E3E"
    coral500: str = "#F56565"
    coral100: str = "#FFF5F5"
    gray900: str = "#1A202C"
    gray700: str = "#4A5568"
    gray500: str = "#A0AEC0"
    gray200: str = "#EDF2F7"
    gray100: str = "#F7FAFC"
    white: str = "#FFFFFF"
    green: str = "#38A169"

    # Typography
    primary_font: str = "Calibri"
    title_size_pt: float = 28.0
    subtitle_size_pt: float = 16.0
    body_size_pt: float = 12.0
    caption_size_pt: float = 9.0
    stat_size_pt: float = 40.0
    stat_label_size_pt: float = 10.0
    card_title_size_pt: float = 14.0

    # Slide grid (inches, 16:9)
    slide_width_in: float = 10.0
    slide_height_in: float = 5.625
    padding_x_in: float = 0.5
    padding_y_in: float = 0.4
    title_y_in: float = 0.4
    title_h_in: float = 0.9
    content_start_y_in: float = 1.4

    @property
    def content_width_in(self) -> float:
        return self.slide_width_in - self.padding_x_in * 2

    def to_dict(self) -> dict:
        return {
            "colors": {
                "navy900": self.navy900,
                "navy800": self.navy800,
                "navy700": self.navy700,
                "navy100": self.navy100,
                "coral600": self.coral600,
                "coral500": self.coral500,
                "coral100": self.coral100,
                "gray900": self.gray900,
                "gray700": self.gray700,
                "gray500": self.gray500,
                "gray200": self.gray200,
                "gray100": self.gray100,
                "white": self.white,
                "green": self.green,
            },
            "typography": {
                "primary_font": self.primary_font,
                "title_size_pt": self.title_size_pt,
                "subtitle_size_pt": self.subtitle_size_pt,
                "body_size_pt": self.body_size_pt,
                "caption_size_pt": self.caption_size_pt,
                "stat_size_pt": self.stat_size_pt,
                "stat_label_size_pt": self.stat_label_size_pt,
                "card_title_size_pt": self.card_title_size_pt,
            },
            "layout": {
                "slide_width_in": self.slide_width_in,
                "slide_height_in": self.slide_height_in,
                "padding_x_in": self.padding_x_in,
                "padding_y_in": self.padding_y_in,
                "title_y_in": self.title_y_in,
                "title_h_in": self.title_h_in,
                "content_start_y_in": self.content_start_y_in,
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DesignSystem":
        defaults = cls()
        kwargs: dict[str, Any] = {}
        for group in ("colors", "typography", "layout"):
            for key, value in d.get(group, {}).items():
                if hasattr(defaults, key):
                    kwargs[key] = value
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Template props - the archetype-specific property bag
# ---------------------------------------------------------------------------

_BASE_KEYS = ("title", "subtitle", "density", "footnote", "source")


@dataclass
class TemplateProps:
    """Structured content handed over by the classifier.

    The common keys are lifted into attributes; everything else stays in
    ``fields`` and is read by whichever archetype renderer needs it.
    """
    title: str | None = None
    subtitle: str | None = None
    density: str | None = "presentation"
    footnote: str | None = None
    source: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def density_mode(self) -> Density:
        return Density.resolve(self.density)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up an archetype-specific field."""
        value = self.fields.get(key)
        return default if value is None else value

    def items(self, key: str, limit: int | None = None) -> list:
        """Return a list-valued field, or an empty list when absent/invalid."""
        value = self.fields.get(key)
        if not isinstance(value, (list, tuple)):
            return []
        value = list(value)
        return value if limit is None else value[:limit]

    def to_dict(self) -> dict:
        d: dict[str, Any] = dict(self.fields)
        for key in _BASE_KEYS:
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "TemplateProps":
        return cls(
            title=d.get("title"),
            subtitle=d.get("subtitle"),
            density=d.get("density", "presentation"),
            footnote=d.get("footnote"),
            source=d.get("source"),
            fields={k: v for k, v in d.items() if k not in _BASE_KEYS},
        )


# ---------------------------------------------------------------------------
# Structured slide content
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Metric:
    """A labelled value, displayed in insertion order.

    ``trend`` is "up", "down" or None; ``context`` is a short caption.
    """
    label: str
    value: str
    trend: str | None = None
    context: str = ""


@dataclass(frozen=True)
class StructuredSlideContent:
    """Archetype-independent renderable content of a slide."""
    title: str
    subtitle: str | None = None
    metrics: tuple[Metric, ...] = ()
    footnote: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.title, str) or not self.title.strip():
            raise MissingFieldError("title")


# ---------------------------------------------------------------------------
# Pipeline value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedTabularData:
    """Header + rows shape produced by the input normalizer.

    Rows may be ragged; rows made only of empty cells are never present.
    """
    headers: list[str]
    rows: list[list[Any]]
    raw: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict:
        return {"headers": list(self.headers),
                "rows": [list(r) for r in self.rows]}


@dataclass(frozen=True)
class ExportArtifact:
    """A finished download: bytes plus the name and type to serve them as."""
    data: bytes
    filename: str
    mime_type: str = PPTX_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


@dataclass
class ExportRequest:
    """A single-slide export request: which slide, which layout, what content."""
    slide_id: str
    archetype_id: str
    props: TemplateProps

    def to_dict(self) -> dict:
        return {
            "slideId": self.slide_id,
            "archetypeId": self.archetype_id,
            "props": self.props.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ExportRequest":
        """Build a request from a ``{slideId, archetypeId, props}`` body.

        Raises MissingFieldError naming every required field when any of
        them is absent or empty.
        """
        if not isinstance(d, dict):
            d = {}
        slide_id = d.get("slideId")
        archetype_id = d.get("archetypeId")
        props = d.get("props")
        if not slide_id or not archetype_id or not isinstance(props, dict):
            raise MissingFieldError(["slideId", "archetypeId", "props"])
        return cls(
            slide_id=str(slide_id),
            archetype_id=archetype_id,
            props=TemplateProps.from_dict(props),
        )


@dataclass(frozen=True)
class Identity:
    """The authenticated caller of a service operation."""
    user_id: str
    email: str = ""
