"""Document canvas - an in-memory, format-neutral slide drawing surface.

Archetype renderers add elements to a SlideCanvas; the PPTX writer and the
Pillow rasterizer both consume the same element list. All coordinates are
fractions of the slide, so one canvas renders at any resolution.
"""

from dataclasses import dataclass, field
from enum import Enum

from slidetheory.schema.models import FontSpec, Region


DEFAULT_MASTER_NAME = "SLIDE_THEORY_MASTER"


class ShapeKind(Enum):
    RECTANGLE = "rectangle"
    OVAL = "oval"
    RIGHT_ARROW = "right_arrow"


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextElement:
    """A text box. One string per paragraph."""
    region: Region
    paragraphs: tuple[str, ...]
    font: FontSpec
    align: str = "left"      # left, center, right
    valign: str = "top"      # top, middle, bottom
    bullets: bool = False
    name: str = ""           # Role tag, e.g. "title", "footnote"

    @property
    def text(self) -> str:
        return "\n".join(self.paragraphs)


@dataclass(frozen=True)
class ShapeElement:
    """A filled autoshape."""
    kind: ShapeKind
    region: Region
    fill: str | None = None
    line_color: str | None = None
    line_width_pt: float = 1.0
    shadow: bool = False
    name: str = ""


@dataclass(frozen=True)
class LineElement:
    """A straight connector between two slide-relative points."""
    start: tuple[float, float]
    end: tuple[float, float]
    color: str
    width_pt: float = 1.0
    dashed: bool = False


@dataclass(frozen=True)
class ImageElement:
    """A picture fitted into its region ('contain') or stretched ('fill')."""
    region: Region
    data: bytes
    sizing: str = "contain"
    name: str = ""


# ---------------------------------------------------------------------------
# SlideCanvas
# ---------------------------------------------------------------------------

@dataclass
class SlideCanvas:
    """Ordered list of elements for one slide plus document metadata."""
    width_in: float = 10.0
    height_in: float = 5.625
    master_name: str = DEFAULT_MASTER_NAME
    background: str = "#FFFFFF"
    title: str = ""
    subject: str = ""
    author: str = "SlideTheory"
    elements: list = field(default_factory=list)

    def define_master(self, name: str, background: str) -> None:
        self.master_name = name
        self.background = background

    def add_text(self, text, region: Region, font: FontSpec,
                 align: str = "left", valign: str = "top",
                 bullets: bool = False, name: str = "") -> TextElement:
        if isinstance(text, str):
            paragraphs = (text,)
        else:
            paragraphs = tuple(str(t) for t in text)
        element = TextElement(region, paragraphs, font, align, valign,
                              bullets, name)
        self.elements.append(element)
        return element

    def add_shape(self, kind: ShapeKind, region: Region,
                  fill: str | None = None, line_color: str | None = None,
                  line_width_pt: float = 1.0, shadow: bool = False,
                  name: str = "") -> ShapeElement:
        element = ShapeElement(kind, region, fill, line_color,
                               line_width_pt, shadow, name)
        self.elements.append(element)
        return element

    def add_line(self, start: tuple[float, float], end: tuple[float, float],
                 color: str, width_pt: float = 1.0,
                 dashed: bool = False) -> LineElement:
        element = LineElement(start, end, color, width_pt, dashed)
        self.elements.append(element)
        return element

    def add_image(self, data: bytes, region: Region | None = None,
                  sizing: str = "contain", name: str = "") -> ImageElement:
        element = ImageElement(region or Region(0.0, 0.0, 1.0, 1.0),
                               data, sizing, name)
        self.elements.append(element)
        return element

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def texts(self, name: str | None = None) -> list[TextElement]:
        return [e for e in self.elements if isinstance(e, TextElement)
                and (name is None or e.name == name)]

    def shapes(self, kind: ShapeKind | None = None) -> list[ShapeElement]:
        return [e for e in self.elements if isinstance(e, ShapeElement)
                and (kind is None or e.kind == kind)]

    def lines(self) -> list[LineElement]:
        return [e for e in self.elements if isinstance(e, LineElement)]

    def images(self) -> list[ImageElement]:
        return [e for e in self.elements if isinstance(e, ImageElement)]

    def find_text(self, name: str) -> TextElement | None:
        for element in self.texts(name):
            return element
        return None
