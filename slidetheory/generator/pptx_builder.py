"""PPTX document writer - serializes a SlideCanvas into a .pptx file.

Converts the slide-relative regions recorded on a SlideCanvas into absolute
EMU positions and writes text boxes, autoshapes, connectors and pictures with
python-pptx.  Also builds the image batch deck (one full-bleed picture per
slide).

Usage::

    from slidetheory.generator.pptx_builder import export_slide

    artifact = export_slide("executive_summary", props, slide_id)

    with open(artifact.filename, "wb") as f:
        f.write(artifact.data)
"""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Iterable

from PIL import Image
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.dml import MSO_LINE_DASH_STYLE
from pptx.enum.shapes import MSO_CONNECTOR, MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.util import Emu, Inches, Pt

from slidetheory.errors import ExportGenerationError, GenerationError
from slidetheory.generator.archetypes import render
from slidetheory.generator.canvas import (
    ImageElement,
    LineElement,
    ShapeElement,
    ShapeKind,
    SlideCanvas,
    TextElement,
)
from slidetheory.schema.design_system import strip_xml_illegal
from slidetheory.schema.models import (
    ArchetypeId,
    DesignSystem,
    ExportArtifact,
    FontSpec,
    Region,
    TemplateProps,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_SHAPE_MAP = {
    ShapeKind.RECTANGLE: MSO_SHAPE.RECTANGLE,
    ShapeKind.OVAL: MSO_SHAPE.OVAL,
    ShapeKind.RIGHT_ARROW: MSO_SHAPE.RIGHT_ARROW,
}

_ALIGN_MAP = {
    "left": PP_ALIGN.LEFT,
    "center": PP_ALIGN.CENTER,
    "right": PP_ALIGN.RIGHT,
}

_ANCHOR_MAP = {
    "top": MSO_ANCHOR.TOP,
    "middle": MSO_ANCHOR.MIDDLE,
    "bottom": MSO_ANCHOR.BOTTOM,
}

_BLANK_LAYOUT = 6
_BULLET_INDENT = Inches(0.2)

DATA_URL_PREFIX = "data:image/png;base64,"
IMAGE_DECK_TITLE = "Flux Generated Slides"
IMAGE_DECK_AUTHOR = "SlideTheory Flux"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _hex_to_rgb(hex_color: str) -> RGBColor:
    """Convert '#RRGGBB' hex string to an RGBColor."""
    h = hex_color.lstrip("#")
    return RGBColor(*bytes.fromhex(h))


def _apply_font(run, font_spec: FontSpec) -> None:
    """Apply a FontSpec to a python-pptx Run."""
    run.font.name = font_spec.name
    run.font.size = Pt(font_spec.size_pt)
    run.font.bold = font_spec.bold
    run.font.italic = font_spec.italic
    if font_spec.color:
        run.font.color.rgb = _hex_to_rgb(font_spec.color)


def _add_bullet(paragraph) -> None:
    """Give a paragraph a hanging '•' bullet."""
    pPr = paragraph._p.get_or_add_pPr()
    pPr.set("marL", str(_BULLET_INDENT))
    pPr.set("indent", str(-_BULLET_INDENT))
    bu_char = pPr.makeelement(qn("a:buChar"), {"char": "•"})
    pPr.append(bu_char)


def _image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def prepare_image(value: bytes | str) -> bytes:
    """Normalize an image given as raw bytes, base64 text or a data URL.

    Raises
    ------
    ExportGenerationError
        If a string value is not valid base64.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value.strip()
    if text.startswith("data:"):
        text = text.split(",", 1)[1] if "," in text else ""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ExportGenerationError("Invalid image data", exc) from exc


def to_data_url(data: bytes) -> str:
    """Encode PNG bytes as a ``data:image/png;base64,`` URL."""
    return DATA_URL_PREFIX + base64.b64encode(data).decode("ascii")


# ---------------------------------------------------------------------------
# PPTXBuilder
# ---------------------------------------------------------------------------

class PPTXBuilder:
    """Writes SlideCanvas content into a PowerPoint document.

    Parameters
    ----------
    design : DesignSystem, optional
        Palette and slide grid; defaults to the stock design system.
    """

    def __init__(self, design: DesignSystem | None = None) -> None:
        self.design = design or DesignSystem()

    def build(self, canvas: SlideCanvas) -> bytes:
        """Serialize a single-slide canvas and return the .pptx bytes.

        Raises
        ------
        ExportGenerationError
            Wraps any failure raised while writing the document.
        """
        try:
            prs = self._new_presentation(canvas.width_in, canvas.height_in)
            self._apply_master(prs, canvas)
            self._apply_properties(prs, canvas.title, canvas.subject, canvas.author)
            slide = prs.slides.add_slide(prs.slide_layouts[_BLANK_LAYOUT])
            for element in canvas.elements:
                self._render_element(prs, slide, element)
            return self._save(prs)
        except GenerationError:
            raise
        except Exception as exc:
            log.exception("PPTX generation failed for %r", canvas.title)
            raise ExportGenerationError("Failed to generate PPTX", exc) from exc

    def build_to_file(self, canvas: SlideCanvas, path: str | Path) -> None:
        """Build the PPTX and write it to a file path."""
        data = self.build(canvas)
        Path(path).write_bytes(data)

    def build_image_deck(self, images: Iterable[bytes | str],
                         title: str = IMAGE_DECK_TITLE,
                         author: str = IMAGE_DECK_AUTHOR) -> bytes:
        """One slide per image, each picture fitted inside the full slide."""
        try:
            pictures = [prepare_image(image) for image in images]
            prs = self._new_presentation(self.design.slide_width_in,
                                         self.design.slide_height_in)
            self._apply_properties(prs, title, title, author)
            for data in pictures:
                slide = prs.slides.add_slide(prs.slide_layouts[_BLANK_LAYOUT])
                self._render_image(prs, slide, ImageElement(
                    Region(0.0, 0.0, 1.0, 1.0), data, "contain", "image"))
            return self._save(prs)
        except GenerationError:
            raise
        except Exception as exc:
            log.exception("Image deck generation failed")
            raise ExportGenerationError("Failed to generate PPTX", exc) from exc

    # ------------------------------------------------------------------
    # Document setup
    # ------------------------------------------------------------------

    @staticmethod
    def _new_presentation(width_in: float, height_in: float) -> Presentation:
        prs = Presentation()
        prs.slide_width = Inches(width_in)
        prs.slide_height = Inches(height_in)
        return prs

    @staticmethod
    def _apply_master(prs, canvas: SlideCanvas) -> None:
        """Name the slide master and give it a solid background."""
        master = prs.slide_master
        master.element.cSld.set("name", canvas.master_name)
        fill = master.background.fill
        fill.solid()
        fill.fore_color.rgb = _hex_to_rgb(canvas.background)

    @staticmethod
    def _apply_properties(prs, title: str, subject: str, author: str) -> None:
        core = prs.core_properties
        core.title = strip_xml_illegal(title)
        core.subject = strip_xml_illegal(subject)
        core.author = strip_xml_illegal(author)

    @staticmethod
    def _save(prs) -> bytes:
        buf = io.BytesIO()
        prs.save(buf)
        return buf.getvalue()

    # ------------------------------------------------------------------
    # Element renderers
    # ------------------------------------------------------------------

    def _render_element(self, prs, slide, element) -> None:
        """Dispatch on element type."""
        if isinstance(element, TextElement):
            self._render_text(prs, slide, element)
        elif isinstance(element, ShapeElement):
            self._render_shape(prs, slide, element)
        elif isinstance(element, LineElement):
            self._render_line(prs, slide, element)
        elif isinstance(element, ImageElement):
            self._render_image(prs, slide, element)
        else:
            raise TypeError(f"Unsupported canvas element: {type(element).__name__}")

    @staticmethod
    def _emu_box(prs, region: Region) -> tuple[Emu, Emu, Emu, Emu]:
        """Slide-relative region to absolute (left, top, width, height) EMU."""
        pos = region.to_position(prs.slide_width, prs.slide_height)
        return (
            Emu(round(pos.left)),
            Emu(round(pos.top)),
            Emu(max(round(pos.width), 0)),
            Emu(max(round(pos.height), 0)),
        )

    def _render_text(self, prs, slide, element: TextElement) -> None:
        txbox = slide.shapes.add_textbox(*self._emu_box(prs, element.region))
        if element.name:
            txbox.name = element.name
        tf = txbox.text_frame
        tf.word_wrap = True
        tf.margin_left = tf.margin_right = 0
        tf.margin_top = tf.margin_bottom = 0
        tf.vertical_anchor = _ANCHOR_MAP.get(element.valign, MSO_ANCHOR.TOP)

        for idx, text in enumerate(element.paragraphs):
            p = tf.paragraphs[0] if idx == 0 else tf.add_paragraph()
            p.alignment = _ALIGN_MAP.get(element.align, PP_ALIGN.LEFT)
            if element.bullets:
                _add_bullet(p)
            run = p.add_run()
            run.text = text
            _apply_font(run, element.font)

    def _render_shape(self, prs, slide, element: ShapeElement) -> None:
        shape = slide.shapes.add_shape(_SHAPE_MAP[element.kind],
                                       *self._emu_box(prs, element.region))
        if element.name:
            shape.name = element.name
        if element.fill:
            shape.fill.solid()
            shape.fill.fore_color.rgb = _hex_to_rgb(element.fill)
        else:
            shape.fill.background()
        if element.line_color:
            shape.line.color.rgb = _hex_to_rgb(element.line_color)
            shape.line.width = Pt(element.line_width_pt)
        else:
            shape.line.fill.background()
        if not element.shadow:
            shape.shadow.inherit = False

    def _render_line(self, prs, slide, element: LineElement) -> None:
        W, H = prs.slide_width, prs.slide_height
        (x1, y1), (x2, y2) = element.start, element.end
        connector = slide.shapes.add_connector(
            MSO_CONNECTOR.STRAIGHT,
            Emu(round(x1 * W)), Emu(round(y1 * H)),
            Emu(round(x2 * W)), Emu(round(y2 * H)),
        )
        connector.line.color.rgb = _hex_to_rgb(element.color)
        connector.line.width = Pt(element.width_pt)
        if element.dashed:
            connector.line.dash_style = MSO_LINE_DASH_STYLE.DASH

    def _render_image(self, prs, slide, element: ImageElement) -> None:
        left, top, width, height = self._emu_box(prs, element.region)
        if element.sizing == "contain":
            img_w, img_h = _image_size(element.data)
            ratio = min(width / img_w, height / img_h)
            fit_w, fit_h = round(img_w * ratio), round(img_h * ratio)
            left = Emu(left + (width - fit_w) // 2)
            top = Emu(top + (height - fit_h) // 2)
            width, height = Emu(fit_w), Emu(fit_h)
        picture = slide.shapes.add_picture(io.BytesIO(element.data),
                                           left, top, width, height)
        if element.name:
            picture.name = element.name


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------

def finalize(canvas: SlideCanvas, design: DesignSystem | None = None) -> bytes:
    """One-shot convenience: serialize a rendered canvas to .pptx bytes."""
    return PPTXBuilder(design).build(canvas)


def build_image_deck(images: Iterable[bytes | str],
                     title: str = IMAGE_DECK_TITLE,
                     author: str = IMAGE_DECK_AUTHOR) -> bytes:
    """One-shot convenience: a deck of full-bleed images."""
    return PPTXBuilder().build_image_deck(images, title=title, author=author)


def export_filename(slide_id: str) -> str:
    return f"slidetheory-{str(slide_id)[:8]}.pptx"


def build_slide(archetype_id: ArchetypeId | str, props: TemplateProps,
                design: DesignSystem | None = None) -> bytes:
    """Render an archetype and serialize it; no artifact wrapping."""
    canvas = SlideCanvas()
    try:
        render(archetype_id, props, canvas, design)
    except GenerationError:
        raise
    except Exception as exc:
        log.exception("Rendering %s failed", archetype_id)
        raise ExportGenerationError("Failed to generate PPTX", exc) from exc
    return finalize(canvas, design)


def export_slide(archetype_id: ArchetypeId | str, props: TemplateProps,
                 slide_id: str, design: DesignSystem | None = None) -> ExportArtifact:
    """Render, serialize and name a slide export.

    Raises
    ------
    UnknownArchetypeError
        Before anything is rendered, for an unsupported archetype.
    ExportGenerationError
        If the document writer fails.
    """
    data = build_slide(archetype_id, props, design)
    return ExportArtifact(data=data, filename=export_filename(slide_id))
