"""Rasterized snapshot exporter - slide bitmap for the clipboard.

Works independently of the PPTX writer: a RenderedSurface (anything that can
rasterize itself) is captured at a fixed 2x supersampling factor, flattened
onto opaque white and encoded as PNG.  ``copy_to_clipboard`` then hands the
whole image to the platform clipboard as a single ``image/png`` entry.

Usage::

    canvas = SlideCanvas()
    render("kpi_dashboard", props, canvas)
    copy_to_clipboard(CanvasSurface(canvas))
"""

import io
import logging
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageDraw, ImageFont

from slidetheory.errors import ClipboardExportError
from slidetheory.generator.archetypes import render
from slidetheory.generator.canvas import (
    ImageElement,
    LineElement,
    ShapeElement,
    ShapeKind,
    SlideCanvas,
    TextElement,
)
from slidetheory.schema.models import (
    PNG_MIME_TYPE,
    ArchetypeId,
    DesignSystem,
    ExportArtifact,
    Region,
    TemplateProps,
)

log = logging.getLogger(__name__)

SUPERSAMPLE_SCALE = 2
BASE_WIDTH_PX = 960
CLIPBOARD_TIMEOUT_S = 10

_FONT_FILES = {
    False: [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
        "C:\\Windows\\Fonts\\calibri.ttf",
    ],
    True: [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
        "C:\\Windows\\Fonts\\calibrib.ttf",
    ],
}


class RenderedSurface(Protocol):
    """An already-rendered visual that can produce a bitmap of itself."""

    def rasterize(self, scale: int) -> Image.Image:
        ...


class ClipboardWriter(Protocol):
    def write(self, entries: dict[str, bytes]) -> None:
        ...


# ---------------------------------------------------------------------------
# Canvas painting
# ---------------------------------------------------------------------------

@lru_cache(maxsize=64)
def _font(size_px: int, bold: bool) -> ImageFont.ImageFont:
    for path in _FONT_FILES[bold]:
        if Path(path).exists():
            return ImageFont.truetype(path, size_px)
    return ImageFont.load_default(size=size_px)


def _wrap(text: str, font, max_width: float) -> list[str]:
    """Greedy word wrap against the font's measured width."""
    words = text.split()
    lines: list[str] = []
    current: list[str] = []
    for word in words:
        candidate = " ".join(current + [word])
        if font.getlength(candidate) <= max_width or not current:
            current.append(word)
        else:
            lines.append(" ".join(current))
            current = [word]
    if current:
        lines.append(" ".join(current))
    return lines or [""]


class CanvasSurface:
    """Paints a SlideCanvas with Pillow.

    Parameters
    ----------
    canvas : SlideCanvas
        The rendered slide.
    base_width_px : int
        Pixel width at scale 1; height follows the slide aspect ratio.
    """

    def __init__(self, canvas: SlideCanvas, base_width_px: int = BASE_WIDTH_PX) -> None:
        self.canvas = canvas
        self.base_width_px = base_width_px

    def size(self, scale: int = 1) -> tuple[int, int]:
        width = self.base_width_px * scale
        height = round(width * self.canvas.height_in / self.canvas.width_in)
        return width, height

    def rasterize(self, scale: int) -> Image.Image:
        width, height = self.size(scale)
        img = Image.new("RGBA", (width, height), self.canvas.background)
        draw = ImageDraw.Draw(img)
        px_per_pt = width / self.canvas.width_in / 72
        for element in self.canvas.elements:
            if isinstance(element, ShapeElement):
                self._paint_shape(draw, element, width, height)
            elif isinstance(element, LineElement):
                self._paint_line(draw, element, width, height, px_per_pt)
            elif isinstance(element, TextElement):
                self._paint_text(draw, element, width, height, px_per_pt)
            elif isinstance(element, ImageElement):
                self._paint_image(img, element, width, height)
        return img

    @staticmethod
    def _box(region: Region, width: int, height: int) -> list[float]:
        pos = region.to_position(width, height)
        return [pos.left, pos.top, pos.right, pos.bottom]

    def _paint_shape(self, draw, element: ShapeElement, width, height) -> None:
        x0, y0, x1, y1 = self._box(element.region, width, height)
        if x1 <= x0 or y1 <= y0:
            return
        outline = element.line_color
        if element.kind == ShapeKind.OVAL:
            draw.ellipse([x0, y0, x1, y1], fill=element.fill, outline=outline)
        elif element.kind == ShapeKind.RIGHT_ARROW:
            mid = (y0 + y1) / 2
            shaft_top = y0 + (y1 - y0) / 4
            shaft_bottom = y1 - (y1 - y0) / 4
            head = x0 + (x1 - x0) / 2
            draw.polygon([(x0, shaft_top), (head, shaft_top), (head, y0), (x1, mid),
                          (head, y1), (head, shaft_bottom), (x0, shaft_bottom)],
                         fill=element.fill, outline=outline)
        else:
            draw.rectangle([x0, y0, x1, y1], fill=element.fill, outline=outline)

    @staticmethod
    def _paint_line(draw, element: LineElement, width, height, px_per_pt) -> None:
        (sx, sy), (ex, ey) = element.start, element.end
        stroke = max(1, round(element.width_pt * px_per_pt))
        draw.line([(sx * width, sy * height), (ex * width, ey * height)],
                  fill=element.color, width=stroke)

    def _paint_text(self, draw, element: TextElement, width, height, px_per_pt) -> None:
        x0, y0, x1, y1 = self._box(element.region, width, height)
        font = _font(max(1, round(element.font.size_pt * px_per_pt)), element.font.bold)
        line_h = font.size * 1.2 if hasattr(font, "size") else element.font.size_pt * px_per_pt * 1.2
        indent = 0.2 * width / self.canvas.width_in if element.bullets else 0

        lines = []
        for paragraph in element.paragraphs:
            wrapped = _wrap(paragraph, font, max(x1 - x0 - indent, 1))
            if element.bullets:
                wrapped[0] = "• " + wrapped[0]
            lines.extend(wrapped)

        block_h = line_h * len(lines)
        if element.valign == "middle":
            y = y0 + (y1 - y0 - block_h) / 2
        elif element.valign == "bottom":
            y = y1 - block_h
        else:
            y = y0
        for line in lines:
            line_w = font.getlength(line)
            if element.align == "center":
                x = x0 + (x1 - x0 - line_w) / 2
            elif element.align == "right":
                x = x1 - line_w
            else:
                x = x0
            draw.text((x, y), line, font=font, fill=element.font.color)
            y += line_h

    def _paint_image(self, img: Image.Image, element: ImageElement, width, height) -> None:
        x0, y0, x1, y1 = self._box(element.region, width, height)
        box_w, box_h = max(round(x1 - x0), 1), max(round(y1 - y0), 1)
        with Image.open(io.BytesIO(element.data)) as picture:
            picture = picture.convert("RGBA")
            if element.sizing == "contain":
                picture.thumbnail((box_w, box_h), Image.LANCZOS)
            else:
                picture = picture.resize((box_w, box_h), Image.LANCZOS)
            left = round(x0 + (box_w - picture.width) / 2)
            top = round(y0 + (box_h - picture.height) / 2)
            img.alpha_composite(picture, (left, top))


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def flatten(img: Image.Image) -> Image.Image:
    """Composite any transparency onto opaque white; returns an RGB image."""
    if img.mode == "RGB":
        return img
    rgba = img.convert("RGBA")
    background = Image.new("RGB", rgba.size, "#FFFFFF")
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


def snapshot(surface: RenderedSurface, scale: int = SUPERSAMPLE_SCALE) -> bytes:
    """Rasterize a surface and return PNG bytes with no transparency."""
    img = flatten(surface.rasterize(scale))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Clipboard
# ---------------------------------------------------------------------------

class SystemClipboard:
    """Writes to the desktop clipboard through wl-copy or xclip."""

    def _command(self, mime_type: str) -> list[str]:
        if shutil.which("wl-copy"):
            return ["wl-copy", "--type", mime_type]
        if shutil.which("xclip"):
            return ["xclip", "-selection", "clipboard", "-t", mime_type, "-i"]
        raise ClipboardExportError("No clipboard utility found (wl-copy or xclip)")

    def write(self, entries: dict[str, bytes]) -> None:
        if len(entries) != 1:
            raise ClipboardExportError("Clipboard accepts exactly one entry")
        (mime_type, data), = entries.items()
        subprocess.run(self._command(mime_type), input=data, check=True,
                       timeout=CLIPBOARD_TIMEOUT_S)


def copy_to_clipboard(surface: RenderedSurface,
                      clipboard: ClipboardWriter | None = None) -> None:
    """Capture ``surface`` and write it as a single image/png clipboard entry.

    The image is fully encoded before the clipboard is touched.

    Raises
    ------
    ClipboardExportError
        If capture or the clipboard write fails.
    """
    clipboard = clipboard or SystemClipboard()
    try:
        png = snapshot(surface)
    except Exception as exc:
        log.exception("Slide capture failed")
        raise ClipboardExportError(cause=exc) from exc
    try:
        clipboard.write({PNG_MIME_TYPE: png})
    except ClipboardExportError:
        raise
    except Exception as exc:
        log.exception("Clipboard write failed")
        raise ClipboardExportError(cause=exc) from exc


def export_snapshot(archetype_id: ArchetypeId | str, props: TemplateProps,
                    slide_id: str, design: DesignSystem | None = None,
                    scale: int = SUPERSAMPLE_SCALE) -> ExportArtifact:
    """Render an archetype straight to a PNG artifact."""
    canvas = SlideCanvas()
    render(archetype_id, props, canvas, design)
    return ExportArtifact(data=snapshot(CanvasSurface(canvas), scale),
                          filename=f"slidetheory-{str(slide_id)[:8]}.png",
                          mime_type=PNG_MIME_TYPE)
