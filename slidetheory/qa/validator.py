"""QA validator - reads an exported PPTX back and checks the layout contract.

Every coordinate in an export is committed blind, so this validator opens
the produced bytes with python-pptx and checks them against what the
resolver says they should be: one slide of the right size, a non-empty title
in the title region at the resolved font size, optional subtitle and
footnote present exactly when supplied, and nothing drawn outside the slide.

Usage::

    from slidetheory.qa.validator import ExportValidator

    validator = ExportValidator()
    result = validator.validate(pptx_bytes, "kpi_dashboard", props)
    assert result.passed, result.report()
"""

import io
from dataclasses import dataclass, field

from lxml import etree
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.util import Inches

from slidetheory.content import extract_content
from slidetheory.generator.canvas import DEFAULT_MASTER_NAME
from slidetheory.generator.geometry import resolve_geometry
from slidetheory.schema.design_system import FontRole
from slidetheory.schema.models import (
    ArchetypeId,
    DesignSystem,
    Region,
    TemplateProps,
)

# Allowed drift between a resolved region and the written shape, as a
# fraction of the slide dimension (EMU rounding only).
_POSITION_TOLERANCE = 1e-4


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    slide_index: int    # -1 for presentation-level issues
    shape_name: str     # "" for slide-level issues
    category: str       # e.g. "slide_count", "title", "overflow"
    message: str

    def __str__(self) -> str:
        loc = "presentation" if self.slide_index < 0 else f"slide {self.slide_index}"
        if self.shape_name:
            loc += f" / {self.shape_name}"
        return f"[{self.severity.upper()}] {loc}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of QA validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def add(self, severity: str, category: str, message: str,
            slide_index: int = 0, shape_name: str = "") -> None:
        self.issues.append(Issue(severity, slide_index, shape_name,
                                 category, message))

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _named_shape(slide, name: str):
    for shape in slide.shapes:
        if shape.name == name:
            return shape
    return None


def _first_font_size(shape) -> float | None:
    for paragraph in shape.text_frame.paragraphs:
        for run in paragraph.runs:
            if run.font.size is not None:
                return run.font.size.pt
    return None


def _region_of(shape, slide_width: int, slide_height: int) -> Region:
    return Region(shape.left / slide_width, shape.top / slide_height,
                  shape.width / slide_width, shape.height / slide_height)


def _regions_match(a: Region, b: Region) -> bool:
    return all(abs(x - y) <= _POSITION_TOLERANCE for x, y in (
        (a.left, b.left), (a.top, b.top), (a.width, b.width), (a.height, b.height),
    ))


# ---------------------------------------------------------------------------
# ExportValidator
# ---------------------------------------------------------------------------

class ExportValidator:
    """Validates exported PPTX bytes against the resolved slide layout.

    Parameters
    ----------
    design : DesignSystem, optional
        The design system the export was produced with.
    """

    def __init__(self, design: DesignSystem | None = None) -> None:
        self.design = design or DesignSystem()

    def validate(self, pptx_bytes: bytes, archetype_id: ArchetypeId | str,
                 props: TemplateProps) -> QAResult:
        """Run all checks on a single-slide export.

        Returns
        -------
        QAResult
            Aggregated validation result.
        """
        prs = Presentation(io.BytesIO(pptx_bytes))
        result = QAResult()

        self._check_slide_count(prs, 1, result)
        self._check_dimensions(prs, result)
        self._check_master(prs, result)
        if len(prs.slides) != 1:
            return result

        slide = prs.slides[0]
        geo = resolve_geometry(archetype_id, props, self.design)
        content = extract_content(props)
        W, H = prs.slide_width, prs.slide_height

        self._check_title(slide, content.title, geo, W, H, result)
        self._check_optional(slide, "subtitle", content.subtitle, result)
        self._check_optional(slide, "footnote", content.footnote, result)
        self._check_bounds(slide, W, H, result)

        if prs.core_properties.title != content.title:
            result.add("warning", "properties",
                       f"Document title {prs.core_properties.title!r} != "
                       f"{content.title!r}", slide_index=-1)
        return result

    def validate_image_deck(self, pptx_bytes: bytes, expected_count: int) -> QAResult:
        """Check a batch image deck: one picture and no text per slide."""
        prs = Presentation(io.BytesIO(pptx_bytes))
        result = QAResult()
        self._check_slide_count(prs, expected_count, result)
        self._check_dimensions(prs, result)
        for idx, slide in enumerate(prs.slides):
            pictures = [s for s in slide.shapes
                        if s.shape_type == MSO_SHAPE_TYPE.PICTURE]
            if len(pictures) != 1:
                result.add("error", "image",
                           f"Expected 1 picture, found {len(pictures)}",
                           slide_index=idx)
            texts = [s for s in slide.shapes
                     if s.has_text_frame and s.text_frame.text.strip()]
            if texts:
                result.add("error", "image",
                           "Image slides must not carry text", slide_index=idx)
        self._check_bounds_all(prs, result)
        return result

    # ------------------------------------------------------------------
    # Presentation-level checks
    # ------------------------------------------------------------------

    def _check_slide_count(self, prs, expected: int, result: QAResult) -> None:
        actual = len(prs.slides)
        if actual != expected:
            result.add("error", "slide_count",
                       f"Expected {expected} slides, got {actual}",
                       slide_index=-1)

    def _check_dimensions(self, prs, result: QAResult) -> None:
        expected_w = Inches(self.design.slide_width_in)
        expected_h = Inches(self.design.slide_height_in)
        if prs.slide_width != expected_w:
            result.add("error", "dimensions",
                       f"Slide width {prs.slide_width} != expected {expected_w}",
                       slide_index=-1)
        if prs.slide_height != expected_h:
            result.add("error", "dimensions",
                       f"Slide height {prs.slide_height} != expected {expected_h}",
                       slide_index=-1)

    def _check_master(self, prs, result: QAResult) -> None:
        name = prs.slide_master.element.cSld.get("name")
        if name != DEFAULT_MASTER_NAME:
            result.add("warning", "master",
                       f"Slide master is named {name!r}", slide_index=-1)

    # ------------------------------------------------------------------
    # Slide-level checks
    # ------------------------------------------------------------------

    def _check_title(self, slide, expected: str, geo, W: int, H: int,
                     result: QAResult) -> None:
        shape = _named_shape(slide, "title")
        if shape is None or not shape.has_text_frame:
            result.add("error", "title", "Title text box is missing")
            return
        text = shape.text_frame.text
        if not text.strip():
            result.add("error", "title", "Title is empty", shape_name="title")
        elif text != expected:
            result.add("error", "title",
                       f"Title {text!r} != expected {expected!r}",
                       shape_name="title")

        if not _regions_match(_region_of(shape, W, H), geo.anchors.title):
            result.add("error", "geometry",
                       "Title is outside its anchor region", shape_name="title")

        size = _first_font_size(shape)
        expected_size = geo.font(FontRole.TITLE).size_pt
        if size is not None and abs(size - expected_size) > 0.01:
            result.add("error", "font",
                       f"Title font {size}pt != expected {expected_size}pt",
                       shape_name="title")

    def _check_optional(self, slide, name: str, expected: str | None,
                        result: QAResult) -> None:
        """An optional element must exist exactly when content was supplied."""
        shape = _named_shape(slide, name)
        if expected is None:
            if shape is not None:
                result.add("error", name,
                           f"Unexpected {name} on slide", shape_name=name)
            return
        if shape is None:
            result.add("error", name, f"Missing {name}", shape_name=name)
        elif shape.text_frame.text != expected:
            result.add("error", name,
                       f"{name.capitalize()} {shape.text_frame.text!r} != "
                       f"expected {expected!r}", shape_name=name)

    def _check_bounds(self, slide, W: int, H: int, result: QAResult,
                      slide_index: int = 0) -> None:
        """Shapes running past the slide edge are reported, not rejected."""
        for shape in slide.shapes:
            if shape.left is None or shape.width is None:
                continue
            if (shape.left < 0 or shape.top < 0
                    or shape.left + shape.width > W
                    or shape.top + shape.height > H):
                result.add("warning", "overflow",
                           "Shape extends past the slide edge",
                           slide_index=slide_index, shape_name=shape.name)

    def _check_bounds_all(self, prs, result: QAResult) -> None:
        for idx, slide in enumerate(prs.slides):
            self._check_bounds(slide, prs.slide_width, prs.slide_height,
                               result, slide_index=idx)


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------

def slide_xml(pptx_bytes: bytes, index: int = 0) -> bytes:
    """Canonical (C14N) XML of one slide, for comparing two exports."""
    prs = Presentation(io.BytesIO(pptx_bytes))
    return etree.tostring(prs.slides[index]._element, method="c14n")


def validate_export(pptx_bytes: bytes, archetype_id: ArchetypeId | str,
                    props: TemplateProps,
                    design: DesignSystem | None = None) -> QAResult:
    """One-shot convenience: validate an export."""
    return ExportValidator(design).validate(pptx_bytes, archetype_id, props)
