"""Design system utilities - typography roles, density scaling, value text.

Font roles mirror the fixed slide palette:
- title 28pt bold navy, subtitle 16pt gray, body 12pt, caption 9pt
- stat 40pt bold navy with a 10pt upper-case label, card titles 14pt bold

The ``read_style`` density shrinks fonts and vertical steps by 15%.
"""

import math
import re
from enum import Enum
from typing import Any

from .models import DesignSystem, Density, FontSpec


class FontRole(Enum):
    """Typographic role of a text element."""
    TITLE = "title"
    SUBTITLE = "subtitle"
    BODY = "body"
    BODY_BOLD = "body_bold"
    CAPTION = "caption"
    STAT = "stat"
    STAT_LABEL = "stat_label"
    CARD_TITLE = "card_title"


# (font scale, vertical spacing scale)
DENSITY_SCALES = {
    Density.PRESENTATION: (1.0, 1.0),
    Density.READ_STYLE: (0.85, 0.85),
}


def font_scale(density: Density | str | None) -> float:
    return DENSITY_SCALES[Density.resolve(density)][0]


def spacing_scale(density: Density | str | None) -> float:
    return DENSITY_SCALES[Density.resolve(density)][1]


def base_font(role: FontRole, design: DesignSystem) -> FontSpec:
    """Unscaled font for a role."""
    face = design.primary_font
    specs = {
        FontRole.TITLE: FontSpec(face, design.title_size_pt, True, False, design.navy900),
        FontRole.SUBTITLE: FontSpec(face, design.subtitle_size_pt, False, False, design.gray700),
        FontRole.BODY: FontSpec(face, design.body_size_pt, False, False, design.gray900),
        FontRole.BODY_BOLD: FontSpec(face, design.body_size_pt, True, False, design.gray900),
        FontRole.CAPTION: FontSpec(face, design.caption_size_pt, False, False, design.gray500),
        FontRole.STAT: FontSpec(face, design.stat_size_pt, True, False, design.navy900),
        FontRole.STAT_LABEL: FontSpec(face, design.stat_label_size_pt, False, False, design.gray500),
        FontRole.CARD_TITLE: FontSpec(face, design.card_title_size_pt, True, False, design.navy900),
    }
    return specs[role]


def resolve_font(role: FontRole, density: Density | str | None,
                 design: DesignSystem) -> FontSpec:
    """Font for a role after density scaling."""
    return base_font(role, design).scaled(font_scale(density))


# ---------------------------------------------------------------------------
# Value text
# ---------------------------------------------------------------------------

def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce a loosely typed value to a float, ``default`` when impossible."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return default if math.isnan(value) else float(value)
    try:
        f = float(str(value).strip().replace(",", ""))
    except (TypeError, ValueError):
        return default
    return default if math.isnan(f) else f


def format_plain(value: Any) -> str:
    """Render a value as display text; integral floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


# Characters XML 1.0 cannot carry
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def strip_xml_illegal(text: str | None) -> str:
    """Drop control characters that OOXML parts cannot store."""
    return _XML_ILLEGAL.sub("", text or "")


def format_metric_value(value: Any, unit: str | None = None) -> str:
    """Attach a unit to a metric value: '$' prefixes, anything else suffixes."""
    text = format_plain(value)
    if not unit:
        return text
    if unit == "$":
        return f"${text}"
    return f"{text}{unit}"


def format_delta(delta: Any) -> str:
    """Signed change label: +5, -3, +0."""
    number = to_number(delta)
    sign = "+" if number >= 0 else ""
    return f"{sign}{format_plain(number)}"
