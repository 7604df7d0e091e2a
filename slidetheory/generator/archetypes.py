"""Archetype renderer registry.

Maps every ArchetypeId to a routine that places that archetype's visual
elements on a SlideCanvas.  The mapping is checked for exhaustiveness at
import time, so an archetype without a renderer fails on import rather than
at export.  ``render`` adds the shared slide chrome (master, title, subtitle,
footnote) around the archetype body.

Usage::

    from slidetheory.generator.archetypes import render
    from slidetheory.generator.canvas import SlideCanvas

    canvas = SlideCanvas()
    render("kpi_dashboard", props, canvas)
"""

import math
from typing import Any, Callable

from slidetheory.content import extract_content, resolve_title
from slidetheory.generator.canvas import (
    DEFAULT_MASTER_NAME,
    ShapeKind,
    SlideCanvas,
)
from slidetheory.generator.geometry import (
    SlideGeometry,
    grid_cell,
    resolve_geometry,
)
from slidetheory.schema.design_system import (
    FontRole,
    format_delta,
    format_plain,
    to_number,
)
from slidetheory.schema.models import (
    ArchetypeId,
    DesignSystem,
    StructuredSlideContent,
    TemplateProps,
)


Renderer = Callable[[SlideGeometry, SlideCanvas, TemplateProps, StructuredSlideContent],
                    None]

KPI_COLUMNS = 3
KPI_ROW_PITCH_IN = 1.7
CARD_HEIGHT_IN = 1.5
CARD_GAP_IN = 0.2


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _text(value: Any) -> str:
    return format_plain(value).strip()


def _records(props: TemplateProps, key: str, limit: int | None = None) -> list[dict]:
    """Dict items of a list-valued field; anything else is skipped."""
    return [item for item in props.items(key) if isinstance(item, dict)][:limit]


def _strings(value: Any, limit: int | None = None) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [_text(v) for v in value if _text(v)][:limit]


def _mapping(props: TemplateProps, key: str) -> dict:
    value = props.get(key)
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Shared slide chrome
# ---------------------------------------------------------------------------

def _render_heading(geo: SlideGeometry, canvas: SlideCanvas,
                    content: StructuredSlideContent) -> None:
    anchors = geo.anchors
    canvas.add_text(content.title, anchors.title, geo.font(FontRole.TITLE),
                    valign="top", name="title")
    if content.subtitle and anchors.subtitle is not None:
        canvas.add_text(content.subtitle, anchors.subtitle,
                        geo.font(FontRole.SUBTITLE), valign="top",
                        name="subtitle")


def _render_footnote(geo: SlideGeometry, canvas: SlideCanvas,
                     content: StructuredSlideContent) -> None:
    if content.footnote:
        canvas.add_text(content.footnote, geo.anchors.footnote,
                        geo.font(FontRole.CAPTION), name="footnote")


# ---------------------------------------------------------------------------
# Insight & summary
# ---------------------------------------------------------------------------

def render_executive_summary(geo: SlideGeometry, canvas: SlideCanvas,
                             props: TemplateProps,
                             content: StructuredSlideContent) -> None:
    """Up to four headline points, with an optional callout stat on the right."""
    d = geo.design
    x0 = geo.padding_x
    callout = _mapping(props, "callout")
    content_w = 6.5 if callout else 9.0

    for i, point in enumerate(_records(props, "points", 4)):
        y = geo.body_top + i * geo.step(0.95)
        canvas.add_shape(
            ShapeKind.OVAL, geo.box(x0, y + 0.08, 0.1, 0.1),
            fill=d.coral600 if point.get("highlight") else d.navy800,
        )
        canvas.add_text(_text(point.get("title")),
                        geo.box(x0 + 0.25, y, content_w - 0.5, 0.35),
                        geo.font(FontRole.BODY_BOLD), name="point")
        description = _text(point.get("description"))
        if description:
            canvas.add_text(description,
                            geo.box(x0 + 0.25, y + geo.step(0.32),
                                    content_w - 0.5, 0.5),
                            geo.font(FontRole.BODY))

    if callout:
        cx, cy = 7.5, geo.body_top + 0.5
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(cx, cy, 2.0, 2.5),
                         fill=d.navy100, line_color=d.navy700)
        canvas.add_text(_text(callout.get("value")),
                        geo.box(cx, cy + 0.3, 2.0, 0.8),
                        geo.font(FontRole.STAT), align="center",
                        name="callout_value")
        canvas.add_text(_text(callout.get("label")).upper(),
                        geo.box(cx, cy + 1.1, 2.0, 0.3),
                        geo.font(FontRole.STAT_LABEL), align="center")
        context = _text(callout.get("context"))
        if context:
            canvas.add_text(context, geo.box(cx, cy + 1.5, 2.0, 0.5),
                            geo.font(FontRole.BODY, size_pt=11, color=d.gray700),
                            align="center")


def render_situation_complication_resolution(geo: SlideGeometry,
                                             canvas: SlideCanvas,
                                             props: TemplateProps,
                                             content: StructuredSlideContent) -> None:
    d = geo.design
    section_w = (geo.content_width - 0.4) / 3
    top = geo.body_top
    sections = [
        ("situation", "Situation", d.navy800),
        ("complication", "Complication", d.coral600),
        ("resolution", "Resolution", d.green),
    ]
    for i, (key, default_title, color) in enumerate(sections):
        x = geo.padding_x + i * (section_w + 0.2)
        data = _mapping(props, key)
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, top, section_w, 0.08),
                         fill=color)
        canvas.add_text(_text(data.get("title")) or default_title,
                        geo.box(x + 0.15, top + 0.2, section_w - 0.3, 0.4),
                        geo.font(FontRole.CARD_TITLE, color=color),
                        name="section_title")
        points = _strings(data.get("points"), 4)
        if points:
            canvas.add_text(points,
                            geo.box(x + 0.15, top + geo.step(0.7),
                                    section_w - 0.3, 2.5),
                            geo.font(FontRole.BODY, size_pt=11, color=d.gray700),
                            bullets=True)


def render_three_pillar(geo: SlideGeometry, canvas: SlideCanvas,
                        props: TemplateProps,
                        content: StructuredSlideContent) -> None:
    d = geo.design
    card_w = (geo.content_width - 0.4) / 3
    card_h = 3.6
    top = geo.body_top
    for i, pillar in enumerate(_records(props, "pillars", 3)):
        x = geo.padding_x + i * (card_w + 0.2)
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, top, card_w, card_h),
                         fill=d.gray100, shadow=True)
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, top, card_w, 0.06),
                         fill=d.coral600)
        canvas.add_text(_text(pillar.get("title")),
                        geo.box(x + 0.2, top + 0.25, card_w - 0.4, 0.4),
                        geo.font(FontRole.CARD_TITLE), name="pillar")
        canvas.add_text(_text(pillar.get("description")),
                        geo.box(x + 0.2, top + 0.7, card_w - 0.4, 0.6),
                        geo.font(FontRole.BODY))

        metrics = _strings(pillar.get("metrics"), 2)
        for j, metric in enumerate(metrics):
            canvas.add_text(metric,
                            geo.box(x + 0.2, top + 1.4 + j * geo.step(0.35),
                                    card_w - 0.4, 0.3),
                            geo.font(FontRole.BODY, size_pt=11, bold=True,
                                     color=d.navy800))

        bullets = _strings(pillar.get("bullets"), 3)
        if bullets:
            offset = 2.1 if metrics else 1.4
            canvas.add_text(bullets,
                            geo.box(x + 0.2, top + offset, card_w - 0.4,
                                    card_h - offset - 0.2),
                            geo.font(FontRole.BODY, size_pt=10, color=d.gray700),
                            bullets=True)


# ---------------------------------------------------------------------------
# Data & metrics
# ---------------------------------------------------------------------------

def render_kpi_dashboard(geo: SlideGeometry, canvas: SlideCanvas,
                         props: TemplateProps,
                         content: StructuredSlideContent) -> None:
    """Metric callouts in a fixed three-column grid; extra rows grow downward."""
    d = geo.design
    metrics = content.metrics
    cell_w = geo.content_width / KPI_COLUMNS
    pitch = geo.step(KPI_ROW_PITCH_IN)

    for i, metric in enumerate(metrics):
        x, y = grid_cell(i, KPI_COLUMNS, geo.padding_x, geo.body_top,
                         cell_w, pitch)
        canvas.add_text(metric.value, geo.box(x, y, cell_w, 0.9),
                        geo.font(FontRole.STAT),
                        align="center", valign="bottom", name="metric_value")
        canvas.add_text(metric.label.strip().upper(),
                        geo.box(x, y + 0.95, cell_w, 0.3),
                        geo.font(FontRole.STAT_LABEL), align="center",
                        name="metric_label")

        trend, context = metric.trend, metric.context
        if trend:
            color = d.green if trend == "up" else d.coral600
            text = context or ("▲ Up" if trend == "up" else "▼ Down")
            canvas.add_text(text, geo.box(x, y + 1.3, cell_w, 0.25),
                            geo.font(FontRole.BODY, size_pt=11, color=color),
                            align="center")
        elif context:
            canvas.add_text(context, geo.box(x, y + 1.3, cell_w, 0.25),
                            geo.font(FontRole.BODY, size_pt=11, color=d.gray700),
                            align="center")

        if i % KPI_COLUMNS < KPI_COLUMNS - 1 and i < len(metrics) - 1:
            lx = x + cell_w - 0.05
            canvas.add_line(geo.point(lx, y + 0.15), geo.point(lx, y + 1.55),
                            d.gray200)

    context_line = _text(props.get("contextLine"))
    if context_line:
        rows = max(math.ceil(len(metrics) / KPI_COLUMNS), 1)
        canvas.add_text(context_line,
                        geo.box(geo.padding_x,
                                geo.body_top + rows * pitch + geo.step(0.5),
                                geo.content_width, 0.4),
                        geo.font(FontRole.BODY), align="center",
                        name="context_line")


def render_waterfall_chart(geo: SlideGeometry, canvas: SlideCanvas,
                           props: TemplateProps,
                           content: StructuredSlideContent) -> None:
    d = geo.design
    start_value = to_number(props.get("startValue"))
    end_value = to_number(props.get("endValue"))
    changes = _records(props, "changes")
    top = geo.body_top
    chart_h = 2.5
    bar_w = 0.6
    spacing = 0.8
    start_x = (geo.slide_width - (len(changes) + 2) * spacing) / 2
    baseline = top + chart_h

    running = start_value
    extents = [abs(start_value), abs(end_value)]
    for change in changes:
        delta = to_number(change.get("delta"))
        extents.append(abs(delta))
        running += delta
        extents.append(abs(running))
    max_value = max(extents)
    scale = chart_h / (max_value * 1.2) if max_value > 0 else 0.0

    def total_bar(x, value, label):
        height = abs(value) * scale
        bar_y = baseline - height
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, bar_y, bar_w, height),
                         fill=d.navy800)
        canvas.add_text(format_plain(value), geo.box(x, bar_y - 0.3, bar_w, 0.25),
                        geo.font(FontRole.BODY, size_pt=11, bold=True,
                                 color=d.navy900), align="center")
        canvas.add_text(label, geo.box(x, baseline + 0.1, bar_w, 0.3),
                        geo.font(FontRole.BODY, size_pt=9, color=d.gray700),
                        align="center")

    total_bar(start_x, start_value, "Start")

    running = start_value
    for i, change in enumerate(changes):
        x = start_x + (i + 1) * spacing
        delta = to_number(change.get("delta"))
        positive = delta >= 0
        bar_h = abs(delta) * scale
        prev_y = baseline - abs(running) * scale
        bar_y = prev_y - bar_h if positive else prev_y
        running += delta
        color = d.green if positive else d.coral600

        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, bar_y, bar_w, bar_h),
                         fill=color, name="waterfall_step")
        canvas.add_text(format_delta(delta), geo.box(x, bar_y - 0.3, bar_w, 0.25),
                        geo.font(FontRole.BODY, size_pt=10, bold=True,
                                 color=color), align="center")
        canvas.add_text(_text(change.get("label")),
                        geo.box(x - 0.1, baseline + 0.1, bar_w + 0.2, 0.5),
                        geo.font(FontRole.BODY, size_pt=8, color=d.gray700),
                        align="center")

    total_bar(start_x + (len(changes) + 1) * spacing, end_value, "End")


def render_trend_line(geo: SlideGeometry, canvas: SlideCanvas,
                      props: TemplateProps,
                      content: StructuredSlideContent) -> None:
    d = geo.design
    data = _records(props, "data")
    if not data:
        return

    top = geo.body_top
    chart_h = 2.8
    chart_w = geo.content_width - 1
    start_x = geo.padding_x + 0.5
    values = [to_number(p.get("value")) for p in data]
    hi = max(values)
    lo = min(values)
    hi_axis = hi + abs(hi) * 0.1
    lo_axis = lo - abs(lo) * 0.1
    span = (hi_axis - lo_axis) or 1.0
    pitch = chart_w / (len(data) - 1 or 1)

    canvas.add_line(geo.point(start_x, top), geo.point(start_x, top + chart_h),
                    d.gray500)
    canvas.add_line(geo.point(start_x, top + chart_h),
                    geo.point(start_x + chart_w, top + chart_h), d.gray500)
    for pct in (0.25, 0.5, 0.75):
        gy = top + chart_h * (1 - pct)
        canvas.add_line(geo.point(start_x, gy), geo.point(start_x + chart_w, gy),
                        d.gray200, width_pt=0.5, dashed=True)

    points = []
    for i, (point, value) in enumerate(zip(data, values)):
        x = start_x + i * pitch
        y = top + chart_h - ((value - lo_axis) / span) * chart_h
        points.append((x, y))
        canvas.add_shape(ShapeKind.OVAL, geo.box(x - 0.06, y - 0.06, 0.12, 0.12),
                         fill=d.navy800, name="trend_point")
        canvas.add_text(_text(point.get("label")),
                        geo.box(x - 0.3, top + chart_h + 0.15, 0.6, 0.4),
                        geo.font(FontRole.BODY, size_pt=9, color=d.gray700),
                        align="center")
        if i in (0, len(data) - 1) or value in (hi, lo):
            canvas.add_text(format_plain(value), geo.box(x - 0.3, y - 0.35, 0.6, 0.25),
                            geo.font(FontRole.BODY, size_pt=9, bold=True,
                                     color=d.navy900), align="center")

    for (x1, y1), (x2, y2) in zip(points, points[1:]):
        canvas.add_line(geo.point(x1, y1), geo.point(x2, y2), d.navy800,
                        width_pt=2)

    takeaway = _text(props.get("keyTakeaway"))
    if takeaway:
        canvas.add_text(takeaway,
                        geo.box(geo.padding_x, top + chart_h + 0.7,
                                geo.content_width, 0.4),
                        geo.font(FontRole.BODY), align="center",
                        name="takeaway")


def render_stacked_bar(geo: SlideGeometry, canvas: SlideCanvas,
                       props: TemplateProps,
                       content: StructuredSlideContent) -> None:
    d = geo.design
    data = _records(props, "data", 6)
    if not data:
        return
    bar_h = 0.4
    pitch = geo.step(0.55)
    max_bar_w = geo.content_width - 2
    values = [to_number(item.get("value")) for item in data]
    max_value = max(values) * 1.1
    bar_x = geo.padding_x + 1.6

    for i, (item, value) in enumerate(zip(data, values)):
        y = geo.body_top + i * pitch
        bar_w = max(value / max_value * max_bar_w, 0.0) if max_value > 0 else 0.0
        canvas.add_text(_text(item.get("category")),
                        geo.box(geo.padding_x, y + 0.05, 1.5, 0.3),
                        geo.font(FontRole.BODY, size_pt=10, bold=True,
                                 color=d.navy900))
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(bar_x, y, bar_w, bar_h),
                         fill=d.navy800 if i % 2 == 0 else d.navy700,
                         name="bar")
        canvas.add_text(format_plain(value),
                        geo.box(bar_x + bar_w + 0.1, y + 0.05, 1.0, 0.3),
                        geo.font(FontRole.BODY, size_pt=11, bold=True,
                                 color=d.navy900))


def render_market_sizing(geo: SlideGeometry, canvas: SlideCanvas,
                         props: TemplateProps,
                         content: StructuredSlideContent) -> None:
    """Nested TAM/SAM/SOM ovals sharing a bottom edge."""
    d = geo.design
    levels = _records(props, "levels", 3)
    top = geo.body_top
    center_x = geo.slide_width / 2
    rings = [(4.0, 2.5, d.navy100), (3.0, 1.9, d.navy800), (2.0, 1.3, d.coral600)]
    bottom = top + rings[0][1]

    for i, level in enumerate(levels):
        w, h, fill = rings[i]
        x = center_x - w / 2
        y = bottom - h
        text_color = d.navy900 if i == 0 else d.white
        innermost = i == len(levels) - 1
        name_y = y + h / 2 - 0.35 if innermost else y + 0.05
        value_y = y + h / 2 if innermost else y + 0.28
        canvas.add_shape(ShapeKind.OVAL, geo.box(x, y, w, h), fill=fill,
                         name="market_level")
        canvas.add_text(_text(level.get("name")), geo.box(x, name_y, w, 0.3),
                        geo.font(FontRole.BODY, size_pt=14 if innermost else 12,
                                 bold=True, color=text_color), align="center")
        canvas.add_text(_text(level.get("value")), geo.box(x, value_y, w, 0.35),
                        geo.font(FontRole.BODY, size_pt=20 if innermost else 16,
                                 bold=True, color=text_color), align="center")
        description = _text(level.get("description"))
        if description:
            canvas.add_text(description, geo.box(7.3, y + 0.05, 2.2, 0.5),
                            geo.font(FontRole.BODY, size_pt=9, color=d.gray700))

    methodology = _text(props.get("methodology"))
    if methodology:
        canvas.add_text(methodology,
                        geo.box(geo.padding_x, top + 3.0, geo.content_width, 0.4),
                        geo.font(FontRole.BODY), align="center")


# ---------------------------------------------------------------------------
# Comparison & analysis
# ---------------------------------------------------------------------------

def render_comparison_table(geo: SlideGeometry, canvas: SlideCanvas,
                            props: TemplateProps,
                            content: StructuredSlideContent) -> None:
    d = geo.design
    headers = [_text(h) for h in props.items("headers")]
    rows = _records(props, "rows", 8)
    recommended = props.get("recommendedColumn")
    top = geo.body_top
    col_w = geo.content_width / (len(headers) or 3)
    row_h = geo.step(0.45)
    white_bold = geo.font(FontRole.BODY, bold=True, color=d.white)

    for i, header in enumerate(headers):
        x = geo.padding_x + i * col_w
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, top, col_w, row_h),
                         fill=d.navy900)
        canvas.add_text(header, geo.box(x + 0.1, top + 0.05, col_w - 0.2, row_h - 0.1),
                        white_bold, valign="middle", name="table_header")
        if recommended == i:
            canvas.add_shape(ShapeKind.RECTANGLE,
                             geo.box(x - 0.02, top, 0.04, row_h * (len(rows) + 1)),
                             fill=d.coral600, name="recommended")

    for r, row in enumerate(rows):
        y = top + (r + 1) * row_h
        bg = d.white if r % 2 == 0 else d.gray100
        canvas.add_shape(ShapeKind.RECTANGLE,
                         geo.box(geo.padding_x, y, col_w, row_h), fill=bg)
        canvas.add_text(_text(row.get("criteria")),
                        geo.box(geo.padding_x + 0.1, y + 0.05, col_w - 0.2, row_h - 0.1),
                        geo.font(FontRole.BODY_BOLD), valign="middle",
                        name="table_criteria")
        values = row.get("values") if isinstance(row.get("values"), list) else []
        for c, value in enumerate(values):
            x = geo.padding_x + (c + 1) * col_w
            fill = d.coral100 if recommended == c + 1 else bg
            canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, y, col_w, row_h),
                             fill=fill)
            canvas.add_text(format_plain(value),
                            geo.box(x + 0.1, y + 0.05, col_w - 0.2, row_h - 0.1),
                            geo.font(FontRole.BODY), valign="middle")


def render_two_by_two_matrix(geo: SlideGeometry, canvas: SlideCanvas,
                             props: TemplateProps,
                             content: StructuredSlideContent) -> None:
    d = geo.design
    x_label = _text(props.get("xAxisLabel")) or "Effort"
    y_label = _text(props.get("yAxisLabel")) or "Impact"
    size = 3.5
    cell = size / 2
    mx = (geo.slide_width - size) / 2
    my = geo.body_top + 0.3
    axis_font = geo.font(FontRole.BODY, size_pt=11, bold=True, color=d.navy800)

    canvas.add_text(y_label, geo.box(geo.padding_x, my + cell - 0.15, 1.0, 0.3),
                    axis_font, align="center", name="y_axis")
    canvas.add_text(x_label, geo.box(mx + cell - 0.5, my + size + 0.1, 1.0, 0.3),
                    axis_font, align="center", name="x_axis")
    canvas.add_line(geo.point(mx + cell, my), geo.point(mx + cell, my + size),
                    d.gray200, dashed=True)
    canvas.add_line(geo.point(mx, my + cell), geo.point(mx + size, my + cell),
                    d.gray200, dashed=True)

    corners = {
        "top-left": (mx, my),
        "top-right": (mx + cell, my),
        "bottom-left": (mx, my + cell),
        "bottom-right": (mx + cell, my + cell),
    }
    for quadrant in _records(props, "quadrants"):
        corner = corners.get(quadrant.get("position"))
        if corner is None:
            continue
        qx, qy = corner
        canvas.add_text(_text(quadrant.get("name")),
                        geo.box(qx + 0.1, qy + 0.1, cell - 0.2, 0.3),
                        geo.font(FontRole.BODY, bold=True, color=d.navy800),
                        name="quadrant")
        for j, item in enumerate(_strings(quadrant.get("items"), 4)):
            canvas.add_text(f"• {item}",
                            geo.box(qx + 0.1, qy + 0.45 + j * geo.step(0.28),
                                    cell - 0.2, 0.25),
                            geo.font(FontRole.BODY, size_pt=10, color=d.gray700))


def render_before_after(geo: SlideGeometry, canvas: SlideCanvas,
                        props: TemplateProps,
                        content: StructuredSlideContent) -> None:
    d = geo.design
    top = geo.body_top
    col_w = (geo.content_width - 0.5) / 2
    item_font = geo.font(FontRole.BODY, size_pt=11, color=d.gray700)
    columns = [
        (geo.padding_x, _mapping(props, "before"), "Current State", "painPoints",
         "✗", d.gray100, d.coral600),
        (geo.padding_x + col_w + 0.5, _mapping(props, "after"), "Future State",
         "benefits", "✓", d.navy100, d.green),
    ]
    for x, data, default_title, key, mark, fill, accent in columns:
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(x, top, col_w, 3.5),
                         fill=fill)
        canvas.add_text(_text(data.get("title")) or default_title,
                        geo.box(x + 0.2, top + 0.2, col_w - 0.4, 0.4),
                        geo.font(FontRole.CARD_TITLE, color=accent),
                        name="state_title")
        for j, item in enumerate(_strings(data.get(key), 4)):
            canvas.add_text(f"{mark} {item}",
                            geo.box(x + 0.2, top + 0.7 + j * geo.step(0.45),
                                    col_w - 0.4, 0.4), item_font)

    canvas.add_shape(ShapeKind.RIGHT_ARROW,
                     geo.box(geo.padding_x + col_w + 0.1, top + 1.5, 0.3, 0.5),
                     fill=d.navy800, name="arrow")


def render_competitive_landscape(geo: SlideGeometry, canvas: SlideCanvas,
                                 props: TemplateProps,
                                 content: StructuredSlideContent) -> None:
    d = geo.design
    size = 3.4
    cx = (geo.slide_width - size) / 2
    cy = geo.body_top
    axes = _mapping(props, "axes")
    axis_font = geo.font(FontRole.BODY, size_pt=10, bold=True, color=d.navy800)

    canvas.add_shape(ShapeKind.RECTANGLE, geo.box(cx, cy, size, size),
                     fill=d.gray100)
    canvas.add_line(geo.point(cx + size / 2, cy), geo.point(cx + size / 2, cy + size),
                    d.gray500, dashed=True)
    canvas.add_line(geo.point(cx, cy + size / 2), geo.point(cx + size, cy + size / 2),
                    d.gray500, dashed=True)
    if axes:
        canvas.add_text(_text(axes.get("y")),
                        geo.box(cx - 0.8, cy + size / 2 - 0.15, 0.7, 0.3),
                        axis_font, align="center", name="y_axis")
        canvas.add_text(_text(axes.get("x")),
                        geo.box(cx + size / 2 - 0.5, cy + size + 0.1, 1.0, 0.25),
                        axis_font, align="center", name="x_axis")

    for comp in _records(props, "competitors"):
        px = cx + min(max(to_number(comp.get("xPos")), 0.0), 1.0) * size
        py = cy + (1 - min(max(to_number(comp.get("yPos")), 0.0), 1.0)) * size
        bubble = max(0.15, to_number(comp.get("size")) * 0.5)
        canvas.add_shape(ShapeKind.OVAL,
                         geo.box(px - bubble / 2, py - bubble / 2, bubble, bubble),
                         fill=d.navy800, name="competitor")
        canvas.add_text(_text(comp.get("name")),
                        geo.box(px - 0.5, py + bubble / 2 + 0.05, 1.0, 0.25),
                        geo.font(FontRole.BODY, size_pt=9, color=d.gray700),
                        align="center")


# ---------------------------------------------------------------------------
# Process & structure
# ---------------------------------------------------------------------------

def render_process_flow(geo: SlideGeometry, canvas: SlideCanvas,
                        props: TemplateProps,
                        content: StructuredSlideContent) -> None:
    d = geo.design
    steps = _records(props, "steps", 6)
    if not steps:
        return
    gap = 0.15
    step_w = (geo.content_width - (len(steps) - 1) * gap) / len(steps)
    step_h = 2.5
    top = geo.body_top

    for i, step in enumerate(steps):
        x = geo.padding_x + i * (step_w + gap)
        body_x = x if i == 0 else x - gap
        canvas.add_shape(ShapeKind.RECTANGLE,
                         geo.box(body_x, top, step_w + (x - body_x), step_h),
                         fill=d.navy800, name="step")
        number = step.get("number", i + 1)
        canvas.add_text(format_plain(number),
                        geo.box(x + 0.15, top + 0.2, step_w - 0.3, 0.5),
                        geo.font(FontRole.BODY, size_pt=28, bold=True, color=d.white))
        canvas.add_text(_text(step.get("title")),
                        geo.box(x + 0.15, top + 0.75, step_w - 0.3, 0.5),
                        geo.font(FontRole.BODY, size_pt=13, bold=True, color=d.white),
                        name="step_title")
        canvas.add_text(_text(step.get("description")),
                        geo.box(x + 0.15, top + 1.35, step_w - 0.3, 1.0),
                        geo.font(FontRole.BODY, size_pt=10, color=d.white))


def render_timeline_swimlane(geo: SlideGeometry, canvas: SlideCanvas,
                             props: TemplateProps,
                             content: StructuredSlideContent) -> None:
    d = geo.design
    periods = [_text(p) for p in props.items("periods")]
    lanes = _records(props, "lanes", 5)
    top = geo.body_top
    label_w = 1.4
    track_x = geo.padding_x + label_w
    track_w = geo.content_width - label_w
    col_w = track_w / (len(periods) or 4)
    lane_h = geo.step(0.6)

    for i, period in enumerate(periods):
        canvas.add_text(period, geo.box(track_x + i * col_w, top, col_w, 0.3),
                        geo.font(FontRole.BODY, size_pt=11, bold=True,
                                 color=d.navy800),
                        align="center", name="period")

    for li, lane in enumerate(lanes):
        y = top + 0.4 + li * lane_h
        canvas.add_text(_text(lane.get("name")),
                        geo.box(geo.padding_x, y + 0.1, label_w - 0.1, 0.4),
                        geo.font(FontRole.BODY, size_pt=10, bold=True,
                                 color=d.navy900),
                        valign="middle", name="lane")
        canvas.add_shape(ShapeKind.RECTANGLE,
                         geo.box(track_x, y, track_w, lane_h - 0.1),
                         fill=d.gray100 if li % 2 == 0 else d.white)

        activities = lane.get("activities")
        if not isinstance(activities, list):
            continue
        for activity in [a for a in activities if isinstance(a, dict)][:3]:
            start = _text(activity.get("start"))
            end = _text(activity.get("end"))
            if start not in periods or end not in periods:
                continue
            start_idx = periods.index(start)
            end_idx = periods.index(end)
            bar_w = (end_idx - start_idx + 1) * col_w - 0.1
            if bar_w <= 0:
                continue
            bar_x = track_x + start_idx * col_w + 0.05
            canvas.add_shape(ShapeKind.RECTANGLE,
                             geo.box(bar_x, y + 0.12, bar_w, 0.35),
                             fill=d.navy800, name="activity")
            canvas.add_text(_text(activity.get("label")),
                            geo.box(bar_x, y + 0.15, bar_w, 0.3),
                            geo.font(FontRole.BODY, size_pt=9, color=d.white),
                            align="center", valign="middle")


def render_issue_tree(geo: SlideGeometry, canvas: SlideCanvas,
                      props: TemplateProps,
                      content: StructuredSlideContent) -> None:
    d = geo.design
    root = _text(props.get("rootProblem")) or resolve_title(props)
    branches = _records(props, "branches", 4)
    top = geo.body_top
    branch_w = (geo.content_width - 1) / (len(branches) or 1)
    root_w = 3.0
    root_x = (geo.slide_width - root_w) / 2

    canvas.add_shape(ShapeKind.RECTANGLE, geo.box(root_x, top, root_w, 0.6),
                     fill=d.navy800)
    canvas.add_text(root, geo.box(root_x + 0.15, top + 0.15, root_w - 0.3, 0.3),
                    geo.font(FontRole.BODY, bold=True, color=d.white),
                    align="center", name="root")

    for i, branch in enumerate(branches):
        bx = geo.padding_x + 0.5 + i * branch_w
        by = top + 1.2
        canvas.add_shape(ShapeKind.RECTANGLE, geo.box(bx, by, branch_w - 0.4, 0.5),
                         fill=d.gray100, line_color=d.navy800)
        canvas.add_text(_text(branch.get("issue")),
                        geo.box(bx + 0.1, by + 0.12, branch_w - 0.6, 0.26),
                        geo.font(FontRole.BODY, size_pt=10, bold=True,
                                 color=d.navy900),
                        name="branch")
        for j, sub in enumerate(_strings(branch.get("subIssues"), 3)):
            canvas.add_text(f"• {sub}",
                            geo.box(bx + 0.1, by + 0.7 + j * geo.step(0.35),
                                    branch_w - 0.6, 0.3),
                            geo.font(FontRole.BODY, size_pt=9, color=d.gray700))


def render_decision_tree(geo: SlideGeometry, canvas: SlideCanvas,
                         props: TemplateProps,
                         content: StructuredSlideContent) -> None:
    d = geo.design
    root = _text(props.get("rootQuestion")) or resolve_title(props)
    branches = _records(props, "branches", 3)
    top = geo.body_top
    branch_w = geo.content_width / (len(branches) or 1)
    root_w = 2.5
    root_x = (geo.slide_width - root_w) / 2

    canvas.add_shape(ShapeKind.RECTANGLE, geo.box(root_x, top, root_w, 0.7),
                     fill=d.navy800)
    canvas.add_text(root, geo.box(root_x + 0.1, top + 0.15, root_w - 0.2, 0.4),
                    geo.font(FontRole.BODY, size_pt=11, bold=True, color=d.white),
                    align="center", valign="middle", name="root")

    for i, branch in enumerate(branches):
        bx = geo.padding_x + i * branch_w
        canvas.add_text(_text(branch.get("condition")),
                        geo.box(bx, top + 0.9, branch_w, 0.25),
                        geo.font(FontRole.BODY, size_pt=9, bold=True,
                                 color=d.navy800),
                        align="center", name="condition")
        canvas.add_shape(ShapeKind.RECTANGLE,
                         geo.box(bx + 0.2, top + 1.5, branch_w - 0.4, 0.6),
                         fill=d.gray100, line_color=d.navy700)
        canvas.add_text(_text(branch.get("outcome")),
                        geo.box(bx + 0.3, top + 1.65, branch_w - 0.6, 0.3),
                        geo.font(FontRole.BODY, size_pt=10, color=d.navy900),
                        align="center", name="outcome")


def render_grid_cards(geo: SlideGeometry, canvas: SlideCanvas,
                      props: TemplateProps,
                      content: StructuredSlideContent) -> None:
    """Cards in a 2- or 3-column grid; every card is drawn, rows grow down."""
    d = geo.design
    cards = _records(props, "cards")
    columns = 2 if _text(props.get("gridSize")) in ("", "2x2") else 3
    card_w = (geo.content_width - (columns - 1) * CARD_GAP_IN) / columns

    for i, card in enumerate(cards):
        x, y = grid_cell(i, columns, geo.padding_x, geo.body_top, card_w,
                         CARD_HEIGHT_IN, CARD_GAP_IN, geo.step(CARD_GAP_IN))
        canvas.add_shape(ShapeKind.RECTANGLE,
                         geo.box(x, y, card_w, CARD_HEIGHT_IN),
                         fill=d.gray100, shadow=True, name="card")
        canvas.add_shape(ShapeKind.OVAL, geo.box(x + 0.15, y + 0.12, 0.3, 0.3),
                         fill=d.navy100, line_color=d.navy700)
        canvas.add_text(_text(card.get("title")),
                        geo.box(x + 0.6, y + 0.12, card_w - 0.75, 0.35),
                        geo.font(FontRole.CARD_TITLE), name="card_title")
        canvas.add_text(_text(card.get("body")),
                        geo.box(x + 0.15, y + 0.55, card_w - 0.3,
                                CARD_HEIGHT_IN - 0.7),
                        geo.font(FontRole.BODY))


def render_agenda_divider(geo: SlideGeometry, canvas: SlideCanvas,
                          props: TemplateProps,
                          content: StructuredSlideContent) -> None:
    d = geo.design
    sections = _records(props, "sections", 6)
    current = props.get("currentSection", 1)
    top = geo.body_top
    pitch = geo.step(0.55)

    canvas.add_text("Agenda", geo.box(geo.padding_x, top - 0.3,
                                      geo.content_width, 0.5),
                    geo.font(FontRole.BODY, size_pt=20, bold=True,
                             color=d.navy900), name="agenda")
    for i, section in enumerate(sections):
        y = top + 0.3 + i * pitch
        number = section.get("number", i + 1)
        active = number == current
        canvas.add_shape(ShapeKind.OVAL, geo.box(geo.padding_x, y + 0.05, 0.4, 0.4),
                         fill=d.coral600 if active else d.gray200)
        canvas.add_text(format_plain(number),
                        geo.box(geo.padding_x, y + 0.1, 0.4, 0.3),
                        geo.font(FontRole.BODY, size_pt=14, bold=True,
                                 color=d.white if active else d.gray700),
                        align="center")
        canvas.add_text(_text(section.get("title")),
                        geo.box(geo.padding_x + 0.55, y + 0.1,
                                geo.content_width - 0.6, 0.3),
                        geo.font(FontRole.BODY, size_pt=14, bold=active,
                                 color=d.navy900 if active else d.gray700),
                        name="section")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

RENDERERS: dict[ArchetypeId, Renderer] = {
    ArchetypeId.EXECUTIVE_SUMMARY: render_executive_summary,
    ArchetypeId.SITUATION_COMPLICATION_RESOLUTION: render_situation_complication_resolution,
    ArchetypeId.TWO_BY_TWO_MATRIX: render_two_by_two_matrix,
    ArchetypeId.COMPARISON_TABLE: render_comparison_table,
    ArchetypeId.BEFORE_AFTER: render_before_after,
    ArchetypeId.KPI_DASHBOARD: render_kpi_dashboard,
    ArchetypeId.WATERFALL_CHART: render_waterfall_chart,
    ArchetypeId.TREND_LINE: render_trend_line,
    ArchetypeId.STACKED_BAR: render_stacked_bar,
    ArchetypeId.PROCESS_FLOW: render_process_flow,
    ArchetypeId.TIMELINE_SWIMLANE: render_timeline_swimlane,
    ArchetypeId.DECISION_TREE: render_decision_tree,
    ArchetypeId.ISSUE_TREE: render_issue_tree,
    ArchetypeId.THREE_PILLAR: render_three_pillar,
    ArchetypeId.GRID_CARDS: render_grid_cards,
    ArchetypeId.MARKET_SIZING: render_market_sizing,
    ArchetypeId.COMPETITIVE_LANDSCAPE: render_competitive_landscape,
    ArchetypeId.AGENDA_DIVIDER: render_agenda_divider,
}

_unregistered = set(ArchetypeId) - set(RENDERERS)
if _unregistered:
    raise RuntimeError(
        "Archetypes without a renderer: "
        + ", ".join(sorted(a.value for a in _unregistered))
    )


def renderer_for(archetype_id: ArchetypeId | str) -> Renderer:
    """Return the renderer for an archetype; unknown ids raise."""
    return RENDERERS[ArchetypeId.parse(archetype_id)]


def render(archetype_id: ArchetypeId | str, props: TemplateProps,
           canvas: SlideCanvas, design: DesignSystem | None = None) -> SlideGeometry:
    """Render one slide onto ``canvas``.

    Raises UnknownArchetypeError before touching the canvas when the
    archetype is not supported.
    """
    renderer = renderer_for(archetype_id)
    geo = resolve_geometry(archetype_id, props, design)
    content = extract_content(props)

    canvas.width_in = geo.slide_width
    canvas.height_in = geo.slide_height
    canvas.define_master(DEFAULT_MASTER_NAME, geo.design.white)
    canvas.title = content.title
    canvas.subject = content.title

    _render_heading(geo, canvas, content)
    renderer(geo, canvas, props, content)
    _render_footnote(geo, canvas, content)
    return geo
