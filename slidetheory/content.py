"""Extraction of archetype-independent slide content from template props."""

from typing import Any

from slidetheory.schema.design_system import (
    format_metric_value,
    format_plain,
    strip_xml_illegal,
)
from slidetheory.schema.models import Metric, StructuredSlideContent, TemplateProps


DEFAULT_TITLE = "Slide"


def _clean(value: Any) -> str | None:
    """Stripped text, or None when the value is absent or blank.

    Control characters are dropped so the text survives as XML.
    """
    if value is None:
        return None
    text = strip_xml_illegal(format_plain(value)).strip()
    return text or None


def resolve_title(props: TemplateProps) -> str:
    return _clean(props.title) or DEFAULT_TITLE


def extract_metrics(props: TemplateProps) -> tuple[Metric, ...]:
    metrics = []
    for item in props.items("metrics"):
        if not isinstance(item, dict):
            continue
        trend = item.get("trend")
        metrics.append(Metric(
            label=format_plain(item.get("label")),
            value=format_metric_value(item.get("value"), item.get("unit")),
            trend=trend if trend in ("up", "down") else None,
            context=format_plain(item.get("context")).strip(),
        ))
    return tuple(metrics)


def extract_content(props: TemplateProps) -> StructuredSlideContent:
    """Build the StructuredSlideContent for a props bag.

    A missing title becomes DEFAULT_TITLE. A ``source`` wins over
    ``footnote`` and is rendered as "Source: ...".
    """
    source = _clean(props.source)
    footnote = f"Source: {source}" if source else _clean(props.footnote)
    return StructuredSlideContent(
        title=resolve_title(props),
        subtitle=_clean(props.subtitle),
        metrics=extract_metrics(props),
        footnote=footnote,
    )
