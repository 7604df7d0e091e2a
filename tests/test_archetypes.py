"""Tests for the archetype renderer registry."""

from unittest.mock import patch

import pytest

from slidetheory.errors import UnknownArchetypeError
from slidetheory.generator.archetypes import (
    KPI_COLUMNS,
    RENDERERS,
    render,
    renderer_for,
)
from slidetheory.generator.canvas import (
    DEFAULT_MASTER_NAME,
    ShapeKind,
    SlideCanvas,
)
from slidetheory.schema.models import ArchetypeId, Metric, TemplateProps


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def canvas():
    return SlideCanvas()


SAMPLE_FIELDS = {
    ArchetypeId.EXECUTIVE_SUMMARY: {
        "points": [
            {"title": "Revenue up 18%", "description": "Driven by enterprise", "highlight": True},
            {"title": "Churn flat", "description": "Held at 2.1%"},
        ],
        "callout": {"value": "$4.2M", "label": "ARR added", "context": "vs plan $3.8M"},
    },
    ArchetypeId.SITUATION_COMPLICATION_RESOLUTION: {
        "situation": {"points": ["Market growing 12%"]},
        "complication": {"title": "Share loss", "points": ["Two new entrants"]},
        "resolution": {"points": ["Bundle pricing", "Partner channel"]},
    },
    ArchetypeId.TWO_BY_TWO_MATRIX: {
        "quadrants": [
            {"name": "Quick wins", "position": "top-left", "items": ["SSO", "Dark mode"]},
            {"name": "Big bets", "position": "top-right", "items": ["AI search"]},
            {"name": "Ignored", "position": "middle", "items": ["x"]},
        ],
    },
    ArchetypeId.COMPARISON_TABLE: {
        "headers": ["Criteria", "Vendor A", "Vendor B"],
        "rows": [
            {"criteria": "Price", "values": ["$10", "$12"]},
            {"criteria": "Support", "values": ["24/7", "Business hours"]},
        ],
        "recommendedColumn": 1,
    },
    ArchetypeId.BEFORE_AFTER: {
        "before": {"painPoints": ["Manual reports", "Slow"]},
        "after": {"title": "Automated", "benefits": ["Daily refresh"]},
    },
    ArchetypeId.KPI_DASHBOARD: {
        "metrics": [
            {"label": "Revenue", "value": 4.2, "unit": "$", "trend": "up"},
            {"label": "Margin", "value": 31, "unit": "%", "trend": "down"},
            {"label": "NPS", "value": 62, "context": "Best in class"},
        ],
        "contextLine": "All figures Q3 FY24",
    },
    ArchetypeId.WATERFALL_CHART: {
        "startValue": 100, "endValue": 120,
        "changes": [{"label": "Price", "delta": 30}, {"label": "Volume", "delta": -10}],
    },
    ArchetypeId.TREND_LINE: {
        "data": [{"label": "Q1", "value": 10}, {"label": "Q2", "value": 14},
                 {"label": "Q3", "value": 12}],
        "keyTakeaway": "Growth resumed in Q3",
    },
    ArchetypeId.STACKED_BAR: {
        "data": [{"category": "EMEA", "value": 40}, {"category": "APAC", "value": 25}],
    },
    ArchetypeId.PROCESS_FLOW: {
        "steps": [{"title": "Discover", "description": "Interviews"},
                  {"title": "Design"}, {"number": 9, "title": "Deliver"}],
    },
    ArchetypeId.TIMELINE_SWIMLANE: {
        "periods": ["Q1", "Q2", "Q3", "Q4"],
        "lanes": [{"name": "Product", "activities": [
            {"start": "Q1", "end": "Q2", "label": "Beta"},
            {"start": "Q4", "end": "Q1", "label": "Backwards"},
            {"start": "Q5", "end": "Q6", "label": "Unknown"},
        ]}],
    },
    ArchetypeId.DECISION_TREE: {
        "rootQuestion": "Build or buy?",
        "branches": [{"condition": "Core IP", "outcome": "Build"},
                     {"condition": "Commodity", "outcome": "Buy"}],
    },
    ArchetypeId.ISSUE_TREE: {
        "rootProblem": "Margin decline",
        "branches": [{"issue": "Costs", "subIssues": ["Cloud", "Headcount"]},
                     {"issue": "Pricing"}],
    },
    ArchetypeId.THREE_PILLAR: {
        "pillars": [
            {"title": "People", "description": "Hire", "metrics": ["+40 FTE"], "bullets": ["Sales", "CS"]},
            {"title": "Process", "description": "Automate", "bullets": ["CI"]},
            {"title": "Platform", "description": "Scale"},
        ],
    },
    ArchetypeId.GRID_CARDS: {
        "gridSize": "2x2",
        "cards": [{"icon": "chart", "title": "Growth", "body": "18% YoY"},
                  {"title": "Retention", "body": "94%"}],
    },
    ArchetypeId.MARKET_SIZING: {
        "levels": [{"name": "TAM", "value": "$40B", "description": "All SMBs"},
                   {"name": "SAM", "value": "$8B"}, {"name": "SOM", "value": "$400M"}],
        "methodology": "Bottom-up from seat counts",
    },
    ArchetypeId.COMPETITIVE_LANDSCAPE: {
        "axes": {"x": "Price", "y": "Features"},
        "competitors": [{"name": "Us", "xPos": 0.3, "yPos": 0.8, "size": 0.6},
                        {"name": "Them", "xPos": 1.7, "yPos": -1}],
    },
    ArchetypeId.AGENDA_DIVIDER: {
        "sections": [{"number": 1, "title": "Context"}, {"number": 2, "title": "Plan"}],
        "currentSection": 2,
    },
}


def _props(archetype: ArchetypeId, **kwargs) -> TemplateProps:
    return TemplateProps(title=kwargs.pop("title", "Test Slide"),
                         fields=dict(SAMPLE_FIELDS[archetype]), **kwargs)


def _texts(canvas: SlideCanvas) -> list[str]:
    return [t.text for t in canvas.texts()]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_every_archetype_has_renderer(self):
        assert set(RENDERERS) == set(ArchetypeId)

    def test_sample_fields_cover_registry(self):
        assert set(SAMPLE_FIELDS) == set(ArchetypeId)

    def test_renderer_for_string(self):
        assert renderer_for("kpi_dashboard") is RENDERERS[ArchetypeId.KPI_DASHBOARD]

    def test_renderer_for_unknown(self):
        with pytest.raises(UnknownArchetypeError):
            renderer_for("mind_map")

    def test_unknown_archetype_leaves_canvas_untouched(self, canvas):
        with pytest.raises(UnknownArchetypeError):
            render("mind_map", TemplateProps(title="T"), canvas)
        assert canvas.elements == []
        assert canvas.title == ""


# ---------------------------------------------------------------------------
# Shared chrome
# ---------------------------------------------------------------------------

class TestSharedChrome:
    @pytest.mark.parametrize("archetype", list(ArchetypeId), ids=lambda a: a.value)
    def test_title_only_props_render(self, archetype, canvas):
        render(archetype, TemplateProps(title="Only a title"), canvas)
        assert canvas.find_text("title").text == "Only a title"
        assert canvas.find_text("subtitle") is None
        assert canvas.find_text("footnote") is None

    @pytest.mark.parametrize("archetype", list(ArchetypeId), ids=lambda a: a.value)
    def test_full_props_render(self, archetype, canvas):
        render(archetype, _props(archetype, subtitle="Sub", footnote="Note"), canvas)
        assert canvas.find_text("title").text == "Test Slide"
        assert canvas.find_text("subtitle").text == "Sub"
        assert canvas.find_text("footnote").text == "Note"

    @pytest.mark.parametrize("archetype", list(ArchetypeId), ids=lambda a: a.value)
    def test_empty_props_never_blank_title(self, archetype, canvas):
        render(archetype, TemplateProps(title=None), canvas)
        assert canvas.find_text("title").text == "Slide"

    def test_master_defined(self, canvas):
        render("executive_summary", TemplateProps(title="T"), canvas)
        assert canvas.master_name == DEFAULT_MASTER_NAME
        assert canvas.background == "#FFFFFF"

    def test_metadata_set(self, canvas):
        render("executive_summary", TemplateProps(title="Board update"), canvas)
        assert canvas.title == "Board update"
        assert canvas.subject == "Board update"
        assert canvas.author == "SlideTheory"

    def test_source_footnote(self, canvas):
        render("trend_line", TemplateProps(title="T", source="IDC"), canvas)
        assert canvas.find_text("footnote").text == "Source: IDC"

    def test_title_is_first_element(self, canvas):
        render("grid_cards", _props(ArchetypeId.GRID_CARDS), canvas)
        assert canvas.elements[0].name == "title"

    def test_regions_are_fractions(self, canvas):
        render("kpi_dashboard", _props(ArchetypeId.KPI_DASHBOARD), canvas)
        for element in canvas.texts() + canvas.shapes():
            assert 0.0 <= element.region.left <= 1.0
            assert 0.0 <= element.region.top <= 1.0

    def test_read_style_shrinks_title(self):
        normal, compact = SlideCanvas(), SlideCanvas()
        render("three_pillar", TemplateProps(title="T"), normal)
        render("three_pillar", TemplateProps(title="T", density="read_style"), compact)
        assert compact.find_text("title").font.size_pt < normal.find_text("title").font.size_pt

    def test_unknown_density_renders_as_presentation(self):
        normal, odd = SlideCanvas(), SlideCanvas()
        render("three_pillar", _props(ArchetypeId.THREE_PILLAR), normal)
        render("three_pillar", _props(ArchetypeId.THREE_PILLAR, density="weird"), odd)
        assert normal.elements == odd.elements


# ---------------------------------------------------------------------------
# Archetype bodies
# ---------------------------------------------------------------------------

class TestExecutiveSummary:
    def test_points_capped_at_four(self, canvas):
        points = [{"title": f"Point {i}"} for i in range(6)]
        render("executive_summary", TemplateProps(title="T", fields={"points": points}), canvas)
        assert [t.text for t in canvas.texts("point")] == [f"Point {i}" for i in range(4)]

    def test_highlight_bullet_is_coral(self, canvas):
        render("executive_summary", _props(ArchetypeId.EXECUTIVE_SUMMARY), canvas)
        bullets = canvas.shapes(ShapeKind.OVAL)
        assert bullets[0].fill == "#E53E3E"
        assert bullets[1].fill == "#2C5282"

    def test_callout(self, canvas):
        render("executive_summary", _props(ArchetypeId.EXECUTIVE_SUMMARY), canvas)
        assert canvas.find_text("callout_value").text == "$4.2M"
        assert "ARR ADDED" in _texts(canvas)
        assert "vs plan $3.8M" in _texts(canvas)


class TestKPIDashboard:
    def test_values_and_labels(self, canvas):
        render("kpi_dashboard", _props(ArchetypeId.KPI_DASHBOARD), canvas)
        assert [t.text for t in canvas.texts("metric_value")] == ["$4.2", "31%", "62"]
        assert [t.text for t in canvas.texts("metric_label")] == ["REVENUE", "MARGIN", "NPS"]

    def test_trends(self, canvas):
        render("kpi_dashboard", _props(ArchetypeId.KPI_DASHBOARD), canvas)
        texts = _texts(canvas)
        assert "▲ Up" in texts
        assert "▼ Down" in texts
        assert "Best in class" in texts

    def test_context_line(self, canvas):
        render("kpi_dashboard", _props(ArchetypeId.KPI_DASHBOARD), canvas)
        assert canvas.find_text("context_line").text == "All figures Q3 FY24"

    def test_grid_positions(self, canvas):
        metrics = [{"label": f"M{i}", "value": i} for i in range(7)]
        render("kpi_dashboard", TemplateProps(title="T", fields={"metrics": metrics}), canvas)
        values = canvas.texts("metric_value")
        assert len(values) == 7
        lefts = [v.region.left for v in values]
        tops = [v.region.top for v in values]
        for i in range(7):
            assert lefts[i] == pytest.approx(lefts[i % KPI_COLUMNS])
            assert tops[i] == pytest.approx(tops[(i // KPI_COLUMNS) * KPI_COLUMNS])
        assert tops[3] > tops[0]
        assert tops[6] > tops[3]

    def test_overflow_not_clipped(self, canvas):
        metrics = [{"label": f"M{i}", "value": i} for i in range(12)]
        render("kpi_dashboard", TemplateProps(title="T", fields={"metrics": metrics}), canvas)
        values = canvas.texts("metric_value")
        assert len(values) == 12
        assert values[-1].region.top > 1.0

    def test_no_metrics(self, canvas):
        render("kpi_dashboard", TemplateProps(title="T"), canvas)
        assert canvas.texts("metric_value") == []

    def test_grid_uses_extracted_metrics(self, canvas):
        extracted = (Metric("Churn", "2.1%", trend="down"),)
        with patch("slidetheory.content.extract_metrics", return_value=extracted):
            render("kpi_dashboard", _props(ArchetypeId.KPI_DASHBOARD), canvas)
        assert [t.text for t in canvas.texts("metric_value")] == ["2.1%"]
        assert [t.text for t in canvas.texts("metric_label")] == ["CHURN"]
        assert "▼ Down" in _texts(canvas)
        assert "▲ Up" not in _texts(canvas)


class TestComparisonTable:
    def test_headers_and_criteria(self, canvas):
        render("comparison_table", _props(ArchetypeId.COMPARISON_TABLE), canvas)
        assert [t.text for t in canvas.texts("table_header")] == ["Criteria", "Vendor A", "Vendor B"]
        assert [t.text for t in canvas.texts("table_criteria")] == ["Price", "Support"]

    def test_recommended_column_highlighted(self, canvas):
        render("comparison_table", _props(ArchetypeId.COMPARISON_TABLE), canvas)
        assert len([s for s in canvas.shapes() if s.name == "recommended"]) == 1
        assert "#FFF5F5" in [s.fill for s in canvas.shapes()]

    def test_rows_capped_at_eight(self, canvas):
        rows = [{"criteria": f"C{i}", "values": []} for i in range(12)]
        render("comparison_table", TemplateProps(title="T", fields={"headers": ["A"], "rows": rows}), canvas)
        assert len(canvas.texts("table_criteria")) == 8


class TestProcessFlow:
    def test_step_numbers(self, canvas):
        render("process_flow", _props(ArchetypeId.PROCESS_FLOW), canvas)
        texts = _texts(canvas)
        assert "1" in texts and "2" in texts and "9" in texts
        assert [t.text for t in canvas.texts("step_title")] == ["Discover", "Design", "Deliver"]

    def test_steps_capped_at_six(self, canvas):
        steps = [{"title": f"S{i}"} for i in range(9)]
        render("process_flow", TemplateProps(title="T", fields={"steps": steps}), canvas)
        assert len(canvas.texts("step_title")) == 6


class TestTimelineSwimlane:
    def test_only_valid_activities_drawn(self, canvas):
        render("timeline_swimlane", _props(ArchetypeId.TIMELINE_SWIMLANE), canvas)
        activities = [s for s in canvas.shapes() if s.name == "activity"]
        assert len(activities) == 1
        assert "Beta" in _texts(canvas)

    def test_periods(self, canvas):
        render("timeline_swimlane", _props(ArchetypeId.TIMELINE_SWIMLANE), canvas)
        assert [t.text for t in canvas.texts("period")] == ["Q1", "Q2", "Q3", "Q4"]


class TestTwoByTwoMatrix:
    def test_default_axis_labels(self, canvas):
        render("two_by_two_matrix", _props(ArchetypeId.TWO_BY_TWO_MATRIX), canvas)
        assert canvas.find_text("x_axis").text == "Effort"
        assert canvas.find_text("y_axis").text == "Impact"

    def test_unknown_position_skipped(self, canvas):
        render("two_by_two_matrix", _props(ArchetypeId.TWO_BY_TWO_MATRIX), canvas)
        assert [t.text for t in canvas.texts("quadrant")] == ["Quick wins", "Big bets"]
        assert "• SSO" in _texts(canvas)

    def test_dashed_grid_lines(self, canvas):
        render("two_by_two_matrix", TemplateProps(title="T"), canvas)
        assert len(canvas.lines()) == 2
        assert all(line.dashed for line in canvas.lines())


class TestBeforeAfter:
    def test_default_titles_and_marks(self, canvas):
        render("before_after", _props(ArchetypeId.BEFORE_AFTER), canvas)
        assert [t.text for t in canvas.texts("state_title")] == ["Current State", "Automated"]
        texts = _texts(canvas)
        assert "✗ Manual reports" in texts
        assert "✓ Daily refresh" in texts
        assert canvas.shapes(ShapeKind.RIGHT_ARROW)


class TestWaterfall:
    def test_step_colors(self, canvas):
        render("waterfall_chart", _props(ArchetypeId.WATERFALL_CHART), canvas)
        steps = [s for s in canvas.shapes() if s.name == "waterfall_step"]
        assert [s.fill for s in steps] == ["#38A169", "#E53E3E"]

    def test_labels(self, canvas):
        render("waterfall_chart", _props(ArchetypeId.WATERFALL_CHART), canvas)
        texts = _texts(canvas)
        for expected in ("Start", "End", "+30", "-10", "100", "120"):
            assert expected in texts

    def test_bars_stay_on_slide(self, canvas):
        render("waterfall_chart", TemplateProps(title="T", fields={
            "startValue": 100, "endValue": 200,
            "changes": [{"label": "A", "delta": 50}, {"label": "B", "delta": 50}],
        }), canvas)
        assert all(s.region.top >= 0 for s in canvas.shapes())

    def test_all_zero(self, canvas):
        render("waterfall_chart", TemplateProps(title="T", fields={"startValue": 0}), canvas)
        assert "Start" in _texts(canvas)


class TestTrendLine:
    def test_points_and_connectors(self, canvas):
        render("trend_line", _props(ArchetypeId.TREND_LINE), canvas)
        assert len([s for s in canvas.shapes() if s.name == "trend_point"]) == 3
        solid = [line for line in canvas.lines() if not line.dashed]
        # two axes plus two connectors
        assert len(solid) == 4
        assert canvas.find_text("takeaway").text == "Growth resumed in Q3"

    def test_flat_series(self, canvas):
        data = [{"label": "A", "value": 5}, {"label": "B", "value": 5}]
        render("trend_line", TemplateProps(title="T", fields={"data": data}), canvas)
        assert len([s for s in canvas.shapes() if s.name == "trend_point"]) == 2

    def test_single_point(self, canvas):
        render("trend_line", TemplateProps(title="T", fields={"data": [{"label": "A", "value": 0}]}), canvas)
        assert len([s for s in canvas.shapes() if s.name == "trend_point"]) == 1


class TestStackedBar:
    def test_bars_proportional(self, canvas):
        render("stacked_bar", _props(ArchetypeId.STACKED_BAR), canvas)
        bars = [s for s in canvas.shapes() if s.name == "bar"]
        assert len(bars) == 2
        assert bars[1].region.width == pytest.approx(bars[0].region.width * 25 / 40)

    def test_capped_at_six(self, canvas):
        data = [{"category": f"C{i}", "value": i + 1} for i in range(10)]
        render("stacked_bar", TemplateProps(title="T", fields={"data": data}), canvas)
        assert len([s for s in canvas.shapes() if s.name == "bar"]) == 6


class TestTrees:
    def test_issue_tree(self, canvas):
        render("issue_tree", _props(ArchetypeId.ISSUE_TREE), canvas)
        assert canvas.find_text("root").text == "Margin decline"
        assert [t.text for t in canvas.texts("branch")] == ["Costs", "Pricing"]
        assert "• Cloud" in _texts(canvas)

    def test_issue_tree_root_defaults_to_title(self, canvas):
        render("issue_tree", TemplateProps(title="Why is churn up?"), canvas)
        assert canvas.find_text("root").text == "Why is churn up?"

    def test_decision_tree(self, canvas):
        render("decision_tree", _props(ArchetypeId.DECISION_TREE), canvas)
        assert canvas.find_text("root").text == "Build or buy?"
        assert [t.text for t in canvas.texts("outcome")] == ["Build", "Buy"]


class TestThreePillar:
    def test_pillars(self, canvas):
        render("three_pillar", _props(ArchetypeId.THREE_PILLAR), canvas)
        assert [t.text for t in canvas.texts("pillar")] == ["People", "Process", "Platform"]
        assert "+40 FTE" in _texts(canvas)

    def test_bullets_are_bulleted(self, canvas):
        render("three_pillar", _props(ArchetypeId.THREE_PILLAR), canvas)
        bulleted = [t for t in canvas.texts() if t.bullets]
        assert bulleted[0].paragraphs == ("Sales", "CS")


class TestGridCards:
    def test_two_columns_for_2x2(self, canvas):
        cards = [{"title": f"C{i}"} for i in range(4)]
        render("grid_cards", TemplateProps(title="T", fields={"gridSize": "2x2", "cards": cards}), canvas)
        lefts = sorted({round(t.region.left, 6) for t in canvas.texts("card_title")})
        assert len(lefts) == 2

    def test_three_columns_otherwise(self, canvas):
        cards = [{"title": f"C{i}"} for i in range(6)]
        render("grid_cards", TemplateProps(title="T", fields={"gridSize": "2x3", "cards": cards}), canvas)
        lefts = sorted({round(t.region.left, 6) for t in canvas.texts("card_title")})
        assert len(lefts) == 3

    def test_every_card_drawn(self, canvas):
        cards = [{"title": f"C{i}"} for i in range(9)]
        render("grid_cards", TemplateProps(title="T", fields={"gridSize": "2x3", "cards": cards}), canvas)
        assert len(canvas.texts("card_title")) == 9


class TestMarketSizing:
    def test_nested_levels(self, canvas):
        render("market_sizing", _props(ArchetypeId.MARKET_SIZING), canvas)
        levels = [s for s in canvas.shapes(ShapeKind.OVAL) if s.name == "market_level"]
        assert len(levels) == 3
        widths = [s.region.width for s in levels]
        assert widths == sorted(widths, reverse=True)
        assert levels[0].region.bottom == pytest.approx(levels[2].region.bottom)


class TestCompetitiveLandscape:
    def test_positions_clamped(self, canvas):
        render("competitive_landscape", _props(ArchetypeId.COMPETITIVE_LANDSCAPE), canvas)
        bubbles = [s for s in canvas.shapes() if s.name == "competitor"]
        assert len(bubbles) == 2
        for bubble in bubbles:
            assert 0.0 < bubble.region.left < 1.0
            assert 0.0 < bubble.region.top < 1.0

    def test_minimum_bubble_size(self, canvas):
        render("competitive_landscape", _props(ArchetypeId.COMPETITIVE_LANDSCAPE), canvas)
        them = [s for s in canvas.shapes() if s.name == "competitor"][1]
        assert them.region.width == pytest.approx(0.15 / 10)


class TestAgenda:
    def test_active_section(self, canvas):
        render("agenda_divider", _props(ArchetypeId.AGENDA_DIVIDER), canvas)
        sections = canvas.texts("section")
        assert [s.text for s in sections] == ["Context", "Plan"]
        assert sections[1].font.bold is True
        assert sections[0].font.bold is False
        fills = [s.fill for s in canvas.shapes(ShapeKind.OVAL)]
        assert fills == ["#EDF2F7", "#E53E3E"]
