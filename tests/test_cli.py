"""Tests for the CLI entry point (slidetheory.cli).

Covers argument parsing, command dispatch, request loading, the export and
validate commands, snapshots, image decks, upload parsing and error
handling.  Heavy collaborators (QA, clipboard) are patched where a test is
only about the wiring.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import yaml
from PIL import Image
from pptx import Presentation

from slidetheory.cli import (
    build_parser,
    cmd_archetypes,
    cmd_export,
    main,
)
from slidetheory.schema.loader import load_request, save_request
from slidetheory.schema.models import ExportRequest, TemplateProps


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def parser():
    return build_parser()


@pytest.fixture
def request_file(tmp_path):
    path = tmp_path / "requests" / "kpis.yaml"
    save_request(ExportRequest(
        slide_id="abcdef0123456789",
        archetype_id="kpi_dashboard",
        props=TemplateProps(title="Q3 KPIs", fields={
            "metrics": [{"label": "Revenue", "value": 4.2, "unit": "$"}]}),
    ), path)
    return path


@pytest.fixture
def qa_fail():
    """A failing QAResult mock."""
    qa = MagicMock()
    qa.passed = False
    qa.warnings = []
    qa.summary.return_value = "QA FAIL: 1 error(s), 0 warning(s)"
    qa.report.return_value = "QA FAIL: 1 error(s), 0 warning(s)\n  [ERROR] title"
    return qa


def _png_file(path):
    Image.new("RGB", (32, 18), "navy").save(path, format="PNG")
    return path


# ===================================================================
# Parser tests
# ===================================================================

class TestParser:
    """Argument parsing tests."""

    def test_export_minimal(self, parser):
        args = parser.parse_args(["export", "req.yaml"])
        assert args.command == "export"
        assert args.request == "req.yaml"
        assert args.output is None
        assert args.skip_qa is False
        assert args.force is False
        assert args.verbose is False

    def test_export_flags(self, parser):
        args = parser.parse_args([
            "export", "req.yaml", "-o", "out.pptx", "--design", "d.yaml",
            "--skip-qa", "--force", "-v",
        ])
        assert args.output == "out.pptx"
        assert args.design == "d.yaml"
        assert args.skip_qa and args.force and args.verbose

    def test_validate_requires_both(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["validate", "--request", "r.yaml"])

    def test_snapshot_defaults(self, parser):
        args = parser.parse_args(["snapshot", "r.yaml"])
        assert args.scale == 2
        assert args.clipboard is False

    def test_deck_requires_output(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["deck", "a.png"])

    def test_deck_default_title(self, parser):
        args = parser.parse_args(["deck", "a.png", "b.png", "-o", "d.pptx"])
        assert args.images == ["a.png", "b.png"]
        assert args.title == "Flux Generated Slides"

    def test_parse_defaults(self, parser):
        args = parser.parse_args(["parse", "data.csv"])
        assert args.max_rows == 50
        assert args.json is False

    def test_command_required(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args([])


# ===================================================================
# Request files
# ===================================================================

class TestRequestFiles:
    def test_save_and_load(self, request_file):
        request = load_request(request_file)
        assert request.slide_id == "abcdef0123456789"
        assert request.archetype_id == "kpi_dashboard"
        assert request.props.title == "Q3 KPIs"

    def test_yaml_is_readable(self, request_file):
        data = yaml.safe_load(request_file.read_text())
        assert list(data) == ["slideId", "archetypeId", "props"]

    def test_json_request(self, tmp_path):
        path = tmp_path / "req.json"
        path.write_text(json.dumps({"slideId": "s1", "archetypeId": "trend_line",
                                    "props": {"title": "T"}}))
        assert load_request(path).archetype_id == "trend_line"


# ===================================================================
# export
# ===================================================================

class TestExportCommand:
    def test_writes_pptx(self, request_file, tmp_path, capsys):
        out = tmp_path / "out" / "kpis.pptx"
        main(["export", str(request_file), "-o", str(out)])
        prs = Presentation(str(out))
        assert len(prs.slides) == 1
        err = capsys.readouterr().err
        assert "QA PASS" in err
        assert "Written:" in err

    def test_default_output_name(self, request_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        main(["export", str(request_file)])
        assert (tmp_path / "slidetheory-abcdef01.pptx").exists()

    def test_skip_qa(self, request_file, tmp_path, capsys):
        with patch("slidetheory.cli.ExportValidator") as mock_validator:
            main(["export", str(request_file), "-o", str(tmp_path / "a.pptx"),
                  "--skip-qa"])
        mock_validator.assert_not_called()
        assert "skipped" in capsys.readouterr().err

    def test_qa_failure_exits(self, request_file, tmp_path, qa_fail):
        out = tmp_path / "a.pptx"
        with patch("slidetheory.cli.ExportValidator") as mock_validator:
            mock_validator.return_value.validate.return_value = qa_fail
            with pytest.raises(SystemExit) as exc_info:
                main(["export", str(request_file), "-o", str(out)])
        assert exc_info.value.code == 1
        assert not out.exists()

    def test_qa_failure_forced(self, request_file, tmp_path, qa_fail, capsys):
        out = tmp_path / "a.pptx"
        with patch("slidetheory.cli.ExportValidator") as mock_validator:
            mock_validator.return_value.validate.return_value = qa_fail
            main(["export", str(request_file), "-o", str(out), "--force", "-v"])
        assert out.exists()
        assert "[ERROR] title" in capsys.readouterr().err

    def test_missing_request_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["export", str(tmp_path / "nope.yaml")])
        assert exc_info.value.code == 1
        assert "Request file not found" in capsys.readouterr().err

    def test_unknown_archetype(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"slideId": "s", "archetypeId": "pie",
                                        "props": {"title": "T"}}))
        with pytest.raises(SystemExit):
            main(["export", str(path), "-o", str(tmp_path / "x.pptx")])
        assert "Unknown archetype" in capsys.readouterr().err

    def test_invalid_request(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("slideId: s\n")
        with pytest.raises(SystemExit):
            main(["export", str(path)])
        assert "Missing required fields" in capsys.readouterr().err

    def test_design_override(self, request_file, tmp_path):
        design = tmp_path / "design.yaml"
        design.write_text(yaml.safe_dump({"layout": {"slide_width_in": 13.333,
                                                     "slide_height_in": 7.5}}))
        out = tmp_path / "wide.pptx"
        main(["export", str(request_file), "-o", str(out), "--design", str(design)])
        prs = Presentation(str(out))
        assert prs.slide_height == int(7.5 * 914400)

    def test_cmd_export_direct(self, request_file, tmp_path):
        parser = build_parser()
        args = parser.parse_args(["export", str(request_file), "-o",
                                  str(tmp_path / "d.pptx")])
        cmd_export(args)
        assert (tmp_path / "d.pptx").exists()


# ===================================================================
# validate
# ===================================================================

class TestValidateCommand:
    def test_valid_export(self, request_file, tmp_path, capsys):
        out = tmp_path / "a.pptx"
        main(["export", str(request_file), "-o", str(out), "--skip-qa"])
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "--request", str(request_file), "--pptx", str(out)])
        assert exc_info.value.code == 0
        assert "QA PASS" in capsys.readouterr().out

    def test_mismatched_request(self, request_file, tmp_path):
        out = tmp_path / "a.pptx"
        main(["export", str(request_file), "-o", str(out), "--skip-qa"])
        other = tmp_path / "other.yaml"
        save_request(ExportRequest("s", "kpi_dashboard",
                                   TemplateProps(title="Different")), other)
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "--request", str(other), "--pptx", str(out)])
        assert exc_info.value.code == 1

    def test_missing_pptx(self, request_file, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["validate", "--request", str(request_file),
                  "--pptx", str(tmp_path / "none.pptx")])
        assert "PPTX file not found" in capsys.readouterr().err


# ===================================================================
# snapshot / deck
# ===================================================================

class TestSnapshotCommand:
    def test_png_written(self, request_file, tmp_path):
        out = tmp_path / "slide.png"
        main(["snapshot", str(request_file), "-o", str(out)])
        with Image.open(out) as img:
            assert img.size == (1920, 1080)
            assert img.mode == "RGB"

    def test_scale(self, request_file, tmp_path):
        out = tmp_path / "slide.png"
        main(["snapshot", str(request_file), "-o", str(out), "--scale", "1"])
        with Image.open(out) as img:
            assert img.size == (960, 540)

    def test_clipboard(self, request_file):
        with patch("slidetheory.cli.copy_to_clipboard") as mock_copy:
            main(["snapshot", str(request_file), "--clipboard"])
        mock_copy.assert_called_once()

    def test_clipboard_failure_exits(self, request_file, capsys):
        from slidetheory.errors import ClipboardExportError
        with patch("slidetheory.cli.copy_to_clipboard",
                   side_effect=ClipboardExportError()):
            with pytest.raises(SystemExit):
                main(["snapshot", str(request_file), "--clipboard"])
        assert "Failed to copy slide to clipboard" in capsys.readouterr().err

    def test_nothing_to_do(self, request_file, capsys):
        main(["snapshot", str(request_file)])
        assert "Nothing to do" in capsys.readouterr().err


class TestDeckCommand:
    def test_one_slide_per_image(self, tmp_path):
        images = [_png_file(tmp_path / f"{i}.png") for i in range(3)]
        out = tmp_path / "deck.pptx"
        main(["deck", *map(str, images), "-o", str(out), "--title", "Batch"])
        prs = Presentation(str(out))
        assert len(prs.slides) == 3
        assert prs.core_properties.title == "Batch"

    def test_missing_image(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["deck", str(tmp_path / "x.png"), "-o", str(tmp_path / "d.pptx")])


# ===================================================================
# parse / archetypes
# ===================================================================

class TestParseCommand:
    def test_text_output(self, tmp_path, capsys):
        path = tmp_path / "deals.csv"
        path.write_text("Stage,Count\nWon,4\n")
        main(["parse", str(path)])
        assert capsys.readouterr().out.strip() == "Stage\tCount\nWon\t4"

    def test_json_output(self, tmp_path, capsys):
        path = tmp_path / "deals.json"
        path.write_text(json.dumps([{"stage": "Won", "count": 4}]))
        main(["parse", str(path), "--json"])
        payload = json.loads(capsys.readouterr().out)
        assert payload == {"headers": ["stage", "count"], "rows": [["Won", 4]]}

    def test_max_rows(self, tmp_path, capsys):
        path = tmp_path / "n.csv"
        path.write_text("n\n" + "\n".join(str(i) for i in range(10)) + "\n")
        main(["parse", str(path), "--max-rows", "3"])
        assert capsys.readouterr().out.strip().endswith("... (7 more rows)")

    def test_unsupported(self, tmp_path, capsys):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(SystemExit):
            main(["parse", str(path)])
        assert "Unsupported file type" in capsys.readouterr().err


class TestArchetypesCommand:
    def test_lists_all(self, capsys):
        cmd_archetypes(MagicMock())
        lines = capsys.readouterr().out.split()
        assert len(lines) == 18
        assert "kpi_dashboard" in lines
