"""CLI entry point for SlideTheory.

Runs the export pipeline on request files: archetype rendering, PPTX
generation, QA validation, PNG snapshots, image decks and upload parsing.

Usage::

    # Export a slide described by a request file (YAML or JSON)
    python -m slidetheory.cli export requests/q3_kpis.yaml \\
        --output output/q3_kpis.pptx

    # Validate an existing PPTX against the request it was built from
    python -m slidetheory.cli validate \\
        --request requests/q3_kpis.yaml \\
        --pptx output/q3_kpis.pptx

    # Render the slide to PNG (and optionally the clipboard)
    python -m slidetheory.cli snapshot requests/q3_kpis.yaml \\
        --output output/q3_kpis.png --clipboard

    # Build an image-only deck, one slide per picture
    python -m slidetheory.cli deck img/*.png --output output/flux.pptx

    # Normalize an upload the way the classifier sees it
    python -m slidetheory.cli parse data/pipeline.csv

    # List supported archetypes
    python -m slidetheory.cli archetypes
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from slidetheory.errors import SlideTheoryError
from slidetheory.generator.archetypes import render
from slidetheory.generator.canvas import SlideCanvas
from slidetheory.generator.pptx_builder import PPTXBuilder, export_filename
from slidetheory.generator.snapshot import (
    CanvasSurface,
    copy_to_clipboard,
    snapshot,
)
from slidetheory.processor.ingestion import format_for_downstream_use, parse_file
from slidetheory.qa.validator import ExportValidator
from slidetheory.schema.loader import load_design, load_request
from slidetheory.schema.models import ArchetypeId, DesignSystem


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _load_design(args) -> DesignSystem:
    """Load a DesignSystem override from --design, or the stock one."""
    if getattr(args, "design", None):
        path = Path(args.design)
        if not path.exists():
            _error(f"Design file not found: {path}")
        return load_design(path)
    return DesignSystem()


def _load_request(path_arg):
    path = Path(path_arg)
    if not path.exists():
        _error(f"Request file not found: {path}")
    return load_request(path)


def _render_request(request, design: DesignSystem) -> SlideCanvas:
    canvas = SlideCanvas()
    render(request.archetype_id, request.props, canvas, design)
    return canvas


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_export(args):
    """Export a single slide to PPTX."""
    design = _load_design(args)
    request = _load_request(args.request)
    _info(f"Archetype: {request.archetype_id} (slide {request.slide_id})")

    _info("Building PPTX...")
    canvas = _render_request(request, design)
    pptx_bytes = PPTXBuilder(design).build(canvas)

    # QA validation
    if not args.skip_qa:
        _info("Running QA validation...")
        qa_result = ExportValidator(design).validate(
            pptx_bytes, request.archetype_id, request.props)

        if qa_result.passed:
            _info(qa_result.summary())
        else:
            _warn(qa_result.summary())
            if args.verbose:
                print(qa_result.report(), file=sys.stderr)

            if not args.force:
                _error("QA validation failed. Use --force to write anyway, "
                       "or --skip-qa to skip validation.")
        if qa_result.warnings and args.verbose:
            for issue in qa_result.warnings:
                _warn(str(issue))
    else:
        _info("QA validation skipped (--skip-qa)")

    # Write output
    output = Path(args.output or export_filename(request.slide_id))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(pptx_bytes)
    _info(f"Written: {output} ({len(pptx_bytes):,} bytes)")


def cmd_validate(args):
    """Validate an existing PPTX against the request it was built from."""
    design = _load_design(args)
    request = _load_request(args.request)
    pptx_path = Path(args.pptx)
    if not pptx_path.exists():
        _error(f"PPTX file not found: {pptx_path}")

    _info(f"Validating {pptx_path} as {request.archetype_id}")
    qa_result = ExportValidator(design).validate(
        pptx_path.read_bytes(), request.archetype_id, request.props)

    print(qa_result.report())
    sys.exit(0 if qa_result.passed else 1)


def cmd_snapshot(args):
    """Render a slide to PNG, optionally copying it to the clipboard."""
    design = _load_design(args)
    request = _load_request(args.request)
    surface = CanvasSurface(_render_request(request, design))

    if args.output:
        png = snapshot(surface, scale=args.scale)
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(png)
        _info(f"Written: {output} ({len(png):,} bytes)")

    if args.clipboard:
        copy_to_clipboard(surface)
        _info("Copied slide image to clipboard")

    if not args.output and not args.clipboard:
        _warn("Nothing to do: pass --output and/or --clipboard")


def cmd_deck(args):
    """Build an image-only deck with one full-bleed slide per image."""
    images = []
    for name in args.images:
        path = Path(name)
        if not path.exists():
            _error(f"Image not found: {path}")
        images.append(path.read_bytes())

    pptx_bytes = PPTXBuilder(_load_design(args)).build_image_deck(
        images, title=args.title)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(pptx_bytes)
    _info(f"Written: {output} ({len(images)} slide(s), {len(pptx_bytes):,} bytes)")


def cmd_parse(args):
    """Parse an upload and print what the classifier would receive."""
    path = Path(args.file)
    if not path.exists():
        _error(f"File not found: {path}")
    parsed = parse_file(path)
    _info(f"{len(parsed.headers)} column(s), {parsed.row_count} row(s)")

    if args.json:
        print(json.dumps(parsed.to_dict(), indent=2, default=str))
    else:
        print(format_for_downstream_use(parsed, max_rows=args.max_rows))


def cmd_archetypes(args):
    """List supported archetypes."""
    for archetype in ArchetypeId:
        print(archetype.value)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="slidetheory",
        description="Export archetype slides to PowerPoint and PNG.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- export ----
    exp = subparsers.add_parser(
        "export",
        help="Export a slide request to PPTX.",
    )
    exp.add_argument(
        "request",
        help="Request file (YAML or JSON) with slideId, archetypeId, props.",
    )
    _add_design_args(exp)
    exp.add_argument(
        "-o", "--output",
        help="Output PPTX path (default: slidetheory-<id>.pptx).",
    )
    exp.add_argument(
        "--skip-qa",
        action="store_true",
        default=False,
        help="Skip QA validation after generation.",
    )
    exp.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Write output even if QA validation fails.",
    )
    exp.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Show detailed output (full QA report).",
    )
    exp.set_defaults(func=cmd_export)

    # ---- validate ----
    val = subparsers.add_parser(
        "validate",
        help="Validate an existing PPTX against its request.",
    )
    val.add_argument(
        "--request",
        required=True,
        help="Request file the PPTX was built from.",
    )
    val.add_argument(
        "--pptx",
        required=True,
        help="Path to the PPTX file to validate.",
    )
    _add_design_args(val)
    val.set_defaults(func=cmd_validate)

    # ---- snapshot ----
    snap = subparsers.add_parser(
        "snapshot",
        help="Render a slide request to PNG.",
    )
    snap.add_argument("request", help="Request file (YAML or JSON).")
    _add_design_args(snap)
    snap.add_argument("-o", "--output", help="Output PNG path.")
    snap.add_argument(
        "--scale",
        type=int,
        default=2,
        help="Supersampling factor (default: 2).",
    )
    snap.add_argument(
        "--clipboard",
        action="store_true",
        default=False,
        help="Copy the image to the system clipboard.",
    )
    snap.set_defaults(func=cmd_snapshot)

    # ---- deck ----
    deck = subparsers.add_parser(
        "deck",
        help="Build an image-only deck, one slide per image.",
    )
    deck.add_argument("images", nargs="+", help="Image files, in slide order.")
    deck.add_argument(
        "-o", "--output",
        required=True,
        help="Output PPTX file path.",
    )
    deck.add_argument(
        "--title",
        default="Flux Generated Slides",
        help="Document title.",
    )
    _add_design_args(deck)
    deck.set_defaults(func=cmd_deck)

    # ---- parse ----
    prs = subparsers.add_parser(
        "parse",
        help="Normalize a CSV, Excel or JSON upload.",
    )
    prs.add_argument("file", help="File to parse.")
    prs.add_argument(
        "--max-rows",
        type=int,
        default=50,
        help="Rows to include in text output (default: 50).",
    )
    prs.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print headers and rows as JSON.",
    )
    prs.set_defaults(func=cmd_parse)

    # ---- archetypes ----
    arch = subparsers.add_parser(
        "archetypes",
        help="List supported archetypes.",
    )
    arch.set_defaults(func=cmd_archetypes)

    return parser


def _add_design_args(parser):
    """Add --design arg to a subparser."""
    parser.add_argument(
        "--design",
        help="Path to a YAML design system override.",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    logging.basicConfig(level=logging.WARNING,
                        format="  %(levelname)s: %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except SlideTheoryError as exc:
        _error(str(exc))


if __name__ == "__main__":
    main()
