"""Input processing for SlideTheory: uploaded files to header+rows data."""

from .ingestion import (
    SUPPORTED_EXTENSIONS,
    decode_text,
    format_for_downstream_use,
    parse_csv,
    parse_excel,
    parse_file,
    parse_json,
    parse_upload,
)
