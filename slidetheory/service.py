"""Export service boundary - request validation, ownership, quota, errors.

Framework-neutral handlers for the three operations the web layer exposes:

- ``export``: build a PPTX from a ``{slideId, archetypeId, props}`` body
- ``export_saved``: build a PPTX from a stored slide record the caller owns
- ``upload``: normalize an uploaded CSV/Excel/JSON file for the classifier

Every pipeline error is translated here, and only here, into an
ExportResponse carrying ``{"error": message}`` and the error's HTTP status.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from slidetheory.content import DEFAULT_TITLE
from slidetheory.errors import (
    QuotaExceededError,
    SlideNotFoundError,
    SlideTheoryError,
    UnauthenticatedError,
    ValidationError,
)
from slidetheory.generator.pptx_builder import export_slide
from slidetheory.processor.ingestion import (
    format_for_downstream_use,
    parse_upload,
)
from slidetheory.quota import QuotaDecision
from slidetheory.schema.models import (
    DesignSystem,
    ExportArtifact,
    ExportRequest,
    Identity,
    TemplateProps,
)

log = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@dataclass
class SlideRecord:
    """A saved slide as persisted by the product."""
    id: str
    user_id: str
    archetype_id: str
    template_props: dict[str, Any] = field(default_factory=dict)


class SlideStore(Protocol):
    def get(self, slide_id: str, user_id: str) -> SlideRecord | None:
        """Return the record only when it exists and ``user_id`` owns it."""
        ...


class QuotaGate(Protocol):
    def reserve(self, identity: Identity) -> QuotaDecision:
        ...

    def complete(self, identity: Identity, succeeded: bool) -> None:
        ...


class InMemorySlideStore:
    """Dict-backed SlideStore, for the CLI and tests."""

    def __init__(self, records: list[SlideRecord] | None = None) -> None:
        self._records = {r.id: r for r in records or []}

    def add(self, record: SlideRecord) -> None:
        self._records[record.id] = record

    def get(self, slide_id: str, user_id: str) -> SlideRecord | None:
        record = self._records.get(slide_id)
        if record is None or record.user_id != user_id:
            return None
        return record


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

@dataclass
class ExportResponse:
    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(cls, payload: Any, status: int = 200) -> "ExportResponse":
        body = json.dumps(payload, default=str).encode("utf-8")
        return cls(status, body, {"Content-Type": JSON_CONTENT_TYPE})

    @classmethod
    def error(cls, message: str, status: int) -> "ExportResponse":
        return cls.json({"error": message}, status)

    @classmethod
    def attachment(cls, artifact: ExportArtifact) -> "ExportResponse":
        return cls(200, artifact.data, {
            "Content-Type": artifact.mime_type,
            "Content-Disposition": artifact.content_disposition,
        })

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json_body(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


# ---------------------------------------------------------------------------
# ExportService
# ---------------------------------------------------------------------------

class ExportService:
    """Handlers for the export and upload operations.

    Parameters
    ----------
    store : SlideStore, optional
        Lookup for saved slides; without one every saved export is a 404.
    quota : QuotaGate, optional
        Generation gate checked before the pipeline runs; none means no limit.
    design : DesignSystem, optional
        Design system passed to the renderer and writer.
    """

    def __init__(self, store: SlideStore | None = None,
                 quota: QuotaGate | None = None,
                 design: DesignSystem | None = None) -> None:
        self.store = store
        self.quota = quota
        self.design = design or DesignSystem()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def export(self, body: Any, identity: Identity | None) -> ExportResponse:
        """Export a slide described inline by the request body."""
        def run() -> ExportResponse:
            self._require_identity(identity)
            request = ExportRequest.from_dict(body)
            artifact = self._generate(identity, request)
            return ExportResponse.attachment(artifact)
        return self._respond(run, "export")

    def export_saved(self, slide_id: str | None,
                     identity: Identity | None) -> ExportResponse:
        """Export a slide the caller previously saved."""
        def run() -> ExportResponse:
            self._require_identity(identity)
            if not slide_id:
                raise ValidationError("Missing slide ID")
            record = self.store.get(slide_id, identity.user_id) if self.store else None
            if record is None:
                raise SlideNotFoundError()
            props = dict(record.template_props or {})
            props["title"] = props.get("title") or DEFAULT_TITLE
            props["density"] = props.get("density") or "presentation"
            request = ExportRequest(slide_id=slide_id,
                                    archetype_id=record.archetype_id,
                                    props=TemplateProps.from_dict(props))
            return ExportResponse.attachment(self._generate(identity, request))
        return self._respond(run, "export_saved")

    def upload(self, filename: str, data: bytes,
               identity: Identity | None) -> ExportResponse:
        """Normalize an uploaded file into headers, rows and classifier text."""
        def run() -> ExportResponse:
            self._require_identity(identity)
            if not filename:
                raise ValidationError("No file provided")
            parsed = parse_upload(filename, data)
            payload = parsed.to_dict()
            payload["text"] = format_for_downstream_use(parsed)
            return ExportResponse.json(payload)
        return self._respond(run, "upload")

    def generate_artifact(self, request: ExportRequest) -> ExportArtifact:
        """Run the pipeline with no identity, quota or error translation."""
        return export_slide(request.archetype_id, request.props,
                            request.slide_id, self.design)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require_identity(identity: Identity | None) -> None:
        if identity is None or not identity.user_id:
            raise UnauthenticatedError()

    def _generate(self, identity: Identity, request: ExportRequest) -> ExportArtifact:
        """Quota-gated generation; a failed run hands its slot back."""
        if self.quota is not None:
            decision = self.quota.reserve(identity)
            if not decision.allowed:
                raise QuotaExceededError()
        succeeded = False
        try:
            artifact = self.generate_artifact(request)
            succeeded = True
        finally:
            if self.quota is not None:
                self.quota.complete(identity, succeeded)
        log.info("Exported %s (%s, %d bytes)", artifact.filename,
                 request.archetype_id, artifact.size)
        return artifact

    @staticmethod
    def _respond(handler: Callable[[], ExportResponse],
                 operation: str) -> ExportResponse:
        try:
            return handler()
        except SlideTheoryError as exc:
            if exc.status >= 500:
                log.exception("%s failed", operation)
            else:
                log.info("%s rejected (%d): %s", operation, exc.status, exc)
            return ExportResponse.error(str(exc), exc.status)
        except Exception as exc:
            log.exception("%s failed unexpectedly", operation)
            return ExportResponse.error(str(exc) or "Failed to export PPTX", 500)
