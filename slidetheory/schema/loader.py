"""Request and design loaders - YAML (or JSON) files to typed models.

Export requests can be kept as human-readable files and replayed from the
CLI; a design system override can be loaded the same way.
"""

from pathlib import Path

import yaml

from slidetheory.errors import ValidationError

from .models import DesignSystem, ExportRequest


def _read(path: str | Path) -> dict:
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValidationError(f"Could not parse {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"{path.name} must contain a mapping")
    return data


def save_request(request: ExportRequest, path: str | Path) -> None:
    """Serialize an ExportRequest to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(request.to_dict(), f, default_flow_style=False,
                  sort_keys=False, allow_unicode=True, width=120)


def load_request(path: str | Path) -> ExportRequest:
    """Deserialize an ExportRequest; JSON files load too (YAML is a superset)."""
    return ExportRequest.from_dict(_read(path))


def load_design(path: str | Path) -> DesignSystem:
    """Load a DesignSystem override; missing keys keep their defaults."""
    return DesignSystem.from_dict(_read(path))
