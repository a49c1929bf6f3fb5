"""Project manifest (package.json) model."""
import json
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nodeship.core.errors import PreconditionError

MANIFEST_FILE = "package.json"


class ManifestError(PreconditionError):
    """Raised when package.json is missing or has no usable name."""
    pass


class AppManifest(BaseModel):
    """The parts of package.json nodeship cares about."""

    model_config = ConfigDict(extra='ignore')

    name: str
    scripts: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """App name is used as the PM2 process and nginx site name."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator('scripts', mode='before')
    @classmethod
    def validate_scripts(cls, v):
        if v is None:
            return {}
        return v

    @property
    def has_build(self) -> bool:
        return "build" in self.scripts

    @property
    def has_start(self) -> bool:
        return "start" in self.scripts


def load_manifest(project_dir) -> AppManifest:
    """Load and validate package.json from ``project_dir``.

    Raises:
        ManifestError: If the file is missing or malformed, or has no name
    """
    path = Path(project_dir) / MANIFEST_FILE
    if not path.exists():
        raise ManifestError(
            f"No {MANIFEST_FILE} found in {Path(project_dir)}. "
            "Run from your Node.js project root."
        )

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestError(f"{path} must contain a JSON object")

    try:
        return AppManifest.model_validate(data)
    except ValidationError as exc:
        fields = {str(err["loc"][0]) for err in exc.errors() if err["loc"]}
        if "name" in fields:
            raise ManifestError(f"Could not extract app name from {MANIFEST_FILE}") from exc
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ManifestError(f"Invalid {MANIFEST_FILE} in {Path(project_dir)}: {details}") from exc
