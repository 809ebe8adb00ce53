"""Requirements file persistence (the pinned version stream)."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from bootup.core.exceptions import PersistenceError
from bootup.core.models import VersionStreamReference
from bootup.utils.logging import get_logger
from bootup.utils.yaml_scalars import scalar_text

logger = get_logger(__name__)

REQUIREMENTS_FILE_NAME = "jx-requirements.yml"


class VersionStreamConfig(BaseModel):
    """The ``versionStream`` section of the requirements file."""

    model_config = ConfigDict(extra="allow")

    url: str = ""
    ref: str = ""


class RequirementsConfig(BaseModel):
    """Requirements file.

    Only ``versionStream.url`` and ``versionStream.ref`` are interpreted. The
    rest of the document is kept as loaded and written back untouched.
    """

    model_config = ConfigDict(populate_by_name=True)

    version_stream: VersionStreamConfig = Field(
        default_factory=VersionStreamConfig, alias="versionStream"
    )

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @staticmethod
    def find_file(directory: str | Path, file_name: str = REQUIREMENTS_FILE_NAME) -> Path:
        """Find the requirements file in ``directory`` or any parent.

        Returns:
            Path of the file found, or ``directory/file_name`` when none exists
        """
        start = Path(directory).expanduser().resolve()
        for candidate_dir in (start, *start.parents):
            candidate = candidate_dir / file_name
            if candidate.is_file():
                return candidate
        return start / file_name

    @classmethod
    def load(
        cls, directory: str | Path, file_name: str = REQUIREMENTS_FILE_NAME
    ) -> tuple["RequirementsConfig", Path]:
        """Load the requirements file for a GitOps clone.

        Args:
            directory: Directory of the clone (parents are searched too)
            file_name: Requirements file name

        Returns:
            Tuple of (config, file path)

        Raises:
            PersistenceError: If the file is missing or unreadable
        """
        path = cls.find_file(directory, file_name)
        if not path.is_file():
            raise PersistenceError(
                f"No requirements file {path}; ensure you are running this command "
                "inside a GitOps clone"
            )

        try:
            text = path.read_text()
            data = yaml.safe_load(text) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Failed to read requirements file {path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Requirements file {path} is not a YAML mapping")

        section = data.get("versionStream")
        if isinstance(section, dict):
            for key in ("url", "ref"):
                value = section.get(key)
                if value is not None and not isinstance(value, str):
                    section[key] = scalar_text(text, "versionStream", key) or value

        try:
            requirements = cls.model_validate(data)
        except ValueError as e:
            raise PersistenceError(f"Invalid versionStream in {path}: {e}") from e

        requirements._raw = data
        logger.debug("requirements_loaded", path=str(path))
        return requirements, path

    def save(self, path: str | Path) -> None:
        """Write the requirements file, replacing only ``versionStream``.

        Raises:
            PersistenceError: If the file cannot be written
        """
        data = dict(self._raw)
        section = dict(data.get("versionStream") or {})
        section["url"] = self.version_stream.url
        section["ref"] = self.version_stream.ref
        data["versionStream"] = section

        try:
            with Path(path).open("w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise PersistenceError(f"Failed to write version stream to {path}: {e}") from e

        self._raw = data
        logger.info("requirements_saved", path=str(path), ref=self.version_stream.ref)

    @property
    def version_stream_reference(self) -> VersionStreamReference:
        """Pinned version stream as a reference."""
        return VersionStreamReference(url=self.version_stream.url, ref=self.version_stream.ref)
