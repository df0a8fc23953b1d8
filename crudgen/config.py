"""crudgen configuration.

Centralised, typed configuration for the scaffold pipeline. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr


class GeminiConfig(BaseModel):
    """Connection settings for the Gemini ``generateContent`` endpoint.

    The API key is held as a ``SecretStr`` so that it never shows up in
    ``repr()`` output or in a saved configuration file.
    """

    api_key: SecretStr = Field(default=SecretStr(""))
    base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    model: str = Field(default="gemini-2.0-flash")
    timeout: float = Field(default=120.0, ge=1, description="Per-request timeout in seconds")
    max_retries: int = Field(
        default=2, ge=0, description="Extra attempts after a transient upstream failure"
    )
    backoff_seconds: float = Field(
        default=1.0, ge=0, description="Base delay for exponential backoff between attempts"
    )
    deadline: float = Field(
        default=300.0, gt=0, description="Overall bound on the upstream call, retries included"
    )


class Config(BaseModel):
    """Global crudgen configuration.

    Instances are typically created once by the CLI entry point and then
    passed to ``ScaffoldPipeline`` and ``SchemaStore``.
    """

    output_dir: Path = Field(default=Path("./output"))
    work_dir: Path | None = Field(
        default=None, description="Parent of per-job workspaces; system temp dir when unset"
    )
    data_dir: Path = Field(default=Path("./.crudgen"))
    base_package: str = Field(
        default="com.example", pattern=r"^[a-z_][a-z0-9_]*(\.[a-z_][a-z0-9_]*)*$"
    )
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def store_path(self) -> Path:
        """Path to the JSON file holding stored entity schemas."""
        return self.data_dir / "schemas.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        The API key is never written; reload it from the environment.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.data_dir / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            self.model_dump_json(indent=2, exclude={"gemini": {"api_key"}}),
            encoding="utf-8",
        )
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GEMINI_API_KEY, CRUDGEN_GEMINI_URL, CRUDGEN_GEMINI_MODEL,
            CRUDGEN_GEMINI_TIMEOUT, CRUDGEN_MAX_RETRIES, CRUDGEN_DEADLINE,
            CRUDGEN_OUTPUT_DIR, CRUDGEN_WORK_DIR, CRUDGEN_DATA_DIR,
            CRUDGEN_BASE_PACKAGE.
        """
        gemini_kwargs: dict[str, Any] = {}
        if os.environ.get("GEMINI_API_KEY"):
            gemini_kwargs["api_key"] = SecretStr(os.environ["GEMINI_API_KEY"])
        if os.environ.get("CRUDGEN_GEMINI_URL"):
            gemini_kwargs["base_url"] = os.environ["CRUDGEN_GEMINI_URL"]
        if os.environ.get("CRUDGEN_GEMINI_MODEL"):
            gemini_kwargs["model"] = os.environ["CRUDGEN_GEMINI_MODEL"]
        if os.environ.get("CRUDGEN_GEMINI_TIMEOUT"):
            gemini_kwargs["timeout"] = float(os.environ["CRUDGEN_GEMINI_TIMEOUT"])
        if os.environ.get("CRUDGEN_MAX_RETRIES"):
            gemini_kwargs["max_retries"] = int(os.environ["CRUDGEN_MAX_RETRIES"])
        if os.environ.get("CRUDGEN_DEADLINE"):
            gemini_kwargs["deadline"] = float(os.environ["CRUDGEN_DEADLINE"])

        kwargs: dict[str, Any] = {}
        if os.environ.get("CRUDGEN_WORK_DIR"):
            kwargs["work_dir"] = Path(os.environ["CRUDGEN_WORK_DIR"])
        if os.environ.get("CRUDGEN_BASE_PACKAGE"):
            kwargs["base_package"] = os.environ["CRUDGEN_BASE_PACKAGE"]

        return cls(
            output_dir=Path(os.environ.get("CRUDGEN_OUTPUT_DIR", "./output")),
            data_dir=Path(os.environ.get("CRUDGEN_DATA_DIR", "./.crudgen")),
            gemini=GeminiConfig(**gemini_kwargs),
            **kwargs,
        )

    def ensure_directories(self) -> None:
        """Create the directories that must exist before the pipeline runs."""
        directories = [self.output_dir, self.data_dir]
        if self.work_dir is not None:
            directories.append(self.work_dir)
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)
