"""crudgen -- LLM-backed CRUD project scaffolding.

Turns an entity description into a zipped Spring Boot CRUD project by
delegating code synthesis to the Gemini API and packaging the result.

Usage::

    from crudgen import Config, ScaffoldPipeline, SchemaModel

    pipeline = ScaffoldPipeline(Config.from_env())
    artifact = await pipeline.run(SchemaModel(name="Book", fields=("title", "author")))
    print(artifact.path)
"""

from crudgen.config import Config, GeminiConfig
from crudgen.errors import (
    CrudgenError,
    FilesystemError,
    LocalError,
    NotFoundError,
    ParseFailure,
    TransportError,
    UpstreamError,
    UpstreamProtocolError,
)
from crudgen.models import Artifact, FileLayout, SchemaModel, Section, SectionSet
from crudgen.pipeline import ScaffoldPipeline

__all__ = [
    "Artifact",
    "Config",
    "CrudgenError",
    "FileLayout",
    "FilesystemError",
    "GeminiConfig",
    "LocalError",
    "NotFoundError",
    "ParseFailure",
    "ScaffoldPipeline",
    "SchemaModel",
    "Section",
    "SectionSet",
    "TransportError",
    "UpstreamError",
    "UpstreamProtocolError",
]
