"""crudgen scaffold pipeline orchestrator.

Runs one generation job end to end:

1. COMPOSE  -- build the prompt from the entity schema.
2. GENERATE -- call the Gemini endpoint for the raw source text.
3. PARSE    -- split the text into named sections.
4. WRITE    -- materialize the sections into a per-job workspace.
5. PACKAGE  -- zip the workspace into a per-job archive.
6. CLEANUP  -- remove the workspace (on every exit path).

Usage::

    crudgen create Book title author
    crudgen list
    crudgen generate 1 --output ./out
"""

from __future__ import annotations

import asyncio
import sys
import time
import uuid
from pathlib import Path
from typing import Protocol

from crudgen.config import Config
from crudgen.errors import CrudgenError, NotFoundError, UpstreamError
from crudgen.gemini_client import GeminiClient
from crudgen.models import Artifact, FileLayout, GenerationResponse, SchemaModel, Section
from crudgen.scaffolder import Archiver, PromptComposer, ResponseParser, Workspace, WorkspaceBuilder
from crudgen.store import SchemaStore
from crudgen.utils import (
    console,
    format_duration,
    print_error,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    sanitize_name,
)


class GenerationBackend(Protocol):
    """Anything that can turn a prompt into a ``GenerationResponse``."""

    async def generate(self, prompt: str) -> GenerationResponse: ...


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """Drives one schema through prompt, generation, parsing and packaging.

    Every job gets a fresh ``uuid4`` id embedded in both its workspace and
    its archive name, so concurrent ``run`` calls share no files.

    Attributes:
        config: Global configuration.
        client: Generation backend (``GeminiClient`` unless overridden).
    """

    def __init__(self, config: Config, client: GenerationBackend | None = None) -> None:
        self.config = config
        self.client = client or GeminiClient.from_config(config.gemini)
        self.composer = PromptComposer(base_package=config.base_package)
        self.parser = ResponseParser()
        self.archiver = Archiver()

    def archive_path(self, schema: SchemaModel, job_id: str) -> Path:
        return self.config.output_dir / f"{sanitize_name(schema.name)}-{job_id}.zip"

    async def run(self, schema: SchemaModel, job_id: str | None = None) -> Artifact:
        """Generate and package a project for *schema*.

        Returns:
            The ``Artifact`` describing the written archive.

        Raises:
            TransportError, UpstreamProtocolError, ParseFailure: The upstream
                step failed; retrying may help.
            FilesystemError: A local workspace or archive step failed.
        """
        job_id = job_id or uuid.uuid4().hex
        started = time.monotonic()
        workspace = Workspace(job_id, root=self.config.work_dir)
        root = await asyncio.to_thread(workspace.allocate)

        try:
            print_step(job_id, f"Composing prompt for [bold]{schema.name}[/bold]")
            prompt = self.composer.compose(schema)

            print_step(job_id, "Requesting generated sources")
            response = await self.client.generate(prompt)
            text = response.unwrap()

            sections = self.parser.parse(text)
            missing = [s.value for s in Section if s not in sections]
            if missing:
                print_warning(f"Response is missing sections: {', '.join(missing)}")

            layout = FileLayout.for_entity(schema.name, self.config.base_package)
            await asyncio.to_thread(WorkspaceBuilder(layout).materialize, sections, root)

            output_path = self.archive_path(schema, job_id)
            entries = await asyncio.to_thread(self.archiver.archive, root, output_path)
        finally:
            await asyncio.to_thread(workspace.release)

        print_step(
            job_id,
            f"Packaged {len(entries)} files in {format_duration(time.monotonic() - started)}",
        )
        return Artifact(
            path=output_path,
            filename=f"{sanitize_name(schema.name)}-api.zip",
            job_id=job_id,
            entries=entries,
        )

    async def generate_by_id(self, store: SchemaStore, schema_id: int) -> Artifact:
        """Look up a stored schema and run the pipeline for it.

        Raises:
            NotFoundError: If *schema_id* is not in the store.
        """
        record = await store.get(schema_id)
        return await self.run(record.to_schema())


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

EXIT_OK = 0
EXIT_LOCAL = 1
EXIT_UPSTREAM = 2


async def _cmd_create(config: Config, args) -> int:
    store = SchemaStore(config.store_path)
    record = await store.create(args.name, args.fields, base_path=args.base_path)
    print_success(f"Created schema {record.id}: {record.entity_name}")
    return EXIT_OK


async def _cmd_list(config: Config, args) -> int:
    store = SchemaStore(config.store_path)
    records = await store.list()
    if not records:
        console.print("[dim]No schemas stored.[/dim]")
        return EXIT_OK
    print_summary_table(
        [
            {"ID": r.id, "Entity": r.entity_name, "Fields": ", ".join(r.fields)}
            for r in records
        ],
        title="Schemas",
    )
    return EXIT_OK


async def _cmd_generate(config: Config, args) -> int:
    if not config.gemini.api_key.get_secret_value():
        print_error("GEMINI_API_KEY is not set.")
        return EXIT_LOCAL
    store = SchemaStore(config.store_path)
    pipeline = ScaffoldPipeline(config)
    try:
        artifact = await pipeline.generate_by_id(store, args.id)
    except NotFoundError as exc:
        print_error(str(exc))
        return EXIT_LOCAL
    except UpstreamError as exc:
        print_error(f"Upstream generation failed ({type(exc).__name__}): {exc}")
        console.print("[dim]The request can be retried.[/dim]")
        return EXIT_UPSTREAM
    except CrudgenError as exc:
        print_error(f"Local packaging failed ({type(exc).__name__}): {exc}")
        return EXIT_LOCAL
    print_success(f"Archive written to {artifact.path}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``crudgen`` / ``python -m crudgen.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="crudgen",
        description="crudgen -- generate a CRUD project archive for an entity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  crudgen create Book title author\n"
            "  crudgen list\n"
            "  crudgen generate 1 -o ./out\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Store a new entity schema")
    create.add_argument("name", help="Entity name, e.g. Book")
    create.add_argument("fields", nargs="*", help="Field descriptors, e.g. title author:String")
    create.add_argument("--base-path", default="", help="Base API path for the entity")

    subparsers.add_parser("list", help="List stored schemas")

    generate = subparsers.add_parser("generate", help="Generate a project archive")
    generate.add_argument("id", type=int, help="Stored schema id")
    generate.add_argument(
        "--output", "-o",
        default=None,
        help="Output directory (default: $CRUDGEN_OUTPUT_DIR or ./output)",
    )

    args = parser.parse_args(argv)

    handlers = {
        "create": _cmd_create,
        "list": _cmd_list,
        "generate": _cmd_generate,
    }
    try:
        config = Config.from_env()
        if getattr(args, "output", None):
            config.output_dir = Path(args.output)
        config.ensure_directories()
        code = asyncio.run(handlers[args.command](config, args))
    except ValueError as exc:
        print_error(f"Invalid input: {exc}")
        code = EXIT_LOCAL
    except OSError as exc:
        print_error(f"Filesystem error: {exc}")
        code = EXIT_LOCAL
    sys.exit(code)


if __name__ == "__main__":
    main()
