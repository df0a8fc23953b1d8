"""Tests for the scaffold pipeline orchestrator and CLI (crudgen.pipeline).

Covers:
- ScaffoldPipeline.run success and failure paths
- Workspace cleanup on every exit path
- generate_by_id and NotFoundError
- CLI sub-commands and exit codes
"""

from __future__ import annotations

import os
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

from crudgen.errors import (
    FilesystemError,
    NotFoundError,
    ParseFailure,
    TransportError,
    UpstreamProtocolError,
)
from crudgen.models import Section
from crudgen.pipeline import EXIT_LOCAL, EXIT_OK, EXIT_UPSTREAM, ScaffoldPipeline, main
from crudgen.store import SchemaStore


def _workspace_leftovers(config) -> list[Path]:
    if not config.work_dir.exists():
        return []
    return list(config.work_dir.iterdir())


# ---------------------------------------------------------------------------
# ScaffoldPipeline.run
# ---------------------------------------------------------------------------


class TestPipelineRun:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, config, book_schema, book_payload, stub_client_cls):
        client = stub_client_cls(book_payload)
        artifact = await ScaffoldPipeline(config, client=client).run(book_schema, job_id="abc")

        assert artifact.job_id == "abc"
        assert artifact.path == config.output_dir / "book-abc.zip"
        assert artifact.filename == "book-api.zip"
        assert artifact.path.exists()
        assert len(artifact.entries) == 6
        assert _workspace_leftovers(config) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prompt_sent_to_client(self, config, book_schema, book_payload, stub_client_cls):
        client = stub_client_cls(book_payload)
        pipeline = ScaffoldPipeline(config, client=client)
        await pipeline.run(book_schema)

        assert client.prompts == [pipeline.composer.compose(book_schema)]
        assert Section.MODEL.marker in client.prompts[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generated_job_ids_are_unique(
        self, config, book_schema, book_payload, stub_client_cls
    ):
        pipeline = ScaffoldPipeline(config, client=stub_client_cls(book_payload))
        first = await pipeline.run(book_schema)
        second = await pipeline.run(book_schema)
        assert first.job_id != second.job_id
        assert first.path != second.path
        assert first.path.exists() and second.path.exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transport_failure(self, config, book_schema, failing_client_cls):
        pipeline = ScaffoldPipeline(config, client=failing_client_cls("transport"))
        with pytest.raises(TransportError) as excinfo:
            await pipeline.run(book_schema)
        assert excinfo.value.category == "upstream"
        assert _workspace_leftovers(config) == []
        assert list(config.output_dir.glob("*.zip")) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_protocol_failure(self, config, book_schema, failing_client_cls):
        pipeline = ScaffoldPipeline(config, client=failing_client_cls("protocol", "quota"))
        with pytest.raises(UpstreamProtocolError, match="quota"):
            await pipeline.run(book_schema)
        assert _workspace_leftovers(config) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_parse_failure(self, config, book_schema, stub_client_cls):
        pipeline = ScaffoldPipeline(config, client=stub_client_cls("I cannot help with that."))
        with pytest.raises(ParseFailure):
            await pipeline.run(book_schema)
        assert _workspace_leftovers(config) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_filesystem_failure_cleans_up(
        self, config, book_schema, book_payload, stub_client_cls
    ):
        pipeline = ScaffoldPipeline(config, client=stub_client_cls(book_payload))
        with patch.object(
            pipeline.archiver, "archive", side_effect=FilesystemError("disk full")
        ):
            with pytest.raises(FilesystemError) as excinfo:
                await pipeline.run(book_schema)
        assert excinfo.value.category == "local"
        assert _workspace_leftovers(config) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_partial_response_warns(self, config, book_schema, stub_client_cls):
        client = stub_client_cls("//---MODEL---\nclass Book {}\n")
        with patch("crudgen.pipeline.print_warning") as warn:
            artifact = await ScaffoldPipeline(config, client=client).run(book_schema)
        assert artifact.entries == ["src/main/java/com/example/model/Book.java"]
        assert "REPOSITORY" in warn.call_args.args[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_base_package_layout(self, config, book_schema, stub_client_cls):
        config.base_package = "org.acme"
        client = stub_client_cls("//---MODEL---\nclass Book {}\n")
        artifact = await ScaffoldPipeline(config, client=client).run(book_schema)
        assert artifact.entries == ["src/main/java/org/acme/model/Book.java"]


# ---------------------------------------------------------------------------
# generate_by_id
# ---------------------------------------------------------------------------


class TestGenerateById:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_known_id(self, config, book_payload, stub_client_cls):
        store = SchemaStore(config.store_path)
        record = await store.create("Book", ["title", "author"])
        client = stub_client_cls(book_payload)

        artifact = await ScaffoldPipeline(config, client=client).generate_by_id(store, record.id)

        assert artifact.path.exists()
        assert "- title" in client.prompts[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_id(self, config, stub_client_cls):
        store = SchemaStore(config.store_path)
        client = stub_client_cls("unused")
        with pytest.raises(NotFoundError):
            await ScaffoldPipeline(config, client=client).generate_by_id(store, 99)
        assert client.prompts == []


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_env(tmp_path: Path):
    env = {
        "CRUDGEN_OUTPUT_DIR": str(tmp_path / "out"),
        "CRUDGEN_DATA_DIR": str(tmp_path / "data"),
        "CRUDGEN_WORK_DIR": str(tmp_path / "work"),
        "GEMINI_API_KEY": "cli-key",
        "CRUDGEN_MAX_RETRIES": "0",
    }
    with patch.dict(os.environ, env, clear=True):
        yield tmp_path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


class TestCli:
    @pytest.mark.unit
    def test_create_and_list(self, cli_env, capsys):
        assert _exit_code(["create", "Book", "title", "author"]) == EXIT_OK
        assert _exit_code(["list"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "Created schema 1" in out
        assert "title, author" in out

    @pytest.mark.unit
    def test_create_invalid_name(self, cli_env):
        assert _exit_code(["create", "bad name"]) == EXIT_LOCAL

    @pytest.mark.unit
    def test_generate_unknown_id(self, cli_env):
        assert _exit_code(["generate", "5"]) == EXIT_LOCAL

    @pytest.mark.unit
    def test_generate_without_key(self, cli_env):
        with patch.dict(os.environ, {"GEMINI_API_KEY": ""}):
            assert _exit_code(["generate", "1"]) == EXIT_LOCAL

    @pytest.mark.unit
    def test_generate_success(self, cli_env, book_payload, stub_client_cls):
        assert _exit_code(["create", "Book", "title", "author"]) == EXIT_OK
        with patch(
            "crudgen.pipeline.GeminiClient.from_config",
            return_value=stub_client_cls(book_payload),
        ):
            assert _exit_code(["generate", "1", "-o", str(cli_env / "custom")]) == EXIT_OK
        archives = list((cli_env / "custom").glob("book-*.zip"))
        assert len(archives) == 1
        with zipfile.ZipFile(archives[0]) as zf:
            assert len(zf.namelist()) == 6

    @pytest.mark.unit
    def test_generate_upstream_failure(self, cli_env, failing_client_cls):
        assert _exit_code(["create", "Book", "title"]) == EXIT_OK
        with patch(
            "crudgen.pipeline.GeminiClient.from_config",
            return_value=failing_client_cls("transport"),
        ):
            assert _exit_code(["generate", "1"]) == EXIT_UPSTREAM

    @pytest.mark.unit
    def test_invalid_env_setting(self, cli_env, capsys):
        with patch.dict(os.environ, {"CRUDGEN_MAX_RETRIES": "abc"}):
            assert _exit_code(["list"]) == EXIT_LOCAL
        assert "Invalid input" in capsys.readouterr().out

    @pytest.mark.unit
    def test_unusable_output_dir(self, cli_env, capsys):
        blocker = cli_env / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        with patch.dict(os.environ, {"CRUDGEN_OUTPUT_DIR": str(blocker / "out")}):
            assert _exit_code(["list"]) == EXIT_LOCAL
        assert "Filesystem error" in capsys.readouterr().out
