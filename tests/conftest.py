"""Shared pytest fixtures for the crudgen test suite.

Provides reusable fixtures for:
- Configuration rooted in a temporary directory
- The sample ``Book`` schema and a six-section generated payload
- Stand-in generation backends (fixed, delayed, failing)
"""

from __future__ import annotations

import asyncio
import textwrap
from pathlib import Path

import pytest
from pydantic import SecretStr

from crudgen.config import Config, GeminiConfig
from crudgen.models import GenerationResponse, SchemaModel


# ---------------------------------------------------------------------------
# Stand-in generation backends
# ---------------------------------------------------------------------------


class StubClient:
    """Generation backend that returns a canned payload.

    Records every prompt it receives and optionally sleeps before answering,
    which lets tests interleave concurrent pipeline runs.
    """

    def __init__(self, text: str, delay: float = 0.0) -> None:
        self.text = text
        self.delay = delay
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> GenerationResponse:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return GenerationResponse(text=self.text, model="stub")


class FailingClient:
    """Generation backend that always reports the given failure."""

    def __init__(self, kind: str = "transport", error: str = "connection refused") -> None:
        self.kind = kind
        self.error = error

    async def generate(self, prompt: str) -> GenerationResponse:
        return GenerationResponse(
            success=False, error=self.error, error_kind=self.kind, model="stub"
        )


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

BOOK_SECTIONS: dict[str, str] = {
    "MODEL": "package com.example.model;\n\npublic class Book {\n    private String title;\n    private String author;\n}",
    "REPOSITORY": "package com.example.repository;\n\npublic interface BookRepository extends JpaRepository<Book, Long> {}",
    "SERVICE": "package com.example.service;\n\npublic class BookService {}",
    "CONTROLLER": "package com.example.controller;\n\npublic class BookController {}",
    "APPLICATION": "package com.example;\n\npublic class Application {}",
    "PROPERTIES": "spring.datasource.url=jdbc:h2:mem:books\nspring.jpa.hibernate.ddl-auto=update",
}

BOOK_PATHS: dict[str, str] = {
    "MODEL": "src/main/java/com/example/model/Book.java",
    "REPOSITORY": "src/main/java/com/example/repository/BookRepository.java",
    "SERVICE": "src/main/java/com/example/service/BookService.java",
    "CONTROLLER": "src/main/java/com/example/controller/BookController.java",
    "APPLICATION": "src/main/java/com/example/Application.java",
    "PROPERTIES": "application.properties",
}


def build_payload(sections: dict[str, str]) -> str:
    """Join sections into marker-delimited text, in the given order."""
    return "\n".join(f"//---{name}---\n{content}\n" for name, content in sections.items())


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def book_schema() -> SchemaModel:
    return SchemaModel(name="Book", fields=("title", "author"))


@pytest.fixture
def book_payload() -> str:
    """Six-section payload for the ``Book`` entity, wrapped in a code fence."""
    return "```java\n" + build_payload(BOOK_SECTIONS) + "```\n"


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration with every directory under ``tmp_path``."""
    return Config(
        output_dir=tmp_path / "output",
        work_dir=tmp_path / "work",
        data_dir=tmp_path / "data",
        gemini=GeminiConfig(api_key=SecretStr("test-key-123"), max_retries=0),
    )


@pytest.fixture
def sample_response_text() -> str:
    """A realistic reply with a preamble, a stray note, and per-section fences."""
    return textwrap.dedent("""\
        Here is the project you asked for.

        //---MODEL---
        ```java
        public class Book {}
        ```
        //---NOTES---
        Remember to add validation.
        //---SERVICE---
        public class BookService {}
        """)


@pytest.fixture
def book_sections() -> dict[str, str]:
    return dict(BOOK_SECTIONS)


@pytest.fixture
def book_paths() -> dict[str, str]:
    return dict(BOOK_PATHS)


@pytest.fixture
def payload_builder():
    """The ``build_payload`` helper, for tests that assemble their own payloads."""
    return build_payload


@pytest.fixture
def stub_client_cls() -> type[StubClient]:
    return StubClient


@pytest.fixture
def failing_client_cls() -> type[FailingClient]:
    return FailingClient
