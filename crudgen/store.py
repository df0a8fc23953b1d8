"""JSON-file storage for entity schemas.

A small persistence layer for the ``create`` / ``list`` / ``generate`` CLI
commands.  Records live in one JSON array at ``Config.store_path``; ids are
sequential integers starting at 1.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .errors import NotFoundError
from .models import SchemaModel
from .utils import load_json_list, save_json


class EndpointDefinition(BaseModel):
    """An extra endpoint attached to a stored schema.

    ``schema_id`` points back at the owning record and is maintained by
    ``SchemaRecord.add_endpoint`` / ``remove_endpoint``.
    """
    id: int
    method: str = Field(default="GET")
    path: str = Field(default="/")
    response_body: str = Field(default="")
    schema_id: Optional[int] = None


class SchemaRecord(BaseModel):
    """A stored entity schema; owns its endpoint definitions."""
    id: int
    entity_name: str
    base_path: str = Field(default="")
    fields: list[str] = Field(default_factory=list)
    endpoints: list[EndpointDefinition] = Field(default_factory=list)

    def to_schema(self) -> SchemaModel:
        return SchemaModel(name=self.entity_name, fields=tuple(self.fields))

    def add_endpoint(
        self, method: str, path: str, response_body: str = ""
    ) -> EndpointDefinition:
        next_id = max((e.id for e in self.endpoints), default=0) + 1
        endpoint = EndpointDefinition(
            id=next_id,
            method=method.upper(),
            path=path,
            response_body=response_body,
            schema_id=self.id,
        )
        self.endpoints.append(endpoint)
        return endpoint

    def remove_endpoint(self, endpoint_id: int) -> EndpointDefinition:
        for index, endpoint in enumerate(self.endpoints):
            if endpoint.id == endpoint_id:
                removed = self.endpoints.pop(index)
                removed.schema_id = None
                return removed
        raise KeyError(endpoint_id)


class SchemaStore:
    """Create/list/get access to stored schemas."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> list[SchemaRecord]:
        return [SchemaRecord.model_validate(item) for item in load_json_list(self.path)]

    async def _write(self, records: list[SchemaRecord]) -> None:
        await save_json([r.model_dump(mode="json") for r in records], self.path)

    async def create(
        self,
        entity_name: str,
        fields: list[str],
        base_path: str = "",
    ) -> SchemaRecord:
        """Store a new schema and return it with its assigned id.

        The entity name is validated the same way the pipeline validates it.
        """
        SchemaModel(name=entity_name, fields=tuple(fields))
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            record = SchemaRecord(
                id=max((r.id for r in records), default=0) + 1,
                entity_name=entity_name,
                base_path=base_path,
                fields=list(fields),
            )
            records.append(record)
            await self._write(records)
        return record

    async def update(self, record: SchemaRecord) -> SchemaRecord:
        """Replace a stored record (e.g. after endpoint changes)."""
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            for index, existing in enumerate(records):
                if existing.id == record.id:
                    records[index] = record
                    await self._write(records)
                    return record
        raise NotFoundError(record.id)

    async def list(self) -> list[SchemaRecord]:
        return await asyncio.to_thread(self._read)

    async def get(self, schema_id: int) -> SchemaRecord:
        """Return the record with *schema_id*.

        Raises:
            NotFoundError: If no such record exists.
        """
        for record in await self.list():
            if record.id == schema_id:
                return record
        raise NotFoundError(schema_id)
