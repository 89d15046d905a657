from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import AliasChoices, BaseModel, Field


PROJECT_SCHEMA_VERSION = 2


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class TagRecord(BaseModel):
    # Version 1 documents used capitalized keys; both spellings load.
    id: int = Field(validation_alias=AliasChoices("id", "ID"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "Name"))
    category: str = Field(default="", validation_alias=AliasChoices("category", "Category"))
    songs: List[str] = Field(default_factory=list, validation_alias=AliasChoices("songs", "Songs"))


class ProjectDocument(BaseModel):
    # schema_version 2 switched to lowercase keys and added timestamps.
    schema_version: int = Field(default=1, validation_alias=AliasChoices("schema_version", "SchemaVersion"))

    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    tags: List[TagRecord] = Field(default_factory=list, validation_alias=AliasChoices("tags", "Tags"))
    # Every known song in registration order. Version 1 had no such list; songs
    # were recovered from the tag and import lists alone.
    songs: List[str] = Field(default_factory=list)
    import_list: List[str] = Field(default_factory=list, validation_alias=AliasChoices("import_list", "ImportList"))
