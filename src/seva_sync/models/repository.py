"""
Repository models.

Defines the repository snapshot returned by the GraphQL inventory queries
and the scoped-repository entries attached to selected-visibility secrets
and variables.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Repository(BaseModel):
	"""Immutable snapshot of one organization repository."""

	model_config = ConfigDict(frozen=True, populate_by_name=True)

	database_id: int = Field(alias="databaseId")
	name: str
	visibility: str = Field("private",
	                        description="public, private or internal")
	updated_at: datetime | None = Field(default=None, alias="updatedAt")

	@field_validator("visibility", mode="before")
	@classmethod
	def normalize_visibility(cls, v: Any) -> str:
		# GraphQL returns PUBLIC / PRIVATE / INTERNAL
		return str(v or "private").lower()

	@property
	def is_public(self) -> bool:
		return self.visibility == "public"


class ScopedRepository(BaseModel):
	"""A repository a selected-visibility secret or variable is attached to."""

	id: int
	name: str


__all__ = ["Repository", "ScopedRepository"]
