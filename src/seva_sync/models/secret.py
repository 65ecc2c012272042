"""
Secret models.

Covers the live secret returned by the REST API, the CSV-backed
ImportedSecret row, the provider public key, and the enumerations that
span the level x provider matrix.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

REPO_ONLY = "RepoOnly"
SELECTED = "selected"
PRIVATE = "private"


class Level(str, Enum):
	"""Scope of a secret or variable."""

	ORGANIZATION = "Organization"
	REPOSITORY = "Repository"


class Provider(str, Enum):
	"""GitHub subsystem that owns a secret."""

	ACTIONS = "Actions"
	DEPENDABOT = "Dependabot"
	CODESPACES = "Codespaces"

	@property
	def path(self) -> str:
		"""REST path segment, e.g. ``actions``."""
		return self.value.lower()


class AppFilter(str, Enum):
	"""Value of the ``--app`` export filter."""

	ALL = "all"
	ACTIONS = "actions"
	CODESPACES = "codespaces"
	DEPENDABOT = "dependabot"

	def includes(self, provider: Provider) -> bool:
		return self is AppFilter.ALL or self.value == provider.path


class Secret(BaseModel):
	"""A secret as listed by the GitHub REST API (never carries a value)."""

	name: str
	visibility: str | None = None
	created_at: datetime | None = None
	updated_at: datetime | None = None
	selected_repositories_url: str | None = None


class ImportedSecret(BaseModel):
	"""One row of the secrets CSV."""

	level: str
	type: str
	name: str
	value: str = ""
	access: str = ""
	repository_names: list[str] = Field(default_factory=list)
	repository_ids: list[str] = Field(default_factory=list)

	@property
	def target_repository(self) -> str | None:
		"""Repository a Repository-level row is written to."""
		if self.repository_names and self.repository_names[0].strip():
			return self.repository_names[0].strip()
		return None


class PublicKey(BaseModel):
	"""Provider public key used to seal secret values."""

	key_id: str
	key: str


__all__ = [
    "REPO_ONLY",
    "SELECTED",
    "PRIVATE",
    "Level",
    "Provider",
    "AppFilter",
    "Secret",
    "ImportedSecret",
    "PublicKey",
]
