"""
Variable models.

Actions variables mirror secrets but carry their value in the clear and
exist only under the Actions provider.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Variable(BaseModel):
	"""An Actions variable as listed by the GitHub REST API."""

	name: str
	value: str = ""
	visibility: str | None = None
	created_at: datetime | None = None
	updated_at: datetime | None = None
	selected_repositories_url: str | None = None


class ImportedVariable(BaseModel):
	"""One row of the variables CSV."""

	level: str
	name: str
	value: str = ""
	access: str = ""
	repository_names: list[str] = Field(default_factory=list)
	repository_ids: list[str] = Field(default_factory=list)

	@property
	def target_repository(self) -> str | None:
		if self.repository_names and self.repository_names[0].strip():
			return self.repository_names[0].strip()
		return None


__all__ = ["Variable", "ImportedVariable"]
