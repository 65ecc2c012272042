"""
Command parameter models.

Validated parameters for the export, create and migrate commands. The
CLI builds one of these before touching the network so malformed owner
names or an unknown ``--app`` value fail early.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .secret import AppFilter

OWNER_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")
REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def default_report_file(kind: str, now: datetime | None = None) -> str:
	"""Return ``report-<kind>-<timestamp>.csv``."""
	stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
	return f"report-{kind}-{stamp}.csv"


class _CommonParams(BaseModel):
	owner: str = Field(description="Organization login")
	token: Optional[str] = Field(default=None, description="Token override")
	hostname: Optional[str] = Field(default=None,
	                                description="Hostname override")
	debug: bool = False

	@field_validator("owner")
	@classmethod
	def validate_owner(cls, v: str) -> str:
		if not OWNER_RE.match(v):
			raise ValueError("owner must be a valid organization login")
		return v


class ExportParams(_CommonParams):
	"""Parameters for the export commands."""

	repos: list[str] = Field(default_factory=list)
	app: AppFilter = AppFilter.ALL
	output_file: Path

	@field_validator("repos")
	@classmethod
	def validate_repos(cls, v: list[str]) -> list[str]:
		for name in v:
			if not REPO_RE.match(name):
				raise ValueError(f"invalid repository name: {name!r}")
		return v

	@field_validator("output_file")
	@classmethod
	def validate_output_file(cls, v: Path) -> Path:
		if v.exists() and v.is_dir():
			raise ValueError(f"{v} is a directory")
		return v


class CreateParams(_CommonParams):
	"""Parameters for the create commands."""

	from_file: Optional[Path] = None
	source_org: Optional[str] = None
	source_token: Optional[str] = None
	source_hostname: Optional[str] = None

	@field_validator("source_org")
	@classmethod
	def validate_source_org(cls, v: Optional[str]) -> Optional[str]:
		if v is not None and not OWNER_RE.match(v):
			raise ValueError("source organization must be a valid login")
		return v

	@model_validator(mode="after")
	def check_source(self) -> "CreateParams":
		if self.from_file is None and self.source_org is None:
			raise ValueError(
			    "a file or source organization must be specified")
		if self.from_file is not None and self.source_org is not None:
			raise ValueError(
			    "specify only one of --source-organization or --from-file")
		return self

	@property
	def is_migration(self) -> bool:
		return self.source_org is not None


__all__ = [
    "ExportParams",
    "CreateParams",
    "default_report_file",
]
