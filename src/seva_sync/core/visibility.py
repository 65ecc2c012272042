"""
Visibility resolution.

Export direction: turn a secret's or variable's declared visibility into
the concrete repository names and IDs written to CSV. Import direction:
turn a CSV row's access and ID list into the provider-specific creation
payload. The Dependabot API takes selected repository IDs as strings
while Actions, Codespaces and variables take integers; that asymmetry
lives in PAYLOAD_BUILDERS and nowhere else.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from seva_sync.models.repository import Repository, ScopedRepository
from seva_sync.models.secret import (
    PRIVATE,
    REPO_ONLY,
    SELECTED,
    ImportedSecret,
    Provider,
)
from seva_sync.models.variable import ImportedVariable
from seva_sync.utils.logging import get_logger

_DIGITS_RE = re.compile(r"[0-9]+")


class PayloadError(ValueError):
	"""A CSV row cannot be turned into a creation payload."""


@dataclass(frozen=True)
class ResolvedScope:
	"""Concrete repository scope of one secret or variable."""

	access: str
	names: list[str] = field(default_factory=list)
	ids: list[str] = field(default_factory=list)


def private_scope(inventory: Sequence[Repository]) -> tuple[list[str], list[str]]:
	"""Names and IDs of every non-public repository, in inventory order."""
	names: list[str] = []
	ids: list[str] = []
	for repo in inventory:
		if not repo.is_public:
			names.append(repo.name)
			ids.append(str(repo.database_id))
	return names, ids


def repository_scope(repo: Repository) -> ResolvedScope:
	"""Repository-level secrets and variables always resolve to their repo."""
	return ResolvedScope(REPO_ONLY, [repo.name], [str(repo.database_id)])


def parse_repository_ids(ids: Sequence[str]) -> list[str]:
	"""Validate selected repository IDs, returning them stripped.

	Raises:
		PayloadError: On an empty list or an empty, non-numeric or zero
			entry.
	"""
	cleaned = [i.strip() for i in ids]
	if not cleaned or cleaned == [""]:
		raise PayloadError("access is 'selected' but no repository IDs given")
	for value in cleaned:
		if not _DIGITS_RE.fullmatch(value) or int(value) == 0:
			raise PayloadError(f"invalid repository ID {value!r}")
	return cleaned


def map_names_to_ids(names: Sequence[str],
                     inventory: Sequence[Repository]) -> list[int]:
	"""Translate repository names into IDs of ``inventory``.

	Raises:
		PayloadError: If any name is absent from the inventory.
	"""
	by_name = {repo.name: repo.database_id for repo in inventory}
	missing = [n for n in names if n not in by_name]
	if missing:
		raise PayloadError("repositories not found in destination: " +
		                   ", ".join(missing))
	return [by_name[n] for n in names]


class VisibilityResolver:
	"""Resolves export scopes against the run's repository inventory."""

	def __init__(self, inventory: Sequence[Repository] = (),
	             logger: logging.Logger | None = None):
		self.inventory = list(inventory)
		self.logger = logger or get_logger(__name__)

	def resolve_for_export(
	    self,
	    name: str,
	    visibility: str | None,
	    scoped: Callable[[], Sequence[ScopedRepository]] | None = None,
	) -> ResolvedScope:
		"""
		Resolve an organization-level visibility into names and IDs.

		Parameters:
			name: Secret or variable name, for logging.
			visibility: ``selected``, ``private`` or ``all``.
			scoped: Called only for ``selected`` to fetch the scoped
				repositories.

		Returns:
			ResolvedScope with the declared visibility as access.
		"""
		access = visibility or ""
		if access == SELECTED:
			if scoped is None:
				raise ValueError(f"{name}: selected visibility needs a "
				                 "scoped repository lookup")
			repos = list(scoped())
			self.logger.debug("%s is scoped to %d repositories", name,
			                  len(repos))
			return ResolvedScope(access, [r.name for r in repos],
			                     [str(r.id) for r in repos])
		if access == PRIVATE:
			names, ids = private_scope(self.inventory)
			self.logger.debug(
			    "%s is visible to %d private and internal repositories",
			    name, len(names))
			return ResolvedScope(access, names, ids)
		return ResolvedScope(access)

	def resolve_repository(self, repo: Repository) -> ResolvedScope:
		return repository_scope(repo)


@dataclass(frozen=True)
class PayloadBuilder:
	"""Creation payload shapes for one secrets provider."""

	provider: Provider
	ids_as_strings: bool = False

	def selected_ids(self, ids: Sequence[str]) -> list[int] | list[str]:
		cleaned = parse_repository_ids(ids)
		if self.ids_as_strings:
			return cleaned
		return [int(i) for i in cleaned]

	def org_secret(self, row: ImportedSecret, key_id: str,
	               encrypted_value: str) -> dict[str, Any]:
		payload: dict[str, Any] = {
		    "encrypted_value": encrypted_value,
		    "key_id": key_id,
		    "visibility": row.access,
		}
		if row.access == SELECTED:
			payload["selected_repository_ids"] = self.selected_ids(
			    row.repository_ids)
		return payload

	def repo_secret(self, key_id: str, encrypted_value: str) -> dict[str, Any]:
		return {"encrypted_value": encrypted_value, "key_id": key_id}


PAYLOAD_BUILDERS: dict[Provider, PayloadBuilder] = {
    Provider.ACTIONS: PayloadBuilder(Provider.ACTIONS),
    Provider.DEPENDABOT: PayloadBuilder(Provider.DEPENDABOT,
                                        ids_as_strings=True),
    Provider.CODESPACES: PayloadBuilder(Provider.CODESPACES),
}


def payload_builder(provider: Provider) -> PayloadBuilder:
	return PAYLOAD_BUILDERS[provider]


def org_variable_payload(row: ImportedVariable) -> dict[str, Any]:
	"""Organization variable payload; integer IDs only when selected."""
	payload: dict[str, Any] = {
	    "name": row.name,
	    "value": row.value,
	    "visibility": row.access,
	}
	if row.access == SELECTED:
		payload["selected_repository_ids"] = [
		    int(i) for i in parse_repository_ids(row.repository_ids)
		]
	return payload


def repo_variable_payload(row: ImportedVariable) -> dict[str, Any]:
	return {"name": row.name, "value": row.value}


__all__ = [
    "PayloadError",
    "ResolvedScope",
    "VisibilityResolver",
    "PayloadBuilder",
    "PAYLOAD_BUILDERS",
    "payload_builder",
    "private_scope",
    "repository_scope",
    "parse_repository_ids",
    "map_names_to_ids",
    "org_variable_payload",
    "repo_variable_payload",
]
