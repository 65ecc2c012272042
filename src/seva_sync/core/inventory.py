"""
Repository inventory.

Supplies the authoritative ``{name, databaseId, visibility}`` set used by
visibility resolution. This is the only source for which private and
internal repositories exist, so any failure here aborts the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from seva_sync.integrations.github import (
    GitHubAPIError,
    query_repositories_page,
    query_repository,
)
from seva_sync.models.repository import Repository
from seva_sync.utils.logging import get_logger

PAGE_SIZE = 100


class InventoryError(RuntimeError):
	"""Repository listing or lookup failed."""


class RepositoryInventory:
	"""Paginated and single-repository GraphQL lookups for one client."""

	def __init__(self, api: Any, graphql_url: str | None = None,
	             logger: logging.Logger | None = None):
		self.api = api
		self.graphql_url = graphql_url
		self.logger = logger or get_logger(__name__)

	def iter_pages(self, owner: str) -> Iterator[list[Repository]]:
		"""Yield one page of repositories at a time until the last page.

		Each call returns a fresh generator starting at the first page.
		"""
		cursor: str | None = None
		page = 0
		while True:
			page += 1
			self.logger.debug("fetching repository page %d for %s", page,
			                  owner)
			try:
				repos, cursor, has_next = query_repositories_page(
				    self.api, owner, cursor, url=self.graphql_url)
			except GitHubAPIError as exc:
				raise InventoryError(
				    f"listing repositories for {owner} failed: {exc}") from exc
			yield repos
			if not has_next:
				return

	def list_all(self, owner: str) -> list[Repository]:
		"""Return every repository of ``owner``."""
		repos = [r for page in self.iter_pages(owner) for r in page]
		self.logger.info("found %d repositories in %s", len(repos), owner)
		return repos

	def lookup(self, owner: str, name: str) -> Repository:
		"""Return the named repository or raise InventoryError."""
		self.logger.debug("looking up %s/%s", owner, name)
		try:
			return query_repository(self.api, owner, name,
			                        url=self.graphql_url)
		except GitHubAPIError as exc:
			raise InventoryError(
			    f"looking up {owner}/{name} failed: {exc}") from exc

	def resolve(self, owner: str,
	            names: Sequence[str] | None = None) -> list[Repository]:
		"""Named repositories in order, or the whole organization."""
		if names:
			self.logger.info("processing repos: %s", ", ".join(names))
			return [self.lookup(owner, name) for name in names]
		return self.list_all(owner)


__all__ = ["RepositoryInventory", "InventoryError", "PAGE_SIZE"]
