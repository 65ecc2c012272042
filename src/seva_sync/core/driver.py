"""
Reconciliation driver.

Walks the level x provider matrix for export and create, and copies
organization variables between organizations. Inventory and file
failures propagate; every other failure is recorded against the single
secret, variable or repository it concerns and the batch continues.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import partial
from typing import Any

from seva_sync.core.cipher import EncryptionError, PublicKeyCipher
from seva_sync.core.csv_schema import (
    CsvSchemaError,
    ParsedRows,
    ReportWriter,
    secret_row,
    variable_row,
)
from seva_sync.core.inventory import RepositoryInventory
from seva_sync.core.visibility import (
    PayloadError,
    VisibilityResolver,
    map_names_to_ids,
    org_variable_payload,
    payload_builder,
    repo_variable_payload,
)
from seva_sync.integrations.github import (
    GitHubAPIError,
    create_variable,
    list_secret_repositories,
    list_secrets,
    list_variable_repositories,
    list_variables,
    put_secret,
    update_variable,
)
from seva_sync.models.repository import Repository
from seva_sync.models.secret import (
    SELECTED,
    AppFilter,
    ImportedSecret,
    Level,
    Provider,
)
from seva_sync.models.summary import OperationResult, ReconcileSummary
from seva_sync.models.variable import ImportedVariable
from seva_sync.utils.logging import get_logger

VARIABLES = "Variables"
UNKNOWN = "-"
ROW_ERRORS = (GitHubAPIError, EncryptionError, PayloadError, CsvSchemaError)


class ReconciliationDriver:
	"""Sequential export/create engine bound to one GitHub client."""

	def __init__(
	    self,
	    api: Any,
	    logger: logging.Logger | None = None,
	    inventory: RepositoryInventory | None = None,
	    cipher: PublicKeyCipher | None = None,
	    graphql_url: str | None = None,
	    secrets_page_size: int = 100,
	    variables_page_size: int = 30,
	):
		self.api = api
		self.logger = logger or get_logger(__name__)
		self.inventory = inventory or RepositoryInventory(
		    api, graphql_url=graphql_url, logger=self.logger)
		self.cipher = cipher or PublicKeyCipher(api, logger=self.logger)
		self.secrets_page_size = secrets_page_size
		self.variables_page_size = variables_page_size

	# --- secrets export ------------------------------------------------

	def export_secrets(self, owner: str, repos: Sequence[str],
	                   app: AppFilter, writer: ReportWriter) -> ReconcileSummary:
		"""
		Write every secret visible to the selected providers.

		Organization-level secrets are exported only when no repositories
		were named.

		Parameters:
			owner: Organization login.
			repos: Repository names; empty means the whole organization.
			app: Provider filter.
			writer: Report writer with the secrets header already written.

		Returns:
			Summary with one result per exported secret and per failed
			listing.

		Raises:
			InventoryError: If the repositories cannot be resolved.
		"""
		summary = ReconcileSummary(owner=owner)
		inventory = self.inventory.resolve(owner, repos)
		resolver = VisibilityResolver(inventory, logger=self.logger)
		providers = [p for p in Provider if app.includes(p)]
		if not repos:
			for provider in providers:
				self._export_org_secrets(owner, provider, resolver, writer,
				                         summary)
		for repo in inventory:
			for provider in providers:
				self._export_repo_secrets(owner, repo, provider, resolver,
				                          writer, summary)
		return summary

	def _export_org_secrets(self, owner: str, provider: Provider,
	                        resolver: VisibilityResolver, writer: ReportWriter,
	                        summary: ReconcileSummary) -> None:
		level = Level.ORGANIZATION
		self.logger.debug("gathering %s secrets for %s", provider.value, owner)
		try:
			secrets = list_secrets(self.api, owner, provider,
			                       per_page=self.secrets_page_size)
		except GitHubAPIError as exc:
			self.logger.error("listing %s secrets for %s failed: %s",
			                  provider.value, owner, exc)
			summary.failure("export", level.value, provider.value, "*", owner,
			                exc)
			return
		for secret in secrets:
			scoped = partial(list_secret_repositories, self.api, owner,
			                 provider, secret.name,
			                 per_page=self.secrets_page_size)
			try:
				scope = resolver.resolve_for_export(secret.name,
				                                    secret.visibility,
				                                    scoped=scoped)
			except GitHubAPIError as exc:
				self.logger.error(
				    "listing repositories of %s secret %s failed: %s",
				    provider.value, secret.name, exc)
				summary.failure("export", level.value, provider.value,
				                secret.name, owner, exc)
				continue
			writer.write(
			    secret_row(level, provider, secret.name, scope.access,
			               scope.names, scope.ids))
			summary.success("export", level.value, provider.value,
			                secret.name, owner)

	def _export_repo_secrets(self, owner: str, repo: Repository,
	                         provider: Provider, resolver: VisibilityResolver,
	                         writer: ReportWriter,
	                         summary: ReconcileSummary) -> None:
		level = Level.REPOSITORY
		target = f"{owner}/{repo.name}"
		self.logger.debug("gathering %s secrets for repo %s", provider.value,
		                  repo.name)
		try:
			secrets = list_secrets(self.api, owner, provider, repo=repo.name,
			                       per_page=self.secrets_page_size)
		except GitHubAPIError as exc:
			self.logger.error("listing %s secrets for %s failed: %s",
			                  provider.value, target, exc)
			summary.failure("export", level.value, provider.value, "*",
			                target, exc)
			return
		scope = resolver.resolve_repository(repo)
		for secret in secrets:
			writer.write(
			    secret_row(level, provider, secret.name, scope.access,
			               scope.names, scope.ids))
			summary.success("export", level.value, provider.value,
			                secret.name, target)

	# --- secrets create ------------------------------------------------

	def create_secrets(
	        self, owner: str,
	        parsed: ParsedRows[ImportedSecret]) -> ReconcileSummary:
		"""Create every parsed secret; rows that failed to parse are reported."""
		summary = ReconcileSummary(owner=owner)
		self._record_parse_errors(owner, parsed, summary)
		self.logger.debug("determining secrets to create")
		for _, row in parsed.records:
			self.create_secret(owner, row, summary)
		return summary

	def create_secret(self, owner: str, row: ImportedSecret,
	                  summary: ReconcileSummary) -> OperationResult:
		"""Seal, build and submit one secret."""
		provider = Provider(row.type)
		level = Level(row.level)
		repo = row.target_repository if level is Level.REPOSITORY else None
		target = f"{owner}/{repo}" if repo else owner
		try:
			self.logger.debug("encrypting %s level %s secret %s", level.value,
			                  provider.value, row.name)
			key_id, encrypted = self.cipher.seal(owner, provider, row.value,
			                                     repo=repo)
			builder = payload_builder(provider)
			if level is Level.ORGANIZATION:
				payload = builder.org_secret(row, key_id, encrypted)
			else:
				payload = builder.repo_secret(key_id, encrypted)
			put_secret(self.api, owner, provider, row.name, payload, repo=repo)
		except ROW_ERRORS as exc:
			self.logger.error("creating %s %s secret %s on %s failed: %s",
			                  level.value, provider.value, row.name, target, exc)
			return summary.failure("create", level.value, provider.value,
			                       row.name, target, exc)
		self.logger.info("created %s %s secret %s on %s", level.value,
		                 provider.value, row.name, target)
		return summary.success("create", level.value, provider.value,
		                       row.name, target)

	# --- variables -----------------------------------------------------

	def export_variables(self, owner: str, repos: Sequence[str],
	                     writer: ReportWriter) -> ReconcileSummary:
		"""Write organization (when no repos are named) and repository variables."""
		summary = ReconcileSummary(owner=owner)
		inventory = self.inventory.resolve(owner, repos)
		resolver = VisibilityResolver(inventory, logger=self.logger)
		if not repos:
			self._export_org_variables(owner, resolver, writer, summary)
		for repo in inventory:
			self._export_repo_variables(owner, repo, resolver, writer, summary)
		return summary

	def _export_org_variables(self, owner: str, resolver: VisibilityResolver,
	                          writer: ReportWriter,
	                          summary: ReconcileSummary) -> None:
		level = Level.ORGANIZATION
		self.logger.debug("gathering organization variables for %s", owner)
		try:
			variables = list_variables(self.api, owner,
			                           per_page=self.variables_page_size)
		except GitHubAPIError as exc:
			self.logger.error("listing variables for %s failed: %s", owner, exc)
			summary.failure("export", level.value, VARIABLES, "*", owner, exc)
			return
		for variable in variables:
			scoped = partial(list_variable_repositories, self.api, owner,
			                 variable.name, per_page=self.secrets_page_size)
			try:
				scope = resolver.resolve_for_export(variable.name,
				                                    variable.visibility,
				                                    scoped=scoped)
			except GitHubAPIError as exc:
				self.logger.error(
				    "listing repositories of variable %s failed: %s",
				    variable.name, exc)
				summary.failure("export", level.value, VARIABLES,
				                variable.name, owner, exc)
				continue
			writer.write(
			    variable_row(level, variable.name, variable.value,
			                 scope.access, scope.names, scope.ids))
			summary.success("export", level.value, VARIABLES, variable.name,
			                owner)

	def _export_repo_variables(self, owner: str, repo: Repository,
	                           resolver: VisibilityResolver,
	                           writer: ReportWriter,
	                           summary: ReconcileSummary) -> None:
		level = Level.REPOSITORY
		target = f"{owner}/{repo.name}"
		try:
			variables = list_variables(self.api, owner, repo=repo.name,
			                           per_page=self.variables_page_size)
		except GitHubAPIError as exc:
			self.logger.error("listing variables for %s failed: %s", target,
			                  exc)
			summary.failure("export", level.value, VARIABLES, "*", target, exc)
			return
		scope = resolver.resolve_repository(repo)
		for variable in variables:
			writer.write(
			    variable_row(level, variable.name, variable.value,
			                 scope.access, scope.names, scope.ids))
			summary.success("export", level.value, VARIABLES, variable.name,
			                target)

	def create_variables(
	        self, owner: str,
	        parsed: ParsedRows[ImportedVariable]) -> ReconcileSummary:
		summary = ReconcileSummary(owner=owner)
		self._record_parse_errors(owner, parsed, summary)
		for _, row in parsed.records:
			self.create_variable(owner, row, summary)
		return summary

	def create_variable(self, owner: str, row: ImportedVariable,
	                    summary: ReconcileSummary) -> OperationResult:
		level = Level(row.level)
		repo = row.target_repository if level is Level.REPOSITORY else None
		target = f"{owner}/{repo}" if repo else owner
		try:
			if level is Level.ORGANIZATION:
				payload = org_variable_payload(row)
			else:
				payload = repo_variable_payload(row)
			action = self._submit_variable(owner, row.name, payload, repo=repo)
		except ROW_ERRORS as exc:
			self.logger.error("creating variable %s on %s failed: %s",
			                  row.name, target, exc)
			return summary.failure("create", level.value, VARIABLES, row.name,
			                       target, exc)
		return summary.success(action, level.value, VARIABLES, row.name,
		                       target)

	def _submit_variable(self, owner: str, name: str, payload: dict[str, Any],
	                     repo: str | None = None) -> str:
		"""POST a variable, falling back to PATCH when it already exists."""
		target = f"{owner}/{repo}" if repo else owner
		try:
			create_variable(self.api, owner, payload, repo=repo)
		except GitHubAPIError as exc:
			if exc.status != 409:
				raise
			self.logger.info("variable %s already exists on %s, updating",
			                 name, target)
			update_variable(self.api, owner, name, payload, repo=repo)
			return "update"
		self.logger.info("created variable %s on %s", name, target)
		return "create"

	def migrate_variables(self, source_api: Any, source_org: str,
	                      owner: str) -> ReconcileSummary:
		"""
		Copy organization variables from ``source_org`` to ``owner``.

		Selected repositories are matched by name against the destination
		organization, since repository IDs differ between organizations.

		Raises:
			GitHubAPIError: If the source variables cannot be listed.
			InventoryError: If the destination repositories cannot be listed.
		"""
		summary = ReconcileSummary(owner=owner)
		level = Level.ORGANIZATION
		self.logger.debug("reading variables from %s", source_org)
		variables = list_variables(source_api, source_org,
		                           per_page=self.variables_page_size)
		source_resolver = VisibilityResolver(logger=self.logger)
		destination: list[Repository] | None = None
		for variable in variables:
			payload: dict[str, Any] = {
			    "name": variable.name,
			    "value": variable.value,
			    "visibility": variable.visibility,
			}
			try:
				if variable.visibility == SELECTED:
					scope = source_resolver.resolve_for_export(
					    variable.name, SELECTED,
					    scoped=partial(list_variable_repositories, source_api,
					                   source_org, variable.name,
					                   per_page=self.secrets_page_size))
					if not scope.names:
						self.logger.warning(
						    "variable %s in %s is selected but scoped to no "
						    "repositories", variable.name, source_org)
					if destination is None:
						destination = self.inventory.list_all(owner)
					payload["selected_repository_ids"] = map_names_to_ids(
					    scope.names, destination)
				action = self._submit_variable(owner, variable.name, payload)
			except (GitHubAPIError, PayloadError) as exc:
				self.logger.error("migrating variable %s failed: %s",
				                  variable.name, exc)
				summary.failure("migrate", level.value, VARIABLES,
				                variable.name, owner, exc)
				continue
			summary.success(action, level.value, VARIABLES, variable.name,
			                owner)
		return summary

	# --- helpers -------------------------------------------------------

	def _record_parse_errors(self, owner: str, parsed: ParsedRows,
	                         summary: ReconcileSummary) -> None:
		for err in parsed.errors:
			self.logger.error("skipping row: %s", err)
			summary.failure("create", UNKNOWN, UNKNOWN, err.name or
			                f"line {err.line}", owner, err)


__all__ = ["ReconciliationDriver", "VARIABLES"]
