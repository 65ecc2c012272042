"""
Deployment environment report.

One CSV row per repository environment with its protection rules and the
names of the secrets and variables defined on it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from seva_sync.core.csv_schema import ReportWriter, environment_row
from seva_sync.core.inventory import RepositoryInventory
from seva_sync.integrations.github import (
    GitHubAPIError,
    list_environment_names,
    list_environments,
)
from seva_sync.models.environment import Environment, EnvironmentReportRow
from seva_sync.models.repository import Repository
from seva_sync.models.secret import Level
from seva_sync.models.summary import ReconcileSummary
from seva_sync.utils.logging import get_logger

ENVIRONMENTS = "Environments"


def build_report_row(repo: Repository, env: Environment, secrets: list[str],
                     variables: list[str]) -> EnvironmentReportRow:
	return EnvironmentReportRow(
	    repository_name=repo.name,
	    repository_id=repo.database_id,
	    environment_name=env.name,
	    admin_bypass=env.can_admins_bypass,
	    wait_timer=env.wait_timer,
	    reviewers=env.reviewers,
	    protected_branches=env.protected_branches,
	    custom_branch_policies=env.custom_branch_policies,
	    secrets=secrets,
	    variables=variables,
	)


def export_environments(
    api: Any,
    owner: str,
    repos: Sequence[str],
    writer: ReportWriter,
    inventory: RepositoryInventory | None = None,
    logger: logging.Logger | None = None,
) -> ReconcileSummary:
	"""
	Write the environment report for the named repositories or the
	whole organization.

	A repository whose environments cannot be listed, or an environment
	whose secrets or variables cannot be listed, is recorded as a failure
	and skipped.

	Raises:
		InventoryError: If the repositories cannot be resolved.
	"""
	logger = logger or get_logger(__name__)
	inventory = inventory or RepositoryInventory(api, logger=logger)
	summary = ReconcileSummary(owner=owner)
	level = Level.REPOSITORY.value
	for repo in inventory.resolve(owner, repos):
		target = f"{owner}/{repo.name}"
		logger.debug("gathering environments for repo %s", repo.name)
		try:
			environments = list_environments(api, owner, repo.name)
		except GitHubAPIError as exc:
			logger.error("listing environments for %s failed: %s", target, exc)
			summary.failure("export", level, ENVIRONMENTS, "*", target, exc)
			continue
		logger.debug("writing %d environment(s) for repository %s",
		             len(environments), repo.name)
		for env in environments:
			try:
				secrets = list_environment_names(api, owner, repo.name,
				                                 env.name, "secrets")
				variables = list_environment_names(api, owner, repo.name,
				                                   env.name, "variables")
			except GitHubAPIError as exc:
				logger.error("reading environment %s of %s failed: %s",
				             env.name, target, exc)
				summary.failure("export", level, ENVIRONMENTS, env.name,
				                target, exc)
				continue
			writer.write(
			    environment_row(build_report_row(repo, env, secrets,
			                                     variables)))
			summary.success("export", level, ENVIRONMENTS, env.name, target)
	return summary


__all__ = ["export_environments", "build_report_row", "ENVIRONMENTS"]
