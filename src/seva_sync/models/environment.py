"""
Deployment environment models used by the environment report.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Environment(BaseModel):
	"""A repository deployment environment as listed by the REST API."""

	name: str
	can_admins_bypass: bool = True
	protection_rules: list[dict[str, Any]] = Field(default_factory=list)
	deployment_branch_policy: dict[str, Any] | None = None

	@property
	def wait_timer(self) -> int:
		for rule in self.protection_rules:
			if rule.get("type") == "wait_timer":
				return int(rule.get("wait_timer") or 0)
		return 0

	@property
	def reviewers(self) -> list[str]:
		"""Reviewers rendered as ``Type;login-or-slug;id``."""
		out: list[str] = []
		for rule in self.protection_rules:
			if rule.get("type") != "required_reviewers":
				continue
			for entry in rule.get("reviewers") or []:
				reviewer = entry.get("reviewer") or {}
				ident = reviewer.get("login") or reviewer.get("slug") or ""
				out.append(";".join([
				    str(entry.get("type") or ""),
				    str(ident),
				    str(reviewer.get("id") or ""),
				]))
		return out

	@property
	def protected_branches(self) -> bool:
		policy = self.deployment_branch_policy or {}
		return bool(policy.get("protected_branches"))

	@property
	def custom_branch_policies(self) -> bool:
		policy = self.deployment_branch_policy or {}
		return bool(policy.get("custom_branch_policies"))


class EnvironmentReportRow(BaseModel):
	"""One line of the environment report."""

	repository_name: str
	repository_id: int
	environment_name: str
	admin_bypass: bool
	wait_timer: int = 0
	reviewers: list[str] = Field(default_factory=list)
	protected_branches: bool = False
	custom_branch_policies: bool = False
	secrets: list[str] = Field(default_factory=list)
	variables: list[str] = Field(default_factory=list)


__all__ = ["Environment", "EnvironmentReportRow"]
