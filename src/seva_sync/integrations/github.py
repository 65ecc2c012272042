"""
GitHub API utilities.

Thin, sequential wrappers over a ghapi client for the secrets, variables,
environments and public-key REST endpoints and the repository GraphQL
queries. Every transport failure is re-raised as GitHubAPIError.
"""

from __future__ import annotations

import inspect
from typing import Any
from urllib.parse import quote

from fastcore.xtras import obj2dict
from ghapi.core import GhApi

from seva_sync.models.config import DEFAULT_HOST
from seva_sync.models.repository import Repository, ScopedRepository
from seva_sync.models.secret import Provider, PublicKey, Secret
from seva_sync.models.variable import Variable
from seva_sync.models.environment import Environment

DEFAULT_UA = "seva-sync"
GRAPHQL_ACCEPT = "application/vnd.github.hawkgirl-preview+json"

REPOS_QUERY = """
query getRepos($owner: String!, $endCursor: String) {
  organization(login: $owner) {
    repositories(first: 100, after: $endCursor) {
      totalCount
      nodes { databaseId name visibility updatedAt }
      pageInfo { endCursor hasNextPage }
    }
  }
}
"""

REPO_QUERY = """
query getRepo($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    databaseId name visibility updatedAt
  }
}
"""


class GitHubAPIError(RuntimeError):
	"""A GitHub REST or GraphQL call failed."""

	def __init__(self, message: str, status: int | None = None):
		super().__init__(message)
		self.status = status


def api_base_url(hostname: str = DEFAULT_HOST) -> str:
	"""REST base URL for github.com or a GitHub Enterprise Server host."""
	if hostname == DEFAULT_HOST:
		return "https://api.github.com"
	return f"https://{hostname}/api/v3"


def graphql_url(hostname: str = DEFAULT_HOST) -> str:
	if hostname == DEFAULT_HOST:
		return "https://api.github.com/graphql"
	return f"https://{hostname}/api/graphql"


def get_github_client(token: str | None, hostname: str = DEFAULT_HOST,
                      user_agent: str = DEFAULT_UA) -> GhApi:
	"""Construct a GhApi client with token, host and user_agent."""
	return GhApi(token=token, gh_host=api_base_url(hostname),
	             user_agent=user_agent)


def _status_of(exc: Exception) -> int | None:
	"""HTTP status of a urllib, fastcore or httpx-style exception."""
	response = getattr(exc, "response", None)
	for value in (getattr(exc, "status", None), getattr(exc, "code", None),
	              getattr(exc, "status_code", None),
	              getattr(response, "status_code", None)):
		if isinstance(value, int) and not isinstance(value, bool):
			return value
	return None


def _wrap_error(exc: Exception) -> GitHubAPIError:
	status = _status_of(exc)
	msg = str(exc)
	if status:
		return GitHubAPIError(f"GitHub API error {status}: {msg}",
		                      status=status)
	return GitHubAPIError(f"GitHub API error: {msg}")


def _plain(value: Any) -> Any:
	"""Convert ghapi AttrDict / L responses to plain dicts and lists."""
	return obj2dict(value)


def request(api: Any, path: str, verb: str = "GET",
            query: dict[str, Any] | None = None,
            data: dict[str, Any] | None = None,
            headers: dict[str, str] | None = None) -> Any:
	"""Issue one REST call and return the decoded body."""
	try:
		res = api(path, verb, headers=headers, query=query, data=data)
	except Exception as exc:  # noqa: BLE001
		raise _wrap_error(exc) from exc
	if inspect.isawaitable(res):
		# ghapi 2.x clients default to async and return coroutines
		getattr(res, "close", lambda: None)()
		raise GitHubAPIError(f"{verb} {path}: client returned an awaitable; "
		                     "a synchronous ghapi 1.x client is required")
	# 204 No Content comes back as empty bytes
	return _plain(res) if res else {}


def list_paginated(api: Any, path: str, key: str,
                   per_page: int = 100) -> list[dict[str, Any]]:
	"""Collect ``key`` items from every page of a list endpoint.

	Stops on a short page or once ``total_count`` items were read.
	"""
	items: list[dict[str, Any]] = []
	page = 1
	while True:
		res = request(api, path, query={"per_page": per_page, "page": page})
		batch = list(res.get(key) or [])
		items.extend(batch)
		total = res.get("total_count")
		if len(batch) < per_page or (total is not None and
		                             len(items) >= int(total)):
			return items
		page += 1


def _secrets_path(owner: str, provider: Provider,
                  repo: str | None = None) -> str:
	if repo:
		return f"/repos/{owner}/{repo}/{provider.path}/secrets"
	return f"/orgs/{owner}/{provider.path}/secrets"


def _variables_path(owner: str, repo: str | None = None) -> str:
	if repo:
		return f"/repos/{owner}/{repo}/actions/variables"
	return f"/orgs/{owner}/actions/variables"


# --- secrets -----------------------------------------------------------


def list_secrets(api: Any, owner: str, provider: Provider,
                 repo: str | None = None,
                 per_page: int = 100) -> list[Secret]:
	"""List organization (or repository) secrets for one provider."""
	rows = list_paginated(api, _secrets_path(owner, provider, repo),
	                      "secrets", per_page=per_page)
	return [Secret.model_validate(r) for r in rows]


def list_secret_repositories(api: Any, owner: str, provider: Provider,
                             name: str,
                             per_page: int = 100) -> list[ScopedRepository]:
	"""List the repositories a selected-visibility org secret is scoped to."""
	rows = list_paginated(
	    api, f"{_secrets_path(owner, provider)}/{name}/repositories",
	    "repositories", per_page=per_page)
	return [ScopedRepository.model_validate(r) for r in rows]


def get_public_key(api: Any, owner: str, provider: Provider,
                   repo: str | None = None) -> PublicKey:
	"""Fetch the provider public key for an organization or repository."""
	res = request(api, f"{_secrets_path(owner, provider, repo)}/public-key")
	return PublicKey.model_validate(res)


def put_secret(api: Any, owner: str, provider: Provider, name: str,
               payload: dict[str, Any], repo: str | None = None) -> Any:
	"""Create or update one secret."""
	return request(api, f"{_secrets_path(owner, provider, repo)}/{name}",
	               "PUT", data=payload)


# --- variables ---------------------------------------------------------


def list_variables(api: Any, owner: str, repo: str | None = None,
                   per_page: int = 30) -> list[Variable]:
	rows = list_paginated(api, _variables_path(owner, repo), "variables",
	                      per_page=per_page)
	return [Variable.model_validate(r) for r in rows]


def list_variable_repositories(api: Any, owner: str, name: str,
                               per_page: int = 100) -> list[ScopedRepository]:
	rows = list_paginated(api, f"{_variables_path(owner)}/{name}/repositories",
	                      "repositories", per_page=per_page)
	return [ScopedRepository.model_validate(r) for r in rows]


def create_variable(api: Any, owner: str, payload: dict[str, Any],
                    repo: str | None = None) -> Any:
	return request(api, _variables_path(owner, repo), "POST", data=payload)


def update_variable(api: Any, owner: str, name: str, payload: dict[str, Any],
                    repo: str | None = None) -> Any:
	return request(api, f"{_variables_path(owner, repo)}/{name}", "PATCH",
	               data=payload)


# --- environments ------------------------------------------------------


def list_environments(api: Any, owner: str, repo: str,
                      per_page: int = 100) -> list[Environment]:
	rows = list_paginated(api, f"/repos/{owner}/{repo}/environments",
	                      "environments", per_page=per_page)
	return [Environment.model_validate(r) for r in rows]


def list_environment_names(api: Any, owner: str, repo: str, environment: str,
                           kind: str, per_page: int = 30) -> list[str]:
	"""Names of an environment's ``secrets`` or ``variables``."""
	env = quote(environment, safe="")
	rows = list_paginated(api, f"/repos/{owner}/{repo}/environments/{env}/{kind}",
	                      kind, per_page=per_page)
	return [r["name"] for r in rows]


# --- GraphQL -----------------------------------------------------------


def graphql(api: Any, query: str, variables: dict[str, Any],
            url: str | None = None) -> dict[str, Any]:
	"""Run a GraphQL query and return its ``data`` member."""
	res = request(api, url or graphql_url(), "POST",
	              data={"query": query, "variables": variables},
	              headers={"Accept": GRAPHQL_ACCEPT})
	if res.get("errors"):
		messages = "; ".join(
		    str(e.get("message", e)) for e in res["errors"])
		raise GitHubAPIError(f"GraphQL error: {messages}")
	return res.get("data") or {}


def query_repositories_page(
        api: Any, owner: str, cursor: str | None = None,
        url: str | None = None) -> tuple[list[Repository], str | None, bool]:
	"""Fetch one page of organization repositories.

	Returns:
		(repositories, end_cursor, has_next_page)
	"""
	data = graphql(api, REPOS_QUERY, {
	    "owner": owner,
	    "endCursor": cursor
	}, url=url)
	org = data.get("organization")
	if not org:
		raise GitHubAPIError(f"organization {owner} not found")
	conn = org["repositories"]
	repos = [Repository.model_validate(n) for n in conn.get("nodes") or []]
	info = conn.get("pageInfo") or {}
	return repos, info.get("endCursor"), bool(info.get("hasNextPage"))


def query_repository(api: Any, owner: str, name: str,
                     url: str | None = None) -> Repository:
	"""Fetch a single repository by name."""
	data = graphql(api, REPO_QUERY, {"owner": owner, "name": name}, url=url)
	node = data.get("repository")
	if not node:
		raise GitHubAPIError(f"repository {owner}/{name} not found",
		                     status=404)
	return Repository.model_validate(node)


__all__ = [
    "DEFAULT_UA",
    "GitHubAPIError",
    "api_base_url",
    "graphql_url",
    "get_github_client",
    "request",
    "list_paginated",
    "list_secrets",
    "list_secret_repositories",
    "get_public_key",
    "put_secret",
    "list_variables",
    "list_variable_repositories",
    "create_variable",
    "update_variable",
    "list_environments",
    "list_environment_names",
    "graphql",
    "query_repositories_page",
    "query_repository",
]
