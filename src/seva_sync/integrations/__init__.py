"""External service integrations.

Key modules:
    - github: GitHub REST and GraphQL calls on a ghapi client
"""

from seva_sync.integrations.github import (
    DEFAULT_UA,
    GitHubAPIError,
    get_github_client,
    graphql_url,
)

__all__ = [
    "DEFAULT_UA",
    "GitHubAPIError",
    "get_github_client",
    "graphql_url",
]
