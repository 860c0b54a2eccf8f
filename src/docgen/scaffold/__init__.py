"""Repository scaffolding for DocGen.

Public API:
    GitHubClient, RepositoryHandle: Repository host client.
    RepositoryScaffolder, ScaffoldReport: Batched, paced commit of agent files.
    TokenBucket, parse_rate_limit_headers: Commit pacing and rate limit parsing.
"""

from docgen.scaffold.github import GitHubClient, RepositoryHandle
from docgen.scaffold.rate_limiter import RateLimitInfo, TokenBucket, parse_rate_limit_headers
from docgen.scaffold.scaffolder import RepositoryHost, RepositoryScaffolder, ScaffoldReport

__all__ = [
    "GitHubClient",
    "RepositoryHandle",
    "RepositoryHost",
    "RepositoryScaffolder",
    "ScaffoldReport",
    "TokenBucket",
    "RateLimitInfo",
    "parse_rate_limit_headers",
]
