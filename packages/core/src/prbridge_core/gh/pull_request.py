"""GitHub access for prbridge, built on PyGithub.

Everything the card state machine needs from GitHub goes through
ReviewPlatform. PyGithub exceptions never leave this module: they are
translated into the PlatformError family from prbridge_core.errors.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from github import (
    Auth,
    BadCredentialsException,
    Github,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)

from prbridge_core.errors import AuthError, Conflict, NotFound, PlatformError, RateLimited

logger = logging.getLogger(__name__)

_WRITE_PERMISSIONS = {"admin", "maintain", "write"}


def get_client(token: str) -> Github:
    return Github(auth=Auth.Token(token))


def get_repo(client: Github, owner: str, repo: str):
    # Lazy: the pull request request that follows validates the repo anyway.
    return client.get_repo(f"{owner}/{repo}", lazy=True)


def get_pull(repo, pr_number: int):
    return repo.get_pull(int(pr_number))


def _error_message(exc: GithubException) -> str:
    data = exc.data if isinstance(exc.data, dict) else {}
    return data.get("message") or str(exc)


@contextmanager
def _translate_errors(action: str):
    """Re-raise PyGithub errors as prbridge PlatformErrors."""
    try:
        yield
    except RateLimitExceededException as exc:
        raise RateLimited(f"{action}: {_error_message(exc)}", status=exc.status) from exc
    except UnknownObjectException as exc:
        raise NotFound(f"{action}: {_error_message(exc)}", status=exc.status) from exc
    except BadCredentialsException as exc:
        raise AuthError(f"{action}: {_error_message(exc)}", status=exc.status) from exc
    except GithubException as exc:
        message = f"{action}: {_error_message(exc)}"
        if exc.status == 404:
            raise NotFound(message, status=exc.status) from exc
        if exc.status in (401, 403):
            raise AuthError(message, status=exc.status) from exc
        if exc.status in (409, 422):
            raise Conflict(message, status=exc.status) from exc
        raise PlatformError(message, status=exc.status) from exc


class ReviewPlatform:
    """The GitHub operations the Slack bridge relies on.

    ``token`` is the service (bot) token used for read-only calls. Writes are
    made with the acting user's credential, passed per call.
    """

    def __init__(self, token: str, client: Github | None = None):
        self._client = client if client is not None else get_client(token)

    def _client_for(self, credential: str | None) -> Github:
        return get_client(credential) if credential else self._client

    def fetch_review_request(self, owner: str, repo: str, number: int) -> dict:
        """Return the raw pull request JSON as GitHub sent it."""
        with _translate_errors(f"fetching {owner}/{repo}#{number}"):
            pr = get_pull(get_repo(self._client, owner, repo), number)
            return dict(pr.raw_data)

    def submit_approval(self, owner: str, repo: str, number: int, credential: str | None) -> None:
        with _translate_errors(f"approving {owner}/{repo}#{number}"):
            pr = get_pull(get_repo(self._client_for(credential), owner, repo), number)
            pr.create_review(event="APPROVE")
        logger.info("Submitted APPROVE review on %s/%s#%s", owner, repo, number)

    def submit_changes_requested(
        self,
        owner: str,
        repo: str,
        number: int,
        comment: str | None,
        credential: str | None,
    ) -> None:
        with _translate_errors(f"requesting changes on {owner}/{repo}#{number}"):
            pr = get_pull(get_repo(self._client_for(credential), owner, repo), number)
            if comment:
                pr.create_review(body=comment, event="REQUEST_CHANGES")
            else:
                pr.create_review(event="REQUEST_CHANGES")
        logger.info("Submitted REQUEST_CHANGES review on %s/%s#%s", owner, repo, number)

    def check_write_access(self, owner: str, repo: str, username: str) -> bool:
        """True when ``username`` may push to the repository.

        Never raises: a failed lookup is logged and treated as no access.
        """
        try:
            permission = get_repo(self._client, owner, repo).get_collaborator_permission(username)
        except GithubException as e:
            logger.warning("Could not check %s's permission on %s/%s: %s", username, owner, repo, e)
            return False
        return permission in _WRITE_PERMISSIONS

    def authenticated_login(self, credential: str | None) -> str:
        """GitHub login the credential authenticates as."""
        with _translate_errors("resolving GitHub user"):
            return self._client_for(credential).get_user().login
