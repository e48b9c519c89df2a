#!/usr/bin/env python3
"""GitHub REST API client for workflow runs, releases and commit pull requests.

This module wraps the handful of GitHub endpoints the release notes tooling
needs. Lookups that legitimately find nothing (404, empty lists) return None or
an empty list; every other failure is raised as a typed GithubApiError so the
caller can tell "nothing there" apart from "could not ask".
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterator, List, Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)


class GithubAuthError(Exception):
    """Raised when GitHub API authentication fails or no token is configured."""
    pass


class GithubApiError(Exception):
    """Raised when GitHub API operations fail with a typed code for friendly handling."""
    def __init__(self, message: str, code: str = "UNKNOWN", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


def _code_for_status(status: int) -> str:
    if status in (401, 403):
        return "UNAUTHORIZED"
    if status == 404:
        return "NOT_FOUND"
    if status == 422:
        return "CONFLICT"
    if status == 429:
        return "RATE_LIMIT"
    if status >= 500:
        return "NETWORK"
    return "UNKNOWN"


class GithubClient:
    """Thin client for the GitHub REST API scoped to a single repository."""

    def __init__(
        self,
        token: Optional[str] = None,
        repository: Optional[str] = None,
        timeout_s: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize GitHub client.

        Args:
            token: GitHub token (defaults to Config.GITHUB_TOKEN)
            repository: Repository in 'owner/repo' format (defaults to Config.GITHUB_REPOSITORY)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            session: Optional pre-built session, mainly for tests

        Raises:
            GithubAuthError: If no valid token is provided
            ValueError: If the repository is not in 'owner/repo' format
        """
        github_config = Config.get_github_config()
        self.token = token or github_config["token"]
        self.repository = repository or github_config["repository"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = github_config["api_url"]
        self.uploads_url = github_config["uploads_url"]

        if not self.token:
            raise GithubAuthError("GitHub token is required (GITHUB_TOKEN or GH_TOKEN env var)")
        if not self.repository or self.repository.count("/") != 1:
            raise ValueError(f"Repository must be in 'owner/repo' format, got: {self.repository!r}")
        self.owner, self.repo = self.repository.split("/")

        if session is None:
            session = requests.Session()
            # Configure retries for transient failures on idempotent calls
            retry_strategy = Retry(
                total=3,
                status_forcelist=[429, 500, 502, 503, 504],
                backoff_factor=1,
                allowed_methods=["HEAD", "GET", "OPTIONS"]
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("https://", adapter)
        self.session = session
        self.session.headers.update({
            'Authorization': f'token {self.token}',
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'build-release-notes/1.0'
        })

        logger.info(f"GitHub client initialized for {self.repository}")

    @property
    def repo_url(self) -> str:
        return f"{self.base_url}/repos/{self.owner}/{self.repo}"

    # -------- HTTP helpers --------
    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout_s)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.Timeout as e:
            raise GithubApiError(f"Timeout calling {method} {url}: {e}", code="TIMEOUT")
        except requests.RequestException as e:
            raise GithubApiError(f"Failed to call {method} {url}: {e}", code="NETWORK")

        if response.status_code >= 400:
            code = _code_for_status(response.status_code)
            message = f"GitHub API error: {method} {url} returned HTTP {response.status_code}"
            if code == "UNAUTHORIZED":
                message = "Invalid GitHub token or insufficient permissions"
            raise GithubApiError(message, code=code, status=response.status_code)
        return response

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a repository-relative path; 404 maps to None."""
        try:
            return self._request("GET", f"{self.repo_url}{path}", params=params).json()
        except GithubApiError as e:
            if e.code == "NOT_FOUND":
                logger.debug(f"GET {path} returned 404")
                return None
            raise

    # -------- Workflow runs --------
    def get_last_successful_run_sha(self, workflow: str, branch: str) -> Optional[str]:
        """Return the head SHA of the most recent successful run of a workflow on a branch.

        Args:
            workflow: Workflow file name or id (e.g. 'build.yml')
            branch: Branch the run was triggered on

        Returns:
            Head SHA, or None when the workflow has no successful run
        """
        logger.info(f"Fetching last successful '{workflow}' run on {branch}")
        data = self._get_json(
            f"/actions/workflows/{workflow}/runs",
            params={"branch": branch, "status": "success", "per_page": 1},
        )
        runs = (data or {}).get("workflow_runs") or []
        if not runs:
            return None
        return runs[0].get("head_sha") or None

    # -------- Releases --------
    def list_releases(self, limit: int = 30, page: int = 1) -> List[Dict[str, Any]]:
        """List one page of releases, newest first, as returned by the API."""
        data = self._get_json("/releases", params={"per_page": max(1, min(limit, 100)), "page": page})
        return list(data or [])[:limit]

    def iter_releases(self, per_page: int = 100, max_pages: int = 10) -> Iterator[Dict[str, Any]]:
        """Yield releases newest first, following pages until a short page."""
        for page in range(1, max_pages + 1):
            batch = self.list_releases(limit=per_page, page=page)
            yield from batch
            if len(batch) < per_page:
                return

    def list_release_tags(self, limit: int, include_prereleases: bool = True) -> List[str]:
        """Return up to `limit` tag names of non-draft releases, newest first."""
        tags = []
        for release in self.iter_releases():
            if release.get("draft"):
                continue
            if not include_prereleases and release.get("prerelease"):
                continue
            tag = release.get("tag_name")
            if tag:
                tags.append(tag)
            if len(tags) >= limit:
                break
        return tags

    def find_release(self, tag: str) -> Optional[Dict[str, Any]]:
        """Return the release for a tag, drafts included, or None."""
        release = self.get_release_by_tag(tag)
        if release is not None:
            return release
        # /releases/tags/{tag} 404s for drafts
        for release in self.iter_releases():
            if release.get("tag_name") == tag:
                return release
        return None

    def get_latest_release(self) -> Optional[Dict[str, Any]]:
        """Return the repository's latest release (non-draft, non-prerelease) or None."""
        return self._get_json("/releases/latest")

    def get_release_by_tag(self, tag: str) -> Optional[Dict[str, Any]]:
        return self._get_json(f"/releases/tags/{tag}")

    def create_release(self, tag: str, *, target: str, prerelease: bool, name: Optional[str] = None) -> Dict[str, Any]:
        """Create a release; raises GithubApiError(code='CONFLICT') if the tag already has one."""
        payload = {
            "tag_name": tag,
            "name": name or tag,
            "target_commitish": target,
            "prerelease": bool(prerelease),
        }
        logger.info(f"Creating release {tag} targeting {target} (prerelease={prerelease})")
        return self._request("POST", f"{self.repo_url}/releases", json=payload).json()

    def update_release(self, release_id: int, *, body: str) -> Dict[str, Any]:
        logger.info(f"Updating body of release id={release_id} ({len(body)} chars)")
        return self._request("PATCH", f"{self.repo_url}/releases/{release_id}", json={"body": body}).json()

    def upload_release_asset(self, release: Dict[str, Any], path: str, name: Optional[str] = None) -> Dict[str, Any]:
        """Upload a file to a release, replacing an existing asset of the same name.

        Args:
            release: Release JSON as returned by the API
            path: Local file to upload
            name: Asset name (defaults to the file's base name)

        Returns:
            Asset JSON
        """
        asset_name = name or os.path.basename(path)
        for asset in release.get("assets") or []:
            if asset.get("name") == asset_name:
                logger.info(f"Replacing existing asset {asset_name} (id={asset.get('id')})")
                self._request("DELETE", f"{self.repo_url}/releases/assets/{asset['id']}")

        url = f"{self.uploads_url}/repos/{self.owner}/{self.repo}/releases/{release['id']}/assets"
        logger.info(f"Uploading {asset_name} to release {release.get('tag_name', release['id'])}")
        with open(path, "rb") as f:
            response = self._request(
                "POST",
                url,
                params={"name": asset_name},
                headers={"Content-Type": "application/octet-stream"},
                data=f,
            )
        return response.json()

    def download_release_asset(self, release: Dict[str, Any], name: str, dest: str) -> Optional[Path]:
        """Download a named asset from a release.

        Returns:
            Path of the downloaded file, or None when the release has no such asset
        """
        match = None
        for asset in release.get("assets") or []:
            if asset.get("name") == name:
                match = asset
                break
        if match is None:
            logger.info(f"Release {release.get('tag_name')} has no asset named {name}")
            return None

        response = self._request(
            "GET",
            f"{self.repo_url}/releases/assets/{match['id']}",
            headers={"Accept": "application/octet-stream"},
        )
        target = Path(dest)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(response.content)
        logger.debug(f"✓ Downloaded {name} to {target}")
        return target

    # -------- Commits --------
    def get_pull_request_branch(self, sha: str) -> Optional[str]:
        """Return the head branch of the first pull request associated with a commit."""
        pulls = self._get_json(f"/commits/{sha}/pulls") or []
        if not pulls:
            return None
        head = pulls[0].get("head") or {}
        return head.get("ref") or None

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub client session closed")
