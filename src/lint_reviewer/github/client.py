"""
GitHub API Client

Handles GitHub API authentication, rate limiting, and communication.
Provides the compare, contents and pull request review endpoints.
"""

import base64
import time
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """GitHub API related errors"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class NotFoundError(GitHubAPIError):
    """Requested resource does not exist"""


class RateLimitExceeded(GitHubAPIError):
    """GitHub API rate limit exceeded"""
    def __init__(self, reset_time: datetime):
        super().__init__(f"Rate limit exceeded. Resets at {reset_time}", status_code=429)
        self.reset_time = reset_time


class GitHubClient:
    """
    GitHub API client with authentication, rate limiting, and error handling.

    Provides methods for:
    - Revision comparison and file content retrieval
    - Listing pull request reviews and their comments
    - Creating and dismissing reviews
    """

    def __init__(self, token: str, base_url: str = "https://api.github.com", timeout: int = 30):
        """
        Initialize GitHub client.

        Args:
            token: GitHub access token
            base_url: GitHub API base URL (default: https://api.github.com)
            timeout: Per-request timeout in seconds
        """
        if not token:
            raise ValueError("GitHub token is required")

        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = self._create_session()
        self.rate_limit_remaining = 5000
        self.rate_limit_reset = datetime.now()

    def _create_session(self) -> requests.Session:
        """Create requests session with retry strategy and authentication."""
        session = requests.Session()

        # Transport-level retry for idempotent requests only
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            'Authorization': f'token {self.token}',
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'Lint-Reviewer/1.0'
        })

        return session

    def _check_rate_limit(self) -> None:
        """Check and handle GitHub API rate limits."""
        if self.rate_limit_remaining <= 10 and datetime.now() < self.rate_limit_reset:
            wait_time = (self.rate_limit_reset - datetime.now()).total_seconds()
            if wait_time > 0:
                logger.warning(f"Rate limit low ({self.rate_limit_remaining}), resets in {wait_time:.1f}s")
                raise RateLimitExceeded(self.rate_limit_reset)

    def _update_rate_limit(self, response: requests.Response) -> None:
        """Update rate limit information from response headers."""
        if 'X-RateLimit-Remaining' in response.headers:
            self.rate_limit_remaining = int(response.headers['X-RateLimit-Remaining'])

        if 'X-RateLimit-Reset' in response.headers:
            reset_timestamp = int(response.headers['X-RateLimit-Reset'])
            self.rate_limit_reset = datetime.fromtimestamp(reset_timestamp)

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make authenticated request to GitHub API with rate limiting.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            NotFoundError: For 404 responses
            GitHubAPIError: For other API errors
            RateLimitExceeded: When rate limit is exceeded
        """
        self._check_rate_limit()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise GitHubAPIError(f"Request failed: {str(e)}")

        self._update_rate_limit(response)

        if response.status_code == 429 or (
            response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0'
        ):
            reset_time = datetime.fromtimestamp(int(response.headers.get('X-RateLimit-Reset', time.time() + 3600)))
            raise RateLimitExceeded(reset_time)

        if not response.ok:
            error_data = response.json() if response.content else {}
            error_class = NotFoundError if response.status_code == 404 else GitHubAPIError
            raise error_class(
                f"GitHub API error: {response.status_code} - {error_data.get('message', 'Unknown error')}",
                status_code=response.status_code,
                response_data=error_data
            )

        return response

    def _paginate(self, endpoint: str, per_page: int = 100) -> List[Dict]:
        """Collect every page of a list endpoint."""
        items: List[Dict] = []
        page = 1

        while True:
            response = self._make_request(
                'GET',
                endpoint,
                params={'page': page, 'per_page': per_page}
            )

            page_items = response.json()
            if not page_items:
                break

            items.extend(page_items)

            if len(page_items) < per_page:
                break

            page += 1

        return items

    def get_pull_request(self, owner: str, repo: str, pr_number: int) -> Dict:
        """
        Get pull request information.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            Pull request data
        """
        logger.info(f"Fetching PR {owner}/{repo}#{pr_number}")

        response = self._make_request('GET', f'/repos/{owner}/{repo}/pulls/{pr_number}')
        return response.json()

    def compare_commits(self, owner: str, repo: str, base: str, head: str) -> List[Dict]:
        """
        Compare two revisions.

        Args:
            owner: Repository owner
            repo: Repository name
            base: Base revision SHA
            head: Head revision SHA

        Returns:
            List of changed file entries ({filename, status, patch, ...})
        """
        logger.info(f"Comparing {owner}/{repo} {base[:7]}...{head[:7]}")

        response = self._make_request('GET', f'/repos/{owner}/{repo}/compare/{base}...{head}')
        files = response.json().get('files', [])

        logger.info(f"Found {len(files)} changed files")
        return files

    def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        """
        Get decoded file content at a revision.

        Args:
            owner: Repository owner
            repo: Repository name
            path: File path relative to the repository root
            ref: Revision SHA

        Returns:
            File content as text

        Raises:
            NotFoundError: When the path does not exist at the revision
        """
        logger.debug(f"Fetching {owner}/{repo}/{path}@{ref[:7]}")

        response = self._make_request(
            'GET',
            f'/repos/{owner}/{repo}/contents/{path}',
            params={'ref': ref}
        )
        file_data = response.json()

        if isinstance(file_data, list):
            raise NotFoundError(f"Path is a directory: {path}", status_code=404)

        if file_data.get('encoding') == 'base64':
            return base64.b64decode(file_data.get('content', '')).decode('utf-8')

        logger.warning(f"Unexpected encoding for {path}: {file_data.get('encoding')}")
        return file_data.get('content') or ''

    def list_reviews(self, owner: str, repo: str, pr_number: int) -> List[Dict]:
        """
        List all reviews of a pull request.

        Returns:
            List of review data ({id, user, state, ...})
        """
        logger.info(f"Fetching reviews for {owner}/{repo}#{pr_number}")
        return self._paginate(f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews')

    def list_review_comments(self, owner: str, repo: str, pr_number: int, review_id: int) -> List[Dict]:
        """
        List the line comments of one review.

        Returns:
            List of comment data ({path, position, body, ...})
        """
        return self._paginate(f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews/{review_id}/comments')

    def create_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        event: str,
        body: str,
        comments: List[Dict[str, Any]],
        commit_id: Optional[str] = None
    ) -> Dict:
        """
        Submit a review with line comments in a single request.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number
            event: APPROVE, REQUEST_CHANGES or COMMENT
            body: Review body (Markdown)
            comments: Line comments ({path, position, body})
            commit_id: Revision the positions refer to

        Returns:
            Created review data
        """
        data: Dict[str, Any] = {
            'event': event,
            'body': body,
            'comments': comments,
        }
        if commit_id:
            data['commit_id'] = commit_id

        response = self._make_request('POST', f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews', json=data)

        logger.info(f"Created review on {owner}/{repo}#{pr_number} with {len(comments)} comments")
        return response.json()

    def dismiss_review(self, owner: str, repo: str, pr_number: int, review_id: int, message: str) -> Dict:
        """Dismiss a review."""
        response = self._make_request(
            'PUT',
            f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews/{review_id}/dismissals',
            json={'message': message}
        )

        logger.info(f"Dismissed review {review_id} on {owner}/{repo}#{pr_number}")
        return response.json()
