"""Jira REST executor for sending requests to the Jira Cloud API."""

import logging
from typing import Any

import requests

from src.models.jira_config import JiraConfig, get_jira_config
from src.tools.jira_errors import JiraApiError, JiraTimeoutError, JiraTransportError

logger: logging.Logger = logging.getLogger(__name__)


def build_request_headers(config: JiraConfig, has_body: bool) -> dict[str, str]:
    """Build the headers sent with every Jira request."""
    headers: dict[str, str] = {
        "Accept": "application/json",
        "Authorization": config.auth_header,
    }
    if has_body:
        headers["Content-Type"] = "application/json"
    return headers


def jira_request(
    path: str,
    method: str = "GET",
    params: dict[str, Any] | None = None,
    body: Any = None,
    config: JiraConfig | None = None,
) -> Any:
    """Send one request to Jira and decode the response.

    The configured timeout bounds connecting and each wait between reads; it
    is not a deadline for the whole response.

    Args:
        path: API path starting with `/`, e.g. `/rest/api/3/issue/PROJ-1`.
        method: HTTP method.
        params: Query string parameters.
        body: JSON-serialisable request body.
        config: Connection settings. Defaults to the process configuration.

    Returns:
        Decoded JSON, response text for non-JSON responses, or None when Jira
        returned no content.

    Raises:
        JiraApiError: If Jira answers with a non-2xx status.
        JiraTimeoutError: If connecting or a single read exceeds the timeout.
        JiraTransportError: If no response could be obtained.
    """
    if config is None:
        config = get_jira_config()

    url = f"{config.base_url}{path}"
    timeout_seconds = config.request_timeout_ms / 1000
    logger.debug("Running Jira request: %s %s", method, path)

    try:
        response: requests.Response = requests.request(
            method,
            url,
            params=params,
            json=body,
            headers=build_request_headers(config, body is not None),
            timeout=(timeout_seconds, timeout_seconds),
        )
    except requests.Timeout as e:
        raise JiraTimeoutError(config.request_timeout_ms) from e
    except requests.RequestException as e:
        raise JiraTransportError(f"{method} {path} failed: {e}") from e

    logger.debug("Jira response: %s %s -> %d", method, path, response.status_code)

    if not response.ok:
        raise JiraApiError(
            method,
            path,
            response.status_code,
            response.reason or "",
            response.text or "",
        )

    if response.status_code == 204 or not response.content:
        return None

    content_type = response.headers.get("Content-Type", "")
    if "application/json" not in content_type:
        return response.text

    try:
        return response.json()
    except ValueError as e:
        raise JiraTransportError(
            f"Failed to parse Jira response as JSON: {response.text[:200]}"
        ) from e
