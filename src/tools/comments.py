"""Loading and adding Jira issue comments."""

import logging
from typing import Any
from urllib.parse import quote

from src.models.jira_actions import AddCommentResult
from src.models.jira_tickets import (
    CommentAuthor,
    CommentReadMode,
    IssueComment,
    IssueCommentsMeta,
)
from src.tools import jira_executor
from src.tools.adf import adf_to_plain_text, plain_text_to_adf
from src.tools.jira_errors import JiraValidationError
from src.tools.tool_utils import as_dict, as_list, normalize_string

logger: logging.Logger = logging.getLogger(__name__)

LAST_COMMENTS_COUNT: int = 3
ALL_COMMENTS_PAGE_SIZE: int = 100


def resolve_comment_mode(
    skip_comments: bool | None = None,
    load_only_last_3_comments: bool | None = None,
) -> CommentReadMode:
    """Pick the comment read mode from the two caller flags.

    Comments are loaded by default and limited to the last 3 unless the caller
    explicitly turns that off.
    """
    if skip_comments:
        return "skip"
    if load_only_last_3_comments is None or load_only_last_3_comments:
        return "last_3"
    return "all"


def to_issue_comment(comment: dict[str, Any]) -> IssueComment:
    """Project a raw Jira comment to an IssueComment."""
    author = as_dict(comment.get("author"))

    return IssueComment(
        id=normalize_string(comment.get("id")) or "unknown",
        body=adf_to_plain_text(comment.get("body")),
        author=CommentAuthor(
            account_id=normalize_string(author.get("accountId")),
            display_name=normalize_string(author.get("displayName")),
        ),
        created=normalize_string(comment.get("created")),
        updated=normalize_string(comment.get("updated")),
    )


def fetch_issue_comments_page(
    issue_key: str, start_at: int, max_results: int
) -> dict[str, Any]:
    response = jira_executor.jira_request(
        f"/rest/api/3/issue/{quote(issue_key, safe='')}/comment",
        params={"startAt": start_at, "maxResults": max_results},
    )
    return as_dict(response)


def _reported_total(page: dict[str, Any]) -> int | None:
    total = page.get("total")
    if isinstance(total, int) and not isinstance(total, bool):
        return total
    return None


def fetch_last_issue_comments(
    issue_key: str, count: int = LAST_COMMENTS_COUNT
) -> tuple[list[IssueComment], IssueCommentsMeta]:
    """Return the `count` most recent comments, oldest first.

    A one-item probe learns the total, then a single page is read from
    `total - count`.
    """
    probe = fetch_issue_comments_page(issue_key, 0, 1)
    total = _reported_total(probe)
    if total is None:
        total = len(as_list(probe.get("comments")))

    if total <= 0:
        return [], IssueCommentsMeta(mode="last_3", total=0, returned=0)

    start_at = max(0, total - count)
    page = fetch_issue_comments_page(issue_key, start_at, count)
    comments = [
        to_issue_comment(comment)
        for comment in as_list(page.get("comments"))
        if isinstance(comment, dict)
    ]

    return comments, IssueCommentsMeta(
        mode="last_3", total=total, returned=len(comments)
    )


def fetch_all_issue_comments(
    issue_key: str,
) -> tuple[list[IssueComment], IssueCommentsMeta]:
    """Read every comment page until an empty page or the reported total."""
    comments: list[IssueComment] = []
    start_at = 0
    total: int | None = None

    while True:
        page = fetch_issue_comments_page(issue_key, start_at, ALL_COMMENTS_PAGE_SIZE)

        reported = _reported_total(page)
        if reported is not None:
            total = reported

        batch = [
            to_issue_comment(comment)
            for comment in as_list(page.get("comments"))
            if isinstance(comment, dict)
        ]
        comments.extend(batch)

        if not batch:
            break

        start_at += len(batch)

        if total is not None and start_at >= total:
            break

    return comments, IssueCommentsMeta(
        mode="all",
        total=total if total is not None else len(comments),
        returned=len(comments),
    )


def get_issue_comments(
    issue_key: str,
    skip_comments: bool | None = None,
    load_only_last_3_comments: bool | None = None,
) -> tuple[list[IssueComment], IssueCommentsMeta]:
    """Load comments for an issue under the requested policy.

    Args:
        issue_key: Jira issue key (e.g., PROJ-123).
        skip_comments: Do not load comments at all.
        load_only_last_3_comments: Load only the 3 most recent comments
            (default). False loads every comment.

    Returns:
        Comments ordered oldest to newest, and how they were loaded.
    """
    mode = resolve_comment_mode(skip_comments, load_only_last_3_comments)
    logger.debug("Loading comments for %s with mode %s", issue_key, mode)

    if mode == "skip":
        return [], IssueCommentsMeta(mode="skip", total=0, returned=0)

    if mode == "last_3":
        return fetch_last_issue_comments(issue_key, LAST_COMMENTS_COUNT)

    return fetch_all_issue_comments(issue_key)


def add_comment(issue_key: str, body: str) -> AddCommentResult:
    """Add a plain text comment to a Jira issue.

    Args:
        issue_key: Jira issue key (e.g., PROJ-123).
        body: Comment text; stored in Jira as ADF.

    Returns:
        AddCommentResult with the created comment.
    """
    text = body.strip()
    if not text:
        raise JiraValidationError("Comment body cannot be empty.")

    comment = jira_executor.jira_request(
        f"/rest/api/3/issue/{quote(issue_key, safe='')}/comment",
        method="POST",
        body={"body": plain_text_to_adf(text)},
    )

    return AddCommentResult(issue_key=issue_key, comment=to_issue_comment(as_dict(comment)))
