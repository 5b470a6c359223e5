"""Commit message generation for autogit."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .config import DEFAULT_MAX_COMMIT_LENGTH
from .llm import TextGenerator
from .status import ChangeKind, ClassifiedChange

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Auto-commit: Update files"
ELLIPSIS = "..."

_QUOTE_CHARS = ("\"", "'", "`")

_EXAMPLES = [
    "feat: add user authentication system",
    "fix: resolve login validation bug",
    "docs: update API documentation",
    "refactor: simplify user service logic",
    "chore: update dependencies and clean up code",
]


def clean_message(text: str, max_length: int) -> str:
    """Reduce raw model output to a single bounded subject line.

    Keeps the first non-empty line, strips one pair of surrounding quotes,
    drops any remaining quote or backtick characters and truncates with an
    ellipsis when longer than ``max_length``.
    """
    first = ""
    for line in (text or "").splitlines():
        if line.strip():
            first = line.strip()
            break
    if len(first) >= 2 and first[0] == first[-1] and first[0] in _QUOTE_CHARS:
        first = first[1:-1]
    for ch in _QUOTE_CHARS:
        first = first.replace(ch, "")
    first = first.strip()
    if len(first) > max_length:
        first = first[: max(max_length - len(ELLIPSIS), 0)] + ELLIPSIS
    return first


def fallback_message(changes: Sequence[ClassifiedChange]) -> str:
    """Deterministic summary of ``changes`` by kind.

    Untracked files count as added. The plural suffix depends on the total
    number of changes, not on the number of counted ones.
    """
    added = sum(
        1 for c in changes if c.kind in (ChangeKind.ADDED, ChangeKind.UNTRACKED)
    )
    modified = sum(1 for c in changes if c.kind is ChangeKind.MODIFIED)
    deleted = sum(1 for c in changes if c.kind is ChangeKind.DELETED)

    parts = []
    if added:
        parts.append(f"{added} added")
    if modified:
        parts.append(f"{modified} modified")
    if deleted:
        parts.append(f"{deleted} deleted")
    if not parts:
        return DEFAULT_MESSAGE
    suffix = "" if len(changes) == 1 else "s"
    return f"Auto-commit: {', '.join(parts)} file{suffix}"


def build_prompt(changes: Sequence[ClassifiedChange], max_length: int) -> str:
    """Construct the textual prompt sent to the text-generation backend."""
    prompt_parts = [
        "Generate a concise commit message for the following changes:",
        *[c.describe() for c in changes],
        "",
        "The commit message should:",
        "- Be concise and descriptive",
        "- Follow conventional commit format if applicable "
        "(feat:, fix:, docs:, refactor:, test:, chore:, style:)",
        "- Use the imperative mood in the present tense",
        f"- Be under {max_length} characters",
        "- Describe what was changed, not how",
        "",
        "Example formats:",
        *[f'- "{example}"' for example in _EXAMPLES],
    ]
    return "\n".join(prompt_parts)


class CommitMessageGenerator:
    """Turns classified changes into a commit subject line.

    The text-generation backend is optional. When it is missing or fails,
    the deterministic fallback is used; generation never raises.
    """

    def __init__(
        self,
        client: Optional[TextGenerator] = None,
        max_length: int = DEFAULT_MAX_COMMIT_LENGTH,
        request_timeout: Optional[float] = None,
    ) -> None:
        self.client = client
        self.max_length = max_length
        self.request_timeout = request_timeout
        # Reason the last generate() call fell back despite a client
        self.last_failure: Optional[str] = None

    def generate(
        self,
        changes: Sequence[ClassifiedChange],
        max_length: Optional[int] = None,
    ) -> str:
        limit = max_length if max_length is not None else self.max_length
        self.last_failure = None
        if not changes:
            return DEFAULT_MESSAGE

        suggested = self._suggest(changes, limit)
        if suggested:
            return suggested
        return fallback_message(changes)

    def _suggest(
        self, changes: Sequence[ClassifiedChange], limit: int
    ) -> Optional[str]:
        if self.client is None:
            logger.debug("commit.generate: no text generator, using fallback")
            return None
        prompt = build_prompt(changes, limit)
        try:
            raw = self.client.generate(prompt, request_timeout=self.request_timeout)
        # Third-party clients raise their own exception types; any failure
        # here must fall back instead of aborting the commit.
        except Exception as exc:  # noqa: BLE001
            logger.warning("AI commit message unavailable, using fallback: %s", exc)
            self.last_failure = str(exc) or type(exc).__name__
            return None
        cleaned = clean_message(raw or "", limit)
        if not cleaned:
            logger.warning("AI commit message was empty after cleanup, using fallback")
            self.last_failure = "empty message"
            return None
        return cleaned
