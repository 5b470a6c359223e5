"""autogit - debounced auto-commit and push for git work trees."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Config", "load_config",
    # Engine
    "AutoGitEngine", "ChangeAggregator", "EngineState", "EventKind",
    # Pipeline parts
    "ExclusionMatcher", "should_exclude",
    "ChangeKind", "classify",
    "CommitMessageGenerator",
    "RepositoryController", "CommitOutcome",
    "GitRepo", "LLMClient",
    # Exceptions
    "AutoGitError", "GitError", "LLMError", "ConfigError", "ValidationError",
    "ErrorKind",
]


def __getattr__(name: str):
    """Lazy attribute loader so importing the package stays cheap.

    The text-generation SDKs are only imported when something that needs
    them is accessed.
    """
    mapping = {
        "Config": ("autogit.config", "Config"),
        "load_config": ("autogit.config", "load_config"),
        "AutoGitEngine": ("autogit.engine", "AutoGitEngine"),
        "ChangeAggregator": ("autogit.aggregator", "ChangeAggregator"),
        "EngineState": ("autogit.aggregator", "EngineState"),
        "EventKind": ("autogit.aggregator", "EventKind"),
        "ExclusionMatcher": ("autogit.matcher", "ExclusionMatcher"),
        "should_exclude": ("autogit.matcher", "should_exclude"),
        "ChangeKind": ("autogit.status", "ChangeKind"),
        "classify": ("autogit.status", "classify"),
        "CommitMessageGenerator": ("autogit.commit", "CommitMessageGenerator"),
        "RepositoryController": ("autogit.controller", "RepositoryController"),
        "CommitOutcome": ("autogit.controller", "CommitOutcome"),
        "GitRepo": ("autogit.git", "GitRepo"),
        "LLMClient": ("autogit.llm", "LLMClient"),
        "AutoGitError": ("autogit.exceptions", "AutoGitError"),
        "GitError": ("autogit.exceptions", "GitError"),
        "LLMError": ("autogit.exceptions", "LLMError"),
        "ConfigError": ("autogit.exceptions", "ConfigError"),
        "ValidationError": ("autogit.exceptions", "ValidationError"),
        "ErrorKind": ("autogit.exceptions", "ErrorKind"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'autogit' has no attribute {name!r}")


if TYPE_CHECKING:
    from .aggregator import ChangeAggregator, EngineState, EventKind
    from .commit import CommitMessageGenerator
    from .config import Config, load_config
    from .controller import CommitOutcome, RepositoryController
    from .engine import AutoGitEngine
    from .exceptions import (
        AutoGitError,
        ConfigError,
        ErrorKind,
        GitError,
        LLMError,
        ValidationError,
    )
    from .git import GitRepo
    from .llm import LLMClient
    from .matcher import ExclusionMatcher, should_exclude
    from .status import ChangeKind, classify
