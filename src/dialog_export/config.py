"""
Configuration for dialog-export.

Settings can be loaded from a YAML file or constructed programmatically.
Every core call accepts an optional :class:`ExportConfig`; ``None`` means
defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CLAUDE_DIR = Path.home() / ".claude"
PROJECTS_DIR = CLAUDE_DIR / "projects"

DIALOG_FOLDER = "dialog"
AGENT_PREFIX = "agent-"

DEFAULT_SUMMARY_COMMAND = [
    "claude",
    "-p",
    "--dangerously-skip-permissions",
    "--tools",
    "Read,Edit",
]

CONFIG_FILENAMES = ("dialog-export.yaml", ".dialog-export.yaml")
USER_CONFIG_PATH = Path.home() / ".config" / "dialog-export" / "config.yaml"


def default_projects_dir() -> Path:
    """Source log root, overridable with ``DIALOG_EXPORT_PROJECTS_DIR``."""
    override = os.environ.get("DIALOG_EXPORT_PROJECTS_DIR")
    if override:
        return Path(override).expanduser()
    return PROJECTS_DIR


@dataclass
class ExportConfig:
    """
    Main configuration for exporting and watching sessions.

    Example YAML:
        projects_dir: ~/.claude/projects
        dialog_folder: dialog
        export_debounce_ms: 2000
        summary_debounce_seconds: 30
        summaries_enabled: true
        summary_command: [claude, -p, --dangerously-skip-permissions]
    """

    # Source logs
    projects_dir: Path = field(default_factory=default_projects_dir)
    agent_prefix: str = AGENT_PREFIX  # Internal-agent logs are never exported

    # Output
    dialog_folder: str = DIALOG_FOLDER  # Folder created inside the target project
    output_dir: Path | None = None  # Export somewhere other than the source project

    # Watching
    export_debounce_ms: int = 2000  # Quiet period before a changed log is exported
    watch_debounce_ms: int = 250  # Event batching inside the file watcher

    # Summaries
    summaries_enabled: bool = True
    summary_debounce_seconds: float = 30.0  # Inactivity before an interim summary
    summary_command: list[str] = field(default_factory=lambda: list(DEFAULT_SUMMARY_COMMAND))
    summary_language: str = "English"

    verbose: bool = False

    @property
    def export_delay(self) -> float:
        """Export debounce in seconds."""
        return self.export_debounce_ms / 1000

    def output_path(self, project_path: Path) -> Path:
        """Project directory that receives the dialog folder."""
        return Path(self.output_dir).resolve() if self.output_dir else Path(project_path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportConfig:
        """Create config from a dictionary."""
        config = cls()
        if data.get("projects_dir"):
            config.projects_dir = Path(data["projects_dir"]).expanduser()
        if data.get("output_dir"):
            config.output_dir = Path(data["output_dir"]).expanduser()
        config.agent_prefix = data.get("agent_prefix", AGENT_PREFIX)
        config.dialog_folder = data.get("dialog_folder", DIALOG_FOLDER)
        config.export_debounce_ms = data.get("export_debounce_ms", 2000)
        config.watch_debounce_ms = data.get("watch_debounce_ms", 250)
        config.summaries_enabled = data.get("summaries_enabled", True)
        config.summary_debounce_seconds = data.get("summary_debounce_seconds", 30.0)
        config.summary_command = list(data.get("summary_command", DEFAULT_SUMMARY_COMMAND))
        config.summary_language = data.get("summary_language", "English")
        config.verbose = data.get("verbose", False)
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> ExportConfig:
        """Load config from a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> ExportConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "projects_dir": str(self.projects_dir),
            "agent_prefix": self.agent_prefix,
            "dialog_folder": self.dialog_folder,
            "output_dir": str(self.output_dir) if self.output_dir else None,
            "export_debounce_ms": self.export_debounce_ms,
            "watch_debounce_ms": self.watch_debounce_ms,
            "summaries_enabled": self.summaries_enabled,
            "summary_debounce_seconds": self.summary_debounce_seconds,
            "summary_command": list(self.summary_command),
            "summary_language": self.summary_language,
            "verbose": self.verbose,
        }


def config_search_paths(cwd: Path | None = None) -> list[Path]:
    """Config files checked by :func:`load_config`, highest priority first."""
    base = cwd or Path.cwd()
    return [base / name for name in CONFIG_FILENAMES] + [USER_CONFIG_PATH]


def load_config(path: Path | None = None, cwd: Path | None = None) -> ExportConfig:
    """
    Load configuration.

    An explicit *path* must exist. Otherwise the first existing file from
    :func:`config_search_paths` is used, falling back to defaults.
    """
    if path is not None:
        return ExportConfig.from_yaml(Path(path))

    for candidate in config_search_paths(cwd):
        if candidate.exists():
            return ExportConfig.from_yaml(candidate)
    return ExportConfig()
