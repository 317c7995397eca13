"""Wiring of stores, writer and session guard for one project directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .changelog import ChangelogWriter
from .config import CHANGELOG_FILE, CONTEXT_FILE, STATUS_FILE, Settings, load_settings
from .session import SessionGuard
from .store import DocumentStore


@dataclass
class Project:
    path: Path
    settings: Settings
    changelog: DocumentStore
    context: DocumentStore
    session: SessionGuard

    @classmethod
    def open(cls, path: Path, settings: Settings | None = None) -> "Project":
        """
        Build file-backed stores for a project root.

        Raises:
            ValueError: If the project's config file is invalid
        """
        path = path.resolve()
        return cls(
            path=path,
            settings=settings or load_settings(path),
            changelog=DocumentStore.at(path / CHANGELOG_FILE),
            context=DocumentStore.at(path / CONTEXT_FILE),
            session=SessionGuard(path),
        )

    @property
    def status_path(self) -> Path:
        return self.path / STATUS_FILE

    def writer(self) -> ChangelogWriter:
        return ChangelogWriter(self.changelog, self.context, settings=self.settings)
