"""
Remote Layout Value Object

Architectural Intent:
- Single source of truth for where things live on a target host
- Resolves symbolic folder names ("current", "releases", ...) to paths
- Immutable, built once from configuration and passed to every task

Layout on the host:
    <root_directory>/<application_name>/
        releases/<release id>/    one directory per release
        current -> releases/<id>  the live symlink
        .rollout-release          marker recording current/previous ids
"""

import posixpath
from dataclasses import dataclass
from typing import Optional

CURRENT = "current"
RELEASES = "releases"
MARKER_FILE = ".rollout-release"


@dataclass(frozen=True)
class RemoteLayout:
    root_directory: str
    application_name: str

    def __post_init__(self) -> None:
        if not self.root_directory:
            raise ValueError("root_directory cannot be empty")
        if not self.application_name:
            raise ValueError("application_name cannot be empty")

    @property
    def application_root(self) -> str:
        return posixpath.join(self.root_directory, self.application_name)

    @property
    def releases_root(self) -> str:
        return self.resolve(RELEASES)

    @property
    def current_path(self) -> str:
        return self.resolve(CURRENT)

    @property
    def marker_path(self) -> str:
        return self.resolve(MARKER_FILE)

    def resolve(self, folder: Optional[str] = None) -> str:
        """Resolve a symbolic folder name; absolute paths pass through."""
        if not folder:
            return self.application_root
        if folder.startswith("/"):
            return folder
        return posixpath.join(self.application_root, folder)
