#!/usr/bin/env python3
"""Repository discovery."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from git_operations import GitGateway
from repo_state import Repository

logger = logging.getLogger(__name__)


class RepoScanner:
    """Scan a base directory for git repositories whose name matches a prefix."""

    def __init__(self, gateway: Optional[GitGateway] = None) -> None:
        self.gateway = gateway or GitGateway()

    def scan(self, root: Path, prefix: str = "") -> List[Repository]:
        """Return repositories directly under root, in directory enumeration order."""
        root = root.expanduser()
        if not root.is_dir():
            logger.warning("Root directory '%s' not found; nothing to scan", root)
            return []

        repos: List[Repository] = []
        for child in root.iterdir():
            if not child.name.startswith(prefix) or not child.is_dir():
                continue
            if not self.gateway.is_repository(child):
                continue
            repos.append(Repository(path=child.resolve()))

        if not repos:
            if prefix:
                logger.warning("No git repositories starting with '%s' found in %s", prefix, root)
            else:
                logger.warning("No git repositories found in %s", root)
        return repos
