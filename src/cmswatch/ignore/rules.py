"""Ignore rules deciding which local paths never reach the remote store."""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Set

from pathspec import PathSpec

from ..utils.logging import get_logger
from ..utils.paths import convert_to_unix_path, is_allowed_extension

IGNORE_FILE_NAME = ".cmsignore"

DEFAULT_IGNORE_PATTERNS = [
    ".*",
    "*.log",
    "*.swp",
    "*~",
    ".DS_Store",
    "Thumbs.db",
    ".vscode/",
    ".idea/",
    "node_modules/",
]


def find_ignore_file(start_dir: str, file_name: str = IGNORE_FILE_NAME) -> Optional[Path]:
    """Find the nearest ignore file walking up from ``start_dir``."""
    current = Path(start_dir).resolve()
    for directory in [current, *current.parents]:
        candidate = directory / file_name
        if candidate.is_file():
            return candidate
    return None


def load_ignore_patterns(ignore_file: Path) -> List[str]:
    """Read gitignore-style patterns, skipping blanks and comments."""
    patterns = []
    with open(ignore_file, "r", encoding="utf-8") as f:
        for line in f:
            stripped = line.strip()
            if stripped and not stripped.startswith("#"):
                patterns.append(stripped)
    return patterns


class IgnoreRules:
    """Gitignore-style rule set plus explicitly ignored paths.

    Patterns are matched against paths relative to the directory holding the
    ignore file, or ``cwd`` when there is none. Extra roots (the watched
    source directory) can be added with ``add_root``; a path below none of the
    roots is only ever ignored when it was registered with ``ignore_file``.
    """

    def __init__(
        self,
        cwd: Optional[str] = None,
        patterns: Optional[Iterable[str]] = None,
        ignore_file_name: str = IGNORE_FILE_NAME
    ):
        self.logger = get_logger(self.__class__.__name__)
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.root = self.cwd
        self.rules_file: Optional[Path] = None
        self._ignored_paths: Set[str] = set()
        self._extra_roots: List[str] = []

        all_patterns = list(DEFAULT_IGNORE_PATTERNS)
        if patterns is not None:
            all_patterns.extend(patterns)
        else:
            self.rules_file = find_ignore_file(self.cwd, ignore_file_name)
            if self.rules_file is not None:
                self.root = str(self.rules_file.parent)
                loaded = load_ignore_patterns(self.rules_file)
                all_patterns.extend(loaded)
                self.logger.debug(
                    "Loaded ignore rules",
                    ignore_file=str(self.rules_file),
                    patterns=len(loaded)
                )

        self.patterns = all_patterns
        self.spec = PathSpec.from_lines("gitignore", all_patterns)

    def add_root(self, path: str) -> None:
        """Also match patterns below ``path`` when it lies outside the ignore root."""
        root = os.path.abspath(path)
        if root not in self._extra_roots:
            self._extra_roots.append(root)

    def _relative(self, path: str) -> Optional[str]:
        absolute = os.path.abspath(path)
        for root in [self.root, *self._extra_roots]:
            try:
                rel = convert_to_unix_path(os.path.relpath(absolute, root))
            except ValueError:
                # Different drive on Windows
                continue
            if rel != ".." and not rel.startswith("../"):
                return rel
        return None

    def ignore_file(self, path: str) -> None:
        """Register an exact path that must always be ignored."""
        self._ignored_paths.add(os.path.abspath(path))

    def should_ignore_file(self, path: str, is_dir: bool = False) -> bool:
        """Whether ``path`` matches an ignore rule or a registered path.

        Directory-only patterns such as ``node_modules/`` match a directory
        itself only when ``is_dir`` is set; files below it always match.
        """
        if os.path.abspath(path) in self._ignored_paths:
            return True
        relative = self._relative(path)
        if relative is None or relative in ("", "."):
            return False
        if is_dir:
            relative += "/"
        return self.spec.match_file(relative)


def should_skip(path: str, rules: IgnoreRules) -> bool:
    """Whether ``path`` must be skipped before any remote operation."""
    logger = get_logger("should_skip")
    if not is_allowed_extension(path):
        logger.debug(f"Skipping {path} due to unsupported extension")
        return True
    if rules.should_ignore_file(path):
        logger.debug(f"Skipping {path} due to an ignore rule")
        return True
    return False
