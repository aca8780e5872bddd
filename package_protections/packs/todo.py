"""
Rule TODO Lists

Reads the lint-rule engine's TODO files (`.rubocop_todo.yml` at the
repository root and inside each package), which list files already known
to break a rule under `<rule name>: {Exclude: [...]}`.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Set

import yaml


logger = logging.getLogger(__name__)

RULE_TODO_FILENAME = ".rubocop_todo.yml"


class RuleTodoList:
    """Union of the root and package-level TODO files, cached after first read."""

    def __init__(self, root: Path, filename: str = RULE_TODO_FILENAME):
        self.root = Path(root)
        self.filename = filename
        self._documents: Optional[Dict[str, dict]] = None

    def excluded_files(self, rule_name: str, package_directories: Iterable[Path] = ()) -> Set[str]:
        """
        Files listed under a rule's `Exclude` key.

        Args:
            rule_name: Rule engine rule name (e.g. 'PackageProtections/TypedPublicApi')
            package_directories: Package directories whose own TODO file is also read

        Returns:
            Root-relative file paths
        """
        excluded: Set[str] = set()
        paths = [Path(self.filename)] + [Path(d) / self.filename for d in package_directories]
        for path in paths:
            rule_config = self._document(path).get(rule_name)
            if isinstance(rule_config, dict):
                excluded.update(rule_config.get("Exclude") or [])
        return excluded

    def bust_cache(self) -> None:
        self._documents = None

    def _document(self, relative_path: Path) -> dict:
        if self._documents is None:
            self._documents = {}

        key = relative_path.as_posix()
        if key not in self._documents:
            self._documents[key] = self._load(self.root / relative_path)
        return self._documents[key]

    def _load(self, path: Path) -> dict:
        if not path.exists():
            return {}
        try:
            with open(path, "r") as f:
                document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning("Ignoring unreadable rule TODO file %s: %s", path, e)
            return {}
        if not isinstance(document, dict):
            return {}
        return document
