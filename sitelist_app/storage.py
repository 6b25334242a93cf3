from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from shutil import copy2

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from .tree import Category, SiteListError, ValidationError, tree_from_payload, tree_to_payload

logger = logging.getLogger(__name__)

yaml = YAML()
yaml.preserve_quotes = True
yaml.indent(mapping=2, sequence=4, offset=2)
# Avoid line wrapping that can split long URLs or descriptions.
yaml.width = 4096
# ruamel reader/emitter state is per instance and not thread-safe.
YAML_LOCK = threading.RLock()

ROOT_KEY = "navigationItems"
BACKUP_KEEP = 5


class StorageError(SiteListError):
    """The navigation file could not be read or written."""


def _now_stamp() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S-%f")


def _backup_file(path: Path) -> Path | None:
    if not path.exists():
        return None
    backup_dir = path.parent / "backups"
    backup_dir.mkdir(parents=True, exist_ok=True)
    backup_path = backup_dir / f"{path.name}.bak-{_now_stamp()}"
    copy2(path, backup_path)

    # Keep only the most recent backups.
    backups = sorted(backup_dir.glob(f"{path.name}.bak-*"), reverse=True)
    for old in backups[BACKUP_KEEP:]:
        try:
            old.unlink()
        except OSError:
            logger.warning("Could not remove old backup %s", old)

    return backup_path


class NavigationStore:
    """Whole-tree persistence of the navigation YAML file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> list[Category]:
        if not self.path.exists():
            return []
        try:
            with YAML_LOCK, self.path.open("r", encoding="utf-8") as handle:
                data = yaml.load(handle) or CommentedMap()
        except (OSError, YAMLError) as exc:
            raise StorageError(f"Failed to read {self.path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"{self.path.name} must contain a mapping at the top level.")
        try:
            return tree_from_payload(data.get(ROOT_KEY) or [])
        except ValidationError as exc:
            raise StorageError(f"Invalid navigation in {self.path.name}: {exc}") from exc

    def save(self, tree: list[Category]) -> Path | None:
        document = CommentedMap({ROOT_KEY: tree_to_payload(tree)})
        try:
            with YAML_LOCK:
                backup = _backup_file(self.path)
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("w", encoding="utf-8") as handle:
                    yaml.dump(document, handle)
        except OSError as exc:
            raise StorageError(f"Failed to write {self.path.name}: {exc}") from exc
        logger.info("Saved %d categories to %s", len(tree), self.path)
        return backup
