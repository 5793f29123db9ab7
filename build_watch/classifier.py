"""
Classification of raw filesystem events into watch actions.

Each event yields at most one kind of action: a directory registration
change, a configuration reload, or rebuild tasks.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from watchdog.events import (
    FileSystemEvent,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
)

from build_watch.config import ProjectConfigStore
from build_watch.models import Task, TaskKind, WatchSettings
from build_watch.path_filter import PathFilter, clean_path


logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    """What the watch loop should do in response to an event."""
    REGISTER_DIRECTORY = "register_directory"
    DEREGISTER_DIRECTORY = "deregister_directory"
    ENQUEUE_TASK = "enqueue_task"
    RELOAD_CONFIG = "reload_config"


@dataclass(frozen=True)
class ClassifiedAction:
    """A single action derived from an event."""

    type: ActionType
    path: str = ""
    task: Optional[Task] = None
    # Register the directories below path too (a moved-in tree sends no creation events)
    recursive: bool = False

    @classmethod
    def enqueue(cls, kind: TaskKind, target: str) -> "ClassifiedAction":
        return cls(ActionType.ENQUEUE_TASK, task=Task(kind=kind, target=target))


class EventClassifier:
    """
    Maps filesystem events to actions.

    Paths are matched relative to the project root: the configuration file
    by exact name, Go sources by suffix.
    """

    def __init__(
        self,
        root: str,
        path_filter: PathFilter,
        config_store: ProjectConfigStore,
        settings: WatchSettings
    ):
        """
        Initialize event classifier.

        Args:
            root: Project root directory
            path_filter: Filter for ignored paths
            config_store: Shared project configuration (for omitted tests)
            settings: Session settings
        """
        self.root = os.path.abspath(root)
        self.path_filter = path_filter
        self.config_store = config_store
        self.settings = settings

        # Configuration file as a cleaned root-relative path
        self.config_path = os.path.relpath(
            os.path.join(self.root, settings.config_file), self.root
        ).replace(os.sep, "/")

    def classify(self, event: FileSystemEvent) -> List[ClassifiedAction]:
        """
        Classify one raw event.

        Args:
            event: Watchdog event

        Returns:
            Actions to apply (empty for events that need nothing)
        """
        if event.event_type == EVENT_TYPE_MOVED:
            return self.classify_move(event)

        src_path = os.fsdecode(event.src_path)
        if not src_path or self.path_filter.is_ignored(src_path):
            return []

        if event.event_type == EVENT_TYPE_CREATED:
            if event.is_directory or os.path.isdir(src_path):
                return [ClassifiedAction(ActionType.REGISTER_DIRECTORY, path=src_path)]
            return []

        if event.event_type == EVENT_TYPE_DELETED:
            if event.is_directory:
                # TODO: a removed directory under the assets tree should trigger an asset rebuild
                return [ClassifiedAction(ActionType.DEREGISTER_DIRECTORY, path=src_path)]
            return []

        if event.event_type != EVENT_TYPE_MODIFIED or event.is_directory:
            return []

        return self.classify_write(src_path)

    def classify_move(self, event: FileSystemEvent) -> List[ClassifiedAction]:
        """
        Classify a rename.

        A moved directory is deregistered under its old path and registered,
        with everything below it, under its new path. A file moved onto a
        path in the tree counts as a write to that path, which covers
        editors that save through a temporary file.
        """
        src_path = os.fsdecode(event.src_path)
        dest_path = os.fsdecode(event.dest_path)

        if event.is_directory or os.path.isdir(dest_path):
            actions = []
            if self.is_observable(src_path):
                actions.append(ClassifiedAction(ActionType.DEREGISTER_DIRECTORY, path=src_path))
            if self.is_observable(dest_path):
                actions.append(ClassifiedAction(ActionType.REGISTER_DIRECTORY, path=dest_path, recursive=True))
            return actions

        if not self.is_observable(dest_path):
            return []
        return self.classify_write(dest_path)

    def classify_write(self, path: str) -> List[ClassifiedAction]:
        """Classify a write to a file that is not ignored."""
        rel_path = self.path_filter.relative(path)

        if rel_path == self.config_path:
            return [ClassifiedAction(ActionType.RELOAD_CONFIG, path=path)]

        if rel_path.endswith(self.settings.source_suffix):
            module = os.path.dirname(rel_path) or "."
            actions = []
            if self.has_tests(module):
                actions.append(ClassifiedAction.enqueue(TaskKind.BINARY_TEST, module))
            actions.append(ClassifiedAction.enqueue(TaskKind.BUILD_BINARY, module))
            return actions

        # Script, style and image changes are not rebuilt yet
        logger.debug(f"No rebuild rule for {rel_path}")
        return []

    def is_observable(self, path: str) -> bool:
        """Check that a path is inside the project root and not ignored."""
        if not path:
            return False
        rel_path = clean_path(os.path.relpath(os.path.abspath(path), self.root))
        if rel_path == ".." or rel_path.startswith("../"):
            return False
        return not self.path_filter.is_ignored(path)

    def has_tests(self, module: str) -> bool:
        """
        Check if a module directory contains test files.

        Walks every file under the module. A file counts when its name ends
        with the test suffix and its root-relative path is not listed in the
        configured omitted tests (exact string match).

        Args:
            module: Module directory, relative to the project root

        Returns:
            True if at least one test file is not omitted
        """
        omitted = set(self.config_store.omitted_tests())
        module_dir = os.path.join(self.root, module)

        for dirpath, _, filenames in os.walk(module_dir):
            rel_dir = os.path.relpath(dirpath, self.root)
            for filename in filenames:
                if not filename.endswith(self.settings.test_suffix):
                    continue
                rel_file = filename if rel_dir == "." else os.path.join(rel_dir, filename)
                if rel_file.replace(os.sep, "/") not in omitted:
                    return True

        return False
