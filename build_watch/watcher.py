"""
Watchdog-based directory monitoring for a project tree.

Every non-ignored directory gets its own non-recursive watch, so the set
of observed directories can grow and shrink as the tree changes. Raw
events are forwarded into a single notification channel that the watch
session consumes.
"""

from __future__ import annotations

import logging
import os
import queue
from typing import Dict, List, Optional, Union

from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch
from watchdog.events import (
    FileSystemEventHandler,
    FileSystemEvent,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
)

from build_watch.exceptions import WatchRegistrationError
from build_watch.path_filter import PathFilter


logger = logging.getLogger(__name__)

# Event types forwarded to the channel; open/close events are dropped
FORWARDED_EVENT_TYPES = frozenset({
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
})

# An item on the notification channel: an event, or an error to report
ChannelItem = Union[FileSystemEvent, Exception]


class ChannelEventHandler(FileSystemEventHandler):
    """Forwards raw filesystem events from observer threads into a queue."""

    def __init__(self, channel: "queue.Queue[ChannelItem]"):
        super().__init__()
        self.channel = channel

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in FORWARDED_EVENT_TYPES:
            self.channel.put(event)


class DirectoryWatcher:
    """
    Maintains the live set of observed directories.

    The registration table (path -> watch) is the watched set: it grows on
    directory creation and shrinks on directory removal.
    """

    def __init__(
        self,
        path_filter: PathFilter,
        observer: Optional[Observer] = None,
        channel: Optional["queue.Queue[ChannelItem]"] = None
    ):
        """
        Initialize directory watcher.

        Args:
            path_filter: Filter deciding which directories are ignored
            observer: Watchdog observer (creates one if None)
            channel: Notification channel (creates one if None)
        """
        self.path_filter = path_filter
        self.channel: "queue.Queue[ChannelItem]" = channel if channel is not None else queue.Queue()
        self._observer = observer if observer is not None else Observer()
        self._handler = ChannelEventHandler(self.channel)
        self._watches: Dict[str, ObservedWatch] = {}
        self._started = False

    def register_tree(self, root: str) -> int:
        """
        Register every non-ignored directory under root.

        Args:
            root: Directory to walk

        Returns:
            Number of directories registered

        Raises:
            WatchRegistrationError: On the first directory that cannot be
                registered; registration stops there
        """
        count = 0
        for dirpath, dirnames, _ in os.walk(root):
            if self.path_filter.is_ignored(dirpath):
                dirnames[:] = []
                continue

            self.add(dirpath)
            count += 1

        return count

    def add(self, path: str) -> None:
        """
        Register a single directory.

        Raises:
            WatchRegistrationError: If the observer rejects the directory
        """
        key = os.path.abspath(path)
        if key in self._watches:
            return

        try:
            watch = self._observer.schedule(self._handler, key, recursive=False)
        except Exception as e:
            raise WatchRegistrationError(path, e) from e

        self._watches[key] = watch
        logger.debug(f"Watching {path}")

    def remove(self, path: str) -> None:
        """
        Deregister a single directory.

        Raises:
            KeyError: If the directory is not registered
        """
        key = os.path.abspath(path)
        watch = self._watches.pop(key)
        self._observer.unschedule(watch)
        logger.debug(f"Stopped watching {path}")

    def on_directory_created(self, path: str, recursive: bool = False) -> bool:
        """
        Register a newly created directory.

        Directories nested inside a created directory arrive as their own
        creation events, so only the directory itself is registered unless
        recursive is set. A tree moved into place sends no such events.

        Args:
            path: Created path
            recursive: Also register every non-ignored directory below path

        Returns:
            True if the directory is now watched
        """
        if not os.path.isdir(path):
            return False

        if not recursive:
            return self._add_logged(path)

        for dirpath, dirnames, _ in os.walk(path):
            if self.path_filter.is_ignored(dirpath):
                dirnames[:] = []
                continue
            self._add_logged(dirpath)
        return self.is_watching(path)

    def on_directory_removed(self, path: str) -> bool:
        """
        Deregister a removed directory and any registered directory below it.

        Args:
            path: Removed path

        Returns:
            True if every matching registration has been dropped
        """
        key = os.path.abspath(path)
        targets = [
            watched for watched in self._watches
            if watched == key or watched.startswith(key + os.sep)
        ]
        if os.path.isdir(path) or not targets:
            return False

        removed_all = True
        for target in targets:
            try:
                self.remove(target)
            except Exception as e:
                logger.error(f"Failed to remove directory from watching list [{target}], {e}")
                removed_all = False
        return removed_all

    def _add_logged(self, path: str) -> bool:
        try:
            self.add(path)
        except WatchRegistrationError as e:
            logger.error(f"Failed to add new directory into watching list [{path}], {e.cause}")
            return False
        return True

    def report_error(self, error: Exception) -> None:
        """Put a notification error on the channel for the session to report."""
        self.channel.put(error)

    def is_watching(self, path: str) -> bool:
        return os.path.abspath(path) in self._watches

    def watched_paths(self) -> List[str]:
        """Get the currently registered directories."""
        return sorted(self._watches)

    def start(self) -> None:
        """Start delivering notifications for registered directories."""
        if self._started:
            logger.warning("Directory watcher already running")
            return

        self._observer.start()
        self._started = True

    def stop(self) -> None:
        """Stop the observer and forget all registrations."""
        if not self._started:
            return

        try:
            self._observer.stop()
            self._observer.join(timeout=5.0)
        except Exception as e:
            logger.error(f"Error stopping directory watcher: {e}", exc_info=True)
        finally:
            self._started = False
            self._watches.clear()

    def is_running(self) -> bool:
        return self._started and self._observer.is_alive()
