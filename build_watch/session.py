"""
Watch session: the run loop of build-watch.

Registers the project tree, starts the executor, and runs one background
loop that consumes filesystem notifications and flushes the task queue to
the executor on a fixed tick.

Threads:
- Watchdog observer threads only forward events into the channel
- The watch loop thread classifies events and dispatches batches
- The caller's thread runs the executor and waits for the stop signal
"""

import logging
import os
import queue
import threading
import time
from typing import List, Optional

from watchdog.events import FileSystemEvent

from build_watch.classifier import ActionType, ClassifiedAction, EventClassifier
from build_watch.config import ProjectConfigStore
from build_watch.deps import DependencyResolver
from build_watch.executor import AppShell
from build_watch.models import WatchSettings
from build_watch.path_filter import PathFilter
from build_watch.reloader import ConfigReloader
from build_watch.tasks import TaskQueue
from build_watch.watcher import ChannelItem, DirectoryWatcher


logger = logging.getLogger(__name__)

# Seconds to wait for the watch loop to exit on shutdown
LOOP_JOIN_TIMEOUT = 5.0


class WatchSession:
    """
    Composes the watcher, classifier, task queue and reloader.

    The session has a single steady state, watching. Pending tasks are
    discarded when it stops.
    """

    def __init__(
        self,
        root: str,
        config_store: ProjectConfigStore,
        executor: AppShell,
        resolver: DependencyResolver,
        settings: Optional[WatchSettings] = None,
        watcher: Optional[DirectoryWatcher] = None
    ):
        """
        Initialize watch session.

        Args:
            root: Project root directory
            config_store: Shared project configuration
            executor: Executor receiving task batches
            resolver: Dependency resolver used on configuration reload
            settings: Session settings (defaults if None)
            watcher: Directory watcher (creates one if None)
        """
        self.root = os.path.abspath(root)
        self.config_store = config_store
        self.executor = executor
        self.settings = settings or WatchSettings()

        self.path_filter = PathFilter(self.settings.ignore_dirs, root=self.root)
        self.task_queue = TaskQueue()
        self.watcher = watcher or DirectoryWatcher(self.path_filter)
        self.classifier = EventClassifier(self.root, self.path_filter, config_store, self.settings)
        self.reloader = ConfigReloader(config_store, resolver, self.task_queue)

        self._stop_event = threading.Event()
        self._loop_thread: Optional[threading.Thread] = None

    def run_and_watch(self) -> None:
        """
        Register the tree, start watching and run the executor.

        Blocks until stop() is called.

        Raises:
            WatchRegistrationError: If any directory cannot be registered
            Exception: Whatever the executor's run() raises
        """
        count = self.watcher.register_tree(self.root)
        logger.info(f"Watching {count} directories under {self.root}")

        self.watcher.start()
        try:
            self._loop_thread = threading.Thread(
                target=self._watch_loop,
                name="WatchLoop",
                daemon=True
            )
            self._loop_thread.start()

            logger.info("Waiting for file changes ...")
            self.executor.run()

            self._stop_event.wait()
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Signal the session to stop."""
        self._stop_event.set()

    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    def _watch_loop(self) -> None:
        """
        Consume notifications and ticks until stopped.

        The tick period is fixed; activity does not postpone it.
        """
        interval = self.settings.tick_interval
        channel = self.watcher.channel
        next_tick = time.monotonic() + interval

        while not self._stop_event.is_set():
            timeout = next_tick - time.monotonic()
            if timeout > 0:
                try:
                    item = channel.get(timeout=timeout)
                except queue.Empty:
                    pass
                else:
                    self.handle_item(item)
                    continue

            self.tick()

            next_tick += interval
            now = time.monotonic()
            if next_tick <= now:
                # Missed ticks are dropped, not replayed
                next_tick = now + interval

        logger.debug("Watch loop stopped")

    def handle_item(self, item: ChannelItem) -> None:
        """Handle one item from the notification channel."""
        if isinstance(item, Exception):
            logger.error(f"Error: {item}")
            return

        try:
            self.handle_event(item)
        except Exception as e:
            logger.error(f"Error handling event for {item.src_path}: {e}", exc_info=True)

    def handle_event(self, event: FileSystemEvent) -> List[ClassifiedAction]:
        """
        Classify an event and apply its actions.

        Returns:
            The applied actions
        """
        actions = self.classifier.classify(event)
        for action in actions:
            self.apply(action)
        return actions

    def apply(self, action: ClassifiedAction) -> None:
        if action.type == ActionType.REGISTER_DIRECTORY:
            self.watcher.on_directory_created(action.path, recursive=action.recursive)
        elif action.type == ActionType.DEREGISTER_DIRECTORY:
            self.watcher.on_directory_removed(action.path)
        elif action.type == ActionType.ENQUEUE_TASK:
            self.task_queue.add(action.task)
        elif action.type == ActionType.RELOAD_CONFIG:
            self.reloader.reload()

    def tick(self) -> int:
        """
        Flush pending tasks to the executor as one ordered batch.

        Returns:
            Number of tasks dispatched (0 when nothing was pending)
        """
        try:
            return self.task_queue.flush(self.executor.dispatch_tasks)
        except Exception as e:
            logger.error(f"Error dispatching tasks: {e}", exc_info=True)
            return 0

    def _shutdown(self) -> None:
        self._stop_event.set()

        if self._loop_thread is not None and self._loop_thread.is_alive():
            self._loop_thread.join(timeout=LOOP_JOIN_TIMEOUT)
            if self._loop_thread.is_alive():
                logger.warning("Watch loop did not stop gracefully")

        self.watcher.stop()

        discarded = self.task_queue.drain_all()
        if discarded:
            logger.info(f"Discarded {len(discarded)} pending task(s)")
