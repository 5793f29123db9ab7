"""
Hot reload of project.toml.

A reload that fails to parse leaves the running configuration untouched;
a successful one swaps the configuration, re-resolves dependencies and
queues a full project rebuild.
"""

import logging

from build_watch.config import ProjectConfigStore
from build_watch.deps import DependencyResolver
from build_watch.exceptions import ConfigError, DependencyError
from build_watch.models import FULL_REBUILD_KINDS, Task
from build_watch.tasks import TaskQueue


logger = logging.getLogger(__name__)


class ConfigReloader:
    """Re-reads the project configuration after it changes on disk."""

    def __init__(
        self,
        config_store: ProjectConfigStore,
        resolver: DependencyResolver,
        task_queue: TaskQueue
    ):
        self.config_store = config_store
        self.resolver = resolver
        self.task_queue = task_queue

    def reload(self) -> bool:
        """
        Reload the configuration file.

        Errors end the reload attempt, never the watch session.

        Returns:
            True if the new configuration was activated and its dependencies
            resolved, False otherwise
        """
        config_file = self.config_store.config_file
        logger.info(f"Reloading the {config_file.name} file ...")

        try:
            new_config = self.config_store.load()
        except ConfigError as e:
            logger.error(f"We found the {config_file.name} has changed, but it contains some error, will omit it.")
            logger.error(f"{e}")
            logger.info("Waiting for the file changes ...")
            return False

        logger.info(f"Loaded the new {config_file.name}, will update all the dependencies ...")
        self.config_store.replace_sections(new_config)

        try:
            self.resolver.ensure_all()
        except DependencyError as e:
            logger.error(f"Failed to load project dependencies, {e}")
            return False

        for kind in FULL_REBUILD_KINDS:
            self.task_queue.add(Task(kind=kind))
        return True
