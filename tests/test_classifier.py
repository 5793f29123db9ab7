"""Tests for build_watch.classifier module."""

import pytest

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from build_watch.classifier import ActionType, ClassifiedAction, EventClassifier
from build_watch.config import ProjectConfigStore
from build_watch.models import ProjectConfig, Task, TaskKind, WatchSettings


@pytest.fixture
def classifier(project_root, path_filter, config_store, settings):
    return EventClassifier(str(project_root), path_filter, config_store, settings)


def _tasks(actions):
    return [action.task for action in actions if action.type == ActionType.ENQUEUE_TASK]


class TestSourceChanges:
    """Tests for Go source modifications."""

    def test_module_with_tests(self, classifier, project_root):
        """A change in foo/bar.go with foo/bar_test.go present enqueues test and build."""
        actions = classifier.classify(FileModifiedEvent(str(project_root / "foo" / "bar.go")))

        assert _tasks(actions) == [
            Task(kind=TaskKind.BINARY_TEST, target="foo"),
            Task(kind=TaskKind.BUILD_BINARY, target="foo"),
        ]

    def test_module_with_omitted_tests(self, project_root, path_filter, settings):
        """Omitting foo/bar_test.go leaves only the build."""
        config_file = project_root / "project.toml"
        config_file.write_text('[package]\nname = "webapp"\nomit_tests = ["foo/bar_test.go"]\n')
        classifier = EventClassifier(
            str(project_root), path_filter, ProjectConfigStore(config_file), settings
        )

        actions = classifier.classify(FileModifiedEvent(str(project_root / "foo" / "bar.go")))

        assert _tasks(actions) == [Task(kind=TaskKind.BUILD_BINARY, target="foo")]

    def test_module_without_tests(self, classifier, project_root):
        actions = classifier.classify(FileModifiedEvent(str(project_root / "lib" / "util.go")))

        assert _tasks(actions) == [Task(kind=TaskKind.BUILD_BINARY, target="lib")]

    def test_root_level_source(self, classifier, project_root):
        """Root sources use "." as the module; tests anywhere below the root count."""
        actions = classifier.classify(FileModifiedEvent(str(project_root / "main.go")))

        assert _tasks(actions) == [
            Task(kind=TaskKind.BINARY_TEST, target="."),
            Task(kind=TaskKind.BUILD_BINARY, target="."),
        ]

    def test_test_file_change_rebuilds_module(self, classifier, project_root):
        actions = classifier.classify(FileModifiedEvent(str(project_root / "foo" / "bar_test.go")))

        assert Task(kind=TaskKind.BUILD_BINARY, target="foo") in _tasks(actions)

    def test_asset_change_needs_nothing(self, classifier, project_root):
        event = FileModifiedEvent(str(project_root / "assets" / "stylesheets" / "app.styl"))
        assert classifier.classify(event) == []


class TestConfigChanges:
    """Tests for configuration file modifications."""

    def test_config_modification_reloads(self, classifier, project_root):
        path = str(project_root / "project.toml")
        actions = classifier.classify(FileModifiedEvent(path))

        assert actions == [ClassifiedAction(ActionType.RELOAD_CONFIG, path=path)]

    def test_nested_config_name_is_not_config(self, classifier, project_root):
        (project_root / "foo" / "project.toml").write_text("")
        actions = classifier.classify(FileModifiedEvent(str(project_root / "foo" / "project.toml")))

        assert actions == []

    def test_config_created_is_not_reload(self, classifier, project_root):
        assert classifier.classify(FileCreatedEvent(str(project_root / "project.toml"))) == []

    @pytest.mark.parametrize("config_file", ["./project.toml", "conf/../project.toml", None])
    def test_config_file_spellings(self, project_root, path_filter, config_store, config_file):
        """Any spelling of the configured path matches the file on disk (None means absolute)."""
        config_file = config_file or str(project_root / "project.toml")
        classifier = EventClassifier(
            str(project_root), path_filter, config_store, WatchSettings(config_file=config_file)
        )
        path = str(project_root / "project.toml")

        actions = classifier.classify(FileModifiedEvent(path))

        assert actions == [ClassifiedAction(ActionType.RELOAD_CONFIG, path=path)]

    def test_config_in_subdirectory(self, project_root, path_filter, config_store):
        classifier = EventClassifier(
            str(project_root), path_filter, config_store, WatchSettings(config_file="conf/project.toml")
        )

        assert classifier.classify(FileModifiedEvent(str(project_root / "project.toml"))) == []
        assert classifier.classify(FileModifiedEvent(str(project_root / "conf" / "project.toml")))[0].type == (
            ActionType.RELOAD_CONFIG
        )


class TestDirectoryEvents:
    """Tests for directory creation and removal."""

    def test_directory_created(self, classifier, project_root):
        path = str(project_root / "baz")
        actions = classifier.classify(DirCreatedEvent(path))

        assert actions == [ClassifiedAction(ActionType.REGISTER_DIRECTORY, path=path)]

    def test_directory_created_reported_as_file(self, classifier, project_root):
        """Some backends report a created directory without the directory flag."""
        (project_root / "baz").mkdir()
        path = str(project_root / "baz")

        actions = classifier.classify(FileCreatedEvent(path))

        assert actions == [ClassifiedAction(ActionType.REGISTER_DIRECTORY, path=path)]

    def test_file_created_needs_nothing(self, classifier, project_root):
        assert classifier.classify(FileCreatedEvent(str(project_root / "foo" / "new.go"))) == []

    def test_directory_deleted(self, classifier, project_root):
        path = str(project_root / "lib")
        actions = classifier.classify(DirDeletedEvent(path))

        assert actions == [ClassifiedAction(ActionType.DEREGISTER_DIRECTORY, path=path)]

    def test_file_deleted_needs_nothing(self, classifier, project_root):
        assert classifier.classify(FileDeletedEvent(str(project_root / "foo" / "bar.go"))) == []

    def test_directory_modified_needs_nothing(self, classifier, project_root):
        assert classifier.classify(DirModifiedEvent(str(project_root / "foo"))) == []


class TestMoveEvents:
    """Tests for renames inside and across the project tree."""

    def test_directory_rename(self, classifier, project_root):
        """mv lib lib2 drops the old registration and registers the new tree."""
        (project_root / "lib").rename(project_root / "lib2")
        old, new = str(project_root / "lib"), str(project_root / "lib2")

        actions = classifier.classify(DirMovedEvent(old, new))

        assert actions == [
            ClassifiedAction(ActionType.DEREGISTER_DIRECTORY, path=old),
            ClassifiedAction(ActionType.REGISTER_DIRECTORY, path=new, recursive=True),
        ]

    def test_directory_moved_into_ignored_prefix(self, classifier, project_root):
        old, new = str(project_root / "lib"), str(project_root / "public" / "lib")

        actions = classifier.classify(DirMovedEvent(old, new))

        assert actions == [ClassifiedAction(ActionType.DEREGISTER_DIRECTORY, path=old)]

    def test_directory_moved_out_of_ignored_prefix(self, classifier, project_root):
        old, new = str(project_root / "node_modules" / "pkg"), str(project_root / "pkg")

        actions = classifier.classify(DirMovedEvent(old, new))

        assert actions == [ClassifiedAction(ActionType.REGISTER_DIRECTORY, path=new, recursive=True)]

    def test_directory_moved_out_of_tree(self, classifier, project_root):
        old = str(project_root / "lib")
        new = str(project_root.parent / "elsewhere")

        actions = classifier.classify(DirMovedEvent(old, new))

        assert actions == [ClassifiedAction(ActionType.DEREGISTER_DIRECTORY, path=old)]

    def test_file_moved_onto_source(self, classifier, project_root):
        """Editors that save through a temporary file still trigger a rebuild."""
        event = FileMovedEvent(str(project_root / "lib" / ".util.go.swp"), str(project_root / "lib" / "util.go"))

        assert _tasks(classifier.classify(event)) == [Task(kind=TaskKind.BUILD_BINARY, target="lib")]

    def test_file_moved_into_ignored_prefix(self, classifier, project_root):
        event = FileMovedEvent(str(project_root / "lib" / "util.go"), str(project_root / "public" / "util.go"))
        assert classifier.classify(event) == []

    def test_move_never_mixes_directory_and_task_actions(self, classifier, project_root):
        (project_root / "lib").rename(project_root / "lib.go")
        event = DirMovedEvent(str(project_root / "lib"), str(project_root / "lib.go"))

        types = {action.type for action in classifier.classify(event)}

        assert ActionType.ENQUEUE_TASK not in types


class TestIgnoredPaths:
    """Tests for events under ignored prefixes."""

    @pytest.mark.parametrize("relative", [
        "node_modules/jquery/index.go",
        "NODE_MODULES/x.js",
        ".git/objects/ab",
        "public/app.go",
    ])
    def test_ignored_modification(self, classifier, project_root, relative):
        assert classifier.classify(FileModifiedEvent(str(project_root / relative))) == []

    def test_ignored_directory_created(self, classifier, project_root):
        """An ignored directory never produces a registration action."""
        assert classifier.classify(DirCreatedEvent(str(project_root / "node_modules" / "left-pad"))) == []

    def test_empty_path(self, classifier):
        assert classifier.classify(FileModifiedEvent("")) == []


class TestHasTests:
    """Tests for EventClassifier.has_tests."""

    def test_nested_test_files_count(self, classifier, project_root):
        (project_root / "lib" / "sub").mkdir()
        (project_root / "lib" / "sub" / "util_test.go").write_text("package sub\n")

        assert classifier.has_tests("lib") is True

    def test_missing_module(self, classifier):
        assert classifier.has_tests("does-not-exist") is False

    def test_omission_uses_current_config(self, project_root, path_filter, settings):
        store = ProjectConfigStore(project_root / "project.toml")
        classifier = EventClassifier(str(project_root), path_filter, store, settings)
        assert classifier.has_tests("foo") is True

        store.replace_sections(ProjectConfig(package={"omit_tests": ["foo/bar_test.go"]}))

        assert classifier.has_tests("foo") is False
