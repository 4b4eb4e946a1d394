"""Shared test fixtures."""

from collections.abc import Iterator

import pytest

from knowledge_base.core.database.store import Database
from knowledge_base.core.workspace import Workspace
from knowledge_base.models.node import Node
from tests.unit.fakes import RecordingNotifier, StepClock
from tests.unit.helpers import make_doc, make_folder


@pytest.fixture
def db() -> Iterator[Database]:
    """Return an open in-memory database."""
    database = Database(":memory:").open()
    yield database
    database.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def ws(db: Database, notifier: RecordingNotifier) -> Workspace:
    return Workspace.build(db, notifier=notifier, clock=StepClock())


@pytest.fixture
def populated(ws: Workspace) -> dict[str, Node]:
    """Build a small tree and return its nodes keyed by title.

    Projects/            (folder)
        Python Notes     Python is great for scripting
        Rust Notes       Rust is fast and has memory safety
        Archive/         (folder)
            Old Ideas    Python 2 migration checklist
    Recipes              Python cake recipe, not a real snake
    """
    projects = make_folder(ws, "Projects")
    python = make_doc(ws, "Python Notes", "Python is great for scripting", projects.id)
    rust = make_doc(ws, "Rust Notes", "Rust is fast and has memory safety", projects.id)
    archive = make_folder(ws, "Archive", projects.id)
    old = make_doc(ws, "Old Ideas", "Python 2 migration checklist", archive.id)
    recipes = make_doc(ws, "Recipes", "Python cake recipe, not a real snake")
    return {
        n.title: ws.tree.require(n.id) for n in (projects, python, rust, archive, old, recipes)
    }
