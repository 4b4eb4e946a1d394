"""Sample content for a fresh knowledge base."""

from loguru import logger

from knowledge_base.core.tree.store import TreeStore
from knowledge_base.models.node import NewNode, Node, NodeKind

WELCOME_TITLE = "Welcome"
GETTING_STARTED_TITLE = "Getting Started"

GETTING_STARTED_CONTENT = """\
# Welcome to Your Knowledge Base

This is your personal knowledge management system. Here you can:

- Create and edit documents using Markdown
- Organize content in folders
- Search across all your documents

## Quick Start

1. Create a new document or folder
2. Write in Markdown format
3. Move documents between folders to organize them
4. Use search to find content quickly

Happy writing!
"""


def seed_sample_tree(tree: TreeStore, *, created_by: str) -> Node | None:
    """Create the Welcome folder with a Getting Started document.

    Returns the folder, or None when a root Welcome folder already exists.
    """
    with tree.db.transaction():
        if any(n.title == WELCOME_TITLE for n in tree.list_children(None)):
            logger.info("Sample tree already present, nothing to seed")
            return None

        folder = tree.create(
            NewNode(title=WELCOME_TITLE, kind=NodeKind.FOLDER, created_by=created_by)
        )
        tree.create(
            NewNode(
                title=GETTING_STARTED_TITLE,
                kind=NodeKind.DOCUMENT,
                created_by=created_by,
                content=GETTING_STARTED_CONTENT,
                parent_id=folder.id,
            )
        )
    logger.info("Seeded sample tree under {}", folder.id)
    return folder
