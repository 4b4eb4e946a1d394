"""Import a directory of markdown files into the document tree."""

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from knowledge_base.config import MAX_TITLE_LENGTH
from knowledge_base.core.tree.store import TreeStore
from knowledge_base.errors import ValidationError
from knowledge_base.models.node import NewNode, NodeKind

MARKDOWN_SUFFIXES = (".md", ".markdown")


@dataclass(frozen=True)
class ImportStats:
    """Summary of an import operation."""

    folders_created: int
    documents_created: int
    files_skipped: int


def _title_for(path: Path) -> str:
    title = path.stem if path.is_file() else path.name
    return title.strip()[:MAX_TITLE_LENGTH] or path.name[:MAX_TITLE_LENGTH]


def _read_markdown(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        msg = f"Cannot import {path}: not valid UTF-8 ({e.reason} at byte {e.start})"
        raise ValidationError(msg) from e


def import_markdown_dir(
    tree: TreeStore,
    source_dir: Path,
    *,
    created_by: str,
    parent_id: str | None = None,
) -> ImportStats:
    """Import source_dir below parent_id (None = root).

    Subdirectories become folders and markdown files become documents, in
    sorted name order so sibling positions follow the file system listing.
    Hidden entries and non-markdown files are skipped.

    Args:
        tree: Tree store to create nodes in.
        source_dir: Directory to walk.
        created_by: User id recorded on every created node.
        parent_id: Folder to import into.

    Returns:
        ImportStats with counts of created and skipped entries.
    """
    if not source_dir.is_dir():
        msg = f"Source directory not found: {source_dir}"
        raise FileNotFoundError(msg)

    folders = 0
    documents = 0
    skipped = 0

    todo: list[tuple[Path, str | None]] = [(source_dir, parent_id)]
    # One transaction: a failure part way leaves nothing behind.
    with tree.db.transaction():
        while todo:
            directory, target_id = todo.pop(0)
            for entry in sorted(directory.iterdir(), key=lambda p: p.name.lower()):
                if entry.name.startswith("."):
                    continue
                if entry.is_dir():
                    folder = tree.create(
                        NewNode(
                            title=_title_for(entry),
                            kind=NodeKind.FOLDER,
                            created_by=created_by,
                            parent_id=target_id,
                        )
                    )
                    folders += 1
                    todo.append((entry, folder.id))
                elif entry.suffix.lower() in MARKDOWN_SUFFIXES:
                    tree.create(
                        NewNode(
                            title=_title_for(entry),
                            kind=NodeKind.DOCUMENT,
                            created_by=created_by,
                            content=_read_markdown(entry),
                            parent_id=target_id,
                        )
                    )
                    documents += 1
                else:
                    logger.debug("Skipping {}", entry)
                    skipped += 1

    logger.info(
        "Import complete: {} folders, {} documents, {} skipped",
        folders, documents, skipped,
    )
    return ImportStats(folders_created=folders, documents_created=documents, files_skipped=skipped)
