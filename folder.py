"""
Encrypter File Selection
========================

A lazily expanded file tree the user ticks files and folders in, and the
batch driver that encrypts every ticked file once.

Each file goes through :meth:`encrypter.BlockContainerCodec.encode_file`
on its own; a failed file or an unlistable folder is recorded and the
batch moves on.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

import encrypter

logger = logging.getLogger(__name__)


class FolderError(encrypter.EncrypterError):
    """A directory could not be listed."""


@dataclass
class FolderNode:
    """One entry of the file tree."""

    path: str
    is_folder: bool = True
    expanded: bool = False
    selected: bool = False
    subfolders: List["FolderNode"] = field(default_factory=list)

    @property
    def name(self) -> str:
        return Path(self.path).name or self.path

    def find(self, path: str) -> Optional["FolderNode"]:
        """Return the node for *path* within the loaded part of the tree."""
        if os.path.normpath(self.path) == os.path.normpath(path):
            return self
        for child in self.subfolders:
            found = child.find(path)
            if found is not None:
                return found
        return None


def expand(node: FolderNode) -> None:
    """Load one level of children under *node*, sorted by name."""
    logger.debug("expanding %s", node.path)
    try:
        with os.scandir(node.path) as it:
            entries = [
                FolderNode(
                    path=entry.path,
                    is_folder=entry.is_dir(follow_symlinks=False),
                )
                for entry in it
            ]
    except OSError as exc:
        raise FolderError(f"Cannot list {node.path}: {exc.strerror}") from exc
    entries.sort(key=lambda n: n.name)
    node.subfolders = entries
    node.expanded = True


def iter_selected_files(
    node: FolderNode,
    on_error: Optional[Callable[[FolderNode, FolderError], None]] = None,
) -> Iterator[FolderNode]:
    """
    Yield selected files depth-first.

    A selected folder stands for every file beneath it; unexpanded parts
    of its subtree are loaded on the way.  A folder that cannot be listed
    raises :class:`FolderError`, or is passed to *on_error* and skipped.
    """
    if node.selected:
        yield from _iter_files(node, on_error)
        return
    for child in node.subfolders:
        yield from iter_selected_files(child, on_error)


def _iter_files(node: FolderNode, on_error) -> Iterator[FolderNode]:
    if not node.is_folder:
        yield node
        return
    if not node.expanded:
        try:
            expand(node)
        except FolderError as exc:
            if on_error is None:
                raise
            on_error(node, exc)
            return
    for child in node.subfolders:
        yield from _iter_files(child, on_error)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of encrypting one selected file, or of listing one folder."""

    source: Path
    output: Path
    error: Optional[encrypter.EncrypterError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def encrypt_selection(
    root: FolderNode,
    public_key: encrypter.KeyHandle,
    *,
    codec: Optional[encrypter.BlockContainerCodec] = None,
    output_for: Callable[[Path], Path] = encrypter.default_encrypted_path,
    file_callback: Optional[Callable[[int, int, Path], None]] = None,
    progress_callback: Optional[encrypter.ProgressCallback] = None,
) -> List[BatchResult]:
    """
    Encrypt every file selected under *root*.

    Parameters
    ----------
    output_for : callable(source) -> destination
        Defaults to appending the ``x`` suffix.
    file_callback : callable(index, count, source)
        Called before each file is started.
    progress_callback : callable(bytes_processed, total_bytes)
        Passed to :meth:`encrypter.BlockContainerCodec.encode_file` for
        each file in turn.

    A folder that cannot be listed yields a failed result whose source
    and output are the folder itself.
    """
    codec = codec or encrypter.BlockContainerCodec()
    results: List[BatchResult] = []

    # (path, listing error) in tree order
    entries: List[Tuple[Path, Optional[FolderError]]] = []

    def _unlistable(node: FolderNode, exc: FolderError) -> None:
        logger.warning("Skipping folder %s: %s", node.path, exc)
        entries.append((Path(node.path), exc))

    for node in iter_selected_files(root, _unlistable):
        entries.append((Path(node.path), None))

    count = sum(1 for _, exc in entries if exc is None)
    index = 0
    for source, listing_error in entries:
        if listing_error is not None:
            results.append(BatchResult(source, source, listing_error))
            continue
        if file_callback:
            file_callback(index, count, source)
        index += 1
        output = output_for(source)
        try:
            codec.encode_file(source, output, public_key, progress_callback=progress_callback)
        except encrypter.EncrypterError as exc:
            logger.warning("Skipping %s: %s", source, exc)
            results.append(BatchResult(source, output, exc))
        else:
            results.append(BatchResult(source, output))

    failed = sum(1 for r in results if not r.ok)
    logger.info("Batch finished: %d encrypted, %d failed", len(results) - failed, failed)
    return results
