"""Folder tree for prefix-keyed storage listings.

The storage API returns folders as a flat list of ``{key, name}`` records
where hierarchy is implied by ``/``-delimited keys ("a/", "a/b/", "c/").
``FolderTree`` rebuilds the hierarchy and keeps the set of expanded keys as
its only state; the visible node list is recomputed in full on every
expand/collapse/selection event.

Usage::

    tree = FolderTree(folders, on_select=lambda key: ...)
    tree.toggle("a/")
    for node in tree.visible_nodes:
        print("  " * node.depth, node.name)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from urbox.schemas.storage import FolderRecord

ROOT_KEY = ""
ROOT_NAME = "Home"

# Root may come back as "" or "/" depending on the listing
_ROOT_KEYS = frozenset({ROOT_KEY, "/"})


# ── Key helpers ──────────────────────────────────────────────────────


def parent_key(key: str) -> str:
    """Parent prefix of a key: "a/b/" -> "a/", "a/b.txt" -> "a/", "a/" -> ""."""
    if not key:
        return ROOT_KEY
    trimmed = key[:-1] if key.endswith("/") else key
    idx = trimmed.rfind("/")
    if idx == -1:
        return ROOT_KEY
    return trimmed[: idx + 1]


def is_within(key: str, ancestor: str) -> bool:
    """True if ``key`` is ``ancestor`` itself or lies anywhere below it."""
    if not ancestor:
        return True
    return key == ancestor or key.startswith(ancestor if ancestor.endswith("/") else ancestor + "/")


def build_adjacency(folders: Iterable[FolderRecord]) -> dict[str, list[FolderRecord]]:
    """Map parent key -> direct children, sorted case-insensitively by name.

    Every record's own key is registered too, so leaves map to an empty list.
    """
    adjacency: dict[str, list[FolderRecord]] = {ROOT_KEY: []}
    for folder in folders:
        if not folder.key:
            continue
        adjacency.setdefault(parent_key(folder.key), []).append(folder)
        adjacency.setdefault(folder.key, [])

    for children in adjacency.values():
        children.sort(key=lambda f: f.name.lower())
    return adjacency


def _coerce(record: FolderRecord | Mapping[str, Any]) -> FolderRecord:
    if isinstance(record, FolderRecord):
        return record
    return FolderRecord.model_validate(record)


# ── Breadcrumbs ──────────────────────────────────────────────────────


def breadcrumbs(path: str) -> list[str]:
    """Segments of a folder path: "a/b/" -> ["a", "b"], "" -> []."""
    if not path:
        return []
    trimmed = path[:-1] if path.endswith("/") else path
    return trimmed.split("/")


def breadcrumb_path(path: str, index: int) -> str:
    """Path of the breadcrumb at ``index``: ("a/b/c/", 1) -> "a/b/"."""
    parts = breadcrumbs(path)
    if not 0 <= index < len(parts):
        raise IndexError(f"Breadcrumb {index} out of range for {path!r}")
    return "".join(f"{part}/" for part in parts[: index + 1])


def child_path(path: str, folder_name: str) -> str:
    return f"{path}{folder_name}/"


# ── Tree ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TreeNode:
    """One visible row of the tree."""

    record: FolderRecord
    depth: int
    has_children: bool
    expanded: bool
    # One flag per ancestor level: was that ancestor the last of its siblings.
    # Renderers use it to decide where to draw vertical guide lines.
    ancestor_is_last: tuple[bool, ...]

    @property
    def key(self) -> str:
        return self.record.key

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def is_root(self) -> bool:
        return self.depth == 0


class FolderTree:
    """Expandable, single-selection view over a flat folder listing."""

    def __init__(
        self,
        folders: Iterable[FolderRecord | Mapping[str, Any]],
        *,
        initial_selection: str | None = None,
        on_select: Callable[[str | None], None] | None = None,
    ) -> None:
        self._folders = [_coerce(f) for f in folders]
        root = next((f for f in self._folders if not f.key), None)
        if root is None or not root.name:
            root = FolderRecord(key=ROOT_KEY, name=ROOT_NAME)
        self._root = root
        self._adjacency = build_adjacency(self._folders)
        self._expanded: set[str] = set(_ROOT_KEYS)
        self._selected = initial_selection
        self._on_select = on_select
        self._visible: list[TreeNode] = []
        self._rebuild()

    # ── Read side ────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        """No folders were supplied (callers show an empty state instead)."""
        return not self._folders

    @property
    def visible_nodes(self) -> list[TreeNode]:
        return list(self._visible)

    @property
    def selected_key(self) -> str | None:
        return self._selected

    @property
    def expanded_keys(self) -> frozenset[str]:
        return frozenset(self._expanded)

    @property
    def adjacency(self) -> Mapping[str, list[FolderRecord]]:
        return self._adjacency

    def children_of(self, key: str) -> list[FolderRecord]:
        return list(self._adjacency.get(key, []))

    # ── Events ───────────────────────────────────────────────────

    def toggle(self, key: str) -> None:
        if key in self._expanded:
            self._expanded.discard(key)
        else:
            self._expanded.add(key)
        self._rebuild()

    def expand(self, key: str) -> None:
        self._expanded.add(key)
        self._rebuild()

    def collapse(self, key: str) -> None:
        self._expanded.discard(key)
        self._rebuild()

    def expand_all(self) -> None:
        self._expanded.update(k for k, children in self._adjacency.items() if children)
        self._rebuild()

    def select(self, key: str) -> bool:
        """Select a folder. Returns False (and skips the callback) if already selected."""
        if key == self._selected:
            return False
        self._selected = key
        self._rebuild()
        if self._on_select is not None:
            self._on_select(key)
        return True

    # ── Internals ────────────────────────────────────────────────

    def _rebuild(self) -> None:
        nodes: list[TreeNode] = []
        self._walk(self._root, 0, (), nodes)
        self._visible = nodes

    def _walk(
        self,
        record: FolderRecord,
        depth: int,
        ancestor_is_last: tuple[bool, ...],
        out: list[TreeNode],
    ) -> None:
        children = self._adjacency.get(record.key, [])
        expanded = record.key in self._expanded
        out.append(
            TreeNode(
                record=record,
                depth=depth,
                has_children=bool(children),
                expanded=expanded,
                ancestor_is_last=ancestor_is_last,
            )
        )
        if not expanded:
            return
        last = len(children) - 1
        for i, child in enumerate(children):
            self._walk(child, depth + 1, (*ancestor_is_last, i == last), out)
