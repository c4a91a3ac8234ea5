# Bookmarks - Forest Arena
#
# All nodes live in one dict keyed by id. Folders keep an ordered list of
# child ids, every node keeps its parent id (None for roots). Tree views are
# rebuilt on demand with walk()/children().

from typing import Dict, Iterator, List, Optional

from .models import Bookmark, Folder, Node


class BookmarkForest:
    """Folders and bookmarks, addressed by id."""

    def __init__(self):
        self._nodes: Dict[str, Node] = {}
        self._root_ids: List[str] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return self.walk()

    # ── Lookup ───────────────────────────────────────────────────────

    def get(self, node_id: str) -> Node:
        """Raises KeyError for unknown ids."""
        return self._nodes[node_id]

    def folder(self, folder_id: str) -> Folder:
        node = self._nodes[folder_id]
        if not isinstance(node, Folder):
            raise TypeError(f"{folder_id} is a bookmark, not a folder")
        return node

    def _sibling_ids(self, parent_id: Optional[str]) -> List[str]:
        if parent_id is None:
            return self._root_ids
        return self.folder(parent_id).child_ids

    def children(self, parent_id: Optional[str] = None) -> List[Node]:
        """Direct children of a folder, or the roots when parent_id is None."""
        return [self._nodes[i] for i in self._sibling_ids(parent_id)]

    @property
    def roots(self) -> List[Node]:
        return self.children(None)

    def walk(self, parent_id: Optional[str] = None) -> Iterator[Node]:
        """Depth-first, document order."""
        stack = [iter(self.children(parent_id))]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                continue
            yield node
            if isinstance(node, Folder):
                stack.append(iter(self.children(node.id)))

    def folders(self) -> List[Folder]:
        return [n for n in self.walk() if isinstance(n, Folder)]

    def bookmarks(self, folder_id: Optional[str] = None, recursive: bool = True) -> List[Bookmark]:
        """Bookmarks in document order, optionally limited to one folder."""
        if recursive:
            nodes = self.walk(folder_id)
        else:
            nodes = iter(self.children(folder_id))
        return [n for n in nodes if isinstance(n, Bookmark)]

    def ancestors(self, node_id: str) -> Iterator[Folder]:
        """Enclosing folders, nearest first."""
        parent_id = self._nodes[node_id].parent_id
        while parent_id is not None:
            parent = self.folder(parent_id)
            yield parent
            parent_id = parent.parent_id

    def path_of(self, node_id: str) -> List[str]:
        """Folder names from the root down to (not including) the node."""
        return [f.name for f in reversed(list(self.ancestors(node_id)))]

    def find_child_folder(self, parent_id: Optional[str], name: str) -> Optional[Folder]:
        """Sibling folder under ``parent_id`` whose name matches case-insensitively."""
        wanted = name.strip().casefold()
        for node in self.children(parent_id):
            if isinstance(node, Folder) and node.name.casefold() == wanted:
                return node
        return None

    # ── Mutation ─────────────────────────────────────────────────────

    def add(self, node: Node, parent_id: Optional[str] = None) -> Node:
        """Attach a new node under ``parent_id`` (a folder) or as a root."""
        if node.id in self._nodes:
            raise ValueError(f"duplicate node id {node.id}")
        siblings = self._sibling_ids(parent_id)
        node.parent_id = parent_id
        self._nodes[node.id] = node
        siblings.append(node.id)
        return node

    def add_folder(self, name: str, parent_id: Optional[str] = None, **fields) -> Folder:
        return self.add(Folder(name=name, **fields), parent_id)

    def add_bookmark(self, url: str, parent_id: Optional[str] = None, **fields) -> Bookmark:
        return self.add(Bookmark(url=url, **fields), parent_id)

    def rename(self, folder_id: str, name: str) -> Folder:
        folder = self.folder(folder_id)
        folder.name = name.strip() or folder.name
        return folder

    def move(self, node_id: str, new_parent_id: Optional[str], index: Optional[int] = None) -> Node:
        """Re-parent a node. Moving a folder into its own subtree is refused."""
        node = self._nodes[node_id]
        if new_parent_id is not None:
            if new_parent_id == node_id or any(
                f.id == node_id for f in self.ancestors(new_parent_id)
            ):
                raise ValueError("cannot move a folder into itself")
        target = self._sibling_ids(new_parent_id)

        self._sibling_ids(node.parent_id).remove(node_id)
        if index is None:
            target.append(node_id)
        else:
            target.insert(index, node_id)
        node.parent_id = new_parent_id
        return node

    def remove(self, node_id: str) -> int:
        """Delete a node and, for folders, its whole subtree. Returns nodes removed."""
        node = self._nodes[node_id]
        self._sibling_ids(node.parent_id).remove(node_id)

        doomed = [node_id]
        if isinstance(node, Folder):
            doomed.extend(n.id for n in self.walk(node_id))
        for doomed_id in doomed:
            del self._nodes[doomed_id]
        return len(doomed)
