"""
Remote file tree: node type, lazy directory listing and in-memory lookup
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, TYPE_CHECKING
from .. import config as _cfg
from ..errors import TransportError, TreeFetchError, MalformedTreeResponse
from ..utils.logging import vlog

if TYPE_CHECKING:
    from ..core.api_client import ApiClient
    from .deployment import Deployment


class NodeKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    LAMBDA = "lambda"


@dataclass(frozen=True)
class TreeNode:
    """
    One entry of the remote tree.

    ``children`` is None when the listing did not include them (lazy
    directory) and a tuple, possibly empty, when it did.
    """
    name: str
    kind: NodeKind
    link: Optional[str] = None
    children: Optional[tuple["TreeNode", ...]] = None

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    @classmethod
    def from_dict(cls, raw: dict) -> Optional["TreeNode"]:
        """Build a node from an API entry; unknown entry types give None."""
        try:
            kind = NodeKind(raw.get("type"))
        except ValueError:
            vlog(f"  [tree] ignoring entry {raw.get('name')!r} of type {raw.get('type')!r}")
            return None
        name = str(raw.get("name", ""))
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            vlog(f"  [tree] ignoring entry with unusable name {name!r}")
            return None
        link = raw.get("link") if kind is NodeKind.FILE else None
        children = None
        if kind is NodeKind.DIRECTORY and isinstance(raw.get("children"), list):
            children = parse_nodes(raw["children"])
        return cls(name=name, kind=kind, link=link, children=children)


def parse_nodes(entries: Iterable) -> tuple[TreeNode, ...]:
    nodes = []
    for raw in entries:
        if not isinstance(raw, dict):
            continue
        node = TreeNode.from_dict(raw)
        if node is not None:
            nodes.append(node)
    return tuple(nodes)


def join_rel(parent_rel: str, name: str) -> str:
    return f"{parent_rel}/{name}" if parent_rel else name


class TreeCache:
    """
    Children fetched lazily per directory, keyed by relative path.

    Nodes stay immutable; a directory listed once is never listed again
    in the same process.
    """

    def __init__(self):
        self._children: dict[str, tuple[TreeNode, ...]] = {}

    def __contains__(self, rel_dir: str):
        return rel_dir in self._children

    def put(self, rel_dir: str, children: tuple[TreeNode, ...]):
        self._children[rel_dir] = children

    def children_of(self, node: TreeNode, rel_dir: str) -> Optional[tuple[TreeNode, ...]]:
        """Known children of *node*, or None if they were never loaded."""
        if node.children is not None:
            return node.children
        return self._children.get(rel_dir)


def fetch_children(client: "ApiClient", deployment: "Deployment",
                   rel_dir: str = "") -> tuple[TreeNode, ...]:
    """
    List one directory level of the deployment source tree.

    ``rel_dir=""`` lists the top level. Raises TreeFetchError when the
    request or decoding fails and MalformedTreeResponse when the answer is
    not a list.
    """
    base = f"{_cfg.TREE_BASE}/{rel_dir}" if rel_dir else _cfg.TREE_BASE
    params = {"base": base}
    if deployment.team_id:
        params["teamId"] = deployment.team_id
    url = f"{_cfg.DASHBOARD_BASE}/api/file-tree/{deployment.url}"
    try:
        payload = client.get_json(url, params)
    except TransportError as exc:
        raise TreeFetchError(str(exc), status=exc.status, body=exc.body) from exc
    if not isinstance(payload, list):
        raise MalformedTreeResponse(rel_dir, payload)
    return parse_nodes(payload)


def find_node(roots: Iterable[TreeNode], rel_path: str,
              cache: Optional[TreeCache] = None) -> Optional[TreeNode]:
    """Locate a file node by relative path using only what is in memory."""
    parts = rel_path.split("/")
    level: Optional[Iterable[TreeNode]] = roots
    rel = ""
    last = len(parts) - 1
    for i, part in enumerate(parts):
        if level is None:
            return None
        wanted = NodeKind.FILE if i == last else NodeKind.DIRECTORY
        match = next((n for n in level if n.name == part and n.kind is wanted), None)
        if match is None or i == last:
            return match
        rel = join_rel(rel, part)
        level = cache.children_of(match, rel) if cache else match.children
    return None
