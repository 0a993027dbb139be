"""Operations (links, tree listing, transfer, deployment lookup, report)"""
from .links import resolve_file_url
from .tree import NodeKind, TreeNode, TreeCache, fetch_children, find_node
from .transfer import fetch_file, write_file
from .deployment import Deployment, resolve_deployment
from .report import RunReport, build_report, render_tree, emit_report

__all__ = [
    "resolve_file_url",
    "NodeKind", "TreeNode", "TreeCache", "fetch_children", "find_node",
    "fetch_file", "write_file",
    "Deployment", "resolve_deployment",
    "RunReport", "build_report", "render_tree", "emit_report",
]
