"""
Run summary: counts, size, file-type breakdown and directory tree
"""
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, TYPE_CHECKING
from ..state.outcomes import Outcomes

if TYPE_CHECKING:
    from ..state.run_log import RunLog

TOP_EXTENSIONS = 10
NO_EXTENSION = "no-extension"


@dataclass
class RunReport:
    downloaded: list[str]
    skipped: list[str]
    failed: list[str]
    total_bytes: int = 0
    extensions: list[tuple[str, int]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.downloaded) + len(self.skipped)

    @property
    def total_mb(self) -> str:
        return f"{self.total_bytes / (1024 * 1024):.2f}"


def extension_of(rel_path: str) -> str:
    suffix = PurePosixPath(rel_path).suffix
    return suffix[1:] if suffix else NO_EXTENSION


def build_report(outcomes: Outcomes, source_dir: Path) -> RunReport:
    """Aggregate the outcome ledger; sizes come from the files on disk."""
    report = RunReport(outcomes.downloaded, outcomes.skipped, outcomes.failed)
    present = report.downloaded + report.skipped

    for rel in present:
        try:
            report.total_bytes += (source_dir / rel).stat().st_size
        except OSError:
            pass

    counts = Counter(extension_of(rel) for rel in present)
    report.extensions = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_EXTENSIONS]
    return report


def render_tree(rel_paths: Iterable[str]) -> list[str]:
    """
    Render relative paths as a box-drawing tree.
    Directories come before files; each level is sorted by name.
    """
    root: dict = {}
    for rel in rel_paths:
        parts = rel.split("/")
        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                child = node[part] = {}
            node = child
        node.setdefault(parts[-1], None)

    lines: list[str] = []

    def walk(node: dict, prefix: str):
        entries = sorted(node.items(), key=lambda kv: (kv[1] is None, kv[0]))
        for i, (name, sub) in enumerate(entries):
            last = i == len(entries) - 1
            icon = "📄 " if sub is None else "📁 "
            lines.append(prefix + ("└── " if last else "├── ") + icon + name)
            if sub is not None:
                walk(sub, prefix + ("    " if last else "│   "))

    walk(root, "")
    return lines


def emit_report(report: RunReport, run_log: "RunLog"):
    """Write the summary; the tree and skipped list go to the console only in verbose mode."""
    run_log.info("📊 Running comparison...", always=True)
    run_log.info(always=True)
    run_log.info(f"📁 Total files: {report.total}", always=True)
    run_log.info(f"   ✅ Downloaded: {len(report.downloaded)}", always=True)
    run_log.info(f"   ⏭️  Skipped: {len(report.skipped)}", always=True)
    run_log.info(f"   ❌ Failed: {len(report.failed)}", always=True)
    run_log.info(f"💾 Total size: {report.total_mb} MB", always=True)
    run_log.info(always=True)

    run_log.info("📈 File types breakdown:", always=True)
    for ext, count in report.extensions:
        run_log.info(f"   {ext:<15} {count:>4} files", always=True)

    run_log.info()
    run_log.info("🌳 File structure tree:")
    run_log.info()
    for line in render_tree(report.downloaded + report.skipped):
        run_log.info(line)

    if report.skipped:
        run_log.info()
        run_log.info(f"⏭️ Skipped files (already existed): {len(report.skipped)}")
        for rel in report.skipped:
            run_log.info(f"   {rel}")
