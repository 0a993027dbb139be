"""
Main download engine - tree walk, session orchestration and retry pass
"""
import errno
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence
from .. import config as _cfg
from ..core.api_client import ApiClient
from ..core.session import SessionPlan, ResumeChoice, plan_session
from ..errors import (
    TransportError, ProviderError, UnresolvableLink, FilesystemError,
    TreeFetchError, MalformedTreeResponse,
)
from ..operations.deployment import Deployment, strip_prefix
from ..operations.links import resolve_file_url
from ..operations.tree import NodeKind, TreeNode, TreeCache, fetch_children, find_node, join_rel
from ..operations.transfer import fetch_file, write_file
from ..operations.report import RunReport, build_report, emit_report
from ..state.outcomes import OutcomeRecord, OutcomeState, Outcomes
from ..state.run_log import RunLog, failed_line, downloaded_line, skipped_line
from ..state.mirror_state import is_cached_hit, has_existing_content, existing_file_count, prior_failures
from ..utils.logging import log
from ..utils.spinner import Spinner

# Errors that fail a single file without stopping the walk
FILE_ERRORS = (UnresolvableLink, ProviderError, TransportError, FilesystemError)


class TreeWalker:
    """
    Depth-first, pre-order walk of the remote tree into *source_dir*.

    Children are visited in the order the API returns them. With
    *retry_paths* set, only those files are fetched and directories that
    cannot contain one of them are neither created nor listed.
    """

    def __init__(self, client: ApiClient, deployment: Deployment, source_dir: Path,
                 run_log: RunLog, outcomes: Optional[Outcomes] = None,
                 cache: Optional[TreeCache] = None,
                 retry_paths: Optional[frozenset] = None):
        self.client = client
        self.deployment = deployment
        self.source_dir = source_dir
        self.run_log = run_log
        self.outcomes = outcomes if outcomes is not None else Outcomes()
        self.cache = cache if cache is not None else TreeCache()
        self.retry_paths = retry_paths

    # ── walk ───────────────────────────────────────────────────────────────

    def walk(self, roots: Sequence[TreeNode]):
        for node in roots:
            self.visit(node, "")

    def visit(self, node: TreeNode, parent_rel: str):
        rel = join_rel(parent_rel, node.name)
        if node.kind is NodeKind.DIRECTORY:
            self._visit_directory(node, rel)
        elif node.kind is NodeKind.FILE:
            self._visit_file(node, rel)
        else:
            self.run_log.info(f"⏭️  Skipping lambda: {(self.source_dir / rel).as_posix()}")

    def _may_contain_retry_path(self, rel: str) -> bool:
        prefix = rel + "/"
        return any(p.startswith(prefix) for p in self.retry_paths)

    def _visit_directory(self, node: TreeNode, rel: str):
        if self.retry_paths is not None and not self._may_contain_retry_path(rel):
            return

        dir_path = self.source_dir / rel
        try:
            dir_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            if exc.errno == errno.ENOSPC:
                raise
            self.run_log.error(f"❌ Failed to create directory {dir_path.as_posix()}: {exc}")
            return

        try:
            children = self.children(node, rel)
        except (TreeFetchError, MalformedTreeResponse) as exc:
            self.run_log.error(f"❌ Failed to get directory tree for {rel}: {exc}")
            return

        for child in children:
            self.visit(child, rel)

    def children(self, node: TreeNode, rel: str) -> tuple[TreeNode, ...]:
        """Children of a directory, listed remotely at most once."""
        known = self.cache.children_of(node, rel)
        if known is not None:
            return known
        fetched = fetch_children(self.client, self.deployment, rel)
        self.cache.put(rel, fetched)
        return fetched

    def _visit_file(self, node: TreeNode, rel: str):
        path = self.source_dir / rel
        if self.retry_paths is not None:
            if rel not in self.retry_paths:
                return
        elif is_cached_hit(path):
            self.run_log.info(skipped_line(path))
            self.outcomes.record(rel, OutcomeState.SKIPPED)
            return
        self.download(node, rel)

    # ── single file ────────────────────────────────────────────────────────

    def download(self, node: TreeNode, rel: str, announce: bool = False) -> OutcomeRecord:
        """Fetch and write one file; any per-file error becomes a FAILED record."""
        path = self.source_dir / rel
        try:
            url = resolve_file_url(node.link, self.deployment.id, self.deployment.team_id)
            content = fetch_file(self.client, url)
            write_file(path, content)
        except FILE_ERRORS as exc:
            self.run_log.error(failed_line(path, exc))
            return self.outcomes.record(rel, OutcomeState.FAILED, str(exc))
        self.run_log.info(downloaded_line(path), always=announce)
        return self.outcomes.record(rel, OutcomeState.DOWNLOADED)


def retry_failed_pass(walker: TreeWalker, roots: Sequence[TreeNode]) -> list[str]:
    """
    Re-attempt every file currently marked FAILED, locating its node in the
    in-memory tree. Returns the paths that are still failing.
    """
    run_log = walker.run_log
    attempted = walker.outcomes.failed
    run_log.info(always=True)
    run_log.info("🔄 Retrying failed downloads...", always=True)
    run_log.info(always=True)

    for rel in attempted:
        node = find_node(roots, rel, walker.cache)
        if node is None:
            run_log.info(f"   ⏭️ Could not find tree entry for: {rel}", always=True)
            continue
        walker.download(node, rel, announce=True)

    still_failed = [rel for rel in attempted
                    if walker.outcomes.get(rel).state is OutcomeState.FAILED]
    run_log.info(always=True)
    if still_failed:
        run_log.info(f"❌ {len(still_failed)} file(s) still failed.", always=True)
    else:
        run_log.info("✅ All previously failed files downloaded successfully!", always=True)
    return still_failed


def retry_hint(deployment: Deployment) -> str:
    """The command line that retries only the files that failed."""
    parts = ["vdsource", "download", "--deployment", strip_prefix(deployment.id)]
    if deployment.team_id:
        parts += ["--team", deployment.team_id]
    default_root = Path(_cfg.DEFAULT_SETTINGS["output"]).expanduser().resolve()
    if _cfg.OUTPUT_ROOT.resolve() != default_root:
        parts += ["--output", str(_cfg.OUTPUT_ROOT)]
    parts.append("--retry-failed")
    return shlex.join(parts)


@dataclass
class RunResult:
    plan: SessionPlan
    outcomes: Outcomes
    report: RunReport
    still_failed: list[str] = field(default_factory=list)
    roots: tuple = ()


def run_download(client: ApiClient, deployment: Deployment, run_log: RunLog, *,
                 retry_failed: bool = False,
                 choose_resume: Optional[Callable[[int, int], ResumeChoice]] = None,
                 confirm_retry: Optional[Callable[[int], bool]] = None,
                 show_spinner: bool = False,
                 cache: Optional[TreeCache] = None) -> Optional[RunResult]:
    """
    Download one deployment's sources into OUTPUT_ROOT/<id>/source.

    *choose_resume(existing_count, failure_count)* is asked when a previous
    download exists; *confirm_retry(failure_count)* is asked once when the
    run ends with failures. Returns None when --retry-failed finds nothing
    to retry. Errors listing the top level propagate.
    """
    deploy_dir = _cfg.get_deploy_dir(deployment.id)
    source_dir = _cfg.get_source_dir(deployment.id)

    # Read the previous log before open() rewrites it
    previous = prior_failures(deploy_dir)
    existing = has_existing_content(source_dir)

    choice = None
    if existing and not retry_failed and choose_resume is not None:
        choice = choose_resume(existing_file_count(source_dir), len(previous))

    plan = plan_session(retry_failed, existing, previous, choice)
    if plan is None:
        log("✅ No failed downloads found in previous log. Nothing to retry!")
        return None

    if plan.clear_output and source_dir.exists():
        shutil.rmtree(source_dir)
    source_dir.mkdir(parents=True, exist_ok=True)

    run_log.open(_cfg.get_log_file(deployment.id), fresh=plan.fresh_log)
    run_log.info(f"📁 Output directory: {source_dir}", always=True)
    run_log.info(always=True)
    if plan.clear_output:
        run_log.info("🗑️  Cleared previous download", always=True)
    elif plan.retry_only:
        run_log.info(f"🔄 Retrying {len(plan.retry_paths)} previously failed file(s)...", always=True)

    run_log.info("📋 Fetching file tree from API...", always=True)
    roots = fetch_children(client, deployment)
    run_log.info(f"✅ Got file tree ({len(roots)} top-level entries)", always=True)
    run_log.info(always=True)

    walker = TreeWalker(client, deployment, source_dir, run_log,
                        cache=cache, retry_paths=plan.retry_paths if plan.retry_only else None)

    run_log.info("⬇️  Downloading files...", always=True)
    spinner = Spinner(walker.outcomes.counts, _cfg.SPINNER_INTERVAL) if show_spinner else None
    if spinner:
        run_log.info("   (Use --verbose to see detailed progress)", always=True)
        spinner.start()
    try:
        walker.walk(roots)
    finally:
        if spinner:
            spinner.stop()

    run_log.info(always=True)
    run_log.info("🎉 All files processed!", always=True)
    run_log.info(always=True)

    report = build_report(walker.outcomes, source_dir)
    emit_report(report, run_log)

    still_failed = walker.outcomes.failed
    if still_failed:
        run_log.info(always=True)
        run_log.info(f"❌ Failed downloads: {len(still_failed)}", always=True)
        for rel in still_failed:
            rec = walker.outcomes.get(rel)
            run_log.info(f"   {rel}: {rec.error}", always=True)

        if confirm_retry is None or confirm_retry(len(still_failed)):
            still_failed = retry_failed_pass(walker, roots)
            report = build_report(walker.outcomes, source_dir)

        if still_failed:
            run_log.info(always=True)
            run_log.info(f"   To retry later: {retry_hint(deployment)}", always=True)

    run_log.info(always=True)
    run_log.info("✨ Download and verification complete!", always=True)
    run_log.info(f"📄 Full log saved to: {run_log.path}", always=True)

    return RunResult(plan, walker.outcomes, report, still_failed, roots)
