"""
Deployment lookup: "latest", raw ids, dpl_ ids and dashboard URLs
"""
import re
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, TYPE_CHECKING
from .. import config as _cfg
from ..errors import DeploymentNotFound, SetupError

if TYPE_CHECKING:
    from ..core.api_client import ApiClient
    from ..state.run_log import RunLog

_DASHBOARD_RE = re.compile(r"vercel\.com/([^/]+)/([^/]+)/([a-zA-Z0-9]+)")

DEPLOYMENT_PREFIX = "dpl_"


@dataclass(frozen=True)
class Deployment:
    id: str
    url: str
    name: str = ""
    team_id: str = ""


class DashboardRef(NamedTuple):
    scope: str
    project: str
    build_id: str


def parse_dashboard_url(text: str) -> Optional[DashboardRef]:
    """Parse https://vercel.com/<scope>/<project>/<id>[/source]."""
    m = _DASHBOARD_RE.search(text)
    if not m:
        return None
    return DashboardRef(*m.groups())


def strip_prefix(deployment_id: str) -> str:
    if deployment_id.startswith(DEPLOYMENT_PREFIX):
        return deployment_id[len(DEPLOYMENT_PREFIX):]
    return deployment_id


def list_teams(client: "ApiClient") -> list[dict]:
    """Teams visible to the token; an error answer counts as no teams."""
    payload = client.get_metadata(f"{_cfg.API_BASE}/v2/teams")
    if not isinstance(payload, dict):
        return []
    teams = payload.get("teams") or []
    return [t for t in teams if isinstance(t, dict) and t.get("id")]


def latest_deployment(client: "ApiClient", project: str = "", team_id: str = "") -> Deployment:
    """Newest READY deployment, optionally limited to one project / team."""
    params = {"limit": 100}
    if team_id:
        params["teamId"] = team_id
    payload = client.get_metadata(f"{_cfg.API_BASE}/v6/deployments", params)
    deployments = payload.get("deployments") if isinstance(payload, dict) else None
    if not deployments:
        raise DeploymentNotFound("No deployments found")

    if project:
        deployments = [d for d in deployments if d.get("name") == project]
        if not deployments:
            raise DeploymentNotFound(f"No deployments found for project: {project}")

    deployments = [d for d in deployments if d.get("state") == "READY"]
    if not deployments:
        raise DeploymentNotFound("No ready deployments found")

    latest = max(deployments, key=lambda d: d.get("created") or 0)
    return Deployment(
        id=latest["uid"],
        url=latest.get("url", ""),
        name=latest.get("name", ""),
        team_id=team_id,
    )


def fetch_deployment(client: "ApiClient", deployment_id: str, team_id: str = ""):
    params = {"teamId": team_id} if team_id else None
    return client.get_metadata(f"{_cfg.API_BASE}/v13/deployments/{deployment_id}", params)


def _resolve_latest(client: "ApiClient", project: str, team: str, run_log: "RunLog",
                    select_team: Callable[[list[dict]], Optional[dict]]) -> Deployment:
    run_log.info("🔍 Fetching latest deployment...", always=True)
    if team:
        dep = latest_deployment(client, project, team)
        run_log.info("✅ Found latest deployment", always=True)
        return dep

    try:
        dep = latest_deployment(client, project)
        run_log.info("✅ Found latest deployment (personal account)", always=True)
        return dep
    except DeploymentNotFound:
        run_log.info("   Not found in personal account, checking teams...", always=True)

    teams = list_teams(client)
    for t in teams:
        try:
            dep = latest_deployment(client, project, t["id"])
        except DeploymentNotFound:
            continue
        run_log.info(f"✅ Found latest deployment in team: {t.get('name', t['id'])}", always=True)
        return dep

    run_log.info("   Auto-detection failed. Let's pick a team manually.", always=True)
    selected = select_team(teams) if teams else None
    dep = latest_deployment(client, project, selected["id"] if selected else "")
    run_log.info("✅ Found latest deployment", always=True)
    return dep


def _scopes_to_try(client: "ApiClient", team: str, url_scope: str,
                   run_log: "RunLog") -> list[tuple[str, str]]:
    """[(team id, label)] in lookup order; "" is the personal account."""
    if team:
        return [(team, f"team {team}")]

    scopes = [("", "personal account")]
    run_log.info("   Resolving teams...", always=True)
    teams = list_teams(client)
    if url_scope:
        teams = sorted(teams, key=lambda t: t.get("slug") != url_scope)
    for t in teams:
        scopes.append((t["id"], f"{t.get('name', t['id'])} ({t.get('slug', '')})"))
    return scopes


def _resolve_explicit(client: "ApiClient", requested: str, project: str, team: str,
                      run_log: "RunLog") -> Deployment:
    ref = parse_dashboard_url(requested)
    url_scope = ""
    if ref:
        build_id = ref.build_id
        project = project or ref.project
        url_scope = ref.scope
        run_log.info(
            f"🔍 Parsed Vercel URL — project: {project}, scope: {url_scope}, build: {build_id}",
            always=True,
        )
    else:
        build_id = requested
        run_log.info(f"🔍 Fetching deployment info for: {build_id}", always=True)

    ids_to_try = [build_id]
    if not build_id.startswith(DEPLOYMENT_PREFIX):
        ids_to_try.append(f"{DEPLOYMENT_PREFIX}{build_id}")

    scopes = _scopes_to_try(client, team, url_scope, run_log)
    for team_id, label in scopes:
        for dep_id in ids_to_try:
            run_log.info(f"   Trying {dep_id} in {label}...", always=True)
            info = fetch_deployment(client, dep_id, team_id)
            if not isinstance(info, dict) or info.get("error"):
                continue
            url = info.get("url") or ""
            if not url:
                raise SetupError(f"Deployment API returned no URL. Response: {info}")
            run_log.info("✅ Got deployment info", always=True)
            return Deployment(id=dep_id, url=url, name=info.get("name", ""), team_id=team_id)

    raise DeploymentNotFound(
        f'Deployment "{build_id}" not found. '
        f"Tried {len(ids_to_try)} ID format(s) across {len(scopes)} scope(s). "
        f"Verify the deployment ID is correct and that your token has access."
    )


def resolve_deployment(client: "ApiClient", requested: str, run_log: "RunLog",
                       project: str = "", team: str = "",
                       select_team: Optional[Callable[[list[dict]], Optional[dict]]] = None) -> Deployment:
    """
    Resolve *requested* ("latest", an id with or without dpl_, or a dashboard
    URL) to a Deployment. Raises DeploymentNotFound when every identifier and
    scope combination has been tried.
    """
    if requested == "latest":
        dep = _resolve_latest(client, project, team, run_log, select_team or (lambda teams: None))
    else:
        dep = _resolve_explicit(client, requested, project, team, run_log)

    run_log.info(always=True)
    run_log.info(f"📦 Deployment ID:  {dep.id}", always=True)
    run_log.info(f"🌐 Deployment URL: {dep.url}", always=True)
    run_log.info(f"📁 Project:        {dep.name}", always=True)
    if dep.team_id:
        run_log.info(f"👥 Team:           {dep.team_id}", always=True)
    run_log.info(always=True)
    return dep
