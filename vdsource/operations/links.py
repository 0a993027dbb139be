"""
Turn a file-tree link into a download URL
"""
import re
from typing import Optional
import httpx
from .. import config as _cfg
from ..errors import UnresolvableLink

_HASH_LINK_RE = re.compile(r"/files/([a-f0-9]+)$")


def _with_team(url: httpx.URL, team_id: Optional[str]) -> str:
    if team_id and "teamId" not in url.params:
        url = url.copy_set_param("teamId", team_id)
    return str(url)


def resolve_file_url(link: Optional[str], deployment_id: str,
                     team_id: Optional[str] = None) -> str:
    """
    Two link shapes are known:
      ① content hash   ".../files/<hex>"      → v7 deployment file endpoint
      ② path based     "https://…/files/get?path=…" or "/api/…"  → used as-is
    The team scope is added as ``teamId`` unless the link already has one.
    Raises UnresolvableLink for anything else.
    """
    if not link:
        raise UnresolvableLink(link)

    m = _HASH_LINK_RE.search(link)
    if m:
        url = httpx.URL(f"{_cfg.DASHBOARD_BASE}/api/v7/deployments/{deployment_id}/files/{m.group(1)}")
        return _with_team(url, team_id)

    if link.startswith("http"):
        return _with_team(httpx.URL(link), team_id)

    if link.startswith("/"):
        return _with_team(httpx.URL(_cfg.DASHBOARD_BASE).join(link), team_id)

    raise UnresolvableLink(link)
