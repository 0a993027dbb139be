"""
Configuration constants and layered settings for vdsource
"""
import os
from pathlib import Path
from typing import Optional

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config, environment or apply_settings()
# ══════════════════════════════════════════════════════════════════════════════

API_BASE = "https://api.vercel.com"
DASHBOARD_BASE = "https://vercel.com"

OUTPUT_ROOT = Path("./out")

# Layout under OUTPUT_ROOT/<deployment id>/
SOURCE_DIR_NAME = "source"
LOG_FILE_NAME = "download-log.txt"

# Subtree of the deployment that holds the uploaded sources
TREE_BASE = "src"

REQUEST_TIMEOUT = 30.0  # seconds

# Retry settings (deployment lookups only; file downloads are never auto-retried)
RETRY_MAX = 3
RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt

SPINNER_INTERVAL = 0.1  # seconds between spinner frames

PROJECT_CONFIG_NAME = ".vdsource"

# setting key -> environment variable
ENV_VARS = {
    "token": "VERCEL_TOKEN",
    "deployment": "VERCEL_DEPLOYMENT",
    "project": "VERCEL_PROJECT",
    "team": "VERCEL_TEAM",
    "output": "VERCEL_OUTPUT",
}

DEFAULT_SETTINGS = {
    "token": "",
    "deployment": "latest",
    "project": "",
    "team": "",
    "output": str(OUTPUT_ROOT),
}


# ══════════════════════════════════════════════════════════════════════════════
#  DYNAMIC PATHS  ── computed from OUTPUT_ROOT at call time
# ══════════════════════════════════════════════════════════════════════════════

def get_deploy_dir(deployment_id: str) -> Path:
    """Return the per-deployment directory under OUTPUT_ROOT."""
    return OUTPUT_ROOT / deployment_id


def get_source_dir(deployment_id: str) -> Path:
    """Return the mirrored source tree root for a deployment."""
    return get_deploy_dir(deployment_id) / SOURCE_DIR_NAME


def get_log_file(deployment_id: str) -> Path:
    """Return the run log path for a deployment."""
    return get_deploy_dir(deployment_id) / LOG_FILE_NAME


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/vdsource/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for vdsource."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "vdsource"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "vdsource"
    return Path.home() / ".config" / "vdsource"


def load_global_config() -> dict:
    """Load global config from the vdsource config directory."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    return load_config_file(cfg_path)


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .vdsource (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_project_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .vdsource YAML file.
    Returns the Path if found, or None if no .vdsource exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config_file(path: Path) -> dict:
    """Parse a YAML config file and return its top-level mapping."""
    import yaml

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


# ══════════════════════════════════════════════════════════════════════════════
#  ENVIRONMENT  ── real environment, then .env in the working directory
# ══════════════════════════════════════════════════════════════════════════════

def load_env_file(path: Optional[Path] = None) -> bool:
    """Load KEY=VALUE pairs from .env without overriding the real environment."""
    from dotenv import load_dotenv

    env_path = path or (Path.cwd() / ".env")
    if not env_path.is_file():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)


def env_settings() -> dict:
    """Return the settings provided through VERCEL_* environment variables."""
    result = {}
    for key, var in ENV_VARS.items():
        value = os.environ.get(var, "").strip()
        if value:
            result[key] = value
    return result


# ══════════════════════════════════════════════════════════════════════════════
#  RESOLUTION  ── CLI > environment > project file > global file > defaults
# ══════════════════════════════════════════════════════════════════════════════

def resolve_settings(cli: dict, env: Optional[dict] = None,
                     project_file: Optional[dict] = None,
                     global_file: Optional[dict] = None) -> dict:
    """
    Merge settings layers into one flat dict.

    Empty values ("" / None) never shadow a lower layer. The returned dict
    carries ``deployment_explicit`` which is True when any layer named a
    deployment rather than falling back to "latest".
    """
    merged = DEFAULT_SETTINGS.copy()
    explicit = False
    for layer in (global_file or {}, project_file or {}, env or {}, cli):
        for key, value in layer.items():
            if value in ("", None):
                continue
            merged[key] = value
            if key == "deployment":
                explicit = True
    merged["deployment_explicit"] = explicit
    return merged


def apply_settings(settings: dict):
    """
    Apply a settings dict to the module-level config variables.
    Supports keys: output, api_base, dashboard_base, timeout,
                   retry_max, retry_base_delay.
    """
    global OUTPUT_ROOT, API_BASE, DASHBOARD_BASE
    global REQUEST_TIMEOUT, RETRY_MAX, RETRY_BASE_DELAY

    if settings.get("output"):
        OUTPUT_ROOT = Path(settings["output"]).expanduser().resolve()
    if settings.get("api_base"):
        API_BASE = str(settings["api_base"]).rstrip("/")
    if settings.get("dashboard_base"):
        DASHBOARD_BASE = str(settings["dashboard_base"]).rstrip("/")
    if "timeout" in settings:
        REQUEST_TIMEOUT = float(settings["timeout"])
    if "retry_max" in settings:
        RETRY_MAX = int(settings["retry_max"])
    if "retry_base_delay" in settings:
        RETRY_BASE_DELAY = float(settings["retry_base_delay"])
