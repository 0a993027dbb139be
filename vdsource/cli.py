#!/usr/bin/env python3
"""
vdsource  —  Download the source files of a Vercel deployment
=============================================================

Subcommands:
  download  Mirror a deployment's source tree into <output>/<id>/source.
  status    Show what a previous download left on disk (no network).

Settings are taken from, highest first: command line, environment
(VERCEL_TOKEN, VERCEL_DEPLOYMENT, VERCEL_PROJECT, VERCEL_TEAM,
VERCEL_OUTPUT, also read from ./.env), the nearest .vdsource file, and
$XDG_CONFIG_HOME/vdsource/config.yaml.

Run 'vdsource <subcommand> --help' for more details.
"""
import sys
import argparse


def _load_settings(args) -> dict:
    """Resolve the settings layers and apply them to vdsource.config."""
    from vdsource import config as _cfg

    _cfg.load_env_file()
    global_file = _cfg.load_global_config()
    project_path = _cfg.find_project_config()
    project_file = _cfg.load_config_file(project_path) if project_path else {}
    if project_path and args.verbose:
        print(f"[config] Using {project_path}")

    cli = {
        "token": getattr(args, "token", None),
        "deployment": args.deployment,
        "project": getattr(args, "project", None),
        "team": getattr(args, "team", None),
        "output": args.output,
    }
    settings = _cfg.resolve_settings(cli, _cfg.env_settings(), project_file, global_file)
    _cfg.apply_settings(settings)
    return settings


def _settings_or_exit(args) -> dict:
    import yaml

    try:
        return _load_settings(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"error: could not load configuration: {exc}", file=sys.stderr)
        sys.exit(1)


# ── download ─────────────────────────────────────────────────────────────────

def cmd_download(args):
    """Resolve the deployment and mirror its source tree."""
    from vdsource import prompts
    from vdsource.core.api_client import ApiClient
    from vdsource.core.sync_engine import run_download
    from vdsource.errors import VdsourceError
    from vdsource.operations.deployment import resolve_deployment
    from vdsource.state.run_log import RunLog
    from vdsource.utils.logging import set_verbose, error, warn

    set_verbose(args.verbose)
    settings = _settings_or_exit(args)
    interactive = sys.stdin.isatty() and not args.no_input

    if not settings["deployment_explicit"] and interactive:
        settings = prompts.interactive_setup(settings)

    if not settings["token"]:
        error("❌ Token is required. Get one from https://vercel.com/account/tokens")
        sys.exit(1)

    run_log = RunLog()
    run_log.info("🔑 Got authentication token", always=True)
    run_log.info(always=True)

    try:
        with ApiClient(settings["token"]) as client:
            deployment = resolve_deployment(
                client,
                settings["deployment"],
                run_log,
                project=settings["project"],
                team=settings["team"],
                select_team=prompts.select_team if interactive else None,
            )
            run_download(
                client,
                deployment,
                run_log,
                retry_failed=args.retry_failed,
                choose_resume=None if args.no_input else prompts.ask_resume_choice,
                confirm_retry=None if args.no_input else prompts.ask_retry_now,
                show_spinner=not args.verbose and sys.stdout.isatty(),
            )
    except KeyboardInterrupt:
        print()
        warn("Interrupted by user. Files written so far are kept; the next run resumes.")
        sys.exit(130)
    except VdsourceError as exc:
        run_log.error(f"❌ Failed to download source: {exc}")
        sys.exit(1)


# ── status ────────────────────────────────────────────────────────────────────

def cmd_status(args):
    """Report the local state of a previous download."""
    from vdsource import config as _cfg
    from vdsource.operations.deployment import DEPLOYMENT_PREFIX
    from vdsource.state.mirror_state import existing_file_count, prior_failures

    settings = _settings_or_exit(args)
    if not settings["deployment_explicit"] or settings["deployment"] == "latest":
        print("error: status needs an explicit --deployment ID.", file=sys.stderr)
        sys.exit(1)

    requested = settings["deployment"]
    candidates = [requested]
    if not requested.startswith(DEPLOYMENT_PREFIX):
        candidates.append(f"{DEPLOYMENT_PREFIX}{requested}")
    deployment_id = next(
        (c for c in candidates if _cfg.get_deploy_dir(c).is_dir()), None
    )
    if deployment_id is None:
        print(f"No download found for {requested} under {_cfg.OUTPUT_ROOT}.")
        return

    source_dir = _cfg.get_source_dir(deployment_id)
    failures = sorted(prior_failures(_cfg.get_deploy_dir(deployment_id)))

    print(f"\nDeployment : {deployment_id}")
    print(f"Source     : {source_dir}")
    print(f"Log        : {_cfg.get_log_file(deployment_id)}")
    print(f"Files      : {existing_file_count(source_dir)}")
    print(f"Failed     : {len(failures)}")

    if failures:
        if args.verbose:
            for rel in failures:
                print(f"   {rel}")
        print("\n   Run 'vdsource download --deployment "
              f"{requested} --retry-failed' to retry them.")


# ── main ──────────────────────────────────────────────────────────────────────

def main():
    """CLI entry point for vdsource"""
    parser = argparse.ArgumentParser(
        prog="vdsource",
        description="Download the source files of a Vercel deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── download ──────────────────────────────────────────────────────────────
    dl_p = subparsers.add_parser(
        "download",
        help="Download a deployment's source tree",
        description="Mirror a deployment's source tree into <output>/<deployment id>/source.",
    )
    dl_p.add_argument("token", nargs="?", default=None,
                      help="Vercel API token (default: $VERCEL_TOKEN)")
    dl_p.add_argument("--deployment", metavar="ID",
                      help="Deployment ID or dashboard URL, with or without dpl_ (default: latest)")
    dl_p.add_argument("--project", metavar="NAME",
                      help="Project name (default: auto-detect)")
    dl_p.add_argument("--team", metavar="SLUG|ID",
                      help="Team slug or ID (default: auto-detect)")
    dl_p.add_argument("--output", metavar="PATH",
                      help="Output directory (default: ./out)")
    dl_p.add_argument("--retry-failed", action="store_true",
                      help="Only re-download files that failed in the previous run")
    dl_p.add_argument("--no-input", action="store_true",
                      help="Never prompt; resume existing downloads and retry failures once")
    dl_p.add_argument("-v", "--verbose", action="store_true",
                      help="Show every file, the file tree and skipped files")

    # ── status ────────────────────────────────────────────────────────────────
    status_p = subparsers.add_parser(
        "status",
        help="Show the state of a previous download",
        description="Show file and failure counts of a previous download (no network).",
    )
    status_p.add_argument("--deployment", metavar="ID",
                          help="Deployment ID of the previous download")
    status_p.add_argument("--output", metavar="PATH",
                          help="Output directory (default: ./out)")
    status_p.add_argument("-v", "--verbose", action="store_true",
                          help="List the failed files")

    args = parser.parse_args()

    if args.command == "download":
        cmd_download(args)
    elif args.command == "status":
        cmd_status(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
