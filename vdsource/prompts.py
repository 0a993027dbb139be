"""
Interactive questions (first-run setup, resume choice, retry, team pick)

Every question goes through ask(); end of input counts as an empty answer
so piped or closed stdin falls back to the defaults.
"""
from typing import Callable, Optional
from .core.session import ResumeChoice

Asker = Callable[[str], str]


def ask(question: str) -> str:
    try:
        return input(question).strip()
    except (EOFError, KeyboardInterrupt):
        print()
        return ""


def mask_token(token: str) -> str:
    if len(token) <= 10:
        return "*" * len(token)
    return f"{token[:6]}...{token[-4:]}"


def interactive_setup(settings: dict, asker: Asker = ask) -> dict:
    """Walk through token, deployment, project and team; returns updated settings."""
    result = dict(settings)
    print("🚀 Vercel Deploy Source Downloader — Interactive Setup\n")

    print("Step 1: Vercel API Token")
    print("   Create or find your token at: https://vercel.com/account/tokens\n")
    if result.get("token"):
        print(f"   Found token in environment: {mask_token(result['token'])}\n")
        entered = asker("   Vercel token (Enter to use above): ")
        if entered:
            result["token"] = entered
    else:
        result["token"] = asker("   Vercel token: ")

    print("\nStep 2: Deployment ID")
    print("   Copy the ID from your Vercel dashboard URL:")
    print("   https://vercel.com/{scope}/{project}/{THIS_PART}/source")
    print("   Works with or without the dpl_ prefix.\n")
    result["deployment"] = asker("   Deployment ID (Enter for latest): ") or "latest"

    print("\nStep 3: Project & Team (optional — auto-detected from deployment ID)")
    print("   These are auto-detected. Press Enter to skip.\n")
    result["project"] = asker("   Project name (Enter to skip): ") or result.get("project", "")
    print("   Accepts a slug (e.g. my-team) or ID (e.g. team_xxx).\n")
    result["team"] = asker("   Team (Enter to skip): ") or result.get("team", "")
    print()
    return result


def ask_resume_choice(existing_count: int, failure_count: int, asker: Asker = ask) -> ResumeChoice:
    """Ask how to treat a previous download of the same deployment."""
    print("📂 Previous download detected for this deployment.")
    print(f"   {existing_count} file(s) already downloaded.")
    if failure_count:
        print(f"   {failure_count} file(s) failed in previous run.")
    print()

    if failure_count:
        print("   Y = resume (skip existing, download remaining)")
        print("   n = re-download everything from scratch")
        print("   r = retry failed only")
        print()
        answer = asker("   Choice (Y/n/r): ").lower()
        if answer == "r":
            return ResumeChoice.RETRY_FAILED
    else:
        print("   Enter to continue where you left off, or 'n' to re-download from scratch.\n")
        answer = asker("   Continue? (Y/n): ").lower()

    if answer == "n":
        return ResumeChoice.RESTART
    return ResumeChoice.RESUME


def ask_retry_now(failure_count: int, asker: Asker = ask) -> bool:
    answer = asker(f"\n   {failure_count} file(s) failed. Retry now? (Y/n): ").lower()
    return answer != "n"


def select_team(teams: list[dict], asker: Asker = ask) -> Optional[dict]:
    """Let the user pick a team; None means the personal account."""
    if not teams:
        return None
    print("\n🏢 Available teams:")
    print("   0) Personal account (no team)")
    for i, team in enumerate(teams, start=1):
        print(f"   {i}) {team.get('name', team['id'])} ({team.get('slug', '')})")

    answer = asker(f"\nSelect a team [0-{len(teams)}]: ")
    try:
        index = int(answer)
    except ValueError:
        index = -1
    if index < 0 or index > len(teams):
        print("Invalid selection, using personal account.")
        return None
    if index == 0:
        return None
    return teams[index - 1]
