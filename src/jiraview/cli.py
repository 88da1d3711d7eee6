import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console

from jiraview.data import DataManager
from jiraview.errors import JiraViewError
from jiraview.render import render_issue_detail, render_issue_tree


def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="jiraview CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    sprint_parser = subparsers.add_parser("sprint", help="Show the active sprint of a project")
    sprint_parser.add_argument("project")
    sprint_parser.add_argument("--refresh", action="store_true", help="Bypass the cached board/sprint lookup")

    backlog_parser = subparsers.add_parser("backlog", help="Show the backlog of a project")
    backlog_parser.add_argument("project")

    query_parser = subparsers.add_parser("query", help="Run a saved query name or raw JQL")
    query_parser.add_argument("project")
    query_parser.add_argument("query")

    issue_parser = subparsers.add_parser("issue", help="Show one issue")
    issue_parser.add_argument("key")
    issue_parser.add_argument("--comments", action="store_true", help="Show comments instead of the description")

    clear_parser = subparsers.add_parser("clear-cache", help="Forget cached board/sprint lookups")
    clear_parser.add_argument("project", nargs="?")

    subparsers.add_parser("doctor", help="Check setup and environment")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "sprint":
        sys.exit(asyncio.run(show_sprint(args.project, args.refresh)))
    elif args.command == "backlog":
        sys.exit(asyncio.run(show_backlog(args.project)))
    elif args.command == "query":
        sys.exit(asyncio.run(show_query(args.project, args.query)))
    elif args.command == "issue":
        sys.exit(asyncio.run(show_issue(args.key, "comments" if args.comments else "description")))
    elif args.command == "clear-cache":
        clear_cache(args.project)
    elif args.command == "doctor":
        doctor()
    else:
        parser.print_help()


def _print_tree(dm: DataManager) -> None:
    console = Console()
    if not dm.tree:
        print("No issues found.")
        return
    for line in render_issue_tree(dm.tree):
        console.print(line.text, soft_wrap=True)


def _report(dm: DataManager, ok: bool) -> int:
    if not ok:
        print(f"❌ Fetch failed. {dm.fetch_status_summary()}")
        return 1
    _print_tree(dm)
    print(f"✅ {dm.fetch_status_summary()}")
    return 0


async def show_sprint(project: str, force_refresh: bool = False) -> int:
    """Fetch and print the active sprint as an issue tree."""
    dm = DataManager()
    dm.initialize()
    ok = await dm.load_sprint(project, force_refresh=force_refresh)
    return _report(dm, ok)


async def show_backlog(project: str) -> int:
    dm = DataManager()
    dm.initialize()
    ok = await dm.load_backlog(project)
    return _report(dm, ok)


async def show_query(project: str, query: str) -> int:
    dm = DataManager()
    dm.initialize()
    ok = await dm.load_query(project, query)
    return _report(dm, ok)


async def show_issue(issue_key: str, tab: str = "description") -> int:
    """Print the description or comments of a single issue."""
    dm = DataManager()
    dm.initialize()
    try:
        detail = await dm.open_issue(issue_key)
    except JiraViewError as e:
        print(f"❌ Error fetching issue: {e}")
        return 1
    project_key = ((detail.fields.get("project") or {}).get("key")) or issue_key.split("-")[0]
    custom_fields = dm.config.project_config(project_key).custom_fields
    console = Console()
    for line in render_issue_detail(detail, tab, custom_fields):
        console.print(line, soft_wrap=True)
    return 0


def clear_cache(project: str | None = None) -> None:
    dm = DataManager()
    dm.initialize()
    dm.clear_sprint_cache(project)
    target = project or "all projects"
    print(f"🧹 Cleared sprint cache for {target}.")


def doctor():
    """Check for necessary environment variables and files."""
    print("🩺 Running jiraview Doctor...")
    dm = DataManager()

    env_exists = Path(".env").exists()
    print(f"[{'✓' if env_exists else '✕'}] .env file")

    print(f"[{'✓' if dm.config.jira_base_url else '✕'}] JIRA_BASE_URL")
    if dm.config.auth_type == "basic":
        print(f"[{'✓' if dm.config.jira_email else '✕'}] JIRA_EMAIL")
    print(f"[{'✓' if dm.config.jira_token else '✕'}] JIRA_API_TOKEN ({dm.config.auth_type})")

    cache_exists = Path(dm.config.sprint_cache_path).exists()
    print(f"[{'✓' if cache_exists else '✕'}] sprint cache {dm.config.sprint_cache_path}")
    print(f"    config: {dm.config.config_source}")
    if os.getenv("JV_CONFIG_PATH") and dm.config.config_source == "defaults/env":
        print("    (JV_CONFIG_PATH is set but the file was not loaded)")

    print("\nDoctor check complete.")


if __name__ == "__main__":
    main()
