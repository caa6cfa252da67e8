import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import httpx

from src.adapters.dev_fonts_server import DevFontsServer, create_dev_fonts_app
from src.adapters.http_fonts_api import HttpFontsApi
from src.app_shell.fonts_console import FontsConsole
from src.components.apply import ConfirmationPrompt
from src.core.entities import PendingAddition
from src.domain.font_files import format_size
from src.rules.loader import apply_env_overrides, load_rules, rules_path_from_env
from src.rules.models import Rules

logger = logging.getLogger("cli")

DEV_BASE_URL = "http://fontdesk.dev/api/v1/admin"


class TerminalConfirm:
    """Asks on stdin; anything but y/yes declines."""

    async def confirm(self, prompt: ConfirmationPrompt) -> bool:
        print(prompt.message)
        answer = await asyncio.to_thread(input, "[y/N] ")
        return answer.strip().lower() in ("y", "yes")


class AssumeYes:
    async def confirm(self, prompt: ConfirmationPrompt) -> bool:
        logger.info("Confirmed by --yes: %s", prompt.summary or "regenerate only")
        return True


def get_rules(args: argparse.Namespace) -> Rules:
    path = Path(args.rules) if args.rules else rules_path_from_env()
    if not path.exists():
        logger.error(f"Rules file {path} not found.")
        sys.exit(1)
    return apply_env_overrides(load_rules(path))


def build_api(rules: Rules, args: argparse.Namespace) -> HttpFontsApi:
    token = os.environ.get("FONTDESK_API_TOKEN")
    if not args.dev:
        return HttpFontsApi(rules.api.base_url, token=token, timeout=rules.api.timeout_seconds)

    # In-process server; nothing survives the command
    server = DevFontsServer(
        token=token,
        extensions=tuple(rules.fonts.accepted_extensions),
        max_bytes=rules.fonts.max_font_file_bytes,
    )
    app = create_dev_fonts_app(server)
    return HttpFontsApi(DEV_BASE_URL, token=token, transport=httpx.ASGITransport(app=app))


# --- Commands ---


async def handle_status(console: FontsConsole, args: argparse.Namespace) -> int:
    status = console.status
    if status is None:
        return 1
    if not status.available:
        print("Font management is not available on this server.")
        return 0

    print(f"Fonts:  {status.total_count} ({status.custom_count} custom)")
    print(f"Files:  {status.total_files_count} ({status.custom_files_count} custom)")
    if status.is_generating and status.current_job is not None:
        print(f"Generating: job {status.current_job.job_id} ({status.current_job.status.value})")
    else:
        print("Generating: no")
    return 0


async def handle_list(console: FontsConsole, args: argparse.Namespace) -> int:
    fonts = console.visible_fonts(args.filter, args.custom)
    for font in fonts:
        print(f"{font.name:<40} {font.origin.value:<8} {len(font.file_ids)} file(s)")
    print(f"{len(fonts)} font(s)")
    return 0


async def handle_apply(console: FontsConsole, args: argparse.Namespace) -> int:
    additions = [PendingAddition.from_path(Path(p)) for p in args.add]
    added = {a.name for a in console.add_files(additions)}
    for addition in additions:
        if addition.name in added:
            print(f"Queued {addition.name} ({format_size(addition.size)})")
        else:
            print(f"Skipping {addition.name}: unsupported or duplicate file")

    if args.delete_all_custom:
        console.toggle_all_custom(True)
    for name in args.delete:
        console.pending.mark_for_deletion(name)

    output = await console.apply()
    if output is None:
        print(console.error or "Session rejected; log in again.", file=sys.stderr)
        return 1
    if output.cancelled:
        print("Cancelled.")
        return 0

    if console.error:
        print(console.error, file=sys.stderr)

    job = output.started_job
    if job is not None:
        verb = "Following running" if job.adopted else "Started"
        print(f"{verb} font generation job {job.job_id}")

    await console.wait_for_job()
    if console.success:
        print(console.success)
        return 0
    print(console.error or "Font generation did not finish.", file=sys.stderr)
    return 1


COMMANDS = {
    "status": handle_status,
    "list": handle_list,
    "apply": handle_apply,
}


async def run(args: argparse.Namespace) -> int:
    rules = get_rules(args)
    confirm = AssumeYes() if getattr(args, "yes", False) else TerminalConfirm()

    async with build_api(rules, args) as api, FontsConsole(
        api,
        confirm=confirm,
        fonts_rules=rules.fonts,
    ) as console:
        await console.load()
        if console.session_expired:
            print("Session rejected; set FONTDESK_API_TOKEN.", file=sys.stderr)
            return 1
        if console.status is None:
            print(console.error or "Failed to load fonts.", file=sys.stderr)
            return 1
        return await COMMANDS[args.command](console, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="fontdesk - manage custom server fonts")
    parser.add_argument("--rules", help="Path to rules.yaml (default: $FONTDESK_RULES_PATH)")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run against an in-process dev fonts server",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # status
    subparsers.add_parser("status", help="Show font counts and generation state")

    # list
    list_parser = subparsers.add_parser("list", help="List fonts")
    list_parser.add_argument("--filter", default="", help="Case-insensitive name filter")
    list_parser.add_argument("--custom", action="store_true", help="Only custom fonts")

    # apply
    apply_parser = subparsers.add_parser(
        "apply", help="Upload and delete fonts, then regenerate the font cache"
    )
    apply_parser.add_argument("--add", nargs="*", default=[], metavar="PATH", help="Font files to upload")
    apply_parser.add_argument(
        "--delete", nargs="*", default=[], metavar="NAME", help="Custom font names to delete"
    )
    apply_parser.add_argument(
        "--delete-all-custom", action="store_true", help="Delete every custom font"
    )
    apply_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
