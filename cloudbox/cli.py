"""Command line interface for cloudbox."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import (
    UploadProgressDisplay,
    render_bulk_result,
    render_configuration_summary,
    render_folders,
    render_listing,
)
from .errors import CloudboxError
from .models import ClientConfig, Folder, ZipLink
from .orchestrator import NavigationController, UploadBatch
from .services import HTTPStorageClient


ENV_PREFIX = "CLOUDBOX_"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """Route cloudbox logs through rich; silent unless --debug or --log-level."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    logging.disable(logging.NOTSET)

    if silent or not (debug or log_level):
        logging.disable(logging.CRITICAL)
        return "silent"

    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    handler = RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def _load_env_file(path: Path) -> None:
    """Export CLOUDBOX_* settings from a .env file without clobbering the shell."""
    if not path.is_file():
        raise CLIError(f"env file not found: {path}")
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for line in lines:
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key.startswith(ENV_PREFIX):
            os.environ.setdefault(key, _strip_optional_quotes(value.strip()))


def _resolve_folder(nav: NavigationController, ref: Optional[str]) -> Optional[Folder]:
    """Find a folder by id or name; None/"" means home."""
    if not ref:
        return None
    for folder in nav.store.folders:
        if folder.id == ref or folder.name == ref:
            return folder
    raise CLIError(f"folder not found: {ref}")


async def _save_stream(stream: AsyncIterator[bytes], dest: Path) -> Path:
    written = 0
    with dest.open("wb") as out:
        async for chunk in stream:
            out.write(chunk)
            written += len(chunk)
    print(f"Saved {written} bytes to {dest}")
    return dest


def _attach_display(batch: UploadBatch) -> None:
    display = UploadProgressDisplay()
    batch.on_wave_start(display.on_wave_start)
    batch.on_unit_start(display.on_unit_start)
    batch.on_progress(display.on_progress)
    batch.on_unit_complete(display.on_unit_complete)
    batch.on_unit_fail(display.on_unit_fail)
    batch.on_finish(display.on_finish)


def _select_ids(nav: NavigationController, ids: List[str]) -> None:
    for file_id in ids:
        nav.toggle(file_id)


async def _run_command(args: argparse.Namespace, config: ClientConfig) -> int:
    async with HTTPStorageClient.from_config(config) as backend:
        nav = NavigationController(backend, config)
        await nav.store.load_folders()
        folder = _resolve_folder(nav, getattr(args, "folder", None))
        await nav.select_folder(folder)

        if args.command == "folders":
            render_folders(nav.view())
            return 0

        if args.command == "mkdir":
            await nav.create_folder(args.name)
            render_folders(nav.view())
            return 0

        if args.command == "ls":
            for _ in range(max(args.pages, 1) - 1):
                nav.load_more()
            render_listing(nav.view(), folder.name if folder else None)
            return 0

        if args.command == "upload":
            nav.on_upload_start(_attach_display)
            if args.name:
                result = await nav.upload_picked(args.paths, name=args.name)
            else:
                result = await nav.upload_dropped(args.paths)
            render_listing(nav.view(), folder.name if folder else None)
            return 0 if result.all_success else 1

        if args.command == "rm":
            if len(args.ids) == 1:
                await nav.delete(args.ids[0])
                print(f"Deleted {args.ids[0]}")
                return 0
            _select_ids(nav, args.ids)
            bulk_result = await nav.bulk_delete()
            render_bulk_result(bulk_result)
            return 0 if bulk_result.all_success else 1

        if args.command == "mv":
            await nav.rename(args.id, args.name)
            render_listing(nav.view(), folder.name if folder else None)
            return 0

        if args.command == "zip":
            _select_ids(nav, args.ids)
            output = Path(args.output).expanduser()
            await nav.bulk_download(lambda stream: _save_stream(stream, output))
            return 0

        if args.command == "fast-zip":
            out_dir = Path(args.output).expanduser()
            out_dir.mkdir(parents=True, exist_ok=True)

            async def download(link: ZipLink) -> Path:
                name = f"{link.account or 'archive'}.zip"
                return await backend.fetch_url(link.download_url, out_dir / name)

            links = await nav.fast_download(download)
            print(f"Downloaded {len(links)} archive(s) to {out_dir}")
            return 0

        raise CLIError(f"unknown command: {args.command}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudbox",
        description="Organize, upload and bulk-manage files on a cloud storage backend.",
    )
    parser.add_argument("--api-url", default=None, help="Backend API URL (default from CLOUDBOX_API_URL)")
    parser.add_argument(
        "-p",
        "--max-parallel",
        type=int,
        default=None,
        help="Uploads in flight per wave (default from CLOUDBOX_MAX_PARALLEL or 3; 1 = sequential)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    parser.add_argument(
        "--download-stagger",
        type=float,
        default=None,
        help="Seconds between archive downloads for fast-zip (default 0.8)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="cloudbox 0.1.0")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("folders", help="List folders")

    mkdir = sub.add_parser("mkdir", help="Create a folder")
    mkdir.add_argument("name")

    ls = sub.add_parser("ls", help="List files of a folder")
    ls.add_argument("-f", "--folder", default=None, help="Folder id or name (default: home)")
    ls.add_argument("--pages", type=int, default=1, help="Number of pages to reveal")

    upload = sub.add_parser("upload", help="Upload files or folders")
    upload.add_argument("paths", nargs="+", type=Path)
    upload.add_argument("-f", "--folder", default=None, help="Target folder id or name")
    upload.add_argument("-n", "--name", default=None, help="Custom name (single file only)")

    rm = sub.add_parser("rm", help="Delete files")
    rm.add_argument("ids", nargs="+")
    rm.add_argument("-f", "--folder", default=None, help="Folder holding the files")

    mv = sub.add_parser("mv", help="Rename a file")
    mv.add_argument("id")
    mv.add_argument("name")
    mv.add_argument("-f", "--folder", default=None, help="Folder holding the file")

    zip_cmd = sub.add_parser("zip", help="Download selected files as one zip")
    zip_cmd.add_argument("ids", nargs="+")
    zip_cmd.add_argument("-o", "--output", required=True, help="Destination zip file")
    zip_cmd.add_argument("-f", "--folder", default=None, help="Folder holding the files")

    fast = sub.add_parser("fast-zip", help="Download server-assembled archives")
    fast.add_argument("-o", "--output", default=".", help="Destination directory")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file
    if used_env_file is None and Path(".env").is_file():
        used_env_file = Path(".env")
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = ClientConfig.from_env(
            api_url=args.api_url,
            max_parallel=args.max_parallel,
            timeout=args.timeout,
            download_stagger=args.download_stagger,
        )
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.debug:
        render_configuration_summary(
            {
                "API": config.api_url,
                "Max Parallel": config.max_parallel,
                "Timeout": f"{config.timeout:g}s",
                "Download Stagger": f"{config.download_stagger:g}s",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )

    try:
        return asyncio.run(_run_command(args, config))
    except (CLIError, CloudboxError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
