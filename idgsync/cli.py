"""CLI interface for idgsync."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .api import MirrorClient
from .config import config
from .exceptions import (
    IdgConfigError,
    IdgDownloadError,
    IdgListingError,
    IdgMirrorRootError,
    IdgNetworkError,
)
from .listing import read_listing
from .mirrors import IDGAMES_MIRRORS, MASTER_MIRROR, MirrorPool
from .output import OutputFormatter
from .reporter import REPORT_FORMATS, REPORT_TYPES
from .sync import SyncEngine, SyncOperations, SyncOptions
from .sync.operations import ListingUpdate
from .utils import LISTING_FILENAME

logger = logging.getLogger(__name__)


def check_mirror_root(options: SyncOptions) -> Path:
    """Make sure the mirror root and its cached listing can be used.

    With ``create_mirror`` set, a missing root directory is created and a
    missing listing is allowed.

    Returns:
        The mirror root

    Raises:
        IdgMirrorRootError: If the mirror root or listing is unusable
    """
    root = Path(options.path)
    if root.exists() and not root.is_dir():
        raise IdgMirrorRootError(f"Mirror path {root} is not a directory")

    if not root.exists():
        if not options.create_mirror:
            raise IdgMirrorRootError(
                f"Mirror path {root} does not exist; "
                "use --create-mirror to create a new mirror"
            )
        if not options.dry_run:
            try:
                root.mkdir(parents=True)
            except OSError as e:
                raise IdgMirrorRootError(
                    f"Can't create mirror path {root}: {e}"
                ) from e

    if root.exists() and not options.dry_run and not os.access(root, os.W_OK):
        raise IdgMirrorRootError(
            f"Mirror path {root} is not writable; fix its permissions "
            "or run as a user that can write to it"
        )

    if not (root / LISTING_FILENAME).exists() and not options.create_mirror:
        raise IdgMirrorRootError(
            f"{LISTING_FILENAME} file not found in {root}; "
            "use --create-mirror to create a new mirror"
        )
    return root


def refresh_listing(
    operations: SyncOperations,
    root: Path,
    base_url: Optional[str],
    out: OutputFormatter,
) -> ListingUpdate:
    """Fetch the listing artifact with a progress bar and report the result."""
    progress_display: Optional[Progress] = None
    progress_callback = None
    if not out.quiet and not out.json_output:
        progress_display = Progress(
            "[progress.description]{task.description}",
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeElapsedColumn(),
            refresh_per_second=10,
        )

    try:
        if progress_display:
            progress_display.start()
            task_id = progress_display.add_task(f"[cyan]{LISTING_FILENAME}", total=None)

            def progress_callback(bytes_downloaded: int, total_bytes: int) -> None:
                progress_display.update(
                    task_id, completed=bytes_downloaded, total=total_bytes or None
                )

        update = operations.update_listing(
            root, base_url=base_url, progress_callback=progress_callback
        )
    finally:
        if progress_display:
            progress_display.stop()

    if update.replaced:
        out.info(
            f"Updated {LISTING_FILENAME} "
            f"({out.format_size(update.local_size)} -> "
            f"{out.format_size(update.remote_size)})"
        )
    else:
        out.info(f"{LISTING_FILENAME} is up to date")
    logger.debug(f"Local digest: {update.local_digest}")
    logger.debug(f"Remote digest: {update.remote_digest}")
    return update


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="idgsync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """idgsync - Mirror the idGames archive to a local directory."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("idgsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--path",
    "-p",
    prompt="Local mirror path",
    type=click.Path(file_okay=False),
    help="Local mirror root",
)
@click.pass_context
def init(ctx: Any, path: str) -> None:
    """Store the default local mirror path.

    Saves the path in ~/.config/idgsync/config so that it no longer needs
    to be passed with --path.
    """
    out: OutputFormatter = ctx.obj["out"]

    mirror_path = str(Path(path).expanduser().resolve())
    try:
        config.save_mirror_path(mirror_path)
    except OSError as e:
        out.error(f"Failed to save configuration: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Mirror path", mirror_path),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    help="Exclude mirrors whose URL contains this text (repeatable)",
)
@click.pass_context
def mirrors(ctx: Any, exclude: tuple[str, ...]) -> None:
    """Show the mirrors used for downloads."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        pool = MirrorPool.build(
            exclude_urls=[*config.exclude_mirrors, *exclude],
            base_url=config.mirror_url,
        )
    except IdgConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    table_data = [
        {
            "url": mirror,
            "master": "yes" if mirror == MASTER_MIRROR else "",
            "usable": "yes" if mirror in pool.mirrors else "excluded",
        }
        for mirror in IDGAMES_MIRRORS
    ]
    out.output_table(
        table_data,
        ["url", "master", "usable"],
        {"url": "Mirror", "master": "Master", "usable": "Usable"},
    )
    if pool.base_url:
        out.info(f"Explicit mirror URL: {pool.base_url}")


@main.command()
@click.option("--path", "-p", help="Local mirror root (default: configured path)")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Show what would be done, change nothing"
)
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    help="Exclude mirrors whose URL contains this text (repeatable)",
)
@click.option(
    "--format",
    "-f",
    "report_format",
    type=click.Choice(REPORT_FORMATS),
    default="more",
    show_default=True,
    help="Report format",
)
@click.option(
    "--type",
    "-t",
    "report_types",
    type=click.Choice(REPORT_TYPES),
    multiple=True,
    help="Report type (repeatable, default: local and size)",
)
@click.option("--size-local", is_flag=True, help="Shortcut for -t size -t local")
@click.option("--size-same", is_flag=True, help="Shortcut for -t size -t same")
@click.option("--url", "-u", help="Use this mirror instead of a random one")
@click.option(
    "--prune-all", is_flag=True, help="Prune the whole mirror, not only /newstuff"
)
@click.option(
    "--sync-all", is_flag=True, help="Sync everything, not only WAD directories"
)
@click.option("--incoming", is_flag=True, help="Include the /incoming directory")
@click.option("--dotfiles", is_flag=True, help="Include hidden server files")
@click.option("--tempdir", help="Directory for in-flight downloads")
@click.option(
    "--create-mirror", is_flag=True, help="Allow creating a new, empty mirror"
)
@click.option(
    "--skip-listing-update",
    is_flag=True,
    help=f"Use the cached {LISTING_FILENAME} without fetching a fresh copy",
)
@click.option(
    "--update-listing",
    "update_listing_only",
    is_flag=True,
    help=f"Refresh {LISTING_FILENAME} and exit",
)
@click.option(
    "--debug-files",
    "max_entries",
    type=int,
    help="Stop after this many files (debugging); disables pruning",
)
@click.pass_context
def sync(
    ctx: Any,
    path: Optional[str],
    dry_run: bool,
    exclude: tuple[str, ...],
    report_format: str,
    report_types: tuple[str, ...],
    size_local: bool,
    size_same: bool,
    url: Optional[str],
    prune_all: bool,
    sync_all: bool,
    incoming: bool,
    dotfiles: bool,
    tempdir: Optional[str],
    create_mirror: bool,
    skip_listing_update: bool,
    update_listing_only: bool,
    max_entries: Optional[int],
) -> None:
    """Synchronize the local mirror with the idGames archive.

    Examples:
        idgsync sync -p /srv/idgames --dry-run
        idgsync sync -p /srv/idgames -t local -t size --format simple
        idgsync sync -p /srv/idgames --create-mirror --sync-all
    """
    out: OutputFormatter = ctx.obj["out"]

    mirror_path = path or config.mirror_path
    if not mirror_path:
        out.error("No mirror path given; pass --path or run 'idgsync init'")
        ctx.exit(1)

    types = list(report_types)
    if size_local:
        types.extend(["size", "local"])
    if size_same:
        types.extend(["size", "same"])

    options = SyncOptions(
        path=mirror_path,
        dry_run=dry_run,
        exclude_urls=[*config.exclude_mirrors, *exclude],
        report_format=report_format,
        report_types=list(dict.fromkeys(types)) or ["local", "size"],
        url=url or config.mirror_url,
        prune_all=prune_all,
        sync_all=sync_all,
        include_incoming=incoming,
        include_dotfiles=dotfiles,
        tempdir=tempdir or config.tempdir,
        create_mirror=create_mirror,
        skip_listing_update=skip_listing_update,
        update_listing_only=update_listing_only,
        max_entries=max_entries,
    )

    try:
        options.validate()
        root = check_mirror_root(options)
    except (IdgConfigError, IdgMirrorRootError) as e:
        out.error(str(e))
        ctx.exit(1)

    client = MirrorClient(options.build_pool(), tempdir=options.tempdir)
    try:
        if options.dry_run and options.update_listing_only:
            out.info(f"Dry run: {LISTING_FILENAME} not updated")
            return

        if not (options.dry_run or options.skip_listing_update):
            try:
                refresh_listing(SyncOperations(client), root, options.url, out)
            except (IdgDownloadError, IdgNetworkError, OSError) as e:
                out.error(f"Failed to update {LISTING_FILENAME}: {e}")
                ctx.exit(1)

        if options.update_listing_only:
            return

        try:
            listing_text = read_listing(root / LISTING_FILENAME)
        except IdgListingError as e:
            out.error(str(e))
            ctx.exit(1)

        engine = SyncEngine(client, options, output=out)
        try:
            stats = engine.sync(listing_text)
        except KeyboardInterrupt:
            out.warning("\nSync cancelled by user")
            ctx.exit(130)

        title = "Dry Run Complete" if options.dry_run else "Sync Complete"
        out.print_summary(title, stats.summary_items())

        if stats.failed_count > 0:
            ctx.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    main()
