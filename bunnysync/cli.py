"""CLI interface for bunnysync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import BunnyStorageClient
from .cli_progress import SyncProgressDisplay, format_overall
from .config import DEFAULT_PROFILE, config
from .exceptions import AuthenticationError, BunnySyncError, ConfigError
from .output import OutputFormatter
from .sync import SyncDirection, SyncEngine, SyncOptions
from .utils import DEFAULT_CONCURRENCY, MAX_CONCURRENCY, MIN_CONCURRENCY

logger = logging.getLogger(__name__)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output the summary in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="bunnysync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """bunnysync - Sync files to/from BunnyCDN Storage."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        # httpx logs every request at INFO/DEBUG; keep ours readable
        logging.getLogger("bunnysync").setLevel(logging.DEBUG)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--storage-zone",
    "-z",
    prompt="Storage zone name",
    help="BunnyCDN storage zone name",
)
@click.option(
    "--access-key",
    "-k",
    prompt="Storage zone access key",
    hide_input=True,
    help="BunnyCDN storage zone access key",
)
@click.option(
    "--region",
    "-r",
    default="de",
    show_default=True,
    help="Storage zone region (de, ny, la, sg, ...)",
)
@click.option("--profile", "-p", default=None, help="Profile name to save as")
@click.pass_context
def init(
    ctx: Any,
    storage_zone: str,
    access_key: str,
    region: str,
    profile: Optional[str],
) -> None:
    """Store storage zone credentials for future use.

    Credentials are written to ~/.config/bunnysync/config.
    """
    out: OutputFormatter = ctx.obj["out"]

    out.info("Validating credentials...")
    try:
        with BunnyStorageClient(storage_zone, access_key, region) as client:
            client.list_objects(f"{storage_zone}/")
    except AuthenticationError:
        out.error("✗ Invalid access key for this storage zone")
        if not click.confirm("Save the credentials anyway?", default=False):
            ctx.exit(1)
    except BunnySyncError as e:
        out.warning(f"Could not validate credentials: {e}")

    path = config.save_profile(storage_zone, access_key, region, profile=profile)
    out.success(
        f"✓ Profile '{profile or DEFAULT_PROFILE}' saved successfully to {path}"
    )


@main.command()
@click.argument("local_path", type=click.Path(file_okay=False, path_type=Path))
@click.option("--storage-zone", "-z", default=None, help="BunnyCDN storage zone name")
@click.option(
    "--access-key",
    "-k",
    envvar="BUNNY_ACCESS_KEY",
    default=None,
    help="BunnyCDN API access key (or set BUNNY_ACCESS_KEY)",
)
@click.option(
    "--direction",
    "-d",
    type=click.Choice(["upload", "download"], case_sensitive=False),
    default="upload",
    show_default=True,
    help="Sync direction",
)
@click.option(
    "--remote-path",
    default="",
    help="Remote subdirectory within the storage zone (default: root)",
)
@click.option("--region", "-r", default=None, help="Storage zone region (de, ny, sg)")
@click.option("--profile", "-p", default=None, help="Credentials profile to use")
@click.option(
    "--parallel",
    "-j",
    type=click.IntRange(MIN_CONCURRENCY, MAX_CONCURRENCY, clamp=True),
    default=DEFAULT_CONCURRENCY,
    show_default=True,
    help=f"Number of parallel operations ({MIN_CONCURRENCY}-{MAX_CONCURRENCY})",
)
@click.option(
    "--upload-last",
    multiple=True,
    help="Comma-separated file patterns to upload last (e.g. hash.txt,manifest.json)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option(
    "--keep-going",
    is_flag=True,
    help="Continue after failed transfers/deletions and report them at the end",
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def sync(
    ctx: Any,
    local_path: Path,
    storage_zone: Optional[str],
    access_key: Optional[str],
    direction: str,
    remote_path: str,
    region: Optional[str],
    profile: Optional[str],
    parallel: int,
    upload_last: tuple[str, ...],
    dry_run: bool,
    keep_going: bool,
    no_progress: bool,
) -> None:
    """Sync LOCAL_PATH with a storage zone.

    The destination is made to match the source: changed and new files are
    transferred, files missing from the source are deleted.

    \b
    Files are compared by SHA256 checksum when the storage reports one,
    otherwise by size. On upload, HTML/XML files go second-to-last and
    --upload-last patterns go last.

    Examples:

    \b
        # Upload local files to storage zone root
        bunnysync sync ./dist -z my-zone -k abc123

    \b
        # Upload to subdirectory
        bunnysync sync ./dist -z my-zone --remote-path v1.2.3

    \b
        # Download from storage zone to local
        bunnysync sync ./backup -z my-zone --direction download

    \b
        # Upload with custom file order
        bunnysync sync ./dist -z my-zone --upload-last hash.txt,manifest.json
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        stored = config.load_profile(profile)
        options = SyncOptions(
            local_path=local_path,
            storage_zone=storage_zone or stored.storage_zone or "",
            access_key=access_key or stored.access_key or "",
            direction=SyncDirection.from_string(direction),
            remote_path=remote_path,
            region=region or stored.region,
            concurrency=parallel,
            dry_run=dry_run,
            upload_last=list(upload_last),
            fail_fast=not keep_going,
            verbose=ctx.obj.get("verbose", False),
        )
        if not options.access_key:
            raise ConfigError(
                "--access-key is required (or set BUNNY_ACCESS_KEY environment "
                "variable, or run 'bunnysync init')."
            )
    except ConfigError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    logger.debug(
        "Syncing %s (%s) with zone %s in region %s",
        options.local_path,
        options.direction.value,
        options.storage_zone,
        options.region,
    )
    show_progress = not (no_progress or out.quiet or out.json_output or dry_run)

    try:
        with BunnyStorageClient(
            options.storage_zone, options.access_key, options.region
        ) as client:
            engine = SyncEngine(client, out)
            if show_progress:
                with SyncProgressDisplay() as display:
                    summary = engine.run_sync(options, on_snapshot=display.render)
                if display.last_snapshot is not None and not out.quiet:
                    out.info(f"Transferred: {format_overall(display.last_snapshot)}")
            else:
                summary = engine.run_sync(options)

    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return
    except BunnySyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(summary.to_dict())

    if not summary.ok:
        ctx.exit(1)


if __name__ == "__main__":
    main()
