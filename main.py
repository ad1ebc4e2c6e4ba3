"""
podsync - sync tracks from the XMMS2 medialib to an iPod.

    python main.py artist:Kraftwerk            # sync a collection query
    python main.py --clear                     # remove every track
    python main.py --service                   # serve sync requests over HTTP
    python main.py -m /mnt/ipod -v genre:Jazz

Exits 0 on success and 1 if setup, parsing or the sync fails.
"""

import logging
import sys
from typing import Optional

import click

from DeviceCatalog import Catalog, CatalogError
from MediaLibrary import MediaLibraryError, Xmms2Client
from Service import run_service
from SyncEngine import (
    CatalogPersistFailed,
    SyncContext,
    SyncExecutor,
    SyncSettings,
    Transcoder,
    build_narrator,
    run_query,
)

logger = logging.getLogger("podsync")

CLIENT_NAME = "podsync"


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s" if verbose else "%(levelname)s: %(message)s",
    )


def build_executor(settings: SyncSettings, mountpoint: str) -> SyncExecutor:
    """
    Connect to the media library and load the device catalog.

    Raises:
        MediaLibraryError, CatalogError: on setup failure
    """
    client = Xmms2Client(CLIENT_NAME)
    client.connect()

    catalog = Catalog.parse(mountpoint)
    transcoder = Transcoder(
        ffmpeg_path=settings.ffmpeg_path or None,
        converter_script=settings.converter_script or None,
        bitrate=settings.mp3_bitrate,
        timeout=settings.transcode_timeout,
    )
    narrator = build_narrator(catalog, enabled=settings.narration)
    return SyncExecutor(SyncContext(catalog, client, transcoder, narrator))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-m", "--mountpoint", default=None,
              help="The mountpoint for the iPod. Default: from settings, else /media/IPOD")
@click.option("-s", "--service", is_flag=True, help="Run as a service.")
@click.option("-v", "--verbose", is_flag=True, help="Display more messages.")
@click.option("--clear", is_flag=True, help="Remove all tracks in the iPod.")
@click.argument("query", nargs=-1)
def main(mountpoint: Optional[str], service: bool, verbose: bool, clear: bool, query: tuple[str, ...]) -> int:
    """Sync tracks from the medialib to an iPod."""
    configure_logging(verbose)

    if not (service or clear or query):
        logger.error("Need either --service, --clear or a query string.")
        return 1

    settings = SyncSettings.load()
    mountpoint = mountpoint or settings.mountpoint

    try:
        executor = build_executor(settings, mountpoint)
    except MediaLibraryError as e:
        logger.error(f"Failed to connect to xmms2 daemon, leaving. ({e})")
        return 1
    except CatalogError as e:
        logger.error(f"Failed to parse iPod database: {e}")
        return 1

    if clear and click.confirm("Do you really wish to clear all tracks?", default=True):
        try:
            result = executor.clear_all()
        except CatalogPersistFailed as e:
            logger.error(f"Failed to clear tracks: {e}")
            return 1
        click.echo(result.summary)

    if query:
        result = run_query(executor, " ".join(query))
        if result is None:
            return 1
        logger.info(result.summary)

    if service:
        run_service(executor, settings.service_host, settings.service_port)

    return 0


def run(argv: Optional[list[str]] = None) -> int:
    """Console entry point. Option errors exit with 1, not click's 2."""
    try:
        return main.main(args=argv, prog_name="podsync", standalone_mode=False) or 0
    except click.exceptions.Abort:
        return 1
    except click.ClickException as e:
        click.echo(f"Failed to parse options: {e.format_message()}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(run())
