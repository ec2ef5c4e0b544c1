"""
bingwall

Download Bing's image of the day and use it as your wallpaper.

This module defines the entry point to the bingwall CLI. A run is a straight line:

    fetch feed -> resolve or download image -> detect desktop -> apply requested targets

Without -w/-L/-S the image is only downloaded. Options fall back to the values stored in
~/.config/bingwall/config.json, which is written with defaults on first run.
"""

from pathlib import Path

import click

from bingwall import config as bingwall_config
from bingwall.config import RESOLUTIONS
from bingwall.console import log
from bingwall.console import set_quiet
from bingwall.environment import detect
from bingwall.feed_handler import fetch_daily_image_metadata
from bingwall.image_handler import DownloadRequest
from bingwall.image_handler import resolve_or_download
from bingwall.sddm_handler import ElevationRequiredError
from bingwall.sddm_handler import apply_login_background
from bingwall.wallpaper_handler import ApplyTarget
from bingwall.wallpaper_handler import apply

from bingwall.cli_utils.decorators import catch_errors
from bingwall.cli_utils.utils import escalate_login


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.command(context_settings=CONTEXT_SETTINGS)
@catch_errors
@click.option(
    "--picturedir",
    "-p",
    "picture_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Download directory (default: ~/Pictures/bing-wallpapers)",
)
@click.option(
    "--market", "-m", type=str, help="Bing market/locale, e.g. en-US, pt-BR, en-GB (default: en-US)"
)
@click.option(
    "--resolution",
    "-r",
    type=str,
    help=f"{'|'.join(RESOLUTIONS)} (default: UHD)",
)
@click.option(
    "--set-wallpaper", "-w", is_flag=True, help="Set downloaded image as desktop wallpaper"
)
@click.option(
    "--set-lockscreen", "-L", is_flag=True, help="Also set lock screen background (KDE only)"
)
@click.option(
    "--set-login",
    "-S",
    is_flag=True,
    help="Also set login screen background (KDE + SDDM theme; requires sudo/root)",
)
@click.option("--force", "-f", is_flag=True, help="Force re-download even if file exists")
@click.option("--quiet", "-q", is_flag=True, help="Less output")
@click.option(
    "--_apply-login",
    "apply_login_file",
    hidden=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.version_option(package_name="bingwall")
def cli(
    picture_dir,
    market,
    resolution,
    set_wallpaper,
    set_lockscreen,
    set_login,
    force,
    quiet,
    apply_login_file,
):
    """
    Download Bing's image of the day and optionally apply it as your wallpaper.

    \b
    Examples:
        bingwall -w
        bingwall -w -L
        bingwall -w -L -S -m pt-BR -r UHD
    """

    set_quiet(quiet)

    # internal mode: the sudo re-run applies only the login background, then exits
    if apply_login_file is not None:
        apply_login_background(apply_login_file)
        log("Done.")
        return

    config = bingwall_config.init()

    request = DownloadRequest(
        market=market or config.BINGWALL_MARKET,
        resolution=resolution or config.BINGWALL_RESOLUTION,
        target_directory=picture_dir or config.BINGWALL_PICTURE_DIR,
        force_redownload=force,
    )

    metadata = fetch_daily_image_metadata(request.market)
    file = resolve_or_download(request, metadata)

    flags = {
        ApplyTarget.DESKTOP: set_wallpaper,
        ApplyTarget.LOCKSCREEN: set_lockscreen,
        ApplyTarget.LOGINSCREEN: set_login,
    }
    targets = {target for target, requested in flags.items() if requested}

    if not targets:
        log("Done (download only). Use -w/-L/-S to apply.")
        return

    category = detect()
    log(f"Detected desktop: {category.value}")

    try:
        apply(category, targets, file)

    except ElevationRequiredError as error:
        escalate_login(error.image_path or file, quiet=quiet)

    log("Done.")


def main():
    cli()


if __name__ == "__main__":
    main()
