"""
bingwall CLI Utilities

Helpers for the command line layer that don't belong in the core modules, most notably re-running
bingwall under sudo when the login screen needs root.
"""

import subprocess
import sys
from pathlib import Path

from bingwall.console import log
from bingwall.sddm_handler import ElevationRequiredError
from bingwall.utils import command_exists


def privileged_login_command(image_path: Path, quiet: bool = False) -> list[str]:
    """
    Command line re-running bingwall as root to apply only the login background for an image that
    was already downloaded.
    """

    args = ["sudo", "-E", sys.executable, "-m", "bingwall", "--_apply-login", str(image_path)]
    if quiet:
        args.append("--quiet")

    return args


def escalate_login(image_path: Path, quiet: bool = False):
    """
    Apply the login background through a sudo re-run of bingwall. Raise ElevationRequiredError if
    sudo is missing or the privileged run fails or is refused.
    """

    if not command_exists("sudo"):
        raise ElevationRequiredError(
            "sudo not found (required for -S / --set-login)", image_path=image_path
        )

    log("KDE: login wallpaper needs admin permissions; requesting sudo...")

    # not captured, sudo may need to prompt for a password
    result = subprocess.run(privileged_login_command(image_path, quiet), check=False)
    if result.returncode != 0:
        raise ElevationRequiredError(
            f"Privileged login wallpaper update failed (exit status {result.returncode}).",
            image_path=image_path,
        )
