"""
Wallpaper Handler

This module applies a downloaded image to the desktop, lock screen and login screen of the detected
environment. Each supported environment has an applier exposing the same three operations:

    set_desktop(image)      set_lockscreen(image)      set_loginscreen(image)

An operation the environment can't perform returns an ApplyResult with applied=False and an
advisory message instead of failing. The one exception is the GNOME login screen: GDM backgrounds
live in a compiled resource bundle that varies by distro and release, so asking for it aborts the run
before anything is changed.

All appliers drop into the platform's own command line tools:

    macOS   osascript (System Events)
    KDE     plasma-apply-wallpaperimage, kwriteconfig6/kwriteconfig5, SDDM theme files
    GNOME   gsettings (org.gnome.desktop.background)
"""

import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from bingwall import sddm_handler
from bingwall.console import log
from bingwall.console import warn
from bingwall.environment import EnvironmentCategory
from bingwall.utils import command_exists


class WallpaperUpdateError(Exception):
    """
    Raised when an attempt to update a background fails or the required tool is missing.
    """

    pass


class UnsupportedEnvironmentError(Exception):
    """
    Raised when no applier exists for the environment, or a target is explicitly unsupported.
    """

    pass


class ApplyTarget(Enum):
    DESKTOP = "desktop"
    LOCKSCREEN = "lockscreen"
    LOGINSCREEN = "loginscreen"


# order in which requested targets are applied
TARGET_ORDER = (ApplyTarget.DESKTOP, ApplyTarget.LOCKSCREEN, ApplyTarget.LOGINSCREEN)


@dataclass(frozen=True)
class ApplyResult:
    target: ApplyTarget
    applied: bool
    message: str = ""

    @classmethod
    def done(cls, target: ApplyTarget) -> "ApplyResult":
        return cls(target=target, applied=True)

    @classmethod
    def not_supported(cls, target: ApplyTarget, message: str) -> "ApplyResult":
        return cls(target=target, applied=False, message=message)


def run_tool(args: list[str], failure: str) -> subprocess.CompletedProcess:
    """
    Run an external tool and raise WallpaperUpdateError with failure as the message if it exits
    with a non-zero status or can't be started.

    subprocess.CalledProcessError is raised by run() on a non-zero exit status and is the main
    way of knowing that the tool didn't do its job.
    """

    try:
        return subprocess.run(args, check=True, capture_output=True, text=True)

    except subprocess.CalledProcessError as error:
        detail = (error.stderr or "").strip()
        raise WallpaperUpdateError(f"{failure}: {detail}" if detail else failure)

    except OSError as error:
        raise WallpaperUpdateError(f"{failure}: {error}")


def require_tool(name: str, message: str):
    if not command_exists(name):
        raise WallpaperUpdateError(message)


def file_uri(image_path: Path) -> str:
    return Path(image_path).expanduser().resolve().as_uri()


class Applier:
    """
    Base applier. Every operation is unsupported until a subclass says otherwise.
    """

    name = "unknown"

    # targets that abort the whole run instead of being skipped
    fatal_targets: frozenset = frozenset()

    def set_desktop(self, image_path: Path) -> ApplyResult:
        return ApplyResult.not_supported(
            ApplyTarget.DESKTOP, f"{self.name}: desktop wallpaper is not handled here."
        )

    def set_lockscreen(self, image_path: Path) -> ApplyResult:
        return ApplyResult.not_supported(
            ApplyTarget.LOCKSCREEN, f"{self.name}: lock screen wallpaper is not handled here."
        )

    def set_loginscreen(self, image_path: Path) -> ApplyResult:
        return ApplyResult.not_supported(
            ApplyTarget.LOGINSCREEN, f"{self.name}: login window wallpaper is not handled here."
        )

    def operation(self, target: ApplyTarget):
        return {
            ApplyTarget.DESKTOP: self.set_desktop,
            ApplyTarget.LOCKSCREEN: self.set_lockscreen,
            ApplyTarget.LOGINSCREEN: self.set_loginscreen,
        }[target]


class MacOSApplier(Applier):

    name = "macOS"

    def set_desktop(self, image_path: Path) -> ApplyResult:
        """
        Set the picture of every desktop (space) through System Events.
        """

        require_tool("osascript", "osascript not found (required on macOS)")

        posix_path = str(Path(image_path).expanduser().resolve())
        quoted = posix_path.replace("\\", "\\\\").replace('"', '\\"')
        script = "\n".join(
            [
                'tell application "System Events"',
                "  repeat with d in desktops",
                f'    set picture of d to POSIX file "{quoted}"',
                "  end repeat",
                "end tell",
            ]
        )

        log("macOS: setting desktop wallpaper")
        run_tool(["osascript", "-e", script], "Failed to set macOS wallpaper")
        return ApplyResult.done(ApplyTarget.DESKTOP)


class KDEApplier(Applier):

    name = "KDE"

    def set_desktop(self, image_path: Path) -> ApplyResult:
        require_tool(
            "plasma-apply-wallpaperimage", "plasma-apply-wallpaperimage not found"
        )

        log("KDE: setting desktop wallpaper")
        run_tool(
            ["plasma-apply-wallpaperimage", str(Path(image_path).expanduser().resolve())],
            "Failed to set KDE wallpaper",
        )
        return ApplyResult.done(ApplyTarget.DESKTOP)

    def set_lockscreen(self, image_path: Path) -> ApplyResult:
        """
        Write the lock screen background into kscreenlockerrc. Plasma 6 ships kwriteconfig6, Plasma 5
        kwriteconfig5.
        """

        for kwriteconfig in ("kwriteconfig6", "kwriteconfig5"):
            if command_exists(kwriteconfig):
                break
        else:
            raise WallpaperUpdateError(
                "kwriteconfig5/kwriteconfig6 not found (needed to set KDE lock screen wallpaper)"
            )

        log("KDE: setting lock screen wallpaper")
        run_tool(
            [
                kwriteconfig,
                "--file",
                "kscreenlockerrc",
                "--group",
                "Greeter",
                "--group",
                "Wallpaper",
                "--group",
                "org.kde.image",
                "--group",
                "General",
                "--key",
                "Image",
                file_uri(image_path),
            ],
            "Failed to write kscreenlockerrc",
        )
        return ApplyResult.done(ApplyTarget.LOCKSCREEN)

    def set_loginscreen(self, image_path: Path) -> ApplyResult:
        # raises sddm_handler.ElevationRequiredError when not root
        sddm_handler.apply_login_background(image_path)
        return ApplyResult.done(ApplyTarget.LOGINSCREEN)


class GnomeApplier(Applier):

    name = "GNOME"
    fatal_targets = frozenset({ApplyTarget.LOGINSCREEN})

    schema = "org.gnome.desktop.background"

    def set_desktop(self, image_path: Path) -> ApplyResult:
        """
        GNOME expects file:// URIs. picture-uri is standard, picture-uri-dark only exists on newer
        releases so failing to set it is tolerated.
        """

        require_tool("gsettings", "gsettings not found (GNOME required)")

        uri = file_uri(image_path)

        log("GNOME: setting desktop wallpaper")
        run_tool(
            ["gsettings", "set", self.schema, "picture-uri", uri],
            "Failed to set GNOME wallpaper",
        )

        try:
            run_tool(
                ["gsettings", "set", self.schema, "picture-uri-dark", uri],
                "Failed to set GNOME dark wallpaper",
            )
        except WallpaperUpdateError as error:
            warn(f"GNOME: {error}; continuing.")

        return ApplyResult.done(ApplyTarget.DESKTOP)

    def set_lockscreen(self, image_path: Path) -> ApplyResult:
        return ApplyResult.not_supported(
            ApplyTarget.LOCKSCREEN,
            "GNOME: lock screen is generally tied to the same background; no separate stable method applied.",
        )

    def set_loginscreen(self, image_path: Path) -> ApplyResult:
        raise UnsupportedEnvironmentError(
            "GNOME GDM login background is not handled here (fragile resource rebuild; varies by distro/GNOME version)."
        )


APPLIERS = {
    EnvironmentCategory.MACOS: MacOSApplier,
    EnvironmentCategory.KDE: KDEApplier,
    EnvironmentCategory.GNOME: GnomeApplier,
}


def apply(category: EnvironmentCategory, targets, image_path: Path) -> list[ApplyResult]:
    """
    Apply image_path to each requested target of the environment category, in desktop, lock
    screen, login screen order. Returns one ApplyResult per requested target. Nothing happens when
    no target was requested.
    """

    targets = set(targets)
    if not targets:
        return []

    if category not in APPLIERS:
        raise UnsupportedEnvironmentError(
            f"Unsupported desktop. Download succeeded at: {image_path}"
        )

    applier = APPLIERS[category]()

    # refuse up front so nothing is half applied
    for target in TARGET_ORDER:
        if target in targets and target in applier.fatal_targets:
            applier.operation(target)(image_path)

    results = []
    for target in TARGET_ORDER:
        if target not in targets:
            continue

        result = applier.operation(target)(image_path)
        if not result.applied:
            log(result.message)
        results.append(result)

    return results
