"""
Desktop environment detection

Classify the host into one of the environments bingwall knows how to configure. Detection is
best-effort and looks only at live host signals: the kernel name, a few desktop session variables,
and whether the Plasma wallpaper helper is on PATH. Nothing is cached, since the environment can
differ between invocations (a sudo re-run, for example).
"""

import os
import platform
import shutil
from enum import Enum


class EnvironmentCategory(Enum):
    MACOS = "macos"
    KDE = "kde"
    GNOME = "gnome"
    UNKNOWN = "unknown"


PLASMA_WALLPAPER_TOOL = "plasma-apply-wallpaperimage"


def detect(system=None, environ=None, which=shutil.which) -> EnvironmentCategory:
    """
    Return the EnvironmentCategory of the host. The first matching rule wins:

    1. a Darwin kernel is macOS
    2. KDE_FULL_SESSION set, XDG_CURRENT_DESKTOP containing KDE/Plasma or DESKTOP_SESSION
       containing plasma/kde is KDE
    3. XDG_CURRENT_DESKTOP containing GNOME or DESKTOP_SESSION containing gnome is GNOME
    4. plasma-apply-wallpaperimage on PATH is KDE
    5. anything else is UNKNOWN

    Matching is case-sensitive. system, environ and which default to the live host and exist so
    callers can classify something other than the current process.
    """

    system = platform.system() if system is None else system
    environ = os.environ if environ is None else environ

    xdg = environ.get("XDG_CURRENT_DESKTOP", "")
    session = environ.get("DESKTOP_SESSION", "")
    kde = environ.get("KDE_FULL_SESSION", "")

    if system == "Darwin":
        return EnvironmentCategory.MACOS

    if kde or "KDE" in xdg or "Plasma" in xdg or "plasma" in session or "kde" in session:
        return EnvironmentCategory.KDE

    if "GNOME" in xdg or "gnome" in session:
        return EnvironmentCategory.GNOME

    if which(PLASMA_WALLPAPER_TOOL) is not None:
        return EnvironmentCategory.KDE

    return EnvironmentCategory.UNKNOWN
