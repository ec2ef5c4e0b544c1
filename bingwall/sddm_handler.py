"""
SDDM Login Screen Handler

This module sets the KDE login screen background by dropping the image into the active SDDM theme
directory and pointing the theme's user override file at it. Breeze (and many other themes) read
theme.conf.user on top of theme.conf, so only that file is touched, but it is overwritten as a whole:
any other override previously stored there is lost.

Finding the active theme directory depends on SDDM's on-disk conventions:

- /etc/sddm.conf is read first, then /etc/sddm.conf.d/*.conf in order. Inside the [Theme] section,
  "Current" names the theme and "ThemeDir" optionally overrides the base directory. The last value
  seen wins.
- Without a Current value, KDE setups default to "breeze".
- Distros ship themes under a handful of base directories, tried in order after ThemeDir.
- Plasma 6 may ship Breeze as "breeze6", which is used when Current=breeze has no directory.

Writing into the theme directory requires root. This module never escalates by itself, it raises
ElevationRequiredError and leaves the decision to the caller.
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bingwall.config import ConfigError
from bingwall.console import log
from bingwall.console import warn
from bingwall.utils import is_elevated


SDDM_CONFIG = Path("/etc/sddm.conf")
SDDM_CONFIG_DIR = Path("/etc/sddm.conf.d")

THEME_BASE_DIRS = (
    Path("/usr/share/sddm/themes"),
    Path("/usr/local/share/sddm/themes"),
    Path("/var/lib/sddm/themes"),
    Path("/var/sddm/themes"),
)

DEFAULT_THEME = "breeze"
BREEZE_FALLBACK = "breeze6"

LOGIN_BACKGROUND_NAME = "bing-login-background.jpg"
THEME_OVERRIDE_NAME = "theme.conf.user"
THEME_OVERRIDE = f"""[General]
type=image
background={LOGIN_BACKGROUND_NAME}
"""


class ElevationRequiredError(PermissionError):
    """
    Raised when the login screen can't be updated without root. Carries the already resolved
    image so a privileged re-run doesn't need to download it again.
    """

    def __init__(self, message: str, image_path: Optional[Path] = None):
        super().__init__(message)
        self.image_path = image_path


@dataclass(frozen=True)
class SddmThemeLocation:
    theme_directory: Path


def sddm_config_files(
    config_file: Path = SDDM_CONFIG, config_dir: Path = SDDM_CONFIG_DIR
) -> list[Path]:
    """
    SDDM config files in the order SDDM reads them.
    """

    files = []
    if config_file.is_file():
        files.append(config_file)
    if config_dir.is_dir():
        files.extend(sorted(path for path in config_dir.glob("*.conf") if path.is_file()))

    return files


def read_theme_value(key: str, config_files: list[Path]) -> Optional[str]:
    """
    Read key from the [Theme] section of each config file. The last non-empty occurrence wins.

    Lines that are neither a section header nor a key=value pair are ignored, the rest of the file
    still counts. Files that can't be read or decoded are reported and skipped.
    """

    value = None

    for path in config_files:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()

        except (OSError, UnicodeDecodeError) as error:
            warn(f"SDDM: skipping unreadable config {path}: {error}")
            continue

        section = None

        for line in lines:
            line = line.strip()

            if line.startswith("[") and line.endswith("]"):
                section = line[1:-1].strip()
                continue

            if section != "Theme" or "=" not in line:
                continue

            # SDDM keys are case sensitive
            k, v = line.split("=", 1)
            if k.strip() == key and v.strip():
                value = v.strip()

    return value


def current_theme_name(config_files: list[Path]) -> str:
    return read_theme_value("Current", config_files) or DEFAULT_THEME


def theme_dir_candidates(
    config_files: list[Path], base_dirs=THEME_BASE_DIRS
) -> list[Path]:
    """ThemeDir from config first (if set), then the common defaults."""

    candidates = []
    theme_dir = read_theme_value("ThemeDir", config_files)
    if theme_dir:
        candidates.append(Path(theme_dir))

    candidates.extend(Path(base) for base in base_dirs)
    return candidates


def resolve_theme_directory(
    config_files: Optional[list[Path]] = None, base_dirs=THEME_BASE_DIRS
) -> SddmThemeLocation:
    """
    Find the active SDDM theme directory. Raise ConfigError if none of the candidates exist.
    """

    if config_files is None:
        config_files = sddm_config_files()

    theme = current_theme_name(config_files)
    candidates = theme_dir_candidates(config_files, base_dirs)

    for base in candidates:
        if (base / theme).is_dir():
            return SddmThemeLocation(theme_directory=base / theme)

    if theme == DEFAULT_THEME:
        for base in candidates:
            if (base / BREEZE_FALLBACK).is_dir():
                return SddmThemeLocation(theme_directory=base / BREEZE_FALLBACK)

    raise ConfigError(
        "SDDM theme directory not found. Checked ThemeDir/Current in /etc/sddm.conf* and common locations."
    )


def apply_login_background(
    image_path: Path, config_files: Optional[list[Path]] = None, base_dirs=THEME_BASE_DIRS
) -> Path:
    """
    Copy image_path into the active SDDM theme and overwrite theme.conf.user to use it. Returns the
    theme directory that was updated.
    """

    image_path = Path(image_path).expanduser().resolve()

    if not is_elevated():
        raise ElevationRequiredError(
            "KDE login wallpaper requires root.", image_path=image_path
        )

    if not image_path.is_file():
        raise FileNotFoundError(f"Login wallpaper {image_path} does not exist.")

    theme_dir = resolve_theme_directory(config_files, base_dirs).theme_directory
    log(f"SDDM: using theme dir: {theme_dir}")

    log(f"SDDM: copying image into {theme_dir}")
    background = theme_dir / LOGIN_BACKGROUND_NAME
    shutil.copyfile(image_path, background)
    os.chmod(background, 0o644)

    override = theme_dir / THEME_OVERRIDE_NAME
    log(f"SDDM: writing {override}")
    override.write_text(THEME_OVERRIDE)

    return theme_dir
