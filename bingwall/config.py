"""
bingwall Configuration Management

This file handles utilities related to generating and loading variables from a configuration file.
BingwallConfig should be loaded at startup, before the feed is fetched, so that command line options
only need to override the values a user actually passes. Raise a ConfigError for any issues that arise
in processing or retrieving these configuration variables.

The configuration file is "config.json" and is saved at ~/.config/bingwall/config.json unless the
BINGWALL_CONFIG_DIR environment variable points somewhere else.
"""

import json
import os
from dataclasses import dataclass
from dataclasses import asdict
from dataclasses import fields
from pathlib import Path, PurePath

from bingwall.console import warn


# suffixes published by the Bing image archive for a given urlBase
RESOLUTIONS = ("UHD", "1920x1200", "1920x1080", "800x480", "400x240")

DEFAULT_CONFIG_DIR = Path("~/.config/bingwall")


class ConfigError(Exception):
    """Raise when an issue occurs with handling bingwall configuration."""

    pass


class PathEncoder(json.JSONEncoder):
    """
    custom encoder adds support for serializing pathlib objects as strings
    """

    def default(self, o):
        if isinstance(o, PurePath):
            return str(o)

        else:
            return json.JSONEncoder.default(self, o)


def validate_resolution(resolution: str) -> str:
    """
    Return resolution unchanged if it is one of the suffixes Bing serves, otherwise raise ConfigError.
    """

    if resolution not in RESOLUTIONS:
        raise ConfigError(f"Unsupported resolution: {resolution}")

    return resolution


def config_dir_from_env() -> Path:
    """Directory holding config.json, honouring the BINGWALL_CONFIG_DIR environment variable."""

    return Path(os.environ.get("BINGWALL_CONFIG_DIR", DEFAULT_CONFIG_DIR)).expanduser()


@dataclass
class BingwallConfig:
    """
    Dataclass to represent configuration variables for bingwall. Provides a namespace and identifiers
    for the defaults used when downloading the daily image.

    A BingwallConfig is instantiated by supplying keyword arguments from a deserialized json object, so
    the json object is kept fully flat.
    """

    BINGWALL_CONFIG_DIR: Path = DEFAULT_CONFIG_DIR.expanduser()
    BINGWALL_PICTURE_DIR: Path = Path("~/Pictures/bing-wallpapers").expanduser()
    BINGWALL_MARKET: str = "en-US"
    BINGWALL_RESOLUTION: str = "UHD"

    def __post_init__(self):
        """
        Handle the case where a new BingwallConfig is created from JSON, which cannot
        deserialize a str into a Path.
        """

        self.BINGWALL_CONFIG_DIR = Path(self.BINGWALL_CONFIG_DIR).expanduser()
        self.BINGWALL_PICTURE_DIR = Path(self.BINGWALL_PICTURE_DIR).expanduser()

    def generate_config_json(self) -> Path:
        """
        Write the BingwallConfig to file, serializing to JSON. Returns filepath of written
        config.json file located at BINGWALL_CONFIG_DIR.

        Overwrites any existing config file for bingwall.
        """

        try:
            to_json = json.dumps(
                asdict(self), sort_keys=True, indent=4, cls=PathEncoder
            )

        except TypeError as error:
            raise ConfigError(
                f"There was an error trying to serialize config data to JSON: {error}"
            )

        try:
            self.BINGWALL_CONFIG_DIR.mkdir(parents=True, exist_ok=True)

            dest_file = self.BINGWALL_CONFIG_DIR / "config.json"
            with open(dest_file, "w") as file:
                file.write(to_json)

        except OSError as error:
            raise ConfigError(
                f"There was an error saving the configuration file: {error}."
            )

        return dest_file


def load_config() -> BingwallConfig:
    """
    Load config.json from $BINGWALL_CONFIG_DIR or alternatively ~/.config/bingwall and instantiate
    variables as a BingwallConfig dataclass. Raise ConfigError if a config file can't be read.
    """

    config_src = config_dir_from_env() / "config.json"

    try:
        with config_src.open("r") as file:
            from_json = json.loads(file.read())

    except json.JSONDecodeError as error:
        raise ConfigError(f"There was an issue reading the config: {error}")

    except FileNotFoundError as error:
        raise ConfigError(f"There was an issue opening the config: {error}")

    if not isinstance(from_json, dict):
        raise ConfigError(f"Config at {config_src} must be a JSON object.")

    known = {field.name for field in fields(BingwallConfig)}
    unknown = set(from_json) - known
    if unknown:
        raise ConfigError(
            f"Unknown config keys in {config_src}: {', '.join(sorted(unknown))}"
        )

    return BingwallConfig(**from_json)


def init() -> BingwallConfig:
    """
    initialize bingwall, writing a default config file on first run. If that file can't be written
    the defaults are still returned, the config only supplies values the command line leaves out.
    """

    config_src = config_dir_from_env() / "config.json"

    if config_src.exists():
        return load_config()

    config = BingwallConfig(BINGWALL_CONFIG_DIR=config_src.parent)

    try:
        config.generate_config_json()

    except ConfigError as error:
        warn(f"{error} Continuing with default settings.")

    return config
