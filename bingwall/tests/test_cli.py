"""
Test the CLI driver for bingwall

cli.py is the entry point for the bingwall program. Verify the order of operations and that standard
invocation returns the correct exit code on success or failure. The feed, download, detection and
apply steps are patched so nothing leaves the test process.
"""

import unittest.mock
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from bingwall.environment import EnvironmentCategory
from bingwall.feed_handler import FeedMetadata
from bingwall.feed_handler import ParseError
from bingwall.sddm_handler import ElevationRequiredError
from bingwall.wallpaper_handler import ApplyTarget
from bingwall.wallpaper_handler import UnsupportedEnvironmentError

# following entities are tested in this module:
from bingwall.cli import cli
from bingwall.cli_utils.utils import escalate_login
from bingwall.cli_utils.utils import privileged_login_command

runner = CliRunner()

METADATA = FeedMetadata(start_date="20240101", url_base="/th?id=OHR.Foo_EN-US1234567890")


@pytest.fixture
def pipeline(test_image):
    """
    Patch every step of a run. Yields the mocks keyed by step name.
    """

    with patch(
        "bingwall.cli.fetch_daily_image_metadata", autospec=True, return_value=METADATA
    ) as fetch, patch(
        "bingwall.cli.resolve_or_download", autospec=True, return_value=test_image
    ) as download, patch(
        "bingwall.cli.detect", autospec=True, return_value=EnvironmentCategory.KDE
    ) as detect, patch(
        "bingwall.cli.apply", autospec=True, return_value=[]
    ) as apply, patch(
        "bingwall.cli.escalate_login", autospec=True
    ) as escalate:
        yield {
            "fetch": fetch,
            "download": download,
            "detect": detect,
            "apply": apply,
            "escalate": escalate,
        }


def test_help():

    result = runner.invoke(cli, ["-h"])

    assert result.exit_code == 0
    assert "--set-wallpaper" in result.output
    assert "--_apply-login" not in result.output


def test_invocation_failure_invalid_args():

    result = runner.invoke(cli, ["--thiswillneverbeanoption"])

    assert result.exit_code != 0


def test_download_only(pipeline, test_image):

    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "[bing-wallpaper] Done (download only). Use -w/-L/-S to apply." in result.output
    pipeline["fetch"].assert_called_once_with("en-US")
    pipeline["detect"].assert_not_called()
    pipeline["apply"].assert_not_called()


def test_download_only_with_unwritable_config_dir(pipeline, isolated_config):

    isolated_config.parent.mkdir(parents=True, exist_ok=True)
    isolated_config.write_text("")

    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "Continuing with default settings." in result.output
    assert "[bing-wallpaper] Done (download only). Use -w/-L/-S to apply." in result.output
    pipeline["fetch"].assert_called_once_with("en-US")


def test_options_reach_download_request(pipeline, tmp_path):

    result = runner.invoke(
        cli, ["-p", str(tmp_path / "walls"), "-m", "pt-BR", "-r", "1920x1080", "-f"]
    )

    assert result.exit_code == 0
    pipeline["fetch"].assert_called_once_with("pt-BR")
    request, metadata = pipeline["download"].call_args.args
    assert request.market == "pt-BR"
    assert request.resolution == "1920x1080"
    assert request.target_directory == tmp_path / "walls"
    assert request.force_redownload
    assert metadata == METADATA


def test_config_defaults(pipeline, isolated_config):

    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert (isolated_config / "config.json").exists()
    request, _ = pipeline["download"].call_args.args
    assert request.market == "en-US"
    assert request.resolution == "UHD"
    assert not request.force_redownload


def test_apply_requested_targets(pipeline, test_image):

    result = runner.invoke(cli, ["-w", "-L"])

    assert result.exit_code == 0
    assert "[bing-wallpaper] Detected desktop: kde" in result.output
    pipeline["apply"].assert_called_once_with(
        EnvironmentCategory.KDE, {ApplyTarget.DESKTOP, ApplyTarget.LOCKSCREEN}, test_image
    )


def test_quiet_hides_info(pipeline):

    result = runner.invoke(cli, ["-q", "-w"])

    assert result.exit_code == 0
    assert "[bing-wallpaper]" not in result.output


def test_unsupported_environment(pipeline, test_image):

    pipeline["detect"].return_value = EnvironmentCategory.UNKNOWN
    pipeline["apply"].side_effect = UnsupportedEnvironmentError(
        f"Unsupported desktop. Download succeeded at: {test_image}"
    )

    result = runner.invoke(cli, ["-q", "-w"])

    assert result.exit_code == 1
    assert "[bing-wallpaper] ERROR: Unsupported desktop." in result.output


def test_feed_failure(pipeline):

    pipeline["fetch"].side_effect = ParseError("Could not parse <startdate> from Bing feed")

    result = runner.invoke(cli, ["-w"])

    assert result.exit_code == 1
    assert "ERROR: Could not parse <startdate> from Bing feed" in result.output
    pipeline["download"].assert_not_called()


def test_login_escalation(pipeline, test_image):

    pipeline["apply"].side_effect = ElevationRequiredError(
        "KDE login wallpaper requires root.", image_path=test_image
    )

    result = runner.invoke(cli, ["-S", "-q"])

    assert result.exit_code == 0
    pipeline["escalate"].assert_called_once_with(test_image, quiet=True)


def test_login_escalation_refused(pipeline, test_image):

    pipeline["apply"].side_effect = ElevationRequiredError("needs root", image_path=test_image)
    pipeline["escalate"].side_effect = ElevationRequiredError(
        "Privileged login wallpaper update failed (exit status 1).", image_path=test_image
    )

    result = runner.invoke(cli, ["-S"])

    assert result.exit_code == 1
    assert "ERROR: Privileged login wallpaper update failed" in result.output


@patch("bingwall.cli.apply_login_background", autospec=True)
def test_internal_apply_login(mock_login, pipeline, test_image):

    result = runner.invoke(cli, ["--_apply-login", str(test_image)])

    assert result.exit_code == 0
    mock_login.assert_called_once_with(test_image)
    pipeline["fetch"].assert_not_called()
    pipeline["download"].assert_not_called()


def test_privileged_login_command(test_image):

    args = privileged_login_command(test_image, quiet=True)

    assert args[:2] == ["sudo", "-E"]
    assert args[3:] == ["-m", "bingwall", "--_apply-login", str(test_image), "--quiet"]


@patch("bingwall.cli_utils.utils.subprocess.run", autospec=True)
@patch("bingwall.cli_utils.utils.command_exists", autospec=True)
def test_escalate_login(mock_exists, mock_run, test_image):

    mock_exists.return_value = True
    mock_run.return_value = unittest.mock.MagicMock(returncode=0)

    escalate_login(test_image)

    mock_run.assert_called_once_with(privileged_login_command(test_image), check=False)


@patch("bingwall.cli_utils.utils.subprocess.run", autospec=True)
@patch("bingwall.cli_utils.utils.command_exists", autospec=True)
def test_escalate_login_refused(mock_exists, mock_run, test_image):

    mock_exists.return_value = True
    mock_run.return_value = unittest.mock.MagicMock(returncode=1)

    with pytest.raises(ElevationRequiredError):
        escalate_login(test_image)


@patch("bingwall.cli_utils.utils.subprocess.run", autospec=True)
@patch("bingwall.cli_utils.utils.command_exists", autospec=True)
def test_escalate_login_without_sudo(mock_exists, mock_run, test_image):

    mock_exists.return_value = False

    with pytest.raises(ElevationRequiredError):
        escalate_login(test_image)

    mock_run.assert_not_called()
