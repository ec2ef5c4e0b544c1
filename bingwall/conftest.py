"""
conftest.py

Test configuration for bingwall tests.

Defines Pytest fixtures for supplying test data to tests across the entire test suite. Fixtures used
within only a single module are defined directly in that module.
"""

import io
from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> Path:
    """
    Point BINGWALL_CONFIG_DIR at a temporary directory so no test touches the real ~/.config.
    """

    config_dir = tmp_path / "config"
    monkeypatch.setenv("BINGWALL_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A tiny but genuine JPEG, as served by the image endpoint."""

    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(0, 120, 215)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def test_image(tmp_path, jpeg_bytes) -> Path:
    """A JPEG on disk, standing in for a downloaded daily image."""

    path = tmp_path / "20240101-en-US-UHD.jpg"
    path.write_bytes(jpeg_bytes)
    return path


@pytest.fixture
def feed_xml():
    """
    Return a factory building feed responses. Pass None for a tag to leave it out.
    """

    def make(
        startdate="20240101",
        url="/th?id=OHR.Foo_EN-US1234567890_1920x1080.jpg&rf=LaDigue_1920x1080.jpg",
        url_base="/th?id=OHR.Foo_EN-US1234567890",
    ) -> bytes:
        parts = ['<?xml version="1.0" encoding="utf-8" ?>', "<images>", "<image>"]
        if startdate is not None:
            parts.append(f"<startdate>{startdate}</startdate>")
        parts.append("<fullstartdate>202401010800</fullstartdate>")
        if url is not None:
            parts.append(f"<url>{url.replace('&', '&amp;')}</url>")
        if url_base is not None:
            parts.append(f"<urlBase>{url_base}</urlBase>")
        parts += ["<copyright>Somewhere nice (© Someone)</copyright>", "</image>", "</images>"]
        return "\n".join(parts).encode("utf-8")

    return make
