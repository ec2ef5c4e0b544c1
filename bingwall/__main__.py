"""
__main__.py

This file adds support for running bingwall as a python module instead of invoking the "bingwall"
command line entrypoint. The sudo re-run for the login screen relies on it.
"""

from bingwall.cli import main


if __name__ == "__main__":
    main()
