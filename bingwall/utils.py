import os
import shutil

from time import sleep
from functools import wraps


def retry(exceptions, attempts: int = 3, delay: float = 1.0):
    """
    Use this decorator to re-invoke a flaky network call. The wrapped function is called up to
    'attempts' times, sleeping a fixed 'delay' seconds between tries. There is no backoff. The last
    error is re-raised once attempts run out.
    """

    def wrapper(func):
        @wraps(func)
        def inner(*args, **kwargs):
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)

                except exceptions:
                    if attempt == attempts:
                        raise
                    sleep(delay)

        return inner

    return wrapper


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH."""

    return shutil.which(name) is not None


def is_elevated() -> bool:
    """True when running with an effective uid of root."""

    return hasattr(os, "geteuid") and os.geteuid() == 0
