"""
bingwall Decorators

Decorators shared by the click commands of bingwall.
"""

from sys import exit
from functools import wraps

from bingwall.console import fail


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as error:
            fail(str(error))
            exit(1)

    return wrapper
