"""
Console logging for dlldeploy.

This module defines the `Logger` singleton, a thin wrapper over the standard
`logging` module that prefixes every message with a status symbol and adds a
custom SUCCESS level. Output goes to stderr so that it never mixes with
anything a build step might capture from stdout. Symbols are colored only when
stderr is a terminal; build logs and redirected reports stay plain text.
"""

import logging
from typing import ClassVar

from colorama import Fore, Style, just_fix_windows_console


class Logger:
    """A singleton class for handling formatted and optionally colored logging."""

    _logger: ClassVar[logging.Logger | None] = None
    _colors: ClassVar[bool] = False

    SUCCESS = 25
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    DEBUG = logging.DEBUG

    _SYMBOLS: ClassVar[dict[int, tuple[str, str]]] = {
        SUCCESS: ("[+]", Fore.GREEN),
        INFO: ("[*]", Fore.BLUE),
        WARNING: ("[!]", Fore.YELLOW),
        ERROR: ("[-]", Fore.RED),
        DEBUG: ("[>]", Fore.LIGHTBLACK_EX),
    }

    @classmethod
    def _log(cls, level: int, message: str) -> None:
        """Write a log message based on log level."""

        if cls._logger is None:
            cls.setup(cls.INFO)

        symbol, color = cls._SYMBOLS[level]
        if cls._colors:
            symbol = f"{color}{Style.BRIGHT}{symbol}{Style.RESET_ALL}"

        cls._logger.log(level, f"{symbol} {message}")

    @classmethod
    def set_level(cls, level: int | str) -> None:
        """
        Set a log level for the singleton.

        Args:
            level (int | str): The log level to set.
        """

        cls._logger.setLevel(level)

    @classmethod
    def setup(cls, log_level: int, colors: bool | None = None) -> None:
        """
        Set up the Logger singleton.

        Args:
            log_level (int): The log level to set.
            colors (bool | None): Force colored symbols on or off; None colors
                only when the handler's stream is a terminal.
        """

        just_fix_windows_console()

        cls._logger = logging.getLogger("dlldeploy")
        cls._logger.setLevel(log_level)
        cls._logger.propagate = False

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        cls._logger.handlers.clear()
        cls._logger.addHandler(handler)

        if colors is None:
            isatty = getattr(handler.stream, "isatty", None)
            colors = bool(isatty and isatty())
        cls._colors = colors

        logging.addLevelName(cls.SUCCESS, "SUCCESS")

    @classmethod
    def success(cls, message: str) -> None:
        cls._log(cls.SUCCESS, message)

    @classmethod
    def info(cls, message: str) -> None:
        cls._log(cls.INFO, message)

    @classmethod
    def warning(cls, message: str) -> None:
        cls._log(cls.WARNING, message)

    @classmethod
    def error(cls, message: str) -> None:
        cls._log(cls.ERROR, message)

    @classmethod
    def debug(cls, message: str) -> None:
        cls._log(cls.DEBUG, message)
