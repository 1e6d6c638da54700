import logging
import os
from typing import Optional, Union

from colorama import Fore, Style, init
from tqdm import tqdm

init(autoreset=True)

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(level_tag)s - %(message)s"


class ColoredFormatter(logging.Formatter):
    """Console formatter that tints the level name and dims library noise"""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }
    # third-party loggers that are chatty at INFO
    QUIET_PREFIXES = ("httpx", "httpcore")

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        if record.name.startswith(self.QUIET_PREFIXES):
            color = Style.DIM
        record.level_tag = f"{color}{record.levelname:<8}{Style.RESET_ALL}"
        return super().format(record)


def _file_handler(path: str, level: int) -> logging.Handler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT))
    return handler


def setup_logger(
    name: str = "scraper",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = "data/logs/scrape.log",
    console: bool = True,
) -> logging.Logger:
    """Attach a run log file and a colored console stream to ``name``.

    Calling it again replaces the handlers instead of stacking them. Pass
    ``name=""`` to configure the root logger for a whole CLI run.
    """
    level = resolve_level(level) if isinstance(level, str) else level

    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if log_file:
        logger.addHandler(_file_handler(log_file, level))
    if console:
        logger.addHandler(_console_handler(level))

    # the inventory fan-out makes httpx's per-request INFO lines unreadable
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logger


def resolve_level(value: str) -> int:
    """Map a level name such as ``"debug"`` to its logging constant."""
    return getattr(logging, str(value).upper(), logging.INFO)


def create_progress_bar(total: Optional[int] = None, desc="Items", unit="item"):
    """tqdm bar for item progress; ``total`` may grow as listing pages arrive"""
    return tqdm(total=total, desc=desc, unit=unit, colour="green", dynamic_ncols=True)
