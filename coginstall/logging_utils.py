from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

LOG_FILE_NAME = "coginstall.log"

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(message)s"


def default_log_path(home: str) -> str:
    """Log location inside the provisioned user's home, not the process's."""
    return os.path.join(home, ".local", "state", "coginstall", LOG_FILE_NAME)


def _open_file_handler(log_path: str) -> tuple[logging.Handler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / LOG_FILE_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(log_path: str, *, verbose: bool = False, also_console: bool = True) -> str:
    """Send log records to ``log_path`` and, unless disabled, to stderr.

    The file always receives DEBUG records, including the quiet host queries.
    The console shows INFO and above, or everything when ``verbose``.

    Calling again with the same path is a no-op; a different path replaces the
    handlers installed earlier. If the requested file cannot be opened,
    ``coginstall.log`` in the working directory is used instead.

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    if getattr(root, "_coginstall_requested", None) == log_path:
        return getattr(root, "_coginstall_log_path", log_path)

    old: List[logging.Handler] = getattr(root, "_coginstall_handlers", [])
    for h in old:
        root.removeHandler(h)
        h.close()

    root.setLevel(logging.DEBUG)

    file_handler, chosen_path = _open_file_handler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handlers: List[logging.Handler] = [file_handler]

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(logging.DEBUG if verbose else logging.INFO)
        console.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
        handlers.append(console)

    for h in handlers:
        root.addHandler(h)

    setattr(root, "_coginstall_handlers", handlers)
    setattr(root, "_coginstall_requested", log_path)
    setattr(root, "_coginstall_log_path", chosen_path)

    if chosen_path != log_path:
        logging.getLogger(__name__).warning("Cannot write %s; logging to %s instead", log_path, chosen_path)
    logging.getLogger(__name__).debug("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path
