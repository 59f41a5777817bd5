import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


def print_pdf(path: Union[str, Path]) -> bool:
    """Send a PDF to the default printer (Windows only)."""
    if sys.platform != "win32":
        return False
    try:
        os.startfile(str(path), "print")  # type: ignore[attr-defined]
        return True
    except OSError:
        logger.exception("Failed to print PDF: %s", path)
        return False


def open_file(path: Union[str, Path]) -> bool:
    """Open a file with the desktop's default application."""
    try:
        if sys.platform == "win32":
            os.startfile(str(path))  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.Popen(["open", str(path)])
        else:
            subprocess.Popen(["xdg-open", str(path)])
        return True
    except OSError:
        logger.exception("Failed to open file: %s", path)
        return False
