"""Log setup shared by the CLI and by embedding applications.

Records go to stderr so command output on stdout stays machine-readable.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once; later calls keep the first configuration."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO, including the full URL.
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
