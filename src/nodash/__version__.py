"""Version information for nodash."""

__version__ = "0.4.0"
__version_date__ = "2026-10-19"

__title__ = "nodash"
__description__ = "Nodash developer tooling: event recording, replay CLI and local analytics server"
__url__ = "https://github.com/nodash/nodash-python"

__author__ = "Nodash Contributors"

__license__ = "MIT"
__copyright__ = "Copyright 2026 Nodash Contributors"

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__author__",
    "__license__",
    "__copyright__",
]
