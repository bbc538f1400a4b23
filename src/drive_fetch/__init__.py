"""drive-fetch — resolve Google Drive links and stream their contents to disk."""

__version__ = "0.1.0"
