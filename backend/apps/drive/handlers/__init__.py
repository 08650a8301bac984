"""Drive handlers."""

from apps.drive.handlers.download_file import download_file
from apps.drive.handlers.list_folder import list_folder
from apps.drive.handlers.list_root import list_root

__all__ = [
    "list_root",
    "list_folder",
    "download_file",
]
