"""Tabular and JSON export of maker state."""

from .export import accounts_frame, export_csv, export_json, pools_frame

__all__ = [
    "accounts_frame",
    "export_csv",
    "export_json",
    "pools_frame"
]
