"""Utility helpers for anima."""

from anima.utils.helpers import ensure_dir, get_data_path, truncate_string

__all__ = ["ensure_dir", "get_data_path", "truncate_string"]
