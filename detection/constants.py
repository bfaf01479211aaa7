import os

# Read on every call: the CLI loads ``.env`` after these modules are imported.


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def data_row_offset() -> int:
    """Rows between a table's title row and its first data row (title + header)."""
    return int(os.getenv("REPORT_DATA_ROW_OFFSET", "2"))


def locator_case_sensitive() -> bool:
    """Exact-case matching of table title / footer anchors."""
    return _env_flag("REPORT_LOCATOR_CASE_SENSITIVE", "true")


def stop_at_blank_row() -> bool:
    """
    Without a footer anchor, end the table at the first fully blank row after
    its data instead of the bottom of the populated sheet region.
    """
    return _env_flag("REPORT_STOP_AT_BLANK_ROW", "false")
