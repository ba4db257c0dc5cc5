"""
Key utility functions.
"""

import re

_ILLEGAL_KEY_CHARACTERS = re.compile(r'[\\/:*?"<>|]')


def safe_key(task_id: str) -> str:
    """
    Return a physical storage key for a task identifier.

    Characters that are illegal in file names are replaced with '_'.
    Distinct identifiers can map to the same key (e.g. 'a/b' and 'a\\b');
    such identifiers share one slot and the last write wins.
    """
    return _ILLEGAL_KEY_CHARACTERS.sub("_", task_id)


def optional_safe_key(task_id: str | None) -> str | None:
    """Same as safe_key, passing None through unchanged."""
    if task_id is None:
        return None
    return safe_key(task_id)
