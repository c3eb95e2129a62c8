"""
File Utilities Module
File operations shared by the fixture cache and the reporters.
"""

import os
from pathlib import Path


def ensure_directory(directory: Path) -> None:
    """Ensure directory exists, create if necessary."""
    directory.mkdir(parents=True, exist_ok=True)


def rotate_file(file_path: Path, suffix: str = '.old') -> bool:
    """
    Move an existing file aside, replacing any previous rotated copy.

    Returns:
        True if a file was rotated
    """
    if not file_path.is_file():
        return False
    target = file_path.with_name(file_path.name + suffix)
    os.replace(file_path, target)
    return True


def append_line(file_path: Path, line: str) -> None:
    """Append one line of text to a file, creating it when needed."""
    with open(file_path, 'a', encoding='utf-8') as f:
        f.write(line.rstrip('\n') + '\n')
