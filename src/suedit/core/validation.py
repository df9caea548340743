"""Input validation utilities.

Provides validation for:
- Command-line argument counts
- Target paths (existence, type)
- Octal permission modes
- Staging file name prefixes

All validators return the validated value or raise an SuEditError.
"""

import os
import re
import stat
from pathlib import Path
from typing import Optional, Sequence, Union

from suedit.core.exceptions import NotFoundError, UsageError


# Permission bits we snapshot and restore (rwx for all + setuid/setgid/sticky)
MODE_MASK = 0o7777

OCTAL_MODE_PATTERN = re.compile(r"^0?o?[0-7]{1,4}$")

# Characters allowed in a staging file prefix
PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,32}$")

USAGE = "suedit edit <file>"


def validate_arguments(args: Optional[Sequence[str]]) -> str:
    """Require exactly one positional argument.

    Args:
        args: Positional arguments as received from the command line

    Returns:
        The single argument

    Raises:
        UsageError: If zero or several arguments were given
    """
    args = list(args or [])
    if len(args) != 1:
        got = "no arguments" if not args else f"{len(args)} arguments"
        raise UsageError(
            f"Expected exactly one file to edit, got {got}",
            hint=f"Usage: {USAGE}",
        )
    if not args[0]:
        raise UsageError("File path cannot be empty", hint=f"Usage: {USAGE}")
    return args[0]


def validate_target(path: Union[str, Path]) -> Path:
    """Check that path names an existing regular file and return it absolute.

    A path the caller cannot traverse (a file under a 0700 directory
    owned by root) cannot be checked without privileges. It is returned
    unchecked; the elevated stat that follows reports a missing file as
    NotFoundError and anything else as PrivilegeError.

    Raises:
        NotFoundError: If the file does not exist
        UsageError: If the path is a directory
    """
    target = Path(path).expanduser()
    try:
        st = os.stat(target)
    except (FileNotFoundError, NotADirectoryError) as e:
        raise NotFoundError(
            f"File '{path}' does not exist",
            path=str(path),
            hint="Check the path, or create the file first",
        ) from e
    except PermissionError:
        return target.absolute()

    if stat.S_ISDIR(st.st_mode):
        raise UsageError(
            f"'{path}' is a directory",
            hint="Only regular files can be edited",
        )
    return target.absolute()



def parse_mode(value: Union[str, int]) -> int:
    """Parse a permission mode given as octal text ("640", "0o755").

    Integers are accepted as-is.

    Raises:
        UsageError: If the value is not a valid mode
    """
    if isinstance(value, int):
        mode = value
    else:
        text = value.strip().lower()
        if not OCTAL_MODE_PATTERN.match(text):
            raise UsageError(
                f"Invalid permission mode: {value!r}",
                hint="Use octal notation, e.g. 640 or 0755",
            )
        mode = int(text.replace("o", ""), 8)

    if mode < 0 or mode > MODE_MASK:
        raise UsageError(f"Permission mode out of range: {oct(mode)}")
    return mode


def format_mode(mode: int) -> str:
    """Format a mode the way `stat -c %a` and `chmod` expect it."""
    return format(mode & MODE_MASK, "o")


def validate_prefix(prefix: str) -> str:
    """Validate a staging file name prefix.

    Raises:
        UsageError: If the prefix contains path separators or odd characters
    """
    if not PREFIX_PATTERN.match(prefix):
        raise UsageError(
            f"Invalid staging prefix: {prefix!r}",
            hint="Use 1-32 letters, digits, dots, dashes or underscores",
        )
    return prefix
