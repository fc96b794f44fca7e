import inspect
import os
import sys
from types import FrameType
from typing import Any

from compositor.util import maybe


_src_root = ""  # pylint: disable=invalid-name


def set_src_root(path: str) -> None:
    """
    Set the directory prefix to strip from filenames in log message context.
    """
    global _src_root
    _src_root = os.path.abspath(path)
    if not _src_root.endswith("/"):
        _src_root += "/"


def log(*args: object, **kwargs: Any) -> None:
    """
    Write a diagnostic line to stderr, tagged with the file, line and function that called log(). stdout carries the
    pipeline's batches, so diagnostics never go there unless `file` says so. Otherwise arguments are handled as by
    print().
    """
    kwargs.setdefault("file", sys.stderr)
    frame = inspect.currentframe()
    caller = frame.f_back if frame else None
    context = maybe(lambda: _context(caller)) if caller else None
    if context:
        print(context, *args, **kwargs)
    else:
        print(*args, **kwargs)


def _context(frame: FrameType) -> str:
    code = frame.f_code
    return f"{code.co_filename.removeprefix(_src_root)}:{frame.f_lineno}:{code.co_qualname}:"
