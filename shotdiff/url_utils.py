"""Shared URL utilities — load URL lists and derive stable capture filenames."""

from __future__ import annotations

import re
from pathlib import Path

# Runs of these characters become a single "_" in filenames
_RESERVED_RUN = re.compile(r"[:/.]+")


def sanitize_filename(url: str) -> str:
    """Map a URL to a filesystem-safe name.

    Every run of ``:``, ``/`` and ``.`` becomes one ``_``, so
    ``https://a.com/x`` maps to ``https_a_com_x``. The mapping is
    deterministic, giving the same filename in every capture run; it is not
    injective, see :func:`find_collisions`.
    """
    return _RESERVED_RUN.sub("_", url)


def load_url_list(path: str | Path) -> list[str]:
    """Read a newline-delimited URL file.

    Lines are stripped; blank lines and ``#`` comments are ignored. No URL
    syntax validation happens here, malformed entries fail at navigation.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        lines = [line.strip() for line in f.read().splitlines()]
    return [line for line in lines if line and not line.startswith("#")]


def find_collisions(urls: list[str]) -> dict[str, list[str]]:
    """Return sanitized names shared by more than one entry in ``urls``."""
    by_name: dict[str, list[str]] = {}
    for url in urls:
        by_name.setdefault(sanitize_filename(url), []).append(url)
    return {name: group for name, group in by_name.items() if len(group) > 1}
