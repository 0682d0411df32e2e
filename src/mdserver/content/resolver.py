"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps a request path onto the serving root and decides what to serve.

=============================================================================
RESOLUTION ORDER (first match wins)
=============================================================================

    GET /docs/intro
        │
        ▼
    candidate = <root>/docs/intro
        │
        ├── 1. symlink?          → follow it once
        │
        ├── 2. exists, not a dir → LITERAL   <root>/docs/intro
        │
        ├── 3. list <root>/docs  (fails → NOT_FOUND)
        │      first file whose name minus its last extension is "intro"
        │                        → FILTERED  <root>/docs/intro.md
        │
        ├── 4. doesn't exist     → NOT_FOUND
        │
        ├── 5. directory, URL has no trailing "/"
        │                        → REDIRECT  /docs/intro/
        │
        ├── 6. first file in the directory whose stem is "index"
        │                        → FILTERED  <root>/docs/intro/index.md
        │
        └── 7.                   → NOT_FOUND

=============================================================================
LISTING ORDER
=============================================================================

"First" means first in name-sorted order, which is what the original
Go server got from ioutil.ReadDir. os.scandir() order is filesystem
dependent, so it is sorted here to keep resolution deterministic:

    about.html, about.md, about.txt   →   GET /about serves about.html

Only the text after the LAST dot counts as the extension:

    report.2024.md   →   stem "report.2024"   (GET /report.2024)

Directories never take part in implicit or index matching.

=============================================================================
"""

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import quote


logger = logging.getLogger(__name__)


INDEX_STEM = "index"


class TargetKind(Enum):
    LITERAL = "literal"
    FILTERED = "filtered"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    What a request path resolved to.

    LITERAL and FILTERED carry the file `path`; REDIRECT carries the
    `location` to send the client to; NOT_FOUND carries nothing.
    """

    kind: TargetKind
    path: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def literal(cls, path: str) -> "ResolvedTarget":
        return cls(TargetKind.LITERAL, path=path)

    @classmethod
    def filtered(cls, path: str) -> "ResolvedTarget":
        return cls(TargetKind.FILTERED, path=path)

    @classmethod
    def redirect(cls, location: str) -> "ResolvedTarget":
        return cls(TargetKind.REDIRECT, location=location)

    @classmethod
    def not_found(cls) -> "ResolvedTarget":
        return cls(TargetKind.NOT_FOUND)


def strip_extension(name: str) -> str:
    """
    Drop everything from the last dot on.

        >>> strip_extension("about.html")
        'about'
        >>> strip_extension("report.2024.md")
        'report.2024'
        >>> strip_extension("README")
        'README'
    """
    dot = name.rfind(".")
    if dot < 0:
        return name
    return name[:dot]


class PathResolver:
    """
    Resolves URL paths against a serving root.

    Stateless apart from the root, so one instance is shared by every
    worker thread. Every call touches the filesystem; memoization is the
    response cache's job.
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def resolve(self, url_path: str) -> ResolvedTarget:
        """
        Resolve `url_path` (already URL-decoded, starting with "/").

        Returns exactly one ResolvedTarget; never raises for missing or
        unreadable files.
        """
        candidate = self._join(url_path)
        if candidate is None:
            logger.warning(f"path escapes serving root: {url_path}")
            return ResolvedTarget.not_found()

        candidate = self._follow_symlink(candidate)

        # ─────────────────────────────────────────────────────────────────
        # LITERAL FILE
        # ─────────────────────────────────────────────────────────────────
        info = self._stat(candidate)
        if info is not None and not stat.S_ISDIR(info.st_mode):
            return ResolvedTarget.literal(candidate)

        # ─────────────────────────────────────────────────────────────────
        # EXTENSION-IMPLICIT SIBLING
        # ─────────────────────────────────────────────────────────────────
        # The root itself has no siblings worth serving.
        if candidate != self.root:
            parent = os.path.dirname(candidate)
            try:
                siblings = self._list_files(parent)
            except OSError:
                return ResolvedTarget.not_found()

            match = self._first_with_stem(siblings, os.path.basename(candidate))
            if match is not None:
                return ResolvedTarget.filtered(os.path.join(parent, match))

        if info is None:
            return ResolvedTarget.not_found()

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORY
        # ─────────────────────────────────────────────────────────────────
        if not url_path.endswith("/"):
            return ResolvedTarget.redirect(quote(url_path, safe="/") + "/")

        try:
            entries = self._list_files(candidate)
        except OSError:
            entries = []

        match = self._first_with_stem(entries, INDEX_STEM)
        if match is not None:
            return ResolvedTarget.filtered(os.path.join(candidate, match))

        return ResolvedTarget.not_found()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _join(self, url_path: str) -> Optional[str]:
        """Root-relative filesystem path, or None if it would leave the root."""
        candidate = os.path.normpath(os.path.join(self.root, url_path.lstrip("/")))
        if os.path.commonpath([self.root, candidate]) != self.root:
            return None
        return candidate

    @staticmethod
    def _follow_symlink(path: str) -> str:
        """One level of symlink resolution; relative targets are link-relative."""
        try:
            target = os.readlink(path)
        except OSError:
            return path

        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(path), target)
        return os.path.normpath(target)

    @staticmethod
    def _stat(path: str) -> Optional[os.stat_result]:
        try:
            return os.stat(path)
        except OSError:
            return None

    @staticmethod
    def _list_files(directory: str) -> list[str]:
        """
        Names of the non-directory entries of `directory`, name-sorted.

        Raises:
            OSError: If the directory can't be listed.
        """
        with os.scandir(directory) as it:
            names = [
                entry.name for entry in it
                if not entry.is_dir(follow_symlinks=False)
            ]
        return sorted(names)

    @staticmethod
    def _first_with_stem(names: Iterable[str], stem: str) -> Optional[str]:
        for name in names:
            if strip_extension(name) == stem:
                return name
        return None
