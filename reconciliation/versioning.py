"""Document code versioning.

KiotViet re-issues an edited invoice under the original code plus a
zero-padded suffix: ``HD001`` -> ``HD001.01`` -> ``HD001.02``. Everything that
knows about that convention lives here, behind ``VersionScheme``, so the
differ and reconcilers never touch the regex.

Exposes:
- parse_version(code) -> VersionInfo
- is_revision_code(code) -> bool
- find_predecessor(code, documents) -> document | None
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern, Sequence, TypeVar

from core.models.results import VersionInfo


T = TypeVar("T")


@dataclass(frozen=True)
class VersionScheme:
    """A revision suffix convention.

    Attributes:
        pattern: Regex with two groups (base code, version digits). The
            leading group is greedy so only the last ``.NN`` counts.
        pad_width: Zero-pad width used when formatting a version code
    """
    pattern: Pattern[str] = re.compile(r"^(.+)\.(\d+)$")
    pad_width: int = 2
    separator: str = "."

    def parse(self, code: Optional[str]) -> VersionInfo:
        if not code:
            return VersionInfo(is_revised=False, base_code=code, version=0)

        match = self.pattern.match(code)
        if match:
            return VersionInfo(
                is_revised=True,
                base_code=match.group(1),
                version=int(match.group(2)),
            )
        return VersionInfo(is_revised=False, base_code=code, version=0)

    def is_revision(self, code: Optional[str]) -> bool:
        return bool(code) and self.pattern.match(code) is not None

    def format(self, base_code: str, version: int) -> str:
        return f"{base_code}{self.separator}{version:0{self.pad_width}d}"


DEFAULT_SCHEME = VersionScheme()


def parse_version(code: Optional[str], scheme: VersionScheme = DEFAULT_SCHEME) -> VersionInfo:
    """Parse a document code into base code and version.

    Never raises: empty, None and non-matching codes come back as
    ``is_revised=False, base_code=code, version=0``.
    """
    return scheme.parse(code)


def is_revision_code(code: Optional[str], scheme: VersionScheme = DEFAULT_SCHEME) -> bool:
    """True if the code carries a revision suffix."""
    return scheme.is_revision(code)


def format_version_code(base_code: str, version: int, scheme: VersionScheme = DEFAULT_SCHEME) -> str:
    """Build ``<base>.<NN>`` for a version number."""
    return scheme.format(base_code, version)


def _find_by_code(code: Optional[str], documents: Iterable[T]) -> Optional[T]:
    for doc in documents:
        if getattr(doc, "code", None) == code:
            return doc
    return None


def find_predecessor(
    code: Optional[str],
    documents: Sequence[T],
    scheme: VersionScheme = DEFAULT_SCHEME,
) -> Optional[T]:
    """Find the version immediately before ``code``.

    For ``.01`` (or an unversioned code) the predecessor is the original
    ``base_code``. For ``.NN`` with NN > 1 it is ``.NN-1``; when that version
    is missing from ``documents`` the lookup falls back to the original.
    Chains with gaps (``A``, ``A.01``, ``A.03``) therefore resolve ``A.03``
    to ``A``, never to ``A.01``.
    """
    info = scheme.parse(code)

    if not info.is_revised or info.version <= 1:
        return _find_by_code(info.base_code, documents)

    previous_code = scheme.format(info.base_code, info.version - 1)
    previous = _find_by_code(previous_code, documents)
    if previous is not None:
        return previous

    return _find_by_code(info.base_code, documents)
