"""Candidate set construction.

Expands the files a client is about to read into the full set the helper
should warm, including sidecar metadata files next to declaration files.
Sidecars are requested without checking that they exist.
"""

from collections.abc import Iterable, Sequence

DEFAULT_DECLARATION_SUFFIX = ".d.ts"
DEFAULT_SIDECAR_SUFFIX = ".metadata.json"


def derive_sidecars(
    file_names: Iterable[str],
    declaration_suffix: str = DEFAULT_DECLARATION_SUFFIX,
    sidecar_suffix: str = DEFAULT_SIDECAR_SUFFIX,
) -> list[str]:
    """Return the sidecar name for every declaration file, in input order."""
    if not declaration_suffix:
        return []
    cut = len(declaration_suffix)
    return [
        name[:-cut] + sidecar_suffix
        for name in file_names
        if name.endswith(declaration_suffix)
    ]


def build_candidate_set(
    file_names: Sequence[str],
    declaration_suffix: str = DEFAULT_DECLARATION_SUFFIX,
    sidecar_suffix: str = DEFAULT_SIDECAR_SUFFIX,
) -> tuple[str, ...]:
    """Build the ordered set of files to prefetch.

    Originals come first in their given order, followed by derived sidecars.
    Duplicates are kept.

    Example:
        >>> build_candidate_set(["a.d.ts", "b.ts"])
        ('a.d.ts', 'b.ts', 'a.metadata.json')

    Args:
        file_names: Files the caller intends to read
        declaration_suffix: Suffix that marks a declaration file
        sidecar_suffix: Replacement suffix for the derived sidecar

    Returns:
        Immutable candidate set
    """
    originals = list(file_names)
    return tuple(originals + derive_sidecars(originals, declaration_suffix, sidecar_suffix))
