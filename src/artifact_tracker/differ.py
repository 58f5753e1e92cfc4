"""Line-level diffing between two snapshots of a document.

The alignment is a longest-common-subsequence alignment over lines: it keeps
as many lines unchanged as possible. Common prefix and suffix lines are
trimmed first, and lines that occur on only one side are dropped, so the
quadratic table only covers lines that can actually be matched.

When two alignments keep the same number of lines, the one whose matched
pairs stay closest to their old positions is chosen. This keeps line hints
stable for comments near repeated lines (blank lines, list bullets, etc.).
"""

from enum import Enum
from typing import NamedTuple


class RegionKind(str, Enum):
    """Classification of a contiguous diff region."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


class DiffRegion(NamedTuple):
    """A contiguous run of lines with the same classification.

    Bounds are 0-indexed and half-open. Added regions have an empty old
    range, removed regions an empty new range.
    """

    kind: RegionKind
    old_start: int
    old_end: int
    new_start: int
    new_end: int


def split_lines(content: str) -> list[str]:
    """
    Split content into lines on "\\n".

    A trailing newline terminates the last line rather than starting an
    empty one, so "a\\nb\\n" and "a\\nb" both have two lines. Empty content
    has no lines.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


class LineDiff:
    """Alignment between an old and a new list of lines."""

    def __init__(self, regions: list[DiffRegion], old_count: int, new_count: int) -> None:
        self.regions = regions
        self.old_count = old_count
        self.new_count = new_count

    @property
    def lines_added(self) -> int:
        return sum(r.new_end - r.new_start for r in self.regions if r.kind == RegionKind.ADDED)

    @property
    def lines_removed(self) -> int:
        return sum(r.old_end - r.old_start for r in self.regions if r.kind == RegionKind.REMOVED)

    @property
    def unchanged(self) -> list[DiffRegion]:
        return [r for r in self.regions if r.kind == RegionKind.UNCHANGED]

    def map_old_line(self, line: int) -> int | None:
        """
        Map a 1-indexed line of the old content to the new content.

        A line inside an unchanged region maps directly. A line inside a
        removed region maps to the nearest boundary of the surrounding
        unchanged regions: the last line of the region before it or the
        first line of the region after it, whichever is closer in the old
        content (ties go to the region before).

        Args:
            line: 1-indexed line number in the old content

        Returns:
            1-indexed line number in the new content, or None when the line
            is out of range or no unchanged region exists
        """
        idx = line - 1
        if idx < 0 or idx >= self.old_count:
            return None

        before: DiffRegion | None = None
        after: DiffRegion | None = None
        for region in self.unchanged:
            if region.old_start <= idx < region.old_end:
                return region.new_start + (idx - region.old_start) + 1
            if region.old_end <= idx:
                before = region
            elif region.old_start > idx and after is None:
                after = region

        if before is None and after is None:
            return None
        if after is None:
            return before.new_end  # last line of the preceding region, 1-indexed
        if before is None:
            return after.new_start + 1

        distance_before = idx - (before.old_end - 1)
        distance_after = after.old_start - idx
        if distance_before <= distance_after:
            return before.new_end
        return after.new_start + 1


def diff_lines(old: list[str], new: list[str]) -> LineDiff:
    """
    Compute a line-level alignment between two lists of lines.

    Args:
        old: Lines of the previous version
        new: Lines of the new version

    Returns:
        LineDiff with ordered regions covering both inputs completely
    """
    old_len, new_len = len(old), len(new)

    prefix = 0
    while prefix < old_len and prefix < new_len and old[prefix] == new[prefix]:
        prefix += 1

    suffix = 0
    while (
        suffix < old_len - prefix
        and suffix < new_len - prefix
        and old[old_len - 1 - suffix] == new[new_len - 1 - suffix]
    ):
        suffix += 1

    middle_pairs = _lcs_pairs(old[prefix : old_len - suffix], new[prefix : new_len - suffix])

    pairs = [(i, i) for i in range(prefix)]
    pairs.extend((i + prefix, j + prefix) for i, j in middle_pairs)
    pairs.extend((old_len - suffix + k, new_len - suffix + k) for k in range(suffix))

    return LineDiff(_pairs_to_regions(pairs, old_len, new_len), old_len, new_len)


def _lcs_pairs(old: list[str], new: list[str]) -> list[tuple[int, int]]:
    """Return matched (old_index, new_index) pairs of an LCS alignment."""
    if not old or not new:
        return []

    # Lines absent from the other side can never be matched; dropping them
    # keeps a rewritten document from building an old x new table.
    old_lines, new_lines = set(old), set(new)
    old_keep = [i for i, line in enumerate(old) if line in new_lines]
    new_keep = [j for j, line in enumerate(new) if line in old_lines]
    a = [old[i] for i in old_keep]
    b = [new[j] for j in new_keep]
    n, m = len(a), len(b)
    if n == 0 or m == 0:
        return []

    # table[i][j] = LCS length of a[i:] and b[j:]
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = table[i], table[i + 1]
        old_line = a[i]
        for j in range(m - 1, -1, -1):
            if old_line == b[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = below[j] if below[j] >= row[j + 1] else row[j + 1]

    pairs: list[tuple[int, int]] = []
    i = j = 0
    while i < n and j < m:
        if a[i] == b[j]:
            pairs.append((old_keep[i], new_keep[j]))
            i += 1
            j += 1
            continue

        skip_old = table[i + 1][j]
        skip_new = table[i][j + 1]
        displacement = new_keep[j] - old_keep[i]
        if skip_old > skip_new:
            i += 1
        elif skip_new > skip_old:
            j += 1
        elif displacement > 0:
            # New side is ahead; skipping an old line closes the gap
            i += 1
        elif displacement < 0:
            j += 1
        else:
            i += 1
    return pairs


def _pairs_to_regions(
    pairs: list[tuple[int, int]], old_len: int, new_len: int
) -> list[DiffRegion]:
    """Convert matched pairs into removed/added/unchanged regions."""
    regions: list[DiffRegion] = []
    old_pos = new_pos = 0

    def emit_gap(old_stop: int, new_stop: int) -> None:
        if old_stop > old_pos:
            regions.append(DiffRegion(RegionKind.REMOVED, old_pos, old_stop, new_pos, new_pos))
        if new_stop > new_pos:
            regions.append(DiffRegion(RegionKind.ADDED, old_stop, old_stop, new_pos, new_stop))

    for old_idx, new_idx in pairs:
        if old_idx != old_pos or new_idx != new_pos:
            emit_gap(old_idx, new_idx)
            old_pos, new_pos = old_idx, new_idx

        last = regions[-1] if regions else None
        if (
            last is not None
            and last.kind == RegionKind.UNCHANGED
            and last.old_end == old_idx
            and last.new_end == new_idx
        ):
            regions[-1] = last._replace(old_end=old_idx + 1, new_end=new_idx + 1)
        else:
            regions.append(
                DiffRegion(RegionKind.UNCHANGED, old_idx, old_idx + 1, new_idx, new_idx + 1)
            )
        old_pos, new_pos = old_idx + 1, new_idx + 1

    emit_gap(old_len, new_len)
    return regions
