"""
Patch Parser

Maps GitHub file patches to the diff positions used by the review
comment API, and selects the changed files that should be linted.
"""

import re
import logging
from typing import Dict, Iterable, List, Optional

from ..models.pr_diff import ChangedFile, DiffHunk, DiffLine, DiffLineKind, PositionMap


logger = logging.getLogger(__name__)

HUNK_HEADER_PATTERN = re.compile(r'^@@\s*-(\d+)(?:,(\d+))?\s*\+(\d+)(?:,(\d+))?\s*@@(.*)$')
NO_NEWLINE_MARKER = '\\'


def build_position_map(patch: Optional[str]) -> PositionMap:
    """
    Build the new-file line -> diff position map for one file patch.

    Positions count every physical line after the first hunk header,
    removed lines included; hunk headers themselves take no position.
    Only added lines are recorded because review comments can only be
    anchored to them.

    Args:
        patch: Raw patch text from the compare API, or None

    Returns:
        Mapping of new-file line number to 1-based diff position
    """
    positions: PositionMap = {}
    if not patch:
        return positions

    position = 0
    new_line = 0
    in_hunk = False

    for line in patch.split('\n'):
        header_match = HUNK_HEADER_PATTERN.match(line)
        if header_match:
            new_line = int(header_match.group(3)) - 1
            in_hunk = True
            continue
        if not in_hunk:
            continue

        position += 1
        if line.startswith('-') or line.startswith(NO_NEWLINE_MARKER):
            continue

        new_line += 1
        if line.startswith('+'):
            positions[new_line] = position

    return positions


class PatchParser:
    """
    Parser for GitHub compare/PR file data.

    Converts API file entries into ChangedFile objects, splits patches
    into hunks and filters the files the linter understands.
    """

    def __init__(self, extensions: Iterable[str] = ('.py', '.pyi')):
        """
        Initialize patch parser.

        Args:
            extensions: File extensions that are linted
        """
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.binary_file_pattern = re.compile(r'Binary files? .* differ')

    def parse_changed_files(self, files_data: List[Dict]) -> List[ChangedFile]:
        """Parse compare API file entries."""
        changed_files = [ChangedFile.from_api(file_data) for file_data in files_data]
        logger.debug(f"Parsed {len(changed_files)} changed files")
        return changed_files

    def parse_hunks(self, patch: Optional[str]) -> List[DiffHunk]:
        """
        Parse a patch into structured hunks.

        Args:
            patch: Raw diff patch string

        Returns:
            List of DiffHunk objects with positions and new-file line numbers
        """
        if not patch:
            return []

        if self.binary_file_pattern.search(patch):
            logger.debug("Skipping binary file diff")
            return []

        hunks: List[DiffHunk] = []
        current_hunk: Optional[DiffHunk] = None
        position = 0
        new_line = 0

        for line in patch.split('\n'):
            header_match = HUNK_HEADER_PATTERN.match(line)
            if header_match:
                current_hunk = DiffHunk(
                    old_start=int(header_match.group(1)),
                    old_lines=int(header_match.group(2) or 1),
                    new_start=int(header_match.group(3)),
                    new_lines=int(header_match.group(4) or 1),
                )
                hunks.append(current_hunk)
                new_line = current_hunk.new_start - 1
                continue
            if current_hunk is None:
                continue

            position += 1
            if line.startswith(NO_NEWLINE_MARKER):
                continue
            if line.startswith('-'):
                current_hunk.lines.append(DiffLine(DiffLineKind.REMOVED, line[1:], position))
                continue

            new_line += 1
            kind = DiffLineKind.ADDED if line.startswith('+') else DiffLineKind.CONTEXT
            current_hunk.lines.append(DiffLine(kind, line[1:], position, new_line))

        logger.debug(f"Parsed {len(hunks)} diff hunks")
        return hunks

    def is_lintable(self, changed_file: ChangedFile) -> bool:
        """Removed files and files outside the linted extensions are skipped."""
        if changed_file.is_removed:
            return False
        return changed_file.filename.lower().endswith(self.extensions)

    def filter_lintable_files(self, changed_files: List[ChangedFile]) -> List[ChangedFile]:
        """
        Filter files relevant for linting.

        Args:
            changed_files: Files from the compare API

        Returns:
            Files that are not removed and match a linted extension
        """
        lintable = [f for f in changed_files if self.is_lintable(f)]
        logger.info(f"Filtered to {len(lintable)} lintable files out of {len(changed_files)}")
        return lintable
