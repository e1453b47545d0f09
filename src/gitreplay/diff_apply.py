"""Replay of unified diffs onto a local mirror.

Parsing is a reducer over diff lines: :func:`apply_line` takes the current
:class:`FileEditState` and one line and returns the next state, plus at
most one filesystem effect (load, flush or delete a file). The
:class:`DiffApplier` feeds a whole diff through the reducer and carries the
effects out under the mirror root.

Hunks are applied positionally. The cursor starts at the hunk's new-file
line number and every position is relative to the buffer as already edited
by the preceding hunks of the same file, so hunks must be applied in the
order they appear.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Union

from gitreplay.codecs import PathCodec
from gitreplay.core import ChangeTracker, MalformedDiffError, MirrorWriteError

logger = logging.getLogger(__name__)

# Mirror files are read and written byte-per-character
MIRROR_ENCODING = "latin-1"

FILE_HEADER = "diff --git"
HEADER_SEPARATOR = " b/"
NULL_DEVICE = "/dev/null"
HUNK_HEADER_PATTERN = re.compile(r"^@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@")


@dataclass
class FileEditState:
    """Parser state for the file currently being patched.

    ``cursor`` is the 1-based buffer position the next hunk line refers to.
    Successive states share the same ``buffer`` list; hunk lines edit it in
    place.
    """

    path: str | None = None
    old_path: str | None = None
    buffer: list[str] = field(default_factory=list)
    is_new_file: bool = False
    is_deleted_file: bool = False
    is_rename: bool = False
    is_copy: bool = False
    in_hunk: bool = False
    cursor: int = 0


@dataclass(frozen=True)
class LoadFile:
    """Replace the buffer with the current on-disk lines of ``path``."""

    path: str


@dataclass(frozen=True)
class FlushFile:
    """Write ``lines`` to ``path``, creating it first if ``is_new_file``."""

    path: str
    lines: list[str]
    is_new_file: bool = False
    renamed_from: str | None = None


@dataclass(frozen=True)
class DeleteFile:
    """Delete ``path`` and its parent directory if that becomes empty."""

    path: str


Effect = Union[LoadFile, FlushFile, DeleteFile]


def _keep_path(path: str) -> str:
    return path


def split_diff_lines(diff_text: str) -> list[str]:
    """Split diff text into lines, dropping trailing empty lines."""
    lines = diff_text.split("\n")
    while lines and lines[-1] == "":
        lines.pop()
    return lines


def split_header_paths(line: str) -> tuple[str, str]:
    """Extract the (old, new) paths from a ``diff --git a/<p> b/<p>`` line.

    The paths are split at ``" b/"``. When a path itself contains that
    substring the split is ambiguous; the split whose two sides are equal
    wins, falling back to the last occurrence. Quoted paths are not
    unescaped.
    """
    text = line[len(FILE_HEADER):].lstrip(" ")
    if text.startswith("a/"):
        text = text[2:]

    parts = text.split(HEADER_SEPARATOR)
    if len(parts) == 2:
        return parts[0], parts[1]
    if len(parts) < 2:
        raise MalformedDiffError(f"Cannot find file paths in header: {line!r}")

    positions = [m.start() for m in re.finditer(re.escape(HEADER_SEPARATOR), text)]
    for pos in positions:
        old, new = text[:pos], text[pos + len(HEADER_SEPARATOR):]
        if old == new:
            return old, new
    pos = positions[-1]
    return text[:pos], text[pos + len(HEADER_SEPARATOR):]


def parse_hunk_header(line: str) -> tuple[int, int]:
    """Return (old_start, new_start) from an ``@@ -a,b +c,d @@`` line."""
    match = HUNK_HEADER_PATTERN.match(line)
    if not match:
        raise MalformedDiffError(f"Invalid hunk header: {line!r}")
    return int(match.group(1)), int(match.group(2))


def _start_hunk(state: FileEditState, line: str) -> FileEditState:
    old_start, new_start = parse_hunk_header(line)
    # A hunk that removes everything reports +0,0; fall back to the old side
    cursor = new_start if new_start != 0 else old_start
    return replace(state, in_hunk=True, cursor=cursor)


def _apply_hunk_line(state: FileEditState, line: str) -> FileEditState:
    if line.startswith("@@"):
        return _start_hunk(state, line)

    index = state.cursor - 1
    if line.startswith("+"):
        if line == "+":
            # A bare added line goes to the end of the buffer, not the cursor
            state.buffer.append("")
        else:
            if not 0 <= index <= len(state.buffer):
                raise MalformedDiffError(
                    f"Cannot insert at line {state.cursor} of {state.path} "
                    f"({len(state.buffer)} lines)"
                )
            state.buffer.insert(index, line[1:])
        return replace(state, cursor=state.cursor + 1)

    if line.startswith("-"):
        if not 0 <= index < len(state.buffer):
            raise MalformedDiffError(
                f"Cannot remove line {state.cursor} of {state.path} "
                f"({len(state.buffer)} lines)"
            )
        del state.buffer[index]
        return state

    if line.startswith("\\"):
        # "\ No newline at end of file"
        return state

    return replace(state, cursor=state.cursor + 1)


def apply_line(
    state: FileEditState,
    line: str,
    decode: Callable[[str], str] = _keep_path,
) -> tuple[FileEditState, Effect | None]:
    """Advance the parser by one diff line.

    Args:
        state: State after the previous line.
        line: The next line of diff text, without its terminator.
        decode: Turns a header path into the mirror-relative path.

    Returns:
        The next state and the filesystem effect the line calls for, if any.
    """
    if line.startswith(FILE_HEADER):
        effect = finish(state)
        old_path, new_path = split_header_paths(line)
        return FileEditState(path=decode(new_path), old_path=decode(old_path)), effect

    if state.path is None or state.is_deleted_file:
        return state, None

    if state.in_hunk:
        return _apply_hunk_line(state, line), None

    if line.startswith("new file mode"):
        return replace(state, is_new_file=True), None
    if line.startswith("deleted file mode"):
        return replace(state, is_deleted_file=True), DeleteFile(state.path)
    if line.startswith("rename from"):
        return replace(state, is_rename=True), LoadFile(state.old_path or state.path)
    if line.startswith("copy from"):
        return replace(state, is_copy=True), LoadFile(state.old_path or state.path)
    if line.startswith("---"):
        if not state.is_new_file and NULL_DEVICE not in line:
            return state, LoadFile(state.old_path or state.path)
        return state, None
    if line.startswith("@@"):
        return _start_hunk(state, line), None
    return state, None


def finish(state: FileEditState) -> FlushFile | None:
    """Return the flush for the file being patched, if it must be written.

    Sections without hunks (mode changes, binary files) leave the file as
    it is, unless they create, rename or copy it.
    """
    if state.path is None or state.is_deleted_file:
        return None
    if not (state.in_hunk or state.is_new_file or state.is_rename or state.is_copy):
        return None
    renamed_from = None
    if state.is_rename and state.old_path and state.old_path != state.path:
        renamed_from = state.old_path
    return FlushFile(state.path, state.buffer, state.is_new_file, renamed_from)


def _header_text(path: str) -> str:
    """Undo the byte-per-character decoding of a header path."""
    try:
        return path.encode(MIRROR_ENCODING).decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return path


class DiffApplier:
    """Apply unified diffs to the mirror rooted at ``root``."""

    def __init__(
        self,
        root: Path | str,
        codec: PathCodec,
        changes: ChangeTracker | None = None,
    ):
        self.root = Path(root).resolve()
        self.codec = codec
        self.changes = changes if changes is not None else ChangeTracker()

    def decode_path(self, path: str) -> str:
        """Turn a diff header path into a mirror-relative path."""
        return self.codec.decode(_header_text(path), "/")

    def apply(self, diff_text: str) -> ChangeTracker:
        """Apply every file section of ``diff_text`` in order."""
        logger.debug("Applying diff to %s:\n%s", self.root, diff_text)
        state = FileEditState()
        for line in split_diff_lines(diff_text):
            state, effect = apply_line(state, line, self.decode_path)
            if effect is not None:
                state = self._perform(effect, state)
        effect = finish(state)
        if effect is not None:
            self._perform(effect, state)
        return self.changes

    def _perform(self, effect: Effect, state: FileEditState) -> FileEditState:
        if isinstance(effect, LoadFile):
            return replace(state, buffer=self.read_lines(effect.path))
        if isinstance(effect, FlushFile):
            self.write_file(effect)
        elif isinstance(effect, DeleteFile):
            self.delete_file(effect.path)
        return state

    def resolve(self, relative: str) -> Path:
        """Resolve a mirror-relative path, refusing paths outside the mirror."""
        path = Path(os.path.normpath(self.root / relative))
        if path == self.root or self.root not in path.parents:
            raise MalformedDiffError(f"Path {relative!r} is outside the mirror")
        return path

    def read_lines(self, relative: str) -> list[str]:
        """Read a mirror file as lines; a missing file reads as empty."""
        path = self.resolve(relative)
        if not path.exists():
            return []
        # Split on "\n" only, as diff text is; "\r" stays part of the line
        lines = path.read_bytes().decode(MIRROR_ENCODING).split("\n")
        if lines[-1] == "":
            lines.pop()
        return lines

    def write_file(self, flush: FlushFile) -> None:
        path = self.resolve(flush.path)
        try:
            if flush.is_new_file or flush.renamed_from:
                path.parent.mkdir(parents=True, exist_ok=True)
            if flush.is_new_file:
                path.touch(exist_ok=True)
            with path.open("w", encoding=MIRROR_ENCODING) as f:
                for line in flush.lines:
                    f.write(line + "\n")
        except OSError as e:
            raise MirrorWriteError(f"Failed to write file: {flush.path}") from e

        logger.debug("Wrote %s (%d lines)", flush.path, len(flush.lines))
        if flush.is_new_file:
            self.changes.record_created(path)
        self.changes.record_modified(path)

        if flush.renamed_from:
            self.delete_file(flush.renamed_from)

    def delete_file(self, relative: str) -> None:
        """Delete a mirror file, then its parent directory if now empty."""
        path = self.resolve(relative)
        self.changes.record_deleted(path)
        try:
            path.unlink()
        except OSError as e:
            raise MirrorWriteError(f"Failed to delete file: {relative}") from e
        logger.debug("Deleted %s", relative)

        parent = path.parent
        if parent != self.root and not any(parent.iterdir()):
            try:
                parent.rmdir()
            except OSError as e:
                raise MirrorWriteError(f"Failed to delete directory: {parent}") from e
            logger.debug("Removed empty directory %s", parent)
