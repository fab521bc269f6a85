"""Data models for extracted PDF comments."""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence
import json
import os
import sys
import tempfile
from pathlib import Path

# Exported column names, in output order
COLUMN_FIELDS = ("Page", "Author", "Modified", "Comment")

# Row-selection checkbox column of the comments table, never exported
SELECTION_MARKER = "__check__"

# Column -> CommentRecord attribute
FIELD_ATTRIBUTES = {
    "Page": "page",
    "Author": "author",
    "Modified": "modified",
    "Comment": "comment",
}


@dataclass(frozen=True)
class CommentRecord:
    """A single text comment found in a PDF."""

    page: int
    author: str
    comment: str
    modified: str = ""

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"Page number must be >= 1, got {self.page}")
        if not self.comment or self.comment != self.comment.strip():
            raise ValueError("Comment text must be non-empty and trimmed")

    def value(self, column: str) -> str:
        """Return the value of an exported column as text."""
        return str(getattr(self, FIELD_ATTRIBUTES[column]))

    def to_dict(self) -> dict:
        """Convert to dictionary keyed by column name."""
        return {
            'Page': self.page,
            'Author': self.author,
            'Modified': self.modified,
            'Comment': self.comment,
        }


def _canonical_field(name: str) -> Optional[str]:
    for column in COLUMN_FIELDS:
        if column.lower() == name.strip().lower():
            return column
    return None


class ColumnProjection:
    """Which columns are included in exports.

    Immutable. The Comment column is always included.
    """

    def __init__(self, page: bool = True, author: bool = False, modified: bool = False):
        self._flags = {
            "Page": bool(page),
            "Author": bool(author),
            "Modified": bool(modified),
            "Comment": True,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, bool]) -> "ColumnProjection":
        """Create from a column -> included mapping.

        Unknown keys and the selection checkbox marker are ignored; columns
        missing from the mapping are excluded.
        """
        flags = {}
        for key, included in data.items():
            if key == SELECTION_MARKER:
                continue
            column = _canonical_field(key)
            if column:
                flags[column] = bool(included)
        return cls(
            page=flags.get("Page", False),
            author=flags.get("Author", False),
            modified=flags.get("Modified", False),
        )

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ColumnProjection":
        """Create from the list of columns to include.

        Raises:
            ValueError: If a name is not a known column.
        """
        flags = {}
        for name in names:
            column = _canonical_field(name)
            if column is None:
                raise ValueError(
                    f"Unknown column '{name}'. Choose from: {', '.join(COLUMN_FIELDS)}"
                )
            flags[column] = True
        return cls.from_mapping(flags)

    def with_field(self, name: str, enabled: bool) -> "ColumnProjection":
        """Return a copy with one column toggled. Comment stays enabled."""
        column = _canonical_field(name)
        if column is None:
            raise ValueError(f"Unknown column '{name}'")
        flags = dict(self._flags)
        flags[column] = enabled
        return ColumnProjection.from_mapping(flags)

    def is_enabled(self, name: str) -> bool:
        column = _canonical_field(name)
        return bool(column and self._flags[column])

    @property
    def enabled_fields(self) -> list[str]:
        """Included columns in export order."""
        return [column for column in COLUMN_FIELDS if self._flags[column]]

    @property
    def can_export(self) -> bool:
        return bool(self.enabled_fields)

    def to_dict(self) -> dict:
        return dict(self._flags)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnProjection):
            return NotImplemented
        return self._flags == other._flags

    def __hash__(self) -> int:
        return hash(tuple(self._flags.items()))

    def __repr__(self) -> str:
        return f"ColumnProjection({', '.join(self.enabled_fields)})"


DEFAULT_PROJECTION = ColumnProjection()


@dataclass(frozen=True)
class RowSelection:
    """Selected record indices (0-based). Empty means every record."""

    indices: frozenset[int] = frozenset()

    @classmethod
    def of(cls, indices: Iterable[int]) -> "RowSelection":
        return cls(frozenset(indices))

    @property
    def is_all(self) -> bool:
        return not self.indices

    def apply(self, records: Sequence[CommentRecord]) -> list[CommentRecord]:
        """Return the selected records in their original order.

        Indices outside the record range are ignored.
        """
        if self.is_all:
            return list(records)
        return [record for i, record in enumerate(records) if i in self.indices]


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting comments from one document."""

    records: tuple[CommentRecord, ...]
    warning: bool


@dataclass
class CommentSession:
    """State of the currently loaded document.

    Records are replaced wholesale on each load. The column projection is a
    user preference and survives loads and unloads.
    """

    projection: ColumnProjection = DEFAULT_PROJECTION
    source_file: str = ""
    records: tuple[CommentRecord, ...] = ()
    selection: RowSelection = field(default_factory=RowSelection)
    error: str = ""
    loading: bool = False
    _advisory_pending: bool = field(default=False, init=False, repr=False)

    def begin_load(self, source_file: str) -> None:
        """Reset document state before extraction starts."""
        self.source_file = source_file
        self.records = ()
        self.selection = RowSelection()
        self.error = ""
        self._advisory_pending = False
        self.loading = True

    def finish_load(self, result: ExtractionResult) -> None:
        """Store the records of a successful extraction."""
        self.records = tuple(result.records)
        self.selection = RowSelection()
        self._advisory_pending = result.warning
        self.loading = False

    def fail_load(self, message: str) -> None:
        """Record a whole-document extraction failure."""
        self.records = ()
        self.error = message or "Failed to parse PDF."
        self.loading = False

    def unload(self) -> None:
        """Forget the current document, keeping the column projection."""
        self.source_file = ""
        self.records = ()
        self.selection = RowSelection()
        self.error = ""
        self._advisory_pending = False
        self.loading = False

    def take_advisory(self) -> bool:
        """Return True once if the last load found no comments."""
        pending = self._advisory_pending
        self._advisory_pending = False
        return pending

    def select(self, indices: Iterable[int]) -> None:
        self.selection = RowSelection.of(indices)

    @property
    def selected_records(self) -> list[CommentRecord]:
        return self.selection.apply(self.records)

    @property
    def can_export(self) -> bool:
        """Whether copy/save actions should be enabled."""
        return bool(self.records) and self.projection.can_export


@dataclass
class Preferences:
    """User preferences persisted between runs."""

    dark_mode: bool = False
    columns: ColumnProjection = DEFAULT_PROJECTION

    def to_dict(self) -> dict:
        return {
            "dark_mode": self.dark_mode,
            "columns": self.columns.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        """Create preferences from dictionary, ignoring unknown keys."""
        columns = data.get("columns")
        return cls(
            dark_mode=bool(data.get("dark_mode", False)),
            columns=ColumnProjection.from_mapping(columns) if isinstance(columns, dict) else DEFAULT_PROJECTION,
        )

    def save(self, prefs_dir: Path) -> Path:
        """Save preferences to JSON file atomically.

        Writes to a temporary file first, then atomically renames to prevent
        data corruption if the process crashes during write.
        """
        prefs_dir.mkdir(parents=True, exist_ok=True)
        prefs_path = prefs_dir / "preferences.json"

        fd, temp_path = tempfile.mkstemp(dir=prefs_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
            try:
                os.replace(temp_path, prefs_path)
            except OSError:
                # Windows fallback: delete destination first, then rename
                if prefs_path.exists():
                    prefs_path.unlink()
                os.rename(temp_path, prefs_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

        return prefs_path

    @classmethod
    def load(cls, prefs_dir: Path) -> "Preferences":
        """Load preferences from JSON file.

        Returns defaults if the file doesn't exist or is corrupted.
        """
        prefs_path = prefs_dir / "preferences.json"
        if not prefs_path.exists():
            return cls()
        try:
            with open(prefs_path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return cls.from_dict(data)
        except (json.JSONDecodeError, ValueError) as e:
            print(f"Warning: Failed to load preferences {prefs_path}: {e}", file=sys.stderr)
            return cls()
