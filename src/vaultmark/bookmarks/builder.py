# Bookmarks - Import Builder
#
# Shared by the HTML and JSON parsers: turns discovered folders and anchors
# into a BookmarkForest, applying the import options, merging same-named
# sibling folders, and collecting per-node skip reasons instead of raising.

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from .errors import InvalidBookmark
from .forest import BookmarkForest
from .models import Bookmark, Folder, utcnow
from .urls import favicon_url_for, is_valid_url

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "Bookmarks Bar"


@dataclass(frozen=True)
class ImportOptions:
    """
    Attributes:
        create_folders: Rebuild the source folder tree. When off, every
            bookmark lands in the default folder.
        preserve_dates: Keep ADD_DATE / dateAdded from the source instead
            of stamping the import time.
        default_folder: Folder for bookmarks that have no enclosing folder.
            None keeps such bookmarks at the root.
    """
    create_folders: bool = True
    preserve_dates: bool = True
    default_folder: Optional[str] = DEFAULT_FOLDER_NAME


@dataclass(frozen=True)
class SkippedNode:
    """A source node left out of the result, and why."""
    location: str
    reason: str
    value: Optional[str] = None

    def to_dict(self) -> dict:
        return {"location": self.location, "reason": self.reason, "value": self.value}


@dataclass
class ParseResult:
    forest: BookmarkForest
    skipped: List[SkippedNode] = field(default_factory=list)

    @property
    def bookmarks(self) -> List[Bookmark]:
        return self.forest.bookmarks()

    @property
    def folders(self) -> List[Folder]:
        return self.forest.folders()


class ForestBuilder:
    """Accumulates a forest during one parse."""

    def __init__(self, options: Optional[ImportOptions] = None, now: Optional[datetime] = None):
        self.options = options or ImportOptions()
        self.now = now or utcnow()
        self.forest = BookmarkForest()
        self.skipped: List[SkippedNode] = []

    def skip(self, location: str, reason: str, value: Optional[str] = None) -> None:
        logger.warning("Skipping bookmark at %s: %s (%r)", location, reason, value)
        self.skipped.append(SkippedNode(location=location, reason=reason, value=value))

    def open_folder(
        self,
        name: str,
        parent_id: Optional[str],
        created_at: Optional[datetime] = None,
        modified_at: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Folder id to use as the scope for ``name`` under ``parent_id``.

        A sibling with the same name (case-insensitive) is reused. Returns
        None when folders are not being created.
        """
        if not self.options.create_folders:
            return None

        name = (name or "").strip() or "Untitled Folder"
        existing = self.forest.find_child_folder(parent_id, name)
        if existing is not None:
            return existing.id

        if not self.options.preserve_dates:
            created_at = modified_at = None
        created_at = created_at or self.now
        folder = self.forest.add_folder(
            name,
            parent_id,
            created_at=created_at,
            modified_at=modified_at or created_at,
        )
        return folder.id

    def _default_folder_id(self) -> Optional[str]:
        name = self.options.default_folder
        if not name:
            return None
        existing = self.forest.find_child_folder(None, name)
        if existing is not None:
            return existing.id
        return self.forest.add_folder(name, None, created_at=self.now).id

    def add_bookmark(
        self,
        parent_id: Optional[str],
        location: str,
        url: Optional[str],
        title: Optional[str] = None,
        tags: Iterable[str] = (),
        added_at: Optional[datetime] = None,
        icon_ref: Optional[str] = None,
        **extra,
    ) -> Optional[Bookmark]:
        """Validate and attach one bookmark; skips (never raises) on bad input."""
        if not url:
            self.skip(location, "missing URL")
            return None
        if not isinstance(url, str) or not is_valid_url(url):
            self.skip(location, "invalid URL", str(url))
            return None

        if not self.options.create_folders or parent_id is None:
            parent_id = self._default_folder_id()

        if not (self.options.preserve_dates and added_at):
            added_at = self.now

        try:
            bookmark = Bookmark(
                url=url,
                title=title or "",
                tags=tags,
                added_at=added_at,
                icon_ref=icon_ref or favicon_url_for(url),
                **extra,
            )
        except InvalidBookmark as e:
            self.skip(location, str(e), url)
            return None

        self.forest.add(bookmark, parent_id)
        return bookmark

    def result(self) -> ParseResult:
        return ParseResult(forest=self.forest, skipped=self.skipped)
