"""Bookmark forest nodes.

Two variants: Folder (has children) and Bookmark (a leaf). Nodes point at
each other by id; the BookmarkForest arena owns them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple, Union

from .errors import InvalidBookmark
from .urls import hostname_of, is_valid_url


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch(moment: datetime) -> int:
    """Unix epoch seconds for ``moment`` (naive values are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def from_epoch(seconds: Union[int, float, str]) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def normalize_tags(tags: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """
    Trimmed, non-empty, de-duplicated tags in first-seen order.

    Commas separate tags in the HTML TAGS attribute, so a tag holding a
    comma is split into its parts.
    """
    if not tags:
        return ()
    if isinstance(tags, str):
        tags = tags.split(",")
    result: List[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise InvalidBookmark(f"tag must be a string, got {type(tag).__name__}")
        for part in tag.split(","):
            part = part.strip()
            if part and part not in result:
                result.append(part)
    return tuple(result)


@dataclass
class Folder:
    name: str
    id: str = field(default_factory=new_id)
    parent_id: Optional[str] = None
    child_ids: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    modified_at: Optional[datetime] = None

    def __post_init__(self):
        self.name = (self.name or "").strip() or "Untitled Folder"
        if self.modified_at is None:
            self.modified_at = self.created_at


@dataclass
class Bookmark:
    url: str
    title: str = ""
    tags: Tuple[str, ...] = ()
    added_at: datetime = field(default_factory=utcnow)
    icon_ref: Optional[str] = None
    description: str = ""
    is_favorite: bool = False
    visit_count: int = 0
    id: str = field(default_factory=new_id)
    parent_id: Optional[str] = None

    def __post_init__(self):
        if not is_valid_url(self.url):
            raise InvalidBookmark(f"not a valid absolute URL: {self.url!r}")
        self.title = (self.title or "").strip() or hostname_of(self.url) or self.url
        self.tags = normalize_tags(self.tags)


Node = Union[Folder, Bookmark]
