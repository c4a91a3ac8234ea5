# Bookmarks - JSON Interchange
#
# Written form: a JSON array. A bookmark is
#   {url, title, description, tags, isFavorite, dateAdded, visitCount, favicon}
# and a folder is {folder, dateAdded, lastModified, children: [...]}.
#
# Also read: the flat form {"bookmarks": [...folderId], "folders": [...parentId]}
# and bookmarks carrying a "collection" name instead of being nested.

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .builder import ForestBuilder, ImportOptions, ParseResult
from .errors import MalformedInput
from .forest import BookmarkForest
from .html_codec import decode_document
from .models import Bookmark, Folder, Node

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"
JSON_FILENAME = "bookmarks.json"

# Epoch values above this are milliseconds, not seconds
_MS_THRESHOLD = 100_000_000_000


def _parse_date(value: Any) -> Optional[datetime]:
    """ISO-8601 text or epoch seconds/milliseconds; None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > _MS_THRESHOLD else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(value, str) and value.strip():
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            moment = datetime.fromisoformat(text)
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            return moment
    except (ValueError, OverflowError, OSError):
        return None
    return None


def _iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ── Export ───────────────────────────────────────────────────────────


def bookmark_to_json(bookmark: Bookmark) -> Dict[str, Any]:
    return {
        "url": bookmark.url,
        "title": bookmark.title,
        "description": bookmark.description,
        "tags": list(bookmark.tags),
        "isFavorite": bookmark.is_favorite,
        "dateAdded": _iso(bookmark.added_at),
        "visitCount": bookmark.visit_count,
        "favicon": bookmark.icon_ref or "",
    }


def _folder_to_json(folder: Folder) -> Dict[str, Any]:
    return {
        "folder": folder.name,
        "dateAdded": _iso(folder.created_at),
        "lastModified": _iso(folder.modified_at),
        "children": [],
    }


def _node_to_json(forest: BookmarkForest, node: Node) -> Dict[str, Any]:
    if not isinstance(node, Folder):
        return bookmark_to_json(node)
    top = _folder_to_json(node)
    stack = [(iter(forest.children(node.id)), top["children"])]
    while stack:
        children, out = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
        elif isinstance(child, Folder):
            doc = _folder_to_json(child)
            out.append(doc)
            stack.append((iter(forest.children(child.id)), doc["children"]))
        else:
            out.append(bookmark_to_json(child))
    return top


def forest_to_json(forest: BookmarkForest) -> List[Dict[str, Any]]:
    return [_node_to_json(forest, node) for node in forest.roots]


def serialize_json(forest: BookmarkForest) -> str:
    return json.dumps(forest_to_json(forest), indent=2, ensure_ascii=False)


# ── Import ───────────────────────────────────────────────────────────


def _bookmark_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    """Optional bookmark fields, with wrong types dropped to defaults."""
    description = item.get("description")
    visit_count = item.get("visitCount")
    is_favorite = item.get("isFavorite")
    return {
        "description": description if isinstance(description, str) else "",
        "is_favorite": is_favorite if isinstance(is_favorite, bool) else False,
        "visit_count": visit_count
        if isinstance(visit_count, int) and not isinstance(visit_count, bool) and visit_count >= 0
        else 0,
    }


def _tags_of(item: Dict[str, Any]) -> Optional[List[str]]:
    """Tag list of an item, or None when the tags field is unusable."""
    tags = item.get("tags")
    if tags is None:
        return []
    if isinstance(tags, str):
        return tags.split(",")
    if isinstance(tags, list) and all(isinstance(t, str) for t in tags):
        return tags
    return None


def _add_json_bookmark(
    builder: ForestBuilder,
    item: Dict[str, Any],
    parent_id: Optional[str],
    location: str,
) -> None:
    url = item.get("url")
    title = item.get("title")
    if title is not None and not isinstance(title, str):
        builder.skip(location, "title must be a string", str(url))
        return
    tags = _tags_of(item)
    if tags is None:
        builder.skip(location, "tags must be a list of strings", str(url))
        return

    collection = item.get("collection")
    if parent_id is None and isinstance(collection, str) and collection.strip():
        parent_id = builder.open_folder(collection, None)

    icon = item.get("favicon")
    builder.add_bookmark(
        parent_id,
        location,
        url=url,
        title=title,
        tags=tags,
        added_at=_parse_date(item.get("dateAdded", item.get("createdAt"))),
        icon_ref=icon if isinstance(icon, str) and icon else None,
        **_bookmark_fields(item),
    )


def _parse_nested(
    builder: ForestBuilder,
    items: List[Any],
    parent_id: Optional[str],
    path: str,
) -> None:
    stack = [(enumerate(items), parent_id, path)]
    while stack:
        entries, parent_id, path = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue
        index, item = entry
        location = f"{path}[{index}]"
        if not isinstance(item, dict):
            builder.skip(location, "entry is not an object")
            continue

        if "folder" not in item:
            _add_json_bookmark(builder, item, parent_id, location)
            continue

        name = item["folder"]
        children = item.get("children", [])
        if not isinstance(name, str):
            builder.skip(location, "folder name must be a string")
            continue
        if not isinstance(children, list):
            builder.skip(location, "folder children must be a list", name)
            continue

        folder_id = builder.open_folder(
            name,
            parent_id,
            created_at=_parse_date(item.get("dateAdded")),
            modified_at=_parse_date(item.get("lastModified")),
        )
        stack.append((enumerate(children), folder_id, f"{location}.children"))


def _parse_flat(builder: ForestBuilder, document: Dict[str, Any]) -> None:
    folders = document.get("folders", [])
    bookmarks = document.get("bookmarks", [])
    if not isinstance(folders, list) or not isinstance(bookmarks, list):
        raise MalformedInput('"bookmarks" and "folders" must be arrays')

    by_source_id: Dict[str, Dict[str, Any]] = {}
    for index, item in enumerate(folders):
        location = f"folders[{index}]"
        if not isinstance(item, dict) or not isinstance(item.get("id"), str):
            builder.skip(location, "folder needs a string id")
            continue
        if not isinstance(item.get("name"), str):
            builder.skip(location, "folder name must be a string", item["id"])
            continue
        by_source_id[item["id"]] = dict(item, _location=location)

    resolved: Dict[str, Optional[str]] = {}

    def resolve(source_id: str) -> None:
        # Climb to the first resolved or root ancestor, then open downwards
        chain = [source_id]
        parent_id = None
        while True:
            item = by_source_id[chain[-1]]
            parent_source = item.get("parentId")
            if not isinstance(parent_source, str) or parent_source not in by_source_id:
                break
            if parent_source in resolved:
                parent_id = resolved[parent_source]
                break
            if parent_source in chain:
                # Cut the cycle here; this folder becomes a root
                logger.warning(
                    "Folder %r at %s is its own ancestor, attaching it at the root",
                    item["name"], item["_location"],
                )
                break
            chain.append(parent_source)

        for current in reversed(chain):
            item = by_source_id[current]
            parent_id = builder.open_folder(
                item["name"],
                parent_id,
                created_at=_parse_date(item.get("createdAt")),
            )
            resolved[current] = parent_id

    for source_id in by_source_id:
        if source_id not in resolved:
            resolve(source_id)

    for index, item in enumerate(bookmarks):
        location = f"bookmarks[{index}]"
        if not isinstance(item, dict):
            builder.skip(location, "entry is not an object")
            continue
        folder_source = item.get("folderId")
        parent_id = resolved.get(folder_source) if isinstance(folder_source, str) else None
        _add_json_bookmark(builder, item, parent_id, location)


def parse_json(
    data: Union[str, bytes],
    options: Optional[ImportOptions] = None,
    now: Optional[datetime] = None,
) -> ParseResult:
    """
    Parse a JSON bookmark document.

    Bad entries are skipped and reported in ``ParseResult.skipped``.

    Raises:
        MalformedInput: Not valid JSON, or neither an array nor a
            {"bookmarks", "folders"} object
    """
    text = decode_document(data)
    try:
        document = json.loads(text)
    except ValueError as e:
        raise MalformedInput(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedInput("JSON document is nested too deeply") from e

    builder = ForestBuilder(options, now=now)
    if isinstance(document, list):
        _parse_nested(builder, document, None, "")
    elif isinstance(document, dict) and ("bookmarks" in document or "folders" in document):
        _parse_flat(builder, document)
    else:
        raise MalformedInput("expected a JSON array of bookmarks")
    return builder.result()
