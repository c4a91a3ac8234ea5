# Bookmarks - Netscape HTML Microformat
#
# The nested <DL>/<DT>/<H3>/<A> format every browser exports and imports.
#
#   <DT><H3 ADD_DATE="…" LAST_MODIFIED="…">Folder</H3>
#   <DL><p>
#       <DT><A HREF="…" ADD_DATE="…" ICON="…" TAGS="a,b">Title</A>
#   </DL><p>
#
# Parsing is event driven (html.parser) because real exports never close
# their <DT> and <p> tags.

import html
from dataclasses import dataclass
from datetime import date, datetime
from html.parser import HTMLParser
from typing import Dict, List, Optional, Tuple, Union

from .builder import ForestBuilder, ImportOptions, ParseResult
from .errors import MalformedInput
from .forest import BookmarkForest
from .models import Bookmark, Folder, from_epoch, to_epoch, utcnow

HTML_MIME_TYPE = "text/html"

DOCUMENT_PREAMBLE = (
    '<!DOCTYPE NETSCAPE-Bookmark-file-1>',
    '<!-- This is an automatically generated file.',
    '     It will be read and overwritten.',
    '     DO NOT EDIT! -->',
    '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
    '<TITLE>Bookmarks</TITLE>',
    '<H1>Bookmarks</H1>',
    '<DL><p>',
)
DOCUMENT_END = '</DL><p>'
INDENT = '    '


def decode_document(data: Union[str, bytes]) -> str:
    """Text of an uploaded file; MalformedInput when it is not UTF-8 text."""
    if isinstance(data, (bytes, bytearray)):
        try:
            return bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInput(f"file is not UTF-8 text: {e}") from e
    if not isinstance(data, str):
        raise MalformedInput(f"expected text, got {type(data).__name__}")
    return data


def _epoch_attr(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return from_epoch(value.strip())
    except (ValueError, OverflowError, OSError):
        return None


class _BookmarkHTMLParser(HTMLParser):
    """Feeds <H3> scopes and <A> leaves into a ForestBuilder."""

    def __init__(self, builder: ForestBuilder):
        super().__init__(convert_charrefs=True)
        self.builder = builder
        self.saw_list = False
        # Folder id per open <DL>; None means "no enclosing folder"
        self._scopes: List[Optional[str]] = []
        self._pending_folder: Optional[str] = None
        self._heading: Optional[Tuple[Dict[str, str], List[str]]] = None
        self._anchor: Optional[Tuple[Dict[str, str], List[str], str]] = None

    @property
    def _scope(self) -> Optional[str]:
        return self._scopes[-1] if self._scopes else None

    def handle_starttag(self, tag, attrs):
        attributes = {name: value or "" for name, value in attrs}
        if tag == "dl":
            self.saw_list = True
            if self._pending_folder is not None:
                self._scopes.append(self._pending_folder)
                self._pending_folder = None
            else:
                self._scopes.append(self._scope)
        elif tag == "h3":
            self._heading = (attributes, [])
        elif tag == "a" and self._anchor is None:
            line, _ = self.getpos()
            self._anchor = (attributes, [], f"line {line}")
        elif tag == "dt":
            # A new entry means the last heading had no list of its own
            self._pending_folder = None

    def handle_endtag(self, tag):
        if tag == "dl":
            if self._scopes:
                self._scopes.pop()
            self._pending_folder = None
        elif tag == "h3" and self._heading is not None:
            self._close_heading()
        elif tag == "a" and self._anchor is not None:
            self._close_anchor()

    def handle_data(self, data):
        if self._anchor is not None:
            self._anchor[1].append(data)
        elif self._heading is not None:
            self._heading[1].append(data)

    def close(self):
        super().close()
        if self._anchor is not None:
            self._close_anchor()
        if self._heading is not None:
            self._close_heading()

    def _close_heading(self):
        attributes, text = self._heading
        self._heading = None
        self._pending_folder = self.builder.open_folder(
            "".join(text),
            self._scope,
            created_at=_epoch_attr(attributes.get("add_date")),
            modified_at=_epoch_attr(attributes.get("last_modified")),
        )

    def _close_anchor(self):
        attributes, text, location = self._anchor
        self._anchor = None
        self.builder.add_bookmark(
            self._scope,
            location,
            url=attributes.get("href", "").strip(),
            title="".join(text).strip(),
            tags=attributes.get("tags", "").split(","),
            added_at=_epoch_attr(attributes.get("add_date")),
            icon_ref=attributes.get("icon") or None,
        )


def parse_html(
    data: Union[str, bytes],
    options: Optional[ImportOptions] = None,
    now: Optional[datetime] = None,
) -> ParseResult:
    """
    Parse a browser bookmark export.

    Bad anchors are skipped and reported in ``ParseResult.skipped``.

    Raises:
        MalformedInput: Not text, or no <DL> bookmark list at all
    """
    text = decode_document(data)
    builder = ForestBuilder(options, now=now)
    parser = _BookmarkHTMLParser(builder)
    parser.feed(text)
    parser.close()

    if not parser.saw_list:
        raise MalformedInput("no <DL> bookmark list found in document")
    return builder.result()


# ── Export ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExportOptions:
    """
    Attributes:
        group_by_folder: Nested <H3>/<DL> blocks per folder; off emits one
            flat list.
        include_uncategorized: Emit bookmarks that sit outside any folder.
    """
    group_by_folder: bool = True
    include_uncategorized: bool = True


def escape(text: str) -> str:
    """Escape < > & ' " for element text and attribute values."""
    return html.escape(text or "", quote=True)


def _bookmark_line(bookmark: Bookmark, depth: int) -> str:
    attrs = f'HREF="{escape(bookmark.url)}" ADD_DATE="{to_epoch(bookmark.added_at)}"'
    if bookmark.icon_ref:
        attrs += f' ICON="{escape(bookmark.icon_ref)}"'
    if bookmark.tags:
        attrs += f' TAGS="{escape(",".join(bookmark.tags))}"'
    return f'{INDENT * depth}<DT><A {attrs}>{escape(bookmark.title)}</A>'


def _folder_open(folder: Folder, lines: List[str], depth: int) -> None:
    spaces = INDENT * depth
    lines.append(
        f'{spaces}<DT><H3 ADD_DATE="{to_epoch(folder.created_at)}" '
        f'LAST_MODIFIED="{to_epoch(folder.modified_at)}">{escape(folder.name)}</H3>'
    )
    lines.append(f'{spaces}<DL><p>')


def _emit_folder(forest: BookmarkForest, folder: Folder, lines: List[str], depth: int) -> None:
    _folder_open(folder, lines, depth)
    stack = [(iter(forest.children(folder.id)), depth)]
    while stack:
        children, level = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            lines.append(f'{INDENT * level}</DL><p>')
        elif isinstance(child, Folder):
            _folder_open(child, lines, level + 1)
            stack.append((iter(forest.children(child.id)), level + 1))
        else:
            lines.append(_bookmark_line(child, level + 1))


def serialize_html(forest: BookmarkForest, options: Optional[ExportOptions] = None) -> str:
    """
    Render ``forest`` in the Netscape bookmark format.

    Grouped output lists root folders (recursively, in document order) and
    then root-level bookmarks; flat output lists every bookmark depth-first.
    """
    options = options or ExportOptions()
    lines = list(DOCUMENT_PREAMBLE)

    if options.group_by_folder:
        uncategorized = []
        for node in forest.roots:
            if isinstance(node, Folder):
                _emit_folder(forest, node, lines, 1)
            else:
                uncategorized.append(node)
        if options.include_uncategorized:
            lines.extend(_bookmark_line(b, 1) for b in uncategorized)
    else:
        for bookmark in forest.bookmarks():
            if bookmark.parent_id is None and not options.include_uncategorized:
                continue
            lines.append(_bookmark_line(bookmark, 1))

    lines.append(DOCUMENT_END)
    return "\n".join(lines) + "\n"


def export_filename(today: Optional[date] = None) -> str:
    """bookmarks_YYYY-MM-DD.html"""
    today = today or utcnow().date()
    return f"bookmarks_{today.isoformat()}.html"
