# Bookmarks Module - Interchange Codecs
#
# Netscape HTML bookmark files and a JSON form, both read into and written
# from one BookmarkForest (folders and bookmarks addressed by id).

from .builder import (
    DEFAULT_FOLDER_NAME,
    ImportOptions,
    ParseResult,
    SkippedNode,
)
from .errors import BookmarkCodecError, InvalidBookmark, MalformedInput
from .forest import BookmarkForest
from .html_codec import (
    HTML_MIME_TYPE,
    ExportOptions,
    escape,
    export_filename,
    parse_html,
    serialize_html,
)
from .json_codec import (
    JSON_FILENAME,
    JSON_MIME_TYPE,
    forest_to_json,
    parse_json,
    serialize_json,
)
from .models import Bookmark, Folder, Node
from .urls import domain_for_display, favicon_url_for, hostname_of, is_valid_url

__all__ = [
    # Codecs
    "parse_html",
    "serialize_html",
    "parse_json",
    "serialize_json",
    "forest_to_json",
    "export_filename",
    "escape",
    "ImportOptions",
    "ExportOptions",
    "ParseResult",
    "SkippedNode",
    "DEFAULT_FOLDER_NAME",
    "HTML_MIME_TYPE",
    "JSON_MIME_TYPE",
    "JSON_FILENAME",
    # Forest
    "BookmarkForest",
    "Folder",
    "Bookmark",
    "Node",
    # URLs
    "is_valid_url",
    "hostname_of",
    "domain_for_display",
    "favicon_url_for",
    # Errors
    "BookmarkCodecError",
    "MalformedInput",
    "InvalidBookmark",
]
