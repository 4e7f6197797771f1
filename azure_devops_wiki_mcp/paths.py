"""Wiki page path helpers.

Azure DevOps stores wiki pages as markdown files whose names encode spaces as
hyphens, so callers frequently pass git item paths such as
``/Folder/My-Page.md`` where the wiki API expects ``/Folder/My Page``.
"""

import re
from urllib.parse import quote, unquote

_MD_SUFFIX_RE = re.compile(r"\.md$", re.IGNORECASE)
_SLASH_RE = re.compile(r"/+")


def _normalize_once(path: str) -> str:
    if not path.startswith("/"):
        path = f"/{path}"

    try:
        path = unquote(path, errors="strict")
    except UnicodeDecodeError:
        # Malformed escapes are kept as typed
        pass
    path = _MD_SUFFIX_RE.sub("", path)
    path = _SLASH_RE.sub("/", path)

    head, _, last = path.rpartition("/")
    return f"{head}/{last.replace('-', ' ')}"


def normalize_wiki_path(raw: str) -> str:
    """Convert a raw page path into the form the wiki API expects.

    - Ensures a leading ``/``
    - Decodes percent-encodings (``%2D`` -> ``-``), leaving the path
      undecoded when the escapes are not valid UTF-8
    - Strips a trailing ``.md`` (case-insensitive)
    - Collapses repeated slashes
    - Converts hyphens to spaces in the last segment only

    Passes repeat until the result is stable, so normalizing an already
    normalized path never changes it.
    """
    if not raw:
        return "/"

    path = _normalize_once(raw)
    while True:
        again = _normalize_once(path)
        if again == path:
            return path
        path = again


def encode_wiki_path(path: str) -> str:
    """URL-encode a query value, keeping forward slashes readable."""
    return quote(path, safe="/")
