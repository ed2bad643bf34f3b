import re

_PRESERVED_BLOCK_RE = re.compile(
    r"<(pre|textarea|script|style)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_COMMENT_RE = re.compile(r"<!--(?!\[if).*?-->", re.DOTALL)
# A tag, the whitespace after it, and (not consumed) the name of the next tag.
_BETWEEN_TAGS_RE = re.compile(r"(<(?:/|!)?([A-Za-z][\w-]*)[^>]*>)\s+(?=<(?:/|!)?([A-Za-z][\w-]*))")
_WHITESPACE_RUN_RE = re.compile(r"\s{2,}")

# Whitespace next to these tags never renders, so it can be dropped.
BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "base", "blockquote", "body", "br",
        "dd", "details", "div", "dl", "doctype", "dt", "fieldset",
        "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4",
        "h5", "h6", "head", "header", "hr", "html", "li", "link", "main",
        "meta", "nav", "ol", "option", "p", "section", "select", "summary",
        "table", "tbody", "td", "tfoot", "th", "thead", "title", "tr", "ul",
    }
)


def _join_tags(match: re.Match[str]) -> str:
    tag, left, right = match.group(1), match.group(2).lower(), match.group(3).lower()
    if left in BLOCK_TAGS or right in BLOCK_TAGS:
        return tag
    return tag + " "


def minify_html(text: str) -> str:
    """Shrink rendered HTML without changing what the browser displays.

    Removes comments (conditional comments are kept) and collapses
    whitespace runs to one space. Whitespace between two tags is dropped
    when either tag is block-level and kept as a single space between
    inline elements, so ``<b>a</b> <i>b</i>`` still renders two words. The
    bodies of ``pre``, ``textarea``, ``script`` and ``style`` elements are
    left byte-for-byte intact.

    Args:
        text: Rendered HTML document.

    Returns:
        str: Minified HTML.
    """
    preserved: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        preserved.append(match.group(0))
        return f"\x00{len(preserved) - 1}\x00"

    text = _PRESERVED_BLOCK_RE.sub(_stash, text)
    text = _COMMENT_RE.sub("", text)
    text = _BETWEEN_TAGS_RE.sub(_join_tags, text)
    text = _WHITESPACE_RUN_RE.sub(" ", text)

    text = re.sub(r"\x00(\d+)\x00", lambda m: preserved[int(m.group(1))], text)
    return text.strip()
