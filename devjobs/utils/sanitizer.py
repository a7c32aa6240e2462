import html
import re
from html.parser import HTMLParser
from typing import Optional

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_SAFE_HREF_RE = re.compile(r"^(https?://|/|#)", re.IGNORECASE)

RICH_TEXT_TAGS = frozenset({"p", "br", "strong", "b", "em", "i", "u", "h2", "h3", "ul", "ol", "li", "a"})
_VOID_TAGS = frozenset({"br"})
_DROPPED_CONTENT_TAGS = frozenset({"script", "style"})


def strip_html(value: Optional[str]) -> Optional[str]:
    """Drop markup from plain-text fields, keeping the text content"""
    if value is None:
        return None
    # Entities are decoded first so escaped markup cannot survive as tags
    text = html.unescape(value)
    text = _SCRIPT_RE.sub("", text)
    return _TAG_RE.sub("", text).strip()


class _RichTextFilter(HTMLParser):
    """Rebuilds markup from the allowed tags only, without any attributes except safe link targets"""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _DROPPED_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in RICH_TEXT_TAGS:
            return
        if tag == "a":
            href = dict(attrs).get("href") or ""
            if _SAFE_HREF_RE.match(href.strip()):
                self.parts.append(f'<a href="{html.escape(href.strip(), quote=True)}">')
            else:
                self.parts.append("<a>")
            return
        self.parts.append(f"<{tag}>")

    def handle_startendtag(self, tag, attrs):
        if tag in _VOID_TAGS and not self._skip_depth:
            self.parts.append(f"<{tag}>")

    def handle_endtag(self, tag):
        if tag in _DROPPED_CONTENT_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth or tag not in RICH_TEXT_TAGS or tag in _VOID_TAGS:
            return
        self.parts.append(f"</{tag}>")

    def handle_data(self, data):
        if not self._skip_depth:
            self.parts.append(html.escape(data, quote=False))


def sanitize_rich_text(value: Optional[str]) -> Optional[str]:
    """
    Keep basic formatting (paragraphs, emphasis, headings, lists, links) in
    position descriptions. Every other tag is dropped with its attributes,
    script/style blocks lose their content, and links keep only http(s),
    relative or fragment targets.
    """
    if value is None:
        return None
    parser = _RichTextFilter()
    parser.feed(value)
    parser.close()
    return "".join(parser.parts).strip()
