"""
Inline metadata and tag extraction.

MetadataExtractor.extract() strips, one match per pass, the recognised
annotations out of a task body until nothing more matches:

1. dataview fields      ``[due:: 2025-08-15]``
2. emoji fields         ``📅 2025-08-15`` (left-most marker first)
3. context markers      ``@home``
4. tags                 ``#urgent``, ``#project/apollo``

What is left is the display text. Values are kept as strings here; typing
(dates, priority, id lists) happens in the record builder.
"""

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from mdtasks.config import MetadataParseMode, TaskParserConfig
from mdtasks.utils.formatting import EMOJI_DEFAULT_VALUES, split_ids

log = logging.getLogger(__name__)

# Dataview key -> canonical field
DATAVIEW_KEY_MAPPING: Dict[str, str] = {
    "due": "dueDate",
    "start": "startDate",
    "scheduled": "scheduledDate",
    "completion": "completedDate",
    "created": "createdDate",
    "cancelled": "cancelledDate",
    "id": "id",
    "dependson": "dependsOn",
    "oncompletion": "onCompletion",
    "repeat": "recurrence",
}

DATE_FIELDS = frozenset(
    {"dueDate", "startDate", "scheduledDate", "completedDate", "createdDate", "cancelledDate"}
)

FILE_EXTENSIONS = (".md", ".canvas", ".txt", ".pdf")

# Non-ASCII characters that end a tag or context token
TOKEN_STOP_CHARS = frozenset("，。；：！？「」『』（）【】“”‘’　")

_DATE_VALUE_RE = re.compile(r"\d{4}-\d{2}-\d{2}(?:\s+\d{1,2}:\d{2})?")
_DATAVIEW_RE = re.compile(r"\[([^\[\]]*?::[^\[\]]*?)\]")

_VALID_BEFORE_TOKEN = re.compile(r"[\s(\[{<,;:!?\-+*/\\|=]")
_INVALID_BEFORE_TOKEN = re.compile(r"[a-zA-Z0-9#@$%^&*]")

_PROTECTED_PATTERNS = (
    re.compile(r"`[^`\n]*`"),  # inline code
    re.compile(r"\[\[.*?\]\]"),  # wiki-links, including [[Note#Heading]]
    re.compile(r"\[[^\]\n]*\]\([^)\n]*\)"),  # markdown links
    re.compile(r"\b[a-zA-Z][a-zA-Z0-9+.-]*://[^\s<>]+"),  # bare URLs
)


class ExtractedMetadata(NamedTuple):
    content: str
    metadata: Dict[str, str]
    tags: List[str]


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------

def is_token_char(ch: str, allow_slash: bool = False) -> bool:
    """
    True for characters that may continue a tag or context token.

    ASCII letters and digits, "-", "_", any non-ASCII character except CJK
    punctuation and curly quotes, and "/" when allow_slash is set.
    """
    if ch.isascii():
        return ch.isalnum() or ch in "-_" or (allow_slash and ch == "/")
    return ch not in TOKEN_STOP_CHARS


def is_valid_token_start(content: str, pos: int) -> bool:
    """A marker at pos starts a token only at a word boundary."""
    if pos == 0:
        return True
    prev = content[pos - 1]
    if _VALID_BEFORE_TOKEN.match(prev):
        return True
    return not _INVALID_BEFORE_TOKEN.match(prev)


def count_preceding_backslashes(content: str, pos: int) -> int:
    count = 0
    j = pos - 1
    while j >= 0 and content[j] == "\\":
        count += 1
        j -= 1
    return count


def protected_ranges(content: str) -> List[Tuple[int, int]]:
    """Spans (start, end) of inline code, links and URLs, where # and @ are literal."""
    spans: List[Tuple[int, int]] = []
    for pattern in _PROTECTED_PATTERNS:
        for m in pattern.finditer(content):
            spans.append((m.start(), m.end()))
    return sorted(spans)


def _is_protected(pos: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start <= pos < end for start, end in spans)


def find_file_extension_end(text: str, start: int) -> int:
    """
    If a supported file extension begins at start, return the index just past
    it (and past an optional ``#heading`` fragment), provided that is the end
    of text or a space. Otherwise return start.
    """
    for ext in FILE_EXTENSIONS:
        if text.startswith(ext, start):
            pos = start + len(ext)
            if pos < len(text) and text[pos] == "#":
                while pos < len(text) and text[pos] != " ":
                    pos += 1
            if pos >= len(text) or text[pos] == " ":
                return pos
    return start


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class MetadataExtractor:
    """
    Strips inline metadata, context markers and tags from task bodies.

    Bound to one TaskParserConfig; stateless between calls.
    """

    def __init__(self, config: TaskParserConfig) -> None:
        self.config = config
        self._emoji = list(config.emoji_mapping.items())
        self._special_prefixes = {k.lower(): v for k, v in config.special_tag_prefixes.items()}
        self._special_prefixes.update(config.special_tag_prefixes)

    # -- public -------------------------------------------------------------

    def extract(self, content: str) -> ExtractedMetadata:
        """
        Run the strip loop over content.

        Returns:
            ExtractedMetadata(cleaned content, metadata, tags in source order)
        """
        return self._strip(content, with_emoji=True)

    def special_tag_field(self, tag: str) -> Optional[Tuple[str, str]]:
        """
        Map ``#prefix/value`` to (field, value) if prefix is a configured
        special prefix (case-insensitive) and metadata parsing is on.
        """
        bare = tag[1:] if tag.startswith("#") else tag
        slash = bare.find("/")
        if slash == -1:
            return None
        prefix, value = bare[:slash], bare[slash + 1:]
        field = self._special_prefixes.get(prefix, self._special_prefixes.get(prefix.lower()))
        if field and self.config.metadata_parse_mode is not MetadataParseMode.NONE:
            log.debug("Special tag %s -> %s=%s", tag, field, value)
            return field, value
        return None

    # -- strip loop ---------------------------------------------------------

    def _strip(self, content: str, with_emoji: bool, finalize: bool = True) -> ExtractedMetadata:
        config = self.config
        mode = config.metadata_parse_mode
        metadata: Dict[str, str] = {}
        tags: List[str] = []
        cleaned = ""
        remaining = content

        for _ in range(config.max_metadata_iterations):
            if config.parse_metadata and mode.parses_dataview:
                found = self.extract_dataview(remaining)
                if found:
                    key, value, remaining = found
                    metadata[key] = value
                    continue

            if with_emoji and config.parse_metadata and mode.parses_emoji:
                found = self.extract_emoji(remaining)
                if found:
                    key, value, before, remaining = found
                    cleaned += self._absorb(before, metadata, tags)
                    metadata[key] = value
                    continue

            if config.parse_tags:
                found = self.extract_context(remaining)
                if found:
                    context, before, remaining = found
                    cleaned += self._absorb(before, metadata, tags)
                    metadata["context"] = context
                    continue

                found = self.extract_tag(remaining)
                if found:
                    tag, before, remaining = found
                    special = self.special_tag_field(tag)
                    if special:
                        metadata[special[0]] = special[1]
                    elif tag not in tags:
                        tags.append(tag)
                    cleaned += before
                    continue

            cleaned += remaining
            break
        else:
            log.warning(
                "Maximum metadata iterations (%d) reached while parsing %r",
                config.max_metadata_iterations,
                content[:80],
            )
            cleaned += remaining

        return ExtractedMetadata(_squash_spaces(cleaned) if finalize else cleaned, metadata, tags)

    def _absorb(self, before: str, metadata: Dict[str, str], tags: List[str]) -> str:
        """Strip context markers and tags from the text ahead of a match; return what is left."""
        if not before:
            return ""
        inner = self._strip(before, with_emoji=False, finalize=False)
        tags.extend(t for t in inner.tags if t not in tags)
        metadata.update(inner.metadata)
        return inner.content

    # -- individual recognisers ---------------------------------------------

    def extract_dataview(self, content: str) -> Optional[Tuple[str, str, str]]:
        """
        Find the first unescaped ``[key::value]`` pair.

        Returns:
            (canonical key, value, content without the pair) or None
        """
        for m in _DATAVIEW_RE.finditer(content):
            if count_preceding_backslashes(content, m.start()) % 2 == 1:
                continue
            key, _, value = m.group(1).partition("::")
            key, value = key.strip(), value.strip()
            if not key or not value:
                continue
            return self._canonical_dataview_key(key), value, content[: m.start()] + content[m.end():]
        return None

    def _canonical_dataview_key(self, key: str) -> str:
        lower = key.lower()
        if lower in DATAVIEW_KEY_MAPPING:
            return DATAVIEW_KEY_MAPPING[lower]
        for prefix, field in self.config.special_tag_prefixes.items():
            if prefix.lower() == lower:
                return field
        return key

    def extract_emoji(self, content: str) -> Optional[Tuple[str, str, str, str]]:
        """
        Bind the left-most configured emoji marker to the value after it.

        Returns:
            (field, value, text before the emoji, text after the value) or None
        """
        earliest: Optional[Tuple[int, str, str]] = None
        for emoji, field in self._emoji:
            pos = content.find(emoji)
            if pos != -1 and (earliest is None or pos < earliest[0]):
                earliest = (pos, emoji, field)
        if earliest is None:
            return None

        pos, emoji, field = earliest
        after = content[pos + len(emoji):]
        value_start = len(after) - len(after.lstrip())
        value_part = after[value_start:]
        value_end = self._emoji_value_end(value_part)
        value = value_part[:value_end].strip()

        if field == "dependsOn" and value:
            metadata_value = ",".join(split_ids(value))
        elif field == "priority":
            metadata_value = value or emoji
        else:
            metadata_value = value or EMOJI_DEFAULT_VALUES.get(emoji, "true")

        if field in DATE_FIELDS:
            m = _DATE_VALUE_RE.search(metadata_value)
            if m:
                metadata_value = m.group(0)

        new_pos = pos + len(emoji) + value_start + value_end
        return field, metadata_value, content[:pos], content[new_pos:]

    def _emoji_value_end(self, value_part: str) -> int:
        limit = min(len(value_part), self.config.max_emoji_value_length)
        for i in range(limit):
            ch = value_part[i]
            if ch == "[" or any(value_part.startswith(e, i) for e, _ in self._emoji):
                return i
            ext_end = find_file_extension_end(value_part, i)
            if ext_end > i:
                return ext_end
            if ch.isspace() and i + 1 < len(value_part) and value_part[i + 1] in "#@":
                return i
            if ch in "#@":
                return i
        return limit

    def extract_context(self, content: str) -> Optional[Tuple[str, str, str]]:
        """
        Find the first ``@token`` at a word boundary outside code and links.

        Returns:
            (token without "@", text before, text after) or None
        """
        spans = protected_ranges(content) if "@" in content else []
        pos = content.find("@")
        while pos != -1:
            if not _is_protected(pos, spans) and is_valid_token_start(content, pos):
                end = pos + 1
                while end < len(content) and is_token_char(content[end]):
                    end += 1
                if end > pos + 1:
                    return content[pos + 1:end], content[:pos], content[end:]
            pos = content.find("@", pos + 1)
        return None

    def extract_tag(self, content: str) -> Optional[Tuple[str, str, str]]:
        """
        Find the first live ``#token``.

        A hash preceded by an odd number of backslashes is escaped and stays
        literal; one inside inline code, a wiki-link, a markdown link or a URL
        is ignored. Tokens may contain "/".

        Returns:
            (tag with "#", text before, text after) or None
        """
        spans = protected_ranges(content) if "#" in content else []
        pos = content.find("#")
        while pos != -1:
            if (
                not _is_protected(pos, spans)
                and count_preceding_backslashes(content, pos) % 2 == 0
                and is_valid_token_start(content, pos)
            ):
                end = pos + 1
                while end < len(content) and is_token_char(content[end], allow_slash=True):
                    end += 1
                length = end - pos - 1
                if 0 < length <= self.config.max_tag_length:
                    return content[pos:end], content[:pos], content[end:]
            pos = content.find("#", pos + 1)
        return None


def _squash_spaces(text: str) -> str:
    """Trim, and collapse the runs of spaces that removed tokens leave behind."""
    return re.sub(r"[ \t]{2,}", " ", text).strip()
