"""HTML preview extractor.

Pure function from HTML text to a short human-readable description. Collects
candidates from meta tags, JSON-LD, the first paragraph and the title, scores
each one and returns the best. The goal is a best-effort snippet from the
first 64 KB of a page; the page is parsed once with BeautifulSoup's
``html.parser`` backend, which tolerates truncated markup.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from bs4 import BeautifulSoup

MAX_PREVIEW_LENGTH = 420

PREFERRED_META_KEYS: tuple[str, ...] = (
    "og:description",
    "twitter:description",
    "description",
    "dc.description",
    "sailthru.description",
)

_META_KEY_ATTRIBUTES: tuple[str, ...] = ("property", "name", "itemprop")
_JSON_LD_TYPE = "application/ld+json"

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_NUMERIC_ENTITY_RE = re.compile(r"&#(x?[0-9A-Fa-f]+);")

# Applied in order: "&amp;" must be decoded before the entities it may spell out
_NAMED_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#34;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&ldquo;", '"'),
    ("&rdquo;", '"'),
    ("&lsquo;", "'"),
    ("&rsquo;", "'"),
    ("&ndash;", "-"),
    ("&mdash;", "-"),
    ("&hellip;", "…"),
)


class CandidateSource(StrEnum):
    META = "meta"
    JSON_LD = "json_ld"
    PARAGRAPH = "paragraph"
    TITLE = "title"


@dataclass(frozen=True)
class Candidate:
    """A scored text fragment. Lives only for the duration of one extraction."""

    text: str
    source: CandidateSource
    meta_index: int = 0

    @property
    def base_score(self) -> int:
        if self.source is CandidateSource.META:
            return 620 - 24 * self.meta_index
        if self.source is CandidateSource.JSON_LD:
            return 540
        if self.source is CandidateSource.PARAGRAPH:
            return 500
        return 180

    @property
    def score(self) -> int:
        word_count = len(self.text.split())
        length_score = min(len(self.text), MAX_PREVIEW_LENGTH)
        density_score = min(word_count * 8, 120)
        return self.base_score + length_score + density_score


def extract_preview(html: str) -> str | None:
    """Return the best short description found in ``html``, or ``None``.

    Among equal scores the first candidate collected wins; collection order is
    meta keys by priority, then JSON-LD, paragraph, title.
    """
    candidates = collect_candidates(html)
    if not candidates:
        return None
    # max() keeps the first of equal elements
    return max(candidates, key=lambda candidate: candidate.score).text


def collect_candidates(html: str) -> list[Candidate]:
    soup = BeautifulSoup(html, "html.parser")
    meta_values = _meta_content_values(soup)
    json_ld = _json_ld_description(soup)

    # Paragraph and title lookups must not see script or style bodies
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()

    candidates: list[Candidate] = []
    for index, key in enumerate(PREFERRED_META_KEYS):
        value = meta_values.get(key)
        if value is not None:
            candidates.append(Candidate(value, CandidateSource.META, meta_index=index))

    if json_ld is not None:
        candidates.append(Candidate(json_ld, CandidateSource.JSON_LD))

    paragraph = _first_tag_text(soup, "p")
    if paragraph is not None:
        candidates.append(Candidate(paragraph, CandidateSource.PARAGRAPH))

    title = _first_tag_text(soup, "title")
    if title is not None:
        candidates.append(Candidate(title, CandidateSource.TITLE))

    return candidates


def meta_content_values(html: str) -> dict[str, str]:
    """Map lowercased ``property``/``name``/``itemprop`` keys to normalised content.

    The first tag with a usable value wins for each key.
    """
    return _meta_content_values(BeautifulSoup(html, "html.parser"))


def json_ld_description(html: str) -> str | None:
    """Return the first ``description``/``headline`` found in any JSON-LD block."""
    return _json_ld_description(BeautifulSoup(html, "html.parser"))


def _meta_content_values(soup: BeautifulSoup) -> dict[str, str]:
    out: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        key = ""
        for attr in _META_KEY_ATTRIBUTES:
            value = tag.get(attr)
            if isinstance(value, str) and value.strip():
                key = value.strip().lower()
                break
        if not key:
            continue
        if key in out:
            continue
        content = tag.get("content")
        if not isinstance(content, str):
            continue
        normalized = normalize_candidate(content)
        if normalized is not None:
            out[key] = normalized
    return out


def _json_ld_description(soup: BeautifulSoup) -> str | None:
    for script in soup.find_all("script"):
        script_type = script.get("type")
        if not isinstance(script_type, str) or script_type.strip().lower() != _JSON_LD_TYPE:
            continue
        raw_json = decode_html_entities(script.string or "").strip()
        if not raw_json:
            continue
        try:
            payload = json.loads(raw_json)
        except ValueError:
            continue
        description = _first_string_value(("description", "headline"), payload)
        if description is not None:
            return description
    return None


def _first_string_value(keys: tuple[str, ...], node: Any) -> str | None:
    """Depth-first search: own keys first, then nested values in document order."""
    if isinstance(node, dict):
        for key in keys:
            value = node.get(key)
            if isinstance(value, str):
                normalized = normalize_candidate(value)
                if normalized is not None:
                    return normalized
        for value in node.values():
            nested = _first_string_value(keys, value)
            if nested is not None:
                return nested
    elif isinstance(node, list):
        for item in node:
            nested = _first_string_value(keys, item)
            if nested is not None:
                return nested
    return None


def _first_tag_text(soup: BeautifulSoup, name: str) -> str | None:
    tag = soup.find(name)
    if tag is None:
        return None
    # Inner markup, so nested tags become word breaks during normalisation
    return normalize_candidate(tag.decode_contents())


def normalize_candidate(raw: str | None, max_length: int = MAX_PREVIEW_LENGTH) -> str | None:
    """Strip tags, decode entities, collapse whitespace and cap the length.

    Returns ``None`` when nothing is left.
    """
    if raw is None:
        return None
    without_tags = _TAG_RE.sub(" ", raw)
    decoded = decode_html_entities(without_tags)
    collapsed = _WHITESPACE_RE.sub(" ", decoded).strip()
    if not collapsed:
        return None
    if len(collapsed) <= max_length:
        return collapsed
    return collapsed[:max_length] + "…"


def decode_html_entities(value: str) -> str:
    """Decode the fixed named-entity table and decimal/hex character references."""
    out = value
    for entity, replacement in _NAMED_ENTITIES:
        out = out.replace(entity, replacement)
    return _NUMERIC_ENTITY_RE.sub(_replace_numeric_entity, out)


def _replace_numeric_entity(match: re.Match[str]) -> str:
    reference = match.group(1)
    try:
        if reference[:1] in ("x", "X"):
            code_point = int(reference[1:], 16)
        else:
            code_point = int(reference, 10)
    except ValueError:
        return match.group(0)
    if code_point > 0x10FFFF or 0xD800 <= code_point <= 0xDFFF:
        return match.group(0)
    return chr(code_point)
