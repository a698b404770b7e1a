"""
Discovery and sectioning of the Markdown/MDX documentation tree.

Each page is split into sections at its headings. A section carries the
heading text and a GitHub-style anchor slug so search hits can link back
to the exact place in the page. JSX components, ESM import/export
statements and front matter are stripped before splitting; front matter
and a literal ``export const meta = {...}`` become the page's ``meta``.
"""

from __future__ import annotations

import base64
import hashlib
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import frontmatter
from pymdownx.slugs import slugify as _md_slugify

from utils.logger import get_logger

logger = get_logger(__name__)

DOC_SUFFIXES = {".md", ".mdx"}
IGNORED_FILES = {"404.mdx"}

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")
ESM_PATTERN = re.compile(r"^(import|export)\s")
JSX_LINE_PATTERN = re.compile(r"^\s*</?[A-Z][\w.]*(\s[^>]*)?/?>\s*$")
META_EXPORT_PATTERN = re.compile(r"export\s+const\s+meta\s*=\s*\{(?P<body>.*?)\}", re.DOTALL)
META_PAIR_PATTERN = re.compile(r"(\w+)\s*:\s*(['\"])(.*?)\2")

_slugify = _md_slugify(case="lower")


@dataclass(frozen=True)
class Section:
    content: str
    heading: str | None = None
    slug: str | None = None


@dataclass
class ProcessedPage:
    checksum: str
    meta: dict[str, Any] | None
    sections: list[Section] = field(default_factory=list)


@dataclass(frozen=True)
class WalkEntry:
    path: Path
    parent_path: Path | None = None


class HeadingSlugger:
    """Anchor slugs that stay unique within one page (intro, intro-1, ...)."""

    def __init__(self):
        self._seen: dict[str, int] = {}

    def slug(self, heading: str) -> str:
        base = _slugify(heading, "-")
        count = self._seen.get(base, 0)
        self._seen[base] = count + 1
        return base if count == 0 else f"{base}-{count}"


def compute_checksum(content: str) -> str:
    """Base64 SHA-256 of the raw page text."""
    return base64.b64encode(hashlib.sha256(content.encode("utf-8")).digest()).decode("ascii")


def _extract_meta(front_matter: dict[str, Any], body: str) -> dict[str, Any] | None:
    meta: dict[str, Any] = dict(front_matter)
    match = META_EXPORT_PATTERN.search(body)
    if match:
        for key, _quote, value in META_PAIR_PATTERN.findall(match.group("body")):
            meta.setdefault(key, value)
    if not meta:
        return None
    # YAML can yield dates and other non-JSON types
    return json.loads(json.dumps(meta, default=str))


def _strip_mdx(body: str) -> list[str]:
    """Drop ESM statements and standalone JSX tag lines outside code fences."""
    kept: list[str] = []
    in_fence = False
    in_esm = False
    brace_depth = 0

    for line in body.splitlines():
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            kept.append(line)
            continue
        if in_fence:
            kept.append(line)
            continue

        if in_esm or ESM_PATTERN.match(line):
            brace_depth += line.count("{") - line.count("}")
            in_esm = brace_depth > 0
            continue
        if JSX_LINE_PATTERN.match(line):
            continue
        kept.append(line)

    return kept


def _split_sections(lines: list[str]) -> list[Section]:
    slugger = HeadingSlugger()
    groups: list[tuple[str | None, list[str]]] = []
    in_fence = False

    for line in lines:
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
        match = None if in_fence else HEADING_PATTERN.match(line)
        if match or not groups:
            groups.append((match.group(2) if match else None, []))
        groups[-1][1].append(line)

    sections = []
    for heading, group_lines in groups:
        content = "\n".join(group_lines).strip()
        if not content:
            continue
        sections.append(
            Section(
                content=content + "\n",
                heading=heading,
                slug=slugger.slug(heading) if heading else None,
            )
        )
    return sections


def process_markdown(content: str) -> ProcessedPage:
    """Checksum, metadata and heading sections for one page."""
    checksum = compute_checksum(content)

    try:
        post = frontmatter.loads(content)
        front_matter = dict(post.metadata) if isinstance(post.metadata, dict) else {}
        body = post.content
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"Failed to parse front matter: {exc}")
        front_matter, body = {}, content

    meta = _extract_meta(front_matter, body)
    sections = _split_sections(_strip_mdx(body))
    return ProcessedPage(checksum=checksum, meta=meta, sections=sections)


def walk(directory: Path, parent_path: Path | None = None) -> list[WalkEntry]:
    """
    All files under ``directory``, sorted by path.

    A directory ``foo/`` next to a ``foo.mdx`` page marks that page as the
    parent of everything inside it.
    """
    entries: list[WalkEntry] = []
    children = sorted(directory.iterdir())
    names = {child.name for child in children}

    for child in children:
        if child.is_dir():
            doc_name = f"{child.name}.mdx"
            child_parent = directory / doc_name if doc_name in names else parent_path
            entries.extend(walk(child, child_parent))
        elif child.is_file():
            entries.append(WalkEntry(path=child, parent_path=parent_path))

    return sorted(entries, key=lambda entry: entry.path.as_posix())


def page_key(file_path: Path, docs_dir: Path) -> str:
    """URL-style key for a page: ``pages/guide/intro.mdx`` -> ``/guide/intro``."""
    relative = file_path.relative_to(docs_dir).with_suffix("")
    return "/" + relative.as_posix()


class MarkdownSource:
    """One documentation page on disk."""

    type = "markdown"

    def __init__(self, source: str, file_path: Path, docs_dir: Path, parent_file_path: Path | None = None):
        self.source = source
        self.file_path = file_path
        self.path = page_key(file_path, docs_dir)
        self.parent_path = page_key(parent_file_path, docs_dir) if parent_file_path else None

    def load(self) -> ProcessedPage:
        return process_markdown(self.file_path.read_text(encoding="utf-8"))


def discover_sources(docs_dir: Path, source: str = "guide") -> list[MarkdownSource]:
    """Markdown pages under ``docs_dir`` minus the ignored ones."""
    sources = []
    for entry in walk(docs_dir):
        if entry.path.suffix not in DOC_SUFFIXES:
            continue
        if entry.path.relative_to(docs_dir).as_posix() in IGNORED_FILES:
            continue
        sources.append(MarkdownSource(source, entry.path, docs_dir, entry.parent_path))
    return sources
