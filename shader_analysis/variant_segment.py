"""Split a combined compiled-shader dump into per-pass, per-keyword variants.

The dump interleaves metadata lines (pass names, keyword sets) with stage
sections.  A forward-only scan keeps the most recent pass name and keyword
sets in a small state object and files each captured stage section into a
bucket keyed by ``(pass name, keywords)``.  Vertex and fragment buckets with
the same key are then paired positionally.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from schemas.shader_ir import UNNAMED_PASS, ShaderVariant
from shader_analysis.glsl_version import normalize_version
from shader_analysis.section_extract import (
    END_MARKER,
    FRAGMENT_MARKER,
    VERTEX_MARKER,
    capture_block,
    join_non_blank,
    split_lines,
)

logger = logging.getLogger(__name__)

VariantKey = Tuple[str, str]

# Order matters: more specific shapes first.
_PASS_BLOCK_NAME_RE = re.compile(r'^\s*Pass\s*\{\s*Name\s+"([^"]*)"', re.IGNORECASE)
_NAME_RE = re.compile(r'^\s*Name\s+"([^"]*)"', re.IGNORECASE)
_PASS_COLON_RE = re.compile(r"^\s*(?://\s*)?Pass\s*:\s*(.+?)\s*$", re.IGNORECASE)
_SUBSHADER_PASS_RE = re.compile(
    r"^\s*(?://\s*)?Subshader\s+\d+\b.*?\bpass\s+\d+(?:\s*'([^']*)')?",
    re.IGNORECASE,
)
_LOCAL_KEYWORDS_RE = re.compile(r"^\s*(?://\s*)?Local\s+Keywords\s*:(.*)$", re.IGNORECASE)
_KEYWORDS_RE = re.compile(r"^\s*(?://\s*)?(?:Global\s+)?Keywords\s*:(.*)$", re.IGNORECASE)


@dataclass
class VariantScanState:
    """Mutable scan state for a single ``segment_variants`` call."""
    pass_name: str = UNNAMED_PASS
    keywords: str = ""
    local_keywords: str = ""

    def key(self) -> VariantKey:
        return self.pass_name, compose_keywords(self.keywords, self.local_keywords)

    def observe(self, line: str) -> bool:
        """Update state from a metadata line. Returns True if the line was metadata."""
        match = _PASS_BLOCK_NAME_RE.match(line) or _NAME_RE.match(line)
        if match:
            self.pass_name = match.group(1)
            return True
        match = _LOCAL_KEYWORDS_RE.match(line)
        if match:
            self.local_keywords = match.group(1).strip()
            return True
        match = _KEYWORDS_RE.match(line)
        if match:
            self.keywords = match.group(1).strip()
            return True
        match = _SUBSHADER_PASS_RE.match(line)
        if match:
            if match.group(1) is not None:
                self.pass_name = match.group(1)
            return True
        match = _PASS_COLON_RE.match(line)
        if match:
            self.pass_name = match.group(1)
            return True
        return False


@dataclass
class SectionBuckets:
    vertex: Dict[VariantKey, List[str]] = field(default_factory=dict)
    fragment: Dict[VariantKey, List[str]] = field(default_factory=dict)


def compose_keywords(keywords: str, local_keywords: str) -> str:
    """Join global and local keyword strings verbatim; token order is significant."""
    return " ".join(part for part in (keywords, local_keywords) if part)


def _finish_section(body: List[str]) -> str:
    return normalize_version(join_non_blank(body)) or ""


def scan_sections(text: Optional[str]) -> SectionBuckets:
    buckets = SectionBuckets()
    lines = split_lines(text or "")
    state = VariantScanState()
    idx = 0
    while idx < len(lines):
        trimmed = lines[idx].strip()
        idx += 1
        if trimmed == VERTEX_MARKER:
            target = buckets.vertex
        elif trimmed == FRAGMENT_MARKER:
            target = buckets.fragment
        else:
            state.observe(lines[idx - 1])
            continue

        body, idx, closed = capture_block(lines, idx, END_MARKER)
        if not closed:
            logger.debug("dropping unterminated %s section at end of dump", trimmed)
            break
        target.setdefault(state.key(), []).append(_finish_section(body))
    return buckets


def segment_variants(text: Optional[str]) -> List[ShaderVariant]:
    """Group every stage section in ``text`` into vertex/fragment variant pairs.

    Within one ``(pass, keywords)`` bucket the i-th vertex section pairs with the
    i-th fragment section; surplus sections on either side are dropped.  Output
    order follows bucket key order and is not a source-order guarantee.
    """
    if not text:
        return []
    buckets = scan_sections(text)
    variants: List[ShaderVariant] = []
    for key, vertex_sections in buckets.vertex.items():
        fragment_sections = buckets.fragment.get(key)
        if not fragment_sections:
            continue
        pass_name, keywords = key
        for vertex_src, fragment_src in zip(vertex_sections, fragment_sections):
            variants.append(
                ShaderVariant(
                    vertex_source=vertex_src,
                    fragment_source=fragment_src,
                    pass_name=pass_name,
                    keywords=keywords,
                )
            )
    logger.debug(
        "segmented %d variants from %d vertex / %d fragment buckets",
        len(variants),
        len(buckets.vertex),
        len(buckets.fragment),
    )
    return variants
