from __future__ import annotations

import re
from typing import Optional

# malioc rejects some GLES 3.0 sources that compile fine as 3.1.
_GLES300_RE = re.compile(r"#version\s+300\s+es")
GLES310_DIRECTIVE = "#version 310 es"


def normalize_version(source: Optional[str]) -> Optional[str]:
    """Rewrite every ``#version 300 es`` directive to ``#version 310 es``."""
    if not source:
        return source
    return _GLES300_RE.sub(GLES310_DIRECTIVE, source)
