"""
Route template parsing and path matching.

A template is a "/"-separated path whose segments are either fixed text or a
capture written as ":name". Matching is segment-wise with an exact segment
count; there is no prefix or wildcard matching.

Example: "/products/:id" matches "/products/42" -> {"id": "42"}
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from urllib.parse import unquote

from .exceptions import RouteTemplateError

logger = logging.getLogger(__name__)

CAPTURE_PREFIX = ":"
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Segment:
    value: str
    is_capture: bool = False


@dataclass(frozen=True)
class RoutePattern:
    template: str
    segments: Tuple[Segment, ...]

    @classmethod
    def parse(cls, template: str) -> "RoutePattern":
        """
        Parse ``template`` into a pattern.

        Raises:
            RouteTemplateError: the template is empty, relative, or declares
                a capture without a valid name.
        """
        if not isinstance(template, str) or not template:
            raise RouteTemplateError(str(template), "template must be a non-empty string")
        if not template.startswith("/"):
            raise RouteTemplateError(template, "template must start with '/'")

        segments = []
        seen = set()
        for raw in template.split("/"):
            if raw.startswith(CAPTURE_PREFIX):
                name = raw[len(CAPTURE_PREFIX) :]
                if not _NAME_RE.match(name):
                    raise RouteTemplateError(template, f"invalid capture name {name!r}")
                if name in seen:
                    # Later captures overwrite earlier ones at match time.
                    logger.warning(
                        "Route template %s declares capture %r more than once", template, name
                    )
                seen.add(name)
                segments.append(Segment(name, is_capture=True))
            else:
                segments.append(Segment(raw))
        return cls(template=template, segments=tuple(segments))

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(s.value for s in self.segments if s.is_capture))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """
        Match ``path`` against the template.

        Returns:
            Mapping of capture name to unescaped segment, or None on mismatch
        """
        parts = path.split("/")
        if len(parts) != len(self.segments):
            return None

        params: Dict[str, str] = {}
        for segment, part in zip(self.segments, parts):
            if segment.is_capture:
                if not part:
                    return None
                params[segment.value] = unquote(part)
            elif segment.value != part:
                return None
        return params

    def __str__(self) -> str:
        return self.template
