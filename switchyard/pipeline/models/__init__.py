"""
Data model definitions package.
"""

from .body import RequestBody
from .context import Context, parse_hostname
from .headers import Headers
from .response_body import ResponseBody

__all__ = [
    "Context",
    "Headers",
    "RequestBody",
    "ResponseBody",
    "parse_hostname",
]
