"""
Security policy header units.

Each factory validates its options at construction and returns a unit that
sets one response header.
"""

from typing import Iterable, Mapping, Union

from ..core.combinators import Unit
from ..core.exceptions import PipelineConfigurationError
from .headers import set_header

FRAME_OPTIONS = {"DENY", "SAMEORIGIN"}
REFERRER_POLICIES = {
    "no-referrer",
    "no-referrer-when-downgrade",
    "origin",
    "origin-when-cross-origin",
    "same-origin",
    "strict-origin",
    "strict-origin-when-cross-origin",
    "unsafe-url",
}
# CSP keywords that must be single-quoted on the wire.
CSP_KEYWORDS = {
    "self",
    "none",
    "unsafe-inline",
    "unsafe-eval",
    "unsafe-hashes",
    "strict-dynamic",
    "report-sample",
    "wasm-unsafe-eval",
}


def _csp_source(source: str) -> str:
    if source in CSP_KEYWORDS or source.startswith(("nonce-", "sha256-", "sha384-", "sha512-")):
        return f"'{source}'"
    return source


def content_security_policy(
    directives: Mapping[str, Union[str, Iterable[str], bool]], *, report_only: bool = False
) -> Unit:
    """
    Example: {"default-src": "none", "img-src": ["self", "data:"]}
        -> "default-src 'none'; img-src 'self' data:"
    """
    parts = []
    for name, sources in directives.items():
        if sources is True:
            parts.append(name)
            continue
        if sources is False:
            continue
        if isinstance(sources, str):
            sources = [sources]
        rendered = " ".join(_csp_source(source) for source in sources)
        parts.append(f"{name} {rendered}" if rendered else name)
    if not parts:
        raise PipelineConfigurationError("content_security_policy: no directives")
    header = "content-security-policy-report-only" if report_only else "content-security-policy"
    return set_header(header, "; ".join(parts))


def content_type_options() -> Unit:
    return set_header("x-content-type-options", "nosniff")


def frame_options(mode: str = "DENY") -> Unit:
    mode = mode.upper()
    if mode not in FRAME_OPTIONS:
        raise PipelineConfigurationError(f"frame_options: unsupported mode {mode!r}")
    return set_header("x-frame-options", mode)


def strict_transport_security(
    max_age: int, *, include_subdomains: bool = False, preload: bool = False
) -> Unit:
    if max_age < 0:
        raise PipelineConfigurationError("strict_transport_security: max_age must be >= 0")
    value = f"max-age={max_age}"
    if include_subdomains:
        value += "; includeSubDomains"
    if preload:
        value += "; preload"
    return set_header("strict-transport-security", value)


def permissions_policy(features: Mapping[str, Iterable[str]]) -> Unit:
    """
    Example: {"camera": ["self", "https://example.com"], "usb": []}
        -> 'camera=(self "https://example.com"), usb=()'
    """
    parts = []
    for feature, origins in features.items():
        rendered = []
        for origin in origins:
            rendered.append(origin if origin in {"self", "*"} else f'"{origin}"')
        parts.append(f"{feature}=({' '.join(rendered)})")
    if not parts:
        raise PipelineConfigurationError("permissions_policy: no features")
    return set_header("permissions-policy", ", ".join(parts))


def referrer_policy(policy: Union[str, Iterable[str]]) -> Unit:
    policies = [policy] if isinstance(policy, str) else list(policy)
    unknown = [p for p in policies if p not in REFERRER_POLICIES]
    if not policies or unknown:
        raise PipelineConfigurationError(f"referrer_policy: unsupported policy {unknown or policies}")
    return set_header("referrer-policy", ", ".join(policies))


def xss_protection(mode: str = "block") -> Unit:
    if mode == "block":
        return set_header("x-xss-protection", "1; mode=block")
    if mode == "off":
        return set_header("x-xss-protection", "0")
    if mode == "filter":
        return set_header("x-xss-protection", "1")
    raise PipelineConfigurationError(f"xss_protection: unsupported mode {mode!r}")
