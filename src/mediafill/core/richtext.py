"""Rich-text rewriting of embedded file ID markers.

Markup references stored files with an ID attribute placed right before the
URL-bearing attribute of the same element:

    <img data-href="file_1" src="stale.jpg">

Rewriting replaces only the URL attribute's value and leaves the ID attribute
in place, so the output can be rewritten again later with fresh URLs.
"""

import logging
import re
from collections.abc import Mapping

from mediafill.core.resource import ResourceInfo

logger = logging.getLogger(__name__)

DEFAULT_ID_ATTR = "data-href"
DEFAULT_URL_ATTR = "src"
ID_CHARSET = r"[A-Za-z0-9_-]+"

# Name of the optional group spanning the URL attribute value
URL_GROUP = "url"


def marker_pattern(
    id_attr: str = DEFAULT_ID_ATTR,
    url_attr: str = DEFAULT_URL_ATTR,
) -> re.Pattern[str]:
    """Build the marker pattern for a pair of attribute names.

    Args:
        id_attr: Attribute carrying the file ID
        url_attr: Attribute carrying the URL to rewrite

    Returns:
        Compiled pattern with the ID as group 1 and the URL value as group "url"
    """
    return re.compile(
        f'{re.escape(id_attr)}="({ID_CHARSET})" '
        f'{re.escape(url_attr)}="(?P<{URL_GROUP}>[^"]*)"'
    )


DEFAULT_PATTERN = marker_pattern()


def _validate_pattern(pattern: re.Pattern[str]) -> None:
    """Check that a pattern exposes exactly one ID group.

    Raises:
        ValueError: If the group layout is not usable
    """
    url_index = pattern.groupindex.get(URL_GROUP)
    id_groups = pattern.groups - (1 if url_index is not None else 0)
    if id_groups != 1:
        raise ValueError(
            "Rich text pattern must have exactly one capture group for the file ID, "
            f"got {id_groups}"
        )
    if url_index == 1:
        raise ValueError("Rich text pattern must capture the file ID in group 1")


class RichTextRewriter:
    """Finds file ID markers in markup and rewrites their URLs.

    A custom pattern must capture the file ID in group 1. If it also defines a
    named group "url", only that span is replaced; otherwise the whole match is
    replaced with ``id_attr="<id>" url_attr="<url>"``.
    """

    def __init__(
        self,
        pattern: re.Pattern[str] | str | None = None,
        *,
        id_attr: str = DEFAULT_ID_ATTR,
        url_attr: str = DEFAULT_URL_ATTR,
    ) -> None:
        """Initialize rewriter.

        Args:
            pattern: Custom marker pattern; defaults to one built from the
                     attribute names
            id_attr: Attribute carrying the file ID
            url_attr: Attribute carrying the URL

        Raises:
            ValueError: If the pattern does not expose exactly one ID group
        """
        if pattern is None:
            compiled = marker_pattern(id_attr, url_attr)
        elif isinstance(pattern, str):
            compiled = re.compile(pattern)
        else:
            compiled = pattern
        _validate_pattern(compiled)

        self._pattern = compiled
        self._id_attr = id_attr
        self._url_attr = url_attr

    @property
    def pattern(self) -> re.Pattern[str]:
        """Compiled marker pattern."""
        return self._pattern

    def collect_ids(self, text: str | None) -> list[str]:
        """Extract file IDs from every marker, duplicates included.

        Args:
            text: Markup to scan

        Returns:
            IDs in order of appearance
        """
        if not text:
            return []
        return [m.group(1) for m in self._pattern.finditer(text) if m.group(1)]

    def rewrite(
        self,
        text: str | None,
        resources: Mapping[str, ResourceInfo],
        variant: str | None = None,
    ) -> str:
        """Rewrite URLs of resolved markers.

        Markers whose ID is missing from ``resources`` or failed to resolve are
        left exactly as they were.

        Args:
            text: Markup to rewrite
            resources: Resolved resources keyed by file ID
            variant: Variant name to use instead of the primary URL

        Returns:
            Rewritten markup
        """
        if not text:
            return text or ""

        rewritten = 0

        def replace(match: re.Match[str]) -> str:
            nonlocal rewritten
            file_id = match.group(1)
            info = resources.get(file_id) if file_id else None
            if info is None or not info.success:
                return match.group(0)
            rewritten += 1
            url = info.variant(variant) if variant else info.url
            return self._render(match, file_id, url)

        result = self._pattern.sub(replace, text)
        logger.debug(f"Rewrote {rewritten} rich text markers")
        return result

    def _render(self, match: re.Match[str], file_id: str, url: str) -> str:
        """Render a resolved marker.

        Args:
            match: Marker match
            file_id: Captured file ID
            url: URL to write

        Returns:
            Replacement text for the whole match
        """
        if URL_GROUP in self._pattern.groupindex:
            start, end = match.span(URL_GROUP)
            if start != -1:
                whole = match.group(0)
                offset = match.start()
                return whole[: start - offset] + url + whole[end - offset :]
        return f'{self._id_attr}="{file_id}" {self._url_attr}="{url}"'
