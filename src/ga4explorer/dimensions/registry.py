"""Dimension registry - which user-facing names come from which GA4 dimensions.

a dimension is either plain (we send its name to GA4 verbatim) or derived
(we send a different source dimension and compute the value afterwards).
plain dimensions have no entry here at all, which keeps the tables small and
means unknown names just fall through as plain.
"""

import functools
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from ga4explorer.dimensions import transforms

logger = logging.getLogger(__name__)

Transform = Callable[[dict[str, Any], str], Any]

# derived name -> GA4 source dimension
BUILTIN_SOURCES: dict[str, str] = {
    "domain": "pagePath",
    "pageTitle": "pageTitle",
    "userType": "newVsReturning",
    "deviceCategory": "deviceCategory",
}

BUILTIN_TRANSFORMS: dict[str, Transform] = {
    "domain": transforms.domain,
    "pageTitle": transforms.page_title,
    "userType": transforms.user_type,
    "deviceCategory": transforms.device_category,
}


def _guard(name: str, fn: Transform) -> Transform:
    """Wrap a transform so it degrades to "" instead of raising."""

    @functools.wraps(fn)
    def guarded(row: dict[str, Any], source_value: str) -> Any:
        try:
            return fn(row, source_value)
        except Exception:
            logger.warning("Transform for '%s' failed on %r", name, source_value, exc_info=True)
            return ""

    return guarded


class DimensionRegistry:
    """Immutable lookup of derived dimensions and their transforms.

    built once at import time (plus catalogue aliases) and only read after
    that, so it's safe to share between queries.
    """

    def __init__(
        self,
        sources: Mapping[str, str] | None = None,
        transforms_: Mapping[str, Transform] | None = None,
    ) -> None:
        sources = dict(BUILTIN_SOURCES if sources is None else sources)
        transforms_ = dict(BUILTIN_TRANSFORMS if transforms_ is None else transforms_)

        # a transform with nowhere to read from is a registration bug
        orphans = sorted(set(transforms_) - set(sources))
        if orphans:
            raise ValueError(f"Transforms registered without a source dimension: {orphans}")

        self._sources = MappingProxyType(sources)
        self._transforms = MappingProxyType(
            {name: _guard(name, fn) for name, fn in transforms_.items()}
        )

    @property
    def sources(self) -> Mapping[str, str]:
        return self._sources

    @property
    def transforms(self) -> Mapping[str, Transform]:
        return self._transforms

    def source_of(self, name: str) -> str:
        """GA4 dimension to request for a user-facing name. Never fails."""
        return self._sources.get(name, name)

    def transform_of(self, name: str) -> Transform | None:
        return self._transforms.get(name)

    def is_derived(self, name: str) -> bool:
        return self.source_of(name) != name

    def with_aliases(self, aliases: Mapping[str, str]) -> "DimensionRegistry":
        """Return a new registry with catalogue aliases added as sourced names.

        aliases are renames with no transform (e.g. source -> sessionSource).
        identity aliases are skipped. an alias can't repoint a built-in
        derived dimension since its transform expects a specific source.
        """
        sources = dict(self._sources)
        for alias, source in aliases.items():
            if alias == source:
                continue
            existing = sources.get(alias)
            if existing is not None and existing != source:
                raise ValueError(
                    f"Dimension alias '{alias}' -> '{source}' conflicts with "
                    f"registered source '{existing}'"
                )
            sources[alias] = source
        # pass the unwrapped transforms back in - _guard is applied in __init__
        raw = {name: fn.__wrapped__ for name, fn in self._transforms.items()}  # type: ignore[attr-defined]
        return DimensionRegistry(sources, raw)


DEFAULT_REGISTRY = DimensionRegistry()
