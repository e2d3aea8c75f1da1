"""Registry collaborator contract."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import re

    from cthist.models.version import FetchFailure, VersionData


@runtime_checkable
class Registry(Protocol):
    """A trial registry that exposes the revision history of its entries.

    ``fetch_dates`` returns an empty list when the history cannot be
    enumerated. ``fetch_version`` never raises: it returns either
    :class:`VersionData` or the :class:`FetchFailure` sentinel.
    """

    name: str
    id_pattern: re.Pattern[str]

    def is_reachable(self) -> bool: ...

    def fetch_dates(self, identifier: str) -> list[str]: ...

    def fetch_version(self, identifier: str, version_index: int) -> VersionData | FetchFailure: ...
