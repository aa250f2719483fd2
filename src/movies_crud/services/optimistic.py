"""Snapshot, apply, commit-or-rollback helper for cached UI state."""

from collections.abc import Hashable, MutableMapping
from dataclasses import dataclass, field
from uuid import UUID

from movies_crud.services.favorites import FavoritesService, ToggleResult

_MISSING = object()


@dataclass
class OptimisticUpdate:
    """Optimistic write to one key of a cache."""

    cache: MutableMapping
    key: Hashable
    _snapshot: object = field(default=_MISSING, init=False)

    def apply(self, value: object) -> None:
        """Remember the current value and write the optimistic one."""
        self._snapshot = self.cache.get(self.key, _MISSING)
        self.cache[self.key] = value

    def commit(self, value: object) -> None:
        """Replace the optimistic value with the confirmed one."""
        self.cache[self.key] = value
        self._snapshot = _MISSING

    def rollback(self) -> None:
        """Restore the value seen before `apply`."""
        if self._snapshot is _MISSING:
            self.cache.pop(self.key, None)
        else:
            self.cache[self.key] = self._snapshot
        self._snapshot = _MISSING


def toggle_favorite_optimistically(
    cache: MutableMapping[UUID, bool],
    service: FavoritesService,
    identity_id: UUID | None,
    movie_id: UUID,
) -> ToggleResult:
    """Flip a cached favorite flag immediately, then reconcile with the backend."""
    update = OptimisticUpdate(cache, movie_id)
    update.apply(not cache.get(movie_id, False))
    result = service.toggle(identity_id, movie_id)
    if result.success and result.is_favorited is not None:
        update.commit(result.is_favorited)
    else:
        update.rollback()
    return result
