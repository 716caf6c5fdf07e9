"""
Computed Registry
=================

Derived values with explicitly declared dependencies.

Each definition caches its last result behind a dirty flag. Writing any
declared dependency marks the definition dirty and immediately tells
subscribers that the computed path changed; the getter itself only runs again
on the next ``resolve``.

Dependencies are declared by hand, not traced. A getter that reads a path it
did not declare will not be invalidated when that path changes.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set

from showtrack.errors import ComputationError

logger = logging.getLogger(__name__)

# Marks "no cached value" so that a getter may legitimately return None
_NO_VALUE = object()

Notify = Callable[[str, Any, Any], None]


class ComputedDefinition:
    """A registered computed path and its cache state."""

    def __init__(self, path: str, getter: Callable[[], Any], dependencies: List[str]):
        self.path = path
        self.getter = getter
        self.dependencies: List[str] = list(dependencies)
        self.cache: Any = _NO_VALUE
        self.dirty = True
        self.last_error: Optional[ComputationError] = None
        self.compute_count = 0

    @property
    def has_cache(self) -> bool:
        return self.cache is not _NO_VALUE

    def cached_value(self) -> Any:
        """The cached value, or None when nothing is cached."""
        return self.cache if self.has_cache else None

    def __repr__(self) -> str:
        state = "dirty" if self.dirty else "clean"
        return f"ComputedDefinition({self.path!r}, deps={self.dependencies}, {state})"


class ComputedRegistry:
    """
    Registry of computed definitions with lazy recomputation.

    Args:
        notify: Called as ``notify(path, new_value, old_value)`` whenever a
            computed path is invalidated. The store passes its observer bus.
    """

    def __init__(self, notify: Notify):
        self._notify = notify
        self._definitions: Dict[str, ComputedDefinition] = {}
        # dependency path -> computed paths that declared it
        self._dependents: Dict[str, Set[str]] = defaultdict(set)

    def register(
        self, path: str, getter: Callable[[], Any], dependencies: List[str]
    ) -> ComputedDefinition:
        """
        Register (or replace) the computed value at ``path``.

        Args:
            path: Computed path
            getter: Zero-argument function producing the value
            dependencies: Paths whose changes invalidate this value

        Returns:
            The new definition, dirty until first resolved
        """
        if path in self._definitions:
            self._unlink(self._definitions[path])
            logger.debug(f"Computed property replaced: {path}")

        definition = ComputedDefinition(path, getter, dependencies)
        self._definitions[path] = definition
        for dep in definition.dependencies:
            self._dependents[dep].add(path)

        logger.debug(f"Computed property defined: {path} deps={definition.dependencies}")
        return definition

    def _unlink(self, definition: ComputedDefinition) -> None:
        for dep in definition.dependencies:
            self._dependents[dep].discard(definition.path)
            if not self._dependents[dep]:
                del self._dependents[dep]

    def resolve(self, path: str) -> Any:
        """
        Current value of a computed path.

        Returns the cache while it is trustworthy, otherwise runs the getter.
        A failing getter is logged and yields None; the definition stays dirty
        so the next read tries again.
        """
        definition = self._definitions.get(path)
        if definition is None:
            return None

        if not definition.dirty and definition.has_cache:
            return definition.cache

        try:
            value = definition.getter()
        except Exception as e:
            definition.last_error = ComputationError(path, e)
            logger.error(str(definition.last_error), exc_info=True)
            return None

        definition.cache = value
        definition.dirty = False
        definition.last_error = None
        definition.compute_count += 1
        logger.debug(f"Computed property calculated: {path}")
        return value

    def invalidate(self, *changed_paths: str) -> List[str]:
        """
        Mark every computed value depending on any of ``changed_paths`` dirty.

        Each invalidated path is notified once with ``(None, previous_cache)``,
        even when several of its dependencies changed together. Computed
        values depending on an invalidated computed path are invalidated too.

        Returns:
            Invalidated computed paths, in notification order
        """
        previous: Dict[str, Any] = {}
        seen: Set[str] = set(changed_paths)
        pending = list(changed_paths)

        # Mark the whole affected set first so observers never read a stale
        # downstream cache
        while pending:
            source = pending.pop(0)
            # Sorted for a deterministic notification order
            for path in sorted(self._dependents.get(source, ())):
                if path in seen:
                    continue
                seen.add(path)

                definition = self._definitions[path]
                previous[path] = definition.cached_value()
                definition.dirty = True
                definition.cache = _NO_VALUE
                logger.debug(f"Computed property invalidated: {path}")
                pending.append(path)

        for path, old_value in previous.items():
            self._notify(path, None, old_value)

        return list(previous)

    def invalidate_all(self) -> None:
        """Mark every definition dirty and drop all caches, without notifying."""
        for definition in self._definitions.values():
            definition.dirty = True
            definition.cache = _NO_VALUE

    def __contains__(self, path: str) -> bool:
        return path in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def paths(self) -> List[str]:
        return list(self._definitions)

    def dependents_of(self, path: str) -> Set[str]:
        """Computed paths that directly declared ``path`` as a dependency."""
        return set(self._dependents.get(path, ()))

    def definition(self, path: str) -> Optional[ComputedDefinition]:
        return self._definitions.get(path)

    def is_dirty(self, path: str) -> bool:
        definition = self._definitions.get(path)
        return definition is None or definition.dirty

    def last_error(self, path: str) -> Optional[ComputationError]:
        definition = self._definitions.get(path)
        return definition.last_error if definition else None
