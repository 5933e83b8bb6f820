"""Bidirectional id <-> name registry for parameters and states."""

from typing import Dict, Iterable, Iterator, Optional, Tuple, Union, Mapping

from .errors import ConfigurationError

NamePairs = Union[Mapping[int, str], Iterable[Tuple[int, str]]]


class NameRegistry:
    """Keeps id->name and name->id in step.

    Assigning a name to an id drops whatever name the id had before, and
    whatever id the name pointed at before, so both directions always agree.
    """

    def __init__(self, role: str = "identifier"):
        self.role = role
        self._by_id: Dict[int, str] = {}
        self._by_name: Dict[str, int] = {}

    def set_name(self, identifier: int, name: str) -> None:
        identifier = int(identifier)
        if identifier < 0:
            raise ConfigurationError(f"{self.role} id must be non-negative: {identifier}")
        name = str(name)

        old_name = self._by_id.pop(identifier, None)
        if old_name is not None:
            self._by_name.pop(old_name, None)
        old_id = self._by_name.pop(name, None)
        if old_id is not None:
            self._by_id.pop(old_id, None)

        self._by_id[identifier] = name
        self._by_name[name] = identifier

    def set_names(self, pairs: NamePairs) -> None:
        """Name several ids at once.

        A batch that names the same id twice, or uses the same name twice, is
        rejected before anything is registered.
        """
        items = list(pairs.items()) if isinstance(pairs, Mapping) else list(pairs)
        seen_ids = set()
        seen_names = set()
        for identifier, name in items:
            if identifier in seen_ids:
                raise ConfigurationError(f"{self.role} id {identifier} named more than once")
            if name in seen_names:
                raise ConfigurationError(f"{self.role} name '{name}' used more than once")
            seen_ids.add(identifier)
            seen_names.add(name)
        for identifier, name in items:
            self.set_name(identifier, name)

    def name_of(self, identifier: int) -> Optional[str]:
        return self._by_id.get(identifier)

    def id_of(self, name: str) -> Optional[int]:
        return self._by_name.get(name)

    def require_id(self, name: str) -> int:
        """Return the id registered for ``name`` or raise ConfigurationError."""
        identifier = self._by_name.get(name)
        if identifier is None:
            raise ConfigurationError(f"unknown {self.role} name: '{name}'")
        return identifier

    def label(self, identifier: int) -> str:
        """Name if registered, otherwise the numeric id (for diagnostics)."""
        name = self._by_id.get(identifier)
        return name if name is not None else str(identifier)

    def items(self) -> Iterator[Tuple[int, str]]:
        return iter(sorted(self._by_id.items()))

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_id)

    def __repr__(self) -> str:
        return f"NameRegistry(role={self.role!r}, names={dict(self.items())})"
