"""
Numeric stores for parameters and states.

Every identifier maps to a one-dimensional float64 array of components.
Reads of an identifier that was never written raise UnknownIdentifierError;
writes always create the slot.

Two layouts are available:
    NumericStore       - sparse, any non-negative id (default)
    DenseNumericStore  - fixed number of slots declared up front
"""

from typing import Iterator, List, Optional

import numpy as np

from .errors import ConfigurationError, UnknownIdentifierError
from .names import NameRegistry


def as_components(values) -> np.ndarray:
    """Copy ``values`` (scalar or sequence) into a fresh float64 vector."""
    arr = np.array(values, dtype=np.float64)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    elif arr.ndim != 1:
        raise ConfigurationError(f"component values must be one-dimensional, got shape {arr.shape}")
    return arr


class NumericStore:
    """Sparse mapping of integer ids to component vectors."""

    def __init__(self, role: str = "state", names: Optional[NameRegistry] = None):
        self.role = role
        self.names = names if names is not None else NameRegistry(role)
        self._slots = {}

    # ------------------------------------------------------------------
    # Slot access
    # ------------------------------------------------------------------

    def _check_id(self, identifier: int) -> int:
        if identifier < 0:
            raise ConfigurationError(f"{self.role} id must be non-negative: {identifier}")
        return identifier

    def __getitem__(self, identifier: int) -> np.ndarray:
        try:
            return self._slots[identifier]
        except KeyError:
            raise UnknownIdentifierError(self.role, identifier) from None

    def __setitem__(self, identifier: int, values) -> None:
        self._slots[self._check_id(identifier)] = as_components(values)

    def __contains__(self, identifier) -> bool:
        return identifier in self._slots

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._slots))

    def __len__(self) -> int:
        return len(self._slots)

    def get(self, identifier: int, default=None):
        return self._slots.get(identifier, default)

    def set(self, identifier: int, values) -> None:
        self[identifier] = values

    def value(self, identifier: int, index: int = 0) -> float:
        """Single component as a Python float."""
        return float(self[identifier][index])

    def append(self, identifier: int, value: float) -> None:
        """Add one component at the end of a slot, creating it if needed."""
        current = self.get(identifier)
        if current is None:
            self[identifier] = [value]
        else:
            self[identifier] = np.append(current, float(value))

    def clear(self) -> None:
        self._slots.clear()

    def copy(self) -> "NumericStore":
        """Deep copy of every slot; the name registry is shared."""
        other = NumericStore(self.role, self.names)
        for identifier in self._slots:
            other._slots[identifier] = self._slots[identifier].copy()
        return other

    def to_dict(self) -> dict:
        return {identifier: self._slots[identifier].tolist() for identifier in self}

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def set_name(self, identifier: int, name: str) -> None:
        self.names.set_name(identifier, name)

    def name_of(self, identifier: int) -> Optional[str]:
        return self.names.name_of(identifier)

    def id_of(self, name: str) -> Optional[int]:
        return self.names.id_of(name)

    def by_name(self, name: str) -> np.ndarray:
        return self[self.names.require_id(name)]

    def __repr__(self) -> str:
        body = ", ".join(f"{self.names.label(i)}={self[i].tolist()}" for i in self)
        return f"{type(self).__name__}({self.role}: {body})"


class DenseNumericStore(NumericStore):
    """Fixed-capacity store: ids must be below ``capacity``.

    Slots are preallocated; a slot still counts as unknown until written.
    """

    def __init__(self, capacity: int, role: str = "state", names: Optional[NameRegistry] = None):
        if capacity < 0:
            raise ConfigurationError(f"{role} capacity must be non-negative: {capacity}")
        super().__init__(role, names)
        self.capacity = capacity
        self._dense: List[Optional[np.ndarray]] = [None] * capacity

    def _check_id(self, identifier: int) -> int:
        if not 0 <= identifier < self.capacity:
            raise ConfigurationError(
                f"{self.role} id {identifier} outside declared range [0, {self.capacity})"
            )
        return identifier

    def __getitem__(self, identifier: int) -> np.ndarray:
        if 0 <= identifier < self.capacity:
            slot = self._dense[identifier]
            if slot is not None:
                return slot
        raise UnknownIdentifierError(self.role, identifier)

    def __setitem__(self, identifier: int, values) -> None:
        self._dense[self._check_id(identifier)] = as_components(values)

    def __contains__(self, identifier) -> bool:
        return (
            isinstance(identifier, (int, np.integer))
            and 0 <= identifier < self.capacity
            and self._dense[identifier] is not None
        )

    def __iter__(self) -> Iterator[int]:
        return (i for i, slot in enumerate(self._dense) if slot is not None)

    def __len__(self) -> int:
        return sum(1 for slot in self._dense if slot is not None)

    def get(self, identifier: int, default=None):
        if identifier in self:
            return self._dense[identifier]
        return default

    def clear(self) -> None:
        self._dense = [None] * self.capacity

    def copy(self) -> "DenseNumericStore":
        other = DenseNumericStore(self.capacity, self.role, self.names)
        other._dense = [None if slot is None else slot.copy() for slot in self._dense]
        return other

    def to_dict(self) -> dict:
        return {i: self._dense[i].tolist() for i in self}


def make_store(role: str, capacity: Optional[int] = None,
               names: Optional[NameRegistry] = None) -> NumericStore:
    """Sparse store when ``capacity`` is None, dense otherwise."""
    if capacity is None:
        return NumericStore(role, names)
    return DenseNumericStore(capacity, role, names)
