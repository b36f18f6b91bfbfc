from __future__ import annotations

from array import array
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

# array typecode holding unsigned 32-bit integers on this platform
U32 = "I" if array("I").itemsize == 4 else "L"


class CallGraph:
    """Name -> ordered edge list. Missing key and empty list mean the same thing."""

    def get(self, name: str) -> Optional[Sequence[str]]:
        raise NotImplementedError

    def keys(self) -> Iterator[str]:
        raise NotImplementedError

    def __len__(self) -> int:
        raise NotImplementedError

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(self.get(name))

    def __getitem__(self, name: str) -> Sequence[str]:
        edges = self.get(name)
        if edges is None:
            raise KeyError(name)
        return edges

    def __iter__(self) -> Iterator[str]:
        return self.keys()

    def items(self) -> Iterator[Tuple[str, Sequence[str]]]:
        for key in self.keys():
            yield key, self[key]

    def edge_count(self) -> int:
        return sum(len(edges) for _, edges in self.items())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallGraph):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> Dict[str, List[str]]:
        return {key: list(edges) for key, edges in self.items()}


class GraphBuilder(CallGraph):
    """Growable graph owned by the build pipeline."""

    def __init__(self) -> None:
        self._edges: Dict[str, List[str]] = {}

    def add(self, key: str, target: str) -> None:
        self._edges.setdefault(key, []).append(target)

    def get(self, name: str) -> Optional[Sequence[str]]:
        return self._edges.get(name)

    def keys(self) -> Iterator[str]:
        return iter(self._edges)

    def __len__(self) -> int:
        return len(self._edges)


class NameTable:
    """Procedure names stored as one utf-8 blob plus offsets, decoded on demand."""

    def __init__(self, blob: bytes, offsets: array) -> None:
        self._blob = blob
        self._offsets = offsets
        self._decoded: List[Optional[str]] = [None] * (len(offsets) - 1)

    def __len__(self) -> int:
        return len(self._decoded)

    def __getitem__(self, index: int) -> str:
        name = self._decoded[index]
        if name is None:
            raw = self._blob[self._offsets[index] : self._offsets[index + 1]]
            name = raw.decode("utf-8")
            self._decoded[index] = name
        return name


class FrozenGraph(CallGraph):
    """Read-only graph over flat id arrays: targets[starts[i]:starts[i + 1]] belong to key_ids[i]."""

    def __init__(self, names: NameTable, key_ids: array, starts: array, targets: array) -> None:
        self._names = names
        self._key_ids = key_ids
        self._starts = starts
        self._targets = targets
        self._slots: Dict[str, int] = {names[key_id]: slot for slot, key_id in enumerate(key_ids)}

    def get(self, name: str) -> Optional[Sequence[str]]:
        slot = self._slots.get(name)
        if slot is None:
            return None
        names = self._names
        begin, end = self._starts[slot], self._starts[slot + 1]
        return tuple(names[target] for target in self._targets[begin:end])

    def keys(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def edge_count(self) -> int:
        return len(self._targets)


@dataclass
class CallIndex:
    calls: CallGraph
    callers: CallGraph
    declared: Sequence[str] = ()
    _declared_set: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.declared = tuple(self.declared)
        self._declared_set = frozenset(self.declared)

    def is_declared(self, name: str) -> bool:
        return name in self._declared_set

    def as_dict(self) -> Dict[str, object]:
        return {
            "calls": self.calls.to_dict(),
            "callers": self.callers.to_dict(),
            "declared": list(self.declared),
        }
