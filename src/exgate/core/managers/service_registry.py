import threading
from typing import Generic, Iterator, Tuple, TypeVar

T = TypeVar('T')


class CopyOnWriteSet(Generic[T]):
    """Insertion-ordered set whose readers never block.

    Writers build a new tuple and swap it in under a lock; readers take the
    current tuple (a single reference read) and iterate it freely. A snapshot
    therefore reflects each add/remove either completely or not at all.
    Membership uses identity-or-equality, like a regular set, but elements
    need not be hashable.
    """

    def __init__(self) -> None:
        self._items: Tuple[T, ...] = ()
        self._write_lock = threading.Lock()

    def snapshot(self) -> Tuple[T, ...]:
        return self._items

    def add(self, item: T) -> bool:
        with self._write_lock:
            if item in self._items:
                return False
            self._items = self._items + (item,)
            return True

    def remove(self, item: T) -> bool:
        with self._write_lock:
            if item not in self._items:
                return False
            self._items = tuple(i for i in self._items if i is not item and i != item)
            return True

    def clear(self) -> None:
        with self._write_lock:
            self._items = ()

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items
