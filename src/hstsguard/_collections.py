"""
Collections for hstsguard.

This module provides specialized container datatypes.
"""

from __future__ import annotations

import collections
import threading
import typing
from collections.abc import Mapping, MutableMapping


class RecentlyUsedContainer(typing.MutableMapping[typing.Any, typing.Any]):
    """
    Provides a thread-safe dict-like container which maintains up to
    ``maxsize`` keys while throwing away the least-recently-used keys beyond
    ``maxsize``.

    :param maxsize:
        Maximum number of recent elements to retain.

    :param dispose_func:
        Every time an item is evicted from the container,
        ``dispose_func(value)`` is called.
    """

    ContainerCls = collections.OrderedDict

    def __init__(self, maxsize: int = 10, dispose_func: typing.Callable[[typing.Any], None] | None = None):
        self._maxsize = maxsize
        self.dispose_func = dispose_func
        self._container = self.ContainerCls()
        self.lock = threading.RLock()

    def __getitem__(self, key: typing.Any) -> typing.Any:
        # Re-insert the item, moving it to the end of the eviction line.
        with self.lock:
            item = self._container.pop(key)
            self._container[key] = item
            return item

    def __setitem__(self, key: typing.Any, value: typing.Any) -> None:
        evicted = []
        with self.lock:
            try:
                evicted.append(self._container.pop(key))
            except KeyError:
                pass

            while self._maxsize > 0 and len(self._container) >= self._maxsize:
                _key, evicted_value = self._container.popitem(last=False)
                evicted.append(evicted_value)

            self._container[key] = value

        if self.dispose_func:
            for evicted_value in evicted:
                if evicted_value is not value:
                    self.dispose_func(evicted_value)

    def __delitem__(self, key: typing.Any) -> None:
        with self.lock:
            value = self._container.pop(key)

        if self.dispose_func:
            self.dispose_func(value)

    def __len__(self) -> int:
        with self.lock:
            return len(self._container)

    def __iter__(self) -> typing.Iterator[typing.Any]:
        raise NotImplementedError("Iteration over this class is unlikely to be threadsafe.")

    def clear(self) -> None:
        with self.lock:
            values = list(self._container.values())
            self._container.clear()

        if self.dispose_func:
            for value in values:
                self.dispose_func(value)

    def keys(self):
        with self.lock:
            return set(self._container.keys())


class HTTPHeaderDict(MutableMapping[str, str]):
    """
    A case-insensitive mapping of HTTP headers.

    Lookups ignore case while the original case of the first occurrence of
    each field name is preserved. Repeated fields are kept apart and read
    back as one comma-separated value, as RFC 7230 section 3.2.2 allows;
    :meth:`getlist` returns them one by one.
    """

    def __init__(self, headers=None, **kwargs):
        """
        Initialize a new HTTPHeaderDict.

        :param headers: Initial headers to add
        :param kwargs: Additional headers to add
        """
        self._container: dict[str, list[str]] = {}
        if headers is not None:
            if isinstance(headers, HTTPHeaderDict):
                self._container = {key: list(vals) for key, vals in headers._container.items()}
            else:
                self.extend(headers)
        if kwargs:
            self.extend(kwargs)

    def __getitem__(self, key):
        return ", ".join(self._container[key.lower()][1:])

    def __setitem__(self, key, value):
        if isinstance(key, bytes):
            key = key.decode("ascii")
        self._container[key.lower()] = [key, value]

    def __delitem__(self, key):
        del self._container[key.lower()]

    def __iter__(self):
        return (vals[0] for vals in self._container.values())

    def __len__(self):
        return len(self._container)

    def __eq__(self, other):
        if not isinstance(other, Mapping):
            return False
        if not isinstance(other, HTTPHeaderDict):
            other = HTTPHeaderDict(other)
        return dict(self.lower_items()) == dict(other.lower_items())

    def __repr__(self):
        return f"{type(self).__name__}({dict(self.items())})"

    def __contains__(self, key):
        if not isinstance(key, str):
            return False
        return key.lower() in self._container

    def copy(self):
        """Return a copy of this HTTPHeaderDict."""
        return HTTPHeaderDict(self)

    def add(self, key, value):
        """
        Add a header, preserving existing headers with the same name.

        :param key: The header name
        :param value: The header value
        """
        if isinstance(key, bytes):
            key = key.decode("ascii")

        key_lower = key.lower()
        if key_lower in self._container:
            self._container[key_lower].append(value)
        else:
            self._container[key_lower] = [key, value]

    def extend(self, headers=None, **kwargs):
        """
        Add headers from another source.

        :param headers: A mapping or an iterable of ``(name, value)`` pairs
        :param kwargs: Additional headers to add
        """
        if headers is not None:
            if isinstance(headers, HTTPHeaderDict):
                for key, value in headers.iteritems():
                    self.add(key, value)
            elif isinstance(headers, Mapping):
                for key, value in headers.items():
                    self.add(key, value)
            else:
                for key, value in headers:
                    self.add(key, value)
        for key, value in kwargs.items():
            self.add(key, value)

    def getlist(self, key):
        """
        Get all values for a header as a list, one per field received.

        :param key: The header name
        :return: List of values for the header, empty if it is absent
        """
        vals = self._container.get(key.lower())
        if vals is None:
            return []
        return vals[1:]

    def iteritems(self):
        """Iterate over all header fields, repeated names included."""
        for vals in self._container.values():
            for value in vals[1:]:
                yield vals[0], value

    def lower_items(self):
        """Get all headers as lowercase key-value pairs."""
        return ((key.lower(), value) for key, value in self.items())

    def discard(self, key):
        """
        Discard a header, if present.

        :param key: The header name
        """
        try:
            del self[key]
        except KeyError:
            pass
