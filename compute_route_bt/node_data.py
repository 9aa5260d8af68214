# Copyright 2026 FZI Forschungszentrum Informatik
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#    * Redistributions of source code must retain the above copyright
#      notice, this list of conditions and the following disclaimer.
#
#    * Redistributions in binary form must reproduce the above copyright
#      notice, this list of conditions and the following disclaimer in the
#      documentation and/or other materials provided with the distribution.
#
#    * Neither the name of the FZI Forschungszentrum Informatik nor the names of its
#      contributors may be used to endorse or promote products derived from
#      this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""Typed, update-tracking containers for node options, inputs and outputs."""
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from result import Result, Ok, Err
from typeguard import typechecked


class NodeData(object):
    """
    Represent a piece of data (input, output or option) held by a Node.

    Each `NodeData` object is typed and will refuse any values that
    aren't instances of its type. An `updated` flag records whether the
    value was written since the last call to :meth:`reset_updated`.
    """

    def __init__(self, data_type: type, initial_value: Any = None):
        self.data_type = data_type
        self.updated = False
        self._value: Any = None
        if initial_value is not None:
            self.set(initial_value)

    def __repr__(self) -> str:
        return f"{self._value!r} ({self.data_type.__name__}) [{'#' if self.updated else ' '}]"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeData):
            return False
        return (
            self.data_type == other.data_type
            and self._value == other._value
            and self.updated == other.updated
        )

    def __ne__(self, other: object) -> bool:
        return not self == other

    def takes(self, value: Any) -> bool:
        """Check whether `value` can be assigned to this NodeData."""
        if value is None:
            return True
        if self.data_type is float and isinstance(value, int):
            return not isinstance(value, bool)
        return isinstance(value, self.data_type)

    def set(self, new_value: Any) -> None:
        """
        Set a new value.

        :raises: TypeError if `new_value` has the wrong type.
        """
        if not self.takes(new_value):
            raise TypeError(
                f"Expected data to be of type {self.data_type.__name__}, "
                f"got {type(new_value).__name__} instead"
            )
        if self.data_type is float and isinstance(new_value, int):
            new_value = float(new_value)
        self._value = new_value
        self.updated = True

    def get(self) -> Any:
        return self._value

    def reset_updated(self) -> None:
        self.updated = False


class NodeDataMap(object):
    """
    Custom container class that hides :meth:`NodeData.get` and :meth:`NodeData.set`.

    Subscribers registered with :meth:`subscribe` are called with the new
    value of a key by :meth:`handle_subscriptions`, but only for keys
    that were updated since the last :meth:`reset_updated`.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._map: Dict[str, NodeData] = {}
        self.callbacks: Dict[str, List[Tuple[Callable[[Any], None], str]]] = {}

    @typechecked
    def add(self, key: str, value: NodeData) -> Result[None, KeyError]:
        if key in self._map:
            return Err(KeyError(f"Key {key} is already taken!"))
        self._map[key] = value
        return Ok(None)

    def subscribe(
        self, key: str, callback: Callable[[Any], None], subscriber_name: str = ""
    ) -> Result[None, KeyError]:
        """Subscribe to changes in the value at `key`."""
        if key not in self._map:
            return Err(KeyError(f"{key} is not a key of {self.name}"))
        subscribers = self.callbacks.setdefault(key, [])
        if (callback, subscriber_name) not in subscribers:
            subscribers.append((callback, subscriber_name))
        return Ok(None)

    def unsubscribe(
        self, key: str, callback: Optional[Callable[[Any], None]] = None
    ) -> Result[None, KeyError]:
        """Remove `callback` from the subscribers of `key`, or all of them."""
        if key not in self._map:
            return Err(KeyError(f"{key} is not a key of {self.name}"))
        if key in self.callbacks:
            if callback is None:
                del self.callbacks[key]
            else:
                self.callbacks[key] = [
                    entry for entry in self.callbacks[key] if entry[0] != callback
                ]
        return Ok(None)

    def handle_subscriptions(self) -> None:
        """Execute the callbacks of all updated keys."""
        for key, subscribers in self.callbacks.items():
            if key in self._map and self._map[key].updated:
                for callback, _ in subscribers:
                    callback(self._map[key].get())

    def is_updated(self, key: str) -> bool:
        return self._map[key].updated

    def reset_updated(self) -> None:
        for data in self._map.values():
            data.reset_updated()

    def get_type(self, key: str) -> type:
        return self._map[key].data_type

    def __len__(self) -> int:
        return len(self._map)

    def __getitem__(self, key: str) -> Any:
        if key not in self._map:
            raise KeyError(f"No member named {key} in {self.name}")
        return self._map[key].get()

    def __setitem__(self, key: str, value: Any) -> None:
        if key not in self._map:
            raise KeyError(f"No member named {key} in {self.name}")
        self._map[key].set(value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._map)

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeDataMap):
            return False
        return self.name == other.name and self._map == other._map

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __repr__(self) -> str:
        return f"NodeDataMap(name={self.name!r}), data:{self._map!r}"
