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
"""
Shared key/value store and the binding of node ports to it.

Nodes never look at the blackboard themselves. A :class:`BlackboardBinding`
copies the remapped entries into the node's inputs before each tick, and
writes updated outputs back through output subscriptions.
"""
from functools import partial
import re
from threading import Lock
from typing import Any, Dict, List, Optional

from result import Err, Ok, Result

from compute_route_bt.exceptions import BehaviorTreeException, NodeConfigError
from compute_route_bt.node import Node

_BLACKBOARD_POINTER = re.compile(r"^\{(\w+)\}$")


def parse_blackboard_pointer(value: Any) -> Optional[str]:
    """Return `key` for a port value of the form ``"{key}"``, `None` otherwise."""
    if not isinstance(value, str):
        return None
    match = _BLACKBOARD_POINTER.match(value)
    return match.group(1) if match else None


class Blackboard(object):
    """Thread-safe key/value store shared by the nodes of a tree."""

    def __init__(self):
        self._lock = Lock()
        self._data: Dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def unset(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)


class BlackboardBinding(object):
    """
    Connect the ports of one node to a blackboard.

    `remapping` maps port names to either a blackboard pointer
    (``{"goal": "{goal}"}``) or, for inputs only, a literal value. Ports
    that are not remapped stay unbound.
    """

    def __init__(self, node: Node, blackboard: Blackboard, remapping: Dict[str, Any]):
        self.node = node
        self.blackboard = blackboard
        self.remapping = dict(remapping)
        self._bound = False

    @property
    def state(self) -> str:
        return self.node.state

    def bind(self) -> Result[None, NodeConfigError]:
        for port, value in self.remapping.items():
            if port in self.node.inputs:
                continue
            if port not in self.node.outputs:
                return Err(
                    NodeConfigError(f"Node {self.node.name} has no port named {port}")
                )
            key = parse_blackboard_pointer(value)
            if key is None:
                return Err(
                    NodeConfigError(
                        f"Output port {port} must point to a blackboard entry, got {value!r}"
                    )
                )
            subscribe_result = self.node.outputs.subscribe(
                port, partial(self.blackboard.set, key), subscriber_name="blackboard"
            )
            if subscribe_result.is_err():
                return Err(NodeConfigError(str(subscribe_result.unwrap_err())))
        self._bound = True
        return Ok(None)

    def unbind(self) -> None:
        for port in self.remapping:
            if port in self.node.outputs:
                self.node.outputs.unsubscribe(port)
        self._bound = False

    def read_inputs(self) -> Result[None, BehaviorTreeException]:
        """Copy the current blackboard values into the node's input ports."""
        for port, value in self.remapping.items():
            if port not in self.node.inputs:
                continue
            key = parse_blackboard_pointer(value)
            new_value = self.blackboard.get(key) if key is not None else value
            try:
                self.node.inputs[port] = new_value
            except TypeError as exc:
                return Err(
                    BehaviorTreeException(
                        f"Blackboard value for input {port} of {self.node.name}: {exc}"
                    )
                )
        return Ok(None)

    def tick(self) -> Result[str, BehaviorTreeException]:
        if not self._bound:
            bind_result = self.bind()
            if bind_result.is_err():
                return Err(bind_result.unwrap_err())
        read_result = self.read_inputs()
        if read_result.is_err():
            return Err(read_result.unwrap_err())
        return self.node.tick()

    def untick(self) -> Result[str, BehaviorTreeException]:
        return self.node.untick()
