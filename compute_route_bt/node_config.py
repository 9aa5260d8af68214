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
from typing import Dict, List, Optional

from result import Result, Ok, Err


class NodeConfig(object):
    """Describes the interface of a node: its options, inputs and outputs."""

    def __init__(
        self,
        options: Dict[str, type],
        inputs: Dict[str, type],
        outputs: Dict[str, type],
        max_children: Optional[int],
        optional_options: Optional[List[str]] = None,
        version: str = "",
    ):
        """
        Describe the interface of a :class:`compute_route_bt.node.Node`.

        :param options: Map from option names to their types. Options are
          set once, when the node is created.
        :param inputs: Map from input names to their types. Inputs may
          change on every tick.
        :param outputs: Map from output names to their types.
        :param max_children: Maximum number of children, `None` for unlimited.
        :param optional_options: Option *and input* keys that may stay unset.
        """
        self.inputs = inputs
        self.outputs = outputs
        self.options = options
        self.max_children = max_children
        self.optional_options = [] if optional_options is None else optional_options
        self.version = version

    def __repr__(self) -> str:
        return (
            f"NodeConfig(inputs={self.inputs!r}, outputs={self.outputs!r}, "
            f"options={self.options!r}, max_children={self.max_children!r}, "
            f"optional_options={self.optional_options!r}, version={self.version!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeConfig):
            return False
        return (
            self.options == other.options
            and self.inputs == other.inputs
            and self.outputs == other.outputs
            and self.max_children == other.max_children
            and self.optional_options == other.optional_options
            and self.version == other.version
        )

    def __ne__(self, other: object) -> bool:
        return not self == other

    def extend(self, other: "NodeConfig") -> Result[None, KeyError]:
        """
        Extend the input, output and option dicts with values from `other`.

        :returns: KeyError if any of the keys in `other` already exist with
          a different type.
        """
        conflicts = [
            key
            for own, theirs in (
                (self.inputs, other.inputs),
                (self.outputs, other.outputs),
                (self.options, other.options),
            )
            for key in theirs
            if key in own and own[key] != theirs[key]
        ]
        if conflicts:
            return Err(KeyError(f"Conflicting types for keys: {conflicts}"))

        self.inputs.update(other.inputs)
        self.outputs.update(other.outputs)
        self.options.update(other.options)
        self.optional_options.extend(
            key for key in other.optional_options if key not in self.optional_options
        )
        return Ok(None)
