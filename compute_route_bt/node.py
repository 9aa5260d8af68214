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
Base classes for behavior tree nodes.

A node declares its options, inputs and outputs with :func:`define_bt_node`
and implements the `_do_*` hooks. The public methods wrap those hooks with
state checks and data handling and return :class:`result.Result` values.
Errors are reported as `Err`, never raised.
"""

from copy import deepcopy
import abc
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Type

from result import Err, Ok, Result
from typeguard import typechecked

from compute_route_bt.exceptions import (
    BehaviorTreeException,
    NodeConfigError,
    NodeStateError,
)
from compute_route_bt.helpers import BTNodeState
from compute_route_bt.node_config import NodeConfig
from compute_route_bt.node_data import NodeData, NodeDataMap


def define_bt_node(node_config: NodeConfig) -> Callable[[Type["Node"]], Type["Node"]]:
    """
    Class decorator attaching `node_config` to a :class:`Node` subclass.

    The config is merged with the configs of the base classes. Concrete
    classes are added to :attr:`Node.node_classes`, keyed by module and
    class name. Abstract ones only get the config.
    """

    def inner_dec(node_class: Type[Node]) -> Type[Node]:
        for base in node_class.__bases__:
            if hasattr(base, "_node_config") and base._node_config:
                config_extend_result = node_config.extend(base._node_config)
                if config_extend_result.is_err():
                    logging.getLogger(node_class.__name__).error(
                        f"Node config could not be extended: {config_extend_result.unwrap_err()}"
                    )
        node_class._node_config = node_config

        if inspect.isabstract(node_class):
            logging.getLogger(node_class.__name__).debug(
                f"Not registering {node_class.__name__}, it is missing "
                f"{', '.join(sorted(node_class.__abstractmethods__))}"
            )
            return node_class

        module_classes = Node.node_classes.setdefault(node_class.__module__, {})
        if node_class not in module_classes.setdefault(node_class.__name__, []):
            module_classes[node_class.__name__].append(node_class)
        return node_class

    return inner_dec


class Node(object, metaclass=abc.ABCMeta):
    """
    Base class of all behavior tree nodes.

    Lifecycle: construct (pure data container), :meth:`setup` once,
    :meth:`tick` repeatedly, :meth:`untick` when the surrounding tree
    halts the branch, :meth:`reset` to start over and :meth:`shutdown`
    before the node is dropped.

    Nodes talking to remote services return `RUNNING` until the remote side
    answers, and must stop whatever they are waiting for on :meth:`untick`.
    """

    node_classes: Dict[str, Dict[str, List[Type["Node"]]]] = {}
    _node_config: Optional[NodeConfig] = None
    _state: str

    def __init__(
        self,
        options: Optional[Dict] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Register the declared options, inputs and outputs.

        :param options: Values for the declared options. Every option that
          is not listed in `optional_options` must be given.
        :param name: Node name, also used as logger name. Defaults to the
          class name.

        :raises: NodeConfigError for missing, extra or mistyped options.
        """
        self.name = name if name is not None else type(self).__name__
        self._state = BTNodeState.UNINITIALIZED

        if not self._node_config:
            raise NodeConfigError("Missing node_config, cannot initialize!")

        # Instances must not share the class config
        self.node_config = deepcopy(self._node_config)

        self.options = NodeDataMap(name="options")
        register_result = self._register_node_data(
            source_map=self.node_config.options,
            target_map=self.options,
            values=options,
        )
        if register_result.is_err():
            raise register_result.unwrap_err()

        unset_option_keys = [
            key
            for key in self.options
            if (options is None or key not in options)
            and key not in self.node_config.optional_options
        ]
        if unset_option_keys:
            raise NodeConfigError(f"Missing options: {str(unset_option_keys)}")

        if options is not None:
            extra_option_keys = [key for key in options if key not in self.options]
            if extra_option_keys:
                raise NodeConfigError(f"Extra options: {str(extra_option_keys)}")

        self.inputs = NodeDataMap(name="inputs")
        register_result = self._register_node_data(
            source_map=self.node_config.inputs, target_map=self.inputs
        )
        if register_result.is_err():
            raise register_result.unwrap_err()

        self.outputs = NodeDataMap(name="outputs")
        register_result = self._register_node_data(
            source_map=self.node_config.outputs, target_map=self.outputs
        )
        if register_result.is_err():
            raise register_result.unwrap_err()

    @property
    def state(self) -> str:
        return self._state

    @state.setter
    @typechecked
    def state(self, new_state: BTNodeState):
        if new_state != self._state:
            self.logdebug(f"Setting state from {self._state} to {new_state}")
        self._state = new_state

    def setup(self) -> Result[str, BehaviorTreeException]:
        """
        Run :meth:`_do_setup`, leaving the node IDLE or BROKEN.

        Only allowed for fresh nodes and nodes that were shut down.
        """
        if self.state not in (BTNodeState.UNINITIALIZED, BTNodeState.SHUTDOWN):
            return Err(
                NodeStateError(
                    "Calling setup() is only allowed in states "
                    f"{BTNodeState.UNINITIALIZED} and {BTNodeState.SHUTDOWN}, "
                    f"but node {self.name} is in state {self.state}"
                )
            )
        setup_result = self._do_setup()
        if setup_result.is_err():
            self.state = BTNodeState.BROKEN
        else:
            self.state = setup_result.unwrap()

        return setup_result

    @abc.abstractmethod
    def _do_setup(self) -> Result[str, BehaviorTreeException]:
        """Acquire resources (clients, connections). Options are already set."""
        msg = f"Trying to setup a node of type {self.__class__.__name__} without _do_setup function!"
        self.logerr(msg)
        return Err(BehaviorTreeException(msg))

    def _handle_inputs(self) -> Result[None, str]:
        for input_name in self.inputs:
            if (
                self.inputs[input_name] is None
                and input_name not in self.node_config.optional_options
            ):
                return Err(
                    f"Trying to tick a node ({self.name}) with an unset input ({input_name})!"
                )
        return Ok(self.inputs.handle_subscriptions())

    def _handle_outputs(self) -> None:
        """Notify output subscribers of every output written since the last reset."""
        self.outputs.handle_subscriptions()

    def tick(self) -> Result[str, BehaviorTreeException]:
        """
        Run one step of the node.

        Checks the inputs, calls :meth:`_do_tick` and passes updated outputs
        on to their subscribers.

        :returns: `RUNNING`, `SUCCEEDED` or `FAILED`.
        """
        if self.state in (BTNodeState.UNINITIALIZED, BTNodeState.SHUTDOWN):
            return Err(
                NodeStateError(f"Trying to tick node {self.name} in state {self.state}!")
            )

        # Only outputs written during this tick count as updated
        self.outputs.reset_updated()

        handle_input_result = self._handle_inputs()
        if handle_input_result.is_err():
            self.state = BTNodeState.BROKEN
            return Err(BehaviorTreeException(handle_input_result.unwrap_err()))

        tick_result = self._do_tick()
        if tick_result.is_ok():
            self.state = tick_result.unwrap()
        else:
            self.state = BTNodeState.BROKEN
            return tick_result

        self.inputs.reset_updated()

        valid_state_result = self.check_if_in_invalid_state(
            allowed_states=[
                BTNodeState.RUNNING,
                BTNodeState.SUCCEEDED,
                BTNodeState.FAILED,
            ],
            action_name="tick()",
        )
        if valid_state_result.is_err():
            return Err(valid_state_result.unwrap_err())

        self._handle_outputs()

        return Ok(self.state)

    def check_if_in_invalid_state(
        self, allowed_states: List[str], action_name: str
    ) -> Result[None, NodeStateError]:
        if self.state not in allowed_states:
            return Err(
                NodeStateError(
                    f"Node {self.name} ({type(self).__name__}) was in invalid state "
                    f"'{self.state}' after action {action_name}. "
                    f"Allowed states: {str(allowed_states)}"
                )
            )
        return Ok(None)

    @abc.abstractmethod
    def _do_tick(self) -> Result[str, BehaviorTreeException]:
        """Do one step of work. Must never block."""
        msg = f"Ticking a node of type {self.__class__.__name__} without _do_tick function!"
        self.logerr(msg)
        return Err(BehaviorTreeException(msg))

    def untick(self) -> Result[str, BehaviorTreeException]:
        """
        Halt the node because the surrounding tree aborted its branch.

        Afterwards the node is IDLE (or PAUSED) and the next :meth:`tick`
        starts a new run.
        """
        if self.state in (BTNodeState.UNINITIALIZED, BTNodeState.SHUTDOWN):
            return Err(
                NodeStateError(f"Trying to untick node {self.name} in state {self.state}!")
            )
        untick_result = self._do_untick()
        if untick_result.is_ok():
            self.state = untick_result.unwrap()
        else:
            self.state = BTNodeState.BROKEN
            return untick_result

        check_state_result = self.check_if_in_invalid_state(
            allowed_states=[BTNodeState.IDLE, BTNodeState.PAUSED],
            action_name="untick()",
        )
        if check_state_result.is_err():
            return Err(check_state_result.unwrap_err())

        self._handle_outputs()
        self.outputs.reset_updated()
        return Ok(self.state)

    @abc.abstractmethod
    def _do_untick(self) -> Result[str, BehaviorTreeException]:
        """Stop background work (cancel remote goals) and return IDLE or PAUSED."""
        msg = f"Unticking a node of type {self.__class__.__name__} without _do_untick function!"
        self.logerr(msg)
        return Err(BehaviorTreeException(msg))

    def reset(self) -> Result[str, BehaviorTreeException]:
        """
        Bring the node back to the state right after :meth:`setup`.

        Outputs are cleared to `None` first, :meth:`_do_reset` may write
        better defaults.
        """
        if self.state == BTNodeState.UNINITIALIZED:
            return Err(NodeStateError("Trying to reset uninitialized node!"))

        if self.state == BTNodeState.SHUTDOWN:
            return Err(NodeStateError("Trying to reset shutdown node!"))

        self.inputs.reset_updated()
        for output_key in self.outputs:
            self.outputs[output_key] = None
        self.outputs.reset_updated()

        reset_result = self._do_reset()
        if reset_result.is_ok():
            self.state = reset_result.unwrap()
        else:
            self.state = BTNodeState.BROKEN
            return reset_result

        valid_state_result = self.check_if_in_invalid_state(
            allowed_states=[BTNodeState.IDLE], action_name="reset()"
        )
        if valid_state_result.is_err():
            return Err(valid_state_result.unwrap_err())

        self._handle_outputs()
        self.outputs.reset_updated()
        return Ok(self.state)

    @abc.abstractmethod
    def _do_reset(self) -> Result[str, BehaviorTreeException]:
        """Stop background work, restore defaults and return IDLE."""
        msg = f"Resetting a node of type {self.__class__.__name__} without _do_reset function!"
        self.logerr(msg)
        return Err(BehaviorTreeException(msg))

    def shutdown(self) -> Result[str, BehaviorTreeException]:
        """
        Release the node's resources.

        Nodes that were never set up go straight to SHUTDOWN without
        calling :meth:`_do_shutdown`.
        """
        if self.state in (BTNodeState.UNINITIALIZED, BTNodeState.SHUTDOWN):
            self.loginfo("Not calling shutdown method, node has not been initialized yet")
            self.state = BTNodeState.SHUTDOWN
            return Ok(self.state)

        shutdown_result = self._do_shutdown()
        if shutdown_result.is_ok():
            self.state = shutdown_result.unwrap()
        else:
            self.state = BTNodeState.BROKEN
        return shutdown_result

    @abc.abstractmethod
    def _do_shutdown(self) -> Result[str, BehaviorTreeException]:
        """Release clients and threads, return SHUTDOWN."""
        msg = f"Shutting down a node of type {self.__class__.__name__} without _do_shutdown function!"
        self.logerr(msg)
        return Err(BehaviorTreeException(msg))

    def _register_node_data(
        self,
        source_map: Dict[str, type],
        target_map: NodeDataMap,
        values: Optional[Dict[str, Any]] = None,
    ) -> Result[None, NodeConfigError]:
        """Add a :class:`NodeData` for every key of `source_map`, set from `values` if given."""
        for key, data_type in source_map.items():
            add_result = target_map.add(key, NodeData(data_type=data_type))
            if add_result.is_err():
                return Err(
                    NodeConfigError(f"Duplicate {target_map.name} data name: {key}")
                )
            if values is not None and key in values:
                try:
                    target_map[key] = values[key]
                except TypeError as e:
                    return Err(
                        NodeConfigError(f"Invalid value for {target_map.name} {key}: {e}")
                    )
        return Ok(None)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"options={({key: self.options[key] for key in self.options})}, "
            f"name={self.name}), "
            f"state: {self.state}, "
            f"inputs: {self.inputs}, "
            f"outputs: {self.outputs}"
        )

    # One logger per node name, so log output can be traced to the node

    @typechecked
    def logdebug(self, message: str) -> None:
        logging.getLogger(self.name).debug(message)

    @typechecked
    def loginfo(self, message: str) -> None:
        logging.getLogger(self.name).info(message)

    @typechecked
    def logwarn(self, message: str) -> None:
        logging.getLogger(self.name).warning(message)

    @typechecked
    def logerr(self, message: str) -> None:
        logging.getLogger(self.name).error(message)


@define_bt_node(NodeConfig(options={}, inputs={}, outputs={}, max_children=0))
class Leaf(Node):
    """Node without children."""
