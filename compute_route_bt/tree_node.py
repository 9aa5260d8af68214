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
"""Module containing the main node running a ComputeRoute tree leaf."""

from typing import Any, Dict

from typeguard import typechecked
import rclpy
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup
from rclpy.executors import MultiThreadedExecutor
from rclpy.logging import get_logger
from rclpy.node import Node
from rclpy.qos import (
    QoSDurabilityPolicy,
    QoSHistoryPolicy,
    QoSProfile,
    QoSReliabilityPolicy,
)

from geometry_msgs.msg import PoseStamped as RosPoseStamped
from nav_msgs.msg import Path as RosPath

from compute_route_bt.blackboard import Blackboard, BlackboardBinding
from compute_route_bt.helpers import BTNodeState
from compute_route_bt.messages import Path
from compute_route_bt.nodes.compute_route import ComputeRouteAction
from compute_route_bt.parameters import Params, load_declaration, load_parameters
from compute_route_bt.ros_action_client import (
    RosActionClient,
    pose_stamped_from_ros,
    pose_stamped_to_ros,
)


def path_to_ros(path: Path) -> RosPath:
    msg = RosPath()
    msg.header.stamp.sec = path.header.stamp.sec
    msg.header.stamp.nanosec = path.header.stamp.nanosec
    msg.header.frame_id = path.header.frame_id
    msg.poses = [pose_stamped_to_ros(pose) for pose in path.poses]
    return msg


class ComputeRouteTreeNode(Node):
    """
    ROS node ticking a :class:`ComputeRouteAction` whenever a goal arrives.

    Goals received on `~/goal_pose` are written to the blackboard, the
    leaf is ticked at `tick_frequency_hz` until it finishes, and the
    resulting path is published on `~/route`.
    """

    @typechecked
    def load_params(self) -> Params:
        overrides: Dict[str, Any] = {}
        for name, declaration in load_declaration().items():
            self.declare_parameter(name, declaration.get("default_value"))
            overrides[name] = self.get_parameter(name).value
        return load_parameters(overrides=overrides, node_name=self.get_name())

    @typechecked
    def init_tree(self, params: Params) -> bool:
        self.params = params
        self.blackboard = Blackboard()
        self.action_client = RosActionClient(self, params.action_name)
        self.compute_route = ComputeRouteAction(
            options={
                "action_name": params.action_name,
                "wait_for_action_server_seconds": params.wait_for_action_server_seconds,
                "fail_if_not_available": params.fail_if_not_available,
            },
            name="ComputeRoute",
            action_client=self.action_client,
        )
        self.binding = BlackboardBinding(
            self.compute_route,
            self.blackboard,
            {"goal": "{goal}", "start": "{start}", "path": "{path}"},
        )
        setup_result = self.compute_route.setup()
        if setup_result.is_err():
            self.get_logger().error(
                f"Failed to set up ComputeRoute: {setup_result.unwrap_err()}"
            )
            return False
        return True

    def init_ros_interface(self) -> None:
        # Goal updates and ticks must not interleave
        self.callback_group = MutuallyExclusiveCallbackGroup()
        self.route_pub = self.create_publisher(
            RosPath,
            "~/route",
            callback_group=self.callback_group,
            qos_profile=QoSProfile(
                reliability=QoSReliabilityPolicy.RELIABLE,
                durability=QoSDurabilityPolicy.TRANSIENT_LOCAL,
                history=QoSHistoryPolicy.KEEP_LAST,
                depth=1,
            ),
        )
        self.goal_sub = self.create_subscription(
            RosPoseStamped,
            "~/goal_pose",
            self.goal_callback,
            10,
            callback_group=self.callback_group,
        )
        self.ticks = 0
        self.active = False
        self.tick_timer = self.create_timer(
            self.params.loop_duration,
            self.tick_callback,
            callback_group=self.callback_group,
        )

    def goal_callback(self, msg: RosPoseStamped) -> None:
        self.blackboard.set("goal", pose_stamped_from_ros(msg))
        # A new goal replaces the one being worked on
        if self.active:
            self.compute_route.untick()
        self.ticks = 0
        self.active = True

    def tick_callback(self) -> None:
        if not self.active:
            return
        tick_result = self.binding.tick()
        self.ticks += 1
        if tick_result.is_err():
            self.get_logger().error(f"Ticking ComputeRoute failed: {tick_result.unwrap_err()}")
            self.active = False
            return

        state = tick_result.unwrap()
        if state in (BTNodeState.SUCCEEDED, BTNodeState.FAILED):
            self.get_logger().info(f"ComputeRoute finished with {state}")
            self.route_pub.publish(path_to_ros(self.blackboard.get("path", Path())))
            self.binding.untick()
            self.active = False
        elif self.ticks >= self.params.max_ticks:
            self.get_logger().warn(
                f"No route after {self.ticks} ticks, cancelling the request"
            )
            self.binding.untick()
            self.active = False

    @typechecked
    def shutdown(self) -> None:
        """Shut down the tree node in a safe way."""
        shutdown_result = self.compute_route.shutdown()
        if shutdown_result.is_err():
            self.get_logger().error(
                f"Failed to shut down ComputeRoute: {shutdown_result.unwrap_err()}"
            )
        self.action_client.destroy()


def main(argv=None):
    rclpy.init(args=argv)
    tree_node = ComputeRouteTreeNode(node_name="compute_route_tree_node")
    params = tree_node.load_params()
    if not tree_node.init_tree(params=params):
        tree_node.destroy_node()
        rclpy.try_shutdown()
        return
    tree_node.init_ros_interface()

    executor = MultiThreadedExecutor(num_threads=3)
    executor.add_node(tree_node)
    try:
        executor.spin()
    except KeyboardInterrupt:
        get_logger("compute_route_tree_node").fatal("Shutting down rclpy!")
    finally:
        tree_node.shutdown()
        tree_node.destroy_node()
        rclpy.try_shutdown()


if __name__ == "__main__":
    import sys

    main(sys.argv)
