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
:class:`RemoteInvoker` for the ROS 2 `nav2_msgs/action/ComputeRoute` action.

Goal responses and results arrive on the executor's threads and are
posted into the goal mailboxes, so ticking never touches rclpy futures.
"""
from functools import partial
from threading import Lock
from typing import Dict, Optional
import uuid

import rclpy.node
from rclpy.action.client import ActionClient, ClientGoalHandle
from rclpy.callback_groups import ReentrantCallbackGroup
from rclpy.task import Future

from action_msgs.msg import GoalStatus as RosGoalStatus
from geometry_msgs.msg import PoseStamped as RosPoseStamped
from nav2_msgs.action import ComputeRoute as RosComputeRoute

from compute_route_bt.action_client import GoalEvent, GoalHandle, GoalStatus, RemoteInvoker
from compute_route_bt.messages import (
    ComputeRoute,
    Header,
    Path,
    Point,
    Pose,
    PoseStamped,
    Quaternion,
    Time,
)


def pose_stamped_to_ros(pose: PoseStamped) -> RosPoseStamped:
    msg = RosPoseStamped()
    msg.header.stamp.sec = pose.header.stamp.sec
    msg.header.stamp.nanosec = pose.header.stamp.nanosec
    msg.header.frame_id = pose.header.frame_id
    msg.pose.position.x = float(pose.pose.position.x)
    msg.pose.position.y = float(pose.pose.position.y)
    msg.pose.position.z = float(pose.pose.position.z)
    msg.pose.orientation.x = float(pose.pose.orientation.x)
    msg.pose.orientation.y = float(pose.pose.orientation.y)
    msg.pose.orientation.z = float(pose.pose.orientation.z)
    msg.pose.orientation.w = float(pose.pose.orientation.w)
    return msg


def header_from_ros(msg) -> Header:
    return Header(
        stamp=Time(sec=msg.stamp.sec, nanosec=msg.stamp.nanosec),
        frame_id=msg.frame_id,
    )


def pose_stamped_from_ros(msg: RosPoseStamped) -> PoseStamped:
    position = msg.pose.position
    orientation = msg.pose.orientation
    return PoseStamped(
        header=header_from_ros(msg.header),
        pose=Pose(
            position=Point(x=position.x, y=position.y, z=position.z),
            orientation=Quaternion(
                x=orientation.x, y=orientation.y, z=orientation.z, w=orientation.w
            ),
        ),
    )


def goal_to_ros(goal: ComputeRoute.Goal) -> RosComputeRoute.Goal:
    msg = RosComputeRoute.Goal()
    msg.start_id = goal.start_id
    msg.goal_id = goal.goal_id
    msg.start = pose_stamped_to_ros(goal.start)
    msg.goal = pose_stamped_to_ros(goal.goal)
    msg.use_start = goal.use_start
    msg.use_poses = goal.use_poses
    return msg


def result_from_ros(msg: Optional[RosComputeRoute.Result]) -> Optional[ComputeRoute.Result]:
    if msg is None:
        return None
    return ComputeRoute.Result(
        path=Path(
            header=header_from_ros(msg.path.header),
            poses=[pose_stamped_from_ros(pose) for pose in msg.path.poses],
        ),
        planning_time=msg.planning_time.sec + msg.planning_time.nanosec / 1e9,
        error_code=msg.error_code,
    )


_STATUS_FROM_ROS = {
    RosGoalStatus.STATUS_SUCCEEDED: GoalStatus.SUCCEEDED,
    RosGoalStatus.STATUS_CANCELED: GoalStatus.CANCELED,
    RosGoalStatus.STATUS_ABORTED: GoalStatus.ABORTED,
}


class RosActionClient(RemoteInvoker):
    """Send route goals to a ROS 2 action server through an rclpy `ActionClient`."""

    def __init__(self, ros_node: rclpy.node.Node, action_name: str = "compute_route"):
        super().__init__(action_name)
        self.logger = ros_node.get_logger().get_child(action_name)
        self._goal_handles_lock = Lock()
        self._goal_handles: Dict[uuid.UUID, ClientGoalHandle] = {}
        self._ac = ActionClient(
            node=ros_node,
            action_type=RosComputeRoute,
            action_name=action_name,
            callback_group=ReentrantCallbackGroup(),
        )

    def wait_for_server(self, timeout_sec: Optional[float] = None) -> bool:
        return self._ac.wait_for_server(timeout_sec=timeout_sec)

    def server_is_ready(self) -> bool:
        return self._ac.server_is_ready()

    def destroy(self) -> None:
        self._ac.destroy()

    def _send_goal(self, handle: GoalHandle, goal: ComputeRoute.Goal) -> None:
        goal_response_future = self._ac.send_goal_async(goal_to_ros(goal))
        goal_response_future.add_done_callback(
            partial(self._goal_response_cb, handle.goal_id)
        )

    def _goal_response_cb(self, goal_id: uuid.UUID, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            self.logger.warn(f"Request for goal {goal_id} failed: {future.exception()}")
            self._post(goal_id, GoalEvent(GoalStatus.REJECTED))
            return

        goal_handle: ClientGoalHandle = future.result()
        if not goal_handle.accepted:
            self._post(goal_id, GoalEvent(GoalStatus.REJECTED))
            return

        # Check and store under one lock: a concurrent cancel either finds
        # the stored handle in _cancel_goal or makes this check fail
        with self._goal_handles_lock:
            live = self.is_live(goal_id)
            if live:
                self._goal_handles[goal_id] = goal_handle
        if not live:
            self.logger.debug(f"Goal {goal_id} was accepted after it was cancelled")
            goal_handle.cancel_goal_async()
            return
        self._post(goal_id, GoalEvent(GoalStatus.ACCEPTED))
        goal_handle.get_result_async().add_done_callback(
            partial(self._result_cb, goal_id)
        )

    def _result_cb(self, goal_id: uuid.UUID, future: Future) -> None:
        with self._goal_handles_lock:
            self._goal_handles.pop(goal_id, None)
        if future.cancelled() or future.exception() is not None:
            self._post(goal_id, GoalEvent(GoalStatus.ABORTED))
            return
        response = future.result()
        status = _STATUS_FROM_ROS.get(response.status, GoalStatus.ABORTED)
        self._post(goal_id, GoalEvent(status, result_from_ros(response.result)))

    def _cancel_goal(self, handle: GoalHandle) -> None:
        with self._goal_handles_lock:
            goal_handle = self._goal_handles.pop(handle.goal_id, None)
        if goal_handle is not None:
            goal_handle.cancel_goal_async()
