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
import threading
import unittest.mock as mock

import pytest

pytest.importorskip("rclpy")
pytest.importorskip("nav2_msgs")

from action_msgs.msg import GoalStatus as RosGoalStatus  # noqa: E402
from nav2_msgs.action import ComputeRoute as RosComputeRoute  # noqa: E402

from compute_route_bt.action_client import GoalStatus  # noqa: E402
from compute_route_bt.messages import ComputeRoute, Path  # noqa: E402
from compute_route_bt.ros_action_client import (  # noqa: E402
    RosActionClient,
    goal_to_ros,
    pose_stamped_from_ros,
    pose_stamped_to_ros,
    result_from_ros,
)


class TestConversions:
    def test_pose_round_trip(self, pose_factory):
        pose = pose_factory(1.5, 2.5, frame_id="odom")
        assert pose_stamped_from_ros(pose_stamped_to_ros(pose)) == pose

    def test_goal(self, pose_factory):
        msg = goal_to_ros(
            ComputeRoute.Goal(start=pose_factory(2.0), goal=pose_factory(1.0), use_start=True)
        )
        assert msg.goal.pose.position.x == 1.0
        assert msg.start.pose.position.x == 2.0
        assert msg.use_start is True
        assert msg.use_poses is True

    def test_result(self, pose_factory):
        msg = RosComputeRoute.Result()
        msg.path.poses = [pose_stamped_to_ros(pose_factory(0.0)), pose_stamped_to_ros(pose_factory(1.0))]
        msg.error_code = ComputeRoute.Result.NONE
        result = result_from_ros(msg)
        assert [pose.pose.position.x for pose in result.path.poses] == [0.0, 1.0]
        assert result.error_code == ComputeRoute.Result.NONE

    def test_no_result(self):
        assert result_from_ros(None) is None


class TestRosActionClient:
    @pytest.fixture
    def setup_mocks(self):
        with mock.patch("rclpy.node.Node") as ros_mock, mock.patch(
            "compute_route_bt.ros_action_client.ActionClient"
        ) as client_mock:
            ac_instance_mock = mock.Mock()
            client_mock.return_value = ac_instance_mock
            ac_instance_mock.wait_for_server.return_value = True
            goal_response_future = mock.Mock()
            ac_instance_mock.send_goal_async.return_value = goal_response_future

            goal_handle_mock = mock.Mock()
            goal_handle_mock.accepted = True
            goal_response_future.cancelled.return_value = False
            goal_response_future.exception.return_value = None
            goal_response_future.result.return_value = goal_handle_mock

            result_future = mock.Mock()
            result_future.cancelled.return_value = False
            result_future.exception.return_value = None
            goal_handle_mock.get_result_async.return_value = result_future

            yield {
                "client": RosActionClient(ros_mock, "compute_route"),
                "ac_instance_mock": ac_instance_mock,
                "goal_response_future": goal_response_future,
                "goal_handle_mock": goal_handle_mock,
                "result_future": result_future,
            }

    def respond(self, future):
        callback = future.add_done_callback.call_args[0][0]
        callback(future)

    def test_wait_for_server(self, setup_mocks):
        assert setup_mocks["client"].wait_for_server(timeout_sec=1.0)
        setup_mocks["ac_instance_mock"].wait_for_server.assert_called_once_with(
            timeout_sec=1.0
        )

    def test_goal_succeeds(self, setup_mocks):
        client = setup_mocks["client"]
        handle = client.submit(ComputeRoute.Goal())
        setup_mocks["ac_instance_mock"].send_goal_async.assert_called_once()
        assert client.poll(handle).status == GoalStatus.PENDING

        self.respond(setup_mocks["goal_response_future"])
        assert client.poll(handle).status == GoalStatus.ACCEPTED

        response = mock.Mock()
        response.status = RosGoalStatus.STATUS_SUCCEEDED
        response.result = RosComputeRoute.Result()
        setup_mocks["result_future"].result.return_value = response
        self.respond(setup_mocks["result_future"])

        event = client.poll(handle)
        assert event.status == GoalStatus.SUCCEEDED
        assert event.result.path == Path()

    def test_goal_rejected(self, setup_mocks):
        client = setup_mocks["client"]
        setup_mocks["goal_handle_mock"].accepted = False
        handle = client.submit(ComputeRoute.Goal())
        self.respond(setup_mocks["goal_response_future"])
        assert client.poll(handle).status == GoalStatus.REJECTED

    @pytest.mark.parametrize(
        "ros_status, status",
        [
            (RosGoalStatus.STATUS_ABORTED, GoalStatus.ABORTED),
            (RosGoalStatus.STATUS_CANCELED, GoalStatus.CANCELED),
            (RosGoalStatus.STATUS_UNKNOWN, GoalStatus.ABORTED),
        ],
    )
    def test_goal_failed(self, setup_mocks, ros_status, status):
        client = setup_mocks["client"]
        handle = client.submit(ComputeRoute.Goal())
        self.respond(setup_mocks["goal_response_future"])

        response = mock.Mock()
        response.status = ros_status
        response.result = None
        setup_mocks["result_future"].result.return_value = response
        self.respond(setup_mocks["result_future"])

        assert client.poll(handle).status == status

    def test_cancel_running_goal(self, setup_mocks):
        client = setup_mocks["client"]
        handle = client.submit(ComputeRoute.Goal())
        self.respond(setup_mocks["goal_response_future"])

        client.cancel(handle)
        setup_mocks["goal_handle_mock"].cancel_goal_async.assert_called_once()

    def test_cancel_before_acceptance(self, setup_mocks):
        client = setup_mocks["client"]
        handle = client.submit(ComputeRoute.Goal())
        client.cancel(handle)
        setup_mocks["goal_handle_mock"].cancel_goal_async.assert_not_called()

        self.respond(setup_mocks["goal_response_future"])
        setup_mocks["goal_handle_mock"].cancel_goal_async.assert_called_once()
        setup_mocks["goal_handle_mock"].get_result_async.assert_not_called()

    def test_cancel_while_acceptance_is_stored(self, setup_mocks, wait_until):
        client = setup_mocks["client"]
        handle = client.submit(ComputeRoute.Goal())
        is_live = client.is_live
        canceller = threading.Thread(target=client.cancel, args=(handle,))

        def cancel_after_check(goal_id):
            live = is_live(goal_id)
            canceller.start()
            assert wait_until(lambda: not handle.valid)
            return live

        with mock.patch.object(client, "is_live", side_effect=cancel_after_check):
            self.respond(setup_mocks["goal_response_future"])
        canceller.join(timeout=2.0)

        assert not canceller.is_alive()
        setup_mocks["goal_handle_mock"].cancel_goal_async.assert_called_once()
