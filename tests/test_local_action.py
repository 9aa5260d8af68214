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
from threading import Event
import uuid

import pytest

from compute_route_bt.action_client import GoalStatus
from compute_route_bt.local_action import LocalActionClient, LocalActionServer
from compute_route_bt.messages import ComputeRoute


def poll_until_terminal(client, handle, wait_until):
    assert wait_until(lambda: client.poll(handle).is_terminal)
    return client.poll(handle)


class TestLocalActionClient:
    def test_server_is_ready(self, route_server):
        assert LocalActionClient(route_server, "compute_route").server_is_ready()
        assert LocalActionClient(route_server, "compute_route").wait_for_server(0.1)

    def test_wrong_action_name(self, route_server):
        assert not LocalActionClient(route_server, "other_action").server_is_ready()

    def test_no_server(self):
        client = LocalActionClient(None, "compute_route")
        assert not client.wait_for_server(timeout_sec=0.1)
        with pytest.raises(RuntimeError):
            client.submit(ComputeRoute.Goal())

    def test_server_shut_down(self, route_client, route_server):
        route_server.shutdown()
        assert not route_client.server_is_ready()
        with pytest.raises(RuntimeError):
            route_client.submit(ComputeRoute.Goal())

    def test_goal_succeeds(self, route_client, route_server, pose_factory, wait_until):
        handle = route_client.submit(ComputeRoute.Goal(goal=pose_factory(3.0)))
        event = poll_until_terminal(route_client, handle, wait_until)

        assert event.status == GoalStatus.SUCCEEDED
        assert [pose.pose.position.x for pose in event.result.path.poses] == [0.0, 3.0]
        assert route_server.current_goal.goal.pose.position.x == 3.0

    def test_goal_is_copied(self, route_client, route_server, pose_factory, wait_until):
        goal = ComputeRoute.Goal(goal=pose_factory(3.0))
        handle = route_client.submit(goal)
        goal.goal.pose.position.x = 7.0
        poll_until_terminal(route_client, handle, wait_until)
        assert route_server.current_goal.goal.pose.position.x == 3.0

    def test_goal_aborted(self, route_client, pose_factory, wait_until):
        handle = route_client.submit(ComputeRoute.Goal(goal=pose_factory(float("nan"))))
        event = poll_until_terminal(route_client, handle, wait_until)
        assert event.status == GoalStatus.ABORTED
        assert event.result.error_code == ComputeRoute.Result.NO_VALID_ROUTE

    def test_goal_cancelled_by_server(
        self, route_client, route_server, pose_factory, wait_until
    ):
        handle = route_client.submit(ComputeRoute.Goal(goal=pose_factory(1000.0)))
        assert wait_until(
            lambda: route_client.poll(handle).status == GoalStatus.ACCEPTED
        )
        assert route_server.cancel_all_goals() == 1

        event = poll_until_terminal(route_client, handle, wait_until)
        assert event.status == GoalStatus.CANCELED
        assert route_server.is_goal_cancelled()

    def test_client_cancel(self, route_client, route_server, pose_factory, wait_until):
        handle = route_client.submit(ComputeRoute.Goal(goal=pose_factory(1000.0)))
        route_client.cancel(handle)
        assert not handle.valid
        assert wait_until(route_server.is_goal_cancelled)


class TestLocalActionServer:
    @pytest.fixture
    def gate(self):
        gate = Event()
        yield gate
        gate.set()

    def test_rejected_goal(self, wait_until):
        executed = []
        server = LocalActionServer(
            "compute_route", executed.append, goal_callback=lambda goal: False
        )
        client = LocalActionClient(server, "compute_route")
        try:
            handle = client.submit(ComputeRoute.Goal())
            event = poll_until_terminal(client, handle, wait_until)
            assert event.status == GoalStatus.REJECTED
            assert executed == []
            assert len(server.received_goals) == 1
        finally:
            server.shutdown()

    def test_unfinished_goal_is_aborted(self, wait_until):
        server = LocalActionServer("compute_route", lambda goal_handle: None)
        client = LocalActionClient(server, "compute_route")
        try:
            handle = client.submit(ComputeRoute.Goal())
            assert poll_until_terminal(client, handle, wait_until).status == GoalStatus.ABORTED
        finally:
            server.shutdown()

    def test_raising_callback_aborts(self, wait_until):
        def execute(goal_handle):
            raise ValueError("planner crashed")

        server = LocalActionServer("compute_route", execute)
        client = LocalActionClient(server, "compute_route")
        try:
            handle = client.submit(ComputeRoute.Goal())
            event = poll_until_terminal(client, handle, wait_until)
            assert event.status == GoalStatus.ABORTED
        finally:
            server.shutdown()

    def test_finishing_twice(self, wait_until):
        errors = []

        def execute(goal_handle):
            goal_handle.succeed(ComputeRoute.Result())
            try:
                goal_handle.abort()
            except RuntimeError as exc:
                errors.append(exc)

        server = LocalActionServer("compute_route", execute)
        client = LocalActionClient(server, "compute_route")
        try:
            handle = client.submit(ComputeRoute.Goal())
            assert poll_until_terminal(client, handle, wait_until).status == GoalStatus.SUCCEEDED
            assert wait_until(lambda: len(errors) == 1)
        finally:
            server.shutdown()

    def test_cancel_before_start(self, gate, wait_until):
        def execute(goal_handle):
            if goal_handle.is_cancel_requested:
                goal_handle.canceled()
                return
            gate.wait(timeout=5.0)
            goal_handle.succeed(ComputeRoute.Result())

        server = LocalActionServer("compute_route", execute, max_workers=1)
        client = LocalActionClient(server, "compute_route")
        try:
            blocking = client.submit(ComputeRoute.Goal())
            assert wait_until(lambda: len(server.received_goals) == 1)
            queued = client.submit(ComputeRoute.Goal())

            assert server.cancel_goal(queued.goal_id)
            assert server.is_goal_cancelled()
            gate.set()

            assert poll_until_terminal(client, blocking, wait_until).status == GoalStatus.SUCCEEDED
            assert poll_until_terminal(client, queued, wait_until).status == GoalStatus.CANCELED
        finally:
            server.shutdown()

    def test_cancel_unknown_goal(self, route_server):
        assert not route_server.cancel_goal(uuid.uuid4())
        assert not route_server.is_goal_cancelled()
