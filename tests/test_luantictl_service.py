import unittest
from unittest.mock import Mock, patch

from luantictl.config import Settings
from luantictl.plumbing import service
from luantictl.plumbing.common import ContainerError, State
from luantictl.plumbing.docker import PortBinding
from luantictl.plumbing.service import InstanceState

from .runtime import RuntimeTestCase


class TestLaunchSpec(unittest.TestCase):

    def setUp(self):
        self.spec = Settings(port=31000).launch_spec()

    def test_ports(self):
        self.assertEqual(self.spec.ports(), [PortBinding(31000, "udp"), PortBinding(31000, "tcp")])

    def test_args(self):
        self.assertEqual(self.spec.args(),
                         ["--world", "/var/lib/minetest/worlds/eduquest", "--gameid", "mineclonia",
                          "--config", "/etc/minetest/minetest.conf", "--port", "31000"])

    def test_digest_stable(self):
        self.assertEqual(self.spec.digest(), Settings(port=31000).launch_spec().digest())

    def test_digest_differs(self):
        self.assertNotEqual(self.spec.digest(), Settings(port=31001).launch_spec().digest())


class TestConverge(RuntimeTestCase):

    def setUp(self):
        super().setUp()
        self.spec = Settings().launch_spec()

    def assertRunningWith(self, spec: service.LaunchSpec):
        self.assertEqual(service.get_state(self.runtime, spec.name), InstanceState.running)
        container = self.runtime.containers[spec.name]
        self.assertEqual(container.image, spec.image)
        self.assertEqual(container.mounts, spec.mounts())
        self.assertEqual(container.ports, spec.ports())
        self.assertEqual(container.args, spec.args())

    def test_state_absent(self):
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.absent)

    def test_from_absent(self):
        result = service.ensure_running(self.runtime, self.spec)
        self.assertEqual(result.state, State.created)
        self.assertEqual(result.value, InstanceState.running)
        self.assertRunningWith(self.spec)

    def test_from_stopped(self):
        service.ensure_running(self.runtime, self.spec)
        self.runtime.kill("luanti")
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.stopped)
        result = service.ensure_running(self.runtime, self.spec)
        self.assertEqual(result.state, State.created)
        self.assertEqual(self.runtime.calls[-2:], [("force_remove", "luanti"),
                                                   ("create_and_start", "luanti")])
        self.assertRunningWith(self.spec)

    def test_from_running(self):
        service.ensure_running(self.runtime, self.spec)
        result = service.ensure_running(self.runtime, self.spec)
        self.assertEqual(result.state, State.success)
        self.assertEqual(self.runtime.calls[-1], ("restart", "luanti"))
        self.assertEqual(len([call for call in self.runtime.calls
                              if call[0] == "create_and_start"]), 1)
        self.assertRunningWith(self.spec)

    def test_from_running_other_spec(self):
        service.ensure_running(self.runtime, self.spec)
        spec = Settings(port=31000).launch_spec()
        result = service.ensure_running(self.runtime, spec)
        self.assertEqual(result.state, State.created)
        self.assertRunningWith(spec)

    @patch("{}.LOG".format(service.__spec__.name))
    def test_from_stopped_remove_fails(self, log: Mock):
        service.ensure_running(self.runtime, self.spec)
        self.runtime.kill("luanti")
        with patch.object(self.runtime, "force_remove", side_effect=ContainerError("busy")):
            # Removal is best-effort, so the create step goes ahead (and fails on the name).
            with self.assertRaises(ContainerError):
                service.ensure_running(self.runtime, self.spec)
        log.warning.assert_called_once()


class TestStop(RuntimeTestCase):

    def setUp(self):
        super().setUp()
        self.spec = Settings().launch_spec()

    def test_stop_running(self):
        service.ensure_running(self.runtime, self.spec)
        self.assertEqual(service.stop(self.runtime, "luanti").state, State.success)
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.absent)

    def test_stop_stopped(self):
        service.ensure_running(self.runtime, self.spec)
        self.runtime.kill("luanti")
        self.assertEqual(service.stop(self.runtime, "luanti").state, State.success)
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.absent)

    @patch("{}.LOG".format(service.__spec__.name))
    def test_stop_absent(self, log: Mock):
        self.assertEqual(service.stop(self.runtime, "luanti").state, State.unchanged)
        log.warning.assert_called_with("Container %s not found", "luanti")
        self.assertEqual(self.runtime.mutations(), [])

    @patch("{}.LOG".format(service.__spec__.name))
    def test_stop_remove_fails(self, log: Mock):
        service.ensure_running(self.runtime, self.spec)
        with patch.object(self.runtime, "force_remove", side_effect=ContainerError("busy")):
            result = service.stop(self.runtime, "luanti")
        self.assertEqual(result.state, State.unchanged)
        log.warning.assert_called_once()

    def test_destroy(self):
        service.ensure_running(self.runtime, self.spec)
        self.assertEqual(service.destroy(self.runtime, "luanti").state, State.success)
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.absent)

    def test_destroy_absent(self):
        self.assertEqual(service.destroy(self.runtime, "luanti").state, State.unchanged)


class TestRestart(RuntimeTestCase):

    def setUp(self):
        super().setUp()
        self.spec = Settings().launch_spec()

    def test_restart_absent(self):
        result = service.restart(self.runtime, self.spec)
        self.assertEqual(result.state, State.created)
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.running)

    def test_restart_running(self):
        service.ensure_running(self.runtime, self.spec)
        result = service.restart(self.runtime, self.spec)
        self.assertEqual(result.state, State.success)
        self.assertEqual(self.runtime.calls[-1], ("restart", "luanti"))

    def test_restart_stopped(self):
        service.ensure_running(self.runtime, self.spec)
        self.runtime.kill("luanti")
        service.restart(self.runtime, self.spec)
        self.assertEqual(service.get_state(self.runtime, "luanti"), InstanceState.running)
        self.assertEqual(self.runtime.calls[-1], ("restart", "luanti"))

    def test_restart_failure(self):
        service.ensure_running(self.runtime, self.spec)
        with patch.object(self.runtime, "restart", side_effect=ContainerError("oops")):
            with self.assertRaises(ContainerError):
                service.restart(self.runtime, self.spec)


if __name__ == "__main__":
    unittest.main()
