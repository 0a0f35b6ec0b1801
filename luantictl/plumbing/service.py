"""
Lifecycle of the game server container.

A server is identified by its container name, and is in one of three states (see `InstanceState`).
The actions here move it between states idempotently; nothing else in luantictl should start,
restart or remove the server container directly.
"""

from enum import Enum
import hashlib
import json
import logging
from typing import Any, List, NamedTuple, Optional

from .common import Collect, ContainerError, Result, State
from .docker import Instance, Mount, PortBinding


LOG = logging.getLogger(__name__)

SPEC_LABEL = "net.luantictl.spec"
"""
Container label holding the digest of the `LaunchSpec` a container was created from.
"""


class InstanceState(Enum):

    absent = 0
    """
    No container by this name is known to the runtime.
    """
    stopped = 1
    """
    The container exists but is not executing (exited, created, dead).
    """
    running = 2


class LaunchSpec(NamedTuple):
    """
    Everything needed to (re)create the server container.  Paths are as seen inside the container.
    """

    name: str
    image: str
    port: int
    world: str
    game_id: str
    config: str
    data_volume: str
    data_mount: str
    config_volume: str
    config_mount: str

    def mounts(self) -> List[Mount]:
        return [Mount(self.data_volume, self.data_mount),
                Mount(self.config_volume, self.config_mount)]

    def ports(self) -> List[PortBinding]:
        # Luanti speaks UDP, the TCP mapping is kept for server list pings and proxies.
        return [PortBinding(self.port, "udp"), PortBinding(self.port, "tcp")]

    def args(self) -> List[str]:
        return ["--world", self.world, "--gameid", self.game_id, "--config", self.config,
                "--port", str(self.port)]

    def digest(self) -> str:
        """
        Stable fingerprint of the spec, used to detect containers created with other settings.
        """
        raw = json.dumps(self._asdict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(raw).hexdigest()[:16]


def get_instance(runtime: Any, name: str) -> Optional[Instance]:
    """
    Look up the server container by name, if it exists.
    """
    for instance in runtime.list_instances(name):
        return instance
    return None


def get_state(runtime: Any, name: str) -> InstanceState:
    instance = get_instance(runtime, name)
    if not instance:
        return InstanceState.absent
    elif instance.running:
        return InstanceState.running
    else:
        return InstanceState.stopped


def _remove(runtime: Any, name: str) -> bool:
    # Best-effort: a failure here is logged, and the caller carries on.
    try:
        runtime.force_remove(name)
    except ContainerError as ex:
        LOG.warning("Couldn't remove container %s: %s", name, ex)
        return False
    else:
        return True


def create(runtime: Any, spec: LaunchSpec) -> Result[str]:
    """
    Create and start a new server container.
    """
    LOG.info("Starting %s on TCP/UDP %d with world %s and game %s",
             spec.name, spec.port, spec.world, spec.game_id)
    ident = runtime.create_and_start(spec.name, spec.image, spec.mounts(), spec.ports(),
                                     spec.args(), {SPEC_LABEL: spec.digest()})
    return Result(State.created, ident)


def restart_in_place(runtime: Any, name: str) -> Result[None]:
    LOG.info("Restarting %s", name)
    runtime.restart(name)
    return Result(State.success)


@Result.collect_value
def ensure_running(runtime: Any, spec: LaunchSpec) -> Collect[InstanceState]:
    """
    Converge on a running container created from the given spec.

    A running container is restarted in place to pick up changes in its volumes, unless it was
    created from a different spec, in which case it is replaced.  A stopped container is always
    replaced.
    """
    instance = get_instance(runtime, spec.name)
    if instance and instance.running:
        if instance.labels.get(SPEC_LABEL) == spec.digest():
            yield restart_in_place(runtime, spec.name)
            return InstanceState.running
        LOG.info("Container %s was created with different settings, replacing it", spec.name)
        runtime.force_remove(spec.name)
    elif instance:
        LOG.info("Removing stopped container %s", spec.name)
        _remove(runtime, spec.name)
    yield create(runtime, spec)
    return InstanceState.running


def stop(runtime: Any, name: str) -> Result[None]:
    """
    Stop and remove the server container.  Volumes are not touched.
    """
    if not get_instance(runtime, name):
        LOG.warning("Container %s not found", name)
        return Result(State.unchanged)
    LOG.info("Stopping and removing %s", name)
    if _remove(runtime, name):
        return Result(State.success)
    else:
        return Result(State.unchanged)


@Result.collect
def restart(runtime: Any, spec: LaunchSpec) -> Collect[None]:
    """
    Restart the server container in place, or start it if it doesn't exist.
    """
    if get_instance(runtime, spec.name):
        yield restart_in_place(runtime, spec.name)
    else:
        LOG.warning("Container %s not found, starting it instead", spec.name)
        yield ensure_running(runtime, spec)


def destroy(runtime: Any, name: str) -> Result[None]:
    """
    Remove the server container unconditionally, if it exists.
    """
    existed = bool(get_instance(runtime, name))
    runtime.force_remove(name, missing_ok=True)
    return Result(State.success if existed else State.unchanged)
