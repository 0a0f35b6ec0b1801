"""
Docker container runtime client.

Everything else in luantictl reaches the container runtime through a `DockerClient`, which covers
exactly the calls needed to converge a server, and returns typed values rather than text for callers
to pick apart.  Any object providing the same methods can stand in for it (tests use a local fake).
"""

import json
import logging
import subprocess
from types import MappingProxyType
from typing import Dict, IO, Iterator, List, Mapping, NamedTuple, Optional, Sequence

from .common import command, ContainerError, StorageError


LOG = logging.getLogger(__name__)


class Mount(NamedTuple):
    """
    Named volume attached to a container.
    """

    source: str
    target: str
    read_only: bool = False

    def to_arg(self) -> str:
        arg = "{}:{}".format(self.source, self.target)
        if self.read_only:
            arg += ":ro"
        return arg


class PortBinding(NamedTuple):
    """
    Port published on the host under the same number as inside the container.
    """

    port: int
    protocol: str = "tcp"

    def to_arg(self) -> str:
        return "{0}:{0}/{1}".format(self.port, self.protocol)


class Instance(NamedTuple):
    """
    Snapshot of a container as reported by the runtime.
    """

    name: str
    state: str
    """
    Runtime state, e.g. `running`, `exited`, `created`.
    """
    status: str
    """
    Human-readable status, e.g. `Up 2 hours`.
    """
    ports: str
    image: str
    labels: Mapping[str, str] = MappingProxyType({})

    @property
    def running(self) -> bool:
        return self.state == "running"


def _parse_labels(raw: str) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    for pair in raw.split(","):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        labels[key] = value
    return labels


class DockerClient:
    """
    Runtime client backed by the `docker` command line tool.
    """

    def __init__(self, binary: str = "docker"):
        self.binary = binary

    def _run(self, *args: str, check: bool = True, output: bool = False,
             stdin: Optional[IO[bytes]] = None) -> "subprocess.CompletedProcess[bytes]":
        return command([self.binary, *args], output=output, check=check, stdin=stdin)

    def create_volume(self, name: str) -> None:
        """
        Create a named volume.  Docker treats creating an existing volume as a no-op.
        """
        try:
            self._run("volume", "create", name, output=True)
        except (OSError, subprocess.CalledProcessError) as ex:
            raise StorageError("Couldn't create volume {!r}".format(name)) from ex

    def volume_exists(self, name: str) -> bool:
        try:
            proc = self._run("volume", "inspect", name, check=False, output=True)
        except OSError as ex:
            raise StorageError("Couldn't inspect volume {!r}".format(name)) from ex
        return proc.returncode == 0

    def remove_volume(self, name: str) -> None:
        try:
            self._run("volume", "rm", name, output=True)
        except (OSError, subprocess.CalledProcessError) as ex:
            raise StorageError("Couldn't remove volume {!r}".format(name)) from ex

    def run_ephemeral(self, image: str, mounts: Sequence[Mount], cmd: Sequence[str],
                      env: Optional[Mapping[str, str]] = None, name: Optional[str] = None,
                      stdin: Optional[IO[bytes]] = None) -> int:
        """
        Run a one-off command in a throwaway container, and return its exit status.

        If given, `stdin` is streamed to the command through the client connection, so the
        container can receive local files even when the daemon runs on another host.
        """
        args = ["run", "--rm"]
        if stdin:
            args.append("-i")
        if name:
            args += ["--name", name]
        for mount in mounts:
            args += ["-v", mount.to_arg()]
        for key, value in (env or {}).items():
            args += ["-e", "{}={}".format(key, value)]
        args += [image, *cmd]
        try:
            return self._run(*args, check=False, stdin=stdin).returncode
        except OSError as ex:
            raise ContainerError("Couldn't run worker container from {!r}".format(image)) from ex

    def create_and_start(self, name: str, image: str, mounts: Sequence[Mount],
                         ports: Sequence[PortBinding], args: Sequence[str],
                         labels: Optional[Mapping[str, str]] = None) -> str:
        """
        Create a detached container, and return its ID.
        """
        run = ["run", "-d", "--name", name]
        for port in ports:
            run += ["-p", port.to_arg()]
        for mount in mounts:
            run += ["-v", mount.to_arg()]
        for key, value in (labels or {}).items():
            run += ["--label", "{}={}".format(key, value)]
        run += [image, *args]
        try:
            proc = self._run(*run, output=True)
        except (OSError, subprocess.CalledProcessError) as ex:
            raise ContainerError("Couldn't start container {!r}".format(name)) from ex
        return proc.stdout.decode("utf-8").strip()

    def restart(self, name: str) -> None:
        try:
            self._run("restart", name, output=True)
        except (OSError, subprocess.CalledProcessError) as ex:
            raise ContainerError("Couldn't restart container {!r}".format(name)) from ex

    def force_remove(self, name: str, missing_ok: bool = True) -> None:
        """
        Kill and remove a container.  A missing container is only an error if not `missing_ok`.
        """
        try:
            proc = self._run("rm", "-f", name, check=False, output=True)
        except OSError as ex:
            raise ContainerError("Couldn't remove container {!r}".format(name)) from ex
        if proc.returncode == 0:
            return
        stderr = proc.stderr.decode("utf-8", "replace") if proc.stderr else ""
        if missing_ok and "No such container" in stderr:
            return
        raise ContainerError("Couldn't remove container {!r}: {}".format(name, stderr.strip()))

    def list_instances(self, name: str) -> List[Instance]:
        """
        Find containers, running or not, whose name is exactly the one given.
        """
        try:
            proc = self._run("ps", "-a", "--no-trunc", "--filter", "name=^/{}$".format(name),
                             "--format", "{{json .}}", output=True)
        except (OSError, subprocess.CalledProcessError) as ex:
            raise ContainerError("Couldn't list containers") from ex
        instances: List[Instance] = []
        for line in proc.stdout.decode("utf-8").splitlines():
            if not line.strip():
                continue
            info = json.loads(line)
            instances.append(Instance(name=info["Names"], state=info.get("State", ""),
                                      status=info.get("Status", ""), ports=info.get("Ports", ""),
                                      image=info.get("Image", ""),
                                      labels=_parse_labels(info.get("Labels", ""))))
        return [instance for instance in instances if instance.name == name]

    def follow_logs(self, name: str) -> Iterator[str]:
        """
        Stream a container's log lines as they are written.  The iterator only ends if the
        container goes away; closing it stops the underlying `docker logs` process.
        """
        args = [self.binary, "logs", "-f", name]
        LOG.debug("Exec: %r", args)
        proc = subprocess.Popen(args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        try:
            for line in proc.stdout:
                yield line.decode("utf-8", "replace").rstrip("\n")
        finally:
            proc.kill()
            proc.wait()
        if proc.returncode not in (0, -9):
            raise ContainerError("Couldn't follow logs of container {!r}".format(name))
