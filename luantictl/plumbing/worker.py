"""
Short-lived helper containers for file operations inside volumes.

Volumes are only reachable from inside a container, so copying, testing and writing files is done
by a worker: a throwaway container with the relevant volumes mounted, running a small shell script.
Use the `worker` context manager, which guarantees the container is gone when the block exits:

    with worker(runtime, "alpine:3.20", [Mount("luanti-data", "/data")]) as helper:
        helper.run('mkdir -p "$DATA/worlds"', DATA="/data")
        if not helper.exists("/data/worlds"):
            ...

Scripts take every path or user-supplied value from environment variables, never by templating
them into the shell text.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generator, IO, List, Optional, Sequence
import uuid

from .common import ContainerError
from .docker import Mount


LOG = logging.getLogger(__name__)


class Worker:
    """
    Handle to an acquired helper container slot.  Each `run` executes in a fresh `--rm` container
    under the worker's name, with the same mounts.
    """

    def __init__(self, runtime: Any, image: str, mounts: Sequence[Mount], name: str):
        self.runtime = runtime
        self.image = image
        self.mounts: List[Mount] = list(mounts)
        self.name = name

    def status(self, script: str, stdin: Optional[IO[bytes]] = None, **env: str) -> int:
        """
        Run a script, and return its exit status.
        """
        LOG.debug("Worker %s: %s", self.name, " ".join(script.split()))
        return self.runtime.run_ephemeral(self.image, self.mounts, ["sh", "-euc", script],
                                          env, self.name, stdin)

    def run(self, script: str, stdin: Optional[IO[bytes]] = None, **env: str) -> None:
        """
        Run a script, raising `ContainerError` if it fails.
        """
        code = self.status(script, stdin, **env)
        if code:
            raise ContainerError("Worker script exited with status {}: {}"
                                 .format(code, " ".join(script.split())))

    def exists(self, path: str) -> bool:
        """
        Test whether a file or directory exists, as seen from inside the worker.
        """
        return self.status('test -e "$TARGET"', TARGET=path) == 0


@contextmanager
def worker(runtime: Any, image: str, mounts: Sequence[Mount]) -> Generator[Worker, None, None]:
    """
    Acquire a helper container, and release it on exit whether or not the block succeeded.
    """
    name = "luantictl-worker-{}".format(uuid.uuid4().hex[:12])
    try:
        yield Worker(runtime, image, mounts, name)
    finally:
        runtime.force_remove(name, missing_ok=True)
