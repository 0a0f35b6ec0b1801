"""
Scripts to deploy and manage the game server.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from docopt import docopt

from .utils import ask, DocOptArgs, entrypoint, error, OPTIONS
from ..config import PURGE_TOKEN, Settings
from ..plumbing.common import UsageError
from ..plumbing.docker import DockerClient
from ..tasks import server


LOG = logging.getLogger(__name__)


@entrypoint
def bootstrap(runtime: DockerClient, settings: Settings):
    """
    Create volumes, download the game, install it, ensure world and config, and start the server.

    Usage: {script} [options]
    """
    return server.bootstrap(runtime, settings)


@entrypoint
def up(runtime: DockerClient, settings: Settings):
    """
    Start the server, or restart it if already running.  The game is only downloaded if missing.

    Usage: {script} [options]
    """
    result = server.up(runtime, settings)
    LOG.info("Server running, tail logs with: luantictl logs")
    return result


@entrypoint
def restart(runtime: DockerClient, settings: Settings):
    """
    Restart the server container, creating it if missing.

    Usage: {script} [options]
    """
    result = server.restart(runtime, settings)
    _print_status(server.status(runtime, settings))
    return result


@entrypoint
def down(runtime: DockerClient, settings: Settings):
    """
    Stop and remove the server container.  Volumes are preserved.

    Usage: {script} [options]
    """
    return server.down(runtime, settings)


@entrypoint
def update_game(runtime: DockerClient, settings: Settings):
    """
    Download the game again and install it, keeping world data.

    Usage: {script} [options]
    """
    result = server.update_game(runtime, settings)
    LOG.info("Update complete")
    return result


@entrypoint
def logs(runtime: DockerClient, settings: Settings):
    """
    Follow the server's logs until interrupted.

    Usage: {script} [options]
    """
    try:
        for line in server.logs(runtime, settings):
            print(line)
    except KeyboardInterrupt:
        pass


@entrypoint
def status(runtime: DockerClient, settings: Settings):
    """
    Show the server container's status and mapped ports, and which volumes exist.

    Usage: {script} [options]
    """
    state = server.status(runtime, settings)
    _print_status(state)
    return state


@entrypoint
def purge(runtime: DockerClient, settings: Settings):
    """
    Remove the server container AND ALL VOLUMES, including worlds and config (dangerous).

    Usage: {script} [options]
    """
    LOG.warning("This will remove %s", ", ".join(server.purge_targets(settings)))
    answer = ask("Type {!r} to continue:".format(PURGE_TOKEN))
    result = server.purge(runtime, settings, answer)
    LOG.info("Purged")
    return result


def _print_status(state: server.Status) -> None:
    row = "{:<20} {:<30} {:<40} {}"
    print(row.format("NAME", "STATUS", "PORTS", "IMAGE"))
    if state.instance:
        instance = state.instance
        print(row.format(instance.name, instance.status, instance.ports, instance.image))
    else:
        print("(no container)")
    for name, exists in state.volumes.items():
        print("volume {}: {}".format(name, "present" if exists else "missing"))


COMMANDS: Dict[str, Callable[..., Any]] = {
    "bootstrap": bootstrap,
    "up": up,
    "restart": restart,
    "down": down,
    "update-asset": update_game,
    "update-game": update_game,
    "logs": logs,
    "status": status,
    "purge": purge,
}


USAGE = """
Manage a Luanti game server running in Docker.

Usage: luantictl [options] [<command>]
       luantictl (-h | --help)

Commands:
  bootstrap     Create volumes, download the game, install it, ensure world and config, and start.
  up            Start (or restart) the server; the game is only downloaded if missing.
  restart       Restart the server container, creating it if missing.
  down          Stop and remove the server container (volumes are preserved).
  update-asset  Download the game again and install it (keeps world data); alias: update-game.
  logs          Follow the server logs.
  status        Show container status, mapped ports, and volumes.
  purge         Remove the container AND ALL VOLUMES (dangerous).
""".strip() + "\n" + OPTIONS


def get_command(name: str) -> Callable[..., Any]:
    try:
        return COMMANDS[name]
    except KeyError:
        raise UsageError("Unknown command: {}".format(name)) from None


def main(argv: Optional[List[str]] = None):
    """
    Dispatch `luantictl <command>` to the matching script, or show usage if none is given.
    """
    opts: DocOptArgs = docopt(USAGE, argv=argv)
    name = opts.pop("<command>")
    if not name:
        print(USAGE)
        return None
    try:
        script = get_command(name)
    except UsageError as ex:
        error("{}\n\n{}".format(ex, USAGE), exit=1)
    return script(opts)
