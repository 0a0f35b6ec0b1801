"""
Whole-server operations, each converging the host on a known state.
"""

import logging
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

from requests import Session as RequestsSession

from ..config import CONFIG_FILE, PURGE_TOKEN, Settings
from ..plumbing import assets, files, service, volumes
from ..plumbing.common import Collect, ConfirmationAbort, Result
from ..plumbing.docker import Instance


LOG = logging.getLogger(__name__)


class Status(NamedTuple):
    """
    Read-only snapshot of a deployment.
    """

    instance: Optional[Instance]
    volumes: Dict[str, bool]


@Result.collect
def ensure_world_and_config(runtime: Any, settings: Settings) -> Collect[None]:
    """
    Create the world directory and a default config file, if missing.
    """
    yield files.ensure_file(runtime, settings.worker_image, settings.config_volume, CONFIG_FILE,
                            files.default_config(settings))
    yield files.ensure_directory(runtime, settings.worker_image, settings.data_volume,
                                 settings.world_path)


@Result.collect
def bootstrap(runtime: Any, settings: Settings,
              session: Optional[RequestsSession] = None) -> Collect[None]:
    """
    Set up everything from scratch: volumes, a fresh download of the game, world, config, and a
    running server.
    """
    yield volumes.ensure_volumes(runtime, settings.volumes)
    yield assets.stage(runtime, settings, session)
    yield ensure_world_and_config(runtime, settings)
    yield service.ensure_running(runtime, settings.launch_spec())


@Result.collect
def up(runtime: Any, settings: Settings,
       session: Optional[RequestsSession] = None) -> Collect[None]:
    """
    Bring the server up, downloading the game only if it isn't installed yet.
    """
    yield volumes.ensure_volumes(runtime, settings.volumes)
    if not assets.is_staged(runtime, settings):
        LOG.warning("Game %s not found in %s, staging it now", settings.game_id,
                    settings.data_volume)
        yield assets.stage(runtime, settings, session)
    yield ensure_world_and_config(runtime, settings)
    yield service.ensure_running(runtime, settings.launch_spec())


@Result.collect
def restart(runtime: Any, settings: Settings,
            session: Optional[RequestsSession] = None) -> Collect[None]:
    """
    Restart the server, or bring it up if there's no container.
    """
    if service.get_instance(runtime, settings.container):
        yield service.restart(runtime, settings.launch_spec())
    else:
        LOG.warning("Container %s not found, running 'up' instead", settings.container)
        yield up(runtime, settings, session)


def down(runtime: Any, settings: Settings) -> Result[None]:
    """
    Stop and remove the server container, keeping all volumes.
    """
    return service.stop(runtime, settings.container)


@Result.collect
def update_game(runtime: Any, settings: Settings,
                session: Optional[RequestsSession] = None) -> Collect[None]:
    """
    Download the game again and install it, keeping world data, then restart a server if there is
    one to pick up the new version.
    """
    yield volumes.ensure_volumes(runtime, settings.volumes)
    yield assets.stage(runtime, settings, session)
    if service.get_instance(runtime, settings.container):
        LOG.info("Game updated, restarting %s to load it", settings.container)
        yield service.restart_in_place(runtime, settings.container)


def status(runtime: Any, settings: Settings) -> Status:
    return Status(service.get_instance(runtime, settings.container),
                  volumes.get_volumes(runtime, settings.volumes))


def logs(runtime: Any, settings: Settings) -> Iterator[str]:
    return runtime.follow_logs(settings.container)


def purge_targets(settings: Settings) -> List[str]:
    """
    Describe everything `purge` will delete.
    """
    return (["container {}".format(settings.container)]
            + ["volume {}".format(name) for name in (settings.data_volume,
                                                      settings.config_volume,
                                                      settings.games_volume)])


@Result.collect
def purge(runtime: Any, settings: Settings, confirmation: str) -> Collect[None]:
    """
    Remove the server container and all of its volumes, including world data and config.

    Nothing happens unless `confirmation` is exactly the purge token.
    """
    if confirmation != PURGE_TOKEN:
        raise ConfirmationAbort("Purge not confirmed")
    yield service.destroy(runtime, settings.container)
    for name in (settings.data_volume, settings.config_volume, settings.games_volume):
        yield volumes.remove_volume(runtime, name)
