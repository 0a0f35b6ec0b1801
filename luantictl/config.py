"""
Deployment settings, fixed for the duration of a single invocation.
"""

from typing import Any, Mapping, NamedTuple, Optional, Tuple

from .plumbing.service import LaunchSpec


DATA_MOUNT = "/var/lib/minetest"
"""
Server home directory, where the data volume is mounted.
"""

CONFIG_MOUNT = "/etc/minetest"
"""
Directory inside the server where the config volume is mounted.
"""

CONFIG_FILE = "minetest.conf"

GAMES_PATH = ".minetest/games"
"""
Location of installed games, relative to the root of the data volume.
"""

WORLDS_PATH = "worlds"

MARKER = "game.conf"
"""
File that every valid game directory must contain.
"""

PURGE_TOKEN = "PURGE"


class Settings(NamedTuple):
    """
    Names and locations of everything making up a server deployment.
    """

    image: str = "luanti-server:local"
    container: str = "luanti"
    world: str = "eduquest"
    port: int = 30000
    games_volume: str = "luanti-games"
    data_volume: str = "luanti-data"
    config_volume: str = "luanti-config"
    game_id: str = "mineclonia"
    game_url: str = "https://content.eduquest.vip/packages/rubenwardy/mineclonia/download"
    worker_image: str = "alpine:3.20"

    @property
    def volumes(self) -> Tuple[str, str, str]:
        return (self.games_volume, self.data_volume, self.config_volume)

    @property
    def game_path(self) -> str:
        """
        Location of the staged game, relative to the root of the data volume.
        """
        return "{}/{}".format(GAMES_PATH, self.game_id)

    @property
    def world_path(self) -> str:
        return "{}/{}".format(WORLDS_PATH, self.world)

    def launch_spec(self) -> LaunchSpec:
        return LaunchSpec(name=self.container, image=self.image, port=self.port,
                          world="{}/{}".format(DATA_MOUNT, self.world_path), game_id=self.game_id,
                          config="{}/{}".format(CONFIG_MOUNT, CONFIG_FILE),
                          data_volume=self.data_volume, data_mount=DATA_MOUNT,
                          config_volume=self.config_volume, config_mount=CONFIG_MOUNT)

    @classmethod
    def from_options(cls, opts: Mapping[str, Any],
                     environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from command line options (`--image` etc.), falling back to environment
        variables (`IMAGE` etc.), then to the defaults.  Empty values count as unset.
        """
        environ = environ or {}
        values = {}
        for field, (option, variable) in OPTIONS.items():
            value = opts.get(option) or environ.get(variable)
            if not value:
                continue
            values[field] = value
        if "port" in values:
            values["port"] = parse_port(values["port"])
        return cls(**values)


OPTIONS = {"image": ("--image", "IMAGE"),
           "container": ("--container", "CONTAINER"),
           "world": ("--world", "WORLD_NAME"),
           "port": ("--port", "PORT"),
           "games_volume": ("--games-volume", "GAMES_VOL"),
           "data_volume": ("--data-volume", "DATA_VOL"),
           "config_volume": ("--config-volume", "CONFIG_VOL"),
           "game_id": ("--game-id", "GAME_ID"),
           "game_url": ("--game-url", "GAME_DL_URL"),
           "worker_image": ("--worker-image", "WORKER_IMAGE")}
"""
Mapping of `Settings` fields to their command line option and environment variable.
"""


def parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError("Port must be a number, got {!r}".format(value))
    if not 0 < port < 65536:
        raise ValueError("Port {} out of range".format(port))
    return port
