"""
Files and directories inside volumes, created once and then left to the user.

Nothing here reads or rewrites existing content: a file that already exists is never touched, so
edits made by hand survive every later run.
"""

import logging
import os.path
import posixpath
from typing import Any

from jinja2 import Environment, FileSystemLoader

from ..config import Settings
from .common import Result, State
from .docker import Mount
from .worker import worker


LOG = logging.getLogger(__name__)

ENV = Environment(loader=FileSystemLoader(os.path.join(os.path.dirname(os.path.dirname(__file__)),
                                                       "templates")),
                  trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)

VOLUME_MOUNT = "/volume"

_WRITE_IF_ABSENT = """
mkdir -p "$(dirname "$TARGET")"
if [ ! -e "$TARGET" ]; then printf '%s' "$CONTENT" > "$TARGET"; fi
"""


def render(template: str, **context: Any) -> str:
    """
    Render a template from the package's `templates` directory.
    """
    return ENV.get_template(template).render(context)


def default_config(settings: Settings) -> str:
    """
    Initial server config, written only if the user has none.
    """
    return render("minetest.conf.j2", settings=settings)


def ensure_file(runtime: Any, image: str, volume: str, path: str, content: str) -> Result[None]:
    """
    Write a file into a volume, unless something already exists at that path.
    """
    target = posixpath.join(VOLUME_MOUNT, path)
    with worker(runtime, image, [Mount(volume, VOLUME_MOUNT)]) as helper:
        if helper.exists(target):
            LOG.debug("Keeping existing %s in %s", path, volume)
            return Result(State.unchanged)
        LOG.info("Writing default %s into %s", path, volume)
        helper.run(_WRITE_IF_ABSENT, TARGET=target, CONTENT=content)
    return Result(State.created)


def ensure_directory(runtime: Any, image: str, volume: str, path: str) -> Result[None]:
    """
    Create a directory (and its parents) inside a volume.
    """
    target = posixpath.join(VOLUME_MOUNT, path)
    with worker(runtime, image, [Mount(volume, VOLUME_MOUNT)]) as helper:
        if helper.exists(target):
            LOG.debug("Directory %s already exists in %s", path, volume)
            return Result(State.unchanged)
        LOG.info("Creating directory %s in %s", path, volume)
        helper.run('mkdir -p "$TARGET"', TARGET=target)
    return Result(State.created)
