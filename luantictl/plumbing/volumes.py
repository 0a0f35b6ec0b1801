"""
Named Docker volumes holding games, world data and config.
"""

import logging
from typing import Any, Dict, Iterable

from .common import Collect, Result, State


LOG = logging.getLogger(__name__)


def get_volumes(runtime: Any, names: Iterable[str]) -> Dict[str, bool]:
    """
    Check which of the given volumes exist.
    """
    return {name: runtime.volume_exists(name) for name in names}


def ensure_volume(runtime: Any, name: str) -> Result[None]:
    """
    Create a volume, if one with that name doesn't already exist.
    """
    if runtime.volume_exists(name):
        LOG.debug("Volume %s already exists", name)
        return Result(State.unchanged)
    LOG.info("Creating volume %s", name)
    runtime.create_volume(name)
    return Result(State.created)


@Result.collect
def ensure_volumes(runtime: Any, names: Iterable[str]) -> Collect[None]:
    for name in names:
        yield ensure_volume(runtime, name)


def remove_volume(runtime: Any, name: str) -> Result[None]:
    """
    Delete a volume and everything in it.
    """
    if not runtime.volume_exists(name):
        return Result(State.unchanged)
    LOG.info("Removing volume %s", name)
    runtime.remove_volume(name)
    return Result(State.success)
