"""
Fetching and installing the game played on the server.

A game goes through two copies:

- the cache, in the games volume, holding the last downloaded release as extracted
- the installed copy, inside the data volume where the server looks for games

Either copy is only valid if it contains the marker file (`game.conf`); a copy without one is an
error, never something to carry on with.
"""

import logging
import os
import os.path
import posixpath
import tarfile
import tempfile
from typing import Any, Optional
import zipfile

from requests import RequestException, Session as RequestsSession

from ..config import MARKER, Settings
from .common import Collect, DownloadError, IntegrityError, Result, State
from .docker import Mount
from .worker import worker


LOG = logging.getLogger(__name__)

GAMES_MOUNT = "/games"
DATA_MOUNT = "/data"

_IGNORED_ENTRIES = ("__MACOSX",)

_CACHE = """
rm -rf "$GAMES/$GAME"
mkdir -p "$GAMES"
tar -xf - -C "$GAMES"
"""

_COPY = """
mkdir -p "$DEST"
rm -rf "$DEST/.$GAME.new" "$DEST/.$GAME.old"
cp -a "$GAMES/$GAME" "$DEST/.$GAME.new"
"""

_SWAP = """
if [ -e "$DEST/$GAME" ]; then mv "$DEST/$GAME" "$DEST/.$GAME.old"; fi
mv "$DEST/.$GAME.new" "$DEST/$GAME"
rm -rf "$DEST/.$GAME.old"
"""


def download(url: str, dest: str, session: Optional[RequestsSession] = None) -> str:
    """
    Save the archive at the given URL to a file in `dest`, and return its path.
    """
    if session is None:
        with RequestsSession() as session:
            return download(url, dest, session)
    path = os.path.join(dest, "download.zip")
    LOG.info("Downloading %s", url)
    try:
        with session.get(url, stream=True) as resp:
            resp.raise_for_status()
            with open(path, "wb") as archive:
                for chunk in resp.iter_content(chunk_size=65536):
                    archive.write(chunk)
    except RequestException as ex:
        raise DownloadError("Couldn't download {}: {}".format(url, ex)) from ex
    return path


def extract(archive: str, dest: str, game_id: str) -> str:
    """
    Unpack a game archive into `dest`, and return the path of the game directory within.

    Archives usually contain a single directory, whose name may carry a version suffix (e.g.
    `mineclonia-0.98`); it is renamed to the game ID.
    """
    os.makedirs(dest, exist_ok=True)
    try:
        with zipfile.ZipFile(archive) as bundle:
            bundle.extractall(dest)
    except zipfile.BadZipFile as ex:
        raise DownloadError("Downloaded file is not a zip archive: {}".format(ex)) from ex
    candidates = sorted(entry for entry in os.listdir(dest)
                        if os.path.isdir(os.path.join(dest, entry))
                        and entry not in _IGNORED_ENTRIES)
    if not candidates:
        raise IntegrityError("Archive for {} contains no top-level directory".format(game_id))
    elif len(candidates) > 1:
        raise IntegrityError("Archive for {} has multiple top-level directories: {}"
                             .format(game_id, ", ".join(candidates)))
    path = os.path.join(dest, game_id)
    if candidates[0] != game_id:
        LOG.debug("Renaming extracted %s to %s", candidates[0], game_id)
        os.rename(os.path.join(dest, candidates[0]), path)
    if not os.path.isfile(os.path.join(path, MARKER)):
        raise IntegrityError("Extracted {} has no {}".format(game_id, MARKER))
    return path


def _as_root(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = "root"
    return info


def cache(runtime: Any, settings: Settings, source: str) -> Result[None]:
    """
    Replace the cached copy of the game in the games volume with an extracted directory.

    The directory is sent to the worker as a tar stream on its standard input rather than mounted,
    as the container runtime may be on another machine.  If the copy turns out incomplete, it is
    left in place for inspection.
    """
    with tempfile.TemporaryFile() as bundle:
        with tarfile.open(fileobj=bundle, mode="w") as tar:
            tar.add(source, arcname=settings.game_id, filter=_as_root)
        bundle.seek(0)
        with worker(runtime, settings.worker_image,
                    [Mount(settings.games_volume, GAMES_MOUNT)]) as helper:
            helper.run(_CACHE, bundle, GAMES=GAMES_MOUNT, GAME=settings.game_id)
            if not helper.exists(posixpath.join(GAMES_MOUNT, settings.game_id, MARKER)):
                raise IntegrityError("Cached {} in {} has no {}"
                                     .format(settings.game_id, settings.games_volume, MARKER))
    LOG.info("Game downloaded to volume %s", settings.games_volume)
    return Result(State.success)


def install(runtime: Any, settings: Settings) -> Result[None]:
    """
    Copy the cached game into the data volume, replacing any previously installed version.

    The new copy is staged next to the old one and swapped in only once it's complete, so a
    failed copy leaves the installed version as it was.
    """
    dest = posixpath.join(DATA_MOUNT, posixpath.dirname(settings.game_path))
    env = {"GAMES": GAMES_MOUNT, "DEST": dest, "GAME": settings.game_id}
    mounts = [Mount(settings.games_volume, GAMES_MOUNT),
              Mount(settings.data_volume, DATA_MOUNT)]
    LOG.info("Copying %s into %s:/%s", settings.game_id, settings.data_volume, settings.game_path)
    with worker(runtime, settings.worker_image, mounts) as helper:
        helper.run(_COPY, **env)
        staged = posixpath.join(dest, ".{}.new".format(settings.game_id), MARKER)
        if not helper.exists(staged):
            raise IntegrityError("Copy of {} has no {}".format(settings.game_id, MARKER))
        helper.run(_SWAP, **env)
        if not helper.exists(posixpath.join(DATA_MOUNT, settings.game_path, MARKER)):
            raise IntegrityError("Installed {} has no {}".format(settings.game_id, MARKER))
    LOG.info("Game staged at %s", settings.game_path)
    return Result(State.success)


@Result.collect
def stage(runtime: Any, settings: Settings,
          session: Optional[RequestsSession] = None) -> Collect[None]:
    """
    Download the game afresh, cache it, and install it for the server.
    """
    with tempfile.TemporaryDirectory(prefix="luantictl-") as tmp:
        archive = download(settings.game_url, tmp, session)
        source = extract(archive, os.path.join(tmp, "extract"), settings.game_id)
        yield cache(runtime, settings, source)
    yield install(runtime, settings)


def is_staged(runtime: Any, settings: Settings) -> bool:
    """
    Check whether a valid copy of the game is installed in the data volume.
    """
    marker = posixpath.join(DATA_MOUNT, settings.game_path, MARKER)
    with worker(runtime, settings.worker_image,
                [Mount(settings.data_volume, DATA_MOUNT, read_only=True)]) as helper:
        return helper.exists(marker)
