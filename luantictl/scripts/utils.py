"""
Helpers for converting methods into scripts, and filling in arguments with deployment objects.
"""

from functools import wraps
from inspect import cleandoc, signature
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional, Union

from docopt import docopt

from ..config import Settings
from ..plumbing.common import ConfirmationAbort, DeployError, Result
from ..plumbing.docker import DockerClient


LOG = logging.getLogger(__name__)

DocOptArgs = Dict[str, Union[bool, str, List[str], None]]


ENTRYPOINTS: List[str] = []


OPTIONS = """
Options:
  --image=IMAGE             Server container image [env: IMAGE].
  --container=NAME          Server container name [env: CONTAINER].
  --world=NAME              World to host [env: WORLD_NAME].
  --port=PORT               TCP and UDP port to listen on [env: PORT].
  --games-volume=VOLUME     Volume caching downloaded games [env: GAMES_VOL].
  --data-volume=VOLUME      Volume holding worlds and installed games [env: DATA_VOL].
  --config-volume=VOLUME    Volume holding the server config [env: CONFIG_VOL].
  --game-id=ID              Game to install and play [env: GAME_ID].
  --game-url=URL            Download location of the game archive [env: GAME_DL_URL].
  --worker-image=IMAGE      Image for helper containers [env: WORKER_IMAGE].
  --debug                   Show every step taken, and the external commands run.
"""
"""
Options shared by all scripts, appended to each script's usage.
"""


def get_runtime() -> DockerClient:
    """
    Connect to the container runtime used by scripts.
    """
    return DockerClient()


def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO,
                        format="[%(levelname)s] %(message)s")


def entrypoint(fn: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator to make an entrypoint out of a generic function.

    This uses `docopt` to parse arguments according to the method docstring plus the shared
    `OPTIONS`, and will be formatted with `{script}` set to the script name.  At minimum, it should
    contain `Usage: {script} [options]`.

    Functions may optionally accept arguments, but they must be annotated with a recognised type in
    order to be filled in:

    - `DocOptArgs` (a `dict` of input parameters parsed from the usage line)
    - `Settings` (built from options, environment variables and defaults)
    - `DockerClient` (the container runtime)

    An example function:

        @entrypoint
        def up(runtime: DockerClient, settings: Settings):
            \"""
            Bring the server up.

            Usage: {script} [options]
            \"""
    """
    label = "luantictl-{}".format(fn.__name__).replace("_", "-")

    @wraps(fn)
    def wrap(opts: Optional[DocOptArgs] = None):
        if opts is None:
            opts = docopt(usage(fn, label))
        setup_logging(bool(opts.get("--debug")))
        try:
            settings = Settings.from_options(opts, os.environ)
        except ValueError as ex:
            error(str(ex), exit=1)
        extra: Dict[str, Any] = {}
        for param in signature(fn).parameters.values():
            cls = param.annotation
            if cls is DocOptArgs:
                extra[param.name] = opts
            elif cls is Settings:
                extra[param.name] = settings
            elif cls is DockerClient:
                extra[param.name] = get_runtime()
            else:
                raise RuntimeError("Bad parameter {!r} type {!r}".format(param.name, cls))
        try:
            result = fn(**extra)
        except ConfirmationAbort:
            error("Aborted!", exit=1)
        except DeployError as ex:
            error(str(ex), exit=1)
        if isinstance(result, Result):
            LOG.debug("Result:\n%s", result)
        return result
    wrap.__doc__ = usage(fn, label)
    # Create a console script line for setup.
    target = "{}:{}".format(fn.__module__, fn.__qualname__)
    ENTRYPOINTS.append("{}={}".format(label, target))
    return wrap


def usage(fn: Callable[..., Any], script: str) -> str:
    """
    Build the full docopt usage text of a script function.
    """
    return "{}\n{}".format(cleandoc(fn.__doc__.format(script=script)), OPTIONS)


def ask(msg: str) -> str:
    """
    Prompt for free-text input, treating an interrupted prompt as an empty answer.
    """
    try:
        return input("\033[96m{}\033[0m ".format(msg))
    except (KeyboardInterrupt, EOFError):
        print()
        return ""


def error(msg: Optional[str] = None, *, exit: Optional[int] = None, colour: Optional[str] = None):
    """
    Print an error message and/or exit.
    """
    if msg:
        colour = colour or ("1" if exit else "3")
        print("\033[9{}m{}\033[0m".format(colour, msg), file=sys.stderr)
    if exit is not None:
        sys.exit(exit)
