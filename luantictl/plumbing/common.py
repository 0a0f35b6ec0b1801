"""
Shared helper methods, base classes and errors.
"""

from enum import Enum
from functools import wraps
import inspect
import logging
import subprocess
from typing import (Any, Callable, Generator, Generic, IO, Iterable, List, Mapping, Optional, TypeVar,
                    Union)


LOG = logging.getLogger(__name__)

T = TypeVar("T")

Collect = Generator["Result[Any]", None, T]
"""
Generic type for the return value of functions using `Result.collect`.
"""


class Unset:
    """
    Constructor of generic default values for optional but nullable parameters.
    """

    def __repr__(self):
        return "UNSET"


UNSET = Unset()
"""
Global generic default value.
"""


class DeployError(Exception):
    """
    Base class of all failures raised while converging the server.
    """


class StorageError(DeployError):
    """
    A volume could not be created, inspected or removed.
    """


class DownloadError(DeployError):
    """
    The game archive could not be fetched or read.
    """


class IntegrityError(DeployError):
    """
    A game bundle is missing its marker file, or its archive layout is ambiguous.
    """


class ContainerError(DeployError):
    """
    The container runtime failed to run, start, restart or remove a container.
    """


class ConfirmationAbort(DeployError):
    """
    A destructive action was not confirmed, and nothing was changed.
    """


class UsageError(DeployError):
    """
    An unknown command was requested.
    """


class State(Enum):
    """
    Enumeration used by `Result` to declare whether the action happened.
    """

    unchanged = 0
    """
    No action required, the request and current state are consistent.
    """
    success = 1
    """
    The action was completed without issues.
    """
    created = 2
    """
    The action resulted in the creation of a new object (volume, file, container).
    """

    def __bool__(self):
        return bool(self.value)


class Result(Generic[T]):
    """
    State and optional accompanying value from a unit of work.

    For a simple plumbing action, just create a new result directly with the resulting `State` and
    a value if relevant:

        def unit():
            # Create a volume, start a container etc.
            return Result(State.success, True)

    For a task that combines multiple results, see `Result.collect`.  The state of such a result is
    based on all of its parts -- if any changes were made, the outer result also reports a change.

    A result can be checked for truthiness, which is `False` if no changes were made.

    A result can also be converted to a string, which produces a tree-like summary of changes:

        module:task success True
            module:unit1 unchanged
            module:unit2 success
    """

    @classmethod
    def collect(cls, fn: Callable[..., Collect[T]]) -> Callable[..., "Result[T]"]:
        """
        Decorator: build a `Result` from multiple sub-tasks:

            def plumb_b() -> Result[str]: ...

            @Result.collect
            def task() -> Collect[str]:
                yield plumb_a()
                result = yield from plumb_b()
                if result:
                    yield plumb_c()
                return result.value

        The inner function this decorator wraps should be a generator of `Result` objects.

        The return value of the wrapper function will be a new `Result` object, whose `parts` will
        be those collected sub-task results, and whose `value` will be set to the return value of
        the inner function (i.e. the example above will return a `Result[str]`).

        If a sub-task raises, the exception propagates immediately and later sub-tasks never run.
        """
        @wraps(fn)
        def inner(*args: Any, **kwargs: Any) -> Result[T]:
            value: Union[T, Unset] = UNSET
            parts: List[Result[Any]] = []
            gen = fn(*args, **kwargs)
            try:
                while True:
                    result = next(gen)
                    parts.append(result)
            except StopIteration as ex:
                if ex.value is not None:
                    value = ex.value
            return cls(None, value, parts, fn)
        return inner

    @classmethod
    def collect_value(cls, fn: Callable[..., Collect[T]]) -> Callable[..., "Result[T]"]:
        """
        Variant of `Result.collect` that always sets the value, even if the function returns
        `None`.
        """
        @wraps(fn)
        def inner(*args: Any, **kwargs: Any) -> Result[T]:
            parts: List[Result[Any]] = []
            gen = fn(*args, **kwargs)
            try:
                while True:
                    parts.append(next(gen))
            except StopIteration as ex:
                value = ex.value
            return cls(None, value, parts, fn)
        return inner

    def __init__(self, state: Optional[State] = None, value: Union[T, Unset] = UNSET,
                 parts: Iterable["Result[Any]"] = (), caller: Optional[Callable[..., Any]] = None):
        self._state = state
        self._value = value
        self.parts = tuple(parts)
        self.caller = "<unknown>"
        # Inspection magic to log the calling method, e.g. `module.sub:function`.
        name = None
        if not caller:
            frame = inspect.currentframe()
            try:
                name = frame.f_back.f_code.co_name
                caller = frame.f_back.f_globals[name]
            except (AttributeError, KeyError):
                pass
        if caller:
            self.caller = "{}:{}".format(caller.__module__, caller.__qualname__)
        elif name:
            self.caller = name

    @property
    def state(self) -> State:
        """
        Modification state of the unit of work.

        This may be set directly, computed from `parts`, or defaulted to `State.unchanged`.
        """
        if self._state:
            return self._state
        elif any(self.parts):
            if any(part.state == State.created for part in self.parts):
                return State.created
            else:
                return State.success
        else:
            return State.unchanged

    @state.setter
    def state(self, state: State) -> None:
        self._state = state

    @property
    def value(self) -> T:
        """
        Return value produced by the unit of work.

        Accessing this attribute will raise `ValueError` if no value has been set.
        """
        if isinstance(self._value, Unset):
            raise ValueError("No value set")
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self._value = value

    def __bool__(self) -> bool:
        return bool(self.state)

    def __iter__(self) -> Generator["Result[T]", None, "Result[T]"]:
        # Syntactic sugar used by `yield from` expressions in `Result.collect()`.
        yield self
        return self

    def __repr__(self) -> str:
        params = [str(self.state)]
        if not isinstance(self._value, Unset):
            params.append(repr(self._value))
        if self.parts:
            params.append("<{} parts>".format(len(self.parts)))
        return "{}({})".format(self.__class__.__name__, ", ".join(params))

    def __str__(self) -> str:
        tree = "{}: {}".format(self.caller, self.state.name)
        if not isinstance(self._value, Unset):
            tree = "{} {!r}".format(tree, self._value)
        if self.parts:
            for result in self.parts:
                tree += "\n    {}".format(str(result).replace("\n", "\n    "))
        return tree


def command(args: List[str], input_: Optional[str] = None, output: bool = False,
            check: bool = True, env: Optional[Mapping[str, str]] = None,
            stdin: Optional[IO[bytes]] = None) -> "subprocess.CompletedProcess[bytes]":
    """
    Create a subprocess to execute an external command.

    Input is either a string (`input_`) or an open binary file to stream from (`stdin`).  With
    `check` (the default), a non-zero exit raises `subprocess.CalledProcessError`.
    """
    if input_:
        LOG.debug("Exec: %r <<< %r", args, input_)
    elif stdin:
        LOG.debug("Exec: %r < %r", args, getattr(stdin, "name", stdin))
    else:
        LOG.debug("Exec: %r", args)
    return subprocess.run(args, input=input_.encode("utf-8") if input_ else None, stdin=stdin,
                          stdout=subprocess.PIPE if output else None,
                          stderr=subprocess.PIPE if output else None,
                          env=dict(env) if env is not None else None, check=check)
