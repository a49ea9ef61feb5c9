"""Scripted executor for tests and dry runs.

Records every call and replays queued responses instead of spawning
processes. Operations without a queued response succeed with empty output.
Streaming calls share the queue of their captured sibling, so scripting
``build`` covers both ``build`` and ``build_streaming``.

A queued response may be a :class:`CommandOutput`, a bare exit status, an
exception instance (raised), or a callable receiving the call arguments and
returning either of the first two.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Self, TypeAlias

from trellis.models import CommandOutput

Response: TypeAlias = (
    CommandOutput | int | BaseException | Callable[[tuple[str, ...]], CommandOutput | int]
)


@dataclass(frozen=True, slots=True)
class ExecutorCall:
    operation: str
    args: tuple[str, ...]
    streaming: bool = False


@dataclass(slots=True)
class ScriptedExecutor:
    name: str = "scripted"
    container_commands: frozenset[str] | None = None
    calls: list[ExecutorCall] = field(default_factory=list)
    _queues: dict[str, deque[Response]] = field(default_factory=dict, repr=False)

    def script(self, operation: str, *responses: Response) -> Self:
        self._queues.setdefault(operation, deque()).extend(responses)
        return self

    def calls_for(self, operation: str) -> list[ExecutorCall]:
        return [call for call in self.calls if call.operation == operation]

    def operations(self) -> list[str]:
        return [call.operation for call in self.calls]

    def build(self, args: Sequence[str]) -> CommandOutput:
        return self._capture("build", args)

    def build_streaming(self, args: Sequence[str]) -> int:
        return self._stream("build", args)

    def run(self, args: Sequence[str]) -> CommandOutput:
        return self._capture("run", args)

    def run_streaming(self, args: Sequence[str]) -> int:
        return self._stream("run", args)

    def images(self, args: Sequence[str]) -> CommandOutput:
        return self._capture("images", args)

    def rmi(self, args: Sequence[str]) -> CommandOutput:
        return self._capture("rmi", args)

    def commit(self, args: Sequence[str]) -> CommandOutput:
        return self._capture("commit", args)

    def bootc(self, args: Sequence[str]) -> CommandOutput:
        return self._capture("bootc", args)

    def bootc_streaming(self, args: Sequence[str]) -> int:
        return self._stream("bootc", args)

    def execute(self, command: str, args: Sequence[str]) -> CommandOutput:
        return self._capture("execute", (command, *args))

    def check_command_in_container(self, image: str, command: str) -> bool:
        self.calls.append(ExecutorCall(operation="check_command", args=(image, command)))
        if self.container_commands is None:
            return True
        return command in self.container_commands

    def _capture(self, operation: str, args: Iterable[str]) -> CommandOutput:
        result = self._respond(operation, tuple(args), streaming=False)
        if isinstance(result, int):
            return CommandOutput(returncode=result)
        return result

    def _stream(self, operation: str, args: Iterable[str]) -> int:
        result = self._respond(operation, tuple(args), streaming=True)
        if isinstance(result, CommandOutput):
            return result.returncode
        return result

    def _respond(
        self, operation: str, args: tuple[str, ...], *, streaming: bool
    ) -> CommandOutput | int:
        self.calls.append(ExecutorCall(operation=operation, args=args, streaming=streaming))
        queue = self._queues.get(operation)
        if not queue:
            return CommandOutput(returncode=0)
        response = queue.popleft()
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(args)
        return response
