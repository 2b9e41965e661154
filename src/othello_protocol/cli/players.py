from __future__ import annotations

import logging
import shlex
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import IO, Any, Dict, FrozenSet, List, Optional

from othello_protocol.engine.base_strategy import MoveStrategy
from othello_protocol.engine.registry import build_strategy
from othello_protocol.protocol.channel import StreamChannel, bounded_timeout
from othello_protocol.protocol.constants import KNOWN_VERSIONS
from othello_protocol.protocol.errors import (
    AIRuntimeError,
    ChannelClosed,
    MalformedMessage,
    NoMoveAvailable,
    Timeout,
)
from othello_protocol.protocol.messages import TurnRequest, TurnResponse
from othello_protocol.protocol.turn import run_with_deadline
from othello_protocol.protocol.version import Session, VersionNegotiator

logger = logging.getLogger(__name__)

BUILTIN_PREFIX = "builtin:"


@dataclass
class PlayerSpec:
    """How to build one side of a match.

    ``key`` is either ``builtin:<strategy>`` or an AI program command line.
    """

    key: str
    label: str
    time_limit_ms: int = 1000
    version: str | None = None
    supported_versions: FrozenSet[str] = frozenset(KNOWN_VERSIONS)
    handshake_timeout_ms: int = 5000
    search_depth: int | None = None
    think_delay: float | None = None
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_builtin(self) -> bool:
        return self.key.startswith(BUILTIN_PREFIX)


class Player(ABC):
    """GUI-side view of an AI: give it a request, get a response back."""

    def __init__(self, label: str, time_limit_ms: int):
        self.label = label
        self.time_limit_ms = time_limit_ms

    def start(self):
        """Prepare the player before its first turn."""

    def stop(self):
        """Release the player's resources."""

    @abstractmethod
    def request_move(self, request: TurnRequest) -> TurnResponse:
        """Return the AI's answer or raise a ProtocolError."""


class StrategyPlayer(Player):
    """Runs a move strategy in-process under the same deadline rules."""

    def __init__(self, label: str, strategy: MoveStrategy, time_limit_ms: int):
        super().__init__(label, time_limit_ms)
        self.strategy = strategy

    def request_move(self, request: TurnRequest) -> TurnResponse:
        response, timed_out = run_with_deadline(self.strategy, request, request.max_time_ms / 1000.0)
        if timed_out:
            raise Timeout(request.max_time_ms, f"{self.label} did not answer in time")
        if response is None:
            raise NoMoveAvailable(f"{self.label} chose no move")
        return response


class ProgramPlayer(Player):
    """
    Speaks the protocol to an external AI program.
    Legacy programs are started once per turn and answer on exit;
    versioned programs stay alive and announce their version first.
    """

    def __init__(self, spec: PlayerSpec):
        super().__init__(spec.label, spec.time_limit_ms)
        self.spec = spec
        self.command: List[str] = shlex.split(spec.key)
        self.session: Optional[Session] = None
        self._process: Optional[subprocess.Popen] = None
        self._channel: Optional[StreamChannel] = None
        self._stderr: Optional[IO[str]] = None

    @property
    def versioned(self) -> bool:
        return self.spec.version is not None

    def start(self):
        if not self.versioned:
            self.session = VersionNegotiator().legacy()
            return

        self._stderr = tempfile.TemporaryFile(mode="w+", encoding="utf-8")
        self._process = self._spawn(stderr=self._stderr, bufsize=1)
        self._channel = StreamChannel(self._process.stdout, self._process.stdin)
        negotiator = VersionNegotiator(self.spec.supported_versions)
        try:
            self.session = negotiator.accept(self._channel, self.spec.handshake_timeout_ms / 1000.0)
        except Exception:
            self.stop()
            raise
        logger.info("%s: negotiated %s", self.label, self.session.version)

    def stop(self):
        if self._process is not None:
            # end of input is the program's signal to exit
            try:
                self._process.stdin.close()
            except OSError:
                logger.debug("%s: stdin already closed", self.label)
            try:
                self._process.wait(timeout=1)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()
            self._process = None
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        if self._stderr is not None:
            self._stderr.close()
            self._stderr = None

    def request_move(self, request: TurnRequest) -> TurnResponse:
        if self.session is None:
            raise RuntimeError(f"{self.label} was not started")
        if self.versioned:
            return self._request_persistent(request)
        return self._request_oneshot(request)

    def _request_oneshot(self, request: TurnRequest) -> TurnResponse:
        codec = self.session.codec
        payload = "".join(f"{line}\n" for line in codec.encode_request(request))
        process = self._spawn(stderr=subprocess.PIPE)
        try:
            output, stderr = process.communicate(payload, timeout=bounded_timeout(request.max_time_ms / 1000.0))
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise Timeout(request.max_time_ms, f"{self.label} exceeded its time limit") from exc

        if process.returncode != 0:
            raise AIRuntimeError(process.returncode, stderr)
        return codec.decode_response(output.splitlines())

    def _request_persistent(self, request: TurnRequest) -> TurnResponse:
        codec = self.session.codec
        try:
            if self._channel.has_pending_line():
                stray = self._channel.read_line(timeout=0)
                raise MalformedMessage(
                    f"{self.label} sent an extra line {stray!r} after its previous move; "
                    f"{codec.shape.name} responses allow {codec.shape.max_response_lines} line"
                )
            self._channel.write_lines(codec.encode_request(request))
            line = self._channel.read_line(timeout=request.max_time_ms / 1000.0)
        except Timeout:
            # the stream can no longer be trusted to be in step
            self._process.kill()
            raise
        except ChannelClosed as exc:
            raise AIRuntimeError(self._process.poll(), self._read_stderr()) from exc
        return codec.decode_response([line])

    def _spawn(self, **kwargs) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                **kwargs,
            )
        except OSError as exc:
            raise AIRuntimeError(None, f"Unable to start {self.spec.key!r}: {exc}") from exc

    def _read_stderr(self) -> str:
        if self._stderr is None:
            return ""
        self._stderr.seek(0)
        return self._stderr.read()


def build_player(spec: PlayerSpec) -> Player:
    if spec.is_builtin:
        strategy = build_strategy(
            spec.key[len(BUILTIN_PREFIX):],
            search_depth=spec.search_depth,
            think_delay=spec.think_delay,
            **spec.options,
        )
        return StrategyPlayer(spec.label, strategy, spec.time_limit_ms)
    return ProgramPlayer(spec)
