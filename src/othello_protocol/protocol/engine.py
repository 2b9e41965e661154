from __future__ import annotations

import logging
from typing import Callable, List, Optional

from othello_protocol.engine.base_strategy import MoveStrategy
from othello_protocol.protocol.channel import LineChannel
from othello_protocol.protocol.config import EngineConfig
from othello_protocol.protocol.errors import ChannelClosed
from othello_protocol.protocol.turn import TurnOutcome, TurnSession
from othello_protocol.protocol.version import Session, VersionNegotiator

logger = logging.getLogger(__name__)


class ProtocolEngine:
    """
    AI-side driver: handshake once, then answer turns until the
    channel closes or ``should_stop`` reports the game is over.
    """

    def __init__(
        self,
        channel: LineChannel,
        strategy: MoveStrategy,
        config: Optional[EngineConfig] = None,
        should_stop: Optional[Callable[[TurnOutcome], bool]] = None,
    ):
        self.channel = channel
        self.strategy = strategy
        self.config = config or EngineConfig()
        self.should_stop = should_stop
        self.session: Optional[Session] = None
        self.on_turn: Optional[Callable[[TurnOutcome], None]] = None

    def set_callback(self, callback: Callable[[TurnOutcome], None]):
        """Set the callback invoked after every completed turn."""
        self.on_turn = callback

    def handshake(self) -> Session:
        version = self.config.version
        if version is None:
            self.session = VersionNegotiator().legacy()
        else:
            self.session = VersionNegotiator([version]).announce(self.channel, version)
        return self.session

    def run(self) -> List[TurnOutcome]:
        session = self.session or self.handshake()
        outcomes: List[TurnOutcome] = []

        while True:
            try:
                outcome = TurnSession(session, self.strategy, self.config).execute(self.channel)
            except ChannelClosed:
                logger.info("Channel closed after %d turns", session.turns)
                break

            outcomes.append(outcome)
            if self.on_turn:
                self.on_turn(outcome)
            if self.should_stop and self.should_stop(outcome):
                logger.info("Stopping after turn %d", outcome.turn)
                break
        return outcomes
