from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, Optional

from othello_protocol.protocol.channel import LineChannel
from othello_protocol.protocol.constants import KNOWN_VERSIONS
from othello_protocol.protocol.errors import ChannelClosed, VersionMismatch
from othello_protocol.protocol.messages import MessageCodec

logger = logging.getLogger(__name__)

VERSION_TAG = re.compile(r"^v\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?$")


class Session:
    """Negotiated version plus the turn counter for one game exchange."""

    def __init__(self, version: Optional[str]):
        self._version = version
        self._codec = MessageCodec(version)
        self.turns = 0

    @property
    def version(self) -> Optional[str]:
        return self._version

    @property
    def is_legacy(self) -> bool:
        return self._version is None

    @property
    def codec(self) -> MessageCodec:
        return self._codec

    def next_turn(self) -> int:
        self.turns += 1
        return self.turns

    def __repr__(self) -> str:
        label = self._version or "legacy"
        return f"Session(version={label}, turns={self.turns})"


class NegotiationState(Enum):
    AWAITING_HANDSHAKE = "awaiting-handshake"
    NEGOTIATED = "negotiated"


class VersionNegotiator:
    """One-shot handshake: the AI announces a tag, the GUI accepts or refuses it."""

    def __init__(self, supported_versions: Iterable[str] = KNOWN_VERSIONS):
        self.supported_versions = frozenset(supported_versions)
        self.state = NegotiationState.AWAITING_HANDSHAKE
        self.session: Optional[Session] = None

    def validate(self, tag: str) -> str:
        """Return the stripped tag if it is one of the supported versions."""
        tag = tag.strip()
        if tag in self.supported_versions:
            return tag
        if not VERSION_TAG.match(tag):
            raise VersionMismatch(f"Malformed version tag {tag!r}")
        supported = ", ".join(sorted(self.supported_versions))
        raise VersionMismatch(f"Version {tag!r} is not supported (supported: {supported})")

    def accept(self, channel: LineChannel, timeout: Optional[float] = None) -> Session:
        """GUI side: read the AI's tag and bind a session to it."""
        self._require_pending()
        try:
            tag = channel.read_line(timeout)
        except ChannelClosed as exc:
            raise VersionMismatch("Channel closed before the version handshake") from exc
        return self._bind(self.validate(tag))

    def announce(self, channel: LineChannel, version: str) -> Session:
        """AI side: send our tag and bind a session to it."""
        self._require_pending()
        tag = self.validate(version)
        if not tag or len(tag.split()) != 1:
            raise VersionMismatch(f"Version tag {tag!r} cannot be sent as one token")
        channel.write_line(tag)
        return self._bind(tag)

    def legacy(self) -> Session:
        """Skip the handshake and bind a session to the legacy shape."""
        self._require_pending()
        return self._bind(None)

    def _require_pending(self):
        if self.state is NegotiationState.NEGOTIATED:
            raise RuntimeError("Protocol version is already negotiated")

    def _bind(self, version: Optional[str]) -> Session:
        self.session = Session(version)
        self.state = NegotiationState.NEGOTIATED
        logger.info("Protocol session bound to %s", version or "legacy shape")
        return self.session
