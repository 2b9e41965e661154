from __future__ import annotations

import logging
import queue
import threading
from abc import ABC, abstractmethod
from typing import IO, Iterable, List, Optional

from othello_protocol.protocol.errors import ChannelClosed, IncompleteMessage, Timeout

logger = logging.getLogger(__name__)

_EOF = None

# poll() takes an int of milliseconds; lock waits stop at TIMEOUT_MAX
MAX_WAIT_SECONDS = min(threading.TIMEOUT_MAX, (2**31 - 1) // 1000)


def bounded_timeout(seconds: Optional[float]) -> Optional[float]:
    """Clamp a wait so huge time limits still fit the platform's timer."""
    if seconds is None:
        return None
    return min(seconds, MAX_WAIT_SECONDS)


class LineChannel(ABC):
    """
    Bidirectional newline-framed text channel.
    Decouples the protocol engine from whether the peer is a pipe,
    a subprocess or a socket.
    """

    @abstractmethod
    def read_line(self, timeout: Optional[float] = None) -> str:
        """Return the next line without its terminator.

        Raises ChannelClosed at end of stream and Timeout when ``timeout``
        seconds pass without a complete line.
        """

    @abstractmethod
    def write_lines(self, lines: Iterable[str]):
        """Send lines, each terminated by a newline, and flush."""

    @abstractmethod
    def close(self):
        """Release the underlying streams."""

    def has_pending_line(self) -> bool:
        """True when a line has arrived that nobody has read yet."""
        return False

    def write_line(self, line: str):
        self.write_lines([line])

    def read_lines(self, count: int, timeout: Optional[float] = None) -> List[str]:
        """Read a whole message of ``count`` lines.

        End of stream before the first line is a clean close; anywhere
        later it truncates the message.
        """
        lines = [self.read_line(timeout)]
        while len(lines) < count:
            try:
                lines.append(self.read_line(timeout))
            except ChannelClosed as exc:
                raise IncompleteMessage(
                    f"Channel closed after {len(lines)} of {count} message lines"
                ) from exc
        return lines


class StreamChannel(LineChannel):
    """Channel over a pair of text streams (stdio, subprocess pipes)."""

    def __init__(self, reader: IO[str], writer: IO[str]):
        self._reader = reader
        self._writer = writer
        self._lines: "queue.Queue[Optional[str]]" = queue.Queue()
        self._pump: Optional[threading.Thread] = None
        self._closed = False
        self._lock = threading.Lock()

    def read_line(self, timeout: Optional[float] = None) -> str:
        if self._closed:
            raise ChannelClosed("Channel already reached end of stream")
        self._ensure_pump()
        try:
            line = self._lines.get(timeout=bounded_timeout(timeout))
        except queue.Empty as exc:
            raise Timeout(int(timeout * 1000), "no line received") from exc
        if line is _EOF:
            self._closed = True
            raise ChannelClosed("Peer closed the channel")
        return line

    def has_pending_line(self) -> bool:
        return not self._lines.empty()

    def write_lines(self, lines: Iterable[str]):
        payload = "".join(f"{line}\n" for line in lines)
        try:
            self._writer.write(payload)
            self._writer.flush()
        except (BrokenPipeError, ValueError) as exc:
            raise ChannelClosed("Peer is no longer reading") from exc

    def close(self):
        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except (OSError, ValueError):
                logger.debug("Ignoring error while closing %r", stream)

    # ------------------------------------------------------------------
    # Reader thread
    # ------------------------------------------------------------------
    def _ensure_pump(self):
        with self._lock:
            if self._pump is None:
                self._pump = threading.Thread(target=self._pump_lines, daemon=True)
                self._pump.start()

    def _pump_lines(self):
        try:
            for line in iter(self._reader.readline, ""):
                self._lines.put(line.rstrip("\r\n"))
        except (OSError, ValueError):
            logger.debug("Reader stream failed", exc_info=True)
        finally:
            self._lines.put(_EOF)
