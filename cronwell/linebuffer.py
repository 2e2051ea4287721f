from collections import deque

from .logstream import Chunk

MAX_LINE_BYTES = 65536


class LineRingBuffer:
    """
    Reassembles raw output chunks into lines and keeps only the most
    recent `max_lines` of them.

    Lines are split on b"\\n" only; a "\\r" stays part of the line. Lines
    that are not valid UTF-8 are dropped. An unterminated trailing line is
    kept aside until more bytes arrive, and is flushed as a final line by
    `into_sequence()`.

    A line longer than `max_line_bytes` keeps only its first
    `max_line_bytes` bytes; the rest of it is discarded as it arrives.
    """

    def __init__(self, max_lines: int, max_line_bytes: int = MAX_LINE_BYTES):
        if max_lines < 0:
            raise ValueError(f"max_lines must be >= 0, got {max_lines}")
        if max_line_bytes < 1:
            raise ValueError(f"max_line_bytes must be >= 1, got {max_line_bytes}")
        self.max_lines = max_lines
        self.max_line_bytes = max_line_bytes
        self.lines = deque(maxlen=max_lines)
        self._partial = bytearray()
        self._truncated = False
        self._consumed = False

    def __len__(self):
        return len(self.lines)

    @property
    def pending_bytes(self) -> int:
        """Bytes of the current unterminated line held in memory."""
        return len(self._partial)

    def append_chunk(self, chunk):
        if self._consumed:
            raise RuntimeError("line buffer was already consumed")
        data = chunk.data if isinstance(chunk, Chunk) else chunk
        if not data:
            return
        # Only the new bytes are split; the held partial joins the first piece.
        first, *rest = bytes(data).split(b"\n")
        self._hold(first)
        if not rest:
            return
        self._flush_partial()
        *complete, tail = rest
        for raw in complete:
            self._push(raw[:self.max_line_bytes], len(raw) > self.max_line_bytes)
        self._hold(tail)

    def _hold(self, data):
        room = self.max_line_bytes - len(self._partial)
        if len(data) > room:
            data = data[:room]
            self._truncated = True
        self._partial += data

    def _flush_partial(self):
        self._push(self._partial, self._truncated)
        self._partial = bytearray()
        self._truncated = False

    def _push(self, raw, truncated=False):
        raw = bytes(raw)
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            # The cap may cut a multibyte character in half.
            if not (truncated and e.end == len(raw) and len(raw) - e.start < 4):
                return
            try:
                line = raw[:e.start].decode("utf-8")
            except UnicodeDecodeError:
                return
        self.lines.append(line)

    def into_sequence(self) -> list[str]:
        """Flush any trailing partial line and hand over the retained lines."""
        if self._consumed:
            raise RuntimeError("line buffer was already consumed")
        if self._partial:
            self._flush_partial()
        self._consumed = True
        rv = list(self.lines)
        self.lines.clear()
        return rv
