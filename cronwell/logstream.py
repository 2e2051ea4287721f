import enum
import logging
import threading
from dataclasses import dataclass
from queue import Queue

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16384


class Stream(enum.Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class Chunk:
    origin: Stream
    data: bytes


# Pushed by a source once it has stopped producing.
_DONE = object()


class ChunkSource:
    """
    Reads one stream of a child process in fixed-size chunks and pushes
    them, tagged with `origin`, into `q`. End-of-stream and read errors
    both just end the source.
    """

    def __init__(self, stream, origin: Stream, q: Queue):
        self.stream = stream
        self.origin = origin
        self.q = q
        self.thread = None

    def start(self):
        if self.stream is None:
            self.q.put(_DONE)
            return
        self.thread = threading.Thread(
            target=self.run, name=f"cronwell-{self.origin.value}", daemon=True
        )
        self.thread.start()

    def run(self):
        # read1 returns whatever a single read produced instead of waiting
        # for a full buffer.
        read = getattr(self.stream, "read1", None) or self.stream.read
        try:
            while True:
                try:
                    data = read(CHUNK_SIZE)
                except (OSError, ValueError) as e:
                    logger.debug("read error on %s: %s", self.origin.value, e)
                    break
                if not data:
                    break
                self.q.put(Chunk(self.origin, bytes(data)))
        finally:
            try:
                self.stream.close()
            except (OSError, ValueError):
                pass
            self.q.put(_DONE)

    def join(self):
        if self.thread is not None:
            self.thread.join()


class OutputMultiplexer:
    """
    Merges the stdout and stderr of a child into a single iterator of
    chunks. Iteration ends once both streams are exhausted and cannot be
    restarted.
    """

    def __init__(self, stdout, stderr):
        self.q = Queue()
        self.sources = [
            ChunkSource(stdout, Stream.STDOUT, self.q),
            ChunkSource(stderr, Stream.STDERR, self.q),
        ]
        self._started = False
        self._pending = len(self.sources)

    @classmethod
    def for_process(cls, proc):
        return cls(proc.stdout, proc.stderr)

    def start(self):
        if not self._started:
            self._started = True
            for source in self.sources:
                source.start()
        return self

    def __iter__(self):
        return self

    def __next__(self) -> Chunk:
        self.start()
        while self._pending:
            item = self.q.get()
            if item is _DONE:
                self._pending -= 1
                continue
            return item
        for source in self.sources:
            source.join()
        raise StopIteration
