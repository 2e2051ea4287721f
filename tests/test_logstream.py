import io
import os
import subprocess
import sys
import threading
from queue import Queue

from hypothesis import given, settings
from hypothesis import strategies as st

from cronwell.logstream import CHUNK_SIZE, Chunk, ChunkSource, OutputMultiplexer, Stream


class FailingStream:
    def __init__(self, first: bytes):
        self.first = first
        self.reads = 0
        self.closed = False

    def read1(self, n):
        self.reads += 1
        if self.reads == 1:
            return self.first
        raise OSError("boom")

    def close(self):
        self.closed = True


def _drain(q: Queue):
    items = []
    while not q.empty():
        items.append(q.get_nowait())
    return items


def test_chunk_source_reads_until_eof():
    q = Queue()
    stream = io.BytesIO(b"x" * (CHUNK_SIZE + 10))
    source = ChunkSource(stream, Stream.STDOUT, q)
    source.run()

    items = _drain(q)
    chunks = [i for i in items if isinstance(i, Chunk)]
    assert [len(c.data) for c in chunks] == [CHUNK_SIZE, 10]
    assert all(c.origin is Stream.STDOUT for c in chunks)
    # completion marker comes last
    assert not isinstance(items[-1], Chunk)
    assert stream.closed


def test_chunk_source_stops_on_read_error():
    q = Queue()
    stream = FailingStream(b"partial")
    ChunkSource(stream, Stream.STDERR, q).run()

    items = _drain(q)
    assert items[0] == Chunk(Stream.STDERR, b"partial")
    assert len(items) == 2
    assert stream.closed


def test_missing_stream_completes_immediately():
    mux = OutputMultiplexer(None, None)
    assert list(mux) == []


def test_multiplexer_with_one_stream_missing():
    mux = OutputMultiplexer(io.BytesIO(b"only stdout"), None)
    assert list(mux) == [Chunk(Stream.STDOUT, b"only stdout")]


def test_multiplexer_is_not_restartable():
    mux = OutputMultiplexer(io.BytesIO(b"a"), io.BytesIO(b"b"))
    assert len(list(mux)) == 2
    assert list(mux) == []


def test_read_error_looks_like_end_of_stream():
    mux = OutputMultiplexer(FailingStream(b"out"), io.BytesIO(b"err"))
    chunks = list(mux)
    assert sorted(c.data for c in chunks) == [b"err", b"out"]


@settings(max_examples=30, deadline=None)
@given(st.lists(st.integers(1, 3 * CHUNK_SIZE), max_size=8))
def test_per_stream_order_is_preserved(sizes):
    out_r, out_w = os.pipe()
    err_r, err_w = os.pipe()

    def writer(fd, fill):
        with os.fdopen(fd, "wb", buffering=0) as f:
            for i, size in enumerate(sizes):
                f.write(bytes([fill + i % 10]) * size)

    expected_out = b"".join(bytes([ord("a") + i % 10]) * s for i, s in enumerate(sizes))
    expected_err = b"".join(bytes([ord("A") + i % 10]) * s for i, s in enumerate(sizes))

    mux = OutputMultiplexer(os.fdopen(out_r, "rb"), os.fdopen(err_r, "rb")).start()
    writers = [
        threading.Thread(target=writer, args=(out_w, ord("a"))),
        threading.Thread(target=writer, args=(err_w, ord("A"))),
    ]
    for t in writers:
        t.start()

    chunks = list(mux)
    for t in writers:
        t.join()

    out = b"".join(c.data for c in chunks if c.origin is Stream.STDOUT)
    err = b"".join(c.data for c in chunks if c.origin is Stream.STDERR)
    assert out == expected_out
    assert err == expected_err
    assert all(0 < len(c.data) <= CHUNK_SIZE for c in chunks)


def test_multiplexes_a_real_child_process():
    script = (
        "import sys\n"
        "for i in range(200):\n"
        "    sys.stdout.write('out %d\\n' % i); sys.stdout.flush()\n"
        "    sys.stderr.write('err %d\\n' % i); sys.stderr.flush()\n"
    )
    with subprocess.Popen(
        [sys.executable, "-c", script],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    ) as proc:
        chunks = list(OutputMultiplexer.for_process(proc))
        assert proc.wait() == 0

    out = b"".join(c.data for c in chunks if c.origin is Stream.STDOUT).decode()
    err = b"".join(c.data for c in chunks if c.origin is Stream.STDERR).decode()
    assert out.splitlines() == [f"out {i}" for i in range(200)]
    assert err.splitlines() == [f"err {i}" for i in range(200)]
