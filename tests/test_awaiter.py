import base64
import hashlib
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

from tlogtiles.awaiter import PublicationAwaiter
from tlogtiles.checkpoint import CheckpointError, parse_checkpoint

TEST_TIMEOUT = 0.5
POLL = 0.01
GOOD_CP = b"origin\n3\nqINS1GRFhWHwdkUeqLEoP4yEMkTBBzxBkGwGQlVlVcs=\n"


@dataclass
class _Index:
    index: int
    is_dup: bool = False


def _reader(body=None, error=None, delay=0.0):
    def read():
        time.sleep(delay)
        if error is not None:
            raise error
        return body

    return read


def _future(index, error=None, delay=0.0):
    def resolve():
        time.sleep(delay)
        if error is not None:
            raise error
        return _Index(index)

    return resolve


def test_future_error():
    with PublicationAwaiter(_reader(GOOD_CP), POLL) as awaiter:
        with pytest.raises(RuntimeError, match="you have no future"):
            awaiter.await_index(
                _future(0, error=RuntimeError("you have no future")), TEST_TIMEOUT
            )


def test_future_takes_too_long():
    with PublicationAwaiter(_reader(GOOD_CP), POLL) as awaiter:
        with pytest.raises(TimeoutError):
            awaiter.await_index(_future(2, delay=TEST_TIMEOUT), TEST_TIMEOUT)


def test_checkpoint_is_big_enough():
    with PublicationAwaiter(_reader(GOOD_CP), POLL) as awaiter:
        result, cp = awaiter.await_index(_future(2), TEST_TIMEOUT)
    assert result.index == 2
    assert cp == GOOD_CP


def test_checkpoint_is_too_small():
    body = b"origin\n2\nthisisdefinitelyahash\n"
    with PublicationAwaiter(_reader(body), POLL) as awaiter:
        with pytest.raises((TimeoutError, CheckpointError)):
            awaiter.await_index(_future(2), TEST_TIMEOUT)


def test_checkpoint_too_small_with_valid_hash_times_out():
    body = b"origin\n2\nqINS1GRFhWHwdkUeqLEoP4yEMkTBBzxBkGwGQlVlVcs=\n"
    with PublicationAwaiter(_reader(body), POLL) as awaiter:
        with pytest.raises(TimeoutError):
            awaiter.await_index(_future(2), TEST_TIMEOUT)


def test_checkpoint_takes_too_long():
    body = b"origin\n3\nthisisdefinitelyahash\n"
    with PublicationAwaiter(_reader(body, delay=TEST_TIMEOUT), POLL) as awaiter:
        with pytest.raises((TimeoutError, CheckpointError)):
            awaiter.await_index(_future(2), TEST_TIMEOUT)


def test_checkpoint_takes_a_few_polls_then_returns():
    with PublicationAwaiter(_reader(GOOD_CP, delay=0.04), POLL) as awaiter:
        result, cp = awaiter.await_index(_future(2), TEST_TIMEOUT)
    assert result.index == 2
    assert cp == GOOD_CP


def test_checkpoint_takes_a_few_polls_then_fails():
    error = OSError("sorry but the checkpoint is in another castle")
    with PublicationAwaiter(_reader(error=error, delay=0.04), POLL) as awaiter:
        with pytest.raises(RuntimeError, match="another castle"):
            awaiter.await_index(_future(2), TEST_TIMEOUT)


@pytest.mark.parametrize(
    "body", [b"origin22nonewlineshere", b"origin\ntwo\nnonewlineshere"]
)
def test_checkpoint_is_garbled(body):
    with PublicationAwaiter(_reader(body), POLL) as awaiter:
        with pytest.raises(CheckpointError):
            awaiter.await_index(_future(2), TEST_TIMEOUT)


def test_missing_checkpoint_fails_waiters():
    with PublicationAwaiter(_reader(error=FileNotFoundError("checkpoint")), POLL) as awaiter:
        with pytest.raises(CheckpointError):
            awaiter.await_index(_future(0), TEST_TIMEOUT)


def test_plain_int_future():
    with PublicationAwaiter(_reader(GOOD_CP), POLL) as awaiter:
        result, cp = awaiter.await_index(lambda: 1, TEST_TIMEOUT)
    assert (result, cp) == (1, GOOD_CP)


def test_cached_checkpoint_served_after_close():
    awaiter = PublicationAwaiter(_reader(GOOD_CP), POLL).start()
    awaiter.await_index(lambda: 2, TEST_TIMEOUT)
    awaiter.close()
    result, cp = awaiter.await_index(lambda: 0, 0)
    assert (result, cp) == (0, GOOD_CP)


def test_close_releases_waiters():
    awaiter = PublicationAwaiter(_reader(b"origin\n0\n\n"), POLL).start()
    with ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(awaiter.await_index, lambda: 5, 5.0)
        time.sleep(0.05)
        awaiter.close()
        with pytest.raises(RuntimeError, match="closed"):
            pending.result(timeout=5)


def test_await_after_close_without_cache_fails():
    awaiter = PublicationAwaiter(_reader(GOOD_CP), POLL)
    awaiter.close()
    with pytest.raises(RuntimeError, match="closed"):
        awaiter.await_index(lambda: 0, 1.0)


def test_multi_client():
    size = 0

    def read_checkpoint():
        nonlocal size
        time.sleep(0.003)
        size += 10
        digest = hashlib.sha256(str(size).encode()).digest()
        return f"example.com/log/testdata\n{size}\n".encode() + base64.b64encode(digest) + b"\n"

    def make_future(index):
        def resolve():
            time.sleep(0.015)
            return _Index(index)

        return resolve

    with PublicationAwaiter(read_checkpoint, POLL) as awaiter:
        with ThreadPoolExecutor(max_workers=300) as pool:
            pending = {
                i: pool.submit(awaiter.await_index, make_future(i), 10.0) for i in range(300)
            }
            results = {i: f.result() for i, f in pending.items()}

    for index, (result, cp) in results.items():
        assert result.index == index
        origin, cp_size, _ = parse_checkpoint(cp)
        assert origin == "example.com/log/testdata"
        assert cp_size > index