"""Tests for free-port selection and readiness polling."""

from __future__ import annotations

import socket
from unittest.mock import patch

import pytest

from lse.mocks import MockClock
from lse.port_waiter import (
    NoFreePortError,
    find_free_port,
    port_accepts_connection,
    port_is_free,
    wait_for_port,
)


@pytest.fixture
def listening_socket():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock
    sock.close()


class TestFindFreePort:
    def test_skips_port_in_use(self, listening_socket):
        taken = listening_socket.getsockname()[1]
        assert not port_is_free(taken)
        expected = next(p for p in range(taken + 1, taken + 21) if port_is_free(p))
        assert find_free_port(taken, taken + 20) == expected

    def test_returns_first_free_port_after_taken_ones(self):
        taken = {9333, 9334, 9336}
        with patch("lse.port_waiter.port_is_free", side_effect=lambda port, host: port not in taken) as mock_free:
            assert find_free_port(9333) == 9335
        assert [c.args[0] for c in mock_free.call_args_list] == [9333, 9334, 9335]

    def test_range_exhausted(self, listening_socket):
        taken = listening_socket.getsockname()[1]
        with pytest.raises(NoFreePortError):
            find_free_port(taken, taken)

    def test_no_free_port_is_an_oserror(self):
        assert issubclass(NoFreePortError, OSError)

    @pytest.mark.parametrize("start,end", [(0, 10), (70000, 70010), (9333, 9000)])
    def test_invalid_range(self, start, end):
        with pytest.raises(ValueError):
            find_free_port(start, end)

    @patch("lse.port_waiter.port_is_free")
    def test_default_range_is_bounded(self, mock_free):
        mock_free.return_value = False
        with pytest.raises(NoFreePortError):
            find_free_port(9333)
        assert mock_free.call_count == 101


class TestWaitForPort:
    def test_listening_port_is_ready(self, listening_socket):
        port = listening_socket.getsockname()[1]
        assert port_accepts_connection(port)
        assert wait_for_port(port, timeout_s=2.0)

    def test_exited_process_returns_immediately(self):
        clock = MockClock()
        with patch("lse.port_waiter.port_accepts_connection") as mock_conn:
            assert not wait_for_port(9333, has_exited=lambda: True, clock=clock)
        mock_conn.assert_not_called()
        assert clock.sleep_calls == []

    @patch("lse.port_waiter.port_accepts_connection", return_value=False)
    def test_times_out(self, _mock_conn):
        clock = MockClock()
        assert not wait_for_port(9333, timeout_s=1.0, backoff_s=0.25, clock=clock)
        assert clock.sleep_calls == [0.25, 0.25, 0.25, 0.25]

    @patch("lse.port_waiter.port_accepts_connection", side_effect=[False, False, True])
    def test_ready_after_retries(self, mock_conn):
        clock = MockClock()
        assert wait_for_port(9333, timeout_s=10.0, backoff_s=0.5, clock=clock)
        assert mock_conn.call_count == 3
        assert clock.sleep_calls == [0.5, 0.5]

    @patch("lse.port_waiter.port_accepts_connection", return_value=False)
    def test_process_exit_during_wait(self, _mock_conn):
        clock = MockClock()
        polls = iter([False, False, True])
        assert not wait_for_port(9333, timeout_s=60.0, has_exited=lambda: next(polls), clock=clock)
        assert len(clock.sleep_calls) == 2
