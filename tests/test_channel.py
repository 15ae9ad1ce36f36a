"""Unit tests for CommandChannel and connection acquisition."""
import unittest
from unittest.mock import MagicMock, patch

from megalink.device.channel import CommandChannel, acquire_connection
from megalink.errors import (
    ChunkRejected,
    MalformedResponse,
    ReadTimeout,
    TransportError,
    TransportUnavailable,
)
from tests.fakes import FakeConnection, FakeProvider, LoopbackConnection, frame


class TestAcquireConnection(unittest.TestCase):
    """Tests for acquiring and draining a connection."""

    def test_drains_stale_bytes(self):
        """Test that leftover bytes are read and discarded until a read comes back empty."""
        connection = FakeConnection(stale=b"BOOT BANNER" * 300)
        provider = FakeProvider(connection)

        result = acquire_connection(provider)

        self.assertIs(result, connection)
        self.assertEqual(connection._stale, bytearray())
        reads = [e for e in connection.events if e[0] == "read"]
        self.assertEqual(reads[-1], ("read", 0))
        self.assertGreater(len(reads), 1)

    def test_timeouts_short_then_steady(self):
        """Test that the drain timeout is set first, then the steady-state timeout."""
        connection = FakeConnection()
        acquire_connection(FakeProvider(connection))
        self.assertEqual(connection.timeouts, [0.1, 1.0])

    def test_custom_timeouts(self):
        """Test overriding both timeouts."""
        connection = FakeConnection()
        acquire_connection(FakeProvider(connection), drain_timeout=0.01, read_timeout=3.0)
        self.assertEqual(connection.timeouts, [0.01, 3.0])

    def test_read_timeout_ends_drain(self):
        """Test that a read timeout ends the drain without closing the connection."""
        connection = MagicMock()
        connection.read.side_effect = [b"junk", ReadTimeout("timed out")]
        provider = MagicMock()
        provider.open.return_value = connection

        acquire_connection(provider)

        self.assertEqual(connection.read.call_count, 2)
        connection.set_timeout.assert_called_with(1.0)
        connection.close.assert_not_called()

    def test_provider_failure_propagates(self):
        """Test that a provider with no connection raises TransportUnavailable."""
        with self.assertRaises(TransportUnavailable):
            acquire_connection(FakeProvider())

    def test_transport_error_closes_connection(self):
        """Test that a stream failure while draining closes the connection."""
        connection = MagicMock()
        connection.read.side_effect = TransportError("unplugged")
        provider = MagicMock()
        provider.open.return_value = connection

        with self.assertRaises(TransportError):
            acquire_connection(provider)
        connection.close.assert_called_once()


class TestPrimitives(unittest.TestCase):
    """Tests for sending and receiving primitives."""

    def test_send_command_and_args(self):
        """Test frame and big-endian argument encoding on the wire."""
        connection = FakeConnection()
        channel = CommandChannel(connection)

        channel.send_command(0x29)
        channel.send_u8(1)
        channel.send_u16(0x0203)
        channel.send_u32(0x04050607)

        self.assertEqual(
            connection.written,
            frame(0x29) + b"\x01\x02\x03\x04\x05\x06\x07",
        )

    def test_recv_integers(self):
        """Test decoding big-endian integers of each width."""
        connection = FakeConnection(rx=b"\x7f\xa5\x01\x00\x00\x10\x00")
        connection.write(b"")
        channel = CommandChannel(connection)

        self.assertEqual(channel.recv_u8(), 0x7F)
        self.assertEqual(channel.recv_u16(), 0xA501)
        self.assertEqual(channel.recv_u32(), 0x00001000)

    def test_short_read_times_out(self):
        """Test that a short read raises ReadTimeout with byte counts."""
        connection = FakeConnection(rx=b"\xa5")
        connection.write(b"")
        channel = CommandChannel(connection)

        with self.assertRaises(ReadTimeout) as ctx:
            channel.recv_u16()
        self.assertEqual(ctx.exception.expected, 2)
        self.assertEqual(ctx.exception.received, 1)

    def test_recv_exact_joins_partial_reads(self):
        """Test that partial reads are joined until the size is reached."""
        connection = MagicMock()
        connection.read.side_effect = [b"ab", b"c", b"d"]
        channel = CommandChannel(connection)

        self.assertEqual(channel.recv_exact(4), b"abcd")

    def test_malformed_string(self):
        """Test that an invalid UTF-8 string response raises MalformedResponse."""
        connection = FakeConnection(rx=b"\x00\x02\xc3\x28")
        connection.write(b"")
        channel = CommandChannel(connection)

        with self.assertRaises(MalformedResponse):
            channel.recv_string()


class TestStringLoopback(unittest.TestCase):
    """send_string followed by recv_string reproduces the string."""

    def test_round_trip(self):
        """Test that strings survive a send/receive loopback, including multi-byte and empty ones."""
        for text in ["", "USB:sonic.md", "ソニック", "naïve 🎮"]:
            with self.subTest(text=text):
                channel = CommandChannel(LoopbackConnection())
                channel.send_string(text)
                self.assertEqual(channel.recv_string(), text)


class TestFlush(unittest.TestCase):
    """Tests for flush and the settling delay."""

    @patch('megalink.device.channel.time.sleep')
    def test_no_delay_by_default(self, mock_sleep):
        """Test that flush does not sleep without a settle delay."""
        connection = FakeConnection()
        CommandChannel(connection).flush()

        self.assertEqual(connection.events, [("flush",)])
        mock_sleep.assert_not_called()

    @patch('megalink.device.channel.time.sleep')
    def test_settle_delay(self, mock_sleep):
        """Test that flush sleeps for the configured settle delay."""
        connection = FakeConnection()
        CommandChannel(connection, settle_delay=0.002).flush()

        self.assertEqual(connection.events, [("flush",)])
        mock_sleep.assert_called_once_with(0.002)


class TestAcknowledgedTransfer(unittest.TestCase):
    """Tests for the status-gated block transfer."""

    def test_chunks_with_status_before_each(self):
        """Test that 2500 bytes go out as 1024/1024/452, each after a status read."""
        data = bytes(range(256)) * 9 + bytes(196)  # 2500 bytes
        connection = FakeConnection(rx=b"\x00\x00\x00")
        connection.write(b"")
        connection.clear_log()
        channel = CommandChannel(connection)

        channel.send_acked(data, 1024)

        self.assertEqual(
            [e[0] if e[0] != "write" else len(e[1]) for e in connection.events],
            ["read", 1024, "flush", "read", 1024, "flush", "read", 452, "flush"],
        )
        self.assertEqual(connection.written, data)
        self.assertEqual(connection.unread, b"")

    def test_rejection_stops_transfer(self):
        """Test that a non-zero status before chunk 2 stops after chunk 1."""
        data = b"\x55" * 2500
        connection = FakeConnection(rx=b"\x00\x07")
        connection.write(b"")
        connection.clear_log()
        channel = CommandChannel(connection)

        with self.assertRaises(ChunkRejected) as ctx:
            channel.send_acked(data, 1024)

        self.assertEqual(ctx.exception.code, 7)
        self.assertEqual(ctx.exception.chunk, 1)
        self.assertEqual(connection.writes, [data[:1024]])

    def test_empty_payload(self):
        """Test that an empty payload causes no traffic."""
        connection = FakeConnection()
        CommandChannel(connection).send_acked(b"")
        self.assertEqual(connection.events, [])


if __name__ == '__main__':
    unittest.main()
