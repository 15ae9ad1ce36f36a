"""Unit tests for serial port discovery."""
import unittest
from unittest.mock import MagicMock, patch

from megalink.errors import DeviceNotFoundError, MultipleDevicesError, TransportUnavailable
from megalink.transport.port_finder import find_ports, find_single_port


def fake_port(device, description="USB Serial Device"):
    port = MagicMock()
    port.device = device
    port.description = description
    port.hwid = "USB VID:PID=0483:5740"
    return port


@patch('megalink.transport.port_finder.list_ports.comports')
class TestFindPorts(unittest.TestCase):
    """Tests for port enumeration."""

    def test_find_all(self, mock_comports):
        """Test that every port is a candidate without a matcher."""
        mock_comports.return_value = [fake_port("/dev/ttyACM0"), fake_port("/dev/ttyS0", "n/a")]

        ports = find_ports()

        self.assertEqual([p.port for p in ports], ["/dev/ttyACM0", "/dev/ttyS0"])
        self.assertEqual(ports[1].description, "n/a")

    def test_custom_matcher(self, mock_comports):
        """Test narrowing candidates with a predicate."""
        mock_comports.return_value = [fake_port("/dev/ttyACM0"), fake_port("/dev/ttyACM1")]

        ports = find_ports(lambda info: info.port.endswith("1"))

        self.assertEqual([p.port for p in ports], ["/dev/ttyACM1"])

    def test_single(self, mock_comports):
        """Test that a lone port is selected."""
        mock_comports.return_value = [fake_port("COM3")]
        self.assertEqual(find_single_port().port, "COM3")

    def test_single_with_matcher(self, mock_comports):
        """Test that the matcher resolves an otherwise ambiguous choice."""
        mock_comports.return_value = [fake_port("COM1", "Communications Port"), fake_port("COM3")]

        info = find_single_port(lambda info: info.description != "Communications Port")

        self.assertEqual(info.port, "COM3")

    def test_single_none(self, mock_comports):
        """Test that no ports raises a TransportUnavailable subclass."""
        mock_comports.return_value = []
        with self.assertRaises(DeviceNotFoundError) as ctx:
            find_single_port()
        self.assertIsInstance(ctx.exception, TransportUnavailable)

    def test_single_ambiguous(self, mock_comports):
        """Test that several ports are refused and listed on the error."""
        mock_comports.return_value = [fake_port("COM3"), fake_port("COM4")]
        with self.assertRaises(MultipleDevicesError) as ctx:
            find_single_port()
        self.assertEqual([d.port for d in ctx.exception.devices], ["COM3", "COM4"])


if __name__ == '__main__':
    unittest.main()
