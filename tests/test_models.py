"""Unit tests for data models."""
import unittest
from dataclasses import FrozenInstanceError
from datetime import datetime

from megalink.models import DeviceMode, FileMetadata, FileMode, ResetMode


class TestFileMetadata(unittest.TestCase):
    """Tests for FileMetadata."""

    def test_immutability(self):
        """Test that metadata cannot be modified."""
        info = FileMetadata(name="a", size=1, date=0, time=0, attrib=0)
        with self.assertRaises(FrozenInstanceError):
            info.size = 2

    def test_modified(self):
        """Test decoding the FAT date and time fields."""
        info = FileMetadata(name="a", size=1, date=0x5221, time=0x6410, attrib=0x20)
        self.assertEqual(info.modified, datetime(2021, 1, 1, 12, 32, 32))

    def test_invalid_date(self):
        """Test that zeroed FAT fields give no timestamp."""
        info = FileMetadata(name="a", size=1, date=0, time=0, attrib=0)
        self.assertIsNone(info.modified)

    def test_directory(self):
        """Test the directory attribute bit."""
        self.assertTrue(FileMetadata(name="d", size=0, date=0, time=0, attrib=0x10).is_directory)
        self.assertFalse(FileMetadata(name="f", size=0, date=0, time=0, attrib=0x20).is_directory)


class TestEnums(unittest.TestCase):
    """Tests for wire enums."""

    def test_reset_codes(self):
        """Test reset mode wire codes."""
        self.assertEqual([int(m) for m in (ResetMode.OFF, ResetMode.SOFT, ResetMode.HARD)], [0, 1, 2])

    def test_mode_names(self):
        """Test mode names and lookup by value."""
        self.assertEqual(DeviceMode.SERVICE.lower_name, "service")
        self.assertEqual(DeviceMode("app"), DeviceMode.APP)

    def test_file_mode_flags(self):
        """Test combining FAT open flags."""
        self.assertEqual(int(FileMode.READ | FileMode.WRITE | FileMode.OPEN_ALWAYS), 0x13)
        self.assertEqual(int(FileMode.OPEN_EXISTING), 0)


if __name__ == '__main__':
    unittest.main()
