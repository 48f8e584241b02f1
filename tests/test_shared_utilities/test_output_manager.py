"""
Tests for output directory management utilities.
"""

from pathlib import Path

from src.shared_utilities.output_manager import OutputManager


class TestOutputManager:
    """Test cases for OutputManager class."""

    def test_init_default_base_dir(self):
        """Test initialization with default base directory."""
        manager = OutputManager()
        assert manager.base_dir == Path("history")

    def test_get_output_path_creates_directory(self, tmp_path):
        """Test that get_output_path creates the base directory."""
        manager = OutputManager(tmp_path / "reports")
        path = manager.get_output_path("a.txt")

        assert path == tmp_path / "reports" / "a.txt"
        assert path.parent.is_dir()

    def test_get_output_path_without_creation(self, tmp_path):
        """Test that directory creation can be skipped."""
        manager = OutputManager(tmp_path / "reports")
        manager.get_output_path("a.txt", create_dirs=False)

        assert not (tmp_path / "reports").exists()

    def test_save_output_replaces_file(self, tmp_path):
        """Test that saving twice keeps only the latest content."""
        manager = OutputManager(tmp_path)
        manager.save_output("first", "a.txt")
        path = manager.save_output("second", "a.txt")

        assert path.read_text(encoding="utf-8") == "second"

    def test_save_output_unicode(self, tmp_path):
        """Test that non-ASCII content survives the round trip."""
        path = OutputManager(tmp_path).save_output("微信 8.0.45\n", "wx.txt")
        assert path.read_text(encoding="utf-8") == "微信 8.0.45\n"

    def test_get_existing_outputs(self, tmp_path):
        """Test listing with and without a prefix filter."""
        manager = OutputManager(tmp_path)
        manager.save_output("x", "1_A_history.txt")
        manager.save_output("x", "2_B_history.txt")
        (tmp_path / "subdir").mkdir()

        assert [p.name for p in manager.get_existing_outputs()] == [
            "1_A_history.txt",
            "2_B_history.txt",
        ]
        assert [p.name for p in manager.get_existing_outputs("2")] == [
            "2_B_history.txt"
        ]
