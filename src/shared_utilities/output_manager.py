"""
Output directory management utilities for tool reports.

Reports are written flat into a single base directory (by default
``history/`` under the working directory). Each write replaces the previous
file of the same name wholesale.
"""

from pathlib import Path

from .logging_config import get_logger

logger = get_logger(__name__)


class OutputManager:
    """Manages the report output directory."""

    def __init__(self, base_output_dir: str | Path = "history"):
        """
        Initialize the output manager.

        Args:
            base_output_dir: Base directory for all reports (default: "history")
        """
        self.base_dir = Path(base_output_dir)

    def get_output_path(self, filename: str, create_dirs: bool = True) -> Path:
        """
        Get the full output path for a report file.

        Args:
            filename: Output filename, already sanitized
            create_dirs: Whether to create the base directory if missing

        Returns:
            Full path to the output file
        """
        output_path = self.base_dir / filename

        if create_dirs:
            output_path.parent.mkdir(parents=True, exist_ok=True)

        return output_path

    def save_output(self, content: str, filename: str) -> Path:
        """
        Save content to the report directory, replacing any previous file.

        Args:
            content: Content to save
            filename: Output filename

        Returns:
            Path to the saved file
        """
        output_path = self.get_output_path(filename)
        output_path.write_text(content, encoding="utf-8")
        logger.info(
            f"Saved report to {output_path}",
            path=str(output_path),
            size=len(content),
        )
        return output_path

    def get_existing_outputs(self, prefix: str | None = None) -> list[Path]:
        """
        List report files currently in the output directory.

        Args:
            prefix: Optional filename prefix filter (e.g. an App ID)

        Returns:
            Sorted list of report paths
        """
        if not self.base_dir.exists():
            return []

        pattern = f"{prefix}_*" if prefix else "*"
        return sorted(p for p in self.base_dir.glob(pattern) if p.is_file())
