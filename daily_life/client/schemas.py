"""
Schemas used by the client side of the data service.
"""

from pathlib import Path

from pydantic import BaseModel, Field

from ..journal.schemas import backup_filename


class ExportArtifact(BaseModel):
    """A downloaded backup ready to be saved."""

    filename: str = Field(description="Suggested download file name")
    content: str = Field(description="Backup JSON text")

    @property
    def safe_filename(self) -> str:
        """Base name of the suggested file name; never leaves the target directory."""
        name = Path(self.filename.replace("\\", "/")).name
        if name in ("", ".", ".."):
            return backup_filename()
        return name

    def write_to(self, directory: Path) -> Path:
        """Save the backup into ``directory`` and return the file path."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.safe_filename
        path.write_text(self.content, encoding="utf-8")
        return path
