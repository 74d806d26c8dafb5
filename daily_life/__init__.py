"""Daily Life Recorder - mood journal with a file-backed store."""

__version__ = "0.1.0"
