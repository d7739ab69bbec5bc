class DocumentLoadError(Exception):
    """Raised when a document cannot be turned into text."""
