class PdfInspectionError(Exception):
    """Raised when a payload cannot be opened as a PDF document."""
