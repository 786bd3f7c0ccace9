import io

import pdfplumber

from renewal_worker.pdf.base import BasePdfInspector
from renewal_worker.pdf.exceptions import PdfInspectionError


class PdfPlumberAdapter(BasePdfInspector):
    """Inspects PDFs using pdfplumber."""

    def page_count(self, pdf_bytes: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                count = len(pdf.pages)
        except Exception as exc:
            raise PdfInspectionError(f"pdfplumber could not open PDF: {exc}") from exc
        if count < 1:
            raise PdfInspectionError("PDF has no pages")
        return count
