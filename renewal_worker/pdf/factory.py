from typing import ClassVar

from renewal_worker.config.settings import Settings
from renewal_worker.pdf.base import BasePdfInspector
from renewal_worker.pdf.pdfplumber_adapter import PdfPlumberAdapter
from renewal_worker.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfInspectorFactory:
    """Picks the PDF inspector named by ``settings.pdf_engine``."""

    ENGINES: ClassVar[dict[str, type[BasePdfInspector]]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfInspector:
        engine = settings.pdf_engine.strip().lower()
        try:
            inspector_cls = cls.ENGINES[engine]
        except KeyError:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {sorted(cls.ENGINES)}"
            ) from None
        return inspector_cls()
