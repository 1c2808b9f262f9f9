"""
OCR Service
Turns uploaded answer-sheet images and PDFs into plain text with Google Cloud Vision
"""

import logging
import os
from abc import ABC, abstractmethod

import fitz  # PyMuPDF
from google.cloud import vision

from exam_service.core.config import settings
from exam_service.services.storage import FileStorage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff"}
# below this many characters a PDF is treated as scanned and sent to Vision
MIN_EMBEDDED_TEXT_LENGTH = 50
PDF_RENDER_ZOOM = 2.0


class OcrService(ABC):
    @abstractmethod
    def extract_text(self, file_paths: list[str]) -> str:
        """Best-effort: unreadable files are skipped, never raised."""


class VisionOcrService(OcrService):
    def __init__(self, storage: FileStorage, client=None):
        self.storage = storage
        self._client = client

    @property
    def client(self):
        # created lazily so the API process never needs Vision credentials
        if self._client is None:
            self._client = vision.ImageAnnotatorClient()
        return self._client

    def extract_text(self, file_paths: list[str]) -> str:
        chunks = []
        for path in file_paths:
            try:
                text = self._extract_file(path)
            except Exception as e:
                logger.error(f"OCR failed for {path}: {e}", exc_info=True)
                continue
            if text.strip():
                chunks.append(text.strip())
        logger.info(f"OCR extracted {sum(len(c) for c in chunks)} chars from {len(file_paths)} file(s)")
        return "\n\n".join(chunks)

    def _extract_file(self, path: str) -> str:
        ext = os.path.splitext(path)[1].lower()
        content = self.storage.download(path)
        if ext == ".pdf":
            return self._extract_pdf(content)
        if ext in IMAGE_EXTENSIONS:
            return self.detect_text(content)
        logger.warning(f"Unsupported file type for OCR: {path}")
        return ""

    def _extract_pdf(self, pdf_bytes: bytes) -> str:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
            embedded = "\n".join(page.get_text() for page in document)
            if len(embedded.strip()) > MIN_EMBEDDED_TEXT_LENGTH:
                return embedded

            pages = []
            matrix = fitz.Matrix(PDF_RENDER_ZOOM, PDF_RENDER_ZOOM)
            for page in document:
                pixmap = page.get_pixmap(matrix=matrix, alpha=False)
                pages.append(self.detect_text(pixmap.tobytes("png")))
            return "\n".join(pages)

    def detect_text(self, image_bytes: bytes) -> str:
        """DOCUMENT_TEXT_DETECTION is tuned for handwriting and dense pages."""
        request = vision.AnnotateImageRequest(
            image=vision.Image(content=image_bytes),
            features=[vision.Feature(type_=vision.Feature.Type.DOCUMENT_TEXT_DETECTION)],
            image_context=vision.ImageContext(language_hints=settings.OCR_LANGUAGE_HINTS),
        )
        response = self.client.annotate_image(request)
        if response.error.message:
            raise RuntimeError(f"Vision API error: {response.error.message}")
        if not response.full_text_annotation:
            return ""
        return response.full_text_annotation.text
