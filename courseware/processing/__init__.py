"""Document processing helpers."""

from .watermark import (
    DocumentError,
    WatermarkResult,
    WatermarkStyle,
    get_pdf_page_count,
    render_pdf_page,
    watermark_pdf,
    watermark_sizes,
)

__all__ = [
    "DocumentError",
    "WatermarkResult",
    "WatermarkStyle",
    "get_pdf_page_count",
    "render_pdf_page",
    "watermark_pdf",
    "watermark_sizes",
]
