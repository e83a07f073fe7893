"""PDF watermarking and page rendering helpers built on PyMuPDF."""

import logging
from dataclasses import dataclass

import fitz  # PyMuPDF


LOGGER = logging.getLogger(__name__)

WATERMARK_ANGLE = 34
BRAND_FONT = 'hebo'
CONTACT_FONT = 'helv'


class DocumentError(RuntimeError):
    """Raised when a PDF cannot be opened, stamped or rendered."""


@dataclass(frozen=True)
class WatermarkStyle:
    brand_ratio: float = 0.052
    brand_min: float = 18
    brand_max: float = 44
    contact_ratio: float = 0.032
    contact_min: float = 12
    contact_max: float = 24
    footer_ratio: float = 0.018
    footer_min: float = 8
    footer_max: float = 12
    brand_color: tuple = (0.44, 0.44, 0.44)
    contact_color: tuple = (0.4, 0.4, 0.4)
    footer_color: tuple = (0.42, 0.42, 0.42)
    brand_opacity: float = 0.18
    contact_opacity: float = 0.22
    footer_opacity: float = 0.22
    footer_margin_x: float = 24
    footer_margin_y: float = 16


DEFAULT_STYLE = WatermarkStyle()


@dataclass(frozen=True)
class WatermarkResult:
    data: bytes
    page_count: int


def clamp(value, minimum, maximum):
    return max(minimum, min(maximum, value))


def watermark_sizes(width, height, style=DEFAULT_STYLE):
    """Font sizes for the brand, contact and footer marks of a page"""
    min_side = min(width, height)
    return (
        clamp(min_side * style.brand_ratio, style.brand_min, style.brand_max),
        clamp(min_side * style.contact_ratio, style.contact_min, style.contact_max),
        clamp(min_side * style.footer_ratio, style.footer_min, style.footer_max),
    )


def _open_pdf(data):
    try:
        document = fitz.open(stream=data, filetype='pdf')
    except Exception as error:
        raise DocumentError('Unable to open PDF document') from error
    if document.needs_pass:
        document.close()
        raise DocumentError('PDF document is password protected')
    return document


def _stamp_page(page, brand, contact, style):
    rect = page.rect
    width, height = rect.width, rect.height
    brand_size, contact_size, footer_size = watermark_sizes(width, height, style)

    center = fitz.Point(rect.x0 + width / 2, rect.y0 + height / 2)
    rotation = (center, fitz.Matrix(WATERMARK_ANGLE))

    brand_width = fitz.get_text_length(brand, fontname=BRAND_FONT, fontsize=brand_size)
    page.insert_text(
        fitz.Point(center.x - brand_width / 2, center.y - brand_size * 0.45),
        brand,
        fontsize=brand_size,
        fontname=BRAND_FONT,
        color=style.brand_color,
        fill_opacity=style.brand_opacity,
        morph=rotation,
        overlay=True,
    )

    if contact:
        contact_width = fitz.get_text_length(contact, fontname=CONTACT_FONT, fontsize=contact_size)
        page.insert_text(
            fitz.Point(center.x - contact_width / 2, center.y + contact_size * 1.25),
            contact,
            fontsize=contact_size,
            fontname=CONTACT_FONT,
            color=style.contact_color,
            fill_opacity=style.contact_opacity,
            morph=rotation,
            overlay=True,
        )

    footer = f"{brand} | {contact}" if contact else brand
    footer_width = fitz.get_text_length(footer, fontname=CONTACT_FONT, fontsize=footer_size)
    page.insert_text(
        fitz.Point(rect.x1 - footer_width - style.footer_margin_x, rect.y1 - style.footer_margin_y),
        footer,
        fontsize=footer_size,
        fontname=CONTACT_FONT,
        color=style.footer_color,
        fill_opacity=style.footer_opacity,
        overlay=True,
    )


def watermark_pdf(data, brand, contact='', style=DEFAULT_STYLE):
    """Stamp every page of a PDF and return the serialized result.

    Each page gets the brand and contact labels centered and rotated, plus a
    small footer mark in the bottom-right corner. Marks are low-opacity so
    the underlying content stays legible.
    """
    document = _open_pdf(data)
    try:
        page_count = int(document.page_count)
        if page_count == 0:
            raise DocumentError('PDF document has no pages')
        for page in document:
            _stamp_page(page, brand, contact, style)
        output = document.tobytes(garbage=3, deflate=True)
    except DocumentError:
        raise
    except Exception as error:
        raise DocumentError('Unable to watermark PDF document') from error
    finally:
        document.close()

    LOGGER.debug("Watermarked %d pages", page_count)
    return WatermarkResult(data=output, page_count=page_count)


def get_pdf_page_count(data):
    document = _open_pdf(data)
    try:
        return int(document.page_count)
    finally:
        document.close()


def render_pdf_page(data, page_number, dpi=144):
    """Render a single 1-based PDF page to PNG bytes"""
    if page_number < 1:
        raise DocumentError('Invalid PDF page index')

    document = _open_pdf(data)
    try:
        if page_number > document.page_count:
            raise DocumentError('PDF page is out of range')
        scale = float(dpi) / 72.0
        page = document.load_page(page_number - 1)
        pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return pixmap.tobytes('png')
    except DocumentError:
        raise
    except Exception as error:
        raise DocumentError('Unable to render PDF page') from error
    finally:
        document.close()
