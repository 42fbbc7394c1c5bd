# petqr/services/export_service.py
import io
import logging
from dataclasses import dataclass
from typing import Optional, List, Tuple

import ezdxf
import numpy as np
from ezdxf import units
from flask import Flask
from PIL import Image

from petqr.services.qr_service import QRGraphic

A4_MM = (210.0, 297.0)
MM_PER_INCH = 25.4


class QRGraphicNotFoundError(LookupError):
    """The QR graphic to export could not be located."""


class UnsupportedExportFormatError(ValueError):
    pass


@dataclass
class ExportedFile:
    filename: str
    mimetype: str
    content: bytes


@dataclass
class ExportSettings:
    canvas_size: int = 1200
    dxf_stride: int = 10
    dxf_threshold: int = 128
    dxf_unit_scale: float = 0.1  # drawing units (mm) per pixel
    pdf_dpi: int = 150
    pdf_margin_mm: float = 10.0


def export_filename(pet_name: str, extension: str) -> str:
    """`<pet name>-qr-code.<ext>`; path separators are dropped so the name stays a single segment."""
    safe_name = "".join(ch for ch in (pet_name or "") if ch not in '/\\\0').strip() or "pet"
    return f"{safe_name}-qr-code.{extension}"


def rasterize(graphic: QRGraphic, canvas_size: int) -> Image.Image:
    """Draw the module grid onto a `canvas_size` square grayscale bitmap (0 = dark, 255 = light)."""
    grid = np.asarray(graphic.modules, dtype=bool)
    pixels = np.where(grid, 0, 255).astype(np.uint8)
    return Image.fromarray(pixels).resize((canvas_size, canvas_size), Image.Resampling.NEAREST)


def dark_cells(bitmap: Image.Image, stride: int, threshold: int) -> List[Tuple[int, int]]:
    """
    Sample the bitmap every `stride` pixels in both axes and return the
    (x, y) pixel origin of every sample darker than `threshold`.
    """
    if stride <= 0:
        raise ValueError("sampling stride must be positive")
    gray = np.asarray(bitmap.convert("L"))
    samples = gray[::stride, ::stride]
    rows, cols = np.nonzero(samples < threshold)
    return [(int(c) * stride, int(r) * stride) for r, c in zip(rows, cols)]


class ExportService:
    """Re-encodes a rendered QR graphic as PNG, SVG, PDF or DXF."""

    FORMATS = {
        "png": "image/png",
        "svg": "image/svg+xml",
        "pdf": "application/pdf",
        "dxf": "application/dxf",
    }

    def __init__(self, settings: Optional[ExportSettings] = None):
        self.settings = settings or ExportSettings()

    def init_app(self, app: Flask):
        self.settings = ExportSettings(
            canvas_size=app.config['EXPORT_CANVAS_SIZE'],
            dxf_stride=app.config['EXPORT_DXF_STRIDE'],
            dxf_threshold=app.config['EXPORT_DXF_THRESHOLD'],
            dxf_unit_scale=app.config['EXPORT_DXF_UNIT_SCALE'],
            pdf_dpi=app.config['EXPORT_PDF_DPI'],
            pdf_margin_mm=app.config['EXPORT_PDF_MARGIN_MM'],
        )

    def export(self, graphic: Optional[QRGraphic], export_format: str, pet_name: str) -> ExportedFile:
        if graphic is None or not graphic.modules:
            raise QRGraphicNotFoundError("No rendered QR graphic to export.")

        export_format = (export_format or "").lower()
        if export_format not in self.FORMATS:
            raise UnsupportedExportFormatError(
                f"'{export_format}' is not a supported export format. Use one of: {', '.join(self.FORMATS)}"
            )

        encoder = getattr(self, f"_to_{export_format}")
        content = encoder(graphic)
        logging.info(f"Exported QR code for '{pet_name}' as {export_format} ({len(content)} bytes)")
        return ExportedFile(
            filename=export_filename(pet_name, export_format),
            mimetype=self.FORMATS[export_format],
            content=content,
        )

    def _to_png(self, graphic: QRGraphic) -> bytes:
        buffer = io.BytesIO()
        rasterize(graphic, self.settings.canvas_size).save(buffer, format="PNG")
        return buffer.getvalue()

    def _to_svg(self, graphic: QRGraphic) -> bytes:
        # vector markup goes out untouched
        return graphic.svg

    def _to_pdf(self, graphic: QRGraphic) -> bytes:
        dpi = self.settings.pdf_dpi

        def to_px(mm: float) -> int:
            return int(round(mm / MM_PER_INCH * dpi))

        page = Image.new("RGB", (to_px(A4_MM[0]), to_px(A4_MM[1])), "white")
        margin = to_px(self.settings.pdf_margin_mm)
        width = to_px(A4_MM[0] - 2 * self.settings.pdf_margin_mm)
        bitmap = rasterize(graphic, self.settings.canvas_size)
        page.paste(bitmap.resize((width, width), Image.Resampling.NEAREST).convert("RGB"), (margin, margin))

        buffer = io.BytesIO()
        page.save(buffer, format="PDF", resolution=float(dpi))
        return buffer.getvalue()

    def _to_dxf(self, graphic: QRGraphic) -> bytes:
        bitmap = rasterize(graphic, self.settings.canvas_size)
        return self.bitmap_to_dxf(bitmap)

    def bitmap_to_dxf(self, bitmap: Image.Image) -> bytes:
        """
        One filled SOLID per dark sample, stride-sized, in millimetres.
        DXF y grows upwards, so rows are flipped to keep the code upright.
        """
        stride = self.settings.dxf_stride
        scale = self.settings.dxf_unit_scale
        height = bitmap.height

        doc = ezdxf.new("R2010")
        doc.units = units.MM
        msp = doc.modelspace()

        cells = dark_cells(bitmap, stride, self.settings.dxf_threshold)
        for x, y in cells:
            x0, x1 = x * scale, (x + stride) * scale
            y0, y1 = (height - y - stride) * scale, (height - y) * scale
            # SOLID vertex order is zig-zag: bottom-left, bottom-right, top-left, top-right
            msp.add_solid([(x0, y0), (x1, y0), (x0, y1), (x1, y1)])

        logging.info(f"DXF export: {len(cells)} rectangles (stride={stride}px, scale={scale})")
        stream = io.StringIO()
        doc.write(stream)
        return stream.getvalue().encode("utf-8")
