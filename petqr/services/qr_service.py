# petqr/services/qr_service.py
"""
QR payload protocol.

A pet's QR code carries only the public info URL,
`<origin>/pet-info?qr_id=<display identifier>`. The record itself is
fetched at scan time, so edits never require a new code and nothing
private is printed on the tag.
"""
import io
import json
import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit, parse_qs, quote, unquote

import qrcode
import qrcode.image.svg
from flask import Flask

from petqr.models.pet import PetRecord

PET_INFO_PATH = "/pet-info"
QR_ID_PARAM = "qr_id"

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


class InvalidQRCodeError(ValueError):
    """The scanned value does not reference a pet record."""


@dataclass
class QRGraphic:
    """
    A rendered QR code: the square module grid (border included,
    True = dark) and the SVG markup drawn from it.
    """
    modules: List[List[bool]]
    svg: bytes
    value: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.modules)

    @classmethod
    def from_matrix(cls, modules: List[List[bool]], box_size: int = 10) -> "QRGraphic":
        """Build a graphic from an explicit module grid (e.g. a pre-rendered code)."""
        size = len(modules)
        if size == 0 or any(len(row) != size for row in modules):
            raise ValueError("QR module grid must be a non-empty square")
        extent = size * box_size
        rects = "".join(
            f'<rect x="{c * box_size}" y="{r * box_size}" width="{box_size}" height="{box_size}"/>'
            for r, row in enumerate(modules) for c, dark in enumerate(row) if dark
        )
        svg = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{extent}" height="{extent}" '
            f'viewBox="0 0 {extent} {extent}"><rect width="{extent}" height="{extent}" fill="#fff"/>'
            f'<g fill="#000">{rects}</g></svg>'
        ).encode("utf-8")
        return cls(modules=[[bool(d) for d in row] for row in modules], svg=svg)


def build_pet_info_url(origin: str, qr_id: str) -> str:
    """`<origin>/pet-info?qr_id=<qr_id>`, the only value ever encoded in a pet QR code."""
    if not qr_id or not qr_id.strip():
        raise InvalidQRCodeError("qr_id is required to build the pet info URL")
    return f"{origin.rstrip('/')}{PET_INFO_PATH}?{QR_ID_PARAM}={quote(qr_id, safe='')}"


def parse_qr_id(value: str) -> str:
    """
    Extract the qr_id from a scanned value (full URL) or a bare query string.

    Legacy codes that embedded the whole record as JSON are not decoded;
    they are reported as invalid like any other foreign payload.
    """
    if not value or not value.strip():
        raise InvalidQRCodeError("empty QR payload")
    value = value.strip()

    if is_legacy_payload(unquote(value)):
        logging.warning("Rejected a legacy whole-record QR payload")
        raise InvalidQRCodeError("legacy JSON payloads are not supported")

    parts = urlsplit(value)
    if parts.scheme or parts.netloc or parts.path.startswith("/"):
        if parts.path.rstrip("/") != PET_INFO_PATH:
            raise InvalidQRCodeError(f"unexpected QR target path: {parts.path or '/'}")
        query = parts.query
    else:
        query = value.lstrip("?")

    qr_ids = parse_qs(query).get(QR_ID_PARAM)
    if not qr_ids or not qr_ids[0].strip():
        raise InvalidQRCodeError("QR payload has no qr_id")
    qr_id = qr_ids[0].strip()
    if is_legacy_payload(qr_id):
        logging.warning("Rejected a legacy whole-record payload passed as qr_id")
        raise InvalidQRCodeError("legacy JSON payloads are not supported")
    return qr_id


def is_legacy_payload(value: str) -> bool:
    """True for the retired codes that embedded the whole record as JSON."""
    try:
        return isinstance(json.loads(value), dict)
    except (TypeError, ValueError):
        return False


def render_qr_graphic(value: str, error_correction: str = "H", border: int = 4) -> QRGraphic:
    """Render `value` into its module grid and SVG markup."""
    level = ERROR_CORRECTION_LEVELS.get(error_correction.upper())
    if level is None:
        raise ValueError(f"unknown error correction level: {error_correction}")

    qr = qrcode.QRCode(error_correction=level, box_size=10, border=border)
    qr.add_data(value)
    qr.make(fit=True)

    buffer = io.BytesIO()
    qr.make_image(image_factory=qrcode.image.svg.SvgPathImage).save(buffer)
    return QRGraphic(modules=qr.get_matrix(), svg=buffer.getvalue(), value=value)


class QRService:
    """Builds QR values and graphics for pet records using the app configuration."""

    def __init__(self):
        self.origin = None
        self.error_correction = "H"
        self.border = 4

    def init_app(self, app: Flask):
        self.origin = app.config['PUBLIC_ORIGIN']
        self.error_correction = app.config.get('QR_ERROR_CORRECTION', 'H')
        self.border = app.config.get('QR_BORDER', 4)
        logging.info(f"QRService: public origin set to {self.origin}")

    def qr_value_for(self, pet: PetRecord) -> str:
        if not self.origin:
            raise RuntimeError("QRService is not initialized. Call init_app first.")
        return build_pet_info_url(self.origin, pet.qr_id)

    def graphic_for(self, pet: PetRecord) -> QRGraphic:
        return render_qr_graphic(self.qr_value_for(pet), self.error_correction, self.border)
