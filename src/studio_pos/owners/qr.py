"""QR identifiers and short check-in codes for customers."""

from __future__ import annotations

import io
import secrets
import time
import uuid
from typing import Optional

import qrcode

from ..core.constants import CHECK_IN_CODE_CHARS, CHECK_IN_CODE_LENGTH, QR_PREFIX
from ..core.enums import OwnerType
from .model import OwnerRef


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while True:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
        if number == 0:
            return out


def generate_qr_code_id(ref: OwnerRef) -> str:
    """``ELDC_USER_<id>_<ts>_<rand>`` or ``ELDC_FAMILY_MEMBER_<id>_<ts>_<rand>``."""

    timestamp = _base36(int(time.time() * 1000))
    random_part = uuid.uuid4().hex[:8]
    return f"{QR_PREFIX}_{ref.owner_type.value.upper()}_{ref.owner_id}_{timestamp}_{random_part}"


def parse_qr_code(value: str) -> Optional[OwnerRef]:
    if not value or not value.startswith(f"{QR_PREFIX}_"):
        return None

    parts = value.strip().split("_")
    if len(parts) < 4:
        return None

    if parts[1] == "USER":
        raw_id = parts[2]
        owner_type = OwnerType.USER
    elif parts[1] == "FAMILY" and parts[2] == "MEMBER" and len(parts) >= 5:
        raw_id = parts[3]
        owner_type = OwnerType.FAMILY_MEMBER
    else:
        return None

    if not raw_id.isdigit():
        return None
    return OwnerRef(owner_type, int(raw_id))


def generate_check_in_code() -> str:
    # Alphabet skips O/0/I/1/L so codes survive being read aloud.
    return "".join(secrets.choice(CHECK_IN_CODE_CHARS) for _ in range(CHECK_IN_CODE_LENGTH))


def looks_like_check_in_code(value: str) -> bool:
    v = (value or "").strip().upper()
    return len(v) == CHECK_IN_CODE_LENGTH and v.isalnum()


def render_qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()
