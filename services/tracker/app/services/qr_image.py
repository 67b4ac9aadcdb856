"""QR image rendering for tracking URLs."""

import io
import re
from dataclasses import dataclass

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M

from app.core.exceptions import CodeValidationError

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

MIN_SIZE = 64
MAX_SIZE = 2048
MAX_MARGIN = 16


@dataclass(frozen=True)
class QROptions:
    """Rendering options for a QR image.

    `size` is the output width in pixels, `margin` the quiet zone in modules.
    """

    size: int = 256
    margin: int = 2
    dark: str = "#1F2937"
    light: str = "#FFFFFF"

    def normalized(self) -> "QROptions":
        """Clamp size and margin, and reject colours that are not #RRGGBB."""
        for label, color in (("dark", self.dark), ("light", self.light)):
            if not HEX_COLOR.match(color):
                raise CodeValidationError(f"{label} colour must look like #RRGGBB, got '{color}'")
        return QROptions(
            size=min(max(self.size, MIN_SIZE), MAX_SIZE),
            margin=min(max(self.margin, 0), MAX_MARGIN),
            dark=self.dark.upper(),
            light=self.light.upper(),
        )


def render_qr_image(data: str, options: QROptions = QROptions()) -> Image.Image:
    """Render `data` as a square RGB image `options.size` pixels wide."""
    options = options.normalized()

    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=options.margin)
    qr.add_data(data)
    qr.make(fit=True)

    # Largest whole box size that fits, then scale to the exact width
    modules = qr.modules_count + 2 * options.margin
    qr.box_size = max(1, options.size // modules)

    image = qr.make_image(fill_color=options.dark, back_color=options.light).get_image()
    image = image.convert("RGB")
    if image.size != (options.size, options.size):
        image = image.resize((options.size, options.size), Image.Resampling.NEAREST)
    return image


def render_qr_png(data: str, options: QROptions = QROptions()) -> bytes:
    """Render `data` as PNG bytes."""
    buf = io.BytesIO()
    render_qr_image(data, options).save(buf, format="PNG")
    return buf.getvalue()
