"""
Image utilities for HEIC/HEIF conversion and thumbnail generation.
"""
import io
from PIL import Image, ImageOps
import pillow_heif

THUMBNAIL_WIDTH = 800
THUMBNAIL_QUALITY = 85


def open_image_convert_heic(data: bytes):
    """
    Open image bytes, converting HEIC/HEIF to RGB.
    Returns a Pillow Image object in RGB mode.
    """
    if pillow_heif.is_supported(data):
        heif_file = pillow_heif.read_heif(data)
        img = Image.frombytes(
            heif_file.mode,
            heif_file.size,
            heif_file.data,
            "raw"
        )
    else:
        img = Image.open(io.BytesIO(data))
        # Phone photos carry their rotation in EXIF
        img = ImageOps.exif_transpose(img)
    if img.mode != 'RGB':
        img = img.convert('RGB')
    return img


def generate_thumbnail(img, width=THUMBNAIL_WIDTH):
    """
    Resize to the given width keeping aspect ratio. Smaller images are
    not upscaled.
    """
    if img.width <= width:
        return img.copy()
    height = max(1, round(img.height * width / img.width))
    return img.resize((width, height), Image.LANCZOS)


def save_webp_to_bytes(img, quality=THUMBNAIL_QUALITY) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format='WEBP', quality=quality)
    return buf.getvalue()


def make_thumbnail_bytes(data: bytes) -> bytes:
    """Original image bytes -> WebP thumbnail bytes."""
    return save_webp_to_bytes(generate_thumbnail(open_image_convert_heic(data)))
