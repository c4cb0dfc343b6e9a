"""Byte images used across the test suite."""

JFIF_PREFIX = bytes([0xFF, 0xD8, 0xFF, 0xE0, 0x00, 0x10]) + b'JFIF\x00\x01'
EXIF_PREFIX = bytes([0xFF, 0xD8, 0xFF, 0xE1, 0x12, 0x34]) + b'Exif\x00\x00'
JPEG_END = b'\xFF\xD9'


def jpeg_block(size=100, exif=False, filler=0x00):
    """A header/footer JPEG candidate of exactly ``size`` bytes."""
    header = EXIF_PREFIX if exif else JFIF_PREFIX
    body = bytes([filler]) * (size - len(header) - len(JPEG_END))
    return header + body + JPEG_END


def text_block(length, char=b'A'):
    return char * length


def noise(length):
    """Non-printable, header-free filler."""
    return bytes([0x00, 0x01, 0x80, 0x9F]) * (length // 4) + b'\x00' * (length % 4)
