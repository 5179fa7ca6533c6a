# photo_enhancement/utils/image_utils.py
import io
import logging

from PIL import Image, UnidentifiedImageError

# AI 서비스가 입력으로 받는 이미지 형식
SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


def detect_mime_type(image_bytes: bytes) -> str:
    """
    이미지 바이트의 실제 형식을 Pillow로 확인하여 MIME 타입을 반환합니다.
    이미지가 아니거나 지원하지 않는 형식이면 ValueError를 발생시킵니다.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"이미지로 인식할 수 없는 데이터입니다: {e}")

    mime_type = Image.MIME.get(image_format or "")
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise ValueError(f"지원하지 않는 이미지 형식입니다: {image_format}")
    return mime_type


def is_valid_image(image_bytes: bytes) -> bool:
    """바이트가 손상되지 않은 이미지인지 확인합니다."""
    if not image_bytes:
        return False
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.verify()
        return True
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logging.warning(f"이미지 검증 실패: {e}")
        return False
