# services/qr_service.py
import os

import qrcode
import structlog

logger = structlog.get_logger(__name__)


def driver_qr_payload(license_number: str, nic_number: str, username: str) -> str:
    """Data encoded in a driver's identity QR code."""
    return f"{license_number}_{nic_number}_{username}"


def generate_qr_code(data: str, filename: str, directory: str) -> str:
    """
    Render `data` as a PNG QR code and store it on disk.

    Args:
        - data (str): Content to encode.
        - filename (str): File name without extension.
        - directory (str): Target directory, created if missing.

    Returns:
        - str: Path of the written image.
    """
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"{filename}.png")

    image = qrcode.make(data)
    image.save(path)

    logger.info("qr_code_generated", path=path)
    return path


def remove_qr_code(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
