"""
Helper functions shared by the HTTP layer
"""
import logging
import re
from typing import Any, Dict, Optional


def setup_logging(debug: bool = False) -> None:
    """Setup application logging"""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )


def create_response(success: bool, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create standardized API response

    Args:
        success: Whether operation was successful
        message: Response message
        data: Optional data to include

    Returns:
        Standardized response dictionary
    """
    response = {
        'success': success,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return response


def safe_filename_part(value, fallback='Unknown', separator='_'):
    """Collapse whitespace and strip characters that are unsafe in file names"""
    text = str(value or '').strip()
    if not text:
        return fallback
    text = text.replace('/', '-').replace('\\', '-')
    text = re.sub(r'\s+', separator, text)
    text = re.sub(r'[^A-Za-z0-9._-]', '', text)
    return text or fallback
