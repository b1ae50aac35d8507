"""
Guess the source institution of a statement export from its filename.
"""

import logging
from pathlib import PurePath

from .models import Source

logger = logging.getLogger(__name__)


def _is_amex(name: str) -> bool:
    return "amex" in name or ("summary" in name and name.endswith(".xls"))


def _is_scotia_visa(name: str) -> bool:
    return "scene_visa" in name or "visa_card" in name


def _is_scotia_chequing(name: str) -> bool:
    return "preferred_package" in name or "chequing" in name


def _is_pc(name: str) -> bool:
    return "pc" in name or ("report" in name and name.endswith(".csv"))


# Checked in order; the first matching rule decides.
DETECTION_RULES = [
    (_is_amex, Source.AMEX),
    (_is_scotia_visa, Source.SCOTIA_VISA),
    (_is_scotia_chequing, Source.SCOTIA_CHEQUING),
    (_is_pc, Source.PC),
]


def detect_source(filename: str) -> Source | None:
    """
    Detect the statement source from a filename.

    Args:
        filename: File name or path. Only the base name is inspected.

    Returns:
        The detected Source, or None when the caller has to ask for one
    """
    name = PurePath(filename).name.lower()
    for predicate, source in DETECTION_RULES:
        if predicate(name):
            logger.debug(f"Detected source '{source.value}' for '{filename}'")
            return source

    logger.debug(f"No source detected for '{filename}'")
    return None
