"""
Job board scrapers.
"""

from typing import Dict, Optional

from ..config import Settings
from ..models import Source
from .base import PageExtractor
from .browser import BrowserLaunchError, BrowserSession, PlaywrightSession, SessionFactory
from .indeed import IndeedExtractor
from .linkedin import LinkedInExtractor


def build_extractors(settings: Settings, session_factory: Optional[SessionFactory] = None) -> Dict[Source, PageExtractor]:
    """One extractor per supported source, configured from settings."""
    return {
        Source.LINKEDIN: LinkedInExtractor.from_settings(settings, session_factory),
        Source.INDEED: IndeedExtractor.from_settings(settings, session_factory),
    }


__all__ = [
    "BrowserLaunchError",
    "BrowserSession",
    "IndeedExtractor",
    "LinkedInExtractor",
    "PageExtractor",
    "PlaywrightSession",
    "SessionFactory",
    "build_extractors",
]
