"""
Configuration management for the form conversion service.
Loads Google Cloud settings and pipeline guardrails from environment variables.
"""
import os
import logging
from typing import Optional, List, Dict
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    """Configuration class for Google Cloud credentials and pipeline settings."""

    # Google Cloud project (Vertex AI + Document AI)
    PROJECT_ID: Optional[str] = os.getenv('PROJECT_ID') or os.getenv('GOOGLE_CLOUD_PROJECT')

    # Vertex AI
    VERTEX_LOCATION: str = os.getenv('VERTEX_LOCATION', 'us-central1')
    VERTEX_MODEL: Optional[str] = os.getenv('VERTEX_MODEL')
    VERTEX_VISION_MODEL: Optional[str] = os.getenv('VERTEX_VISION_MODEL')

    # Document AI
    DOCUMENTAI_LOCATION: str = os.getenv('DOCUMENTAI_LOCATION', 'us')
    DOCUMENTAI_LAYOUT_PROCESSOR_ID: Optional[str] = os.getenv('DOCUMENTAI_LAYOUT_PROCESSOR_ID')
    DOCUMENTAI_FORM_PROCESSOR_ID: Optional[str] = os.getenv('DOCUMENTAI_FORM_PROCESSOR_ID')

    # Guardrails
    PDF_MAX_PAGES: int = _int_env('FORMS_AI_PDF_MAX_PAGES', 25)
    # Falls back to FORMS_AI_PDF_MAX_PAGES when only that one is set
    VISION_MAX_PAGES: int = _int_env('FORMS_AI_VISION_MAX_PAGES', _int_env('FORMS_AI_PDF_MAX_PAGES', 10))
    VISION_DPI: int = _int_env('FORMS_AI_VISION_DPI', 220)
    VISION_VALIDATE_PAGES: int = _int_env('FORMS_AI_VISION_VALIDATE_PAGES', 3)
    DOCAI_DPI: int = 220

    # Debug dumps
    VISION_DEBUG_DUMP: bool = os.getenv('FORMS_AI_VISION_DEBUG_DUMP', '') == '1'
    VISION_DEBUG_DUMP_MAX: int = _int_env('FORMS_AI_VISION_DEBUG_DUMP_MAX', 3)
    DOCAI_DEBUG_DUMP: bool = os.getenv('FORMS_AI_DOCAI_DEBUG_DUMP', '') == '1'
    UPLOAD_DIR: str = os.getenv('UPLOAD_DIR', 'uploads')

    # Per external call, in seconds
    HTTP_TIMEOUT: int = _int_env('FORMS_AI_HTTP_TIMEOUT', 120)

    # API Settings
    API_HOST: str = os.getenv('API_HOST', '0.0.0.0')
    API_PORT: int = int(os.getenv('API_PORT', '8000'))
    CORS_ORIGINS: list = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')

    # Fallback model lists, tried in order after the env override
    PDF_MODEL_CANDIDATES: List[str] = [
        'gemini-3-flash',
        'gemini-2.5-flash',
        'gemini-2.0-flash',
        'gemini-1.5-flash',
        'gemini-1.5-flash-002',
        'gemini-1.5-flash-001',
    ]
    VISION_MODEL_CANDIDATES: List[str] = [
        'gemini-3-pro',
        'gemini-3-flash',
        'gemini-2.5-pro',
        'gemini-2.5-flash',
        'gemini-2.0-flash',
        'gemini-1.5-pro',
    ]

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration.

        Numeric guardrails must be positive. Missing cloud settings are only
        warned about, since each strategy checks what it needs at call time.
        """
        for key in ('PDF_MAX_PAGES', 'VISION_MAX_PAGES', 'VISION_DPI', 'HTTP_TIMEOUT'):
            if getattr(cls, key) <= 0:
                raise ValueError(f"{key} must be a positive integer.")

        if not cls.PROJECT_ID:
            logger.warning("PROJECT_ID is not set; Vertex AI and Document AI calls will fail.")
        if not cls.DOCUMENTAI_LAYOUT_PROCESSOR_ID or not cls.DOCUMENTAI_FORM_PROCESSOR_ID:
            logger.warning(
                "DOCUMENTAI_LAYOUT_PROCESSOR_ID / DOCUMENTAI_FORM_PROCESSOR_ID not set; "
                "the Doc-AI strategy is unavailable."
            )
        return True

    @classmethod
    def vertex_candidates(cls) -> List[str]:
        """Candidate models for the AI-only strategy."""
        return [cls.VERTEX_MODEL or ''] + cls.PDF_MODEL_CANDIDATES

    @classmethod
    def vision_candidates(cls) -> List[str]:
        """Candidate models for the vision strategy."""
        return [cls.VERTEX_VISION_MODEL or ''] + cls.VISION_MODEL_CANDIDATES

    @classmethod
    def docai_defaults(cls) -> Dict[str, Optional[str]]:
        """Processor endpoint selection for the Doc-AI strategy."""
        return {
            'project_id': cls.PROJECT_ID,
            'location': cls.DOCUMENTAI_LOCATION,
            'layout_processor_id': cls.DOCUMENTAI_LAYOUT_PROCESSOR_ID,
            'form_processor_id': cls.DOCUMENTAI_FORM_PROCESSOR_ID,
        }
