"""
Error types raised by the form conversion pipeline.

Every failure that leaves the pipeline is a FormPipelineError subclass so the
HTTP layer can map it to a status code without inspecting messages.
"""
from typing import Optional


class FormPipelineError(Exception):
    """Base class for all pipeline failures."""

    #: Suggested HTTP status for the web layer
    status_code: int = 500


class ConfigurationError(FormPipelineError):
    """Required cloud settings (project, processor ids, credentials) are missing."""


class PageCountExceeded(FormPipelineError):
    """The PDF looks larger than the configured page limit."""

    status_code = 400

    def __init__(self, estimated: int, max_pages: int):
        self.estimated = estimated
        self.max_pages = max_pages
        super().__init__(
            f"PDF appears to have ~{estimated} pages. Please split it into smaller PDFs "
            f"(<= {max_pages} pages) and upload again."
        )


class RasterizationUnavailable(FormPipelineError):
    """No PDF renderer is available, or the renderer could not open the PDF."""

    HINT = (
        "Install poppler (pdftoppm) so PDF pages can be rendered, "
        "or upload screenshots of each page instead."
    )

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"PDF rasterization unavailable: {reason}. {self.HINT}")


class NoUsableImages(FormPipelineError):
    """Vision conversion has no non-blank page image to send."""

    status_code = 422

    def __init__(self, hint: str = RasterizationUnavailable.HINT, detail: str = ""):
        self.hint = hint
        message = "No usable page images for vision conversion"
        if detail:
            message += f" ({detail})"
        super().__init__(f"{message}. {hint}")


class DocAiError(FormPipelineError):
    """Document AI returned a non-2xx status or an unreadable body."""

    status_code = 502

    def __init__(self, status: Optional[int], body_prefix: str):
        self.status = status
        self.body_prefix = (body_prefix or "")[:500]
        super().__init__(f"Document AI process failed ({status}): {self.body_prefix}")


class UpstreamTimeout(FormPipelineError):
    """An external call exceeded its timeout."""

    status_code = 504


class ModelCallError(FormPipelineError):
    """The generative model endpoint answered with an error status."""

    status_code = 502

    def __init__(self, status: Optional[int], body_prefix: str, model: str = ""):
        self.status = status
        self.body_prefix = (body_prefix or "")[:500]
        self.model = model
        super().__init__(f"Model call to {model or 'unknown model'} failed ({status}): {self.body_prefix}")


class NoModelAvailable(FormPipelineError):
    """Every candidate model answered with a not-found class error."""

    def __init__(self, purpose: str, last_error: Optional[BaseException] = None):
        self.purpose = purpose
        self.last_error = last_error
        super().__init__(
            f"No Vertex AI model available for {purpose}. "
            f"Set VERTEX_MODEL / VERTEX_VISION_MODEL to a model enabled in this project "
            f"and region. Last error: {last_error}"
        )


class InvalidEditRequest(FormPipelineError):
    """An AI edit was requested without code to edit or without an instruction."""

    status_code = 400


class InvalidModelJson(FormPipelineError):
    """Model output could not be parsed as JSON, even after repair."""


class ConversionFailed(FormPipelineError):
    """Wrapper for unexpected failures inside a conversion strategy."""
