"""
Form Conversion API Routes
==========================

REST API endpoints for converting uploaded PDF forms.

Endpoints:
- POST /api/v1/forms/{form_id}/ai/upload-pdf - AI-only conversion
- POST /api/v1/forms/{form_id}/ai/docai/upload-pdf - Document AI conversion
- POST /api/v1/forms/{form_id}/ai/vision/upload-pdf - Vision conversion (PDF + screenshots)
- POST /api/v1/forms/{form_id}/ai/edit - AI-assisted edit of generated code
- POST /api/v1/forms/printable/render - Populate a printable template
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from formgen.errors import FormPipelineError
from formgen.models import ConversionResponse, FormEditRequest, FormEditResponse, PrintableRenderRequest
from formgen.services.form_pipeline.printable import populate_printable
from formgen.utils.pdf_handler import PageImage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/forms", tags=["Form Conversion"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_SCREENSHOTS = 10


# ============================================================================
# Pipeline Instance (Singleton)
# ============================================================================

_pipeline_instance = None


def get_pipeline():
    """Get or create the pipeline instance."""
    global _pipeline_instance

    if _pipeline_instance is None:
        from formgen.services.form_pipeline import FormConversionPipeline

        _pipeline_instance = FormConversionPipeline()
        logger.info("Initialized FormConversionPipeline singleton")

    return _pipeline_instance


# ============================================================================
# Helpers
# ============================================================================

async def _read_pdf(pdf: UploadFile) -> bytes:
    """Read and sanity-check an uploaded PDF."""
    pdf_bytes = await pdf.read()
    if not pdf_bytes:
        raise HTTPException(status_code=400, detail="No PDF file uploaded")
    if len(pdf_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="PDF exceeds the 10MB upload limit")
    if not pdf_bytes.startswith(b'%PDF'):
        raise HTTPException(status_code=400, detail="Uploaded file is not a PDF")
    return pdf_bytes


async def _read_images(images: Optional[List[UploadFile]]) -> List[PageImage]:
    """Read uploaded screenshots as page images numbered from 1."""
    uploads = [image for image in (images or []) if image.filename]
    if len(uploads) > MAX_SCREENSHOTS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_SCREENSHOTS} images are allowed")

    pages = []
    for index, upload in enumerate(uploads, start=1):
        content_type = upload.content_type or ''
        if not content_type.startswith('image/'):
            raise HTTPException(status_code=400, detail="Only image files allowed for images field")
        data = await upload.read()
        if len(data) > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=400, detail=f"Image {upload.filename} exceeds the 10MB upload limit")
        pages.append(PageImage(page_number=index, data=data, mime_type=content_type, source='upload'))
    return pages


def _to_http_error(error: FormPipelineError, action: str) -> HTTPException:
    """Map a pipeline error to its HTTP status, keeping the message."""
    status = getattr(error, 'status_code', 500)
    if status >= 500:
        logger.error(f"{action} failed: {error}", exc_info=True)
    else:
        logger.warning(f"{action} rejected: {error}")
    return HTTPException(status_code=status, detail=str(error) or f"Failed to {action}")


def _response(artifact) -> ConversionResponse:
    return ConversionResponse(
        success=True,
        react_code=artifact.react_code,
        css_code=artifact.css_code,
        js_code=artifact.js_code,
        form_schema=artifact.schema,
        explanation=artifact.explanation
    )


# ============================================================================
# API Endpoints
# ============================================================================

@router.post("/{form_id}/ai/upload-pdf", response_model=ConversionResponse)
async def upload_pdf_ai(
    form_id: str,
    pdf: UploadFile = File(..., description="PDF form to convert"),
    instructions: str = Form("", description="Optional preferences for the generated form")
):
    """Convert a PDF by letting Gemini read it and write the form."""
    pdf_bytes = await _read_pdf(pdf)
    logger.info(f"AI conversion requested for form {form_id} ({len(pdf_bytes)} bytes)")

    try:
        artifact = await run_in_threadpool(
            get_pipeline().convert_pdf_to_form, pdf_bytes, instructions.strip()
        )
    except FormPipelineError as e:
        raise _to_http_error(e, "process PDF")
    return _response(artifact)


@router.post("/{form_id}/ai/docai/upload-pdf", response_model=ConversionResponse)
async def upload_pdf_docai(
    form_id: str,
    pdf: UploadFile = File(..., description="PDF form to convert"),
    instructions: str = Form("", description="Echoed into the schema")
):
    """
    Convert a PDF with Document AI.

    Layout runs on the original PDF, form parsing on per-page images, and the
    merged result is normalized into a canonical schema and rendered.
    """
    pdf_bytes = await _read_pdf(pdf)
    logger.info(f"Doc-AI conversion requested for form {form_id} ({len(pdf_bytes)} bytes)")

    try:
        artifact = await run_in_threadpool(
            get_pipeline().convert_pdf_with_docai,
            pdf_bytes,
            template_id=form_id,
            instructions=instructions.strip()
        )
    except FormPipelineError as e:
        raise _to_http_error(e, "process PDF with DocAI")
    return _response(artifact)


@router.post("/{form_id}/ai/vision/upload-pdf", response_model=ConversionResponse)
async def upload_pdf_vision(
    form_id: str,
    pdf: UploadFile = File(..., description="PDF form to convert"),
    images: Optional[List[UploadFile]] = File(None, description="Optional page screenshots (max 10)"),
    instructions: str = Form("", description="Optional preferences for the generated form")
):
    """Convert a PDF with a multimodal model, using screenshots when provided."""
    pdf_bytes = await _read_pdf(pdf)
    page_images = await _read_images(images)
    logger.info(
        f"Vision conversion requested for form {form_id} "
        f"({len(pdf_bytes)} bytes, {len(page_images)} screenshot(s))"
    )

    try:
        artifact = await run_in_threadpool(
            get_pipeline().convert_pdf_with_vision,
            pdf_bytes,
            instructions=instructions.strip(),
            images=page_images
        )
    except FormPipelineError as e:
        raise _to_http_error(e, "process PDF (vision)")
    return _response(artifact)


@router.post("/{form_id}/ai/edit", response_model=FormEditResponse)
async def edit_form_ai(form_id: str, request: FormEditRequest):
    """Apply a free-text instruction to the form code and return it with line diffs."""
    if not request.instruction.strip():
        raise HTTPException(status_code=400, detail="instruction is required")
    if not request.current_code.strip():
        raise HTTPException(status_code=400, detail="No code to edit")
    logger.info(f"AI edit requested for form {form_id} ({len(request.current_code)} chars of code)")

    try:
        artifact = await run_in_threadpool(
            get_pipeline().edit_form_with_ai,
            request.current_code,
            request.current_css,
            request.instruction,
            js=request.current_js
        )
    except FormPipelineError as e:
        raise _to_http_error(e, "edit form")
    return FormEditResponse(success=True, **artifact.to_dict())


@router.post("/printable/render", response_class=HTMLResponse)
async def render_printable_submission(request: PrintableRenderRequest):
    """Fill a printable template with a submission payload and return the HTML document."""
    try:
        document = populate_printable(
            request.printable.model_dump(),
            request.payload,
            title=request.title or 'Print Submission'
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return HTMLResponse(content=document)
