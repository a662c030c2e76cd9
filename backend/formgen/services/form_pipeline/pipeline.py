"""
Form Conversion Pipeline
========================

The orchestrator that turns an uploaded PDF form into an HTML form, a
canonical schema and a printable template.

Strategies:
-----------
1. AI-ONLY: the PDF goes straight to Gemini, which returns HTML/CSS/JS
2. DOC-AI: Document AI layout (whole PDF) + form parser (per page image),
   normalized into a canonical schema and rendered locally
3. VISION: Gemini sees the PDF plus page images, rebuilds the form with
   the preset classes and a printable template; labels are then checked
   against the PDF text layer
4. AI EDIT: Gemini applies a free-text instruction to an already generated
   form and the changes come back with line diffs

State machine (logged per strategy):
------------------------------------
Received -> Guarded -> Prepared -> ModelCallOrProcessing -> Parsed
-> Normalized -> Rendered -> Validated (optional) -> Returned

Design Principles:
------------------
- One invocation is sequential and shares no mutable state with others
- Every failure leaving the pipeline is a FormPipelineError; anything
  unexpected is wrapped in ConversionFailed with the cause chained
- Validation is advisory and never fails a conversion
"""

import logging
from contextlib import contextmanager
from typing import List, Dict, Any, Optional

from formgen.config import Config
from formgen.errors import (
    ConfigurationError,
    ConversionFailed,
    FormPipelineError,
    InvalidEditRequest,
    InvalidModelJson,
    NoUsableImages,
    RasterizationUnavailable,
)
from formgen.services.docai_service import DocumentAIService
from formgen.services.image_processor import ImageProcessor
from formgen.services.model_gateway import (
    ModelGateway,
    build_request,
    decode_encoded,
    inline_part,
    parse_model_json,
    text_part,
)
from formgen.services.text_extractor import TextExtractor
from formgen.utils.pdf_handler import PageImage, PDFHandler
from .normalizer import SchemaNormalizer
from .printable import render_printable
from .diff import generate_code_diff
from .prompts import (
    EDIT_FORM_PROMPT,
    OMITTED_PAGES_NOTE,
    PDF_TO_FORM_PROMPT,
    VISION_PROMPT,
    format_instructions,
)
from .renderer import DEFAULT_FORM_HTML, FLOATING_LABEL_JS, PRESET_CSS, HTMLRenderer
from .schema import ConversionArtifact, EditArtifact
from .validator import LabelValidator

logger = logging.getLogger(__name__)


class FormConversionPipeline:
    """
    Converts PDF forms with one of three strategies.

    Example usage:

        pipeline = FormConversionPipeline()

        with open('intake.pdf', 'rb') as f:
            pdf_bytes = f.read()

        artifact = pipeline.convert_pdf_with_docai(pdf_bytes, template_id='intake')
        payload = artifact.to_dict()
    """

    PDF_PURPOSE = 'pdf-to-form'
    VISION_PURPOSE = 'pdf-to-form-vision'
    EDIT_PURPOSE = 'form-edit'
    DEFAULT_EXPLANATION = 'Form generated from PDF'
    EDIT_EXPLANATION = 'Code updated'

    def __init__(
        self,
        gateway: Optional[ModelGateway] = None,
        docai_service: Optional[DocumentAIService] = None,
        pdf_handler: Optional[PDFHandler] = None,
        image_processor: Optional[ImageProcessor] = None,
        text_extractor: Optional[TextExtractor] = None,
        normalizer: Optional[SchemaNormalizer] = None,
        renderer: Optional[HTMLRenderer] = None,
        validator: Optional[LabelValidator] = None
    ):
        """
        Initialize the pipeline.

        Args:
            gateway: Optional pre-configured ModelGateway
            docai_service: Optional pre-configured DocumentAIService (created on first Doc-AI call)
            pdf_handler: Optional PDF handler (page guard + rasterizer)
            image_processor: Optional blank detector / debug dumper
            text_extractor: Optional PDF text extractor for validation
            normalizer: Optional schema normalizer
            renderer: Optional HTML renderer
            validator: Optional label validator
        """
        self.gateway = gateway or ModelGateway()
        self.docai_service = docai_service
        self.pdf_handler = pdf_handler or PDFHandler()
        self.image_processor = image_processor or ImageProcessor()
        self.text_extractor = text_extractor or TextExtractor()
        self.normalizer = normalizer or SchemaNormalizer()
        self.renderer = renderer or HTMLRenderer()
        self.validator = validator or LabelValidator()

        logger.info("Initialized FormConversionPipeline")

    # ------------------------------------------------------------------
    # Shared plumbing
    # ------------------------------------------------------------------

    @staticmethod
    def _transition(strategy: str, state: str, detail: str = ''):
        suffix = f" ({detail})" if detail else ''
        logger.info(f"[{strategy}] -> {state}{suffix}")

    @contextmanager
    def _conversion(self, strategy: str):
        """Re-raise pipeline errors as-is and wrap anything else in ConversionFailed."""
        self._transition(strategy, 'Received')
        try:
            yield
        except FormPipelineError as e:
            logger.warning(f"[{strategy}] conversion stopped: {e}")
            raise
        except Exception as e:
            logger.error(f"[{strategy}] conversion failed: {e}", exc_info=True)
            raise ConversionFailed(f"{strategy} conversion failed: {e}") from e

    def _docai(self) -> DocumentAIService:
        if self.docai_service is None:
            self.docai_service = DocumentAIService()
        return self.docai_service

    @staticmethod
    def _parse_object(text: str) -> Dict[str, Any]:
        parsed = parse_model_json(text)
        if not isinstance(parsed, dict):
            raise InvalidModelJson(f"Expected a JSON object from the model, got {type(parsed).__name__}")
        return parsed

    # ------------------------------------------------------------------
    # E1: AI-only
    # ------------------------------------------------------------------

    def convert_pdf_to_form(self, pdf_bytes: bytes, instructions: str = '') -> ConversionArtifact:
        """
        Let Gemini read the PDF and write the form.

        Args:
            pdf_bytes: Uploaded PDF
            instructions: Free-text user preferences, passed into the prompt

        Returns:
            ConversionArtifact with schema {runtime_mode: 'html', js_code}
        """
        strategy = 'ai'
        with self._conversion(strategy):
            self.pdf_handler.guard_page_count(pdf_bytes, Config.PDF_MAX_PAGES)
            self._transition(strategy, 'Guarded')

            prompt = PDF_TO_FORM_PROMPT.format(instructions=format_instructions(instructions))
            request = build_request([text_part(prompt), inline_part('application/pdf', pdf_bytes)])
            self._transition(strategy, 'Prepared')

            generation = self.gateway.generate(self.PDF_PURPOSE, Config.vertex_candidates(), request)
            self._transition(strategy, 'ModelCallOrProcessing', f"model={generation.model_used}")

            parsed = self._parse_object(generation.result)
            self._transition(strategy, 'Parsed')

            html = decode_encoded(parsed, 'html_b64', 'html_code') or DEFAULT_FORM_HTML
            css = decode_encoded(parsed, 'css_b64', 'css_code') or PRESET_CSS
            js = decode_encoded(parsed, 'js_b64', 'js_code') or FLOATING_LABEL_JS
            explanation = str(parsed.get('explanation') or '').strip() or self.DEFAULT_EXPLANATION

            self._transition(strategy, 'Returned')
            return ConversionArtifact(
                react_code=html,
                css_code=css,
                schema={'runtime_mode': 'html', 'js_code': js},
                explanation=explanation
            )

    # ------------------------------------------------------------------
    # E2: Document AI
    # ------------------------------------------------------------------

    def convert_pdf_with_docai(
        self,
        pdf_bytes: bytes,
        template_id: str,
        instructions: str = '',
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        layout_processor_id: Optional[str] = None,
        form_processor_id: Optional[str] = None,
        form_title: Optional[str] = None
    ) -> ConversionArtifact:
        """
        Extract with Document AI, normalize, and render locally.

        The layout processor gets the original PDF (many layout processors
        reject images); the form parser gets one raster image per page.

        Args:
            pdf_bytes: Uploaded PDF
            template_id: Form/template id recorded in the schema
            instructions: Echoed into the schema unchanged
            project_id, location, layout_processor_id, form_processor_id:
                Overrides for the configured Document AI endpoint

        Returns:
            ConversionArtifact with the canonical schema (runtime_mode 'docai')
        """
        strategy = 'docai'
        defaults = Config.docai_defaults()
        project_id = project_id or defaults['project_id']
        location = location or defaults['location']
        layout_processor_id = layout_processor_id or defaults['layout_processor_id']
        form_processor_id = form_processor_id or defaults['form_processor_id']

        with self._conversion(strategy):
            self.pdf_handler.guard_page_count(pdf_bytes, Config.PDF_MAX_PAGES)
            self._transition(strategy, 'Guarded')

            missing = [
                key for key, value in (
                    ('PROJECT_ID', project_id),
                    ('DOCUMENTAI_LOCATION', location),
                    ('DOCUMENTAI_LAYOUT_PROCESSOR_ID', layout_processor_id),
                    ('DOCUMENTAI_FORM_PROCESSOR_ID', form_processor_id),
                ) if not value
            ]
            if missing:
                raise ConfigurationError(f"Document AI is not configured: missing {', '.join(missing)}")

            docai = self._docai()
            layout_result = docai.process_image(
                pdf_bytes, 'application/pdf', project_id, location, layout_processor_id
            )
            pages = self.pdf_handler.rasterize(pdf_bytes, dpi=Config.DOCAI_DPI)
            self._transition(strategy, 'Prepared', f"{len(pages)} page image(s)")

            page_results = [
                docai.process_image(page.data, page.mime_type, project_id, location, form_processor_id)
                for page in pages
            ]
            form_result = docai.merge_pages(page_results)
            self._transition(strategy, 'ModelCallOrProcessing', f"{len(page_results)} form page(s)")

            if Config.DOCAI_DEBUG_DUMP:
                self.image_processor.dump_docai_results(
                    template_id, {'layout': layout_result, 'form': form_result}
                )
            self._transition(strategy, 'Parsed')

            schema = self.normalizer.normalize(
                layout_result,
                form_result,
                template_id=template_id,
                instructions=instructions,
                source={
                    'layout_processor_id': layout_processor_id,
                    'form_processor_id': form_processor_id,
                    'location': location
                }
            )
            self._transition(strategy, 'Normalized', f"{len(schema.fields)} fields")

            rendered = self.renderer.render(schema, form_title)
            schema.printable = render_printable(schema, form_title)
            self._transition(strategy, 'Rendered')

            self._transition(strategy, 'Returned')
            return ConversionArtifact(
                react_code=rendered.html,
                css_code=rendered.css,
                schema=schema.to_dict(),
                explanation=(
                    f"Generated canonical docai schema ({len(schema.fields)} fields) "
                    f"+ initial HTML render"
                ),
                js_code=rendered.js
            )

    # ------------------------------------------------------------------
    # E3: Vision
    # ------------------------------------------------------------------

    def select_vision_images(self, pdf_bytes: bytes, uploads: List[PageImage]):
        """
        Choose the page images to send to the vision model.

        Non-blank uploads win. Without them the PDF is rasterized. Uploads and
        rendered pages share the same blank check and size floor.

        Returns:
            Tuple of (images to send, number of pages omitted)

        Raises:
            NoUsableImages: If no non-blank image can be obtained
        """
        usable, blank = self.image_processor.split_blank_pages(uploads)
        omitted = len(blank)

        if not usable:
            try:
                rasters = self.pdf_handler.rasterize(pdf_bytes, dpi=Config.VISION_DPI)
            except RasterizationUnavailable as e:
                detail = f"{len(uploads)} uploaded image(s) blank; {e.reason}" if uploads else e.reason
                raise NoUsableImages(detail=detail) from e
            usable, blank = self.image_processor.split_blank_pages(rasters)
            omitted += len(blank)
            if not usable:
                raise NoUsableImages(detail=f"all {len(rasters)} rendered page(s) look blank")

        if len(usable) > Config.VISION_MAX_PAGES:
            omitted += len(usable) - Config.VISION_MAX_PAGES
            usable = usable[:Config.VISION_MAX_PAGES]
        return usable, omitted

    def convert_pdf_with_vision(
        self,
        pdf_bytes: bytes,
        instructions: str = '',
        images: Optional[List[PageImage]] = None
    ) -> ConversionArtifact:
        """
        Let a multimodal Gemini model rebuild the form from page images.

        Args:
            pdf_bytes: Uploaded PDF
            instructions: Free-text user preferences, passed into the prompt
            images: Optional screenshots of the pages, treated as authoritative

        Returns:
            ConversionArtifact whose schema carries the printable bundle and
            the advisory label validation
        """
        strategy = 'vision'
        with self._conversion(strategy):
            self.pdf_handler.guard_page_count(pdf_bytes, Config.VISION_MAX_PAGES)
            self._transition(strategy, 'Guarded')

            selected, omitted = self.select_vision_images(pdf_bytes, list(images or []))
            if Config.VISION_DEBUG_DUMP:
                self.image_processor.dump_vision_pages(selected)

            prompt = VISION_PROMPT.format(instructions=format_instructions(instructions))
            parts = [text_part(prompt), inline_part('application/pdf', pdf_bytes)]
            parts.extend(inline_part(page.mime_type, page.data) for page in selected)
            if omitted:
                parts.append(text_part(OMITTED_PAGES_NOTE.format(count=omitted)))
            request = build_request(parts)
            self._transition(
                strategy, 'Prepared',
                f"{len(selected)} {selected[0].source} image(s), {omitted} omitted"
            )

            generation = self.gateway.generate(self.VISION_PURPOSE, Config.vision_candidates(), request)
            self._transition(strategy, 'ModelCallOrProcessing', f"model={generation.model_used}")

            parsed = self._parse_object(generation.result)
            self._transition(strategy, 'Parsed')

            html = decode_encoded(parsed, 'html_b64', 'html_code') or DEFAULT_FORM_HTML
            css_overrides = decode_encoded(parsed, 'css_b64', 'css_code').strip()
            css = f"{PRESET_CSS}\n\n{css_overrides}" if css_overrides else PRESET_CSS
            js = decode_encoded(parsed, 'js_b64', 'js_code') or FLOATING_LABEL_JS

            schema: Dict[str, Any] = {
                'runtime_mode': 'html',
                'js_code': js,
                'model_used': generation.model_used
            }
            print_html = decode_encoded(parsed, 'print_html_b64', 'print_html')
            if print_html.strip():
                schema['printable'] = {
                    'html': print_html,
                    'css': decode_encoded(parsed, 'print_css_b64', 'print_css'),
                    'js': decode_encoded(parsed, 'print_js_b64', 'print_js')
                }
            else:
                logger.warning(f"[{strategy}] model returned no printable template")
            self._transition(strategy, 'Rendered')

            report = self._validate_labels(pdf_bytes, html)
            if report is not None:
                schema['ai_validation'] = report
                self._transition(strategy, 'Validated')

            self._transition(strategy, 'Returned')
            return ConversionArtifact(
                react_code=html,
                css_code=css,
                schema=schema,
                explanation=str(parsed.get('explanation') or '').strip() or self.DEFAULT_EXPLANATION
            )

    def _validate_labels(self, pdf_bytes: bytes, html: str) -> Optional[Dict[str, Any]]:
        """Run the advisory label check; problems are logged, never raised."""
        lines = self.text_extractor.extract_lines(pdf_bytes, max_pages=Config.VISION_VALIDATE_PAGES)
        if not lines:
            logger.info("No PDF text layer found; skipping label validation")
            return None
        try:
            return self.validator.validate(html, lines).to_dict()
        except Exception as e:
            logger.warning(f"Label validation skipped: {e}")
            return None

    # ------------------------------------------------------------------
    # AI edit
    # ------------------------------------------------------------------

    def edit_form_with_ai(self, html: str, css: str, instruction: str, js: str = '') -> EditArtifact:
        """
        Apply a free-text instruction to an existing generated form.

        The model returns base64-encoded code; any part it leaves out keeps
        its current value. Diffs are computed against the code sent in.

        Args:
            html: Current form (or printable template) HTML
            css: Current stylesheet
            instruction: What to change, in the user's words
            js: Current form script, if any

        Returns:
            EditArtifact with the updated code, the model's change list and line diffs

        Raises:
            InvalidEditRequest: If there is no code or no instruction
        """
        strategy = 'edit'
        if not (html or '').strip():
            raise InvalidEditRequest("No code to edit")
        if not (instruction or '').strip():
            raise InvalidEditRequest("An edit instruction is required")

        with self._conversion(strategy):
            prompt = EDIT_FORM_PROMPT.format(html=html, css=css or '', instruction=instruction.strip())
            request = build_request([text_part(prompt)])
            self._transition(strategy, 'Prepared')

            generation = self.gateway.generate(self.EDIT_PURPOSE, Config.vertex_candidates(), request)
            self._transition(strategy, 'ModelCallOrProcessing', f"model={generation.model_used}")

            parsed = self._parse_object(generation.result)
            self._transition(strategy, 'Parsed')

            new_html = decode_encoded(parsed, 'html_b64', 'html_code') or html
            new_css = decode_encoded(parsed, 'css_b64', 'css_code') or css or ''
            new_js = decode_encoded(parsed, 'js_b64', 'js_code') or js or ''
            changes = parsed.get('changes_made')
            changes_made = [str(change) for change in changes] if isinstance(changes, list) else []
            explanation = str(parsed.get('explanation') or '').strip() or self.EDIT_EXPLANATION

            diff = {
                'code': generate_code_diff(html, new_html),
                'css': generate_code_diff(css or '', new_css),
                'js': generate_code_diff(js or '', new_js) if (js or new_js) else []
            }
            self._transition(strategy, 'Returned', f"{len(changes_made)} change(s)")
            return EditArtifact(
                react_code=new_html,
                css_code=new_css,
                js_code=new_js,
                changes_made=changes_made,
                explanation=explanation,
                diff=diff
            )
