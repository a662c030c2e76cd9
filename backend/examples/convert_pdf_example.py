#!/usr/bin/env python3
"""
Form Conversion Pipeline - Example Usage
========================================

Converts a local PDF form with one of the three strategies and writes the
resulting artifact (HTML, CSS, schema, explanation) as JSON.

Usage:
    python examples/convert_pdf_example.py path/to/form.pdf --strategy docai

Requirements:
    - Google application default credentials (gcloud auth application-default login)
    - PROJECT_ID, plus DOCUMENTAI_* processor ids for the docai strategy
    - poppler installed for rasterization (docai, and vision without screenshots)
"""

import sys
import json
import argparse
import logging
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from formgen.errors import FormPipelineError
from formgen.services.form_pipeline import FormConversionPipeline
from formgen.utils.pdf_handler import PageImage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

IMAGE_TYPES = {'.png': 'image/png', '.jpg': 'image/jpeg', '.jpeg': 'image/jpeg'}


def load_screenshots(paths):
    """Read screenshot files as upload page images."""
    pages = []
    for index, path in enumerate(paths or [], start=1):
        path = Path(path)
        mime_type = IMAGE_TYPES.get(path.suffix.lower())
        if mime_type is None:
            raise ValueError(f"Unsupported image type: {path.name}")
        pages.append(PageImage(page_number=index, data=path.read_bytes(), mime_type=mime_type, source='upload'))
    return pages


def convert(pdf_path: str, strategy: str, output_path: str = None, instructions: str = '', images=None):
    """
    Convert a PDF and print a short summary.

    Args:
        pdf_path: Path to the PDF file
        strategy: 'ai', 'docai' or 'vision'
        output_path: Optional path to save the artifact JSON
        instructions: Optional preferences passed to the pipeline
        images: Optional screenshot paths (vision only)
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        logger.error(f"File not found: {pdf_path}")
        return None

    pdf_bytes = pdf_path.read_bytes()
    logger.info(f"Converting: {pdf_path.name} ({len(pdf_bytes):,} bytes) with strategy '{strategy}'")

    pipeline = FormConversionPipeline()
    if strategy == 'docai':
        artifact = pipeline.convert_pdf_with_docai(pdf_bytes, template_id=pdf_path.stem, instructions=instructions)
    elif strategy == 'vision':
        artifact = pipeline.convert_pdf_with_vision(
            pdf_bytes, instructions=instructions, images=load_screenshots(images)
        )
    else:
        artifact = pipeline.convert_pdf_to_form(pdf_bytes, instructions=instructions)

    schema = artifact.schema
    print("\n" + "=" * 60)
    print("FORM CONVERSION RESULT")
    print("=" * 60)
    print(f"\nStrategy: {strategy}")
    print(f"Explanation: {artifact.explanation}")
    print(f"HTML: {len(artifact.react_code):,} chars, CSS: {len(artifact.css_code):,} chars")
    if 'fields' in schema:
        print(f"Sections: {len(schema['sections'])}, Fields: {len(schema['fields'])}")
        for field in schema['fields'][:20]:
            print(f"  - {field['name']:<32} {field['inputType']:<9} p{field['page_number']}")
    validation = schema.get('ai_validation')
    if validation:
        print(f"Validation: {len(validation['missing'])} missing, {len(validation['possible_typos'])} possible typos")

    if output_path:
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(artifact.to_dict(), f, indent=2)
        print(f"\nArtifact saved to: {output_path}")

    return artifact


def main():
    parser = argparse.ArgumentParser(
        description='PDF Form Conversion Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # AI-only conversion
    python convert_pdf_example.py form.pdf

    # Document AI conversion, saved to JSON
    python convert_pdf_example.py form.pdf --strategy docai -o artifact.json

    # Vision conversion with screenshots of each page
    python convert_pdf_example.py form.pdf --strategy vision --image p1.png --image p2.png
        """
    )

    parser.add_argument('pdf_path', help='Path to PDF file to convert')
    parser.add_argument(
        '-s', '--strategy',
        choices=['ai', 'docai', 'vision'],
        default='ai',
        help='Conversion strategy (default: ai)'
    )
    parser.add_argument('-o', '--output', help='Path to save artifact JSON')
    parser.add_argument('-i', '--instructions', default='', help='Preferences for the generated form')
    parser.add_argument(
        '--image',
        action='append',
        dest='images',
        help='Screenshot of a page (repeatable, vision only)'
    )

    args = parser.parse_args()

    try:
        convert(args.pdf_path, args.strategy, args.output, args.instructions, args.images)
    except FormPipelineError as e:
        print(f"\nConversion failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
