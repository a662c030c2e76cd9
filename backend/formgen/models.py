"""
Pydantic models for API request/response schemas.
"""
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class ConversionResponse(BaseModel):
    """Response for every PDF conversion endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    react_code: str = Field(..., description="Generated form HTML")
    css_code: str = Field(..., description="Stylesheet for the generated form")
    js_code: Optional[str] = Field(None, description="Form script (Doc-AI strategy only)")
    form_schema: Dict[str, Any] = Field(..., alias="schema", description="Canonical or html-mode schema")
    explanation: str


class FormEditRequest(BaseModel):
    """Request for an AI-assisted edit of generated form code."""
    instruction: str = Field(..., description="What to change")
    current_code: str = Field("", description="Current form HTML")
    current_css: str = Field("", description="Current stylesheet")
    current_js: str = Field("", description="Current form script")


class FormEditResponse(BaseModel):
    """Updated code plus line diffs per file (code, css, js)."""
    success: bool = True
    react_code: str
    css_code: str
    js_code: str = ""
    changes_made: List[str] = Field(default_factory=list)
    explanation: str
    diff: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class PrintableBundle(BaseModel):
    """Printable template with {{field_name}} placeholders."""
    html: str
    css: str = ""
    js: str = ""


class PrintableRenderRequest(BaseModel):
    """Request for rendering a populated printable document."""
    printable: PrintableBundle
    payload: Dict[str, Any] = Field(default_factory=dict, description="Submitted values keyed by field name")
    title: Optional[str] = Field(None, description="Document title")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
