from __future__ import annotations
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from . import __version__
from .config import FORMATS
from .errors import ConversionError, MalformedInput, UnknownSchema
from .pipeline import ConvertOptions, convert
from .readers import READERS
from .schemas import available_schemas, validator
from .utils.logging import ConversionLogger
from .writers import MEDIA_TYPES

from dotenv import load_dotenv
ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=ROOT_DIR / ".env", override=False)

# --- config from env ---
LOG_DIR = (os.environ.get("COMMONMETA_LOG_DIR", "") or "").strip() or None

app = FastAPI(title="commonmeta API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------- models ----------

class FormatInfo(BaseModel):
    """A format tag and the directions it supports."""
    format: str
    read: bool
    write: bool
    media_type: Optional[str] = None

class SchemaInfo(BaseModel):
    """A registered schema."""
    name: str
    version: str
    document: str

class SchemaErrorOut(BaseModel):
    path: str
    message: str
    keyword: str

class ValidationOut(BaseModel):
    """Result of POST /validate."""
    ok: bool
    errors: List[SchemaErrorOut] = Field(default_factory=list)


def _failure(status: int, e: ConversionError) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"ok": False, "error": str(e), "diagnostics": [d.to_dict() for d in e.diagnostics]},
    )

# ---------- routes ----------

@app.get("/", include_in_schema=False)
def root():
    """Root endpoint."""
    return {"service": "commonmeta-api", "version": __version__, "docs": "/docs", "health": "/health"}

@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}

@app.get("/formats", response_model=List[FormatInfo])
def get_formats():
    """Lists format tags with their reader/writer support."""
    return [
        FormatInfo(format=f, read=f in READERS, write=f in MEDIA_TYPES, media_type=MEDIA_TYPES.get(f))
        for f in FORMATS
    ]

@app.get("/schemas", response_model=List[SchemaInfo])
def get_schemas():
    """Lists the registered (name, version) schemas."""
    return available_schemas()

# Convert a document between formats
@app.post("/convert")
async def convert_document(
    request: Request,
    from_format: str = Query(..., alias="from"),
    to_format: str = Query(..., alias="to"),
    strict: bool = False,
    validate_input: bool = True,
    validate_output: bool = True,
):
    """Converts the raw request body from one format into another."""
    data = await request.body()
    opts = ConvertOptions(validate_input=validate_input, validate_output=validate_output, strict=strict)
    try:
        out, diags = convert(data, from_format, to_format, opts, ConversionLogger(LOG_DIR))
    except UnknownSchema as e:
        raise HTTPException(404, str(e))
    except MalformedInput as e:
        return _failure(400, e)
    except ConversionError as e:
        return _failure(422, e)
    return Response(
        content=out,
        media_type=MEDIA_TYPES[to_format],
        headers={"X-Commonmeta-Diagnostics": str(len(diags))},
    )

# Validate a document against a registered schema
@app.post("/validate/{name}", response_model=ValidationOut)
async def validate_document(request: Request, name: str, version: Optional[str] = None):
    """Validates the raw request body against schema ``name``."""
    try:
        v = validator(name, version)
    except UnknownSchema as e:
        raise HTTPException(404, str(e))
    data = await request.body()
    try:
        result = v.validate(data)
    except MalformedInput as e:
        return _failure(400, e)
    out: Dict[str, Any] = result.to_dict()
    return out
