from pydantic import BaseModel
from typing import Optional, List


class IngestionResult(BaseModel):
    """Outcome of one uploaded file.

    ``success`` only says the file was handled; ``persisted`` says whether a
    row was actually written. Degraded extractions carry a ``warning``.
    """
    file_name: str
    success: bool = True
    persisted: bool
    invoice_id: Optional[int] = None
    warning: Optional[str] = None
    missing_fields: List[str] = []


class UploadBatchResponse(BaseModel):
    results: List[IngestionResult]
    successful: int
    persisted: int
    with_warnings: int
