"""Export, import and backup endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from prompt_library.api.models import (
    AnalyzeResponse,
    BackupResponse,
    ImportAnalysisResponse,
    ImportApplyRequest,
    ImportResultResponse,
    RestoreResponse,
)
from prompt_library.core.transfer import (
    BackupNotFoundError,
    ExportValidationError,
    TransferService,
    export_filename,
    get_transfer_service,
    serialize_export,
)

router = APIRouter()


@router.get("/export")
async def export_prompts(
    service: TransferService = Depends(get_transfer_service),
) -> Response:
    """Download the whole collection as a versioned JSON file."""
    try:
        payload = service.build_export_payload()
    except ExportValidationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(
        content=serialize_export(payload),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import/analyze", response_model=AnalyzeResponse)
async def analyze_import(
    request: Request,
    service: TransferService = Depends(get_transfer_service),
) -> AnalyzeResponse:
    """Check an uploaded export file. The request body is the raw file."""
    body = await request.body()
    analysis, payload = service.analyze_import(body)
    return AnalyzeResponse(analysis=ImportAnalysisResponse(**asdict(analysis)), payload=payload)


@router.post("/import/apply", response_model=ImportResultResponse)
async def apply_import(
    data: ImportApplyRequest,
    service: TransferService = Depends(get_transfer_service),
) -> ImportResultResponse:
    """Apply an analysed payload. Failures come back with applied=false."""
    result = service.apply_import(data.payload, data.mode)
    return ImportResultResponse(**asdict(result))


@router.get("/backups", response_model=list[BackupResponse])
async def list_backups(
    service: TransferService = Depends(get_transfer_service),
) -> list[BackupResponse]:
    return [BackupResponse(**b) for b in service.list_backups()]


@router.post("/backups/{key}/restore", response_model=RestoreResponse)
async def restore_backup(
    key: str,
    service: TransferService = Depends(get_transfer_service),
) -> RestoreResponse:
    """Replace the prompt collection with a backup taken before an import."""
    try:
        restored = service.restore_backup(key)
    except BackupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return RestoreResponse(key=key, restored=restored)
