"""Analysis API: submit a log excerpt and get a deduplicated diagnosis"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from typing import List, Optional
import logging

from schemas import AnalyzeRequest, AnalyzeResponse, ToolInfo
from security import get_workspace
from services.analysis_service import AnalysisService, Analyzer
from services.exceptions import AnalysisFailure, QuotaExceeded
from services.llm_service import AnalyzerService
from services.workspace_service import Workspace
from shared.tools import TOOLS

logger = logging.getLogger(__name__)
router = APIRouter(tags=["analysis"])

def get_analyzer() -> Analyzer:
    """Get the analyzer instance (HTTP 503 when the model is not configured)"""
    try:
        return AnalyzerService()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))

async def _run_analysis(workspace: Workspace, analyzer: Analyzer,
                        log_text: str, tool: Optional[str]) -> AnalyzeResponse:
    identity = workspace.identity
    if identity is None:
        raise HTTPException(status_code=401, detail="Session is signed out")

    service = AnalysisService(analyzer, workspace.reconciler)
    try:
        return await service.process(identity.user_id, log_text, tool)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QuotaExceeded as e:
        raise HTTPException(status_code=429, detail=str(e))
    except AnalysisFailure as e:
        logger.error(f"Analysis failed for {identity.email}: {e}")
        raise HTTPException(status_code=502, detail="Failed to analyze log. Please try again.")

@router.get("/tools", response_model=List[ToolInfo])
async def list_tools():
    """Supported ETL tools"""
    return TOOLS

@router.post("/analysis", response_model=AnalyzeResponse)
async def analyze_log(
    request: AnalyzeRequest,
    workspace: Workspace = Depends(get_workspace),
    analyzer: Analyzer = Depends(get_analyzer)
):
    """Analyze pasted log text"""
    return await _run_analysis(workspace, analyzer, request.log_text, request.tool)

@router.post("/analysis/upload", response_model=AnalyzeResponse)
async def analyze_uploaded_log(
    file: UploadFile = File(...),
    tool: Optional[str] = Form(None),
    workspace: Workspace = Depends(get_workspace),
    analyzer: Analyzer = Depends(get_analyzer)
):
    """Analyze an uploaded log file (decoded as UTF-8)"""
    content = await file.read()
    log_text = content.decode("utf-8", errors="replace")
    return await _run_analysis(workspace, analyzer, log_text, tool)
