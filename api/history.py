"""History API: the session's newest-first error history"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import HistoryOutcome, HistoryResponse, HistorySelectResponse
from security import get_workspace
from services.workspace_service import Workspace

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/history", tags=["history"])

def _history_response(workspace: Workspace, outcome: HistoryOutcome = None) -> HistoryResponse:
    reconciler = workspace.reconciler
    entries = outcome.entries if outcome is not None else reconciler.entries
    condition = outcome.condition if outcome is not None else reconciler.condition
    return HistoryResponse(
        state=reconciler.state,
        entries=entries,
        condition=condition,
        total_count=len(entries)
    )

def _require_identity(workspace: Workspace):
    identity = workspace.identity
    if identity is None:
        raise HTTPException(status_code=401, detail="Session is signed out")
    return identity

@router.get("", response_model=HistoryResponse)
async def get_history(workspace: Workspace = Depends(get_workspace)):
    """Current collection, reconciler state and pending condition"""
    return _history_response(workspace)

@router.post("/reload", response_model=HistoryResponse)
async def reload_history(workspace: Workspace = Depends(get_workspace)):
    """Explicit fresh load; the way out of a failed load"""
    identity = _require_identity(workspace)
    outcome = await workspace.reconciler.load(identity.user_id)
    return _history_response(workspace, outcome)

@router.get("/{entry_id}", response_model=HistorySelectResponse)
async def select_history_entry(entry_id: str, workspace: Workspace = Depends(get_workspace)):
    """Re-open one history entry"""
    entry = workspace.reconciler.find(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="History entry not found")
    return HistorySelectResponse(result=entry.result, is_historical_match=entry.count > 1)

@router.delete("/{entry_id}", response_model=HistoryResponse)
async def delete_history_entry(entry_id: str, workspace: Workspace = Depends(get_workspace)):
    """Delete one entry; it stays listed when the store refuses"""
    _require_identity(workspace)
    outcome = await workspace.reconciler.delete(entry_id)
    if outcome.condition is not None:
        raise HTTPException(status_code=409, detail=outcome.condition.model_dump(mode="json"))
    return _history_response(workspace, outcome)

@router.delete("", response_model=HistoryResponse)
async def clear_history(workspace: Workspace = Depends(get_workspace)):
    """Delete every entry of the user; nothing is cleared when the store refuses"""
    identity = _require_identity(workspace)
    outcome = await workspace.reconciler.clear_all(identity.user_id)
    if outcome.condition is not None:
        raise HTTPException(status_code=409, detail=outcome.condition.model_dump(mode="json"))
    return _history_response(workspace, outcome)
