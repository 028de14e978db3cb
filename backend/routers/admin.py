from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from auth import get_session_manager, is_allowlisted, require_researcher
from config import Settings, get_settings
from domain import ALL_FILTER, ContentKind
from schemas import (
    CardCreate,
    CardResponse,
    CardUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ReorderRequest,
    StudyCreate,
    StudyResponse,
    StudyUpdate,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    TreeNodeCreate,
    TreeNodeResponse,
    TreeNodeUpdate,
)
from services import admin as admin_service
from services.authn import verify_identity_token_and_get_email
from services.store import ResultStore, get_result_store

# Public admin router (for auth endpoints)
router = APIRouter(prefix="/admin", tags=["admin"])

# Secure router for researcher-only endpoints
secure_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_researcher)])


@router.post("/auth/login")
async def researcher_login(
    request: Request,
    settings: Settings = Depends(get_settings),
    manager=Depends(get_session_manager),
):
    # Require an identity-provider token via Authorization: Bearer <token>
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")

    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Invalid Bearer token")

    email = await verify_identity_token_and_get_email(token, settings)
    if not is_allowlisted(email, settings):
        return JSONResponse(status_code=403, content={"detail": "Email is not allowlisted"})

    resp = JSONResponse({"ok": True, "email": email})
    manager.set_cookie(resp, email)
    return resp


@router.post("/auth/logout")
async def researcher_logout(manager=Depends(get_session_manager)):
    resp = JSONResponse({"ok": True})
    manager.clear_cookie(resp)
    return resp


@secure_router.post("/studies", response_model=StudyResponse)
async def create_study(
    study: StudyCreate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.create_study(study, store)


@secure_router.get("/studies", response_model=list[StudyResponse])
async def list_studies(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.list_studies(skip=skip, limit=limit, store=store)


@secure_router.get("/studies/{study_id}", response_model=StudyResponse)
async def get_study(
    study_id: str,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.get_study(study_id=study_id, store=store)


@secure_router.patch("/studies/{study_id}", response_model=StudyResponse)
async def update_study(
    study_id: str,
    payload: StudyUpdate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.update_study(study_id=study_id, payload=payload, store=store)


@secure_router.delete("/studies/{study_id}")
async def delete_study(
    study_id: str,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.delete_study(study_id=study_id, store=store)


@secure_router.post("/studies/{study_id}/cards", response_model=CardResponse)
async def create_card(
    study_id: str,
    payload: CardCreate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.create_content(
        study_id=study_id, kind=ContentKind.CARDS, payload=payload, store=store
    )


@secure_router.patch("/studies/{study_id}/cards/{item_id}", response_model=CardResponse)
async def update_card(
    study_id: str,
    item_id: str,
    payload: CardUpdate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.update_content(
        study_id=study_id, kind=ContentKind.CARDS, item_id=item_id, payload=payload, store=store
    )


@secure_router.post("/studies/{study_id}/categories", response_model=CategoryResponse)
async def create_category(
    study_id: str,
    payload: CategoryCreate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.create_content(
        study_id=study_id, kind=ContentKind.CATEGORIES, payload=payload, store=store
    )


@secure_router.patch("/studies/{study_id}/categories/{item_id}", response_model=CategoryResponse)
async def update_category(
    study_id: str,
    item_id: str,
    payload: CategoryUpdate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.update_content(
        study_id=study_id, kind=ContentKind.CATEGORIES, item_id=item_id, payload=payload, store=store
    )


@secure_router.post("/studies/{study_id}/tree-nodes", response_model=TreeNodeResponse)
async def create_tree_node(
    study_id: str,
    payload: TreeNodeCreate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.create_content(
        study_id=study_id, kind=ContentKind.TREE_NODES, payload=payload, store=store
    )


@secure_router.patch("/studies/{study_id}/tree-nodes/{item_id}", response_model=TreeNodeResponse)
async def update_tree_node(
    study_id: str,
    item_id: str,
    payload: TreeNodeUpdate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.update_content(
        study_id=study_id, kind=ContentKind.TREE_NODES, item_id=item_id, payload=payload, store=store
    )


@secure_router.post("/studies/{study_id}/tasks", response_model=TaskResponse)
async def create_task(
    study_id: str,
    payload: TaskCreate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.create_content(
        study_id=study_id, kind=ContentKind.TASKS, payload=payload, store=store
    )


@secure_router.patch("/studies/{study_id}/tasks/{item_id}", response_model=TaskResponse)
async def update_task(
    study_id: str,
    item_id: str,
    payload: TaskUpdate,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.update_content(
        study_id=study_id, kind=ContentKind.TASKS, item_id=item_id, payload=payload, store=store
    )


@secure_router.put("/studies/{study_id}/{kind}/order")
async def reorder_content(
    study_id: str,
    kind: ContentKind,
    payload: ReorderRequest,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.reorder_content(
        study_id=study_id, kind=kind, ids=payload.ids, store=store
    )


@secure_router.delete("/studies/{study_id}/{kind}/{item_id}")
async def delete_content(
    study_id: str,
    kind: ContentKind,
    item_id: str,
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.delete_content(
        study_id=study_id, kind=kind, item_id=item_id, store=store
    )


@secure_router.get("/studies/{study_id}/results")
async def get_study_results(
    study_id: str,
    participant_id: str = Query(ALL_FILTER),
    task_id: str = Query(ALL_FILTER),
    category_type: str = Query(ALL_FILTER),
    settings: Settings = Depends(get_settings),
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.get_study_results(
        study_id=study_id,
        participant_id=participant_id,
        task_id=task_id,
        category_type=category_type,
        settings=settings,
        store=store,
    )


@secure_router.get("/studies/{study_id}/results/heatmap")
async def get_heatmap(
    study_id: str,
    task_id: Optional[str] = Query(None),
    participant_id: str = Query(ALL_FILTER),
    width: int = Query(800, ge=1, le=10000),
    height: int = Query(600, ge=1, le=10000),
    settings: Settings = Depends(get_settings),
    store: ResultStore = Depends(get_result_store),
):
    return await admin_service.get_heatmap(
        study_id=study_id,
        task_id=task_id,
        participant_id=participant_id,
        width=width,
        height=height,
        settings=settings,
        store=store,
    )


@secure_router.get("/studies/{study_id}/export.csv")
async def export_results_csv(
    study_id: str,
    store: ResultStore = Depends(get_result_store),
):
    chunks = await admin_service.build_export_csv_chunks(study_id=study_id, store=store)
    return StreamingResponse(
        chunks,
        media_type="text/csv",
        headers={
            "Content-Disposition": (
                f"attachment; filename={admin_service.build_export_filename(study_id, 'csv')}"
            )
        },
    )


@secure_router.get("/studies/{study_id}/export.json")
async def export_results_json(
    study_id: str,
    store: ResultStore = Depends(get_result_store),
):
    document = await admin_service.build_export_json(study_id=study_id, store=store)
    return JSONResponse(
        document,
        headers={
            "Content-Disposition": (
                f"attachment; filename={admin_service.build_export_filename(study_id, 'json')}"
            )
        },
    )
