"""Generic CRUD + reorder endpoints, one router per resource kind."""

from fastapi import APIRouter, HTTPException, Request

from pbx_console.schemas.api import OperationResponse, ReorderRequest
from pbx_console.schemas.kinds import ResourceKind
from pbx_console.services.reference import (
    DuplicateResourceError,
    InMemoryCollection,
    InvalidIndexError,
    UnknownResourceError,
)


def build_collection_router(kind: ResourceKind) -> APIRouter:
    """Router serving ``kind`` at the prefix it is included under."""
    router = APIRouter()
    model = kind.model
    label = kind.title

    def collection(request: Request) -> InMemoryCollection:
        return request.app.state.collections[kind.name]

    @router.get("", name=f"list_{kind.name}")
    async def list_items(request: Request):
        items = collection(request).all()
        return {kind.list_key: [item.model_dump(mode="json") for item in items], "total": len(items)}

    @router.post("/reorder", name=f"reorder_{kind.name}")
    async def reorder_items(payload: ReorderRequest, request: Request):
        try:
            items = collection(request).reorder(payload.from_index, payload.to_index)
        except InvalidIndexError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "success": True,
            "message": f"{label} order updated successfully",
            kind.list_key: [item.model_dump(mode="json") for item in items],
        }

    @router.get("/{resource_id}", name=f"get_{kind.name}")
    async def get_item(resource_id: str, request: Request):
        try:
            return collection(request).get(resource_id).model_dump(mode="json")
        except UnknownResourceError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @router.post("", response_model=OperationResponse, status_code=201, name=f"create_{kind.name}")
    async def create_item(payload: model, request: Request):
        try:
            item = collection(request).add(payload)
        except DuplicateResourceError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return OperationResponse(success=True, message=f"{label} created successfully", id=item.id)

    @router.put("/{resource_id}", response_model=OperationResponse, name=f"update_{kind.name}")
    async def update_item(resource_id: str, payload: model, request: Request):
        item = payload.model_copy(update={"id": resource_id})
        try:
            collection(request).replace(resource_id, item)
        except UnknownResourceError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return OperationResponse(success=True, message=f"{label} updated successfully")

    @router.delete("/{resource_id}", response_model=OperationResponse, name=f"delete_{kind.name}")
    async def delete_item(resource_id: str, request: Request):
        try:
            collection(request).remove(resource_id)
        except UnknownResourceError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return OperationResponse(success=True, message=f"{label} deleted successfully")

    return router
