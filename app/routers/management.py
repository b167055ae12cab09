from __future__ import annotations

from fastapi import APIRouter, Response

from app.core.errors import GatewayError
from app.ollama.schemas import CopyRequest, EmbeddingsRequest, ModelNameRequest

router = APIRouter(prefix="/api", tags=["ollama"])


def _not_supported(operation: str) -> GatewayError:
    return GatewayError(
        status_code=501,
        message=f"{operation} not supported for Amazon Q service",
        code="not_implemented",
    )


@router.post("/create")
async def create_model(_payload: ModelNameRequest):
    raise _not_supported("Model creation")


@router.post("/pull")
async def pull_model(_payload: ModelNameRequest):
    raise _not_supported("Model pulling")


@router.post("/push")
async def push_model(_payload: ModelNameRequest):
    raise _not_supported("Model pushing")


@router.delete("/delete")
async def delete_model(_payload: ModelNameRequest):
    raise _not_supported("Model deletion")


@router.post("/copy")
async def copy_model(_payload: CopyRequest):
    raise _not_supported("Model copying")


@router.post("/embeddings")
@router.post("/embed")
async def embeddings(_payload: EmbeddingsRequest):
    raise _not_supported("Embeddings")


@router.get("/blobs/{digest}")
async def get_blob(digest: str):
    raise GatewayError(
        status_code=404,
        message="Blob storage not supported for Amazon Q service",
        code="not_found",
    )


@router.head("/blobs/{digest}")
async def head_blob(digest: str) -> Response:
    return Response(status_code=404)


@router.post("/blobs/{digest}")
async def upload_blob(digest: str):
    raise _not_supported("Blob upload")
