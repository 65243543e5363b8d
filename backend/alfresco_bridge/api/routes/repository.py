from fastapi import APIRouter, Depends, HTTPException, Query

from alfresco_bridge.api.deps import get_gateway
from alfresco_bridge.services.repository_gateway import RepositoryGateway

router = APIRouter(prefix="/repository", tags=["repository"])


# TODO: [SECURITY] Add authentication middleware before production deployment
@router.get("/info")
async def repository_info(gateway: RepositoryGateway = Depends(get_gateway)):
    """Repository identity and capabilities of the active session."""
    info = gateway.session.repository_info
    capabilities = gateway.describe_capabilities()
    return {
        "id": info.id,
        "name": info.name,
        "product_name": info.product_name,
        "product_version": info.product_version,
        "cmis_version_supported": info.cmis_version_supported,
        "capabilities": capabilities.model_dump(),
    }


@router.get("/children")
async def list_children(
    path: str = Query("/"),
    page_size: int = Query(25, ge=1, le=1000),
    gateway: RepositoryGateway = Depends(get_gateway),
):
    """List a folder's children, walking every page."""
    if path in ("", "/"):
        nodes = await gateway.list_top_folder_paged(page_size=page_size)
    else:
        folder = await gateway.get_folder(path)
        if folder is None:
            raise HTTPException(status_code=404, detail=f"Folder does not exist: {path}")
        nodes = []
        async for page in gateway.iter_children(folder, page_size=page_size):
            nodes.extend(page.nodes)
    return {
        "path": path,
        "children": [
            node.model_dump(include={"id", "name", "base_type", "type_id", "content_stream_length"})
            for node in nodes
        ],
    }


@router.get("/types")
async def list_types(gateway: RepositoryGateway = Depends(get_gateway)):
    """Type hierarchy, one indented line per type."""
    return {"types": await gateway.list_types()}
