"""CMIS 1.1 Browser binding client.

Speaks the JSON binding Alfresco exposes under
``/alfresco/api/-default-/public/cmis/versions/1.1/browser``. Only the
services the bridge uses are implemented. Objects are never cached: every
lookup goes back to the repository.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from alfresco_bridge.core.errors import (
    ContentAlreadyExistsError,
    ObjectNotFoundError,
    RepositoryConnectionError,
    RepositoryError,
    RepositoryPermissionError,
)
from alfresco_bridge.schemas.repository import (
    ChildrenPage,
    RepositoryInfo,
    RepositoryNode,
    TypeDefinition,
    TypeTree,
)

logger = logging.getLogger(__name__)

_NOT_FOUND = {"objectNotFound"}
_PERMISSION_DENIED = {"permissionDenied", "unauthorized"}
_ALREADY_EXISTS = {"contentAlreadyExists", "nameConstraintViolation"}

# Ask for succinct properties and allowable actions on every object read
_OBJECT_PARAMS = {"succinct": "true", "includeAllowableActions": "true"}


def raise_for_cmis(response: httpx.Response) -> None:
    """Translate a CMIS error payload into the repository error taxonomy."""
    if response.is_success:
        return

    exception = None
    message = response.text or response.reason_phrase
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        exception = payload.get("exception")
        message = payload.get("message") or message

    status = response.status_code
    detail = f"HTTP {status}: {message}"
    if exception in _NOT_FOUND or (exception is None and status == 404):
        raise ObjectNotFoundError(detail, status_code=status, cmis_exception=exception)
    if exception in _PERMISSION_DENIED or status in (401, 403):
        raise RepositoryPermissionError(detail, status_code=status, cmis_exception=exception)
    if exception in _ALREADY_EXISTS or (exception is None and status == 409):
        raise ContentAlreadyExistsError(detail, status_code=status, cmis_exception=exception)
    raise RepositoryError(detail, status_code=status, cmis_exception=exception)


def properties_form(properties: Dict[str, Any]) -> Dict[str, str]:
    """Encode properties as ``propertyId[n]`` / ``propertyValue[n]`` form fields."""
    form = {}
    for i, (prop_id, value) in enumerate(properties.items()):
        form[f"propertyId[{i}]"] = prop_id
        form[f"propertyValue[{i}]"] = str(value)
    return form


def _failed_ids(response: httpx.Response) -> Optional[List[str]]:
    if not response.content:
        return None
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("ids"), list):
        return [str(object_id) for object_id in payload["ids"]]
    return None


class CmisSession:
    """An authenticated conversation with one CMIS repository."""

    def __init__(self, client: httpx.AsyncClient, repository: RepositoryInfo):
        self._client = client
        self.repository = repository

    @property
    def repository_info(self) -> RepositoryInfo:
        return self.repository

    def _path_url(self, path: str) -> str:
        root = self.repository.root_folder_url.rstrip("/")
        if not path or path == "/":
            return root
        return root + quote("/" + path.strip("/"))

    async def _request(self, method: str, url: str, *, check: bool = True, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise RepositoryConnectionError(
                f"Could not reach the Alfresco server at {url}: {e}"
            ) from e
        if check:
            raise_for_cmis(response)
        return response

    async def _action(
        self,
        object_id: str,
        action: str,
        data: Optional[dict] = None,
        files=None,
        *,
        check: bool = True,
    ) -> httpx.Response:
        form = {"cmisaction": action, "succinct": "true"}
        if data:
            form.update(data)
        return await self._request(
            "POST",
            self.repository.root_folder_url,
            params={"objectId": object_id},
            data=form,
            files=files,
            check=check,
        )

    # ── Reads ──────────────────────────────────────────────────────────

    async def get_object_by_path(self, path: str) -> RepositoryNode:
        """Fetch the object at ``path``; raises ObjectNotFoundError if absent."""
        response = await self._request(
            "GET",
            self._path_url(path),
            params={"cmisselector": "object", **_OBJECT_PARAMS},
        )
        normalized = "/" + path.strip("/") if path.strip("/") else "/"
        return RepositoryNode.from_cmis(response.json(), path=normalized)

    async def get_object(self, object_id: str) -> RepositoryNode:
        response = await self._request(
            "GET",
            self.repository.root_folder_url,
            params={"objectId": object_id, "cmisselector": "object", **_OBJECT_PARAMS},
        )
        return RepositoryNode.from_cmis(response.json())

    async def get_root_folder(self) -> RepositoryNode:
        return await self.get_object_by_path("/")

    async def get_children(self, folder_id: str, *, max_items: int = 100, skip_count: int = 0) -> ChildrenPage:
        response = await self._request(
            "GET",
            self.repository.root_folder_url,
            params={
                "objectId": folder_id,
                "cmisselector": "children",
                "maxItems": str(max_items),
                "skipCount": str(skip_count),
                **_OBJECT_PARAMS,
            },
        )
        data = response.json()
        return ChildrenPage(
            nodes=[RepositoryNode.from_cmis(entry["object"]) for entry in data.get("objects", [])],
            has_more_items=bool(data.get("hasMoreItems")),
            num_items=data.get("numItems"),
        )

    async def get_parents(self, object_id: str) -> List[RepositoryNode]:
        response = await self._request(
            "GET",
            self.repository.root_folder_url,
            params={"objectId": object_id, "cmisselector": "parents", **_OBJECT_PARAMS},
        )
        return [RepositoryNode.from_cmis(entry["object"]) for entry in response.json()]

    async def get_content_stream(self, object_id: str) -> bytes:
        response = await self._request(
            "GET",
            self.repository.root_folder_url,
            params={"objectId": object_id, "cmisselector": "content"},
        )
        return response.content

    async def get_type_descendants(
        self,
        type_id: Optional[str] = None,
        depth: int = -1,
        include_property_definitions: bool = False,
    ) -> List[TypeTree]:
        params = {
            "cmisselector": "typeDescendants",
            "depth": str(depth),
            "includePropertyDefinitions": str(include_property_definitions).lower(),
        }
        if type_id:
            params["typeId"] = type_id
        response = await self._request("GET", self.repository.repository_url, params=params)
        return [TypeTree.from_cmis(entry) for entry in response.json()]

    async def get_type_definition(self, type_id: str) -> TypeDefinition:
        response = await self._request(
            "GET",
            self.repository.repository_url,
            params={"cmisselector": "typeDefinition", "typeId": type_id},
        )
        return TypeDefinition.model_validate(response.json())

    # ── Writes ─────────────────────────────────────────────────────────

    async def create_folder(self, parent_id: str, name: str) -> RepositoryNode:
        response = await self._action(
            parent_id,
            "createFolder",
            properties_form({"cmis:objectTypeId": "cmis:folder", "cmis:name": name}),
        )
        return RepositoryNode.from_cmis(response.json())

    async def create_document(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        mime_type: str,
        *,
        description: Optional[str] = None,
        versioning_state: str = "major",
    ) -> RepositoryNode:
        props = {"cmis:objectTypeId": "cmis:document", "cmis:name": name}
        if description is not None:
            props["cmis:description"] = description
        data = properties_form(props)
        data["versioningState"] = versioning_state
        response = await self._action(
            parent_id,
            "createDocument",
            data,
            files={"content": (name, content, mime_type)},
        )
        return RepositoryNode.from_cmis(response.json())

    async def set_content_stream(
        self,
        object_id: str,
        name: str,
        content: bytes,
        mime_type: str,
        *,
        overwrite: bool = True,
    ) -> Optional[RepositoryNode]:
        """Replace the content; returns the new version, or None if none was created."""
        response = await self._action(
            object_id,
            "setContent",
            {"overwriteFlag": str(overwrite).lower()},
            files={"content": (name, content, mime_type)},
        )
        if not response.content:
            return None
        return RepositoryNode.from_cmis(response.json())

    async def update_properties(self, object_id: str, properties: Dict[str, Any]) -> RepositoryNode:
        response = await self._action(object_id, "update", properties_form(properties))
        return RepositoryNode.from_cmis(response.json())

    async def delete(self, object_id: str, *, all_versions: bool = True) -> None:
        await self._action(object_id, "delete", {"allVersions": str(all_versions).lower()})

    async def delete_tree(
        self,
        folder_id: str,
        *,
        all_versions: bool = True,
        unfile: str = "unfile",
        continue_on_failure: bool = True,
    ) -> List[str]:
        """Delete a folder tree; returns the ids the repository failed to delete.

        A partial failure comes back as HTTP 500 with a ``{"ids": [...]}``
        failedToDelete body rather than a CMIS exception payload.
        """
        response = await self._action(
            folder_id,
            "deleteTree",
            {
                "allVersions": str(all_versions).lower(),
                "unfileObjects": unfile,
                "continueOnFailure": str(continue_on_failure).lower(),
            },
            check=False,
        )
        if response.status_code == 500:
            failed = _failed_ids(response)
            if failed is not None:
                return failed
        raise_for_cmis(response)
        return _failed_ids(response) or []

    async def copy_document(self, source_id: str, target_folder_id: str) -> RepositoryNode:
        response = await self._action(
            target_folder_id,
            "createDocumentFromSource",
            {"sourceId": source_id},
        )
        return RepositoryNode.from_cmis(response.json())

    async def aclose(self) -> None:
        await self._client.aclose()


async def fetch_repositories(client: httpx.AsyncClient, url: str) -> List[RepositoryInfo]:
    """Read the service document: one entry per repository the server advertises."""
    try:
        response = await client.get(url)
    except httpx.TransportError as e:
        raise RepositoryConnectionError(f"Could not connect to the Alfresco Server at {url}: {e}") from e
    raise_for_cmis(response)
    payload = response.json()
    if not isinstance(payload, dict):
        raise RepositoryConnectionError(f"Unexpected service document from {url}")
    return [RepositoryInfo.model_validate(info) for info in payload.values()]


async def create_session(
    url: str,
    username: str,
    password: str,
    *,
    timeout: float = 60.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CmisSession:
    """Open a session against the first repository the server advertises."""
    client = httpx.AsyncClient(
        auth=(username, password),
        timeout=httpx.Timeout(timeout, connect=15.0),
        headers={"Accept-Encoding": "gzip, deflate"},
        transport=transport,
    )
    try:
        repositories = await fetch_repositories(client, url)
        if not repositories:
            raise RepositoryConnectionError("Could not connect to the Alfresco Server, no repository found!")
    except (RepositoryError, httpx.HTTPError, ValueError):
        await client.aclose()
        raise

    logger.info("Found (%d) Alfresco repositories", len(repositories))
    repository = repositories[0]
    logger.info(
        "Info about the first Alfresco repo [ID=%s][name=%s][CMIS ver supported=%s]",
        repository.id,
        repository.name,
        repository.cmis_version_supported,
    )
    return CmisSession(client, repository)
