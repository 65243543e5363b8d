"""Shared fixtures: an in-memory stand-in for a CMIS session."""

import itertools
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from alfresco_bridge.core.errors import ContentAlreadyExistsError, ObjectNotFoundError
from alfresco_bridge.schemas.repository import (
    Action,
    BaseType,
    ChildrenPage,
    RepositoryCapabilities,
    RepositoryInfo,
    RepositoryNode,
    TypeDefinition,
    TypeTree,
)

ALL_ACTIONS = frozenset(action.value for action in Action)


class FakeCmisSession:
    """Keeps folders and documents in a dict and answers like CmisSession."""

    def __init__(self, *, unfiling: bool = True, content_stream_updatability: str = "anytime"):
        self.repository = RepositoryInfo(
            id="-default-",
            name="Main Repository",
            product_name="Alfresco Community",
            product_version="7.4.0",
            cmis_version_supported="1.1",
            repository_url="http://alfresco.test/browser",
            root_folder_url="http://alfresco.test/browser/root",
            capabilities=RepositoryCapabilities(
                unfiling=unfiling,
                content_stream_updatability=content_stream_updatability,
                acl="manage",
                multifiling=True,
            ),
        )
        self._ids = itertools.count(1)
        self.objects: Dict[str, dict] = {
            "root": {"id": "root", "name": "", "base": BaseType.FOLDER, "parent": None, "actions": set(ALL_ACTIONS)}
        }
        self.undeletable: set = set()
        self.calls: List[tuple] = []
        self.closed = False

    @property
    def repository_info(self) -> RepositoryInfo:
        return self.repository

    # ── Test helpers ───────────────────────────────────────────────────

    def path_of(self, object_id: str) -> str:
        obj = self.objects[object_id]
        if obj["parent"] is None:
            return "/"
        parent_path = self.path_of(obj["parent"])
        return parent_path.rstrip("/") + "/" + obj["name"]

    def find(self, path: str) -> Optional[dict]:
        normalized = "/" + path.strip("/") if path.strip("/") else "/"
        for obj in self.objects.values():
            if self.path_of(obj["id"]) == normalized:
                return obj
        return None

    def children_of(self, object_id: str) -> List[dict]:
        return [obj for obj in self.objects.values() if obj["parent"] == object_id]

    def _child_named(self, parent_id: str, name: str) -> Optional[dict]:
        for obj in self.children_of(parent_id):
            if obj["name"] == name:
                return obj
        return None

    def _add(self, parent_id: str, name: str, base: BaseType, **extra) -> dict:
        obj = {
            "id": f"obj-{next(self._ids)}",
            "name": name,
            "base": base,
            "parent": parent_id,
            "actions": set(ALL_ACTIONS),
            "created": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            **extra,
        }
        self.objects[obj["id"]] = obj
        return obj

    def add_folder(self, path: str) -> dict:
        """Create ``path`` and any missing ancestors."""
        parent = self.objects["root"]
        for segment in [s for s in path.split("/") if s]:
            child = self._child_named(parent["id"], segment)
            if child is None:
                child = self._add(parent["id"], segment, BaseType.FOLDER)
            parent = child
        return parent

    def add_document(self, folder_path: str, name: str, content: bytes = b"", mime_type: str = "text/plain") -> dict:
        folder = self.add_folder(folder_path)
        return self._add(
            folder["id"], name, BaseType.DOCUMENT,
            content=content, mime_type=mime_type, description=None, version="1.0",
        )

    def deny(self, path: str, action: Action) -> None:
        self.find(path)["actions"].discard(action.value)

    def node(self, obj: dict) -> RepositoryNode:
        is_doc = obj["base"] == BaseType.DOCUMENT
        created = obj.get("created")
        return RepositoryNode(
            id=obj["id"],
            name=obj["name"],
            base_type=obj["base"],
            type_id=obj["base"].value,
            path=self.path_of(obj["id"]) if not is_doc else None,
            description=obj.get("description"),
            created_by="admin",
            creation_date=created,
            last_modified_by="admin",
            last_modification_date=created,
            version_label=obj.get("version") if is_doc else None,
            content_stream_length=len(obj.get("content", b"")) if is_doc else None,
            content_stream_mime_type=obj.get("mime_type") if is_doc else None,
            allowable_actions=frozenset(obj["actions"]),
            properties={
                "cmis:objectId": obj["id"],
                "cmis:name": obj["name"],
                "cmis:creationDate": int(created.timestamp() * 1000) if created else None,
            },
        )

    # ── CmisSession surface ────────────────────────────────────────────

    async def get_object_by_path(self, path: str) -> RepositoryNode:
        self.calls.append(("get_object_by_path", path))
        obj = self.find(path)
        if obj is None:
            raise ObjectNotFoundError(f"HTTP 404: Object not found: {path}", status_code=404)
        node = self.node(obj)
        if node.path is None:
            node = node.model_copy(update={"path": "/" + path.strip("/")})
        return node

    async def get_object(self, object_id: str) -> RepositoryNode:
        if object_id not in self.objects:
            raise ObjectNotFoundError(object_id, status_code=404)
        return self.node(self.objects[object_id])

    async def get_root_folder(self) -> RepositoryNode:
        return self.node(self.objects["root"])

    async def get_children(self, folder_id: str, *, max_items: int = 100, skip_count: int = 0) -> ChildrenPage:
        self.calls.append(("get_children", folder_id, max_items, skip_count))
        children = sorted(self.children_of(folder_id), key=lambda o: o["name"])
        window = children[skip_count:skip_count + max_items]
        return ChildrenPage(
            nodes=[self.node(obj) for obj in window],
            has_more_items=skip_count + max_items < len(children),
            num_items=len(children),
        )

    async def get_parents(self, object_id: str) -> List[RepositoryNode]:
        parent = self.objects[object_id]["parent"]
        return [self.node(self.objects[parent])] if parent else []

    async def get_content_stream(self, object_id: str) -> bytes:
        return self.objects[object_id].get("content", b"")

    async def get_type_descendants(self, type_id=None, depth=-1, include_property_definitions=False) -> List[TypeTree]:
        document = TypeTree(
            type=TypeDefinition(
                id="cmis:document", display_name="Document", base_id=BaseType.DOCUMENT,
                fileable=True, queryable=True, versionable=True, content_stream_allowed="allowed",
            ),
            children=[
                TypeTree(type=TypeDefinition(
                    id="cm:content", display_name="Content", base_id=BaseType.DOCUMENT,
                    fileable=True, queryable=True, versionable=True, content_stream_allowed="allowed",
                )),
            ],
        )
        folder = TypeTree(
            type=TypeDefinition(
                id="cmis:folder", display_name="Folder", base_id=BaseType.FOLDER, fileable=True, queryable=True,
            ),
        )
        return [document, folder]

    async def get_type_definition(self, type_id: str) -> TypeDefinition:
        self.calls.append(("get_type_definition", type_id))
        for tree in await self.get_type_descendants():
            if tree.type.id == type_id:
                return tree.type
        raise ObjectNotFoundError(f"HTTP 404: Type not found: {type_id}", status_code=404)

    async def create_folder(self, parent_id: str, name: str) -> RepositoryNode:
        self.calls.append(("create_folder", parent_id, name))
        if self._child_named(parent_id, name) is not None:
            raise ContentAlreadyExistsError(f"HTTP 409: {name} already exists", status_code=409)
        return self.node(self._add(parent_id, name, BaseType.FOLDER))

    async def create_document(self, parent_id, name, content, mime_type, *, description=None, versioning_state="major"):
        self.calls.append(("create_document", parent_id, name, versioning_state))
        if self._child_named(parent_id, name) is not None:
            raise ContentAlreadyExistsError(f"HTTP 409: {name} already exists", status_code=409)
        obj = self._add(
            parent_id, name, BaseType.DOCUMENT,
            content=content, mime_type=mime_type, description=description, version="1.0",
        )
        return self.node(obj)

    async def set_content_stream(self, object_id, name, content, mime_type, *, overwrite=True):
        self.calls.append(("set_content_stream", object_id, mime_type, overwrite))
        obj = self.objects[object_id]
        obj["content"] = content
        obj["mime_type"] = mime_type
        obj["version"] = "1.1"
        return self.node(obj)

    async def update_properties(self, object_id, properties):
        obj = self.objects[object_id]
        if "cmis:name" in properties:
            obj["name"] = properties["cmis:name"]
        return self.node(obj)

    async def delete(self, object_id: str, *, all_versions: bool = True) -> None:
        self.calls.append(("delete", object_id, all_versions))
        del self.objects[object_id]

    async def delete_tree(self, folder_id, *, all_versions=True, unfile="unfile", continue_on_failure=True):
        self.calls.append(("delete_tree", folder_id, unfile))
        failed: List[str] = []

        def remove(object_id: str) -> bool:
            removed_all = True
            for child in list(self.children_of(object_id)):
                removed_all = remove(child["id"]) and removed_all
            if object_id in self.undeletable:
                failed.append(object_id)
                return False
            if removed_all:
                del self.objects[object_id]
            return removed_all

        remove(folder_id)
        return failed

    async def copy_document(self, source_id: str, target_folder_id: str) -> RepositoryNode:
        source = self.objects[source_id]
        if self._child_named(target_folder_id, source["name"]) is not None:
            raise ContentAlreadyExistsError(f"HTTP 409: {source['name']} already exists", status_code=409)
        obj = self._add(
            target_folder_id, source["name"], BaseType.DOCUMENT,
            content=source.get("content", b""), mime_type=source.get("mime_type"),
            description=source.get("description"), version="1.0",
        )
        return self.node(obj)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session():
    session = FakeCmisSession()
    session.add_folder("/CI")
    return session
