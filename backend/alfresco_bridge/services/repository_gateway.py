"""Folder and document operations against an Alfresco repository session."""

import io
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, BinaryIO, Dict, List, Optional

from alfresco_bridge.core.errors import (
    ContentAlreadyExistsError,
    ObjectNotFoundError,
    RepositoryPermissionError,
)
from alfresco_bridge.schemas.repository import (
    Action,
    BaseType,
    ChildrenPage,
    RepositoryCapabilities,
    RepositoryNode,
    TypeTree,
)
from alfresco_bridge.services.cmis_binding import CmisSession

logger = logging.getLogger(__name__)

TEXT_MIME_TYPE = "text/plain; charset=UTF-8"

_DATETIME_PROPERTIES = {
    "cmis:creationDate",
    "cmis:lastModificationDate",
    "cm:created",
    "cm:modified",
    "cm:accessed",
}


def join_path(path: str, name: str) -> str:
    """``/CI`` + ``T1`` -> ``/CI/T1``."""
    base = path or "/"
    if not base.endswith("/"):
        base += "/"
    return base + name


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def require_action(node: RepositoryNode, action: Action, message: str) -> None:
    """Raise RepositoryPermissionError unless ``action`` is allowed on ``node``."""
    if not node.can(action):
        raise RepositoryPermissionError(f"Current user does not have permission to {message}")


class RepositoryGateway:
    """CRUD and introspection over one CMIS session.

    Lookups treat "not found" as a normal outcome and return None. Writes
    check the caller's allowable actions first and raise
    RepositoryPermissionError when the action is not granted.
    """

    def __init__(self, session: CmisSession):
        self.session = session

    # ── Lookups ────────────────────────────────────────────────────────

    async def _lookup(self, full_path: str) -> Optional[RepositoryNode]:
        try:
            return await self.session.get_object_by_path(full_path)
        except ObjectNotFoundError:
            return None

    async def resolve_path(self, path: str, name: str) -> Optional[RepositoryNode]:
        """Return the node at ``path/name``, or None if nothing is there."""
        return await self._lookup(join_path(path, name))

    async def get_folder(self, path: str) -> Optional[RepositoryNode]:
        node = await self._lookup(path)
        if node is None:
            logger.info("Folder does not exist: %s", path)
            return None
        if not node.is_folder:
            logger.warning("Expected a folder at %s but found %s", path, node.base_type.value)
            return None
        return node

    async def _require_folder(self, path: str) -> RepositoryNode:
        folder = await self.get_folder(path)
        if folder is None:
            raise ObjectNotFoundError(f"Folder does not exist: {path}", status_code=404)
        return folder

    async def _resolve_document(self, path: str, name: str) -> Optional[RepositoryNode]:
        node = await self.resolve_path(path, name)
        if node is not None and not node.is_document:
            logger.warning("Expected a document at %s but found %s", join_path(path, name), node.base_type.value)
            return None
        return node

    async def folder_exists(self, path: str, name: str) -> bool:
        node = await self.resolve_path(path, name)
        if node is None or not node.is_folder:
            return False
        logger.info("Folder already exist: %s", node.path)
        return True

    # ── Folders ────────────────────────────────────────────────────────

    async def create_folder(self, path: str, name: str) -> bool:
        """Create ``path/name``. Returns False if it was already there."""
        parent = await self._require_folder(path)
        require_action(parent, Action.CREATE_FOLDER, f"create a sub-folder in {parent.path}")

        existing = await self.resolve_path(path, name)
        if existing is not None:
            logger.info("Folder already exist: %s", existing.path)
            return False

        try:
            folder = await self.session.create_folder(parent.id, name)
        except ContentAlreadyExistsError:
            logger.info("Folder already exist: %s", join_path(path, name))
            return False

        logger.info(
            "Created new folder: %s [creator=%s][created=%s]",
            folder.path or join_path(path, name),
            folder.created_by,
            format_date(folder.creation_date),
        )
        return True

    async def rename_folder(self, path: str, new_name: str) -> Optional[RepositoryNode]:
        folder = await self.get_folder(path)
        if folder is None:
            logger.error("Folder to update does not exist: %s", path)
            return None
        require_action(folder, Action.UPDATE_PROPERTIES, f"update folder properties for {folder.path}")

        updated = await self.session.update_properties(folder.id, {"cmis:name": new_name})
        logger.info(
            "Updated %s with new name: %s [creator=%s][created=%s][modifier=%s][modified=%s]",
            folder.name,
            updated.path,
            updated.created_by,
            format_date(updated.creation_date),
            updated.last_modified_by,
            format_date(updated.last_modification_date),
        )
        return updated

    async def delete_folder_tree(self, path: str) -> List[str]:
        """Delete a folder and everything under it.

        Returns the ids of nodes the repository could not delete; those are
        logged but do not fail the call.
        """
        folder = await self.get_folder(path)
        if folder is None:
            logger.info("Did not delete folder as it does not exist: %s", path)
            return []
        require_action(folder, Action.DELETE_TREE, f"delete folder tree {path}")

        unfile = "unfile"
        info = self.session.repository_info
        if not info.capabilities.unfiling:
            logger.warning(
                "The repository does not support unfiling a document from a folder, documents will "
                "be deleted completely from all associated folders [repoName=%s][repoVersion=%s]",
                info.product_name,
                info.product_version,
            )
            unfile = "delete"

        failed = await self.session.delete_tree(
            folder.id, all_versions=True, unfile=unfile, continue_on_failure=True
        )
        logger.info("Deleted folder and all its content: %s", folder.name)
        for object_id in failed:
            logger.warning("Could not delete Alfresco node with Node Ref: %s", object_id)
        return failed

    # ── Documents ──────────────────────────────────────────────────────

    async def upload_document(
        self,
        path: str,
        name: str,
        mime_type: str,
        content: bytes,
        size: int,
        description: str,
    ) -> Optional[RepositoryNode]:
        """Create ``path/name`` as a major version; no-op if it already exists."""
        parent = await self._require_folder(path)
        require_action(parent, Action.CREATE_DOCUMENT, f"create a document in {parent.path}")

        full_path = join_path(path, name)
        existing = await self.resolve_path(path, name)
        if existing is not None:
            logger.info("Document already exist: %s", full_path)
            return None

        try:
            document = await self.session.create_document(
                parent.id,
                name,
                content,
                mime_type,
                description=description,
                versioning_state="major",
            )
        except ContentAlreadyExistsError:
            logger.info("Document already exist: %s", full_path)
            return None

        logger.info(
            "Created new document: %s [size=%d][version=%s][creator=%s][created=%s]",
            full_path,
            size,
            document.version_label,
            document.created_by,
            format_date(document.creation_date),
        )
        return document

    async def update_document_content(self, path: str, name: str, new_text: str) -> Optional[RepositoryNode]:
        info = self.session.repository_info
        if info.capabilities.content_stream_updatability != "anytime":
            logger.warning(
                "Updating content stream without a checkout is not supported by this repository "
                "[repoName=%s][repoVersion=%s]",
                info.product_name,
                info.product_version,
            )

        document = await self._resolve_document(path, name)
        if document is None:
            logger.info("Document does not exist, cannot update it: %s", join_path(path, name))
            return None
        require_action(
            document,
            Action.SET_CONTENT_STREAM,
            f"set/update content stream for {join_path(path, name)}",
        )

        data = new_text.encode("utf-8")
        updated = await self.session.set_content_stream(
            document.id, document.name, data, TEXT_MIME_TYPE, overwrite=True
        )
        if updated is None:
            logger.info("No new version was created when content stream was updated for %s", join_path(path, name))
            updated = document

        logger.info(
            "Updated content for document: %s [version=%s][modifier=%s][modified=%s]",
            await self.document_path(updated),
            updated.version_label,
            updated.last_modified_by,
            format_date(updated.last_modification_date),
        )
        return updated

    async def delete_document(self, path: str, name: str) -> bool:
        document = await self._resolve_document(path, name)
        if document is None:
            logger.info("Cannot delete document as it does not exist: %s", join_path(path, name))
            return False
        require_action(
            document,
            Action.DELETE_OBJECT,
            f"delete document {document.name} with Object ID {document.id}",
        )

        await self.session.delete(document.id, all_versions=True)
        logger.info("Deleted document: %s", join_path(path, name))
        return True

    async def read_document_content(self, path: str, name: str) -> Optional[BinaryIO]:
        document = await self._resolve_document(path, name)
        if document is None:
            logger.error("Document could not be found: %s", join_path(path, name))
            return None
        require_action(document, Action.GET_CONTENT_STREAM, f"get the content stream for {join_path(path, name)}")

        content = await self.session.get_content_stream(document.id)
        logger.info("Grabbing document stream and returning %s", name)
        return io.BytesIO(content)

    async def copy_document(self, source_path: str, name: str, dest_path: str) -> Optional[RepositoryNode]:
        """Copy ``source_path/name`` into ``dest_path``. Failures are logged, not raised."""
        document = await self._resolve_document(source_path, name)
        destination = await self.get_folder(dest_path)

        if destination is None:
            logger.error("Cannot copy %s, could not find folder %s", name, dest_path)
            return None
        if document is None:
            logger.error("Document %s does not exist, cannot copy to %s", join_path(source_path, name), dest_path)
            return None
        if await self.resolve_path(dest_path, name) is not None:
            logger.error("Cannot copy document %s, already exist in to folder %s", name, destination.path)
            return None

        try:
            copy = await self.session.copy_document(document.id, destination.id)
        except ContentAlreadyExistsError:
            logger.error("Cannot copy document %s, already exist in to folder %s", name, destination.path)
            return None

        logger.info("Copied document %s from folder %s to folder %s", name, source_path, destination.path)
        return copy

    async def document_path(self, document: RepositoryNode) -> str:
        """Absolute path through the first parent folder, or ``Un-filed``."""
        parents = await self.session.get_parents(document.id)
        if not parents:
            logger.info("Document %s is un-filed and does not have a parent folder", document.name)
            return "Un-filed"
        if len(parents) > 1:
            logger.info("The %s has more than one parent folder, it is multi-filed", document.name)
        return join_path(parents[0].path or "/", document.name)

    # ── Introspection ──────────────────────────────────────────────────

    def describe_capabilities(self) -> RepositoryCapabilities:
        capabilities = self.session.repository_info.capabilities
        logger.info("aclCapability = %s", capabilities.acl)
        logger.info("changesCapability = %s", capabilities.changes)
        logger.info("contentStreamUpdatable = %s", capabilities.content_stream_updatability)
        logger.info("joinCapability = %s", capabilities.join)
        logger.info("queryCapability = %s", capabilities.query)
        logger.info("renditionCapability = %s", capabilities.renditions)
        logger.info("allVersionsSearchable? = %s", capabilities.all_versions_searchable)
        logger.info("getDescendantSupported? = %s", capabilities.get_descendants)
        logger.info("getFolderTreeSupported? = %s", capabilities.get_folder_tree)
        logger.info("multiFilingSupported? = %s", capabilities.multifiling)
        logger.info("privateWorkingCopySearchable? = %s", capabilities.pwc_searchable)
        logger.info("pwcUpdateable? = %s", capabilities.pwc_updatable)
        logger.info("unfilingSupported? = %s", capabilities.unfiling)
        logger.info("versionSpecificFilingSupported? = %s", capabilities.version_specific_filing)
        return capabilities

    async def iter_children(self, folder: RepositoryNode, page_size: int = 100) -> AsyncIterator[ChildrenPage]:
        """Yield the children of ``folder`` one page at a time."""
        skip = 0
        while True:
            page = await self.session.get_children(folder.id, max_items=page_size, skip_count=skip)
            yield page
            skip += len(page.nodes)
            if not page.has_more_items or not page.nodes:
                break

    async def _type_display_name(self, type_id: str, cache: Dict[str, str]) -> str:
        if type_id not in cache:
            type_def = await self.session.get_type_definition(type_id)
            cache[type_id] = type_def.display_name or type_id
        return cache[type_id]

    async def list_top_folder(self) -> List[RepositoryNode]:
        root = await self.session.get_root_folder()
        children: List[RepositoryNode] = []
        type_names: Dict[str, str] = {}
        async for page in self.iter_children(root):
            for node in page.nodes:
                type_name = await self._type_display_name(node.type_id, type_names)
                if node.is_document:
                    logger.info(
                        "%s [size=%s][Mimetype=%s][type=%s]",
                        node.name,
                        node.content_stream_length,
                        node.content_stream_mime_type,
                        type_name,
                    )
                else:
                    logger.info("%s [type=%s]", node.name, type_name)
                children.append(node)
        return children

    async def list_top_folder_paged(self, page_size: int = 5) -> List[RepositoryNode]:
        root = await self.session.get_root_folder()
        children: List[RepositoryNode] = []
        type_names: Dict[str, str] = {}
        page_number = 1
        async for page in self.iter_children(root, page_size=page_size):
            total_pages = (page.num_items // page_size) if page.num_items is not None else "?"
            logger.info("Page %s (%s)", page_number, total_pages)
            for node in page.nodes:
                logger.info("%s [type=%s]", node.name, await self._type_display_name(node.type_id, type_names))
                children.append(node)
            page_number += 1
        return children

    def describe_properties(self, node: RepositoryNode) -> List[str]:
        lines = []
        for prop_id, value in node.properties.items():
            raw = value[0] if isinstance(value, list) and value else value
            if prop_id in _DATETIME_PROPERTIES and isinstance(raw, (int, float)):
                value = format_date(datetime.fromtimestamp(raw / 1000, tz=timezone.utc))
            line = f"  - {prop_id} = {value if value is not None else ''}"
            logger.info("%s", line)
            lines.append(line)
        return lines

    async def list_types(self) -> List[str]:
        trees = await self.session.get_type_descendants(None, depth=-1, include_property_definitions=False)
        lines: List[str] = []
        for tree in trees:
            self._describe_type(tree, "", lines)
        return lines

    def _describe_type(self, tree: TypeTree, indent: str, lines: List[str]) -> None:
        type_def = tree.type
        doc_info = ""
        if type_def.base_id == BaseType.DOCUMENT:
            doc_info = f"[versionable={type_def.versionable}][content={type_def.content_stream_allowed}]"
        line = (
            f"{indent}{type_def.display_name} [{type_def.id}][fileable={type_def.fileable}]"
            f"[queryable={type_def.queryable}]{doc_info}"
        )
        logger.info("%s", line)
        lines.append(line)
        for child in tree.children:
            self._describe_type(child, indent + " ", lines)
