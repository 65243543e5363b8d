"""Repository models parsed from CMIS Browser binding (succinct) JSON."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseType(str, Enum):
    FOLDER = "cmis:folder"
    DOCUMENT = "cmis:document"
    POLICY = "cmis:policy"
    RELATIONSHIP = "cmis:relationship"
    ITEM = "cmis:item"
    SECONDARY = "cmis:secondary"


class Action(str, Enum):
    """Allowable actions checked before repository writes and reads."""
    CREATE_FOLDER = "canCreateFolder"
    CREATE_DOCUMENT = "canCreateDocument"
    SET_CONTENT_STREAM = "canSetContentStream"
    GET_CONTENT_STREAM = "canGetContentStream"
    UPDATE_PROPERTIES = "canUpdateProperties"
    DELETE_OBJECT = "canDeleteObject"
    DELETE_TREE = "canDeleteTree"


class RepositoryCapabilities(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    acl: Optional[str] = Field(default=None, alias="capabilityACL")
    changes: Optional[str] = Field(default=None, alias="capabilityChanges")
    content_stream_updatability: Optional[str] = Field(default=None, alias="capabilityContentStreamUpdatability")
    join: Optional[str] = Field(default=None, alias="capabilityJoin")
    query: Optional[str] = Field(default=None, alias="capabilityQuery")
    renditions: Optional[str] = Field(default=None, alias="capabilityRenditions")
    all_versions_searchable: bool = Field(default=False, alias="capabilityAllVersionsSearchable")
    get_descendants: bool = Field(default=False, alias="capabilityGetDescendants")
    get_folder_tree: bool = Field(default=False, alias="capabilityGetFolderTree")
    multifiling: bool = Field(default=False, alias="capabilityMultifiling")
    pwc_searchable: bool = Field(default=False, alias="capabilityPWCSearchable")
    pwc_updatable: bool = Field(default=False, alias="capabilityPWCUpdatable")
    unfiling: bool = Field(default=False, alias="capabilityUnfiling")
    version_specific_filing: bool = Field(default=False, alias="capabilityVersionSpecificFiling")


class RepositoryInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="repositoryId")
    name: str = Field(default="", alias="repositoryName")
    product_name: str = Field(default="", alias="productName")
    product_version: str = Field(default="", alias="productVersion")
    cmis_version_supported: str = Field(default="", alias="cmisVersionSupported")
    repository_url: str = Field(alias="repositoryUrl")
    root_folder_url: str = Field(alias="rootFolderUrl")
    capabilities: RepositoryCapabilities = Field(default_factory=RepositoryCapabilities)


def _to_datetime(value: Any) -> Optional[datetime]:
    """CMIS JSON datetimes are milliseconds since the epoch."""
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
        if value is None:
            return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


class RepositoryNode(BaseModel):
    """A folder or document as seen through one session."""

    id: str
    name: str
    base_type: BaseType
    type_id: str
    path: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None
    creation_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modification_date: Optional[datetime] = None
    version_label: Optional[str] = None
    content_stream_length: Optional[int] = None
    content_stream_mime_type: Optional[str] = None
    allowable_actions: FrozenSet[str] = frozenset()
    properties: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.base_type == BaseType.FOLDER

    @property
    def is_document(self) -> bool:
        return self.base_type == BaseType.DOCUMENT

    def can(self, action: Action) -> bool:
        return action.value in self.allowable_actions

    @classmethod
    def from_cmis(cls, data: dict, path: Optional[str] = None) -> "RepositoryNode":
        """Build a node from a succinct object payload."""
        props = data.get("succinctProperties") or {}
        actions = data.get("allowableActions") or {}
        length = _first(props.get("cmis:contentStreamLength"))
        return cls(
            id=_first(props.get("cmis:objectId")),
            name=_first(props.get("cmis:name")) or "",
            base_type=_first(props.get("cmis:baseTypeId")),
            type_id=_first(props.get("cmis:objectTypeId")) or "",
            path=_first(props.get("cmis:path")) or path,
            description=_first(props.get("cmis:description")),
            created_by=_first(props.get("cmis:createdBy")),
            creation_date=_to_datetime(props.get("cmis:creationDate")),
            last_modified_by=_first(props.get("cmis:lastModifiedBy")),
            last_modification_date=_to_datetime(props.get("cmis:lastModificationDate")),
            version_label=_first(props.get("cmis:versionLabel")),
            content_stream_length=int(length) if length is not None else None,
            content_stream_mime_type=_first(props.get("cmis:contentStreamMimeType")),
            allowable_actions=frozenset(k for k, v in actions.items() if v),
            properties=props,
        )


class ChildrenPage(BaseModel):
    nodes: List[RepositoryNode]
    has_more_items: bool = False
    num_items: Optional[int] = None


class TypeDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    display_name: str = Field(default="", alias="displayName")
    base_id: BaseType = Field(alias="baseId")
    fileable: bool = False
    queryable: bool = False
    versionable: Optional[bool] = None
    content_stream_allowed: Optional[str] = Field(default=None, alias="contentStreamAllowed")


class TypeTree(BaseModel):
    type: TypeDefinition
    children: List["TypeTree"] = Field(default_factory=list)

    @classmethod
    def from_cmis(cls, data: dict) -> "TypeTree":
        return cls(
            type=TypeDefinition.model_validate(data["type"]),
            children=[cls.from_cmis(child) for child in data.get("children") or []],
        )
