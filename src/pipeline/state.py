from enum import Enum
from typing import ClassVar, List, Optional
from pydantic import BaseModel, ConfigDict, Field

class Role(str, Enum):
    FAMILY = "FAMILY"
    OPTION = "OPTION"

class Item(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    DEFAULT_NAME: ClassVar[str] = "Generic item name"
    DEFAULT_DESCRIPTION: ClassVar[str] = "Generic item description"

    name: Optional[str] = None
    description: Optional[str] = None
    federated_id: str = Field(alias="federatedId", min_length=1)
    roles: List[Role] = Field(min_length=1)
    # parent family an option row pointed at; local only, never sent to the store
    family_federated_id: Optional[str] = Field(default=None, exclude=True)

    @classmethod
    def placeholder_family(cls, federated_id: str) -> "Item":
        return cls(
            federated_id=federated_id,
            name=cls.DEFAULT_NAME,
            description=cls.DEFAULT_DESCRIPTION,
            roles=[Role.FAMILY],
        )

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def same_content(self, other: "Item") -> bool:
        # id and roles are owned by the store, only business fields count
        return self.name == other.name and self.description == other.description

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

class StoredItem(Item):
    id: str

    @classmethod
    def from_pending(cls, item: Item, stored: "StoredItem") -> "StoredItem":
        return cls(id=stored.id, **item.model_dump())

class Reject(BaseModel):
    position: int
    reason: str

class RunState(BaseModel):
    run_id: str
    source_path: str
    batch_size: Optional[int] = None
    status: str = "running"
    rows_processed: int = 0
    rejects: List[Reject] = Field(default_factory=list)
    flushes: int = 0
    failed_flushes: int = 0
    known_families: int = 0
    error: Optional[str] = None
