from typing import Mapping, Optional
from pipeline.state import Item, Role

class MissingIdentifierError(ValueError):
    def __init__(self, position: int):
        self.position = position
        super().__init__(f"row {position}: optionFederatedId or familyFederatedId must be provided")

def transform_row(row: Mapping[str, Optional[str]], position: int) -> Item:
    option_id = row.get("optionFederatedId")
    family_id = row.get("familyFederatedId")

    # option wins when a row carries both identifiers
    if option_id is not None:
        return Item(
            federated_id=option_id,
            name=row.get("title"),
            description=row.get("details"),
            roles=[Role.OPTION],
            family_federated_id=family_id,
        )
    if family_id is not None:
        return Item(
            federated_id=family_id,
            name=row.get("title"),
            description=row.get("details"),
            roles=[Role.FAMILY],
        )
    raise MissingIdentifierError(position)
