from typing import Annotated

from pydantic import ConfigDict, StringConstraints

from .tasks import CamelModel

ContactName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class ContactAlias(CamelModel):
    """A short name the user types, and the full name it stands for."""
    short_name: ContactName
    full_name: ContactName


class ContactOut(ContactAlias):
    model_config = ConfigDict(from_attributes=True)

    id: int
