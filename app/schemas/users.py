from datetime import datetime

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from app.schemas.common import CamelModel, Role


class UserOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    name: str
    email: str
    image: str | None = None
    phone: str | None = None
    role: Role
    created_at: datetime | None = None
    updated_at: datetime | None = None
