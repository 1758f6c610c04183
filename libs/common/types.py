import uuid
from typing import Annotated, Any

from pydantic import BeforeValidator


def _uuid_to_str(v: Any) -> Any:
    if isinstance(v, uuid.UUID):
        return str(v)
    return v


# Ids arrive as strings from PostgREST and as UUIDs from SQLAlchemy
RecordId = Annotated[str, BeforeValidator(_uuid_to_str)]
