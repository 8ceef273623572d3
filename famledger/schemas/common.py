from typing import Annotated
from pydantic import BaseModel, ConfigDict, StringConstraints

# surrounding whitespace is dropped; what is left must not be empty
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)
