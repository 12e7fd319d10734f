# dalali/schemas/common.py
from typing import Annotated

from pydantic import BeforeValidator

# asyncpg hands back uuid.UUID; the API speaks strings
Id = Annotated[str, BeforeValidator(str)]
