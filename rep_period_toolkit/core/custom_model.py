from __future__ import annotations

from typing import Optional

import pydantic
from pydantic import ConfigDict


class CustomModel(pydantic.BaseModel):
    """Standard pydantic BaseModel configuration."""

    name: Optional[str] = None
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        populate_by_name=True,
        loc_by_alias=True,
    )

    def __rich_repr__(self):
        """WORKAROUND for Rich Repr Protocol.

        Models in this package carry full clustering matrices; pretty-printing them through `loguru` or `rich` floods
        the console, so the repr is suppressed.
        """
        yield None
