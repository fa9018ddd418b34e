"""Base model for application objects serialized with camelCase keys."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Application object base.

    Attributes are snake_case in Python; JSON uses camelCase aliases
    (assignedWorkerIds, dailyTimeSpent, ...). Either form is accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_api(self) -> dict:
        """Serialize with camelCase keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)
