"""
DataModelSpec - the aggregate root handed to the runtime.
"""

from pydantic import BaseModel, ConfigDict, Field

from coredata_rest.specs.entity import EntitySpec


class DataModelSpec(BaseModel):
    """
    Complete data model: every entity the service exposes.

    Example:
        DataModelSpec(
            name="blog",
            entities=[
                EntitySpec(name="User", attributes=[...], relationships=[...]),
                EntitySpec(name="Post", attributes=[...], relationships=[...]),
            ],
        )
    """

    name: str = Field(default="model", description="Model name")
    version: str | None = Field(default=None, description="Model version identifier")
    entities: list[EntitySpec] = Field(default_factory=list, description="Entity specifications")

    model_config = ConfigDict(frozen=True)

    def get_entity(self, name: str) -> EntitySpec | None:
        """Get an entity by name."""
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    @property
    def entity_names(self) -> list[str]:
        return [e.name for e in self.entities]
