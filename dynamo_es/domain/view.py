from pydantic import BaseModel, ConfigDict, Field


class ViewContext(BaseModel):
    """Version information for a loaded view.

    Returned alongside the view on load and handed back on update so that
    the write can be gated on the version the caller last observed.

    Attributes:
        view_instance_id: Identifier of the view instance
        version: Stored version at load time, 0 for a view that does not exist yet
    """

    model_config = ConfigDict(frozen=True)

    view_instance_id: str = Field(min_length=1)
    version: int = Field(default=0, ge=0)

    @classmethod
    def new(cls, view_instance_id: str) -> "ViewContext":
        """Context for a view instance that has never been written."""
        return cls(view_instance_id=view_instance_id, version=0)
