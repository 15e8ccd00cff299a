"""Base model configuration for all data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(frozen=True)


class ApiModel(BaseModel):
    """Base model for remote API payloads.

    Accepts both field names and camelCase aliases and ignores fields the
    service adds that are not modelled here.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")
