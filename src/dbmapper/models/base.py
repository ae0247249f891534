"""Base models for dbmapper."""

from pydantic import BaseModel, ConfigDict


class DbMapperBaseModel(BaseModel):
    """Base model for mutable records (staged changes, reports)."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
    )


class FrozenModel(BaseModel):
    """Base model for values that must not change once built.

    Snapshots and derived relation graphs are produced once per run and
    shared between the analyzer and the synthesizer.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
        frozen=True,
    )
