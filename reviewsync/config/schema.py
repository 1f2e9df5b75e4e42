# reviewsync Configuration Schema
# Pydantic models for YAML configuration validation

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class RemoteConfig(BaseModel):
    """Remote store connection settings."""

    base_url: str = Field(default="https://api.airtable.com/v0", description="API root URL")
    base_id: str = Field(description="Airtable base identifier")
    table_id: str = Field(description="Table holding the review items")
    view: str | None = Field(default=None, description="Optional view applied to the full load")
    token_env: str = Field(
        default="REVIEWSYNC_API_TOKEN",
        description="Environment variable holding the API token (never stored in this file)",
    )
    page_size: int = Field(default=100, ge=1, le=100, description="Records per page")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class ScopeRuleConfig(BaseModel):
    """A single condition a record must meet to be in the working set."""

    field: str = Field(description="Field name")
    equals: str | int | float | None = Field(default=None, description="Field must equal this value")
    one_of: list[str | int | float] | None = Field(default=None, description="Field must be one of these values")
    blank: bool | None = Field(default=None, description="Field must be blank (true) or filled in (false)")

    @model_validator(mode="after")
    def exactly_one_condition(self) -> "ScopeRuleConfig":
        """Require exactly one of equals, one_of or blank."""
        conditions = [self.equals is not None, self.one_of is not None, self.blank is not None]
        if sum(conditions) != 1:
            raise ValueError(f"Scope rule for '{self.field}' needs exactly one of equals, one_of, blank")
        return self


class LinkedTableConfig(BaseModel):
    """A linked field whose record IDs are shown by display name."""

    field: str = Field(description="Field on the reviewed table holding the links")
    table_id: str = Field(description="Table the links point into")
    name_fields: list[str] = Field(
        default_factory=lambda: ["Name"],
        min_length=1,
        description="Fields of the linked table tried in order for the display name",
    )


class PollingConfig(BaseModel):
    """Background reconciliation settings."""

    interval_seconds: float = Field(default=900.0, gt=0, description="Seconds between background polls")
    initial_delay_seconds: float = Field(default=1.5, ge=0, description="Delay before the first poll")
    overlap_seconds: float = Field(default=30.0, ge=0, description="Checkpoint regression after each poll")


class ViewConfig(BaseModel):
    """Display settings for record listings."""

    title_field: str = Field(default="Job Name", description="Field shown as the record title")
    columns: list[str] = Field(default_factory=list, description="Extra fields shown in listings")
    search_fields: list[str] = Field(default_factory=lambda: ["Job Name"], description="Fields searched by --search")
    sort_by: str | None = Field(default=None, description="Default sort field")


class OutputConfig(BaseModel):
    """Output and logging configuration."""

    verbose: bool = Field(default=False, description="Enable verbose output")
    colored: bool = Field(default=True, description="Enable colored output")
    log_file: str | None = Field(default=None, description="Path to log file")

    @field_validator("log_file")
    @classmethod
    def expand_optional_path(cls, v: str | None) -> str | None:
        """Expand ~ in optional paths."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class ReviewSyncConfig(BaseModel):
    """Root configuration model for reviewsync."""

    remote: RemoteConfig = Field(description="Remote store settings")
    scope: list[ScopeRuleConfig] = Field(default_factory=list, description="Working set membership rules")
    linked: list[LinkedTableConfig] = Field(default_factory=list, description="Linked tables resolved to names")
    polling: PollingConfig = Field(default_factory=PollingConfig, description="Polling settings")
    view: ViewConfig = Field(default_factory=ViewConfig, description="Display settings")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")
    state_file: str = Field(default="~/.config/reviewsync/state.yaml", description="Persisted sync state")

    @field_validator("state_file")
    @classmethod
    def expand_state_path(cls, v: str) -> str:
        """Expand ~ in path."""
        return str(Path(v).expanduser())
