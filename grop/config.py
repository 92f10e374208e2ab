from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .merge import MergeEngine
from .patterns import DEFAULT_EXPRESSION, PatternRegistry
from .processor import StreamProcessor
from .projection import Projector
from .rules import FilterChain


class MergeConfig(BaseModel):
    """Bounds and fields of multiline merging.

    merge_fields, merge_exp_start and merge_exp_end go together: either all
    three are set or none is.
    """
    model_config = ConfigDict(extra="forbid")

    merge_fields: Optional[list[str]] = Field(default=None, description="Fields whose values are accumulated across a merge scope")
    merge_exp_start: Optional[str] = Field(default=None, description="Expression opening a merge scope")
    merge_exp_end: Optional[str] = Field(default=None, description="Expression closing a merge scope")
    merge_scope_exclusive: Optional[bool] = Field(default=None, description="Keep the closing line out of the merged record")

    def merge(self, override: MergeConfig) -> MergeConfig:
        return self.model_copy(update=override.model_dump(exclude_none=True))

    def is_complete(self) -> bool:
        return None not in (self.merge_fields, self.merge_exp_start, self.merge_exp_end)


class Config(BaseModel):
    """Top-level configuration for a grop run, from YAML and/or flags."""
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(default=None, description="Optional description of this config file")
    custom_patterns: Optional[list[str]] = Field(default=None, description='Pattern definitions as "NAME body"')
    match_expression: Optional[str] = Field(default=None, description="Main grok expression")
    filters: Optional[list[str]] = Field(default=None, description='Ordered rules as "[-]field pattern"')
    output_format: Optional[str] = Field(default=None, description="Comma-separated fields to print")
    merge_config: Optional[MergeConfig] = None

    def merge(self, override: Config) -> Config:
        """Return a copy where every option set in 'override' wins."""
        updates = {
            name: getattr(override, name)
            for name in override.model_fields_set
            if getattr(override, name) is not None and name != "merge_config"
        }
        merged = self.model_copy(update=updates)
        if override.merge_config is not None:
            base = self.merge_config or MergeConfig()
            merged = merged.model_copy(update={"merge_config": base.merge(override.merge_config)})
        return merged

    def build_registry(self) -> PatternRegistry:
        return PatternRegistry(self.custom_patterns or ())

    def resolved_merge(self) -> MergeConfig | None:
        mc = self.merge_config
        if mc is None:
            return None
        if not mc.is_complete():
            raise ConfigError("invalid merge option combinations")
        return mc

    def build_processor(self, registry: PatternRegistry) -> StreamProcessor:
        """Compile every expression and assemble the processing pipeline."""
        matcher = registry.compile(self.match_expression or DEFAULT_EXPRESSION)
        merge: MergeEngine | None = None
        mc = self.resolved_merge()
        if mc is not None:
            merge = MergeEngine(
                merge_fields=mc.merge_fields,
                start=registry.compile(mc.merge_exp_start),
                end=registry.compile(mc.merge_exp_end),
                exclusive=bool(mc.merge_scope_exclusive),
            )
        return StreamProcessor(
            matcher=matcher,
            filters=FilterChain.parse(self.filters or (), registry),
            projector=Projector.from_format(self.output_format),
            merge=merge,
        )


def load_config(path: str | Path) -> Config:
    """Load YAML config from 'path' and validate into a Config model."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: {e}") from e
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        # Re-raise with a cleaner message for CLI users
        raise ConfigError(f"{path}: {e}") from e
