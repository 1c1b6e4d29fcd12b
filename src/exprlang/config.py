"""
Evaluator configuration.

Settings can come from defaults, environment variables or a YAML/JSON file:

    EXPR_MAX_CALL_DEPTH   maximum nesting of user function calls
    EXPR_TRACE            log every executed statement at DEBUG level

File keys use the field names (``max_call_depth``, ``trace``).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

ENV_MAX_CALL_DEPTH = "EXPR_MAX_CALL_DEPTH"
ENV_TRACE = "EXPR_TRACE"

DEFAULT_MAX_CALL_DEPTH = 64

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class EvaluatorConfig:
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    trace: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.max_call_depth, bool) or not isinstance(self.max_call_depth, int):
            raise ValueError(f"max_call_depth must be an integer, got {self.max_call_depth!r}")
        if self.max_call_depth < 1:
            raise ValueError(f"max_call_depth must be positive, got {self.max_call_depth}")
        if not isinstance(self.trace, bool):
            raise ValueError(f"trace must be a boolean, got {self.trace!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EvaluatorConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown configuration key(s): {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EvaluatorConfig":
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        raw_depth = env.get(ENV_MAX_CALL_DEPTH)
        if raw_depth:
            try:
                kwargs["max_call_depth"] = int(raw_depth)
            except ValueError as exc:
                raise ValueError(f"{ENV_MAX_CALL_DEPTH} must be an integer, got {raw_depth!r}") from exc

        raw_trace = env.get(ENV_TRACE)
        if raw_trace is not None:
            kwargs["trace"] = raw_trace.lower() in _TRUE_VALUES

        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Path | str) -> "EvaluatorConfig":
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"configuration not found: {config_path}")
        with config_path.open("r", encoding="utf-8") as fp:
            if config_path.suffix == ".json":
                data = json.load(fp)
            else:
                data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ValueError(f"expected mapping at root of {config_path}, got {type(data).__name__}")
        return cls.from_mapping(data)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
