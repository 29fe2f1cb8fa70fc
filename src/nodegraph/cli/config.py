"""
Configuration loading and validation for nodegraph projects.

nodegraph.yaml:

    version: 1
    project: movies
    typeDefs:
      - schema/*.graphql
    output: schema.graphql
    features:
      subscriptions: true
      excludeDeprecatedFields:
        implicitEqualFilters: true
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from ..core.errors import ConfigError
from ..core.features import Features

DEFAULT_CONFIG_PATH = "nodegraph.yaml"


@dataclass
class NodeGraphConfig:
    """Main nodegraph configuration."""
    version: int = 1
    project: str = "nodegraph"
    type_defs: list[str] = field(default_factory=list)  # files or glob patterns
    output: Optional[str] = None
    features: Features = field(default_factory=Features)
    base_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Optional[Path] = None) -> "NodeGraphConfig":
        """
        Create config from dictionary.

        Raises:
            ConfigError: If a section has the wrong shape
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        type_defs = data.get("typeDefs", [])
        if isinstance(type_defs, str):
            type_defs = [type_defs]
        if not isinstance(type_defs, list) or not all(isinstance(t, str) for t in type_defs):
            raise ConfigError("typeDefs must be a path or a list of paths")

        try:
            features = Features.model_validate(data.get("features") or {})
        except ValidationError as e:
            raise ConfigError(f"Invalid features: {e}") from e

        return cls(
            version=data.get("version", 1),
            project=data.get("project", "nodegraph"),
            type_defs=type_defs,
            output=data.get("output"),
            features=features,
            base_dir=base_dir or Path.cwd(),
        )

    def type_def_files(self) -> list[Path]:
        """Resolve typeDefs entries, globs included, in a stable order."""
        files: list[Path] = []
        for entry in self.type_defs:
            matches = sorted(self.base_dir.glob(entry)) if any(c in entry for c in "*?[") else [self.base_dir / entry]
            for path in matches:
                if path not in files:
                    files.append(path)
        return files

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        data: dict[str, Any] = {
            "version": self.version,
            "project": self.project,
            "typeDefs": list(self.type_defs),
        }
        if self.output:
            data["output"] = self.output
        data["features"] = self.features.model_dump(by_alias=True)
        return data

    def save(self, path: Path | str = DEFAULT_CONFIG_PATH) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        path.write_text(f"# nodegraph configuration\n{content}")


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> NodeGraphConfig | None:
    """
    Load configuration from YAML file, None if it does not exist.

    Raises:
        ConfigError: If the file is not valid YAML or not a valid configuration
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e
    return NodeGraphConfig.from_dict(data or {}, base_dir=path.resolve().parent)
