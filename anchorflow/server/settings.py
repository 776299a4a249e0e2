"""
Runtime configuration read from the environment.

A `.env` file in the working directory (or at the repository root) is loaded
first, so local overrides need no `export`. Variables already set in the
environment win over the file.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from anchorflow.core.GraphPrimitives import Graph

_REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))


class GraphTooLargeError(ValueError):
    """Raised before analysis when a graph exceeds the configured caps."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    program_name: str = "my_program"
    max_nodes: int = 500
    max_connections: int = 2000
    history_limit: int = 100
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            program_name=os.getenv("ANCHORFLOW_PROGRAM_NAME", cls.program_name),
            max_nodes=_env_int("ANCHORFLOW_MAX_NODES", cls.max_nodes),
            max_connections=_env_int("ANCHORFLOW_MAX_CONNECTIONS", cls.max_connections),
            history_limit=_env_int("ANCHORFLOW_HISTORY_LIMIT", cls.history_limit),
            host=os.getenv("ANCHORFLOW_HOST", cls.host),
            port=_env_int("ANCHORFLOW_PORT", cls.port),
            log_level=os.getenv("ANCHORFLOW_LOG_LEVEL", cls.log_level).upper(),
        )

    def check_graph_size(self, graph: Graph) -> None:
        if len(graph.nodes) > self.max_nodes:
            raise GraphTooLargeError(
                f"Graph has {len(graph.nodes)} nodes, the limit is {self.max_nodes}"
            )
        if len(graph.connections) > self.max_connections:
            raise GraphTooLargeError(
                f"Graph has {len(graph.connections)} connections, the limit is {self.max_connections}"
            )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        load_dotenv()
        load_dotenv(os.path.join(_REPO_ROOT, ".env"))
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
