# ============================================================================
# rigsweep/base/config.py
# Optimizer Configuration Management
# ============================================================================
#
# PURPOSE:
# Defines the settings that control one optimization run: which passes run,
# how bones are treated, and how logging behaves.
#
# KEY CONCEPTS:
# 1. Dataclasses: frozen settings containers
# 2. Environment Variables: overrides read at startup (e.g. RIGSWEEP_GC_DEBUG=true)
# 3. Singleton: one shared config, replaceable in tests via set_config()
#
# The provider registry is NOT part of this config. It is built explicitly
# and handed to the optimizer.
#
# ============================================================================

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# ============================================================================
# Mark & Sweep Configuration
# ============================================================================

@dataclass(frozen=True)
class GCConfig:
    # Master switch: when False the optimizer leaves the hierarchy untouched
    remove_unused_objects: bool = True

    # Run the Bone-Fold pass after Sweep
    configure_bone_fold: bool = True

    # Keep leaf bones of spring-bone chains even when nothing else needs them
    preserve_end_bone: bool = False

    # Export the dependency graph and report cycles after marking
    gc_debug: bool = False

    # Upper bound on cycles listed in the debug summary
    max_reported_cycles: int = 10


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    # DEBUG shows every dropped edge; INFO shows per-pass summaries
    level: str = "INFO"

    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Optional log file (rotating); None keeps console only
    file_path: Optional[Path] = None

    max_file_size_mb: int = 10

    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass(frozen=True)
class RigSweepConfig:
    gc: GCConfig = field(default_factory=GCConfig)

    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "RigSweepConfig":
        gc = GCConfig(
            remove_unused_objects=_env_flag("RIGSWEEP_REMOVE_UNUSED", "true"),
            configure_bone_fold=_env_flag("RIGSWEEP_BONE_FOLD", "true"),
            preserve_end_bone=_env_flag("RIGSWEEP_PRESERVE_END_BONE", "false"),
            gc_debug=_env_flag("RIGSWEEP_GC_DEBUG", "false"),
            max_reported_cycles=int(os.getenv("RIGSWEEP_MAX_CYCLES", "10")),
        )

        log_file = os.getenv("RIGSWEEP_LOG_FILE")
        log = LogConfig(
            level=os.getenv("RIGSWEEP_LOG_LEVEL", "INFO"),
            file_path=Path(log_file) if log_file else None,
        )

        return cls(gc=gc, log=log)


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[RigSweepConfig] = None


def get_config() -> RigSweepConfig:
    """
    Get the global configuration instance.

    Created from the environment on first use, then reused.
    """
    global _config
    if _config is None:
        _config = RigSweepConfig.from_env()
    return _config


def set_config(config: Optional[RigSweepConfig]) -> None:
    """
    Replace the global configuration (mainly used for testing).

    Passing None drops the cached instance so the next get_config()
    re-reads the environment.
    """
    global _config
    _config = config


def setup_logging(config: Optional[RigSweepConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Call this once at application startup. Library code never calls it.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_path is not None:
        from logging.handlers import RotatingFileHandler
        cfg.log.file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            cfg.log.file_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, cfg.log.level.upper()),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
