from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .constants import DEFAULT_END_TIME, DEFAULT_START_TIME, MAX_PARTICLES_PER_EMITTER, MAX_REQUIRE_DEPTH

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_DATA_PATH = Path('.')
DEFAULT_MODEL_PATH = Path('.')
DEFAULT_TEXTURE_PATH = Path('.')
DEFAULT_TEXTURES_IN_MODEL_DIRECTORY = True


@dataclass(frozen=True, slots=True)
class LoaderConfig:
    data_path: Path = DEFAULT_DATA_PATH
    model_path: Path = DEFAULT_MODEL_PATH
    texture_path: Path = DEFAULT_TEXTURE_PATH
    max_require_depth: int = MAX_REQUIRE_DEPTH
    default_start_time: float = DEFAULT_START_TIME
    default_end_time: float = DEFAULT_END_TIME
    max_particles_per_emitter: int = MAX_PARTICLES_PER_EMITTER
    textures_in_model_directory: bool = DEFAULT_TEXTURES_IN_MODEL_DIRECTORY


def make_loader_config(
    data_path: Optional[str | Path] = None,
    model_path: Optional[str | Path] = None,
    texture_path: Optional[str | Path] = None,
    *,
    max_require_depth: int = MAX_REQUIRE_DEPTH,
    textures_in_model_directory: bool = DEFAULT_TEXTURES_IN_MODEL_DIRECTORY,
) -> LoaderConfig:
    """Normalize CLI-style inputs into a LoaderConfig."""
    data = Path(data_path) if data_path else DEFAULT_DATA_PATH
    model = Path(model_path) if model_path else data
    texture = Path(texture_path) if texture_path else data
    depth = max(0, max_require_depth)
    return LoaderConfig(
        data_path=data,
        model_path=model,
        texture_path=texture,
        max_require_depth=depth,
        textures_in_model_directory=textures_in_model_directory,
    )
