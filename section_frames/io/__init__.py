"""Model document input/output."""

from section_frames.io.model_loader import (
    ModelLoadError,
    dump_model,
    load_model,
    parse_model,
    save_model,
)

__all__ = ["ModelLoadError", "dump_model", "load_model", "parse_model", "save_model"]
