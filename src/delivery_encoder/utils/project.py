"""Project root resolution and input validation."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from delivery_encoder.errors import EnvironmentSetupError, PreconditionError

logger = logging.getLogger(__name__)


def resolve_project_root(explicit: Optional[str] = None) -> Path:
    """Resolve the directory every relative input, tool and output path hangs off.

    The process working directory is read, never changed.
    """
    try:
        root = Path(explicit).expanduser() if explicit else Path.cwd()
        root = root.resolve()
    except OSError as e:
        raise EnvironmentSetupError(f"Failed to resolve project root: {e}")

    if not root.is_dir():
        raise EnvironmentSetupError(f"Project root is not a directory: {root}")
    return root


def resolve_path(project_root: Path, value: str | Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else project_root / path


def validate_inputs(assets: Sequence[Tuple[str, Path]]) -> None:
    """Check every named input exists as a file, logging each check."""
    for name, path in assets:
        exists = path.is_file()
        logger.info(f"- {name}: {path} -> {'found' if exists else 'missing'}")
        if not exists:
            raise PreconditionError(f"{name} not found: {path}")


def check_overlay_image(path: Path) -> Tuple[int, int]:
    """Make sure the overlay decodes as an image and return its size."""
    try:
        with Image.open(path) as img:
            img.verify()
            size = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise PreconditionError(f"Overlay is not a readable image: {path} ({e})")
    logger.debug(f"Overlay image: {size[0]}x{size[1]}")
    return size


def prepare_output_dir(output_dir: Path, overwrite: bool) -> None:
    """Create the output directory, refusing to mix frames into existing content."""
    if output_dir.exists():
        if not output_dir.is_dir():
            raise PreconditionError(f"Output path is not a directory: {output_dir}")
        if any(output_dir.iterdir()) and not overwrite:
            raise PreconditionError(
                f"Output folder is not empty: {output_dir}. Use --overwrite to replace its contents."
            )
        logger.info(f"Output directory already exists: {output_dir}")
        return

    try:
        output_dir.mkdir(parents=True)
    except OSError as e:
        raise PreconditionError(f"Failed to create output directory {output_dir}: {e}")
    logger.info(f"Created output directory: {output_dir}")
