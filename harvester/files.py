"""
Image file naming helpers.

Screenshots land at ``{image_sub_folder}/{safe_base_name}.png`` and logos at
``{image_sub_folder}/{safe_base_name}-{index}.png``. The relative path (always
forward slashes) is what gets written to the output table.
"""

import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|]')

SCREENSHOT = "screenshot"
LOGO = "logo"


@dataclass(frozen=True)
class ImagePath:
    full_path: Path
    relative_path: str


def file_safe_name(name: str) -> str:
    """Replace filesystem-hostile characters with underscores."""
    return _UNSAFE_CHARS.sub("_", name).strip()


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if it does not exist yet."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def image_path(
    output_dir: Path,
    image_sub_folder: str,
    base_name: str,
    kind: str = SCREENSHOT,
    index: int = 1
) -> ImagePath:
    """
    Work out where an image for a row should be written.

    Args:
        output_dir: Root output directory
        image_sub_folder: Image folder name under the output directory
        base_name: The row's BaseName (made file-safe here)
        kind: Either ``screenshot`` or ``logo``
        index: Logo variant index (only 1 is ever captured)

    Returns:
        ImagePath with the full filesystem path and the table-relative path
    """
    safe_name = file_safe_name(base_name)
    file_name = f"{safe_name}.png" if kind == SCREENSHOT else f"{safe_name}-{index}.png"
    relative = PurePosixPath(*Path(image_sub_folder).parts, file_name)
    return ImagePath(
        full_path=Path(output_dir) / image_sub_folder / file_name,
        relative_path=str(relative),
    )
