import io
import logging
import pathlib
from typing import Dict, List, Optional, Tuple

from PIL import Image

from config import IMAGE_SIZE, LAYER_OFFSETS, LAYER_ORDER, PREVIEW_SIZE, THUMBNAIL_SIZE
from selection import SelectedComposition
from traits import TraitCatalog, get_trait_path

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """A single composition could not be rendered."""


def resolve_layer_paths(
    catalog: TraitCatalog, selection: SelectedComposition
) -> List[Tuple[str, pathlib.Path]]:
    """Return (layer, asset path) pairs in z-order, skipping empty layers.

    Raises:
        RenderError: No layer resolved, or a resolved file does not exist
    """
    traits = selection.traits
    layers = []
    for layer in LAYER_ORDER[selection.rarity]:
        trait = traits.get(layer)
        if trait is None:
            continue

        try:
            path = get_trait_path(catalog, selection.character, layer, trait)
        except KeyError as e:
            raise RenderError(str(e)) from e
        if not path.is_file():
            raise RenderError(f"Missing asset for layer {layer}: {path}")
        layers.append((layer, path))

    if not layers:
        raise RenderError("No layers found")
    return layers


def resize_layer(filepath: pathlib.Path, size: int) -> Image.Image:
    """Load a layer as RGBA stretched to size x size."""
    with Image.open(filepath) as img:
        return img.convert("RGBA").resize((size, size))


def _shift(img: Image.Image, top: int, left: int) -> Image.Image:
    """Move a layer on a transparent canvas of the same size."""
    if not top and not left:
        return img
    shifted = Image.new("RGBA", img.size, (0, 0, 0, 0))
    shifted.paste(img, (left, top))
    return shifted


def composite_layers(
    layers: List[Tuple[str, pathlib.Path]],
    size: int = IMAGE_SIZE,
    offsets: Optional[Dict[str, Dict[str, int]]] = None,
) -> Image.Image:
    """Stack layers bottom to top on a size x size canvas.

    Offsets are given for the IMAGE_SIZE canvas and scaled to ``size``.
    """
    if offsets is None:
        offsets = LAYER_OFFSETS
    scale = size / IMAGE_SIZE

    # Treat the first layer as the background
    _, base_path = layers[0]
    canvas = resize_layer(base_path, size)

    for layer, filepath in layers[1:]:
        overlay = resize_layer(filepath, size)
        offset = offsets.get(layer, {})
        top = round(offset.get("top", 0) * scale)
        left = round(offset.get("left", 0) * scale)
        canvas = Image.alpha_composite(canvas, _shift(overlay, top, left))

    return canvas


def generate_single_image(
    catalog: TraitCatalog,
    selection: SelectedComposition,
    output_filename: pathlib.Path,
    size: int = IMAGE_SIZE,
) -> pathlib.Path:
    """Render one composition to a PNG file."""
    layers = resolve_layer_paths(catalog, selection)
    for layer, filepath in layers:
        offset = LAYER_OFFSETS.get(layer)
        logger.debug(
            "%s: %s%s", layer, filepath.name, f" [offset: {offset}]" if offset else ""
        )

    img = composite_layers(layers, size)
    img.save(output_filename, format="PNG")
    return pathlib.Path(output_filename)


def generate_preview(
    catalog: TraitCatalog, selection: SelectedComposition, size: int = PREVIEW_SIZE
) -> bytes:
    """Render one composition in memory and return the PNG bytes."""
    img = composite_layers(resolve_layer_paths(catalog, selection), size)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def generate_thumbnail(
    image_path: pathlib.Path, size: int = THUMBNAIL_SIZE
) -> pathlib.Path:
    """Write ``<name>_thumb.png`` next to a rendered image."""
    image_path = pathlib.Path(image_path)
    thumb_path = image_path.with_name(f"{image_path.stem}_thumb.png")
    with Image.open(image_path) as img:
        img.resize((size, size)).save(thumb_path, format="PNG")
    return thumb_path
