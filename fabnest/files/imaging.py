from PIL import Image, UnidentifiedImageError

def image_dimensions(path: str) -> tuple[int, int] | None:
    """
    Returns (width, height) of an image on disk, or None when Pillow can't read it.
    Uploads are accepted by extension, so unreadable images are not an error here.
    """
    try:
        with Image.open(path) as im:
            return im.width, im.height
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        return None
