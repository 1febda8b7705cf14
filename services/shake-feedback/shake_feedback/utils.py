from PIL import Image
import hashlib
import io


def read_image_from_bytes(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()  # Force load so the image outlives the buffer
    return img


def image_to_png_bytes(image: Image.Image) -> bytes:
    buffered = io.BytesIO()
    image.save(buffered, format="PNG")
    return buffered.getvalue()


def flatten_to_rgb(image: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """JPEG has no alpha: lay transparent pixels over a solid background."""
    if image.mode in ('RGBA', 'LA', 'P'):
        img = image.convert('RGBA')
        flat = Image.new('RGB', img.size, background)
        flat.paste(img, mask=img.split()[-1])
        return flat
    if image.mode != 'RGB':
        return image.convert('RGB')
    return image


def encode_jpeg(image: Image.Image, quality: int = 80) -> bytes:
    buffer = io.BytesIO()
    flatten_to_rgb(image).save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def image_digest(image: Image.Image) -> str:
    """Content fingerprint: same pixels and size give the same digest."""
    h = hashlib.sha1()
    h.update(f"{image.mode}:{image.width}x{image.height}:".encode("utf-8"))
    h.update(image.tobytes())
    return h.hexdigest()
