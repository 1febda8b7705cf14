from PIL import Image
import mss


def capture_screenshot(monitor_index: int = 1) -> Image.Image:
    """Grabs one monitor (1 = primary) as an RGB image."""
    with mss.mss() as sct:
        monitor = sct.monitors[monitor_index]
        shot = sct.grab(monitor)
        return Image.frombytes("RGB", shot.size, shot.rgb)
