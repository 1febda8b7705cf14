import locale
import logging
import platform
import shutil
import time
from datetime import datetime
from typing import Optional

import psutil

from .models import DeviceMetadata

logger = logging.getLogger("device_metadata")


def _human_bytes(n: float) -> str:
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if n < 1024 or unit == "TB":
            return f"{n:.1f} {unit}"
        n /= 1024.0
    return f"{n:.1f} TB"


def _human_duration(seconds: float) -> str:
    seconds = int(seconds)
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    if days:
        return f"{days}d {hours}h {minutes}m"
    return f"{hours}h {minutes}m"


def _locale_name() -> str:
    try:
        name = locale.getlocale()[0]
    except ValueError:
        name = None
    return name or "unknown"


def _battery() -> str:
    try:
        battery = psutil.sensors_battery()
    except (AttributeError, NotImplementedError, OSError):
        battery = None
    if battery is None:
        return "unknown"
    state = "charging" if battery.power_plugged else "unplugged"
    return f"{battery.percent:.0f}% ({state})"


def collect_device_metadata(app_version: str = "x.x", build: str = "0", data_path: str = ".",
                            now: Optional[datetime] = None) -> DeviceMetadata:
    """Snapshot of the machine the report is filed from."""
    now = now or datetime.now().astimezone()
    try:
        free_disk = _human_bytes(shutil.disk_usage(data_path).free)
    except OSError as e:
        logger.debug("Disk usage unavailable for %s: %s", data_path, e)
        free_disk = "unknown"

    return DeviceMetadata(
        model=platform.machine() or platform.node() or "unknown",
        os_version=f"{platform.system()} {platform.release()}".strip() or "unknown",
        app_version=app_version,
        build=build,
        locale=_locale_name(),
        timezone=now.tzname() or "unknown",
        free_disk=free_disk,
        battery=_battery(),
        uptime=_human_duration(time.time() - psutil.boot_time()),
    )
