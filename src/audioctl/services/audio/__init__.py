from .api import AudioApi
from .models import AudioApplication, AudioDevice, AudioProcess, DeviceList, ProcessSettings, VolumeInfo

__all__ = [
    "AudioApi",
    "AudioApplication",
    "AudioDevice",
    "AudioProcess",
    "DeviceList",
    "ProcessSettings",
    "VolumeInfo",
]
