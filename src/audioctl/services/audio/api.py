from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

from audioctl.services.auth.client import ApiClient

from .models import AudioApplication, AudioDevice, AudioProcess, DeviceList, ProcessSettings, VolumeInfo

__all__ = ["AudioApi"]


def _check_volume(volume: int) -> int:
    level = int(volume)
    if not 0 <= level <= 100:
        raise ValueError(f"volume must be between 0 and 100, got {volume}")
    return level


def _device_path(device: str, suffix: str) -> str:
    return f"/api/devices/{quote(device, safe='')}/{suffix}"


class AudioApi:
    """Device, application and settings endpoints, all routed through the Request Layer."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    # Devices -----------------------------------------------------------
    async def list_devices(self) -> DeviceList:
        result = await self._client.call("/api/devices")
        devices = tuple(AudioDevice.from_mapping(item) for item in result.get("devices") or [] if isinstance(item, Mapping))
        return DeviceList(devices=devices, default_device=result.get("defaultDevice") or None)

    async def get_device_volume(self, device: str) -> VolumeInfo:
        result = await self._client.call(_device_path(device, "volume"))
        return VolumeInfo(volume=int(result.get("volume", 0)), muted=bool(result.get("muted", False)))

    async def set_device_volume(self, device: str, volume: int) -> int:
        level = _check_volume(volume)
        result = await self._client.call(_device_path(device, "volume"), "PUT", {"volume": level})
        return int(result.get("volume", level))

    async def set_device_mute(self, device: str, muted: bool) -> bool:
        result = await self._client.call(_device_path(device, "mute"), "PUT", {"muted": bool(muted)})
        return bool(result.get("muted", muted))

    # Applications ------------------------------------------------------
    async def list_applications(self) -> list[AudioApplication]:
        result = await self._client.call("/api/applications")
        return [AudioApplication.from_mapping(item) for item in result.get("applications") or [] if isinstance(item, Mapping)]

    async def set_application_volume(self, process_path: str, volume: int) -> int:
        level = _check_volume(volume)
        payload: dict[str, Any] = {"processPath": process_path, "volume": level}
        result = await self._client.call("/api/applications/volume", "PUT", payload)
        return int(result.get("volume", level))

    async def list_processes(self) -> list[AudioProcess]:
        result = await self._client.call("/api/processes")
        return [AudioProcess.from_mapping(item) for item in result.get("processes") or [] if isinstance(item, Mapping)]

    # Settings ----------------------------------------------------------
    async def get_settings(self) -> ProcessSettings:
        result = await self._client.call("/api/settings")
        return ProcessSettings.from_mapping(result.get("settings") or {})

    async def update_settings(self, settings: ProcessSettings) -> ProcessSettings:
        result = await self._client.call("/api/settings", "PUT", settings.as_payload())
        return ProcessSettings.from_mapping(result.get("settings") or {})
