"""Read models for the panels of the remote audio service."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

__all__ = ["AudioDevice", "DeviceList", "VolumeInfo", "AudioProcess", "AudioApplication", "ProcessSettings"]


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def process_name(process_path: str) -> str:
    """``C:\\Apps\\spotify.exe`` -> ``spotify``."""
    filename = process_path.replace("\\", "/").rsplit("/", 1)[-1]
    return filename[:-4] if filename.lower().endswith(".exe") else filename


@dataclass(frozen=True, slots=True)
class AudioDevice:
    id: str
    name: str
    type: str = ""
    state: str = ""
    default: bool = False
    volume: int = 0
    muted: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AudioDevice":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            type=str(data.get("type", "")),
            state=str(data.get("state", "")),
            default=bool(data.get("default", False)),
            volume=_int(data.get("volume")),
            muted=bool(data.get("muted", False)),
        )


@dataclass(frozen=True, slots=True)
class DeviceList:
    devices: tuple[AudioDevice, ...] = ()
    default_device: str | None = None


@dataclass(frozen=True, slots=True)
class VolumeInfo:
    volume: int
    muted: bool


@dataclass(frozen=True, slots=True)
class AudioProcess:
    process_path: str
    process_id: int
    main_window_title: str = ""
    display_name: str = ""
    icon_path: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AudioProcess":
        path = str(data.get("processPath", ""))
        return cls(
            process_path=path,
            process_id=_int(data.get("processId")),
            main_window_title=str(data.get("mainWindowTitle") or ""),
            display_name=str(data.get("displayName") or process_name(path)),
            icon_path=data.get("iconPath") or None,
        )


@dataclass(frozen=True, slots=True)
class AudioApplication:
    process_path: str
    process_id: int
    display_name: str
    volume: int = 0
    muted: bool = False
    main_window_title: str = ""
    icon_path: str | None = None
    instance_id: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AudioApplication":
        path = str(data.get("processPath", ""))
        return cls(
            process_path=path,
            process_id=_int(data.get("processId")),
            display_name=str(data.get("displayName") or process_name(path)),
            volume=_int(data.get("volume")),
            muted=bool(data.get("muted", False)),
            main_window_title=str(data.get("mainWindowTitle") or ""),
            icon_path=data.get("iconPath") or None,
            instance_id=data.get("instanceId") or None,
        )


@dataclass(slots=True)
class ProcessSettings:
    whitelist: list[str] = field(default_factory=list)
    mode: str = "all"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProcessSettings":
        processes = data.get("processes") or {}
        whitelist = processes.get("whitelist") or []
        mode = processes.get("mode") or "all"
        return cls(whitelist=[str(item) for item in whitelist], mode=str(mode))

    def as_payload(self) -> dict[str, Any]:
        return {"processes": {"whitelist": list(self.whitelist), "mode": self.mode}}
