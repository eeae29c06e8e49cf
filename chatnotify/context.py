"""Runtime context appended to outgoing messages."""

import os
import socket
from dataclasses import dataclass
from typing import Mapping, Optional

from chatnotify.package_info import PackageInfo


@dataclass(frozen=True)
class RuntimeContext:
    hostname: str
    environment: str
    app_name: str
    app_version: str
    # Process manager (pm2) identifiers, when running under one
    process_name: Optional[str] = None
    process_id: Optional[str] = None

    @property
    def app_label(self) -> str:
        return f"{self.app_name} v{self.app_version}"

    @property
    def process_suffix(self) -> str:
        if not (self.process_name or self.process_id):
            return ""
        return f"| {self.process_name or ''} {self.process_id or -1}"

    @property
    def footer(self) -> str:
        return f"{self.app_label} {self.process_suffix}".rstrip()


def collect_runtime_context(
    environment: str,
    package: PackageInfo,
    environ: Optional[Mapping[str, str]] = None,
) -> RuntimeContext:
    env = os.environ if environ is None else environ
    return RuntimeContext(
        hostname=socket.gethostname(),
        environment=environment,
        app_name=package.name,
        app_version=package.version,
        process_name=env.get("name") or None,
        process_id=env.get("pm_id") or None,
    )
