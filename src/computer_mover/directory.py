"""
Directory clients for looking up, searching and moving computer objects.

This module is responsible for:
- Defining the DirectoryClient protocol the rest of the package depends on
- Providing an in-memory directory (tests, rehearsals)
- Providing a PowerShell ActiveDirectory-module backed directory

Connection setup and authentication are left to the caller's session: the
PowerShell client runs under the current Windows logon.
"""

import json
import logging
import subprocess
import threading
from typing import Dict, Iterable, List, Optional, Protocol, Set, runtime_checkable

from .errors import (
    DirectoryUnavailable,
    InvalidSourceContainer,
    MoveRejected,
    ObjectNotFound,
)
from .types import DirectoryObject
from .utils import normalize_identity, parent_container, same_container, split_leaf

logger = logging.getLogger(__name__)

# stderr fragments the ActiveDirectory module writes when an identity does not exist
NOT_FOUND_MARKERS = (
    "ADIdentityNotFoundException",
    "Cannot find an object with identity",
    "Directory object not found",
)


@runtime_checkable
class DirectoryClient(Protocol):
    """
    Operations the mover needs from a directory service.

    Any operation may raise DirectoryUnavailable when the directory itself
    cannot be reached or used.
    """

    def lookup(self, identity: str) -> DirectoryObject:
        """Return the computer named ``identity`` or raise ObjectNotFound."""
        ...

    def search(self, container: str) -> List[DirectoryObject]:
        """Return computers under ``container`` or raise InvalidSourceContainer."""
        ...

    def move(self, identity: str, destination: str) -> None:
        """Move the computer into ``destination`` or raise MoveRejected."""
        ...

    def container_exists(self, container: str) -> bool:
        """Check if ``container`` names a container in the directory."""
        ...


class InMemoryDirectory:
    """
    Dictionary-backed directory.

    Computers are keyed by case-folded name. Moves are recorded in
    ``move_calls`` so callers can check which mutations happened.
    """

    def __init__(
        self,
        containers: Iterable[str] = (),
        reject_moves_for: Iterable[str] = ()
    ):
        self._lock = threading.Lock()
        self._containers: Set[str] = set()
        self._objects: Dict[str, DirectoryObject] = {}
        self._rejected: Set[str] = {normalize_identity(n) for n in reject_moves_for}
        self.move_calls: List[tuple] = []

        for container in containers:
            self.add_container(container)

    def add_container(self, container: str) -> None:
        self._containers.add(container.casefold())

    def add_computer(self, name: str, container: str) -> DirectoryObject:
        """Create a computer in ``container`` (the container is registered too)."""
        self.add_container(container)
        obj = DirectoryObject(name=name, full_path=f"CN={name},{container}")
        self._objects[normalize_identity(name)] = obj
        return obj

    def container_exists(self, container: str) -> bool:
        return bool(container) and container.casefold() in self._containers

    def lookup(self, identity: str) -> DirectoryObject:
        with self._lock:
            obj = self._objects.get(normalize_identity(identity))
            if obj is None:
                raise ObjectNotFound(identity)
            return DirectoryObject(name=obj.name, full_path=obj.full_path)

    def search(self, container: str) -> List[DirectoryObject]:
        if not self.container_exists(container):
            raise InvalidSourceContainer(f"Container not found: {container}")

        with self._lock:
            return [
                DirectoryObject(name=obj.name, full_path=obj.full_path)
                for obj in self._objects.values()
                if same_container(parent_container(obj.full_path), container)
            ]

    def move(self, identity: str, destination: str) -> None:
        key = normalize_identity(identity)
        with self._lock:
            self.move_calls.append((identity, destination))

            obj = self._objects.get(key)
            if obj is None:
                raise ObjectNotFound(identity)
            if key in self._rejected:
                raise MoveRejected(identity, f"Access denied moving {identity}")
            if destination.casefold() not in self._containers:
                raise MoveRejected(identity, f"Destination does not exist: {destination}")

            leaf, _ = split_leaf(obj.full_path)
            obj.full_path = f"{leaf},{destination}"


def quote_ps(value: str) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + value.replace("'", "''") + "'"


class PowerShellDirectory:
    """
    Directory client driving the ActiveDirectory PowerShell module.

    Each operation runs one PowerShell process. JSON output is produced with
    ConvertTo-Json and parsed here.
    """

    ENCODING_SETUP = "$OutputEncoding = [Console]::OutputEncoding = [Text.UTF8Encoding]::UTF8; "

    def __init__(
        self,
        server: Optional[str] = None,
        timeout: Optional[float] = None,
        executable: str = "powershell"
    ):
        """
        Initialize the client.

        Args:
            server: Optional domain controller passed as -Server
            timeout: Optional seconds before a PowerShell call is abandoned
            executable: PowerShell executable ("powershell" or "pwsh")
        """
        self.server = server
        self.timeout = timeout
        self.executable = executable

    def _server_arg(self) -> str:
        return f" -Server {quote_ps(self.server)}" if self.server else ""

    def _run(self, script: str) -> subprocess.CompletedProcess:
        command = [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy", "Bypass",
            "-Command", self.ENCODING_SETUP + "Import-Module ActiveDirectory; " + script,
        ]
        try:
            return subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TimeoutError(
                f"PowerShell did not finish within {self.timeout}s"
            ) from e
        except OSError as e:
            raise DirectoryUnavailable(f"Cannot start {self.executable}: {e}") from e

    @staticmethod
    def _is_not_found(proc: subprocess.CompletedProcess) -> bool:
        stderr = proc.stderr or ""
        return any(marker in stderr for marker in NOT_FOUND_MARKERS)

    @staticmethod
    def _unavailable(action: str, proc: subprocess.CompletedProcess) -> DirectoryUnavailable:
        detail = (proc.stderr or "").strip() or f"exit code {proc.returncode}"
        return DirectoryUnavailable(f"{action} failed: {detail}")

    @staticmethod
    def _parse_objects(stdout: str) -> List[DirectoryObject]:
        text = (stdout or "").strip()
        if not text:
            return []

        data = json.loads(text)
        if isinstance(data, dict):
            data = [data]

        objects = []
        for item in data:
            name = (item.get("Name") or "").strip()
            dn = (item.get("DistinguishedName") or "").strip()
            if name and dn:
                objects.append(DirectoryObject(name=name, full_path=dn))
        return objects

    def lookup(self, identity: str) -> DirectoryObject:
        script = (
            f"Get-ADComputer -Identity {quote_ps(identity)}{self._server_arg()} "
            "-ErrorAction Stop | Select-Object Name, DistinguishedName | "
            "ConvertTo-Json -Compress"
        )
        proc = self._run(script)
        if proc.returncode != 0:
            if self._is_not_found(proc):
                logger.debug(f"Get-ADComputer found nothing for {identity}")
                raise ObjectNotFound(identity)
            raise self._unavailable(f"Get-ADComputer for {identity}", proc)

        try:
            objects = self._parse_objects(proc.stdout)
        except json.JSONDecodeError as e:
            raise ObjectNotFound(identity, f"Unreadable directory reply for {identity}: {e}") from e
        if not objects:
            raise ObjectNotFound(identity)
        return objects[0]

    def search(self, container: str) -> List[DirectoryObject]:
        script = (
            "ConvertTo-Json -Compress -InputObject @("
            f"Get-ADComputer -Filter * -SearchBase {quote_ps(container)}{self._server_arg()} "
            "-ErrorAction Stop | Select-Object Name, DistinguishedName)"
        )
        proc = self._run(script)
        if proc.returncode != 0:
            if self._is_not_found(proc):
                raise InvalidSourceContainer(
                    f"Cannot search {container}: {proc.stderr.strip()}"
                )
            raise self._unavailable(f"Searching {container}", proc)

        try:
            return self._parse_objects(proc.stdout)
        except json.JSONDecodeError as e:
            raise InvalidSourceContainer(f"Unreadable search reply for {container}: {e}") from e

    def move(self, identity: str, destination: str) -> None:
        script = (
            f"Get-ADComputer -Identity {quote_ps(identity)}{self._server_arg()} -ErrorAction Stop | "
            f"Move-ADObject -TargetPath {quote_ps(destination)}{self._server_arg()} -ErrorAction Stop"
        )
        proc = self._run(script)
        if proc.returncode != 0:
            if self._is_not_found(proc):
                raise ObjectNotFound(identity)
            raise MoveRejected(identity, proc.stderr.strip() or f"Move-ADObject failed for {identity}")

    def container_exists(self, container: str) -> bool:
        if not container:
            return False
        script = (
            f"Get-ADObject -Identity {quote_ps(container)}{self._server_arg()} "
            "-ErrorAction Stop | Out-Null"
        )
        proc = self._run(script)
        if proc.returncode == 0:
            return True
        if self._is_not_found(proc):
            return False
        raise self._unavailable(f"Get-ADObject for {container}", proc)
