"""
Varnishkit Providers - Files.

Content comes from a literal ``content`` property (already rendered from a
template by the manifest) or is copied from a ``source``: a local path or an
http(s) URL. The file is compared by sha256, mode, owner and group;
with ``replace: false`` an existing file keeps its content.
"""

from __future__ import annotations

import grp
import hashlib
import os
import pwd
import shutil
import stat
import tempfile
from pathlib import Path

import httpx
from loguru import logger

from varnishkit.config.constants import DEFAULT_FETCH_TIMEOUT
from varnishkit.core.exceptions import CommandTimeoutError, FileWriteError
from varnishkit.core.resilience import call_with_retry
from varnishkit.core.types import Ensure, ResourceKind
from varnishkit.graph.resource import Resource, ResourceRef
from varnishkit.providers.base import ObservedState, Provider
from varnishkit.providers.runner import CommandRunner
from varnishkit.utils.logger import log_prefix

DEFAULT_MODE = 0o644


def parse_mode(mode: str | int | None) -> int | None:
    """Convert ``"0644"``/``"644"``/``0o644`` to an int."""
    if mode is None:
        return None
    if isinstance(mode, int):
        return mode
    try:
        return int(str(mode), 8)
    except ValueError:
        raise ValueError(f"Invalid file mode: {mode!r}") from None


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _owner_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


class FileProvider(Provider):
    """Manage file content, mode and ownership."""

    kind = ResourceKind.FILE

    def __init__(
        self,
        runner: CommandRunner,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        network_tries: int = 1,
        try_sleep: float = 0.0,
    ):
        super().__init__(runner)
        self.fetch_timeout = fetch_timeout
        self.network_tries = network_tries
        self.try_sleep = try_sleep
        self._source_cache: dict[ResourceRef, bytes] = {}

    # Desired content

    @staticmethod
    def replaces(resource: Resource) -> bool:
        """False when an existing file keeps its content (``replace: false``)."""
        return bool(resource.get("replace", True))

    def desired_content(self, resource: Resource) -> bytes | None:
        """Bytes the file should contain, or None when content is unmanaged."""
        content = resource.get("content")
        if content is not None:
            return content.encode() if isinstance(content, str) else bytes(content)

        source = resource.get("source")
        if source is None:
            return None
        if resource.ref not in self._source_cache:
            self._source_cache[resource.ref] = self._read_source(resource, str(source))
        return self._source_cache[resource.ref]

    def _read_source(self, resource: Resource, source: str) -> bytes:
        if source.startswith(("http://", "https://")):
            try:
                return call_with_retry(
                    lambda: self._fetch(resource, source),
                    max_attempts=self.network_tries,
                    initial_delay=self.try_sleep,
                    exceptions=(httpx.TransportError,),
                    label=f"fetch {source}",
                )
            except httpx.HTTPError as e:
                raise FileWriteError(resource.name, f"cannot fetch source {source}: {e}") from e
        path = source.removeprefix("file://")
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise FileWriteError(resource.name, f"cannot read source {source}: {e}") from e

    def _fetch(self, resource: Resource, url: str) -> bytes:
        logger.debug(f"Fetching {url} for {resource}")
        try:
            response = httpx.get(url, timeout=self.fetch_timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.TimeoutException:
            raise CommandTimeoutError(f"GET {url}", self.fetch_timeout) from None
        except httpx.HTTPStatusError as e:
            raise FileWriteError(
                resource.name, f"cannot fetch source {url}: HTTP {e.response.status_code}"
            ) from e
        return response.content

    # Provider interface

    def query(self, resource: Resource) -> ObservedState:
        path = Path(resource.name)
        try:
            st = path.lstat()
        except FileNotFoundError:
            return ObservedState(exists=False)
        except OSError as e:
            raise FileWriteError(resource.name, f"cannot stat: {e}") from e

        attributes: dict[str, object] = {
            "type": "file" if stat.S_ISREG(st.st_mode) else "other",
            "mode": stat.S_IMODE(st.st_mode),
            "owner": _owner_name(st.st_uid),
            "group": _group_name(st.st_gid),
        }
        if stat.S_ISREG(st.st_mode):
            try:
                attributes["sha256"] = sha256(path.read_bytes())
            except OSError as e:
                raise FileWriteError(resource.name, f"cannot read: {e}") from e
        return ObservedState(exists=True, attributes=attributes)

    def differences(self, resource: Resource, observed: ObservedState) -> list[str]:
        """Names of the attributes that are out of sync."""
        if resource.ensure == Ensure.ABSENT:
            return ["ensure"] if observed.exists else []
        if not observed.exists:
            return ["ensure"]
        if observed.get("type") != "file":
            return ["type"]

        diffs = []
        content = self.desired_content(resource) if self.replaces(resource) else None
        if content is not None and sha256(content) != observed.get("sha256"):
            diffs.append("content")
        mode = parse_mode(resource.get("mode"))
        if mode is not None and mode != observed.get("mode"):
            diffs.append("mode")
        for attr in ("owner", "group"):
            wanted = resource.get(attr)
            if wanted is not None and str(wanted) != observed.get(attr):
                diffs.append(attr)
        return diffs

    def insync(self, resource: Resource, observed: ObservedState) -> bool:
        return not self.differences(resource, observed)

    def apply(self, resource: Resource, observed: ObservedState) -> None:
        path = Path(resource.name)
        logger.info(f"{log_prefix('📁')} {resource}: {self.describe_change(resource, observed)}")

        if resource.ensure == Ensure.ABSENT:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise FileWriteError(resource.name, f"cannot remove: {e}") from e
            return

        if observed.exists and observed.get("type") != "file":
            raise FileWriteError(resource.name, "exists and is not a regular file")

        content = self.desired_content(resource)
        if not observed.exists or (
            self.replaces(resource)
            and content is not None
            and sha256(content) != observed.get("sha256")
        ):
            self._write(path, content or b"", parse_mode(resource.get("mode")), observed)

        try:
            mode = parse_mode(resource.get("mode"))
            if mode is not None:
                os.chmod(path, mode)
            owner, group = resource.get("owner"), resource.get("group")
            if owner is not None or group is not None:
                shutil.chown(path, user=owner, group=group)
        except (OSError, LookupError) as e:
            raise FileWriteError(resource.name, f"cannot set metadata: {e}") from e

    def _write(self, path: Path, content: bytes, mode: int | None, observed: ObservedState) -> None:
        """Write atomically through a temporary file in the same directory."""
        if mode is None:
            mode = observed.get("mode", DEFAULT_MODE) if observed.exists else DEFAULT_MODE

        fd, tmp_name = -1, ""
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as handle:
                fd = -1
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
            tmp_name = ""
        except OSError as e:
            raise FileWriteError(str(path), str(e)) from e
        finally:
            if fd != -1:
                os.close(fd)
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)

    def describe_change(self, resource: Resource, observed: ObservedState) -> str:
        diffs = self.differences(resource, observed)
        if "ensure" in diffs:
            return f"ensure: {'present' if observed.exists else 'absent'} -> {resource.ensure}"
        parts = []
        for diff in diffs:
            if diff == "content":
                parts.append("content changed" if not resource.sensitive else "content changed (sensitive)")
            elif diff == "mode":
                parts.append(f"mode: {observed.get('mode'):04o} -> {parse_mode(resource.get('mode')):04o}")
            elif diff in ("owner", "group"):
                parts.append(f"{diff}: {observed.get(diff)} -> {resource.get(diff)}")
            else:
                parts.append(diff)
        return ", ".join(parts) or "in sync"
