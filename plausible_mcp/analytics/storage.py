"""Analytics persistence: Firebase Realtime Database with local file backup.

Two :class:`AnalyticsStore` implementations share one small interface:

- :class:`FirebaseStore` writes a sanitized document under
  ``mcp-analytics/<server>`` when service-account credentials are found at
  startup.
- :class:`LocalFileStore` writes a pretty-printed JSON file.

:class:`DualModeStore` composes them: loads prefer the remote document, saves
always end with a local write, and no failure escapes to callers.
:class:`PeriodicSaver` drives saves on a fixed interval and once at shutdown.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

import firebase_admin  # type: ignore[import-untyped]
from firebase_admin import credentials, db  # type: ignore[import-untyped]

from .models import AnalyticsState, utc_now_iso

logger = logging.getLogger(__name__)

FIREBASE_SERVER_NAME = "mcp-plausibleanalytics"
FIREBASE_ROOT = "mcp-analytics"
SAVE_INTERVAL_SECONDS = 60.0

_INVALID_KEY_CHARS = re.compile(r"[.#$/\[\]]")


def sanitize_key(key: str) -> str:
    """Replace characters Firebase forbids in keys (``. # $ / [ ]``) with ``_``."""
    return _INVALID_KEY_CHARS.sub("_", key)


def sanitize(value: Any) -> Any:
    """Recursively sanitize mapping keys inside nested dicts and lists."""
    if isinstance(value, dict):
        return {sanitize_key(str(k)): sanitize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [sanitize(v) for v in value]
    return value


def default_credential_paths(extra: Optional[str] = None) -> List[Path]:
    """Fixed search path for the Firebase service-account file."""
    paths = [
        Path("/app/.credentials/firebase-service-account.json"),
        Path.cwd() / ".credentials" / "firebase-service-account.json",
    ]
    if extra:
        paths.append(Path(extra))
    return paths


class AnalyticsStore(Protocol):
    """Storage backend for analytics documents.

    Implementations raise on I/O failures; :class:`DualModeStore` decides what
    to log and swallow.
    """

    @property
    def available(self) -> bool:
        """Whether this backend can be used at all."""
        raise NotImplementedError

    async def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or ``None`` when nothing is stored."""
        raise NotImplementedError

    async def save(self, document: Dict[str, Any]) -> None:
        """Persist ``document``, replacing any previous one."""
        raise NotImplementedError


class LocalFileStore:
    """JSON file backend.

    Parameters
    ----------
    path: Path
        Snapshot file; its parent directory is created on demand.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @property
    def available(self) -> bool:
        return True

    def _ensure_dir(self) -> None:
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(
                "analytics.local.dir_created", extra={"dir": str(self.path.parent)}
            )

    async def load(self) -> Optional[Dict[str, Any]]:
        self._ensure_dir()
        if not self.path.exists():
            return None
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    async def save(self, document: Dict[str, Any]) -> None:
        self._ensure_dir()
        self.path.write_text(json.dumps(document, indent=2), encoding="utf-8")


class FirebaseStore:
    """Firebase Realtime Database backend.

    Availability is decided once, in the constructor, by looking for a
    service-account file on ``credential_paths``. There is no reconnection: if
    the database becomes unreachable later, each save simply fails.

    Parameters
    ----------
    server_name: str
        Child key under ``mcp-analytics`` holding this server's document.
    credential_paths: list[Path]
        Candidate service-account files, checked in order.
    database_url: Optional[str]
        Explicit database URL; derived from the service account's
        ``project_id`` when omitted.
    """

    def __init__(
        self,
        server_name: str = FIREBASE_SERVER_NAME,
        credential_paths: Optional[List[Path]] = None,
        database_url: Optional[str] = None,
    ) -> None:
        self.server_name = server_name
        self.path = f"{FIREBASE_ROOT}/{server_name}"
        self._ref: Any = None
        self._initialized = False
        if credential_paths is None:
            credential_paths = default_credential_paths()
        self._initialize(credential_paths, database_url)

    def _initialize(self, paths: List[Path], database_url: Optional[str]) -> None:
        cred_path = next((p for p in paths if p.is_file()), None)
        if cred_path is None:
            logger.info(
                "analytics.firebase.disabled",
                extra={"reason": "no credentials found, using local file only"},
            )
            return
        try:
            service_account = json.loads(cred_path.read_text(encoding="utf-8"))
            url = database_url or (
                f"https://{service_account.get('project_id')}"
                "-default-rtdb.asia-southeast1.firebasedatabase.app"
            )
            try:
                app = firebase_admin.get_app(self.server_name)
            except ValueError:
                app = firebase_admin.initialize_app(
                    credentials.Certificate(service_account),
                    {"databaseURL": url},
                    name=self.server_name,
                )
            self._ref = db.reference(self.path, app=app)
            self._initialized = True
            logger.info(
                "analytics.firebase.connected",
                extra={
                    "credentials": str(cred_path),
                    "database_url": url,
                    "path": self.path,
                },
            )
        except (OSError, ValueError, KeyError) as exc:
            logger.error(
                "analytics.firebase.init_failed",
                extra={"credentials": str(cred_path), "error": str(exc)},
            )
            self._initialized = False

    @property
    def available(self) -> bool:
        return self._initialized

    async def load(self) -> Optional[Dict[str, Any]]:
        if not self._initialized:
            return None
        data = await asyncio.to_thread(self._ref.get)
        return data or None

    async def save(self, document: Dict[str, Any]) -> None:
        if not self._initialized:
            return
        payload = {**document, "lastUpdated": utc_now_iso()}
        await asyncio.to_thread(self._ref.set, payload)


class DualModeStore:
    """Remote-first persistence with an unconditional local backup."""

    def __init__(self, remote: AnalyticsStore, local: AnalyticsStore) -> None:
        self.remote = remote
        self.local = local

    @property
    def remote_enabled(self) -> bool:
        return self.remote.available

    async def load(self) -> AnalyticsState:
        """Return the persisted state, or fresh defaults.

        A remote that fails to load falls back to the local file. Never raises:
        any other failure is logged and treated as "start fresh".
        """
        if self.remote.available:
            try:
                data = await self.remote.load()
                if data:
                    state = AnalyticsState.from_document(data)
                    _log_loaded("firebase", state)
                    return state
            except Exception as exc:
                logger.error(
                    "analytics.load.remote_failed",
                    extra={"error": str(exc)},
                    exc_info=True,
                )

        try:
            data = await self.local.load()
            if data is not None:
                state = AnalyticsState.from_document(data)
                _log_loaded("local", state)
                return state
            logger.info("analytics.load.fresh")
        except Exception as exc:
            logger.error(
                "analytics.load.failed", extra={"error": str(exc)}, exc_info=True
            )
            logger.info("analytics.load.fresh")
        return AnalyticsState()

    async def save(self, state: AnalyticsState) -> None:
        """Write ``state`` remotely (sanitized) and locally (verbatim).

        The local write is attempted even when the remote write fails. Neither
        failure propagates.
        """
        document = state.to_document()
        remote_ok = False
        if self.remote.available:
            try:
                await self.remote.save(sanitize(document))
                remote_ok = True
            except Exception as exc:
                logger.error(
                    "analytics.save.remote_failed",
                    extra={"error": str(exc)},
                    exc_info=True,
                )
        try:
            await self.local.save(document)
        except Exception as exc:
            logger.error(
                "analytics.save.local_failed", extra={"error": str(exc)}, exc_info=True
            )
            return
        logger.info(
            "analytics.saved",
            extra={
                "storage": "firebase+local" if remote_ok else "local",
                "total_requests": state.total_requests,
            },
        )


def _log_loaded(source: str, state: AnalyticsState) -> None:
    logger.info(
        "analytics.loaded",
        extra={
            "source": source,
            "total_requests": state.total_requests,
            "total_tool_calls": state.total_tool_calls,
        },
    )


class PeriodicSaver:
    """Save a recorder's state on a fixed interval and once more on stop.

    Parameters
    ----------
    store: DualModeStore
        Destination for snapshots.
    get_state: Callable[[], AnalyticsState]
        Returns the live state at save time.
    interval: float
        Seconds between saves.
    """

    def __init__(
        self,
        store: DualModeStore,
        get_state: Callable[[], AnalyticsState],
        interval: float = SAVE_INTERVAL_SECONDS,
    ) -> None:
        self._store = store
        self._get_state = get_state
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="analytics-saver")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._store.save(self._get_state())

    async def stop(self) -> None:
        """Cancel the timer, then perform the final save."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._store.save(self._get_state())
