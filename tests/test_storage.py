"""Dual-mode analytics persistence."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from plausible_mcp.analytics import (
    AnalyticsRecorder,
    AnalyticsState,
    DualModeStore,
    FirebaseStore,
    LocalFileStore,
    PeriodicSaver,
    RequestMetadata,
)
from plausible_mcp.analytics.storage import sanitize, sanitize_key


class FakeRemote:
    """In-memory stand-in for the Firebase backend."""

    def __init__(
        self,
        available: bool = True,
        document: Optional[Dict[str, Any]] = None,
        fail_save: bool = False,
        fail_load: bool = False,
    ) -> None:
        self._available = available
        self.document = document
        self.fail_save = fail_save
        self.fail_load = fail_load
        self.saved: List[Dict[str, Any]] = []

    @property
    def available(self) -> bool:
        return self._available

    async def load(self) -> Optional[Dict[str, Any]]:
        if self.fail_load:
            raise ConnectionError("firebase unreachable")
        return self.document

    async def save(self, document: Dict[str, Any]) -> None:
        if self.fail_save:
            raise ConnectionError("firebase unreachable")
        self.saved.append(document)


def _populated_state() -> AnalyticsState:
    recorder = AnalyticsRecorder()
    meta = RequestMetadata(method="POST", peer="192.168.1.10", user_agent="curl/8.0")
    recorder.record_request("/mcp", meta)
    recorder.record_request("/analytics/tools", meta)
    recorder.record_tool_call("query_stats", meta)
    return recorder.state


def test_sanitize_replaces_only_forbidden_characters():
    assert sanitize_key("/analytics/tools") == "_analytics_tools"
    assert sanitize_key("a.b#c$d[e]f") == "a_b_c_d_e_f"
    assert sanitize_key("plain-key_1") == "plain-key_1"


def test_sanitize_is_recursive_and_idempotent():
    doc = {"by/path": {"1.2.3.4": 2}, "list": [{"x.y": 1}], "n": 3}
    once = sanitize(doc)
    assert once == {"by_path": {"1_2_3_4": 2}, "list": [{"x_y": 1}], "n": 3}
    assert sanitize(once) == once


@pytest.mark.asyncio
async def test_load_without_remote_or_file_yields_defaults(tmp_path: Path):
    local = LocalFileStore(tmp_path / "a.json")
    store = DualModeStore(FakeRemote(available=False), local)
    state = await store.load()
    assert state.total_requests == 0
    assert state.recent_tool_calls == []
    assert state.server_start_time.endswith("Z")


@pytest.mark.asyncio
async def test_local_round_trip_preserves_every_field(tmp_path: Path):
    path = tmp_path / "data" / "analytics.json"
    store = DualModeStore(FakeRemote(available=False), LocalFileStore(path))
    original = _populated_state()

    await store.save(original)
    loaded = await store.load()

    assert loaded.to_document() == original.to_document()
    raw = json.loads(path.read_text())
    assert raw["requestsByEndpoint"] == {"/mcp": 1, "/analytics/tools": 1}
    assert raw["recentToolCalls"][0]["clientIp"] == "192.168.1.10"


@pytest.mark.asyncio
async def test_remote_gets_sanitized_copy_and_local_stays_verbatim(tmp_path: Path):
    path = tmp_path / "analytics.json"
    remote = FakeRemote()
    store = DualModeStore(remote, LocalFileStore(path))

    await store.save(_populated_state())

    (remote_doc,) = remote.saved
    assert "_mcp" in remote_doc["requestsByEndpoint"]
    assert "192_168_1_10" in remote_doc["clientsByIp"]
    local_doc = json.loads(path.read_text())
    assert "/mcp" in local_doc["requestsByEndpoint"]
    assert "192.168.1.10" in local_doc["clientsByIp"]


@pytest.mark.asyncio
async def test_remote_failure_still_writes_local(tmp_path: Path):
    path = tmp_path / "analytics.json"
    store = DualModeStore(FakeRemote(fail_save=True), LocalFileStore(path))

    await store.save(_populated_state())

    assert json.loads(path.read_text())["totalRequests"] == 2


@pytest.mark.asyncio
async def test_remote_document_wins_and_missing_fields_default(tmp_path: Path):
    path = tmp_path / "analytics.json"
    path.write_text(json.dumps({"totalRequests": 99}))
    remote = FakeRemote(document={"totalRequests": 7, "toolCalls": {"hello": 1}})
    store = DualModeStore(remote, LocalFileStore(path))

    state = await store.load()

    assert state.total_requests == 7
    assert state.tool_calls == {"hello": 1}
    assert state.requests_by_method == {}
    assert state.server_start_time


@pytest.mark.asyncio
async def test_unreachable_remote_falls_back_to_local_file(tmp_path: Path):
    path = tmp_path / "analytics.json"
    path.write_text(json.dumps({"totalRequests": 500, "toolCalls": {"hello": 4}}))
    store = DualModeStore(FakeRemote(fail_load=True), LocalFileStore(path))

    state = await store.load()

    assert state.total_requests == 500
    assert state.tool_calls == {"hello": 4}

    await store.save(state)
    assert json.loads(path.read_text())["totalRequests"] == 500


@pytest.mark.asyncio
async def test_corrupt_local_file_starts_fresh(tmp_path: Path):
    path = tmp_path / "analytics.json"
    path.write_text("{not json")
    store = DualModeStore(FakeRemote(available=False), LocalFileStore(path))

    state = await store.load()

    assert state.total_requests == 0


def test_firebase_store_disabled_without_credentials(tmp_path: Path):
    store = FirebaseStore(credential_paths=[tmp_path / "missing.json"])
    assert store.available is False


@pytest.mark.asyncio
async def test_firebase_store_disabled_is_a_no_op(tmp_path: Path):
    store = FirebaseStore(credential_paths=[tmp_path / "missing.json"])
    assert await store.load() is None
    await store.save({"totalRequests": 1})


@pytest.mark.asyncio
async def test_periodic_saver_saves_on_interval_and_on_stop(tmp_path: Path):
    path = tmp_path / "analytics.json"
    store = DualModeStore(FakeRemote(available=False), LocalFileStore(path))
    recorder = AnalyticsRecorder()
    saver = PeriodicSaver(store, lambda: recorder.state, interval=0.01)

    saver.start()
    assert saver.running
    recorder.record_request("/", RequestMetadata())
    await asyncio.sleep(0.05)
    assert path.exists()

    recorder.record_request("/", RequestMetadata())
    await saver.stop()

    assert not saver.running
    assert json.loads(path.read_text())["totalRequests"] == 2
