"""Tests for DynalistApi: token lookup, error codes and read caching."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from outline_sync.adapters.dynalist_api import DynalistApi, DynalistApiError

MODULE = "outline_sync.adapters.dynalist_api"


def _make_response(data: dict[str, Any]) -> MagicMock:
    response = MagicMock()
    response.json.return_value = data
    response.text = json.dumps(data)
    return response


def _make_api(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, *, from_cache: bool = False
) -> tuple[DynalistApi, MagicMock]:
    token_file = tmp_path / "token.txt"
    token_file.write_text("test-token\n")
    monkeypatch.setattr(f"{MODULE}.API_TOKEN_FILES", [token_file])
    monkeypatch.setattr(f"{MODULE}.API_CACHE_PREFIX", str(tmp_path / "cache" / "cache-"))
    with patch(f"{MODULE}.requests.Session") as mock_session_cls:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        api = DynalistApi(from_cache=from_cache)
    return api, mock_session


def test_token_argument_skips_token_files(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(f"{MODULE}.API_TOKEN_FILES", [])
    with patch(f"{MODULE}.requests.Session"):
        api = DynalistApi(token="given")
    assert api.api_token == "given"


def test_missing_token_file_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(f"{MODULE}.API_TOKEN_FILES", [tmp_path / "missing.txt"])
    with pytest.raises(RuntimeError, match="Cannot find dynalist token"):
        DynalistApi()


def test_call_sends_token_and_args(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    api, session = _make_api(tmp_path, monkeypatch)
    session.post.return_value = _make_response({"_code": "Ok", "title": "Notes"})

    assert api.call("doc/read", {"file_id": "doc1"}) == {"_code": "Ok", "title": "Notes"}

    url, body = session.post.call_args[0]
    assert url == "https://dynalist.io/api/v1/doc/read"
    assert json.loads(body) == {"token": "test-token", "file_id": "doc1"}


def test_error_code_raises_with_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    api, session = _make_api(tmp_path, monkeypatch)
    session.post.return_value = _make_response({"_code": "NotFound", "_msg": "no such doc"})

    with pytest.raises(DynalistApiError, match="API call failed") as exc_info:
        api.call("doc/read", {"file_id": "x"})

    assert exc_info.value.code == "NotFound"


def test_reads_are_cached(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    api, session = _make_api(tmp_path, monkeypatch, from_cache=True)
    session.post.return_value = _make_response({"_code": "Ok", "files": []})

    api.call("file/list", {})
    api.call("file/list", {})

    assert session.post.call_count == 1
    assert (tmp_path / "cache" / "cache-file--list").exists()


def test_edits_are_never_cached(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    api, session = _make_api(tmp_path, monkeypatch, from_cache=True)
    session.post.return_value = _make_response({"_code": "Ok", "new_node_ids": ["n1"]})
    args = {"file_id": "doc1", "changes": [{"action": "insert", "parent_id": "root"}]}

    api.call("doc/edit", args)
    api.call("doc/edit", args)

    assert session.post.call_count == 2
    assert list((tmp_path / "cache").iterdir()) == []
