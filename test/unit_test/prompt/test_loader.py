from __future__ import annotations

from typing import Any, Iterable, List

import pytest

import prompt_engine.prompt.loader as loader_mod
from prompt_engine.core.config import PromptEngineSettings
from prompt_engine.prompt import HttpPromptFetcher, load_prompt_fetcher


class _EP:
    def __init__(self, name: str, obj: Any) -> None:
        self.name = name
        self._obj = obj

    def load(self) -> Any:
        if isinstance(self._obj, Exception):
            raise self._obj
        return self._obj


class DummyFetcher:
    async def fetch_candidates(self, prompt_id: str, major: str) -> Any:
        return {"minorVersions": ["0"]}

    async def fetch_prompt_version(self, prompt_id: str, major: str, minor: str) -> Any:
        return {"id": prompt_id, "templates": []}


def _patch_eps(monkeypatch: pytest.MonkeyPatch, eps: List[_EP]) -> None:
    def fake_iter(group: str) -> Iterable[_EP]:
        assert group == loader_mod.ENTRY_POINT_GROUP
        return eps

    monkeypatch.setattr(loader_mod, "_iter_entry_points", fake_iter)


def _http_settings(**kwargs: Any) -> PromptEngineSettings:
    return PromptEngineSettings(api_key="k", app_id="app", **kwargs)


def test_default_key_builds_http_fetcher() -> None:
    fetcher = load_prompt_fetcher(_http_settings())
    assert isinstance(fetcher, HttpPromptFetcher)
    assert fetcher.app_id == "app"


def test_default_is_returned_for_builtin_key() -> None:
    default = DummyFetcher()
    assert load_prompt_fetcher(_http_settings(fetcher="http"), default=default) is default


def test_entry_point_factory_is_used(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_eps(monkeypatch, [_EP("other", lambda: None), _EP("bundle", DummyFetcher)])
    fetcher = load_prompt_fetcher(_http_settings(fetcher="bundle"))
    assert isinstance(fetcher, DummyFetcher)


def test_non_conforming_factory_falls_back(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    _patch_eps(monkeypatch, [_EP("bundle", lambda: object())])
    fetcher = load_prompt_fetcher(_http_settings(fetcher="bundle"))
    assert isinstance(fetcher, HttpPromptFetcher)
    assert "did not return a PromptFetcher" in caplog.text


def test_failing_entry_point_falls_back(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    _patch_eps(monkeypatch, [_EP("bundle", ImportError("missing module"))])
    default = DummyFetcher()
    assert load_prompt_fetcher(_http_settings(fetcher="bundle"), default=default) is default
    assert "failed to load fetcher" in caplog.text
    assert "ImportError" in caplog.text


def test_unknown_key_falls_back(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    _patch_eps(monkeypatch, [])
    fetcher = load_prompt_fetcher(_http_settings(fetcher="nope"))
    assert isinstance(fetcher, HttpPromptFetcher)
    assert "fetcher_key=nope" in caplog.text


def test_http_fallback_without_api_key_raises() -> None:
    with pytest.raises(ValueError):
        load_prompt_fetcher(PromptEngineSettings(app_id="app"))


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMPT_ENGINE_API_KEY", "env-key")
    monkeypatch.setenv("PROMPT_ENGINE_APP_ID", "env-app")
    fetcher = load_prompt_fetcher()
    assert isinstance(fetcher, HttpPromptFetcher)
    assert fetcher.app_id == "env-app"
