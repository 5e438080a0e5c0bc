"""Tests for the sanitizer base class and pipeline."""

import pytest

from debugdump.config import DumpConfig
from debugdump.sanitize import NoopSanitizer, Sanitizer, SanitizerPipeline

DATA = {"foo": "bar"}


class Suffix(NoopSanitizer):
    def __init__(self, suffix):
        self.suffix = suffix

    def sanitize_error_message(self, error_message):
        return error_message + self.suffix

    def sanitize_get(self, get):
        return {k: v + self.suffix for k, v in get.items()}


class Veto(NoopSanitizer):
    def include_exception(self, exception):
        return False


def test_noop_sanitizer_returns_input():
    """Test every NoopSanitizer method is the identity."""
    sut = NoopSanitizer()
    backtrace = [{"file": "a.py", "line": 1}]

    assert sut.include_exception(RuntimeError()) is True
    assert sut.sanitize_backtrace(backtrace) is backtrace
    assert sut.sanitize_error_message("test message") == "test message"
    for method in ("sanitize_server", "sanitize_get", "sanitize_post", "sanitize_cookie", "sanitize_env"):
        assert getattr(sut, method)(DATA) is DATA


def test_noop_sanitizer_satisfies_protocol():
    assert isinstance(NoopSanitizer(), Sanitizer)
    assert not isinstance(object(), Sanitizer)


def test_pipeline_applies_left_to_right():
    """Test [A, B] yields B(A(x)), never A(B(x))."""
    pipeline = SanitizerPipeline([Suffix("A"), Suffix("B")])

    assert pipeline.sanitize_error_message("msg") == "msgAB"
    assert pipeline.sanitize_get({"q": "x"}) == {"q": "xAB"}


def test_empty_pipeline_is_identity():
    pipeline = SanitizerPipeline()

    assert pipeline.sanitize_error_message("msg") == "msg"
    assert pipeline.sanitize_server(DATA) is DATA
    assert pipeline.include_exception(ValueError()) is True


def test_include_exception_is_logical_and():
    exc = ValueError()

    assert SanitizerPipeline([NoopSanitizer(), NoopSanitizer()]).include_exception(exc) is True
    assert SanitizerPipeline([NoopSanitizer(), Veto()]).include_exception(exc) is False
    assert SanitizerPipeline([Veto(), NoopSanitizer()]).include_exception(exc) is False


def test_include_exception_none_is_excluded():
    assert SanitizerPipeline([NoopSanitizer()]).include_exception(None) is False


def test_config_rejects_non_sanitizer():
    """Test DumpConfig validates its sanitizer list."""
    with pytest.raises(TypeError, match="Sanitizer protocol"):
        DumpConfig(sanitizers=[object()])


def test_config_rejects_non_sanitizer_on_assignment():
    cfg = DumpConfig()

    with pytest.raises(TypeError, match="Sanitizer protocol"):
        cfg.sanitizers = [NoopSanitizer(), object()]

    assert list(cfg.sanitizers) == []

    cfg.sanitizers = [NoopSanitizer()]
    assert len(cfg.sanitizers) == 1


def test_config_appended_non_sanitizer_rejected_at_snapshot():
    cfg = DumpConfig()
    cfg.sanitizers.append(object())

    with pytest.raises(TypeError, match="Sanitizer protocol"):
        cfg.snapshot()


def test_config_snapshot_is_detached():
    sanitizers = [NoopSanitizer()]
    cfg = DumpConfig(sanitizers=sanitizers)

    snap = cfg.snapshot()
    sanitizers.append(Veto())
    cfg.env_enabled = True

    assert len(snap.sanitizers) == 1
    assert snap.env_enabled is False
    assert isinstance(snap.sanitizers, tuple)
