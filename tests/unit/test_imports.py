"""Smoke tests ensuring packages import correctly."""

from __future__ import annotations


def test_import_avutils_package() -> None:
    import importlib

    module = importlib.import_module("avutils")
    assert module is not None
    assert hasattr(module, "evaluate_roles")
