"""Tests for the pollcast package surface."""

from __future__ import annotations

import pytest

import pollcast


class TestPublicAPI:
    @pytest.mark.parametrize("name", pollcast.__all__)
    def test_all_names_resolve(self, name: str) -> None:
        assert getattr(pollcast, name) is not None

    def test_lazy_import_returns_real_objects(self) -> None:
        from pollcast.server import BroadcastServer

        assert pollcast.BroadcastServer is BroadcastServer

    def test_unknown_attribute(self) -> None:
        with pytest.raises(AttributeError, match="no attribute 'nope'"):
            pollcast.nope  # noqa: B018

    def test_version(self) -> None:
        assert pollcast.__version__ == "0.1.0"
