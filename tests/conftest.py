from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from helpers import FakeSurface, build_epub
from reflow_reader.models.session import ReaderConfig


@pytest.fixture
def fake_surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def instant_config() -> ReaderConfig:
    return ReaderConfig(
        measure_settle_delay=0,
        measure_retry_delay=0,
        precompute_settle_delay=0,
        precompute_retry_delay=0,
        anchor_delay=0,
        precompute=False,
    )


@pytest.fixture
def epub_file(tmp_path: Path) -> Callable[..., Path]:
    """Write :func:`build_epub` output to ``tmp_path`` and return its path."""

    def _write(name: str = "book.epub", **kwargs) -> Path:
        path = tmp_path / name
        path.write_bytes(build_epub(**kwargs))
        return path

    return _write
