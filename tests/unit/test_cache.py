"""Unit tests for mtime-based artifact freshness."""

import os

import pytest

from tikzcache.contexts.rendering.cache import CacheManager
from tikzcache.contexts.tooling.platform_ops import PosixOps


@pytest.fixture
def cache():
    return CacheManager(PosixOps())


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "fig01.png"
    path.write_bytes(b"image")
    return path


def _shift_mtime(path, delta_ns):
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + delta_ns))


@pytest.mark.unit
def test_missing_artifact_is_stale(cache, source_file, tmp_path):
    assert cache.is_stale(tmp_path / "fig01.svg", source_file)


@pytest.mark.unit
def test_stamped_artifact_is_fresh(cache, source_file, artifact):
    cache.stamp([artifact], source_file)

    assert not cache.is_stale(artifact, source_file)
    assert os.stat(artifact).st_mtime_ns == os.stat(source_file).st_mtime_ns


@pytest.mark.unit
@pytest.mark.parametrize("delta_ns", [1000, -1000, 10**9])
def test_any_mtime_difference_is_stale(cache, source_file, artifact, delta_ns):
    """Test an artifact newer than its source is as stale as an older one."""
    cache.stamp([artifact], source_file)
    _shift_mtime(artifact, delta_ns)

    assert cache.is_stale(artifact, source_file)


@pytest.mark.unit
def test_editing_source_makes_artifact_stale(cache, source_file, artifact):
    cache.stamp([artifact], source_file)
    _shift_mtime(source_file, 2 * 10**9)

    assert cache.is_stale(artifact, source_file)


@pytest.mark.unit
def test_stale_artifacts_preserves_order(cache, source_file, tmp_path):
    png = tmp_path / "fig01.png"
    svg = tmp_path / "fig01.svg"
    pdf = tmp_path / "fig01.pdf"
    for path in (png, svg, pdf):
        path.write_bytes(b"x")
    cache.stamp([svg], source_file)

    assert cache.stale_artifacts([png, svg, pdf], source_file) == [png, pdf]


@pytest.mark.unit
def test_stamp_preserves_access_time(cache, source_file, artifact):
    os.utime(artifact, ns=(1_000_000_000, 2_000_000_000))

    cache.stamp([artifact], source_file)

    assert os.stat(artifact).st_atime_ns == 1_000_000_000


@pytest.mark.unit
def test_stamp_missing_source_raises(cache, artifact, tmp_path):
    with pytest.raises(OSError):
        cache.stamp([artifact], tmp_path / "missing.md")


@pytest.mark.unit
def test_entry_reports_unreadable_mtimes(cache, tmp_path):
    entry = cache.entry(tmp_path / "a.png", tmp_path / "doc.md")

    assert entry.artifact_mtime is None
    assert entry.source_mtime is None
    assert not entry.is_fresh
