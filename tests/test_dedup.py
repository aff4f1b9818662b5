import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from media_importer import config
from media_importer.config import CollisionPolicy
from media_importer.dedup.index import ExistingIndex
from media_importer.dedup.resolver import DuplicateResolver, decide
from media_importer.exceptions import ResolutionIOError
from media_importer.models import Decision, MediaFile
from media_importer.scanning.fingerprint import fingerprint


def existing(size, name="IMG_001.jpg", captured=None):
    captured = captured or datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    return MediaFile(path=Path("/archive") / str(size) / name, captured=captured, size_bytes=size)


# --- Decision table ---

def test_decide_miss_is_copy_as_new():
    assert decide(None, []) is Decision.COPY_AS_NEW
    assert decide(5, []) is Decision.COPY_AS_NEW


@pytest.mark.parametrize("candidate,sizes,expected", [
    (1000, [1000], Decision.SKIP),
    (999, [1000], Decision.SKIP),
    (2000, [1000], Decision.COPY_AS_HIGHER_QUALITY),
    # three archived copies of different quality
    (1500, [1000, 1500, 3000], Decision.SKIP),
    (2000, [1000, 1500, 3000], Decision.SKIP),
    (500, [1000, 1500, 3000], Decision.SKIP),
    (3001, [1000, 1500, 3000], Decision.COPY_AS_HIGHER_QUALITY),
])
def test_decide_size_policy(candidate, sizes, expected):
    assert decide(candidate, [existing(s) for s in sizes]) is expected


def test_decide_requires_size_on_hit():
    with pytest.raises(ValueError):
        decide(None, [existing(1)])


# --- Index ---

def test_index_list_policy_keeps_all_collisions():
    index = ExistingIndex(CollisionPolicy.LIST)
    for size in (1000, 1500, 3000):
        key = index.add(existing(size))

    assert len(index) == 3
    assert [m.size_bytes for m in index.lookup(key)] == [1000, 1500, 3000]


def test_index_last_policy_overwrites():
    index = ExistingIndex(CollisionPolicy.LAST)
    for size in (1000, 1500, 3000):
        key = index.add(existing(size))

    assert len(index) == 1
    assert [m.size_bytes for m in index.lookup(key)] == [3000]


def test_index_policies_differ_for_candidate_between_sizes():
    # A 2000 byte candidate is lower quality than the 3000 byte copy under
    # "list", but under "last" only the 1000 byte copy was kept.
    list_index = ExistingIndex(CollisionPolicy.LIST)
    last_index = ExistingIndex(CollisionPolicy.LAST)
    for size in (3000, 1000):
        list_index.add(existing(size))
        last_index.add(existing(size))

    key = fingerprint("IMG_001.jpg", datetime(2024, 1, 1, 10, tzinfo=timezone.utc))
    assert decide(2000, list_index.lookup(key)) is Decision.SKIP
    assert decide(2000, last_index.lookup(key)) is Decision.COPY_AS_HIGHER_QUALITY


def test_index_lookup_miss():
    index = ExistingIndex()
    index.add(existing(1))
    key = fingerprint("other.jpg", config.EPOCH)
    assert key not in index
    assert index.lookup(key) == []


def test_build_index(make_file, tmp_path, stub_metadata, jan1):
    a = make_file("archive/2024/IMG_001.jpg", size=1000)
    b = make_file("archive/old/IMG_001.jpg", size=400)
    make_file("archive/notes.txt")
    stub_metadata.set(a, jan1)

    index = ExistingIndex.build([str(tmp_path / "archive")], {"jpg"}, metadata=stub_metadata)

    assert len(index) == 2
    assert index.failures == 0
    hit = index.lookup(fingerprint("IMG_001.jpg", jan1))
    assert [m.path for m in hit] == [a]
    assert hit[0].size_bytes == 1000
    # No metadata -> indexed under the default timestamp
    assert [m.path for m in index.lookup(fingerprint("IMG_001.jpg", config.EPOCH))] == [b]


def test_build_index_tolerates_unreadable_file(make_file, tmp_path, stub_metadata, monkeypatch):
    good = make_file("archive/a.jpg")
    bad = make_file("archive/b.jpg")

    real_stat = Path.stat

    def flaky_stat(self, *args, **kwargs):
        if self == bad:
            raise PermissionError("denied")
        return real_stat(self, *args, **kwargs)

    monkeypatch.setattr(Path, "stat", flaky_stat)

    index = ExistingIndex.build([str(tmp_path / "archive")], {"jpg"}, metadata=stub_metadata)

    assert len(index) == 1
    assert index.failures == 1
    assert index.lookup(fingerprint("a.jpg", config.EPOCH))[0].path == good


# --- Resolver ---

@pytest.fixture
def scenario(make_file, tmp_path, stub_metadata, jan1, jan2):
    """Archive holds IMG_001.jpg (jan1, 1000 bytes)."""
    archived = make_file("archive/IMG_001.jpg", size=1000)
    stub_metadata.set(archived, jan1)
    index = ExistingIndex.build([str(tmp_path / "archive")], {"jpg"}, metadata=stub_metadata)
    return DuplicateResolver(index, stub_metadata)


def test_resolve_exact_duplicate(scenario, make_file, stub_metadata, jan1):
    cand = make_file("dump/IMG_001.jpg", size=1000)
    stub_metadata.set(cand, jan1)

    res = scenario.resolve(cand)

    assert res.decision is Decision.SKIP
    assert len(res.matches) == 1
    assert "duplicate" in res.reason


def test_resolve_lower_quality(scenario, make_file, stub_metadata, jan1):
    cand = make_file("dump/IMG_001.jpg", size=10)
    stub_metadata.set(cand, jan1)

    res = scenario.resolve(cand)

    assert res.decision is Decision.SKIP
    assert "lower-quality" in res.reason


def test_resolve_higher_quality(scenario, make_file, stub_metadata, jan1):
    cand = make_file("dump/IMG_001.jpg", size=2000)
    stub_metadata.set(cand, jan1)

    res = scenario.resolve(cand)

    assert res.decision is Decision.COPY_AS_HIGHER_QUALITY
    assert res.candidate.captured == jan1
    assert res.candidate.size_bytes == 2000


def test_resolve_other_day_is_new(scenario, make_file, stub_metadata, jan2):
    cand = make_file("dump/IMG_001.jpg", size=1000)
    stub_metadata.set(cand, jan2)

    res = scenario.resolve(cand)

    assert res.decision is Decision.COPY_AS_NEW
    assert res.matches == []
    # Size is not read on a miss
    assert res.candidate.size_bytes is None


def test_resolve_missing_metadata_uses_epoch(scenario, make_file):
    cand = make_file("dump/IMG_009.jpg")

    res = scenario.resolve(cand)

    assert res.decision is Decision.COPY_AS_NEW
    assert res.candidate.captured == config.EPOCH


def test_resolve_size_failure_is_fatal(scenario, tmp_path, stub_metadata, jan1):
    ghost = tmp_path / "dump" / "IMG_001.jpg"
    stub_metadata.set(ghost, jan1)

    with pytest.raises(ResolutionIOError):
        scenario.resolve(ghost)


def test_build_and_resolve_at_datetime_range_edge(make_file, tmp_path, stub_metadata):
    earliest = datetime(1, 1, 1, tzinfo=timezone(timedelta(hours=2)))
    odd = make_file("archive/IMG_000.jpg", size=100)
    normal = make_file("archive/IMG_001.jpg", size=100)
    cand = make_file("dump/IMG_000.jpg", size=100)
    stub_metadata.set(odd, earliest)
    stub_metadata.set(cand, earliest)

    index = ExistingIndex.build([str(tmp_path / "archive")], {"jpg"}, metadata=stub_metadata)

    assert len(index) == 2
    assert index.failures == 0
    assert index.lookup(fingerprint("IMG_001.jpg", config.EPOCH))[0].path == normal
    assert DuplicateResolver(index, stub_metadata).resolve(cand).decision is Decision.SKIP


def test_reason_names_largest_match(make_file, tmp_path, stub_metadata, jan1):
    small = make_file("archive/a/IMG_001.jpg", size=100)
    large = make_file("archive/b/IMG_001.jpg", size=300)
    cand = make_file("dump/IMG_001.jpg", size=500)
    lower = make_file("dump2/IMG_001.jpg", size=200)
    for p in (small, large, cand, lower):
        stub_metadata.set(p, jan1)

    index = ExistingIndex.build([str(tmp_path / "archive")], {"jpg"}, metadata=stub_metadata)
    resolver = DuplicateResolver(index, stub_metadata)

    higher = resolver.resolve(cand)
    assert higher.decision is Decision.COPY_AS_HIGHER_QUALITY
    assert str(large) in higher.reason
    assert str(small) not in higher.reason

    skipped = resolver.resolve(lower)
    assert skipped.decision is Decision.SKIP
    assert str(large) in skipped.reason
