from animdirector.manifest import build_manifest, canonical_category, validate_plan
from animdirector.similarity import find_reusable, jaccard
from schemas import DirectorSettings, ManifestFrame, UNIQUE_CATEGORY
from conftest import make_shot


def test_jaccard_identical_and_disjoint():
    assert jaccard("red fox forest", "forest fox red") == 1.0
    assert jaccard("Red Fox", "red fox") == 1.0
    assert jaccard("red fox", "blue whale") == 0.0
    assert jaccard("", "") == 0.0


def test_jaccard_partial_overlap():
    assert jaccard("red fox forest dawn", "red fox forest dawn mist") == 0.8
    assert jaccard("red fox forest", "red fox river") == 0.5


def test_find_reusable_is_strict_and_prefers_best_then_earliest():
    a = ManifestFrame(id="a", prompt="red fox river", category="c")
    b = ManifestFrame(id="b", prompt="red fox forest dawn mist", category="c")
    c = ManifestFrame(id="c", prompt="red fox forest dawn mist", category="c")
    assert find_reusable("red fox forest", [a], 0.5) is None
    assert find_reusable("red fox forest dawn", [a, b, c], 0.7) is b


def test_high_similarity_reuses_one_frame():
    shots = [
        make_shot(0, 0, 24, "red fox forest dawn", reusable=True, category="background"),
        make_shot(1, 24, 48, "red fox forest dawn mist", reusable=True, category="background"),
    ]
    manifest = build_manifest(shots, 0.7)
    frames = list(manifest.all_frames())
    assert len(frames) == 1
    assert frames[0].used_in_shots == ["shot-0", "shot-1"]
    assert frames[0].requirement_ids == ["frame-0", "frame-1"]
    assert manifest.total_unique == 1
    assert manifest.total_reused == 1


def test_low_similarity_creates_two_frames():
    shots = [
        make_shot(0, 0, 24, "red fox forest", reusable=True, category="background"),
        make_shot(1, 24, 48, "red fox river", reusable=True, category="background"),
    ]
    manifest = build_manifest(shots, 0.7)
    assert manifest.total_unique == 2
    assert manifest.total_reused == 0


def test_reuse_only_within_category():
    shots = [
        make_shot(0, 0, 24, "red fox forest", reusable=True, category="background"),
        make_shot(1, 24, 48, "red fox forest", reusable=True, category="idle"),
    ]
    assert build_manifest(shots, 0.7).total_unique == 2


def test_unique_requirements_never_dedup():
    shots = [make_shot(i, i * 10, i * 10 + 10, "same prompt") for i in range(3)]
    manifest = build_manifest(shots, 0.0)
    assert manifest.total_unique == 3
    assert [c.id for c in manifest.categories] == [UNIQUE_CATEGORY]
    assert not manifest.categories[0].is_reusable


def test_category_labels_are_canonicalised():
    assert canonical_category("Backgrounds") == "background"
    assert canonical_category(" back_ground ") == "back-ground"
    assert canonical_category("Walk Cycle") == "walk-cycle"
    assert canonical_category("glass") == "glass"
    assert canonical_category("bus") == "bus"
    assert canonical_category(None) == "general"
    assert canonical_category("unique") == "general"

    shots = [
        make_shot(0, 0, 24, "harbor at dawn", reusable=True, category="Backgrounds"),
        make_shot(1, 24, 48, "harbor at dawn", reusable=True, category="background"),
    ]
    manifest = build_manifest(shots, 0.7)
    assert manifest.total_unique == 1
    assert manifest.categories[0].name == "Background"


def test_generation_order_and_batches():
    shots = []
    for i in range(15):
        shots.append(make_shot(i, i * 2, i * 2 + 2, f"unique subject number {i}"))
    for i in range(15, 30):
        shots.append(make_shot(i, i * 2, i * 2 + 2, f"backdrop variant {i} alpha beta gamma delta epsilon {i * 7}",
                               reusable=True, category="background"))

    manifest = build_manifest(shots, 0.99)
    frames = manifest.frames_by_id()
    order = manifest.generation_order

    assert len(order) == 30
    reusable_flags = [frames[fid].category != UNIQUE_CATEGORY for fid in order]
    assert reusable_flags == [True] * 15 + [False] * 15
    for i, fid in enumerate(order):
        assert frames[fid].generation_batch == i // 12


def test_totals():
    shots = [
        make_shot(0, 0, 30, "harbor", reusable=True, category="bg"),
        make_shot(1, 30, 50, "harbor", reusable=True, category="bg"),
        make_shot(2, 50, 60, "harbor", reusable=True, category="bg"),
        make_shot(3, 60, 100, "duel on the pier"),
    ]
    manifest = build_manifest(shots, 0.7)
    assert manifest.total_unique == 2
    assert manifest.total_reused == 2
    assert manifest.total_output == 100
    assert sum(c.count for c in manifest.categories) == 2
    assert manifest.frame_for_requirement("frame-2").id == "frame-0"


def test_validate_plan_warnings():
    shots = [make_shot(i, i, i + 1, f"subject {i}") for i in range(5)]
    manifest = build_manifest(shots, 0.7)

    warnings = validate_plan(manifest, DirectorSettings(max_unique_frames=3))
    assert any("budget is 3" in w for w in warnings)
    assert any("Very few unique frames" in w for w in warnings)

    shots = [make_shot(i, i, i + 1, f"subject {i}") for i in range(12)]
    assert validate_plan(build_manifest(shots, 0.7), DirectorSettings()) == []
