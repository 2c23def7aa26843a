import pytest

from giftplanner.names import (
    NameMapShape,
    NameResolver,
    aggressive_normalize,
    build_index,
    detect_shape,
    invert_id_map,
    name_variants,
    normalize_gift_name,
)

CATALOG = {
    "Santa Hat": "5983471780763796287",
    "B-Day Candle": "5782984811920491178",
    "Jack-in-the-Box": "6005659564635063386",
    "Instant Ramen": "6008131131440037007",
}


def test_name_variants_order():
    assert name_variants("Santa Hat") == (
        "Santa Hat",
        "santa hat",
        "santa-hat",
        "santahat",
        "SantaHat",
        "santa_hat",
    )


def test_name_variants_collapse_duplicates():
    assert name_variants("ramen") == ("ramen",)


def test_normalizers():
    assert normalize_gift_name("Santa Hat") == "santa-hat"
    assert aggressive_normalize("Jack-in-the-Box") == "jackinthebox"


@pytest.mark.parametrize("name", sorted(CATALOG))
def test_every_variant_resolves_to_the_same_id(name):
    resolver = NameResolver(build_index(CATALOG))
    for variant in name_variants(name):
        assert resolver.resolve(variant) == CATALOG[name]


def test_resolve_is_idempotent():
    resolver = NameResolver(build_index(CATALOG))
    assert resolver.resolve("santa_hat") == resolver.resolve("santa_hat") == CATALOG["Santa Hat"]


def test_resolve_unknown_name_returns_none():
    resolver = NameResolver(build_index(CATALOG))
    assert resolver.resolve("Plush Pepe") is None
    assert resolver.resolve("") is None
    assert resolver.resolve(None) is None


def test_resolve_prefers_least_lossy_variant():
    index = build_index({"Santa Hat": "2", "santahat": "1"})
    resolver = NameResolver(index)
    # identity hits first even though the aggressive form points elsewhere
    assert resolver.resolve("Santa Hat") == "2"
    assert resolver.resolve("SANTA-HAT!") == "1"


def test_collisions_are_last_write_wins():
    index = build_index({"Santa-Hat": "1", "Santa Hat": "2"})
    assert index["santahat"] == "2"
    assert index["Santa-Hat"] == "1"


def test_index_is_read_only():
    index = build_index(CATALOG)
    with pytest.raises(TypeError):
        index["new"] = "1"


def test_detect_shape():
    assert detect_shape({"Santa Hat": "5983471780763796287"}) is NameMapShape.DIRECT
    assert detect_shape({"5983471780763796287": "Santa Hat"}) is NameMapShape.INVERTED
    assert detect_shape({"Santa Hat": 5983471780763796287}) is NameMapShape.INVERTED
    assert detect_shape({}) is NameMapShape.INVERTED


def test_invert_id_map_drops_non_string_names():
    payload = {"1": "Santa Hat", "2": None, "3": {"name": "x"}, "4": "Instant Ramen"}
    assert invert_id_map(payload) == {"Santa Hat": "1", "Instant Ramen": "4"}


def test_from_payload_inverted():
    resolver = NameResolver.from_payload({"42": "Instant Ramen"}, NameMapShape.INVERTED)
    assert resolver.resolve("instantramen") == "42"
    assert len(resolver) == len(name_variants("Instant Ramen"))
