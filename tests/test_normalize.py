from collections.abc import Callable

import pytest

import spirv_gen


def _names(enumerants: list[spirv_gen.Enumerant]) -> list[str]:
    return [e.name for e in enumerants]


@pytest.mark.parametrize(
    ("text", "expected"),
    [("0x10", 16), ("0x0000", 0), ("0x00040000", 0x40000), ("0xFFFFFFFF", 0xFFFFFFFF)],
)
def test_parse_hex_accepts_prefixed_hex(text: str, expected: int) -> None:
    assert spirv_gen.parse_hex(text) == expected


@pytest.mark.parametrize(
    "text", ["10", "", "0x", "0xG1", "0x 1", "0x-1", "0x_10", "0X10", "0x100000000"]
)
def test_parse_hex_rejects_malformed_values(text: str) -> None:
    with pytest.raises(spirv_gen.InvalidHexInt) as exc_info:
        spirv_gen.parse_hex(text)

    assert exc_info.value.code == "INVALID_HEX_INT"


def test_parse_hex_missing_prefix_message_names_prefix() -> None:
    with pytest.raises(spirv_gen.InvalidHexInt) as exc_info:
        spirv_gen.parse_hex("10")

    assert "0x" in exc_info.value.message


def test_enumerant_value_handles_both_variants(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    assert spirv_gen.enumerant_value(make_enumerant("Cube", 3)) == 3
    assert spirv_gen.enumerant_value(make_enumerant("Lod", "0x0002")) == 2


def test_dedupe_keeps_shortest_alias(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    enumerants = [make_enumerant("Foo", "0x1"), make_enumerant("FooEXT", "0x1")]

    assert _names(spirv_gen.dedupe_enumerants(enumerants)) == ["Foo"]


def test_dedupe_prefers_shorter_name_declared_later(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    enumerants = [
        make_enumerant("StorageBuffer16BitAccessKHR", 4433),
        make_enumerant("Other", 1),
        make_enumerant("StorageBuffer16BitAccess", 4433),
    ]

    assert _names(spirv_gen.dedupe_enumerants(enumerants)) == [
        "Other",
        "StorageBuffer16BitAccess",
    ]


def test_dedupe_equal_length_first_declared_wins(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    enumerants = [make_enumerant("AbcKHR", 5), make_enumerant("AbcEXT", 5)]

    assert _names(spirv_gen.dedupe_enumerants(enumerants)) == ["AbcKHR"]


def test_dedupe_compares_bitflags_numerically(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    enumerants = [
        make_enumerant("MakePointerAvailableKHR", "0x0008"),
        make_enumerant("NonPrivatePointer", "0x0020"),
        make_enumerant("MakePointerAvailable", "0x8"),
    ]

    assert _names(spirv_gen.dedupe_enumerants(enumerants)) == [
        "NonPrivatePointer",
        "MakePointerAvailable",
    ]


def test_dedupe_preserves_order_without_aliases(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    enumerants = [make_enumerant(n, v) for n, v in [("C", 2), ("A", 0), ("B", 1)]]

    assert spirv_gen.dedupe_enumerants(enumerants) == enumerants


def test_dedupe_invalid_bitflag_raises_invalid_hex_int(
    make_enumerant: Callable[[str, int | str], spirv_gen.Enumerant],
) -> None:
    with pytest.raises(spirv_gen.InvalidHexInt):
        spirv_gen.dedupe_enumerants([make_enumerant("Bad", "10")])


def _registry_with_aliases() -> spirv_gen.ExtensionRegistry:
    E = spirv_gen.Enumerant
    return spirv_gen.ExtensionRegistry(
        version=1,
        instructions=[],
        operand_kinds=[
            spirv_gen.OperandKind(
                kind="Access",
                category=spirv_gen.CATEGORY_BIT_ENUM,
                enumerants=[E("Read", "0x1"), E("ReadKHR", "0x1"), E("Write", "0x2")],
            ),
            spirv_gen.OperandKind(kind="IdRef", category="Id"),
            spirv_gen.OperandKind(
                kind="Scope",
                category=spirv_gen.CATEGORY_VALUE_ENUM,
                enumerants=[E("QueueFamilyKHR", 5), E("QueueFamily", 5)],
            ),
        ],
    )


def test_normalize_registry_prunes_in_place_and_counts_removed() -> None:
    registry = _registry_with_aliases()

    removed = spirv_gen.normalize_registry(registry)

    assert removed == 2
    assert _names(registry.operand_kinds[0].enumerants) == ["Read", "Write"]
    assert registry.operand_kinds[1].enumerants is None
    assert _names(registry.operand_kinds[2].enumerants) == ["QueueFamily"]


def test_normalize_registry_is_idempotent() -> None:
    registry = _registry_with_aliases()

    spirv_gen.normalize_registry(registry)
    once = [list(k.enumerants or []) for k in registry.operand_kinds]
    removed_again = spirv_gen.normalize_registry(registry)
    twice = [list(k.enumerants or []) for k in registry.operand_kinds]

    assert removed_again == 0
    assert once == twice
